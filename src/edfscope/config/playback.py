"""Playback pacing configuration and the timebase speed law."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

# 30 mm/sec of simulated chart paper is real-time (1x) playback.
BASE_TIMEBASE_MM_PER_SEC = 30.0


def timebase_speed(
    timebase_mm_per_sec: float,
    base_timebase_mm_per_sec: float = BASE_TIMEBASE_MM_PER_SEC,
) -> float:
    """Return the speed multiplier implied by a paper speed (60 -> 2.0)."""
    if base_timebase_mm_per_sec <= 0:
        raise ValueError(
            f"base_timebase_mm_per_sec must be > 0, got {base_timebase_mm_per_sec}"
        )
    return float(timebase_mm_per_sec) / float(base_timebase_mm_per_sec)


def _positive(value: Any, fallback: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number) or number <= 0.0:
        return fallback
    return number


@dataclass(slots=True)
class PlaybackConfig:
    """
    Tuning knobs for how a recording is replayed.

    ``playback_speed`` is the user multiplier; the timebase contributes a
    second multiplier so ``effective_speed = playback_speed * timebase / 30``.
    """

    playback_speed: float = 1.0
    timebase_mm_per_sec: float = BASE_TIMEBASE_MM_PER_SEC
    base_timebase_mm_per_sec: float = BASE_TIMEBASE_MM_PER_SEC
    tick_hz: float = 30.0
    max_buffer_seconds: float = 60.0
    telemetry_interval_seconds: float = 5.0

    @property
    def timebase_speed(self) -> float:
        return timebase_speed(self.timebase_mm_per_sec, self.base_timebase_mm_per_sec)

    @property
    def effective_speed(self) -> float:
        return float(self.playback_speed) * self.timebase_speed

    @property
    def tick_interval_seconds(self) -> float:
        return 1.0 / float(self.tick_hz)

    def sanitized(self) -> PlaybackConfig:
        """Return a copy with non-positive or non-numeric values replaced by defaults."""
        return PlaybackConfig(
            playback_speed=_positive(self.playback_speed, 1.0),
            timebase_mm_per_sec=_positive(self.timebase_mm_per_sec, BASE_TIMEBASE_MM_PER_SEC),
            base_timebase_mm_per_sec=_positive(
                self.base_timebase_mm_per_sec, BASE_TIMEBASE_MM_PER_SEC
            ),
            tick_hz=_positive(self.tick_hz, 30.0),
            max_buffer_seconds=_positive(self.max_buffer_seconds, 60.0),
            telemetry_interval_seconds=_positive(self.telemetry_interval_seconds, 5.0),
        )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> PlaybackConfig:
        """
        Build from a mapping such as the ``playback`` block of a YAML file::

            playback:
              playback_speed: 1.0
              timebase_mm_per_sec: 60
        """
        payload: Mapping[str, Any] = mapping or {}
        defaults = cls()
        return cls(
            playback_speed=payload.get("playback_speed", defaults.playback_speed),
            timebase_mm_per_sec=payload.get("timebase_mm_per_sec", defaults.timebase_mm_per_sec),
            base_timebase_mm_per_sec=payload.get(
                "base_timebase_mm_per_sec", defaults.base_timebase_mm_per_sec
            ),
            tick_hz=payload.get("tick_hz", defaults.tick_hz),
            max_buffer_seconds=payload.get("max_buffer_seconds", defaults.max_buffer_seconds),
            telemetry_interval_seconds=payload.get(
                "telemetry_interval_seconds", defaults.telemetry_interval_seconds
            ),
        ).sanitized()

    def to_mapping(self) -> dict:
        return {
            "playback": {
                "playback_speed": float(self.playback_speed),
                "timebase_mm_per_sec": float(self.timebase_mm_per_sec),
                "base_timebase_mm_per_sec": float(self.base_timebase_mm_per_sec),
                "tick_hz": float(self.tick_hz),
                "max_buffer_seconds": float(self.max_buffer_seconds),
                "telemetry_interval_seconds": float(self.telemetry_interval_seconds),
            }
        }
