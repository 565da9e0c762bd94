"""Filter cutoff configuration shared by the playback engine and the CLI."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping


def _cutoff(value: Any) -> float:
    # Anything unusable means "stage disabled".
    try:
        hz = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(hz):
        return 0.0
    return max(0.0, hz)


@dataclass(frozen=True, slots=True)
class FilterConfig:
    """
    High-pass / low-pass / notch cutoffs in Hz. ``0`` disables a stage.

    Instances are compared by value: the filter pipeline resets its state
    whenever the active configuration is no longer equal to the new one.
    """

    high_pass_hz: float = 1.0
    low_pass_hz: float = 30.0
    notch_hz: float = 60.0

    @classmethod
    def disabled(cls) -> FilterConfig:
        return cls(high_pass_hz=0.0, low_pass_hz=0.0, notch_hz=0.0)

    @property
    def is_passthrough(self) -> bool:
        return self.high_pass_hz <= 0 and self.low_pass_hz <= 0 and self.notch_hz <= 0

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> FilterConfig:
        """
        Build from a ``filters`` block. Short aliases used by the display
        settings (``highPass``, ``lowPass``, ``notch``) are accepted too.
        """
        payload: Mapping[str, Any] = mapping or {}
        defaults = cls()

        def pick(*keys: str, default: float) -> float:
            for key in keys:
                if key in payload:
                    return _cutoff(payload[key])
            return default

        return cls(
            high_pass_hz=pick("high_pass_hz", "highPass", "high_pass", default=defaults.high_pass_hz),
            low_pass_hz=pick("low_pass_hz", "lowPass", "low_pass", default=defaults.low_pass_hz),
            notch_hz=pick("notch_hz", "notch", default=defaults.notch_hz),
        )

    def to_mapping(self) -> dict:
        return {
            "filters": {
                "high_pass_hz": float(self.high_pass_hz),
                "low_pass_hz": float(self.low_pass_hz),
                "notch_hz": float(self.notch_hz),
            }
        }
