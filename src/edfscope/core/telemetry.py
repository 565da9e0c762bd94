"""Streaming output records and data-integrity bookkeeping."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

# Samples with ``abs(value) < ZERO_EPSILON_UV`` count as zero.
ZERO_EPSILON_UV = 1e-3
# Sample-index drift beyond this many samples is an anomaly.
MAX_INDEX_DRIFT = 1
# Only the first few invalid samples are logged individually.
MAX_LOGGED_INVALID = 10


@dataclass(frozen=True)
class SampleBatch:
    """Filtered samples emitted for one channel during one tick."""

    channel_index: int
    times: np.ndarray
    values: np.ndarray

    def __len__(self) -> int:
        return int(self.values.size)


@dataclass(frozen=True)
class IntegritySnapshot:
    total_samples_emitted: int
    valid_samples: int
    zero_samples: int
    invalid_samples: int
    drift_events: int
    sample_index: int
    playback_time: float

    @property
    def valid_fraction(self) -> float:
        if self.total_samples_emitted == 0:
            return 0.0
        return self.valid_samples / self.total_samples_emitted


@dataclass(frozen=True)
class CompletionReport:
    """Summary delivered once playback reaches the end of the data."""

    integrity: IntegritySnapshot
    duration_seconds: float
    wall_seconds: float
    real_speed_ratio: float
    expected_speed_ratio: float


class IntegrityMonitor:
    """
    Count emitted, zero, invalid (non-finite) samples and index drift.

    Anomalies are recorded, never raised: a few bad samples must not stop
    a live view.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.total = 0
        self.valid = 0
        self.zero = 0
        self.invalid = 0
        self.drift_events = 0
        self._sample_index = 0
        self._playback_time = 0.0

    def record(self, values: np.ndarray, channel_index: int = 0) -> np.ndarray:
        """
        Count ``values`` and return the boolean mask of finite samples.
        """
        arr = np.asarray(values, dtype=np.float64).reshape(-1)
        finite = np.isfinite(arr)
        n_invalid = int(arr.size - np.count_nonzero(finite))
        if n_invalid:
            if self.invalid < MAX_LOGGED_INVALID:
                logger.warning(
                    "Channel %d: %d non-finite sample(s) skipped", channel_index, n_invalid
                )
            self.invalid += n_invalid
        self.total += int(arr.size)
        self.valid += int(arr.size) - n_invalid
        self.zero += int(np.count_nonzero(np.abs(arr[finite]) < ZERO_EPSILON_UV))
        return finite

    def check_position(self, sample_index: int, playback_time: float, sample_rate_hz: float) -> bool:
        """Record the cursor and return True when it has drifted from ``floor(t * rate)``."""
        self._sample_index = int(sample_index)
        self._playback_time = float(playback_time)
        expected = math.floor(playback_time * sample_rate_hz + 1e-9)
        if abs(sample_index - expected) > MAX_INDEX_DRIFT:
            self.drift_events += 1
            logger.debug(
                "Sample index drift: index %d, expected %d at %.3fs",
                sample_index,
                expected,
                playback_time,
            )
            return True
        return False

    def snapshot(self, sample_index: Optional[int] = None, playback_time: Optional[float] = None) -> IntegritySnapshot:
        return IntegritySnapshot(
            total_samples_emitted=self.total,
            valid_samples=self.valid,
            zero_samples=self.zero,
            invalid_samples=self.invalid,
            drift_events=self.drift_events,
            sample_index=self._sample_index if sample_index is None else int(sample_index),
            playback_time=self._playback_time if playback_time is None else float(playback_time),
        )
