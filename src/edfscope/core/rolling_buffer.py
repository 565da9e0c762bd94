"""Per-channel display history bounded by duration."""

from __future__ import annotations

import math
import threading

import numpy as np
from numpy.typing import ArrayLike

from .ringbuffer import RingBuffer


def calculate_capacity(window_seconds: float, sample_rate_hz: float) -> int:
    """Number of samples covering ``window_seconds`` at ``sample_rate_hz`` (at least 1)."""
    samples = float(window_seconds) * float(sample_rate_hz)
    if not math.isfinite(samples):
        raise ValueError(f"capacity is not finite for {window_seconds}s at {sample_rate_hz} Hz")
    return max(1, int(math.floor(samples)))


class RollingBuffer:
    """
    Ordered ``(time, value)`` samples for one channel, never holding more
    than ``max_seconds * sample_rate_hz`` entries.

    Times must be non-decreasing across appends; readers always receive
    copies so they never race with the playback thread.
    """

    def __init__(self, max_seconds: float, sample_rate_hz: float) -> None:
        self.max_seconds = float(max_seconds)
        self.sample_rate_hz = float(sample_rate_hz)
        self._ring = RingBuffer(calculate_capacity(max_seconds, sample_rate_hz))
        self._lock = threading.RLock()

    @property
    def capacity(self) -> int:
        return self._ring.capacity

    def extend(self, times: ArrayLike, values: ArrayLike) -> None:
        t = np.asarray(times, dtype=np.float64).reshape(-1)
        if t.size == 0:
            return
        if t.size > 1 and np.any(np.diff(t) < 0):
            raise ValueError("sample times must be non-decreasing")
        with self._lock:
            if len(self._ring) and t[0] < self._ring[-1][0]:
                raise ValueError(
                    f"sample time {t[0]:.6f}s precedes buffered time {self._ring[-1][0]:.6f}s"
                )
            self._ring.extend(t, values)

    def append(self, time_s: float, value: float) -> None:
        self.extend([time_s], [value])

    def clear(self) -> None:
        with self._lock:
            self._ring.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._ring)

    def latest_time(self) -> float | None:
        with self._lock:
            if len(self._ring) == 0:
                return None
            return self._ring[-1][0]

    def snapshot(self) -> tuple[np.ndarray, np.ndarray]:
        """Return copies of ``(times, values)``, oldest first."""
        with self._lock:
            rows = self._ring.to_array()
        return rows[:, 0].copy(), rows[:, 1].copy()

    def get_window(self, start_s: float, end_s: float) -> tuple[np.ndarray, np.ndarray]:
        """Return samples with ``start_s <= time <= end_s``."""
        if end_s < start_s:
            start_s, end_s = end_s, start_s
        times, values = self.snapshot()
        lo = np.searchsorted(times, start_s, side="left")
        hi = np.searchsorted(times, end_s, side="right")
        return times[lo:hi], values[lo:hi]
