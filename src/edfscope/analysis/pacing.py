from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Tuple


@dataclass(frozen=True)
class PacingSnapshot:
    """Measured vs requested playback speed (file seconds per wall second)."""

    real_speed_ratio: float
    expected_speed_ratio: float
    wall_span_s: float
    file_span_s: float

    @property
    def speed_error(self) -> float:
        return abs(self.real_speed_ratio - self.expected_speed_ratio)

    @property
    def accuracy(self) -> float:
        """``1 - relative error``; 1.0 is perfect pacing."""
        if self.expected_speed_ratio <= 0:
            return 0.0
        return 1.0 - self.speed_error / self.expected_speed_ratio


class SpeedMonitor:
    """
    Estimate real playback speed from (wall time, file time) checkpoints.

    Notes
    -----
    - Both clocks are in seconds and assumed monotonic increasing.
    - The estimate covers the last ``window_size`` checkpoints, so a
      mid-playback speed change shows up after a short delay.
    """

    def __init__(self, window_size: int = 60) -> None:
        if window_size <= 1:
            raise ValueError("window_size must be > 1")
        self._points: Deque[Tuple[float, float]] = deque(maxlen=window_size)
        self._first: Optional[Tuple[float, float]] = None

    def add_checkpoint(self, wall_time: float, file_time: float) -> None:
        point = (float(wall_time), float(file_time))
        if self._first is None:
            self._first = point
        self._points.append(point)

    @staticmethod
    def _ratio(start: Tuple[float, float], end: Tuple[float, float]) -> float:
        wall = end[0] - start[0]
        if wall <= 0:
            return 0.0
        return (end[1] - start[1]) / wall

    @property
    def real_speed_ratio(self) -> float:
        """Windowed file-seconds per wall-second (0.0 until two checkpoints)."""
        if len(self._points) < 2:
            return 0.0
        return self._ratio(self._points[0], self._points[-1])

    @property
    def overall_speed_ratio(self) -> float:
        """Ratio since the first checkpoint after the last :meth:`reset`."""
        if self._first is None or not self._points:
            return 0.0
        return self._ratio(self._first, self._points[-1])

    @property
    def wall_span_s(self) -> float:
        if len(self._points) < 2:
            return 0.0
        return self._points[-1][0] - self._points[0][0]

    @property
    def file_span_s(self) -> float:
        if len(self._points) < 2:
            return 0.0
        return self._points[-1][1] - self._points[0][1]

    def snapshot(self, expected_speed_ratio: float) -> PacingSnapshot:
        return PacingSnapshot(
            real_speed_ratio=self.real_speed_ratio,
            expected_speed_ratio=float(expected_speed_ratio),
            wall_span_s=self.wall_span_s,
            file_span_s=self.file_span_s,
        )

    def reset(self) -> None:
        """Clear all checkpoints."""
        self._points.clear()
        self._first = None
