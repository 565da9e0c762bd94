from __future__ import annotations

from collections.abc import Iterator

import numpy as np
from numpy.typing import ArrayLike


class RingBuffer:
    """
    Fixed-size ring of ``(time, value)`` rows backed by a NumPy array.
    Overwrites the oldest rows when full.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = int(capacity)
        self._data = np.zeros((self._capacity, 2), dtype=np.float64)
        self._start = 0
        self._size = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, time_s: float, value: float) -> None:
        idx = (self._start + self._size) % self._capacity
        self._data[idx, 0] = time_s
        self._data[idx, 1] = value
        if self._size < self._capacity:
            self._size += 1
        else:
            self._start = (self._start + 1) % self._capacity

    def extend(self, times: ArrayLike, values: ArrayLike) -> None:
        """Append many rows; only the newest ``capacity`` rows are kept."""
        t = np.asarray(times, dtype=np.float64).reshape(-1)
        v = np.asarray(values, dtype=np.float64).reshape(-1)
        if t.size != v.size:
            raise ValueError(f"times ({t.size}) and values ({v.size}) differ in length")
        if t.size == 0:
            return
        if t.size >= self._capacity:
            self._data[:, 0] = t[-self._capacity :]
            self._data[:, 1] = v[-self._capacity :]
            self._start = 0
            self._size = self._capacity
            return

        n = t.size
        write = (self._start + self._size) % self._capacity
        positions = (write + np.arange(n)) % self._capacity
        self._data[positions, 0] = t
        self._data[positions, 1] = v
        overflow = max(0, self._size + n - self._capacity)
        self._size = min(self._capacity, self._size + n)
        self._start = (self._start + overflow) % self._capacity

    def clear(self) -> None:
        self._start = 0
        self._size = 0

    def to_array(self) -> np.ndarray:
        """Return a (len, 2) copy in logical (oldest-first) order."""
        order = (self._start + np.arange(self._size)) % self._capacity
        return self._data[order].copy()

    def __len__(self) -> int:  # pragma: no cover - trivial
        return self._size

    def __getitem__(self, index: int) -> tuple[float, float]:
        """Support buf[i] and buf[-1] indexing over the *logical* contents."""
        size = self._size
        if size == 0:
            raise IndexError("RingBuffer is empty")

        if index < 0:
            index += size

        if index < 0 or index >= size:
            raise IndexError("RingBuffer index out of range")

        physical = (self._start + index) % self._capacity
        return float(self._data[physical, 0]), float(self._data[physical, 1])

    def __iter__(self) -> Iterator[tuple[float, float]]:
        for i in range(self._size):
            idx = (self._start + i) % self._capacity
            yield float(self._data[idx, 0]), float(self._data[idx, 1])
