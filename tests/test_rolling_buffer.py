from __future__ import annotations

import numpy as np
import pytest

from edfscope.core.ringbuffer import RingBuffer
from edfscope.core.rolling_buffer import RollingBuffer, calculate_capacity


def test_ring_buffer_overwrites_oldest() -> None:
    ring = RingBuffer(3)
    for i in range(5):
        ring.append(float(i), float(i * 10))

    assert len(ring) == 3
    assert list(ring) == [(2.0, 20.0), (3.0, 30.0), (4.0, 40.0)]
    assert ring[-1] == (4.0, 40.0)
    with pytest.raises(IndexError):
        ring[3]


def test_ring_buffer_extend_wraps() -> None:
    ring = RingBuffer(4)
    ring.extend([0, 1, 2], [0, 1, 2])
    ring.extend([3, 4, 5], [3, 4, 5])

    np.testing.assert_array_equal(ring.to_array()[:, 0], [2, 3, 4, 5])
    ring.extend(np.arange(10, 20), np.arange(10, 20))
    np.testing.assert_array_equal(ring.to_array()[:, 1], [16, 17, 18, 19])


def test_ring_buffer_rejects_bad_capacity() -> None:
    with pytest.raises(ValueError):
        RingBuffer(0)


def test_capacity_is_duration_times_rate() -> None:
    assert calculate_capacity(60.0, 256.0) == 15360
    assert calculate_capacity(0.001, 1.0) == 1


def test_rolling_buffer_is_bounded() -> None:
    buf = RollingBuffer(max_seconds=2.0, sample_rate_hz=10.0)
    times = np.arange(50) / 10.0
    buf.extend(times, np.arange(50.0))

    assert len(buf) == 20
    t, v = buf.snapshot()
    assert t[0] == pytest.approx(3.0)
    assert v[-1] == 49.0
    assert buf.latest_time() == pytest.approx(4.9)


def test_rolling_buffer_rejects_time_going_backwards() -> None:
    buf = RollingBuffer(10.0, 10.0)
    buf.extend([0.0, 0.1], [1.0, 2.0])
    with pytest.raises(ValueError):
        buf.append(0.05, 3.0)
    with pytest.raises(ValueError):
        buf.extend([0.3, 0.2], [1.0, 1.0])


def test_snapshot_is_a_copy() -> None:
    buf = RollingBuffer(10.0, 10.0)
    buf.extend([0.0, 0.1], [1.0, 2.0])
    _, values = buf.snapshot()
    values[:] = 99.0

    assert buf.snapshot()[1].tolist() == [1.0, 2.0]


def test_get_window_and_clear() -> None:
    buf = RollingBuffer(10.0, 10.0)
    buf.extend(np.arange(10) / 10.0, np.arange(10.0))

    t, v = buf.get_window(0.25, 0.5)
    np.testing.assert_allclose(t, [0.3, 0.4, 0.5])
    np.testing.assert_array_equal(v, [3.0, 4.0, 5.0])

    buf.clear()
    assert len(buf) == 0
    assert buf.latest_time() is None
