"""Core playback machinery: buffers, telemetry and the playback engine.

This package sits between the parsed recording and any display by pacing
samples in real time, filtering them, and keeping a bounded history per
channel that readers can snapshot safely.
"""

from .playback import (
    PlaybackCursor,
    PlaybackEngine,
    PlaybackError,
    PlaybackState,
    PlaybackStatus,
    advance,
    samples_per_tick,
)
from .ringbuffer import RingBuffer
from .rolling_buffer import RollingBuffer, calculate_capacity
from .telemetry import CompletionReport, IntegrityMonitor, IntegritySnapshot, SampleBatch

__all__ = [
    "CompletionReport",
    "IntegrityMonitor",
    "IntegritySnapshot",
    "PlaybackCursor",
    "PlaybackEngine",
    "PlaybackError",
    "PlaybackState",
    "PlaybackStatus",
    "RingBuffer",
    "RollingBuffer",
    "SampleBatch",
    "advance",
    "calculate_capacity",
    "samples_per_tick",
]
