"""Real-time replay of a parsed recording.

The engine owns one :class:`PlaybackState` per stream and advances it with
:func:`advance` on a fixed wall-clock cadence. Each tick emits
``floor(rate * speed / tick_hz)`` samples per channel, filtered and appended
to the channel's :class:`~edfscope.core.rolling_buffer.RollingBuffer`.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..analysis.filters import FilterPipeline
from ..analysis.pacing import PacingSnapshot, SpeedMonitor
from ..config.filters import FilterConfig
from ..config.playback import PlaybackConfig
from ..dataio.models import Channel, EdfRecording
from .rolling_buffer import RollingBuffer
from .telemetry import CompletionReport, IntegrityMonitor, IntegritySnapshot, SampleBatch

logger = logging.getLogger(__name__)

SampleCallback = Callable[[SampleBatch], None]
IntegrityCallback = Callable[[IntegritySnapshot], None]
PacingCallback = Callable[[PacingSnapshot], None]
FinishedCallback = Callable[[CompletionReport], None]


class PlaybackError(RuntimeError):
    """Raised when the engine is asked to do something it cannot."""


class PlaybackStatus(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"
    FINISHED = "finished"


@dataclass(frozen=True)
class PlaybackCursor:
    time_seconds: float
    sample_index: int
    sample_rate_hz: float
    speed: float
    finished: bool


@dataclass(slots=True)
class PlaybackState:
    """Everything a tick mutates. Owned by exactly one engine."""

    sample_rate_hz: float
    total_samples: int
    filters: List[FilterPipeline]
    buffers: List[RollingBuffer]
    integrity: IntegrityMonitor = field(default_factory=IntegrityMonitor)
    sample_index: int = 0
    playback_time: float = 0.0
    status: PlaybackStatus = PlaybackStatus.STOPPED
    next_telemetry_time: float = 0.0

    @property
    def remaining(self) -> int:
        return max(0, self.total_samples - self.sample_index)

    def move_to(self, time_seconds: float) -> None:
        """Reposition so that ``sample_index == floor(time * rate)``."""
        duration = self.total_samples / self.sample_rate_hz
        t = min(max(0.0, float(time_seconds)), duration)
        self.playback_time = t
        self.sample_index = min(self.total_samples, int(math.floor(t * self.sample_rate_hz)))

    def clear_history(self) -> None:
        for buf in self.buffers:
            buf.clear()
        for pipeline in self.filters:
            pipeline.reset()


def samples_per_tick(sample_rate_hz: float, effective_speed: float, tick_hz: float) -> int:
    """``floor(rate * tick_interval * speed)``, at least one sample."""
    return max(1, int(math.floor(sample_rate_hz * effective_speed / tick_hz)))


def advance(
    state: PlaybackState,
    channels: Sequence[Tuple[int, Channel]],
    config: PlaybackConfig,
    filters: FilterConfig,
) -> List[SampleBatch]:
    """
    Run one tick against ``state`` and return the emitted batches.

    Every channel advances by the same number of samples. Non-finite
    samples are counted and dropped before filtering.
    """
    if state.remaining == 0:
        state.status = PlaybackStatus.FINISHED
        return []

    count = min(
        samples_per_tick(state.sample_rate_hz, config.effective_speed, config.tick_hz),
        state.remaining,
    )
    start = state.sample_index
    stop = start + count
    times = np.arange(start, stop, dtype=np.float64) / state.sample_rate_hz

    batches: List[SampleBatch] = []
    for slot, (channel_index, channel) in enumerate(channels):
        raw = channel.samples[start:stop]
        finite = state.integrity.record(raw, channel_index)
        values = state.filters[slot].process(raw[finite], filters, channel.sample_rate_hz)
        batch_times = times[finite]
        state.buffers[slot].extend(batch_times, values)
        batches.append(SampleBatch(channel_index, batch_times, values))

    state.sample_index = stop
    state.playback_time += count / state.sample_rate_hz
    state.integrity.check_position(state.sample_index, state.playback_time, state.sample_rate_hz)
    if state.sample_index >= state.total_samples:
        state.status = PlaybackStatus.FINISHED
    return batches


class PlaybackEngine:
    """
    Stopped -> Playing <-> Paused -> Stopped, plus terminal Finished.

    Parameters
    ----------
    recording:
        Parsed recording; channels without samples are not streamed.
    config, filters:
        Initial pacing and display filter settings. Both can be changed
        mid-playback and take effect on the next tick.
    on_samples, on_integrity, on_pacing, on_finished:
        Optional callbacks, invoked outside the engine lock. Exceptions they
        raise are logged and do not stop playback.
    clock:
        Monotonic wall clock in seconds.
    threaded:
        Run ticks on a background thread. With ``False`` the caller drives
        the engine by calling :meth:`tick`.
    """

    def __init__(
        self,
        recording: EdfRecording,
        config: PlaybackConfig | None = None,
        filters: FilterConfig | None = None,
        *,
        on_samples: SampleCallback | None = None,
        on_integrity: IntegrityCallback | None = None,
        on_pacing: PacingCallback | None = None,
        on_finished: FinishedCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
        threaded: bool = True,
    ) -> None:
        self._recording = recording
        self._config = (config or PlaybackConfig()).sanitized()
        self._filters = filters or FilterConfig()
        self.on_samples = on_samples
        self.on_integrity = on_integrity
        self.on_pacing = on_pacing
        self.on_finished = on_finished
        self._clock = clock
        self._threaded = threaded

        self._channels: List[Tuple[int, Channel]] = [
            (idx, ch) for idx, ch in enumerate(recording.channels) if ch.has_data
        ]
        rate = recording.sample_rate_hz
        total = min((len(ch) for _, ch in self._channels), default=0)
        self._state = PlaybackState(
            sample_rate_hz=rate if rate > 0 else 1.0,
            total_samples=total,
            filters=[FilterPipeline() for _ in self._channels],
            buffers=[
                RollingBuffer(self._config.max_buffer_seconds, ch.sample_rate_hz)
                for _, ch in self._channels
            ],
        )
        self._speed = SpeedMonitor()
        self._started_wall = 0.0

        self._lock = threading.RLock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._finished_event = threading.Event()

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #
    @property
    def status(self) -> PlaybackStatus:
        with self._lock:
            return self._state.status

    @property
    def config(self) -> PlaybackConfig:
        with self._lock:
            return replace(self._config)

    @property
    def filters(self) -> FilterConfig:
        return self._filters

    @property
    def effective_speed(self) -> float:
        with self._lock:
            return self._config.effective_speed

    @property
    def channel_indices(self) -> Tuple[int, ...]:
        return tuple(idx for idx, _ in self._channels)

    @property
    def total_samples(self) -> int:
        return self._state.total_samples

    @property
    def cursor(self) -> PlaybackCursor:
        with self._lock:
            state = self._state
            return PlaybackCursor(
                time_seconds=state.playback_time,
                sample_index=state.sample_index,
                sample_rate_hz=state.sample_rate_hz,
                speed=self._config.effective_speed,
                finished=state.status is PlaybackStatus.FINISHED,
            )

    def buffer(self, channel_index: int) -> RollingBuffer:
        """Return the rolling buffer for ``channel_index`` (an index into ``recording.channels``)."""
        for slot, (idx, _) in enumerate(self._channels):
            if idx == channel_index:
                return self._state.buffers[slot]
        raise KeyError(f"Channel {channel_index} is not streamed")

    def snapshot(self, channel_index: int) -> tuple[np.ndarray, np.ndarray]:
        """Copy of the buffered ``(times, values)`` for one channel."""
        return self.buffer(channel_index).snapshot()

    def integrity(self) -> IntegritySnapshot:
        with self._lock:
            return self._state.integrity.snapshot(
                self._state.sample_index, self._state.playback_time
            )

    # ------------------------------------------------------------------ #
    # Control
    # ------------------------------------------------------------------ #
    def start(self) -> None:
        """Start, resume after pause, or restart after finishing. No-op while playing."""
        with self._lock:
            state = self._state
            if not self._channels or state.total_samples == 0:
                raise PlaybackError("No channel with samples to play")
            if state.status is PlaybackStatus.PLAYING:
                return

            previous = state.status
            if previous is PlaybackStatus.FINISHED:
                state.move_to(0.0)
            if previous in (PlaybackStatus.STOPPED, PlaybackStatus.FINISHED):
                state.clear_history()
                state.integrity.reset()
                state.next_telemetry_time = (
                    state.playback_time + self._config.telemetry_interval_seconds
                )
                self._started_wall = self._clock()

            self._speed.reset()
            self._speed.add_checkpoint(self._clock(), state.playback_time)
            state.status = PlaybackStatus.PLAYING
            self._finished_event.clear()
            logger.info(
                "Playback %s at %.3fs (speed %.2fx)",
                "resumed" if previous is PlaybackStatus.PAUSED else "started",
                state.playback_time,
                self._config.effective_speed,
            )

            if self._threaded:
                self._stop_event = threading.Event()
                self._thread = threading.Thread(
                    target=self._run,
                    args=(self._stop_event,),
                    name="edfscope-playback",
                    daemon=True,
                )
                self._thread.start()

    def pause(self) -> None:
        """Stop ticking, keeping the cursor and buffers."""
        with self._lock:
            if self._state.status is not PlaybackStatus.PLAYING:
                return
            self._state.status = PlaybackStatus.PAUSED
            logger.info("Playback paused at %.3fs", self._state.playback_time)
        self._cancel_scheduler()

    def stop(self) -> None:
        """Stop ticking, rewind to 0 and clear buffers and filter history."""
        with self._lock:
            state = self._state
            state.status = PlaybackStatus.STOPPED
            state.move_to(0.0)
            state.clear_history()
            logger.info("Playback stopped")
        self._cancel_scheduler()

    def seek(self, time_seconds: float) -> PlaybackCursor:
        """
        Move the cursor to ``time_seconds`` (clamped to the recording).

        Buffers and filter history are cleared so buffered times stay
        ordered. Seeking a finished stream leaves it stopped at the new
        position, so the next :meth:`start` begins a fresh run from there.
        """
        with self._lock:
            state = self._state
            state.move_to(time_seconds)
            state.clear_history()
            state.next_telemetry_time = (
                state.playback_time + self._config.telemetry_interval_seconds
            )
            if state.status is PlaybackStatus.FINISHED:
                state.status = PlaybackStatus.STOPPED
            self._speed.reset()
            self._speed.add_checkpoint(self._clock(), state.playback_time)
            logger.debug("Seek to %.3fs (sample %d)", state.playback_time, state.sample_index)
            return self.cursor

    def set_playback_speed(self, speed: float) -> None:
        if not math.isfinite(speed) or speed <= 0:
            raise ValueError(f"playback speed must be > 0, got {speed}")
        with self._lock:
            self._config = replace(self._config, playback_speed=float(speed))
            self._speed.reset()
            self._speed.add_checkpoint(self._clock(), self._state.playback_time)

    def set_timebase(self, timebase_mm_per_sec: float) -> None:
        if not math.isfinite(timebase_mm_per_sec) or timebase_mm_per_sec <= 0:
            raise ValueError(f"timebase must be > 0, got {timebase_mm_per_sec}")
        with self._lock:
            self._config = replace(self._config, timebase_mm_per_sec=float(timebase_mm_per_sec))
            self._speed.reset()
            self._speed.add_checkpoint(self._clock(), self._state.playback_time)

    def set_filters(self, filters: FilterConfig) -> None:
        """Swap display filters; history is reset when the values differ."""
        with self._lock:
            self._filters = filters

    def wait_finished(self, timeout: float | None = None) -> bool:
        return self._finished_event.wait(timeout)

    # ------------------------------------------------------------------ #
    # Ticking
    # ------------------------------------------------------------------ #
    def tick(self) -> bool:
        """
        Advance one tick if playing. Returns True while more ticks are due.
        """
        integrity: Optional[IntegritySnapshot] = None
        pacing: Optional[PacingSnapshot] = None
        report: Optional[CompletionReport] = None

        with self._lock:
            state = self._state
            if state.status is not PlaybackStatus.PLAYING:
                return False
            batches = advance(state, self._channels, self._config, self._filters)
            now = self._clock()
            self._speed.add_checkpoint(now, state.playback_time)
            expected = self._config.effective_speed

            if state.playback_time >= state.next_telemetry_time:
                integrity = state.integrity.snapshot(state.sample_index, state.playback_time)
                pacing = self._speed.snapshot(expected)
                state.next_telemetry_time += self._config.telemetry_interval_seconds

            finished = state.status is PlaybackStatus.FINISHED
            if finished:
                report = CompletionReport(
                    integrity=state.integrity.snapshot(state.sample_index, state.playback_time),
                    duration_seconds=state.playback_time,
                    wall_seconds=now - self._started_wall,
                    real_speed_ratio=self._speed.overall_speed_ratio,
                    expected_speed_ratio=expected,
                )

        for batch in batches:
            self._dispatch(self.on_samples, batch)
        if integrity is not None:
            self._dispatch(self.on_integrity, integrity)
        if pacing is not None:
            self._dispatch(self.on_pacing, pacing)
        if report is not None:
            logger.info(
                "Playback finished: %d samples emitted (%d valid, %d zero, %d invalid, "
                "%d drift events) in %.2fs wall time",
                report.integrity.total_samples_emitted,
                report.integrity.valid_samples,
                report.integrity.zero_samples,
                report.integrity.invalid_samples,
                report.integrity.drift_events,
                report.wall_seconds,
            )
            self._dispatch(self.on_finished, report)
            self._finished_event.set()
            return False
        return True

    def _dispatch(self, callback, payload) -> None:
        if callback is None:
            return
        try:
            callback(payload)
        except Exception as exc:  # pragma: no cover
            logger.exception("Error in playback callback for %r: %s", type(payload).__name__, exc)

    def _run(self, stop_event: threading.Event) -> None:
        deadline = self._clock()
        while not stop_event.is_set():
            if not self.tick():
                break
            deadline += self.config.tick_interval_seconds
            delay = deadline - self._clock()
            if delay < 0:
                # Behind schedule; do not try to catch up with a burst.
                deadline = self._clock()
                delay = 0.0
            stop_event.wait(delay)

    def _cancel_scheduler(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        if thread is not threading.current_thread():
            self._thread = None
