"""Shared dataclasses for parsed EDF recordings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class SignalDescriptor:
    """Per-signal header entry (one per channel)."""

    label: str
    transducer: str
    physical_dimension: str
    physical_min: float
    physical_max: float
    digital_min: int
    digital_max: int
    prefiltering: str
    samples_per_record: int
    reserved: str = ""

    @property
    def is_degenerate(self) -> bool:
        """True when the digital range cannot be mapped to physical units."""
        return self.digital_max <= self.digital_min


@dataclass(frozen=True)
class FileHeader:
    version: str
    patient_id: str
    recording_id: str
    start_date: str
    start_time: str
    header_bytes: int
    reserved: str
    num_data_records: int
    record_duration_seconds: float
    num_signals: int
    signals: Tuple[SignalDescriptor, ...] = ()

    @property
    def samples_per_record(self) -> int:
        """Total samples (all signals) in one data record."""
        return sum(sig.samples_per_record for sig in self.signals)

    @property
    def bytes_per_record(self) -> int:
        return 2 * self.samples_per_record

    @property
    def declared_duration_seconds(self) -> float:
        return max(0, self.num_data_records) * self.record_duration_seconds

    @property
    def start_datetime(self) -> Optional[datetime]:
        """
        Combine ``dd.mm.yy`` / ``hh.mm.ss`` into a datetime.

        Two-digit years follow the EDF clipping rule (85-99 -> 19xx).
        Returns ``None`` when either field is unparsable.
        """
        try:
            day, month, year = (int(part) for part in self.start_date.split("."))
            hour, minute, second = (int(part) for part in self.start_time.split("."))
        except ValueError:
            return None
        year += 1900 if year >= 85 else 2000
        try:
            return datetime(year, month, day, hour, minute, second)
        except ValueError:
            return None


@dataclass(frozen=True)
class Channel:
    """
    One decoded signal in canonical units.

    ``samples`` is a read-only float64 array; re-parsing produces a new Channel.
    """

    label: str
    sample_rate_hz: float
    samples: np.ndarray
    unit: str = "uV"
    signal_index: int = 0

    def __post_init__(self) -> None:
        arr = np.array(self.samples, dtype=np.float64, copy=True).reshape(-1)
        arr.setflags(write=False)
        object.__setattr__(self, "samples", arr)

    def __len__(self) -> int:
        return int(self.samples.size)

    @property
    def has_data(self) -> bool:
        return self.samples.size > 0

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate_hz <= 0:
            return 0.0
        return self.samples.size / self.sample_rate_hz


@dataclass(frozen=True)
class EdfRecording:
    """Parser output: header, channels and the playback time context."""

    header: FileHeader
    channels: Tuple[Channel, ...]
    duration_seconds: float
    start_time_offset_seconds: float = 0.0
    original_duration_seconds: float = 0.0
    warnings: Tuple[str, ...] = field(default_factory=tuple)
    truncated: bool = False

    @property
    def valid_channels(self) -> Tuple[Channel, ...]:
        return tuple(ch for ch in self.channels if ch.has_data)

    @property
    def sample_rate_hz(self) -> float:
        """Rate of the first channel with data (the playback reference rate)."""
        for ch in self.channels:
            if ch.has_data:
                return ch.sample_rate_hz
        return 0.0

    def channel_by_label(self, label: str) -> Channel:
        for ch in self.channels:
            if ch.label == label:
                return ch
        raise KeyError(label)
