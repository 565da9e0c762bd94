from __future__ import annotations

import pathlib
import sys
from typing import Sequence

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def _field(value, width: int) -> bytes:
    if isinstance(value, float):
        text = f"{value:g}"
    else:
        text = str(value)
    return text.encode("latin-1")[:width].ljust(width, b" ")


def build_edf(
    digital: Sequence[Sequence[int]],
    samples_per_record: int | Sequence[int],
    *,
    record_duration: float = 1.0,
    labels: Sequence[str] | None = None,
    physical_min: float = -3276.8,
    physical_max: float = 3276.7,
    digital_min: int = -32768,
    digital_max: int = 32767,
    dimension: str | Sequence[str] = "uV",
    num_records: int | None = None,
    patient_id: str = "X X X X",
    recording_id: str = "Startdate X X X X",
    start_date: str = "01.02.23",
    start_time: str = "10.11.12",
    drop_bytes: int = 0,
) -> bytes:
    """
    Encode digital samples as an EDF file.

    ``digital[i]`` holds every sample of signal ``i``; its length must be a
    multiple of that signal's samples-per-record. ``num_records`` overrides
    the declared record count; ``drop_bytes`` chops bytes off the end.
    """
    n = len(digital)
    spr = (
        [int(samples_per_record)] * n
        if isinstance(samples_per_record, int)
        else [int(s) for s in samples_per_record]
    )
    labels = list(labels) if labels is not None else [f"EEG {i}" for i in range(n)]
    dims = [dimension] * n if isinstance(dimension, str) else list(dimension)
    arrays = [np.asarray(sig, dtype="<i2") for sig in digital]
    records = min((arr.size // s for arr, s in zip(arrays, spr) if s), default=0)
    declared = records if num_records is None else num_records

    header = b"".join(
        [
            _field("0", 8),
            _field(patient_id, 80),
            _field(recording_id, 80),
            _field(start_date, 8),
            _field(start_time, 8),
            _field(256 + 256 * n, 8),
            _field("", 44),
            _field(declared, 8),
            _field(float(record_duration), 8),
            _field(n, 4),
        ]
    )
    columns = [
        [_field(label, 16) for label in labels],
        [_field("AgAgCl electrode", 80)] * n,
        [_field(dim, 8) for dim in dims],
        [_field(float(physical_min), 8)] * n,
        [_field(float(physical_max), 8)] * n,
        [_field(int(digital_min), 8)] * n,
        [_field(int(digital_max), 8)] * n,
        [_field("HP:0.1Hz LP:75Hz", 80)] * n,
        [_field(s, 8) for s in spr],
        [_field("", 32)] * n,
    ]
    header += b"".join(b"".join(col) for col in columns)

    body = bytearray()
    for r in range(records):
        for arr, s in zip(arrays, spr):
            body += arr[r * s : (r + 1) * s].tobytes()

    data = header + bytes(body)
    if drop_bytes:
        data = data[:-drop_bytes]
    return data


def sine_digital(
    seconds: float,
    rate: int,
    *,
    freq_hz: float = 5.0,
    offset: int = 5000,
    amplitude: int = 4000,
) -> np.ndarray:
    """Digital samples that never look like leading silence."""
    t = np.arange(int(seconds * rate)) / rate
    return np.round(offset + amplitude * np.sin(2 * np.pi * freq_hz * t)).astype(np.int16)


@pytest.fixture
def edf_builder():
    return build_edf
