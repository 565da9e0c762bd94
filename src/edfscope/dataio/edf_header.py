"""Fixed-offset decoding of the EDF primary and per-signal headers.

The 256-byte primary header is a run of space-padded ASCII fields at fixed
offsets. The signal header that follows is stored column-major: all N
labels, then all N transducer strings, and so on, so each field group
starts at ``256 + sum(previous widths) * N``.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Tuple

from .errors import MalformedHeaderError
from .models import FileHeader, SignalDescriptor

logger = logging.getLogger(__name__)

FIXED_HEADER_SIZE = 256
SIGNAL_HEADER_SIZE = 256

# (name, offset, width)
FIXED_FIELDS: Tuple[Tuple[str, int, int], ...] = (
    ("version", 0, 8),
    ("patient_id", 8, 80),
    ("recording_id", 88, 80),
    ("start_date", 168, 8),
    ("start_time", 176, 8),
    ("header_bytes", 184, 8),
    ("reserved", 192, 44),
    ("num_data_records", 236, 8),
    ("record_duration", 244, 8),
    ("num_signals", 252, 4),
)

# (name, width) in on-disk order; widths sum to SIGNAL_HEADER_SIZE.
SIGNAL_FIELDS: Tuple[Tuple[str, int], ...] = (
    ("label", 16),
    ("transducer", 80),
    ("physical_dimension", 8),
    ("physical_min", 8),
    ("physical_max", 8),
    ("digital_min", 8),
    ("digital_max", 8),
    ("prefiltering", 80),
    ("samples_per_record", 8),
    ("reserved", 32),
)


def read_ascii(data: bytes, offset: int, width: int) -> str:
    """Return the field at ``offset`` up to the first NUL, decoded and trimmed."""
    raw = bytes(data[offset : offset + width])
    nul = raw.find(b"\x00")
    if nul >= 0:
        raw = raw[:nul]
    return raw.decode("latin-1").strip()


def parse_int_field(text: str, field: str, offset: int) -> int:
    try:
        return int(text.strip())
    except ValueError:
        pass
    # Some writers emit "256.0" style integers.
    try:
        value = float(text.strip())
    except ValueError:
        raise MalformedHeaderError(
            f"expected an integer, got {text!r}", field=field, offset=offset
        ) from None
    if not math.isfinite(value) or value != int(value):
        raise MalformedHeaderError(
            f"expected an integer, got {text!r}", field=field, offset=offset
        )
    return int(value)


def parse_float_field(text: str, field: str, offset: int) -> float:
    try:
        value = float(text.strip())
    except ValueError:
        raise MalformedHeaderError(
            f"expected a number, got {text!r}", field=field, offset=offset
        ) from None
    if not math.isfinite(value):
        raise MalformedHeaderError(
            f"expected a finite number, got {text!r}", field=field, offset=offset
        )
    return value


def signal_field_offsets(num_signals: int) -> Dict[str, int]:
    """Base byte offset of each column-major field group."""
    offsets: Dict[str, int] = {}
    cursor = FIXED_HEADER_SIZE
    for name, width in SIGNAL_FIELDS:
        offsets[name] = cursor
        cursor += width * num_signals
    return offsets


def expected_header_bytes(num_signals: int) -> int:
    return FIXED_HEADER_SIZE + num_signals * SIGNAL_HEADER_SIZE


def decode_header(data: bytes) -> FileHeader:
    """
    Decode the primary and signal headers from the start of ``data``.

    Raises
    ------
    MalformedHeaderError
        When the buffer is too short, a numeric field does not parse, or the
        declared header length disagrees with the signal count.
    """
    if len(data) < FIXED_HEADER_SIZE:
        raise MalformedHeaderError(
            f"file is {len(data)} bytes, shorter than the {FIXED_HEADER_SIZE}-byte header",
            field="header",
            offset=0,
        )

    text = {name: read_ascii(data, offset, width) for name, offset, width in FIXED_FIELDS}
    offsets = {name: offset for name, offset, _ in FIXED_FIELDS}

    header_bytes = parse_int_field(text["header_bytes"], "header_bytes", offsets["header_bytes"])
    num_records = parse_int_field(
        text["num_data_records"], "num_data_records", offsets["num_data_records"]
    )
    duration = parse_float_field(
        text["record_duration"], "record_duration", offsets["record_duration"]
    )
    num_signals = parse_int_field(text["num_signals"], "num_signals", offsets["num_signals"])

    if num_signals < 0:
        raise MalformedHeaderError(
            f"negative signal count {num_signals}", field="num_signals", offset=offsets["num_signals"]
        )
    if num_records < -1:
        raise MalformedHeaderError(
            f"invalid record count {num_records}",
            field="num_data_records",
            offset=offsets["num_data_records"],
        )
    if duration <= 0:
        raise MalformedHeaderError(
            f"record duration must be > 0, got {duration}",
            field="record_duration",
            offset=offsets["record_duration"],
        )
    expected = expected_header_bytes(num_signals)
    if header_bytes != expected:
        raise MalformedHeaderError(
            f"header declares {header_bytes} bytes but {num_signals} signals need {expected}",
            field="header_bytes",
            offset=offsets["header_bytes"],
        )
    if len(data) < header_bytes:
        raise MalformedHeaderError(
            f"file is {len(data)} bytes, shorter than its {header_bytes}-byte header",
            field="signal_headers",
            offset=FIXED_HEADER_SIZE,
        )

    signals = _decode_signal_headers(data, num_signals)

    header = FileHeader(
        version=text["version"],
        patient_id=text["patient_id"],
        recording_id=text["recording_id"],
        start_date=text["start_date"],
        start_time=text["start_time"],
        header_bytes=header_bytes,
        reserved=text["reserved"],
        num_data_records=num_records,
        record_duration_seconds=duration,
        num_signals=num_signals,
        signals=tuple(signals),
    )
    logger.debug(
        "Decoded header: %d signals, %d records of %.3fs, %d bytes",
        num_signals,
        num_records,
        duration,
        header_bytes,
    )
    return header


def _decode_signal_headers(data: bytes, num_signals: int) -> List[SignalDescriptor]:
    bases = signal_field_offsets(num_signals)
    widths = dict(SIGNAL_FIELDS)

    def locate(name: str, idx: int) -> int:
        return bases[name] + idx * widths[name]

    def text_at(name: str, idx: int) -> str:
        return read_ascii(data, locate(name, idx), widths[name])

    def float_at(name: str, idx: int) -> float:
        return parse_float_field(text_at(name, idx), f"{name}[{idx}]", locate(name, idx))

    def int_at(name: str, idx: int) -> int:
        return parse_int_field(text_at(name, idx), f"{name}[{idx}]", locate(name, idx))

    signals: List[SignalDescriptor] = []
    for idx in range(num_signals):
        samples_per_record = int_at("samples_per_record", idx)
        if samples_per_record < 0:
            raise MalformedHeaderError(
                f"negative sample count {samples_per_record}",
                field=f"samples_per_record[{idx}]",
                offset=locate("samples_per_record", idx),
            )
        signals.append(
            SignalDescriptor(
                label=text_at("label", idx),
                transducer=text_at("transducer", idx),
                physical_dimension=text_at("physical_dimension", idx),
                physical_min=float_at("physical_min", idx),
                physical_max=float_at("physical_max", idx),
                digital_min=int_at("digital_min", idx),
                digital_max=int_at("digital_max", idx),
                prefiltering=text_at("prefiltering", idx),
                samples_per_record=samples_per_record,
                reserved=text_at("reserved", idx),
            )
        )
    return signals
