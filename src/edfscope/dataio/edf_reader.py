"""EDF recording reader.

Decodes the header, the signal-major int16 data records, converts digital
values to physical units, rescales them to microvolts, and trims a leading
flat region common to padded recordings.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike

from .edf_header import decode_header
from .errors import NoDataError, TruncatedRecordsError
from .models import Channel, EdfRecording, FileHeader, SignalDescriptor

logger = logging.getLogger(__name__)

CANONICAL_UNIT = "uV"

# Physical dimension (lower-cased) -> factor to microvolts.
UNIT_SCALES = {
    "uv": 1.0,
    "µv": 1.0,
    "μv": 1.0,
    "microv": 1.0,
    "microvolt": 1.0,
    "microvolts": 1.0,
    "nv": 1e-3,
    "mv": 1e3,
    "milliv": 1e3,
    "millivolt": 1e3,
    "millivolts": 1e3,
    "v": 1e6,
    "volt": 1e6,
    "volts": 1e6,
}

# Leading-silence detection (values are in microvolts).
SIGNAL_THRESHOLD_UV = 1.0
ZERO_THRESHOLD_UV = 0.5
MIN_SIGNAL_RUN = 10


def digital_to_physical(
    digital: ArrayLike,
    digital_min: float,
    digital_max: float,
    physical_min: float,
    physical_max: float,
) -> np.ndarray:
    """
    Map codec integers onto the physical range.

    ``physical = (d - dmin) / (dmax - dmin) * (pmax - pmin) + pmin``. A
    degenerate digital range (``dmax <= dmin``) yields zeros.
    """
    values = np.asarray(digital, dtype=np.float64)
    span = float(digital_max) - float(digital_min)
    if span <= 0:
        return np.zeros_like(values)
    gain = (float(physical_max) - float(physical_min)) / span
    return (values - float(digital_min)) * gain + float(physical_min)


def unit_scale(dimension: str) -> Optional[float]:
    """Return the factor converting ``dimension`` to microvolts, or ``None`` if unknown."""
    return UNIT_SCALES.get(dimension.strip().lower())


def find_signal_onset(
    channels: Sequence[np.ndarray],
    *,
    signal_threshold: float = SIGNAL_THRESHOLD_UV,
    zero_threshold: float = ZERO_THRESHOLD_UV,
    min_run: int = MIN_SIGNAL_RUN,
) -> int:
    """
    Return the index where real signal starts, shared by all channels.

    The onset is the first run of ``min_run`` consecutive samples in which
    any channel exceeds ``signal_threshold``. Failing that, it is the first
    sample where any channel reaches ``zero_threshold``. ``0`` means no
    leading flat region was found.
    """
    usable = [np.asarray(ch, dtype=np.float64) for ch in channels if len(ch) > 0]
    if not usable:
        return 0
    length = min(ch.size for ch in usable)
    magnitude = np.abs(np.stack([ch[:length] for ch in usable]))

    active = (magnitude > signal_threshold).any(axis=0)
    if min_run > 0 and length >= min_run:
        runs = np.convolve(active.astype(np.int64), np.ones(min_run, dtype=np.int64), mode="valid")
        hits = np.flatnonzero(runs >= min_run)
        if hits.size:
            return int(hits[0])

    nonzero = np.flatnonzero((magnitude >= zero_threshold).any(axis=0))
    return int(nonzero[0]) if nonzero.size else 0


def _decode_records(data: bytes, header: FileHeader) -> Tuple[np.ndarray, int, bool]:
    """Return ``(records, count, truncated)`` where ``records`` is (count, samples_per_record)."""
    record_bytes = header.bytes_per_record
    available = max(0, len(data) - header.header_bytes)
    complete = available // record_bytes

    declared = header.num_data_records
    if declared == -1:
        logger.info("Record count not set in header; inferring %d records from file size", complete)
        declared = complete

    count = min(declared, complete)
    truncated = complete < declared
    leftover = available - count * record_bytes
    if leftover and not truncated:
        logger.debug("Ignoring %d trailing bytes after the last data record", leftover)

    if count == 0:
        return np.empty((0, header.samples_per_record), dtype="<i2"), 0, truncated

    records = np.frombuffer(
        data,
        dtype="<i2",
        count=count * header.samples_per_record,
        offset=header.header_bytes,
    ).reshape(count, header.samples_per_record)
    return records, count, truncated


def _convert_signal(
    digital: np.ndarray, signal: SignalDescriptor, index: int, warnings: List[str]
) -> np.ndarray:
    if signal.is_degenerate:
        msg = (
            f"Signal {index} ({signal.label or 'unlabelled'}) has digital range "
            f"[{signal.digital_min}, {signal.digital_max}]; samples set to 0"
        )
        logger.warning(msg)
        warnings.append(msg)
    physical = digital_to_physical(
        digital,
        signal.digital_min,
        signal.digital_max,
        signal.physical_min,
        signal.physical_max,
    )

    scale = unit_scale(signal.physical_dimension)
    if scale is None:
        dim = signal.physical_dimension
        msg = (
            f"Unknown physical dimension {dim!r} for signal {index} "
            f"({signal.label or 'unlabelled'}), assuming {CANONICAL_UNIT}"
            if dim
            else f"Empty physical dimension for signal {index} "
            f"({signal.label or 'unlabelled'}), assuming {CANONICAL_UNIT}"
        )
        logger.warning(msg)
        warnings.append(msg)
        scale = 1.0
    return physical * scale


def parse_edf(
    data: bytes,
    *,
    allow_truncated: bool = False,
    trim_leading_silence: bool = True,
) -> EdfRecording:
    """
    Decode an EDF byte buffer into channels of microvolt samples.

    Parameters
    ----------
    data:
        Complete file contents.
    allow_truncated:
        Return the complete records of a short file (flagged ``truncated``)
        instead of raising :class:`TruncatedRecordsError`.
    trim_leading_silence:
        Drop the common leading flat region from every channel and report
        its length as ``start_time_offset_seconds``.

    Raises
    ------
    MalformedHeaderError, NoDataError, TruncatedRecordsError
    """
    header = decode_header(data)
    if header.num_signals == 0 or header.samples_per_record == 0:
        raise NoDataError("recording declares no samples", field="samples_per_record")

    records, count, truncated = _decode_records(data, header)
    if count == 0:
        raise NoDataError(
            "no complete data record found",
            field="data_records",
            offset=header.header_bytes,
        )

    warnings: List[str] = []
    arrays: List[np.ndarray] = []
    start = 0
    for idx, signal in enumerate(header.signals):
        width = signal.samples_per_record
        digital = records[:, start : start + width].reshape(-1)
        start += width
        arrays.append(_convert_signal(digital, signal, idx, warnings))

    rates = [sig.samples_per_record / header.record_duration_seconds for sig in header.signals]
    reference_rate = next((rate for rate in rates if rate > 0), 0.0)
    original_duration = count * header.record_duration_seconds

    offset_seconds = 0.0
    if trim_leading_silence:
        onset = find_signal_onset(arrays)
        if onset > 0:
            offset_seconds = onset / reference_rate
            arrays = [arr[onset:] for arr in arrays]
            logger.info(
                "Trimmed %d leading near-zero samples (%.2fs) from all channels",
                onset,
                offset_seconds,
            )

    channels = tuple(
        Channel(
            label=signal.label or f"Channel {idx}",
            sample_rate_hz=rate,
            samples=arr,
            unit=CANONICAL_UNIT,
            signal_index=idx,
        )
        for idx, (signal, rate, arr) in enumerate(zip(header.signals, rates, arrays))
    )

    with_data = [ch for ch in channels if ch.has_data]
    if not with_data:
        raise NoDataError("no channel contains samples", field="data_records")
    duration = min(ch.duration_seconds for ch in with_data)

    declared_known = header.num_data_records >= 0
    if declared_known and not truncated and abs(header.declared_duration_seconds - original_duration) > 1.0:
        logger.warning(
            "Header duration %.2fs does not match decoded duration %.2fs",
            header.declared_duration_seconds,
            original_duration,
        )

    if truncated:
        msg = (
            f"File holds {count} of {header.num_data_records} declared data records; "
            f"recording ends at {original_duration:.2f}s"
        )
        warnings.append(msg)

    recording = EdfRecording(
        header=header,
        channels=channels,
        duration_seconds=duration,
        start_time_offset_seconds=offset_seconds,
        original_duration_seconds=original_duration,
        warnings=tuple(warnings),
        truncated=truncated,
    )

    if truncated:
        offset = header.header_bytes + count * header.bytes_per_record
        if not allow_truncated:
            raise TruncatedRecordsError(warnings[-1], recording, offset=offset)
        logger.warning(warnings[-1])

    logger.info(
        "Parsed EDF: %d channels, %.1f Hz, %.2fs (offset %.2fs)",
        len(channels),
        reference_rate,
        duration,
        offset_seconds,
    )
    return recording


def read_edf(path: str | Path, **kwargs) -> EdfRecording:
    """Read ``path`` and parse it with :func:`parse_edf`."""
    file_path = Path(path)
    data = file_path.read_bytes()
    logger.debug("Read %d bytes from %s", len(data), file_path)
    return parse_edf(data, **kwargs)


__all__ = [
    "CANONICAL_UNIT",
    "digital_to_physical",
    "find_signal_onset",
    "parse_edf",
    "read_edf",
    "unit_scale",
]
