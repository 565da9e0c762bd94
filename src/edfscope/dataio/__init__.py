"""Data input helpers: EDF decoding and header metadata.

Modules here keep byte-level concerns isolated from the rest of the package:
- :mod:`edf_header` decodes the fixed-offset primary and signal headers.
- :mod:`edf_reader` turns data records into microvolt :class:`Channel` arrays.
- :mod:`patient_info` splits the free-text patient identification field.
"""

from .edf_reader import digital_to_physical, find_signal_onset, parse_edf, read_edf
from .errors import EdfParseError, MalformedHeaderError, NoDataError, TruncatedRecordsError
from .models import Channel, EdfRecording, FileHeader, SignalDescriptor
from .patient_info import PatientInfo, parse_patient_info

__all__ = [
    "Channel",
    "EdfParseError",
    "EdfRecording",
    "FileHeader",
    "MalformedHeaderError",
    "NoDataError",
    "PatientInfo",
    "SignalDescriptor",
    "TruncatedRecordsError",
    "digital_to_physical",
    "find_signal_onset",
    "parse_edf",
    "parse_patient_info",
    "read_edf",
]
