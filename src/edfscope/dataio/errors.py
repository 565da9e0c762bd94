"""Exceptions raised while decoding EDF recordings."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .models import EdfRecording


class EdfParseError(ValueError):
    """Base class for load failures; carries the offending field and byte offset."""

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        offset: Optional[int] = None,
    ) -> None:
        self.field = field
        self.offset = offset
        context = []
        if field is not None:
            context.append(f"field={field!r}")
        if offset is not None:
            context.append(f"offset={offset}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class MalformedHeaderError(EdfParseError):
    """A fixed or per-signal header field is missing, non-numeric or inconsistent."""


class NoDataError(EdfParseError):
    """The file declares no samples, or none of its records could be read."""


class TruncatedRecordsError(EdfParseError):
    """The file ends before the declared number of data records.

    ``recording`` holds every complete record that could be decoded.
    """

    def __init__(self, message: str, recording: "EdfRecording", *, offset: Optional[int] = None) -> None:
        super().__init__(message, field="data_records", offset=offset)
        self.recording = recording


__all__ = ["EdfParseError", "MalformedHeaderError", "NoDataError", "TruncatedRecordsError"]
