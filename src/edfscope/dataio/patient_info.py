"""Helpers for splitting the free-text EDF patient identification field."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

logger = logging.getLogger(__name__)

_MONTHS = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4, "MAY": 5, "JUN": 6,
    "JUL": 7, "AUG": 8, "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}

# Tried in order; groups are (day, month, year) except for the ISO form.
_DATE_PATTERNS = (
    ("dmy_name", re.compile(r"^(\d{2})-([A-Za-z]{3})-(\d{4})$")),
    ("iso", re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")),
    ("dmy", re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")),
    ("dmy", re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")),
)
_SEX_RE = re.compile(r"^(M|F|MALE|FEMALE)$", re.IGNORECASE)
_MRN_TOKEN_RE = re.compile(r"^[A-Za-z0-9-]+$")
_MRN_IN_RECORDING_RE = re.compile(r"MRN[:\s]*([A-Za-z0-9-]+)", re.IGNORECASE)


@dataclass(frozen=True)
class PatientInfo:
    patient_id: str = ""
    mrn: str = ""
    first_name: str = ""
    last_name: str = ""
    birth_date: Optional[date] = None
    sex: str = ""
    recording_id: str = ""


def _parse_date(token: str) -> Optional[date]:
    for kind, pattern in _DATE_PATTERNS:
        match = pattern.match(token)
        if not match:
            continue
        try:
            if kind == "dmy_name":
                month = _MONTHS.get(match.group(2).upper())
                if month is None:
                    return None
                return date(int(match.group(3)), month, int(match.group(1)))
            if kind == "iso":
                return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            return date(int(match.group(3)), int(match.group(2)), int(match.group(1)))
        except ValueError:
            logger.debug("Ignoring impossible date %r in patient id", token)
            return None
    return None


def parse_patient_info(patient_id: str, recording_id: str = "") -> PatientInfo:
    """
    Split a patient identification string into its usual parts.

    Handles the common layouts ``"<id> <name> <sex> <birthdate>"`` and
    ``"<id> <MRN> <name>"``. The first token is always the patient id; an
    alphanumeric second token of 6-19 characters is taken as the MRN. When
    no MRN is present, ``MRN:<value>`` in ``recording_id`` is used instead.
    """
    tokens: List[str] = (patient_id or "").split()
    if not tokens:
        return PatientInfo(recording_id=recording_id or "")

    birth_date: Optional[date] = None
    date_index = -1
    for idx, token in enumerate(tokens):
        parsed = _parse_date(token)
        if parsed is not None:
            birth_date, date_index = parsed, idx
            break

    sex = ""
    sex_index = -1
    for idx, token in enumerate(tokens):
        if _SEX_RE.match(token):
            sex, sex_index = token.upper(), idx
            break

    mrn = ""
    names: List[str] = []
    for idx in range(1, len(tokens)):
        if idx in (date_index, sex_index):
            continue
        token = tokens[idx]
        if idx == 1 and _MRN_TOKEN_RE.match(token) and 5 < len(token) < 20:
            mrn = token
        else:
            names.append(token)

    if not mrn and recording_id:
        match = _MRN_IN_RECORDING_RE.search(recording_id)
        if match:
            mrn = match.group(1)

    return PatientInfo(
        patient_id=tokens[0],
        mrn=mrn,
        first_name=names[0] if names else "",
        last_name=" ".join(names[1:]),
        birth_date=birth_date,
        sex=sex,
        recording_id=recording_id or "",
    )
