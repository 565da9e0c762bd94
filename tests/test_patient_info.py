from __future__ import annotations

from datetime import date

from edfscope.dataio import parse_patient_info


def test_standard_layout_with_sex_and_birthdate() -> None:
    info = parse_patient_info("MCH-0234567 F 02-MAY-1951 Haagse Harry")

    assert info.patient_id == "MCH-0234567"
    assert info.sex == "F"
    assert info.birth_date == date(1951, 5, 2)
    assert info.first_name == "Haagse"
    assert info.last_name == "Harry"


def test_mrn_in_second_position() -> None:
    info = parse_patient_info("12345 MRN123456 John Doe")

    assert info.mrn == "MRN123456"
    assert info.first_name == "John"
    assert info.last_name == "Doe"


def test_mrn_recovered_from_recording_id() -> None:
    info = parse_patient_info("12345 Jo", "Startdate 01-JAN-2020 MRN:AB1234 tech")
    assert info.mrn == "AB1234"
    assert info.recording_id.startswith("Startdate")


def test_numeric_date_formats() -> None:
    assert parse_patient_info("1 1980-01-31").birth_date == date(1980, 1, 31)
    assert parse_patient_info("1 31/01/1980").birth_date == date(1980, 1, 31)
    assert parse_patient_info("1 31-01-1980").birth_date == date(1980, 1, 31)


def test_empty_identification() -> None:
    info = parse_patient_info("   ")
    assert info.patient_id == ""
    assert info.birth_date is None
