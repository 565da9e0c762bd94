from __future__ import annotations

import numpy as np
import pytest

from conftest import build_edf, sine_digital
from edfscope.dataio import (
    MalformedHeaderError,
    NoDataError,
    TruncatedRecordsError,
    digital_to_physical,
    find_signal_onset,
    parse_edf,
    read_edf,
)

IDENTITY = dict(physical_min=-32768.0, physical_max=32767.0)


def _expected(digital, pmin=-3276.8, pmax=3276.7, dmin=-32768, dmax=32767):
    d = np.asarray(digital, dtype=np.float64)
    return (d - dmin) / (dmax - dmin) * (pmax - pmin) + pmin


def test_two_signal_single_record_scenario() -> None:
    a = [100, -200, 300, -400]
    b = [1000, 2000, 3000, 4000]
    recording = parse_edf(build_edf([a, b], 4, record_duration=1.0))

    assert recording.header.num_signals == 2
    assert recording.header.num_data_records == 1
    assert len(recording.channels) == 2
    for channel, digital in zip(recording.channels, (a, b)):
        assert channel.sample_rate_hz == 4.0
        assert len(channel) == 4
        np.testing.assert_allclose(channel.samples, _expected(digital), atol=1e-9)
    assert recording.duration_seconds == pytest.approx(1.0)
    assert recording.start_time_offset_seconds == 0.0


def test_header_fields_survive_encoding() -> None:
    data = build_edf(
        [sine_digital(2, 50), sine_digital(2, 50)],
        50,
        labels=["Fp1", "Fp2"],
        patient_id="MCH-0234567 F 02-MAY-1951 Haagse_Harry",
        start_date="17.04.01",
        start_time="11.25.00",
    )
    header = parse_edf(data).header

    assert header.version == "0"
    assert header.patient_id == "MCH-0234567 F 02-MAY-1951 Haagse_Harry"
    assert header.header_bytes == 256 + 2 * 256
    assert [s.label for s in header.signals] == ["Fp1", "Fp2"]
    assert header.signals[0].transducer == "AgAgCl electrode"
    assert header.signals[0].samples_per_record == 50
    assert header.start_datetime is not None
    assert header.start_datetime.year == 2001
    assert header.start_datetime.hour == 11


def test_multi_record_round_trip_keeps_signal_order() -> None:
    a = sine_digital(3, 20, freq_hz=2.0)
    b = sine_digital(3, 10, freq_hz=1.0, offset=-6000)
    recording = parse_edf(build_edf([a, b], [20, 10]))

    np.testing.assert_allclose(recording.channels[0].samples, _expected(a), atol=1e-9)
    np.testing.assert_allclose(recording.channels[1].samples, _expected(b), atol=1e-9)
    assert recording.channels[0].sample_rate_hz == 20.0
    assert recording.channels[1].sample_rate_hz == 10.0


def test_digital_midpoint_and_extremes() -> None:
    args = (-32768, 32767, -3276.8, 3276.7)
    assert float(digital_to_physical(0, *args)) == pytest.approx(0.0, abs=1e-9)
    assert float(digital_to_physical(32767, *args)) == pytest.approx(3276.7)
    assert float(digital_to_physical(-32768, *args)) == pytest.approx(-3276.8)


def test_degenerate_digital_range_yields_zeros_with_warning() -> None:
    data = build_edf([[5, 6, 7, 8]], 4, digital_min=0, digital_max=0)
    recording = parse_edf(data)

    np.testing.assert_array_equal(recording.channels[0].samples, np.zeros(4))
    assert any("digital range" in w for w in recording.warnings)


def test_millivolts_are_rescaled_to_microvolts() -> None:
    digital = [100, 200, 300, 400]
    recording = parse_edf(build_edf([digital], 4, dimension="mV", **IDENTITY))

    np.testing.assert_allclose(recording.channels[0].samples, np.array(digital) * 1000.0)
    assert recording.channels[0].unit == "uV"


def test_unknown_dimension_is_kept_with_warning() -> None:
    digital = [100, 200, 300, 400]
    recording = parse_edf(build_edf([digital], 4, dimension="furlong", **IDENTITY))

    np.testing.assert_allclose(recording.channels[0].samples, digital)
    assert any("furlong" in w for w in recording.warnings)


def test_leading_zero_region_is_trimmed_from_every_channel() -> None:
    first = [0] * 10 + list(range(50, 100))
    second = [0] * 10 + [-300] * 50
    recording = parse_edf(build_edf([first, second], 30, **IDENTITY))

    assert recording.start_time_offset_seconds == pytest.approx(10 / 30)
    assert recording.original_duration_seconds == pytest.approx(2.0)
    for channel in recording.channels:
        assert len(channel) == 50
    np.testing.assert_allclose(recording.channels[0].samples[:3], [50, 51, 52])
    assert recording.duration_seconds == pytest.approx(50 / 30)


def test_trim_starts_where_the_earliest_channel_shows_signal() -> None:
    late = [0] * 10 + list(range(50, 100))
    early = [0] * 5 + [-300] * 55
    recording = parse_edf(build_edf([late, early], 30, **IDENTITY))

    assert recording.start_time_offset_seconds == pytest.approx(5 / 30)
    for channel in recording.channels:
        assert len(channel) == 55
    np.testing.assert_allclose(recording.channels[0].samples[:6], [0, 0, 0, 0, 0, 50])
    np.testing.assert_allclose(recording.channels[1].samples[:3], [-300, -300, -300])


def test_trimming_can_be_disabled() -> None:
    first = [0] * 10 + list(range(50, 100))
    recording = parse_edf(build_edf([first], 30, **IDENTITY), trim_leading_silence=False)

    assert recording.start_time_offset_seconds == 0.0
    assert len(recording.channels[0]) == 60


def test_onset_falls_back_to_first_non_zero_sample() -> None:
    # Never ten samples above 1.0, but a 0.7 uV blip at index 4.
    channel = np.array([0.0, 0.0, 0.0, 0.0, 0.7, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0])
    assert find_signal_onset([channel]) == 4
    assert find_signal_onset([np.zeros(20)]) == 0


def test_truncated_file_raises_with_partial_recording() -> None:
    data = build_edf([sine_digital(3, 10)], 10, drop_bytes=1)

    with pytest.raises(TruncatedRecordsError) as excinfo:
        parse_edf(data)

    err = excinfo.value
    assert err.field == "data_records"
    assert err.recording.truncated
    assert len(err.recording.channels[0]) == 20


def test_truncated_file_can_be_accepted() -> None:
    data = build_edf([sine_digital(3, 10)], 10, drop_bytes=1)
    recording = parse_edf(data, allow_truncated=True)

    assert recording.truncated
    assert recording.original_duration_seconds == pytest.approx(2.0)
    assert recording.warnings


def test_no_signals_is_no_data() -> None:
    with pytest.raises(NoDataError):
        parse_edf(build_edf([], 1))


def test_no_complete_record_is_no_data() -> None:
    data = build_edf([sine_digital(1, 10)], 10, drop_bytes=2)
    with pytest.raises(NoDataError):
        parse_edf(data, allow_truncated=True)


def test_non_numeric_signal_count_is_malformed() -> None:
    data = bytearray(build_edf([sine_digital(1, 10)], 10))
    data[252:256] = b"ab  "

    with pytest.raises(MalformedHeaderError) as excinfo:
        parse_edf(bytes(data))
    assert excinfo.value.field == "num_signals"
    assert excinfo.value.offset == 252


def test_short_buffer_is_malformed() -> None:
    with pytest.raises(MalformedHeaderError):
        parse_edf(b"0       ")


def test_header_length_must_match_signal_count() -> None:
    data = bytearray(build_edf([sine_digital(1, 10)], 10))
    data[184:192] = b"768     "
    with pytest.raises(MalformedHeaderError):
        parse_edf(bytes(data))


def test_unknown_record_count_is_inferred_from_size() -> None:
    data = build_edf([sine_digital(4, 25)], 25, num_records=-1)
    recording = parse_edf(data)

    assert recording.header.num_data_records == -1
    assert len(recording.channels[0]) == 100
    assert not recording.truncated


def test_read_edf_from_disk(tmp_path) -> None:
    path = tmp_path / "sample.edf"
    path.write_bytes(build_edf([sine_digital(2, 20)], 20))

    recording = read_edf(path)
    assert len(recording.channels[0]) == 40
