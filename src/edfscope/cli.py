"""Command-line entry point: ``edfscope info|play|spectrum FILE``."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

import numpy as np

from .analysis.features import channel_summary
from .analysis.filters import FilterPipeline
from .analysis.pacing import PacingSnapshot
from .analysis.spectral import SpectralAnalyzer
from .config import EdfScopeConfig, SpectralConfig, load_config
from .core.playback import PlaybackEngine
from .core.telemetry import CompletionReport, IntegritySnapshot
from .dataio import Channel, EdfParseError, EdfRecording, parse_patient_info, read_edf

logger = logging.getLogger(__name__)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("file", type=Path, help="EDF recording to open")
    parser.add_argument(
        "--config",
        type=Path,
        help="Optional YAML file with playback/filters/spectral blocks",
    )
    parser.add_argument(
        "--allow-truncated",
        action="store_true",
        help="Open files with missing data records instead of failing",
    )
    parser.add_argument(
        "--no-trim",
        action="store_true",
        help="Keep the leading near-zero region of the recording",
    )


def _add_filters(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--high-pass", type=float, help="High-pass cutoff in Hz (0 disables)")
    parser.add_argument("--low-pass", type=float, help="Low-pass cutoff in Hz (0 disables)")
    parser.add_argument("--notch", type=float, help="Notch frequency in Hz (0 disables)")


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edfscope",
        description="Inspect, replay and analyse EDF biosignal recordings.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    info = sub.add_parser("info", help="Print header, patient and channel summary")
    _add_common(info)

    play = sub.add_parser("play", help="Replay the recording in real time without a display")
    _add_common(play)
    _add_filters(play)
    play.add_argument("--speed", type=float, help="Playback speed multiplier")
    play.add_argument("--timebase", type=float, help="Timebase in mm/sec (30 is real time)")
    play.add_argument("--tick-hz", type=float, help="Scheduler rate in Hz (default: 30)")
    play.add_argument("--start", type=float, default=0.0, help="Start time in seconds")
    play.add_argument(
        "--max-seconds",
        type=float,
        help="Stop after this many wall-clock seconds",
    )

    spectrum = sub.add_parser("spectrum", help="Print per-window SEF95 for one channel")
    _add_common(spectrum)
    _add_filters(spectrum)
    spectrum.add_argument(
        "--channel",
        default="0",
        help="Channel index or label (default: 0)",
    )
    spectrum.add_argument(
        "--variant",
        choices=["csa", "dsa"],
        help="csa: log-binned compressed array; dsa: linear dB density array",
    )
    spectrum.add_argument(
        "--filtered",
        action="store_true",
        help="Run the display filters over the channel before analysis",
    )
    return parser


def _resolve_config(args: argparse.Namespace) -> EdfScopeConfig:
    cfg = load_config(args.config) if args.config else EdfScopeConfig()

    if getattr(args, "speed", None) is not None:
        cfg.playback.playback_speed = float(args.speed)
    if getattr(args, "timebase", None) is not None:
        cfg.playback.timebase_mm_per_sec = float(args.timebase)
    if getattr(args, "tick_hz", None) is not None:
        cfg.playback.tick_hz = float(args.tick_hz)
    cfg.playback = cfg.playback.sanitized()

    overrides = {}
    if getattr(args, "high_pass", None) is not None:
        overrides["high_pass_hz"] = float(args.high_pass)
    if getattr(args, "low_pass", None) is not None:
        overrides["low_pass_hz"] = float(args.low_pass)
    if getattr(args, "notch", None) is not None:
        overrides["notch_hz"] = float(args.notch)
    if overrides:
        cfg.filters = replace(cfg.filters, **overrides)

    variant = getattr(args, "variant", None)
    spec = cfg.spectral
    if variant == "dsa" and spec.variant != "dense":
        cfg.spectral = SpectralConfig.dense(
            window_seconds=spec.window_seconds,
            step_seconds=spec.step_seconds,
            max_freq_hz=spec.max_freq_hz,
        )
    elif variant == "csa" and spec.variant != "compressed":
        cfg.spectral = SpectralConfig.compressed(
            window_seconds=spec.window_seconds,
            step_seconds=spec.step_seconds,
            max_freq_hz=spec.max_freq_hz,
        )
    return cfg


def _select_channel(recording: EdfRecording, key: str) -> Channel:
    if key.isdigit():
        index = int(key)
        if index >= len(recording.channels):
            raise KeyError(f"Channel index {index} out of range (0-{len(recording.channels) - 1})")
        return recording.channels[index]
    try:
        return recording.channel_by_label(key)
    except KeyError:
        raise KeyError(f"Unknown channel {key!r}") from None


def _cmd_info(recording: EdfRecording, cfg: EdfScopeConfig) -> int:
    header = recording.header
    patient = parse_patient_info(header.patient_id, header.recording_id)
    print(f"Version:        {header.version}")
    print(f"Patient:        {patient.last_name}, {patient.first_name}".rstrip(", "))
    if patient.mrn:
        print(f"MRN:            {patient.mrn}")
    if patient.birth_date is not None:
        print(f"Birth date:     {patient.birth_date.isoformat()}")
    if patient.sex:
        print(f"Sex:            {patient.sex}")
    start = header.start_datetime
    print(f"Start:          {start.isoformat() if start else header.start_date + ' ' + header.start_time}")
    print(f"Records:        {header.num_data_records} x {header.record_duration_seconds:g}s")
    print(f"Duration:       {recording.duration_seconds:.2f}s "
          f"(original {recording.original_duration_seconds:.2f}s, "
          f"offset {recording.start_time_offset_seconds:.2f}s)")
    print(
        f"Channels:       {len(recording.channels)} "
        f"({len(recording.valid_channels)} with data)"
    )
    for idx, channel in enumerate(recording.channels):
        stats = channel_summary(channel.samples)
        print(
            f"  [{idx:2d}] {channel.label:<16} {channel.sample_rate_hz:8.2f} Hz "
            f"n={stats.count:<8d} min={stats.minimum:9.2f} max={stats.maximum:9.2f} "
            f"rms={stats.rms:9.2f} {channel.unit}"
        )
    for warning in recording.warnings:
        print(f"Warning: {warning}")
    return 0


def _cmd_play(recording: EdfRecording, cfg: EdfScopeConfig, args: argparse.Namespace) -> int:
    def on_integrity(snap: IntegritySnapshot) -> None:
        logger.info(
            "t=%.1fs emitted=%d valid=%d zero=%d invalid=%d drift=%d",
            snap.playback_time,
            snap.total_samples_emitted,
            snap.valid_samples,
            snap.zero_samples,
            snap.invalid_samples,
            snap.drift_events,
        )

    def on_pacing(snap: PacingSnapshot) -> None:
        logger.info(
            "speed real=%.3fx expected=%.3fx (accuracy %.1f%%)",
            snap.real_speed_ratio,
            snap.expected_speed_ratio,
            snap.accuracy * 100.0,
        )

    reports: list[CompletionReport] = []
    engine = PlaybackEngine(
        recording,
        cfg.playback,
        cfg.filters,
        on_integrity=on_integrity,
        on_pacing=on_pacing,
        on_finished=reports.append,
    )
    if args.start:
        engine.seek(args.start)
    engine.start()
    try:
        finished = engine.wait_finished(args.max_seconds)
    except KeyboardInterrupt:
        finished = False
    if not finished:
        engine.stop()
        print(f"Stopped at {engine.integrity().playback_time:.2f}s")
        return 0

    report = reports[-1]
    print(
        f"Played {report.duration_seconds:.2f}s in {report.wall_seconds:.2f}s "
        f"({report.real_speed_ratio:.2f}x, expected {report.expected_speed_ratio:.2f}x)"
    )
    print(
        f"Samples: {report.integrity.total_samples_emitted} emitted, "
        f"{report.integrity.valid_samples} valid, {report.integrity.zero_samples} zero, "
        f"{report.integrity.invalid_samples} invalid "
        f"({report.integrity.valid_fraction * 100.0:.1f}% valid)"
    )
    return 0


def _cmd_spectrum(recording: EdfRecording, cfg: EdfScopeConfig, args: argparse.Namespace) -> int:
    channel = _select_channel(recording, args.channel)
    samples = np.asarray(channel.samples, dtype=np.float64)
    if args.filtered:
        samples = FilterPipeline().process(samples, cfg.filters, channel.sample_rate_hz)

    with SpectralAnalyzer(cfg.spectral) as analyzer:
        result = analyzer.submit(samples, channel.sample_rate_hz).result()

    if result.is_empty:
        print(
            f"Not enough data in {channel.label} for a {cfg.spectral.window_seconds:g}s window"
        )
        return 0

    axis = result.freq_axis_hz
    print(f"# {channel.label} {result.variant} {len(result.slices)} windows, {axis.size} bins")
    if result.variant == "dense":
        print(f"# global dB range [{result.global_min_db:.1f}, {result.global_max_db:.1f}]")
    print("time_s\tsef95_hz\tpeak_hz")
    for slc in result.slices:
        peak = float(axis[int(np.argmax(slc.power))])
        print(f"{slc.time_sec:.2f}\t{slc.sef95_hz:.2f}\t{peak:.2f}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.file.exists():
        parser.error(f"File not found: {args.file}")

    cfg = _resolve_config(args)
    try:
        recording = read_edf(
            args.file,
            allow_truncated=args.allow_truncated,
            trim_leading_silence=not args.no_trim,
        )
    except EdfParseError as exc:
        print(f"Cannot open {args.file}: {exc}", file=sys.stderr)
        return 2

    try:
        if args.command == "info":
            return _cmd_info(recording, cfg)
        if args.command == "play":
            return _cmd_play(recording, cfg, args)
        return _cmd_spectrum(recording, cfg, args)
    except KeyError as exc:
        print(f"Error: {exc.args[0]}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
