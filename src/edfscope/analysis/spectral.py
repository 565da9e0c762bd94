"""Sliding-window power spectra: compressed (CSA) and density (DSA) arrays.

Both variants share one windowing/FFT core and differ only in how FFT bins
are mapped onto the output frequency axis and how the result is scaled:

- :class:`~edfscope.config.spectral.LogBinned` accumulates ``log10`` power on
  a geometric axis, then normalises the whole result to ``[0, 1]``.
- :class:`~edfscope.config.spectral.LinearBinned` sums power into fixed-width
  linear bins and reports absolute spectral density in dB.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

import numpy as np
from numpy.typing import ArrayLike

from ..config.spectral import LinearBinned, LogBinned, SpectralConfig
from ..tools.debug import time_block

logger = logging.getLogger(__name__)

LOG_POWER_EPSILON = 1e-12
PSD_FLOOR = 1e-10
DB_FLOOR = -100.0
DB_CEILING = 0.0
SEF_FRACTION = 0.95


@dataclass(frozen=True)
class SpectralSlice:
    """One analysis window. ``power`` is read-only."""

    time_sec: float
    power: np.ndarray
    sef95_hz: float
    min_db: Optional[float] = None
    max_db: Optional[float] = None


@dataclass(frozen=True)
class SpectralResult:
    slices: Tuple[SpectralSlice, ...]
    freq_axis_hz: np.ndarray
    variant: str
    global_min_db: Optional[float] = None
    global_max_db: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return not self.slices

    @property
    def times(self) -> np.ndarray:
        return np.array([s.time_sec for s in self.slices], dtype=np.float64)

    @property
    def sef95(self) -> np.ndarray:
        return np.array([s.sef95_hz for s in self.slices], dtype=np.float64)

    def power_matrix(self) -> np.ndarray:
        """Stack slice powers into a (slices, bins) array."""
        if not self.slices:
            return np.empty((0, self.freq_axis_hz.size), dtype=np.float64)
        return np.vstack([s.power for s in self.slices])


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def empty_result(config: SpectralConfig) -> SpectralResult:
    if isinstance(config.binning, LinearBinned):
        return SpectralResult((), _frozen(np.empty(0)), "dense", DB_FLOOR, DB_CEILING)
    return SpectralResult((), _frozen(np.empty(0)), "compressed")


def hamming_window(length: int) -> np.ndarray:
    """``0.54 - 0.46 * cos(2*pi*i / (N-1))``."""
    return np.hamming(length)


def next_power_of_two(n: int) -> int:
    if n <= 1:
        return 1
    return 1 << (int(n) - 1).bit_length()


def power_spectrum(segment: ArrayLike, sample_rate_hz: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Hamming-taper ``segment``, zero-pad to a power of two and return the
    non-negative frequencies with their squared FFT magnitudes.
    """
    if sample_rate_hz <= 0:
        raise ValueError(f"sample_rate_hz must be > 0, got {sample_rate_hz}")
    arr = np.asarray(segment, dtype=np.float64).reshape(-1)
    if arr.size < 2:
        raise ValueError("segment must contain at least two samples")
    fft_size = next_power_of_two(arr.size)
    spectrum = np.fft.fft(arr * hamming_window(arr.size), n=fft_size)[: fft_size // 2]
    power = spectrum.real**2 + spectrum.imag**2
    freqs = np.arange(fft_size // 2, dtype=np.float64) * (sample_rate_hz / fft_size)
    return freqs, power


def spectral_edge_frequency(
    power: ArrayLike,
    freqs: ArrayLike,
    max_freq_hz: float,
    fraction: float = SEF_FRACTION,
) -> float:
    """
    Frequency below which ``fraction`` of the power in ``[0, max_freq_hz]`` lies.

    Returns ``0.0`` when there is no power in band.
    """
    p = np.asarray(power, dtype=np.float64).reshape(-1)
    f = np.asarray(freqs, dtype=np.float64).reshape(-1)
    n = min(p.size, f.size)
    p, f = p[:n], f[:n]
    in_band = f <= max_freq_hz
    p, f = p[in_band], f[in_band]
    if p.size == 0:
        return 0.0
    total = float(np.sum(p))
    if total <= 0:
        return 0.0
    cumulative = np.cumsum(p)
    idx = int(np.searchsorted(cumulative, fraction * total, side="left"))
    return float(f[min(idx, f.size - 1)])


class FrequencyMapper(Protocol):
    axis: np.ndarray

    def bin(self, freqs: np.ndarray, power: np.ndarray) -> np.ndarray: ...

    def finalize(self, rows: List[np.ndarray]) -> Tuple[List[np.ndarray], dict]: ...


class LogBinMapper:
    """Nearest-bin assignment onto a geometric axis, accumulating log power."""

    def __init__(self, binning: LogBinned, max_freq_hz: float) -> None:
        ratio = np.arange(binning.num_bins, dtype=np.float64) / (binning.num_bins - 1)
        self.axis = binning.min_freq_hz * np.power(max_freq_hz / binning.min_freq_hz, ratio)

    def nearest_bins(self, freqs: np.ndarray) -> np.ndarray:
        axis = self.axis
        right = np.clip(np.searchsorted(axis, freqs, side="left"), 1, axis.size - 1)
        left = right - 1
        # Ties go to the upper bin.
        choose_left = np.abs(freqs - axis[left]) < np.abs(freqs - axis[right])
        idx = np.where(choose_left, left, right)
        idx = np.where(freqs <= axis[0], 0, idx)
        return np.where(freqs >= axis[-1], axis.size - 1, idx)

    def bin(self, freqs: np.ndarray, power: np.ndarray) -> np.ndarray:
        out = np.zeros(self.axis.size, dtype=np.float64)
        np.add.at(out, self.nearest_bins(freqs), np.log10(power + LOG_POWER_EPSILON))
        return out

    def finalize(self, rows: List[np.ndarray]) -> Tuple[List[np.ndarray], dict]:
        """Normalise positive log-power to ``[0, 1]`` using the whole result."""
        if not rows:
            return rows, {}
        stacked = np.vstack(rows)
        positive = stacked > 0
        normalised = np.zeros_like(stacked)
        if positive.any():
            lo = float(stacked[positive].min())
            hi = float(stacked[positive].max())
            span = (hi - lo) or 1.0
            normalised[positive] = (stacked[positive] - lo) / span
        return list(normalised), {}


class LinearBinMapper:
    """Fixed-resolution linear bins, reported as dB spectral density."""

    def __init__(self, binning: LinearBinned, max_freq_hz: float) -> None:
        self.resolution = float(binning.resolution_hz)
        count = int(math.ceil(max_freq_hz / self.resolution)) + 1
        self.axis = np.arange(count, dtype=np.float64) * self.resolution

    def bin(self, freqs: np.ndarray, power: np.ndarray) -> np.ndarray:
        summed = np.zeros(self.axis.size, dtype=np.float64)
        idx = np.floor(freqs / self.resolution + 0.5).astype(np.int64)
        keep = (idx >= 0) & (idx < self.axis.size)
        np.add.at(summed, idx[keep], power[keep])

        db = np.full(self.axis.size, DB_FLOOR, dtype=np.float64)
        has_power = summed > 0
        psd = summed[has_power] / self.resolution
        db[has_power] = 10.0 * np.log10(np.maximum(psd, PSD_FLOOR))
        return db

    def finalize(self, rows: List[np.ndarray]) -> Tuple[List[np.ndarray], dict]:
        """Track the global dB range, clamped to ``[DB_FLOOR, DB_CEILING]``."""
        if not rows:
            return rows, {"global_min_db": DB_FLOOR, "global_max_db": DB_CEILING}
        lo = max(min(float(r.min()) for r in rows), DB_FLOOR)
        hi = min(max(float(r.max()) for r in rows), DB_CEILING)
        if hi <= lo:
            hi = lo + 1.0
        return rows, {"global_min_db": lo, "global_max_db": hi}


def mapper_for(config: SpectralConfig) -> FrequencyMapper:
    if isinstance(config.binning, LinearBinned):
        return LinearBinMapper(config.binning, config.max_freq_hz)
    if isinstance(config.binning, LogBinned):
        return LogBinMapper(config.binning, config.max_freq_hz)
    raise TypeError(f"Unsupported binning {config.binning!r}")


def compute_spectrum(
    signal: ArrayLike,
    sample_rate_hz: float,
    config: SpectralConfig | None = None,
) -> SpectralResult:
    """
    Slide a window across ``signal`` and build the spectral array.

    Too little data for one window is a normal state during live streaming
    and returns an empty result rather than raising.
    """
    cfg = config or SpectralConfig()
    data = np.array(signal, dtype=np.float64, copy=True).reshape(-1)
    if sample_rate_hz <= 0:
        return empty_result(cfg)

    window = int(math.floor(cfg.window_seconds * sample_rate_hz))
    step = max(1, int(math.floor(cfg.step_seconds * sample_rate_hz)))
    if window < 2 or data.size < window:
        logger.debug(
            "Insufficient data for spectrum: %d samples, window needs %d", data.size, window
        )
        return empty_result(cfg)

    mapper = mapper_for(cfg)

    starts = range(0, data.size - window + 1, step)
    rows: List[np.ndarray] = []
    times: List[float] = []
    edges: List[float] = []
    with time_block(f"spectrum[{cfg.variant}] {len(starts)} windows"):
        for start in starts:
            freqs, power = power_spectrum(data[start : start + window], sample_rate_hz)
            in_band = freqs <= cfg.max_freq_hz
            band_freqs, power = freqs[in_band], power[in_band]
            rows.append(mapper.bin(band_freqs, power))
            edges.append(spectral_edge_frequency(power, band_freqs, cfg.max_freq_hz))
            times.append((start + window / 2.0) / sample_rate_hz)

        rows, extras = mapper.finalize(rows)

    dense = isinstance(cfg.binning, LinearBinned)
    slices = tuple(
        SpectralSlice(
            time_sec=t,
            power=_frozen(row),
            sef95_hz=sef,
            min_db=float(row.min()) if dense else None,
            max_db=float(row.max()) if dense else None,
        )
        for t, row, sef in zip(times, rows, edges)
    )
    return SpectralResult(
        slices=slices,
        freq_axis_hz=_frozen(mapper.axis.copy()),
        variant=cfg.variant,
        **extras,
    )


class SpectralAnalyzer:
    """
    Computes spectra on demand, optionally on a worker thread.

    The analyzer only ever sees copies of the caller's samples, so it can
    run while the playback engine keeps appending to its buffers.
    """

    def __init__(self, config: SpectralConfig | None = None, *, max_workers: int = 1) -> None:
        self.config = config or SpectralConfig()
        self._max_workers = max(1, int(max_workers))
        self._executor: Optional[ThreadPoolExecutor] = None

    def compute(
        self,
        signal: ArrayLike,
        sample_rate_hz: float,
        config: SpectralConfig | None = None,
    ) -> SpectralResult:
        return compute_spectrum(signal, sample_rate_hz, config or self.config)

    def submit(
        self,
        signal: ArrayLike,
        sample_rate_hz: float,
        config: SpectralConfig | None = None,
    ) -> Future:
        """Schedule :meth:`compute` on the worker pool and return its Future."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="edfscope-spectral"
            )
        snapshot = np.array(signal, dtype=np.float64, copy=True)
        return self._executor.submit(self.compute, snapshot, sample_rate_hz, config)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> SpectralAnalyzer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
