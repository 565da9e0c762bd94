"""Feature extraction helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np
from numpy.typing import ArrayLike


Number = Union[float, np.floating]

# Samples below this magnitude (uV) count as zero.
ZERO_EPSILON_UV = 1e-3


def _to_1d_array(signal: ArrayLike) -> np.ndarray:
    """Convert input to a 1D float64 numpy array."""
    arr = np.asarray(signal, dtype=float)
    if arr.size == 0:
        raise ValueError("signal must contain at least one sample")
    if arr.ndim != 1:
        raise ValueError(f"signal must be 1-D, got shape {arr.shape}")
    return arr


def rms(signal: ArrayLike) -> Number:
    """
    Compute root-mean-square (RMS) value of a 1-D signal.

    Parameters
    ----------
    signal:
        1-D array-like of samples.

    Returns
    -------
    float
        RMS value of the signal.
    """
    arr = _to_1d_array(signal)
    return float(np.sqrt(np.mean(np.square(arr))))


def peak_to_peak(signal: ArrayLike) -> Number:
    """Compute peak-to-peak value (max - min) of a 1-D signal."""
    arr = _to_1d_array(signal)
    return float(np.max(arr) - np.min(arr))


@dataclass(frozen=True)
class ChannelSummary:
    count: int
    minimum: float
    maximum: float
    mean: float
    rms: float
    peak_to_peak: float
    non_zero: int


def channel_summary(signal: ArrayLike) -> ChannelSummary:
    """
    Summarise a channel over its finite samples.

    Empty (or all non-finite) input yields a zero summary instead of raising,
    since channels without data are legal in a recording.
    """
    arr = np.asarray(signal, dtype=float).reshape(-1)
    finite = arr[np.isfinite(arr)]
    if finite.size == 0:
        return ChannelSummary(0, 0.0, 0.0, 0.0, 0.0, 0.0, 0)
    return ChannelSummary(
        count=int(finite.size),
        minimum=float(np.min(finite)),
        maximum=float(np.max(finite)),
        mean=float(np.mean(finite)),
        rms=rms(finite),
        peak_to_peak=peak_to_peak(finite),
        non_zero=int(np.count_nonzero(np.abs(finite) > ZERO_EPSILON_UV)),
    )
