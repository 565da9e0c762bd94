"""Streaming IIR filter helpers.

The display filter is a fixed cascade: first-order high-pass, first-order
low-pass, then a second-order notch. Each stage keeps its own history so a
channel can be filtered tick by tick without edge effects between blocks.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Tuple

import numpy as np
from numpy.typing import ArrayLike
from scipy import signal

from ..config.filters import FilterConfig

logger = logging.getLogger(__name__)

NOTCH_QUALITY = 30.0

Coefficients = Tuple[np.ndarray, np.ndarray]


def _bypassed(cutoff_hz: float, sample_rate_hz: float) -> bool:
    return cutoff_hz <= 0 or sample_rate_hz <= 0 or cutoff_hz >= 0.5 * sample_rate_hz


def high_pass_coefficients(cutoff_hz: float, sample_rate_hz: float) -> Optional[Coefficients]:
    """
    RC high-pass: ``y[n] = alpha * (y[n-1] + x[n] - x[n-1])``.

    Returns ``None`` when the stage should pass samples through unchanged.
    """
    if _bypassed(cutoff_hz, sample_rate_hz):
        return None
    rc = 1.0 / (2.0 * math.pi * cutoff_hz)
    dt = 1.0 / sample_rate_hz
    alpha = rc / (rc + dt)
    return np.array([alpha, -alpha]), np.array([1.0, -alpha])


def low_pass_coefficients(cutoff_hz: float, sample_rate_hz: float) -> Optional[Coefficients]:
    """RC low-pass: ``y[n] = alpha * x[n] + (1 - alpha) * y[n-1]``."""
    if _bypassed(cutoff_hz, sample_rate_hz):
        return None
    rc = 1.0 / (2.0 * math.pi * cutoff_hz)
    dt = 1.0 / sample_rate_hz
    alpha = dt / (rc + dt)
    return np.array([alpha]), np.array([1.0, -(1.0 - alpha)])


def notch_coefficients(
    notch_hz: float,
    sample_rate_hz: float,
    quality: float = NOTCH_QUALITY,
) -> Optional[Coefficients]:
    """
    Notch biquad normalised by ``a0 = 1 + alpha``.

    ``w0 = 2*pi*f0/fs``, ``bw = w0/Q`` and
    ``alpha = sin(w0) * sinh(ln(2)/2 * bw * w0/sin(w0))``.
    """
    if _bypassed(notch_hz, sample_rate_hz):
        return None
    w0 = 2.0 * math.pi * notch_hz / sample_rate_hz
    bw = w0 / quality
    cos_w0 = math.cos(w0)
    sin_w0 = math.sin(w0)
    alpha = sin_w0 * math.sinh(math.log(2.0) / 2.0 * bw * w0 / sin_w0)
    a0 = 1.0 + alpha
    b = np.array([1.0, -2.0 * cos_w0, 1.0]) / a0
    a = np.array([a0, -2.0 * cos_w0, 1.0 - alpha]) / a0
    return b, a


class FilterStage:
    """One IIR section plus its history (transposed direct-form II state)."""

    __slots__ = ("name", "b", "a", "_zi")

    def __init__(self, name: str, b: np.ndarray, a: np.ndarray) -> None:
        self.name = name
        self.b = np.asarray(b, dtype=np.float64)
        self.a = np.asarray(a, dtype=np.float64)
        self._zi = np.zeros(max(self.a.size, self.b.size) - 1, dtype=np.float64)

    def process(self, samples: np.ndarray) -> np.ndarray:
        out, self._zi = signal.lfilter(self.b, self.a, samples, zi=self._zi)
        return out

    def reset(self) -> None:
        self._zi = np.zeros_like(self._zi)


def build_stages(config: FilterConfig, sample_rate_hz: float) -> List[FilterStage]:
    """Return the active stages in high-pass -> low-pass -> notch order."""
    stages: List[FilterStage] = []
    for name, coeffs in (
        ("high_pass", high_pass_coefficients(config.high_pass_hz, sample_rate_hz)),
        ("low_pass", low_pass_coefficients(config.low_pass_hz, sample_rate_hz)),
        ("notch", notch_coefficients(config.notch_hz, sample_rate_hz)),
    ):
        if coeffs is not None:
            stages.append(FilterStage(name, *coeffs))
    return stages


class FilterPipeline:
    """
    Per-channel cascaded filter with state kept across calls.

    The stages are rebuilt, with zeroed history, whenever the configuration
    or sample rate differs (by value) from the previous call, so a cutoff
    change never filters new samples with history from the old cutoff.
    """

    def __init__(self) -> None:
        self._active: Optional[Tuple[FilterConfig, float]] = None
        self._stages: List[FilterStage] = []

    @property
    def active_stages(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self._stages)

    @property
    def config(self) -> Optional[FilterConfig]:
        return self._active[0] if self._active is not None else None

    def _configure(self, config: FilterConfig, sample_rate_hz: float) -> None:
        key = (config, float(sample_rate_hz))
        if self._active == key:
            return
        if self._active is not None:
            logger.debug("Filter settings changed to %s; resetting filter state", config)
        self._stages = build_stages(config, sample_rate_hz)
        self._active = key

    def process(
        self,
        samples: ArrayLike,
        config: FilterConfig,
        sample_rate_hz: float,
    ) -> np.ndarray:
        """Filter a block of consecutive samples and return a new array."""
        self._configure(config, sample_rate_hz)
        out = np.array(samples, dtype=np.float64, copy=True).reshape(-1)
        if out.size == 0:
            return out
        for stage in self._stages:
            out = stage.process(out)
        return out

    def apply(self, sample: float, config: FilterConfig, sample_rate_hz: float) -> float:
        """Filter a single sample."""
        return float(self.process([sample], config, sample_rate_hz)[0])

    def reset(self) -> None:
        """Zero the history of every stage, keeping the configuration."""
        for stage in self._stages:
            stage.reset()
