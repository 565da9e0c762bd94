"""Spectral analysis configuration: window/hop and frequency-axis strategy."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union


@dataclass(frozen=True, slots=True)
class LogBinned:
    """Compressed spectral array: ``num_bins`` geometric bins from ``min_freq_hz``."""

    num_bins: int = 64
    min_freq_hz: float = 0.1

    def __post_init__(self) -> None:
        if int(self.num_bins) < 2:
            raise ValueError(f"num_bins must be >= 2, got {self.num_bins}")
        if self.min_freq_hz <= 0:
            raise ValueError(f"min_freq_hz must be > 0, got {self.min_freq_hz}")


@dataclass(frozen=True, slots=True)
class LinearBinned:
    """Density spectral array: linear bins ``resolution_hz`` wide."""

    resolution_hz: float = 0.5

    def __post_init__(self) -> None:
        if self.resolution_hz <= 0:
            raise ValueError(f"resolution_hz must be > 0, got {self.resolution_hz}")


Binning = Union[LogBinned, LinearBinned]


@dataclass(frozen=True, slots=True)
class SpectralConfig:
    """Sliding-window settings; ``binning`` selects the compressed or dense variant."""

    window_seconds: float = 2.0
    step_seconds: float = 1.0
    max_freq_hz: float = 30.0
    binning: Binning = field(default_factory=LogBinned)

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError(f"window_seconds must be > 0, got {self.window_seconds}")
        if self.step_seconds <= 0:
            raise ValueError(f"step_seconds must be > 0, got {self.step_seconds}")
        if self.max_freq_hz <= 0:
            raise ValueError(f"max_freq_hz must be > 0, got {self.max_freq_hz}")

    @property
    def variant(self) -> str:
        return "dense" if isinstance(self.binning, LinearBinned) else "compressed"

    @classmethod
    def compressed(
        cls,
        *,
        window_seconds: float = 2.0,
        step_seconds: float = 1.0,
        max_freq_hz: float = 30.0,
        num_bins: int = 64,
    ) -> SpectralConfig:
        return cls(window_seconds, step_seconds, max_freq_hz, LogBinned(num_bins=num_bins))

    @classmethod
    def dense(
        cls,
        *,
        window_seconds: float = 2.0,
        step_seconds: float = 1.0,
        max_freq_hz: float = 30.0,
        resolution_hz: float = 0.5,
    ) -> SpectralConfig:
        return cls(window_seconds, step_seconds, max_freq_hz, LinearBinned(resolution_hz=resolution_hz))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> SpectralConfig:
        """
        Build from a ``spectral`` block. The variant is picked by which
        frequency key is present::

            spectral:
              window_seconds: 2
              step_seconds: 1
              max_freq_hz: 30
              freq_resolution_hz: 0.5   # dense; use num_freq_bins for compressed
        """
        payload: Mapping[str, Any] = mapping or {}
        window = float(payload.get("window_seconds", 2.0))
        step = float(payload.get("step_seconds", 1.0))
        max_freq = float(payload.get("max_freq_hz", 30.0))
        variant = str(payload.get("variant", "")).strip().lower()

        if "freq_resolution_hz" in payload or variant in {"dense", "dsa", "linear"}:
            binning: Binning = LinearBinned(float(payload.get("freq_resolution_hz", 0.5)))
        else:
            binning = LogBinned(
                int(payload.get("num_freq_bins", 64)),
                float(payload.get("min_freq_hz", 0.1)),
            )
        return cls(window, step, max_freq, binning)

    def to_mapping(self) -> dict:
        block: dict[str, Any] = {
            "window_seconds": float(self.window_seconds),
            "step_seconds": float(self.step_seconds),
            "max_freq_hz": float(self.max_freq_hz),
        }
        if isinstance(self.binning, LinearBinned):
            block["freq_resolution_hz"] = float(self.binning.resolution_hz)
        else:
            block["num_freq_bins"] = int(self.binning.num_bins)
            block["min_freq_hz"] = float(self.binning.min_freq_hz)
        return {"spectral": block}
