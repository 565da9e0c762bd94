"""Signal analysis utilities (filtering, spectra, features and pacing).

Modules here operate on NumPy arrays of physical samples and stay free of
I/O so they can be reused from the playback engine, the command line, or
tests alike.
"""

from .features import ChannelSummary, channel_summary, peak_to_peak, rms
from .filters import FilterPipeline, FilterStage, build_stages
from .pacing import PacingSnapshot, SpeedMonitor
from .spectral import (
    SpectralAnalyzer,
    SpectralResult,
    SpectralSlice,
    compute_spectrum,
    spectral_edge_frequency,
)

__all__ = [
    "ChannelSummary",
    "channel_summary",
    "peak_to_peak",
    "rms",
    "FilterPipeline",
    "FilterStage",
    "build_stages",
    "PacingSnapshot",
    "SpeedMonitor",
    "SpectralAnalyzer",
    "SpectralResult",
    "SpectralSlice",
    "compute_spectrum",
    "spectral_edge_frequency",
]
