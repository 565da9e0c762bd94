"""edfscope: EDF biosignal review in real time.

Parse EDF recordings, replay them through display filters at a chosen
timebase, and compute compressed or density spectral arrays.
"""

from .analysis.filters import FilterPipeline
from .analysis.spectral import SpectralAnalyzer, compute_spectrum
from .config import EdfScopeConfig, FilterConfig, PlaybackConfig, SpectralConfig, load_config
from .core.playback import PlaybackEngine, PlaybackStatus
from .dataio import EdfRecording, parse_edf, read_edf

__version__ = "0.1.0"

__all__ = [
    "EdfRecording",
    "EdfScopeConfig",
    "FilterConfig",
    "FilterPipeline",
    "PlaybackConfig",
    "PlaybackEngine",
    "PlaybackStatus",
    "SpectralAnalyzer",
    "SpectralConfig",
    "compute_spectrum",
    "load_config",
    "parse_edf",
    "read_edf",
]
