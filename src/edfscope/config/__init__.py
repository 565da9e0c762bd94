"""Configuration objects and helpers for edfscope.

This package knows how to load YAML descriptors that capture the playback,
filter, and spectral settings of a review session:
- :mod:`playback` holds pacing and buffer limits for the playback engine
- :mod:`filters` holds the high-pass / low-pass / notch cutoffs
- :mod:`spectral` selects the compressed (log) or dense (linear) spectrum
The aggregate :class:`EdfScopeConfig` (see :mod:`runtime`) is what the CLI
and the engine are configured from.
"""

from .filters import FilterConfig
from .playback import PlaybackConfig, timebase_speed
from .runtime import EdfScopeConfig, config_from_mapping, load_config
from .spectral import LinearBinned, LogBinned, SpectralConfig

__all__ = [
    "EdfScopeConfig",
    "FilterConfig",
    "LinearBinned",
    "LogBinned",
    "PlaybackConfig",
    "SpectralConfig",
    "config_from_mapping",
    "load_config",
    "timebase_speed",
]
