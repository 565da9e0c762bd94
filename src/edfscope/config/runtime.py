"""Runtime configuration helpers for the playback/analysis session."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .filters import FilterConfig
from .playback import PlaybackConfig
from .spectral import SpectralConfig


@dataclass(slots=True)
class EdfScopeConfig:
    """
    Everything needed to replay and analyse a recording.

    The defaults assume an EEG review station: real-time playback at
    30 mm/sec, 1-30 Hz band with a 60 Hz notch, and a 2 s / 1 s CSA.
    """

    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    spectral: SpectralConfig = field(default_factory=SpectralConfig)

    def to_mapping(self) -> dict:
        data: dict[str, Any] = {}
        data.update(self.playback.to_mapping())
        data.update(self.filters.to_mapping())
        data.update(self.spectral.to_mapping())
        return data


def _block(data: Mapping[str, Any], key: str) -> Mapping[str, Any] | None:
    value = data.get(key)
    return value if isinstance(value, Mapping) else None


def config_from_mapping(data: Mapping[str, Any] | None) -> EdfScopeConfig:
    """Build :class:`EdfScopeConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return EdfScopeConfig()
    return EdfScopeConfig(
        playback=PlaybackConfig.from_mapping(_block(data, "playback")),
        filters=FilterConfig.from_mapping(_block(data, "filters")),
        spectral=SpectralConfig.from_mapping(_block(data, "spectral")),
    )


def load_config(path: str | Path | None) -> EdfScopeConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to default :class:`EdfScopeConfig`.
    """
    if path is None:
        return EdfScopeConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return EdfScopeConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


def save_config(path: str | Path, config: EdfScopeConfig) -> None:
    """Write ``config`` as YAML, creating parent directories as needed."""
    cfg_path = Path(path)
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    with cfg_path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(config.to_mapping(), fh, default_flow_style=False, sort_keys=False)


__all__ = ["EdfScopeConfig", "config_from_mapping", "load_config", "save_config"]
