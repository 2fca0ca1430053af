"""Configuration loading for archlens (.archlens.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".archlens.yml"

DEFAULT_DETAIL_TYPE_LIMIT = 60
DEFAULT_DETAIL_INTERFACE_LIMIT = 40


@dataclass
class AnalyzerConfig:
    """Analyzer enablement."""

    enabled: List[str] = field(default_factory=list)


@dataclass
class RenderConfig:
    """Caps applied by the detailed context renderer."""

    detail_type_limit: int = DEFAULT_DETAIL_TYPE_LIMIT
    detail_interface_limit: int = DEFAULT_DETAIL_INTERFACE_LIMIT


@dataclass
class ArchlensConfig:
    """Represents the settings defined in .archlens.yml."""

    root: Path
    analyzers: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    exclude_paths: List[str] = field(default_factory=list)
    max_workers: Optional[int] = None
    render: RenderConfig = field(default_factory=RenderConfig)


def load_config(config_path: Path) -> ArchlensConfig:
    """Load configuration from disk, returning defaults when no file exists."""
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ArchlensConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    analyzer_data = _as_dict(data.get("analyzers"))
    analyzers = AnalyzerConfig()
    if analyzer_data:
        analyzers.enabled = _as_str_list(analyzer_data.get("enabled"))

    render_data = _as_dict(data.get("render"))
    render = RenderConfig()
    if render_data:
        render.detail_type_limit = _as_positive_int(
            render_data.get("detail_type_limit"), DEFAULT_DETAIL_TYPE_LIMIT
        )
        render.detail_interface_limit = _as_positive_int(
            render_data.get("detail_interface_limit"), DEFAULT_DETAIL_INTERFACE_LIMIT
        )

    max_workers = _as_int(data.get("max_workers"))
    if max_workers is not None and max_workers < 1:
        raise ConfigError("max_workers must be a positive integer")

    return ArchlensConfig(
        root=root,
        analyzers=analyzers,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        max_workers=max_workers,
        render=render,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_positive_int(value: Any, default: int) -> int:
    parsed = _as_int(value)
    if parsed is None or parsed < 1:
        return default
    return parsed


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "AnalyzerConfig",
    "ArchlensConfig",
    "CONFIG_FILENAME",
    "RenderConfig",
    "load_config",
]
