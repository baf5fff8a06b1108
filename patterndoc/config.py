"""Configuration loading for patterndoc (.patterndoc.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".patterndoc.yml"

DEFAULT_RELATED_HEADINGS = ("related patterns", "related", "see also")
DEFAULT_REFERENCE_HEADINGS = (
    "references",
    "sources",
    "further reading",
    "resources",
    "bibliography",
)
DEFAULT_CYCLE_BOUND = 16


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ValidationConfig:
    """Validator tuning from .patterndoc.yml."""

    cycle_bound: int = DEFAULT_CYCLE_BOUND
    strict: bool = False
    required_sections: List[str] = field(default_factory=list)


@dataclass
class OutputConfig:
    """Reporting preferences."""

    quiet: bool = False


@dataclass
class PatterndocConfig:
    """Represents the settings defined in .patterndoc.yml."""

    root: Path
    extensions: List[str] = field(default_factory=lambda: [".md"])
    ignore: List[str] = field(default_factory=list)
    allow_hidden: List[str] = field(default_factory=list)
    related_headings: List[str] = field(default_factory=lambda: list(DEFAULT_RELATED_HEADINGS))
    reference_headings: List[str] = field(default_factory=lambda: list(DEFAULT_REFERENCE_HEADINGS))
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    jobs: int = 1


def load_config(config_path: Path) -> PatterndocConfig:
    """Load configuration from a source root or an explicit file path."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return PatterndocConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    config = PatterndocConfig(root=root)

    extensions = _as_str_list(data.get("extensions"))
    if extensions:
        config.extensions = extensions
    config.ignore = _as_str_list(data.get("ignore"))
    config.allow_hidden = _as_str_list(data.get("allow_hidden"))

    related = _as_str_list(data.get("related_headings"))
    if related:
        config.related_headings = [heading.lower() for heading in related]
    references = _as_str_list(data.get("reference_headings"))
    if references:
        config.reference_headings = [heading.lower() for heading in references]

    validation_data = _as_dict(data.get("validation"))
    cycle_bound = _as_int(validation_data.get("cycle_bound"))
    if cycle_bound is not None:
        if cycle_bound < 1:
            raise ConfigError("validation.cycle_bound must be a positive integer")
        config.validation.cycle_bound = cycle_bound
    config.validation.strict = _as_bool(validation_data.get("strict")) or False
    config.validation.required_sections = _as_str_list(
        validation_data.get("required_sections", data.get("required_sections"))
    )

    output_data = _as_dict(data.get("output"))
    config.output.quiet = _as_bool(output_data.get("quiet")) or False

    jobs = _as_int(data.get("jobs"))
    if jobs is not None:
        config.jobs = max(jobs, 1)

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = Path(config_path).expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
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


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "OutputConfig",
    "PatterndocConfig",
    "ValidationConfig",
    "load_config",
]
