"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from photo_organizer.core.config import MODES, OrganizerConfig
from photo_organizer.core.errors import ConfigurationError
from photo_organizer.core.rules.canonical import POLICIES

_FLOAT_KEYS = (
    "max_gap_minutes",
    "low_confidence_gap_minutes",
    "geo_bucket_degrees",
    "camera_utc_offset_hours",
    "output_utc_offset_hours",
)
_STR_KEYS = ("mode", "duplicate_policy", "name_format", "undated_dir")
_BOOL_KEYS = ("include_hidden", "follow_symlinks")


class JsonSettings:
    """Lightweight JSON settings reader with dotted-key access."""

    def __init__(self, settings_path: str | Path) -> None:
        self._path = Path(settings_path)
        if not self._path.exists():
            raise FileNotFoundError(f"settings file not found: {self._path}")
        with self._path.open("r", encoding="utf-8") as f:
            self._data = json.load(f)

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node


def load_config(settings: JsonSettings | None = None, **overrides: Any) -> OrganizerConfig:
    """Build an `OrganizerConfig` from defaults, then `settings["organizer"]`, then `overrides`.

    Overrides whose value is None are ignored so CLI options that were not
    given keep the settings-file value.
    """
    config = OrganizerConfig()
    values: dict[str, Any] = {}
    if settings is not None:
        section = settings.get("organizer", {}) or {}
        if not isinstance(section, dict):
            raise ConfigurationError("settings: 'organizer' must be an object")
        values.update(section)
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        for key, value in values.items():
            if key in _FLOAT_KEYS:
                setattr(config, key, float(value))
            elif key in _STR_KEYS:
                setattr(config, key, str(value))
            elif key in _BOOL_KEYS:
                setattr(config, key, bool(value))
            elif key in ("suffix_length", "workers"):
                setattr(config, key, int(value))
            elif key == "destination_root":
                config.destination_root = Path(value)
            elif key == "source_roots":
                config.source_roots = [Path(p) for p in value]
            elif key == "extensions":
                config.extensions = tuple(
                    (e if e.startswith(".") else f".{e}").lower() for e in value
                )
            else:
                raise ConfigurationError(f"unknown setting: {key}")
    except (TypeError, ValueError) as ex:
        raise ConfigurationError(f"invalid setting value: {ex}") from ex
    return config


def validate_config(config: OrganizerConfig, require_destination: bool = True) -> None:
    """Reject unusable configurations before any work starts.

    Raises:
        ConfigurationError: Describing the first problem found.
    """
    if config.mode not in MODES:
        raise ConfigurationError(f"mode must be one of {', '.join(MODES)}, got {config.mode!r}")
    if config.duplicate_policy not in POLICIES:
        raise ConfigurationError(
            f"duplicate policy must be one of {', '.join(POLICIES)}, "
            f"got {config.duplicate_policy!r}"
        )
    if config.max_gap_minutes <= 0:
        raise ConfigurationError("max_gap_minutes must be positive")
    if config.geo_bucket_degrees < 0:
        raise ConfigurationError("geo_bucket_degrees must not be negative")
    if not 4 <= config.suffix_length <= 64:
        raise ConfigurationError("suffix_length must be between 4 and 64")
    if not config.name_format or "/" in config.name_format or "\\" in config.name_format:
        raise ConfigurationError(f"invalid name_format: {config.name_format!r}")
    if not config.undated_dir or "/" in config.undated_dir or "\\" in config.undated_dir:
        raise ConfigurationError(f"invalid undated_dir: {config.undated_dir!r}")
    if config.workers is not None and config.workers < 1:
        raise ConfigurationError("workers must be at least 1")
    if not config.extensions:
        raise ConfigurationError("no file extensions configured")

    if not require_destination:
        return
    if config.destination_root is None:
        raise ConfigurationError("destination root is required")
    dest = Path(config.destination_root)
    if dest.exists():
        if not dest.is_dir():
            raise ConfigurationError(f"destination root is not a directory: {dest}")
        if not os.access(dest, os.W_OK | os.X_OK):
            raise ConfigurationError(f"destination root is not writable: {dest}")
        return
    anchor = dest.parent
    while not anchor.exists() and anchor.parent != anchor:
        anchor = anchor.parent
    if not anchor.is_dir() or not os.access(anchor, os.W_OK | os.X_OK):
        raise ConfigurationError(f"destination root cannot be created under {anchor}")
