"""Loader for the YAML settings file stored next to a root document."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


SETTINGS_SUFFIX = ".yaml"


def settings_path_for(file_path: str | Path) -> Path:
    """Return ``<stem>.yaml`` beside ``file_path``."""
    return Path(file_path).with_suffix(SETTINGS_SUFFIX)


def load_settings(file_path: str | Path) -> dict[str, Any] | None:
    """Load the settings file belonging to ``file_path``.

    Returns ``None`` when no settings file exists and an empty mapping for an
    empty file. Raises :class:`ConfigurationError` when the file is not valid
    YAML or does not hold a mapping.
    """
    path = settings_path_for(file_path)
    if not path.is_file():
        return None

    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to parse settings file '{path}': {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ConfigurationError(f"Settings file '{path}' must contain a mapping at the top level.")
    return {str(key): value for key, value in payload.items()}


__all__ = ["SETTINGS_SUFFIX", "load_settings", "settings_path_for"]
