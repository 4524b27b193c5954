"""Layered resolution of build options.

Three layers are merged field by field, each one overriding the previous:

1. the global :class:`~texcompose.core.config.ComposerConfig` defaults;
2. magic comments (``% !TEX key = value``) read from the root document;
3. the ``<stem>.yaml`` settings file next to the root document.

Raw property bags are mapped onto :class:`BuildOptions` through
:data:`OPTION_ALIASES`; the first alias holding a valid non-empty value wins.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields
import logging
from pathlib import Path
from typing import Any

from .config import ComposerConfig
from .diagnostics import BuildLog
from .exceptions import ConfigurationError
from .magic import read_magic_comments, resolve_root
from .settings import load_settings
from .state import BuildState


logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("pdf", "dvi", "ps")

OPTION_ALIASES: dict[str, tuple[str, ...]] = {
    "engine": ("customEngine", "engine", "program", "custom_engine"),
    "job_names": ("jobNames", "jobnames", "jobname", "job_names"),
    "output_format": ("outputFormat", "format", "output_format"),
    "output_directory": ("outputDirectory", "output_directory"),
    "producer": ("producer",),
    "clean_patterns": ("cleanPatterns", "clean_patterns"),
    "enable_shell_escape": ("enableShellEscape", "enable_shell_escape"),
    "enable_synctex": ("enableSynctex", "enable_synctex"),
    "enable_extended_build_mode": ("enableExtendedBuildMode", "enable_extended_build_mode"),
    "move_result_to_source_directory": (
        "moveResultToSourceDirectory",
        "move_result_to_source_directory",
    ),
}

_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}

_LIST_FIELDS = {"job_names", "clean_patterns"}
_BOOL_FIELDS = {
    "enable_shell_escape",
    "enable_synctex",
    "enable_extended_build_mode",
    "move_result_to_source_directory",
}


def coerce_bool(value: Any) -> bool | None:
    """Interpret ``value`` as a boolean, returning ``None`` when it is not one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    return None


def coerce_list(value: Any) -> list[str] | None:
    """Split comma separated strings and wrap scalars into a list."""
    if value is None:
        return None
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    result = [str(item).strip() for item in items if item is not None]
    result = [item for item in result if item]
    return result or None


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return not value
    return False


@dataclass(slots=True)
class BuildOptions:
    """One configuration layer. ``None`` means the layer leaves a field unset."""

    engine: str | None = None
    job_names: list[str] | None = None
    output_format: str | None = None
    output_directory: str | None = None
    producer: str | None = None
    clean_patterns: list[str] | None = None
    enable_shell_escape: bool | None = None
    enable_synctex: bool | None = None
    enable_extended_build_mode: bool | None = None
    move_result_to_source_directory: bool | None = None

    @classmethod
    def from_config(cls, config: ComposerConfig) -> BuildOptions:
        return cls(
            engine=config.engine,
            job_names=None,
            output_format=config.output_format,
            output_directory=config.output_directory,
            producer=config.producer,
            clean_patterns=list(config.clean_patterns),
            enable_shell_escape=config.enable_shell_escape,
            enable_synctex=config.enable_synctex,
            enable_extended_build_mode=config.enable_extended_build_mode,
            move_result_to_source_directory=config.move_result_to_source_directory,
        )

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any] | None) -> BuildOptions:
        """Convert a raw property bag into options using the alias table."""
        options = cls()
        if not properties:
            return options
        for name, aliases in OPTION_ALIASES.items():
            for alias in aliases:
                raw = properties.get(alias)
                if _is_empty(raw):
                    continue
                value = _coerce_field(name, raw)
                if value is None:
                    logger.warning("Ignoring invalid value %r for '%s'.", raw, alias)
                    continue
                setattr(options, name, value)
                break
        return options

    def overlay(self, other: BuildOptions) -> BuildOptions:
        """Return a copy of these options with every field set in ``other`` applied."""
        merged = BuildOptions(**{item.name: getattr(self, item.name) for item in fields(self)})
        for item in fields(other):
            value = getattr(other, item.name)
            if value is not None:
                setattr(merged, item.name, value)
        return merged

    def apply_to(self, state: BuildState) -> None:
        """Write every set field onto ``state``."""
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            if item.name in _LIST_FIELDS:
                value = list(value)
            setattr(state, item.name, value)


def _coerce_field(name: str, raw: Any) -> Any:
    if name in _BOOL_FIELDS:
        return coerce_bool(raw)
    if name in _LIST_FIELDS:
        return coerce_list(raw)
    text = str(raw).strip()
    if name == "output_format":
        text = text.lower()
        if text not in OUTPUT_FORMATS:
            return None
    return text or None


class ConfigResolver:
    """Build a :class:`BuildState` from configuration, magic comments and settings."""

    def __init__(self, config: ComposerConfig, *, log: BuildLog | None = None) -> None:
        self.config = config
        self.log = log

    def resolve(self, file_path: str | Path, cached: BuildState | None = None) -> BuildState:
        """Return a fresh state for the root of ``file_path``.

        Subfile knowledge of ``cached`` is carried over when it describes the
        same root.
        """
        requested = Path(file_path).resolve()
        root, visited = resolve_root(requested)
        state = BuildState(root)
        if cached is not None and cached.file_path == root:
            for subfile in cached.subfiles:
                state.add_subfile(subfile)
        for path in visited:
            state.add_subfile(path)
        if requested != root:
            state.add_subfile(requested)

        self.initialize_from_config(state)
        self.initialize_from_magic(state)
        self.initialize_from_settings_file(state)
        return state

    def config_options(self) -> BuildOptions:
        return BuildOptions.from_config(self.config)

    def magic_options(self, file_path: str | Path) -> BuildOptions:
        return BuildOptions.from_properties(read_magic_comments(file_path))

    def settings_options(self, file_path: str | Path) -> BuildOptions:
        try:
            properties = load_settings(file_path)
        except ConfigurationError as exc:
            self._warn(str(exc))
            return BuildOptions()
        return BuildOptions.from_properties(properties)

    def initialize_from_config(self, state: BuildState) -> None:
        self.config_options().apply_to(state)

    def initialize_from_magic(self, state: BuildState) -> None:
        self.magic_options(state.file_path).apply_to(state)

    def initialize_from_properties(
        self, state: BuildState, properties: Mapping[str, Any] | None
    ) -> None:
        BuildOptions.from_properties(properties).apply_to(state)

    def initialize_from_settings_file(self, state: BuildState) -> None:
        self.settings_options(state.file_path).apply_to(state)

    def _warn(self, message: str) -> None:
        if self.log is not None:
            self.log.warning(message)
        else:
            logger.warning(message)


__all__ = [
    "OPTION_ALIASES",
    "OUTPUT_FORMATS",
    "BuildOptions",
    "ConfigResolver",
    "coerce_bool",
    "coerce_list",
]
