"""Helpers wiring CLI options to a composer and persisting its log between runs."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
import json
from pathlib import Path
from typing import Any

import typer

from texcompose.core.commands import CommandDispatcher
from texcompose.core.composer import Composer
from texcompose.core.config import ComposerConfig, load_config
from texcompose.core.context import create_context
from texcompose.core.diagnostics import BuildLog
from texcompose.core.exceptions import ComposerError, exception_messages
from texcompose.core.user_dir import get_user_dir
from texcompose.core.workspace import FileWorkspace

from .presenter import RichStatus
from .state import CLIState, debug_enabled, emit_error


LOG_CACHE_FILENAME = "log.json"


def log_cache_path() -> Path:
    return get_user_dir().cache_path(LOG_CACHE_FILENAME)


def load_cli_config(
    state: CLIState,
    overrides: Mapping[str, Any] | None = None,
) -> ComposerConfig:
    """Load the configuration selected on the command line and apply overrides."""
    config = load_config(state.config_path)
    updates = {key: value for key, value in (overrides or {}).items() if value is not None}
    if updates:
        config = ComposerConfig.model_validate({**config.model_dump(), **updates})
    return config


def create_dispatcher(
    state: CLIState,
    file_path: Path | None,
    *,
    line_number: int = 1,
    overrides: Mapping[str, Any] | None = None,
) -> CommandDispatcher:
    """Build a composer for ``file_path`` and wrap it in a command dispatcher."""
    config = load_cli_config(state, overrides)
    context = create_context(
        config,
        workspace=FileWorkspace.for_path(file_path, line_number),
        status=RichStatus(state),
        track_processes=True,
    )
    return CommandDispatcher(Composer(context))


def persist_log(log: BuildLog, path: Path | None = None) -> Path:
    """Write the log messages to the user cache so ``texcompose log`` can show them."""
    target = path or log_cache_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(log.serialize(), indent=2), encoding="utf-8")
    return target


def restore_log(log: BuildLog, path: Path | None = None) -> bool:
    """Load persisted messages into ``log``; return ``False`` when none were stored."""
    target = path or log_cache_path()
    if not target.exists():
        return False
    try:
        payload = json.loads(target.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ComposerError(f"Unable to read persisted log '{target}': {exc}") from exc
    if not isinstance(payload, dict):
        return False
    log.deserialize(payload)
    return True


@contextmanager
def cli_errors() -> Iterator[None]:
    """Render composer exceptions as CLI errors and exit with status 1."""
    try:
        yield
    except ComposerError as exc:
        if debug_enabled():
            raise
        messages = exception_messages(exc)
        emit_error(messages[0] if messages else type(exc).__name__, exception=exc)
        raise typer.Exit(code=1) from exc


__all__ = [
    "LOG_CACHE_FILENAME",
    "cli_errors",
    "create_dispatcher",
    "load_cli_config",
    "log_cache_path",
    "persist_log",
    "restore_log",
]
