"""Process, runtime and log inspection commands."""

from __future__ import annotations

import shutil

import typer

from texcompose.core.context import PROCESS_REGISTRY_NAMESPACE, create_context
from texcompose.core.diagnostics import BuildLog
from texcompose.core.process import kill_registered_processes
from texcompose.core.user_dir import get_user_dir

from ..presenter import present_log_messages, present_runtime_check
from ..session import cli_errors, load_cli_config, log_cache_path, restore_log
from ..state import get_cli_state


log_app = typer.Typer(help="Inspect the messages of the last build.", no_args_is_help=True)


def kill() -> None:
    """Terminate builds started by other texcompose invocations."""
    state = get_cli_state()
    registry = get_user_dir().cache_dir(PROCESS_REGISTRY_NAMESPACE, create=False)
    killed = kill_registered_processes(registry)
    if killed:
        state.console.print(f"Killed {len(killed)} process(es): {', '.join(map(str, killed))}")
    else:
        state.console.print("No running builds.")


def check_runtime() -> None:
    """Check that latexmk and a viewer are available."""
    state = get_cli_state()
    with cli_errors():
        config = load_cli_config(state)
    context = create_context(config)
    context.builders.check_runtime_dependencies()
    opener_name = context.opener.check_runtime_dependencies()

    latexmk = shutil.which("latexmk")
    rows = [
        ("latexmk", latexmk or "-", latexmk is not None),
        ("opener", opener_name or "-", opener_name is not None),
    ]
    if config.use_dicy:
        tectonic = shutil.which("tectonic")
        rows.append(("tectonic", tectonic or "-", tectonic is not None))
    present_runtime_check(state, rows)

    messages = context.log.get_messages(use_filters=False)
    if messages:
        present_log_messages(state, messages, title="Runtime messages")
    if context.log.has_errors():
        raise typer.Exit(code=1)


@log_app.command("show")
def show_log(
    all_messages: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Show every message regardless of the configured logging level.",
    ),
) -> None:
    """Print the messages recorded by the last build."""
    state = get_cli_state()
    with cli_errors():
        config = load_cli_config(state)
        log = BuildLog(logging_level=config.logging_level)
        restore_log(log)
    present_log_messages(state, log.get_messages(use_filters=not all_messages))


@log_app.command("clear")
def clear_log() -> None:
    """Forget the messages recorded by the last build."""
    log_cache_path().unlink(missing_ok=True)
    get_cli_state().console.print("Build log cleared.")


__all__ = ["check_runtime", "clear_log", "kill", "log_app", "show_log"]
