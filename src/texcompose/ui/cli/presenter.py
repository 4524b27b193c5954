"""Rich-aware presenters for build logs, status updates and runtime checks."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from rich import box
from rich.table import Table
from rich.text import Text

from texcompose.core.diagnostics import LogMessage, MessageSeverity

from .state import CLIState


_SEVERITY_STYLES = {
    MessageSeverity.ERROR: "bold red",
    MessageSeverity.WARNING: "yellow",
    MessageSeverity.INFO: "cyan",
}

_STATUS_STYLES = {
    "busy": ("…", "cyan"),
    "success": ("✓", "bold green"),
    "error": ("✗", "bold red"),
    "killed": ("■", "yellow"),
}


def _format_path(path: Path) -> str:
    """Format a path relative to the current working directory when possible."""
    resolved = Path(path).resolve()
    try:
        return str(resolved.relative_to(Path.cwd()))
    except ValueError:
        return str(resolved)


def _format_location(message: LogMessage) -> str:
    if message.file_path is None:
        return "-"
    location = _format_path(message.file_path)
    if message.line_range is not None:
        start, end = message.line_range
        location = f"{location}:{start}" if start == end else f"{location}:{start}-{end}"
    return location


def _build_table(*, title: str | None, columns: Sequence[str]) -> Table:
    """Create a Rich table with the house style."""
    table = Table(
        title=title or None,
        box=box.SQUARE,
        show_edge=True,
        header_style="bold cyan",
    )
    for column in columns:
        table.add_column(column)
    return table


def present_log_messages(
    state: CLIState,
    messages: Sequence[LogMessage],
    *,
    title: str | None = "Build log",
) -> None:
    """Print build log messages as a table, or a short notice when empty."""
    console = state.console
    if not messages:
        console.print(Text("No messages.", style="dim"))
        return

    table = _build_table(title=title, columns=("Severity", "Location", "Message"))
    for message in messages:
        style = _SEVERITY_STYLES[message.severity]
        table.add_row(
            Text(message.severity.value, style=style),
            Text(_format_location(message), style="bright_cyan"),
            Text(message.text),
        )
    console.print(table)


def present_runtime_check(state: CLIState, rows: Sequence[tuple[str, str, bool]]) -> None:
    """Print one row per runtime component with its resolved value."""
    table = _build_table(title="Runtime dependencies", columns=("Component", "Value", "Status"))
    for component, value, ok in rows:
        status = Text("ok", style="bold green") if ok else Text("missing", style="bold red")
        table.add_row(Text(component, style="magenta"), Text(value), status)
    state.console.print(table)


class RichStatus:
    """Status sink printing coarse build status updates to the console."""

    def __init__(self, state: CLIState) -> None:
        self._state = state
        self.current: tuple[str, str] | None = None

    def show(self, text: str, kind: str = "busy") -> None:
        self.current = (text, kind)
        if kind == "busy" and self._state.verbosity < 1:
            return
        symbol, style = _STATUS_STYLES.get(kind, ("-", "white"))
        self._state.err_console.print(Text.assemble((f"{symbol} ", style), (text, style)))

    def clear(self) -> None:
        self.current = None


__all__ = ["RichStatus", "present_log_messages", "present_runtime_check"]
