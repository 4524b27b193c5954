"""Build, clean, sync and watch commands operating on one document."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import typer
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from texcompose.core.commands import CommandDispatcher
from texcompose.core.composer import BuildPhase
from texcompose.core.exceptions import ComposerError
from texcompose.core.state import is_tex_file
from texcompose.core.workspace import FileEditor, FileWorkspace

from .._options import (
    DicyOption,
    DocumentArgument,
    EngineOption,
    LineOption,
    OpenResultOption,
    OutputDirectoryOption,
    ShellEscapeOption,
)
from ..presenter import present_log_messages
from ..session import cli_errors, create_dispatcher, persist_log
from ..state import emit_error, get_cli_state


def _overrides(
    *,
    engine: str | None = None,
    output_directory: str | None = None,
    shell_escape: bool | None = None,
    dicy: bool | None = None,
    open_result: bool | None = None,
) -> dict[str, Any]:
    return {
        "engine": engine,
        "output_directory": output_directory,
        "enable_shell_escape": shell_escape,
        "use_dicy": dicy,
        "open_result_after_build": open_result,
    }


def _report(dispatcher: CommandDispatcher) -> None:
    """Persist the log for ``texcompose log`` and print what the build produced."""
    state = get_cli_state()
    log = dispatcher.composer.log
    persist_log(log)
    messages = log.get_messages()
    if messages:
        present_log_messages(state, messages)


def _run_build(
    document: Path,
    *,
    should_rebuild: bool,
    line: int,
    overrides: dict[str, Any],
) -> None:
    state = get_cli_state()
    with cli_errors():
        dispatcher = create_dispatcher(state, document, line_number=line, overrides=overrides)
        try:
            started = dispatcher.rebuild() if should_rebuild else dispatcher.build()
        finally:
            _report(dispatcher)
    if not started:
        emit_error(f"No builder accepts '{document}'.")
        raise typer.Exit(code=1)
    if dispatcher.composer.phase is BuildPhase.FAILED:
        raise typer.Exit(code=1)


def build(
    document: DocumentArgument,
    line: LineOption = 1,
    engine: EngineOption = None,
    output_directory: OutputDirectoryOption = None,
    shell_escape: ShellEscapeOption = None,
    dicy: DicyOption = None,
    open_result: OpenResultOption = None,
) -> None:
    """Build DOCUMENT, reusing intermediate files from previous runs."""
    _run_build(
        document,
        should_rebuild=False,
        line=line,
        overrides=_overrides(
            engine=engine,
            output_directory=output_directory,
            shell_escape=shell_escape,
            dicy=dicy,
            open_result=open_result,
        ),
    )


def rebuild(
    document: DocumentArgument,
    line: LineOption = 1,
    engine: EngineOption = None,
    output_directory: OutputDirectoryOption = None,
    shell_escape: ShellEscapeOption = None,
    dicy: DicyOption = None,
    open_result: OpenResultOption = None,
) -> None:
    """Build DOCUMENT from scratch, ignoring cached build data."""
    _run_build(
        document,
        should_rebuild=True,
        line=line,
        overrides=_overrides(
            engine=engine,
            output_directory=output_directory,
            shell_escape=shell_escape,
            dicy=dicy,
            open_result=open_result,
        ),
    )


def clean(
    document: DocumentArgument,
    output_directory: OutputDirectoryOption = None,
    dicy: DicyOption = None,
) -> None:
    """Remove the files generated while building DOCUMENT."""
    state = get_cli_state()
    with cli_errors():
        dispatcher = create_dispatcher(
            state,
            document,
            overrides=_overrides(output_directory=output_directory, dicy=dicy),
        )
        try:
            cleaned = dispatcher.clean()
        finally:
            _report(dispatcher)
    if not cleaned:
        emit_error(f"'{document}' is not a LaTeX document.")
        raise typer.Exit(code=1)


def sync(
    document: DocumentArgument,
    line: LineOption = 1,
    output_directory: OutputDirectoryOption = None,
) -> None:
    """Show LINE of DOCUMENT in the viewer."""
    state = get_cli_state()
    with cli_errors():
        dispatcher = create_dispatcher(
            state,
            document,
            line_number=line,
            overrides=_overrides(output_directory=output_directory),
        )
        dispatcher.sync()
    messages = dispatcher.composer.log.get_messages()
    if messages:
        present_log_messages(state, messages)


class SourceChangeHandler(FileSystemEventHandler):
    """Treat every change to a TeX source as a save of the active editor.

    Editors often emit several events for one save, so a change is only acted
    upon when the file's modification time differs from the last one handled.
    Errors raised by a build are reported and watching continues.
    """

    def __init__(self, dispatcher: CommandDispatcher) -> None:
        super().__init__()
        self.dispatcher = dispatcher
        self.builds = 0
        self._mtimes: dict[Path, float] = {}

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Atomic saves write a temporary file and rename it over the source.
        if event.is_directory:
            return
        self._handle(event.dest_path)

    def _handle(self, raw_path: str | bytes) -> None:
        path = Path(os.fsdecode(raw_path)).resolve()
        if not is_tex_file(path):
            return
        try:
            mtime = path.stat().st_mtime
        except OSError:
            return
        if self._mtimes.get(path) == mtime:
            return
        self._mtimes[path] = mtime

        workspace = self.dispatcher.composer.context.workspace
        if isinstance(workspace, FileWorkspace):
            workspace.editor = FileEditor(path)
        try:
            if self.dispatcher.on_did_save(path):
                self.builds += 1
        except ComposerError as exc:
            emit_error(str(exc), exception=exc)
        finally:
            _report(self.dispatcher)


def watch(
    document: DocumentArgument,
    engine: EngineOption = None,
    output_directory: OutputDirectoryOption = None,
    dicy: DicyOption = None,
    open_result: OpenResultOption = None,
) -> None:
    """Rebuild whenever DOCUMENT or a TeX file below its directory is saved."""
    state = get_cli_state()
    overrides = _overrides(
        engine=engine,
        output_directory=output_directory,
        dicy=dicy,
        open_result=open_result,
    )
    overrides["build_on_save"] = True
    with cli_errors():
        dispatcher = create_dispatcher(state, document, overrides=overrides)

    directory = document.resolve().parent
    handler = SourceChangeHandler(dispatcher)
    observer = Observer()
    observer.schedule(handler, str(directory), recursive=True)
    observer.start()
    state.console.print(f"Watching TeX files below {directory}. Press Ctrl+C to stop.")
    try:
        while observer.is_alive():
            observer.join(1)
    except KeyboardInterrupt:
        dispatcher.kill()
        state.console.print(f"Stopped watching after {handler.builds} build(s).")
    finally:
        observer.stop()
        observer.join()


__all__ = ["SourceChangeHandler", "build", "clean", "rebuild", "sync", "watch"]
