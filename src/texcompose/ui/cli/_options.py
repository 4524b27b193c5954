"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer


INPUTS_PANEL = "Input Handling"
BUILD_PANEL = "Build"
VIEWER_PANEL = "Viewer"
DIAGNOSTICS_PANEL = "Diagnostics"

DocumentArgument = Annotated[
    Path,
    typer.Argument(
        metavar="DOCUMENT",
        help="LaTeX document to process. Magic root comments select the root document.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
        rich_help_panel=INPUTS_PANEL,
    ),
]

LineOption = Annotated[
    int,
    typer.Option(
        "--line",
        "-l",
        min=1,
        help="Cursor line in DOCUMENT used for forward search in the viewer.",
        rich_help_panel=VIEWER_PANEL,
    ),
]

EngineOption = Annotated[
    str | None,
    typer.Option(
        "--engine",
        "-e",
        help="Default TeX engine when the document does not select one.",
        rich_help_panel=BUILD_PANEL,
    ),
]

OutputDirectoryOption = Annotated[
    str | None,
    typer.Option(
        "--output-directory",
        "-o",
        help="Directory receiving the build artifacts, relative to the root document.",
        rich_help_panel=BUILD_PANEL,
    ),
]

ShellEscapeOption = Annotated[
    bool | None,
    typer.Option(
        "--shell-escape/--no-shell-escape",
        help="Allow the TeX engine to run external commands.",
        show_default=False,
        rich_help_panel=BUILD_PANEL,
    ),
]

DicyOption = Annotated[
    bool | None,
    typer.Option(
        "--dicy/--latexmk",
        help="Build with the DiCy backend instead of latexmk.",
        show_default=False,
        rich_help_panel=BUILD_PANEL,
    ),
]

OpenResultOption = Annotated[
    bool | None,
    typer.Option(
        "--open/--no-open",
        help="Open the result in a viewer after a successful build.",
        show_default=False,
        rich_help_panel=VIEWER_PANEL,
    ),
]

__all__ = [
    "BUILD_PANEL",
    "DIAGNOSTICS_PANEL",
    "INPUTS_PANEL",
    "VIEWER_PANEL",
    "DicyOption",
    "DocumentArgument",
    "EngineOption",
    "LineOption",
    "OpenResultOption",
    "OutputDirectoryOption",
    "ShellEscapeOption",
]
