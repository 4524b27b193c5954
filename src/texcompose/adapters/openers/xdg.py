"""Fallback opener delegating to the desktop default viewer via xdg-open."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import shutil
import sys

from texcompose.core.diagnostics import BuildLog
from texcompose.core.exceptions import ToolNotFoundError
from texcompose.core.process import ProcessManager

from . import is_dvi_file, is_pdf_file, is_ps_file


class XdgOpener:
    executable = "xdg-open"

    def __init__(
        self,
        *,
        process: ProcessManager,
        log: BuildLog,
        platform: str = sys.platform,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.process = process
        self.log = log
        self.platform = platform
        self._which = which

    def has_synctex(self) -> bool:
        return False

    def can_open_in_background(self) -> bool:
        return False

    def can_open(self, file_path: Path) -> bool:
        supported = is_pdf_file(file_path) or is_ps_file(file_path) or is_dvi_file(file_path)
        return (
            self.platform.startswith(("linux", "freebsd", "openbsd"))
            and supported
            and self._which(self.executable) is not None
        )

    def open(self, file_path: Path, tex_path: Path, line_number: int) -> None:
        try:
            self.process.spawn([self.executable, str(file_path)])
        except ToolNotFoundError as exc:
            self.log.error(str(exc))


__all__ = ["XdgOpener"]
