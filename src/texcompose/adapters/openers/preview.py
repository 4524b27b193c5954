"""macOS Preview.app opener."""

from __future__ import annotations

from pathlib import Path
import sys

from texcompose.core.diagnostics import BuildLog
from texcompose.core.exceptions import BuildError
from texcompose.core.process import ProcessManager

from . import is_pdf_file, is_ps_file


class PreviewOpener:
    def __init__(
        self,
        *,
        process: ProcessManager,
        log: BuildLog,
        open_in_background: bool = True,
        platform: str = sys.platform,
    ) -> None:
        self.process = process
        self.log = log
        self.open_in_background = open_in_background
        self.platform = platform

    def has_synctex(self) -> bool:
        return False

    def can_open_in_background(self) -> bool:
        return True

    def can_open(self, file_path: Path) -> bool:
        return self.platform == "darwin" and (is_pdf_file(file_path) or is_ps_file(file_path))

    def construct_args(self, file_path: Path) -> list[str]:
        args = ["open", "-g", "-a", "Preview.app", str(file_path)]
        if not self.open_in_background:
            args.remove("-g")
        return args

    def open(self, file_path: Path, tex_path: Path, line_number: int) -> None:
        try:
            result = self.process.execute(self.construct_args(file_path))
        except BuildError as exc:
            self.log.error(str(exc))
            return
        if result.status_code != 0:
            self.log.error(f"Preview failed to open {file_path}: {result.stderr.strip()}")


__all__ = ["PreviewOpener"]
