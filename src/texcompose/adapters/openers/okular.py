"""Okular viewer (Linux) with SyncTeX forward search."""

from __future__ import annotations

from pathlib import Path
import sys

from texcompose.core.diagnostics import BuildLog
from texcompose.core.exceptions import ToolNotFoundError
from texcompose.core.process import ProcessManager

from . import is_pdf_file


class OkularOpener:
    def __init__(
        self,
        *,
        process: ProcessManager,
        log: BuildLog,
        okular_path: str | Path = "/usr/bin/okular",
        open_in_background: bool = True,
        platform: str = sys.platform,
    ) -> None:
        self.process = process
        self.log = log
        self.okular_path = Path(okular_path)
        self.open_in_background = open_in_background
        self.platform = platform

    def has_synctex(self) -> bool:
        return True

    def can_open_in_background(self) -> bool:
        return True

    def can_open(self, file_path: Path) -> bool:
        return (
            self.platform.startswith("linux")
            and is_pdf_file(file_path)
            and self.okular_path.exists()
        )

    def construct_args(self, file_path: Path, tex_path: Path, line_number: int) -> list[str]:
        uri = f"{Path(file_path).resolve().as_uri()}#src:{line_number} {tex_path}"
        args = [str(self.okular_path), "--unique", uri]
        if self.open_in_background:
            args.insert(1, "--noraise")
        return args

    def open(self, file_path: Path, tex_path: Path, line_number: int) -> None:
        try:
            self.process.spawn(self.construct_args(file_path, tex_path, line_number))
        except ToolNotFoundError as exc:
            self.log.error(str(exc))


__all__ = ["OkularOpener"]
