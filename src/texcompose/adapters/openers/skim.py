"""Skim viewer (macOS), driven through AppleScript."""

from __future__ import annotations

from pathlib import Path
import sys

from texcompose.core.diagnostics import BuildLog
from texcompose.core.exceptions import BuildError
from texcompose.core.process import ProcessManager

from . import is_pdf_file


_SCRIPT = """\
set theLine to "{line}" as integer
set theFile to POSIX file "{file}"
set theSource to POSIX file "{source}"
set thePath to POSIX path of (theFile as alias)
tell application "{skim}"
  if {activate} then activate
  try
    set theDocs to get documents whose path is thePath
    if (count of theDocs) > 0 then revert theDocs
  end try
  open theFile
  tell front document to go to TeX line theLine from theSource
end tell
"""


class SkimOpener:
    """Open PDFs in Skim and jump to the source line."""

    def __init__(
        self,
        *,
        process: ProcessManager,
        log: BuildLog,
        skim_path: str | Path = "/Applications/Skim.app",
        open_in_background: bool = True,
        platform: str = sys.platform,
    ) -> None:
        self.process = process
        self.log = log
        self.skim_path = Path(skim_path)
        self.open_in_background = open_in_background
        self.platform = platform

    def has_synctex(self) -> bool:
        return True

    def can_open_in_background(self) -> bool:
        return True

    def can_open(self, file_path: Path) -> bool:
        return self.platform == "darwin" and is_pdf_file(file_path) and self.skim_path.exists()

    def build_script(self, file_path: Path, tex_path: Path, line_number: int) -> str:
        return _SCRIPT.format(
            line=line_number,
            file=file_path,
            source=tex_path,
            skim=self.skim_path,
            activate="false" if self.open_in_background else "true",
        )

    def open(self, file_path: Path, tex_path: Path, line_number: int) -> None:
        script = self.build_script(file_path, tex_path, line_number)
        try:
            result = self.process.execute(["osascript", "-e", script])
        except BuildError as exc:
            self.log.error(str(exc))
            return
        if result.status_code != 0:
            self.log.error(f"Skim failed to open {file_path}: {result.stderr.strip()}")


__all__ = ["SkimOpener"]
