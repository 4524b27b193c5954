"""Viewer openers and the registry selecting one for a given output file."""

from __future__ import annotations

from collections.abc import Sequence
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from texcompose.core.diagnostics import BuildLog


logger = logging.getLogger(__name__)


def is_pdf_file(file_path: str | Path) -> bool:
    return Path(file_path).suffix.lower() == ".pdf"


def is_ps_file(file_path: str | Path) -> bool:
    return Path(file_path).suffix.lower() in {".ps", ".eps"}


def is_dvi_file(file_path: str | Path) -> bool:
    return Path(file_path).suffix.lower() == ".dvi"


@runtime_checkable
class Opener(Protocol):
    """Launch a viewer for a build result, optionally synchronised to a source line."""

    def can_open(self, file_path: Path) -> bool: ...

    def has_synctex(self) -> bool: ...

    def can_open_in_background(self) -> bool: ...

    def open(self, file_path: Path, tex_path: Path, line_number: int) -> None: ...


class OpenerRegistry:
    """Pick the first opener able to display a file, honouring a preferred name."""

    def __init__(
        self,
        openers: Sequence[tuple[str, Opener]] = (),
        *,
        preference: str = "automatic",
        log: BuildLog | None = None,
    ) -> None:
        self._openers: list[tuple[str, Opener]] = list(openers)
        self.preference = preference
        self.log = log

    def register(self, name: str, opener: Opener) -> None:
        self._openers = [entry for entry in self._openers if entry[0] != name]
        self._openers.append((name, opener))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self._openers]

    def _candidates(self) -> list[tuple[str, Opener]]:
        if self.preference == "automatic":
            return list(self._openers)
        preferred = [entry for entry in self._openers if entry[0] == self.preference]
        others = [entry for entry in self._openers if entry[0] != self.preference]
        return preferred + others

    def select(self, file_path: Path) -> tuple[str, Opener] | None:
        for name, opener in self._candidates():
            if opener.can_open(file_path):
                return name, opener
        return None

    def can_open(self, file_path: Path) -> bool:
        return self.select(file_path) is not None

    def has_synctex(self) -> bool:
        return any(opener.has_synctex() for _, opener in self._openers)

    def can_open_in_background(self) -> bool:
        return any(opener.can_open_in_background() for _, opener in self._openers)

    def open(self, file_path: Path, tex_path: Path, line_number: int) -> None:
        selection = self.select(file_path)
        if selection is None:
            self._warn(f"No opener found that can open {file_path}.")
            return
        name, opener = selection
        logger.debug("Opening %s with %s", file_path, name)
        opener.open(file_path, tex_path, line_number)

    def check_runtime_dependencies(self, sample: Path = Path("output.pdf")) -> str | None:
        """Report which opener would display ``sample`` and return its name."""
        selection = self.select(sample)
        if selection is None:
            self._warn("No PDF opener found.")
            return None
        name, opener = selection
        message = f"Using {name} to open results."
        if not opener.has_synctex():
            message = f"{message} SyncTeX is not supported by this opener."
        if self.log is not None:
            self.log.info(message)
        else:
            logger.info(message)
        return name

    def _warn(self, message: str) -> None:
        if self.log is not None:
            self.log.warning(message)
        else:
            logger.warning(message)


__all__ = [
    "Opener",
    "OpenerRegistry",
    "is_dvi_file",
    "is_pdf_file",
    "is_ps_file",
]
