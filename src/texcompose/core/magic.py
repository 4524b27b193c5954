"""Magic comment scanning (``% !TEX key = value``) and root document resolution."""

from __future__ import annotations

import logging
from pathlib import Path
import re


logger = logging.getLogger(__name__)

MAGIC_COMMENT_PATTERN = re.compile(r"^%\s*(?i:!TEX)\s+(\w+)\s*=\s*(.*)$")
LATEX_COMMAND_PATTERN = re.compile(r"\\\w+(\[[^\]]*\])?{[^}]*}")


def parse_magic_comments(text: str) -> dict[str, str]:
    """Extract magic comments from the preamble of ``text``.

    Scanning stops at the first line containing a LaTeX command. The first
    occurrence of a key wins and keys are case-sensitive.
    """
    magic: dict[str, str] = {}
    for line in text.splitlines():
        if LATEX_COMMAND_PATTERN.search(line):
            break
        match = MAGIC_COMMENT_PATTERN.match(line.strip())
        if match is None:
            continue
        key, value = match.group(1), match.group(2).strip()
        magic.setdefault(key, value)
    return magic


def read_magic_comments(file_path: str | Path) -> dict[str, str]:
    """Return the magic comments of ``file_path``; unreadable files yield nothing."""
    path = Path(file_path)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return {}
    return parse_magic_comments(text)


def resolve_root(file_path: str | Path) -> tuple[Path, list[Path]]:
    """Follow ``root`` magic comments from ``file_path`` to the top-level document.

    Returns the root and the documents traversed before reaching it. Root
    pointers are relative to the directory of the declaring file. A pointer to
    an already visited document ends the walk.
    """
    current = Path(file_path).resolve()
    visited: list[Path] = [current]
    while True:
        target = read_magic_comments(current).get("root")
        if not target:
            break
        candidate = (current.parent / target).resolve()
        if candidate in visited:
            logger.debug("Root cycle detected at %s -> %s", current, candidate)
            break
        visited.append(candidate)
        current = candidate
    return current, [path for path in visited if path != current]


__all__ = [
    "LATEX_COMMAND_PATTERN",
    "MAGIC_COMMENT_PATTERN",
    "parse_magic_comments",
    "read_magic_comments",
    "resolve_root",
]
