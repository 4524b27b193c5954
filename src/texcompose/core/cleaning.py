"""Clean pattern matching for generated build artifacts."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
import os
from pathlib import Path, PurePath
import re


JOBNAME_PLACEHOLDER = "{jobname}"


def normalize_path(path: str | Path) -> Path:
    return Path(os.path.normpath(path))


def _translate(pattern: str) -> str:
    parts: list[str] = []
    index = 0
    while index < len(pattern):
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
            continue
        if pattern.startswith("**", index):
            parts.append(".*")
            index += 2
            continue
        char = pattern[index]
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        index += 1
    return "".join(parts)


@dataclass(slots=True, frozen=True)
class CleanPattern:
    """Compiled clean glob.

    A leading ``/`` anchors the pattern at the project directory. Patterns
    without any ``/`` are matched against the file name at any depth.
    """

    source: str
    anchored: bool
    match_base: bool
    regex: re.Pattern[str]

    @classmethod
    def compile(cls, pattern: str) -> CleanPattern:
        anchored = pattern.startswith("/")
        body = pattern.lstrip("/")
        match_base = not anchored and "/" not in body
        return cls(
            source=pattern,
            anchored=anchored,
            match_base=match_base,
            regex=re.compile(_translate(body)),
        )

    def matches(self, relative: PurePath, *, at_project_root: bool) -> bool:
        if self.anchored and not at_project_root:
            return False
        if self.match_base:
            return self.regex.fullmatch(relative.name) is not None
        return self.regex.fullmatch(relative.as_posix()) is not None


def expand_patterns(patterns: Iterable[str], job_name: str) -> list[CleanPattern]:
    """Substitute ``{jobname}`` and compile every pattern."""
    return [
        CleanPattern.compile(pattern.replace(JOBNAME_PLACEHOLDER, job_name))
        for pattern in patterns
        if pattern.strip()
    ]


def walk_tree(root: Path) -> Iterator[Path]:
    """Yield every directory and file below ``root``."""
    if not root.is_dir():
        return
    for current, directories, files in os.walk(root):
        base = Path(current)
        for name in directories:
            yield base / name
        for name in files:
            yield base / name


def _relative_to(path: Path, root: Path) -> PurePath | None:
    try:
        return path.relative_to(root)
    except ValueError:
        return None


def select_clean_targets(
    candidates: Iterable[Path],
    patterns: Iterable[CleanPattern],
    *,
    project_path: Path,
    output_path: Path,
) -> set[Path]:
    """Return the candidates matched by at least one pattern.

    Candidates are matched relative to the project directory and to the output
    directory; anchored patterns only apply relative to the project directory.
    """
    compiled = list(patterns)
    project_root = normalize_path(project_path)
    output_root = normalize_path(output_path)
    selected: set[Path] = set()
    for candidate in candidates:
        path = normalize_path(candidate)
        bases = [(project_root, True)]
        if output_root != project_root:
            bases.append((output_root, False))
        for root, at_project_root in bases:
            relative = _relative_to(path, root)
            if relative is None or not relative.parts:
                continue
            if any(item.matches(relative, at_project_root=at_project_root) for item in compiled):
                selected.add(path)
                break
    return selected


__all__ = [
    "JOBNAME_PLACEHOLDER",
    "CleanPattern",
    "expand_patterns",
    "normalize_path",
    "select_clean_targets",
    "walk_tree",
]
