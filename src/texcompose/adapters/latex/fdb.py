"""Parser for the latexmk file database (``.fdb_latexmk``)."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
import re


FileDatabase = dict[str, dict[str, list[str]]]

_RULE_PATTERN = re.compile(r'^\["(?P<rule>[^"]+)"\]')
_FILE_PATTERN = re.compile(r'^\s+"(?P<path>[^"]*)"')
_SECTION_PATTERN = re.compile(r"^\s+\((?P<section>generated|rewritten before read)\)\s*$")

# Rules producing the final output, searched before the TeX engines themselves.
PRODUCER_RULES: tuple[str, ...] = ("ps2pdf", "dvipdf", "xdvipdfmx", "dvips")


def parse_fdb(lines: Iterable[str]) -> FileDatabase:
    """Parse file database lines into ``{rule: {"source": [...], "generated": [...]}}``."""
    database: FileDatabase = {}
    current: dict[str, list[str]] | None = None
    section = "source"

    for raw in lines:
        line = raw.rstrip("\r\n")
        rule_match = _RULE_PATTERN.match(line)
        if rule_match:
            current = database.setdefault(rule_match.group("rule"), {"source": [], "generated": []})
            section = "source"
            continue
        if current is None:
            continue
        section_match = _SECTION_PATTERN.match(line)
        if section_match:
            section = "generated" if section_match.group("section") == "generated" else "rewritten"
            continue
        file_match = _FILE_PATTERN.match(line)
        if file_match and section in current:
            path = file_match.group("path")
            if path and path not in current[section]:
                current[section].append(path)

    return database


def parse_fdb_file(fdb_path: Path) -> FileDatabase | None:
    """Parse ``fdb_path``; return ``None`` when the file is missing or holds no rules."""
    if not fdb_path.is_file():
        return None
    try:
        with fdb_path.open("r", encoding="utf-8", errors="replace") as handle:
            database = parse_fdb(handle)
    except OSError:
        return None
    return database or None


def _rule_order(database: FileDatabase, producer: str | None) -> list[str]:
    preferred: list[str] = []
    if producer:
        preferred.append(producer)
    preferred.extend(PRODUCER_RULES)
    ordered = [rule for rule in preferred if rule in database]
    ordered.extend(rule for rule in database if rule not in ordered)
    return ordered


def find_generated_output(
    database: FileDatabase,
    output_format: str,
    *,
    producer: str | None = None,
) -> str | None:
    """Return the first generated file with the ``output_format`` extension."""
    suffix = f".{output_format.lower()}"
    for rule in _rule_order(database, producer):
        for path in database[rule].get("generated", ()):
            if path.lower().endswith(suffix):
                return path
    return None


def generated_files(database: FileDatabase | None) -> list[str]:
    """Return every generated file recorded in ``database`` without duplicates."""
    if not database:
        return []
    seen: list[str] = []
    for entry in database.values():
        for path in entry.get("generated", ()):
            if path not in seen:
                seen.append(path)
    return seen


def resolve_paths(paths: Sequence[str], base: Path) -> list[Path]:
    """Resolve database paths relative to ``base``."""
    return [Path(path) if Path(path).is_absolute() else (base / path) for path in paths]


__all__ = [
    "PRODUCER_RULES",
    "FileDatabase",
    "find_generated_output",
    "generated_files",
    "parse_fdb",
    "parse_fdb_file",
    "resolve_paths",
]
