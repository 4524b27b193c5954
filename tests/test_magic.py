from pathlib import Path

from conftest import write

from texcompose.core.magic import parse_magic_comments, read_magic_comments, resolve_root


def test_magic_comments_stop_at_first_command() -> None:
    text = "\n".join(
        [
            "% !TEX program = xelatex",
            "%!tex jobnames = a, b",
            "% !TEX program = lualatex",
            "\\documentclass{article}",
            "% !TEX outputDirectory = build",
        ]
    )

    assert parse_magic_comments(text) == {"program": "xelatex", "jobnames": "a, b"}


def test_command_with_optional_argument_ends_scan() -> None:
    text = "\\documentclass[a4paper]{article}\n% !TEX program = xelatex\n"

    assert parse_magic_comments(text) == {}


def test_unreadable_file_has_no_magic(tmp_path: Path) -> None:
    assert read_magic_comments(tmp_path / "missing.tex") == {}


def test_resolve_root_follows_pointers_transitively(tmp_path: Path) -> None:
    root = write(tmp_path / "main.tex", "\\documentclass{article}\n")
    chapter = write(tmp_path / "chapters" / "intro.tex", "% !TEX root = part.tex\n")
    write(tmp_path / "chapters" / "part.tex", "% !TEX root = ../main.tex\n")

    resolved, visited = resolve_root(chapter)

    assert resolved == root.resolve()
    assert visited == [
        chapter.resolve(),
        (tmp_path / "chapters" / "part.tex").resolve(),
    ]


def test_resolve_root_stops_on_cycles(tmp_path: Path) -> None:
    first = write(tmp_path / "a.tex", "% !TEX root = b.tex\n")
    second = write(tmp_path / "b.tex", "% !TEX root = a.tex\n")

    resolved, visited = resolve_root(first)

    assert resolved == second.resolve()
    assert visited == [first.resolve()]


def test_file_without_root_is_its_own_root(tmp_path: Path) -> None:
    document = write(tmp_path / "solo.tex", "\\documentclass{article}\n")

    assert resolve_root(document) == (document.resolve(), [])
