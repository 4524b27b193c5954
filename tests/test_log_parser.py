from pathlib import Path

from conftest import FIXTURES

from texcompose.adapters.latex.log import parse_log, parse_log_file
from texcompose.core.diagnostics import MessageSeverity


PROJECT = Path("/tmp/project")


def _parse_fixture():
    result = parse_log_file(FIXTURES / "logs" / "file.log", PROJECT)
    assert result is not None
    return result


def test_output_path_is_resolved_against_project() -> None:
    result = _parse_fixture()

    assert result.output_file_path == PROJECT / "file.pdf"


def test_file_line_error_carries_location() -> None:
    errors = [m for m in _parse_fixture().messages if m.severity is MessageSeverity.ERROR]

    assert len(errors) == 1
    assert errors[0].text == "Undefined control sequence."
    assert errors[0].file_path == PROJECT / "file.tex"
    assert errors[0].line_range == (10, 10)
    assert errors[0].log_path == FIXTURES / "logs" / "file.log"


def test_warnings_use_input_lines_and_continuations() -> None:
    warnings = [m for m in _parse_fixture().messages if m.severity is MessageSeverity.WARNING]

    assert [m.line_range for m in warnings] == [(12, 12), (14, 14), (20, 22)]
    assert warnings[0].text.startswith("Reference `sec:missing'")
    assert "removing `math shift'" in warnings[1].text
    assert warnings[2].text.startswith("Overfull \\hbox")
    assert all(m.file_path == PROJECT / "file.tex" for m in warnings)


def test_tex_error_uses_following_line_marker() -> None:
    text = "(./main.tex\n! Missing $ inserted.\n<inserted text>\nl.7 x^\n)\n"

    result = parse_log(text, PROJECT)

    assert len(result.messages) == 1
    message = result.messages[0]
    assert message.text == "Missing $ inserted."
    assert message.file_path == PROJECT / "main.tex"
    assert message.line_range == (7, 7)
    assert message.log_line == 2


def test_log_without_output_or_messages() -> None:
    result = parse_log("This is pdfTeX\nNo pages of output.\n", PROJECT)

    assert result.output_file_path is None
    assert result.messages == []


def test_missing_log_file_returns_none(tmp_path: Path) -> None:
    assert parse_log_file(tmp_path / "absent.log", tmp_path) is None
