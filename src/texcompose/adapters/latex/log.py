"""Parse LaTeX transcript files into structured log messages."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import re

from texcompose.core.diagnostics import LogMessage, MessageSeverity


_OUTPUT_PATTERN = re.compile(r"^Output written on (?P<path>.+?) \(.*\)\.?$")
_FILE_LINE_ERROR_PATTERN = re.compile(
    r"^(?P<file>(?:[A-Za-z]:)?[^:()]+?):(?P<line>\d+): (?P<text>.+)$"
)
_TEX_ERROR_PATTERN = re.compile(r"^! (?P<text>.+)$")
_ERROR_LINE_PATTERN = re.compile(r"^l\.(?P<line>\d+)")
_REPORT_PATTERN = re.compile(
    r"^(?P<source>LaTeX(?: \w+)?|(?:Package|Class|Module) (?P<package>\S+)) "
    r"(?P<kind>Warning|Info): (?P<text>.*)$"
)
_CONTINUATION_PATTERN = re.compile(r"^\((?P<package>[^)]+)\)\s+(?P<text>.*)$")
_BOX_PATTERN = re.compile(r"^(?P<text>(?:Over|Under)full \\[hv]box .*)$")
_INPUT_LINE_PATTERN = re.compile(r"on input line (?P<line>\d+)")
_LINES_PATTERN = re.compile(r"at lines? (?P<start>\d+)(?:--(?P<end>\d+))?")
_FILE_TOKEN_PATTERN = re.compile(r'\((?P<path>"[^"]+"|[^\s()"]+)?|\)')

_SEVERITIES = {
    "Warning": MessageSeverity.WARNING,
    "Info": MessageSeverity.INFO,
}


@dataclass(slots=True)
class LogParseResult:
    """Messages and output path recovered from a LaTeX log."""

    output_file_path: Path | None = None
    messages: list[LogMessage] = field(default_factory=list)


def _looks_like_file(token: str) -> bool:
    name = token.strip('"')
    return "/" in name or "\\" in name or bool(Path(name).suffix)


class LatexLogParser:
    """Line-oriented parser tracking the stack of files opened by TeX."""

    def __init__(self, project_path: Path, log_path: Path | None = None) -> None:
        self.project_path = project_path
        self.log_path = log_path
        self.result = LogParseResult()
        self._files: list[Path | None] = []
        self._pending_error: LogMessage | None = None
        self._open_report: LogMessage | None = None

    @property
    def current_file(self) -> Path | None:
        for entry in reversed(self._files):
            if entry is not None:
                return entry
        return None

    def resolve(self, raw_path: str) -> Path:
        candidate = Path(raw_path.strip().strip('"'))
        if not candidate.is_absolute():
            candidate = self.project_path / candidate
        return Path(os.path.normpath(candidate))

    def feed(self, line: str, line_number: int) -> None:
        text = line.rstrip("\r\n")

        output_match = _OUTPUT_PATTERN.match(text)
        if output_match:
            self.result.output_file_path = self.resolve(output_match.group("path"))
            self._open_report = None
            return

        if self._open_report is not None:
            continuation = _CONTINUATION_PATTERN.match(text)
            if continuation:
                self._extend_report(continuation.group("text"))
                return
            self._open_report = None

        if self._pending_error is not None:
            error_line = _ERROR_LINE_PATTERN.match(text)
            if error_line:
                number = int(error_line.group("line"))
                if self._pending_error.line_range is None:
                    self._pending_error.line_range = (number, number)
                self._pending_error = None
                return

        file_error = _FILE_LINE_ERROR_PATTERN.match(text)
        if file_error:
            number = int(file_error.group("line"))
            message = self._emit(
                MessageSeverity.ERROR,
                file_error.group("text"),
                line_number,
                file_path=self.resolve(file_error.group("file")),
                line_range=(number, number),
            )
            self._pending_error = message
            return

        tex_error = _TEX_ERROR_PATTERN.match(text)
        if tex_error:
            self._pending_error = self._emit(
                MessageSeverity.ERROR,
                tex_error.group("text"),
                line_number,
                file_path=self.current_file,
            )
            return

        report = _REPORT_PATTERN.match(text)
        if report:
            message = self._emit(
                _SEVERITIES[report.group("kind")],
                report.group("text"),
                line_number,
                file_path=self.current_file,
            )
            self._attach_input_line(message)
            self._open_report = message
            return

        box = _BOX_PATTERN.match(text)
        if box:
            message = self._emit(
                MessageSeverity.WARNING,
                box.group("text"),
                line_number,
                file_path=self.current_file,
            )
            lines = _LINES_PATTERN.search(text)
            if lines:
                start = int(lines.group("start"))
                end = int(lines.group("end") or start)
                message.line_range = (start, end)
            return

        self._track_files(text)

    def finalize(self) -> LogParseResult:
        self._pending_error = None
        self._open_report = None
        return self.result

    def _emit(
        self,
        severity: MessageSeverity,
        text: str,
        log_line: int,
        *,
        file_path: Path | None = None,
        line_range: tuple[int, int] | None = None,
    ) -> LogMessage:
        message = LogMessage(
            severity=severity,
            text=text.strip(),
            file_path=file_path,
            line_range=line_range,
            log_path=self.log_path,
            log_line=log_line,
        )
        self.result.messages.append(message)
        return message

    def _extend_report(self, text: str) -> None:
        message = self._open_report
        if message is None:
            return
        message.text = f"{message.text} {text.strip()}".strip()
        self._attach_input_line(message)

    @staticmethod
    def _attach_input_line(message: LogMessage) -> None:
        match = _INPUT_LINE_PATTERN.search(message.text)
        if match and message.line_range is None:
            number = int(match.group("line"))
            message.line_range = (number, number)

    def _track_files(self, text: str) -> None:
        for match in _FILE_TOKEN_PATTERN.finditer(text):
            token = match.group(0)
            if token == ")":
                if self._files:
                    self._files.pop()
                continue
            path = match.group("path")
            if path and _looks_like_file(path):
                self._files.append(self.resolve(path))
            else:
                self._files.append(None)


def parse_log(text: str, project_path: Path, *, log_path: Path | None = None) -> LogParseResult:
    """Parse the content of a LaTeX log."""
    parser = LatexLogParser(project_path, log_path)
    for number, line in enumerate(text.splitlines(), start=1):
        parser.feed(line, number)
    return parser.finalize()


def parse_log_file(log_path: Path, project_path: Path) -> LogParseResult | None:
    """Parse ``log_path``; return ``None`` when the log does not exist."""
    if not log_path.is_file():
        return None
    try:
        text = log_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    return parse_log(text, project_path, log_path=log_path)


__all__ = ["LatexLogParser", "LogParseResult", "parse_log", "parse_log_file"]
