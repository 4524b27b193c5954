"""Log and status sinks shared across the build pipeline."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


class MessageSeverity(Enum):
    """Severity attached to log messages."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def coerce(cls, value: str | MessageSeverity) -> MessageSeverity:
        if isinstance(value, MessageSeverity):
            return value
        return cls(str(value).strip().lower())


_SEVERITY_RANK = {
    MessageSeverity.ERROR: 0,
    MessageSeverity.WARNING: 1,
    MessageSeverity.INFO: 2,
}

_LOGGING_LEVELS = {
    MessageSeverity.ERROR: logging.ERROR,
    MessageSeverity.WARNING: logging.WARNING,
    MessageSeverity.INFO: logging.INFO,
}


@dataclass(slots=True)
class LogMessage:
    """Structured diagnostic record produced by a build."""

    severity: MessageSeverity
    text: str
    file_path: Path | None = None
    line_range: tuple[int, int] | None = None
    log_path: Path | None = None
    log_line: int | None = None

    def covers(self, file_path: Path, line_number: int) -> bool:
        """Return True when the message points at ``line_number`` of ``file_path``."""
        if self.file_path is None or self.line_range is None:
            return False
        if Path(self.file_path) != Path(file_path):
            return False
        start, end = self.line_range
        return start <= line_number <= end

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "text": self.text,
            "file_path": str(self.file_path) if self.file_path else None,
            "line_range": list(self.line_range) if self.line_range else None,
            "log_path": str(self.log_path) if self.log_path else None,
            "log_line": self.log_line,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> LogMessage:
        line_range = payload.get("line_range")
        file_path = payload.get("file_path")
        log_path = payload.get("log_path")
        return cls(
            severity=MessageSeverity.coerce(payload.get("severity", "info")),
            text=str(payload.get("text", "")),
            file_path=Path(file_path) if file_path else None,
            line_range=(int(line_range[0]), int(line_range[1])) if line_range else None,
            log_path=Path(log_path) if log_path else None,
            log_line=payload.get("log_line"),
        )


class BuildLog:
    """Collect leveled build messages and mirror them to the logging module."""

    def __init__(
        self,
        *,
        logging_level: str | MessageSeverity = MessageSeverity.WARNING,
        logger_obj: logging.Logger | None = None,
    ) -> None:
        self._logger = logger_obj or logger
        self._messages: list[LogMessage] = []
        self.logging_level = MessageSeverity.coerce(logging_level)
        self.visible = False

    def info(self, text: str) -> None:
        self.show_message(LogMessage(MessageSeverity.INFO, text))

    def warning(self, text: str) -> None:
        self.show_message(LogMessage(MessageSeverity.WARNING, text))

    def error(self, text: str) -> None:
        self.show_message(LogMessage(MessageSeverity.ERROR, text))

    def show_message(self, message: LogMessage) -> None:
        """Record ``message`` and forward it to the logger."""
        self._messages.append(message)
        location = ""
        if message.file_path is not None:
            location = str(message.file_path)
            if message.line_range is not None:
                location = f"{location}:{message.line_range[0]}"
            location = f"{location}: "
        self._logger.log(_LOGGING_LEVELS[message.severity], "%s%s", location, message.text)

    def show_messages(self, messages: Iterable[LogMessage]) -> None:
        for message in messages:
            self.show_message(message)

    def get_messages(self, use_filters: bool = True) -> list[LogMessage]:
        """Return recorded messages, optionally filtered by ``logging_level``."""
        if not use_filters:
            return list(self._messages)
        threshold = self.logging_level.rank
        return [message for message in self._messages if message.severity.rank <= threshold]

    def set_messages(self, messages: Iterable[LogMessage]) -> None:
        self._messages = list(messages)

    def messages_at(self, file_path: Path, line_number: int) -> list[LogMessage]:
        """Return the filtered messages attached to a source position."""
        return [
            message
            for message in self.get_messages()
            if message.covers(file_path, line_number)
        ]

    def has_errors(self) -> bool:
        return any(message.severity is MessageSeverity.ERROR for message in self._messages)

    def clear(self) -> None:
        self._messages.clear()

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False

    def toggle(self) -> None:
        self.visible = not self.visible

    def serialize(self) -> dict[str, Any]:
        return {"messages": [message.to_dict() for message in self._messages]}

    def deserialize(self, payload: Mapping[str, Any]) -> None:
        raw = payload.get("messages") or []
        self.set_messages(LogMessage.from_dict(entry) for entry in raw)


@runtime_checkable
class StatusSink(Protocol):
    """Interface receiving coarse build status updates."""

    def show(self, text: str, kind: str = "busy") -> None: ...

    def clear(self) -> None: ...


class NullStatus:
    """Status sink that ignores every update."""

    def show(self, text: str, kind: str = "busy") -> None:
        return

    def clear(self) -> None:
        return


class LoggingStatus:
    """Status sink forwarding updates to the standard logging module."""

    def __init__(self, *, logger_obj: logging.Logger | None = None) -> None:
        self._logger = logger_obj or logger
        self.current: tuple[str, str] | None = None

    def show(self, text: str, kind: str = "busy") -> None:
        self.current = (text, kind)
        self._logger.debug("status %s: %s", kind, text)

    def clear(self) -> None:
        self.current = None


__all__ = [
    "BuildLog",
    "LogMessage",
    "LoggingStatus",
    "MessageSeverity",
    "NullStatus",
    "StatusSink",
]
