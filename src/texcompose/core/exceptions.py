"""Custom exception hierarchy for the build orchestration pipeline."""

from __future__ import annotations


class ComposerError(RuntimeError):
    """Base exception for build orchestration failures."""


class ConfigurationError(ComposerError):
    """Raised when a configuration file cannot be loaded or validated."""


class BuildError(ComposerError):
    """Raised when a builder or build engine fails catastrophically."""


class ToolNotFoundError(BuildError):
    """Raised when an external executable cannot be located."""

    def __init__(self, executable: str, message: str | None = None) -> None:
        self.executable = executable
        super().__init__(message or f"Executable '{executable}' could not be found.")


class BuildKilledError(BuildError):
    """Raised when an in-flight build process was terminated on request."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


__all__ = [
    "BuildError",
    "BuildKilledError",
    "ComposerError",
    "ConfigurationError",
    "ToolNotFoundError",
    "exception_messages",
]
