"""Builder protocol and the predicate-based registry selecting builders."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
from typing import Protocol, runtime_checkable

from texcompose.core.diagnostics import BuildLog
from texcompose.core.state import BuildState, JobState


logger = logging.getLogger(__name__)


@runtime_checkable
class Builder(Protocol):
    """Adapter driving an external tool to build one job."""

    executable: str

    def can_process(self, state: BuildState) -> bool: ...

    def run(self, job_state: JobState) -> int: ...

    def construct_args(self, job_state: JobState) -> list[str]: ...

    def log_status_code(self, status_code: int, stderr: str | None = None) -> None: ...

    def parse_log_and_fdb_files(self, job_state: JobState) -> None: ...

    def check_runtime_dependencies(self) -> None: ...


BuilderPredicate = Callable[[BuildState], bool]
BuilderFactory = Callable[[], Builder]


def log_generic_status_code(
    log: BuildLog,
    executable: str,
    status_code: int,
    stderr: str | None = None,
) -> None:
    """Report a nonzero exit status not covered by a tool-specific table."""
    if status_code == 127:
        log.error(f"{executable}: executable not found (status code 127).")
        return
    message = f"{executable} failed with status code {status_code}."
    if stderr and stderr.strip():
        message = f"{message} {stderr.strip()}"
    log.error(message)


@dataclass(slots=True)
class _Registration:
    name: str
    predicate: BuilderPredicate
    factory: BuilderFactory
    instance: Builder | None = None

    def get(self) -> Builder:
        if self.instance is None:
            self.instance = self.factory()
        return self.instance


class BuilderRegistry:
    """Ordered set of builders, each guarded by a predicate on the build state."""

    def __init__(self) -> None:
        self._registrations: list[_Registration] = []

    def register(self, name: str, predicate: BuilderPredicate, factory: BuilderFactory) -> None:
        """Register a builder; a registration with the same name is replaced."""
        self._registrations = [entry for entry in self._registrations if entry.name != name]
        self._registrations.append(_Registration(name, predicate, factory))

    @property
    def names(self) -> list[str]:
        return [entry.name for entry in self._registrations]

    def get_builder(self, state: BuildState) -> Builder | None:
        """Return the first builder able to process ``state``, or ``None``."""
        for entry in self._registrations:
            if entry.predicate(state):
                return entry.get()
        logger.debug("No builder accepts %s", state.file_path)
        return None

    def check_runtime_dependencies(self) -> None:
        for entry in self._registrations:
            entry.get().check_runtime_dependencies()


__all__ = [
    "Builder",
    "BuilderFactory",
    "BuilderPredicate",
    "BuilderRegistry",
    "log_generic_status_code",
]
