"""Child process execution with cooperative cancellation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import logging
import os
from pathlib import Path
import shlex
import signal
import subprocess
from threading import Lock

from .exceptions import BuildKilledError, ToolNotFoundError


logger = logging.getLogger(__name__)

PID_SUFFIX = ".pid"

# Return codes of children terminated by a signal from another invocation.
KILL_STATUS_CODES = frozenset(
    -sig for sig in (signal.SIGTERM, getattr(signal, "SIGKILL", signal.SIGTERM))
)


@dataclass(slots=True)
class ProcessResult:
    """Exit status and captured output of a finished child process."""

    status_code: int
    stdout: str = ""
    stderr: str = ""


def build_environment(overrides: Mapping[str, object] | None = None) -> dict[str, str]:
    """Return a copy of ``os.environ`` with ``overrides`` applied."""
    env = os.environ.copy()
    for key, value in (overrides or {}).items():
        env[str(key)] = str(value)
    return env


class ProcessManager:
    """Spawn child processes and kill them on request, possibly from another thread.

    When ``registry_dir`` is given, the pid of every running child is recorded
    there so that a separate invocation can terminate it.
    """

    def __init__(self, *, registry_dir: Path | None = None) -> None:
        self.registry_dir = registry_dir
        self._lock = Lock()
        self._processes: dict[int, subprocess.Popen[str]] = {}
        self._killed: set[int] = set()

    @property
    def running(self) -> list[int]:
        with self._lock:
            return list(self._processes)

    def execute_command(
        self,
        command: str,
        *,
        cwd: str | Path | None = None,
        env: Mapping[str, object] | None = None,
    ) -> ProcessResult:
        """Tokenise ``command`` with shell quoting rules and run it without a shell."""
        return self.execute(shlex.split(command), cwd=cwd, env=env)

    def execute(
        self,
        argv: Sequence[str],
        *,
        cwd: str | Path | None = None,
        env: Mapping[str, object] | None = None,
    ) -> ProcessResult:
        """Run ``argv`` to completion and capture its output.

        Raises :class:`ToolNotFoundError` when the executable is missing and
        :class:`BuildKilledError` when the process was killed while running.
        """
        if not argv:
            raise ValueError("Cannot execute an empty command.")
        logger.debug("Executing %s in %s", shlex.join(argv), cwd or os.getcwd())
        try:
            process = subprocess.Popen(
                list(argv),
                cwd=str(cwd) if cwd is not None else None,
                env=build_environment(env),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(argv[0]) from exc

        self._track(process)
        try:
            stdout, stderr = process.communicate()
        finally:
            killed = self._untrack(process)

        if not killed and self.registry_dir is not None:
            killed = process.returncode in KILL_STATUS_CODES
        if killed:
            raise BuildKilledError(f"Process '{argv[0]}' was killed.")
        return ProcessResult(status_code=process.returncode, stdout=stdout or "", stderr=stderr or "")

    def spawn(
        self,
        argv: Sequence[str],
        *,
        cwd: str | Path | None = None,
    ) -> None:
        """Start ``argv`` detached from the current build, ignoring its output."""
        try:
            subprocess.Popen(
                list(argv),
                cwd=str(cwd) if cwd is not None else None,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                start_new_session=True,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(argv[0]) from exc

    def kill_child_processes(self) -> int:
        """Terminate every tracked child process and return how many were signalled."""
        with self._lock:
            processes = list(self._processes.values())
            self._killed.update(process.pid for process in processes)
        for process in processes:
            try:
                process.terminate()
            except OSError as exc:
                logger.debug("Unable to terminate process %s: %s", process.pid, exc)
        return len(processes)

    def _track(self, process: subprocess.Popen[str]) -> None:
        with self._lock:
            self._processes[process.pid] = process
        if self.registry_dir is not None:
            try:
                self.registry_dir.mkdir(parents=True, exist_ok=True)
                (self.registry_dir / f"{process.pid}{PID_SUFFIX}").write_text(
                    str(process.pid), encoding="utf-8"
                )
            except OSError as exc:
                logger.debug("Unable to record pid %s: %s", process.pid, exc)

    def _untrack(self, process: subprocess.Popen[str]) -> bool:
        with self._lock:
            self._processes.pop(process.pid, None)
            killed = process.pid in self._killed
            self._killed.discard(process.pid)
        if self.registry_dir is not None:
            (self.registry_dir / f"{process.pid}{PID_SUFFIX}").unlink(missing_ok=True)
        return killed


def kill_registered_processes(registry_dir: Path) -> list[int]:
    """Terminate the processes recorded in ``registry_dir`` by another invocation."""
    if not registry_dir.is_dir():
        return []
    killed: list[int] = []
    for entry in sorted(registry_dir.glob(f"*{PID_SUFFIX}")):
        try:
            pid = int(entry.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            entry.unlink(missing_ok=True)
            continue
        try:
            os.kill(pid, signal.SIGTERM)
            killed.append(pid)
        except ProcessLookupError:
            pass
        except OSError as exc:
            logger.warning("Unable to kill process %s: %s", pid, exc)
            continue
        entry.unlink(missing_ok=True)
    return killed


__all__ = [
    "ProcessManager",
    "ProcessResult",
    "build_environment",
    "kill_registered_processes",
]
