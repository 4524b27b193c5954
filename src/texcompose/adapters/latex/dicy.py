"""Monolithic build backend ("DiCy") and its Tectonic-backed implementation.

A DiCy engine keeps per-document state between runs: instance options set for
the current run, user options applied once, the list of produced targets and
the diagnostics gathered by the last run. Commands are executed in order and
the run succeeds only when every command succeeds.

Supported commands: ``load``, ``build``, ``log``, ``save``, ``clean``.
"""

from __future__ import annotations

from collections.abc import Mapping
import hashlib
import json
import logging
from pathlib import Path
import shutil
from typing import Any, Protocol, runtime_checkable

from texcompose.core.cleaning import expand_patterns, select_clean_targets, walk_tree
from texcompose.core.config import DEFAULT_CLEAN_PATTERNS
from texcompose.core.diagnostics import LogMessage, MessageSeverity
from texcompose.core.exceptions import BuildKilledError, ToolNotFoundError
from texcompose.core.process import ProcessManager

from .log import parse_log_file


logger = logging.getLogger(__name__)


@runtime_checkable
class DiCy(Protocol):
    """Stateful build engine handling every document of a session."""

    def set_instance_options(self, file_path: Path, options: Mapping[str, Any]) -> None: ...

    def set_user_options(self, file_path: Path, options: Mapping[str, Any]) -> None: ...

    def clear(self, file_path: Path) -> None: ...

    def run(self, file_path: Path, *commands: str) -> bool: ...

    def get_target_paths(self, file_path: Path) -> list[Path]: ...

    def pop_messages(self) -> list[LogMessage]: ...

    def kill(self) -> None: ...


class TectonicDiCy:
    """DiCy engine compiling documents with Tectonic."""

    executable = "tectonic"

    def __init__(self, *, process: ProcessManager, cache_dir: Path | None = None) -> None:
        self.process = process
        self.cache_dir = cache_dir
        self._instance_options: dict[Path, dict[str, Any]] = {}
        self._user_options: dict[Path, dict[str, Any]] = {}
        self._targets: dict[Path, list[Path]] = {}
        self._messages: list[LogMessage] = []

    def set_instance_options(self, file_path: Path, options: Mapping[str, Any]) -> None:
        self._instance_options[Path(file_path)] = dict(options)

    def set_user_options(self, file_path: Path, options: Mapping[str, Any]) -> None:
        self._user_options[Path(file_path)] = dict(options)

    def clear(self, file_path: Path) -> None:
        path = Path(file_path)
        self._targets.pop(path, None)
        cache_file = self._cache_file(path)
        if cache_file is not None:
            cache_file.unlink(missing_ok=True)

    def get_target_paths(self, file_path: Path) -> list[Path]:
        return list(self._targets.get(Path(file_path), []))

    def pop_messages(self) -> list[LogMessage]:
        messages, self._messages = self._messages, []
        return messages

    def kill(self) -> None:
        self.process.kill_child_processes()

    def run(self, file_path: Path, *commands: str) -> bool:
        path = Path(file_path)
        for command in commands:
            handler = getattr(self, f"_command_{command}", None)
            if handler is None:
                self._report(MessageSeverity.ERROR, f"Unknown DiCy command '{command}'.")
                return False
            if not handler(path):
                return False
        return True

    def _option(self, file_path: Path, name: str, default: Any = None) -> Any:
        instance = self._instance_options.get(file_path, {})
        if name in instance:
            return instance[name]
        return self._user_options.get(file_path, {}).get(name, default)

    def _output_directory(self, file_path: Path) -> Path:
        directory = self._option(file_path, "outputDirectory")
        return file_path.parent / directory if directory else file_path.parent

    def _report(
        self,
        severity: MessageSeverity,
        text: str,
        file_path: Path | None = None,
    ) -> None:
        self._messages.append(LogMessage(severity=severity, text=text, file_path=file_path))

    def _threshold(self, file_path: Path) -> MessageSeverity:
        try:
            return MessageSeverity.coerce(self._option(file_path, "severity", "warning"))
        except ValueError:
            return MessageSeverity.WARNING

    def _command_load(self, file_path: Path) -> bool:
        if self._option(file_path, "loadCache", True) is False:
            return True
        cache_file = self._cache_file(file_path)
        if cache_file is None or not cache_file.is_file():
            return True
        try:
            payload = json.loads(cache_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.debug("Ignoring unreadable DiCy cache %s: %s", cache_file, exc)
            return True
        if self._option(file_path, "validateCache", True) is not False:
            try:
                if file_path.stat().st_mtime > float(payload.get("mtime", 0)):
                    return True
            except OSError:
                return True
        self._targets[file_path] = [Path(item) for item in payload.get("targets", [])]
        return True

    def _command_build(self, file_path: Path) -> bool:
        output_format = self._option(file_path, "outputFormat", "pdf")
        if output_format != "pdf":
            self._report(
                MessageSeverity.ERROR,
                f"Tectonic cannot produce '{output_format}' output.",
                file_path,
            )
            return False

        outdir = self._output_directory(file_path)
        outdir.mkdir(parents=True, exist_ok=True)
        synctex = bool(self._option(file_path, "synctex", False))
        argv = [
            self.executable,
            "-X",
            "compile",
            str(file_path),
            "--keep-logs",
            "--keep-intermediates",
            "--outdir",
            str(outdir),
        ]
        if synctex:
            argv.append("--synctex")
        if self._option(file_path, "shellEscape") == "enabled":
            argv.extend(["-Z", "shell-escape"])

        try:
            result = self.process.execute(argv, cwd=file_path.parent)
        except ToolNotFoundError as exc:
            self._report(MessageSeverity.ERROR, str(exc), file_path)
            return False
        except BuildKilledError:
            self._report(MessageSeverity.INFO, "Tectonic build was killed.", file_path)
            return False

        if result.status_code != 0:
            detail = result.stderr.strip().splitlines()
            summary = detail[-1] if detail else f"status code {result.status_code}"
            self._report(MessageSeverity.ERROR, f"Tectonic failed: {summary}", file_path)
            return False

        targets = [outdir / f"{file_path.stem}.pdf"]
        if synctex:
            targets.append(outdir / f"{file_path.stem}.synctex.gz")
        self._targets[file_path] = [target for target in targets if target.exists()]
        return bool(self._targets[file_path])

    def _command_log(self, file_path: Path) -> bool:
        log_path = self._output_directory(file_path) / f"{file_path.stem}.log"
        result = parse_log_file(log_path, file_path.parent)
        if result is None:
            return True
        threshold = self._threshold(file_path).rank
        for message in result.messages:
            if message.severity.rank <= threshold:
                self._messages.append(message)
        return not any(message.severity is MessageSeverity.ERROR for message in result.messages)

    def _command_save(self, file_path: Path) -> bool:
        cache_file = self._cache_file(file_path)
        if cache_file is None:
            return True
        try:
            mtime = file_path.stat().st_mtime
        except OSError:
            mtime = 0.0
        payload = {
            "source": str(file_path),
            "mtime": mtime,
            "targets": [str(target) for target in self._targets.get(file_path, [])],
        }
        try:
            cache_file.parent.mkdir(parents=True, exist_ok=True)
            cache_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            self._report(MessageSeverity.WARNING, f"Unable to save DiCy cache: {exc}", file_path)
        return True

    def _command_clean(self, file_path: Path) -> bool:
        """Remove intermediate files matching ``cleanPatterns``; targets are kept."""
        outdir = self._output_directory(file_path)
        patterns = expand_patterns(
            self._option(file_path, "cleanPatterns") or DEFAULT_CLEAN_PATTERNS,
            file_path.stem,
        )
        candidates = {*walk_tree(file_path.parent), *walk_tree(outdir)}
        keep = set(self._targets.get(file_path, []))
        targets = select_clean_targets(
            candidates,
            patterns,
            project_path=file_path.parent,
            output_path=outdir,
        )
        for candidate in sorted(targets - keep, key=lambda item: len(item.parts)):
            try:
                if candidate.is_dir():
                    shutil.rmtree(candidate)
                else:
                    candidate.unlink(missing_ok=True)
            except OSError as exc:
                self._report(MessageSeverity.ERROR, f"Unable to remove {candidate}: {exc}")
        return True

    def _cache_file(self, file_path: Path) -> Path | None:
        if self.cache_dir is None:
            return None
        digest = hashlib.sha1(str(file_path).encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.json"


__all__ = ["DiCy", "TectonicDiCy"]
