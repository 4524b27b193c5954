from __future__ import annotations

from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

import pytest

from texcompose.adapters.latex.builders import BuilderRegistry
from texcompose.core.cache import BuildCache
from texcompose.core.composer import Composer
from texcompose.core.config import ComposerConfig
from texcompose.core.context import ComposerContext
from texcompose.core.diagnostics import BuildLog, LoggingStatus, LogMessage
from texcompose.core.process import ProcessManager, ProcessResult
from texcompose.core.state import BuildState, JobState
from texcompose.core.user_dir import user_dir_context
from texcompose.core.workspace import FileWorkspace


FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def isolated_user_dir(tmp_path: Path) -> Iterator[None]:
    with user_dir_context(root=tmp_path / "home", cache_root=tmp_path / "cache"):
        yield


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path.resolve() / "project"
    root.mkdir()
    return root


def write(path: Path, text: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class FakeBuilder:
    """Builder double producing ``<base_name>.pdf`` in the output directory."""

    executable = "fake"

    def __init__(
        self,
        *,
        status_code: int = 0,
        produce_output: bool = True,
        messages: list[LogMessage] | None = None,
        parse_messages: bool = True,
        create_files: bool = False,
        error: BaseException | None = None,
    ) -> None:
        self.status_code = status_code
        self.produce_output = produce_output
        self.messages = messages or []
        self.parse_messages = parse_messages
        self.create_files = create_files
        self.error = error
        self.runs: list[str | None] = []
        self.parse_calls = 0

    def can_process(self, state: BuildState) -> bool:
        return state.tex_file_path is not None

    def run(self, job_state: JobState) -> int:
        self.runs.append(job_state.job_name)
        if self.error is not None:
            raise self.error
        if self.create_files:
            output = job_state.output_root / f"{job_state.base_name}.pdf"
            write(output, "%PDF")
            write(output.with_name(f"{job_state.base_name}.synctex.gz"), "sync")
        return self.status_code

    def construct_args(self, job_state: JobState) -> list[str]:
        return []

    def log_status_code(self, status_code: int, stderr: str | None = None) -> None:
        return

    def parse_log_and_fdb_files(self, job_state: JobState) -> None:
        self.parse_calls += 1
        if job_state.file_database is None:
            job_state.file_database = {}
        if self.produce_output and job_state.output_file_path is None:
            job_state.output_file_path = job_state.output_root / f"{job_state.base_name}.pdf"
        if self.parse_messages:
            job_state.log_messages = list(self.messages)

    def check_runtime_dependencies(self) -> None:
        return


class FakeOpener:
    def __init__(self) -> None:
        self.calls: list[tuple[Path, Path, int]] = []

    def can_open(self, file_path: Path) -> bool:
        return True

    def has_synctex(self) -> bool:
        return True

    def can_open_in_background(self) -> bool:
        return True

    def open(self, file_path: Path, tex_path: Path, line_number: int) -> None:
        self.calls.append((Path(file_path), Path(tex_path), line_number))


class FakeDiCy:
    def __init__(
        self,
        *,
        result: bool = True,
        targets: Sequence[Path] = (),
        messages: Sequence[LogMessage] = (),
    ) -> None:
        self.result = result
        self.targets = list(targets)
        self.messages = list(messages)
        self.calls: list[tuple[Any, ...]] = []
        self.killed = False

    def set_instance_options(self, file_path: Path, options: Any) -> None:
        self.calls.append(("instance", Path(file_path), dict(options)))

    def set_user_options(self, file_path: Path, options: Any) -> None:
        self.calls.append(("user", Path(file_path), dict(options)))

    def clear(self, file_path: Path) -> None:
        self.calls.append(("clear", Path(file_path)))

    def run(self, file_path: Path, *commands: str) -> bool:
        self.calls.append(("run", Path(file_path), commands))
        return self.result

    def get_target_paths(self, file_path: Path) -> list[Path]:
        return list(self.targets)

    def pop_messages(self) -> list[LogMessage]:
        messages, self.messages = self.messages, []
        return messages

    def kill(self) -> None:
        self.killed = True


class FakeProcess(ProcessManager):
    """Process manager recording commands instead of running them."""

    def __init__(self, results: Sequence[ProcessResult] = ()) -> None:
        super().__init__()
        self.results = list(results)
        self.commands: list[dict[str, Any]] = []
        self.spawned: list[list[str]] = []
        self.error: BaseException | None = None

    def execute(self, argv, *, cwd=None, env=None) -> ProcessResult:  # type: ignore[override]
        self.commands.append({"argv": list(argv), "cwd": cwd, "env": dict(env or {})})
        if self.error is not None:
            raise self.error
        return self.results.pop(0) if self.results else ProcessResult(0)

    def spawn(self, argv, *, cwd=None) -> None:  # type: ignore[override]
        if self.error is not None:
            raise self.error
        self.spawned.append(list(argv))


def make_composer(
    file_path: Path | None,
    *,
    builder: FakeBuilder | None = None,
    opener: FakeOpener | None = None,
    config: ComposerConfig | None = None,
    dicy: FakeDiCy | None = None,
    line_number: int = 1,
    workspace: Any = None,
) -> Composer:
    config = config or ComposerConfig()
    log = BuildLog(logging_level="info")
    registry = BuilderRegistry()
    if builder is not None:
        registry.register("fake", builder.can_process, lambda: builder)
    context = ComposerContext(
        config=config,
        log=log,
        status=LoggingStatus(),
        process=ProcessManager(),
        builders=registry,
        opener=opener or FakeOpener(),
        workspace=workspace or FileWorkspace.for_path(file_path, line_number),
        dicy_factory=(lambda: dicy) if dicy is not None else None,
    )
    return Composer(context, cache=BuildCache())
