"""Build state model: one BuildState per root document, one JobState per job name."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from .diagnostics import LogMessage


TEX_EXTENSIONS: tuple[str, ...] = (".tex", ".lhs")


def is_tex_file(file_path: str | Path | None) -> bool:
    """Return True when ``file_path`` names a document latexmk can process."""
    if not file_path:
        return False
    return Path(file_path).suffix.lower() in TEX_EXTENSIONS


def is_synctex_file(file_path: str | Path) -> bool:
    return Path(file_path).name.endswith(".synctex.gz")


def _distinct_job_names(job_names: Iterable[str | None] | None) -> list[str | None]:
    names: list[str | None] = []
    for name in job_names or ():
        if name is not None:
            name = str(name).strip() or None
        if name not in names:
            names.append(name)
    return names or [None]


class BuildState:
    """Options and per-job results for one build of a root document."""

    def __init__(
        self,
        file_path: str | Path,
        job_names: Sequence[str | None] | None = None,
        should_rebuild: bool = False,
    ) -> None:
        self._file_path = Path(file_path)
        self.subfiles: set[Path] = set()
        self.engine = "pdflatex"
        self.output_format = "pdf"
        self.producer = "dvipdfmx"
        self.output_directory = ""
        self.clean_patterns: list[str] = []
        self.enable_shell_escape = False
        self.enable_synctex = False
        self.enable_extended_build_mode = False
        self.move_result_to_source_directory = False
        self._should_rebuild = should_rebuild
        self._job_names: list[str | None] = []
        self._job_states: list[JobState] = []
        self.job_names = job_names or [None]

    def __repr__(self) -> str:
        return f"BuildState({str(self._file_path)!r}, job_names={self._job_names!r})"

    @property
    def file_path(self) -> Path:
        return self._file_path

    @file_path.setter
    def file_path(self, value: str | Path) -> None:
        self._file_path = Path(value)

    @property
    def project_path(self) -> Path:
        return self._file_path.parent

    @property
    def tex_file_path(self) -> Path | None:
        return self._file_path if is_tex_file(self._file_path) else None

    @property
    def job_names(self) -> list[str | None]:
        return list(self._job_names)

    @job_names.setter
    def job_names(self, value: Iterable[str | None] | None) -> None:
        self._job_names = _distinct_job_names(value)
        self._job_states = [JobState(self, name) for name in self._job_names]

    @property
    def job_states(self) -> list[JobState]:
        return list(self._job_states)

    @property
    def should_rebuild(self) -> bool:
        return self._should_rebuild

    @should_rebuild.setter
    def should_rebuild(self, value: bool) -> None:
        self._should_rebuild = bool(value)
        if self._should_rebuild:
            for job_state in self._job_states:
                job_state.file_database = None

    def add_subfile(self, file_path: str | Path) -> None:
        self.subfiles.add(Path(file_path))

    def has_subfile(self, file_path: str | Path) -> bool:
        return Path(file_path) in self.subfiles


class JobState:
    """Per-job view onto a BuildState plus the results of running that job."""

    def __init__(self, parent: BuildState, job_name: str | None = None) -> None:
        self._parent = parent
        self.job_name = job_name
        self.output_file_path: Path | None = None
        self.log_messages: list[LogMessage] | None = None
        self.file_database: dict[str, dict[str, list[str]]] | None = None

    def __repr__(self) -> str:
        return f"JobState({str(self.file_path)!r}, job_name={self.job_name!r})"

    @property
    def build_state(self) -> BuildState:
        return self._parent

    @property
    def file_path(self) -> Path:
        return self._parent.file_path

    @property
    def project_path(self) -> Path:
        return self._parent.project_path

    @property
    def tex_file_path(self) -> Path | None:
        return self._parent.tex_file_path

    @property
    def engine(self) -> str:
        return self._parent.engine

    @property
    def output_format(self) -> str:
        return self._parent.output_format

    @property
    def producer(self) -> str:
        return self._parent.producer

    @property
    def output_directory(self) -> str:
        return self._parent.output_directory

    @property
    def clean_patterns(self) -> list[str]:
        return list(self._parent.clean_patterns)

    @property
    def enable_shell_escape(self) -> bool:
        return self._parent.enable_shell_escape

    @property
    def enable_synctex(self) -> bool:
        return self._parent.enable_synctex

    @property
    def enable_extended_build_mode(self) -> bool:
        return self._parent.enable_extended_build_mode

    @property
    def move_result_to_source_directory(self) -> bool:
        return self._parent.move_result_to_source_directory

    @property
    def should_rebuild(self) -> bool:
        return self._parent.should_rebuild

    @property
    def base_name(self) -> str:
        """Job name, or the root document stem for the implicit job."""
        return self.job_name or self.file_path.stem

    @property
    def output_root(self) -> Path:
        """Directory latexmk writes this job's artifacts into."""
        if self.output_directory:
            return self.project_path / self.output_directory
        return self.project_path

    def snapshot(self) -> dict[str, Any]:
        """Return the fields that influence command construction."""
        return {
            "file_path": self.file_path,
            "job_name": self.job_name,
            "engine": self.engine,
            "output_format": self.output_format,
            "producer": self.producer,
            "output_directory": self.output_directory,
            "enable_shell_escape": self.enable_shell_escape,
            "enable_synctex": self.enable_synctex,
            "enable_extended_build_mode": self.enable_extended_build_mode,
            "should_rebuild": self.should_rebuild,
        }


__all__ = ["TEX_EXTENSIONS", "BuildState", "JobState", "is_synctex_file", "is_tex_file"]
