"""latexmk driver: command construction, execution and result parsing."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import re

from texcompose.core.diagnostics import BuildLog
from texcompose.core.exceptions import ToolNotFoundError
from texcompose.core.process import ProcessManager, ProcessResult
from texcompose.core.state import BuildState, JobState

from ..fdb import find_generated_output, parse_fdb_file
from ..log import parse_log_file
from . import log_generic_status_code


logger = logging.getLogger(__name__)

LATEX_PATTERN = re.compile(r"^latex|u?platex$")
PDF_ENGINE_PATTERN = re.compile(r"^(xelatex|lualatex)$")
LATEXMK_VERSION_PATTERN = re.compile(r"Version\s+(\S+)", re.IGNORECASE)
LATEXMK_MINIMUM_VERSION = "4.37"
LATEXMKRC_PATH = Path(__file__).resolve().parents[3] / "resources" / "latexmkrc"

STATUS_MESSAGES: dict[int, str] = {
    10: "Bad command line arguments.",
    11: "File specified on command line not found or other file not found.",
    12: "Failure in some part of making files.",
    13: "error in initialization file.",
    20: "probable bug or retcode from called program.",
}


class LatexmkBuilder:
    """Build TeX documents by delegating to latexmk."""

    executable = "latexmk"

    def __init__(
        self,
        *,
        log: BuildLog,
        process: ProcessManager,
        use_relative_paths: bool = False,
        latexmkrc_path: Path = LATEXMKRC_PATH,
    ) -> None:
        self.log = log
        self.process = process
        self.use_relative_paths = use_relative_paths
        self.latexmkrc_path = latexmkrc_path

    @staticmethod
    def can_process(state: BuildState) -> bool:
        return state.tex_file_path is not None

    def run(self, job_state: JobState) -> int:
        """Run latexmk for ``job_state`` and return its exit status."""
        args = self.construct_args(job_state)
        result = self.execute_latexmk(job_state.project_path, args)
        if result.status_code != 0:
            self.log_status_code(result.status_code, result.stderr)
        return result.status_code

    def execute_latexmk(self, directory: str | Path, args: list[str]) -> ProcessResult:
        args = list(args)
        if self.use_relative_paths and args:
            # latexmk mishandles special characters in absolute paths.
            absolute = args[-1][1:-1]
            args[-1] = f'"{os.path.relpath(absolute, directory)}"'
        command = " ".join([self.executable, *args])
        return self.process.execute_command(command, cwd=directory, env={"max_print_line": 1000})

    def check_runtime_dependencies(self) -> None:
        try:
            result = self.execute_latexmk(".", ["-v"])
        except ToolNotFoundError:
            self.log.error("latexmk check failed: executable not found.")
            return

        if result.status_code != 0:
            self.log.error(
                f'latexmk check failed with code {result.status_code} and response of "{result.stderr}".'
            )
            return

        match = LATEXMK_VERSION_PATTERN.search(result.stdout)
        if not match:
            self.log.warning(
                f'latexmk check succeeded but with an unknown version response of "{result.stdout}".'
            )
            return

        version = match.group(1)
        # Lexical comparison: "4.9" sorts after "4.10".
        if version < LATEXMK_MINIMUM_VERSION:
            self.log.warning(
                f"latexmk check succeeded but with a version of {version}. "
                f"Minimum version required is {LATEXMK_MINIMUM_VERSION}."
            )
            return

        self.log.info(f"latexmk check succeeded. Found version {version}.")

    def log_status_code(self, status_code: int, stderr: str | None = None) -> None:
        message = STATUS_MESSAGES.get(status_code)
        if message is None:
            log_generic_status_code(self.log, self.executable, status_code, stderr)
            return
        self.log.error(f"latexmk: {message}")

    def construct_args(self, job_state: JobState) -> list[str]:
        """Return the latexmk arguments for ``job_state``; the source path is last."""
        args = [
            "-interaction=nonstopmode",
            "-f",
            "-cd",
            "-file-line-error",
        ]

        if job_state.should_rebuild:
            args.append("-g")
        if job_state.job_name:
            args.append(f'-jobname="{job_state.job_name}"')
        if job_state.enable_shell_escape:
            args.append("-shell-escape")
        if job_state.enable_synctex:
            args.append("-synctex=1")
        if job_state.enable_extended_build_mode:
            args.append(f'-r "{self.latexmkrc_path}"')

        engine = job_state.engine
        output_format = job_state.output_format
        if LATEX_PATTERN.search(engine):
            args.append(f'-latex="{engine}"')
            args.append(
                self.construct_pdf_producer_args(job_state)
                if output_format == "pdf"
                else f"-{output_format}"
            )
        elif output_format == "pdf" and PDF_ENGINE_PATTERN.match(engine):
            args.append(f"-{engine}")
        else:
            if engine != "pdflatex":
                args.append(f'-pdflatex="{engine}"')
            args.append(f"-{output_format}")

        if job_state.output_directory:
            args.append(f'-outdir="{job_state.output_directory}"')

        args.append(f'"{job_state.tex_file_path}"')
        return args

    def construct_pdf_producer_args(self, job_state: JobState) -> str:
        producer = job_state.producer
        if producer == "ps2pdf":
            return "-pdfps"
        if producer == "dvipdf":
            return "-pdfdvi -e \"$dvipdf = 'dvipdf %O %S %D';\""
        return f"-pdfdvi -e \"$dvipdf = '{producer} %O -o %D %S';\""

    def parse_log_and_fdb_files(self, job_state: JobState) -> None:
        """Load the transcript and file database written for ``job_state``."""
        output_root = job_state.output_root
        base_name = job_state.base_name

        database = parse_fdb_file(output_root / f"{base_name}.fdb_latexmk")
        if database is not None:
            job_state.file_database = database

        result = parse_log_file(output_root / f"{base_name}.log", job_state.project_path)
        if result is None:
            logger.debug("No log file for %s in %s", base_name, output_root)
            return

        output_file_path: Path | None = None
        if database:
            generated = find_generated_output(
                database, job_state.output_format, producer=job_state.producer
            )
            if generated:
                output_file_path = Path(generated)
        if output_file_path is None:
            output_file_path = result.output_file_path
        if output_file_path is not None:
            if not output_file_path.is_absolute():
                output_file_path = job_state.project_path / output_file_path
            if job_state.output_file_path is None:
                job_state.output_file_path = Path(os.path.normpath(output_file_path))
        job_state.log_messages = result.messages


__all__ = [
    "LATEXMKRC_PATH",
    "LATEXMK_MINIMUM_VERSION",
    "LATEX_PATTERN",
    "PDF_ENGINE_PATTERN",
    "STATUS_MESSAGES",
    "LatexmkBuilder",
]
