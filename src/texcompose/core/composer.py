"""Build orchestration: resolve options, run jobs, relocate and open results."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
import glob
import logging
from pathlib import Path
import shutil

from texcompose.adapters.latex.builders import Builder
from texcompose.adapters.latex.dicy import DiCy
from texcompose.adapters.latex.fdb import generated_files, resolve_paths

from .cache import BuildCache
from .cleaning import expand_patterns, normalize_path, select_clean_targets, walk_tree
from .context import ComposerContext
from .exceptions import BuildError, BuildKilledError
from .magic import resolve_root
from .resolver import ConfigResolver
from .state import BuildState, JobState, is_synctex_file, is_tex_file
from .workspace import EditorDetails


logger = logging.getLogger(__name__)

DICY_BUILD_COMMANDS: tuple[str, ...] = ("load", "build", "log", "save")
DICY_CLEAN_COMMANDS: tuple[str, ...] = ("load", "clean", "save")


class BuildPhase(Enum):
    """Stage of the pipeline the composer is currently in."""

    IDLE = "idle"
    RESOLVING = "resolving"
    RUNNING = "running"
    LOG_PARSING = "log-parsing"
    PATH_RESOLVING = "path-resolving"
    MOVING = "moving"
    OPENING = "opening"
    DONE = "done"
    FAILED = "failed"


def alter_parent_path(target_path: Path, original_path: Path) -> Path:
    """Return ``original_path``'s file name placed in ``target_path``'s directory."""
    return Path(target_path).parent / Path(original_path).name


def synctex_path_for(output_path: Path) -> Path:
    return output_path.with_name(f"{output_path.stem}.synctex.gz")


class Composer:
    """Drive builds for the active document of a workspace."""

    def __init__(self, context: ComposerContext, *, cache: BuildCache | None = None) -> None:
        self.context = context
        self.cache = cache or BuildCache()
        self.resolver = ConfigResolver(context.config, log=context.log)
        self.phase = BuildPhase.IDLE
        self.dicy: DiCy | None = None
        self.update_dicy_user_options = True
        self._dicy_configured: set[Path] = set()

    @property
    def config(self):
        return self.context.config

    @property
    def log(self):
        return self.context.log

    @property
    def status(self):
        return self.context.status

    @property
    def opener(self):
        return self.context.opener

    def should_use_dicy(self) -> bool:
        return bool(self.config.use_dicy)

    # Build ----------------------------------------------------------------

    def build(self, should_rebuild: bool = False, should_open_result: bool = True) -> bool:
        """Build the active document.

        Returns ``False`` without side effects when there is nothing to build.
        Builder failures raise :class:`BuildError` after being logged; a killed
        build returns ``False``.
        """
        details = self.context.workspace.get_editor_details()
        if details.file_path is None:
            return False

        if self.should_use_dicy():
            return self._build_with_dicy(details, should_rebuild, should_open_result)

        self.phase = BuildPhase.RESOLVING
        state, builder = self.initialize_build(details.file_path, should_rebuild)
        self._save_editor(details)
        if builder is None:
            self.phase = BuildPhase.IDLE
            return False

        self.log.clear()
        self.status.show("Building LaTeX", "busy")
        failed = False
        try:
            for job_state in state.job_states:
                if not self._run_job(builder, job_state, should_open_result):
                    failed = True
        except BuildKilledError:
            self.phase = BuildPhase.FAILED
            self.log.info("Build was killed.")
            self.status.show("Build killed", "killed")
            return False
        except BuildError as exc:
            self.phase = BuildPhase.FAILED
            self.log.error(str(exc))
            self.status.show("Build failed", "error")
            raise

        if failed:
            self.phase = BuildPhase.FAILED
            self.status.show("Build failed", "error")
        else:
            self.phase = BuildPhase.DONE
            self.status.show("Build succeeded", "success")
        return True

    def _run_job(self, builder: Builder, job_state: JobState, should_open_result: bool) -> bool:
        self.phase = BuildPhase.RUNNING
        status_code = builder.run(job_state)

        self.phase = BuildPhase.LOG_PARSING
        builder.parse_log_and_fdb_files(job_state)
        if job_state.log_messages:
            self.log.show_messages(job_state.log_messages)

        if status_code != 0 or job_state.log_messages is None or job_state.output_file_path is None:
            self.show_error(job_state)
            return False
        self.show_result(builder, job_state, should_open_result)
        return True

    def _save_editor(self, details: EditorDetails) -> None:
        editor = details.editor
        if editor is not None and editor.is_modified():
            editor.save()

    def initialize_build(
        self,
        file_path: str | Path,
        should_rebuild: bool = False,
        *,
        allow_cached: bool = False,
    ) -> tuple[BuildState, Builder | None]:
        """Resolve the build state for ``file_path`` and select a builder.

        A fresh state is resolved unless ``allow_cached`` is set and a cached
        state exists for the file.
        """
        path = Path(file_path).resolve()
        cached = self.cache.get_state(path)
        if allow_cached and cached is not None:
            state = cached
        else:
            state = self.resolver.resolve(path, cached=cached)
            self.cache.put(state)
        state.should_rebuild = should_rebuild
        return state, self.context.builders.get_builder(state)

    def should_move_result(self, job_state: JobState) -> bool:
        return bool(job_state.move_result_to_source_directory and job_state.output_directory)

    def resolve_output_file_path(self, builder: Builder, job_state: JobState) -> Path | None:
        output_file_path = job_state.output_file_path
        if output_file_path is not None:
            return output_file_path

        builder.parse_log_and_fdb_files(job_state)
        output_file_path = job_state.output_file_path
        if output_file_path is None:
            return None
        if self.should_move_result(job_state):
            output_file_path = alter_parent_path(job_state.file_path, output_file_path)
        return output_file_path

    def move_result(self, job_state: JobState) -> None:
        """Move the output file and its SyncTeX file next to the root document."""
        original = job_state.output_file_path
        if original is None:
            return
        destination = alter_parent_path(job_state.file_path, original)
        job_state.output_file_path = destination

        self._move_file(original, destination)
        original_synctex = synctex_path_for(original)
        if original_synctex.exists():
            self._move_file(original_synctex, alter_parent_path(job_state.file_path, original_synctex))

    def _move_file(self, source: Path, destination: Path) -> None:
        if not source.exists() or source == destination:
            return
        try:
            _remove_path(destination)
            shutil.move(str(source), str(destination))
        except OSError as exc:
            self.log.error(f"Unable to move {source} to {destination}: {exc}")

    def show_result(self, builder: Builder, job_state: JobState, should_open_result: bool = True) -> None:
        if self.should_move_result(job_state):
            self.phase = BuildPhase.MOVING
            self.move_result(job_state)

        self.phase = BuildPhase.PATH_RESOLVING
        output_file_path = self.resolve_output_file_path(builder, job_state)
        if output_file_path is None:
            self.log.error("No output file detected.")
            return

        if should_open_result and self.config.open_result_after_build:
            self.phase = BuildPhase.OPENING
            details = self.context.workspace.get_editor_details()
            source = details.file_path or job_state.file_path
            self.opener.open(output_file_path, source, details.line_number)

    def show_error(self, job_state: JobState) -> None:
        if job_state.log_messages is None:
            self.log.error("Parsing of log files failed.")
        elif job_state.output_file_path is None:
            self.log.error("No output file detected.")

    # Clean ----------------------------------------------------------------

    def get_generated_file_list(self, builder: Builder, job_state: JobState) -> set[Path]:
        """Return files named after the job in the output directory plus fdb outputs."""
        if job_state.file_database is None:
            builder.parse_log_and_fdb_files(job_state)
        output_root = normalize_path(job_state.output_root)
        files = {
            normalize_path(path)
            for path in output_root.glob(f"{glob.escape(job_state.base_name)}*")
        }
        generated = generated_files(job_state.file_database)
        for candidate in resolve_paths(generated, job_state.project_path):
            files.add(normalize_path(candidate))
        return files

    def clean(self) -> bool:
        """Remove generated files matching the clean patterns of every job."""
        details = self.context.workspace.get_editor_details()
        if details.file_path is None or not is_tex_file(details.file_path):
            return False

        if self.should_use_dicy():
            return self.run_dicy(DICY_CLEAN_COMMANDS, open_results=False)

        self.phase = BuildPhase.RESOLVING
        state, builder = self.initialize_build(details.file_path, allow_cached=True)
        if builder is None:
            self.phase = BuildPhase.IDLE
            return False

        self.status.show("Cleaning", "busy")
        targets: set[Path] = set()
        for job_state in state.job_states:
            patterns = expand_patterns(job_state.clean_patterns, job_state.base_name)
            if not patterns:
                continue
            candidates = set(self.get_generated_file_list(builder, job_state))
            candidates.update(walk_tree(job_state.project_path))
            if job_state.output_directory:
                candidates.update(walk_tree(normalize_path(job_state.output_root)))
            targets |= select_clean_targets(
                candidates,
                patterns,
                project_path=job_state.project_path,
                output_path=job_state.output_root,
            )

        for target in sorted(targets, key=lambda item: len(item.parts)):
            try:
                _remove_path(target)
            except OSError as exc:
                self.log.error(f"Unable to remove {target}: {exc}")
        logger.debug("Removed %d generated path(s)", len(targets))
        self.status.show("Clean complete", "success")
        self.phase = BuildPhase.DONE
        return True

    # Sync / kill ----------------------------------------------------------

    def sync(self) -> None:
        """Show the position of the editor cursor in every job output."""
        details = self.context.workspace.get_editor_details()
        if details.file_path is None:
            return

        state, builder = self.initialize_build(details.file_path, allow_cached=True)
        if builder is None:
            return
        for job_state in state.job_states:
            output_file_path = self.resolve_output_file_path(builder, job_state)
            if output_file_path is None:
                self.log.warning("Could not resolve path to output file associated with the current file.")
                return
            self.opener.open(output_file_path, details.file_path, details.line_number)

    def kill(self) -> int:
        """Terminate running child processes and the DiCy engine if it was started."""
        killed = self.context.process.kill_child_processes()
        if self.dicy is not None:
            self.dicy.kill()
        if killed:
            self.log.info(f"Killed {killed} running process(es).")
        return killed

    # DiCy -----------------------------------------------------------------

    def start_dicy(self) -> DiCy:
        factory = self.context.dicy_factory
        if factory is None:
            raise BuildError("No DiCy engine is configured.")
        self.dicy = factory()
        return self.dicy

    def _require_dicy(self) -> DiCy:
        if self.dicy is None:
            return self.start_dicy()
        return self.dicy

    def initialize_dicy(
        self,
        file_path: str | Path,
        should_rebuild: bool = False,
        fast_load: bool = False,
    ) -> Path:
        """Prepare the DiCy engine for the root of ``file_path`` and return that root."""
        dicy = self._require_dicy()

        root, _ = resolve_root(file_path)
        options: dict[str, object] = {"severity": "info"}
        if fast_load:
            options["validateCache"] = False
        if should_rebuild:
            options["loadCache"] = False

        dicy.set_instance_options(root, options)
        if should_rebuild:
            dicy.clear(root)
        if self.update_dicy_user_options and root not in self._dicy_configured:
            dicy.set_user_options(root, self.config.dicy_user_options())
            self._dicy_configured.add(root)
        return root

    def run_dicy(
        self,
        commands: Sequence[str],
        open_results: bool = True,
        *,
        should_rebuild: bool = False,
    ) -> bool:
        """Run DiCy commands on the active document and open produced targets."""
        details = self.context.workspace.get_editor_details()
        if details.file_path is None:
            return False

        root = self.initialize_dicy(details.file_path, should_rebuild)
        dicy = self._require_dicy()

        self.phase = BuildPhase.RUNNING
        result = dicy.run(root, *commands)
        self.log.show_messages(dicy.pop_messages())

        if result and open_results is not False:
            self.phase = BuildPhase.OPENING
            for target in dicy.get_target_paths(root):
                if not is_synctex_file(target):
                    self.opener.open(Path(target), details.file_path, details.line_number)

        self.phase = BuildPhase.DONE if result else BuildPhase.FAILED
        return bool(result)

    def _build_with_dicy(
        self, details: EditorDetails, should_rebuild: bool, should_open_result: bool
    ) -> bool:
        self._save_editor(details)
        self.log.clear()
        self.status.show("Building LaTeX", "busy")
        try:
            result = self.run_dicy(
                DICY_BUILD_COMMANDS,
                open_results=should_open_result and self.config.open_result_after_build,
                should_rebuild=should_rebuild,
            )
        except BuildKilledError:
            self.phase = BuildPhase.FAILED
            self.log.info("Build was killed.")
            self.status.show("Build killed", "killed")
            return False
        self.status.show("Build succeeded" if result else "Build failed", "success" if result else "error")
        return result


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


__all__ = [
    "DICY_BUILD_COMMANDS",
    "DICY_CLEAN_COMMANDS",
    "BuildPhase",
    "Composer",
    "alter_parent_path",
    "synctex_path_for",
]
