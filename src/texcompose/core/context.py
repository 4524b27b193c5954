"""Explicit collaborator bundle handed to the composer and command layer."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from texcompose.adapters.latex.builders import BuilderRegistry
from texcompose.adapters.latex.builders.latexmk import LatexmkBuilder
from texcompose.adapters.latex.dicy import DiCy, TectonicDiCy
from texcompose.adapters.openers import Opener, OpenerRegistry
from texcompose.adapters.openers.okular import OkularOpener
from texcompose.adapters.openers.preview import PreviewOpener
from texcompose.adapters.openers.skim import SkimOpener
from texcompose.adapters.openers.xdg import XdgOpener

from .config import ComposerConfig
from .diagnostics import BuildLog, LoggingStatus, StatusSink
from .process import ProcessManager
from .user_dir import get_user_dir
from .workspace import FileWorkspace, Workspace


PROCESS_REGISTRY_NAMESPACE = "processes"
DICY_CACHE_NAMESPACE = "dicy"


@dataclass(slots=True)
class ComposerContext:
    """Everything a composer needs, built once per process and passed explicitly."""

    config: ComposerConfig
    log: BuildLog
    status: StatusSink
    process: ProcessManager
    builders: BuilderRegistry
    opener: Opener
    workspace: Workspace
    dicy_factory: Callable[[], DiCy] | None = None


def create_builder_registry(
    config: ComposerConfig, log: BuildLog, process: ProcessManager
) -> BuilderRegistry:
    registry = BuilderRegistry()
    registry.register(
        "latexmk",
        LatexmkBuilder.can_process,
        lambda: LatexmkBuilder(
            log=log,
            process=process,
            use_relative_paths=config.use_relative_paths,
        ),
    )
    return registry


def create_opener_registry(
    config: ComposerConfig, log: BuildLog, process: ProcessManager
) -> OpenerRegistry:
    background = config.open_in_background
    return OpenerRegistry(
        [
            (
                "okular",
                OkularOpener(
                    process=process,
                    log=log,
                    okular_path=config.okular_path,
                    open_in_background=background,
                ),
            ),
            (
                "skim",
                SkimOpener(
                    process=process,
                    log=log,
                    skim_path=config.skim_path,
                    open_in_background=background,
                ),
            ),
            ("preview", PreviewOpener(process=process, log=log, open_in_background=background)),
            ("xdg-open", XdgOpener(process=process, log=log)),
        ],
        preference=config.opener,
        log=log,
    )


def create_context(
    config: ComposerConfig | None = None,
    *,
    workspace: Workspace | None = None,
    log: BuildLog | None = None,
    status: StatusSink | None = None,
    track_processes: bool = False,
) -> ComposerContext:
    """Assemble the default collaborators for ``config``.

    ``track_processes`` records child pids in the user cache so that another
    invocation can kill them.
    """
    config = config or ComposerConfig()
    log = log or BuildLog(logging_level=config.logging_level)
    registry_dir = (
        get_user_dir().cache_dir(PROCESS_REGISTRY_NAMESPACE) if track_processes else None
    )
    process = ProcessManager(registry_dir=registry_dir)

    def dicy_factory() -> DiCy:
        return TectonicDiCy(
            process=process,
            cache_dir=get_user_dir().cache_dir(DICY_CACHE_NAMESPACE),
        )

    return ComposerContext(
        config=config,
        log=log,
        status=status or LoggingStatus(),
        process=process,
        builders=create_builder_registry(config, log, process),
        opener=create_opener_registry(config, log, process),
        workspace=workspace or FileWorkspace(),
        dicy_factory=dicy_factory,
    )


__all__ = [
    "ComposerContext",
    "create_builder_registry",
    "create_context",
    "create_opener_registry",
]
