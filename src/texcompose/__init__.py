"""Primary public API for texcompose."""

from __future__ import annotations

from texcompose.core.cache import BuildCache
from texcompose.core.commands import CommandDispatcher
from texcompose.core.composer import BuildPhase, Composer
from texcompose.core.config import ComposerConfig, load_config
from texcompose.core.context import ComposerContext, create_context
from texcompose.core.diagnostics import BuildLog, LogMessage, MessageSeverity
from texcompose.core.exceptions import (
    BuildError,
    BuildKilledError,
    ComposerError,
    ConfigurationError,
    ToolNotFoundError,
)
from texcompose.core.state import BuildState, JobState
from texcompose.core.user_dir import (
    ComposerUserDir,
    configure_user_dir,
    get_user_dir,
    user_dir_context,
)
from texcompose.core.workspace import EditorDetails, FileEditor, FileWorkspace

from .version import get_version


__version__ = get_version()

__all__ = [
    "BuildCache",
    "BuildError",
    "BuildKilledError",
    "BuildLog",
    "BuildPhase",
    "BuildState",
    "CommandDispatcher",
    "ComposerConfig",
    "ComposerContext",
    "ComposerError",
    "ComposerUserDir",
    "Composer",
    "ConfigurationError",
    "EditorDetails",
    "FileEditor",
    "FileWorkspace",
    "JobState",
    "LogMessage",
    "MessageSeverity",
    "ToolNotFoundError",
    "__version__",
    "configure_user_dir",
    "create_context",
    "get_user_dir",
    "get_version",
    "load_config",
    "user_dir_context",
]
