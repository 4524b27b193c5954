"""CLI command implementations exposed via `texcompose.ui.cli`."""

from __future__ import annotations

from .build import build, clean, rebuild, sync, watch
from .runtime import check_runtime, kill, log_app


__all__ = ["build", "check_runtime", "clean", "kill", "log_app", "rebuild", "sync", "watch"]
