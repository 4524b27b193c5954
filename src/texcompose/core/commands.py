"""Named commands dispatched to a composer, plus save-triggered builds."""

from __future__ import annotations

from collections.abc import Callable
import logging
from pathlib import Path

from .composer import Composer


logger = logging.getLogger(__name__)

CommandHandler = Callable[[], object]


class CommandDispatcher:
    """Map command names onto composer and log-sink operations."""

    def __init__(self, composer: Composer) -> None:
        self.composer = composer
        self._handlers: dict[str, CommandHandler] = {
            "build": self.build,
            "rebuild": self.rebuild,
            "clean": self.clean,
            "kill": self.kill,
            "sync": self.sync,
            "toggle-log": self.toggle_log,
            "show-log": self.show_log,
            "hide-log": self.hide_log,
            "clear-log": self.clear_log,
        }

    @property
    def names(self) -> list[str]:
        return sorted(self._handlers)

    def dispatch(self, name: str) -> object:
        try:
            handler = self._handlers[name]
        except KeyError as exc:
            raise KeyError(f"Unknown command '{name}'.") from exc
        logger.debug("Dispatching command %s", name)
        return handler()

    def build(self) -> bool:
        return self.composer.build(False)

    def rebuild(self) -> bool:
        return self.composer.build(True)

    def clean(self) -> bool:
        return self.composer.clean()

    def kill(self) -> int:
        return self.composer.kill()

    def sync(self) -> None:
        self.composer.sync()

    def toggle_log(self) -> None:
        self.composer.log.toggle()

    def show_log(self) -> None:
        self.composer.log.show()

    def hide_log(self) -> None:
        self.composer.log.hide()

    def clear_log(self) -> None:
        self.composer.log.clear()

    def on_did_save(self, file_path: str | Path) -> bool:
        """Build when ``file_path`` belongs to the active editor and builds on save are on.

        Returns ``True`` when a build was started.
        """
        if not self.composer.config.build_on_save:
            return False
        details = self.composer.context.workspace.get_editor_details()
        if details.file_path is None:
            return False
        if Path(file_path).resolve() != Path(details.file_path).resolve():
            return False
        self.composer.build()
        return True


__all__ = ["CommandDispatcher", "CommandHandler"]
