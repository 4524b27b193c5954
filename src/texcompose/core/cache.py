"""Versioned cache of build states keyed by root document and known subfiles."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from threading import RLock

from .state import BuildState


logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CacheEntry:
    """Cached build state along with the cache version that stored it."""

    state: BuildState
    version: int


class BuildCache:
    """Map root documents and their subfiles to the most recent build state."""

    def __init__(self) -> None:
        self._entries: dict[Path, CacheEntry] = {}
        self._version = 0
        self._lock = RLock()

    @property
    def version(self) -> int:
        return self._version

    def get(self, file_path: str | Path) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(Path(file_path))

    def get_state(self, file_path: str | Path) -> BuildState | None:
        entry = self.get(file_path)
        return entry.state if entry is not None else None

    def put(self, state: BuildState) -> CacheEntry:
        """Store ``state`` under its root and subfiles, evicting stale entries."""
        with self._lock:
            self.invalidate(state.file_path)
            for subfile in state.subfiles:
                previous = self._entries.get(subfile)
                if previous is not None and previous.state.file_path != state.file_path:
                    logger.debug(
                        "%s now belongs to %s; dropping cached state of %s",
                        subfile,
                        state.file_path,
                        previous.state.file_path,
                    )
                    self.invalidate(previous.state.file_path)

            self._version += 1
            entry = CacheEntry(state=state, version=self._version)
            self._entries[state.file_path] = entry
            for subfile in state.subfiles:
                self._entries[subfile] = entry
            return entry

    def invalidate(self, file_path: str | Path) -> bool:
        """Drop the entry reachable from ``file_path`` together with all its keys."""
        with self._lock:
            entry = self._entries.get(Path(file_path))
            if entry is None:
                return False
            for key in [key for key, value in self._entries.items() if value is entry]:
                del self._entries[key]
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def states(self) -> list[BuildState]:
        with self._lock:
            unique: dict[int, BuildState] = {}
            for entry in self._entries.values():
                unique.setdefault(id(entry.state), entry.state)
            return list(unique.values())

    def __contains__(self, file_path: object) -> bool:
        if not isinstance(file_path, (str, Path)):
            return False
        with self._lock:
            return Path(file_path) in self._entries

    def __len__(self) -> int:
        return len(self.states())


__all__ = ["BuildCache", "CacheEntry"]
