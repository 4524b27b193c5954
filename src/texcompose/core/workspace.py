"""Editor and workspace protocols consumed by the composer."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class Editor(Protocol):
    """Minimal view of a text editor holding a document."""

    def get_path(self) -> Path | None: ...

    def is_modified(self) -> bool: ...

    def save(self) -> None: ...


@dataclass(slots=True)
class EditorDetails:
    """Active editor with its document path and cursor line (1-based)."""

    editor: Editor | None
    file_path: Path | None
    line_number: int = 1


@runtime_checkable
class Workspace(Protocol):
    """Source of the currently active editor."""

    def get_active_editor(self) -> Editor | None: ...

    def get_editor_details(self) -> EditorDetails: ...


class FileEditor:
    """Editor backed directly by a file on disk; never holds unsaved changes."""

    def __init__(self, file_path: str | Path | None, line_number: int = 1) -> None:
        self.file_path = Path(file_path) if file_path else None
        self.line_number = line_number

    def get_path(self) -> Path | None:
        return self.file_path

    def is_modified(self) -> bool:
        return False

    def save(self) -> None:
        return


class FileWorkspace:
    """Workspace exposing a single file-backed editor."""

    def __init__(self, editor: FileEditor | None = None) -> None:
        self.editor = editor

    @classmethod
    def for_path(cls, file_path: str | Path | None, line_number: int = 1) -> FileWorkspace:
        return cls(FileEditor(file_path, line_number))

    def get_active_editor(self) -> Editor | None:
        return self.editor

    def get_editor_details(self) -> EditorDetails:
        if self.editor is None:
            return EditorDetails(editor=None, file_path=None)
        path = self.editor.get_path()
        return EditorDetails(
            editor=self.editor,
            file_path=path.resolve() if path is not None else None,
            line_number=self.editor.line_number,
        )


__all__ = ["Editor", "EditorDetails", "FileEditor", "FileWorkspace", "Workspace"]
