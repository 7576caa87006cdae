"""Editor boundary used by the hammer and edit controllers.

The controllers never touch buffer text. They save before handing the file
to a corrective command and reload after it finishes, so whatever the
command wrote to disk becomes the editor's content.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import click

logger = logging.getLogger(__name__)


class EditorContext(ABC):
    """The file being worked on and the editor showing it."""

    @property
    @abstractmethod
    def file_path(self) -> str:
        """Absolute path of the edited file."""
        pass

    @property
    @abstractmethod
    def language_tag(self) -> str:
        """Filetype of the edited file, e.g. "python"."""
        pass

    @abstractmethod
    def save(self) -> None:
        """Persist the current content to disk."""
        pass

    @abstractmethod
    def reload(self) -> None:
        """Replace the current content with what is on disk."""
        pass

    @abstractmethod
    def focus(self) -> None:
        """Return focus to the original editing location."""
        pass

    def set_busy(self, busy: bool) -> None:
        """Show or clear an in-progress indicator."""
        pass

    def notify(self, message: str, error: bool = False) -> None:
        """Report a message to the user."""
        if error:
            logger.error(message)
        else:
            logger.info(message)


LANGUAGE_BY_SUFFIX = {
    ".py": "python",
    ".go": "go",
    ".rs": "rust",
    ".js": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".java": "java",
    ".rb": "ruby",
    ".lua": "lua",
    ".sh": "sh",
    ".md": "markdown",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
    ".toml": "toml",
}


def guess_language_tag(path: Path) -> str:
    return LANGUAGE_BY_SUFFIX.get(path.suffix.lower(), "text")


class FileEditorContext(EditorContext):
    """
    Headless editor over a single file.

    Keeps an in-memory copy of the file. save() writes the copy back if it
    was modified, reload() re-reads the file.
    """

    def __init__(self, path, language_tag: Optional[str] = None, echo: bool = False):
        self._path = Path(path).resolve()
        self._language_tag = language_tag or guess_language_tag(self._path)
        self.echo = echo
        self.busy = False
        self.messages: list[tuple[str, bool]] = []
        self.focus_count = 0
        self.text = self._path.read_text() if self._path.exists() else ""
        self._saved_text = self.text

    @property
    def file_path(self) -> str:
        return str(self._path)

    @property
    def language_tag(self) -> str:
        return self._language_tag

    @property
    def modified(self) -> bool:
        return self.text != self._saved_text

    def save(self) -> None:
        if self.modified or not self._path.exists():
            self._path.write_text(self.text)
            logger.debug("Saved %s", self._path)
        self._saved_text = self.text

    def reload(self) -> None:
        self.text = self._path.read_text()
        self._saved_text = self.text
        logger.debug("Reloaded %s", self._path)

    def focus(self) -> None:
        self.focus_count += 1

    def set_busy(self, busy: bool) -> None:
        self.busy = busy

    def notify(self, message: str, error: bool = False) -> None:
        self.messages.append((message, error))
        super().notify(message, error)
        if self.echo:
            click.echo(message, err=error)
