"""Display surfaces and the ordered output sink that writes to them."""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, Union

import click

logger = logging.getLogger(__name__)


class Surface(ABC):
    """A text viewport that output is inserted into."""

    @abstractmethod
    def is_valid(self) -> bool:
        """Whether the surface can still be written to."""
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def put(self, text: str) -> None:
        """Insert text charwise at the end of the surface."""
        pass

    @abstractmethod
    def text(self) -> str:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class BufferSurface(Surface):
    """In-memory surface."""

    def __init__(self):
        self._parts: List[str] = []
        self._valid = True

    def is_valid(self) -> bool:
        return self._valid

    def clear(self) -> None:
        self._parts = []

    def put(self, text: str) -> None:
        self._parts.append(text)

    def text(self) -> str:
        return "".join(self._parts)

    def close(self) -> None:
        self._valid = False


class TerminalSurface(BufferSurface):
    """Buffer surface that also echoes everything to the terminal."""

    def __init__(self, err: bool = False):
        super().__init__()
        self.err = err

    def put(self, text: str) -> None:
        super().put(text)
        click.echo(text, nl=False, err=self.err)


Chunk = Union[str, Sequence[str]]


class OutputSink:
    """
    Append-only, ordered output for one user-facing command.

    The sink is reused across invocations: create_or_reset() clears the
    current surface in place while it is still valid and only asks the
    factory for a new one otherwise. Each append is inserted as a single
    unit, so chunks appear in the order their callbacks fire.
    """

    def __init__(self, surface_factory: Callable[[], Surface] = BufferSurface):
        self.surface_factory = surface_factory
        self.surface: Optional[Surface] = None
        self.active = False

    def create_or_reset(self) -> None:
        if self.surface is not None and self.surface.is_valid():
            self.surface.clear()
        else:
            logger.debug("Creating new output surface")
            self.surface = self.surface_factory()
        self.active = True

    def _writable_surface(self) -> Optional[Surface]:
        if self.surface is None:
            return None
        if not self.surface.is_valid():
            if not self.active:
                return None
            # Closed mid-run; keep the rest of the output
            logger.debug("Output surface closed, creating a new one")
            self.surface = self.surface_factory()
        return self.surface

    def append(self, chunk: Chunk) -> None:
        """
        Insert a chunk at the end of the sink.

        A chunk is a list of lines as delivered by ProcessRunner (joined
        with newlines) or a plain string. Appending before the sink was
        ever created is a no-op.
        """
        surface = self._writable_surface()
        if surface is None:
            return

        if isinstance(chunk, str):
            text = chunk
        else:
            text = "\n".join(chunk)

        if text:
            surface.put(text)

    def append_line(self, text: str) -> None:
        """Append text on its own line, followed by a line break."""
        surface = self._writable_surface()
        current = surface.text() if surface is not None else ""
        if current and not current.endswith("\n"):
            self.append(["", text, ""])
        else:
            self.append([text, ""])

    def text(self) -> str:
        if self.surface is None:
            return ""
        return self.surface.text()

    def lines(self) -> List[str]:
        return self.text().split("\n")

    def deactivate(self) -> None:
        self.active = False
