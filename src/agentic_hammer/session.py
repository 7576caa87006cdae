"""User-facing commands for one editor session."""

import asyncio
from typing import Callable, Optional

from agentic_hammer.config import Config
from agentic_hammer.edit import EditController
from agentic_hammer.editor import EditorContext
from agentic_hammer.hammer import HammerController, LoopAlreadyRunningError, LoopOutcome
from agentic_hammer.output_sink import BufferSurface, OutputSink, Surface
from agentic_hammer.process_runner import ProcessRunner, RunResult


class HammerSession:
    """
    The start-loop and edit commands, bound to one editor.

    Hammer output and edit output go to separate sinks; each sink is reused
    by every invocation of its command. Both commands return the scheduled
    task, or None when the command is already running (the user is told).
    """

    def __init__(
        self,
        editor: EditorContext,
        config: Optional[Config] = None,
        runner: Optional[ProcessRunner] = None,
        surface_factory: Callable[[], Surface] = BufferSurface,
    ):
        self.editor = editor
        self.config = config or Config()
        self.runner = runner or ProcessRunner()
        self.hammer = HammerController(
            editor,
            config=self.config,
            runner=self.runner,
            sink=OutputSink(surface_factory),
        )
        self.editing = EditController(
            editor,
            config=self.config,
            runner=self.runner,
            sink=OutputSink(surface_factory),
        )

    def start_loop(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> Optional["asyncio.Task[LoopOutcome]"]:
        try:
            return self.hammer.start_loop(model=model, base_url=base_url)
        except LoopAlreadyRunningError as e:
            self.editor.notify(str(e), error=True)
            return None

    def edit(
        self,
        instruction: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> Optional["asyncio.Task[RunResult]"]:
        try:
            return self.editing.start_edit(instruction, model=model, base_url=base_url)
        except LoopAlreadyRunningError as e:
            self.editor.notify(str(e), error=True)
            return None
