"""One-shot LM edit of the current file.

Saves the file, runs the edit command with the user's instruction, streams
its output to a sink, then returns focus to the file and reloads it. There
is no retry: a failing command is reported and that is all.
"""

import asyncio
import logging
from typing import Optional

from agentic_hammer.config import Config
from agentic_hammer.constants import DUMMY_LINE_RANGE
from agentic_hammer.editor import EditorContext
from agentic_hammer.hammer import LoopAlreadyRunningError
from agentic_hammer.output_sink import OutputSink
from agentic_hammer.process_runner import ProcessRunner, RunResult
from agentic_hammer.run_request import build_fixer_request

logger = logging.getLogger(__name__)


class EditController:
    """Runs edit commands for one editor, one at a time."""

    def __init__(
        self,
        editor: EditorContext,
        config: Optional[Config] = None,
        runner: Optional[ProcessRunner] = None,
        sink: Optional[OutputSink] = None,
    ):
        self.editor = editor
        self.config = config or Config()
        self.runner = runner or ProcessRunner()
        self.sink = sink or OutputSink()
        self.running = False
        self.last_result: Optional[RunResult] = None

    def start_edit(
        self,
        instruction: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> "asyncio.Task[RunResult]":
        """Schedule an edit on the running event loop and return immediately."""
        loop = asyncio.get_running_loop()
        self._claim()
        return loop.create_task(self._edit(instruction, model, base_url))

    async def run_edit(
        self,
        instruction: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> RunResult:
        self._claim()
        return await self._edit(instruction, model, base_url)

    def _claim(self) -> None:
        if self.running:
            raise LoopAlreadyRunningError("An edit is already running")
        self.running = True

    async def _edit(self, instruction: str, model: Optional[str], base_url: Optional[str]) -> RunResult:
        try:
            self.editor.save()
            self.editor.set_busy(True)

            request = build_fixer_request(
                self.config.edit_command,
                self.editor.language_tag,
                self.editor.file_path,
                DUMMY_LINE_RANGE,
                instruction,
                model or self.config.lm_smart_model,
                base_url or self.config.lm_base_path,
            )

            self.sink.create_or_reset()
            self.sink.append_line(f"Editing {self.editor.file_path}")

            result = await self.runner.run(
                request,
                on_stdout=self.sink.append,
                on_stderr=self.sink.append,
            )

            # Swap back to the file and pick up the command's changes
            self.editor.focus()
            self.editor.reload()

            if not result.spawned:
                message = f"Could not start {request.command}: {result.spawn_error}"
                self.sink.append_line(message)
                self.editor.notify(message, error=True)
            else:
                self.sink.append_line(f"Edit finished (status: {result.exit_code})")
                logger.info("Edit of %s finished with %s", self.editor.file_path, result.exit_code)

            self.last_result = result
            return result
        finally:
            self.editor.set_busy(False)
            self.sink.deactivate()
            self.running = False
