"""Asynchronous execution of a single external command.

Both output pipes are read concurrently and every decoded chunk is handed
to a callback as soon as it arrives, on the event loop thread. A chunk is
delivered as a list of lines: the text split on newlines, the last element
being the (possibly empty) unterminated tail. Joining consecutive chunks
charwise therefore reproduces the stream exactly.
"""

import asyncio
import codecs
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from agentic_hammer.constants import SPAWN_FAILURE_EXIT_CODE
from agentic_hammer.run_request import RunRequest

logger = logging.getLogger(__name__)

STDOUT = "stdout"
STDERR = "stderr"

ChunkCallback = Callable[[List[str]], None]


@dataclass
class OutputChunk:
    """Decoded text read from one stream."""
    stream: str  # STDOUT | STDERR
    text: str

    def lines(self) -> List[str]:
        return self.text.split("\n")


@dataclass
class RunResult:
    """Outcome of one ProcessRunner invocation."""
    exit_code: int
    chunks: List[OutputChunk] = field(default_factory=list)
    spawn_error: Optional[str] = None

    @property
    def spawned(self) -> bool:
        return self.spawn_error is None

    @property
    def combined_output(self) -> str:
        """All output in arrival order."""
        return "".join(chunk.text for chunk in self.chunks)

    @property
    def has_output(self) -> bool:
        return any(chunk.text for chunk in self.chunks)


class ProcessRunner:
    """Runs external commands as asyncio child processes.

    The child inherits the environment and, unless the request names one,
    the working directory. There is no timeout and no cancellation: a run
    proceeds until the process exits.
    """

    def __init__(self, read_size: int = 4096):
        self.read_size = read_size

    async def run(
        self,
        request: RunRequest,
        on_stdout: Optional[ChunkCallback] = None,
        on_stderr: Optional[ChunkCallback] = None,
    ) -> RunResult:
        """
        Run the request to completion.

        Returns:
            RunResult with the exit code and every chunk read. If the command
            cannot be started the exit code is SPAWN_FAILURE_EXIT_CODE,
            spawn_error is set and no callback is invoked.
        """
        command_line = request.command_line()
        logger.debug("Starting %s (cwd=%s)", command_line, request.cwd)

        try:
            proc = await asyncio.create_subprocess_exec(
                *command_line,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=request.cwd,
            )
        except OSError as e:
            logger.info("Could not start %s: %s", request.command, e)
            return RunResult(exit_code=SPAWN_FAILURE_EXIT_CODE, spawn_error=str(e))

        result = RunResult(exit_code=SPAWN_FAILURE_EXIT_CODE)

        await asyncio.gather(
            self._pump(proc.stdout, STDOUT, result, on_stdout),
            self._pump(proc.stderr, STDERR, result, on_stderr),
        )
        result.exit_code = await proc.wait()

        logger.debug("%s exited with %s", request.command, result.exit_code)
        return result

    def start(
        self,
        request: RunRequest,
        on_stdout: Optional[ChunkCallback] = None,
        on_stderr: Optional[ChunkCallback] = None,
        on_exit: Optional[Callable[[RunResult], None]] = None,
    ) -> "asyncio.Task[RunResult]":
        """
        Schedule a run on the running event loop and return immediately.

        on_exit is called exactly once with the RunResult.
        """
        loop = asyncio.get_running_loop()

        async def _run() -> RunResult:
            result = await self.run(request, on_stdout, on_stderr)
            if on_exit is not None:
                on_exit(result)
            return result

        return loop.create_task(_run())

    async def _pump(
        self,
        stream: asyncio.StreamReader,
        name: str,
        result: RunResult,
        callback: Optional[ChunkCallback],
    ) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await stream.read(self.read_size)
            text = decoder.decode(data, final=not data)
            if text:
                chunk = OutputChunk(stream=name, text=text)
                result.chunks.append(chunk)
                if callback is not None:
                    callback(chunk.lines())
            if not data:
                break
