"""Hammer mode: loop the LM until the project's verification script passes.

The end condition is defined by a script (named "hammer" by default) in the
edited file's directory or one of its parents. It exits non-zero while there
is more work and prints whatever explains why: compiler errors, test
failures. Each loop iteration:

  - Run the verification script, streaming its output to the sink.
    - Exit 0: done.
  - Save the edited file and run the corrective command with the
    verification output as its prompt.
  - Reload the file, which the corrective command may have rewritten.

States:
    IDLE -> VERIFYING -> (TERMINATED | CORRECTING) -> VERIFYING -> ...

Each state has one handler; the handler runs the phase and returns the next
state. Only one process is in flight at a time because the next phase is
entered only after the previous run has completed.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from agentic_hammer.config import Config
from agentic_hammer.constants import DUMMY_LINE_RANGE
from agentic_hammer.editor import EditorContext
from agentic_hammer.output_sink import OutputSink
from agentic_hammer.process_runner import ProcessRunner, RunResult
from agentic_hammer.run_request import build_fixer_request, make_request, working_context
from agentic_hammer.script_locator import find_script

logger = logging.getLogger(__name__)


class HammerState(str, Enum):
    IDLE = "IDLE"
    VERIFYING = "VERIFYING"
    CORRECTING = "CORRECTING"
    TERMINATED = "TERMINATED"


class TerminationReason(str, Enum):
    SUCCESS = "success"
    BUDGET_EXHAUSTED = "budget-exhausted"
    SCRIPT_NOT_FOUND = "script-not-found"
    SPAWN_FAILED = "spawn-failed"
    FIXER_SPAWN_FAILED = "fixer-spawn-failed"
    ERROR = "error"


# Reasons reported to the user as errors
ERROR_REASONS = {
    TerminationReason.SCRIPT_NOT_FOUND,
    TerminationReason.SPAWN_FAILED,
    TerminationReason.FIXER_SPAWN_FAILED,
    TerminationReason.ERROR,
}


class LoopAlreadyRunningError(RuntimeError):
    """Raised when a loop is started while another one is in flight."""
    pass


@dataclass
class AttemptRecord:
    """One verification or corrective run."""
    phase: str  # "verify" | "correct"
    exit_code: int
    duration_seconds: float
    spawn_error: Optional[str] = None


@dataclass
class LoopState:
    """Mutable record of an in-progress hammer loop."""
    remaining_attempts: int
    sink: OutputSink
    model: str
    base_url: str
    verification_script_path: Optional[str] = None
    last_exit_code: Optional[int] = None
    verification_log: str = ""
    verification_runs: int = 0
    corrective_runs: int = 0
    attempts: List[AttemptRecord] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)


@dataclass
class LoopOutcome:
    """Summary of a finished hammer loop."""
    reason: TerminationReason
    message: str
    verification_runs: int
    corrective_runs: int
    last_exit_code: Optional[int]
    verification_script_path: Optional[str]
    attempts: List[AttemptRecord]
    started_at: datetime
    finished_at: datetime

    @property
    def succeeded(self) -> bool:
        return self.reason == TerminationReason.SUCCESS


class HammerController:
    """
    Drives the verify/correct loop for one editor.

    Owns a single OutputSink that is reset, not recreated, on every start.
    At most one loop is active per controller.
    """

    def __init__(
        self,
        editor: EditorContext,
        config: Optional[Config] = None,
        runner: Optional[ProcessRunner] = None,
        sink: Optional[OutputSink] = None,
        locate: Callable[..., Optional[Path]] = find_script,
    ):
        self.editor = editor
        self.config = config or Config()
        self.runner = runner or ProcessRunner()
        self.sink = sink or OutputSink()
        self.locate = locate

        self.state = HammerState.IDLE
        self.loop_state: Optional[LoopState] = None
        self.outcome: Optional[LoopOutcome] = None

    @property
    def is_running(self) -> bool:
        return self.loop_state is not None

    # --- Entry points ---

    def start_loop(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> "asyncio.Task[LoopOutcome]":
        """
        Start a loop on the running event loop and return immediately.

        Raises:
            LoopAlreadyRunningError: If a loop is already in flight.
        """
        loop = asyncio.get_running_loop()
        self.begin(model=model, base_url=base_url)
        return loop.create_task(self._drive())

    async def run_loop(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> LoopOutcome:
        """Run a whole loop and return its outcome."""
        self.begin(model=model, base_url=base_url)
        return await self._drive()

    # --- Transitions ---

    def begin(self, model: Optional[str] = None, base_url: Optional[str] = None) -> HammerState:
        """
        IDLE -> VERIFYING, or straight to TERMINATED when no script is found.

        Resets the retry budget and the sink.
        """
        if self.is_running:
            raise LoopAlreadyRunningError("Hammer loop is already running")

        self.outcome = None
        self.sink.create_or_reset()
        self.sink.append_line("Hammer mode started")

        self.loop_state = LoopState(
            remaining_attempts=self.config.hammer_budget,
            sink=self.sink,
            model=model or self.config.lm_smart_model,
            base_url=base_url or self.config.lm_base_path,
        )
        try:
            self.editor.set_busy(True)
            start_dir = Path(self.editor.file_path).parent
            script_path = self.locate(start_dir, self.config.hammer_script_name)
        except Exception as e:
            self._terminate(TerminationReason.ERROR, f"Hammer stopped: {e}")
            raise

        if script_path is None:
            return self._terminate(
                TerminationReason.SCRIPT_NOT_FOUND,
                f"Could not find {self.config.hammer_script_name} script, "
                "add it to the base dir of this project",
            )

        self.loop_state.verification_script_path = str(script_path)
        logger.info("Using verification script %s", script_path)
        self.state = HammerState.VERIFYING
        return self.state

    async def step(self) -> HammerState:
        """Run the handler for the current state and move to the next one."""
        handlers = {
            HammerState.VERIFYING: self._verify,
            HammerState.CORRECTING: self._correct,
        }
        handler = handlers.get(self.state)
        if handler is None:
            raise RuntimeError(f"No phase to run in state {self.state.value}")

        try:
            self.state = await handler()
        except Exception as e:
            self._terminate(TerminationReason.ERROR, f"Hammer stopped: {e}")
            raise
        return self.state

    async def _drive(self) -> LoopOutcome:
        while self.state != HammerState.TERMINATED:
            await self.step()
        return self.outcome

    async def _verify(self) -> HammerState:
        ls = self.loop_state

        if ls.remaining_attempts <= 0:
            return self._terminate(TerminationReason.BUDGET_EXHAUSTED, "Hammer hit loop limit")

        # Decrement first so the loop is bounded even if the run misbehaves
        ls.remaining_attempts -= 1
        ls.verification_runs += 1

        request = make_request(
            ls.verification_script_path,
            split_command=False,
            context=working_context(self.editor.language_tag, self.editor.file_path),
        )
        result = await self._run("verify", request)

        ls.last_exit_code = result.exit_code
        ls.verification_log = result.combined_output
        self.sink.append_line(f"status: {result.exit_code}")

        if not result.spawned:
            return self._terminate(
                TerminationReason.SPAWN_FAILED,
                f"Could not start {ls.verification_script_path}: {result.spawn_error}",
            )

        if result.exit_code == 0:
            return self._terminate(TerminationReason.SUCCESS, "Hammer succeeded")

        # A correction that can never be verified is not worth running
        if ls.remaining_attempts == 0:
            return self._terminate(TerminationReason.BUDGET_EXHAUSTED, "Hammer hit loop limit")

        return HammerState.CORRECTING

    async def _correct(self) -> HammerState:
        ls = self.loop_state

        self.editor.focus()
        self.editor.save()

        request = build_fixer_request(
            self.config.hammer_command,
            self.editor.language_tag,
            self.editor.file_path,
            DUMMY_LINE_RANGE,
            ls.verification_log,
            ls.model,
            ls.base_url,
        )
        ls.corrective_runs += 1
        result = await self._run("correct", request)

        # Pick up whatever the corrective command wrote
        self.editor.focus()
        self.editor.reload()

        if not result.spawned:
            return self._terminate(
                TerminationReason.FIXER_SPAWN_FAILED,
                f"Could not start {request.command}: {result.spawn_error}",
            )

        if result.exit_code != 0 and not result.has_output:
            logger.info("Corrective command exited %s without output", result.exit_code)

        return HammerState.VERIFYING

    def _terminate(self, reason: TerminationReason, message: str) -> HammerState:
        ls = self.loop_state

        self.sink.append_line(message)
        self.editor.notify(message, error=reason in ERROR_REASONS)
        self.editor.set_busy(False)
        self.sink.deactivate()

        if ls is not None:
            self.outcome = LoopOutcome(
                reason=reason,
                message=message,
                verification_runs=ls.verification_runs,
                corrective_runs=ls.corrective_runs,
                last_exit_code=ls.last_exit_code,
                verification_script_path=ls.verification_script_path,
                attempts=list(ls.attempts),
                started_at=ls.started_at,
                finished_at=datetime.now(),
            )

        logger.info("Hammer loop terminated: %s", reason.value)
        self.loop_state = None
        self.state = HammerState.TERMINATED
        return self.state

    async def _run(self, phase: str, request) -> RunResult:
        started = time.monotonic()
        result = await self.runner.run(
            request,
            on_stdout=self.sink.append,
            on_stderr=self.sink.append,
        )
        self.loop_state.attempts.append(
            AttemptRecord(
                phase=phase,
                exit_code=result.exit_code,
                duration_seconds=time.monotonic() - started,
                spawn_error=result.spawn_error,
            )
        )
        return result
