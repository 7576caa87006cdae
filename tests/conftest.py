"""Shared fixtures: a scripted process runner and a recording editor."""

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

import pytest

from agentic_hammer.config import ENV_VARS, Config
from agentic_hammer.constants import SPAWN_FAILURE_EXIT_CODE
from agentic_hammer.editor import FileEditorContext
from agentic_hammer.process_runner import STDERR, STDOUT, OutputChunk, RunResult
from agentic_hammer.run_request import RunRequest


@dataclass
class FakeResponse:
    """What a fake process does when it is run."""
    exit_code: int = 0
    stdout: Sequence[str] = ()
    stderr: Sequence[str] = ()
    spawn_error: Optional[str] = None
    effect: Optional[Callable[[RunRequest], None]] = None


class FakeRunner:
    """
    ProcessRunner stand-in that replays scripted responses per command.

    Each command maps to one response or a list consumed in order; the last
    response of a list repeats once the others are used up.
    """

    def __init__(self, responses: Dict[str, Union[FakeResponse, List[FakeResponse]]]):
        self.responses = {
            command: list(r) if isinstance(r, list) else [r]
            for command, r in responses.items()
        }
        self.requests: List[RunRequest] = []

    def calls(self, command: str) -> List[RunRequest]:
        return [r for r in self.requests if r.command == command]

    def _next(self, command: str) -> FakeResponse:
        queue = self.responses[command]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    async def run(self, request, on_stdout=None, on_stderr=None) -> RunResult:
        self.requests.append(request)
        response = self._next(request.command)
        await asyncio.sleep(0)

        if response.spawn_error is not None:
            return RunResult(exit_code=SPAWN_FAILURE_EXIT_CODE, spawn_error=response.spawn_error)

        if response.effect is not None:
            response.effect(request)

        result = RunResult(exit_code=response.exit_code)
        for stream, texts, callback in (
            (STDOUT, response.stdout, on_stdout),
            (STDERR, response.stderr, on_stderr),
        ):
            for text in texts:
                chunk = OutputChunk(stream=stream, text=text)
                result.chunks.append(chunk)
                if callback is not None:
                    callback(chunk.lines())
                await asyncio.sleep(0)
        return result


class RecordingEditor(FileEditorContext):
    """FileEditorContext that records the order of editor calls."""

    def __init__(self, path, **kwargs):
        super().__init__(path, **kwargs)
        self.events: List[str] = []

    def save(self):
        self.events.append("save")
        super().save()

    def reload(self):
        self.events.append("reload")
        super().reload()

    def focus(self):
        self.events.append("focus")
        super().focus()

    def set_busy(self, busy):
        self.events.append(f"busy={busy}")
        super().set_busy(busy)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's HAMMER_* / OPENAI_API_KEY settings out of tests."""
    for env_var in ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def project(tmp_path):
    """
    A project with a hammer script at its root and a source file two
    directories below it.
    """
    root = tmp_path / "project"
    src = root / "pkg" / "sub"
    src.mkdir(parents=True)

    script = root / "hammer"
    script.write_text("#!/bin/sh\nexit 0\n")
    script.chmod(0o755)

    source = src / "app.py"
    source.write_text("print('hello')\n")

    return {"root": root, "script": script, "source": source}


@pytest.fixture
def editor(project):
    return RecordingEditor(project["source"])


@pytest.fixture
def config():
    return Config()
