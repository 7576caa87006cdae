"""Tests for ProcessRunner against real child processes."""

import asyncio
import sys

from agentic_hammer.constants import SPAWN_FAILURE_EXIT_CODE
from agentic_hammer.process_runner import STDERR, STDOUT, ProcessRunner
from agentic_hammer.run_request import RunRequest


def python_request(code: str, cwd=None) -> RunRequest:
    return RunRequest(command=sys.executable, argv=("-c", code), cwd=cwd)


class Collector:
    """Records the line lists handed to a callback."""

    def __init__(self):
        self.chunks = []

    def __call__(self, lines):
        self.chunks.append(lines)

    @property
    def text(self):
        return "".join("\n".join(lines) for lines in self.chunks)


class TestRun:
    """Exit codes and output capture."""

    def test_exit_code_and_streams(self):
        code = "import sys; print('out'); sys.stderr.write('err\\n'); sys.exit(3)"
        stdout, stderr = Collector(), Collector()

        result = asyncio.run(ProcessRunner().run(python_request(code), stdout, stderr))

        assert result.exit_code == 3
        assert result.spawned
        assert stdout.text == "out\n"
        assert stderr.text == "err\n"
        assert sorted(result.combined_output.splitlines()) == ["err", "out"]
        assert {c.stream for c in result.chunks} == {STDOUT, STDERR}

    def test_chunks_from_one_stream_keep_their_order(self):
        code = (
            "import sys, time\n"
            "for i in range(5):\n"
            "    print('line', i, flush=True)\n"
            "    time.sleep(0.01)\n"
        )
        stdout = Collector()

        result = asyncio.run(ProcessRunner().run(python_request(code), on_stdout=stdout))

        expected = "".join(f"line {i}\n" for i in range(5))
        assert stdout.text == expected
        assert result.combined_output == expected

    def test_multibyte_characters_survive_small_reads(self):
        code = "import sys; sys.stdout.buffer.write('héllo ☃\\n'.encode('utf-8'))"
        stdout = Collector()

        result = asyncio.run(ProcessRunner(read_size=1).run(python_request(code), on_stdout=stdout))

        assert result.combined_output == "héllo ☃\n"
        assert stdout.text == "héllo ☃\n"

    def test_invalid_utf8_is_replaced(self):
        code = "import sys; sys.stdout.buffer.write(b'ok \\xff\\n')"

        result = asyncio.run(ProcessRunner().run(python_request(code)))

        assert result.combined_output == "ok �\n"

    def test_silent_process_has_no_output(self):
        result = asyncio.run(ProcessRunner().run(python_request("pass")))

        assert result.exit_code == 0
        assert result.chunks == []
        assert not result.has_output

    def test_working_directory(self, tmp_path):
        code = "import os; print(os.getcwd())"

        result = asyncio.run(ProcessRunner().run(python_request(code, cwd=str(tmp_path))))

        assert result.combined_output.strip() == str(tmp_path.resolve())


class TestSpawnFailure:
    """Commands that cannot start report a distinguished exit code."""

    def test_missing_command(self, tmp_path):
        stdout = Collector()
        request = RunRequest(command=str(tmp_path / "does-not-exist"))

        result = asyncio.run(ProcessRunner().run(request, on_stdout=stdout))

        assert result.exit_code == SPAWN_FAILURE_EXIT_CODE
        assert not result.spawned
        assert result.spawn_error
        assert stdout.chunks == []

    def test_non_executable_file(self, tmp_path):
        script = tmp_path / "hammer"
        script.write_text("#!/bin/sh\nexit 0\n")
        script.chmod(0o644)

        result = asyncio.run(ProcessRunner().run(RunRequest(command=str(script))))

        assert result.exit_code == SPAWN_FAILURE_EXIT_CODE
        assert not result.spawned


class TestStart:
    """The non-blocking form."""

    def test_start_calls_on_exit_once(self):
        exits = []

        async def scenario():
            task = ProcessRunner().start(python_request("raise SystemExit(4)"), on_exit=exits.append)
            return await task

        result = asyncio.run(scenario())

        assert result.exit_code == 4
        assert exits == [result]
