"""Structured construction of external command invocations.

Commands are always executed without a shell, so arguments are passed
verbatim. The only value that cannot travel through argv is NUL, which is
rejected here, once, for every request.
"""

import shlex
from dataclasses import dataclass
from typing import List, Optional, Tuple

from agentic_hammer.constants import MAX_PROMPT_CHARS


class UnsafeArgumentError(ValueError):
    """Raised when a command or argument cannot be passed to a process."""
    pass


@dataclass(frozen=True)
class RunRequest:
    """A single external command invocation."""
    command: str
    argv: Tuple[str, ...] = ()
    cwd: Optional[str] = None  # None inherits the caller's working directory
    context: Optional[str] = None  # e.g. "python:/src/app.py"

    def command_line(self) -> List[str]:
        return [self.command, *self.argv]


def _check_argument(name: str, value: str) -> str:
    if not isinstance(value, str):
        raise UnsafeArgumentError(f"{name} must be a string, got {type(value).__name__}")
    if "\x00" in value:
        raise UnsafeArgumentError(f"{name} contains a NUL character")
    return value


def working_context(language_tag: str, file_path: str) -> str:
    return f"{language_tag}:{file_path}"


def format_line_range(
    range_start: Optional[int] = None,
    range_end: Optional[int] = None,
    cursor_line: int = 1,
) -> str:
    """
    Format the line range argument passed to corrective commands.

    Without a range the cursor line is used, otherwise "start-end".
    """
    if range_start is None or range_end is None:
        return str(cursor_line)
    return f"{range_start}-{range_end}"


def make_request(
    command: str,
    argv=(),
    cwd: Optional[str] = None,
    context: Optional[str] = None,
    split_command: bool = True,
) -> RunRequest:
    """
    Build a RunRequest from a command string and arguments.

    By default the command string may carry leading arguments
    ("python -m tool"); it is split with shell rules but never run through
    a shell. Pass split_command=False for a bare executable path.
    """
    _check_argument("command", command)
    if split_command:
        try:
            parts = shlex.split(command)
        except ValueError as e:
            raise UnsafeArgumentError(f"Cannot parse command {command!r}: {e}")
    else:
        parts = [command] if command else []
    if not parts:
        raise UnsafeArgumentError("command must not be empty")

    args = [_check_argument(f"argument {i}", a) for i, a in enumerate(argv)]
    if cwd is not None:
        _check_argument("cwd", cwd)

    return RunRequest(
        command=parts[0],
        argv=tuple(parts[1:] + args),
        cwd=cwd,
        context=context,
    )


def build_fixer_request(
    command: str,
    language_tag: str,
    file_path: str,
    line_range: str,
    prompt: str,
    model: str,
    base_url: str,
    cwd: Optional[str] = None,
) -> RunRequest:
    """
    Build the call for a corrective command.

    Corrective commands accept these positional arguments:
        language_tag  filetype of the edited file
        file_path     full path of the edited file
        line_range    line number or "start-end"
        prompt        text sent to the LM
        model         model to use
        base_url      LM service URL

    Prompts longer than MAX_PROMPT_CHARS keep only their tail, where build
    and test output usually puts the failure.
    """
    prompt = prompt or ""
    if len(prompt) > MAX_PROMPT_CHARS:
        prompt = prompt[-MAX_PROMPT_CHARS:]

    return make_request(
        command,
        (language_tag or "", file_path, line_range, prompt, model, base_url),
        cwd=cwd,
        context=working_context(language_tag or "", file_path),
    )
