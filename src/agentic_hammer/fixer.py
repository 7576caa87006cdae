"""Default corrective commands: hammer-fix and hammer-edit.

Both take the standard corrective arguments:

    LANGUAGE_TAG FILE_PATH LINE_RANGE PROMPT [MODEL] [BASE_URL]

stream the model's reply to stdout as it arrives, and then overwrite
FILE_PATH with the code from the reply. On any model error the file is left
untouched and the command exits 1.
"""

from pathlib import Path
from typing import List, Optional

import click

from agentic_hammer.config import ConfigError, load_config
from agentic_hammer.model_client import Message, ModelClient, ModelClientError, get_model_client


HAMMER_SYSTEM_PROMPT = """You are helping an expert programmer fix their code.
A build or test command failed on the file below.

Rules:
- Only output the full corrected file.
- Do NOT explain.
- Do NOT refactor.
- Fix only what the error requires."""

EDIT_SYSTEM_PROMPT = """You are helping an expert programmer edit their code.

Rules:
- Only output the full edited file.
- Do NOT explain.
- Change only what the instruction asks for."""


def build_messages(mode: str, language_tag: str, code: str, prompt: str) -> List[Message]:
    """Build the chat messages for a hammer or edit request."""
    heading = language_tag.upper() or "CODE"
    if mode == "hammer":
        system = HAMMER_SYSTEM_PROMPT
        user = f"""{heading}:
{code}

ERROR:
{prompt}"""
    else:
        system = EDIT_SYSTEM_PROMPT
        user = f"""{heading}:
{code}

INSTRUCTION:
{prompt}"""

    return [
        Message(role="system", content=system),
        Message(role="user", content=user),
    ]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if any.

    Only surrounding blank lines and trailing whitespace are dropped, so the
    indentation of the first line survives.
    """
    stripped = text.strip("\n")
    if stripped.lstrip().startswith("```"):
        first_newline = stripped.find("\n")
        stripped = stripped[first_newline + 1:] if first_newline != -1 else ""
    stripped = stripped.rstrip()
    if stripped.endswith("```"):
        stripped = stripped[:-3]
    return stripped.strip("\n").rstrip()


def run_fix(
    mode: str,
    client: ModelClient,
    language_tag: str,
    file_path: Path,
    prompt: str,
    model: str,
) -> Optional[str]:
    """
    Ask the model for a new version of file_path and write it back.

    The reply is echoed to stdout while streaming. Returns the code written,
    or None if the reply contained no code.
    """
    code = file_path.read_text()
    messages = build_messages(mode, language_tag, code, prompt)

    parts = []
    for delta in client.stream(messages, model):
        parts.append(delta)
        click.echo(delta, nl=False)
    click.echo()

    fixed_code = strip_code_fences("".join(parts))
    if not fixed_code:
        return None

    # Keep the trailing newline most editors expect
    file_path.write_text(fixed_code + "\n")
    return fixed_code


def _main(mode, language_tag, file_path, line_range, prompt, model, base_url):
    try:
        config = load_config(lm_base_path=base_url)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        raise SystemExit(1)

    path = Path(file_path)
    if not path.is_file():
        click.echo(f"Error: file not found: {file_path}", err=True)
        raise SystemExit(1)

    client = get_model_client(config.lm_base_path, config.api_key)

    try:
        fixed = run_fix(mode, client, language_tag, path, prompt, model or config.lm_fast_model)
    except ModelClientError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if fixed is None:
        click.echo("Model returned no code, file left unchanged.", err=True)
        raise SystemExit(1)


_corrective_arguments = [
    click.argument("language_tag"),
    click.argument("file_path"),
    click.argument("line_range"),
    click.argument("prompt"),
    click.argument("model", required=False),
    click.argument("base_url", required=False),
]


def corrective_arguments(func):
    for decorator in reversed(_corrective_arguments):
        func = decorator(func)
    return func


@click.command()
@corrective_arguments
def hammer_fix(language_tag, file_path, line_range, prompt, model, base_url):
    """Fix FILE_PATH given the verification output in PROMPT."""
    _main("hammer", language_tag, file_path, line_range, prompt, model, base_url)


@click.command()
@corrective_arguments
def edit_fix(language_tag, file_path, line_range, prompt, model, base_url):
    """Edit FILE_PATH following the instruction in PROMPT."""
    _main("edit", language_tag, file_path, line_range, prompt, model, base_url)
