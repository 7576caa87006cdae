"""CLI entrypoint for the hammer loop."""

import asyncio
import logging
import os
from pathlib import Path

import click
from dotenv import load_dotenv

from agentic_hammer.config import ConfigError, load_config
from agentic_hammer.run_request import UnsafeArgumentError

# Load .env file on CLI startup
load_dotenv()


def configure_logging() -> None:
    """Log to stderr; HAMMER_DEBUG=1 turns on debug output."""
    level = logging.DEBUG if os.environ.get("HAMMER_DEBUG") else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config_or_exit(settings, **overrides):
    try:
        return load_config(Path(settings) if settings else None, **overrides)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        raise SystemExit(1)


def _make_session(file: str, config):
    from agentic_hammer.editor import FileEditorContext
    from agentic_hammer.output_sink import TerminalSurface
    from agentic_hammer.session import HammerSession

    editor = FileEditorContext(file)
    return HammerSession(editor, config=config, surface_factory=TerminalSurface)


@click.group()
@click.version_option(package_name="agentic-hammer")
def cli():
    """Hammer - loop an LM fixer until your build and tests pass."""
    configure_logging()


@cli.command("run")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--budget", type=int, default=None, help="Maximum verification runs (default: 5)")
@click.option("--model", default=None, help="Model passed to the corrective command")
@click.option("--base-url", default=None, help="LM service URL passed to the corrective command")
@click.option(
    "--settings",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Settings file (YAML or JSON)",
)
@click.option(
    "--report-dir",
    type=click.Path(),
    default=None,
    help="Write a JSON loop report to this directory",
)
@click.option(
    "--no-trace",
    is_flag=True,
    help="Disable LangGraph tracing (run without graph wrapper)",
)
def run_loop(file, budget, model, base_url, settings, report_dir, no_trace):
    """Run hammer mode on FILE.

    Finds the hammer script next to FILE or in a parent directory, runs it,
    and while it fails asks the LM to fix FILE and runs it again.
    """
    config = _load_config_or_exit(settings, hammer_budget=budget)
    session = _make_session(file, config)

    async def _run():
        if no_trace:
            task = session.start_loop(model=model, base_url=base_url)
            return await task
        from agentic_hammer.hammer_graph import run_hammer_graph
        return await run_hammer_graph(session.hammer, model=model, base_url=base_url)

    try:
        outcome = asyncio.run(_run())
    except (UnsafeArgumentError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if report_dir:
        from agentic_hammer.loop_report import write_loop_report
        report_path = write_loop_report(outcome, session.editor.file_path, Path(report_dir))
        click.echo(f"Report: {report_path}")

    raise SystemExit(0 if outcome.succeeded else 1)


@cli.command("edit")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("instruction")
@click.option("--model", default=None, help="Model passed to the edit command")
@click.option("--base-url", default=None, help="LM service URL passed to the edit command")
@click.option(
    "--settings",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Settings file (YAML or JSON)",
)
def edit(file, instruction, model, base_url, settings):
    """Edit FILE with the LM following INSTRUCTION."""
    config = _load_config_or_exit(settings)
    session = _make_session(file, config)

    async def _run():
        task = session.edit(instruction, model=model, base_url=base_url)
        return await task

    try:
        result = asyncio.run(_run())
    except (UnsafeArgumentError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    raise SystemExit(0 if result.exit_code == 0 else 1)


@cli.command("locate")
@click.argument("start_dir", type=click.Path(exists=True, file_okay=False), required=False)
@click.option("--name", default=None, help="Script name (default: hammer)")
@click.option(
    "--settings",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Settings file (YAML or JSON)",
)
def locate(start_dir, name, settings):
    """Print the hammer script found from START_DIR (default: cwd) upward."""
    from agentic_hammer.script_locator import find_script

    config = _load_config_or_exit(settings, hammer_script_name=name)
    script = find_script(start_dir or os.getcwd(), config.hammer_script_name)

    if script is None:
        click.echo(f"No {config.hammer_script_name} script found.", err=True)
        raise SystemExit(1)

    click.echo(str(script))


@cli.command("check-config")
@click.option(
    "--settings",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Settings file (YAML or JSON)",
)
def check_config(settings):
    """Show the effective configuration."""
    config = _load_config_or_exit(settings)

    click.echo("Configuration loaded successfully!")
    click.echo(f"  LM base path:    {config.lm_base_path}")
    click.echo(f"  Fast model:      {config.lm_fast_model}")
    click.echo(f"  Smart model:     {config.lm_smart_model}")
    click.echo(f"  Hammer budget:   {config.hammer_budget}")
    click.echo(f"  Hammer script:   {config.hammer_script_name}")
    click.echo(f"  Hammer command:  {config.hammer_command}")
    click.echo(f"  Edit command:    {config.edit_command}")
    click.echo(f"  OPENAI_API_KEY:  {'[set]' if config.api_key else '[not set]'}")


if __name__ == "__main__":
    cli()
