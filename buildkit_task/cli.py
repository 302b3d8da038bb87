"""Thin CLI wrapper for buildkit_task.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import logging
import sys
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console

from buildkit_task import __version__
from buildkit_task.config import get_settings, print_settings_json

app = typer.Typer(
    name="buildkit-task",
    help="BuildKit Task - build a container image with a supervised buildkitd",
    no_args_is_help=True,
)
console = Console()

logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"buildkit-task version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """BuildKit Task - build a container image with a supervised buildkitd."""


@app.command()
def build() -> None:
    """Run a build described by a JSON request on stdin.

    The request has the form {"response_path": ..., "config": {...}}.
    On success {"outputs": ["image", "cache"]} is written to response_path.
    """
    from buildkit_task.errors import CONFIGURATION_ERROR, TaskError
    from buildkit_task.log import setup_logging
    from buildkit_task.request import load_request
    from buildkit_task.task import run_task

    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        logger.critical("Invalid settings: %s (%s)", e, CONFIGURATION_ERROR)
        raise typer.Exit(code=1) from None
    setup_logging(settings.log_level)

    try:
        request = load_request(sys.stdin)
        run_task(request, settings=settings, out=sys.stdout)
    except TaskError as e:
        logger.critical("%s (%s)", e.message, e.code)
        log_tail = getattr(e, "log_tail", "")
        if log_tail:
            logger.info("buildkitd log tail:\n%s", log_tail)
        raise typer.Exit(code=1) from None


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
        return

    runtime_dir_display = settings.runtime_dir or "/run (default)"
    ready_display = (
        f"{settings.ready_timeout:g}" if settings.ready_deadline else "unbounded"
    )
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Runtime directory:   {runtime_dir_display}")
    console.print(f"  Daemon log:          {settings.log_path}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  Setup cgroups:       {settings.setup_cgroups}")
    console.print(f"  Terminal columns:    {settings.terminal_columns}")
    console.print()
    console.print("[bold]Timing (seconds):[/bold]")
    console.print(f"  Poll interval:       {settings.poll_interval:g}")
    console.print(f"  Ready timeout:       {ready_display}")
    console.print(f"  Exit timeout:        {settings.exit_timeout:g}")
