"""Logging setup for the task process.

Task logs go to stderr through rich so they stay readable next to the
streamed buildctl progress output on stdout.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a stderr RichHandler.

    Args:
        level: Logging level name (e.g. "DEBUG").
    """
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


__all__ = ["setup_logging"]
