"""Task orchestration.

This module provides the high-level entry point:
- run_task(): sanitize, prepare outputs, start buildkitd, wait, build, report

Order matters: the request is validated before anything touches the
filesystem or spawns a process, and no build command is issued until the
daemon has answered a probe.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import TextIO

from buildkit_task.builds.runner import run_build, setup_cgroups
from buildkit_task.config import Settings, get_settings
from buildkit_task.daemon.address import resolve_address
from buildkit_task.daemon.launcher import Launcher, select_launcher
from buildkit_task.daemon.readiness import wait_until_ready
from buildkit_task.daemon.supervisor import SupervisedDaemon
from buildkit_task.errors import TaskIOError
from buildkit_task.request import TaskRequest, TaskResponse, sanitize, write_response
from buildkit_task.terminal import limit_columns
from buildkit_task.types import CACHE_DIR, IMAGE_DIR

logger = logging.getLogger(__name__)


def prepare_output_dirs(root: Path | None = None) -> None:
    """Create the image/ and cache/ output directories.

    Raises:
        TaskIOError: If a directory cannot be created.
    """
    base = root or Path.cwd()
    for name in (IMAGE_DIR, CACHE_DIR):
        path = base / name
        try:
            path.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            raise TaskIOError(
                f"Failed to create {name} output folder: {e}", path=str(path)
            ) from e


def run_task(
    request: TaskRequest,
    settings: Settings | None = None,
    out: TextIO | None = None,
    launcher: Launcher | None = None,
) -> TaskResponse:
    """Run one build task end to end.

    Args:
        request: Decoded task request.
        settings: Task settings (loaded from environment if not provided).
        out: Stream receiving command output (defaults to stdout).
        launcher: Daemon launcher; chosen by privilege level if not provided.

    Returns:
        The response that was written to request.response_path.

    Raises:
        TaskError: On any fatal condition.
    """
    if settings is None:
        settings = get_settings()
    if out is None:
        out = sys.stdout

    config = sanitize(request.config)
    if config.tag:
        logger.info("Resolved tag: %s", config.tag)

    limit_columns(out, settings.terminal_columns)
    prepare_output_dirs()

    if settings.setup_cgroups:
        setup_cgroups(out)

    address = resolve_address(settings.runtime_dir)
    if launcher is None:
        launcher = select_launcher()

    with SupervisedDaemon(
        address,
        settings.log_path,
        launcher,
        exit_timeout=settings.exit_timeout,
    ) as daemon:
        wait_until_ready(
            daemon,
            interval=settings.poll_interval,
            timeout=settings.ready_deadline,
        )
        run_build(config, address, out)

    response = TaskResponse()
    write_response(request.response_path, response)
    logger.info(
        "Outputs written to %s: %s",
        os.path.abspath(request.response_path),
        ", ".join(response.outputs),
    )
    return response


__all__ = ["prepare_output_dirs", "run_task"]
