"""Build runner for executing buildctl commands.

This module handles:
- Composing the `buildctl build` argument list from a sanitized config
- Running control commands with output streamed to the caller
- Running the setup-cgroups helper before the daemon starts
"""

from __future__ import annotations

import io
import logging
import shlex
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from buildkit_task.errors import BuildCommandError, SpawnError
from buildkit_task.types import (
    CACHE_DIR,
    CACHE_INDEX,
    DEFAULT_OUTPUT_TYPE,
    IMAGE_DIR,
    IMAGE_FILE,
    NO_OUTPUT,
)

if TYPE_CHECKING:
    from buildkit_task.request import BuildConfig

logger = logging.getLogger(__name__)

FRONTEND = "dockerfile.v0"
SETUP_CGROUPS = "setup-cgroups"


def buildctl_command(address: str, args: list[str]) -> list[str]:
    """Compose a buildctl invocation bound to a daemon address."""
    return ["buildctl", f"--addr={address}", *args]


def compose_build_args(
    config: BuildConfig,
    cache_dir: str = CACHE_DIR,
    image_path: str = f"{IMAGE_DIR}/{IMAGE_FILE}",
) -> list[str]:
    """Compose the `buildctl build` arguments from a config.

    Args:
        config: Sanitized BuildConfig.
        cache_dir: Local cache directory, relative to the working directory.
        image_path: Destination of the exported image tarball.

    Returns:
        Arguments following `buildctl --addr=...`.
    """
    args = [
        "build",
        "--frontend", FRONTEND,
        "--local", f"context={config.context}",
        "--local", f"dockerfile={config.dockerfile}",
        "--export-cache", f"type=local,mode=min,dest={cache_dir}",
    ]

    # Reuse a cache exported by a previous run on the same volume
    if (Path(cache_dir) / CACHE_INDEX).exists():
        args.extend(["--import-cache", f"type=local,src={cache_dir}"])

    output_type = config.output_type or DEFAULT_OUTPUT_TYPE
    if output_type != NO_OUTPUT:
        args.extend(
            [
                "--output",
                f"type={output_type},name={config.repository},dest={image_path}",
            ]
        )

    if config.target:
        args.extend(["--opt", f"target={config.target}"])

    return args


def run_command(cmd: list[str], out: TextIO | None = None) -> None:
    """Run a command to completion, streaming its output.

    Args:
        cmd: Command as list of strings.
        out: Stream receiving combined stdout/stderr (defaults to stdout).

    Raises:
        SpawnError: If the command cannot be started.
        BuildCommandError: If the command exits non-zero.
    """
    if out is None:
        out = sys.stdout
    cmd_str = shlex.join(cmd)
    logger.debug("Executing: %s", cmd_str)

    # Flush so our own output is not interleaved with the child's
    out.flush()
    try:
        if _has_fileno(out):
            returncode = subprocess.run(
                cmd,
                stdout=out,
                stderr=subprocess.STDOUT,
                check=False,
            ).returncode
        else:
            # In-memory stream: relay the output line by line
            with subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            ) as proc:
                if proc.stdout is not None:
                    for line in proc.stdout:
                        out.write(line)
            returncode = proc.returncode
    except OSError as e:
        raise SpawnError(cmd_str, str(e)) from e

    if returncode != 0:
        logger.error("%s exited with %d", cmd[0], returncode)
        raise BuildCommandError(cmd[0], returncode)


def _has_fileno(stream: TextIO) -> bool:
    try:
        stream.fileno()
    except (AttributeError, io.UnsupportedOperation):
        return False
    return True


def setup_cgroups(out: TextIO | None = None) -> None:
    """Prepare cgroups for the daemon using the external helper."""
    logger.info("Setting up cgroups")
    run_command([SETUP_CGROUPS], out)


def run_build(config: BuildConfig, address: str, out: TextIO | None = None) -> None:
    """Run the single buildctl build against a ready daemon.

    Args:
        config: Sanitized BuildConfig.
        address: Control address returned by the readiness poller.
        out: Stream receiving buildctl progress output.

    Raises:
        SpawnError: If buildctl cannot be started.
        BuildCommandError: If the build fails.
    """
    cmd = buildctl_command(address, compose_build_args(config))
    logger.info("Building %s", config.repository)
    run_command(cmd, out)
    logger.info("Build of %s finished", config.repository)


__all__ = [
    "FRONTEND",
    "SETUP_CGROUPS",
    "buildctl_command",
    "compose_build_args",
    "run_build",
    "run_command",
    "setup_cgroups",
]
