"""Supervision of the buildkitd child process.

This module handles:
- Spawning buildkitd through the selected launcher
- Sending daemon stdout/stderr to an append-mode log file
- Tying the daemon's lifetime to ours (parent-death signal plus teardown)
- Zero-effect liveness checks and log tails for diagnostics
"""

from __future__ import annotations

import atexit
import ctypes
import ctypes.util
import logging
import os
import shlex
import signal
import subprocess
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

from buildkit_task.daemon.launcher import Launcher
from buildkit_task.errors import SpawnError, TaskIOError

logger = logging.getLogger(__name__)

# From <linux/prctl.h>
PR_SET_PDEATHSIG = 1

DEFAULT_EXIT_TIMEOUT = 10.0


@dataclass
class DaemonHandle:
    """A running daemon.

    Attributes:
        process: The spawned process. Only the supervisor touches it.
        address: Control socket address the daemon listens on.
        log_path: Log file receiving the daemon's combined output.
        command: The argv the daemon was started with.
    """

    process: subprocess.Popen[bytes]
    address: str
    log_path: Path
    command: list[str]

    @property
    def pid(self) -> int:
        return self.process.pid


def _parent_death_signal_hook() -> Callable[[], None] | None:
    """Build a preexec hook delivering SIGTERM to the child when we die.

    Returns None on platforms without prctl(PR_SET_PDEATHSIG).
    """
    if not sys.platform.startswith("linux"):
        return None

    # Load libc before fork; the hook runs in the child and must stay small.
    libc = ctypes.CDLL(ctypes.util.find_library("c") or "libc.so.6", use_errno=True)

    def hook() -> None:
        if libc.prctl(PR_SET_PDEATHSIG, int(signal.SIGTERM), 0, 0, 0) != 0:
            err = ctypes.get_errno()
            raise OSError(err, os.strerror(err))

    return hook


def _open_log(log_path: Path) -> int:
    try:
        return os.open(
            str(log_path), os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600
        )
    except OSError as e:
        raise TaskIOError(
            f"Failed to open log file {log_path}: {e}", path=str(log_path)
        ) from e


class SupervisedDaemon:
    """Owns the buildkitd child for the lifetime of a task.

    Use as a context manager; leaving the block always asks the daemon to
    terminate. The daemon also gets SIGTERM from the kernel if this process
    dies without running its cleanup.

    Example:
        >>> with SupervisedDaemon(address, log_path, launcher) as daemon:
        ...     wait_until_ready(daemon)
    """

    def __init__(
        self,
        address: str,
        log_path: Path,
        launcher: Launcher,
        exit_timeout: float = DEFAULT_EXIT_TIMEOUT,
    ) -> None:
        self.address = address
        self.log_path = Path(log_path)
        self.launcher = launcher
        self.exit_timeout = exit_timeout
        self._handle: DaemonHandle | None = None

    @property
    def handle(self) -> DaemonHandle | None:
        return self._handle

    @property
    def returncode(self) -> int | None:
        """Exit code of the daemon, or None while it runs or before start."""
        if self._handle is None:
            return None
        return self._handle.process.poll()

    def start(self) -> DaemonHandle:
        """Spawn the daemon.

        Returns:
            Handle for the running daemon.

        Raises:
            TaskIOError: If the log file cannot be opened.
            SpawnError: If the daemon process cannot be started.
        """
        if self._handle is not None:
            raise RuntimeError("daemon already started")

        cmd = self.launcher.command([f"--addr={self.address}"])
        cmd_str = shlex.join(cmd)

        log_fd = _open_log(self.log_path)
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=log_fd,
                stderr=log_fd,
                preexec_fn=_parent_death_signal_hook(),
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise SpawnError(cmd_str, str(e)) from e
        finally:
            # The child holds its own copy now
            os.close(log_fd)

        self._handle = DaemonHandle(
            process=process,
            address=self.address,
            log_path=self.log_path,
            command=cmd,
        )
        atexit.register(self.stop)

        logger.info("Started buildkitd (pid %d): %s", process.pid, cmd_str)
        logger.debug("buildkitd log: %s", self.log_path)
        return self._handle

    def is_alive(self) -> bool:
        """Check whether the daemon process still exists.

        Sends signal 0, which performs the existence check without
        delivering anything.
        """
        if self._handle is None:
            return False
        process = self._handle.process
        if process.poll() is not None:
            return False
        try:
            os.kill(process.pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists, but owned by another user (rootlesskit may setuid)
            return True
        return True

    def log_tail(self, lines: int = 50) -> str:
        """Return the last lines of the daemon log, or "" if unreadable."""
        try:
            content = self.log_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Could not read %s: %s", self.log_path, e)
            return ""
        return "\n".join(content.splitlines()[-lines:])

    def stop(self) -> None:
        """Terminate the daemon if it is still running.

        Sends SIGTERM, waits up to exit_timeout seconds, then SIGKILLs.
        Safe to call more than once.
        """
        if self._handle is None:
            return
        atexit.unregister(self.stop)

        process = self._handle.process
        if process.poll() is not None:
            logger.debug("buildkitd already exited with %s", process.returncode)
            return

        logger.debug("Stopping buildkitd (pid %d)", process.pid)
        process.send_signal(signal.SIGTERM)
        try:
            process.wait(timeout=self.exit_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                "buildkitd did not exit within %gs, killing it", self.exit_timeout
            )
            process.kill()
            process.wait()

    def __enter__(self) -> SupervisedDaemon:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()


__all__ = [
    "DEFAULT_EXIT_TIMEOUT",
    "PR_SET_PDEATHSIG",
    "DaemonHandle",
    "SupervisedDaemon",
]
