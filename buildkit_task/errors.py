"""Error types for buildkit_task.

Every failure that ends a task run is a TaskError carrying a stable code.
The CLI logs the message and code and exits non-zero; nothing is retried
except the daemon readiness probe.
"""

from __future__ import annotations

# Error code constants
CONFIGURATION_ERROR = "configuration_error"
IO_ERROR = "io_error"
SPAWN_ERROR = "spawn_error"
DAEMON_EXITED = "daemon_exited"
DAEMON_TIMEOUT = "daemon_timeout"
BUILD_FAILED = "build_failed"


class TaskError(Exception):
    """Base error for a fatal task condition."""

    def __init__(self, message: str, code: str = "task_error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigurationError(TaskError):
    """The build request is malformed or missing a required field."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=CONFIGURATION_ERROR)


class TaskIOError(TaskError):
    """A file the task needs could not be read, created or written."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message, code=IO_ERROR)
        self.path = path


class SpawnError(TaskError):
    """An external command could not be started."""

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Failed to start {command}: {reason}", code=SPAWN_ERROR)
        self.command = command


class DaemonExitedError(TaskError):
    """The daemon process died before it became ready."""

    def __init__(self, exit_code: int | None, log_tail: str = "") -> None:
        super().__init__(
            f"buildkitd exited before becoming ready (exit code {exit_code})",
            code=DAEMON_EXITED,
        )
        self.exit_code = exit_code
        self.log_tail = log_tail


class DaemonTimeoutError(TaskError):
    """The daemon did not answer control commands within the deadline."""

    def __init__(self, timeout: float, log_tail: str = "") -> None:
        super().__init__(
            f"buildkitd did not become ready within {timeout:g} seconds",
            code=DAEMON_TIMEOUT,
        )
        self.timeout = timeout
        self.log_tail = log_tail


class BuildCommandError(TaskError):
    """A control command exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int) -> None:
        super().__init__(
            f"{command} failed with exit code {exit_code}", code=BUILD_FAILED
        )
        self.command = command
        self.exit_code = exit_code


__all__ = [
    "BUILD_FAILED",
    "CONFIGURATION_ERROR",
    "DAEMON_EXITED",
    "DAEMON_TIMEOUT",
    "IO_ERROR",
    "SPAWN_ERROR",
    "BuildCommandError",
    "ConfigurationError",
    "DaemonExitedError",
    "DaemonTimeoutError",
    "SpawnError",
    "TaskError",
    "TaskIOError",
]
