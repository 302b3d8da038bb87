"""Wait for buildkitd to accept control commands.

A started process is not yet a usable daemon: the socket appears some time
after spawn. The poller issues a cheap ``buildctl debug workers`` until it
succeeds, checking in between that the daemon is still alive.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from buildkit_task.builds.runner import buildctl_command
from buildkit_task.errors import DaemonExitedError, DaemonTimeoutError, SpawnError

if TYPE_CHECKING:
    from buildkit_task.daemon.supervisor import SupervisedDaemon

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.1

PROBE_ARGS = ["debug", "workers"]

# Upper bound for a single probe; a wedged daemon can accept and never answer
PROBE_TIMEOUT = 10.0


def probe_workers(address: str, timeout: float | None = PROBE_TIMEOUT) -> bool:
    """Run a no-op control command against the daemon.

    Args:
        address: Control socket address.
        timeout: Seconds to wait for buildctl (None = no limit).

    Returns:
        True if buildctl exited successfully, False if it failed or
        did not answer in time.

    Raises:
        SpawnError: If buildctl itself cannot be executed.
    """
    cmd = buildctl_command(address, PROBE_ARGS)
    try:
        result = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        logger.debug("buildctl probe timed out after %gs", timeout)
        return False
    except OSError as e:
        raise SpawnError(shlex.join(cmd), str(e)) from e
    return result.returncode == 0


def _socket_state(address: str) -> str:
    path = address.removeprefix("unix://")
    return "present" if os.path.exists(path) else "missing"


def wait_until_ready(
    daemon: SupervisedDaemon,
    *,
    probe: Callable[[str, float | None], bool] = probe_workers,
    probe_timeout: float = PROBE_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
    timeout: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> str:
    """Block until the daemon answers control commands.

    Args:
        daemon: The supervised daemon. Only its address, liveness check and
            log tail are used.
        probe: Readiness check, called with the address and the seconds
            the attempt may take.
        probe_timeout: Limit for a single attempt; capped by the time left
            before the deadline.
        interval: Delay between attempts in seconds.
        timeout: Overall deadline in seconds (None = wait forever).
        sleep: Sleep function (injectable for tests).
        clock: Monotonic clock (injectable for tests).

    Returns:
        The control address, now known to be responsive.

    Raises:
        DaemonExitedError: If the probe fails and the daemon is gone.
        DaemonTimeoutError: If the deadline passes first.
    """
    address = daemon.address
    deadline = None if timeout is None else clock() + timeout
    attempts = 0

    while True:
        attempts += 1
        attempt_timeout = probe_timeout
        if deadline is not None:
            attempt_timeout = min(probe_timeout, max(deadline - clock(), 0.0))
        if probe(address, attempt_timeout):
            break

        if not daemon.is_alive():
            logger.warning(
                "buildkitd process probe failed: process exited with %s",
                daemon.returncode,
            )
            raise DaemonExitedError(daemon.returncode, log_tail=daemon.log_tail())

        if deadline is not None and clock() >= deadline:
            logger.debug(
                "Socket for %s is %s after %d attempts",
                address,
                _socket_state(address),
                attempts,
            )
            raise DaemonTimeoutError(timeout or 0.0, log_tail=daemon.log_tail())

        logger.debug("waiting for buildkitd...")
        sleep(interval)

    logger.info("buildkitd ready after %d attempt(s)", attempts)
    return address


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "PROBE_ARGS",
    "PROBE_TIMEOUT",
    "probe_workers",
    "wait_until_ready",
]
