"""Launch strategies for buildkitd.

Root can run the daemon directly. Anyone else needs rootlesskit to get a
user namespace with the capabilities buildkitd expects. The choice is made
once at startup and handed to the supervisor as a command template.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DAEMON_BINARY = "buildkitd"


@dataclass(frozen=True)
class Launcher:
    """Command template used to start the daemon.

    Attributes:
        name: Short strategy name for logs.
        prefix: Arguments placed before the daemon binary.
    """

    name: str
    prefix: tuple[str, ...] = ()

    def command(self, daemon_args: list[str]) -> list[str]:
        """Compose the full argv for the daemon."""
        return [*self.prefix, DAEMON_BINARY, *daemon_args]


DIRECT = Launcher(name="direct")
ROOTLESS = Launcher(name="rootless", prefix=("rootlesskit",))


def select_launcher(euid: int | None = None) -> Launcher:
    """Pick the launcher for the current privilege level.

    Args:
        euid: Effective user id; read from the process when None.

    Returns:
        DIRECT for root, ROOTLESS otherwise.
    """
    if euid is None:
        euid = os.geteuid()
    launcher = DIRECT if euid == 0 else ROOTLESS
    logger.debug("Using %s launcher (euid=%d)", launcher.name, euid)
    return launcher


__all__ = ["DAEMON_BINARY", "DIRECT", "ROOTLESS", "Launcher", "select_launcher"]
