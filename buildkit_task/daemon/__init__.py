"""buildkitd supervision module.

This module handles:
- Control socket address resolution
- Launcher selection by privilege level
- Spawning and tearing down the daemon
- Waiting for the daemon to accept control commands
"""

from buildkit_task.daemon.address import resolve_address
from buildkit_task.daemon.launcher import Launcher, select_launcher
from buildkit_task.daemon.readiness import wait_until_ready
from buildkit_task.daemon.supervisor import DaemonHandle, SupervisedDaemon

__all__ = [
    "DaemonHandle",
    "Launcher",
    "SupervisedDaemon",
    "resolve_address",
    "select_launcher",
    "wait_until_ready",
]
