"""Build driver module.

This module handles:
- Composing buildctl build arguments
- Running buildctl and helper commands with streamed output
"""

from buildkit_task.builds.runner import compose_build_args, run_build

__all__ = ["compose_build_args", "run_build"]
