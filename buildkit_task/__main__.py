"""Allow running as ``python -m buildkit_task``."""

from buildkit_task.cli import app

app(prog_name="buildkit-task")
