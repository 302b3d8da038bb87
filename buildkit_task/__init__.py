"""buildkit-task - run a BuildKit image build as a one-shot CI task.

This package supervises a buildkitd daemon, waits for it to accept control
commands, and drives a single buildctl build producing an image tarball and
a reusable local cache.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
