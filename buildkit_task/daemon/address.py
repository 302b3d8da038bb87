"""Control socket address for buildkitd.

The daemon listens and every buildctl invocation connects on the same
address, so it is derived once from the runtime directory and reused.
"""

import posixpath

DEFAULT_RUNTIME_DIR = "/run"


def socket_path(runtime_dir: str | None = None) -> str:
    """Return the filesystem path of the buildkitd socket.

    Args:
        runtime_dir: Runtime directory override; /run when empty or None.
            Used as-is, without validation.
    """
    return posixpath.join(
        runtime_dir or DEFAULT_RUNTIME_DIR, "buildkitd", "buildkitd.sock"
    )


def resolve_address(runtime_dir: str | None = None) -> str:
    """Return the unix:// address buildkitd listens on.

    Example:
        >>> resolve_address("/tmp/xdg")
        'unix:///tmp/xdg/buildkitd/buildkitd.sock'
    """
    return f"unix://{socket_path(runtime_dir)}"


__all__ = ["DEFAULT_RUNTIME_DIR", "resolve_address", "socket_path"]
