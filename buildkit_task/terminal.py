"""Terminal width limiting.

CI runners report an enormous terminal width and buildctl's progress
display pads every line to it, so the output TTY is narrowed before the
build starts.
"""

from __future__ import annotations

import fcntl
import logging
import struct
import termios
from typing import TextIO

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = 80

# struct winsize: rows, cols, xpixel, ypixel
_WINSIZE = struct.Struct("HHHH")


def get_window_size(stream: TextIO) -> tuple[int, int, int, int] | None:
    """Read the window size of a terminal stream, or None if not a TTY."""
    try:
        packed = fcntl.ioctl(stream.fileno(), termios.TIOCGWINSZ, b"\0" * _WINSIZE.size)
    except (OSError, ValueError, AttributeError):
        return None
    return _WINSIZE.unpack(packed)


def limit_columns(stream: TextIO, columns: int = DEFAULT_COLUMNS) -> bool:
    """Set the column count of a terminal stream.

    Args:
        stream: Output stream, usually stdout.
        columns: Column count to apply.

    Returns:
        True if the window size was changed.
    """
    size = get_window_size(stream)
    if size is None:
        return False

    rows, _cols, xpixel, ypixel = size
    try:
        fcntl.ioctl(
            stream.fileno(),
            termios.TIOCSWINSZ,
            _WINSIZE.pack(rows, columns, xpixel, ypixel),
        )
    except OSError as e:
        logger.warning("failed to set window size: %s", e)
        return False
    return True


__all__ = ["DEFAULT_COLUMNS", "get_window_size", "limit_columns"]
