"""Tests for terminal module."""

import io
import struct
import termios
from unittest.mock import MagicMock, patch

from buildkit_task.terminal import get_window_size, limit_columns


def tty_stream():
    stream = MagicMock()
    stream.fileno.return_value = 1
    return stream


class TestGetWindowSize:
    """Tests for get_window_size function."""

    def test_not_a_tty(self):
        """Should return None for in-memory streams."""
        assert get_window_size(io.StringIO()) is None

    def test_tty(self):
        """Should unpack the kernel winsize struct."""
        packed = struct.pack("HHHH", 50, 500, 0, 0)
        with patch("buildkit_task.terminal.fcntl.ioctl", return_value=packed):
            assert get_window_size(tty_stream()) == (50, 500, 0, 0)


class TestLimitColumns:
    """Tests for limit_columns function."""

    def test_not_a_tty(self):
        """Should leave non-terminals alone."""
        assert limit_columns(io.StringIO()) is False

    def test_sets_columns(self):
        """Should keep rows and set columns to 80."""
        packed = struct.pack("HHHH", 50, 500, 1, 2)
        with patch(
            "buildkit_task.terminal.fcntl.ioctl", return_value=packed
        ) as mock_ioctl:
            assert limit_columns(tty_stream()) is True

        set_call = mock_ioctl.call_args_list[-1]
        assert set_call[0][1] == termios.TIOCSWINSZ
        assert struct.unpack("HHHH", set_call[0][2]) == (50, 80, 1, 2)

    def test_set_failure_is_not_fatal(self):
        """Should only warn if the size cannot be set."""
        packed = struct.pack("HHHH", 50, 500, 0, 0)
        with patch(
            "buildkit_task.terminal.fcntl.ioctl",
            side_effect=[packed, OSError("EPERM")],
        ):
            assert limit_columns(tty_stream()) is False
