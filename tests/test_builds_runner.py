"""Tests for builds/runner.py module.

Tests buildctl argument composition and command execution.
Uses mocked subprocess for execution tests.
"""

import io
import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest

from buildkit_task.builds.runner import (
    buildctl_command,
    compose_build_args,
    run_build,
    run_command,
    setup_cgroups,
)
from buildkit_task.errors import BuildCommandError, SpawnError
from buildkit_task.request import BuildConfig, sanitize

ADDRESS = "unix:///run/buildkitd/buildkitd.sock"


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run in an empty working directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def minimal_config() -> BuildConfig:
    """Create a minimal sanitized config."""
    return sanitize(BuildConfig(repository="example/app", context="/src"))


class TestBuildctlCommand:
    """Tests for buildctl_command function."""

    def test_address_first(self):
        """Should bind the command to the daemon address."""
        assert buildctl_command(ADDRESS, ["debug", "workers"]) == [
            "buildctl",
            f"--addr={ADDRESS}",
            "debug",
            "workers",
        ]


class TestComposeBuildArgs:
    """Tests for compose_build_args function."""

    def test_minimal_args(self, workdir, minimal_config):
        """Should compose the always-present flags."""
        args = compose_build_args(minimal_config)

        assert args[0] == "build"
        assert args[1:3] == ["--frontend", "dockerfile.v0"]
        assert "context=/src" in args
        assert "dockerfile=/src" in args
        assert "type=local,mode=min,dest=cache" in args

    def test_local_mounts(self, workdir):
        """Should mount context and dockerfile separately."""
        cfg = sanitize(
            BuildConfig(repository="a", context="/src", dockerfile="/src/build")
        )
        args = compose_build_args(cfg)

        local_values = [args[i + 1] for i, a in enumerate(args) if a == "--local"]
        assert local_values == ["context=/src", "dockerfile=/src/build"]

    def test_output_descriptor(self, workdir, minimal_config):
        """Should export a docker tarball named after the repository."""
        args = compose_build_args(minimal_config)

        index = args.index("--output")
        assert args[index + 1] == "type=docker,name=example/app,dest=image/image.tar"

    def test_custom_output_type(self, workdir):
        """Should pass through other exporter types."""
        cfg = sanitize(BuildConfig(repository="a", output_type="oci"))
        args = compose_build_args(cfg)
        assert "type=oci,name=a,dest=image/image.tar" in args

    def test_output_none(self, workdir):
        """Should omit --output for output_type none."""
        cfg = sanitize(BuildConfig(repository="a", output_type="none"))
        args = compose_build_args(cfg)

        assert "--output" not in args
        assert not any(a.startswith("type=none") for a in args)

    def test_no_cache_import_without_index(self, workdir, minimal_config):
        """Should not import cache when none was exported before."""
        (workdir / "cache").mkdir()
        args = compose_build_args(minimal_config)
        assert "--import-cache" not in args

    def test_cache_import_with_index(self, workdir, minimal_config):
        """Should import cache when cache/index.json exists."""
        (workdir / "cache").mkdir()
        (workdir / "cache" / "index.json").write_text("{}")

        args = compose_build_args(minimal_config)

        index = args.index("--import-cache")
        assert args[index + 1] == "type=local,src=cache"

    def test_target(self, workdir):
        """Should select the build target."""
        cfg = sanitize(BuildConfig(repository="a", target="builder"))
        args = compose_build_args(cfg)

        index = args.index("--opt")
        assert args[index + 1] == "target=builder"

    def test_no_target(self, workdir, minimal_config):
        """Should not pass --opt without a target."""
        assert "--opt" not in compose_build_args(minimal_config)


class TestRunCommand:
    """Tests for run_command function."""

    def test_streams_to_file_stream(self, tmp_path):
        """Should hand a real stream straight to the child."""
        out_path = tmp_path / "out.txt"
        with out_path.open("w") as out:
            run_command([sys.executable, "-c", "print('hello')"], out)

        assert out_path.read_text() == "hello\n"

    def test_relays_to_memory_stream(self):
        """Should copy output into streams without a file descriptor."""
        out = io.StringIO()
        run_command(
            [
                sys.executable,
                "-c",
                "import sys; print('out'); print('err', file=sys.stderr)",
            ],
            out,
        )

        assert "out" in out.getvalue()
        assert "err" in out.getvalue()

    def test_non_zero_exit(self):
        """Should raise BuildCommandError with the exit code."""
        with pytest.raises(BuildCommandError) as exc_info:
            run_command([sys.executable, "-c", "raise SystemExit(3)"], io.StringIO())

        assert exc_info.value.exit_code == 3
        assert exc_info.value.code == "build_failed"

    def test_missing_binary(self):
        """Should raise SpawnError when the command does not exist."""
        with pytest.raises(SpawnError):
            run_command(["definitely-not-a-real-command-xyz"], io.StringIO())


class TestSetupCgroups:
    """Tests for setup_cgroups function."""

    def test_runs_helper(self):
        """Should run the setup-cgroups helper."""
        out = io.StringIO()
        with patch("buildkit_task.builds.runner.run_command") as mock_run:
            setup_cgroups(out)
        mock_run.assert_called_once_with(["setup-cgroups"], out)


class TestRunBuild:
    """Tests for run_build function."""

    def test_runs_buildctl(self, workdir, minimal_config):
        """Should run buildctl build against the address."""
        out = MagicMock()
        out.fileno.return_value = 1
        with patch("buildkit_task.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)
            run_build(minimal_config, ADDRESS, out)

        cmd = mock_run.call_args[0][0]
        assert cmd[:3] == ["buildctl", f"--addr={ADDRESS}", "build"]
        assert mock_run.call_args[1]["stdout"] is out
        assert mock_run.call_args[1]["stderr"] == subprocess.STDOUT

    def test_build_failure(self, workdir, minimal_config):
        """Should raise BuildCommandError on a failed build."""
        out = MagicMock()
        out.fileno.return_value = 1
        with patch("buildkit_task.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1)
            with pytest.raises(BuildCommandError) as exc_info:
                run_build(minimal_config, ADDRESS, out)

        assert exc_info.value.command == "buildctl"
