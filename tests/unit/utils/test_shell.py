"""Unit tests for shell execution utilities."""

import sys
from unittest.mock import MagicMock, patch

import pytest
from gitwire.utils.shell import CommandResult, command_exists, run_command


class TestCommandResult:
    """Tests for CommandResult dataclass."""

    def test_success(self) -> None:
        result = CommandResult(args=("git", "status"), stdout="", stderr="", returncode=0)

        assert result.success is True

    def test_failure(self) -> None:
        result = CommandResult(args=("git", "status"), stdout="", stderr="x", returncode=128)

        assert result.success is False

    def test_command_line(self) -> None:
        result = CommandResult(args=("git", "ls-remote", "u"), stdout="", stderr="", returncode=0)

        assert result.command_line == "git ls-remote u"


class TestRunCommand:
    """Tests for run_command function."""

    @patch("gitwire.utils.shell.subprocess.run")
    def test_captures_output(self, mock_run: MagicMock) -> None:
        """run_command returns captured stdout, stderr and exit code."""
        mock_run.return_value = MagicMock(stdout="out", stderr="err", returncode=3)

        result = run_command(["git", "fetch"], cwd="/repo")

        assert result == CommandResult(
            args=("git", "fetch"), stdout="out", stderr="err", returncode=3
        )
        kwargs = mock_run.call_args.kwargs
        assert kwargs["capture_output"] is True
        assert kwargs["check"] is False
        assert kwargs["cwd"] == "/repo"
        assert kwargs["timeout"] is None
        assert kwargs["env"] is None

    @patch("gitwire.utils.shell.subprocess.run")
    def test_env_is_merged(self, mock_run: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
        """Extra variables are added on top of the current environment."""
        monkeypatch.setenv("GIT_WIRE_TEST_VAR", "kept")
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=0)

        run_command(["git", "fetch"], env={"GIT_TERMINAL_PROMPT": "0"})

        env = mock_run.call_args.kwargs["env"]
        assert env["GIT_TERMINAL_PROMPT"] == "0"
        assert env["GIT_WIRE_TEST_VAR"] == "kept"

    @patch("gitwire.utils.shell.subprocess.run")
    def test_replaces_undecodable_bytes(self, mock_run: MagicMock) -> None:
        """Output is decoded with replacement characters instead of failing."""
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=0)

        run_command(["git", "ls-remote", "u"])

        assert mock_run.call_args.kwargs["errors"] == "replace"

    def test_real_process(self) -> None:
        result = run_command([sys.executable, "-c", "print('hi')"])

        assert result.success
        assert result.stdout.strip() == "hi"

    def test_missing_executable(self) -> None:
        with pytest.raises(FileNotFoundError):
            run_command(["definitely-not-a-real-command-xyz"])


class TestCommandExists:
    """Tests for command_exists function."""

    def test_existing_command(self) -> None:
        with patch("gitwire.utils.shell.shutil.which", return_value="/usr/bin/git"):
            assert command_exists("git") is True

    def test_missing_command(self) -> None:
        with patch("gitwire.utils.shell.shutil.which", return_value=None):
            assert command_exists("git") is False
