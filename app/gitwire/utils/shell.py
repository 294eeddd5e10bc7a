"""Shell execution utilities.

Provides subprocess execution for the git executable with captured output.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        args: Command and arguments that were executed.
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    args: tuple[str, ...]
    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        """Command rendered as a single line for diagnostics."""
        return " ".join(self.args)


def run_command(
    args: list[str],
    *,
    timeout: float | None = None,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Execute a command and return the result.

    Network fetches can take arbitrarily long, so there is no timeout
    unless the caller sets one.

    Args:
        args: Command and arguments to execute.
        timeout: Maximum time in seconds to wait for command.
        cwd: Working directory for the command. If None, uses current directory.
        env: Additional environment variables (merged with current env).

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
        OSError: If the command cannot be started.
    """
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        errors="replace",
        check=False,
        timeout=timeout,
        cwd=cwd,
        env={**os.environ, **env} if env else None,
    )
    return CommandResult(
        args=tuple(args),
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None
