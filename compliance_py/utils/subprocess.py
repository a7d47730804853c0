"""Subprocess helpers for the external tools (git, cosign, oras, crane)."""

import subprocess
from dataclasses import dataclass
from typing import Optional, List, Union
from .logging import get_logger, is_verbose

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Result of a command execution."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        """Check if command was successful."""
        return self.returncode == 0 and not self.timed_out

    def describe_failure(self) -> str:
        """Short human readable failure reason."""
        if self.timed_out:
            return self.stderr or "command timed out"
        return self.stderr.strip() or f"exit status {self.returncode}"


def run_command(
    cmd: Union[str, List[str]],
    timeout: Optional[int] = None,
    cwd: Optional[str] = None,
    env: Optional[dict] = None,
) -> CommandResult:
    """
    Run a command with optional timeout, capturing its output.

    Never raises for a failing command; inspect ``CommandResult.success``.

    Args:
        cmd: Command to run (string or list of arguments)
        timeout: Timeout in seconds (None for no timeout)
        cwd: Working directory
        env: Environment variables

    Returns:
        CommandResult with stdout, stderr, and return code
    """
    if isinstance(cmd, str):
        cmd = cmd.split()

    logger.debug(f"Running command: {cmd}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
            env=env,
        )
        return CommandResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    except subprocess.TimeoutExpired:
        if is_verbose():
            logger.warning(f"Command timed out after {timeout}s: {cmd}")
        return CommandResult(
            returncode=-1,
            stdout="",
            stderr=f"Command timed out after {timeout} seconds",
            timed_out=True,
        )
    except FileNotFoundError as e:
        if is_verbose():
            logger.error(f"Command not found: {cmd[0]}")
        return CommandResult(
            returncode=127,
            stdout="",
            stderr=str(e),
        )
