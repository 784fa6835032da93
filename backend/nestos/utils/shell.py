# backend/nestos/utils/shell.py
"""
Command execution for system utilities.

Every shell-out in the service and the ISO builder goes through a
CommandExecutor, so tests can swap in a fake that records calls and
returns scripted results instead of running real binaries.
"""
import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of a finished command."""
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandError(RuntimeError):
    """A command exited non-zero or could not be started."""

    def __init__(self, command: str, args: Sequence[str], result: Optional[CommandResult] = None, reason: str = ""):
        self.command = command
        self.result = result
        line = shlex.join([command, *args])
        if result is not None:
            detail = result.stderr.strip() or result.stdout.strip() or f"exit code {result.exit_code}"
            message = f"Command '{line}' failed with exit code {result.exit_code}: {detail}"
        else:
            message = f"Command '{line}' could not be run: {reason}"
        super().__init__(message)


class CommandExecutor:
    """Runs external commands with subprocess (no shell)."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def execute(
        self,
        command: str,
        args: Optional[List[str]] = None,
        check: bool = True,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """
        Run a command and wait for it to finish.

        Args:
            command: Executable name or path
            args: Arguments passed verbatim (not shell-interpreted)
            check: Raise CommandError on a non-zero exit code
            timeout: Seconds before the command is killed (None = wait forever)

        Returns:
            CommandResult with stdout and stderr decoded as UTF-8 (undecodable
            bytes become U+FFFD) and the exit code
        """
        args = args or []
        logger.debug(f"Executing command: {shlex.join([command, *args])}")
        try:
            completed = subprocess.run(
                [command, *args],
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout if timeout is not None else self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"Failed to run {command}: {e}")
            raise CommandError(command, args, reason=str(e)) from e

        result = CommandResult(
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            exit_code=completed.returncode,
        )
        if check and not result.ok:
            logger.error(f"Command failed: {command} (exit {result.exit_code}): {result.stderr.strip()}")
            raise CommandError(command, args, result)
        return result


# Singleton instance
_command_executor: Optional[CommandExecutor] = None


def get_command_executor() -> CommandExecutor:
    """Get the command executor singleton."""
    global _command_executor
    if _command_executor is None:
        _command_executor = CommandExecutor()
    return _command_executor
