# backend/nestos/services/system_control_service.py
"""Power management, package updates and system log retrieval."""
import logging
from typing import Dict, Optional

from nestos.config import get_settings
from nestos.utils.shell import CommandError, CommandExecutor, get_command_executor

logger = logging.getLogger(__name__)

NO_LOGS_MESSAGE = "No system logs available"
UPDATE_COMMAND = "apt-get update && apt-get upgrade -y"


class SystemCommandError(RuntimeError):
    """A privileged system command failed."""


class SystemControlService:
    """
    Stateless wrappers around privileged host commands.

    There is no confirmation or dry-run step: calling reboot() reboots.
    """

    def __init__(
        self,
        executor: Optional[CommandExecutor] = None,
        journal_lines: Optional[int] = None,
        fallback_log_file: Optional[str] = None,
    ):
        settings = get_settings()
        self.executor = executor or get_command_executor()
        self.journal_lines = journal_lines or settings.journal_lines
        self.fallback_log_file = fallback_log_file or settings.fallback_log_file

    def reboot(self) -> Dict[str, str]:
        logger.warning("Reboot requested")
        self._run("shutdown", ["-r", "now"])
        return {"status": "rebooting"}

    def shutdown(self) -> Dict[str, str]:
        logger.warning("Shutdown requested")
        self._run("shutdown", ["-h", "now"])
        return {"status": "shutting_down"}

    def update(self) -> Dict[str, str]:
        """Run a blocking apt update and upgrade; output is returned verbatim."""
        logger.info("Running system update")
        result = self._run("sh", ["-c", UPDATE_COMMAND])
        logger.info("System update finished")
        return {
            "status": "updated",
            "output": result.stdout,
            "errors": result.stderr,
        }

    def get_logs(self) -> Dict[str, str]:
        """
        Return recent system logs.

        Tries the systemd journal, then the tail of a flat log file. The first
        source that works wins; if neither does, a sentinel string is returned.
        """
        lines = str(self.journal_lines)
        sources = [
            ("journalctl", ["-n", lines, "--no-pager"]),
            ("tail", ["-n", lines, self.fallback_log_file]),
        ]
        for command, args in sources:
            try:
                result = self.executor.execute(command, args)
                return {"logs": result.stdout}
            except CommandError as e:
                logger.debug(f"Log source {command} unavailable: {e}")

        logger.warning("No system log source available")
        return {"logs": NO_LOGS_MESSAGE}

    def _run(self, command: str, args):
        try:
            return self.executor.execute(command, args)
        except CommandError as e:
            raise SystemCommandError(str(e)) from e


# Singleton instance
_system_control_service: Optional[SystemControlService] = None


def get_system_control_service() -> SystemControlService:
    """Get the system control service singleton."""
    global _system_control_service
    if _system_control_service is None:
        _system_control_service = SystemControlService()
    return _system_control_service
