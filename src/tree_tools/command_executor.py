import subprocess
from typing import Protocol


class CommandExecutor(Protocol):
    """Protocol for executing external commands on behalf of file helpers."""

    def execute_command(
        self, args: list[str], timeout: int
    ) -> subprocess.CompletedProcess[str]:
        """Run the command and return the completed process."""
        ...


class LocalCommandExecutor:
    """Runs commands on the local machine."""

    def execute_command(
        self, args: list[str], timeout: int
    ) -> subprocess.CompletedProcess[str]:
        return subprocess.run(args, capture_output=True, text=True, timeout=timeout)
