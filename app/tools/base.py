from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one finished subprocess."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(ABC):
    """Contract for spawning external binaries."""

    @abstractmethod
    def run(self, args: list[str], timeout: float) -> CommandResult:
        """Run a command to completion without a shell.

        Args:
            args: Program name followed by its arguments.
            timeout: Seconds to wait before killing the process.

        Returns:
            CommandResult with exit code and captured output.

        Raises:
            ToolUnavailable: if the program cannot be spawned.
            ToolTimeout: if the process outlives the timeout.
        """
