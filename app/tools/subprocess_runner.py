import subprocess

from app.tools.base import CommandResult, CommandRunner
from app.tools.exceptions import ToolTimeout, ToolUnavailable


class SubprocessRunner(CommandRunner):
    """Runs binaries in isolated child processes via subprocess."""

    def run(self, args: list[str], timeout: float) -> CommandResult:
        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ToolTimeout(f"{args[0]} timed out after {timeout}s") from exc
        except OSError as exc:
            raise ToolUnavailable(f"{args[0]} could not be started: {exc}") from exc
        return CommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
