class ToolError(Exception):
    """Base exception for external binary failures."""


class ToolUnavailable(ToolError):
    """Raised when no candidate binary for a tool can be spawned."""


class ToolTimeout(ToolError):
    """Raised when a binary does not finish within the configured timeout."""


class ToolExecutionError(ToolError):
    """Raised when a binary exits with an error or produces no output."""
