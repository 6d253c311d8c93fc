"""
errors - Exception types shared by the git-toolkit commands.

Operations raise these; each command's entry point turns them into a
message and an exit code.
"""


class ToolkitError(Exception):
    """Base class for every failure a command reports to the user."""
    pass


class PreconditionError(ToolkitError):
    """Raised before any mutation when the repository is not in a usable state."""
    pass


class ValidationError(ToolkitError):
    """Raised for bad user input (numbers, menu choices, arguments)."""
    pass


class ResolutionError(ToolkitError):
    """Raised when no base branch can be found for a fork-point query."""
    pass


class GitCommandError(ToolkitError):
    """Raised when a git invocation fails in a way the caller cannot recover from."""

    def __init__(self, message: str, args=None, stderr: str = ""):
        super().__init__(message)
        self.git_args = list(args or [])
        self.stderr = stderr


class UserCancelled(Exception):
    """Raised on Ctrl+C / EOF at a prompt, or when the user declines. Not an error."""
    pass
