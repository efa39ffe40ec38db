"""Custom exceptions for branchlet"""

from typing import List, Optional


class BranchletError(Exception):
    """Base exception for all branchlet errors."""
    pass


class ConfigError(BranchletError):
    """Exception raised for invalid or unwritable configuration."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path

        error_msg = message
        if path:
            error_msg += f" ({path})"

        super().__init__(error_msg)


class GitQueryError(BranchletError):
    """Exception raised when a read-only git query fails or cannot be parsed."""

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        self.message = message

        error_msg = f"Git query '{operation}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class GitCommandError(BranchletError):
    """Exception raised when a mutating git command exits non-zero."""

    def __init__(
        self,
        operation: str,
        stderr: Optional[str] = None,
        status: Optional[int] = None,
        target: Optional[str] = None,
    ):
        self.operation = operation
        self.stderr = stderr
        self.status = status
        self.target = target

        error_msg = f"git {operation} failed"
        if target:
            error_msg += f" for '{target}'"
        if status is not None:
            error_msg += f" (exit {status})"
        if stderr:
            error_msg += f": {stderr}"

        super().__init__(error_msg)


class BranchDeletionBlockedError(GitCommandError):
    """Exception raised in strict mode when deleting a branch would lose work."""

    def __init__(self, branch: str, reasons: List[str]):
        self.branch = branch
        self.reasons = reasons
        super().__init__("branch -D", stderr="; ".join(reasons), target=branch)


class ValidationError(BranchletError):
    """Exception raised when a directory or branch name is rejected."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(message)


class FileSyncError(BranchletError):
    """Exception raised for unrecoverable I/O errors while copying files."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"Failed to copy '{path}': {message}")


class CommandExecutionError(BranchletError):
    """Exception raised when a post-create or terminal command fails."""

    def __init__(self, command: str, exit_code: Optional[int] = None, output: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.output = output

        error_msg = f"Command failed: {command}"
        if exit_code is not None:
            error_msg += f" (exit {exit_code})"
        if output:
            error_msg += f"\n{output}"

        super().__init__(error_msg)


class FlowStateError(BranchletError):
    """Exception raised when a flow method is called in a step that does not allow it."""

    def __init__(self, flow: str, step: str, action: str):
        self.flow = flow
        self.step = step
        self.action = action
        super().__init__(f"Cannot {action} while the {flow} flow is in step '{step}'")


class FlowCancelledError(BranchletError):
    """Exception raised inside a flow when the user cancelled before the next stage."""

    def __init__(self, message: str = "Cancelled by user"):
        super().__init__(message)
