"""Shared constants for branchlet."""

from pathlib import Path

# Configuration file locations
GLOBAL_CONFIG_DIR_NAME = ".branchlet"
GLOBAL_CONFIG_FILE_NAME = "settings.json"
LOCAL_CONFIG_FILE_NAME = ".branchlet.json"


def global_config_dir() -> Path:
    """Directory holding the global settings file (resolved at call time)."""
    return Path.home() / GLOBAL_CONFIG_DIR_NAME


def global_config_file() -> Path:
    """Path of the global settings file."""
    return global_config_dir() / GLOBAL_CONFIG_FILE_NAME


# Template tokens understood by the path/command template engine
TEMPLATE_VARIABLES = ("BASE_PATH", "WORKTREE_PATH", "BRANCH_NAME", "SOURCE_BRANCH")

DEFAULT_WORKTREE_PATH_TEMPLATE = "$BASE_PATH.worktree"
DEFAULT_COPY_PATTERNS = [".env*", ".vscode/**"]
DEFAULT_COPY_IGNORES = [
    "**/node_modules/**",
    "**/dist/**",
    "**/.git/**",
    "**/Thumbs.db",
    "**/.DS_Store",
]

# Branch name reported for worktrees with a detached HEAD
DETACHED_BRANCH = "detached"

# Prefix git uses for local branch refs in porcelain output
HEADS_PREFIX = "refs/heads/"


# User-facing messages shared by the flows and the CLI
class Messages:
    """Message strings surfaced through flow error states."""

    CLOSE_NOT_IN_WORKTREE = "Not in a worktree. The close command can only be used from within a worktree."
    CLOSE_HAS_UNCOMMITTED_CHANGES = (
        "Worktree has uncommitted changes. Please commit or stash them before closing."
    )
    CLOSE_REQUIRES_SHELL_INTEGRATION = (
        "Closing a worktree requires shell integration so the shell can change directory."
    )
    SOURCE_BRANCH_NOT_FOUND = "Specified branch '{branch}' not found"
    DEFAULT_BRANCH_NOT_FOUND = "Configured default branch '{branch}' not found"
    CURRENT_BRANCH_UNKNOWN = "Could not determine current branch"
    BRANCH_EXISTS = "Branch '{branch}' already exists"
    BRANCH_NOT_FOUND = "Branch '{branch}' not found"
    CANCELLED = "Cancelled by user"

# Seconds to watch a launched terminal/editor for an immediate failure
TERMINAL_LAUNCH_GRACE_SECONDS = 0.5
