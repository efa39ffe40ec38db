"""Services for branchlet."""

from .command_runner import CommandRunner
from .config_service import ConfigService
from .file_sync_service import FileSyncService
from .git import BranchService, GitWorktreeService
from .template_service import PathTemplateEngine, build_variables, get_worktree_path, render_template

__all__ = [
    "BranchService",
    "CommandRunner",
    "ConfigService",
    "FileSyncService",
    "GitWorktreeService",
    "PathTemplateEngine",
    "build_variables",
    "get_worktree_path",
    "render_template",
]
