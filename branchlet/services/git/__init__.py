"""Git-related services for branchlet."""

from .branches import BranchService
from .worktrees import GitWorktreeService, parse_worktree_porcelain

__all__ = [
    "BranchService",
    "GitWorktreeService",
    "parse_worktree_porcelain",
]
