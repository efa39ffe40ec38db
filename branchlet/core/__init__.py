"""Flows and orchestration for branchlet."""

from .batch_delete import BatchDeleteCoordinator
from .close_flow import CloseFlow
from .create_flow import BranchOption, CreateFlow
from .navigation import find_worktree_containing_path, resolve_target_path
from .worktree_manager import WorktreeManager

__all__ = [
    "BatchDeleteCoordinator",
    "BranchOption",
    "CloseFlow",
    "CreateFlow",
    "WorktreeManager",
    "find_worktree_containing_path",
    "resolve_target_path",
]
