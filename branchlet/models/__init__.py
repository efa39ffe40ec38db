"""Data models for branchlet."""

from .worktree import BranchInfo, CurrentWorktreeInfo, DeleteResult, RepositoryInfo, WorktreeInfo
from .flow import (
    BatchDeleteOutcome,
    CLOSE_TRANSITIONS,
    CREATE_TRANSITIONS,
    CloseFlowState,
    CloseResult,
    CloseStep,
    CommandProgress,
    CreateFlowState,
    CreateStage,
    CreateStep,
    FlowObserver,
)

__all__ = [
    "BranchInfo",
    "CurrentWorktreeInfo",
    "DeleteResult",
    "RepositoryInfo",
    "WorktreeInfo",
    "BatchDeleteOutcome",
    "CLOSE_TRANSITIONS",
    "CREATE_TRANSITIONS",
    "CloseFlowState",
    "CloseResult",
    "CloseStep",
    "CommandProgress",
    "CreateFlowState",
    "CreateStage",
    "CreateStep",
    "FlowObserver",
]
