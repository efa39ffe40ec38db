"""Worktree and repository data models."""

from dataclasses import dataclass, field
from typing import List, Optional

from branchlet.constants import DETACHED_BRANCH


@dataclass
class BranchInfo:
    """A local branch of the repository."""

    name: str
    is_current: bool = False
    is_default: bool = False


@dataclass
class WorktreeInfo:
    """Information about a git worktree."""

    path: str
    branch: str  # "detached" for a detached HEAD
    commit_sha: str = ""
    is_main: bool = False  # Is this the main working tree?
    is_clean: bool = True  # No staged, unstaged or untracked changes
    is_orphaned: bool = False  # Directory missing?

    @property
    def is_detached(self) -> bool:
        return self.branch == DETACHED_BRANCH

    def __str__(self) -> str:
        """String representation of worktree."""
        status = "orphaned" if self.is_orphaned else ("clean" if self.is_clean else "dirty")
        main_marker = " (main)" if self.is_main else ""
        return f"{self.branch} @ {self.path}{main_marker} [{status}]"


@dataclass
class RepositoryInfo:
    """Snapshot of a repository: its main root, branches and worktrees."""

    root_path: str
    current_branch: Optional[str]
    branches: List[BranchInfo] = field(default_factory=list)
    worktrees: List[WorktreeInfo] = field(default_factory=list)

    def find_branch(self, name: str) -> Optional[BranchInfo]:
        for branch in self.branches:
            if branch.name == name:
                return branch
        return None

    def find_worktree(self, path: str) -> Optional[WorktreeInfo]:
        for worktree in self.worktrees:
            if worktree.path == path:
                return worktree
        return None

    @property
    def additional_worktrees(self) -> List[WorktreeInfo]:
        """Worktrees other than the main working tree."""
        return [wt for wt in self.worktrees if not wt.is_main]


@dataclass
class CurrentWorktreeInfo:
    """Where the working directory sits relative to the repository's worktrees."""

    is_worktree: bool
    worktree_path: Optional[str] = None
    main_repo_path: Optional[str] = None
    branch: Optional[str] = None


@dataclass
class DeleteResult:
    """Outcome of deleting a single worktree."""

    path: str
    branch: Optional[str] = None
    branch_deleted: bool = False
    warnings: List[str] = field(default_factory=list)
