"""Delete several worktrees in one go, isolating failures per worktree."""

import os
from typing import Callable, Dict, Iterable, List, Optional

from branchlet.exceptions import BranchletError
from branchlet.models.flow import BatchDeleteOutcome
from branchlet.models.worktree import WorktreeInfo
from branchlet.services.git import GitWorktreeService
from branchlet.utils.logging import get_logger

logger = get_logger(__name__)

# (path, position, total) with a 1-based position
DeleteProgressCallback = Callable[[str, int, int], None]


class BatchDeleteCoordinator:
    """Deletes worktrees one after another through a single GitWorktreeService."""

    def __init__(
        self,
        git_service: GitWorktreeService,
        worktrees: Optional[List[WorktreeInfo]] = None,
        strict: bool = False,
    ):
        """
        Args:
            git_service: Service used for every deletion
            worktrees: Known worktrees with ``is_clean`` filled in; listed
                from git when not given
            strict: Refuse branch deletions that would lose commits
        """
        self.git_service = git_service
        self.worktrees = worktrees
        self.strict = strict

    def _known_worktrees(self) -> Dict[str, WorktreeInfo]:
        worktrees = self.worktrees
        if worktrees is None:
            worktrees = self.git_service.list_worktrees(check_clean=True)
        return {os.path.realpath(wt.path): wt for wt in worktrees}

    def run(self, paths: Iterable[str], on_progress: Optional[DeleteProgressCallback] = None) -> BatchDeleteOutcome:
        """
        Delete each path in order. Dirty worktrees are force-removed.

        A failure is recorded and processing continues with the next path.
        Repeated paths are processed once.

        Returns:
            BatchDeleteOutcome where every distinct path is either succeeded or failed
        """
        unique_paths: List[str] = []
        for path in paths:
            if path not in unique_paths:
                unique_paths.append(path)

        known = self._known_worktrees()
        outcome = BatchDeleteOutcome()
        total = len(unique_paths)

        for position, path in enumerate(unique_paths, start=1):
            if on_progress is not None:
                on_progress(path, position, total)

            worktree = known.get(os.path.realpath(path))
            force = worktree is not None and not worktree.is_clean

            try:
                result = self.git_service.delete_worktree(path, force=force, strict=self.strict)
            except BranchletError as e:
                logger.error(f"Failed to delete worktree {path}: {e}")
                outcome.failed.append((path, str(e)))
                continue
            except Exception as e:
                logger.exception(f"Unexpected error deleting worktree {path}")
                outcome.failed.append((path, str(e)))
                continue

            outcome.succeeded.append(path)
            if result.warnings:
                outcome.warnings[path] = list(result.warnings)

        logger.info(f"Deleted {len(outcome.succeeded)}/{total} worktree(s)")
        return outcome
