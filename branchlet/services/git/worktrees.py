"""Worktree operations service for branchlet."""

import os
from typing import Any, Dict, List, Optional

from branchlet.config import Config
from branchlet.constants import DETACHED_BRANCH, HEADS_PREFIX
from branchlet.exceptions import (
    BranchDeletionBlockedError,
    BranchletError,
    GitCommandError,
    GitQueryError,
)
from branchlet.models.worktree import (
    CurrentWorktreeInfo,
    DeleteResult,
    RepositoryInfo,
    WorktreeInfo,
)
from branchlet.services.git.branches import BranchService
from branchlet.services.git.commands import open_repo, run_command, run_query
from branchlet.utils.logging import get_logger

logger = get_logger(__name__)


def _same_path(a: str, b: str) -> bool:
    return os.path.realpath(a) == os.path.realpath(b)


def parse_worktree_porcelain(output: str) -> List[Dict[str, Any]]:
    """Parse ``git worktree list --porcelain`` output.

    Format (blank line between worktrees)::

        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name      (or "detached")

    The first entry is always the main working tree.

    Returns:
        One dict per worktree with path, HEAD, branch, is_main and prunable keys
    """
    entries: List[Dict[str, Any]] = []
    current: Dict[str, Any] = {}

    def flush():
        if current.get("path"):
            current.setdefault("branch", DETACHED_BRANCH)
            current["is_main"] = not entries
            entries.append(dict(current))
        current.clear()

    for line in output.split("\n"):
        line = line.strip()

        if not line:
            # Empty line marks end of worktree entry
            flush()
            continue

        if line.startswith("worktree "):
            flush()
            current["path"] = line.split(" ", 1)[1]
        elif line.startswith("HEAD "):
            current["HEAD"] = line.split(" ", 1)[1]
        elif line.startswith("branch "):
            branch_ref = line.split(" ", 1)[1]
            if branch_ref.startswith(HEADS_PREFIX):
                current["branch"] = branch_ref[len(HEADS_PREFIX):]
            else:
                current["branch"] = DETACHED_BRANCH
        elif line == "detached":
            current["branch"] = DETACHED_BRANCH
        elif line == "bare":
            current["bare"] = True
        elif line.startswith("prunable"):
            current["prunable"] = True

    # Handle last entry if no trailing blank line
    flush()
    return entries


class GitWorktreeService:
    """Service for querying and mutating git worktrees.

    Every call blocks until git exits, so mutations issued through one
    service instance never overlap.
    """

    def __init__(self, repo_path: str, config: Optional[Config] = None):
        """Initialize the worktree service.

        Args:
            repo_path: Path inside the git repository
            config: Resolved configuration (controls branch deletion)
        """
        self.repo_path = repo_path
        self.config = config or Config()
        self.branches = BranchService(repo_path)

    def _get_repo(self):
        """Open a fresh git.Repo for the configured path.

        Raises:
            GitQueryError: If the path is not inside a repository
        """
        return open_repo(self.repo_path)

    def list_worktrees(self, check_clean: bool = True) -> List[WorktreeInfo]:
        """Get detailed information about all worktrees.

        Args:
            check_clean: Run ``git status`` in each worktree to fill ``is_clean``

        Returns:
            List of WorktreeInfo objects, main working tree first
        """
        repo = self._get_repo()
        output = run_query(repo, "worktree", "list", "--porcelain")

        worktree_list = []
        for entry in parse_worktree_porcelain(output):
            path = entry["path"]
            is_orphaned = entry.get("prunable", False) or not os.path.exists(path)
            is_clean = True
            if check_clean and not is_orphaned and not entry.get("bare"):
                is_clean = self.is_worktree_clean(path)

            worktree_list.append(
                WorktreeInfo(
                    path=path,
                    branch=entry["branch"],
                    commit_sha=entry.get("HEAD", ""),
                    is_main=entry["is_main"],
                    is_clean=is_clean,
                    is_orphaned=is_orphaned,
                )
            )

        logger.debug(f"Found {len(worktree_list)} worktrees")
        for wt in worktree_list:
            logger.debug(f"  {wt}")
        return worktree_list

    def get_repository_info(self) -> RepositoryInfo:
        """Describe the repository: main root, current branch, branches and worktrees.

        Raises:
            GitQueryError: If not inside a repository or a git query fails
        """
        repo = self._get_repo()
        worktrees = self.list_worktrees()
        root_path = worktrees[0].path if worktrees else repo.working_tree_dir
        if root_path is None:
            raise GitQueryError("repository info", "bare repositories are not supported")

        current_branch = self.branches.get_current_branch()
        branches = self.branches.list_branches(current_branch=current_branch)

        return RepositoryInfo(
            root_path=root_path,
            current_branch=current_branch,
            branches=branches,
            worktrees=worktrees,
        )

    def create_worktree(self, name: str, source_branch: str, new_branch: str, base_path: str) -> str:
        """Create a worktree at ``base_path/name``.

        When ``new_branch`` equals ``source_branch`` the existing branch is
        checked out; otherwise ``new_branch`` is created from ``source_branch``.

        Returns:
            Path of the new worktree

        Raises:
            GitCommandError: If ``git worktree add`` fails (carries git's stderr)
        """
        repo = self._get_repo()
        path = os.path.join(base_path, name)

        if new_branch == source_branch:
            args = ["worktree", "add", path, source_branch]
        else:
            args = ["worktree", "add", "-b", new_branch, path, source_branch]

        run_command(repo, "worktree add", *args, target=path)
        logger.info(f"Created worktree at {path} on branch {new_branch}")
        return path

    def is_worktree_clean(self, path: str) -> bool:
        """Check that a worktree has no staged, unstaged or untracked changes.

        Raises:
            GitQueryError: If ``git status`` fails in that directory
        """
        if not os.path.isdir(path):
            raise GitQueryError("status", f"worktree path '{path}' does not exist")
        repo = self._get_repo()
        status = run_query(repo, "status", "--porcelain", "--untracked-files=normal", cwd=path)
        return not status.strip()

    def get_worktree_status_details(self, path: str) -> Dict[str, bool]:
        """Get modified/untracked/staged flags for a worktree.

        Returns:
            Dict with 'modified', 'untracked' and 'staged' flags
        """
        repo = self._get_repo()
        status = run_query(repo, "status", "--porcelain", "--untracked-files=normal", cwd=path)

        # Porcelain format: XY filename (X = index, Y = working tree)
        details = {"modified": False, "untracked": False, "staged": False}
        for line in status.split("\n"):
            if len(line) < 2:
                continue
            if line.startswith("??"):
                details["untracked"] = True
                continue
            if line[0] != " ":
                details["staged"] = True
            if line[1] != " ":
                details["modified"] = True
        return details

    def get_current_worktree_info(self, cwd: Optional[str] = None) -> CurrentWorktreeInfo:
        """Determine whether ``cwd`` is inside a linked (non-main) worktree.

        Args:
            cwd: Directory to inspect (defaults to the process cwd)

        Raises:
            GitQueryError: If ``cwd`` is not inside a repository
        """
        cwd = cwd or os.getcwd()
        repo = self._get_repo()
        toplevel = run_query(repo, "rev-parse", "--show-toplevel", cwd=cwd).strip()

        worktrees = self.list_worktrees(check_clean=False)
        main = next((wt for wt in worktrees if wt.is_main), None)
        if main is None or _same_path(toplevel, main.path):
            return CurrentWorktreeInfo(
                is_worktree=False,
                main_repo_path=main.path if main else toplevel,
            )

        branch = self.branches.get_current_branch(cwd=toplevel) or DETACHED_BRANCH
        # Report the path the way git lists it
        worktree_path = next(
            (wt.path for wt in worktrees if _same_path(wt.path, toplevel)), toplevel
        )
        return CurrentWorktreeInfo(
            is_worktree=True,
            worktree_path=worktree_path,
            main_repo_path=main.path,
            branch=branch,
        )

    def prune_worktrees(self) -> None:
        """Prune metadata of worktrees whose directories are gone.

        Raises:
            GitCommandError: If ``git worktree prune`` fails
        """
        repo = self._get_repo()
        run_command(repo, "worktree prune", "worktree", "prune")
        logger.info("Pruned orphaned worktree metadata")

    def _branch_deletion_risks(self, branch: str) -> List[str]:
        """Describe work that deleting ``branch`` would discard."""
        unique = self.branches.count_unique_commits(branch)
        if unique:
            return [f"branch '{branch}' has {unique} commit(s) not on any other branch or remote"]
        return []

    def delete_worktree(self, path: str, force: bool = False, strict: bool = False) -> DeleteResult:
        """Remove a worktree and, if configured, its branch.

        Args:
            path: Path of the worktree to remove
            force: Remove even if the worktree has uncommitted or untracked changes
            strict: Refuse (before removing anything) when deleting the branch
                would lose commits that exist nowhere else

        Returns:
            DeleteResult with any warnings about discarded work

        Raises:
            GitCommandError: If git refuses the removal (e.g. dirty without force)
            BranchDeletionBlockedError: In strict mode, when work would be lost
        """
        worktrees = self.list_worktrees(check_clean=False)
        target = next((wt for wt in worktrees if _same_path(wt.path, path)), None)
        branch = target.branch if target else None
        result = DeleteResult(path=path, branch=branch)

        if target is not None and target.is_main:
            raise GitCommandError(
                "worktree remove", stderr="refusing to remove the main working tree", target=path
            )

        if force and target is not None and not target.is_orphaned and not self.is_worktree_clean(path):
            result.warnings.append(f"uncommitted changes in '{path}' were discarded")

        delete_branch = bool(
            self.config.delete_branch_with_worktree and branch and branch != DETACHED_BRANCH
        )
        if delete_branch:
            checked_out_elsewhere = [
                wt.path for wt in worktrees if wt.branch == branch and not _same_path(wt.path, path)
            ]
            if checked_out_elsewhere:
                result.warnings.append(
                    f"branch '{branch}' is checked out at {checked_out_elsewhere[0]}; not deleted"
                )
                delete_branch = False
            else:
                risks = self._branch_deletion_risks(branch)
                if risks and strict:
                    raise BranchDeletionBlockedError(branch, risks)
                result.warnings.extend(risks)

        repo = self._get_repo()
        if target is not None and target.is_orphaned:
            # Directory already gone; only the metadata is left
            run_command(repo, "worktree prune", "worktree", "prune", target=path)
        else:
            args = ["worktree", "remove", path]
            if force:
                args.append("--force")
            run_command(repo, "worktree remove", *args, target=path)
        logger.info(f"Removed worktree at {path}")

        if delete_branch:
            try:
                self.branches.delete_branch(branch)
                result.branch_deleted = True
            except BranchletError as e:
                result.warnings.append(f"worktree removed but branch '{branch}' was kept: {e}")

        for warning in result.warnings:
            logger.warning(warning)
        return result
