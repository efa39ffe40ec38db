"""Branch queries and mutations for branchlet."""

from typing import List, Optional

from branchlet.constants import HEADS_PREFIX
from branchlet.exceptions import GitQueryError
from branchlet.models.worktree import BranchInfo
from branchlet.services.git.commands import open_repo, run_command, run_query
from branchlet.utils.logging import get_logger

logger = get_logger(__name__)


class BranchService:
    """Service for local branch queries and deletion."""

    def __init__(self, repo_path: str):
        """Initialize the branch service.

        Args:
            repo_path: Path inside the git repository
        """
        self.repo_path = repo_path

    def _get_repo(self):
        """Open a fresh git.Repo for the configured path."""
        return open_repo(self.repo_path)

    def get_current_branch(self, cwd: Optional[str] = None) -> Optional[str]:
        """Get the branch checked out at ``cwd`` (defaults to the repo path).

        Returns:
            Branch name, or None for a detached HEAD
        """
        repo = self._get_repo()
        name = run_query(repo, "branch", "--show-current", cwd=cwd or self.repo_path).strip()
        return name or None

    def list_branch_names(self) -> List[str]:
        """List local branch names in git's sort order."""
        repo = self._get_repo()
        output = run_query(repo, "for-each-ref", "--format=%(refname)", HEADS_PREFIX.rstrip("/"))
        names = []
        for line in output.splitlines():
            line = line.strip()
            if line.startswith(HEADS_PREFIX):
                names.append(line[len(HEADS_PREFIX):])
        return names

    def branch_exists(self, name: str) -> bool:
        """Check whether a local branch exists."""
        return name in self.list_branch_names()

    def get_default_branch(self, names: Optional[List[str]] = None) -> Optional[str]:
        """Determine the repository's default branch.

        Uses the remote HEAD (``origin/HEAD``) when known, otherwise the first
        of ``main``/``master`` that exists locally.
        """
        names = names if names is not None else self.list_branch_names()
        repo = self._get_repo()
        try:
            remote_head = run_query(
                repo, "symbolic-ref", "--quiet", "--short", "refs/remotes/origin/HEAD"
            ).strip()
            if remote_head.startswith("origin/"):
                candidate = remote_head[len("origin/"):]
                if candidate in names:
                    return candidate
        except GitQueryError:
            logger.debug("No origin/HEAD, falling back to main/master")

        for candidate in ("main", "master"):
            if candidate in names:
                return candidate
        return None

    def list_branches(self, current_branch: Optional[str] = None) -> List[BranchInfo]:
        """List local branches with current/default markers.

        Args:
            current_branch: Branch to mark as current (looked up if omitted)
        """
        names = self.list_branch_names()
        if current_branch is None:
            current_branch = self.get_current_branch()
        default_branch = self.get_default_branch(names)

        return [
            BranchInfo(
                name=name,
                is_current=name == current_branch,
                is_default=name == default_branch,
            )
            for name in names
        ]

    def count_unique_commits(self, branch_name: str) -> int:
        """Count commits reachable only from ``branch_name``.

        A commit that no other local branch and no remote-tracking branch
        contains would be lost if the branch were deleted.
        """
        repo = self._get_repo()
        output = run_query(
            repo,
            "rev-list",
            "--count",
            f"{HEADS_PREFIX}{branch_name}",
            "--not",
            f"--exclude={branch_name}",
            "--branches",
            "--remotes",
        )
        try:
            return int(output.strip() or 0)
        except ValueError as e:
            raise GitQueryError("rev-list --count", f"unexpected output {output!r}") from e

    def delete_branch(self, branch_name: str) -> None:
        """Force-delete a local branch.

        Raises:
            GitCommandError: If git refuses the deletion
        """
        repo = self._get_repo()
        run_command(repo, "branch -D", "branch", "-D", branch_name, target=branch_name)
        logger.info(f"Deleted branch {branch_name}")
