"""Helpers for invoking git through GitPython and translating its errors."""

from typing import Optional

import git

from branchlet.exceptions import GitCommandError, GitQueryError
from branchlet.utils.logging import get_logger

logger = get_logger(__name__)


def open_repo(path: str) -> git.Repo:
    """Open the repository containing ``path``.

    Raises:
        GitQueryError: If ``path`` is not inside a git repository
    """
    try:
        return git.Repo(path, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
        raise GitQueryError("open repository", f"'{path}' is not inside a git repository") from e


def clean_stderr(error: git.exc.GitCommandError) -> str:
    """Extract the plain stderr text from a GitPython error."""
    stderr = (error.stderr if hasattr(error, "stderr") else str(error)) or ""
    stderr = stderr.strip()
    # GitPython wraps stderr as "stderr: '<text>'"
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip()
        if len(stderr) >= 2 and stderr[0] == stderr[-1] == "'":
            stderr = stderr[1:-1]
    return stderr.strip()


def _build(args: tuple, cwd: Optional[str]) -> list:
    command = ["git"]
    if cwd:
        command += ["-C", cwd]
    return command + list(args)


def run_query(repo: git.Repo, *args: str, cwd: Optional[str] = None) -> str:
    """Run a read-only git command and return its stdout.

    Raises:
        GitQueryError: If git exits non-zero
    """
    try:
        return repo.git.execute(_build(args, cwd))
    except git.exc.GitCommandError as e:
        operation = " ".join(args[:2])
        logger.debug(f"git {operation} failed (exit {e.status}): {clean_stderr(e)}")
        raise GitQueryError(operation, clean_stderr(e) or f"exit code {e.status}") from e


def run_command(
    repo: git.Repo,
    operation: str,
    *args: str,
    cwd: Optional[str] = None,
    target: Optional[str] = None,
) -> str:
    """Run a mutating git command and return its stdout.

    Raises:
        GitCommandError: If git exits non-zero, carrying git's stderr
    """
    try:
        output = repo.git.execute(_build(args, cwd))
    except git.exc.GitCommandError as e:
        status = e.status if isinstance(e.status, int) else None
        stderr = clean_stderr(e)
        logger.error(f"git {operation} failed (exit {e.status}): {stderr}")
        raise GitCommandError(operation, stderr=stderr, status=status, target=target) from e
    logger.debug(f"git {' '.join(args)} succeeded")
    return output
