"""Navigation targets that keep the user's position inside the tree."""

import os
from typing import Iterable, Optional


def resolve_target_path(
    source_root: Optional[str],
    destination_root: str,
    original_cwd: Optional[str],
) -> str:
    """
    Map the user's working directory onto another worktree.

    If the user stood in ``<source_root>/a/b``, the target is
    ``<destination_root>/a/b`` when that directory exists, otherwise
    ``destination_root``. A cwd at or outside ``source_root`` also yields
    ``destination_root``.

    Args:
        source_root: Root of the worktree the user is leaving
        destination_root: Root of the worktree to go to
        original_cwd: Directory the user ran the command from

    Returns:
        An existing directory to navigate to (or ``destination_root``)

    Examples:
        With ``/r/main/sub`` on disk:

        >>> resolve_target_path("/r/wt", "/r/main", "/r/wt/sub")  # doctest: +SKIP
        '/r/main/sub'
    """
    if not source_root or not original_cwd:
        return destination_root

    try:
        relative = os.path.relpath(os.path.realpath(original_cwd), os.path.realpath(source_root))
    except ValueError:
        # Different drives on Windows
        return destination_root

    if relative == os.curdir or relative == os.pardir or relative.startswith(os.pardir + os.sep):
        return destination_root

    target = os.path.join(destination_root, relative)
    return target if os.path.isdir(target) else destination_root


def find_worktree_containing_path(worktree_paths: Iterable[str], target_path: str) -> Optional[str]:
    """Find which worktree contains ``target_path``.

    Returns the most specific (deepest) match so nested worktrees resolve correctly.
    """
    target = os.path.realpath(target_path)
    best_match: Optional[str] = None
    best_depth = -1

    for path in worktree_paths:
        root = os.path.realpath(path)
        if target == root or target.startswith(root.rstrip(os.sep) + os.sep):
            depth = len(root.split(os.sep))
            if depth > best_depth:
                best_match = path
                best_depth = depth

    return best_match
