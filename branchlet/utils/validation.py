"""Naming rules for worktree directories, branches and branch prefixes.

All functions here are pure: they never touch git or the filesystem, so the
create flow can call them on every keystroke and retry without cost.
"""

import re
from typing import Optional

MAX_DIRECTORY_NAME_LENGTH = 255

_INVALID_DIRECTORY_CHARS = re.compile(r'[<>:"|?*/\\\x00-\x1f]')
# Characters git check-ref-format rejects anywhere in a ref name
_INVALID_BRANCH_CHARS = re.compile(r"[\s~^:?*\[\\\x00-\x1f\x7f]")
_INVALID_PREFIX_CHARS = re.compile(r"[\s~^:?*\[\]\\@]")


def validate_directory_name(name: str) -> Optional[str]:
    """
    Validate a worktree directory name.

    Args:
        name: Directory name entered by the user

    Returns:
        An error message, or None if the name is acceptable
    """
    trimmed = name.strip()
    if not trimmed:
        return "Directory name cannot be empty"
    if trimmed in (".", ".."):
        return "Directory name cannot be '.' or '..'"
    if _INVALID_DIRECTORY_CHARS.search(trimmed):
        return 'Directory name contains invalid characters (< > : " | ? * / \\)'
    if trimmed.startswith("-"):
        return "Directory name cannot start with '-'"
    if len(trimmed) > MAX_DIRECTORY_NAME_LENGTH:
        return f"Directory name is too long (max {MAX_DIRECTORY_NAME_LENGTH} characters)"
    return None


def validate_branch_name(name: str) -> Optional[str]:
    """
    Validate a branch name against git's ref naming rules.

    Args:
        name: Full branch name (after any prefix has been applied)

    Returns:
        An error message, or None if the name is acceptable
    """
    if not name or not name.strip():
        return "Branch name cannot be empty"
    if name.startswith("-"):
        return "Branch name cannot start with '-'"
    if name.startswith("/") or name.endswith("/"):
        return "Branch name cannot start or end with '/'"
    if name.endswith(".") or name.endswith(".lock"):
        return "Branch name cannot end with '.' or '.lock'"
    if name == "@":
        return "Branch name cannot be '@'"
    if ".." in name or "//" in name or "@{" in name:
        return "Branch name cannot contain '..', '//' or '@{'"
    if _INVALID_BRANCH_CHARS.search(name):
        return "Branch name contains invalid characters"
    if any(part.startswith(".") for part in name.split("/")):
        return "Branch name components cannot start with '.'"
    return None


def apply_branch_prefix(branch_name: str, prefix: str) -> str:
    """
    Prepend the configured prefix unless the name already starts with it.

    Applying the rule twice gives the same result as applying it once.

    Examples:
        >>> apply_branch_prefix("login", "team/")
        'team/login'
        >>> apply_branch_prefix("team/login", "team/")
        'team/login'
    """
    if not prefix or not branch_name:
        return branch_name
    if branch_name.startswith(prefix):
        return branch_name
    return f"{prefix}{branch_name}"


def normalize_prefix(prefix: str) -> str:
    """Trim a user-entered prefix and make sure it ends with a single '/'."""
    trimmed = prefix.strip()
    if not trimmed:
        return ""
    return trimmed if trimmed.endswith("/") else f"{trimmed}/"


def validate_prefix(prefix: str) -> Optional[str]:
    """Validate a user-entered branch prefix. An empty prefix is valid (clears it)."""
    if not prefix.strip():
        return None
    if _INVALID_PREFIX_CHARS.search(prefix.strip()):
        return "Prefix contains invalid characters"
    if prefix.strip().startswith("-"):
        return "Prefix cannot start with -"
    return None


def directory_name_for_branch(branch_name: str) -> str:
    """Derive a directory name from a branch name (``feature/x`` -> ``feature-x``)."""
    return branch_name.replace("/", "-")
