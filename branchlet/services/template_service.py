"""Template rendering for worktree paths and commands.

Templates use four tokens:

- ``$BASE_PATH``: name of the main repository directory
- ``$WORKTREE_PATH``: full path of the new worktree
- ``$BRANCH_NAME``: name of the new branch
- ``$SOURCE_BRANCH``: branch the worktree was created from

Substitution is literal. Tokens without a value, and anything that only looks
like a token, are left untouched.
"""

import os
import re
from pathlib import Path
from typing import Dict, Mapping, Optional

from branchlet.constants import DEFAULT_WORKTREE_PATH_TEMPLATE, TEMPLATE_VARIABLES

# Longest names first so no token can shadow a longer one
_TOKEN_PATTERN = re.compile(
    r"\$(" + "|".join(sorted(TEMPLATE_VARIABLES, key=len, reverse=True)) + r")"
)


class PathTemplateEngine:
    """Renders ``$TOKEN`` templates against a fixed variable set."""

    @staticmethod
    def render(template: str, variables: Mapping[str, str]) -> str:
        """
        Render a template in a single pass.

        Args:
            template: Template string
            variables: Values keyed by token name without the ``$``

        Returns:
            The rendered string
        """
        def substitute(match: re.Match) -> str:
            value = variables.get(match.group(1))
            return match.group(0) if value is None else str(value)

        return _TOKEN_PATTERN.sub(substitute, template)


def render_template(template: str, variables: Mapping[str, str]) -> str:
    """Module-level shortcut for PathTemplateEngine.render."""
    return PathTemplateEngine.render(template, variables)


def build_variables(
    repo_root: str,
    worktree_path: Optional[str] = None,
    branch_name: Optional[str] = None,
    source_branch: Optional[str] = None,
) -> Dict[str, str]:
    """Build the template variables for a worktree. Unknown values are omitted."""
    variables = {"BASE_PATH": os.path.basename(os.path.normpath(repo_root))}
    if worktree_path is not None:
        variables["WORKTREE_PATH"] = worktree_path
    if branch_name is not None:
        variables["BRANCH_NAME"] = branch_name
    if source_branch is not None:
        variables["SOURCE_BRANCH"] = source_branch
    return variables


def get_worktree_path(
    repo_root: str,
    directory_name: str,
    template: str = DEFAULT_WORKTREE_PATH_TEMPLATE,
    branch_name: Optional[str] = None,
    source_branch: Optional[str] = None,
) -> str:
    """
    Compute where a new worktree directory goes.

    The rendered template names the folder that holds worktrees. A relative
    result is placed next to the repository, so the default
    ``$BASE_PATH.worktree`` turns ``/code/app`` into ``/code/app.worktree/<name>``.
    Absolute and ``~`` templates are used as they are.

    Args:
        repo_root: Main repository root
        directory_name: Name of the new worktree directory
        template: Worktree path template
        branch_name: New branch name, for templates that use ``$BRANCH_NAME``
        source_branch: Source branch, for templates that use ``$SOURCE_BRANCH``

    Returns:
        Absolute path of the new worktree
    """
    variables = build_variables(repo_root, branch_name=branch_name, source_branch=source_branch)
    container = Path(render_template(template, variables)).expanduser()
    if not container.is_absolute():
        container = Path(os.path.normpath(repo_root)).parent / container
    return str(container / directory_name)
