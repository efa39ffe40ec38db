"""Close-worktree flow: leave the current linked worktree and hand its removal to the shell."""

import os
from typing import Optional

from branchlet.config import Config
from branchlet.constants import DETACHED_BRANCH, Messages
from branchlet.core.navigation import resolve_target_path
from branchlet.exceptions import BranchletError, FlowCancelledError, FlowStateError
from branchlet.models.flow import CLOSE_TRANSITIONS, CloseFlowState, CloseResult, CloseStep, FlowObserver
from branchlet.services.git import GitWorktreeService
from branchlet.utils.logging import get_logger

logger = get_logger(__name__)


class CloseFlow:
    """State machine behind ``branchlet close``.

    The flow never deletes anything itself. Confirming produces a CloseResult
    telling the shell wrapper where to ``cd`` and which worktree to remove
    once it has left it.
    """

    def __init__(
        self,
        git_service: GitWorktreeService,
        config: Config,
        supports_navigation: bool = False,
        original_cwd: Optional[str] = None,
        observer: Optional[FlowObserver] = None,
    ):
        self.git_service = git_service
        self.config = config
        self.supports_navigation = supports_navigation
        self.original_cwd = original_cwd or os.getcwd()
        self.observer = observer or FlowObserver()
        self.state = CloseFlowState()
        self.cancelled = False

    def _transition(self, new_step: CloseStep) -> None:
        old_step = self.state.step
        if new_step not in CLOSE_TRANSITIONS[old_step]:
            raise FlowStateError("close", old_step.value, f"move to '{new_step.value}'")
        self.state.step = new_step
        logger.debug(f"Close flow: {old_step.value} -> {new_step.value}")
        self.observer.on_transition(old_step, new_step, self.state)

    def _fail(self, message: str) -> CloseFlowState:
        self.state.error = message
        logger.debug(f"Close flow failed: {message}")
        self._transition(CloseStep.FAILED)
        return self.state

    def check(self) -> CloseFlowState:
        """Verify the cwd is a clean linked worktree and move to confirmation."""
        if self.state.step != CloseStep.CHECKING:
            raise FlowStateError("close", self.state.step.value, "check preconditions")

        try:
            info = self.git_service.get_current_worktree_info(self.original_cwd)
        except BranchletError as e:
            return self._fail(str(e))

        if not info.is_worktree or not info.worktree_path or not info.main_repo_path:
            return self._fail(Messages.CLOSE_NOT_IN_WORKTREE)

        try:
            clean = self.git_service.is_worktree_clean(info.worktree_path)
        except BranchletError as e:
            return self._fail(str(e))
        if not clean:
            return self._fail(Messages.CLOSE_HAS_UNCOMMITTED_CHANGES)

        self.state.worktree_path = info.worktree_path
        self.state.main_repo_path = info.main_repo_path
        self.state.branch = info.branch
        self._transition(CloseStep.CONFIRM)
        return self.state

    @property
    def will_delete_branch(self) -> bool:
        """Whether removing this worktree will also delete its branch."""
        return bool(
            self.config.delete_branch_with_worktree
            and self.state.branch
            and self.state.branch != DETACHED_BRANCH
        )

    def confirm(self) -> Optional[CloseResult]:
        """Produce the navigation handoff, or fail without shell integration.

        Returns:
            CloseResult, or None if the flow ended in FAILED

        Raises:
            FlowCancelledError: If the flow was cancelled
        """
        if self.state.step != CloseStep.CONFIRM:
            raise FlowStateError("close", self.state.step.value, "confirm")
        if self.cancelled:
            raise FlowCancelledError(Messages.CANCELLED)

        if not self.supports_navigation:
            self._fail(Messages.CLOSE_REQUIRES_SHELL_INTEGRATION)
            return None

        navigate_to = resolve_target_path(
            self.state.worktree_path, self.state.main_repo_path, self.original_cwd
        )
        self._transition(CloseStep.CLOSING)
        logger.info(f"Closing {self.state.worktree_path}; returning to {navigate_to}")
        return CloseResult(navigate_to=navigate_to, delete_worktree=self.state.worktree_path)

    def cancel(self) -> None:
        """Leave without producing a handoff."""
        self.cancelled = True
        logger.debug(f"Close flow cancelled in step {self.state.step.value}")
