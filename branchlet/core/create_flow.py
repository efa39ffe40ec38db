"""Create-worktree flow.

Collects a directory name, a source branch and a new branch name, then runs
the creation stages in order: resolve the source branch, compute the target
path, add the worktree, copy configured files, run post-create commands and
launch the terminal command. A failing stage stops the run; the stages that
already completed are not undone.
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from branchlet.config import Config
from branchlet.constants import Messages
from branchlet.core.navigation import find_worktree_containing_path, resolve_target_path
from branchlet.exceptions import BranchletError, FlowCancelledError, FlowStateError, ValidationError
from branchlet.models.flow import (
    CREATE_TRANSITIONS,
    CommandProgress,
    CreateFlowState,
    CreateStage,
    CreateStep,
    FlowObserver,
)
from branchlet.models.worktree import RepositoryInfo
from branchlet.services.command_runner import CommandRunner
from branchlet.services.file_sync_service import FileSyncService
from branchlet.services.git import GitWorktreeService
from branchlet.services.template_service import build_variables, get_worktree_path
from branchlet.utils.logging import get_logger
from branchlet.utils.validation import (
    apply_branch_prefix,
    directory_name_for_branch,
    validate_branch_name,
    validate_directory_name,
)

logger = get_logger(__name__)

_INPUT_STEPS = (CreateStep.DIRECTORY, CreateStep.SOURCE_BRANCH, CreateStep.NEW_BRANCH, CreateStep.CONFIRM)
_BACK_STEPS = {
    CreateStep.SOURCE_BRANCH: CreateStep.DIRECTORY,
    CreateStep.NEW_BRANCH: CreateStep.SOURCE_BRANCH,
    CreateStep.CONFIRM: CreateStep.NEW_BRANCH,
}


@dataclass
class BranchOption:
    """A selectable source branch."""
    name: str
    is_current: bool = False
    is_default: bool = False
    selected: bool = False

    @property
    def label(self) -> str:
        tags = []
        if self.is_current:
            tags.append("current")
        if self.is_default:
            tags.append("default")
        return f"{self.name} ({', '.join(tags)})" if tags else self.name


class CreateFlow:
    """State machine behind ``branchlet create``.

    Front ends read ``state`` and drive the flow through ``submit_*``,
    ``back``, ``confirm``, ``cancel`` and ``retry``. Rejected input raises
    ValidationError and leaves the flow in the same step with
    ``state.error`` set.
    """

    def __init__(
        self,
        git_service: GitWorktreeService,
        config: Config,
        file_sync: Optional[FileSyncService] = None,
        command_runner: Optional[CommandRunner] = None,
        original_cwd: Optional[str] = None,
        observer: Optional[FlowObserver] = None,
    ):
        self.git_service = git_service
        self.config = config
        self.file_sync = file_sync or FileSyncService()
        self.command_runner = command_runner or CommandRunner()
        self.original_cwd = original_cwd
        self.observer = observer or FlowObserver()
        self.state = CreateFlowState()
        self.repo_info: Optional[RepositoryInfo] = None
        self.cancelled = False
        self._stage: Optional[CreateStage] = None

    # State helpers

    def _transition(self, new_step: CreateStep) -> None:
        old_step = self.state.step
        if new_step not in CREATE_TRANSITIONS[old_step]:
            raise FlowStateError("create", old_step.value, f"move to '{new_step.value}'")
        self.state.step = new_step
        logger.debug(f"Create flow: {old_step.value} -> {new_step.value}")
        self.observer.on_transition(old_step, new_step, self.state)

    def _require_step(self, step: CreateStep, action: str) -> None:
        if self.state.step != step:
            raise FlowStateError("create", self.state.step.value, action)

    def _reject(self, field: str, message: str) -> None:
        self.state.error = message
        raise ValidationError(field, message)

    def load(self) -> RepositoryInfo:
        """Load (or reload) repository info used for branch lists and collision checks."""
        self.repo_info = self.git_service.get_repository_info()
        return self.repo_info

    def _info(self) -> RepositoryInfo:
        if self.repo_info is None:
            return self.load()
        return self.repo_info

    def _branch_exists(self, name: str) -> bool:
        return self._info().find_branch(name) is not None

    def prefixed(self, branch_name: str) -> str:
        """Apply the configured branch prefix to a trimmed branch name."""
        return apply_branch_prefix(branch_name.strip(), self.config.branch_prefix)

    # Input steps

    def branch_options(self, override: Optional[str] = None) -> List[BranchOption]:
        """Source branches to offer, the preselected one first.

        The preselected branch is ``override`` if it exists, else the
        configured default source branch, else the current branch.
        """
        info = self._info()
        preselected = self.default_source_branch(override)
        options = [
            BranchOption(b.name, b.is_current, b.is_default, selected=b.name == preselected)
            for b in info.branches
        ]
        options.sort(key=lambda o: (not o.selected, not o.is_current, not o.is_default, o.name))
        return options

    def default_source_branch(self, override: Optional[str] = None) -> Optional[str]:
        """Branch preselected in the source-branch step."""
        info = self._info()
        for candidate in (override, self.config.default_source_branch):
            if candidate and info.find_branch(candidate):
                return candidate
        return info.current_branch

    def submit_directory(self, name: str) -> None:
        self._require_step(CreateStep.DIRECTORY, "submit a directory name")
        name = name.strip()
        error = validate_directory_name(name)
        if error:
            self._reject("directory", error)

        self.state.directory_name = name
        self.state.error = None
        self._transition(CreateStep.SOURCE_BRANCH)

    def submit_source_branch(self, branch: str) -> None:
        self._require_step(CreateStep.SOURCE_BRANCH, "submit a source branch")
        branch = branch.strip()
        if not self._branch_exists(branch):
            self._reject("source_branch", Messages.BRANCH_NOT_FOUND.format(branch=branch))

        self.state.source_branch = branch
        self.state.error = None
        self._transition(CreateStep.NEW_BRANCH)

    def validate_new_branch(self, name: str) -> Optional[str]:
        """Check a new branch name after prefixing.

        Returns:
            Error message, or None if acceptable. An empty name is acceptable
            and means "check out the source branch itself".
        """
        if not name.strip():
            return None
        branch = self.prefixed(name)
        error = validate_branch_name(branch)
        if error:
            return error
        if self._branch_exists(branch):
            return Messages.BRANCH_EXISTS.format(branch=branch)
        return None

    def submit_new_branch(self, name: str) -> None:
        self._require_step(CreateStep.NEW_BRANCH, "submit a new branch name")
        error = self.validate_new_branch(name)
        if error:
            self._reject("new_branch", error)

        self.state.new_branch = self.prefixed(name) if name.strip() else self.state.source_branch
        self.state.error = None
        self._transition(CreateStep.CONFIRM)

    def back(self) -> None:
        """Return to the previous input step."""
        previous = _BACK_STEPS.get(self.state.step)
        if previous is None:
            raise FlowStateError("create", self.state.step.value, "go back")
        self.state.error = None
        self._transition(previous)

    def confirm(self) -> CreateFlowState:
        """Run the creation stages with the collected parameters."""
        self._require_step(CreateStep.CONFIRM, "confirm")
        return self._execute(self.state.source_branch)

    # Non-interactive entry points

    def quick_create(self, name: str, from_branch: Optional[str] = None) -> CreateFlowState:
        """Create worktree ``name`` on a new branch ``<prefix><name>`` in one step.

        The source branch is ``from_branch`` if given, otherwise the configured
        default source branch, otherwise the current branch.
        """
        self._require_step(CreateStep.DIRECTORY, "quick create")
        name = name.strip()
        error = validate_directory_name(name)
        if error:
            self._reject("directory", error)

        branch = self.prefixed(name)
        error = validate_branch_name(branch)
        if not error and self._branch_exists(branch):
            error = Messages.BRANCH_EXISTS.format(branch=branch)
        if error:
            self._reject("new_branch", error)

        self.state.directory_name = name
        self.state.new_branch = branch
        self.state.error = None
        return self._execute(from_branch.strip() if from_branch else None)

    def create_from_existing_branch(self, branch: str) -> CreateFlowState:
        """Check out an existing branch in a new worktree named after it."""
        self._require_step(CreateStep.DIRECTORY, "create from an existing branch")
        branch = branch.strip()
        if not self._branch_exists(branch):
            self._reject("source_branch", Messages.BRANCH_NOT_FOUND.format(branch=branch))

        name = directory_name_for_branch(branch)
        error = validate_directory_name(name)
        if error:
            self._reject("directory", error)

        self.state.directory_name = name
        self.state.source_branch = branch
        self.state.new_branch = branch
        self.state.error = None
        return self._execute(branch)

    # Cancellation and retry

    def cancel(self) -> None:
        """Abandon the flow. While stages run, no further stage is started."""
        self.cancelled = True
        logger.debug(f"Create flow cancelled in step {self.state.step.value}")

    def retry(self) -> None:
        """Go back to the first input step after a failure, keeping entered values."""
        self._require_step(CreateStep.FAILED, "retry")
        self.cancelled = False
        self.repo_info = None
        self.state.error = None
        self.state.worktree_path = None
        self.state.post_create_commands = []
        self.state.current_command = None
        self.state.command_progress = None
        self.state.last_completed_stage = None
        self.state.failed_stage = None
        self._transition(CreateStep.DIRECTORY)

    # Stage execution

    def resolve_source_branch(self, override: Optional[str]) -> str:
        """Pick the source branch: override, configured default, then current branch.

        Raises:
            ValidationError: If the chosen branch does not exist or none can be found
        """
        info = self._info()
        if override:
            if not info.find_branch(override):
                raise ValidationError("source_branch", Messages.SOURCE_BRANCH_NOT_FOUND.format(branch=override))
            return override

        configured = self.config.default_source_branch
        if configured:
            if not info.find_branch(configured):
                raise ValidationError("source_branch", Messages.DEFAULT_BRANCH_NOT_FOUND.format(branch=configured))
            return configured

        if not info.current_branch:
            raise ValidationError("source_branch", Messages.CURRENT_BRANCH_UNKNOWN)
        return info.current_branch

    def _begin(self, stage: CreateStage) -> None:
        if self.cancelled:
            raise FlowCancelledError(Messages.CANCELLED)
        self._stage = stage
        logger.debug(f"Create stage: {stage.value}")

    def _complete(self) -> None:
        self.state.last_completed_stage = self._stage

    def _on_command_started(self, command: str, position: int, total: int) -> None:
        self.state.current_command = command
        self.state.command_progress = CommandProgress(position, total)
        self.observer.on_command_started(command, position, total)

    def _execute(self, source_override: Optional[str]) -> CreateFlowState:
        state = self.state
        self._transition(CreateStep.CREATING)

        try:
            self._begin(CreateStage.RESOLVE_SOURCE)
            state.source_branch = self.resolve_source_branch(source_override)
            if not state.new_branch:
                state.new_branch = state.source_branch
            self._complete()

            self._begin(CreateStage.COMPUTE_PATH)
            repo_root = self._info().root_path
            state.worktree_path = get_worktree_path(
                repo_root,
                state.directory_name,
                self.config.worktree_path_template,
                branch_name=state.new_branch,
                source_branch=state.source_branch,
            )
            self._complete()

            self._begin(CreateStage.ADD_WORKTREE)
            self.git_service.create_worktree(
                state.directory_name,
                state.source_branch,
                state.new_branch,
                os.path.dirname(state.worktree_path),
            )
            self._complete()

            if self.config.worktree_copy_patterns:
                self._begin(CreateStage.COPY_FILES)
                self.file_sync.copy_files(repo_root, state.worktree_path, self.config)
                self._complete()

            variables = build_variables(
                repo_root, state.worktree_path, state.new_branch, state.source_branch
            )

            if self.config.post_create_cmd:
                self._begin(CreateStage.POST_CREATE)
                state.post_create_commands = list(self.config.post_create_cmd)
                self._transition(CreateStep.RUNNING_COMMANDS)
                self.command_runner.execute_post_create_commands(
                    state.post_create_commands, variables, on_progress=self._on_command_started
                )
                self._complete()

            if self.config.terminal_command:
                self._begin(CreateStage.OPEN_TERMINAL)
                self.command_runner.open_terminal(
                    self.config.terminal_command, state.worktree_path, variables
                )
                self._complete()
        except BranchletError as e:
            self._fail(e)
            return state

        logger.info(f"Worktree '{state.directory_name}' ready at {state.worktree_path}")
        self._transition(CreateStep.SUCCEEDED)
        return state

    def _fail(self, error: BranchletError) -> None:
        state = self.state
        state.failed_stage = self._stage
        message = str(error)
        worktree_added = state.last_completed_stage not in (
            None,
            CreateStage.RESOLVE_SOURCE,
            CreateStage.COMPUTE_PATH,
        )
        if worktree_added:
            message += f"\nThe worktree at {state.worktree_path} was kept."
        state.error = message
        logger.error(f"Create failed during {self._stage.value if self._stage else 'setup'}: {error}")
        self._transition(CreateStep.FAILED)

    def navigation_target(self) -> Optional[str]:
        """Directory to switch to after a successful create.

        Mirrors the user's position inside the worktree they came from when
        the same subdirectory exists in the new worktree.
        """
        if self.state.step != CreateStep.SUCCEEDED or not self.state.worktree_path:
            return None
        source_root = None
        if self.original_cwd:
            paths = [wt.path for wt in self._info().worktrees]
            source_root = find_worktree_containing_path(paths, self.original_cwd)
        return resolve_target_path(source_root, self.state.worktree_path, self.original_cwd)
