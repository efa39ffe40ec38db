"""State models for the create, close and batch-delete flows.

Each flow is an explicit finite-state machine: the step enums list every
state, and the ``*_TRANSITIONS`` tables list the steps reachable from each
one. Front ends read the state objects and call the flow's transition
methods; nothing here knows how the state is rendered.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


class CreateStep(Enum):
    """Steps of the create-worktree flow."""
    DIRECTORY = "collecting-directory-name"
    SOURCE_BRANCH = "collecting-source-branch"
    NEW_BRANCH = "collecting-new-branch"
    CONFIRM = "confirming"
    CREATING = "creating"
    RUNNING_COMMANDS = "running-post-create-commands"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CreateStage(Enum):
    """Side-effecting stages executed once the create parameters are final."""
    RESOLVE_SOURCE = "resolve-source-branch"
    COMPUTE_PATH = "compute-worktree-path"
    ADD_WORKTREE = "add-worktree"
    COPY_FILES = "copy-files"
    POST_CREATE = "post-create-commands"
    OPEN_TERMINAL = "open-terminal"


CREATE_TRANSITIONS: Dict[CreateStep, FrozenSet[CreateStep]] = {
    CreateStep.DIRECTORY: frozenset({CreateStep.SOURCE_BRANCH, CreateStep.CREATING}),
    CreateStep.SOURCE_BRANCH: frozenset({CreateStep.NEW_BRANCH, CreateStep.DIRECTORY}),
    CreateStep.NEW_BRANCH: frozenset({CreateStep.CONFIRM, CreateStep.SOURCE_BRANCH}),
    CreateStep.CONFIRM: frozenset({CreateStep.CREATING, CreateStep.NEW_BRANCH}),
    CreateStep.CREATING: frozenset(
        {CreateStep.RUNNING_COMMANDS, CreateStep.SUCCEEDED, CreateStep.FAILED}
    ),
    CreateStep.RUNNING_COMMANDS: frozenset({CreateStep.SUCCEEDED, CreateStep.FAILED}),
    CreateStep.SUCCEEDED: frozenset(),
    CreateStep.FAILED: frozenset({CreateStep.DIRECTORY}),
}


class CloseStep(Enum):
    """Steps of the close-worktree flow."""
    CHECKING = "checking-preconditions"
    CONFIRM = "confirming"
    CLOSING = "closing"
    FAILED = "failed"


CLOSE_TRANSITIONS: Dict[CloseStep, FrozenSet[CloseStep]] = {
    CloseStep.CHECKING: frozenset({CloseStep.CONFIRM, CloseStep.FAILED}),
    CloseStep.CONFIRM: frozenset({CloseStep.CLOSING, CloseStep.FAILED}),
    CloseStep.CLOSING: frozenset(),
    CloseStep.FAILED: frozenset(),
}


@dataclass
class CommandProgress:
    """Position within the post-create command list (1-based)."""
    current: int
    total: int


@dataclass
class CreateFlowState:
    """Everything a front end needs to render the create flow."""
    step: CreateStep = CreateStep.DIRECTORY
    directory_name: str = ""
    source_branch: str = ""
    new_branch: str = ""
    error: Optional[str] = None
    worktree_path: Optional[str] = None
    post_create_commands: List[str] = field(default_factory=list)
    current_command: Optional[str] = None
    command_progress: Optional[CommandProgress] = None
    last_completed_stage: Optional[CreateStage] = None
    failed_stage: Optional[CreateStage] = None

    @property
    def uses_existing_branch(self) -> bool:
        """True when the worktree checks out the source branch instead of creating one."""
        return bool(self.new_branch) and self.new_branch == self.source_branch


@dataclass
class CloseFlowState:
    """State of the close flow."""
    step: CloseStep = CloseStep.CHECKING
    error: Optional[str] = None
    worktree_path: Optional[str] = None
    main_repo_path: Optional[str] = None
    branch: Optional[str] = None


@dataclass
class CloseResult:
    """Navigation handoff emitted when a close is confirmed."""
    navigate_to: str
    delete_worktree: str

    def to_payload(self) -> Dict[str, str]:
        return {"navigateTo": self.navigate_to, "deleteWorktree": self.delete_worktree}


@dataclass
class BatchDeleteOutcome:
    """Per-item results of a batch delete; every input path is in exactly one list."""
    succeeded: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)
    warnings: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)


class FlowObserver:
    """Synchronous observer notified by the flows. Override what you need."""

    def on_transition(self, old_step: Enum, new_step: Enum, state) -> None:
        pass

    def on_command_started(self, command: str, position: int, total: int) -> None:
        pass
