"""Entry point object that wires configuration, services and flows together."""

import os
from typing import List, Optional, Union

from branchlet.config import Config
from branchlet.core.batch_delete import BatchDeleteCoordinator, DeleteProgressCallback
from branchlet.core.close_flow import CloseFlow
from branchlet.core.create_flow import CreateFlow
from branchlet.core.navigation import find_worktree_containing_path, resolve_target_path
from branchlet.exceptions import BranchletError
from branchlet.models.flow import BatchDeleteOutcome, FlowObserver
from branchlet.models.worktree import WorktreeInfo
from branchlet.services.command_runner import CommandRunner
from branchlet.services.config_service import ConfigService
from branchlet.services.file_sync_service import FileSyncService
from branchlet.services.git import GitWorktreeService
from branchlet.services.template_service import build_variables
from branchlet.utils.logging import get_logger

logger = get_logger(__name__)


class WorktreeManager:
    """Main class for managing worktrees of one repository."""

    def __init__(
        self,
        repo_path: str,
        config: Union[Config, dict],
        original_cwd: Optional[str] = None,
        supports_navigation: bool = False,
        observer: Optional[FlowObserver] = None,
        project_root: Optional[str] = None,
    ):
        """Initialize WorktreeManager.

        Args:
            repo_path: Path inside the git repository
            config: Configuration dict or Config object
            original_cwd: Directory the user ran the command from
            supports_navigation: True when a shell wrapper will act on the handoff
            observer: Receives flow transitions and command progress
            project_root: Directory holding the project's local config
        """
        self.repo_path = repo_path
        if isinstance(config, dict):
            config = Config.from_dict(config)
        self.config = config
        self.original_cwd = original_cwd or repo_path
        self.supports_navigation = supports_navigation
        self.observer = observer
        self.project_root = project_root or repo_path

        self.git_service = GitWorktreeService(repo_path, self.config)
        self.file_sync = FileSyncService()
        self.command_runner = CommandRunner()

    @classmethod
    def from_cwd(
        cls,
        cwd: Optional[str] = None,
        config_service: Optional[ConfigService] = None,
        supports_navigation: bool = False,
        observer: Optional[FlowObserver] = None,
    ) -> "WorktreeManager":
        """Build a manager for the repository containing ``cwd``.

        The local ``.branchlet.json`` is read from the main repository root,
        whichever worktree ``cwd`` is in.

        Raises:
            GitQueryError: If ``cwd`` is not inside a git repository
        """
        cwd = cwd or os.getcwd()
        config_service = config_service or ConfigService()
        probe = GitWorktreeService(cwd)
        project_root = probe.get_current_worktree_info(cwd).main_repo_path or cwd
        config = config_service.resolve(project_root)
        logger.debug(f"Resolved config for {project_root}: {config.to_dict()}")
        return cls(
            cwd,
            config,
            original_cwd=cwd,
            supports_navigation=supports_navigation,
            observer=observer,
            project_root=project_root,
        )

    def create_flow(self) -> CreateFlow:
        return CreateFlow(
            self.git_service,
            self.config,
            file_sync=self.file_sync,
            command_runner=self.command_runner,
            original_cwd=self.original_cwd,
            observer=self.observer,
        )

    def close_flow(self) -> CloseFlow:
        return CloseFlow(
            self.git_service,
            self.config,
            supports_navigation=self.supports_navigation,
            original_cwd=self.original_cwd,
            observer=self.observer,
        )

    def list_worktrees(self, include_main: bool = False) -> List[WorktreeInfo]:
        """List worktrees with their clean state, linked worktrees only by default."""
        worktrees = self.git_service.list_worktrees(check_clean=True)
        if include_main:
            return worktrees
        return [wt for wt in worktrees if not wt.is_main]

    def find_worktree(self, target: str) -> Optional[WorktreeInfo]:
        """Find a worktree by path, branch name or directory name."""
        worktrees = self.git_service.list_worktrees(check_clean=False)
        real_target = os.path.realpath(target)
        for wt in worktrees:
            if os.path.realpath(wt.path) == real_target:
                return wt
        for wt in worktrees:
            if wt.branch == target:
                return wt
        for wt in worktrees:
            if os.path.basename(os.path.normpath(wt.path)) == target:
                return wt
        return None

    def navigation_target_for(self, worktree_path: str) -> str:
        """Directory to switch to when moving into ``worktree_path``."""
        paths = [wt.path for wt in self.git_service.list_worktrees(check_clean=False)]
        source_root = find_worktree_containing_path(paths, self.original_cwd)
        return resolve_target_path(source_root, worktree_path, self.original_cwd)

    def open_with_command(self, worktree: WorktreeInfo) -> bool:
        """Open a worktree with the configured terminal command.

        Returns:
            False if no terminal command is configured

        Raises:
            CommandExecutionError: If the command cannot be started
        """
        if not self.config.terminal_command:
            return False
        main = next(
            (wt for wt in self.git_service.list_worktrees(check_clean=False) if wt.is_main), None
        )
        variables = build_variables(
            main.path if main else worktree.path,
            worktree.path,
            None if worktree.is_detached else worktree.branch,
        )
        self.command_runner.open_terminal(self.config.terminal_command, worktree.path, variables)
        return True

    def delete_worktree(self, path: str, force: bool = False, strict: bool = False):
        """Delete one worktree (and its branch when configured)."""
        return self.git_service.delete_worktree(path, force=force, strict=strict)

    def batch_delete(
        self,
        paths: List[str],
        on_progress: Optional[DeleteProgressCallback] = None,
        strict: bool = False,
    ) -> BatchDeleteOutcome:
        """Delete several worktrees, force-removing dirty ones."""
        try:
            worktrees = self.git_service.list_worktrees(check_clean=True)
        except BranchletError as e:
            logger.warning(f"Could not read worktree status before deleting: {e}")
            worktrees = []
        coordinator = BatchDeleteCoordinator(self.git_service, worktrees, strict=strict)
        return coordinator.run(paths, on_progress=on_progress)
