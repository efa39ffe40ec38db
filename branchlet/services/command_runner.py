"""Runs post-create commands and the terminal/editor launch command."""
import os
import subprocess
from typing import Callable, Dict, Mapping, Optional, Sequence

from branchlet.constants import TERMINAL_LAUNCH_GRACE_SECONDS
from branchlet.exceptions import CommandExecutionError
from branchlet.services.template_service import render_template
from branchlet.utils.logging import get_logger

logger = get_logger(__name__)

# (command, position, total) with a 1-based position
ProgressCallback = Callable[[str, int, int], None]


class CommandRunner:
    """Executes templated shell commands inside a worktree."""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        """Initialize the runner.

        Args:
            env: Extra environment variables for every command
        """
        self.env = dict(env or {})

    def _environment(self, variables: Mapping[str, str]) -> Dict[str, str]:
        env = os.environ.copy()
        env.update(self.env)
        # Expose the template variables to scripts as well
        for name, value in variables.items():
            env[f"BRANCHLET_{name}"] = str(value)
        return env

    def execute_post_create_commands(
        self,
        commands: Sequence[str],
        variables: Mapping[str, str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Run commands one after another in ``variables["WORKTREE_PATH"]``.

        Each command is rendered through the template engine first. The first
        command that exits non-zero stops the run; later commands are not
        started.

        Args:
            commands: Shell command templates, in order
            variables: Template variables (must include WORKTREE_PATH)
            on_progress: Called before each command with (command, position, total)

        Raises:
            CommandExecutionError: If a command exits non-zero or cannot be started
        """
        cwd = variables.get("WORKTREE_PATH")
        if not cwd:
            raise CommandExecutionError("<post-create>", output="WORKTREE_PATH is not set")

        env = self._environment(variables)
        total = len(commands)
        for position, template in enumerate(commands, start=1):
            command = render_template(template, variables)
            if on_progress is not None:
                on_progress(command, position, total)

            logger.info(f"Running post-create command {position}/{total}: {command}")
            try:
                result = subprocess.run(
                    command,
                    shell=True,
                    cwd=cwd,
                    env=env,
                    capture_output=True,
                    text=True,
                )
            except OSError as e:
                raise CommandExecutionError(command, output=str(e)) from e

            if result.returncode != 0:
                output = (result.stderr.strip() or result.stdout.strip())
                logger.error(f"Post-create command failed (exit {result.returncode}): {command}")
                raise CommandExecutionError(command, result.returncode, output)

            logger.debug(f"Command output: {result.stdout.strip()}")

    def open_terminal(self, command: str, path: str, variables: Optional[Mapping[str, str]] = None) -> None:
        """
        Launch the configured terminal/editor command without waiting for it.

        The process is watched for a short grace period so that a command the
        shell cannot find (exit 127) or one that fails on startup is reported.

        Args:
            command: Command template (e.g. ``code $WORKTREE_PATH``)
            path: Worktree to open; becomes the cwd and WORKTREE_PATH
            variables: Other template variables (BASE_PATH, BRANCH_NAME, ...)

        Raises:
            CommandExecutionError: If the process cannot be started or exits non-zero at once
        """
        variables = dict(variables or {})
        variables["WORKTREE_PATH"] = path
        rendered = render_template(command, variables)

        logger.info(f"Opening worktree with: {rendered}")
        try:
            process = subprocess.Popen(
                rendered,
                shell=True,
                cwd=path,
                env=self._environment(variables),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.error(f"Failed to launch '{rendered}': {e}")
            raise CommandExecutionError(rendered, output=str(e)) from e

        try:
            returncode = process.wait(timeout=TERMINAL_LAUNCH_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            logger.debug(f"'{rendered}' is still running")
            return

        if returncode != 0:
            reason = "command not found" if returncode == 127 else "exited during startup"
            logger.error(f"Failed to launch '{rendered}': {reason} (exit {returncode})")
            raise CommandExecutionError(rendered, returncode, reason)
