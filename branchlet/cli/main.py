"""Command-line interface for branchlet"""

import json
import os
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.table import Table

from branchlet.cli.args import parse_args
from branchlet.config import JSON_KEYS, field_name_for, parse_field_value
from branchlet.core import CreateFlow, WorktreeManager
from branchlet.exceptions import BranchletError, ValidationError
from branchlet.models.flow import CloseStep, CreateFlowState, CreateStep, FlowObserver
from branchlet.services.config_service import ConfigService
from branchlet.utils.logging import get_logger, setup_logging
from branchlet.utils.validation import normalize_prefix, validate_prefix

# stdout is reserved for the navigation handoff
console = Console(stderr=True)
logger = get_logger(__name__)

BACK = "<"


class ConsoleObserver(FlowObserver):
    """Prints create progress as it happens."""

    def on_transition(self, old_step, new_step, state) -> None:
        if new_step == CreateStep.CREATING:
            console.print("[cyan]Creating worktree...[/cyan]")
        elif new_step == CreateStep.RUNNING_COMMANDS:
            console.print("[cyan]Running post-create commands...[/cyan]")

    def on_command_started(self, command: str, position: int, total: int) -> None:
        console.print(f"  [dim]({position}/{total})[/dim] {escape(command)}")


def emit(line: str) -> None:
    """Write the handoff line for the shell wrapper."""
    print(line, flush=True)


def _ask(prompt: str, default: Optional[str] = None) -> str:
    if default:
        return Prompt.ask(prompt, default=default, console=console).strip()
    return Prompt.ask(prompt, default="", show_default=False, console=console).strip()


def _interactive_create(flow: CreateFlow, from_branch: Optional[str]) -> Optional[CreateFlowState]:
    """Drive the create flow with prompts. Returns None if the user backs out."""
    flow.load()
    console.print(f"[dim]Enter '{BACK}' to go back.[/dim]")

    while True:
        state = flow.state
        try:
            if state.step == CreateStep.DIRECTORY:
                flow.submit_directory(_ask("Directory name", state.directory_name))

            elif state.step == CreateStep.SOURCE_BRANCH:
                options = flow.branch_options(from_branch)
                for option in options:
                    marker = "*" if option.selected else " "
                    console.print(f" {marker} {escape(option.label)}")
                default = next((o.name for o in options if o.selected), None)
                choice = _ask("Source branch", state.source_branch or default)
                if choice == BACK:
                    flow.back()
                else:
                    flow.submit_source_branch(choice)

            elif state.step == CreateStep.NEW_BRANCH:
                if flow.config.branch_prefix:
                    console.print(f"[dim]Prefix '{escape(flow.config.branch_prefix)}' will be applied.[/dim]")
                choice = _ask("New branch name (empty to check out the source branch)")
                if choice == BACK:
                    flow.back()
                else:
                    flow.submit_new_branch(choice)

            elif state.step == CreateStep.CONFIRM:
                console.print(f"  Directory:     {escape(state.directory_name)}")
                console.print(f"  Source branch: {escape(state.source_branch)}")
                if state.uses_existing_branch:
                    console.print(f"  Branch:        {escape(state.new_branch)} (existing)")
                else:
                    console.print(f"  New branch:    {escape(state.new_branch)}")
                if Confirm.ask("Create worktree?", default=True, console=console):
                    flow.confirm()
                else:
                    flow.back()

            elif state.step == CreateStep.FAILED:
                console.print(f"[red]Error: {escape(state.error or 'unknown error')}[/red]")
                if not Confirm.ask("Try again?", default=False, console=console):
                    return state
                flow.retry()

            else:
                return state
        except ValidationError as e:
            console.print(f"[red]{escape(str(e))}[/red]")


def cmd_create(manager: WorktreeManager, args, config_service: ConfigService) -> int:
    flow = manager.create_flow()
    try:
        if args.existing:
            state = flow.create_from_existing_branch(args.existing)
        elif args.name:
            state = flow.quick_create(args.name, args.from_branch)
        else:
            state = _interactive_create(flow, args.from_branch)
    except KeyboardInterrupt:
        flow.cancel()
        raise

    if state is None:
        return 1
    if state.step != CreateStep.SUCCEEDED:
        if args.name or args.existing:
            console.print(f"[red]Error: {escape(state.error or 'create failed')}[/red]")
        return 1

    console.print(f"[green]Created worktree at {escape(state.worktree_path)}[/green]")
    target = flow.navigation_target()
    if args.from_wrapper:
        emit(target)
    else:
        console.print(f"[dim]cd {escape(target)}[/dim]")
    return 0


def cmd_close(manager: WorktreeManager, args, config_service: ConfigService) -> int:
    flow = manager.close_flow()
    state = flow.check()
    if state.step == CloseStep.FAILED:
        console.print(f"[red]Error: {escape(state.error)}[/red]")
        return 1

    console.print(f"Closing worktree {escape(state.worktree_path)}")
    if flow.will_delete_branch:
        console.print(f"[yellow]Branch '{escape(state.branch)}' will also be deleted.[/yellow]")
    if not args.yes and not Confirm.ask("Close this worktree?", default=True, console=console):
        flow.cancel()
        return 1

    result = flow.confirm()
    if result is None:
        console.print(f"[red]Error: {escape(flow.state.error)}[/red]")
        return 1
    emit(json.dumps(result.to_payload()))
    return 0


def _status_text(manager: WorktreeManager, worktree) -> str:
    if worktree.is_orphaned:
        return "[red]missing[/red]"
    if worktree.is_clean:
        return "[green]clean[/green]"
    details = manager.git_service.get_worktree_status_details(worktree.path)
    flags = [name for name, present in details.items() if present]
    return f"[yellow]{', '.join(flags)}[/yellow]"


def cmd_list(manager: WorktreeManager, args, config_service: ConfigService) -> int:
    worktrees = manager.list_worktrees(include_main=args.all)
    if not worktrees:
        console.print("[dim]No worktrees found.[/dim]")
        return 0

    table = Table(show_header=True, header_style="bold")
    table.add_column("Directory")
    table.add_column("Branch")
    table.add_column("Status")
    table.add_column("Path", overflow="fold")
    for worktree in worktrees:
        name = os.path.basename(os.path.normpath(worktree.path))
        if worktree.is_main:
            name += " (main)"
        table.add_row(
            escape(name),
            escape(worktree.branch),
            _status_text(manager, worktree),
            escape(worktree.path),
        )
    console.print(table)
    return 0


def cmd_switch(manager: WorktreeManager, args, config_service: ConfigService) -> int:
    worktree = manager.find_worktree(args.target)
    if worktree is None:
        console.print(f"[red]Error: no worktree matches '{escape(args.target)}'[/red]")
        return 1
    if args.open and not manager.open_with_command(worktree):
        console.print("[yellow]No terminal command configured[/yellow]")
    emit(manager.navigation_target_for(worktree.path))
    return 0


def cmd_delete(manager: WorktreeManager, args, config_service: ConfigService) -> int:
    paths = []
    for target in args.paths:
        worktree = manager.find_worktree(target)
        paths.append(worktree.path if worktree else target)

    if not args.yes:
        for path in paths:
            console.print(f"  {escape(path)}")
        if manager.config.delete_branch_with_worktree:
            console.print("[yellow]Their branches will also be deleted.[/yellow]")
        if not Confirm.ask(f"Delete {len(paths)} worktree(s)?", default=False, console=console):
            return 1

    def progress(path: str, position: int, total: int) -> None:
        console.print(f"[dim]({position}/{total})[/dim] Deleting {escape(path)}")

    outcome = manager.batch_delete(paths, on_progress=progress, strict=args.strict)
    for path in outcome.succeeded:
        console.print(f"[green]Deleted {escape(path)}[/green]")
        for warning in outcome.warnings.get(path, []):
            console.print(f"  [yellow]{escape(warning)}[/yellow]")
    for path, message in outcome.failed:
        console.print(f"[red]Failed to delete {escape(path)}: {escape(message)}[/red]")
    return 1 if outcome.has_failures else 0


def cmd_prefix(manager: WorktreeManager, args, config_service: ConfigService) -> int:
    if args.clear:
        config_service.clear_branch_prefix(manager.project_root)
        console.print("[green]Branch prefix cleared[/green]")
        return 0

    if args.prefix is None:
        current = manager.config.branch_prefix
        console.print(f"Branch prefix: {escape(current)}" if current else "No branch prefix set")
        return 0

    error = validate_prefix(args.prefix)
    if error:
        console.print(f"[red]Error: {escape(error)}[/red]")
        return 1
    prefix = normalize_prefix(args.prefix)
    path = config_service.set_branch_prefix(manager.project_root, prefix)
    console.print(f"[green]Branch prefix set to '{escape(prefix)}' in {escape(str(path))}[/green]")
    return 0


def _show_config(manager: WorktreeManager, config_service: ConfigService) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    for key, value in manager.config.to_dict().items():
        table.add_row(key, escape(json.dumps(value)))
    console.print(table)
    console.print(f"[dim]Global: {escape(str(config_service.global_config_file))}[/dim]")
    console.print(f"[dim]Local:  {escape(str(config_service.local_config_file(manager.project_root)))}[/dim]")


def cmd_config(manager: WorktreeManager, args, config_service: ConfigService) -> int:
    scope = "global" if args.use_global else "local"

    if args.reset:
        if not args.yes and not Confirm.ask(f"Reset the {scope} configuration?", default=False, console=console):
            return 1
        if args.use_global:
            path = config_service.create_global_config()
        else:
            path = config_service.reset_local_config(manager.project_root)
        console.print(f"[green]Reset {scope} configuration in {escape(str(path))}[/green]")
        return 0

    if args.key is None:
        _show_config(manager, config_service)
        return 0

    try:
        name = field_name_for(args.key)
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1
    key = JSON_KEYS[name]

    if args.unset:
        path = config_service.unset_field(name, None if args.use_global else manager.project_root)
        console.print(f"[green]Removed {key} from {escape(str(path))}[/green]")
        return 0

    if args.value is None:
        console.print(f"{key}: {escape(json.dumps(getattr(manager.config, name)))}")
        return 0

    value = parse_field_value(name, args.value)
    if args.use_global:
        path = config_service.save_global_fields(**{name: value})
    else:
        path = config_service.save_local_fields(manager.project_root, **{name: value})
    console.print(f"[green]Set {key} to {escape(json.dumps(value))} in {escape(str(path))}[/green]")
    return 0


COMMANDS = {
    "create": cmd_create,
    "close": cmd_close,
    "list": cmd_list,
    "switch": cmd_switch,
    "delete": cmd_delete,
    "prefix": cmd_prefix,
    "config": cmd_config,
}


def main(argv=None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug, console=console)

    try:
        config_service = ConfigService()
        manager = WorktreeManager.from_cwd(
            config_service=config_service,
            supports_navigation=parsed_args.from_wrapper,
            observer=ConsoleObserver(),
        )
        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in manager.config.to_dict().items():
                console.print(f"  {key}: {escape(str(value))}")

        handler = COMMANDS[parsed_args.command or "list"]
        if parsed_args.command is None:
            parsed_args.all = False
        return handler(manager, parsed_args, config_service)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except BranchletError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if parsed_args.debug:
            console.print_exception()
        return 1
    except Exception as e:
        logger.exception("Unexpected error")
        console.print(f"[red]Unexpected error: {escape(str(e))}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
