"""Command-line argument parsing for branchlet."""

import argparse

from branchlet.__version__ import __version__


def _add_global_options(parser: argparse.ArgumentParser, suppress: bool = False) -> None:
    # Repeated on each subcommand so they can follow it; SUPPRESS keeps the
    # subparser from overwriting values given before the subcommand.
    default = argparse.SUPPRESS if suppress else False
    parser.add_argument(
        "--from-wrapper",
        action="store_true",
        default=default,
        help="Called from the shell integration; print the navigation target on stdout",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=default, help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", default=default, help="Show debug information for troubleshooting"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="branchlet",
        description="Create, switch between and close git worktrees",
        epilog="Human-readable output goes to stderr. With --from-wrapper, stdout carries "
        "only the directory (or close payload) for the shell to act on.",
    )
    parser.add_argument("--version", action="version", version=f"branchlet {__version__}")
    _add_global_options(parser)

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    create = subparsers.add_parser("create", help="Create a worktree (interactive without NAME)")
    create.add_argument("name", nargs="?", help="Directory name; also the new branch name (prefix applied)")
    create.add_argument("--from", dest="from_branch", metavar="BRANCH", help="Branch to start from")
    create.add_argument(
        "--existing",
        metavar="BRANCH",
        help="Check out an existing branch in a worktree named after it",
    )
    _add_global_options(create, suppress=True)

    close = subparsers.add_parser("close", help="Leave the current worktree and remove it")
    close.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")
    _add_global_options(close, suppress=True)

    list_parser = subparsers.add_parser("list", help="List worktrees")
    list_parser.add_argument("--all", action="store_true", help="Include the main working tree")
    _add_global_options(list_parser, suppress=True)

    switch = subparsers.add_parser("switch", help="Switch to a worktree")
    switch.add_argument("target", help="Worktree path, branch or directory name")
    switch.add_argument(
        "--open", action="store_true", help="Also launch the configured terminal command"
    )
    _add_global_options(switch, suppress=True)

    delete = subparsers.add_parser("delete", help="Delete one or more worktrees")
    delete.add_argument("paths", nargs="+", metavar="PATH", help="Worktree paths, branches or directory names")
    delete.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")
    delete.add_argument(
        "--strict",
        action="store_true",
        help="Refuse to delete branches with commits that exist nowhere else",
    )
    _add_global_options(delete, suppress=True)

    prefix = subparsers.add_parser("prefix", help="Show or set the branch prefix for this project")
    prefix.add_argument("prefix", nargs="?", help="New prefix, e.g. 'feature/'")
    prefix.add_argument("--clear", action="store_true", help="Remove the branch prefix")
    _add_global_options(prefix, suppress=True)

    config = subparsers.add_parser("config", help="Show or change configuration")
    config.add_argument("key", nargs="?", help="Field to show or set, e.g. terminalCommand")
    config.add_argument(
        "value",
        nargs="?",
        help="New value; list and boolean fields take JSON, e.g. '[\"npm install\"]' or true",
    )
    config.add_argument(
        "--global",
        dest="use_global",
        action="store_true",
        help="Change the global settings file instead of the project's .branchlet.json",
    )
    config.add_argument("--unset", action="store_true", help="Remove KEY so it inherits again")
    config.add_argument("--reset", action="store_true", help="Restore defaults in the chosen file")
    config.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")
    _add_global_options(config, suppress=True)

    return parser


def parse_args(argv=None):
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
