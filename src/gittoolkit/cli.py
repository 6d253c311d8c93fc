#!/usr/bin/env python3
"""
git-toolkit - Safer history editing for git

Main entry point that provides a menu-driven interface or direct CLI commands.
Each command is also installed as its own git-<name> script so it can be run
as a git subcommand (``git undo``, ``git redo``, ...).
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from gittoolkit import __version__
from gittoolkit.branch import show_branches
from gittoolkit.checks import require_repo
from gittoolkit.cleanup import clean_branches
from gittoolkit.config import ToolkitConfig, load_config, show_config
from gittoolkit.errors import ToolkitError, UserCancelled
from gittoolkit.forkpoint import show_fork_point
from gittoolkit.gitops import GitRepo
from gittoolkit.log import setup_logging
from gittoolkit.prune import prune_stashes, validate_age
from gittoolkit.squash import squash_branch
from gittoolkit.stash import list_stashes, stash_all
from gittoolkit.ui import error, safe_input
from gittoolkit.undo import redo, undo_last_commit

logger = logging.getLogger(__name__)

MENU = [
    ("undo", "Undo the last commit into a recoverable stash"),
    ("redo", "Restore a previously undone commit"),
    ("stash", "Stash all changes, including untracked files"),
    ("clean-branches", "Delete merged branches and branches gone from the remote"),
    ("squash", "Squash the current branch's commits since its fork point"),
    ("fork-point", "Show where the current branch forked from"),
    ("branches", "List local branches with tracking status"),
    ("stashes", "List stashes"),
    ("prune-stashes", "Delete stashes older than the configured age"),
]


def age_argument(value: str) -> int:
    """argparse type for --age: a non-negative integer."""
    try:
        return validate_age(value)
    except ToolkitError as e:
        raise argparse.ArgumentTypeError(str(e))


def open_repo(repo: Optional[str]) -> GitRepo:
    """Validate the repository and address it by its top level."""
    git = GitRepo(Path(repo).resolve() if repo else Path.cwd())
    require_repo(git)
    return GitRepo(git.toplevel())


def run_command(action: Callable[[], Optional[int]], name: str) -> int:
    """Convert a command's outcome into an exit code at the operation boundary."""
    try:
        code = action()
    except UserCancelled:
        print("Cancelled.")
        return 0
    except ToolkitError as e:
        logger.error("%s: %s", name, e)
        error(str(e))
        return 1
    return 0 if code is None else code


def dispatch(args: argparse.Namespace, config: ToolkitConfig) -> int:
    command = args.command

    if command == "config":
        show_config(config)
        return 0

    def action():
        git = open_repo(args.repo)
        logger.info("%s in %s", command, git.repo_path)
        verbosity = getattr(args, "verbose", 0)

        if command == "undo":
            return undo_last_commit(git, config)
        if command == "redo":
            return redo(git, config)
        if command == "stash":
            return stash_all(git, config)
        if command == "clean-branches":
            return clean_branches(git, config)
        if command == "squash":
            message = " ".join(args.message) if args.message else None
            return squash_branch(git, config, message=message, edit=args.edit)
        if command == "fork-point":
            return show_fork_point(git, config, args.branch, verbosity)
        if command == "branches":
            return show_branches(git, config, verbosity)
        if command == "stashes":
            return list_stashes(git, config, verbosity)
        if command == "prune-stashes":
            return prune_stashes(git, config, days=args.age)
        raise ToolkitError(f"Unknown command: {command}")

    return run_command(action, command)


def show_menu(parser: argparse.ArgumentParser, config: ToolkitConfig, repo: Optional[str]) -> int:
    """Display interactive menu for git-toolkit operations."""
    print("\n" + "=" * 60)
    print("GIT-TOOLKIT - Safer history editing")
    print("=" * 60)
    print(f"Repository: {Path(repo).resolve() if repo else Path.cwd()}")
    print()
    print("Available Commands:")
    for number, (name, description) in enumerate(MENU, 1):
        print(f"  {number}. {name:<15}- {description}")
    print("  0. exit")
    print()

    try:
        choice = safe_input(f"Enter your choice (0-{len(MENU)}): ").strip()
    except UserCancelled:
        return 0

    if choice in ("", "0"):
        return 0
    if not choice.isdigit() or not 1 <= int(choice) <= len(MENU):
        error(f"Invalid choice: {choice}")
        return 1

    argv = [MENU[int(choice) - 1][0]]
    if repo:
        argv = ["--repo", repo] + argv
    return dispatch(parser.parse_args(argv), config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-toolkit",
        description="git-toolkit - Safer interactive history editing for git",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  git-toolkit                         # Interactive menu
  git-toolkit undo                    # Undo the last commit into a stash
  git-toolkit redo                    # Pick an undone commit to restore
  git-toolkit fork-point -v feature   # Where did 'feature' fork from?
  git-toolkit prune-stashes --age=30  # Drop stashes older than 30 days
  git-toolkit -r ~/myproject branches # Run in a specific repository

Environment:
  GIT_TOOLKIT_PROTECTED_BRANCHES, GIT_TOOLKIT_STASH_AGE_DAYS,
  GIT_TOOLKIT_DATE_FORMAT, GIT_TOOLKIT_REMOTE, GIT_TOOLKIT_LOG_DIR
        """
    )
    parser.add_argument(
        '-r', '--repo',
        type=str,
        default=None,
        help='Path to git repository (default: current directory)'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'git-toolkit {__version__}'
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        '--debug',
        action='store_true',
        help='Echo every git command and decision to stderr'
    )
    # Accepted after the command too, so the git-<name> aliases can take it
    common.add_argument(
        '-r', '--repo',
        type=str,
        default=argparse.SUPPRESS,
        help='Path to git repository (default: current directory)'
    )
    listing = argparse.ArgumentParser(add_help=False)
    listing.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='More detail per entry (-v, -vv)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('undo', parents=[common], help='Undo the last commit into a recoverable stash')
    subparsers.add_parser('redo', parents=[common], help='Restore a previously undone commit')
    subparsers.add_parser('stash', parents=[common], help='Stash all changes, including untracked files')
    subparsers.add_parser('clean-branches', parents=[common],
                          help='Delete merged branches and branches gone from the remote')

    squash_parser = subparsers.add_parser('squash', parents=[common],
                                          help="Squash the current branch's commits since its fork point")
    squash_parser.add_argument('message', nargs='*', help='Message for the squashed commit')
    squash_parser.add_argument('-e', '--edit', action='store_true', help='Edit the message in your editor')

    fork_parser = subparsers.add_parser('fork-point', parents=[common, listing],
                                        help='Show where a branch forked from')
    fork_parser.add_argument('branch', nargs='?', help='Branch to inspect (default: current branch)')

    subparsers.add_parser('branches', parents=[common, listing], help='List local branches with tracking status')
    subparsers.add_parser('stashes', parents=[common, listing], help='List stashes')

    prune_parser = subparsers.add_parser('prune-stashes', parents=[common],
                                         help='Delete stashes older than N days')
    prune_parser.add_argument('--age', type=age_argument, default=None,
                              help='Age threshold in days (default: 60 or GIT_TOOLKIT_STASH_AGE_DAYS)')

    subparsers.add_parser('config', parents=[common], help='Show the effective configuration')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the git-toolkit CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config()
    setup_logging(config.log_dir, debug=getattr(args, "debug", False))

    if not args.command:
        return show_menu(parser, config, args.repo)
    return dispatch(args, config)


def _alias(command: str) -> Callable[[], None]:
    def entry():
        sys.exit(main([command] + sys.argv[1:]))
    entry.__name__ = "git_" + command.replace("-", "_")
    entry.__doc__ = f"Entry point for git-{command}."
    return entry


git_undo = _alias("undo")
git_redo = _alias("redo")
git_stash_all = _alias("stash")
git_clean_branches = _alias("clean-branches")
git_squash = _alias("squash")
git_fork_point = _alias("fork-point")
git_branches = _alias("branches")
git_stashes = _alias("stashes")
git_prune_stashes = _alias("prune-stashes")


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
