#!/usr/bin/env python3
"""
stash - Stash everything, and list what is stashed.

- Stash all changes (staged, unstaged and untracked) under a timestamped label
- List stashes with age, branch and, with -v, the files inside each one
"""

import logging
import time
from datetime import datetime
from typing import Optional

from gittoolkit.checks import require_commits, require_repo
from gittoolkit.config import ToolkitConfig
from gittoolkit.gitops import GitRepo
from gittoolkit.models import Snapshot
from gittoolkit.prune import SECONDS_PER_DAY
from gittoolkit.ui import Colors, confirm_action, error, header, hint, success
from gittoolkit.undo import UndoLabel

logger = logging.getLogger(__name__)

CLEAN_BRANCH_MARKER = "clean branch"


def stash_all(git: GitRepo, config: ToolkitConfig) -> int:
    """Stash every change including untracked files. Returns the process exit code."""
    require_commits(git)

    if git.is_working_tree_clean():
        success("No changes to stash (working directory is clean)")
        return 0

    changes = git.working_tree_changes()
    print("Stashing all changes (including untracked files)...")
    print("\nFiles to be stashed:")
    for title, key in (("Modified files", "modified"), ("Staged files", "staged"), ("Untracked files", "untracked")):
        if changes[key]:
            print(f"  {Colors.BOLD}{title}:{Colors.RESET}")
            for path in changes[key]:
                print(f"    {path}")
    print()

    if not confirm_action("Proceed with stashing all changes?"):
        error("Stash cancelled.")
        return 0

    label = f"{CLEAN_BRANCH_MARKER} - {datetime.now().strftime(config.date_format)}"
    ref = git.create_snapshot(label, include_untracked=True)
    logger.info("stash: created %s (%s)", ref, label)

    success("All changes stashed successfully!")
    print("Working directory is now clean.\n")
    print(f"Changes saved in stash: {Colors.CYAN}{ref}{Colors.RESET} (\"{label}\")")
    hint(f"To restore: git stash apply {ref}")
    return 0


def _age(snapshot: Snapshot, now: int) -> str:
    days = (now - snapshot.timestamp) // SECONDS_PER_DAY
    if days > 0:
        return f"{days}d ago"
    hours = (now - snapshot.timestamp) // 3600
    return f"{hours}h ago" if hours > 0 else "just now"


def list_stashes(git: GitRepo, config: ToolkitConfig, verbosity: int = 0, now: Optional[int] = None) -> int:
    """Print stash list; -v adds the files in each stash."""
    require_repo(git)
    stashes = git.list_snapshots()
    if not stashes:
        print(f"\n{Colors.YELLOW}No stashes found.{Colors.RESET}")
        return 0

    if now is None:
        now = int(time.time())

    header(f"STASH LIST ({len(stashes)} entries)")
    for s in stashes:
        ref_label = f"{Colors.CYAN}{s.ref}{Colors.RESET}"
        age_label = f"{Colors.DIM}{_age(s, now)}{Colors.RESET}"
        branch_label = f"{Colors.BRIGHT_GREEN}{s.branch or 'unknown'}{Colors.RESET}"
        tag = f" {Colors.MAGENTA}[undo]{Colors.RESET}" if UndoLabel.parse(s.label) else ""
        print(f"\n  {ref_label}  [{branch_label}]  {age_label}{tag}")
        print(f"     {s.label}")
        if verbosity > 0:
            created = datetime.fromtimestamp(s.timestamp).strftime(config.date_format)
            print(f"     {Colors.DIM}created {created}{Colors.RESET}")
            files = git.snapshot_files(s.ref)
            if files:
                for status, path in files:
                    status_color = Colors.GREEN if status == 'A' else Colors.YELLOW if status == 'M' else Colors.RED
                    print(f"       {status_color}{status}{Colors.RESET}  {path}")
            else:
                print(f"       {Colors.DIM}(no tracked files){Colors.RESET}")

    print()
    hint("To restore: git stash apply stash@{N}")
    hint("To drop:    git stash drop stash@{N}")
    return 0
