#!/usr/bin/env python3
"""
branch - List local branches with their tracking status.
"""

import logging

from gittoolkit.checks import require_commits
from gittoolkit.config import ToolkitConfig
from gittoolkit.errors import ResolutionError
from gittoolkit.forkpoint import resolve_base_branch
from gittoolkit.gitops import GitRepo
from gittoolkit.models import BranchInfo
from gittoolkit.ui import Colors, header

logger = logging.getLogger(__name__)


def tracking_status(branch: BranchInfo) -> str:
    """Short upstream summary, e.g. 'origin/main: ahead 2, behind 1'."""
    if not branch.upstream:
        return f"{Colors.DIM}no upstream{Colors.RESET}"
    if branch.gone:
        return f"{branch.upstream}: {Colors.RED}gone{Colors.RESET}"
    parts = []
    if branch.ahead:
        parts.append(f"{Colors.GREEN}ahead {branch.ahead}{Colors.RESET}")
    if branch.behind:
        parts.append(f"{Colors.YELLOW}behind {branch.behind}{Colors.RESET}")
    return f"{branch.upstream}: {', '.join(parts) if parts else 'up to date'}"


def show_branches(git: GitRepo, config: ToolkitConfig, verbosity: int = 0) -> int:
    """Print local branches; -v adds the last commit, -vv the fork point."""
    require_commits(git)
    branches = git.list_branches()

    header(f"BRANCHES ({len(branches)} local)")
    for branch in branches:
        marker = f"{Colors.BRIGHT_GREEN}*{Colors.RESET}" if branch.is_current else " "
        protected = f" {Colors.MAGENTA}[protected]{Colors.RESET}" if config.is_protected(branch.name) else ""
        print(f"  {marker} {Colors.CYAN}{branch.name}{Colors.RESET}{protected}  {tracking_status(branch)}")

        if verbosity > 0:
            last = git.head_commit(f"refs/heads/{branch.name}")
            print(f"      {Colors.YELLOW}{last.short}{Colors.RESET} {last.subject} {Colors.DIM}({last.date}){Colors.RESET}")

        if verbosity > 1 and not config.is_protected(branch.name):
            try:
                rel = resolve_base_branch(git, branch.name, config.remote)
            except ResolutionError:
                print(f"      {Colors.DIM}fork point: unknown{Colors.RESET}")
            else:
                print(f"      {Colors.DIM}forked from {rel.base} at {rel.merge_base_short}, "
                      f"{rel.ahead} ahead{Colors.RESET}")
    print()
    return 0
