#!/usr/bin/env python3
"""
forkpoint - Find the branch a branch forked from, and where.

The base is picked among develop/main/master first (remote-tracking ref before
local ref). On equal distance develop wins; otherwise the closest base wins.
When none of those qualifies, every other local and remote-tracking branch is
considered and the strictly closest one is taken.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from gittoolkit.config import ToolkitConfig
from gittoolkit.errors import PreconditionError, ResolutionError
from gittoolkit.gitops import GitRepo
from gittoolkit.ui import Colors, header, plural

logger = logging.getLogger(__name__)

COMMON_BASES = ("develop", "main", "master")
PREFERRED_BASE = "develop"


@dataclass(frozen=True)
class BranchRelationship:
    target: str
    base: str
    base_ref: str
    merge_base: str
    merge_base_short: str
    ahead: int


@dataclass(frozen=True)
class ProtectedBranchStatus:
    branch: str
    upstream: Optional[str]
    ahead: Optional[int]
    total: int


@dataclass(frozen=True)
class _Candidate:
    ref: str
    display: str
    merge_base: str
    distance: int


def common_candidates(remote: str) -> List[Tuple[str, str]]:
    """(ref, display name) pairs for develop/main/master, remote before local."""
    refs = []
    for name in COMMON_BASES:
        refs.append((f"refs/remotes/{remote}/{name}", name))
        refs.append((f"refs/heads/{name}", name))
    return refs


def fallback_candidates(git: GitRepo, target: str) -> List[Tuple[str, str]]:
    """Every other branch, minus the target, its remote copies and HEAD pseudo-refs."""
    refs = []
    for full, short, is_remote in git.list_refs():
        if short == "HEAD" or short.endswith("/HEAD"):
            continue
        display = short.split("/", 1)[1] if is_remote and "/" in short else short
        if display == target:
            continue
        refs.append((full, display))
    return refs


def _measure(git: GitRepo, target: str, ref: str, display: str) -> Optional[_Candidate]:
    """Merge-base and distance for one candidate, or None if it cannot be a base."""
    if not git.ref_exists(ref):
        return None
    base = git.merge_base(ref, target)
    if base is None:
        logger.debug("%s: no merge-base with %s", ref, target)
        return None
    distance = git.commits_between(base, target)
    logger.debug("%s: merge-base %s, distance %d", ref, base[:7], distance)
    if distance <= 0:
        return None
    return _Candidate(ref=ref, display=display, merge_base=base, distance=distance)


def pick_preferred(candidates: List[_Candidate]) -> Optional[_Candidate]:
    """Smallest distance; a later tie wins only if it is a develop branch."""
    best = None
    for candidate in candidates:
        if best is None or candidate.distance < best.distance:
            best = candidate
        elif (candidate.distance == best.distance
              and PREFERRED_BASE in candidate.display
              and PREFERRED_BASE not in best.display):
            best = candidate
    return best


def pick_closest(candidates: List[_Candidate]) -> Optional[_Candidate]:
    """Strictly smallest distance; the first one seen wins ties."""
    best = None
    for candidate in candidates:
        if best is None or candidate.distance < best.distance:
            best = candidate
    return best


def resolve_base_branch(git: GitRepo, target: str, remote: str = "origin") -> BranchRelationship:
    """Work out where ``target`` forked from. Raises ResolutionError if nothing fits."""
    target_ref = f"refs/heads/{target}"
    measured = [_measure(git, target_ref, ref, display) for ref, display in common_candidates(remote)]
    best = pick_preferred([c for c in measured if c is not None])

    if best is None:
        logger.debug("no common base for %s, scanning all branches", target)
        measured = [_measure(git, target_ref, ref, display) for ref, display in fallback_candidates(git, target)]
        best = pick_closest([c for c in measured if c is not None])

    if best is None:
        raise ResolutionError(f"Could not determine base branch for '{target}'")

    return BranchRelationship(
        target=target,
        base=best.display,
        base_ref=best.ref,
        merge_base=best.merge_base,
        merge_base_short=best.merge_base[:7],
        ahead=best.distance,
    )


def protected_branch_status(git: GitRepo, branch: str) -> ProtectedBranchStatus:
    """Ahead count against the upstream (if any) and total commits, for protected branches."""
    upstream = git.upstream_of(branch)
    ahead = None
    if upstream and git.ref_exists(upstream):
        ahead = git.commits_between(upstream, branch)
    else:
        upstream = None
    return ProtectedBranchStatus(branch=branch, upstream=upstream, ahead=ahead, total=git.commit_count(branch))


def require_branch(git: GitRepo, branch: Optional[str]) -> str:
    if not branch:
        raise PreconditionError("Not on a branch (detached HEAD); pass a branch name")
    if not git.ref_exists(f"refs/heads/{branch}"):
        raise PreconditionError(f"Branch '{branch}' does not exist")
    return branch


def show_fork_point(git: GitRepo, config: ToolkitConfig, branch: Optional[str] = None, verbosity: int = 0):
    """Print the fork point report for one branch."""
    branch = require_branch(git, branch or git.current_branch())

    header(f"FORK POINT: {branch}")

    if config.is_protected(branch):
        status = protected_branch_status(git, branch)
        print(f"  {Colors.CYAN}{branch}{Colors.RESET} is a protected branch")
        if status.upstream:
            print(f"  Ahead of {status.upstream}: {status.ahead}")
        else:
            print(f"  {Colors.DIM}No upstream tracking branch{Colors.RESET}")
        print(f"  Total commits: {status.total}")
        return

    rel = resolve_base_branch(git, branch, config.remote)
    fork = git.head_commit(rel.merge_base)
    print(f"  Branch:        {Colors.CYAN}{rel.target}{Colors.RESET}")
    print(f"  Forked from:   {Colors.BRIGHT_GREEN}{rel.base}{Colors.RESET}")
    print(f"  Fork point:    {Colors.YELLOW}{rel.merge_base_short}{Colors.RESET} {fork.subject}")
    print(f"  Commits ahead: {rel.ahead}")

    if verbosity > 0:
        print(f"\n{Colors.BOLD}{plural(rel.ahead, 'commit')} since fork point:{Colors.RESET}")
        for commit in git.log_commits(rel.merge_base, f"refs/heads/{branch}"):
            print(f"  {Colors.YELLOW}{commit.short}{Colors.RESET} {commit.subject}")
            if verbosity > 1:
                print(f"      {Colors.DIM}{commit.author}, {commit.date}{Colors.RESET}")

