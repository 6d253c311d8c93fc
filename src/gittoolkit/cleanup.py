#!/usr/bin/env python3
"""
cleanup - Delete local branches that are merged or whose upstream is gone.

Protected branches and the checked-out branch are never touched. A branch
whose upstream was deleted on the remote is force-deleted if a normal delete
refuses; any other unmerged branch is left alone and reported.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional

from gittoolkit.checks import require_commits
from gittoolkit.config import ToolkitConfig
from gittoolkit.gitops import GitRepo
from gittoolkit.models import BranchInfo
from gittoolkit.ui import Colors, confirm_action, error, header, plural, success, warn

logger = logging.getLogger(__name__)


class BranchLabel(Enum):
    MERGED = "merged"
    GONE = "gone from remote"


class DeleteOutcome(Enum):
    DELETED = "deleted"
    FORCE_DELETED = "force deleted"
    UNMERGED = "unmerged"
    FAILED = "failed"

    @property
    def ok(self) -> bool:
        return self in (DeleteOutcome.DELETED, DeleteOutcome.FORCE_DELETED)


@dataclass(frozen=True)
class CleanupCandidate:
    branch: BranchInfo
    labels: FrozenSet[BranchLabel]

    @property
    def name(self) -> str:
        return self.branch.name

    def describe(self) -> str:
        return ", ".join(label.value for label in BranchLabel if label in self.labels)


@dataclass(frozen=True)
class DeleteResult:
    name: str
    outcome: DeleteOutcome
    reason: str = ""


def is_deletion_protected(branch: BranchInfo, current: Optional[str], config: ToolkitConfig) -> bool:
    """Protected names and the checked-out branch are never deletion candidates."""
    if config.is_protected(branch.name):
        return True
    return branch.is_current or (current is not None and branch.name == current)


def classify_branches(git: GitRepo, config: ToolkitConfig) -> List[CleanupCandidate]:
    """Local branches eligible for deletion, each with the reasons it qualifies."""
    current = git.current_branch()
    candidates = []
    for branch in git.list_branches():
        if is_deletion_protected(branch, current, config):
            logger.debug("%s: protected", branch.name)
            continue

        labels = set()
        if git.is_ancestor(f"refs/heads/{branch.name}", "HEAD"):
            labels.add(BranchLabel.MERGED)
        if branch.gone:
            labels.add(BranchLabel.GONE)

        logger.debug("%s: %s", branch.name, sorted(label.value for label in labels) or "keep")
        if labels:
            candidates.append(CleanupCandidate(branch=branch, labels=frozenset(labels)))
    return candidates


def delete_candidate(git: GitRepo, candidate: CleanupCandidate) -> DeleteResult:
    """Safe delete, escalating to force only for branches whose upstream is gone."""
    result = git.delete_branch(candidate.name, force=False)
    if result.ok:
        return DeleteResult(candidate.name, DeleteOutcome.DELETED)

    if BranchLabel.GONE not in candidate.labels:
        return DeleteResult(candidate.name, DeleteOutcome.UNMERGED, result.message)

    forced = git.delete_branch(candidate.name, force=True)
    if forced.ok:
        return DeleteResult(candidate.name, DeleteOutcome.FORCE_DELETED)
    return DeleteResult(candidate.name, DeleteOutcome.FAILED, forced.message)


def delete_branches(git: GitRepo, candidates: List[CleanupCandidate]) -> List[DeleteResult]:
    """Delete each candidate independently; one failure does not stop the rest."""
    results = []
    for candidate in candidates:
        outcome = delete_candidate(git, candidate)
        logger.info("clean-branches: %s %s", outcome.name, outcome.outcome.value)
        results.append(outcome)
    return results


def clean_branches(git: GitRepo, config: ToolkitConfig) -> int:
    """Interactive branch cleanup. Returns the process exit code."""
    require_commits(git)

    candidates = classify_branches(git, config)
    if not candidates:
        success("No branches to clean up")
        return 0

    header("BRANCH CLEANUP")
    print("About to delete branches:")
    for candidate in candidates:
        last = git.head_commit(f"refs/heads/{candidate.name}")
        print(f"  Branch: {Colors.CYAN}{candidate.name}{Colors.RESET} ({candidate.describe()})")
        print(f"  {Colors.DIM}Last commit: {last.short} {last.subject}{Colors.RESET}")
    print()

    if not confirm_action("Proceed with branch cleanup?"):
        error("Branch cleanup cancelled.")
        return 0

    results = delete_branches(git, candidates)
    for result in results:
        if result.outcome is DeleteOutcome.DELETED:
            success(f"Deleted branch: {result.name}")
        elif result.outcome is DeleteOutcome.FORCE_DELETED:
            success(f"Force deleted gone branch: {result.name}")
        elif result.outcome is DeleteOutcome.UNMERGED:
            error(f"Failed to delete unmerged branch: {result.name} (use git branch -D to force)")
        else:
            error(f"Failed to delete branch: {result.name}: {result.reason}")

    deleted = sum(1 for r in results if r.outcome.ok)
    failed = len(results) - deleted
    print()
    if failed:
        warn(f"Deleted {plural(deleted, 'branch')}, failed {failed}")
        return 1
    success(f"Deleted {plural(deleted, 'branch')}")
    return 0
