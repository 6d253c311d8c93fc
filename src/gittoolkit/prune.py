#!/usr/bin/env python3
"""
prune - Drop stashes older than N days.

Stash references are positions (stash@{N}) and every drop renumbers the
entries behind it. The list is read once and the selected entries are dropped
from the highest index down, so no drop ever shifts an entry still waiting to
be dropped.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from gittoolkit.checks import require_repo
from gittoolkit.config import ToolkitConfig
from gittoolkit.errors import ValidationError
from gittoolkit.gitops import GitRepo
from gittoolkit.models import Snapshot
from gittoolkit.ui import Colors, confirm_action, error, header, plural, success, warn

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class AgedSnapshot:
    snapshot: Snapshot
    age_days: int


@dataclass
class PruneResult:
    deleted: List[Snapshot] = field(default_factory=list)
    failed: List[Snapshot] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def validate_age(days) -> int:
    """Accept a non-negative integer (or its string form); anything else is rejected."""
    if isinstance(days, bool):
        raise ValidationError(f"Invalid age: {days!r} (expected a non-negative number of days)")
    if isinstance(days, str):
        text = days.strip()
        if not text.isdigit():
            raise ValidationError(f"Invalid age: {days!r} (expected a non-negative number of days)")
        days = int(text)
    if not isinstance(days, int) or days < 0:
        raise ValidationError(f"Invalid age: {days!r} (expected a non-negative number of days)")
    return days


def find_old_snapshots(snapshots: List[Snapshot], days: int, now: Optional[int] = None) -> List[AgedSnapshot]:
    """Snapshots created before ``now - days``, in list order."""
    days = validate_age(days)
    if now is None:
        now = int(time.time())
    cutoff = now - days * SECONDS_PER_DAY
    return [
        AgedSnapshot(snapshot=s, age_days=(now - s.timestamp) // SECONDS_PER_DAY)
        for s in snapshots
        if s.timestamp < cutoff
    ]


def deletion_order(selected: List[Snapshot]) -> List[Snapshot]:
    """Highest index first."""
    return sorted(selected, key=lambda s: s.index, reverse=True)


def drop_snapshots(git: GitRepo, selected: List[Snapshot]) -> PruneResult:
    """Drop every selected stash, highest index first; failures do not stop the batch."""
    result = PruneResult()
    for snapshot in deletion_order(selected):
        outcome = git.drop_snapshot(snapshot.ref)
        if outcome.ok:
            logger.info("prune-stashes: dropped %s (%s)", snapshot.ref, snapshot.label)
            result.deleted.append(snapshot)
        else:
            logger.error("prune-stashes: failed to drop %s: %s", snapshot.ref, outcome.message)
            result.failed.append(snapshot)
    return result


def prune_stashes(git: GitRepo, config: ToolkitConfig, days: Optional[int] = None, now: Optional[int] = None) -> int:
    """Interactive age-based pruning. Returns the process exit code."""
    days = validate_age(config.stash_age_days if days is None else days)
    require_repo(git)

    if now is None:
        now = int(time.time())
    old = find_old_snapshots(git.list_snapshots(), days, now)
    if not old:
        success(f"No stashes older than {days} days")
        return 0

    header(f"STASHES OLDER THAN {days} DAYS")
    for item in old:
        created = datetime.fromtimestamp(item.snapshot.timestamp).strftime(config.date_format)
        print(f"  {Colors.CYAN}{item.snapshot.ref}{Colors.RESET}  "
              f"{Colors.YELLOW}{item.age_days} days old{Colors.RESET}  {Colors.DIM}{created}{Colors.RESET}")
        print(f"     {item.snapshot.label}")
    print()

    if not confirm_action(f"Delete {plural(len(old), 'stash')}?"):
        error("Stash pruning cancelled.")
        return 0

    result = drop_snapshots(git, [item.snapshot for item in old])
    for snapshot in result.failed:
        error(f"Failed to drop {snapshot.ref}: {snapshot.label}")

    if result.ok:
        success(f"Deleted {plural(len(result.deleted), 'stash')}")
        return 0
    warn(f"Deleted {len(result.deleted)}, failed {len(result.failed)}")
    return 1
