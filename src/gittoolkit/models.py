"""
models - Records exchanged between the git adapter and the commands.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

STASH_REF_RE = re.compile(r"^stash@\{(\d+)\}$")
STASH_PREFIX_RE = re.compile(r"^(?:WIP on|On) ([^:]+): ")


@dataclass(frozen=True)
class CommitInfo:
    """A commit as read from git. Never modified by the toolkit."""

    hash: str
    short: str
    subject: str
    message: str
    author: str
    date: str


@dataclass(frozen=True)
class BranchInfo:
    """A local branch and its upstream tracking state."""

    name: str
    upstream: Optional[str] = None
    ahead: int = 0
    behind: int = 0
    gone: bool = False
    is_current: bool = False


@dataclass(frozen=True)
class Snapshot:
    """One stash entry. ``index`` is positional and shifts when older entries go."""

    index: int
    timestamp: int
    label: str
    branch: Optional[str] = None

    @property
    def ref(self) -> str:
        return stash_ref(self.index)


@dataclass(frozen=True)
class GitResult:
    """Outcome of a git call that may fail without being exceptional."""

    ok: bool
    message: str = ""


class ApplyResult(Enum):
    APPLIED = "applied"
    CONFLICT = "conflict"
    FAILED = "failed"


def stash_ref(index: int) -> str:
    return f"stash@{{{index}}}"


def parse_stash_index(ref: str) -> int:
    """Get N out of ``stash@{N}``."""
    match = STASH_REF_RE.match(ref.strip())
    if not match:
        raise ValueError(f"Not a stash reference: {ref!r}")
    return int(match.group(1))


def split_stash_subject(subject: str):
    """
    Split git's stash subject into (branch, label).

    ``On main: my label`` -> ("main", "my label"). Subjects without the
    prefix come back unchanged with no branch.
    """
    match = STASH_PREFIX_RE.match(subject)
    if not match:
        return None, subject
    return match.group(1), subject[match.end():]
