#!/usr/bin/env python3
"""
undo - Undo the last commit into a stash, and redo it later.

Undo resets the branch one commit back and stashes the changes together with
a small JSON record describing the original commit (hash, branch, author,
full message). The stash label ``undo - <branch> - <subject>`` is what redo
uses to find it again; there is no other index.

Redo lists those stashes, lets the user pick one, and applies it. It never
drops the stash, so a failed or regretted redo can simply be retried.

Known limitation: any stash whose message starts with ``undo - `` is treated
as an undo stash, including ones created by hand.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from gittoolkit.checks import require_clean_tree, require_commits
from gittoolkit.config import ToolkitConfig
from gittoolkit.errors import GitCommandError, PreconditionError, ValidationError
from gittoolkit.fsutil import ScopedArtifact, remove_if_exists
from gittoolkit.gitops import GitRepo
from gittoolkit.models import ApplyResult, CommitInfo, Snapshot
from gittoolkit.ui import Colors, confirm_action, error, header, hint, safe_input, success, warn

logger = logging.getLogger(__name__)

UNDO_MARKER = "undo"
LABEL_SEP = " - "
UNDO_PREFIX = UNDO_MARKER + LABEL_SEP
DETACHED = "(detached)"

METADATA_FILE = "_undo_metadata.json"
METADATA_FORMAT = "git-toolkit-undo/1"

MAX_REDO_CHOICES = 10
QUIT = "q"


@dataclass(frozen=True)
class UndoMetadata:
    """What is known about an undone commit, stored inside its stash."""

    commit_hash: str
    short_hash: str
    created: str
    branch: str
    author: str
    author_date: str
    message: str

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0]

    @classmethod
    def from_commit(cls, commit: CommitInfo, branch: str, created: str) -> "UndoMetadata":
        return cls(
            commit_hash=commit.hash,
            short_hash=commit.short,
            created=created,
            branch=branch,
            author=commit.author,
            author_date=commit.date,
            message=commit.message,
        )

    def to_json(self) -> str:
        data = {"format": METADATA_FORMAT}
        data.update(asdict(self))
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    @classmethod
    def from_json(cls, text: str) -> "UndoMetadata":
        data = json.loads(text)
        if not isinstance(data, dict) or data.get("format") != METADATA_FORMAT:
            raise ValueError(f"Not a {METADATA_FORMAT} record")
        return cls(
            commit_hash=data["commit_hash"],
            short_hash=data["short_hash"],
            created=data["created"],
            branch=data["branch"],
            author=data["author"],
            author_date=data["author_date"],
            message=data["message"],
        )


@dataclass(frozen=True)
class UndoLabel:
    """The stash label of an undo stash. Branch names never contain spaces."""

    branch: str
    subject: str

    def format(self) -> str:
        return f"{UNDO_PREFIX}{self.branch}{LABEL_SEP}{self.subject}"

    @classmethod
    def parse(cls, label: str) -> Optional["UndoLabel"]:
        if not label.startswith(UNDO_PREFIX):
            return None
        branch, _, subject = label[len(UNDO_PREFIX):].partition(LABEL_SEP)
        return cls(branch=branch, subject=subject)


@dataclass(frozen=True)
class UndoEntry:
    snapshot: Snapshot
    label: UndoLabel
    metadata: Optional[UndoMetadata] = None


# -- undo -----------------------------------------------------------------------


def _preview_commit(commit: CommitInfo):
    print("About to undo commit:")
    print(f"  Hash:    {Colors.YELLOW}{commit.short}{Colors.RESET}")
    print(f"  Message: {commit.subject}")
    print(f"  Author:  {commit.author}")
    print(f"  Date:    {commit.date}")
    print()


def _rollback_undo(git: GitRepo, commit: CommitInfo, metadata_path: Path) -> bool:
    """Put the branch back on the undone commit after a failed stash."""
    try:
        git.reset_soft(commit.hash)
        git.unstage(METADATA_FILE)
    except GitCommandError as e:
        logger.error("undo rollback failed: %s", e)
        error(f"Rollback failed as well: {e}")
        hint("The commit has been reset and is NOT stashed. Restore it with:")
        hint(f"  git reset --soft {commit.hash}")
        if metadata_path.exists():
            hint(f"Commit details are saved in {metadata_path}")
        return False

    logger.info("undo rolled back to %s", commit.hash)
    warn(f"Rolled back: the branch points at {commit.short} again, nothing was undone")
    if metadata_path.exists():
        hint(f"Commit details left in {metadata_path} (safe to delete)")
    return True


def undo_last_commit(git: GitRepo, config: ToolkitConfig) -> int:
    """Interactive undo. Returns the process exit code."""
    require_commits(git)
    if git.commit_count("HEAD") <= 1:
        raise PreconditionError("Cannot undo the initial commit")
    require_clean_tree(git)

    metadata_path = git.repo_path / METADATA_FILE
    if metadata_path.exists():
        raise PreconditionError(f"{METADATA_FILE} already exists; remove it before undoing")

    commit = git.head_commit()
    branch = git.current_branch() or DETACHED

    _preview_commit(commit)
    if not confirm_action("Proceed with undo?"):
        error("Undo cancelled.")
        return 0

    metadata = UndoMetadata.from_commit(commit, branch, datetime.now().strftime(config.date_format))
    label = UndoLabel(branch=branch, subject=commit.subject).format()

    stash_before = git.stash_tip()
    git.reset_keep_changes(1)
    logger.info("undo: reset %s (%s) on %s", commit.hash, commit.subject, branch)

    with ScopedArtifact(metadata_path, keep_on_error=True) as artifact:
        try:
            artifact.write_text(metadata.to_json())
            # Staged on its own so ignore rules cannot leave it out
            git.stage([METADATA_FILE], force=True)
            git.stage_all()
            ref = git.create_snapshot(label)
        except (GitCommandError, OSError) as e:
            artifact.keep()
            logger.error("undo: failed to stash %s: %s", commit.hash, e)
            error(f"Failed to create stash with metadata: {e}")
            if git.stash_tip() not in (None, stash_before):
                # The stash exists; resetting now would stage the reverse of the commit
                hint(f"The changes were stashed anyway as stash@{{0}} (\"{label}\")")
                hint(f"Original commit: {commit.hash}")
                return 1
            _rollback_undo(git, commit, metadata_path)
            return 1

        if not git.snapshot_contains(ref, METADATA_FILE):
            artifact.keep()
            if not metadata_path.exists():
                artifact.write_text(metadata.to_json())
            logger.error("undo: %s created without %s", ref, METADATA_FILE)
            error("Metadata file was not saved in stash")
            hint(f"The changes are in {ref}; commit details are kept in {metadata_path}")
            return 1

    logger.info("undo: stashed %s as %s", commit.hash, ref)
    success("Commit undone and changes stashed")
    hint(f"Stash: {ref} (\"{label}\")")
    hint("Bring it back with: git-toolkit redo")
    return 0


# -- redo -----------------------------------------------------------------------


def read_undo_metadata(git: GitRepo, ref: str) -> Optional[UndoMetadata]:
    text = git.read_snapshot_file(ref, METADATA_FILE)
    if text is None:
        return None
    try:
        return UndoMetadata.from_json(text)
    except (ValueError, KeyError, TypeError) as e:
        logger.debug("%s: unreadable undo metadata: %s", ref, e)
        return None


def find_undo_snapshots(git: GitRepo, limit: Optional[int] = None) -> List[UndoEntry]:
    """Undo stashes, most recent first. Metadata is only read for the first ``limit``."""
    entries = []
    for snapshot in git.list_snapshots():
        if limit is not None and len(entries) >= limit:
            break
        label = UndoLabel.parse(snapshot.label)
        if label is None:
            continue
        entries.append(UndoEntry(snapshot=snapshot, label=label, metadata=read_undo_metadata(git, snapshot.ref)))
    return entries


def select_entry(entries: List[UndoEntry], choice: str) -> UndoEntry:
    """Resolve a 1-based menu choice."""
    choice = choice.strip()
    if not choice.isdigit():
        raise ValidationError("Invalid selection. Please enter a number.")
    number = int(choice)
    if number < 1 or number > len(entries):
        raise ValidationError("Invalid selection. Please choose a valid number.")
    return entries[number - 1]


def _show_entry(number: int, entry: UndoEntry, config: ToolkitConfig):
    undone = datetime.fromtimestamp(entry.snapshot.timestamp).strftime(config.date_format)
    print(f"  {number}. {entry.label.subject}")
    print(f"     Branch: {Colors.BRIGHT_GREEN}{entry.label.branch}{Colors.RESET}")
    print(f"     Undone: {entry.metadata.created if entry.metadata else undone}")
    if entry.metadata:
        print(f"     Original hash: {Colors.YELLOW}{entry.metadata.commit_hash}{Colors.RESET}")
    print(f"     Stash: {Colors.CYAN}{entry.snapshot.ref}{Colors.RESET}")
    print()


def _discard_restored_metadata(git: GitRepo):
    """Applying an undo stash brings back the metadata file; it is not part of the changes."""
    if git.path_in_commit("HEAD", METADATA_FILE):
        return
    git.unstage(METADATA_FILE)
    remove_if_exists(git.repo_path / METADATA_FILE)


def redo(git: GitRepo, config: ToolkitConfig) -> int:
    """Interactive redo. Returns the process exit code."""
    require_commits(git)
    require_clean_tree(git)

    entries = find_undo_snapshots(git, limit=MAX_REDO_CHOICES)
    if not entries:
        success("No undo stashes found to redo")
        return 0

    header("UNDO OPERATIONS AVAILABLE TO REDO")
    for number, entry in enumerate(entries, 1):
        _show_entry(number, entry, config)

    choice = safe_input(f"{Colors.CYAN}Enter the number of the undo to redo (or '{QUIT}' to quit):{Colors.RESET} ")
    if choice.strip().lower() == QUIT:
        error("Redo cancelled.")
        return 0
    entry = select_entry(entries, choice)
    ref = entry.snapshot.ref

    print("\nAbout to redo (restore) commit:")
    print(f"  Commit: {entry.label.subject}")
    print(f"  Branch: {entry.label.branch}")
    if entry.metadata:
        print(f"  Original hash: {entry.metadata.commit_hash}")
    print(f"  Stash:  {ref}")
    print()

    if not confirm_action("Proceed with redo?"):
        error("Redo cancelled.")
        return 0

    try:
        result, output = git.apply_snapshot(ref)
    finally:
        _discard_restored_metadata(git)
    logger.info("redo: %s -> %s", ref, result.value)

    if result is ApplyResult.APPLIED:
        success("Redo completed successfully!")
        print("\nThe changes have been restored to your working directory.")
        print("You can now:")
        print("  - Review the changes with: git diff HEAD")
        print("  - Commit them again with: git commit")
        print(f"  - Drop the stash with: git stash drop {ref}")
        hint(f"The stash has been preserved. Use 'git stash drop {ref}' to remove it.")
        return 0

    if result is ApplyResult.CONFLICT:
        error("Failed to apply stash cleanly. There are conflicts.")
        for path in git.conflicted_files():
            print(f"   {Colors.RED}• {path}{Colors.RESET}")
        hint("Resolve the conflicts, then 'git add' the files.")
        hint(f"The stash is kept and can be applied again with: git stash apply {ref}")
        return 1

    error(f"Failed to apply stash: {output}")
    hint(f"The stash is kept. Try manually: git stash apply {ref}")
    return 1
