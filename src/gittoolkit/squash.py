#!/usr/bin/env python3
"""
squash - Squash the current branch's commits since its fork point into one.

The branch is soft-reset onto the fork point and committed again from a
message file. If that commit fails, the branch is moved back to where it was.
"""

import logging
from pathlib import Path
from typing import List, Optional

from gittoolkit.checks import require_clean_tree, require_commits
from gittoolkit.config import ToolkitConfig
from gittoolkit.errors import GitCommandError, PreconditionError
from gittoolkit.forkpoint import require_branch, resolve_base_branch
from gittoolkit.fsutil import ScopedArtifact
from gittoolkit.gitops import GitRepo
from gittoolkit.models import CommitInfo
from gittoolkit.ui import Colors, confirm_action, error, header, hint, plural, success, warn

logger = logging.getLogger(__name__)

MESSAGE_FILE = "SQUASH_MSG_GIT_TOOLKIT"


def default_squash_message(commits: List[CommitInfo]) -> str:
    """Oldest subject as the title, every subject listed in the body."""
    oldest_first = list(reversed(commits))
    lines = [oldest_first[0].subject, ""]
    lines += [f"* {c.subject}" for c in oldest_first]
    return "\n".join(lines) + "\n"


def _message_path(git: GitRepo) -> Path:
    git_dir = Path(git.git(["rev-parse", "--git-dir"]).stdout.strip())
    if not git_dir.is_absolute():
        git_dir = git.repo_path / git_dir
    return git_dir / MESSAGE_FILE


def squash_branch(git: GitRepo, config: ToolkitConfig, message: Optional[str] = None, edit: bool = False) -> int:
    """Interactive squash. Returns the process exit code."""
    require_commits(git)
    require_clean_tree(git)
    branch = require_branch(git, git.current_branch())
    if config.is_protected(branch):
        raise PreconditionError(f"Refusing to squash protected branch '{branch}'")

    rel = resolve_base_branch(git, branch, config.remote)
    if rel.ahead < 2:
        raise PreconditionError(f"'{branch}' has only {plural(rel.ahead, 'commit')} since {rel.base}; nothing to squash")

    commits = git.log_commits(rel.merge_base, f"refs/heads/{branch}")
    original = git.head_commit()

    header(f"SQUASH: {branch}")
    print(f"  Forked from {Colors.BRIGHT_GREEN}{rel.base}{Colors.RESET} at {Colors.YELLOW}{rel.merge_base_short}{Colors.RESET}")
    print(f"  {plural(len(commits), 'commit')} will become one:")
    for commit in commits:
        print(f"    {Colors.YELLOW}{commit.short}{Colors.RESET} {commit.subject}")
    print()

    if not confirm_action(f"Squash {plural(len(commits), 'commit')}?"):
        error("Squash cancelled.")
        return 0

    text = message.strip() + "\n" if message and message.strip() else default_squash_message(commits)

    with ScopedArtifact(_message_path(git)) as artifact:
        artifact.write_text(text)
        git.reset_soft(rel.merge_base)
        logger.info("squash: %s reset from %s to %s", branch, original.hash, rel.merge_base)
        result = git.commit_from_file(artifact.path, edit=edit)

        if not result.ok:
            logger.error("squash: commit failed on %s: %s", branch, result.message)
            error(f"Commit failed: {result.message}")
            try:
                git.reset_soft(original.hash)
            except GitCommandError as e:
                error(f"Rollback failed as well: {e}")
                hint(f"Restore the branch with: git reset --soft {original.hash}")
                return 1
            warn(f"Rolled back: '{branch}' points at {original.short} again")
            return 1

    squashed = git.head_commit()
    logger.info("squash: %s -> %s", original.hash, squashed.hash)
    success(f"Squashed {plural(len(commits), 'commit')} into {squashed.short}: {squashed.subject}")
    hint(f"Previous tip was {original.short}; undo with: git reset --hard {original.hash}")
    return 0
