#!/usr/bin/env python3
"""
gitops - Thin adapter over the git command line.

Everything the toolkit knows about a repository goes through GitRepo: refs,
commits, the working tree, stashes and branches. The adapter holds no policy;
it only runs git and parses its output into the records in gittoolkit.models.
"""

import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from gittoolkit.errors import GitCommandError
from gittoolkit.models import (
    ApplyResult,
    BranchInfo,
    CommitInfo,
    GitResult,
    Snapshot,
    parse_stash_index,
    split_stash_subject,
    stash_ref,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60

# Field and record separators for machine-readable --format output.
# git expands the escapes itself; argv cannot carry a NUL byte.
FS = "\x1f"
RS = "\x00"
LOG_FS = "%x1f"
LOG_RS = "%x00"
REF_RS = "%00"


def run_git(args: List[str], cwd: Optional[Path] = None, check: bool = True, timeout: int = DEFAULT_TIMEOUT,
            capture_output: bool = True, binary: bool = False) -> subprocess.CompletedProcess:
    """Run git command and return result with timeout and error handling."""
    logger.debug("git %s", " ".join(args))
    kwargs = {}
    if not binary:
        kwargs = {"text": True, "encoding": "utf-8", "errors": "replace"}
    try:
        result = subprocess.run(
            ["git"] + args,
            capture_output=capture_output,
            check=False,
            cwd=cwd,
            timeout=timeout,
            **kwargs
        )
    except subprocess.TimeoutExpired:
        raise GitCommandError(f"Git command timed out after {timeout}s: git {' '.join(args)}", args)
    except OSError as e:
        raise GitCommandError(f"Git command failed: git {' '.join(args)}\n{e}", args)

    if check and result.returncode != 0:
        stderr = result.stderr
        if isinstance(stderr, bytes):
            stderr = stderr.decode("utf-8", errors="replace")
        stderr = (stderr or "").strip()
        raise GitCommandError(
            f"git {' '.join(args)} failed: {stderr or 'exit code ' + str(result.returncode)}",
            args,
            stderr,
        )

    return result


def _lines(output: str) -> List[str]:
    return [line for line in output.split("\n") if line.strip()]


def _parse_track(track: str) -> Tuple[int, int, bool]:
    """Parse ``%(upstream:track,nobracket)``: 'ahead 2, behind 1' or 'gone'."""
    ahead = behind = 0
    gone = False
    for part in track.split(","):
        part = part.strip()
        if part == "gone":
            gone = True
        elif part.startswith("ahead "):
            ahead = int(part[len("ahead "):])
        elif part.startswith("behind "):
            behind = int(part[len("behind "):])
    return ahead, behind, gone


class GitRepo:
    """A git working copy, addressed by its path."""

    def __init__(self, repo_path: Path, timeout: int = DEFAULT_TIMEOUT):
        self.repo_path = Path(repo_path)
        self.timeout = timeout

    def git(self, args: List[str], check: bool = True, **kwargs) -> subprocess.CompletedProcess:
        return run_git(args, cwd=self.repo_path, check=check, timeout=self.timeout, **kwargs)

    # -- repository ---------------------------------------------------------

    def is_repo(self) -> bool:
        return self.git(["rev-parse", "--git-dir"], check=False).returncode == 0

    def has_commits(self) -> bool:
        return self.git(["rev-parse", "--verify", "--quiet", "HEAD"], check=False).returncode == 0

    def toplevel(self) -> Path:
        return Path(self.git(["rev-parse", "--show-toplevel"]).stdout.strip())

    # -- refs and commits ---------------------------------------------------

    def current_branch(self) -> Optional[str]:
        """Get the name of the current branch, or None on a detached HEAD."""
        result = self.git(["branch", "--show-current"], check=False)
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
        return None

    def ref_exists(self, name: str) -> bool:
        result = self.git(["rev-parse", "--verify", "--quiet", f"{name}^{{commit}}"], check=False)
        return result.returncode == 0

    def head_commit(self, ref: str = "HEAD") -> CommitInfo:
        """Read a commit. The message is taken verbatim from the commit object."""
        result = self.git(["log", "-1", f"--format=%H{LOG_FS}%h{LOG_FS}%s{LOG_FS}%an <%ae>{LOG_FS}%ai", ref, "--"])
        full, short, subject, author, date = result.stdout.rstrip("\n").split(FS, 4)

        raw = self.git(["cat-file", "commit", full], binary=True).stdout.decode("utf-8", errors="replace")
        _, _, message = raw.partition("\n\n")

        return CommitInfo(hash=full, short=short, subject=subject, message=message, author=author, date=date)

    def log_commits(self, base: str, head: str) -> List[CommitInfo]:
        """Commits reachable from head but not base, newest first."""
        result = self.git([
            "log", "-z", f"--format=%H{LOG_FS}%h{LOG_FS}%s{LOG_FS}%an <%ae>{LOG_FS}%ai{LOG_FS}%B", f"{base}..{head}", "--"
        ])
        commits = []
        for record in result.stdout.split(RS):
            if not record.strip():
                continue
            full, short, subject, author, date, message = record.lstrip("\n").split(FS, 5)
            commits.append(CommitInfo(hash=full, short=short, subject=subject, message=message,
                                      author=author, date=date))
        return commits

    def commit_count(self, ref: str) -> int:
        return int(self.git(["rev-list", "--count", ref, "--"]).stdout.strip())

    def commits_between(self, base: str, head: str) -> int:
        return int(self.git(["rev-list", "--count", f"{base}..{head}", "--"]).stdout.strip())

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self.git(["merge-base", "--is-ancestor", ancestor, descendant], check=False)
        return result.returncode == 0

    def merge_base(self, a: str, b: str) -> Optional[str]:
        result = self.git(["merge-base", a, b], check=False)
        if result.returncode != 0 or not result.stdout.strip():
            return None
        return result.stdout.strip()

    def list_refs(self) -> List[Tuple[str, str, bool]]:
        """All local and remote-tracking refs as (full ref, short name, is_remote)."""
        result = self.git(["for-each-ref", "--format=%(refname)", "refs/heads", "refs/remotes"])
        refs = []
        for full in _lines(result.stdout):
            if full.startswith("refs/heads/"):
                refs.append((full, full[len("refs/heads/"):], False))
            elif full.startswith("refs/remotes/"):
                refs.append((full, full[len("refs/remotes/"):], True))
        return refs

    def upstream_of(self, branch: str) -> Optional[str]:
        result = self.git(
            ["rev-parse", "--abbrev-ref", "--symbolic-full-name", f"{branch}@{{upstream}}"],
            check=False
        )
        if result.returncode != 0 or not result.stdout.strip():
            return None
        return result.stdout.strip()

    # -- branches -----------------------------------------------------------

    def list_branches(self) -> List[BranchInfo]:
        fmt = REF_RS.join(["%(refname)", "%(upstream:short)", "%(upstream:track,nobracket)", "%(HEAD)"])
        result = self.git(["for-each-ref", f"--format={fmt}", "refs/heads"])
        branches = []
        for line in _lines(result.stdout):
            full, upstream, track, head = line.split(RS, 3)
            ahead, behind, gone = _parse_track(track)
            branches.append(BranchInfo(
                name=full[len("refs/heads/"):],
                upstream=upstream or None,
                ahead=ahead,
                behind=behind,
                gone=gone,
                is_current=head.strip() == "*",
            ))
        return branches

    def delete_branch(self, name: str, force: bool = False) -> GitResult:
        flag = "-D" if force else "-d"
        result = self.git(["branch", flag, name], check=False)
        if result.returncode == 0:
            return GitResult(True, result.stdout.strip())
        return GitResult(False, result.stderr.strip())

    # -- working tree -------------------------------------------------------

    def is_working_tree_clean(self) -> bool:
        """True when nothing is staged, modified or untracked."""
        result = self.git(["status", "--porcelain", "--untracked-files=normal"])
        return not result.stdout.strip()

    def working_tree_changes(self) -> Dict[str, List[str]]:
        return {
            "modified": _lines(self.git(["diff", "--name-only"]).stdout),
            "staged": _lines(self.git(["diff", "--cached", "--name-only"]).stdout),
            "untracked": _lines(self.git(["ls-files", "--others", "--exclude-standard"]).stdout),
        }

    def conflicted_files(self) -> List[str]:
        return _lines(self.git(["diff", "--name-only", "--diff-filter=U"], check=False).stdout)

    def stage_all(self):
        self.git(["add", "-A"])

    def stage(self, paths: List[str], force: bool = False):
        """Stage paths; with force, .gitignore rules are bypassed."""
        args = ["add"]
        if force:
            args.append("-f")
        self.git(args + ["--"] + list(paths))

    def unstage(self, path: str):
        """Drop a path from the index, keeping the file on disk."""
        self.git(["rm", "--cached", "-q", "--ignore-unmatch", "--", path])

    def reset_keep_changes(self, steps_back: int = 1):
        """Move the branch back, leaving the undone changes in the working tree."""
        self.git(["reset", "-q", f"HEAD~{steps_back}"])

    def reset_soft(self, ref: str):
        self.git(["reset", "-q", "--soft", ref])

    def commit_from_file(self, message_file: Path, edit: bool = False) -> GitResult:
        args = ["commit", "-q", "-F", str(message_file)]
        if edit:
            # Editor needs the terminal
            args.insert(1, "-e")
            result = self.git(args, check=False, capture_output=False)
            return GitResult(result.returncode == 0, "" if result.returncode == 0 else "git commit failed")
        result = self.git(args, check=False)
        return GitResult(result.returncode == 0, result.stderr.strip())

    # -- stashes ------------------------------------------------------------

    def list_snapshots(self) -> List[Snapshot]:
        """All stashes, most recent first."""
        result = self.git(["stash", "list", f"--format=%gd{LOG_RS}%ct{LOG_RS}%gs"], check=False)
        if result.returncode != 0:
            return []
        snapshots = []
        for line in _lines(result.stdout):
            parts = line.split(RS, 2)
            if len(parts) < 3:
                continue
            branch, label = split_stash_subject(parts[2])
            snapshots.append(Snapshot(
                index=parse_stash_index(parts[0]),
                timestamp=int(parts[1]),
                label=label,
                branch=branch,
            ))
        return snapshots

    def stash_tip(self) -> Optional[str]:
        """Object id of refs/stash, or None when there are no stashes."""
        result = self.git(["rev-parse", "--verify", "--quiet", "refs/stash"], check=False)
        if result.returncode != 0 or not result.stdout.strip():
            return None
        return result.stdout.strip()

    def create_snapshot(self, label: str, include_untracked: bool = False) -> str:
        """
        Stash the working tree under ``label`` and return the new stash ref.

        The new entry is recognised by refs/stash moving, not by its label:
        git normalises whitespace in reflog messages.
        """
        before = self.stash_tip()
        args = ["stash", "push"]
        if include_untracked:
            args.append("--include-untracked")
        args += ["-m", label]
        self.git(args)

        if self.stash_tip() in (None, before):
            raise GitCommandError("Stash was not created (nothing to save?)", args)
        return stash_ref(0)

    def path_in_commit(self, ref: str, path: str) -> bool:
        """True if ``path`` (relative to the top level) exists in the tree of ``ref``."""
        return self.git(["cat-file", "-e", f"{ref}:{path}"], check=False).returncode == 0

    def snapshot_contains(self, ref: str, path: str) -> bool:
        return self.path_in_commit(ref, path)

    def read_snapshot_file(self, ref: str, path: str) -> Optional[str]:
        result = self.git(["show", f"{ref}:{path}"], check=False, binary=True)
        if result.returncode != 0:
            return None
        return result.stdout.decode("utf-8", errors="replace")

    def snapshot_files(self, ref: str) -> List[Tuple[str, str]]:
        """(status, path) pairs for the tracked changes in a stash."""
        result = self.git(["stash", "show", "--name-status", ref], check=False)
        files = []
        if result.returncode == 0:
            for line in _lines(result.stdout):
                parts = line.split(None, 1)
                if len(parts) == 2:
                    files.append((parts[0], parts[1]))
        return files

    def apply_snapshot(self, ref: str) -> Tuple[ApplyResult, str]:
        """Apply without dropping. Conflicts are reported, not resolved."""
        result = self.git(["stash", "apply", ref], check=False)
        output = "\n".join(s for s in (result.stdout.strip(), result.stderr.strip()) if s)
        if result.returncode == 0:
            return ApplyResult.APPLIED, output
        if self.conflicted_files() or "conflict" in output.lower():
            return ApplyResult.CONFLICT, output
        return ApplyResult.FAILED, output

    def drop_snapshot(self, ref: str) -> GitResult:
        result = self.git(["stash", "drop", ref], check=False)
        if result.returncode == 0:
            return GitResult(True, result.stdout.strip())
        return GitResult(False, result.stderr.strip())
