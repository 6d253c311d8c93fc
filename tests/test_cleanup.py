"""Tests for merged / gone branch cleanup."""

from conftest import commit, git
from gittoolkit.cleanup import (
    BranchLabel,
    CleanupCandidate,
    DeleteOutcome,
    classify_branches,
    clean_branches,
    delete_candidate,
)
from gittoolkit.config import ToolkitConfig
from gittoolkit.models import BranchInfo


def branches(repo):
    return set(git(repo, "for-each-ref", "--format=%(refname:short)", "refs/heads").split())


def make_gone(repo, branch):
    """Give ``branch`` an upstream that no longer exists on the remote."""
    if "origin" not in git(repo, "remote").split():
        git(repo, "remote", "add", "origin", str(repo))
    git(repo, "config", f"branch.{branch}.remote", "origin")
    git(repo, "config", f"branch.{branch}.merge", f"refs/heads/{branch}")


def test_merged_branch_is_candidate(repo, gitrepo, config):
    git(repo, "branch", "done")

    candidates = classify_branches(gitrepo, config)

    assert [c.name for c in candidates] == ["done"]
    assert candidates[0].labels == frozenset({BranchLabel.MERGED})


def test_protected_and_current_are_never_candidates(repo, gitrepo, config):
    git(repo, "branch", "develop")
    git(repo, "branch", "main-feature")
    git(repo, "checkout", "-q", "-b", "current")

    names = [c.name for c in classify_branches(gitrepo, config)]

    assert "main" not in names
    assert "develop" not in names
    assert "current" not in names
    assert names == ["main-feature"]


def test_unmerged_branch_without_upstream_is_kept(repo, gitrepo, config):
    git(repo, "checkout", "-q", "-b", "wip")
    commit(repo, "wip.txt", "wip", "Work in progress")
    git(repo, "checkout", "-q", "main")

    assert classify_branches(gitrepo, config) == []


def test_gone_unmerged_branch_is_force_deleted(repo, gitrepo, config):
    git(repo, "checkout", "-q", "-b", "gone")
    commit(repo, "gone.txt", "x", "Never merged")
    git(repo, "checkout", "-q", "main")
    make_gone(repo, "gone")

    candidates = classify_branches(gitrepo, config)
    assert [c.name for c in candidates] == ["gone"]
    assert candidates[0].labels == frozenset({BranchLabel.GONE})

    result = delete_candidate(gitrepo, candidates[0])

    assert result.outcome is DeleteOutcome.FORCE_DELETED
    assert "gone" not in branches(repo)


def test_unmerged_without_gone_label_is_not_forced(repo, gitrepo):
    git(repo, "checkout", "-q", "-b", "wip")
    commit(repo, "wip.txt", "wip", "Work in progress")
    git(repo, "checkout", "-q", "main")
    candidate = CleanupCandidate(branch=BranchInfo(name="wip"), labels=frozenset({BranchLabel.MERGED}))

    result = delete_candidate(gitrepo, candidate)

    assert result.outcome is DeleteOutcome.UNMERGED
    assert not result.outcome.ok
    assert "wip" in branches(repo)


def test_custom_protected_set_is_exact_match(repo, gitrepo, tmp_path):
    git(repo, "branch", "release")
    git(repo, "branch", "release-1")
    config = ToolkitConfig(protected_branches=("main", "release"), log_dir=tmp_path)

    names = [c.name for c in classify_branches(gitrepo, config)]

    assert names == ["release-1"]


def test_clean_branches_confirmed(repo, gitrepo, config, answers):
    git(repo, "branch", "done")
    git(repo, "checkout", "-q", "-b", "gone")
    commit(repo, "gone.txt", "x", "Never merged")
    git(repo, "checkout", "-q", "main")
    make_gone(repo, "gone")
    answers("y")

    assert clean_branches(gitrepo, config) == 0
    assert branches(repo) == {"main"}


def test_clean_branches_declined(repo, gitrepo, config, answers):
    git(repo, "branch", "done")
    answers("n")

    assert clean_branches(gitrepo, config) == 0
    assert branches(repo) == {"done", "main"}


def test_clean_branches_nothing_to_do(repo, gitrepo, config, answers, capsys):
    answers()

    assert clean_branches(gitrepo, config) == 0
    assert "No branches to clean up" in capsys.readouterr().out
