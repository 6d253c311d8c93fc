"""Tests for undo / redo."""

import pytest

from conftest import commit, git, head, stash_count
from gittoolkit.errors import GitCommandError, PreconditionError, ValidationError
from gittoolkit.undo import (
    METADATA_FILE,
    UndoLabel,
    UndoMetadata,
    find_undo_snapshots,
    read_undo_metadata,
    redo,
    undo_last_commit,
)


def status(repo):
    return git(repo, "status", "--porcelain", "--untracked-files=all")


@pytest.fixture
def two_commits(repo):
    base = head(repo)
    commit(repo, "feature.txt", "new feature\n", "Add feature")
    return base


def test_undo_then_redo_round_trip(repo, gitrepo, config, answers, two_commits):
    undone = head(repo)
    answers("y")

    assert undo_last_commit(gitrepo, config) == 0

    assert head(repo) == two_commits
    assert status(repo) == ""
    assert not (repo / "feature.txt").exists()
    assert not (repo / METADATA_FILE).exists()
    assert stash_count(repo) == 1

    entries = find_undo_snapshots(gitrepo)
    assert len(entries) == 1
    assert entries[0].label == UndoLabel(branch="main", subject="Add feature")
    assert entries[0].metadata.commit_hash == undone

    answers("1", "y")
    assert redo(gitrepo, config) == 0

    assert (repo / "feature.txt").read_text() == "new feature\n"
    assert not (repo / METADATA_FILE).exists()
    assert METADATA_FILE not in status(repo)
    assert head(repo) == two_commits
    assert stash_count(repo) == 1


def test_undo_preserves_message_verbatim(repo, gitrepo, config, answers):
    message = (
        "Fix \"quoting\" & <escapes> in 'shell' $HOME `cmd`\n"
        "\n"
        "Body with multibyte text: naïve café ✓ 日本語\n"
        "  indented line\n"
    )
    (repo / "msg.txt").write_text("x\n")
    (repo.parent / "message").write_text(message, encoding="utf-8")
    git(repo, "add", "msg.txt")
    git(repo, "commit", "-q", "--cleanup=verbatim", "-F", str(repo.parent / "message"))
    answers("y")

    assert undo_last_commit(gitrepo, config) == 0

    metadata = read_undo_metadata(gitrepo, "stash@{0}")
    assert metadata.message == message
    assert metadata.subject == "Fix \"quoting\" & <escapes> in 'shell' $HOME `cmd`"
    assert metadata.branch == "main"
    assert metadata.author == "Test <test@test.com>"


def test_undo_refuses_dirty_tree(repo, gitrepo, config, answers, two_commits):
    original = head(repo)
    (repo / "scratch.txt").write_text("untracked")
    answers()

    with pytest.raises(PreconditionError):
        undo_last_commit(gitrepo, config)

    assert head(repo) == original
    assert stash_count(repo) == 0


def test_undo_refuses_root_commit(repo, gitrepo, config, answers):
    answers()

    with pytest.raises(PreconditionError):
        undo_last_commit(gitrepo, config)


def test_undo_declined_changes_nothing(repo, gitrepo, config, answers, two_commits):
    original = head(repo)
    answers("n")

    assert undo_last_commit(gitrepo, config) == 0

    assert head(repo) == original
    assert stash_count(repo) == 0
    assert status(repo) == ""


def test_undo_rolls_back_when_stash_fails(repo, gitrepo, config, answers, two_commits, monkeypatch):
    original = head(repo)
    answers("y")

    def broken(label, include_untracked=False):
        raise GitCommandError("stash exploded", ["stash", "push"])

    monkeypatch.setattr(gitrepo, "create_snapshot", broken)

    assert undo_last_commit(gitrepo, config) == 1

    assert head(repo) == original
    assert (repo / METADATA_FILE).exists()
    assert status(repo) == f"?? {METADATA_FILE}\n"


def test_redo_cancel_at_menu(repo, gitrepo, config, answers, two_commits):
    answers("y")
    undo_last_commit(gitrepo, config)
    before = head(repo)

    answers("q")
    assert redo(gitrepo, config) == 0

    assert head(repo) == before
    assert stash_count(repo) == 1
    assert status(repo) == ""


def test_redo_cancel_at_confirmation(repo, gitrepo, config, answers, two_commits):
    answers("y")
    undo_last_commit(gitrepo, config)
    before = head(repo)

    answers("1", "n")
    assert redo(gitrepo, config) == 0

    assert head(repo) == before
    assert stash_count(repo) == 1
    assert status(repo) == ""


def test_redo_rejects_bad_selection(repo, gitrepo, config, answers, two_commits):
    answers("y")
    undo_last_commit(gitrepo, config)

    answers("7")
    with pytest.raises(ValidationError):
        redo(gitrepo, config)
    assert stash_count(repo) == 1


def test_redo_ignores_ordinary_stashes(repo, gitrepo, config, answers, capsys):
    (repo / "README.md").write_text("changed\n")
    git(repo, "stash", "push", "-q", "-m", "just a stash")
    answers()

    assert redo(gitrepo, config) == 0
    assert "No undo stashes found" in capsys.readouterr().out


def test_label_parsing():
    label = UndoLabel(branch="feature/x", subject="Fix a - b")

    assert label.format() == "undo - feature/x - Fix a - b"
    assert UndoLabel.parse(label.format()) == label
    assert UndoLabel.parse("clean branch - 2024-01-01") is None


def test_metadata_rejects_foreign_json():
    with pytest.raises(ValueError):
        UndoMetadata.from_json('{"message": "hi"}')


def test_undo_subject_with_collapsed_whitespace(repo, gitrepo, config, answers):
    base = head(repo)
    commit(repo, "f.txt", "f\n", "Fix  two  spaces\tand a tab")
    answers("y")

    assert undo_last_commit(gitrepo, config) == 0

    assert head(repo) == base
    assert status(repo) == ""
    assert stash_count(repo) == 1
    assert read_undo_metadata(gitrepo, "stash@{0}").subject == "Fix  two  spaces\tand a tab"


def test_create_snapshot_ignores_label_normalisation(repo, gitrepo):
    (repo / "README.md").write_text("changed\n")

    assert gitrepo.create_snapshot("odd   label\t") == "stash@{0}"
    assert stash_count(repo) == 1


def test_no_rollback_once_stash_exists(repo, gitrepo, config, answers, two_commits, monkeypatch):
    real_create = gitrepo.create_snapshot

    def stashed_then_failed(label, include_untracked=False):
        real_create(label, include_untracked)
        raise GitCommandError("post-stash failure", ["stash", "push"])

    monkeypatch.setattr(gitrepo, "create_snapshot", stashed_then_failed)
    answers("y")

    assert undo_last_commit(gitrepo, config) == 1

    assert head(repo) == two_commits
    assert stash_count(repo) == 1
    assert "D " not in status(repo)


def test_undo_with_ignored_metadata_name(repo, gitrepo, config, answers):
    commit(repo, ".gitignore", "*.json\n", "Ignore json")
    base = head(repo)
    commit(repo, "feature.txt", "f\n", "Add feature")
    answers("y")

    assert undo_last_commit(gitrepo, config) == 0

    assert head(repo) == base
    assert read_undo_metadata(gitrepo, "stash@{0}") is not None

    answers("1", "y")
    assert redo(gitrepo, config) == 0
    assert (repo / "feature.txt").exists()
    assert not (repo / METADATA_FILE).exists()


def test_undo_reports_metadata_missing_from_stash(repo, gitrepo, config, answers, two_commits, monkeypatch):
    undone = head(repo)
    monkeypatch.setattr(gitrepo, "snapshot_contains", lambda ref, path: False)
    answers("y")

    assert undo_last_commit(gitrepo, config) == 1

    assert stash_count(repo) == 1
    kept = UndoMetadata.from_json((repo / METADATA_FILE).read_text(encoding="utf-8"))
    assert kept.commit_hash == undone


def test_redo_conflict_keeps_stash(repo, gitrepo, config, answers, capsys):
    commit(repo, "README.md", "from the undone commit\n", "Edit readme")
    answers("y")
    assert undo_last_commit(gitrepo, config) == 0
    commit(repo, "README.md", "something else\n", "Conflicting edit")
    capsys.readouterr()

    answers("1", "y")
    assert redo(gitrepo, config) == 1

    out = capsys.readouterr().out
    assert "conflicts" in out
    assert "README.md" in out
    assert stash_count(repo) == 1
    assert not (repo / METADATA_FILE).exists()


def test_redo_choices_read_only_listed_metadata(repo, gitrepo, config, answers, monkeypatch):
    for n in range(3):
        commit(repo, f"f{n}.txt", f"{n}\n", f"Change {n}")
        answers("y")
        assert undo_last_commit(gitrepo, config) == 0

    reads = []
    real_read = gitrepo.read_snapshot_file

    def counting_read(ref, path):
        reads.append(ref)
        return real_read(ref, path)

    monkeypatch.setattr(gitrepo, "read_snapshot_file", counting_read)

    entries = find_undo_snapshots(gitrepo, limit=2)

    assert [e.label.subject for e in entries] == ["Change 2", "Change 1"]
    assert reads == ["stash@{0}", "stash@{1}"]
