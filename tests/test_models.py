"""Tests for stash reference parsing and the terminal helpers."""

import pytest

from gittoolkit.errors import UserCancelled
from gittoolkit.gitops import _parse_track
from gittoolkit.models import Snapshot, parse_stash_index, split_stash_subject, stash_ref
from gittoolkit.ui import confirm_action, plural, safe_input


def test_stash_refs():
    assert stash_ref(3) == "stash@{3}"
    assert parse_stash_index("stash@{12}") == 12
    assert Snapshot(index=2, timestamp=0, label="x").ref == "stash@{2}"
    with pytest.raises(ValueError):
        parse_stash_index("stash@{-1}")


def test_split_stash_subject():
    assert split_stash_subject("On main: undo - main - Fix: colon") == ("main", "undo - main - Fix: colon")
    assert split_stash_subject("WIP on feature/x: abc1234 Message") == ("feature/x", "abc1234 Message")
    assert split_stash_subject("no prefix here") == (None, "no prefix here")


def test_parse_track():
    assert _parse_track("") == (0, 0, False)
    assert _parse_track("ahead 2, behind 1") == (2, 1, False)
    assert _parse_track("behind 4") == (0, 4, False)
    assert _parse_track("gone") == (0, 0, True)


def test_plural():
    assert plural(1, "branch") == "1 branch"
    assert plural(2, "branch") == "2 branches"
    assert plural(0, "stash") == "0 stashes"
    assert plural(3, "commit") == "3 commits"


@pytest.mark.parametrize("reply,expected", [("y", True), ("YES", True), (" yes ", True), ("", False), ("n", False),
                                            ("yep", False)])
def test_confirm_action(monkeypatch, reply, expected):
    monkeypatch.setattr("builtins.input", lambda prompt="": reply)
    assert confirm_action("Proceed?") is expected


@pytest.mark.parametrize("exc", [KeyboardInterrupt, EOFError])
def test_safe_input_cancels(monkeypatch, exc):
    def interrupted(prompt=""):
        raise exc()

    monkeypatch.setattr("builtins.input", interrupted)
    with pytest.raises(UserCancelled):
        safe_input("> ")
