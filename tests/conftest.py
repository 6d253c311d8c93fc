"""Shared fixtures: throwaway git repositories and scripted prompts."""

import logging
import subprocess
from pathlib import Path

import pytest

from gittoolkit.config import ToolkitConfig
from gittoolkit.gitops import GitRepo
from gittoolkit.log import LOGGER_NAME


def git(repo: Path, *args, env=None) -> str:
    """Run git in ``repo`` and return stdout; fails the test on error."""
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True, env=env
    )
    return result.stdout


def commit(repo: Path, filename: str, content: str, message: str) -> str:
    """Write a file, commit it, and return the new commit hash."""
    path = repo / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    git(repo, "add", filename)
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD").strip()


def head(repo: Path) -> str:
    return git(repo, "rev-parse", "HEAD").strip()


def stash_count(repo: Path) -> int:
    return len([line for line in git(repo, "stash", "list").splitlines() if line.strip()])


def init_repo(path: Path, branch: str = "main") -> Path:
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-q")
    git(path, "symbolic-ref", "HEAD", f"refs/heads/{branch}")
    git(path, "config", "user.email", "test@test.com")
    git(path, "config", "user.name", "Test")
    git(path, "config", "commit.gpgsign", "false")
    return path


@pytest.fixture
def repo_path(tmp_path):
    """An empty repository on branch main."""
    return init_repo(tmp_path / "repo")


@pytest.fixture
def repo(repo_path):
    """A repository on main with one commit."""
    commit(repo_path, "README.md", "hello\n", "Initial commit")
    return repo_path


@pytest.fixture
def gitrepo(repo):
    return GitRepo(repo)


@pytest.fixture
def config(tmp_path):
    log_dir = tmp_path / "logs"
    log_dir.mkdir(exist_ok=True)
    return ToolkitConfig(log_dir=log_dir)


@pytest.fixture
def answers(monkeypatch):
    """Script the replies to input() prompts, in order."""
    def script(*replies):
        queue = list(replies)

        def fake_input(prompt=""):
            if not queue:
                raise AssertionError(f"Unexpected prompt: {prompt!r}")
            return queue.pop(0)

        monkeypatch.setattr("builtins.input", fake_input)
        return queue
    return script


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
