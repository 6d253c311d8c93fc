"""
checks - Preconditions shared by the commands. Each raises PreconditionError.
"""

from gittoolkit.errors import PreconditionError
from gittoolkit.gitops import GitRepo


def require_repo(git: GitRepo):
    if not git.is_repo():
        raise PreconditionError(f"Not a git repository: {git.repo_path}")


def require_commits(git: GitRepo):
    require_repo(git)
    if not git.has_commits():
        raise PreconditionError("Repository has no commits")


def require_clean_tree(git: GitRepo):
    if not git.is_working_tree_clean():
        raise PreconditionError("Working directory is not clean. Please commit or stash your changes first.")
