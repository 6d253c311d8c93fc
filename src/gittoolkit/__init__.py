"""
gittoolkit - Safer interactive history editing for git.

Tools included:
- undo / redo: Undo the last commit into a stash and bring it back later
- stash: Stash everything, including untracked files
- clean-branches: Delete merged branches and branches gone from the remote
- fork-point: Find the branch a branch forked from
- squash: Squash a branch's commits since its fork point
- prune-stashes: Drop stashes older than N days
"""

__version__ = "0.1.0"
__author__ = "git-toolkit contributors"
__all__ = ["undo", "stash", "cleanup", "forkpoint", "squash", "prune", "config"]
