"""
fsutil - Scoped temporary files written into the working tree.
"""

import logging
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


def remove_if_exists(path: Union[str, Path]) -> bool:
    """Remove a file if it is there. Returns True if something was removed."""
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        return False
    path.unlink()
    logger.debug("removed %s", path)
    return True


class ScopedArtifact:
    """
    A temporary file owned by one operation.

    The file is removed when the with-block exits, on success, cancellation
    or error alike, unless keep() was called first. With keep_on_error the
    file also survives an exception escaping the block.
    """

    def __init__(self, path: Union[str, Path], keep_on_error: bool = False):
        self.path = Path(path)
        self.keep_on_error = keep_on_error
        self.kept = False

    def write_text(self, content: str):
        self.path.write_text(content, encoding="utf-8")

    def keep(self):
        """Leave the file on disk when the scope ends."""
        self.kept = True

    def discard(self) -> bool:
        return remove_if_exists(self.path)

    def __enter__(self) -> "ScopedArtifact":
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None and self.keep_on_error:
            self.kept = True
        if not self.kept:
            self.discard()
        return False
