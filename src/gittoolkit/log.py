"""
log - Logging setup for git-toolkit.

Operations are appended to <log_dir>/git-toolkit.log, errors additionally to
<log_dir>/git-toolkit_errors.log. With --debug every git invocation is also
echoed to stderr.
"""

import logging
import sys
from pathlib import Path

LOGGER_NAME = "gittoolkit"


def setup_logging(log_dir: Path, debug: bool = False) -> logging.Logger:
    """Configure the package logger. Safe to call more than once."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter('%(asctime)s - %(message)s',
                                  datefmt='%Y-%m-%d %H:%M:%S')

    for filename, level in (("git-toolkit.log", logging.INFO),
                            ("git-toolkit_errors.log", logging.ERROR)):
        try:
            fh = logging.FileHandler(Path(log_dir) / filename, encoding="utf-8")
        except OSError:
            continue
        fh.setLevel(level)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    if debug:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(logging.DEBUG)
        console.setFormatter(logging.Formatter('[DEBUG] %(message)s'))
        logger.addHandler(console)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
