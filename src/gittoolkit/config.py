#!/usr/bin/env python3
"""
config - Configuration for git-toolkit.

There is no config file: every setting has a hardcoded default that can be
overridden through the process environment. The result is built once per
process and never changes afterwards.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_PROTECTED_BRANCHES: Tuple[str, ...] = ("main", "master", "develop")
DEFAULT_STASH_AGE_DAYS = 60
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_REMOTE = "origin"

ENV_PROTECTED_BRANCHES = "GIT_TOOLKIT_PROTECTED_BRANCHES"
ENV_STASH_AGE_DAYS = "GIT_TOOLKIT_STASH_AGE_DAYS"
ENV_DATE_FORMAT = "GIT_TOOLKIT_DATE_FORMAT"
ENV_REMOTE = "GIT_TOOLKIT_REMOTE"
ENV_LOG_DIR = "GIT_TOOLKIT_LOG_DIR"


def get_default_log_dir() -> Path:
    """Get the default log directory: /var/log when writable, else the temp dir."""
    log_dir = Path("/var/log")
    if not log_dir.exists() or not os.access(log_dir, os.W_OK):
        log_dir = Path(tempfile.gettempdir())
    return log_dir


@dataclass(frozen=True)
class ToolkitConfig:
    """Process-wide settings. Construct through load_config()."""

    protected_branches: Tuple[str, ...] = DEFAULT_PROTECTED_BRANCHES
    stash_age_days: int = DEFAULT_STASH_AGE_DAYS
    date_format: str = DEFAULT_DATE_FORMAT
    remote: str = DEFAULT_REMOTE
    log_dir: Path = field(default_factory=get_default_log_dir)

    def __post_init__(self):
        if not self.protected_branches:
            object.__setattr__(self, "protected_branches", DEFAULT_PROTECTED_BRANCHES)

    def is_protected(self, branch: Optional[str]) -> bool:
        """Exact-name match against the protected branch set."""
        return branch is not None and branch in self.protected_branches


def _parse_protected(raw: str) -> Tuple[str, ...]:
    names = tuple(name.strip() for name in raw.split(",") if name.strip())
    if not names:
        logger.warning("%s is empty, using defaults", ENV_PROTECTED_BRANCHES)
        return DEFAULT_PROTECTED_BRANCHES
    return names


def _parse_age(raw: str) -> int:
    try:
        days = int(raw.strip())
    except ValueError:
        logger.warning("%s=%r is not an integer, using %d", ENV_STASH_AGE_DAYS, raw, DEFAULT_STASH_AGE_DAYS)
        return DEFAULT_STASH_AGE_DAYS
    if days < 0:
        logger.warning("%s=%r is negative, using %d", ENV_STASH_AGE_DAYS, raw, DEFAULT_STASH_AGE_DAYS)
        return DEFAULT_STASH_AGE_DAYS
    return days


def load_config(environ: Optional[Mapping[str, str]] = None) -> ToolkitConfig:
    """Build the configuration from defaults plus environment overrides."""
    if environ is None:
        environ = os.environ

    kwargs: Dict[str, object] = {}

    raw = environ.get(ENV_PROTECTED_BRANCHES)
    if raw is not None:
        kwargs["protected_branches"] = _parse_protected(raw)

    raw = environ.get(ENV_STASH_AGE_DAYS)
    if raw is not None:
        kwargs["stash_age_days"] = _parse_age(raw)

    raw = environ.get(ENV_DATE_FORMAT, "").strip()
    if raw:
        kwargs["date_format"] = raw

    raw = environ.get(ENV_REMOTE, "").strip()
    if raw:
        kwargs["remote"] = raw

    raw = environ.get(ENV_LOG_DIR, "").strip()
    if raw:
        kwargs["log_dir"] = Path(raw).expanduser()

    return ToolkitConfig(**kwargs)


def show_config(config: ToolkitConfig):
    """Display the effective configuration."""
    print("\n" + "=" * 60)
    print("GIT-TOOLKIT CONFIGURATION")
    print("=" * 60)
    print()
    print("Settings:")
    print(f"  Protected branches: {', '.join(config.protected_branches)}")
    print(f"  Stash age (days):   {config.stash_age_days}")
    print(f"  Date format:        {config.date_format}")
    print(f"  Remote:             {config.remote}")
    print(f"  Log directory:      {config.log_dir}")
    print()
    print("Override with environment variables:")
    for name in (ENV_PROTECTED_BRANCHES, ENV_STASH_AGE_DAYS, ENV_DATE_FORMAT, ENV_REMOTE, ENV_LOG_DIR):
        print(f"  {name}")
    print()
