"""
payledger.version — semantic version string and VCS describe helper.

Tiny and dependency-free so it can be imported during packaging or from the CLI
before anything else is configured.

Usage:
    from payledger.version import __version__, git_describe, version_metadata
"""

from __future__ import annotations

import os
import subprocess
from functools import lru_cache
from typing import Dict

# Bump this when making a tagged release (semver).
__version__ = "0.1.0"


@lru_cache(maxsize=1)
def git_describe() -> str:
    """
    Return a best-effort 'git describe' style string.

    Resolution order:
      1) Environment override PAYLEDGER_GIT_DESCRIBE.
      2) `git describe --tags --dirty --always` when run inside a checkout.
      3) `<__version__>+local`.
    """
    override = os.getenv("PAYLEDGER_GIT_DESCRIBE")
    if override:
        return override.strip()

    try:
        out = subprocess.check_output(
            ["git", "describe", "--tags", "--dirty", "--always"],
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.CalledProcessError):
        return f"{__version__}+local"
    desc = out.decode("utf-8", "replace").strip()
    return desc or f"{__version__}+local"


def version_metadata() -> Dict[str, str]:
    """Structured version info for logs and the CLI banner."""
    desc = git_describe()
    return {
        "version": __version__,
        "describe": desc,
        "dirty": "true" if desc.endswith("-dirty") else "false",
    }


__all__ = ["__version__", "git_describe", "version_metadata"]
