from __future__ import annotations

"""
inheritance.version - semantic version string with optional git-describe suffix.

Rules:
- BASE_VERSION is the semver for this package.
- If INHERITANCE_VERSION is set in the environment, that wins.
- Inside a git checkout, a PEP440 local suffix derived from
  `git describe --tags --dirty --always --abbrev=7` is appended, e.g.:
    0.1.0+3.gabc1234          (3 commits after tag, clean)
    0.1.0+gabc1234.dirty      (no tag, dirty tree)
- If git is unavailable, fall back to BASE_VERSION.
"""


import os
import re
import subprocess
from typing import Optional

# Bump this on intentional releases.
BASE_VERSION = "0.1.0"

_PEP440_LOCAL_CLEAN = re.compile(r"[^a-zA-Z0-9.]+")


def _git_describe() -> Optional[str]:
    try:
        out = subprocess.check_output(
            ["git", "describe", "--tags", "--dirty", "--always", "--abbrev=7"],
            stderr=subprocess.DEVNULL,
            cwd=os.path.dirname(os.path.abspath(__file__)),
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return out.decode("utf-8", "replace").strip() or None


def _local_suffix(desc: str) -> str:
    """
    Turn a `git describe` string into a PEP440 local segment.

    `v0.1.0-3-gabc1234-dirty` -> `0.1.0.3.gabc1234.dirty`
    """
    s = desc.replace("-", ".").replace("+", ".")
    if s.startswith("v") and len(s) > 1 and s[1].isdigit():
        s = s[1:]
    s = _PEP440_LOCAL_CLEAN.sub(".", s)
    s = re.sub(r"\.{2,}", ".", s).strip(".")
    if not s.lower().startswith(("git.", "g")) and not s[:1].isdigit():
        s = f"git.{s}"
    return s


def build_version() -> str:
    env = os.getenv("INHERITANCE_VERSION")
    if env:
        return env
    desc = _git_describe()
    if not desc:
        return BASE_VERSION
    return f"{BASE_VERSION}+{_local_suffix(desc)}"


__version__ = build_version()


def get_version() -> str:
    """Public helper returning the resolved version string."""
    return __version__


__all__ = ["__version__", "get_version", "BASE_VERSION", "build_version"]
