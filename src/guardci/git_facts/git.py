# git.py
# Small, focused wrapper around the Git CLI.
# The local drift check is the only caller; it mirrors the build job's
# diff step so contributors can see drift before pushing.

from __future__ import annotations

import subprocess
from typing import List, Optional


def _git(args: list[str], cwd: Optional[str] = None, strip: bool = True) -> str:
    """
    Execute a git command and return its stdout.

    Raises subprocess.CalledProcessError on a non-zero exit.
    """
    out = subprocess.check_output(
        ["git", *args],
        cwd=cwd,
        text=True,
    )
    # porcelain output is column-aligned, leading spaces matter
    return out.strip() if strip else out.rstrip("\n")


def changed_files(cwd: Optional[str] = None) -> List[str]:
    """
    Files that differ from HEAD: modified, staged and untracked.

    Same set `git add .` followed by `git diff --staged` would report,
    without touching the index.
    """
    out = _git(["status", "--porcelain", "--untracked-files=all"], cwd=cwd, strip=False)
    # porcelain v1: "XY path" or "XY old -> new"
    files = []
    for line in out.splitlines():
        if not line.strip():
            continue
        path = line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        files.append(path)
    return sorted(files)


def has_drift(cwd: Optional[str] = None) -> bool:
    """True if the working tree differs from the last commit."""
    return bool(changed_files(cwd=cwd))
