"""
Git helpers for release packaging.

Public API
----------
  short_revision(path)  → str | None
"""
from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Optional

# ── git executable ─────────────────────────────────────────────────────────

def _git() -> Optional[str]:
    """Return the path to git, or None if not found."""
    return shutil.which("git")


def _run(args: list[str], cwd: Path) -> Optional[subprocess.CompletedProcess]:
    """Run a git sub-command; None when git is not installed."""
    git = _git()
    if git is None:
        return None
    return subprocess.run([git] + args, cwd=str(cwd), capture_output=True, text=True)


# ── Primitives ─────────────────────────────────────────────────────────────

def short_revision(path: Path) -> Optional[str]:
    """Return the abbreviated HEAD commit of the repo at *path*, or None."""
    r = _run(["rev-parse", "--short", "HEAD"], cwd=path)
    if r is None or r.returncode != 0:
        return None
    return r.stdout.strip() or None
