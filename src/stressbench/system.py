"""Run provenance: git commit and start timestamp."""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path

log = logging.getLogger("stressbench")


def detect_git_sha(cwd: Path | None = None) -> str | None:
    """Return ``git rev-parse HEAD`` for *cwd*, or None outside a repo."""
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        log.debug("git SHA lookup failed: %s", exc)
        return None
    if proc.returncode != 0:
        return None
    sha = proc.stdout.strip()
    return sha or None


def epoch_millis() -> str:
    """Current wall-clock time as epoch milliseconds, decimal string."""
    return str(time.time_ns() // 1_000_000)
