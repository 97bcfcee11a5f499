"""Git branch lookup for branch rules."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger("project-lint.lint")


def get_current_branch(project_path: Path) -> str | None:
    """Return the checked-out branch, or None outside a git repository."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            cwd=project_path,
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("git unavailable for %s: %s", project_path, e)
        return None

    if result.returncode != 0:
        logger.debug("No git repository found at %s", project_path)
        return None

    branch = result.stdout.strip()
    return branch or None


def check_branch_allowed(branch: str, allowed: list[str], forbidden: list[str]) -> bool:
    """Forbidden branches always fail; an empty allow-list allows the rest."""
    if branch in forbidden:
        logger.info("Current branch '%s' is in forbidden list", branch)
        return False

    if not allowed:
        return True

    if branch in allowed:
        return True

    logger.info("Current branch '%s' is not in allowed list", branch)
    return False
