"""
Profile activation for project-lint.

A profile is active for a project (and optionally a hook event) when any of
its activation conditions holds. Conditions are checked cheapest first:

1. event triggers (canonical or IDE-native event names, or "all")
2. indicator files
3. paths
4. glob patterns
5. content triggers (file contents, header window by default)

Activity is recomputed on every call; project files and the triggering
event can change between invocations.
"""

from __future__ import annotations

import glob
import logging
from pathlib import Path

from .config import ContentTrigger, MatchPosition, Profile
from .hooks import Event
from .hooks.engine import matched_trigger

logger = logging.getLogger("project-lint.profiles")

HEADER_SIZE = 1024


def is_profile_active(project_path: Path, profile: Profile, event: Event | None = None) -> bool:
    """Check whether ``profile`` applies to ``project_path`` / ``event``."""
    activation = profile.activation
    name = profile.name

    if event is not None:
        trigger = matched_trigger(activation.events, event)
        if trigger is not None:
            logger.debug("Profile '%s' activated by event trigger: %s", name, trigger)
            return True

    for indicator in activation.indicators:
        if (project_path / indicator).exists():
            logger.debug("Profile '%s' activated by indicator: %s", name, indicator)
            return True

    for path in activation.paths:
        if (project_path / path).exists():
            logger.debug("Profile '%s' activated by path: %s", name, path)
            return True

    for pattern in activation.globs:
        if _glob_has_match(project_path, pattern):
            logger.debug("Profile '%s' activated by glob: %s", name, pattern)
            return True

    for trigger in activation.content:
        match = _find_content_match(project_path, trigger)
        if match is not None:
            logger.debug("Profile '%s' activated by content match in: %s", name, match)
            return True

    return False


def get_active_profiles(
    project_path: Path,
    profiles: list[Profile],
    event: Event | None = None,
) -> list[Profile]:
    """Filter ``profiles`` down to the active ones, keeping their order."""
    return [p for p in profiles if is_profile_active(project_path, p, event)]


def _iter_glob(project_path: Path, pattern: str):
    full_pattern = str(project_path / pattern)
    try:
        yield from glob.iglob(full_pattern, recursive=True, include_hidden=True)
    except (OSError, ValueError) as e:
        logger.warning("Invalid glob pattern '%s': %s", pattern, e)


def _glob_has_match(project_path: Path, pattern: str) -> bool:
    return next(_iter_glob(project_path, pattern), None) is not None


def _find_content_match(project_path: Path, trigger: ContentTrigger) -> Path | None:
    """Return the first file whose contents satisfy ``trigger``."""
    patterns = trigger.globs or ["**/*"]
    for pattern in patterns:
        for match in _iter_glob(project_path, pattern):
            path = Path(match)
            if path.is_file() and check_file_content(path, trigger.matches, trigger.position):
                return path
    return None


def check_file_content(path: Path, matches: list[str], position: MatchPosition) -> bool:
    """Search a file for any of ``matches``; unreadable files never match."""
    try:
        with path.open("rb") as f:
            if position is MatchPosition.HEADER:
                data = f.read(HEADER_SIZE)
            else:
                data = f.read()
    except OSError:
        return False

    content = data.decode("utf-8", errors="replace")
    return any(m in content for m in matches)
