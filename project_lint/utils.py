"""
Shared helpers for project-lint.

Error types, XDG-compliant directory resolution and the wildcard matcher
used by custom rules.
"""

from __future__ import annotations

import os
from pathlib import Path


class ProjectLintError(Exception):
    """Base class for project-lint errors."""


class ConfigError(ProjectLintError):
    """A configuration document is missing required data or is invalid."""


class HookParseError(ProjectLintError):
    """A hook payload could not be parsed into an event."""


class RuleEvaluationError(ProjectLintError):
    """Rule evaluation hit a broken invariant in the event model."""


def get_project_root(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` (default: cwd) to the nearest git repository."""
    path = (start or Path.cwd()).resolve()
    for candidate in (path, *path.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def get_config_dir(project_path: Path | None = None) -> Path:
    """Get the project-lint config directory.

    Priority order:
    1. $PROJECT_LINT_HOME (if set)
    2. <git root>/.config/project-lint (if it exists)
    3. $XDG_CONFIG_HOME/project-lint (if set)
    4. ~/.config/project-lint (default)
    """
    project_lint_home = os.environ.get("PROJECT_LINT_HOME")
    if project_lint_home:
        return Path(project_lint_home)

    project_root = get_project_root(project_path)
    if project_root is not None:
        project_config = project_root / ".config" / "project-lint"
        if project_config.exists():
            return project_config

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / "project-lint"


def get_data_dir() -> Path:
    """Get XDG-compliant data directory."""
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        base = Path(xdg_data)
    else:
        base = Path.home() / ".local" / "share"
    return base / "project-lint"


def get_log_dir() -> Path:
    """Get the default hook log directory."""
    return get_data_dir() / "logs"


def matches_pattern(name: str, pattern: str) -> bool:
    """Match ``name`` against a rule pattern.

    Only four shapes are recognised: ``*text*`` (substring), ``*text``
    (suffix), ``text*`` (prefix) and an exact match. This is deliberately
    not glob syntax.
    """
    if len(pattern) >= 2 and pattern.startswith("*") and pattern.endswith("*"):
        return pattern[1:-1] in name
    if pattern.startswith("*"):
        return name.endswith(pattern[1:])
    if pattern.endswith("*"):
        return name.startswith(pattern[:-1])
    return name == pattern
