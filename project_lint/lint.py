"""
Whole-project linting.

Walks a project tree and reports:

- branch rules (modular ``git`` sections, or the top-level ``[git]`` table)
- files at the project root that belong in a mapped directory
- scripts at the project root instead of the scripts directory
- expected/forbidden directories of active profiles
- custom rules (from ``config.toml`` and modular rules)
- hardcoded credentials and insecure crypto in source files
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from . import git
from .config import Config, CustomRule, ModularRule, RuleSeverity
from .hooks.engine import PNPM_RULE_NAME, SEVERITY_ICONS
from .profiles import get_active_profiles
from .security import SecurityScanner
from .utils import matches_pattern

logger = logging.getLogger("project-lint.lint")

SOURCE_EXTENSIONS = (
    ".rs", ".py", ".js", ".ts", ".tsx", ".jsx", ".go",
    ".c", ".h", ".cpp", ".java", ".cs",
)

DEFAULT_SCRIPT_EXTENSIONS = (".sh", ".py", ".js", ".ts", ".rb", ".pl", ".php")

BRANCH_MESSAGE = "⚠️  Working on branch '{branch}' which may not be appropriate for file creation"
MISPLACED_MESSAGE = "📁 File '{file}' should be in '{target_dir}' directory (matches pattern '{pattern}')"
SCRIPT_MESSAGE = "📜 Script '{file}' should be in '{preferred_dir}' directory"


@dataclass
class LintIssue:
    """A single lint finding."""
    severity: RuleSeverity
    rule: str
    message: str
    file: str | None = None
    line: int | None = None

    def __str__(self) -> str:
        text = f"{SEVERITY_ICONS[self.severity]} {self.rule}: {self.message}"
        if self.file is not None:
            location = self.file if self.line is None else f"{self.file}:{self.line}"
            text += f" ({location})"
        return text


def _format(template: str, **values: str) -> str:
    # Only substitute known placeholders; user messages may contain other braces
    for key, value in values.items():
        template = template.replace("{" + key + "}", value)
    return template


def should_ignore_path(relative_path: str, ignored_patterns: list[str]) -> bool:
    """Directory patterns (``node_modules/``) match anywhere in the path."""
    for pattern in ignored_patterns:
        if pattern.endswith("/"):
            if pattern.rstrip("/") in relative_path:
                return True
        elif matches_pattern(relative_path, pattern):
            return True
    return False


def iter_project_files(project_path: Path, ignored_patterns: list[str]):
    """Yield ``(path, relative_path)`` for every file not ignored."""
    for root, dirs, files in os.walk(project_path):
        root_path = Path(root)
        rel_root = root_path.relative_to(project_path)
        dirs[:] = sorted(
            d for d in dirs
            if not should_ignore_path((rel_root / d).as_posix() + "/", ignored_patterns)
        )
        for name in sorted(files):
            relative = (rel_root / name).as_posix()
            if should_ignore_path(relative, ignored_patterns):
                continue
            yield root_path / name, relative


class Linter:
    """Runs every lint check over one project."""

    def __init__(self, project_path: Path, config: Config) -> None:
        self.project_path = project_path
        self.config = config
        self.issues: list[LintIssue] = []

        self.ignored_patterns = list(config.files.ignored_patterns)
        for rule in config.modular_rules:
            self.ignored_patterns.extend(p for p, on in rule.ignored_patterns.items() if on)

        self._files: list[tuple[Path, str]] | None = None

    @property
    def files(self) -> list[tuple[Path, str]]:
        if self._files is None:
            self._files = list(iter_project_files(self.project_path, self.ignored_patterns))
        return self._files

    def add(self, severity: RuleSeverity, rule: str, message: str,
            file: str | None = None, line: int | None = None) -> None:
        self.issues.append(LintIssue(severity, rule, message, file, line))

    def run(self) -> list[LintIssue]:
        config = self.config
        rule_names = {r.name for r in config.modular_rules}

        active = get_active_profiles(self.project_path, config.active_profiles)
        if active:
            logger.info("Active profiles: %s", ", ".join(p.name for p in active))
        else:
            logger.debug("No specific profiles activated")
        config.active_profiles = active

        logger.debug("Processing %d modular rules", len(config.modular_rules))
        for rule in config.modular_rules:
            if rule.enabled:
                self.check_modular_rule(rule)

        # Top-level sections apply unless a modular rule replaces them
        if "git-branch-rules" not in rule_names and config.rules.is_enabled("git_branch"):
            self.check_legacy_git_branch()
        if "file-organization" not in rule_names and config.rules.is_enabled("file_location"):
            self.check_file_mappings("file_location", config.files.type_mappings,
                                     RuleSeverity.WARNING, MISPLACED_MESSAGE)
        if "script-location" not in rule_names and config.rules.is_enabled("directory_structure"):
            if config.directories.warn_scripts_location:
                self.check_script_locations("directory_structure",
                                            config.directories.scripts_directory,
                                            DEFAULT_SCRIPT_EXTENSIONS,
                                            RuleSeverity.WARNING, SCRIPT_MESSAGE)

        for profile in active:
            self.check_profile_structure(profile.name, profile.structure)

        for custom_rule in config.rules.custom_rules:
            self.check_custom_rule(custom_rule)

        if config.rules.is_enabled("security"):
            self.check_security()

        return self.issues

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def check_modular_rule(self, rule: ModularRule) -> None:
        logger.debug("Processing rule: %s", rule.name)

        if rule.git is not None and rule.git.warn_wrong_branch:
            self.check_branch(rule.name, rule.git.allowed_branches, rule.git.forbidden_branches,
                              rule.severity, rule.messages.get("branch_not_allowed", BRANCH_MESSAGE))

        if rule.file_mappings:
            self.check_file_mappings(rule.name, rule.file_mappings, rule.severity,
                                     rule.messages.get("file_misplaced", MISPLACED_MESSAGE))

        if rule.scripts is not None:
            extensions = tuple(rule.scripts.script_extensions) or DEFAULT_SCRIPT_EXTENSIONS
            self.check_script_locations(rule.name, rule.scripts.preferred_directory, extensions,
                                        rule.severity,
                                        rule.messages.get("script_in_wrong_location", SCRIPT_MESSAGE))

        for custom_rule in rule.rules:
            self.check_custom_rule(custom_rule)

    def check_legacy_git_branch(self) -> None:
        git_config = self.config.git
        if git_config.warn_wrong_branch:
            self.check_branch("git_branch", git_config.allowed_branches,
                              git_config.forbidden_branches, RuleSeverity.WARNING, BRANCH_MESSAGE)

    def check_branch(self, rule_name: str, allowed: list[str], forbidden: list[str],
                     severity: RuleSeverity, template: str) -> None:
        branch = git.get_current_branch(self.project_path)
        if branch is None:
            return
        if not git.check_branch_allowed(branch, allowed, forbidden):
            self.add(severity, rule_name, _format(template, branch=branch))

    def check_file_mappings(self, rule_name: str, mappings: dict[str, str],
                            severity: RuleSeverity, template: str) -> None:
        """Flag root-level files that match a mapping to another directory."""
        for path, relative in self.files:
            if "/" in relative:
                continue
            for pattern, target_dir in mappings.items():
                if matches_pattern(path.name, pattern) and target_dir.strip("/"):
                    message = _format(template, file=relative, target_dir=target_dir, pattern=pattern)
                    self.add(severity, rule_name, message, file=relative)

    def check_script_locations(self, rule_name: str, preferred_dir: str, extensions,
                               severity: RuleSeverity, template: str) -> None:
        """Flag scripts lying at the project root instead of ``preferred_dir``."""
        preferred = preferred_dir.strip("/")
        if not preferred:
            return
        for path, relative in self.files:
            if "/" in relative or not path.name.endswith(tuple(extensions)):
                continue
            message = _format(template, file=relative, preferred_dir=preferred)
            self.add(severity, rule_name, message, file=relative)

    def check_profile_structure(self, profile_name: str, structure) -> None:
        if structure is None:
            return
        for directory in structure.expected_dirs:
            if not (self.project_path / directory).is_dir():
                self.add(RuleSeverity.INFO, profile_name,
                         f"Expected directory '{directory}' is missing")
        for directory in structure.forbidden_dirs:
            if (self.project_path / directory).exists():
                self.add(RuleSeverity.WARNING, profile_name,
                         f"Directory '{directory}' should not exist in this project",
                         file=directory)

    def check_custom_rule(self, rule: CustomRule) -> None:
        if rule.name == PNPM_RULE_NAME:
            # Only meaningful for agent commands
            return

        if rule.required_if_path_exists and not (self.project_path / rule.required_if_path_exists).exists():
            return

        limit = self.config.core_config.max_issues_per_rule
        found = 0
        matched_any = False

        for path, relative in self.files:
            if not matches_pattern(path.name, rule.pattern):
                continue
            if rule.exception_pattern and matches_pattern(path.name, rule.exception_pattern):
                continue
            matched_any = True

            if rule.check_content:
                if not self._content_violates(path, rule):
                    continue
            elif rule.required:
                continue

            if found < limit:
                self.add(rule.severity, rule.name, rule.message, file=relative)
            found += 1

        if rule.required and not matched_any:
            self.add(rule.severity, rule.name, rule.message or f"Required file '{rule.pattern}' is missing")

    def _content_violates(self, path: Path, rule: CustomRule) -> bool:
        if rule.content_pattern is None:
            return False
        content = self._read_text(path)
        if content is None:
            return False
        contains = rule.content_pattern in content
        if rule.condition == "must_contain":
            return not contains
        return contains

    def _read_text(self, path: Path) -> str | None:
        max_bytes = self.config.core_config.max_file_size_mb * 1024 * 1024
        try:
            if path.stat().st_size > max_bytes:
                logger.debug("Skipping large file %s", path)
                return None
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Failed to read file %s: %s", path, e)
            return None

    def check_security(self) -> None:
        scanner = SecurityScanner()
        for path, relative in self.files:
            name = path.name
            if name.startswith(".") or name.endswith((".lock", ".min.js")):
                continue
            if not name.endswith(SOURCE_EXTENSIONS):
                continue
            content = self._read_text(path)
            if content is None:
                continue
            for finding in scanner.scan_file(name, content):
                self.add(finding.severity, finding.rule, finding.message,
                         file=relative, line=finding.line)


def run_lint(project_path: Path, config: Config) -> list[LintIssue]:
    """Lint ``project_path`` and return all issues found."""
    logger.info("Running linting checks on project: %s", project_path)
    return Linter(project_path, config).run()
