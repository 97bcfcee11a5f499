"""Rule evaluation for agent hook events."""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..config import Config, CustomRule, RuleSeverity
from ..utils import RuleEvaluationError, matches_pattern
from . import Decision, Event, EventKind, HookResult, payload_get, payload_str

logger = logging.getLogger("project-lint.hooks")

PNPM_RULE_NAME = "pnpm-workspace-enforcer"

SEVERITY_ICONS = {
    RuleSeverity.ERROR: "❌",
    RuleSeverity.WARNING: "⚠️",
    RuleSeverity.INFO: "ℹ️",
}

# Fields that may carry a shell command, checked after input/tool_input
_COMMAND_FIELDS = ("command", "cmd")


@dataclass
class DetectedIssue:
    """One rule firing for one event."""

    name: str
    message: str
    severity: RuleSeverity


def event_trigger_name(event: Event) -> str:
    """Return the canonical string an event is matched against.

    Mappers always attach an ``EventType``, so an event without one was
    built by hand and cannot be matched against any trigger.
    """
    try:
        value = event.event_type.value
    except AttributeError as e:
        raise RuleEvaluationError(f"Event has no usable event type: {e}") from e
    if not isinstance(value, str):
        raise RuleEvaluationError(f"Event type serialised to {type(value).__name__}, not str")
    return value


def native_event_names(event: Event) -> list[str]:
    """IDE-native event names found in the raw payload."""
    payload = event.context.original_payload
    names = []
    for key in ("agent_action_name", "hook_event_name"):
        name = payload_str(payload, key)
        if name is not None:
            names.append(name)
    return names


def matched_trigger(triggers: list[str], event: Event) -> str | None:
    """Return the first trigger that selects ``event``, or None.

    A trigger matches when it is ``"all"``, the canonical event name, or the
    IDE-native event name from the raw payload. An empty trigger list never
    matches.
    """
    if not triggers:
        return None

    event_name = event_trigger_name(event)
    native_names = native_event_names(event)

    for trigger in triggers:
        if trigger == "all" or trigger == event_name or trigger in native_names:
            return trigger
    return None


def matches_triggers(triggers: list[str], event: Event) -> bool:
    """Check whether any trigger selects ``event``."""
    return matched_trigger(triggers, event) is not None


class RuleEngine:
    """Evaluate configured rules against hook events.

    The engine holds no state besides the config, so it is cheap to create
    one per event.
    """

    def __init__(self, config: Config) -> None:
        self.config = config

    def evaluate_event(self, event: Event) -> HookResult:
        issues: list[DetectedIssue] = []

        # 1. Modular rules
        for rule in self.config.modular_rules:
            if not rule.enabled:
                continue
            if matches_triggers(rule.triggers, event):
                logger.debug("Rule '%s' triggered by event", rule.name)
                for custom_rule in rule.rules:
                    issue = self.evaluate_custom_rule(custom_rule, event)
                    if issue is not None:
                        issues.append(issue)

        # 2. Top-level custom rules
        for rule in self.config.rules.custom_rules:
            if matches_triggers(rule.triggers, event):
                logger.debug("Top-level rule '%s' triggered by event", rule.name)
                issue = self.evaluate_custom_rule(rule, event)
                if issue is not None:
                    issues.append(issue)

        if not issues:
            return HookResult()

        return self._aggregate(issues, event)

    def _aggregate(self, issues: list[DetectedIssue], event: Event) -> HookResult:
        lines = ["Project Lint violations detected:\n"]
        modified_input = None

        for issue in issues:
            lines.append(f"{SEVERITY_ICONS[issue.severity]} {issue.name}: {issue.message}\n")
            if issue.name == PNPM_RULE_NAME:
                rewritten = self.rewrite_tool_input(event.context.tool_input)
                if rewritten is not None:
                    modified_input = rewritten

        has_errors = any(i.severity is RuleSeverity.ERROR for i in issues)
        return HookResult(
            decision=Decision.DENY if has_errors else Decision.WARN,
            message="".join(lines),
            modified_input=modified_input,
        )

    def evaluate_custom_rule(self, rule: CustomRule, event: Event) -> DetectedIssue | None:
        matched = False

        file_path = event.context.file_path
        if file_path is not None and matches_pattern(str(file_path), rule.pattern):
            matched = True

        # Generic rules apply to every triggering event
        if not matched and rule.pattern == "*":
            matched = True

        if not matched:
            return None

        if rule.name == PNPM_RULE_NAME:
            return self.evaluate_pnpm_rule(rule, event)

        if rule.check_content:
            if rule.content_pattern is None:
                return None
            content = (event.context.user_prompt or "") + (event.context.file_content or "")
            contains = rule.content_pattern in content
            if rule.condition == "must_contain":
                is_violation = not contains
            else:
                is_violation = contains
            if is_violation:
                return DetectedIssue(rule.name, rule.message, rule.severity)
            return None

        # A matching file is the violation unless the rule marks it as required
        if not rule.required:
            return DetectedIssue(rule.name, rule.message, rule.severity)
        return None

    def evaluate_pnpm_rule(self, rule: CustomRule, event: Event) -> DetectedIssue | None:
        """Flag ``npm`` commands run in a pnpm workspace before they execute."""
        if event.event_type.kind is not EventKind.PRE_TOOL_USE:
            return None

        cwd = event.cwd if event.cwd is not None else Path(os.getcwd())
        if not self.is_pnpm_workspace(cwd):
            logger.debug("Not a pnpm workspace, skipping pnpm enforcement")
            return None

        command = self.extract_command_from_input(event.context.tool_input)
        if command is None or not command.startswith("npm "):
            return None

        logger.info("Detected npm command in pnpm workspace: %s", command)
        rewritten = command.replace("npm ", "pnpm ")
        return DetectedIssue(
            name=rule.name,
            message=(
                "🚫 This project uses pnpm (detected in package.json).\n\n"
                f"Found: {command}\n"
                f"Suggested: {rewritten}\n\n"
                "The command has been automatically rewritten to use pnpm."
            ),
            severity=rule.severity,
        )

    @staticmethod
    def is_pnpm_workspace(project_path: Path) -> bool:
        """Detect a pnpm workspace from its package.json and pnpm files.

        A missing or unparseable package.json means "not a workspace".
        """
        package_json = project_path / "package.json"
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return False

        package_manager = payload_str(data, "packageManager")
        if package_manager is not None and package_manager.startswith("pnpm"):
            logger.info("Detected pnpm workspace via packageManager: %s", package_manager)
            return True

        if (project_path / "pnpm-workspace.yaml").exists() or (
            project_path / "pnpm-workspace.yml"
        ).exists():
            logger.info("Detected pnpm workspace via pnpm-workspace.yaml")
            return True

        if (project_path / "pnpm-lock.yaml").exists():
            logger.info("Detected pnpm workspace via pnpm-lock.yaml")
            return True

        return False

    @staticmethod
    def extract_command_from_input(tool_input: Any) -> str | None:
        """Pull a shell command string out of a tool input object."""
        # Windsurf
        command = payload_str(tool_input, "input")
        if command is not None:
            return command
        # Claude
        command = payload_str(tool_input, "tool_input")
        if command is not None:
            return command

        for key in _COMMAND_FIELDS:
            command = payload_str(tool_input, key)
            if command is not None:
                return command
        return None

    @classmethod
    def rewrite_tool_input(cls, tool_input: Any) -> Any | None:
        """Return a copy of ``tool_input`` with its npm command turned into pnpm."""
        command = cls.extract_command_from_input(tool_input)
        if command is None or not command.startswith("npm "):
            return None

        rewritten = command.replace("npm ", "pnpm ")
        for key in ("input", "tool_input"):
            if payload_get(tool_input, key) is not None:
                new_input = copy.deepcopy(tool_input)
                new_input[key] = rewritten
                return new_input
        return None
