"""Translate assistant-specific hook payloads to and from the event model.

Each mapper parses one assistant's JSON schema into an :class:`Event` and
renders a :class:`HookResult` in the response format that assistant
understands. The raw payload is always kept on the event so rules can match
IDE-native event names.
"""

from __future__ import annotations

import json
import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any

from ..utils import HookParseError
from . import (
    Decision,
    Event,
    EventContext,
    EventKind,
    EventType,
    FileEdit,
    HookResult,
    payload_get,
    payload_obj,
    payload_str,
)

logger = logging.getLogger("project-lint.hooks")


def _parse_payload(raw: str) -> dict[str, Any]:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise HookParseError(f"Malformed hook payload: {e}") from e
    if not isinstance(payload, dict):
        raise HookParseError(f"Hook payload must be a JSON object, got {type(payload).__name__}")
    return payload


def _path(value: str | None) -> Path | None:
    return Path(value) if value is not None else None


# =============================================================================
# Windsurf
# =============================================================================


WINDSURF_ACTIONS = {
    "pre_read_code": EventKind.PRE_READ_CODE,
    "post_read_code": EventKind.POST_READ_CODE,
    "pre_write_code": EventKind.PRE_WRITE_CODE,
    "post_write_code": EventKind.POST_WRITE_CODE,
    "pre_run_command": EventKind.PRE_RUN_COMMAND,
    "post_run_command": EventKind.POST_RUN_COMMAND,
    "pre_mcp_tool_use": EventKind.PRE_TOOL_USE,
    "post_mcp_tool_use": EventKind.POST_TOOL_USE,
    "pre_user_prompt": EventKind.PRE_USER_PROMPT,
    "post_cascade_response": EventKind.POST_MODEL_RESPONSE,
}


class WindsurfMapper:
    """Windsurf Cascade hooks; also the general-purpose default."""

    source = "windsurf"

    def map_event(self, raw: str) -> Event:
        payload = _parse_payload(raw)
        action_name = payload_str(payload, "agent_action_name") or ""
        tool_info = payload_obj(payload, "tool_info")

        kind = WINDSURF_ACTIONS.get(action_name)
        event_type = EventType(kind) if kind is not None else EventType.unknown(action_name)

        fields: dict[str, Any] = {}
        cwd = None

        if kind in (EventKind.PRE_READ_CODE, EventKind.POST_READ_CODE):
            fields["file_path"] = _path(payload_str(tool_info, "file_path"))
        elif kind in (EventKind.PRE_WRITE_CODE, EventKind.POST_WRITE_CODE):
            fields["file_path"] = _path(payload_str(tool_info, "file_path"))
            edits = payload_get(tool_info, "edits")
            if isinstance(edits, list):
                fields["edits"] = tuple(
                    FileEdit(
                        old_string=payload_str(e, "old_string"),
                        new_string=payload_str(e, "new_string") or "",
                    )
                    for e in edits
                )
        elif kind in (EventKind.PRE_RUN_COMMAND, EventKind.POST_RUN_COMMAND):
            fields["command"] = payload_str(tool_info, "command_line")
            cwd = _path(payload_str(tool_info, "cwd"))
        elif kind in (EventKind.PRE_TOOL_USE, EventKind.POST_TOOL_USE):
            fields["tool_name"] = payload_str(tool_info, "mcp_tool_name")
            fields["tool_input"] = payload_get(tool_info, "mcp_tool_arguments")
            if kind is EventKind.POST_TOOL_USE:
                fields["tool_result"] = payload_get(tool_info, "mcp_result")
        elif kind is EventKind.PRE_USER_PROMPT:
            fields["user_prompt"] = payload_str(tool_info, "user_prompt")
        elif kind is EventKind.POST_MODEL_RESPONSE:
            fields["model_response"] = payload_str(tool_info, "response")

        return Event(
            event_type=event_type,
            session_id=payload_str(payload, "trajectory_id"),
            timestamp=payload_str(payload, "timestamp"),
            cwd=cwd,
            context=EventContext(ide_source=self.source, original_payload=payload, **fields),
        )

    def format_response(self, result: HookResult) -> str:
        # Windsurf shows stderr to the user; the decision travels as JSON
        response: dict[str, Any] = {"decision": result.decision.value}

        if result.decision is Decision.DENY:
            if result.message:
                print(result.message, file=sys.stderr)
        elif result.decision is Decision.WARN:
            if result.message:
                print(f"⚠️  {result.message}", file=sys.stderr)
            if result.modified_input is not None:
                response["modified_input"] = result.modified_input
        elif result.decision is Decision.ASK:
            if result.message:
                print(f"❓ {result.message}")

        return json.dumps(response, ensure_ascii=False)


# =============================================================================
# Claude Code
# =============================================================================


CLAUDE_EVENTS = {
    "PreToolUse": EventKind.PRE_TOOL_USE,
    "PostToolUse": EventKind.POST_TOOL_USE,
    "UserPromptSubmit": EventKind.PRE_USER_PROMPT,
    "SessionStart": EventKind.SESSION_START,
    "SessionEnd": EventKind.SESSION_END,
    "Stop": EventKind.STOP,
    "SubagentStop": EventKind.SUBAGENT_STOP,
    "Notification": EventKind.NOTIFICATION,
    "PermissionRequest": EventKind.PERMISSION_REQUEST,
}

# Tools whose input names the file they touch
CLAUDE_FILE_TOOLS = {"Read", "Edit", "Write"}


class ClaudeMapper:
    """Claude Code hooks (``hook_event_name`` payloads)."""

    source = "claude"

    def map_event(self, raw: str) -> Event:
        payload = _parse_payload(raw)
        event_name = payload_str(payload, "hook_event_name") or ""

        kind = CLAUDE_EVENTS.get(event_name)
        event_type = EventType(kind) if kind is not None else EventType.unknown(event_name)

        fields: dict[str, Any] = {}

        if kind in (EventKind.PRE_TOOL_USE, EventKind.POST_TOOL_USE):
            tool_name = payload_str(payload, "tool_name")
            tool_input = payload_get(payload, "tool_input")
            fields["tool_name"] = tool_name
            fields["tool_input"] = tool_input
            if kind is EventKind.POST_TOOL_USE:
                fields["tool_result"] = payload_get(payload, "tool_response")
            if tool_name in CLAUDE_FILE_TOOLS:
                fields["file_path"] = _path(payload_str(tool_input, "file_path"))
        elif kind is EventKind.PRE_USER_PROMPT:
            fields["user_prompt"] = payload_str(payload, "prompt")

        return Event(
            event_type=event_type,
            session_id=payload_str(payload, "session_id"),
            timestamp=None,
            cwd=_path(payload_str(payload, "cwd")),
            context=EventContext(ide_source=self.source, original_payload=payload, **fields),
        )

    def format_response(self, result: HookResult) -> str:
        response: dict[str, Any] = {"continue": True}

        if result.decision is Decision.DENY:
            response["continue"] = False
            if result.message:
                response["stopReason"] = result.message
        elif result.decision is Decision.WARN:
            if result.message:
                response["systemMessage"] = result.message
        elif result.decision is Decision.ALLOW:
            if result.modified_input is not None:
                response["hookSpecificOutput"] = {
                    "permissionDecision": "allow",
                    "updatedInput": result.modified_input,
                }
        elif result.decision is Decision.ASK:
            response["hookSpecificOutput"] = {
                "permissionDecision": "ask",
                "permissionDecisionReason": result.message or "",
            }

        return json.dumps(response, ensure_ascii=False)


# =============================================================================
# Kiro
# =============================================================================


KIRO_EVENTS = {
    "file_save": EventKind.POST_WRITE_CODE,
    "file.save": EventKind.POST_WRITE_CODE,
    "file_create": EventKind.POST_WRITE_CODE,
    "file.create": EventKind.POST_WRITE_CODE,
    "prompt_submit": EventKind.PRE_USER_PROMPT,
    "prompt.submit": EventKind.PRE_USER_PROMPT,
    "turn_complete": EventKind.POST_MODEL_RESPONSE,
    "turn.complete": EventKind.POST_MODEL_RESPONSE,
}


class KiroMapper:
    """Kiro agent hooks (``event``/``type`` payloads)."""

    source = "kiro"

    def map_event(self, raw: str) -> Event:
        payload = _parse_payload(raw)
        event_name = payload_str(payload, "event") or payload_str(payload, "type") or ""

        kind = KIRO_EVENTS.get(event_name)
        event_type = EventType(kind) if kind is not None else EventType.unknown(event_name)

        file_path = payload_str(payload, "file") or payload_str(payload, "path")

        return Event(
            event_type=event_type,
            session_id=payload_str(payload, "session_id"),
            context=EventContext(
                file_path=_path(file_path),
                user_prompt=payload_str(payload, "prompt"),
                ide_source=self.source,
                original_payload=payload,
            ),
        )

    def format_response(self, result: HookResult) -> str:
        # Kiro shell hooks only look at the exit code
        return ""


# =============================================================================
# Source selection
# =============================================================================


EventMapper = WindsurfMapper | ClaudeMapper | KiroMapper


class MapperSource(Enum):
    """Assistants that can send hook events."""

    WINDSURF = "windsurf"
    CLAUDE = "claude"
    KIRO = "kiro"

    @classmethod
    def from_name(cls, name: str) -> MapperSource:
        """Resolve a ``--source`` value; unknown names use the Windsurf mapper."""
        normalized = name.strip().lower()
        if normalized == "generic":
            return cls.WINDSURF
        try:
            return cls(normalized)
        except ValueError:
            logger.warning("Unknown source '%s', defaulting to Windsurf mapper", name)
            return cls.WINDSURF

    def mapper(self) -> EventMapper:
        if self is MapperSource.CLAUDE:
            return ClaudeMapper()
        if self is MapperSource.KIRO:
            return KiroMapper()
        return WindsurfMapper()


def get_mapper(source: str) -> EventMapper:
    """Return the mapper for a ``--source`` value."""
    return MapperSource.from_name(source).mapper()
