"""Agent hook event model for project-lint.

Every supported assistant reports its actions in its own JSON schema. The
mappers in :mod:`.mappers` translate those payloads into the canonical
:class:`Event` defined here, the :mod:`.engine` evaluates rules against it,
and the resulting :class:`HookResult` is translated back by the same mapper.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class EventKind(Enum):
    """Canonical event kinds, independent of the reporting assistant."""

    # Session
    SESSION_START = "session_start"
    SESSION_END = "session_end"

    # Tool use
    PRE_TOOL_USE = "pre_tool_use"
    POST_TOOL_USE = "post_tool_use"

    # File operations
    PRE_READ_CODE = "pre_read_code"
    POST_READ_CODE = "post_read_code"
    PRE_WRITE_CODE = "pre_write_code"
    POST_WRITE_CODE = "post_write_code"

    # Command execution
    PRE_RUN_COMMAND = "pre_run_command"
    POST_RUN_COMMAND = "post_run_command"

    # Interaction
    PRE_USER_PROMPT = "pre_user_prompt"  # UserPromptSubmit in Claude
    POST_MODEL_RESPONSE = "post_model_response"  # post_cascade_response in Windsurf

    # Notifications / permissions
    NOTIFICATION = "notification"
    PERMISSION_REQUEST = "permission_request"

    # Control
    STOP = "stop"
    SUBAGENT_STOP = "subagent_stop"

    UNKNOWN = "unknown"


@dataclass(frozen=True)
class EventType:
    """An event kind, or an unrecognised event carrying its source name.

    ``value`` is the string rules are matched against: the snake_case kind
    name for known events, and the raw source name for unknown ones.
    """

    kind: EventKind
    name: str = ""

    @classmethod
    def unknown(cls, name: str) -> EventType:
        return cls(EventKind.UNKNOWN, name)

    @property
    def is_unknown(self) -> bool:
        return self.kind is EventKind.UNKNOWN

    @property
    def value(self) -> str:
        if self.is_unknown:
            return self.name
        return self.kind.value

    @property
    def variant(self) -> str:
        """PascalCase name used in hook logs (``PreToolUse``, ``Unknown``)."""
        return "".join(part.capitalize() for part in self.kind.value.split("_"))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FileEdit:
    """One textual replacement reported for a write event."""

    new_string: str
    old_string: str | None = None
    start_line: int | None = None
    end_line: int | None = None


@dataclass(frozen=True)
class EventContext:
    """Optional details of an event; which fields are set depends on its kind."""

    # File context
    file_path: Path | None = None
    file_content: str | None = None
    edits: tuple[FileEdit, ...] | None = None

    # Tool context
    tool_name: str | None = None
    tool_input: Any | None = None
    tool_result: Any | None = None

    # Command context
    command: str | None = None
    exit_code: int | None = None

    # Interaction context
    user_prompt: str | None = None
    model_response: str | None = None

    # Metadata
    ide_source: str = "generic"
    original_payload: Any | None = None


@dataclass(frozen=True)
class Event:
    """A single agent action, normalised from one raw hook payload."""

    event_type: EventType
    session_id: str | None = None
    timestamp: str | None = None
    cwd: Path | None = None
    context: EventContext = field(default_factory=EventContext)


class Decision(Enum):
    """Verdict for one event."""

    ALLOW = "allow"
    DENY = "deny"
    ASK = "ask"  # Request user confirmation
    WARN = "warn"  # Allow but show a warning

    @property
    def label(self) -> str:
        """Capitalised name used in hook logs (``Allow``, ``Deny``, ...)."""
        return self.name.capitalize()


@dataclass
class HookResult:
    """Outcome of evaluating one event.

    ``modified_input`` holds a rewritten tool input for assistants that can
    apply it instead of blocking the action.
    """

    decision: Decision = Decision.ALLOW
    message: str | None = None
    modified_input: Any | None = None


def payload_get(payload: Any, key: str) -> Any | None:
    """Return ``payload[key]`` when ``payload`` is a JSON object, else None."""
    if isinstance(payload, dict):
        return payload.get(key)
    return None


def payload_str(payload: Any, key: str) -> str | None:
    """Return ``payload[key]`` only if it is a string."""
    value = payload_get(payload, key)
    return value if isinstance(value, str) else None


def payload_obj(payload: Any, key: str) -> dict[str, Any]:
    """Return the nested object at ``payload[key]``, or an empty dict."""
    value = payload_get(payload, key)
    return value if isinstance(value, dict) else {}
