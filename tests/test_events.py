"""Tests for the hook event model."""

from __future__ import annotations

from pathlib import Path

from project_lint.hooks import (
    Decision,
    Event,
    EventContext,
    EventKind,
    EventType,
    HookResult,
    payload_obj,
    payload_str,
)


class TestEventType:
    def test_known_kind_serializes_snake_case(self):
        assert EventType(EventKind.PRE_TOOL_USE).value == "pre_tool_use"
        assert str(EventType(EventKind.POST_MODEL_RESPONSE)) == "post_model_response"

    def test_unknown_serializes_to_source_name(self):
        event_type = EventType.unknown("custom_action")
        assert event_type.is_unknown
        assert event_type.value == "custom_action"

    def test_variant_is_pascal_case(self):
        assert EventType(EventKind.PRE_TOOL_USE).variant == "PreToolUse"
        assert EventType(EventKind.SUBAGENT_STOP).variant == "SubagentStop"
        assert EventType.unknown("whatever").variant == "Unknown"

    def test_equality_includes_name(self):
        assert EventType.unknown("a") == EventType.unknown("a")
        assert EventType.unknown("a") != EventType.unknown("b")


class TestEvent:
    def test_defaults(self):
        event = Event(event_type=EventType(EventKind.STOP))
        assert event.session_id is None
        assert event.cwd is None
        assert event.context.ide_source == "generic"
        assert event.context.file_path is None

    def test_context_fields(self):
        ctx = EventContext(file_path=Path("src/main.py"), tool_name="Write")
        event = Event(event_type=EventType(EventKind.PRE_TOOL_USE), context=ctx)
        assert event.context.file_path == Path("src/main.py")
        assert event.context.tool_name == "Write"


class TestDecision:
    def test_labels(self):
        assert Decision.ALLOW.label == "Allow"
        assert Decision.DENY.label == "Deny"
        assert Decision.WARN.label == "Warn"
        assert Decision.ASK.label == "Ask"

    def test_default_result_allows(self):
        result = HookResult()
        assert result.decision is Decision.ALLOW
        assert result.message is None
        assert result.modified_input is None


class TestPayloadAccess:
    def test_payload_str_only_returns_strings(self):
        payload = {"name": "x", "count": 3}
        assert payload_str(payload, "name") == "x"
        assert payload_str(payload, "count") is None
        assert payload_str(payload, "missing") is None
        assert payload_str(["not", "a", "dict"], "name") is None

    def test_payload_obj_defaults_to_empty(self):
        assert payload_obj({"tool_info": {"a": 1}}, "tool_info") == {"a": 1}
        assert payload_obj({"tool_info": "nope"}, "tool_info") == {}
        assert payload_obj(None, "tool_info") == {}
