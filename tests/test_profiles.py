"""Tests for profile activation."""

from __future__ import annotations

from project_lint.config import (
    ContentTrigger,
    MatchPosition,
    Profile,
    ProfileActivation,
    ProfileMetadata,
)
from project_lint.hooks import Event, EventContext, EventKind, EventType
from project_lint.profiles import HEADER_SIZE, check_file_content, get_active_profiles, is_profile_active


def _profile(name: str = "test", **activation) -> Profile:
    return Profile(metadata=ProfileMetadata(name=name), activation=ProfileActivation(**activation))


class TestActivation:
    def test_no_conditions_inactive(self, project):
        assert not is_profile_active(project, _profile())

    def test_indicator_file(self, project):
        (project / "Cargo.toml").write_text("[package]\n")
        assert is_profile_active(project, _profile(indicators=["Cargo.toml"]))
        assert not is_profile_active(project, _profile(indicators=["package.json"]))

    def test_path(self, project):
        (project / "terraform").mkdir()
        assert is_profile_active(project, _profile(paths=["terraform"]))

    def test_recursive_glob(self, project):
        nested = project / "src" / "deep"
        nested.mkdir(parents=True)
        (nested / "main.rs").write_text("fn main() {}\n")
        assert is_profile_active(project, _profile(globs=["**/*.rs"]))
        assert not is_profile_active(project, _profile(globs=["**/*.go"]))

    def test_glob_matches_dotfiles(self, project):
        (project / ".gitlab-ci.yml").write_text("stages: [build]\n")
        assert is_profile_active(project, _profile(globs=["*.yml"]))

    def test_unmatched_bracket_glob(self, project):
        (project / "Dockerfile").write_text("FROM alpine\n")
        profile = _profile(globs=["[", "Dockerfile"])
        assert is_profile_active(project, profile)

    def test_event_trigger(self, project):
        event = Event(event_type=EventType(EventKind.PRE_WRITE_CODE))
        profile = _profile(events=["pre_write_code"])
        assert is_profile_active(project, profile, event)
        assert not is_profile_active(project, profile)

    def test_native_event_trigger(self, project):
        event = Event(
            event_type=EventType(EventKind.PRE_TOOL_USE),
            context=EventContext(ide_source="claude", original_payload={"hook_event_name": "PreToolUse"}),
        )
        assert is_profile_active(project, _profile(events=["PreToolUse"]), event)

    def test_all_events(self, project):
        event = Event(event_type=EventType(EventKind.NOTIFICATION))
        assert is_profile_active(project, _profile(events=["all"]), event)

    def test_event_trigger_ignores_other_events(self, project):
        event = Event(event_type=EventType(EventKind.STOP))
        assert not is_profile_active(project, _profile(events=["pre_write_code"]), event)

    def test_order_preserved(self, project):
        (project / "a.txt").write_text("")
        profiles = [
            _profile("first", indicators=["a.txt"]),
            _profile("inactive", indicators=["missing.txt"]),
            _profile("last", globs=["*.txt"]),
        ]
        active = get_active_profiles(project, profiles)
        assert [p.name for p in active] == ["first", "last"]


class TestContentTriggers:
    def test_header_match(self, project):
        (project / "app.py").write_text("import django\n")
        trigger = ContentTrigger(matches=["import django"], globs=["*.py"])
        assert is_profile_active(project, _profile(content=[trigger]))

    def test_default_globs_cover_tree(self, project):
        (project / "sub").mkdir()
        (project / "sub" / "notes.md").write_text("uses kubernetes\n")
        trigger = ContentTrigger(matches=["kubernetes"])
        assert is_profile_active(project, _profile(content=[trigger]))

    def test_default_globs_enter_hidden_directories(self, project):
        (project / ".github").mkdir()
        (project / ".github" / "ci.yml").write_text("jobs:\n  build:\n    runs-on: ubuntu-latest\n")
        trigger = ContentTrigger(matches=["runs-on"])
        assert is_profile_active(project, _profile(content=[trigger]))

    def test_header_window_only(self, project):
        path = project / "late.txt"
        path.write_text("x" * (HEADER_SIZE + 10) + "MARKER")
        assert not check_file_content(path, ["MARKER"], MatchPosition.HEADER)
        assert check_file_content(path, ["MARKER"], MatchPosition.ANY)

    def test_binary_content_decoded_lossily(self, project):
        path = project / "blob.bin"
        path.write_bytes(b"\xff\xfe MAGIC \x00")
        assert check_file_content(path, ["MAGIC"], MatchPosition.HEADER)

    def test_unreadable_file_never_matches(self, project):
        assert not check_file_content(project / "missing.txt", ["x"], MatchPosition.ANY)

    def test_directories_ignored(self, project):
        (project / "django").mkdir()
        trigger = ContentTrigger(matches=["django"], globs=["*"])
        assert not is_profile_active(project, _profile(content=[trigger]))
