"""
Configuration management for project-lint.

Loads ``config.toml`` plus the modular documents under the config directory:

    <config dir>/config.toml          base settings and top-level custom rules
    <config dir>/rules/core.toml      core settings
    <config dir>/rules/active/*       modular rules
    <config dir>/rules/profiles/*     profiles
    <config dir>/plugins/*            plugins

Modular documents may be TOML (``.toml``) or YAML (``.yaml``/``.yml``).
A document that cannot be read or parsed is logged and skipped.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

try:
    import yaml
except ImportError:
    yaml = None  # type: ignore

from .hooks import EventKind
from .utils import ConfigError, get_config_dir

logger = logging.getLogger("project-lint.config")

DOCUMENT_SUFFIXES = (".toml", ".yaml", ".yml")

# IDE-native event names accepted as triggers next to the canonical ones
NATIVE_TRIGGERS = {
    # Windsurf
    "pre_read_code", "post_read_code", "pre_write_code", "post_write_code",
    "pre_run_command", "post_run_command", "pre_mcp_tool_use",
    "post_mcp_tool_use", "pre_user_prompt", "post_cascade_response",
    # Claude
    "PreToolUse", "PostToolUse", "UserPromptSubmit", "SessionStart",
    "SessionEnd", "Stop", "SubagentStop", "Notification", "PermissionRequest",
    # Kiro
    "file_save", "file.save", "file_create", "file.create", "prompt_submit",
    "prompt.submit", "turn_complete", "turn.complete",
}


class RuleSeverity(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


def parse_severity(value: str) -> RuleSeverity:
    """Parse a severity name, case-insensitively."""
    try:
        return RuleSeverity(str(value).strip().lower())
    except ValueError:
        raise ConfigError(f"Unknown severity: {value!r}") from None


def is_valid_trigger(trigger: str) -> bool:
    """Check whether a trigger string can ever match an event."""
    if trigger == "all":
        return True
    if trigger in NATIVE_TRIGGERS:
        return True
    return any(
        kind.value == trigger for kind in EventKind if kind is not EventKind.UNKNOWN
    )


def _str_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key) or []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _table(data: dict[str, Any], key: str) -> dict[str, Any]:
    """Return the sub-table at ``key``, or an empty dict when it is absent."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a table, got {type(value).__name__}")
    return value


def _tables(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    """Return the array of tables at ``key``."""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise ConfigError(f"'{key}' must be an array of tables")
    return value


# =============================================================================
# Rules
# =============================================================================


@dataclass
class CustomRule:
    """A flat pattern rule.

    Without ``check_content`` a matching file is itself the violation unless
    the rule is ``required``. With ``check_content`` the violation is the
    presence of ``content_pattern``, or its absence when ``condition`` is
    ``"must_contain"``.
    """
    name: str
    pattern: str
    message: str = ""
    severity: RuleSeverity = RuleSeverity.WARNING
    check_content: bool = False
    content_pattern: str | None = None
    exception_pattern: str | None = None
    condition: str | None = None
    required: bool = False
    required_if_path_exists: str | None = None
    triggers: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CustomRule:
        if "name" not in data or "pattern" not in data:
            raise ConfigError("Custom rule requires 'name' and 'pattern'")
        return cls(
            name=str(data["name"]),
            pattern=str(data["pattern"]),
            message=str(data.get("message", "")),
            severity=parse_severity(data.get("severity", "warning")),
            check_content=bool(data.get("check_content", False)),
            content_pattern=data.get("content_pattern"),
            exception_pattern=data.get("exception_pattern"),
            condition=data.get("condition"),
            required=bool(data.get("required", False)),
            required_if_path_exists=data.get("required_if_path_exists"),
            triggers=_str_list(data, "triggers"),
        )


@dataclass
class GitRuleConfig:
    warn_wrong_branch: bool = True
    allowed_branches: list[str] = field(default_factory=list)
    forbidden_branches: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GitRuleConfig:
        return cls(
            warn_wrong_branch=bool(data.get("warn_wrong_branch", True)),
            allowed_branches=_str_list(data, "allowed_branches"),
            forbidden_branches=_str_list(data, "forbidden_branches"),
        )


@dataclass
class ScriptRuleConfig:
    preferred_directory: str = "bin"
    alternative_directories: list[str] = field(default_factory=list)
    script_extensions: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScriptRuleConfig:
        return cls(
            preferred_directory=str(data.get("preferred_directory", "bin")),
            alternative_directories=_str_list(data, "alternative_directories"),
            script_extensions=_str_list(data, "script_extensions"),
        )


@dataclass
class ModularRule:
    """A named, toggleable rule document from ``rules/active``."""
    name: str
    description: str = ""
    enabled: bool = True
    severity: RuleSeverity = RuleSeverity.WARNING
    triggers: list[str] = field(default_factory=list)
    git: GitRuleConfig | None = None
    file_mappings: dict[str, str] = field(default_factory=dict)
    ignored_patterns: dict[str, bool] = field(default_factory=dict)
    scripts: ScriptRuleConfig | None = None
    conditions: dict[str, bool] = field(default_factory=dict)
    messages: dict[str, str] = field(default_factory=dict)
    rules: list[CustomRule] = field(default_factory=list)
    source_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], source_path: Path | None = None) -> ModularRule:
        if "name" not in data:
            raise ConfigError("Modular rule requires 'name'")
        git = _table(data, "git")
        scripts = _table(data, "scripts")
        return cls(
            name=str(data["name"]),
            description=str(data.get("description", "")),
            enabled=bool(data.get("enabled", True)),
            severity=parse_severity(data.get("severity", "warning")),
            triggers=_str_list(data, "triggers"),
            git=GitRuleConfig.from_dict(git) if git else None,
            file_mappings=dict(_table(data, "file_mappings")),
            ignored_patterns=dict(_table(data, "ignored_patterns")),
            scripts=ScriptRuleConfig.from_dict(scripts) if scripts else None,
            conditions=dict(_table(data, "conditions")),
            messages=dict(_table(data, "messages")),
            rules=[CustomRule.from_dict(r) for r in _tables(data, "rules")],
            source_path=source_path,
        )


# =============================================================================
# Profiles and plugins
# =============================================================================


class MatchPosition(Enum):
    HEADER = "header"  # first 1024 bytes only
    ANY = "any"


@dataclass
class ContentTrigger:
    matches: list[str] = field(default_factory=list)
    globs: list[str] = field(default_factory=list)
    position: MatchPosition = MatchPosition.HEADER

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentTrigger:
        position = str(data.get("position", "header")).lower()
        try:
            match_position = MatchPosition(position)
        except ValueError:
            raise ConfigError(f"Unknown content match position: {position!r}") from None
        return cls(
            matches=_str_list(data, "matches"),
            globs=_str_list(data, "globs"),
            position=match_position,
        )


@dataclass
class ProfileMetadata:
    name: str = ""
    version: str = ""
    scope: str = ""
    updated: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProfileMetadata:
        return cls(
            name=str(data.get("name", "")),
            version=str(data.get("version", "")),
            scope=str(data.get("scope", "")),
            updated=str(data.get("updated", "")),
            description=str(data.get("description", "")),
        )


@dataclass
class ProfileActivation:
    events: list[str] = field(default_factory=list)
    indicators: list[str] = field(default_factory=list)
    paths: list[str] = field(default_factory=list)
    globs: list[str] = field(default_factory=list)
    extensions: list[str] = field(default_factory=list)
    branches: list[str] = field(default_factory=list)
    content: list[ContentTrigger] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProfileActivation:
        return cls(
            events=_str_list(data, "events"),
            indicators=_str_list(data, "indicators"),
            paths=_str_list(data, "paths"),
            globs=_str_list(data, "globs"),
            extensions=_str_list(data, "extensions"),
            branches=_str_list(data, "branches"),
            content=[ContentTrigger.from_dict(c) for c in _tables(data, "content")],
        )


@dataclass
class ProfileEnable:
    domains: list[str] = field(default_factory=list)
    plugins: list[str] = field(default_factory=list)


@dataclass
class WebSpecificConfig:
    check_html_semantics: bool = False
    validate_css_properties: bool = False
    lint_javascript: bool = False
    check_accessibility: bool = False
    optimize_images: bool = False
    check_seo_meta: bool = False


@dataclass
class DevOpsSpecificConfig:
    check_secrets: bool = False
    validate_yaml: bool = False
    check_docker_best_practices: bool = False
    validate_terraform: bool = False
    check_kubernetes_manifests: bool = False
    scan_for_hardcoded_secrets: bool = False
    check_ssl_certificates: bool = False


@dataclass
class ProfileStructure:
    expected_dirs: list[str] = field(default_factory=list)
    forbidden_dirs: list[str] = field(default_factory=list)


def _flags(cls: type, data: dict[str, Any] | None) -> Any:
    """Build a dataclass of boolean flags, ignoring unknown keys."""
    if not data:
        return None
    known = {k: bool(v) for k, v in data.items() if k in cls.__dataclass_fields__}
    return cls(**known)


@dataclass
class Profile:
    """A named bundle of activation conditions and scoped settings."""
    metadata: ProfileMetadata
    activation: ProfileActivation = field(default_factory=ProfileActivation)
    enable: ProfileEnable = field(default_factory=ProfileEnable)
    web_specific: WebSpecificConfig | None = None
    devops_specific: DevOpsSpecificConfig | None = None
    structure: ProfileStructure | None = None
    extensions: dict[str, str] = field(default_factory=dict)
    source_path: Path | None = None

    @property
    def name(self) -> str:
        return self.metadata.name

    @classmethod
    def from_dict(cls, data: dict[str, Any], source_path: Path | None = None) -> Profile:
        metadata = ProfileMetadata.from_dict(_table(data, "metadata"))
        # Use filename as name if not specified in metadata
        if not metadata.name and source_path is not None:
            metadata.name = source_path.stem

        enable = _table(data, "enable")
        structure = _table(data, "structure")
        return cls(
            metadata=metadata,
            activation=ProfileActivation.from_dict(_table(data, "activation")),
            enable=ProfileEnable(
                domains=_str_list(enable, "domains"),
                plugins=_str_list(enable, "plugins"),
            ),
            web_specific=_flags(WebSpecificConfig, _table(data, "web_specific")),
            devops_specific=_flags(DevOpsSpecificConfig, _table(data, "devops_specific")),
            structure=ProfileStructure(
                expected_dirs=_str_list(structure, "expected_dirs"),
                forbidden_dirs=_str_list(structure, "forbidden_dirs"),
            ) if structure else None,
            extensions={str(k): str(v) for k, v in _table(data, "extensions").items()},
            source_path=source_path,
        )


@dataclass
class Plugin:
    """An external command that runs on lint events."""
    name: str
    version: str = ""
    description: str = ""
    trigger_on: list[str] = field(default_factory=list)
    command: str = ""
    condition: str = ""
    timeout_seconds: int = 30
    fail_on_errors: bool = False
    source_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], source_path: Path | None = None) -> Plugin:
        metadata = _table(data, "metadata")
        execute = _table(data, "execute")
        trigger = dict(_table(data, "trigger"))
        # YAML 1.1 loads a bare `on:` key as boolean True
        if True in trigger and "on" not in trigger:
            trigger["on"] = trigger.pop(True)
        name = metadata.get("name") or (source_path.stem if source_path else "")
        return cls(
            name=str(name),
            version=str(metadata.get("version", "")),
            description=str(metadata.get("description", "")),
            trigger_on=_str_list(trigger, "on"),
            command=str(execute.get("command", "")),
            condition=str(execute.get("condition", "")),
            timeout_seconds=int(execute.get("timeout_seconds", 30)),
            fail_on_errors=bool(execute.get("fail_on_errors", False)),
            source_path=source_path,
        )


# =============================================================================
# Top-level config
# =============================================================================


@dataclass
class GitConfig:
    warn_wrong_branch: bool = True
    allowed_branches: list[str] = field(default_factory=lambda: ["main", "master"])
    forbidden_branches: list[str] = field(default_factory=lambda: ["develop"])


@dataclass
class FilesConfig:
    type_mappings: dict[str, str] = field(default_factory=lambda: {
        "*.sh": "bin/",
        "*.py": "scripts/",
        "*.js": "scripts/",
        "*.ts": "scripts/",
    })
    ignored_patterns: list[str] = field(default_factory=lambda: [
        "node_modules/",
        ".git/",
        "target/",
    ])


@dataclass
class DirectoriesConfig:
    warn_scripts_location: bool = True
    scripts_directory: str = "bin"


@dataclass
class RulesConfig:
    custom_rules: list[CustomRule] = field(default_factory=list)
    enabled_checks: list[str] = field(default_factory=lambda: [
        "git_branch",
        "file_location",
        "directory_structure",
    ])
    disabled_checks: list[str] = field(default_factory=list)

    def is_enabled(self, check: str) -> bool:
        return check not in self.disabled_checks


@dataclass
class CoreConfig:
    """Settings from ``rules/core.toml``."""
    default_severity: RuleSeverity = RuleSeverity.WARNING
    max_file_size_mb: int = 10
    show_severity_icons: bool = True
    show_rule_names: bool = True
    max_issues_per_rule: int = 10

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CoreConfig:
        global_ = _table(data, "global")
        output = _table(data, "output")
        return cls(
            default_severity=parse_severity(global_.get("default_severity", "warning")),
            max_file_size_mb=int(global_.get("max_file_size_mb", 10)),
            show_severity_icons=bool(output.get("show_severity_icons", True)),
            show_rule_names=bool(output.get("show_rule_names", True)),
            max_issues_per_rule=int(output.get("max_issues_per_rule", 10)),
        )


@dataclass
class Config:
    """Fully loaded project-lint configuration."""
    git: GitConfig = field(default_factory=GitConfig)
    files: FilesConfig = field(default_factory=FilesConfig)
    directories: DirectoriesConfig = field(default_factory=DirectoriesConfig)
    rules: RulesConfig = field(default_factory=RulesConfig)
    modular_rules: list[ModularRule] = field(default_factory=list)
    active_profiles: list[Profile] = field(default_factory=list)
    active_plugins: list[Plugin] = field(default_factory=list)
    core_config: CoreConfig = field(default_factory=CoreConfig)
    config_dir: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        config = cls()

        git = _table(data, "git")
        if "warn_wrong_branch" in git:
            config.git.warn_wrong_branch = bool(git["warn_wrong_branch"])
        if "allowed_branches" in git:
            config.git.allowed_branches = _str_list(git, "allowed_branches")
        if "forbidden_branches" in git:
            config.git.forbidden_branches = _str_list(git, "forbidden_branches")

        files = _table(data, "files")
        if "type_mappings" in files:
            config.files.type_mappings = {str(k): str(v) for k, v in _table(files, "type_mappings").items()}
        if "ignored_patterns" in files:
            config.files.ignored_patterns = _str_list(files, "ignored_patterns")

        directories = _table(data, "directories")
        if "warn_scripts_location" in directories:
            config.directories.warn_scripts_location = bool(directories["warn_scripts_location"])
        if "scripts_directory" in directories:
            config.directories.scripts_directory = str(directories["scripts_directory"])

        rules = _table(data, "rules")
        config.rules.custom_rules = [
            CustomRule.from_dict(r) for r in _tables(rules, "custom_rules")
        ]
        if "enabled_checks" in rules:
            config.rules.enabled_checks = _str_list(rules, "enabled_checks")
        if "disabled_checks" in rules:
            config.rules.disabled_checks = _str_list(rules, "disabled_checks")

        return config

    @classmethod
    def load_from_path(cls, path: Path) -> Config:
        """Parse a single ``config.toml`` file."""
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e
        try:
            return cls.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid config in {path}: {e}") from e

    @classmethod
    def load(cls, project_path: Path | None = None) -> Config:
        """Load configuration for ``project_path`` (default: cwd).

        Missing files fall back to defaults; a broken ``config.toml`` raises
        :class:`ConfigError`.
        """
        config_dir = get_config_dir(project_path)
        config_file = config_dir / "config.toml"

        if config_file.exists():
            logger.debug("Loading config from %s", config_file)
            config = cls.load_from_path(config_file)
        else:
            logger.debug("No config file found at %s, using defaults", config_file)
            config = cls()

        config.config_dir = config_dir
        config.core_config = load_core_config(config_dir)
        config.modular_rules = load_modular_rules(config_dir)
        config.active_profiles = load_profiles(config_dir)
        config.active_plugins = load_plugins(config_dir)
        return config

    def validate(self) -> list[str]:
        """Return human-readable problems with the loaded rules."""
        problems = []
        rules: list[tuple[str, list[str]]] = [
            (r.name, r.triggers) for r in self.rules.custom_rules
        ]
        for modular in self.modular_rules:
            rules.append((modular.name, modular.triggers))

        for name, triggers in rules:
            if not triggers:
                # Linting still uses the rule; only agent hooks ignore it
                problems.append(f"Rule '{name}' has no triggers and never fires on hook events")
                continue
            for trigger in triggers:
                if not is_valid_trigger(trigger):
                    problems.append(f"Rule '{name}' has unknown trigger '{trigger}'")
        return problems


# =============================================================================
# Document loading
# =============================================================================


def _require_yaml() -> None:
    """Raise error if PyYAML not installed."""
    if yaml is None:
        raise RuntimeError(
            "PyYAML is required for YAML rule documents.\n"
            "Install with: pip install pyyaml"
        )


def load_document(path: Path) -> dict[str, Any]:
    """Parse a TOML or YAML document into a dict."""
    content = path.read_text(encoding="utf-8")
    if path.suffix == ".toml":
        try:
            return tomllib.loads(content)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML: {e}") from e

    _require_yaml()
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Document must contain a mapping, got {type(data).__name__}")
    return data


def _iter_documents(directory: Path) -> list[Path]:
    """All rule documents under ``directory``, in sorted traversal order."""
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.rglob("*")
        if p.is_file() and p.suffix in DOCUMENT_SUFFIXES
    )


def _load_each(directory: Path, kind: str, build) -> list[Any]:
    """Load every document in ``directory`` with ``build``, skipping failures."""
    items = []
    for path in _iter_documents(directory):
        logger.debug("Loading %s from %s", kind, path)
        try:
            item = build(load_document(path), path)
        except (OSError, ConfigError, RuntimeError, TypeError, ValueError) as e:
            logger.warning("Failed to load %s file %s: %s", kind, path, e)
            continue
        if item is not None:
            items.append(item)
    logger.info("Loaded %d %s(s) from %s", len(items), kind, directory)
    return items


def load_core_config(config_dir: Path) -> CoreConfig:
    core_file = config_dir / "rules" / "core.toml"
    if not core_file.exists():
        return CoreConfig()
    try:
        return CoreConfig.from_dict(load_document(core_file))
    except (OSError, ConfigError, RuntimeError, TypeError, ValueError) as e:
        logger.warning("Failed to load core config %s: %s", core_file, e)
        return CoreConfig()


def load_modular_rules(config_dir: Path) -> list[ModularRule]:
    def build(data: dict[str, Any], path: Path) -> ModularRule | None:
        rule = ModularRule.from_dict(data, source_path=path)
        if not rule.enabled:
            logger.debug("Skipping disabled rule: %s", rule.name)
            return None
        return rule

    return _load_each(config_dir / "rules" / "active", "rule", build)


def load_profiles(config_dir: Path) -> list[Profile]:
    return _load_each(
        config_dir / "rules" / "profiles",
        "profile",
        lambda data, path: Profile.from_dict(data, source_path=path),
    )


def load_plugins(config_dir: Path) -> list[Plugin]:
    return _load_each(
        config_dir / "plugins",
        "plugin",
        lambda data, path: Plugin.from_dict(data, source_path=path),
    )


# =============================================================================
# Templates
# =============================================================================


def create_config_template() -> str:
    """Generate a documented default ``config.toml``."""
    return """# project-lint configuration
#
# Modular rules, profiles and plugins live next to this file:
#   rules/active/*.toml     modular rules (evaluated by `project-lint hook`)
#   rules/profiles/*.toml   profiles (activated per project / per event)
#   plugins/*.toml          plugins

[git]
warn_wrong_branch = true
allowed_branches = ["main", "master"]
forbidden_branches = ["develop"]

[files]
ignored_patterns = ["node_modules/", ".git/", "target/"]

[files.type_mappings]
"*.sh" = "bin/"
"*.py" = "scripts/"
"*.js" = "scripts/"
"*.ts" = "scripts/"

[directories]
warn_scripts_location = true
scripts_directory = "bin"

[rules]
enabled_checks = ["git_branch", "file_location", "directory_structure"]
disabled_checks = []

# Rules without triggers are used by `project-lint lint` only.
# Triggers accept canonical event names (pre_tool_use, pre_write_code, ...),
# IDE-native names (pre_run_command, PreToolUse, ...) or "all".
#
# [[rules.custom_rules]]
# name = "no-env-files"
# pattern = "*.env"
# message = "Environment files must not be edited by agents"
# severity = "error"
# triggers = ["pre_write_code", "PreToolUse"]
"""


def create_rule_template() -> str:
    """Generate the example modular rule written by ``init``."""
    return """# Agent hook rules
name = "agent-hooks"
description = "Rules applied to AI agent actions"
enabled = true
severity = "warning"
triggers = ["pre_tool_use", "pre_run_command"]

# Rewrites `npm ...` to `pnpm ...` in pnpm workspaces
[[rules]]
name = "pnpm-workspace-enforcer"
pattern = "*"
message = "Use pnpm in this workspace"
severity = "warning"
"""


def ensure_config_template(config_dir: Path, force: bool = False) -> Path | None:
    """
    Write the default config and example rule into ``config_dir``.

    Returns the config file path, or None if it already existed and
    ``force`` was not given.
    """
    config_file = config_dir / "config.toml"
    if config_file.exists() and not force:
        return None

    for sub in (("rules", "active"), ("rules", "profiles"), ("plugins",)):
        config_dir.joinpath(*sub).mkdir(parents=True, exist_ok=True)

    config_file.write_text(create_config_template(), encoding="utf-8")

    rule_file = config_dir / "rules" / "active" / "agent-hooks.toml"
    if not rule_file.exists() or force:
        rule_file.write_text(create_rule_template(), encoding="utf-8")

    return config_file
