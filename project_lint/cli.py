#!/usr/bin/env python3
"""
project-lint - Project hygiene linter and AI agent hook gate.

Lints project trees for misplaced files, branch policy and hardcoded secrets,
and evaluates the same rules against AI coding assistant hook events.
"""

from __future__ import annotations

import argparse
import functools
import logging
import sys
import time
from pathlib import Path

logger = logging.getLogger("project-lint")


@functools.lru_cache(maxsize=None)
def get_hook_logger(log_dir: Path | None = None):
    """Build the process-wide hook logger on first use."""
    from .hooks.logger import HookLogger
    return HookLogger(log_dir)


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="project-lint",
        description="Project hygiene linter and AI agent hook gate",
    )
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug output")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init
    init_p = subparsers.add_parser("init", help="Create default configuration")
    init_p.add_argument("--force", "-f", action="store_true", help="Overwrite existing files")

    # hook - read one event from stdin
    hook_p = subparsers.add_parser("hook", help="Evaluate an agent hook event read from stdin")
    hook_p.add_argument("--source", default="windsurf",
                        help="Event source: windsurf, claude, kiro (default: windsurf)")
    hook_p.add_argument("--path", help="Project path (default: cwd)")

    # logs
    logs_p = subparsers.add_parser("logs", help="Show today's hook log")
    logs_p.add_argument("--limit", "-n", type=int, default=20, help="Number of entries (default: 20)")
    logs_p.add_argument("--stats", action="store_true", help="Show aggregate statistics")
    logs_p.add_argument("--dir", help="Log directory")

    # lint
    lint_p = subparsers.add_parser("lint", help="Lint a project")
    lint_p.add_argument("--path", help="Project path (default: cwd)")

    # profiles subcommands
    profiles_p = subparsers.add_parser("profiles", help="Profile management")
    profiles_sub = profiles_p.add_subparsers(dest="profiles_command")
    profiles_sub.add_parser("list", help="List configured profiles")
    active_p = profiles_sub.add_parser("active", help="List profiles active for a project")
    active_p.add_argument("--path", help="Project path (default: cwd)")

    args = parser.parse_args()

    # Hook responses go to stdout, so diagnostics stay on stderr
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command is None:
        parser.print_help()
        return 0

    # Dispatch
    if args.command == "init":
        return cmd_init(args)
    elif args.command == "hook":
        return cmd_hook(args)
    elif args.command == "logs":
        return cmd_logs(args)
    elif args.command == "lint":
        return cmd_lint(args)
    elif args.command == "profiles":
        return cmd_profiles(args)
    else:
        parser.print_help()
        return 1


def _project_path(args: argparse.Namespace) -> Path:
    path = getattr(args, "path", None)
    return Path(path).resolve() if path else Path.cwd()


def cmd_init(args: argparse.Namespace) -> int:
    """Write the default config and example rule."""
    from .config import ensure_config_template
    from .utils import get_config_dir

    config_dir = get_config_dir()
    config_file = ensure_config_template(config_dir, force=args.force)
    if config_file is None:
        print(f"Config already exists: {config_dir / 'config.toml'}")
        print("Use 'project-lint init --force' to overwrite")
        return 0

    print(f"Created: {config_file}")
    print(f"Rules:   {config_dir / 'rules' / 'active'}")
    return 0


def cmd_hook(args: argparse.Namespace) -> int:
    """Evaluate one hook event.

    Exit code 2 blocks the agent action; anything else lets it proceed.
    """
    from .config import Config
    from .hooks import Decision
    from .hooks.engine import RuleEngine
    from .hooks.mappers import get_mapper
    from .profiles import get_active_profiles
    from .utils import ConfigError, HookParseError

    raw = sys.stdin.read()
    if not raw.strip():
        logger.debug("Empty hook input, nothing to evaluate")
        return 0

    mapper = get_mapper(args.source)
    try:
        event = mapper.map_event(raw)
    except HookParseError as e:
        logger.warning("Ignoring hook event: %s", e)
        return 0

    project_path = _project_path(args)
    try:
        config = Config.load(project_path)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    config.active_profiles = get_active_profiles(project_path, config.active_profiles, event)

    start = time.monotonic()
    result = RuleEngine(config).evaluate_event(event)
    duration_ms = int((time.monotonic() - start) * 1000)

    response = mapper.format_response(result)
    if response:
        print(response)

    try:
        hook_logger = get_hook_logger()
    except OSError as e:
        logger.warning("Hook logging disabled: %s", e)
    else:
        hook_logger.log_event(event, result.decision.label, result.message, duration_ms)

    return 2 if result.decision is Decision.DENY else 0


def cmd_logs(args: argparse.Namespace) -> int:
    """Show recent hook log entries or aggregate stats."""
    from .hooks.logger import HookLogger

    hook_logger = HookLogger(Path(args.dir)) if args.dir else get_hook_logger()

    if args.stats:
        stats = hook_logger.get_stats()
        print("=== Hook Statistics (today) ===")
        print()
        print(f"Total events: {stats.total_events}")
        if stats.event_count_with_duration:
            print(f"Duration: avg {stats.average_duration_ms():.1f}ms, "
                  f"min {stats.min_duration_ms}ms, max {stats.max_duration_ms}ms")
        for title, counts in (
            ("Events", stats.event_counts),
            ("Sources", stats.source_counts),
            ("Decisions", stats.decision_counts),
        ):
            print()
            print(f"{title}:")
            if counts:
                for name, count in sorted(counts.items()):
                    print(f"  {name}: {count}")
            else:
                print("  (none)")
        return 0

    entries = hook_logger.get_recent_logs(args.limit)
    if not entries:
        print(f"No hook events logged in {hook_logger.log_file}")
        return 0

    icons = {"Allow": "✅", "Deny": "❌", "Warn": "⚠️", "Ask": "❓"}
    for entry in entries:
        icon = icons.get(entry.decision, "•")
        line = f"{entry.timestamp:%H:%M:%S} {icon} {entry.decision:<5} {entry.source:<8} {entry.event_type}"
        detail = entry.command or entry.file_path or entry.tool_name
        if detail:
            line += f"  {detail}"
        if entry.duration_ms is not None:
            line += f"  ({entry.duration_ms}ms)"
        print(line)
    return 0


def cmd_lint(args: argparse.Namespace) -> int:
    """Lint a project; exit 1 when error-severity issues are found."""
    from .config import Config, RuleSeverity
    from .lint import run_lint
    from .utils import ConfigError

    project_path = _project_path(args)
    if not project_path.exists():
        print(f"Error: Project path does not exist: {project_path}", file=sys.stderr)
        return 1

    try:
        config = Config.load(project_path)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    for problem in config.validate():
        logger.warning(problem)

    issues = run_lint(project_path, config)
    if not issues:
        print("✓ No issues found!")
        return 0

    print("Issues found:")
    for issue in issues:
        print(f"  {issue}")
    print()
    print(f"Found {len(issues)} issue(s)")

    return 1 if any(i.severity is RuleSeverity.ERROR for i in issues) else 0


def cmd_profiles(args: argparse.Namespace) -> int:
    """Handle profiles commands."""
    from .config import Config
    from .profiles import get_active_profiles

    if args.profiles_command == "list":
        config = Config.load()
        if config.active_profiles:
            print("Configured profiles:")
            for profile in config.active_profiles:
                description = f" - {profile.metadata.description}" if profile.metadata.description else ""
                print(f"  {profile.name}{description}")
        else:
            print("No profiles found")
        return 0

    elif args.profiles_command == "active":
        project_path = _project_path(args)
        config = Config.load(project_path)
        active = get_active_profiles(project_path, config.active_profiles)
        if active:
            print(f"Active profiles for {project_path}:")
            for profile in active:
                print(f"  {profile.name}")
        else:
            print("No active profiles")
        return 0

    else:
        print("Usage: project-lint profiles {list|active}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
