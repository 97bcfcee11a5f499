"""Append-only JSON-lines log of evaluated hook events.

One file per UTC day, ``hook-log-YYYY-MM-DD.jsonl``. Every write opens,
appends one line and closes the file, so a crash loses at most the entry
being written.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..utils import get_log_dir
from . import Event

logger = logging.getLogger("project-lint.hooks")


@dataclass
class HookLogEntry:
    """One logged hook evaluation."""
    timestamp: datetime
    event_type: str
    source: str
    decision: str
    session_id: str | None = None
    file_path: str | None = None
    tool_name: str | None = None
    command: str | None = None
    message: str | None = None
    duration_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HookLogEntry:
        duration = data.get("duration_ms")
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            event_type=data["event_type"],
            source=data["source"],
            decision=data["decision"],
            session_id=data.get("session_id"),
            file_path=data.get("file_path"),
            tool_name=data.get("tool_name"),
            command=data.get("command"),
            message=data.get("message"),
            duration_ms=int(duration) if duration is not None else None,
        )


@dataclass
class HookStats:
    """Aggregate counts over logged hook events."""
    total_events: int = 0
    event_counts: dict[str, int] = field(default_factory=dict)
    source_counts: dict[str, int] = field(default_factory=dict)
    decision_counts: dict[str, int] = field(default_factory=dict)
    total_duration_ms: int = 0
    event_count_with_duration: int = 0
    min_duration_ms: int = 0
    max_duration_ms: int = 0

    def average_duration_ms(self) -> float:
        if self.event_count_with_duration == 0:
            return 0.0
        return self.total_duration_ms / self.event_count_with_duration

    def add(self, entry: HookLogEntry) -> None:
        self.total_events += 1
        self.event_counts[entry.event_type] = self.event_counts.get(entry.event_type, 0) + 1
        self.source_counts[entry.source] = self.source_counts.get(entry.source, 0) + 1
        self.decision_counts[entry.decision] = self.decision_counts.get(entry.decision, 0) + 1

        if entry.duration_ms is not None:
            duration = entry.duration_ms
            self.total_duration_ms += duration
            self.event_count_with_duration += 1
            if self.event_count_with_duration == 1:
                self.min_duration_ms = duration
                self.max_duration_ms = duration
            else:
                self.min_duration_ms = min(self.min_duration_ms, duration)
                self.max_duration_ms = max(self.max_duration_ms, duration)


def get_log_file(log_dir: Path, now: datetime | None = None) -> Path:
    """Log file for the UTC day of ``now``."""
    now = now or datetime.now(timezone.utc)
    return log_dir / f"hook-log-{now.strftime('%Y-%m-%d')}.jsonl"


class HookLogger:
    """Writes and reads today's hook log.

    Build one per process and pass it to whatever needs to log.
    """

    def __init__(self, log_dir: Path | None = None) -> None:
        self.log_dir = log_dir or get_log_dir()
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = get_log_file(self.log_dir)
        logger.debug("Hook logging to: %s", self.log_file)

    def log_event(
        self,
        event: Event,
        decision: str,
        message: str | None = None,
        duration_ms: int | None = None,
    ) -> None:
        """Append one entry. Write failures are logged, not raised."""
        ctx = event.context
        entry = HookLogEntry(
            timestamp=datetime.now(timezone.utc),
            event_type=event.event_type.variant,
            source=ctx.ide_source,
            decision=decision,
            session_id=event.session_id,
            file_path=str(ctx.file_path) if ctx.file_path is not None else None,
            tool_name=ctx.tool_name,
            command=ctx.command,
            message=message,
            duration_ms=duration_ms,
        )
        line = json.dumps(entry.to_dict(), ensure_ascii=False) + "\n"

        try:
            with self.log_file.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to write hook log %s: %s", self.log_file, e)
            return
        logger.debug("Logged hook event: %s", entry.event_type)

    def get_recent_logs(self, limit: int | None = None) -> list[HookLogEntry]:
        """Return the last ``limit`` readable entries from today's file."""
        if not self.log_file.exists():
            return []

        entries = []
        for line in self.log_file.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                entries.append(HookLogEntry.from_dict(json.loads(line)))
            except (ValueError, KeyError, TypeError):
                logger.warning("Failed to parse log line: %s", line)

        if limit is not None:
            entries = entries[max(len(entries) - limit, 0):]
        return entries

    def get_stats(self) -> HookStats:
        stats = HookStats()
        for entry in self.get_recent_logs():
            stats.add(entry)
        return stats
