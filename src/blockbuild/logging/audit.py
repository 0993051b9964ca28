"""Structured JSONL build log utilities."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path

BUILD_LOG_FILENAME = "build.jsonl"

LEVEL_INFO = "info"
LEVEL_WARNING = "warning"
LEVEL_ERROR = "error"


@dataclass(slots=True, frozen=True)
class BuildEvent:
    """One bundle operation outcome."""

    timestamp: str
    bundle: str
    action: str
    target: str
    ok: bool
    level: str = LEVEL_INFO
    message: str = ""
    metadata: dict[str, object] = field(default_factory=dict)


def format_timestamp(moment: datetime) -> str:
    """Return an ISO-8601 UTC timestamp with millisecond precision."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_timestamp() -> str:
    """Return the current ISO-8601 UTC timestamp."""
    return format_timestamp(datetime.now(tz=UTC))


class JsonlBuildLogger:
    """Append-only JSONL build logger and bounded reader."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        """Return on-disk JSONL path."""
        return self._path

    def append(self, event: BuildEvent) -> None:
        """Append an event as one JSON object per line."""
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(event), sort_keys=True))
            handle.write("\n")

    def read(
        self,
        since: str | None = None,
        limit: int = 50,
        action: str | None = None,
    ) -> list[dict[str, object]]:
        """Read recent events, optionally filtered by timestamp lower bound and action."""
        if limit < 1:
            return []
        entries: list[dict[str, object]] = []
        if not self._path.exists():
            return entries
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    record = json.loads(stripped)
                except json.JSONDecodeError:
                    continue
                if not isinstance(record, dict):
                    continue
                if since is not None:
                    ts = record.get("timestamp")
                    if not isinstance(ts, str) or ts < since:
                        continue
                if action is not None and record.get("action") != action:
                    continue
                entries.append(record)
        if len(entries) <= limit:
            return entries
        return entries[-limit:]
