"""
JSON-file backed tasks and committed events.

Stands in for the persistence layer when the planner is driven from the
command line or from tests.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.models import CommittedEvent, Interval, Task, TaskPriority
from ..domain.timezone import ensure_utc

logger = logging.getLogger(__name__)


def _parse_instant(value: str) -> DateTime:
    parsed = pendulum.parse(value, tz="UTC")
    if not isinstance(parsed, DateTime):
        raise ValueError(f"Could not parse datetime: {value}")
    return ensure_utc(parsed)


def _load_json_list(path: Path) -> List[Dict[str, Any]]:
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list at the root level.")
    return data


def task_from_dict(data: Dict[str, Any]) -> Task:
    """Build a Task from its camelCase JSON representation."""
    return Task(
        id=str(data["id"]),
        title=data.get("title", ""),
        priority=TaskPriority(str(data.get("priority", "MEDIUM")).upper()),
        created_at=_parse_instant(data["createdAt"]),
        due_at=_parse_instant(data["dueAt"]) if data.get("dueAt") else None,
        effort_minutes=data.get("effortMinutes"),
        notes=data.get("notes"),
    )


def load_tasks(path: Path) -> List[Task]:
    """
    Load tasks from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If a task entry is invalid
    """
    tasks: List[Task] = []
    for entry in _load_json_list(path):
        try:
            tasks.append(task_from_dict(entry))
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Invalid task entry {entry!r}: {exc}") from exc
    return tasks


class JsonEventStore:
    """
    In-memory committed events, optionally loaded from a JSON file.

    Each entry looks like ``{"id", "taskId", "startAt", "endAt"}``.
    """

    def __init__(self, events: Optional[List[CommittedEvent]] = None):
        self._events: List[CommittedEvent] = list(events or [])

    @classmethod
    def load(cls, path: Optional[Path]) -> "JsonEventStore":
        """Load events from ``path``; a missing path yields an empty store."""
        if path is None:
            return cls()

        events: List[CommittedEvent] = []
        for entry in _load_json_list(path):
            try:
                events.append(
                    CommittedEvent(
                        id=str(entry["id"]),
                        task_id=str(entry.get("taskId", "")),
                        interval=Interval(
                            start_at=_parse_instant(entry["startAt"]),
                            end_at=_parse_instant(entry["endAt"]),
                        ),
                    )
                )
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping invalid event entry %r: %s", entry, exc)
                continue
        return cls(events)

    def all_intervals(self) -> List[Interval]:
        return [event.interval for event in self._events]

    def get_event(self, event_id: str) -> Optional[CommittedEvent]:
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    def list_overlapping(
        self,
        start: DateTime,
        end: DateTime,
        exclude_event_id: Optional[str] = None,
    ) -> List[CommittedEvent]:
        """Events overlapping ``[start, end)``, minus ``exclude_event_id``."""
        return [
            event for event in self._events
            if event.id != exclude_event_id
            and event.interval.start_at < end
            and event.interval.end_at > start
        ]
