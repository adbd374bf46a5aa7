"""
Task models - Tasks, subtasks and the change events the store publishes.

Tasks and subtasks share one shape. A subtask carries the id of its parent
and never owns subtasks of its own.
"""

import copy
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .enums import ChangeType


_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 text for a timestamp, or None."""
    return value.isoformat() if value is not None else None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp.

    Accepts a trailing 'Z', more than six fractional digits (as written by
    other JSON encoders) and naive values, which are taken to be UTC.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(r"\1", text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Task:
    """A task, or a subtask when parent_id is set."""
    id: str
    text: str
    created_at: datetime
    cycle: Optional[str] = None
    due_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    parent_id: Optional[str] = None
    subtasks: List["Task"] = field(default_factory=list)

    @property
    def is_subtask(self) -> bool:
        return self.parent_id is not None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def copy(self) -> "Task":
        """Deep copy, so callers never share state with the store."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "cycle": self.cycle,
            "createdAt": format_timestamp(self.created_at),
            "dueAt": format_timestamp(self.due_at),
            "completedAt": format_timestamp(self.completed_at),
        }
        if self.is_subtask:
            data["parentId"] = self.parent_id
        else:
            data["subtasks"] = [s.to_dict() for s in self.subtasks]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], parent_id: Optional[str] = None) -> "Task":
        """
        Build a task from its JSON form.

        Older task files omit dueAt and completedAt and store "" for
        "no cycle"; all three load as None. Nested subtasks of a subtask
        are ignored.
        """
        created_at = parse_timestamp(data.get("createdAt")) or utc_now()
        task = cls(
            id=str(data["id"]),
            text=str(data.get("text", "")),
            created_at=created_at,
            cycle=data.get("cycle") or None,
            due_at=parse_timestamp(data.get("dueAt")),
            completed_at=parse_timestamp(data.get("completedAt")),
            parent_id=parent_id,
        )
        if parent_id is None:
            task.subtasks = [
                cls.from_dict(item, parent_id=task.id)
                for item in data.get("subtasks") or []
            ]
        return task


@dataclass
class ChangeEvent:
    """Announcement of one successful store mutation."""
    change_type: ChangeType
    entity_id: str
    parent_id: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.change_type.value,
            "id": self.entity_id,
            "parentId": self.parent_id,
            "timestamp": format_timestamp(self.timestamp),
        }
