"""
Scheduling evaluator - overdue status and due-date wording.

Everything here is a pure function of an entity and the ``now`` passed in;
no clock is read and nothing is stored. Results are computed at query time.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from deku_tracker.core.cycles import (
    DAY_MS,
    HOUR_MS,
    MINUTE_MS,
    cycle_to_duration,
    cycle_to_timedelta,
)
from deku_tracker.models.task import Task


def effective_due_at(entity: Task) -> Optional[datetime]:
    """
    The instant an entity falls due.

    An explicit due_at always wins. Records without one (older task files
    stored only the cycle) fall back to created_at + cycle.
    """
    if entity.due_at is not None:
        return entity.due_at
    if cycle_to_duration(entity.cycle) > 0:
        return entity.created_at + cycle_to_timedelta(entity.cycle)
    return None


def _aware(now: datetime) -> datetime:
    # Naive instants are UTC, as in parse_timestamp.
    return now.replace(tzinfo=timezone.utc) if now.tzinfo is None else now


def is_overdue(entity: Task, now: datetime) -> bool:
    """True if the entity is incomplete and ``now`` is strictly past its due basis."""
    if entity.completed_at is not None:
        return False
    now = _aware(now)
    if entity.due_at is not None:
        return now > entity.due_at
    duration = cycle_to_duration(entity.cycle)
    if duration <= 0:
        return False
    return now - entity.created_at > timedelta(milliseconds=duration)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def due_text(entity: Task, now: datetime) -> str:
    """
    "Due in N <unit>" or "Overdue by N <unit>" for an entity with a due_at.

    The offset is reported in the largest whole unit among days, hours and
    minutes. ``now == due_at`` reads "Due in 0 minutes"; any other offset
    under a minute reads as one minute. Entities without due_at get "".
    """
    if entity.due_at is None:
        return ""

    now = _aware(now)
    diff_ms = (entity.due_at - now) // timedelta(milliseconds=1)
    if diff_ms == 0:
        return "Due in 0 minutes"

    span = abs(diff_ms)
    days = span // DAY_MS
    hours = (span % DAY_MS) // HOUR_MS
    minutes = (span % HOUR_MS) // MINUTE_MS

    if days > 0:
        amount = _plural(days, "day")
    elif hours > 0:
        amount = _plural(hours, "hour")
    else:
        amount = _plural(max(minutes, 1), "minute")

    if diff_ms < 0:
        return f"Overdue by {amount}"
    return f"Due in {amount}"


def describe(entity: Task, now: datetime) -> Dict[str, Any]:
    """JSON form of an entity with its derived schedule facts attached."""
    data = entity.to_dict()
    data["overdue"] = is_overdue(entity, now)
    data["dueText"] = due_text(entity, now)
    if not entity.is_subtask:
        data["subtasks"] = [describe(sub, now) for sub in entity.subtasks]
    return data


def schedule_view(tasks: Iterable[Task], now: datetime) -> List[Dict[str, Any]]:
    return [describe(task, now) for task in tasks]
