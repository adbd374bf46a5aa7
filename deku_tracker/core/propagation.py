"""
Completion propagation - derives a parent task's completion from its subtasks.

The entity store is the only writer of a parent's completed_at once the
parent owns subtasks; it calls propagate_completion after every subtask
toggle, add or delete while holding its lock.
"""

from datetime import datetime
from typing import Optional, Sequence

from deku_tracker.models.task import Task


def derive_parent_completion(
    current: Optional[datetime],
    subtasks: Sequence[Task],
    now: datetime,
) -> Optional[datetime]:
    """
    Completion timestamp a parent should carry given its subtasks.

    Re-derived from the whole sequence every time. With no subtasks the
    parent is a plain task and keeps whatever it had. When every subtask is
    complete an existing timestamp is kept, otherwise the parent completes
    at ``now``.
    """
    if not subtasks:
        return current
    if all(sub.completed_at is not None for sub in subtasks):
        return current if current is not None else now
    return None


def propagate_completion(parent: Task, subtasks: Sequence[Task], now: datetime) -> bool:
    """Apply the derived completion to ``parent``. Returns True if it changed."""
    derived = derive_parent_completion(parent.completed_at, subtasks, now)
    if derived == parent.completed_at:
        return False
    parent.completed_at = derived
    return True
