"""
Enums module - Recurrence cycles and change event types
"""

from enum import Enum


class Cycle(str, Enum):
    """Recurrence tokens accepted for tasks and subtasks"""
    FIVE_MINUTES = "5m"
    ONE_HOUR = "1h"
    FOUR_HOURS = "4h"
    TWELVE_HOURS = "12h"
    ONE_DAY = "1d"
    THREE_DAYS = "3d"
    ONE_WEEK = "1w"
    ONE_MONTH = "1m"
    THREE_MONTHS = "3m"


class ChangeType(str, Enum):
    """Kinds of successful store mutations announced on the event bus"""
    TASK_ADDED = "task_added"
    SUBTASK_ADDED = "subtask_added"
    COMPLETION_CHANGED = "completion_changed"
    TASK_DELETED = "task_deleted"
    SUBTASK_DELETED = "subtask_deleted"
