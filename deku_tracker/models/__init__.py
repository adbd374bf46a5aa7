"""
Models module - Data structures for tasks, subtasks and change events
"""

from .enums import Cycle, ChangeType
from .task import Task, ChangeEvent, utc_now, parse_timestamp, format_timestamp

__all__ = [
    'Cycle',
    'ChangeType',
    'Task',
    'ChangeEvent',
    'utc_now',
    'parse_timestamp',
    'format_timestamp',
]
