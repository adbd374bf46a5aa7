"""
Deku Task Tracker - personal task tracking with recurring due dates

Tasks may carry a recurrence cycle that sets their due date, may own one
level of subtasks, and complete automatically once every subtask is done.
Clients receive a push signal after each change and refetch.

Configuration:
    Create a config.properties file (see config.properties.example) or
    export DEKU_* environment variables:

    DEKU_DB_PATH=./data/tasks.json
    DEKU_PORT=8080
    DEKU_LOG_LEVEL=INFO

Example:
    >>> from deku_tracker import TaskStore, is_overdue, utc_now
    >>>
    >>> store = TaskStore()
    >>> task = store.add_task("Buy milk", cycle="1d")
    >>> is_overdue(task, utc_now())
    False
"""

__version__ = "1.0.0"
__all__ = [
    'TaskStore',
    'EventBus',
    'ChangeSubscription',
    'Task',
    'Cycle',
    'TrackerConfig',
    'cycle_to_duration',
    'is_overdue',
    'due_text',
    'utc_now',
]

from .config import TrackerConfig
from .core import EventBus, ChangeSubscription, TaskStore, cycle_to_duration, is_overdue, due_text
from .models import Task, Cycle, utc_now
