"""
Core module - Cycle model, task store, completion propagation, scheduling
and change broadcast
"""

from .cycles import cycle_to_duration, cycle_to_timedelta, is_known_cycle, normalize_cycle
from .event_bus import EventBus, ChangeSubscription
from .propagation import derive_parent_completion, propagate_completion
from .scheduling import effective_due_at, is_overdue, due_text, schedule_view
from .task_store import TaskStore

__all__ = [
    'cycle_to_duration',
    'cycle_to_timedelta',
    'is_known_cycle',
    'normalize_cycle',
    'EventBus',
    'ChangeSubscription',
    'derive_parent_completion',
    'propagate_completion',
    'effective_due_at',
    'is_overdue',
    'due_text',
    'schedule_view',
    'TaskStore',
]
