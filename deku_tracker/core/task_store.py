"""
Task Store - Tasks, subtasks and their completion state.

All entities live in one table keyed by id; a subtask carries its parent's
id and sits in the parent's ordered ``subtasks`` list. Mutations are
serialized by one lock, re-derive the parent's completion where needed,
persist the whole list to a JSON file (when a path is configured) and then
publish a ChangeEvent on the event bus.
"""

import copy
import json
import os
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union

from deku_tracker.core.cycles import cycle_to_duration, cycle_to_timedelta, is_known_cycle, normalize_cycle
from deku_tracker.core.event_bus import EventBus
from deku_tracker.core.propagation import propagate_completion
from deku_tracker.models.enums import ChangeType
from deku_tracker.models.task import ChangeEvent, Task, utc_now
from deku_tracker.utils.exceptions import (
    InvalidOperationError,
    InvalidParameterError,
    MissingParameterError,
    PersistenceError,
    TaskNotFoundError,
)
from deku_tracker.utils.logger import get_logger

logger = get_logger(__name__)


class TaskStore:
    """Single-writer store for tasks and subtasks with optional JSON persistence."""

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.db_path = Path(db_path) if db_path else None
        self.event_bus = event_bus
        self._clock = clock
        self._new_id = id_factory
        self._lock = threading.RLock()
        self._entities: Dict[str, Task] = {}
        self._order: List[str] = []

        if self.db_path:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._load()

        logger.info(f"TaskStore ready db={self.db_path or ':memory:'} tasks={len(self._order)}")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if not self.db_path.exists():
            self._save()
            logger.info(f"Created new task store at {self.db_path}")
            return

        try:
            raw = self.db_path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(str(self.db_path), "read", "cannot read task file", original_error=e)

        if not raw.strip():
            return

        try:
            data = json.loads(raw)
            items = data.get("tasks", []) if isinstance(data, dict) else data
            if not isinstance(items, list):
                raise ValueError("'tasks' is not a list")
            tasks = [Task.from_dict(item) for item in items]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            backup = self.db_path.with_suffix(self.db_path.suffix + ".corrupt")
            logger.warning(
                f"Error parsing tasks file {self.db_path}: {e}. "
                f"Moved it to {backup} and starting with an empty task list."
            )
            os.replace(self.db_path, backup)
            self._save()
            return

        now = self._clock()
        for task in tasks:
            if not self._register_loaded(task):
                continue
            propagate_completion(task, task.subtasks, now)

        logger.info(f"Loaded {len(self._order)} tasks from {self.db_path}")

    def _register_loaded(self, task: Task) -> bool:
        if task.id in self._entities:
            logger.warning(f"Skipping duplicate task id in task file: {task.id}")
            return False
        self._sanitize_cycle(task)
        self._entities[task.id] = task
        self._order.append(task.id)

        kept: List[Task] = []
        for sub in task.subtasks:
            if sub.id in self._entities:
                logger.warning(f"Skipping duplicate subtask id in task file: {sub.id}")
                continue
            self._sanitize_cycle(sub)
            self._entities[sub.id] = sub
            kept.append(sub)
        task.subtasks = kept
        return True

    @staticmethod
    def _sanitize_cycle(task: Task) -> None:
        if task.cycle and not is_known_cycle(task.cycle):
            logger.warning(f"Dropping unrecognized cycle '{task.cycle}' on {task.id}")
            task.cycle = None

    def _save(self) -> None:
        """Write every task to the JSON file via a temp file and atomic rename."""
        if not self.db_path:
            return
        payload = {"tasks": [self._entities[tid].to_dict() for tid in self._order]}
        tmp_path = self.db_path.with_suffix(self.db_path.suffix + ".tmp")
        try:
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.db_path)
        except OSError as e:
            raise PersistenceError(str(self.db_path), "write", "cannot save tasks", original_error=e)
        logger.debug(f"Saved {len(self._order)} tasks to {self.db_path}")

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """
        Hold the lock for one mutation and persist it on success.

        If saving fails the in-memory state is restored, so memory and disk
        never disagree.
        """
        with self._lock:
            backup = copy.deepcopy((self._order, self._entities)) if self.db_path else None
            try:
                yield
                self._save()
            except PersistenceError:
                if backup is not None:
                    self._order, self._entities = backup
                raise

    def _publish(self, change_type: ChangeType, entity_id: str, parent_id: Optional[str] = None) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(ChangeEvent(change_type, entity_id, parent_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_text(text: Optional[str]) -> str:
        if text is None:
            raise MissingParameterError("text", context="task creation")
        if not isinstance(text, str):
            raise InvalidParameterError("text", "must be a string", expected_type="str", actual_value=text)
        cleaned = text.strip()
        if not cleaned:
            raise InvalidParameterError("text", "task text cannot be empty")
        return cleaned

    def _build(self, text: str, cycle: Optional[str], parent_id: Optional[str] = None) -> Task:
        created_at = self._clock()
        entity_id = self._new_id()
        while entity_id in self._entities:
            entity_id = self._new_id()
        due_at = created_at + cycle_to_timedelta(cycle) if cycle_to_duration(cycle) > 0 else None
        return Task(
            id=entity_id,
            text=text,
            created_at=created_at,
            cycle=cycle,
            due_at=due_at,
            parent_id=parent_id,
        )

    def _resolve(self, entity_id: str) -> Task:
        entity = self._entities.get(entity_id)
        if entity is None:
            raise TaskNotFoundError(entity_id)
        return entity

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_task(self, text: str, cycle: Optional[str] = None) -> Task:
        """
        Create a top-level task.

        The due date is derived once from the cycle and never recomputed.

        Raises:
            ValidationError: empty text or unrecognized cycle
        """
        cleaned = self._clean_text(text)
        cycle = normalize_cycle(cycle)

        with self._transaction():
            task = self._build(cleaned, cycle)
            self._entities[task.id] = task
            self._order.append(task.id)
            result = task.copy()

        logger.info(f"Added new task: {cleaned}, ID: {task.id}, Cycle: {cycle}")
        self._publish(ChangeType.TASK_ADDED, task.id)
        return result

    def add_subtask(self, parent_id: str, text: str, cycle: Optional[str] = None) -> Task:
        """
        Append a subtask to a top-level task.

        A new subtask is incomplete, so a completed parent becomes incomplete.

        Raises:
            ValidationError: empty text or unrecognized cycle
            TaskNotFoundError: parent_id is not a top-level task
        """
        cleaned = self._clean_text(text)
        cycle = normalize_cycle(cycle)

        with self._transaction():
            parent = self._entities.get(parent_id)
            if parent is None or parent.is_subtask:
                raise TaskNotFoundError(parent_id, role="parent task")

            subtask = self._build(cleaned, cycle, parent_id=parent.id)
            self._entities[subtask.id] = subtask
            parent.subtasks.append(subtask)
            propagate_completion(parent, parent.subtasks, subtask.created_at)
            result = subtask.copy()

        logger.info(f"Added new subtask: {cleaned} to parent {parent_id}")
        self._publish(ChangeType.SUBTASK_ADDED, subtask.id, parent_id)
        return result

    def set_completion(self, entity_id: str, completed: bool) -> None:
        """
        Mark a task or subtask complete or incomplete.

        Raises:
            TaskNotFoundError: no task or subtask has this id
            InvalidOperationError: the task owns subtasks, whose states
                decide its completion
        """
        with self._transaction():
            entity = self._resolve(entity_id)
            if entity.subtasks:
                raise InvalidOperationError(
                    "set_completion",
                    "task completion is derived from its subtasks",
                    entity_id=entity_id,
                )

            now = self._clock()
            entity.completed_at = now if completed else None

            parent_id = entity.parent_id
            if parent_id is not None:
                parent = self._entities[parent_id]
                if propagate_completion(parent, parent.subtasks, now):
                    logger.info(
                        f"Parent {parent_id} is now {'complete' if parent.is_completed else 'incomplete'}"
                    )

        logger.info(f"Set completion of {entity_id} to {completed}")
        self._publish(ChangeType.COMPLETION_CHANGED, entity_id, parent_id)

    def delete_entity(self, entity_id: str) -> None:
        """
        Delete a task with all its subtasks, or a single subtask.

        Raises:
            TaskNotFoundError: no task or subtask has this id
        """
        with self._transaction():
            entity = self._resolve(entity_id)
            parent_id = entity.parent_id

            if parent_id is None:
                for sub in entity.subtasks:
                    del self._entities[sub.id]
                del self._entities[entity_id]
                self._order.remove(entity_id)
                change_type = ChangeType.TASK_DELETED
            else:
                parent = self._entities[parent_id]
                parent.subtasks = [s for s in parent.subtasks if s.id != entity_id]
                del self._entities[entity_id]
                propagate_completion(parent, parent.subtasks, self._clock())
                change_type = ChangeType.SUBTASK_DELETED

        logger.info(f"Deleted {change_type.value.split('_')[0]} {entity_id}")
        self._publish(change_type, entity_id, parent_id)

    def get(self, entity_id: str) -> Task:
        """Snapshot of one task or subtask."""
        with self._lock:
            return self._resolve(entity_id).copy()

    def list_tasks(self) -> List[Task]:
        """Snapshot of every task with its subtasks, in insertion order."""
        with self._lock:
            return [self._entities[tid].copy() for tid in self._order]

    def list_tasks_for_display(self) -> List[Task]:
        """Incomplete tasks first, then oldest first (stable)."""
        tasks = self.list_tasks()
        return sorted(tasks, key=lambda t: (t.completed_at is not None, t.created_at))

    def counts(self) -> Dict[str, int]:
        with self._lock:
            subtasks = sum(1 for e in self._entities.values() if e.is_subtask)
            completed = sum(1 for tid in self._order if self._entities[tid].is_completed)
            return {
                "tasks": len(self._order),
                "subtasks": subtasks,
                "completed_tasks": completed,
            }

    def __contains__(self, entity_id: str) -> bool:
        with self._lock:
            return entity_id in self._entities

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)
