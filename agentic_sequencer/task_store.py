"""
Task store for Agentic Sequencer.

Holds the ordered task sequence being built, the execution status of the
current run and its log lines. The presentation layer and the engine both
read and write it; listeners are notified after every change.
"""

import logging
from dataclasses import fields
from typing import Any, Callable, Iterable, Optional

from .task_schemas import TaskType
from .types import ExecutionStatus, Task


logger = logging.getLogger(__name__)


# Listener signature: (event, payload) where event is one of
# "tasks" (list[Task]), "task" (Task), "status" (ExecutionStatus), "log" (str)
Listener = Callable[[str, Any], None]

_STATUS_FIELDS = {f.name for f in fields(ExecutionStatus)} - {"logs"}


class TaskStore:
    """Ordered task list plus execution status and log sink."""

    def __init__(self, tasks: Optional[Iterable[Task]] = None):
        self._tasks: list[Task] = list(tasks or [])
        self._status = ExecutionStatus()
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        """Register a callback for store changes."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        """Unregister a callback. Unknown callbacks are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: str, payload: Any) -> None:
        for listener in list(self._listeners):
            listener(event, payload)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    @property
    def tasks(self) -> list[Task]:
        """Snapshot of the task sequence, in order."""
        return list(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def get_task(self, task_id: str) -> Task:
        """Look up a task by id.

        Raises:
            KeyError: If no task has that id
        """
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise KeyError(f"No task with id {task_id}")

    def index_of(self, task_id: str) -> int:
        """Position of a task in the sequence."""
        return self._tasks.index(self.get_task(task_id))

    def add_task(self, task: Task) -> Task:
        """Append a task to the sequence."""
        if any(t.id == task.id for t in self._tasks):
            raise ValueError(f"Duplicate task id {task.id}")
        self._tasks.append(task)
        self._notify("tasks", self.tasks)
        return task

    def create_task(self, task_type: str, config: Optional[dict[str, Any]] = None) -> Task:
        """Create a pending task of a type (as when dropped into the list)."""
        return self.add_task(Task(type=TaskType.parse(task_type), config=dict(config or {})))

    def update_task(self, task_id: str, **changes: Any) -> Task:
        """Update fields of a task in place.

        Args:
            task_id: Id of the task to update
            **changes: Task fields (status, result, error, config)

        Raises:
            KeyError: If the task does not exist
            AttributeError: If a change names an unknown or read-only field
        """
        task = self.get_task(task_id)
        for key, value in changes.items():
            if key in ("id", "type") or not hasattr(task, key):
                raise AttributeError(f"Cannot update task field: {key}")
            setattr(task, key, value)
        self._notify("task", task)
        return task

    def remove_task(self, task_id: str) -> Task:
        """Remove a task from the sequence."""
        task = self.get_task(task_id)
        self._tasks.remove(task)
        self._notify("tasks", self.tasks)
        return task

    def reorder_tasks(self, drag_index: int, hover_index: int) -> None:
        """Move the task at drag_index so it ends up at hover_index.

        Raises:
            IndexError: If either index is out of range
        """
        size = len(self._tasks)
        if not (0 <= drag_index < size and 0 <= hover_index < size):
            raise IndexError(
                f"Cannot move task {drag_index} to {hover_index} in a list of {size}"
            )
        task = self._tasks.pop(drag_index)
        self._tasks.insert(hover_index, task)
        self._notify("tasks", self.tasks)

    def clear_tasks(self) -> None:
        """Remove every task."""
        self._tasks.clear()
        self._notify("tasks", self.tasks)

    def load_sequence(self, tasks: Iterable[Task]) -> None:
        """Replace the sequence with loaded tasks, all pending.

        Raises:
            ValueError: If two tasks share an id; the current sequence is kept
        """
        loaded = list(tasks)
        seen: set[str] = set()
        for task in loaded:
            if task.id in seen:
                raise ValueError(f"Duplicate task id {task.id}")
            seen.add(task.id)
        for task in loaded:
            task.reset()
        self._tasks = loaded
        self._notify("tasks", self.tasks)

    # ------------------------------------------------------------------
    # Execution status and logs
    # ------------------------------------------------------------------

    @property
    def execution_status(self) -> ExecutionStatus:
        return self._status

    def set_execution_status(self, **changes: Any) -> ExecutionStatus:
        """Merge changes into the execution status.

        Raises:
            AttributeError: If a change names an unknown status field
        """
        for key, value in changes.items():
            if key not in _STATUS_FIELDS:
                raise AttributeError(f"Unknown execution status field: {key}")
            setattr(self._status, key, value)
        self._notify("status", self._status)
        return self._status

    def reset_execution_status(self) -> None:
        """Return the status to idle, keeping the logs."""
        logs = self._status.logs
        self._status = ExecutionStatus(logs=logs)
        self._notify("status", self._status)

    def add_log(self, message: str) -> None:
        """Append a line to the run log."""
        self._status.logs.append(message)
        logger.debug(message)
        self._notify("log", message)

    def clear_logs(self) -> None:
        self._status.logs.clear()
        self._notify("status", self._status)
