"""
Type definitions for Agentic Sequencer.

Provides typed dataclasses for tasks, the context threaded between them and
the execution status shown by the sidebar.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Optional

from .task_schemas import ClickResult, ExtractedItem, TaskStatus, TaskType
from .utils import new_task_id


@dataclass
class Task:
    """One atomic automation step.

    Attributes:
        type: The task type
        config: Open camelCase config dict, validated per type at run time
        id: Opaque unique id, stable across reorders
        status: Lifecycle state within the current run
        result: Context update produced by the last successful run
        error: Failure message from the last failed run
    """
    type: TaskType
    config: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_task_id)
    status: TaskStatus = TaskStatus.PENDING
    result: Optional[Any] = None
    error: Optional[str] = None

    def reset(self) -> None:
        """Return the task to pending, dropping any previous outcome."""
        self.status = TaskStatus.PENDING
        self.result = None
        self.error = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display and logging."""
        data = {
            "id": self.id,
            "type": self.type.value,
            "config": dict(self.config),
            "status": self.status.value,
        }
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Create from a dictionary (e.g., a saved sequence entry).

        Status, result and error are never restored; loaded tasks are pending.
        """
        kwargs = {
            "type": TaskType.parse(data["type"]),
            "config": dict(data.get("config") or {}),
        }
        if data.get("id"):
            kwargs["id"] = data["id"]
        return cls(**kwargs)


@dataclass(frozen=True)
class ContextUpdate:
    """Context fields produced by one handler. Unset fields stay None."""
    last_search_query: Optional[str] = None
    last_found_text: Optional[str] = None
    clicked_element: Optional[ClickResult] = None
    typed_text: Optional[str] = None
    extracted_data: Optional[list[ExtractedItem]] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert the set fields to a JSON-friendly dict."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, ClickResult):
                value = value.model_dump(exclude_none=True)
            elif f.name == "extracted_data":
                value = [item.model_dump(exclude_none=True) for item in value]
            data[f.name] = value
        return data


@dataclass(frozen=True)
class ExecutionContext(ContextUpdate):
    """Values visible to every later task within one pass of a sequence."""

    def merge(self, update: ContextUpdate) -> "ExecutionContext":
        """Return a new context with the update's set fields overwriting ours."""
        changes = {
            f.name: getattr(update, f.name)
            for f in fields(update)
            if getattr(update, f.name) is not None
        }
        return replace(self, **changes)


@dataclass
class ExecutionStatus:
    """Status of the current (or last) run, as shown by the sidebar."""
    is_executing: bool = False
    is_paused: bool = False
    current_task_index: int = -1
    total_tasks: int = 0
    current_loop: Optional[int] = None
    total_loops: Optional[int] = None
    extracted_data: Optional[list[ExtractedItem]] = None
    logs: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for signals and display."""
        return {
            "is_executing": self.is_executing,
            "is_paused": self.is_paused,
            "current_task_index": self.current_task_index,
            "total_tasks": self.total_tasks,
            "current_loop": self.current_loop,
            "total_loops": self.total_loops,
            "extracted_data": (
                [item.model_dump(exclude_none=True) for item in self.extracted_data]
                if self.extracted_data is not None else None
            ),
            "logs": list(self.logs),
        }


@dataclass
class RunResult:
    """Outcome of one call to TaskEngine.run."""
    success: bool
    loops_completed: int = 0
    tasks_completed: int = 0
    failed_task_id: Optional[str] = None
    failed_task_index: Optional[int] = None
    error: Optional[str] = None
    context: ExecutionContext = field(default_factory=ExecutionContext)
