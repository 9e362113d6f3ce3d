"""
Sequence persistence for Agentic Sequencer.

Provides the persistence interface the engine and UI call, and a JSON file
implementation of it.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from .config import get_sequences_path
from .errors import TaskConfigError
from .types import Task


logger = logging.getLogger(__name__)


class SequencePersistence(ABC):
    """Save/load/delete named sequences.

    Every operation returns a result dict with a "success" flag and either
    the payload or an "error" message; none of them raise.
    """

    @abstractmethod
    def get_all_sequences(self) -> dict[str, Any]:
        """Returns {"success", "sequences": [{name, tasks, created_at, updated_at}]}."""

    @abstractmethod
    def save_sequence(self, name: str, tasks: Iterable[Task]) -> dict[str, Any]:
        """Returns {"success", "error"?}."""

    @abstractmethod
    def load_sequence(self, name: str) -> dict[str, Any]:
        """Returns {"success", "sequence"?: list[Task], "error"?}."""

    @abstractmethod
    def delete_sequence(self, name: str) -> dict[str, Any]:
        """Returns {"success", "error"?}."""


def _task_record(task: Task) -> dict[str, Any]:
    """Persisted form of a task: identity and config only."""
    return {"id": task.id, "type": task.type.value, "config": dict(task.config)}


class JsonSequenceStore(SequencePersistence):
    """Thread-safe sequence storage in a single JSON file."""

    def __init__(self, path: Optional[Path] = None):
        """Initialize the store.

        Args:
            path: JSON file to use (defaults to ~/.agentic_sequencer/sequences.json)
        """
        self.path = path or get_sequences_path()
        self._file_lock = threading.Lock()

    def _read(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable sequence file {self.path}: {e}")
            return {}
        sequences = data.get("sequences", {}) if isinstance(data, dict) else None
        if not isinstance(sequences, dict):
            logger.warning(f"Ignoring malformed sequence file {self.path}")
            return {}
        valid = {}
        for name, record in sequences.items():
            if not isinstance(record, dict):
                logger.warning(f"Skipping malformed sequence {name!r} in {self.path}")
                continue
            record.setdefault("name", name)
            valid[name] = record
        return valid

    def _write(self, sequences: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps({"sequences": sequences}, indent=2),
            encoding="utf-8",
        )

    def get_all_sequences(self) -> dict[str, Any]:
        with self._file_lock:
            sequences = self._read()
        ordered = sorted(sequences.values(), key=lambda s: s.get("updated_at", ""), reverse=True)
        return {"success": True, "sequences": ordered}

    def save_sequence(self, name: str, tasks: Iterable[Task]) -> dict[str, Any]:
        name = (name or "").strip()
        if not name:
            return {"success": False, "error": "Sequence name is required"}

        now = datetime.now().isoformat()
        try:
            with self._file_lock:
                sequences = self._read()
                existing = sequences.get(name, {})
                sequences[name] = {
                    "name": name,
                    "tasks": [_task_record(t) for t in tasks],
                    "created_at": existing.get("created_at", now),
                    "updated_at": now,
                }
                self._write(sequences)
        except OSError as e:
            return {"success": False, "error": str(e)}

        logger.debug(f"Saved sequence {name!r}")
        return {"success": True}

    def load_sequence(self, name: str) -> dict[str, Any]:
        with self._file_lock:
            record = self._read().get(name)
        if record is None:
            return {"success": False, "error": f"Sequence not found: {name}"}

        try:
            tasks = [Task.from_dict(t) for t in record.get("tasks", [])]
        except (KeyError, TypeError, ValueError, TaskConfigError) as e:
            return {"success": False, "error": f"Corrupt sequence {name}: {e}"}
        return {"success": True, "sequence": tasks}

    def delete_sequence(self, name: str) -> dict[str, Any]:
        try:
            with self._file_lock:
                sequences = self._read()
                if name not in sequences:
                    return {"success": False, "error": f"Sequence not found: {name}"}
                del sequences[name]
                self._write(sequences)
        except OSError as e:
            return {"success": False, "error": str(e)}
        return {"success": True}


def load_tasks_file(path: Path) -> list[Task]:
    """Read a sequence from a standalone JSON file.

    Accepts either a bare list of tasks or an object with a "tasks" list.

    Raises:
        ValueError: If the file does not contain a task list
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("tasks")
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a task list")
    return [Task.from_dict(item) for item in data]


def dump_tasks_file(path: Path, tasks: Iterable[Task]) -> None:
    """Write a sequence to a standalone JSON file."""
    Path(path).write_text(
        json.dumps({"tasks": [_task_record(t) for t in tasks]}, indent=2),
        encoding="utf-8",
    )
