"""
Logging and artifact management for Agentic Sequencer.

Handles JSONL task logging and rich console output for a single run.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import get_runs_dir
from .task_schemas import ExtractedItem, TaskStatus, TaskType
from .types import Task
from .utils import is_password_field, slugify


def redact_task_config(task: Task) -> dict[str, Any]:
    """Copy a task config, hiding text typed into password fields."""
    config = dict(task.config)
    if task.type == TaskType.TYPE and is_password_field(str(config.get("targetField") or "")):
        config["typeText"] = "[REDACTED]"
    return config


def _redact_result(task: Task, result: Any) -> Any:
    if (
        isinstance(result, dict)
        and "typed_text" in result
        and is_password_field(str(task.config.get("targetField") or ""))
    ):
        result = {**result, "typed_text": "[REDACTED]"}
    return result


class RunLogger:
    """Manages logging and artifacts for a single sequence run."""

    def __init__(
        self,
        sequence_name: str,
        enable_console: bool = True,
        write_files: bool = True,
        runs_dir: Optional[Path] = None,
    ):
        """Initialize the run logger.

        Args:
            sequence_name: Name of the sequence (used for directory naming)
            enable_console: Whether to print to console
            write_files: Whether to write the JSONL step log
            runs_dir: Parent directory for run directories
        """
        self.sequence_name = sequence_name
        self.console = Console() if enable_console else None
        self.step_count = 0
        self.failures = 0
        self.steps_file: Optional[Path] = None
        self.run_dir: Optional[Path] = None

        if write_files:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            slug = slugify(sequence_name) or "sequence"
            self.run_dir = (runs_dir or get_runs_dir()) / f"{timestamp}_{slug}"
            self.run_dir.mkdir(parents=True, exist_ok=True)
            self.steps_file = self.run_dir / "steps.jsonl"
            self.steps_file.touch()

    def log_task(
        self,
        task: Task,
        index: int,
        loop: int,
        duration_ms: float,
    ) -> None:
        """Log a task that reached a terminal state.

        Args:
            task: The task (status completed or failed)
            index: Position of the task in the sequence
            loop: 1-based loop iteration
            duration_ms: Time spent in the handler
        """
        self.step_count += 1
        if task.status == TaskStatus.FAILED:
            self.failures += 1

        if self.steps_file is None:
            return

        step_data = {
            "step": self.step_count,
            "timestamp": datetime.now().isoformat(),
            "loop": loop,
            "index": index,
            "task_id": task.id,
            "type": task.type.value,
            "config": redact_task_config(task),
            "status": task.status.value,
            "result": _redact_result(task, task.result),
            "error": task.error,
            "duration_ms": round(duration_ms, 1),
        }

        with open(self.steps_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(step_data, default=str) + "\n")

    def print_header(self, task_count: int, loops: int = 1) -> None:
        """Print the run header to console."""
        if not self.console:
            return

        detail = f"{task_count} task(s)"
        if loops > 1:
            detail += f" × {loops} loops"
        self.console.print()
        self.console.print(Panel(
            f"[bold cyan]Sequence:[/bold cyan] {self.sequence_name}\n[dim]{detail}[/dim]",
            title="🤖 Agentic Sequencer",
            border_style="cyan",
        ))
        self.console.print()

    def print_log_line(self, message: str) -> None:
        """Echo a run log line, colored by its marker."""
        if not self.console:
            return

        style = None
        if message.startswith("❌") or "failed" in message:
            style = "red"
        elif message.startswith(("✅", "🎉")):
            style = "green"
        elif "⚠️" in message:
            style = "yellow"
        elif message.startswith("▶️"):
            style = "bold cyan"
        self.console.print(Text(message, style=style) if style else Text(message))

    def print_error(self, error: str) -> None:
        """Print an error message to console."""
        if not self.console:
            return
        self.console.print(f"  [bold red]Error:[/bold red] {error}")

    def print_extracted(self, items: Sequence[ExtractedItem]) -> None:
        """Print extracted links and headings as a table."""
        if not self.console or not items:
            return

        table = Table(title=f"Extracted Data ({len(items)})")
        table.add_column("Type", style="dim")
        table.add_column("Title")
        table.add_column("URL", style="cyan", overflow="fold")
        for item in items:
            table.add_row(item.type, item.title, item.url or "")
        self.console.print()
        self.console.print(table)

    def print_summary(self, success: bool, tasks: Sequence[Task]) -> None:
        """Print the run summary to console."""
        if not self.console:
            return

        table = Table(title="Run Summary", show_header=False)
        table.add_column("Property", style="dim")
        table.add_column("Value")

        table.add_row("Result", "[green]Success[/green]" if success else "[red]Failed[/red]")
        table.add_row("Tasks Executed", str(self.step_count))
        for status in TaskStatus:
            count = sum(1 for t in tasks if t.status == status)
            if count:
                table.add_row(status.value.capitalize(), str(count))
        if self.steps_file is not None:
            table.add_row("Steps Log", str(self.steps_file))

        self.console.print()
        self.console.print(table)
