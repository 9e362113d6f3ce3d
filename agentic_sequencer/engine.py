"""
Task execution engine for Agentic Sequencer.

Walks a task sequence in order on a single coroutine, dispatching each task
to its handler and threading the produced context into later tasks. A
trailing loop task repeats the rest of the sequence; the first failure ends
the run.
"""

import asyncio
import logging
import time
from typing import Any, Optional, Sequence

from .analyzer import analyze_task_sequence
from .config import EngineConfig
from .errors import PreconditionError
from .handlers import TaskHandlers
from .logger import RunLogger
from .page_view import PageView
from .resolver import TargetResolver
from .task_schemas import TaskStatus, TaskType, parse_task_config
from .task_store import TaskStore
from .types import ExecutionContext, RunResult, Task


logger = logging.getLogger(__name__)


def split_loop(tasks: Sequence[Task]) -> tuple[list[Task], int, bool]:
    """Separate a trailing loop task from the tasks it repeats.

    Returns:
        Tuple of (tasks to dispatch, loop count, has trailing loop)
    """
    if tasks and tasks[-1].type == TaskType.LOOP:
        loop_cfg = parse_task_config(TaskType.LOOP, tasks[-1].config)
        return list(tasks[:-1]), loop_cfg.loop_count, True
    return list(tasks), 1, False


class TaskEngine:
    """Runs task sequences against a page view.

    Only one run may be active per store. Pause and resume take effect at
    task boundaries: a running handler always finishes first.
    """

    def __init__(
        self,
        store: TaskStore,
        page_view: Optional[PageView] = None,
        config: Optional[EngineConfig] = None,
        resolver: Optional[TargetResolver] = None,
        handlers: Optional[TaskHandlers] = None,
        run_logger: Optional[RunLogger] = None,
    ):
        """Initialize the engine.

        Args:
            store: Task store holding the sequence and execution status
            page_view: Page view the handlers act on
            config: Engine configuration
            resolver: Target resolution policy passed to the default handlers
            handlers: Prebuilt handlers (overrides page_view/resolver wiring)
            run_logger: Optional JSONL/console logger for task outcomes
        """
        self.store = store
        self.page_view = page_view
        self.config = config or EngineConfig()
        self.resolver = resolver
        self.run_logger = run_logger
        self._handlers = handlers

        # Set while running is allowed; cleared while paused
        self._resume_gate = asyncio.Event()
        self._resume_gate.set()

    @property
    def is_executing(self) -> bool:
        return self.store.execution_status.is_executing

    @property
    def is_paused(self) -> bool:
        return not self._resume_gate.is_set()

    def pause(self) -> None:
        """Hold the next task until resume() is called."""
        if self.is_paused:
            return
        self._resume_gate.clear()
        self.store.set_execution_status(is_paused=True)
        if self.is_executing:
            self.store.add_log("⏸️ Execution paused")

    def resume(self) -> None:
        """Let a paused run continue with its next task."""
        if not self.is_paused:
            return
        self._resume_gate.set()
        self.store.set_execution_status(is_paused=False)
        if self.is_executing:
            self.store.add_log("▶️ Execution resumed")

    def toggle_pause(self) -> None:
        if self.is_paused:
            self.resume()
        else:
            self.pause()

    def _update_task(self, task: Task, **changes: Any) -> None:
        """Update a task, going through the store when it owns the task."""
        try:
            owned = self.store.get_task(task.id) is task
        except KeyError:
            owned = False
        if owned:
            self.store.update_task(task.id, **changes)
        else:
            for key, value in changes.items():
                setattr(task, key, value)

    def _check_preconditions(self, tasks: Sequence[Task]) -> None:
        if self.is_executing:
            raise PreconditionError("A sequence is already executing")
        if not tasks:
            raise PreconditionError("No tasks to execute")
        if self.page_view is None and self._handlers is None:
            raise PreconditionError("Page view not available")

    async def run(self, tasks: Optional[Sequence[Task]] = None) -> RunResult:
        """Execute a sequence once, or loop_count times with a trailing loop.

        Args:
            tasks: Sequence to run (defaults to the store's tasks)

        Returns:
            RunResult describing how far the run got

        Raises:
            PreconditionError: If the run cannot start; nothing is mutated
        """
        tasks = list(self.store.tasks if tasks is None else tasks)
        self._check_preconditions(tasks)

        handlers = self._handlers or TaskHandlers(
            self.page_view, self.store, self.config, self.resolver
        )
        runnable, loop_count, has_loop = split_loop(tasks)
        analysis = analyze_task_sequence(tasks)

        for task in runnable:
            self._update_task(task, status=TaskStatus.PENDING, result=None, error=None)

        self._resume_gate.set()
        self.store.clear_logs()
        self.store.set_execution_status(
            is_executing=True,
            is_paused=False,
            current_task_index=0,
            total_tasks=len(runnable),
            current_loop=1 if has_loop else None,
            total_loops=loop_count if has_loop else None,
            extracted_data=None,
        )
        self.store.add_log("🚀 Starting execution...")
        if not analysis.is_optimal:
            self.store.add_log("⚠️ Sequence analysis warnings:")
            for suggestion in analysis.suggestions:
                self.store.add_log(f"  - {suggestion}")
        if has_loop:
            self.store.add_log(f"🔁 Sequence will loop {loop_count} times")

        logger.info(f"Running {len(runnable)} task(s) x {loop_count}")

        try:
            return await self._run_loops(handlers, runnable, loop_count, has_loop)
        except asyncio.CancelledError:
            for task in runnable:
                if task.status == TaskStatus.RUNNING:
                    self._update_task(task, status=TaskStatus.FAILED, error="Cancelled")
            self.store.add_log("⏹️ Execution cancelled")
            self.store.set_execution_status(is_executing=False, is_paused=False)
            self._resume_gate.set()
            raise

    async def _run_loops(
        self,
        handlers: TaskHandlers,
        runnable: list[Task],
        loop_count: int,
        has_loop: bool,
    ) -> RunResult:
        tasks_completed = 0
        context = ExecutionContext()

        for loop in range(loop_count):
            if has_loop:
                self.store.set_execution_status(current_loop=loop + 1)
                if loop > 0:
                    self.store.add_log(f"🔁 Loop {loop + 1}/{loop_count} - Restarting sequence")

            # Context never carries over between loop iterations
            context = ExecutionContext()

            for i, task in enumerate(runnable):
                await self._resume_gate.wait()

                self._update_task(task, status=TaskStatus.RUNNING, error=None)
                self.store.set_execution_status(current_task_index=i)
                self.store.add_log(f"▶️ Executing task {i + 1}: {task.type.value}")

                started = time.monotonic()
                try:
                    update = await handlers.dispatch(task, context)
                except Exception as e:
                    message = str(e) or type(e).__name__
                    self._update_task(task, status=TaskStatus.FAILED, error=message)
                    self.store.add_log(f"❌ Task {i + 1} failed: {message}")
                    self.store.set_execution_status(is_executing=False, is_paused=False)
                    self._resume_gate.set()
                    self._log_outcome(task, i, loop, started)
                    logger.warning(f"Task {i + 1} ({task.type.value}) failed: {message}")
                    return RunResult(
                        success=False,
                        loops_completed=loop,
                        tasks_completed=tasks_completed,
                        failed_task_id=task.id,
                        failed_task_index=i,
                        error=message,
                        context=context,
                    )

                context = context.merge(update)
                self._update_task(task, status=TaskStatus.COMPLETED, result=update.to_dict())
                self.store.add_log(f"✅ Task {i + 1} completed")
                self._log_outcome(task, i, loop, started)
                tasks_completed += 1

                # Let page state settle before the next step
                await asyncio.sleep(self.config.inter_task_delay_ms / 1000)

            if loop < loop_count - 1:
                await asyncio.sleep(self.config.loop_delay_ms / 1000)

        self.store.add_log("🎉 All tasks executed successfully!")
        self.store.set_execution_status(
            is_executing=False,
            is_paused=False,
            current_task_index=-1,
            current_loop=None,
            total_loops=None,
        )
        return RunResult(
            success=True,
            loops_completed=loop_count,
            tasks_completed=tasks_completed,
            context=context,
        )

    def _log_outcome(self, task: Task, index: int, loop: int, started: float) -> None:
        if self.run_logger is not None:
            self.run_logger.log_task(
                task,
                index=index,
                loop=loop + 1,
                duration_ms=(time.monotonic() - started) * 1000,
            )
