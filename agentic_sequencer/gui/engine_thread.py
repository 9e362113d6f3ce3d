"""
Engine Thread for QThread-based execution.

Runs the task engine's asyncio loop off the GUI thread and reports progress
through Qt Signals. Pause and resume requests from the GUI thread are handed
to the engine's loop with call_soon_threadsafe.
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from PySide6.QtCore import QThread, Signal

from ..browser_manager import LazyBrowserManager
from ..config import EngineConfig
from ..engine import TaskEngine
from ..page_view import PageView
from ..resolver import TargetResolver
from ..task_store import TaskStore
from ..types import RunResult, Task


PageViewFactory = Callable[[], Awaitable[PageView]]


class EngineThread(QThread):
    """Background thread for sequence execution.

    Uses typed signals for GUI updates; store events are forwarded as they
    happen.
    """

    signal_log = Signal(dict)            # {content, timestamp}
    signal_status = Signal(dict)         # ExecutionStatus.to_dict()
    signal_task = Signal(dict)           # Task.to_dict()
    signal_complete = Signal(bool, str)  # (success, error message)
    signal_error = Signal(str)           # Unexpected failure outside a task

    def __init__(
        self,
        config: EngineConfig,
        tasks: list[Task],
        page_view_factory: Optional[PageViewFactory] = None,
        resolver: Optional[TargetResolver] = None,
        parent=None,
    ):
        """Initialize engine thread.

        Args:
            config: EngineConfig instance
            tasks: Sequence to execute
            page_view_factory: Coroutine function returning a page view
                (defaults to launching a browser)
            resolver: Target resolver override
            parent: Parent QObject
        """
        super().__init__(parent)
        self.config = config
        self.tasks = tasks
        self.page_view_factory = page_view_factory
        self.resolver = resolver
        self.result: Optional[RunResult] = None

        # Created in the run thread
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._engine: Optional[TaskEngine] = None

    def _on_store_event(self, event: str, payload: Any) -> None:
        if event == "log":
            self.signal_log.emit({
                "content": payload,
                "timestamp": datetime.now().strftime("%H:%M:%S"),
            })
        elif event == "status":
            self.signal_status.emit(payload.to_dict())
        elif event == "task":
            self.signal_task.emit(payload.to_dict())

    def _call_in_loop(self, method_name: str) -> bool:
        """Schedule an engine method on the engine's loop.

        Returns:
            False if no run is active
        """
        loop, engine = self._loop, self._engine
        if loop is None or engine is None or loop.is_closed():
            return False
        loop.call_soon_threadsafe(getattr(engine, method_name))
        return True

    def pause(self) -> bool:
        """Request a pause before the next task."""
        return self._call_in_loop("pause")

    def resume(self) -> bool:
        """Request that a paused run continue."""
        return self._call_in_loop("resume")

    def toggle_pause(self) -> bool:
        return self._call_in_loop("toggle_pause")

    def run(self):
        """Execute the sequence in this thread.

        All GUI updates are done via signals to maintain thread safety.
        """
        try:
            self.result = asyncio.run(self._execute())
            self.signal_complete.emit(self.result.success, self.result.error or "")
        except Exception as e:
            self.signal_error.emit(str(e))
            self.signal_complete.emit(False, str(e))

    async def _execute(self) -> RunResult:
        self._loop = asyncio.get_running_loop()
        store = TaskStore()
        store.load_sequence(self.tasks)
        store.add_listener(self._on_store_event)
        try:
            if self.page_view_factory is not None:
                return await self._run_engine(store, await self.page_view_factory())
            async with LazyBrowserManager(self.config) as manager:
                return await self._run_engine(store, await manager.get_page_view())
        finally:
            store.remove_listener(self._on_store_event)
            self._engine = None
            self._loop = None

    async def _run_engine(self, store: TaskStore, page_view: PageView) -> RunResult:
        self._engine = TaskEngine(store, page_view, self.config, resolver=self.resolver)
        return await self._engine.run()
