"""
Per-type task handlers for Agentic Sequencer.

Each handler receives the context built by earlier tasks in the current pass
and returns the context fields it produced, or raises.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional
from urllib.parse import quote_plus

from .config import EngineConfig
from .errors import ResolutionError, TaskConfigError
from .page_view import PageView
from .resolver import ScriptTargetResolver, TargetResolver
from .task_schemas import StopFindAction, TaskType, parse_task_config
from .types import ContextUpdate, ExecutionContext, Task
from .utils import human_pause, is_password_field, parse_domain, truncate_text

if TYPE_CHECKING:
    from .task_store import TaskStore


logger = logging.getLogger(__name__)


Handler = Callable[[Task, ExecutionContext], Awaitable[ContextUpdate]]


class TaskHandlers:
    """Executes single tasks against a page view."""

    def __init__(
        self,
        page: PageView,
        store: "TaskStore",
        config: Optional[EngineConfig] = None,
        resolver: Optional[TargetResolver] = None,
    ):
        """Initialize task handlers.

        Args:
            page: Page view to act on
            store: Task store receiving log lines and extracted data
            config: Engine configuration
            resolver: Target resolution policy (defaults to script heuristics)
        """
        self.page = page
        self.store = store
        self.config = config or EngineConfig()
        self.resolver = resolver or ScriptTargetResolver(self.config.human_delay_scale)

        self._handlers: dict[TaskType, Handler] = {
            TaskType.SEARCH: self.search,
            TaskType.FIND: self.find,
            TaskType.CLICK: self.click,
            TaskType.EXTRACT: self.extract,
            TaskType.TYPE: self.type_text,
            TaskType.ENTER: self.enter,
            TaskType.SCROLL: self.scroll,
            TaskType.WAIT: self.wait,
            TaskType.LOOP: self.loop,
        }

    async def dispatch(self, task: Task, context: ExecutionContext) -> ContextUpdate:
        """Run the handler for a task's type."""
        return await self._handlers[task.type](task, context)

    def _log(self, message: str) -> None:
        self.store.add_log(message)

    async def _pause(self, low_ms: float, high_ms: float) -> None:
        await human_pause(low_ms, high_ms, self.config.human_delay_scale)

    @property
    def search_host(self) -> str:
        """Host of the configured search engine."""
        return parse_domain(self.config.search_url_template)

    async def search(self, task: Task, context: ExecutionContext) -> ContextUpdate:
        cfg = parse_task_config(TaskType.SEARCH, task.config)
        if not cfg.search_query:
            raise TaskConfigError("Search query is required")

        await self._pause(300, 600)
        await self.resolver.flash_outline(self.page)

        url = self.config.search_url_template.format(query=quote_plus(cfg.search_query))
        self._log(f"  🔎 Searching for: \"{cfg.search_query}\"")
        await self.page.load_url(url)
        await self._pause(2000, 3000)
        return ContextUpdate(last_search_query=cfg.search_query)

    async def find(self, task: Task, context: ExecutionContext) -> ContextUpdate:
        cfg = parse_task_config(TaskType.FIND, task.config)
        await self._pause(200, 400)

        # Clear highlights from any previous find before starting a fresh one
        await self.page.stop_find_in_page(StopFindAction.CLEAR_SELECTION)
        await self._pause(150, 250)
        await self.resolver.clear_find_highlight(self.page)
        await self._pause(100, 150)

        text = cfg.text or cfg.selector
        if not text and context.last_found_text:
            text = context.last_found_text
            self._log(f"  Using text from previous Find: \"{text}\"")
        if not text:
            raise TaskConfigError("Text to find is required")

        self._log(f"  🔍 Searching for: \"{text}\"")
        await self.page.find_in_page(text, forward=True, find_next=False)
        await self._pause(500, 800)

        found = await self.resolver.scroll_to_text(self.page, text)
        if found.found:
            self._log(f"  ✓ Found and scrolled to: \"{text}\"")
        else:
            self._log(f"  ⚠️ Text found but may not be visible: \"{text}\"")

        await self._pause(200, 400)
        return ContextUpdate(last_found_text=text)

    async def click(self, task: Task, context: ExecutionContext) -> ContextUpdate:
        cfg = parse_task_config(TaskType.CLICK, task.config)
        await self._pause(300, 600)

        if cfg.click_selector:
            clicked = await self.resolver.click_selector(self.page, cfg.click_selector)
            self._log(f"  ✓ Clicked {cfg.click_selector}")
            await self._pause(1000, 1500)
            return ContextUpdate(clicked_element=clicked)

        if not context.last_found_text and context.last_search_query:
            self._log("  🎯 Auto-clicking first link on search results")
            await self.page.stop_find_in_page(StopFindAction.CLEAR_SELECTION)
            clicked = await self.resolver.click_first_external_link(
                self.page, exclude_host=self.search_host
            )
            self._log(f"  ✓ Clicked: {clicked.url}")
            await self._pause(500, 1000)
            return ContextUpdate(clicked_element=clicked)

        if context.last_found_text:
            self._log(
                f"  🎯 Auto-targeting element from previous Find: \"{context.last_found_text}\""
            )
            await self.page.stop_find_in_page(StopFindAction.ACTIVATE_SELECTION)
            await asyncio.sleep(0.3 * self.config.human_delay_scale)
            try:
                clicked = await self.resolver.click_text(self.page, context.last_found_text)
            except ResolutionError as e:
                self._log(f"  ⚠️ Auto-click failed: {e}")
                raise
            self._log(f"  ✓ Clicked {clicked.element}: \"{clicked.text or ''}...\"")
            await self._pause(500, 1000)
            return ContextUpdate(clicked_element=clicked)

        raise ResolutionError(
            "No click target specified and no context from previous Find/Search"
        )

    async def extract(self, task: Task, context: ExecutionContext) -> ContextUpdate:
        items = await self.resolver.extract_page_data(
            self.page,
            max_links=self.config.max_extract_links,
            max_headings=self.config.max_extract_headings,
        )
        self._log(f"📄 Extracted {len(items)} items")
        self.store.set_execution_status(extracted_data=items)
        return ContextUpdate(extracted_data=items)

    async def type_text(self, task: Task, context: ExecutionContext) -> ContextUpdate:
        cfg = parse_task_config(TaskType.TYPE, task.config)
        if not cfg.type_text:
            raise TaskConfigError("Text to type is required")

        shown = "[REDACTED]" if is_password_field(cfg.target_field or "") else truncate_text(cfg.type_text, 60)
        target = f" into {cfg.target_field}" if cfg.target_field else ""
        self._log(f"  ⌨️ Typing: \"{shown}\"{target}")

        typed = await self.resolver.type_into_input(
            self.page,
            cfg.type_text,
            target_field=cfg.target_field,
            near_text=context.last_found_text,
        )
        self._log(f"  ✓ Typed into {typed.input_name} ({typed.input_type})")
        return ContextUpdate(typed_text=cfg.type_text)

    async def enter(self, task: Task, context: ExecutionContext) -> ContextUpdate:
        self._log("  ↵ Pressing Enter key")
        await self.resolver.press_enter(self.page)
        self._log("  ✓ Enter key pressed")
        await self._pause(500, 1000)
        return ContextUpdate()

    async def scroll(self, task: Task, context: ExecutionContext) -> ContextUpdate:
        cfg = parse_task_config(TaskType.SCROLL, task.config)
        amount = cfg.scroll_amount or self.config.default_scroll_amount
        self._log(f"  📜 Scrolling {amount}px")
        await self.resolver.scroll_by(self.page, amount)
        await self._pause(200, 500)
        return ContextUpdate()

    async def wait(self, task: Task, context: ExecutionContext) -> ContextUpdate:
        cfg = parse_task_config(TaskType.WAIT, task.config)
        wait_ms = cfg.wait_time or self.config.default_wait_ms
        self._log(f"  ⏱️ Waiting {wait_ms}ms")
        await asyncio.sleep(wait_ms / 1000)
        return ContextUpdate()

    async def loop(self, task: Task, context: ExecutionContext) -> ContextUpdate:
        # Only a trailing loop repeats the sequence; the engine never dispatches it
        self._log("🔁 Loop task - execution handled at sequence level")
        return ContextUpdate()
