"""
Shared fixtures: a scripted page view and a recording resolver, so tests
never need a browser.
"""

from typing import Any, Optional

import pytest

from agentic_sequencer.config import EngineConfig
from agentic_sequencer.resolver import TargetResolver
from agentic_sequencer.task_schemas import (
    ClickResult,
    EnterResult,
    ExtractedItem,
    FindResult,
    ScrollResult,
    TypeResult,
)
from agentic_sequencer.types import ContextUpdate


class FakePageView:
    """PageView that records calls and replays canned script results."""

    def __init__(self, script_results: Optional[list[Any]] = None, find_result: bool = True):
        self.script_results = list(script_results or [])
        self.find_result = find_result
        self.loaded_urls: list[str] = []
        self.scripts: list[str] = []
        self.find_calls: list[tuple[str, bool, bool]] = []
        self.stop_find_actions: list[Any] = []

    async def load_url(self, url: str) -> None:
        self.loaded_urls.append(url)

    async def execute_javascript(self, script: str) -> Any:
        self.scripts.append(script)
        if not self.script_results:
            return None
        result = self.script_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def find_in_page(self, text: str, forward: bool = True, find_next: bool = False) -> bool:
        self.find_calls.append((text, forward, find_next))
        return self.find_result

    async def stop_find_in_page(self, action) -> None:
        self.stop_find_actions.append(action)


class StubResolver(TargetResolver):
    """TargetResolver returning canned results and recording each call.

    Set `failures[method_name] = exc` to make a method raise.
    """

    def __init__(self):
        self.calls: list[tuple[str, tuple]] = []
        self.failures: dict[str, Exception] = {}

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    def called(self, name: str) -> list[tuple]:
        return [args for call, args in self.calls if call == name]

    async def flash_outline(self, page):
        self._record("flash_outline")

    async def clear_find_highlight(self, page):
        self._record("clear_find_highlight")

    async def scroll_to_text(self, page, text):
        self._record("scroll_to_text", text)
        return FindResult(found=True, scrolled=True)

    async def click_selector(self, page, selector):
        self._record("click_selector", selector)
        return ClickResult(element="BUTTON", text="Submit", selector=selector)

    async def click_text(self, page, text):
        self._record("click_text", text)
        return ClickResult(element="A", text=text, url="https://docs.example.com/")

    async def click_first_external_link(self, page, exclude_host=None):
        self._record("click_first_external_link", exclude_host)
        return ClickResult(element="A", text="Example", url="https://example.com/")

    async def type_into_input(self, page, text, target_field=None, near_text=None):
        self._record("type_into_input", text, target_field, near_text)
        return TypeResult(input_type="INPUT", input_name=target_field or "q")

    async def press_enter(self, page):
        self._record("press_enter")
        return EnterResult(element="INPUT")

    async def scroll_by(self, page, amount):
        self._record("scroll_by", amount)
        return ScrollResult(scrolled=amount, final_y=amount)

    async def extract_page_data(self, page, max_links, max_headings):
        self._record("extract_page_data", max_links, max_headings)
        return [
            ExtractedItem(title="Example Domain", url="https://example.com/", type="link"),
            ExtractedItem(title="Welcome", type="heading"),
        ]


class RecordingHandlers:
    """Stand-in for TaskHandlers that records every dispatch.

    `updates` maps task type values to the ContextUpdate to return;
    `errors` maps task ids to exceptions to raise; `on_dispatch` is called
    with each task before it returns.
    """

    def __init__(self):
        self.calls: list[tuple[Any, Any]] = []
        self.updates: dict[str, ContextUpdate] = {}
        self.errors: dict[str, Exception] = {}
        self.on_dispatch = None

    async def dispatch(self, task, context):
        self.calls.append((task, context))
        if self.on_dispatch is not None:
            self.on_dispatch(task)
        if task.id in self.errors:
            raise self.errors[task.id]
        return self.updates.get(task.type.value, ContextUpdate())


@pytest.fixture
def fast_config():
    """Config with every delay disabled."""
    return EngineConfig(
        search_url_template="https://duckduckgo.com/?q={query}",
        inter_task_delay_ms=0,
        loop_delay_ms=0,
        human_delay_scale=0.0,
    )


@pytest.fixture
def page():
    return FakePageView()


@pytest.fixture
def resolver():
    return StubResolver()


@pytest.fixture
def recording_handlers():
    return RecordingHandlers()
