"""
Page view control surface for Agentic Sequencer.

The engine only ever talks to a page through the PageView protocol: load a
URL, run a script, find text, stop finding. PlaywrightPageView provides it
on top of a Playwright page.
"""

import logging
from typing import Any, Protocol, runtime_checkable

from playwright.async_api import Error as PlaywrightError, Page

from .errors import PageScriptError
from .task_schemas import StopFindAction


logger = logging.getLogger(__name__)


@runtime_checkable
class PageView(Protocol):
    """Scripting and navigation API of the embedded page view."""

    async def load_url(self, url: str) -> None:
        """Navigate to a URL and wait for it to load."""
        ...

    async def execute_javascript(self, script: str) -> Any:
        """Run a script in the page and return its JSON-serializable result."""
        ...

    async def find_in_page(
        self,
        text: str,
        forward: bool = True,
        find_next: bool = False,
    ) -> bool:
        """Highlight the next match of text; returns whether one was found."""
        ...

    async def stop_find_in_page(self, action: StopFindAction) -> None:
        """Stop the current find, handling the selection per action."""
        ...


_FIND_SCRIPT = """
([text, backwards, findNext]) => {
    if (!findNext && window.getSelection) {
        window.getSelection().removeAllRanges();
    }
    return window.find(text, false, backwards, true, false, false, false);
}
"""

_STOP_FIND_SCRIPT = """
(action) => {
    const selection = window.getSelection ? window.getSelection() : null;
    if (!selection) return;
    if (action === 'activateSelection' && selection.rangeCount > 0) {
        let node = selection.anchorNode;
        const el = node && node.nodeType === Node.TEXT_NODE ? node.parentElement : node;
        if (el && typeof el.focus === 'function') el.focus();
        if (el && typeof el.click === 'function') el.click();
    }
    if (action !== 'keepSelection') {
        selection.removeAllRanges();
    }
}
"""


def _first_line(message: str) -> str:
    """Reduce a Playwright error to the thrown message."""
    line = message.strip().splitlines()[0] if message.strip() else "Script failed"
    # "Error: No clickable links found" -> "No clickable links found"
    for prefix in ("Error: ", "Page.evaluate: Error: ", "Page.evaluate: "):
        if line.startswith(prefix):
            line = line[len(prefix):]
    return line


class PlaywrightPageView:
    """PageView backed by a Playwright page."""

    def __init__(self, page: Page, navigation_timeout: int = 30000):
        """Initialize the page view.

        Args:
            page: Playwright page instance
            navigation_timeout: Navigation timeout in milliseconds
        """
        self.page = page
        self.navigation_timeout = navigation_timeout

    async def load_url(self, url: str) -> None:
        # Ensure URL has protocol
        if not url.startswith(("http://", "https://", "file://", "about:")):
            url = "https://" + url

        logger.debug(f"Loading {url}")
        await self.page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=self.navigation_timeout,
        )

    async def execute_javascript(self, script: str) -> Any:
        try:
            return await self.page.evaluate(script)
        except PlaywrightError as e:
            raise PageScriptError(_first_line(str(e))) from e

    async def find_in_page(
        self,
        text: str,
        forward: bool = True,
        find_next: bool = False,
    ) -> bool:
        try:
            return bool(await self.page.evaluate(
                _FIND_SCRIPT, [text, not forward, find_next]
            ))
        except PlaywrightError as e:
            raise PageScriptError(_first_line(str(e))) from e

    async def stop_find_in_page(self, action: StopFindAction) -> None:
        try:
            await self.page.evaluate(_STOP_FIND_SCRIPT, StopFindAction(action).value)
        except PlaywrightError as e:
            raise PageScriptError(_first_line(str(e))) from e
