"""
Lazy browser manager for on-demand browser initialization.

The browser is only launched when a run actually needs a page view.
"""

import logging
import re
from typing import Optional, TYPE_CHECKING

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
)

from .page_view import PlaywrightPageView

if TYPE_CHECKING:
    from .config import EngineConfig


# Get logger for this module
logger = logging.getLogger(__name__)


# Resource patterns to block in fast mode
FAST_MODE_BLOCKED_PATTERNS = [
    # Images
    r".*\.(png|jpg|jpeg|webp|gif|svg|ico|bmp|tiff)(\?.*)?$",
    # Fonts
    r".*\.(woff|woff2|ttf|otf|eot)(\?.*)?$",
    # Media
    r".*\.(mp4|webm|mp3|wav|ogg|avi|mov|flv)(\?.*)?$",
]

# Compile patterns for performance
_blocked_patterns_compiled = [re.compile(p, re.IGNORECASE) for p in FAST_MODE_BLOCKED_PATTERNS]


def should_block_resource(url: str) -> bool:
    """Check if a resource URL should be blocked in fast mode."""
    return any(pattern.match(url) for pattern in _blocked_patterns_compiled)


class LazyBrowserManager:
    """Manages lazy browser initialization.

    The browser is only launched when get_page_view() is first awaited.

    Usage:
        async with LazyBrowserManager(config) as manager:
            page_view = await manager.get_page_view()  # Browser opens now
            ...
    """

    def __init__(self, config: "EngineConfig"):
        """Initialize the lazy browser manager.

        Args:
            config: Engine configuration with headless settings etc.
        """
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._page_view: Optional[PlaywrightPageView] = None
        self._closed = False

    async def _route_handler(self, route: Route) -> None:
        """Block images, fonts and media in fast mode."""
        url = route.request.url
        if should_block_resource(url):
            logger.debug(f"Fast mode: blocking {url}")
            await route.abort()
        else:
            await route.continue_()

    async def _initialize_browser(self) -> None:
        """Initialize browser, context, page and page view."""
        if self._closed:
            raise RuntimeError("Browser manager has been closed")

        if self._page_view is not None:
            return  # Already initialized

        logger.debug("LazyBrowserManager: Initializing browser (first use)")

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
        )

        # Create context with standard viewport
        self._context = await self._browser.new_context(
            viewport={"width": 1280, "height": 800},
            user_agent="Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 Chrome/120.0.0.0 Safari/537.36",
        )

        if self.config.browser_fast_mode:
            logger.info("Fast mode enabled: blocking images, fonts, and media")
            await self._context.route("**/*", self._route_handler)

        self._page = await self._context.new_page()
        self._page_view = PlaywrightPageView(
            self._page,
            navigation_timeout=self.config.navigation_timeout,
        )

        if self.config.start_url:
            await self._page_view.load_url(self.config.start_url)

        logger.debug("LazyBrowserManager: Browser initialized successfully")

    async def get_page_view(self) -> PlaywrightPageView:
        """Get the page view, launching the browser if needed.

        Raises:
            RuntimeError: If manager has been closed
        """
        await self._initialize_browser()
        return self._page_view

    def is_browser_open(self) -> bool:
        """Check if browser has been initialized."""
        return self._browser is not None and not self._closed

    async def close(self) -> None:
        """Close browser and cleanup resources.

        Safe to call multiple times.
        """
        if self._closed:
            return

        self._closed = True

        if self._page_view:
            logger.debug("LazyBrowserManager: Closing browser")

        # Close in reverse order
        if self._context:
            try:
                await self._context.close()
            except PlaywrightError as e:
                logger.debug(f"Context close failed: {e}")
            self._context = None

        if self._browser:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.debug(f"Browser close failed: {e}")
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        self._page_view = None
        self._page = None

    async def __aenter__(self) -> "LazyBrowserManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
