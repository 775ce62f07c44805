"""
Browser Pool
============

Playwright browser instance pool shared by the script executor, the inliner
and the renderer. Each user of the pool opens its own browser context.
"""

from typing import Optional, Dict, Any, List, AsyncGenerator
import asyncio
from contextlib import asynccontextmanager

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Route

from rasterizer.config.logging import get_logger
from rasterizer.config.settings import get_settings
from rasterizer.core.errors import RasterizerError

logger = get_logger(__name__)


class BrowserPoolError(RasterizerError):
    """Exception raised when the browser pool is unusable."""

    pass


class BrowserPool:
    """Browser instance pool for efficient resource management."""

    def __init__(self, pool_size: Optional[int] = None):
        self.settings = get_settings()
        self.pool_size = pool_size or self.settings.browser_pool_size
        self.browsers: List[Browser] = []
        self._semaphore = asyncio.Semaphore(self.pool_size)
        self._playwright = None
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self.logger: Any = logger.bind(component="browser_pool")  # structlog.BoundLoggerBase

    async def initialize(self) -> None:
        """Initialize browser pool."""
        try:
            self._playwright = await async_playwright().start()

            for _ in range(self.pool_size):
                browser = await self._playwright.chromium.launch(
                    headless=self.settings.playwright_headless,
                    args=[
                        "--no-sandbox",
                        "--disable-setuid-sandbox",
                        "--disable-dev-shm-usage",
                    ],
                )
                self.browsers.append(browser)

            self._initialized = True
            self.logger.info("Browser pool initialized", pool_size=self.pool_size)
        except Exception as e:
            self.logger.error("Failed to initialize browser pool", error=str(e))
            raise BrowserPoolError(f"Browser pool initialization failed: {e}") from e

    async def ensure_initialized(self) -> None:
        """Start the pool on first use."""
        async with self._init_lock:
            if not self._initialized:
                await self.initialize()

    async def close(self) -> None:
        """Close all browsers in the pool."""
        for browser in self.browsers:
            await browser.close()
        self.browsers = []

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        self._initialized = False
        self.logger.info("Browser pool closed")

    @asynccontextmanager
    async def get_browser(self) -> AsyncGenerator[Browser, None]:
        """Get a browser instance from the pool."""
        await self.ensure_initialized()
        async with self._semaphore:
            if not self.browsers:
                raise BrowserPoolError("Browser pool not initialized")

            browser = self.browsers.pop()
            try:
                yield browser
            finally:
                self.browsers.append(browser)

    @asynccontextmanager
    async def new_page(self, **context_options: Any) -> AsyncGenerator[Page, None]:
        """Open a page in a fresh browser context, closed on exit."""
        async with self.get_browser() as browser:
            if self.settings.user_agent and "user_agent" not in context_options:
                context_options["user_agent"] = self.settings.user_agent

            context: BrowserContext = await browser.new_context(**context_options)
            try:
                page = await context.new_page()
                page.set_default_timeout(self.settings.playwright_timeout)
                yield page
            finally:
                await context.close()


async def load_markup(page: Page, html: str, base_url: Optional[str] = None) -> None:
    """
    Load markup into a page.

    With a base URL the markup is served as that URL, so relative references
    resolve the way they would on the live page.
    """
    if not base_url:
        await page.set_content(html, wait_until="load")
        return

    async def serve_markup(route: Route) -> None:
        await route.fulfill(body=html, content_type="text/html; charset=utf-8")

    await page.route(lambda url: url == base_url, serve_markup)
    await page.goto(base_url, wait_until="load")


def viewport_for(options: Dict[str, Any]) -> Dict[str, int]:
    """Viewport size from draw options, falling back to the configured defaults."""
    settings = get_settings()
    return {
        "width": int(options.get("width") or settings.default_width),
        "height": int(options.get("height") or settings.default_height),
    }
