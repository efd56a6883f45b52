"""
Browser session pool shared by search providers and content extraction.

Design:
- One Playwright driver, one Chromium process and one browser context,
  launched lazily on first acquire (under a lock, so concurrent first
  callers launch exactly once)
- Each session is a Page owned by exactly one task between acquire and release
- max_sessions bounds live pages with a semaphore; excess callers wait
- Released pages are queued for reuse; closed pages are discarded
- close_all() tears everything down and returns the pool to the
  uninitialized state, so the next acquire relaunches
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from websift.utils.config import BrowserConfig, get_settings
from websift.utils.logging import get_logger
from websift.utils.text import get_random_user_agent

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = get_logger(__name__)


class BrowserSessionPool:
    """Bounded pool of browser pages over a single lazily-launched browser.

    Example:
        pool = BrowserSessionPool(max_sessions=5)
        async with pool.session() as page:
            await page.goto(url)
            html = await page.content()
        await pool.close_all()

    Args:
        max_sessions: Maximum live pages. Defaults to browser.max_sessions.
        acquire_timeout: Seconds to wait for a free session. None waits forever.
        browser_config: Browser settings. Defaults to the loaded settings.
    """

    def __init__(
        self,
        max_sessions: int | None = None,
        acquire_timeout: float | None = None,
        browser_config: BrowserConfig | None = None,
    ) -> None:
        self._config = browser_config or get_settings().browser

        max_sessions = max_sessions if max_sessions is not None else self._config.max_sessions
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")

        self._max_sessions = max_sessions
        self._acquire_timeout = (
            acquire_timeout if acquire_timeout is not None else self._config.acquire_timeout
        )

        # One permit per live (acquired) session; survives close_all()
        self._semaphore = asyncio.Semaphore(max_sessions)

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

        self._pages: list[Page] = []
        self._available: asyncio.Queue[Page] = asyncio.Queue()

        # Guards launch, page creation and teardown
        self._lock = asyncio.Lock()

        # Bumped on every teardown; pages from older generations are not requeued
        self._generation = 0
        self._page_generation: dict[int, int] = {}

        self._acquired_count = 0
        self._created_count = 0
        self._launch_count = 0

        logger.debug("BrowserSessionPool initialized", max_sessions=max_sessions)

    @property
    def max_sessions(self) -> int:
        return self._max_sessions

    @property
    def is_initialized(self) -> bool:
        return self._context is not None

    async def _launch(self) -> BrowserContext:
        """Start Playwright, launch Chromium and create the shared context."""
        from playwright.async_api import async_playwright

        config = self._config
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=config.headless,
                args=list(config.launch_args),
            )
            context = await browser.new_context(
                viewport={"width": config.viewport_width, "height": config.viewport_height},
                locale=config.locale,
                user_agent=get_random_user_agent(config.user_agents or None),
            )
        except Exception:
            await playwright.stop()
            raise

        self._playwright = playwright
        self._browser = browser

        if config.block_resources:
            await self._setup_blocking(context)

        logger.info(
            "Browser launched",
            headless=config.headless,
            max_sessions=self._max_sessions,
        )
        return context

    async def _setup_blocking(self, context: BrowserContext) -> None:
        """Abort requests for heavy media, fonts and ad/tracker hosts."""
        for pattern in self._config.block_patterns:
            await context.route(pattern, lambda route: route.abort())

    async def _ensure_context(self) -> BrowserContext:
        """Launch the browser once; callers must hold the lock."""
        if self._context is None:
            self._context = await self._launch()
            self._launch_count += 1
        return self._context

    async def _acquire_slot(self) -> None:
        if self._acquire_timeout is None:
            await self._semaphore.acquire()
            return
        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=self._acquire_timeout)
        except TimeoutError as e:
            raise TimeoutError(
                f"Failed to acquire browser session within {self._acquire_timeout}s"
            ) from e

    def _take_idle_page(self) -> Page | None:
        while True:
            try:
                page = self._available.get_nowait()
            except asyncio.QueueEmpty:
                return None
            if page.is_closed():
                self._forget(page)
                continue
            return page

    def _forget(self, page: Page) -> None:
        if page in self._pages:
            self._pages.remove(page)
        self._page_generation.pop(id(page), None)

    async def acquire(self) -> Page:
        """Borrow a page for exclusive use.

        Waits while max_sessions pages are out. Must be paired with release(),
        typically in a finally block (or use session()).

        Returns:
            A Page owned by the caller until release().

        Raises:
            TimeoutError: If acquire_timeout is set and exceeded.
        """
        await self._acquire_slot()
        try:
            page = self._take_idle_page()
            if page is not None:
                logger.debug("Reusing idle session", live=len(self._pages))
            else:
                async with self._lock:
                    context = await self._ensure_context()
                    page = await context.new_page()
                    self._pages.append(page)
                    self._page_generation[id(page)] = self._generation
                    self._created_count += 1
                logger.debug("Created new session", live=len(self._pages))
        except BaseException:
            self._semaphore.release()
            raise

        self._acquired_count += 1
        return page

    def release(self, page: Page) -> None:
        """Return a page to the pool.

        Closed pages and pages from before the last close_all() are dropped.
        The capacity slot is always returned.
        """
        try:
            current = self._page_generation.get(id(page)) == self._generation
            if current and not page.is_closed():
                self._available.put_nowait(page)
            else:
                self._forget(page)
        finally:
            self._semaphore.release()

        logger.debug("Session released", idle=self._available.qsize())

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Page]:
        """Acquire a page for the duration of the block."""
        page = await self.acquire()
        try:
            yield page
        finally:
            self.release(page)

    async def close_all(self) -> None:
        """Close every page, the context, the browser and Playwright.

        Safe to call when never initialized and safe to call repeatedly.
        The pool relaunches on the next acquire().
        """
        async with self._lock:
            if self._context is None and self._playwright is None and not self._pages:
                return

            self._generation += 1
            pages, self._pages = self._pages, []
            self._page_generation.clear()
            self._available = asyncio.Queue()

            for page in pages:
                try:
                    if not page.is_closed():
                        await page.close()
                except Exception as e:
                    logger.debug("Error closing session page", error=str(e))

            try:
                if self._context is not None:
                    await self._context.close()
                if self._browser is not None:
                    await self._browser.close()
                if self._playwright is not None:
                    await self._playwright.stop()
            except Exception as e:
                logger.warning("Error during browser cleanup", error=str(e))
            finally:
                self._context = None
                self._browser = None
                self._playwright = None

        logger.info("BrowserSessionPool closed", closed_pages=len(pages))

    def get_stats(self) -> dict[str, Any]:
        """Get pool statistics."""
        return {
            "max_sessions": self._max_sessions,
            "live_sessions": len(self._pages),
            "idle_sessions": self._available.qsize(),
            "initialized": self.is_initialized,
            "acquired_total": self._acquired_count,
            "created_total": self._created_count,
            "launch_count": self._launch_count,
        }
