"""
Browser-based search provider.

Drives one search engine's result page through a pooled browser session
and turns it into ProviderResponse records.

Design:
- One provider instance per engine (bing, brave, duckduckgo)
- Pages come from the shared BrowserSessionPool and go back in a finally block
- Engine URLs, selectors and challenge markers come from search_parsers.yaml
- Every failure is raised as a typed ProviderError; empty listings are
  errors too, so the orchestrator can move on to the next engine
"""

from __future__ import annotations

import time

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from websift.crawler.challenge_detector import detect_challenge_type, is_challenge_page
from websift.crawler.session_pool import BrowserSessionPool
from websift.errors import ProviderError, ProviderErrorKind
from websift.search.provider import BaseSearchProvider, ProviderResponse
from websift.search.search_parsers import BaseSearchParser, ParseResult, get_parser
from websift.utils.config import get_settings
from websift.utils.logging import get_logger

logger = get_logger(__name__)


class BrowserSearchProvider(BaseSearchProvider):
    """
    Search provider that scrapes one engine's SERP with Playwright.

    Example:
        pool = BrowserSessionPool()
        provider = BrowserSearchProvider("bing", pool)
        response = await provider.search("python asyncio", count=5)
    """

    def __init__(
        self,
        engine: str,
        pool: BrowserSessionPool,
        parser: BaseSearchParser | None = None,
        navigation_timeout: float | None = None,
        listing_timeout: float | None = None,
    ):
        """
        Initialize browser search provider.

        Args:
            engine: Engine name; must have a parser and a search_parsers.yaml entry.
            pool: Shared browser session pool.
            parser: Parser override (defaults to the registered engine parser).
            navigation_timeout: Seconds allowed for page navigation.
            listing_timeout: Seconds to wait for the result listing to render.
        """
        engine = engine.lower()
        super().__init__(engine)

        if parser is None:
            parser = get_parser(engine)
            if parser is None:
                raise ValueError(f"No parser available for engine: {engine}")

        search_settings = get_settings().search
        self._pool = pool
        self._parser = parser
        self._navigation_timeout = navigation_timeout or search_settings.navigation_timeout
        self._listing_timeout = listing_timeout or search_settings.listing_timeout

    @property
    def engine(self) -> str:
        return self._name

    async def search(self, query: str, count: int) -> ProviderResponse:
        """
        Execute a search on this engine.

        Args:
            query: Search query text, possibly with site: clauses.
            count: Maximum number of results to return.

        Returns:
            ProviderResponse with between 1 and count results.

        Raises:
            ProviderError: BLOCKED, TIMEOUT, PARSE_FAILURE or EMPTY.
        """
        self._check_closed()
        start_time = time.time()

        try:
            html = await self._fetch_serp(query, count)
            response = self._build_response(html, query, count, start_time)
        except ProviderError as e:
            self._record_failure(str(e), blocked=e.kind == ProviderErrorKind.BLOCKED)
            raise

        self._record_success(response.elapsed_ms)
        logger.info(
            "Browser search completed",
            engine=self._name,
            query=query[:50],
            result_count=len(response.results),
            elapsed_ms=round(response.elapsed_ms, 1),
        )
        return response

    async def _fetch_serp(self, query: str, count: int) -> str:
        """Navigate to the result page and return its HTML."""
        search_url = self._parser.build_search_url(query, count)

        logger.debug(
            "Browser search",
            engine=self._name,
            query=query[:50],
            url=search_url[:100],
        )

        async with self._pool.session() as page:
            try:
                await page.goto(
                    search_url,
                    timeout=self._navigation_timeout * 1000,
                    wait_until="domcontentloaded",
                )
            except PlaywrightTimeoutError as e:
                logger.warning("Browser search timeout", engine=self._name, query=query[:50])
                raise ProviderError(
                    self._name,
                    ProviderErrorKind.TIMEOUT,
                    f"navigation exceeded {self._navigation_timeout}s",
                ) from e
            except PlaywrightError as e:
                logger.warning("Browser navigation error", engine=self._name, error=str(e))
                raise ProviderError(
                    self._name, ProviderErrorKind.PARSE_FAILURE, f"navigation failed: {e}"
                ) from e

            wait_selector = self._parser.config.wait_selector
            if wait_selector:
                try:
                    await page.wait_for_selector(
                        wait_selector, timeout=self._listing_timeout * 1000
                    )
                except PlaywrightTimeoutError:
                    # Challenge and "no results" pages never render the listing
                    logger.debug(
                        "Result listing did not appear",
                        engine=self._name,
                        selector=wait_selector,
                    )

            try:
                return await page.content()
            except PlaywrightError as e:
                raise ProviderError(
                    self._name, ProviderErrorKind.PARSE_FAILURE, f"could not read page: {e}"
                ) from e

    def _build_response(
        self,
        html: str,
        query: str,
        count: int,
        start_time: float,
    ) -> ProviderResponse:
        parse_result = self._parser.parse(html, query)

        if parse_result.is_captcha:
            raise ProviderError(
                self._name,
                ProviderErrorKind.BLOCKED,
                f"challenge page detected ({parse_result.captcha_type})",
            )

        if not parse_result.ok:
            if is_challenge_page(html):
                raise ProviderError(
                    self._name,
                    ProviderErrorKind.BLOCKED,
                    f"challenge page detected ({detect_challenge_type(html)})",
                )
            raise ProviderError(
                self._name, ProviderErrorKind.PARSE_FAILURE, self._describe_failure(parse_result)
            )

        if not parse_result.results:
            raise ProviderError(self._name, ProviderErrorKind.EMPTY, "no results")

        records = [result.to_record() for result in parse_result.results[:count]]
        return ProviderResponse(
            engine=self._name,
            query=query,
            results=records,
            elapsed_ms=(time.time() - start_time) * 1000,
        )

    @staticmethod
    def _describe_failure(parse_result: ParseResult) -> str:
        message = parse_result.error or "parse failed"
        if parse_result.selector_errors:
            message += f" ({len(parse_result.selector_errors)} selector errors)"
        if parse_result.html_saved_path:
            message += f" [HTML saved: {parse_result.html_saved_path}]"
        return message


def build_providers(
    pool: BrowserSessionPool,
    engines: list[str] | None = None,
) -> list[BrowserSearchProvider]:
    """Create providers for the given engines (default: search.provider_order)."""
    if engines is None:
        engines = list(get_settings().search.provider_order)
    return [BrowserSearchProvider(engine, pool) for engine in engines]
