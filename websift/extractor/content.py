"""
Content extraction for websift.

Fetches result pages through the shared browser session pool and extracts
their main text.

Pipeline per URL:
1. Navigate with a pooled page (per-item timeout)
2. Reject oversized responses (Content-Length header, then HTML size)
3. Extract main text with trafilatura, falling back to BeautifulSoup
4. Reject challenge pages (only when little main text was found) and
   HTTP error pages
5. Clean and cap the text

Batch extraction never raises: each record carries its own fetch status,
and one slow or broken page does not affect its siblings.
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Sequence

import trafilatura
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from websift.crawler.challenge_detector import detect_challenge_type, is_challenge_page
from websift.crawler.session_pool import BrowserSessionPool
from websift.errors import ContentError, ContentErrorKind
from websift.extractor.html_normalizer import extract_fallback_text, normalize_html
from websift.search.provider import FetchStatus, SearchResultRecord
from websift.utils.config import ExtractionConfig, get_settings
from websift.utils.logging import get_logger
from websift.utils.text import (
    clean_text,
    get_content_preview,
    get_word_count,
    is_document_url,
    validate_url,
)

logger = get_logger(__name__)

_NET_ERROR_RE = re.compile(r"net::(ERR_[A-Z0-9_]+)")

_DNS_ERRORS = {"ERR_NAME_NOT_RESOLVED", "ERR_NAME_RESOLUTION_FAILED"}
_NETWORK_ERROR_PREFIXES = ("ERR_CONNECTION_", "ERR_INTERNET_", "ERR_ADDRESS_")
_NETWORK_ERRORS = {"ERR_TIMED_OUT", "ERR_NETWORK_CHANGED", "ERR_NETWORK_ACCESS_DENIED"}
_SSL_ERROR_PREFIXES = ("ERR_CERT_", "ERR_SSL_")
_SSL_ERRORS = {"ERR_BAD_SSL_CLIENT_AUTH_CERT"}

# Pages with at least this many words of main text are never treated as challenges
CHALLENGE_MAX_WORDS = 50


def classify_navigation_error(url: str, error: Exception) -> ContentError:
    """Map a Playwright navigation failure onto a ContentError.

    Chromium reports network failures as ``net::ERR_*`` codes inside the
    error message; those codes decide the kind.
    """
    message = str(error).strip().splitlines()[0] if str(error).strip() else type(error).__name__

    if isinstance(error, PlaywrightTimeoutError):
        return ContentError(url, ContentErrorKind.TIMEOUT, message)

    match = _NET_ERROR_RE.search(str(error))
    if match is None:
        return ContentError(url, ContentErrorKind.OTHER, message)

    code = match.group(1)
    if code in _DNS_ERRORS:
        kind = ContentErrorKind.DNS
    elif code in _SSL_ERRORS or code.startswith(_SSL_ERROR_PREFIXES):
        kind = ContentErrorKind.SSL
    elif code in _NETWORK_ERRORS or code.startswith(_NETWORK_ERROR_PREFIXES):
        kind = ContentErrorKind.NETWORK
    else:
        kind = ContentErrorKind.OTHER
    return ContentError(url, kind, code)


def extract_main_text(html: str) -> str:
    """Extract the main text of a page.

    trafilatura first; BeautifulSoup boilerplate stripping when it finds
    nothing.
    """
    html = normalize_html(html)
    if not html:
        return ""

    extracted = trafilatura.extract(
        html,
        include_comments=False,
        include_tables=True,
        include_links=False,
        include_images=False,
        output_format="txt",
        favor_precision=True,
    )

    if not extracted:
        logger.debug("trafilatura found no main content, using fallback")
        extracted = extract_fallback_text(html)

    return extracted or ""


class ContentExtractor:
    """
    Extracts page text for search results through a browser session pool.

    Example:
        extractor = ContentExtractor(pool)
        records = await extractor.extract_content_for_results(outcome.results, limit=3)
        text = await extractor.extract_content("https://example.com/article")
        await extractor.close_all()

    Args:
        pool: Shared session pool. A pool is built from settings if None.
        extraction_config: Extraction settings. Defaults to the loaded settings.
    """

    def __init__(
        self,
        pool: BrowserSessionPool | None = None,
        extraction_config: ExtractionConfig | None = None,
    ):
        self._config = extraction_config or get_settings().extraction
        self._pool = pool if pool is not None else BrowserSessionPool()
        self._worker_count = self._config.worker_count or self._pool.max_sessions

    @property
    def pool(self) -> BrowserSessionPool:
        return self._pool

    @property
    def worker_count(self) -> int:
        return self._worker_count

    # =========================================================================
    # Batch extraction
    # =========================================================================

    async def extract_content_for_results(
        self,
        results: Sequence[SearchResultRecord],
        limit: int,
        *,
        include_full_content: bool = True,
    ) -> list[SearchResultRecord]:
        """
        Extract content for the first ``limit`` non-document results.

        Document URLs (PDF) are passed through untouched and do not count
        against the limit. Records beyond the limit are also untouched.

        Args:
            results: Search results in ranking order.
            limit: Maximum number of extraction attempts.
            include_full_content: Fill full_content (True) or content_preview (False).

        Returns:
            The same records, in the same order, updated in place.
        """
        targets: list[SearchResultRecord] = []
        skipped_documents = 0
        for record in results:
            if is_document_url(record.url):
                skipped_documents += 1
                continue
            if len(targets) < limit:
                targets.append(record)

        start_time = time.time()
        semaphore = asyncio.Semaphore(self._worker_count)

        await asyncio.gather(
            *(self._process_record(record, semaphore, include_full_content) for record in targets)
        )

        success_count = sum(1 for r in targets if r.fetch_status == FetchStatus.SUCCESS)
        logger.info(
            "Content extraction completed",
            requested=limit,
            attempted=len(targets),
            succeeded=success_count,
            failed=len(targets) - success_count,
            skipped_documents=skipped_documents,
            elapsed_ms=round((time.time() - start_time) * 1000, 1),
        )

        return list(results)

    async def _process_record(
        self,
        record: SearchResultRecord,
        semaphore: asyncio.Semaphore,
        include_full_content: bool,
    ) -> None:
        async with semaphore:
            try:
                text = await self._extract_with_timeout(record.url)
            except ContentError as e:
                self._record_failure(record, e)
                return
            except Exception as e:
                logger.error(
                    "Unexpected extraction error",
                    url=record.url[:80],
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self._record_failure(record, ContentError(record.url, ContentErrorKind.OTHER, str(e)))
                return

        record.fetch_status = FetchStatus.SUCCESS
        record.word_count = get_word_count(text)
        if include_full_content:
            record.full_content = text
        else:
            record.content_preview = get_content_preview(text, self._config.preview_length)

    @staticmethod
    def _record_failure(record: SearchResultRecord, error: ContentError) -> None:
        record.fetch_status = (
            FetchStatus.TIMEOUT if error.kind == ContentErrorKind.TIMEOUT else FetchStatus.ERROR
        )
        record.error = error.short_message
        logger.warning(
            "Content extraction failed",
            url=record.url[:80],
            kind=error.kind.value,
            error=error.message[:200],
        )

    # =========================================================================
    # Single URL extraction
    # =========================================================================

    async def extract_content(self, url: str, max_content_length: int | None = None) -> str:
        """
        Extract the main text of one page.

        Args:
            url: Absolute http(s) URL.
            max_content_length: Truncate the text to this many characters when positive.

        Returns:
            Cleaned page text.

        Raises:
            ContentError: If the URL is invalid or the page cannot be extracted.
        """
        if not validate_url(url):
            raise ContentError(url, ContentErrorKind.OTHER, "invalid URL, expected http(s)")

        text = await self._extract_with_timeout(url)
        if max_content_length is not None and max_content_length > 0:
            text = text[:max_content_length]

        logger.info("Content extracted", url=url[:80], content_length=len(text))
        return text

    async def _extract_with_timeout(self, url: str) -> str:
        timeout = self._config.item_timeout
        try:
            return await asyncio.wait_for(self._extract(url), timeout=timeout)
        except TimeoutError as e:
            raise ContentError(
                url, ContentErrorKind.TIMEOUT, f"no content within {timeout}s"
            ) from e

    async def _extract(self, url: str) -> str:
        """Fetch a page through the pool and return its cleaned text."""
        async with self._pool.session() as page:
            html, status, headers = await self._load_page(page, url)

        text = extract_main_text(html)

        # Widget markers alone do not block a page that has real content
        if get_word_count(text) < CHALLENGE_MAX_WORDS and is_challenge_page(html, headers):
            raise ContentError(
                url, ContentErrorKind.BLOCKED, f"challenge page ({detect_challenge_type(html)})"
            )

        if status >= 400:
            raise ContentError(url, ContentErrorKind.OTHER, f"HTTP {status}")

        return clean_text(text, self._config.max_content_length)

    async def _load_page(self, page: Page, url: str) -> tuple[str, int, dict[str, str]]:
        """Navigate and return (html, status, headers) after size checks."""
        max_bytes = self._config.max_response_bytes

        try:
            response = await page.goto(
                url,
                timeout=self._config.item_timeout * 1000,
                wait_until="domcontentloaded",
            )
        except PlaywrightError as e:
            raise classify_navigation_error(url, e) from e

        if response is None:
            raise ContentError(url, ContentErrorKind.OTHER, "no response")

        headers = response.headers
        declared = headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise ContentError(
                url, ContentErrorKind.TOO_LARGE, f"Content-Length {declared} exceeds {max_bytes}"
            )

        if self._config.settle_delay > 0:
            await asyncio.sleep(self._config.settle_delay)

        try:
            html = await page.content()
        except PlaywrightError as e:
            raise classify_navigation_error(url, e) from e

        size = len(html.encode("utf-8"))
        if size > max_bytes:
            raise ContentError(
                url, ContentErrorKind.TOO_LARGE, f"page size {size} exceeds {max_bytes}"
            )

        return html, response.status, dict(headers)

    async def close_all(self) -> None:
        """Close the session pool. Idempotent."""
        await self._pool.close_all()
