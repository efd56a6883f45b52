"""
Search orchestration across browser search providers.

Flow:
1. Normalize the domain filter; small filters are folded into the query as
   site: clauses, larger ones are applied to the results afterwards
2. Try providers one at a time in priority order, each under its own timeout
3. Accept the first provider that returns enough results
4. De-duplicate URLs, post-filter if needed, clip to the requested count

Provider failures are recovered here. Only when every provider fails does
the caller see an error (SearchError).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from websift.crawler.session_pool import BrowserSessionPool
from websift.errors import ProviderError, ProviderErrorKind, SearchError
from websift.search.browser_search_provider import build_providers
from websift.search.provider import (
    ProviderResponse,
    SearchOutcome,
    SearchProvider,
    SearchQuery,
    SearchResultRecord,
)
from websift.utils.config import SearchConfig, get_settings
from websift.utils.domains import build_domain_filtered_query, normalize_domains, url_matches_domain
from websift.utils.logging import LogContext, get_logger

logger = get_logger(__name__)


class SearchOrchestrator:
    """
    Runs a query against an ordered list of providers with fallback.

    Example:
        orchestrator = SearchOrchestrator()
        outcome = await orchestrator.search(SearchQuery(text="rust async", count=3))
        for record in outcome.results:
            print(record.title, record.url)
        await orchestrator.close_all()

    Args:
        pool: Shared session pool. A pool is built from settings if None.
        providers: Providers in priority order. Built from
            search.provider_order if None.
        search_config: Search settings. Defaults to the loaded settings.
    """

    def __init__(
        self,
        pool: BrowserSessionPool | None = None,
        providers: Sequence[SearchProvider] | None = None,
        search_config: SearchConfig | None = None,
    ):
        self._config = search_config or get_settings().search
        self._pool = pool if pool is not None else BrowserSessionPool()
        if providers is None:
            providers = build_providers(self._pool, list(self._config.provider_order))
        self._providers: list[SearchProvider] = list(providers)

    @property
    def pool(self) -> BrowserSessionPool:
        return self._pool

    @property
    def providers(self) -> list[SearchProvider]:
        return list(self._providers)

    async def search(self, query: SearchQuery) -> SearchOutcome:
        """
        Search with provider fallback.

        Args:
            query: Validated search request.

        Returns:
            SearchOutcome with at most query.count unique results.

        Raises:
            SearchError: If every provider failed.
        """
        start_time = time.time()
        domains = normalize_domains(query.domains)

        post_filter = len(domains) > self._config.domain_rewrite_threshold
        if domains and not post_filter:
            text = build_domain_filtered_query(
                query.text, domains, self._config.domain_rewrite_threshold
            )
        else:
            text = query.text

        timeout = query.timeout or self._config.provider_timeout

        with LogContext(query=text[:50]):
            response = await self._run_providers(text, query.count, timeout)

            results = self._dedupe(response.results)
            if post_filter:
                allowed = set(domains)
                results = [r for r in results if url_matches_domain(r.url, allowed)]
            results = results[: query.count]

            elapsed_ms = (time.time() - start_time) * 1000
            logger.info(
                "Search completed",
                engine=response.engine,
                result_count=len(results),
                post_filtered=post_filter,
                elapsed_ms=round(elapsed_ms, 1),
            )

        return SearchOutcome(
            results=results,
            engine=response.engine,
            query=text,
            post_filtered=post_filter,
            elapsed_ms=elapsed_ms,
        )

    async def _run_providers(self, text: str, count: int, timeout: float) -> ProviderResponse:
        """Try providers in order until one returns enough results."""
        failures: list[ProviderError] = []

        for provider in self._providers:
            try:
                response = await asyncio.wait_for(provider.search(text, count), timeout=timeout)
            except ProviderError as e:
                failure = e
            except TimeoutError:
                failure = ProviderError(
                    provider.name, ProviderErrorKind.TIMEOUT, f"no response within {timeout}s"
                )
            except Exception as e:
                logger.error(
                    "Unexpected provider error",
                    engine=provider.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                failure = ProviderError(
                    provider.name, ProviderErrorKind.PARSE_FAILURE, f"unexpected error: {e}"
                )
            else:
                unique = self._dedupe(response.results)
                if len(unique) >= self._config.min_results:
                    return response
                failure = ProviderError(
                    provider.name,
                    ProviderErrorKind.EMPTY,
                    f"{len(unique)} results, need {self._config.min_results}",
                )

            failures.append(failure)
            logger.warning(
                "Search provider failed, trying next",
                engine=failure.engine,
                kind=failure.kind.value,
                error=failure.message,
            )

        logger.error("All search providers failed", failures=[str(f) for f in failures])
        raise SearchError(text, failures)

    @staticmethod
    def _dedupe(results: list[SearchResultRecord]) -> list[SearchResultRecord]:
        """Drop later records whose URL was already seen."""
        seen: set[str] = set()
        unique = []
        for record in results:
            if record.url not in seen:
                seen.add(record.url)
                unique.append(record)
        return unique

    async def close_all(self) -> None:
        """Tear down the session pool. Idempotent.

        Providers hold no resources of their own and stay usable; the next
        search relaunches the browser.
        """
        await self._pool.close_all()
