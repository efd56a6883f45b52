"""
websift: web search orchestration and page content extraction.

Main entry points:
    SearchOrchestrator - Query Bing, Brave and DuckDuckGo with fallback
    ContentExtractor - Fetch result pages and extract their main text
    BrowserSessionPool - Shared, bounded pool of browser pages

Both components accept a shared pool:

    pool = BrowserSessionPool()
    orchestrator = SearchOrchestrator(pool)
    extractor = ContentExtractor(pool)
"""

from websift.crawler.session_pool import BrowserSessionPool
from websift.errors import (
    ContentError,
    ContentErrorKind,
    ProviderError,
    ProviderErrorKind,
    SearchError,
    WebsiftError,
)
from websift.extractor.content import ContentExtractor
from websift.search.orchestrator import SearchOrchestrator
from websift.search.provider import (
    FetchStatus,
    ProviderResponse,
    SearchOutcome,
    SearchQuery,
    SearchResultRecord,
)

__version__ = "0.1.0"

__all__ = [
    "BrowserSessionPool",
    "ContentError",
    "ContentErrorKind",
    "ContentExtractor",
    "FetchStatus",
    "ProviderError",
    "ProviderErrorKind",
    "ProviderResponse",
    "SearchError",
    "SearchOrchestrator",
    "SearchOutcome",
    "SearchQuery",
    "SearchResultRecord",
    "WebsiftError",
]
