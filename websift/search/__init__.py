"""
websift search module.

Provider system:
    SearchProvider - Protocol for search providers
    BrowserSearchProvider - Playwright-based provider, one per engine
    SearchOrchestrator - Sequential provider fallback with domain filtering

Parser system:
    ParserConfigManager - Parser configuration management (search_parsers.yaml)
    get_parser() - Get parser for a search engine
"""

from websift.search.browser_search_provider import BrowserSearchProvider, build_providers
from websift.search.orchestrator import SearchOrchestrator
from websift.search.parser_config import (
    EngineParserConfig,
    ParserConfigManager,
    get_parser_config_manager,
    reset_parser_config_manager,
)
from websift.search.provider import (
    BaseSearchProvider,
    FetchStatus,
    ProviderResponse,
    SearchOutcome,
    SearchProvider,
    SearchQuery,
    SearchResultRecord,
)
from websift.search.search_parsers import (
    BingParser,
    BraveParser,
    DuckDuckGoParser,
    ParsedResult,
    ParseResult,
    get_available_parsers,
    get_parser,
)

__all__ = [
    "BaseSearchProvider",
    "BingParser",
    "BraveParser",
    "BrowserSearchProvider",
    "DuckDuckGoParser",
    "EngineParserConfig",
    "FetchStatus",
    "ParseResult",
    "ParsedResult",
    "ParserConfigManager",
    "ProviderResponse",
    "SearchOrchestrator",
    "SearchOutcome",
    "SearchProvider",
    "SearchQuery",
    "SearchResultRecord",
    "build_providers",
    "get_available_parsers",
    "get_parser",
    "get_parser_config_manager",
    "reset_parser_config_manager",
]
