"""
Search Result Parsers for Browser Search.

Parses search engine result pages (SERPs) into structured results.

Design:
- Selectors are loaded from config/search_parsers.yaml (not hardcoded)
- Required selectors fail loudly with diagnostic messages
- Click-tracking and redirect links are unwrapped to the destination URL
- Engine-internal, non-http and duplicate links are dropped
"""

from __future__ import annotations

import base64
import binascii
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from urllib.parse import parse_qs, urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from websift.search.parser_config import (
    EngineParserConfig,
    SelectorConfig,
    get_parser_config_manager,
)
from websift.search.provider import SearchResultRecord
from websift.utils.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ParsedResult:
    """A single parsed search result."""

    title: str
    url: str
    snippet: str = ""
    rank: int = 0

    def to_record(self) -> SearchResultRecord:
        """Convert to the shared result model (fetch_status left unset)."""
        return SearchResultRecord(title=self.title, url=self.url, description=self.snippet)


@dataclass
class ParseResult:
    """Result of parsing a search page."""

    ok: bool
    results: list[ParsedResult] = field(default_factory=list)
    error: str | None = None
    is_captcha: bool = False
    captcha_type: str | None = None
    is_no_results: bool = False
    selector_errors: list[str] = field(default_factory=list)
    html_saved_path: str | None = None

    @classmethod
    def success(cls, results: list[ParsedResult]) -> ParseResult:
        """Create successful parse result."""
        return cls(ok=True, results=results)

    @classmethod
    def no_results(cls) -> ParseResult:
        """The engine explicitly reported that nothing matched."""
        return cls(ok=True, is_no_results=True)

    @classmethod
    def failure(
        cls,
        error: str,
        selector_errors: list[str] | None = None,
        html_saved_path: str | None = None,
    ) -> ParseResult:
        """Create failed parse result."""
        return cls(
            ok=False,
            error=error,
            selector_errors=selector_errors or [],
            html_saved_path=html_saved_path,
        )

    @classmethod
    def captcha(cls, captcha_type: str) -> ParseResult:
        """Create CAPTCHA detection result."""
        return cls(
            ok=False,
            is_captcha=True,
            captcha_type=captcha_type,
            error=f"CAPTCHA detected: {captcha_type}",
        )


# =============================================================================
# Base Parser
# =============================================================================


class BaseSearchParser(ABC):
    """
    Base class for search result parsers.

    Provides common functionality for:
    - Loading configuration from search_parsers.yaml
    - Selector-based element finding with validation
    - CAPTCHA and "no results" detection
    - Debug HTML saving

    Subclasses implement engine-specific result extraction.
    """

    # Hosts whose links are the engine's own pages, not results
    internal_domains: tuple[str, ...] = ()

    def __init__(self, engine_name: str, config: EngineParserConfig | None = None):
        """
        Initialize parser.

        Args:
            engine_name: Name of search engine (e.g., "bing").
            config: Parser configuration. Loaded from the shared manager if None.
        """
        self.engine_name = engine_name
        self._config = config

    @property
    def config(self) -> EngineParserConfig:
        """Get parser configuration (lazy-loaded)."""
        if self._config is None:
            config = get_parser_config_manager().get_engine_config(self.engine_name)
            if config is None:
                raise ValueError(f"No parser configuration for engine: {self.engine_name}")
            self._config = config
        return self._config

    def get_selector(self, name: str) -> SelectorConfig | None:
        """Get selector configuration by name."""
        return self.config.get_selector(name)

    def find_elements(
        self,
        soup: BeautifulSoup | Tag,
        selector_name: str,
        parent: Tag | None = None,
    ) -> list[Tag]:
        """
        Find elements using configured selector.

        Args:
            soup: BeautifulSoup object.
            selector_name: Name of selector from config.
            parent: Parent element to search within.

        Returns:
            List of matching elements.
        """
        selector_config = self.get_selector(selector_name)
        if selector_config is None:
            logger.warning(
                "Selector not configured", engine=self.engine_name, selector=selector_name
            )
            return []

        search_context = parent if parent is not None else soup

        try:
            return search_context.select(selector_config.selector)
        except ValueError as e:
            logger.warning(
                "Selector failed",
                engine=self.engine_name,
                selector=selector_config.selector,
                error=str(e),
            )
            return []

    def find_element(
        self,
        soup: BeautifulSoup | Tag,
        selector_name: str,
        parent: Tag | None = None,
    ) -> Tag | None:
        """Find single element using configured selector."""
        elements = self.find_elements(soup, selector_name, parent)
        return elements[0] if elements else None

    def validate_required_selectors(self, soup: BeautifulSoup) -> tuple[bool, list[str]]:
        """
        Validate that all required selectors find elements.

        Returns:
            Tuple of (all_valid, list of error messages).
        """
        errors = []

        for selector_config in self.config.get_required_selectors():
            if not self.find_elements(soup, selector_config.name):
                errors.append(selector_config.get_error_message(self.engine_name))
                logger.warning(
                    "Required selector not found",
                    engine=self.engine_name,
                    selector=selector_config.name,
                )

        return len(errors) == 0, errors

    def detect_captcha(self, html: str) -> tuple[bool, str | None]:
        """Check if HTML contains CAPTCHA/challenge."""
        return self.config.detect_captcha(html)

    def build_search_url(self, query: str, count: int = 10) -> str:
        """Build search URL for this engine (query is URL-encoded)."""
        return self.config.build_search_url(query, count)

    def parse(self, html: str, query: str = "") -> ParseResult:
        """
        Parse search results from HTML.

        Args:
            html: HTML content of search results page.
            query: Search query (for error reporting).

        Returns:
            ParseResult with extracted results or error information.
        """
        is_captcha, captcha_type = self.detect_captcha(html)
        if is_captcha:
            logger.warning(
                "CAPTCHA detected",
                engine=self.engine_name,
                captcha_type=captcha_type,
            )
            return ParseResult.captcha(captcha_type or "unknown")

        soup = BeautifulSoup(html, "html.parser")

        valid, errors = self.validate_required_selectors(soup)
        if not valid:
            if self.config.detect_no_results(html):
                logger.info(
                    "Engine reported no results",
                    engine=self.engine_name,
                    query=query[:50],
                )
                return ParseResult.no_results()

            saved_path = get_parser_config_manager().save_failed_html(
                html=html,
                engine=self.engine_name,
                query=query,
                error="; ".join(errors),
            )
            return ParseResult.failure(
                error=f"Required selectors not found: {len(errors)} errors",
                selector_errors=errors,
                html_saved_path=str(saved_path) if saved_path else None,
            )

        try:
            results = self._extract_results(soup)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(
                "Result extraction failed",
                engine=self.engine_name,
                error=str(e),
            )
            saved_path = get_parser_config_manager().save_failed_html(
                html=html,
                engine=self.engine_name,
                query=query,
                error=str(e),
            )
            return ParseResult.failure(
                error=f"Extraction failed: {e}",
                html_saved_path=str(saved_path) if saved_path else None,
            )

        results = self._dedupe(results)
        for i, result in enumerate(results):
            result.rank = i + 1

        logger.info(
            "Parsed search results",
            engine=self.engine_name,
            result_count=len(results),
            query=query[:50],
        )
        return ParseResult.success(results)

    def _extract_results(self, soup: BeautifulSoup) -> list[ParsedResult]:
        """Extract search results from parsed HTML."""
        results = []
        for container in self.find_elements(soup, "results_container"):
            result = self._extract_single_result(container)
            if result:
                results.append(result)
        return results

    @abstractmethod
    def _extract_single_result(self, container: Tag) -> ParsedResult | None:
        """
        Extract a single result from its container.

        Subclasses implement engine-specific extraction logic.
        """

    @staticmethod
    def _dedupe(results: list[ParsedResult]) -> list[ParsedResult]:
        seen: set[str] = set()
        unique = []
        for result in results:
            if result.url not in seen:
                seen.add(result.url)
                unique.append(result)
        return unique

    def _extract_text(self, element: Tag | None, default: str = "") -> str:
        """Safely extract text from element."""
        if element is None:
            return default
        return element.get_text(" ", strip=True) or default

    def _extract_href(self, element: Tag | None) -> str | None:
        """Safely extract href from element or its first link child."""
        if element is None:
            return None

        href = element.get("href")
        if href:
            return str(href)

        link = element.find("a")
        if isinstance(link, Tag) and link.get("href"):
            return str(link.get("href"))

        return None

    def _normalize_url(self, url: str | None) -> str | None:
        """Resolve, unwrap and validate a result URL."""
        if not url:
            return None

        url = url.strip()
        if url.startswith(("javascript:", "mailto:", "#")):
            return None

        url = urljoin(self.config.base_url, url)
        url = self._unwrap_redirect(url)
        if not url or not url.startswith(("http://", "https://")):
            return None

        if self._is_internal_url(urlparse(url).netloc):
            return None

        return url

    def _unwrap_redirect(self, url: str) -> str | None:
        """Turn an engine redirect link into its destination (override in subclass)."""
        return url

    def _is_internal_url(self, netloc: str) -> bool:
        """Check if URL is internal to the search engine."""
        netloc = netloc.lower()
        return any(
            netloc == domain or netloc.endswith("." + domain) for domain in self.internal_domains
        )


# =============================================================================
# Bing Parser
# =============================================================================


class BingParser(BaseSearchParser):
    """Parser for Bing search results."""

    internal_domains = ("bing.com", "bing.net", "msn.com", "microsoft.com", "live.com")

    def __init__(self, config: EngineParserConfig | None = None):
        super().__init__("bing", config)

    def _extract_single_result(self, container: Tag) -> ParsedResult | None:
        title_elem = self.find_element(container, "title")
        if title_elem is None:
            return None

        title = self._extract_text(title_elem)
        url = self._extract_href(title_elem)
        if not url:
            cite_elem = container.select_one("cite")
            if cite_elem:
                url = self._extract_text(cite_elem)
                if url and not url.startswith(("http://", "https://")):
                    url = "https://" + url

        url = self._normalize_url(url)
        if not title or not url:
            return None

        snippet = self._extract_text(self.find_element(container, "snippet"))
        return ParsedResult(title=title, url=url, snippet=snippet)

    def _unwrap_redirect(self, url: str) -> str | None:
        """Decode Bing /ck/a click tracking (u=a1<base64 url>)."""
        parsed = urlparse(url)
        if not parsed.path.startswith("/ck/a"):
            return url

        encoded = parse_qs(parsed.query).get("u", [""])[0]
        if not encoded:
            return None
        if not encoded.startswith(("a1", "a2", "a3")):
            return encoded

        b64_part = encoded[2:]
        b64_part += "=" * (-len(b64_part) % 4)
        try:
            return base64.urlsafe_b64decode(b64_part).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.debug("Could not decode Bing redirect", url=url[:100])
            return None


# =============================================================================
# Brave Parser
# =============================================================================


class BraveParser(BaseSearchParser):
    """Parser for Brave Search results."""

    internal_domains = ("brave.com",)

    def __init__(self, config: EngineParserConfig | None = None):
        super().__init__("brave", config)

    def _extract_single_result(self, container: Tag) -> ParsedResult | None:
        title_elem = self.find_element(container, "title")
        if title_elem is None:
            return None
        title = self._extract_text(title_elem)

        url_elem = self.find_element(container, "url")
        url = self._extract_href(url_elem) or self._extract_href(title_elem)
        url = self._normalize_url(url)
        if not title or not url:
            return None

        snippet = self._extract_text(self.find_element(container, "snippet"))
        return ParsedResult(title=title, url=url, snippet=snippet)


# =============================================================================
# DuckDuckGo Parser
# =============================================================================


class DuckDuckGoParser(BaseSearchParser):
    """Parser for DuckDuckGo (HTML endpoint) search results."""

    internal_domains = ("duckduckgo.com", "duck.co", "spreadprivacy.com")

    def __init__(self, config: EngineParserConfig | None = None):
        super().__init__("duckduckgo", config)

    def _extract_single_result(self, container: Tag) -> ParsedResult | None:
        # Sponsored entries share the container class
        if "result--ad" in (container.get("class") or []):
            return None

        title_elem = self.find_element(container, "title")
        if title_elem is None:
            return None

        title = self._extract_text(title_elem)
        url = self._normalize_url(self._extract_href(title_elem))
        if not title or not url:
            return None

        snippet = self._extract_text(self.find_element(container, "snippet"))
        return ParsedResult(title=title, url=url, snippet=snippet)

    def _unwrap_redirect(self, url: str) -> str | None:
        """Resolve DuckDuckGo /l/?uddg=<url> redirects."""
        parsed = urlparse(url)
        if parsed.path.startswith("/l/") and "duckduckgo.com" in parsed.netloc:
            target = parse_qs(parsed.query).get("uddg", [""])[0]
            return target or None
        return url


# =============================================================================
# Parser Registry
# =============================================================================


_parser_registry: dict[str, type[BaseSearchParser]] = {
    "bing": BingParser,
    "brave": BraveParser,
    "duckduckgo": DuckDuckGoParser,
}


def get_parser(engine_name: str) -> BaseSearchParser | None:
    """
    Get parser instance for an engine.

    Args:
        engine_name: Engine name (case-insensitive).

    Returns:
        Parser instance or None if not available.
    """
    name_lower = engine_name.lower()
    parser_class = _parser_registry.get(name_lower)

    if parser_class is None:
        logger.warning("No parser available for engine", engine=engine_name)
        return None

    config = get_parser_config_manager().get_engine_config(name_lower)
    if config is None:
        logger.warning("Engine not configured in search_parsers.yaml", engine=engine_name)
        return None

    return parser_class(config)


def get_available_parsers() -> list[str]:
    """Get list of available parser engine names."""
    configured = set(get_parser_config_manager().get_available_engines())
    return sorted(configured & set(_parser_registry))
