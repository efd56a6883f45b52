"""
Search Parser Configuration Manager.

Loads and validates search result parser configurations from
config/search_parsers.yaml.

Design:
- Selectors are externalized so layout changes can be fixed without code changes
- Each selector has a 'required' flag and a 'diagnostic_message' for debugging
- Failed HTML can be saved for inspection when parsing fails (off by default)
"""

from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import quote_plus

import yaml
from pydantic import BaseModel, Field, field_validator

from websift.utils.config import get_config_dir, get_project_root, get_settings
from websift.utils.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_ENGINES = ("bing", "brave", "duckduckgo")


# =============================================================================
# Pydantic Schema Models
# =============================================================================


class SelectorSchema(BaseModel):
    """Schema for a single CSS selector configuration."""

    selector: str = Field(..., description="CSS selector string")
    required: bool = Field(default=False, description="Whether selector is required")
    diagnostic_message: str = Field(default="", description="Hint shown when selector fails")

    @field_validator("selector")
    @classmethod
    def validate_selector(cls, v: str) -> str:
        """Ensure selector is not empty."""
        if not v.strip():
            raise ValueError("Selector cannot be empty")
        return v.strip()


class TextPatternSchema(BaseModel):
    """Schema for a text marker searched in raw HTML."""

    pattern: str = Field(..., description="Pattern to match in HTML")
    type: str = Field(default="marker", description="Identifier reported on match")
    case_insensitive: bool = Field(default=False)

    def matches(self, html: str) -> bool:
        """Check if pattern matches HTML content."""
        if self.case_insensitive:
            return self.pattern.lower() in html.lower()
        return self.pattern in html


class EngineParserSchema(BaseModel):
    """Schema for a search engine parser configuration."""

    search_url: str = Field(..., description="URL template with {query} and {count}")
    base_url: str = Field(..., description="Origin used to resolve relative links")
    wait_selector: str | None = Field(
        default=None, description="Selector awaited before the HTML is read"
    )
    selectors: dict[str, SelectorSchema] = Field(default_factory=dict)
    captcha_patterns: list[TextPatternSchema] = Field(default_factory=list)
    no_results_patterns: list[TextPatternSchema] = Field(default_factory=list)

    @field_validator("search_url")
    @classmethod
    def validate_search_url(cls, v: str) -> str:
        if "{query}" not in v:
            raise ValueError("search_url must contain a {query} placeholder")
        return v


class ParserSettingsSchema(BaseModel):
    """Schema for global parser settings."""

    debug_html_dir: str = Field(default="debug/search_html")
    save_failed_html: bool = Field(default=False)


class SearchParsersConfigSchema(BaseModel):
    """Root schema for search_parsers.yaml configuration."""

    settings: ParserSettingsSchema = Field(default_factory=ParserSettingsSchema)
    bing: EngineParserSchema | None = None
    brave: EngineParserSchema | None = None
    duckduckgo: EngineParserSchema | None = None

    def get_engine(self, name: str) -> EngineParserSchema | None:
        """Get parser config for an engine by name."""
        name_lower = name.lower()
        if name_lower not in SUPPORTED_ENGINES:
            return None
        return getattr(self, name_lower, None)

    def get_available_engines(self) -> list[str]:
        """Get list of configured engine names."""
        return [name for name in SUPPORTED_ENGINES if getattr(self, name) is not None]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class SelectorConfig:
    """Resolved selector configuration for runtime use."""

    name: str
    selector: str
    required: bool = False
    diagnostic_message: str = ""

    def get_error_message(self, context: str = "") -> str:
        """Get formatted error message for selector failure."""
        base = f"Selector '{self.name}' ({self.selector}) not found"
        if context:
            base = f"{base} in {context}"
        if self.diagnostic_message:
            base = f"{base}\n\nDiagnostic:\n{self.diagnostic_message}"
        return base


@dataclass
class EngineParserConfig:
    """Resolved parser configuration for a search engine."""

    name: str
    search_url: str
    base_url: str
    wait_selector: str | None = None
    selectors: dict[str, SelectorConfig] = field(default_factory=dict)
    captcha_patterns: list[TextPatternSchema] = field(default_factory=list)
    no_results_patterns: list[TextPatternSchema] = field(default_factory=list)

    def get_selector(self, name: str) -> SelectorConfig | None:
        """Get selector config by name."""
        return self.selectors.get(name)

    def get_required_selectors(self) -> list[SelectorConfig]:
        """Get all required selectors."""
        return [s for s in self.selectors.values() if s.required]

    def build_search_url(self, query: str, count: int = 10) -> str:
        """Build search URL from template.

        Example:
            "https://www.bing.com/search?q={query}&count={count}"
            -> "https://www.bing.com/search?q=rust+async&count=5"
        """
        url = self.search_url.replace("{query}", quote_plus(query))
        return url.replace("{count}", str(count))

    def detect_captcha(self, html: str) -> tuple[bool, str | None]:
        """
        Check if HTML contains CAPTCHA/challenge.

        Returns:
            Tuple of (is_captcha, captcha_type)
        """
        for pattern in self.captcha_patterns:
            if pattern.matches(html):
                return True, pattern.type
        return False, None

    def detect_no_results(self, html: str) -> bool:
        """Check if HTML is the engine's explicit "no results" page."""
        return any(pattern.matches(html) for pattern in self.no_results_patterns)


@dataclass
class ParserSettings:
    """Resolved global parser settings."""

    debug_html_dir: Path
    save_failed_html: bool = False

    def ensure_debug_dir(self) -> None:
        """Ensure debug HTML directory exists."""
        if self.save_failed_html:
            self.debug_html_dir.mkdir(parents=True, exist_ok=True)


# =============================================================================
# Parser Config Manager
# =============================================================================


class ParserConfigManager:
    """
    Manager for search parser configurations.

    Usage:
        manager = get_parser_config_manager()
        config = manager.get_engine_config("bing")
        selector = config.get_selector("results_container")
        url = config.build_search_url("AI regulations", count=5)
    """

    def __init__(self, config_path: Path | str | None = None):
        """
        Initialize parser config manager.

        Args:
            config_path: Path to search_parsers.yaml. Defaults to
                search.parsers_file inside the configuration directory.
        """
        if config_path is None:
            config_path = get_config_dir() / get_settings().search.parsers_file
        self._config_path = Path(config_path)

        self._config: SearchParsersConfigSchema | None = None
        self._settings: ParserSettings | None = None
        self._engine_cache: dict[str, EngineParserConfig] = {}
        self._cache_lock = threading.RLock()

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            logger.warning(
                "Parser config not found, using defaults",
                path=str(self._config_path),
            )
            raw: dict[str, Any] = {}
        else:
            with open(self._config_path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}

        self._config = SearchParsersConfigSchema(**raw)

        debug_dir = Path(self._config.settings.debug_html_dir)
        if not debug_dir.is_absolute():
            debug_dir = get_project_root() / debug_dir
        self._settings = ParserSettings(
            debug_html_dir=debug_dir,
            save_failed_html=self._config.settings.save_failed_html,
        )

        with self._cache_lock:
            self._engine_cache.clear()

        logger.debug(
            "Parser config loaded",
            path=str(self._config_path),
            engines=self._config.get_available_engines(),
        )

    @property
    def config(self) -> SearchParsersConfigSchema:
        if self._config is None:
            raise RuntimeError("Parser config not loaded")
        return self._config

    @property
    def settings(self) -> ParserSettings:
        if self._settings is None:
            raise RuntimeError("Parser config not loaded")
        return self._settings

    def get_engine_config(self, name: str) -> EngineParserConfig | None:
        """
        Get resolved parser configuration for an engine.

        Args:
            name: Engine name (case-insensitive).

        Returns:
            EngineParserConfig or None if the engine is not configured.
        """
        name_lower = name.lower()

        with self._cache_lock:
            if name_lower in self._engine_cache:
                return self._engine_cache[name_lower]

        engine_schema = self.config.get_engine(name_lower)
        if engine_schema is None:
            return None

        selectors = {
            sel_name: SelectorConfig(
                name=sel_name,
                selector=sel_schema.selector,
                required=sel_schema.required,
                diagnostic_message=sel_schema.diagnostic_message,
            )
            for sel_name, sel_schema in engine_schema.selectors.items()
        }

        engine_config = EngineParserConfig(
            name=name_lower,
            search_url=engine_schema.search_url,
            base_url=engine_schema.base_url,
            wait_selector=engine_schema.wait_selector,
            selectors=selectors,
            captcha_patterns=list(engine_schema.captcha_patterns),
            no_results_patterns=list(engine_schema.no_results_patterns),
        )

        with self._cache_lock:
            self._engine_cache[name_lower] = engine_config

        return engine_config

    def get_available_engines(self) -> list[str]:
        """Get list of configured engine names."""
        return self.config.get_available_engines()

    # =========================================================================
    # Debug HTML Saving
    # =========================================================================

    def save_failed_html(
        self,
        html: str,
        engine: str,
        query: str,
        error: str,
    ) -> Path | None:
        """
        Save HTML content for debugging when parsing fails.

        Args:
            html: HTML content that failed to parse.
            engine: Engine name.
            query: Search query.
            error: Error message.

        Returns:
            Path to saved file or None if saving disabled.
        """
        if not self.settings.save_failed_html:
            return None

        try:
            self.settings.ensure_debug_dir()

            timestamp = int(time.time())
            safe_query = re.sub(r"[^\w\s-]", "", query)[:30].strip()
            filename = f"{engine}_{timestamp}_{safe_query}.html"
            filepath = self.settings.debug_html_dir / filename

            with open(filepath, "w", encoding="utf-8") as f:
                f.write("<!-- Parser Debug Info\n")
                f.write(f"Engine: {engine}\n")
                f.write(f"Query: {query}\n")
                f.write(f"Timestamp: {timestamp}\n")
                f.write(f"Error: {error}\n")
                f.write("-->\n\n")
                f.write(html)

            logger.info(
                "Saved failed HTML for debugging",
                engine=engine,
                path=str(filepath),
            )
            return filepath

        except OSError as e:
            logger.warning("Failed to save debug HTML", error=str(e))
            return None


# =============================================================================
# Module-level access
# =============================================================================

_manager_instance: ParserConfigManager | None = None
_manager_lock = threading.Lock()


def get_parser_config_manager(**kwargs: Any) -> ParserConfigManager:
    """
    Get the shared ParserConfigManager instance.

    Usage:
        manager = get_parser_config_manager()
        config = manager.get_engine_config("duckduckgo")
    """
    global _manager_instance

    if _manager_instance is None:
        with _manager_lock:
            if _manager_instance is None:
                _manager_instance = ParserConfigManager(**kwargs)

    return _manager_instance


def reset_parser_config_manager() -> None:
    """Reset the shared instance (for testing)."""
    global _manager_instance

    with _manager_lock:
        _manager_instance = None
