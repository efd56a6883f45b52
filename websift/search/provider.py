"""
Search provider abstraction layer for websift.

Defines the result/query models shared by providers, the orchestrator and
the content extractor, plus the interface every search provider implements.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from websift.utils.config import get_settings
from websift.utils.logging import get_logger
from websift.utils.text import clamp_count, generate_timestamp, sanitize_query

logger = get_logger(__name__)

MAX_RESULT_COUNT = 10


# ============================================================================
# Pydantic Models
# ============================================================================


class FetchStatus(str, Enum):
    """Outcome of a content extraction attempt."""

    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"


class SearchResultRecord(BaseModel):
    """
    Normalized search result from any provider.

    Providers fill title/url/description/timestamp and leave fetch_status
    unset. The content extractor fills the remaining fields once, when an
    extraction attempt is made for the record.
    """

    model_config = ConfigDict(frozen=False, extra="forbid", validate_assignment=True)

    title: str = Field(..., description="Result title")
    url: str = Field(..., description="Result URL")
    description: str = Field(default="", description="Snippet shown by the provider")
    timestamp: str = Field(default_factory=generate_timestamp)
    fetch_status: FetchStatus | None = Field(
        default=None, description="None until content extraction is attempted"
    )
    full_content: str | None = None
    content_preview: str | None = None
    word_count: int | None = Field(default=None, ge=0)
    error: str | None = None

    @model_validator(mode="after")
    def _content_fields_exclusive(self) -> "SearchResultRecord":
        if self.full_content is not None and self.content_preview is not None:
            raise ValueError("full_content and content_preview are mutually exclusive")
        return self

    @property
    def attempted(self) -> bool:
        """Whether content extraction was attempted for this record."""
        return self.fetch_status is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, leaving out unset content fields."""
        return self.model_dump(mode="json", exclude_none=True)


class ProviderResponse(BaseModel):
    """Results served by one provider for one query."""

    model_config = ConfigDict(frozen=False)

    engine: str = Field(..., description="Engine that produced the results")
    query: str = Field(..., description="Query text sent to the engine")
    results: list[SearchResultRecord] = Field(default_factory=list)
    elapsed_ms: float = Field(default=0.0, ge=0.0)


class SearchQuery(BaseModel):
    """
    A search request.

    count defaults to search.default_count and is clamped into
    [1, search.max_count] (never above 10) rather than rejected; text is
    trimmed and capped at 1000 characters.
    """

    model_config = ConfigDict(extra="forbid")

    text: str = Field(..., description="Query text")
    count: int | None = Field(
        default=None,
        validate_default=True,
        description="Requested number of results (search.default_count when unset)",
    )
    domains: list[str] | None = Field(default=None, description="Allow-listed domains")
    timeout: float | None = Field(
        default=None, gt=0, description="Per-provider timeout override in seconds"
    )

    @field_validator("text")
    @classmethod
    def _sanitize_text(cls, v: str) -> str:
        v = sanitize_query(v)
        if not v:
            raise ValueError("query text must not be empty")
        return v

    @field_validator("count", mode="before")
    @classmethod
    def _clamp_count(cls, v: Any) -> int:
        search_settings = get_settings().search
        high = min(search_settings.max_count, MAX_RESULT_COUNT)
        if v is None:
            v = search_settings.default_count
        return clamp_count(int(v), 1, high)


class SearchOutcome(BaseModel):
    """Orchestrator response: ordered results and the engine that served them."""

    results: list[SearchResultRecord] = Field(default_factory=list)
    engine: str
    query: str = Field(..., description="Query text actually sent to the engine")
    post_filtered: bool = False
    elapsed_ms: float = Field(default=0.0, ge=0.0)


# ============================================================================
# Search Provider Protocol
# ============================================================================


@runtime_checkable
class SearchProvider(Protocol):
    """
    Protocol for search providers.

    search() either returns a non-empty ProviderResponse or raises
    ProviderError; it never returns an empty response silently.
    """

    @property
    def name(self) -> str:
        """Unique name of the provider."""
        ...

    async def search(self, query: str, count: int) -> ProviderResponse:
        """
        Execute a search query.

        Args:
            query: Search query text (possibly carrying site: clauses).
            count: Maximum number of results to return.

        Returns:
            ProviderResponse with at least one result.

        Raises:
            ProviderError: On block, timeout, parse failure or empty result.
        """
        ...

    async def close(self) -> None:
        """Release provider resources."""
        ...


class BaseSearchProvider(ABC):
    """
    Abstract base class for search providers.

    Tracks basic health counters and the closed flag.
    """

    def __init__(self, provider_name: str):
        self._name = provider_name
        self._is_closed = False

        self._success_count = 0
        self._failure_count = 0
        self._blocked_count = 0
        self._total_latency = 0.0
        self._last_error: str | None = None

    @property
    def name(self) -> str:
        """Unique name of the provider."""
        return self._name

    @property
    def is_closed(self) -> bool:
        return self._is_closed

    @abstractmethod
    async def search(self, query: str, count: int) -> ProviderResponse:
        """Execute a search query."""

    async def close(self) -> None:
        """Mark the provider closed. Idempotent."""
        self._is_closed = True
        logger.debug("Search provider closed", provider=self._name)

    def _check_closed(self) -> None:
        """Raise error if provider is closed."""
        if self._is_closed:
            raise RuntimeError(f"Provider '{self._name}' is closed")

    def _record_success(self, elapsed_ms: float) -> None:
        self._success_count += 1
        self._total_latency += elapsed_ms

    def _record_failure(self, error: str, blocked: bool = False) -> None:
        self._failure_count += 1
        self._last_error = error
        if blocked:
            self._blocked_count += 1

    def get_stats(self) -> dict[str, Any]:
        """Get provider statistics."""
        total = self._success_count + self._failure_count
        return {
            "provider": self._name,
            "success_count": self._success_count,
            "failure_count": self._failure_count,
            "blocked_count": self._blocked_count,
            "success_rate": self._success_count / total if total > 0 else 0.0,
            "avg_latency_ms": (
                self._total_latency / self._success_count if self._success_count > 0 else 0.0
            ),
            "last_error": self._last_error,
            "closed": self._is_closed,
        }

    def reset_metrics(self) -> None:
        """Reset health counters. For testing purposes."""
        self._success_count = 0
        self._failure_count = 0
        self._blocked_count = 0
        self._total_latency = 0.0
        self._last_error = None
