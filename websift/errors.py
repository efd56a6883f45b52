"""
Error definitions for websift.

Failures are a small closed set of typed kinds. Free-text categorisation
for display is left to whichever host renders the errors.

- ProviderError: one search provider attempt failed (recovered by the orchestrator)
- SearchError: every provider failed (fatal for the search call)
- ContentError: one page could not be extracted (fatal for the single-URL call,
  recorded per result in batch extraction)
"""

from enum import Enum
from typing import Any


class ProviderErrorKind(str, Enum):
    """Why a single provider attempt failed."""

    BLOCKED = "blocked"
    """The provider served a challenge/verification page instead of results."""

    TIMEOUT = "timeout"
    """Navigation or the provider call exceeded its timeout."""

    PARSE_FAILURE = "parse_failure"
    """The result listing could not be parsed (layout change, browser error)."""

    EMPTY = "empty"
    """The provider answered but produced zero parseable results."""


class ContentErrorKind(str, Enum):
    """Why a page's content could not be extracted."""

    TIMEOUT = "timeout"
    BLOCKED = "blocked"
    NETWORK = "network"
    DNS = "dns"
    SSL = "ssl"
    TOO_LARGE = "too_large"
    OTHER = "other"


class WebsiftError(Exception):
    """Base exception for websift errors."""

    def to_dict(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "message": str(self)}


class ProviderError(WebsiftError):
    """A search provider attempt failed."""

    def __init__(self, engine: str, kind: ProviderErrorKind, message: str = ""):
        self.engine = engine
        self.kind = kind
        self.message = message or kind.value
        super().__init__(f"{engine}: {kind.value} ({self.message})")

    def to_dict(self) -> dict[str, Any]:
        return {
            "engine": self.engine,
            "kind": self.kind.value,
            "message": self.message,
        }


class SearchError(WebsiftError):
    """Every configured provider failed for a query.

    Carries the individual provider failures in attempt order.
    """

    def __init__(self, query: str, failures: list[ProviderError]):
        self.query = query
        self.failures = list(failures)
        if self.failures:
            detail = "; ".join(str(failure) for failure in self.failures)
        else:
            detail = "no providers configured"
        super().__init__(f"All search providers failed: {detail}")

    @property
    def reasons(self) -> dict[str, ProviderErrorKind]:
        """Failure kind per engine."""
        return {failure.engine: failure.kind for failure in self.failures}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "SearchError",
            "query": self.query,
            "message": str(self),
            "failures": [failure.to_dict() for failure in self.failures],
        }


class ContentError(WebsiftError):
    """Content extraction for one URL failed."""

    def __init__(self, url: str, kind: ContentErrorKind, message: str = ""):
        self.url = url
        self.kind = kind
        self.message = message or kind.value
        super().__init__(f"{kind.value}: {self.message}")

    @property
    def short_message(self) -> str:
        """Short diagnostic suitable for a result record."""
        return f"{self.kind.value}: {self.message[:200]}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "kind": self.kind.value,
            "message": self.message,
        }
