"""
Tests for typed errors (websift.errors).
"""

import pytest

from websift.errors import (
    ContentError,
    ContentErrorKind,
    ProviderError,
    ProviderErrorKind,
    SearchError,
    WebsiftError,
)

pytestmark = pytest.mark.unit


class TestProviderError:
    """Tests for ProviderError."""

    def test_message_and_fields(self) -> None:
        """
        Given: An engine, a kind and a message
        When: ProviderError is created
        Then: str() reads "engine: kind (message)" and fields are kept
        """
        error = ProviderError("bing", ProviderErrorKind.BLOCKED, "captcha page")

        assert str(error) == "bing: blocked (captcha page)"
        assert error.engine == "bing"
        assert error.kind is ProviderErrorKind.BLOCKED
        assert isinstance(error, WebsiftError)

    def test_default_message_is_kind(self) -> None:
        """Without a message, the kind value is used."""
        error = ProviderError("brave", ProviderErrorKind.EMPTY)
        assert error.message == "empty"

    def test_to_dict(self) -> None:
        """to_dict() exposes engine, kind and message."""
        error = ProviderError("duckduckgo", ProviderErrorKind.TIMEOUT, "slow")
        assert error.to_dict() == {"engine": "duckduckgo", "kind": "timeout", "message": "slow"}


class TestSearchError:
    """Tests for SearchError."""

    def test_lists_each_failure_in_order(self) -> None:
        """
        Given: Three provider failures
        When: SearchError is created
        Then: The message lists each failure in attempt order and reasons maps engine to kind
        """
        failures = [
            ProviderError("bing", ProviderErrorKind.BLOCKED, "captcha"),
            ProviderError("brave", ProviderErrorKind.TIMEOUT, "30s"),
            ProviderError("duckduckgo", ProviderErrorKind.EMPTY, "no results"),
        ]

        error = SearchError("cats", failures)

        assert str(error) == (
            "All search providers failed: bing: blocked (captcha); "
            "brave: timeout (30s); duckduckgo: empty (no results)"
        )
        assert error.reasons == {
            "bing": ProviderErrorKind.BLOCKED,
            "brave": ProviderErrorKind.TIMEOUT,
            "duckduckgo": ProviderErrorKind.EMPTY,
        }
        assert [f["engine"] for f in error.to_dict()["failures"]] == ["bing", "brave", "duckduckgo"]

    def test_no_providers(self) -> None:
        """An empty failure list still yields a descriptive message."""
        error = SearchError("cats", [])
        assert str(error) == "All search providers failed: no providers configured"


class TestContentError:
    """Tests for ContentError."""

    def test_short_message(self) -> None:
        """
        Given: A ContentError with a long message
        When: short_message is read
        Then: It is "kind: message" with the message capped at 200 characters
        """
        error = ContentError("https://a.com", ContentErrorKind.DNS, "x" * 500)

        assert error.short_message == "dns: " + "x" * 200
        assert str(error).startswith("dns: ")

    def test_to_dict(self) -> None:
        """to_dict() exposes url, kind and message."""
        error = ContentError("https://a.com", ContentErrorKind.TOO_LARGE, "6 MiB")
        assert error.to_dict() == {"url": "https://a.com", "kind": "too_large", "message": "6 MiB"}

    def test_base_to_dict(self) -> None:
        """The base class serialises type name and message."""
        assert WebsiftError("boom").to_dict() == {"error": "WebsiftError", "message": "boom"}
