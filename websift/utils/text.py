"""
Text and URL helpers shared by search and extraction.

These are small, pure functions. Several of them are relied on by hosts
that render websift output, so their exact behaviour is part of the API.
"""

import random
import re
from datetime import UTC, datetime
from urllib.parse import ParseResult, urlparse

DEFAULT_CLEAN_LENGTH = 10000
DEFAULT_PREVIEW_LENGTH = 500
MAX_QUERY_LENGTH = 1000
ELLIPSIS = "..."

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15",
]

_WHITESPACE_RE = re.compile(r"\s+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n")


def clean_text(text: str, max_length: int = DEFAULT_CLEAN_LENGTH) -> str:
    """Collapse whitespace, trim and cap text.

    Args:
        text: Raw text.
        max_length: Maximum length of the returned string.

    Returns:
        Cleaned text, at most ``max_length`` characters.
    """
    text = _WHITESPACE_RE.sub(" ", text)
    text = _BLANK_LINES_RE.sub("\n", text)
    return text.strip()[:max_length]


def get_word_count(text: str) -> int:
    """Count whitespace-delimited, non-empty tokens."""
    return len([word for word in text.split() if word])


def get_content_preview(text: str, max_length: int = DEFAULT_PREVIEW_LENGTH) -> str:
    """Short preview of text.

    The ellipsis is appended when the cleaned text was cut at exactly
    ``max_length`` characters.
    """
    cleaned = clean_text(text, max_length)
    return cleaned + ELLIPSIS if len(cleaned) == max_length else cleaned


def generate_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_query(query: str) -> str:
    """Trim a query and cap its length."""
    return query.strip()[:MAX_QUERY_LENGTH]


def clamp_count(count: int, low: int = 1, high: int = 10) -> int:
    """Clamp a requested result count into ``[low, high]``."""
    return max(low, min(high, count))


def parse_absolute_url(url: str) -> ParseResult | None:
    """Parse an absolute URL.

    Returns:
        The parse result, or None when the string has no scheme or host
        (or cannot be parsed at all).
    """
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return parsed


def validate_url(url: str) -> bool:
    """Accept only absolute http/https URLs."""
    parsed = parse_absolute_url(url)
    return parsed is not None and parsed.scheme.lower() in ("http", "https")


def is_document_url(url: str) -> bool:
    """Check whether a URL points at a PDF document.

    Falls back to the raw string when the URL cannot be parsed.
    """
    parsed = parse_absolute_url(url)
    if parsed is None:
        return url.lower().endswith(".pdf")
    return parsed.path.lower().endswith(".pdf")


def get_random_user_agent(user_agents: list[str] | None = None) -> str:
    """Pick a desktop browser user agent."""
    return random.choice(user_agents or DEFAULT_USER_AGENTS)
