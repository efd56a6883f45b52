"""
Domain normalisation and site-scoped query helpers.

A domain filter is an allow-list of hosts. It is applied either by folding
``site:`` clauses into the query text, or by filtering results after the
search when the list is too long for a query string.
"""

from collections.abc import Collection, Iterable

from websift.utils.logging import get_logger
from websift.utils.text import parse_absolute_url

logger = get_logger(__name__)

DEFAULT_MAX_DOMAINS_IN_QUERY = 10


def normalize_domain(domain: str) -> str:
    """Normalize a domain or URL to a bare host.

    Examples:
        "https://www.Example.com/path" -> "example.com"
        "example.com:8080" -> "example.com"
    """
    normalized = domain.strip().lower()

    if normalized.startswith("http://"):
        normalized = normalized[len("http://") :]
    elif normalized.startswith("https://"):
        normalized = normalized[len("https://") :]

    if normalized.startswith("www."):
        normalized = normalized[len("www.") :]

    normalized = normalized.split("/")[0]
    normalized = normalized.split(":")[0]

    return normalized


def normalize_domains(domains: Iterable[str] | None) -> tuple[str, ...]:
    """Normalize a domain list, dropping empty and duplicate entries.

    Order of first occurrence is kept.
    """
    if not domains:
        return ()
    seen: dict[str, None] = {}
    for domain in domains:
        normalized = normalize_domain(domain)
        if normalized:
            seen.setdefault(normalized, None)
    return tuple(seen)


def extract_domain_from_url(url: str) -> str:
    """Normalized host of a URL, or the normalized raw string if unparseable."""
    parsed = parse_absolute_url(url)
    if parsed is None or not parsed.hostname:
        return normalize_domain(url)
    return normalize_domain(parsed.hostname)


def url_matches_domain(url: str, allowed_domains: Collection[str] | None) -> bool:
    """Check if a URL's host is in the allow-list.

    An empty allow-list matches every URL.
    """
    if not allowed_domains:
        return True
    return extract_domain_from_url(url) in allowed_domains


def build_domain_filtered_query(
    query: str,
    domains: Iterable[str] | None,
    max_domains_in_query: int = DEFAULT_MAX_DOMAINS_IN_QUERY,
) -> str:
    """Append site: operators for a domain list.

    Args:
        query: Original search query.
        domains: Domains to scope the search to.
        max_domains_in_query: Above this many domains the query is returned
            unchanged and the caller is expected to post-filter.

    Returns:
        "query site:a.com" for one domain,
        "query (site:a.com OR site:b.com)" for several,
        or the original query.
    """
    normalized = normalize_domains(domains)
    if not normalized:
        return query

    if len(normalized) > max_domains_in_query:
        logger.info(
            "Too many domains for query rewrite, results will be post-filtered",
            domain_count=len(normalized),
            max_domains_in_query=max_domains_in_query,
        )
        return query

    if len(normalized) == 1:
        return f"{query} site:{normalized[0]}"

    site_operators = " OR ".join(f"site:{domain}" for domain in normalized)
    return f"{query} ({site_operators})"
