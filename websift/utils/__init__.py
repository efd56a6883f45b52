"""
websift utilities module.
"""

from websift.utils.config import Settings, get_project_root, get_settings, reset_settings
from websift.utils.domains import (
    build_domain_filtered_query,
    extract_domain_from_url,
    normalize_domain,
    normalize_domains,
    url_matches_domain,
)
from websift.utils.logging import (
    LogContext,
    configure_logging,
    get_logger,
)
from websift.utils.text import (
    clamp_count,
    clean_text,
    generate_timestamp,
    get_content_preview,
    get_random_user_agent,
    get_word_count,
    is_document_url,
    sanitize_query,
    validate_url,
)

__all__ = [
    "LogContext",
    "Settings",
    "build_domain_filtered_query",
    "clamp_count",
    "clean_text",
    "configure_logging",
    "extract_domain_from_url",
    "generate_timestamp",
    "get_content_preview",
    "get_logger",
    "get_project_root",
    "get_random_user_agent",
    "get_settings",
    "get_word_count",
    "is_document_url",
    "normalize_domain",
    "normalize_domains",
    "reset_settings",
    "sanitize_query",
    "url_matches_domain",
    "validate_url",
]
