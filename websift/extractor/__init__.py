"""
websift extractor module.

Extracts main text from result pages fetched through the session pool.
"""

from websift.extractor.content import (
    ContentExtractor,
    classify_navigation_error,
    extract_main_text,
)
from websift.extractor.html_normalizer import extract_fallback_text, normalize_html

__all__ = [
    "ContentExtractor",
    "classify_navigation_error",
    "extract_fallback_text",
    "extract_main_text",
    "normalize_html",
]
