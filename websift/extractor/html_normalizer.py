"""
HTML normalization utilities for websift.

Provides lightweight preprocessing for HTML before content extraction,
plus the BeautifulSoup text extraction used when trafilatura finds no
main content.
"""

import re

from bs4 import BeautifulSoup

from websift.utils.logging import get_logger

logger = get_logger(__name__)

# Elements that never carry article text
BOILERPLATE_TAGS = ("script", "style", "noscript", "nav", "header", "footer", "aside", "form")


def normalize_html(html: str) -> str:
    """Normalize HTML for extraction.

    Performs minimal preprocessing to reduce noise without altering
    meaningful content structure:
    - Removes script, style, noscript tags and their contents
    - Removes HTML comments
    - Collapses excessive whitespace

    Args:
        html: Raw HTML string.

    Returns:
        Normalized HTML string.
    """
    if not html:
        return html

    html = re.sub(
        r"<script[^>]*>.*?</script>",
        "",
        html,
        flags=re.DOTALL | re.IGNORECASE,
    )
    html = re.sub(
        r"<style[^>]*>.*?</style>",
        "",
        html,
        flags=re.DOTALL | re.IGNORECASE,
    )
    html = re.sub(
        r"<noscript[^>]*>.*?</noscript>",
        "",
        html,
        flags=re.DOTALL | re.IGNORECASE,
    )

    # Conditional comments are kept
    html = re.sub(r"<!--(?!\[if).*?-->", "", html, flags=re.DOTALL)

    html = re.sub(r"[ \t]+", " ", html)
    html = re.sub(r"\n\s*\n+", "\n\n", html)

    return html.strip()


def extract_fallback_text(html: str) -> str:
    """Extract visible text after dropping boilerplate elements.

    Prefers <main> or <article> when the page has one, then <body>.

    Args:
        html: HTML string.

    Returns:
        Text with elements separated by spaces (may be empty).
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(list(BOILERPLATE_TAGS)):
        tag.decompose()

    root = soup.find("main") or soup.find("article") or soup.body or soup
    text = root.get_text(" ", strip=True)

    logger.debug("Fallback text extraction", text_length=len(text))
    return text
