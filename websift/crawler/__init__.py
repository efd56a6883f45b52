"""
websift crawler module.

Provides the browser session pool and challenge page detection.
"""

from websift.crawler.challenge_detector import detect_challenge_type, is_challenge_page
from websift.crawler.session_pool import BrowserSessionPool

__all__ = [
    "BrowserSessionPool",
    "detect_challenge_type",
    "is_challenge_page",
]
