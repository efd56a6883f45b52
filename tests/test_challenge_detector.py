"""
Tests for challenge page detection (websift.crawler.challenge_detector).
"""

import pytest

from websift.crawler.challenge_detector import detect_challenge_type, is_challenge_page

pytestmark = pytest.mark.unit


class TestIsChallengePage:
    """Tests for is_challenge_page()."""

    @pytest.mark.parametrize(
        "html",
        [
            "<html><title>Just a moment...</title><script>window._cf_chl_opt={}</script></html>",
            "<div id='cf-browser-verification'>Checking your browser before accessing</div>",
            '<div class="g-recaptcha" data-sitekey="abc"></div>',
            '<iframe src="https://hcaptcha.com/captcha"></iframe>',
            '<div class="cf-turnstile"></div>',
        ],
    )
    def test_detects_active_challenges(self, html: str) -> None:
        """Active challenge markers are detected."""
        assert is_challenge_page(html) is True

    @pytest.mark.parametrize(
        "html",
        [
            "<article><p>This article explains how reCAPTCHA and hCaptcha work.</p></article>",
            "<p>We use Cloudflare to keep this site fast.</p>",
            "<html><body><h1>Hello</h1></body></html>",
        ],
    )
    def test_mentions_are_not_challenges(self, html: str) -> None:
        """
        Given: Pages that only mention CAPTCHA services or Cloudflare
        When: is_challenge_page() is called
        Then: They are not treated as challenges
        """
        assert is_challenge_page(html) is False

    def test_small_cloudflare_interstitial_by_headers(self) -> None:
        """
        Given: A tiny page served by Cloudflare with a cf-ray header
        When: is_challenge_page() is called with headers
        Then: It is detected as a challenge
        """
        html = "<html><body><div>Please wait</div></body></html>"
        headers = {"server": "cloudflare", "cf-ray": "8abc123"}
        assert is_challenge_page(html, headers) is True
        assert is_challenge_page(html) is False


class TestDetectChallengeType:
    """Tests for detect_challenge_type()."""

    @pytest.mark.parametrize(
        ("html", "expected"),
        [
            ('<div class="cf-turnstile"></div>', "turnstile"),
            ('<div class="h-captcha"></div>', "hcaptcha"),
            ('<div class="g-recaptcha"></div>', "recaptcha"),
            ('<div data-sitekey="x"></div>', "captcha"),
            ("<div id='cf-browser-verification'></div>", "cloudflare"),
            ("<title>Just a moment</title> cloudflare", "js_challenge"),
        ],
    )
    def test_types(self, html: str, expected: str) -> None:
        """The most specific challenge type is reported."""
        assert detect_challenge_type(html) == expected
