"""Challenge page detection for fetched pages."""

_CLOUDFLARE_INDICATORS = (
    "cf-browser-verification",
    "_cf_chl_opt",
    "checking your browser before accessing",
    "please wait while we verify your browser",
    "ray id:</strong>",
)

# Active widgets only; pages that merely mention a CAPTCHA service do not match
_CAPTCHA_WIDGET_INDICATORS = (
    'src="https://hcaptcha.com',
    'src="https://www.hcaptcha.com',
    "data-sitekey=",
    'class="h-captcha"',
    'class="g-recaptcha"',
    'id="captcha-container"',
    "grecaptcha.execute",
    "hcaptcha.execute",
)

_TURNSTILE_INDICATORS = (
    'class="cf-turnstile"',
    "challenges.cloudflare.com/turnstile",
)


def is_challenge_page(content: str, headers: dict[str, str] | None = None) -> bool:
    """Check if page is a challenge/captcha page.

    Uses specific patterns to avoid false positives from cookie banners,
    articles about CAPTCHAs and third-party scripts with CAPTCHA URLs.

    Args:
        content: Page HTML.
        headers: Response headers (lower-cased keys), if known.

    Returns:
        True if challenge detected.
    """
    content_lower = content.lower()

    if any(ind in content_lower for ind in _CLOUDFLARE_INDICATORS):
        return True

    # "Just a moment" title only counts together with Cloudflare markers
    if "just a moment" in content_lower and (
        "cloudflare" in content_lower or "_cf_" in content_lower
    ):
        return True

    if any(ind in content_lower for ind in _CAPTCHA_WIDGET_INDICATORS):
        return True

    if any(ind in content_lower for ind in _TURNSTILE_INDICATORS):
        return True

    headers = headers or {}
    server = headers.get("server", "").lower()
    if "cloudflare" in server and headers.get("cf-ray") and len(content) < 5000:
        # Interstitials are tiny pages with almost no structure
        if "<body" in content_lower and content_lower.count("<div") < 10:
            return True

    return False


def detect_challenge_type(content: str) -> str:
    """Name the kind of challenge on a page already known to be one.

    Returns:
        One of "turnstile", "hcaptcha", "recaptcha", "captcha",
        "cloudflare" or "js_challenge".
    """
    content_lower = content.lower()

    if any(ind in content_lower for ind in _TURNSTILE_INDICATORS):
        return "turnstile"

    if 'src="https://hcaptcha.com' in content_lower or 'class="h-captcha"' in content_lower:
        return "hcaptcha"

    if 'class="g-recaptcha"' in content_lower or "grecaptcha.execute" in content_lower:
        return "recaptcha"

    if "data-sitekey=" in content_lower:
        if "hcaptcha" in content_lower:
            return "hcaptcha"
        if "recaptcha" in content_lower:
            return "recaptcha"
        return "captcha"

    if any(ind in content_lower for ind in _CLOUDFLARE_INDICATORS[:3]):
        return "cloudflare"

    if "just a moment" in content_lower and "cloudflare" in content_lower:
        return "js_challenge"

    return "cloudflare"
