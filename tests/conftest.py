"""
Pytest fixtures and configuration for websift tests.

=============================================================================
Test Classification
=============================================================================

- @pytest.mark.unit: Single class/function, no external dependencies
  - All browser interaction mocked
  - DEFAULT: Tests without marker are auto-classified as unit

- @pytest.mark.integration: Multiple components wired together, browser mocked

- @pytest.mark.e2e: Real Chromium and real search engines
  - Skipped unless WEBSIFT_RUN_E2E=1
  - Risk of rate limiting and CAPTCHA pages

=============================================================================
Mock Strategy
=============================================================================

- Playwright: BrowserSessionPool._launch is patched to return a mock context,
  so pages are MagicMocks with AsyncMock goto/content/close
- File I/O: Use tmp_path fixture
- SERP HTML: static fixtures under tests/fixtures/search_html/
"""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# Set test environment before importing anything else
os.environ["WEBSIFT_CONFIG_DIR"] = str(Path(__file__).parent.parent / "config")
os.environ["WEBSIFT_GENERAL__LOG_LEVEL"] = "DEBUG"

from websift.crawler.session_pool import BrowserSessionPool  # noqa: E402
from websift.search.parser_config import reset_parser_config_manager  # noqa: E402
from websift.utils.config import BrowserConfig, reset_settings  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def pytest_configure(config):
    """Register custom markers for test classification."""
    config.addinivalue_line(
        "markers", "unit: Unit tests with no external dependencies (fast, <1s/test)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests with mocked browser (<5s/test)"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests against real engines (set WEBSIFT_RUN_E2E=1)"
    )


def pytest_collection_modifyitems(config, items):
    """
    Auto-apply markers and skip tests based on environment.

    Tests without explicit markers are assumed to be unit tests.
    E2E tests only run when WEBSIFT_RUN_E2E=1.
    """
    run_e2e = os.environ.get("WEBSIFT_RUN_E2E") == "1"
    skip_e2e = pytest.mark.skip(reason="E2E tests skipped. Run with: WEBSIFT_RUN_E2E=1 pytest -m e2e")

    for item in items:
        has_classification = any(
            marker.name in ("unit", "integration", "e2e") for marker in item.iter_markers()
        )
        if not has_classification:
            item.add_marker(pytest.mark.unit)

        if not run_e2e and any(marker.name == "e2e" for marker in item.iter_markers()):
            item.add_marker(skip_e2e)


# =============================================================================
# Settings isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_config_caches() -> Generator[None, None, None]:
    """Drop cached settings and parser configs around each test."""
    reset_settings()
    reset_parser_config_manager()
    yield
    reset_settings()
    reset_parser_config_manager()


# =============================================================================
# Browser mocks
# =============================================================================


def make_mock_page(
    html: str = "<html><body></body></html>",
    status: int = 200,
    headers: dict[str, str] | None = None,
) -> MagicMock:
    """Create a mock Playwright Page that serves fixed HTML."""
    page = MagicMock()
    page.is_closed.return_value = False
    page.close = AsyncMock()

    response = MagicMock()
    response.status = status
    response.headers = headers or {"content-type": "text/html"}

    page.goto = AsyncMock(return_value=response)
    page.wait_for_selector = AsyncMock()
    page.content = AsyncMock(return_value=html)
    return page


def make_mock_context(page_factory: Callable[[], MagicMock] | None = None) -> MagicMock:
    """Create a mock BrowserContext whose new_page() records created pages."""
    context = MagicMock()
    context.close = AsyncMock()
    pages: list[MagicMock] = []

    async def new_page() -> MagicMock:
        page = page_factory() if page_factory else make_mock_page()
        pages.append(page)
        return page

    context.new_page = new_page
    context.created_pages = pages
    return context


@pytest.fixture
def mock_context() -> MagicMock:
    """Mock BrowserContext producing default mock pages."""
    return make_mock_context()


@pytest.fixture
def browser_config() -> BrowserConfig:
    """Browser settings without resource blocking."""
    return BrowserConfig(max_sessions=3, block_resources=False)


@pytest.fixture
def mock_pool(
    mock_context: MagicMock, browser_config: BrowserConfig
) -> Generator[BrowserSessionPool, None, None]:
    """BrowserSessionPool whose launch returns mock_context instead of Chromium."""
    with patch.object(
        BrowserSessionPool, "_launch", AsyncMock(return_value=mock_context)
    ) as launch:
        pool = BrowserSessionPool(browser_config=browser_config)
        pool.launch_mock = launch  # type: ignore[attr-defined]
        yield pool


@pytest.fixture
def page_builder() -> Callable[..., MagicMock]:
    """Expose make_mock_page to tests."""
    return make_mock_page


@pytest.fixture
def pool_factory() -> Generator[Callable[..., BrowserSessionPool], None, None]:
    """
    Build mock-launched pools whose pages come from a custom factory.

    Usage:
        pool = pool_factory(lambda: make_mock_page(html), max_sessions=2)
    """
    contexts: list[MagicMock] = []

    async def launch(self: BrowserSessionPool) -> MagicMock:
        return self._mock_context  # type: ignore[attr-defined]

    def _build(
        page_factory: Callable[[], MagicMock] | None = None, max_sessions: int = 3
    ) -> BrowserSessionPool:
        context = make_mock_context(page_factory)
        contexts.append(context)
        pool = BrowserSessionPool(
            max_sessions=max_sessions,
            browser_config=BrowserConfig(max_sessions=max_sessions, block_resources=False),
        )
        pool._mock_context = context  # type: ignore[attr-defined]
        return pool

    with patch.object(BrowserSessionPool, "_launch", launch):
        yield _build


# =============================================================================
# HTML fixtures
# =============================================================================


@pytest.fixture
def load_search_html() -> Callable[[str], str]:
    """Load a SERP fixture by file name."""

    def _load(name: str) -> str:
        return (FIXTURES_DIR / "search_html" / name).read_text(encoding="utf-8")

    return _load
