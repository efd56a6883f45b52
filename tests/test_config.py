"""
Tests for settings loading (websift.utils.config).
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from websift.utils.config import (
    BrowserConfig,
    SearchConfig,
    Settings,
    _apply_env_overrides,
    _deep_merge,
    get_config_dir,
    get_settings,
    reset_settings,
)

pytestmark = pytest.mark.unit


class TestDefaults:
    """Tests for documented defaults."""

    def test_model_defaults(self) -> None:
        """
        Given: No configuration at all
        When: Settings() is constructed
        Then: Documented defaults apply
        """
        settings = Settings()
        assert settings.browser.max_sessions == 5
        assert settings.browser.acquire_timeout is None
        assert settings.search.default_count == 5
        assert settings.search.domain_rewrite_threshold == 10
        assert settings.search.provider_order == ["bing", "brave", "duckduckgo"]
        assert settings.search.provider_timeout == 30.0
        assert settings.search.min_results == 1
        assert settings.extraction.worker_count is None
        assert settings.extraction.max_content_length == 10000
        assert settings.extraction.preview_length == 500
        assert settings.extraction.max_response_bytes == 5 * 1024 * 1024

    def test_repository_settings_file_loads(self) -> None:
        """
        Given: The repository config directory (set by conftest)
        When: get_settings() is called
        Then: settings.yaml values are loaded
        """
        settings = get_settings()
        assert settings.browser.headless is True
        assert settings.search.parsers_file == "search_parsers.yaml"

    def test_invalid_max_sessions_rejected(self) -> None:
        """max_sessions below 1 fails validation."""
        with pytest.raises(ValidationError):
            BrowserConfig(max_sessions=0)

    def test_unknown_browser_key_rejected(self) -> None:
        """Typos in section keys are reported instead of ignored."""
        with pytest.raises(ValidationError):
            BrowserConfig(max_tabs=3)

    def test_result_count_limits(self) -> None:
        """
        Given: The search section
        When: default_count or max_count is set above 10
        Then: Validation fails; the defaults are 5 and 10
        """
        assert SearchConfig().default_count == 5
        assert SearchConfig().max_count == 10
        with pytest.raises(ValidationError):
            SearchConfig(max_count=11)
        with pytest.raises(ValidationError):
            SearchConfig(default_count=0)


class TestOverrides:
    """Tests for YAML and environment overrides."""

    def test_deep_merge(self) -> None:
        """Nested dictionaries merge key by key; scalars are replaced."""
        base = {"browser": {"headless": True, "max_sessions": 5}, "general": {"log_level": "INFO"}}
        override = {"browser": {"max_sessions": 2}}
        assert _deep_merge(base, override) == {
            "browser": {"headless": True, "max_sessions": 2},
            "general": {"log_level": "INFO"},
        }

    def test_env_overrides_are_typed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """
        Given: WEBSIFT_ environment variables for bool, int, float and string values
        When: _apply_env_overrides() is called
        Then: Values are parsed into the matching Python types
        """
        monkeypatch.setenv("WEBSIFT_BROWSER__HEADLESS", "false")
        monkeypatch.setenv("WEBSIFT_BROWSER__MAX_SESSIONS", "8")
        monkeypatch.setenv("WEBSIFT_SEARCH__PROVIDER_TIMEOUT", "12.5")
        monkeypatch.setenv("WEBSIFT_GENERAL__LOG_LEVEL", "WARNING")

        config = _apply_env_overrides({})

        assert config["browser"] == {"headless": False, "max_sessions": 8}
        assert config["search"] == {"provider_timeout": 12.5}
        assert config["general"] == {"log_level": "WARNING"}

    def test_local_yaml_overrides_settings(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """
        Given: A config dir with settings.yaml and a local.yaml settings section
        When: get_settings() is called
        Then: local.yaml wins over settings.yaml and environment wins over both
        """
        (tmp_path / "settings.yaml").write_text(
            "browser:\n  max_sessions: 4\n  headless: true\nsearch:\n  min_results: 2\n",
            encoding="utf-8",
        )
        (tmp_path / "local.yaml").write_text(
            "settings:\n  browser:\n    max_sessions: 2\n", encoding="utf-8"
        )
        monkeypatch.setenv("WEBSIFT_CONFIG_DIR", str(tmp_path))
        monkeypatch.setenv("WEBSIFT_SEARCH__MIN_RESULTS", "3")
        reset_settings()

        settings = get_settings()

        assert get_config_dir() == tmp_path
        assert settings.browser.max_sessions == 2
        assert settings.browser.headless is True
        assert settings.search.min_results == 3

    def test_settings_are_cached_until_reset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """get_settings() returns one instance until reset_settings() is called."""
        first = get_settings()
        assert get_settings() is first

        monkeypatch.setenv("WEBSIFT_BROWSER__MAX_SESSIONS", "7")
        reset_settings()

        assert get_settings() is not first
        assert get_settings().browser.max_sessions == 7
