"""
Configuration management for websift.
Loads and validates settings from YAML files and environment variables.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field


class GeneralConfig(BaseModel):
    """General configuration."""

    log_level: str = "INFO"
    logs_dir: str = "logs"


class BrowserConfig(BaseModel):
    """Browser session pool configuration.

    One Chromium process and one context are shared by all sessions.
    Each session is a Page owned by a single task at a time.
    """

    model_config = ConfigDict(extra="forbid")

    headless: bool = True
    max_sessions: int = Field(default=5, ge=1, le=32, description="Maximum live pages")
    acquire_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds to wait for a free session (None waits indefinitely)",
    )
    viewport_width: int = 1366
    viewport_height: int = 900
    locale: str = "en-US"
    user_agents: list[str] = Field(default_factory=list)
    block_resources: bool = True
    block_patterns: list[str] = Field(
        default_factory=lambda: [
            "**/*.{png,jpg,jpeg,gif,svg,webp,ico,mp4,webm,mp3,woff,woff2,ttf}",
            "*googlesyndication.com*",
            "*doubleclick.net*",
            "*google-analytics.com*",
            "*googletagmanager.com*",
        ]
    )
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--disable-blink-features=AutomationControlled",
            "--no-sandbox",
            "--disable-dev-shm-usage",
        ]
    )


class SearchConfig(BaseModel):
    """Search orchestration configuration."""

    model_config = ConfigDict(extra="forbid")

    default_count: int = Field(default=5, ge=1, le=10)
    max_count: int = Field(default=10, ge=1, le=10)
    domain_rewrite_threshold: int = Field(
        default=10,
        ge=1,
        description="Max domains folded into site: clauses; larger sets are post-filtered",
    )
    provider_order: list[str] = Field(default_factory=lambda: ["bing", "brave", "duckduckgo"])
    provider_timeout: float = Field(default=30.0, gt=0, description="Seconds per provider attempt")
    navigation_timeout: float = Field(default=20.0, gt=0)
    listing_timeout: float = Field(
        default=8.0, gt=0, description="Seconds to wait for the result listing to render"
    )
    min_results: int = Field(default=1, ge=1, description="Results needed to accept a provider")
    parsers_file: str = "search_parsers.yaml"


class ExtractionConfig(BaseModel):
    """Content extraction configuration."""

    model_config = ConfigDict(extra="forbid")

    worker_count: int | None = Field(
        default=None,
        ge=1,
        description="Concurrent extraction attempts (None uses the pool capacity)",
    )
    item_timeout: float = Field(default=20.0, gt=0)
    settle_delay: float = Field(default=0.5, ge=0, description="Seconds to wait after load")
    max_content_length: int = Field(default=10000, ge=1)
    preview_length: int = Field(default=500, ge=1)
    max_response_bytes: int = Field(default=5 * 1024 * 1024, ge=1024)


class Settings(BaseModel):
    """Main settings container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary.
        override: Override dictionary.

    Returns:
        Merged dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def get_project_root() -> Path:
    """Get the project root directory.

    Returns:
        Project root path.
    """
    # Assuming this file is at websift/utils/config.py
    return Path(__file__).parent.parent.parent


def get_config_dir() -> Path:
    """Resolve the configuration directory.

    ``WEBSIFT_CONFIG_DIR`` wins; otherwise ``config/`` under the project root.
    """
    env_dir = os.environ.get("WEBSIFT_CONFIG_DIR")
    if env_dir:
        return Path(env_dir)
    return get_project_root() / "config"


def _load_yaml_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_yaml_config(config_dir: Path) -> dict[str, Any]:
    """Load settings.yaml, then apply the ``settings`` section of local.yaml.

    Example local.yaml:
        settings:
          browser:
            headless: false

    Args:
        config_dir: Configuration directory path.

    Returns:
        Merged configuration dictionary.
    """
    config = _load_yaml_file(config_dir / "settings.yaml")
    local_overrides = _load_yaml_file(config_dir / "local.yaml")
    if isinstance(local_overrides.get("settings"), dict):
        config = _deep_merge(config, local_overrides["settings"])
    return config


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides.

    Environment variables should be prefixed with WEBSIFT_ and use
    double underscores for nested keys.

    Example:
        WEBSIFT_BROWSER__MAX_SESSIONS=8

    Args:
        config: Configuration dictionary.

    Returns:
        Configuration with environment overrides.
    """
    prefix = "WEBSIFT_"

    for key, value in os.environ.items():
        if not key.startswith(prefix) or "__" not in key:
            continue

        key_path = key[len(prefix) :].lower().split("__")

        current = config
        for part in key_path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        final_key = key_path[-1]
        try:
            if value.lower() in ("true", "false"):
                current[final_key] = value.lower() == "true"
            elif "." in value:
                current[final_key] = float(value)
            else:
                current[final_key] = int(value)
        except ValueError:
            current[final_key] = value

    return config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get application settings.

    Settings are loaded from:
    1. Default values
    2. YAML configuration files (settings.yaml, then local.yaml)
    3. Environment variables (highest priority)

    Returns:
        Settings instance.
    """
    config = _load_yaml_config(get_config_dir())
    config = _apply_env_overrides(config)
    return Settings(**config)


def reset_settings() -> None:
    """Drop cached settings (for testing only)."""
    get_settings.cache_clear()
