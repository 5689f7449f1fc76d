"""
Settings Module - Centralized Configuration Management
=======================================================

All configuration is loaded from environment variables (a local .env file
is read first). Settings are frozen dataclasses so a single instance can be
shared across requests.

Usage:
    from reviewhub.infrastructure.config import get_settings
    settings = get_settings()
    print(settings.database.url)
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Tuple

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SESSION_SECRET = "dev-secret-key"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DatabaseSettings:
    """MongoDB connection settings."""

    url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", "mongodb://localhost:27017"))
    name: str = field(default_factory=lambda: os.getenv("DATABASE_NAME", "reviewhub"))
    server_selection_timeout_ms: int = 5000


@dataclass(frozen=True)
class AuthSettings:
    """Session cookie settings."""

    session_secret: str = field(
        default_factory=lambda: os.getenv("SESSION_SECRET", DEFAULT_SESSION_SECRET)
    )
    algorithm: str = "HS256"
    cookie_name: str = "reviewhub_session"
    session_days: int = field(default_factory=lambda: int(os.getenv("SESSION_DAYS", "7")))
    cookie_secure: bool = field(default_factory=lambda: _env_bool("COOKIE_SECURE"))


@dataclass(frozen=True)
class ScraperSettings:
    """Apify review scraping provider settings."""

    api_token: str = field(default_factory=lambda: os.getenv("APIFY_TOKEN", ""))
    api_url: str = "https://api.apify.com/v2"

    google_actor: str = field(
        default_factory=lambda: os.getenv("APIFY_GOOGLE_ACTOR", "compass~google-maps-reviews-scraper")
    )
    facebook_actor: str = field(
        default_factory=lambda: os.getenv("APIFY_FACEBOOK_ACTOR", "apify~facebook-reviews-scraper")
    )

    # Synchronous actor runs can take minutes
    timeout_seconds: int = field(default_factory=lambda: int(os.getenv("SCRAPER_TIMEOUT", "300")))
    default_max_reviews: int = 100


@dataclass(frozen=True)
class Settings:
    """
    Root settings container - Single source of truth for all configuration.
    """

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    scraper: ScraperSettings = field(default_factory=ScraperSettings)

    # Public base URL used in embed snippets and the loader script
    app_url: str = field(
        default_factory=lambda: os.getenv("APP_URL", "http://127.0.0.1:8000").rstrip("/")
    )
    cors_origins: Tuple[str, ...] = field(
        default_factory=lambda: tuple(
            origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
        )
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    def validate(self) -> list[str]:
        """
        Validate settings and return list of warnings.
        Returns empty list if all settings are valid.
        """
        issues = []

        if self.auth.session_secret == DEFAULT_SESSION_SECRET:
            issues.append(
                "WARNING: SESSION_SECRET not set. "
                "Session cookies are signed with the development secret."
            )

        if not self.scraper.api_token:
            issues.append(
                "WARNING: APIFY_TOKEN not set. "
                "Scrape requests will fail with an upstream error."
            )

        if not self.app_url.startswith(("http://", "https://")):
            issues.append(f"WARNING: APP_URL should be an absolute URL, got: {self.app_url}")

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get singleton Settings instance.
    Cached to ensure consistent settings throughout application lifecycle.
    """
    return Settings()
