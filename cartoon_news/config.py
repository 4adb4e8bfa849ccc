"""Configuration management for the news cartoon proxy."""

import os
from dataclasses import dataclass, field

from .models import LocationLocale

# Weather outlets removed from every search result
DEFAULT_WEATHER_SOURCES = [
    "weather.com",
    "the weather channel",
    "accuweather",
    "weather underground",
    "wunderground",
    "national weather service",
    "weatherbug",
    "weather network",
    "weather.gov",
    "weathernation",
    "weather central",
]

# Title phrases that mark an item as a weather advisory
WEATHER_KEYWORDS = [
    "weather forecast",
    "temperature alert",
    "weather warning",
    "weather advisory",
    "weather update",
]

# City name (title case) -> Google News edition
LOCATION_LOCALES: dict[str, LocationLocale] = {
    "Melbourne": LocationLocale("AU", "en-AU"),
    "Sydney": LocationLocale("AU", "en-AU"),
    "Brisbane": LocationLocale("AU", "en-AU"),
    "Perth": LocationLocale("AU", "en-AU"),
    "Adelaide": LocationLocale("AU", "en-AU"),
    "Canberra": LocationLocale("AU", "en-AU"),
    "New York": LocationLocale("US", "en-US"),
    "Los Angeles": LocationLocale("US", "en-US"),
    "Chicago": LocationLocale("US", "en-US"),
    "San Francisco": LocationLocale("US", "en-US"),
    "London": LocationLocale("GB", "en-GB"),
    "Manchester": LocationLocale("GB", "en-GB"),
    "Toronto": LocationLocale("CA", "en-CA"),
    "Vancouver": LocationLocale("CA", "en-CA"),
    "Auckland": LocationLocale("NZ", "en-NZ"),
    "Wellington": LocationLocale("NZ", "en-NZ"),
}

DEFAULT_LOCALE = LocationLocale("US", "en-US")


@dataclass
class RetryConfig:
    """Bounded exponential backoff for outbound calls."""

    max_retries: int = 3
    base_delay_ms: int = 1000
    timeout: float = 30.0

    def delay_seconds(self, attempt: int) -> float:
        """Backoff before the retry that follows ``attempt``."""
        return self.base_delay_ms * (2**attempt) / 1000


@dataclass
class NewsConfig:
    """Configuration for the Google News search pipeline."""

    feed_base_url: str = "https://news.google.com/rss/search"
    default_limit: int = 10
    recency_days: int = 3
    cache_ttl_seconds: float = 300.0
    blocked_sources: list[str] = field(
        default_factory=lambda: list(DEFAULT_WEATHER_SOURCES)
    )
    blocked_keywords: list[str] = field(default_factory=lambda: list(WEATHER_KEYWORDS))
    content_max_length: int = 5000


@dataclass
class GeminiConfig:
    """Configuration for the Gemini generative API."""

    api_key: str = ""
    text_model: str = "gemini-3-pro-preview"
    image_model: str = "gemini-3-pro-image-preview"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    image_cache_ttl_seconds: float = 3600.0
    image_rate_limit: int = 2
    image_rate_window_seconds: float = 60.0

    def endpoint(self, model: str) -> str:
        return f"{self.base_url}/{model}:generateContent"


@dataclass
class LocationConfig:
    """Configuration for location detection."""

    ip_lookup_url: str = "https://ipapi.co/json/"
    reverse_geocode_url: str = "https://nominatim.openstreetmap.org/reverse"
    device_timeout_seconds: float = 10.0


@dataclass
class ServerConfig:
    """Configuration for the HTTP proxy."""

    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


class Config:
    """Main configuration manager."""

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.default_news_limit = max(1, _env_int("DEFAULT_NEWS_LIMIT", 10))
        self.recency_days = max(0, _env_int("NEWS_RECENCY_DAYS", 3))
        self.news_cache_ttl = _env_float("NEWS_CACHE_TTL_SECONDS", 300.0)
        self.blocklist_extra = os.getenv("WEATHER_BLOCKLIST_EXTRA", "")

        self.max_retries = max(0, _env_int("MAX_RETRIES", 3))
        self.retry_base_delay_ms = max(0, _env_int("RETRY_BASE_DELAY_MS", 1000))
        self.request_timeout = _env_float("REQUEST_TIMEOUT_SECONDS", 30.0)

        self.google_api_key = os.getenv("GOOGLE_API_KEY", "")
        self.gemini_secret_name = os.getenv("GEMINI_SECRET_NAME", "")
        self.aws_region = os.getenv(
            "CURRENT_AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")
        )
        self.gemini_text_model = os.getenv("GEMINI_TEXT_MODEL", "gemini-3-pro-preview")
        self.gemini_image_model = os.getenv(
            "GEMINI_IMAGE_MODEL", "gemini-3-pro-image-preview"
        )
        self.image_cache_ttl = _env_float("IMAGE_CACHE_TTL_SECONDS", 3600.0)
        self.image_rate_limit = max(1, _env_int("IMAGE_RATE_LIMIT", 2))
        self.image_rate_window = _env_float("IMAGE_RATE_WINDOW_SECONDS", 60.0)

        self.geolocation_timeout = _env_float("GEOLOCATION_TIMEOUT_SECONDS", 10.0)

        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = _env_int("PORT", 3001)
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

    def get_blocked_sources(self) -> list[str]:
        """Seeded weather outlets plus WEATHER_BLOCKLIST_EXTRA entries."""
        extra = [
            source.strip().lower()
            for source in self.blocklist_extra.split(",")
            if source.strip()
        ]
        return DEFAULT_WEATHER_SOURCES + extra

    def get_news_config(self) -> NewsConfig:
        """Get news search configuration."""
        return NewsConfig(
            default_limit=self.default_news_limit,
            recency_days=self.recency_days,
            cache_ttl_seconds=self.news_cache_ttl,
            blocked_sources=self.get_blocked_sources(),
        )

    def get_retry_config(self) -> RetryConfig:
        """Get retry configuration."""
        return RetryConfig(
            max_retries=self.max_retries,
            base_delay_ms=self.retry_base_delay_ms,
            timeout=self.request_timeout,
        )

    def get_gemini_config(self) -> GeminiConfig:
        """Get Gemini configuration.

        The API key may be empty here; it is resolved from Secrets Manager
        at startup when GEMINI_SECRET_NAME is set.
        """
        return GeminiConfig(
            api_key=self.google_api_key,
            text_model=self.gemini_text_model,
            image_model=self.gemini_image_model,
            image_cache_ttl_seconds=self.image_cache_ttl,
            image_rate_limit=self.image_rate_limit,
            image_rate_window_seconds=self.image_rate_window,
        )

    def get_location_config(self) -> LocationConfig:
        """Get location detection configuration."""
        return LocationConfig(device_timeout_seconds=self.geolocation_timeout)

    def get_server_config(self) -> ServerConfig:
        """Get HTTP server configuration."""
        return ServerConfig(host=self.host, port=self.port, log_level=self.log_level)
