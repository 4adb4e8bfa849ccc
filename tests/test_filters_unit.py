"""Unit tests for article filters and edition resolution."""

from datetime import UTC, datetime, timedelta

from cartoon_news.config import DEFAULT_LOCALE, DEFAULT_WEATHER_SOURCES, WEATHER_KEYWORDS
from cartoon_news.errors import RateLimitExceededError, UpstreamHTTPError, ValidationError
from cartoon_news.filters import (
    make_denylist_filter,
    make_recency_filter,
    normalize_city,
    resolve_locale,
)
from cartoon_news.models import ArticleRecord, ArticleSource, LocationLocale

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def article(title="Headline", source="Reuters", published_at=NOW):
    return ArticleRecord(
        title=title,
        description="",
        content="",
        url="https://example.com/a",
        published_at=published_at.isoformat(),
        source=ArticleSource(name=source),
    )


class TestDenylistFilterUnit:
    def setup_method(self):
        self.keep = make_denylist_filter(DEFAULT_WEATHER_SOURCES, WEATHER_KEYWORDS)

    def test_regular_article_kept(self):
        assert self.keep(article())

    def test_weather_source_dropped_case_insensitive(self):
        assert not self.keep(article(source="AccuWeather Network"))

    def test_weather_keyword_dropped(self):
        assert not self.keep(article(title="Weekend Weather Forecast for the coast"))

    def test_empty_denylists_keep_everything(self):
        keep = make_denylist_filter([], [])
        assert keep(article(source="weather.com", title="weather update"))


class TestRecencyFilterUnit:
    def test_recent_article_kept(self):
        keep = make_recency_filter(timedelta(days=7), NOW)
        assert keep(article(published_at=NOW - timedelta(days=1)))

    def test_old_article_dropped(self):
        keep = make_recency_filter(timedelta(days=7), NOW)
        assert not keep(article(published_at=NOW - timedelta(days=8)))

    def test_boundary_article_kept(self):
        keep = make_recency_filter(timedelta(days=7), NOW)
        assert keep(article(published_at=NOW - timedelta(days=7)))


class TestResolveLocaleUnit:
    def test_known_city(self):
        assert resolve_locale("melbourne") == LocationLocale("AU", "en-AU")

    def test_multi_word_city(self):
        assert resolve_locale("  new york ") == LocationLocale("US", "en-US")

    def test_unknown_city_uses_default(self):
        assert resolve_locale("Springfield") == DEFAULT_LOCALE

    def test_missing_location_uses_default(self):
        assert resolve_locale(None) == DEFAULT_LOCALE

    def test_overrides_win(self):
        assert resolve_locale("London", "FR", "fr") == LocationLocale("FR", "fr")

    def test_partial_override_fills_default(self):
        assert resolve_locale("London", country_override="DE") == LocationLocale("DE", "en-US")

    def test_normalize_city(self):
        assert normalize_city("sAN fRANCISCO") == "San Francisco"
        assert normalize_city("") == ""


class TestErrorShapesUnit:
    def test_rate_limit_error_carries_retry_after(self):
        error = RateLimitExceededError(12)

        data = error.to_dict()
        assert data["kind"] == "RATE_LIMIT_ERROR"
        assert data["statusCode"] == 429
        assert data["retryAfter"] == 12
        assert "12 seconds" in data["message"]

    def test_upstream_error_retryable(self):
        assert UpstreamHTTPError("busy", upstream_status=429).retryable
        assert UpstreamHTTPError("down", upstream_status=503).retryable
        assert not UpstreamHTTPError("missing", upstream_status=404).retryable

    def test_upstream_status_in_details(self):
        error = UpstreamHTTPError("down", upstream_status=503, details={"url": "x"})
        assert error.details == {"upstream_status": 503, "url": "x"}
        assert error.status_code == 502

    def test_validation_error_without_details(self):
        data = ValidationError("bad input").to_dict()
        assert data == {"kind": "VALIDATION_ERROR", "message": "bad input", "statusCode": 400}
