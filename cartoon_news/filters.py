"""Article filter predicates and location-aware edition resolution."""

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from .config import DEFAULT_LOCALE, LOCATION_LOCALES
from .models import ArticleRecord, LocationLocale

# A filter returns True to keep the article
ArticleFilter = Callable[[ArticleRecord], bool]


def is_blocked_source(source_name: str, blocked_sources: Iterable[str]) -> bool:
    """True when the source name contains any denylisted substring."""
    name = (source_name or "").lower()
    return any(blocked.lower() in name for blocked in blocked_sources if blocked)


def has_blocked_keyword(title: str, blocked_keywords: Iterable[str]) -> bool:
    """True when the title contains any denylisted phrase."""
    text = (title or "").lower()
    return any(keyword.lower() in text for keyword in blocked_keywords if keyword)


def make_denylist_filter(
    blocked_sources: Iterable[str], blocked_keywords: Iterable[str]
) -> ArticleFilter:
    """Drop articles from denylisted sources or with denylisted title phrases."""
    sources = [source.lower() for source in blocked_sources]
    keywords = [keyword.lower() for keyword in blocked_keywords]

    def keep(article: ArticleRecord) -> bool:
        return not (
            is_blocked_source(article.source.name, sources)
            or has_blocked_keyword(article.title, keywords)
        )

    return keep


def make_recency_filter(horizon: timedelta, now: datetime) -> ArticleFilter:
    """Drop articles published before ``now - horizon``.

    Articles exactly on the boundary are kept.
    """
    cutoff = now - horizon

    def keep(article: ArticleRecord) -> bool:
        return datetime.fromisoformat(article.published_at) >= cutoff

    return keep


def normalize_city(city_name: str) -> str:
    """Title-case each word: ``"new york"`` -> ``"New York"``."""
    if not city_name or not isinstance(city_name, str):
        return ""
    return " ".join(word[:1].upper() + word[1:] for word in city_name.lower().split(" "))


def resolve_locale(
    location: str | None = None,
    country_override: str | None = None,
    language_override: str | None = None,
    table: dict[str, LocationLocale] = LOCATION_LOCALES,
) -> LocationLocale:
    """Pick the Google News edition for a search.

    Explicit ``gl``/``hl`` overrides win; otherwise the location is looked up
    in the city table; unknown or missing locations use the US edition.
    """
    if country_override or language_override:
        return LocationLocale(
            country_code=country_override or DEFAULT_LOCALE.country_code,
            language_code=language_override or DEFAULT_LOCALE.language_code,
        )
    if not location:
        return DEFAULT_LOCALE
    return table.get(normalize_city(location.strip()), DEFAULT_LOCALE)
