"""Data models for the news cartoon proxy."""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ArticleSource:
    """Publisher of an article."""

    name: str
    url: str | None = None


@dataclass(frozen=True)
class ArticleRecord:
    """Normalized news item built from a single feed entry."""

    title: str
    description: str
    content: str
    url: str
    published_at: str  # ISO-8601
    source: ArticleSource
    image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "url": self.url,
            "image": self.image_url,
            "publishedAt": self.published_at,
            "source": {"name": self.source.name, "url": self.source.url},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ArticleRecord":
        """Build a record from its wire form; missing fields default to empty."""
        source = data.get("source") or {}
        if isinstance(source, str):
            source = {"name": source}
        description = data.get("description") or ""
        return cls(
            title=data.get("title") or "",
            description=description,
            content=data.get("content") or description,
            url=data.get("url") or "",
            published_at=data.get("publishedAt") or "",
            source=ArticleSource(
                name=source.get("name") or "Unknown", url=source.get("url")
            ),
            image_url=data.get("image"),
        )


@dataclass(frozen=True)
class RawFeedItem:
    """Feed entry fields after case-insensitive lookup, before any filtering."""

    title: str
    description: str
    link: str
    pub_date: str
    source_name: str
    source_url: str | None
    image_url: str | None


@dataclass
class CacheEntry(Generic[T]):
    """A cached value and the clock reading at which it was stored."""

    data: T
    stored_at: float


@dataclass(frozen=True)
class LocationLocale:
    """Google News country/language pair for a location."""

    country_code: str
    language_code: str


@dataclass
class NewsSearchResult:
    """Articles returned for one search, with the edition that was queried."""

    articles: list[ArticleRecord]
    locale: LocationLocale
    location: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "articles": [article.to_dict() for article in self.articles],
            "totalArticles": len(self.articles),
            "location": self.location,
            "countryCode": self.locale.country_code,
            "languageCode": self.locale.language_code,
        }


@dataclass(frozen=True)
class Coordinates:
    """Latitude/longitude pair."""

    lat: float
    lng: float


@dataclass
class LocationData:
    """Resolved location of the caller."""

    name: str
    coordinates: Coordinates
    source: str  # "gps" or "ip"
    timezone: str | None
    timestamp: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "coordinates": {"lat": self.coordinates.lat, "lng": self.coordinates.lng},
            "source": self.source,
            "timezone": self.timezone,
            "timestamp": self.timestamp,
        }


@dataclass
class CartoonConcept:
    """One cartoon idea produced from the selected articles."""

    title: str
    premise: str
    why_funny: str
    location: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "premise": self.premise,
            "why_funny": self.why_funny,
            "location": self.location,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartoonConcept":
        return cls(
            title=data.get("title") or "Untitled",
            premise=data.get("premise") or "",
            why_funny=data.get("why_funny") or "",
            location=data.get("location") or "",
        )


@dataclass
class VisibleText:
    """Text that must appear inside a comic panel."""

    type: str  # dialogue, sign, caption or label
    content: str


@dataclass
class ComicPanel:
    """Structured description of one comic panel."""

    panel_number: int
    visual_description: str
    visible_text: list[VisibleText] = field(default_factory=list)
    characters: list[str] = field(default_factory=list)
    setting: str = "Scene"

    def to_dict(self) -> dict[str, Any]:
        return {
            "panelNumber": self.panel_number,
            "visualDescription": self.visual_description,
            "visibleText": [
                {"type": text.type, "content": text.content}
                for text in self.visible_text
            ],
            "characters": list(self.characters),
            "setting": self.setting,
        }


@dataclass
class ComicScript:
    """Panel-by-panel script for a cartoon."""

    panels: list[ComicPanel]
    description: str
    generated_at: float
    news_context: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "panels": [panel.to_dict() for panel in self.panels],
            "description": self.description,
            "generatedAt": self.generated_at,
            "newsContext": self.news_context,
        }


@dataclass
class CartoonImage:
    """Generated cartoon image."""

    base64_data: str
    mime_type: str
    generated_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "base64Data": self.base64_data,
            "mimeType": self.mime_type,
            "generatedAt": self.generated_at,
        }


@dataclass
class CartoonData:
    """Ranked cartoon concepts for a topic."""

    topic: str
    location: str
    ideas: list[CartoonConcept]
    ranking: list[str]
    winner: str
    generated_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "location": self.location,
            "ideas": [idea.to_dict() for idea in self.ideas],
            "ranking": list(self.ranking),
            "winner": self.winner,
            "generatedAt": self.generated_at,
        }


@dataclass
class ArticleAnalysis:
    """Short summary and humor potential for one article."""

    summary: str
    humor_score: int

    def to_dict(self) -> dict[str, Any]:
        return {"summary": self.summary, "humorScore": self.humor_score}


@dataclass
class ArticleContent:
    """Readable text scraped from an article page."""

    content: str
    url: str
    final_url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "length": len(self.content),
            "url": self.url,
            "finalUrl": self.final_url,
        }
