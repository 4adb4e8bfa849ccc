"""Google News RSS fetching and normalization."""

import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlencode

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from .api_client import ResilientClient
from .config import NewsConfig
from .filters import (
    ArticleFilter,
    make_denylist_filter,
    make_recency_filter,
    resolve_locale,
)
from .logging_config import ExecutionLogger, create_execution_logger
from .models import (
    ArticleRecord,
    ArticleSource,
    LocationLocale,
    NewsSearchResult,
    RawFeedItem,
)

# Namespaces that keep their conventional prefix in the document tree
NAMESPACE_PREFIXES = {
    "http://search.yahoo.com/mrss/": "media",
    "http://purl.org/dc/elements/1.1/": "dc",
}

TITLE_SEPARATOR = " - "
DEFAULT_SOURCE_NAME = "Unknown"

FeedDocument = Mapping[str, Any]


@dataclass
class FeedResult:
    """Normalized articles, or the empty variant with the reason it is empty."""

    articles: list[ArticleRecord] = field(default_factory=list)
    empty_reason: str | None = None
    items_total: int = 0

    @classmethod
    def ok(cls, articles: list[ArticleRecord], items_total: int) -> "FeedResult":
        return cls(articles=articles, items_total=items_total)

    @classmethod
    def empty(cls, reason: str) -> "FeedResult":
        return cls(articles=[], empty_reason=reason)

    @property
    def is_empty(self) -> bool:
        return not self.articles


def _tag_name(tag: str) -> str:
    if tag.startswith("{"):
        uri, _, local = tag[1:].partition("}")
        prefix = NAMESPACE_PREFIXES.get(uri)
        return f"{prefix}:{local}" if prefix else local
    return tag


def _element_to_tree(element: ET.Element) -> Any:
    text = (element.text or "").strip()
    children = list(element)
    if not children and not element.attrib:
        return text

    node: dict[str, Any] = {_tag_name(key): value for key, value in element.attrib.items()}
    if text:
        node["_"] = text
    for child in children:
        node.setdefault(_tag_name(child.tag), []).append(_element_to_tree(child))
    return node


def parse_feed_document(xml_text: str | bytes) -> FeedDocument | None:
    """Parse feed XML into a tree of mappings, or None if it is not XML.

    Every child element becomes a list under its tag name, attributes are
    merged into the element's mapping and element text is kept under ``"_"``
    when the element also has attributes or children.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError:
        return None
    return {_tag_name(root.tag): _element_to_tree(root)}


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def lookup(node: Mapping[str, Any], name: str) -> Any:
    """Case-insensitive field lookup returning the first non-empty match."""
    wanted = name.lower()
    for key, value in node.items():
        if key.lower() == wanted and value not in (None, "", [], {}):
            return value
    return None


def _text(value: Any) -> str:
    value = _first(value)
    if value is None:
        return ""
    if isinstance(value, Mapping):
        return str(value.get("_", "")).strip()
    return str(value).strip()


def _attribute(value: Any, attribute: str) -> str | None:
    value = _first(value)
    if isinstance(value, Mapping):
        found = lookup(value, attribute)
        return str(found) if found else None
    return None


def extract_raw_item(item: Mapping[str, Any]) -> RawFeedItem:
    """Read one feed item into a casing-independent intermediate record."""
    source = lookup(item, "source")
    return RawFeedItem(
        title=_text(lookup(item, "title")),
        description=_text(lookup(item, "description")),
        link=_text(lookup(item, "link")),
        pub_date=_text(lookup(item, "pubDate")),
        source_name=_text(source),
        source_url=_attribute(source, "url"),
        image_url=_attribute(lookup(item, "media:content"), "url"),
    )


def split_title(title: str) -> tuple[str, str | None]:
    """Split ``"<headline> - <publisher>"`` on the last separator."""
    headline, separator, publisher = title.rpartition(TITLE_SEPARATOR)
    if not separator or not headline.strip():
        return title.strip(), None
    return headline.strip(), publisher.strip() or None


def clean_html_content(content: str) -> str:
    """Remove HTML tags, unescape entities and normalize whitespace.

    Args:
        content: Raw content that may contain HTML or entities

    Returns:
        Plain text content
    """
    if not content:
        return ""

    if "<" in content or ">" in content or "&" in content:
        # html.parser only knows the HTML4 named entities
        content = content.replace("&apos;", "&#39;")
        soup = BeautifulSoup(content, "html.parser")
        for element in soup(["script", "style"]):
            element.decompose()
        content = soup.get_text(separator=" ")

    return " ".join(content.split())


def parse_published(pub_date: str, now: datetime) -> datetime:
    """Parse a feed date, falling back to ``now`` when missing or malformed."""
    if not pub_date:
        return now
    try:
        published = date_parser.parse(pub_date)
    except (ValueError, TypeError, OverflowError):
        return now
    if published.tzinfo is None:
        published = published.replace(tzinfo=UTC)
    return published


def to_iso8601(moment: datetime) -> str:
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def build_article(raw: RawFeedItem, now: datetime) -> ArticleRecord:
    """Turn an intermediate feed item into an ArticleRecord."""
    headline, publisher = split_title(raw.title)
    description = clean_html_content(raw.description)
    return ArticleRecord(
        title=headline,
        description=description,
        content=description,
        url=raw.link,
        image_url=raw.image_url,
        published_at=to_iso8601(parse_published(raw.pub_date, now)),
        source=ArticleSource(
            name=publisher or raw.source_name or DEFAULT_SOURCE_NAME,
            url=raw.source_url,
        ),
    )


def normalize_feed(
    document: FeedDocument | None,
    limit: int,
    filters: Iterable[ArticleFilter] = (),
    now: datetime | None = None,
    logger: ExecutionLogger | None = None,
) -> FeedResult:
    """Normalize a feed document into at most ``limit`` articles.

    Items are scanned in feed order until ``limit`` of them pass every
    filter. Structural problems (missing root, missing channel, an item
    collection that is not a list) never raise: they yield
    ``FeedResult.empty``. A single item that is not an element is skipped.
    """
    now = now or datetime.now(UTC)
    logger = logger or create_execution_logger("feed_normalizer")
    filters = list(filters)

    if not isinstance(document, Mapping):
        return FeedResult.empty("unparsable_xml")

    try:
        root = _first(lookup(document, "rss"))
        if not isinstance(root, Mapping):
            return FeedResult.empty("no_root")

        channel = _first(lookup(root, "channel"))
        if not isinstance(channel, Mapping):
            return FeedResult.empty("no_channel")

        items = lookup(channel, "item") or []
        if not isinstance(items, list):
            return FeedResult.empty("malformed_items")

        articles = []
        for index, item in enumerate(items):
            if len(articles) >= limit:
                break
            if not isinstance(item, Mapping):
                logger.debug(
                    "Skipping feed item that is not an element",
                    item_index=index,
                    item_type=type(item).__name__,
                )
                continue
            article = build_article(extract_raw_item(item), now)
            if all(keep(article) for keep in filters):
                articles.append(article)
    except Exception:
        return FeedResult.empty("malformed_items")

    return FeedResult.ok(articles, items_total=len(items))


class FeedProcessor:
    """Fetches Google News search feeds and normalizes them into articles."""

    def __init__(
        self,
        config: NewsConfig | None = None,
        client: ResilientClient | None = None,
        execution_id: str | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        """Initialize FeedProcessor with configuration.

        Args:
            config: News search configuration
            client: Retrying HTTP client used for feed downloads
            execution_id: Execution ID for logging context
            now: Source of the current time (UTC)
        """
        self.config = config or NewsConfig()
        self.client = client or ResilientClient(execution_id=execution_id)
        self.now = now or (lambda: datetime.now(UTC))
        self.logger = create_execution_logger("feed_processor", execution_id)

        self.logger.info(
            "FeedProcessor initialized",
            recency_days=self.config.recency_days,
            blocked_sources=len(self.config.blocked_sources),
        )

    def build_filters(self, now: datetime) -> list[ArticleFilter]:
        """Recency window followed by the source/keyword denylist."""
        return [
            make_recency_filter(timedelta(days=self.config.recency_days), now),
            make_denylist_filter(
                self.config.blocked_sources, self.config.blocked_keywords
            ),
        ]

    def build_feed_url(
        self, query: str, locale: LocationLocale, scoring: str = "r"
    ) -> str:
        """Google News RSS search URL for a query and edition."""
        language = locale.language_code.split("-")[0]
        params = {
            "q": query,
            "hl": locale.language_code,
            "gl": locale.country_code,
            "ceid": f"{locale.country_code}:{language}",
            "scoring": scoring,
        }
        return f"{self.config.feed_base_url}?{urlencode(params)}"

    def fetch_feed(self, feed_url: str) -> bytes:
        """Download feed XML with retry.

        Raises:
            UpstreamHTTPError: Feed host answered with an error status
            TransportError: Feed host unreachable
        """
        self.logger.info("Downloading feed content", feed_url=feed_url)
        response = self.client.call("GET", feed_url)
        self.logger.info(
            "Feed downloaded successfully",
            feed_url=feed_url,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return response.content

    def normalize(self, document: FeedDocument | None, limit: int) -> FeedResult:
        """Apply the configured filters to a feed document."""
        now = self.now()
        result = normalize_feed(
            document, limit, self.build_filters(now), now, logger=self.logger
        )
        if result.empty_reason:
            self.logger.warning(
                f"Feed structure unusable: {result.empty_reason}",
                empty_reason=result.empty_reason,
            )
        return result

    def search(
        self,
        query: str,
        limit: int | None = None,
        location: str | None = None,
        country: str | None = None,
        language: str | None = None,
        scoring: str = "r",
    ) -> NewsSearchResult:
        """Search Google News and return filtered, normalized articles.

        Args:
            query: Search keywords
            limit: Maximum number of articles
            location: City used to pick the edition
            country: Explicit ``gl`` override
            language: Explicit ``hl`` override
            scoring: ``r`` for relevance, ``d`` for date

        Returns:
            NewsSearchResult with the edition that was queried
        """
        limit = limit if limit and limit > 0 else self.config.default_limit
        locale = resolve_locale(location, country, language)
        feed_url = self.build_feed_url(query, locale, scoring)

        self.logger.log_execution_start(query=query, feed_url=feed_url)
        xml_bytes = self.fetch_feed(feed_url)
        result = self.normalize(parse_feed_document(xml_bytes), limit)
        self.logger.log_feed_normalized(query, result.items_total, len(result.articles))
        self.logger.log_execution_end(success=True, articles_count=len(result.articles))

        return NewsSearchResult(articles=result.articles, locale=locale, location=location)
