"""Route handlers shared by the Flask server and the Lambda entry point.

Each handler takes the wired ``Services`` and the request parameters (query
string for GET, JSON body for POST) and returns ``(status_code, body)``.
"""

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlencode

import requests

from .api_client import ResilientClient
from .article import ArticleExtractor
from .cache import TTLCache
from .cartoon import CartoonService
from .config import Config
from .credentials import resolve_api_key
from .errors import AppError, ValidationError
from .gemini import GeminiClient
from .location import LocationService
from .logging_config import create_execution_logger
from .models import ArticleRecord, CartoonConcept, Coordinates
from .rate_limit import SlidingWindowRateLimiter
from .rss import FeedProcessor

MIN_ARTICLE_CONTENT = 50
MAX_PANELS = 4

Response = tuple[int, dict[str, Any]]
Handler = Callable[["Services", Mapping[str, Any]], Response]


class Services:
    """Components wired from configuration, one set per process."""

    def __init__(
        self,
        config: Config | None = None,
        execution_id: str | None = None,
        session: requests.Session | None = None,
    ):
        """Build every component from ``config``.

        Args:
            config: Environment configuration
            execution_id: Execution ID for logging context
            session: HTTP session shared by all outbound clients
        """
        self.config = config or Config()
        self.logger = create_execution_logger("main", execution_id)

        retry_config = self.config.get_retry_config()
        self.news_config = self.config.get_news_config()
        gemini_config = self.config.get_gemini_config()
        gemini_config.api_key = resolve_api_key(self.config, execution_id)

        self.news_client = ResilientClient(
            retry_config,
            session=session,
            cache=TTLCache(default_ttl=self.news_config.cache_ttl_seconds),
            execution_id=execution_id,
        )
        self.feed_processor = FeedProcessor(
            self.news_config, self.news_client, execution_id
        )
        self.article_extractor = ArticleExtractor(
            ResilientClient(retry_config, session=session, execution_id=execution_id),
            max_length=self.news_config.content_max_length,
            execution_id=execution_id,
        )
        self.location_service = LocationService(
            self.config.get_location_config(),
            ResilientClient(retry_config, session=session, execution_id=execution_id),
            execution_id,
        )

        image_client = ResilientClient(
            retry_config,
            session=session,
            cache=TTLCache(default_ttl=gemini_config.image_cache_ttl_seconds),
            rate_limiter=SlidingWindowRateLimiter(
                gemini_config.image_rate_limit,
                gemini_config.image_rate_window_seconds,
            ),
            execution_id=execution_id,
        )
        self.cartoon_service = CartoonService(
            GeminiClient(gemini_config, image_client, execution_id), execution_id
        )

        self.logger.info(
            "Services initialized",
            news_limit=self.news_config.default_limit,
            recency_days=self.news_config.recency_days,
        )


def error_body(error: AppError) -> dict[str, Any]:
    body = {"error": error.message}
    body.update({k: v for k, v in error.to_dict().items() if k != "message"})
    return body


def error_response(error: AppError) -> Response:
    return error.status_code or 500, error_body(error)


def parse_limit(value: Any, default: int) -> int:
    """Positive integer from a query value, else ``default``."""
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    return limit if limit > 0 else default


def _cache_key(prefix: str, params: Mapping[str, Any]) -> str:
    return f"{prefix}?{urlencode(sorted((k, str(v)) for k, v in params.items()))}"


def _search(
    services: Services,
    cache_prefix: str,
    params: Mapping[str, Any],
    query: str,
    topic: str,
    location: str | None,
) -> Response:
    limit = parse_limit(params.get("max"), services.news_config.default_limit)

    def produce() -> dict[str, Any]:
        result = services.feed_processor.search(
            query,
            limit=limit,
            location=location,
            country=params.get("gl") or None,
            language=params.get("hl") or None,
            scoring=params.get("scoring") or "r",
        )
        return {**result.to_dict(), "topic": topic}

    try:
        body = services.news_client.call_with_cache(
            _cache_key(cache_prefix, params),
            produce,
            ttl=services.news_config.cache_ttl_seconds,
        )
    except AppError as e:
        services.logger.error(f"News search failed: {e.message}", query=query)
        return 500, {"error": "Failed to fetch news", "details": e.message}
    return 200, body


def handle_news_search(services: Services, params: Mapping[str, Any]) -> Response:
    """GET /api/news/search?q&max&location&gl&hl&scoring"""
    query = (params.get("q") or "").strip()
    if not query:
        return 400, {"error": 'Query parameter "q" is required'}
    location = (params.get("location") or "").strip() or None
    return _search(services, "search", params, query, query, location)


def handle_location_news(services: Services, params: Mapping[str, Any]) -> Response:
    """GET /api/news/location?location&max"""
    location = (params.get("location") or "").strip()
    if not location:
        return 400, {"error": "Location parameter is required"}
    return _search(
        services, "location", params, location, f"Local News - {location}", location
    )


def handle_article_content(services: Services, params: Mapping[str, Any]) -> Response:
    """GET /api/article/content?url"""
    url = (params.get("url") or "").strip()
    if not url:
        return 400, {"error": "URL parameter is required"}

    try:
        article = services.article_extractor.fetch_content(url)
    except AppError as e:
        return 500, {"error": "Failed to extract article content", "details": e.message}

    if len(article.content) < MIN_ARTICLE_CONTENT:
        return 404, {"error": "Could not extract article content", "content": ""}
    return 200, article.to_dict()


def handle_location(services: Services, params: Mapping[str, Any]) -> Response:
    """GET /api/location?lat&lng

    Coordinates reported by the caller's device are reverse geocoded;
    without them the IP lookup is used.
    """
    provider = None
    if params.get("lat") is not None or params.get("lng") is not None:
        try:
            coordinates = Coordinates(
                lat=float(params.get("lat")), lng=float(params.get("lng"))
            )
        except (TypeError, ValueError):
            return 400, {"error": "lat and lng must both be numbers"}
        provider = lambda timeout: coordinates  # noqa: E731

    try:
        location = services.location_service.resolve_location(provider)
    except AppError as e:
        return error_response(e)
    return 200, location.to_dict()


def handle_health(services: Services, params: Mapping[str, Any]) -> Response:
    return 200, {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
    }


def _articles(payload: Mapping[str, Any]) -> list[ArticleRecord]:
    articles = payload.get("articles") or []
    if not isinstance(articles, list):
        raise ValidationError('"articles" must be a list')
    return [ArticleRecord.from_dict(article) for article in articles if isinstance(article, dict)]


def _concept(payload: Mapping[str, Any]) -> CartoonConcept:
    concept = payload.get("concept")
    if not isinstance(concept, dict) or not concept.get("title"):
        raise ValidationError('"concept" with a title is required')
    return CartoonConcept.from_dict(concept)


def _panel_count(payload: Mapping[str, Any]) -> int:
    panel_count = payload.get("panelCount", MAX_PANELS)
    if (
        isinstance(panel_count, bool)
        or not isinstance(panel_count, int)
        or not 1 <= panel_count <= MAX_PANELS
    ):
        raise ValidationError(f'"panelCount" must be between 1 and {MAX_PANELS}')
    return panel_count


def handle_cartoon_concepts(services: Services, payload: Mapping[str, Any]) -> Response:
    """POST /api/cartoon/concepts {articles, location}"""
    try:
        data = services.cartoon_service.generate_concepts(
            _articles(payload), payload.get("location") or "Unknown Location"
        )
    except AppError as e:
        return error_response(e)
    return 200, data.to_dict()


def handle_comic_script(services: Services, payload: Mapping[str, Any]) -> Response:
    """POST /api/cartoon/script {concept, articles, panelCount}"""
    try:
        script = services.cartoon_service.generate_comic_script(
            _concept(payload), _articles(payload), _panel_count(payload)
        )
    except AppError as e:
        return error_response(e)
    return 200, script.to_dict()


def handle_cartoon_image(services: Services, payload: Mapping[str, Any]) -> Response:
    """POST /api/cartoon/image {concept, articles, panelCount}"""
    try:
        image = services.cartoon_service.generate_image(
            _concept(payload), _articles(payload), _panel_count(payload)
        )
    except AppError as e:
        return error_response(e)
    return 200, image.to_dict()


def handle_humor_score(services: Services, payload: Mapping[str, Any]) -> Response:
    """POST /api/news/humor {title, description}"""
    title = (payload.get("title") or "").strip()
    if not title:
        return 400, {"error": "Title is required"}
    score = services.cartoon_service.generate_humor_score(
        title, payload.get("description") or None
    )
    return 200, {"humorScore": score}


def handle_batch_analysis(services: Services, payload: Mapping[str, Any]) -> Response:
    """POST /api/news/analyze {articles}"""
    try:
        analyses = services.cartoon_service.batch_analyze(_articles(payload))
    except AppError as e:
        return error_response(e)
    return 200, {"analyses": [analysis.to_dict() for analysis in analyses]}


# (method, path) -> handler
ROUTES: dict[tuple[str, str], Handler] = {
    ("GET", "/api/news/search"): handle_news_search,
    ("GET", "/api/news/location"): handle_location_news,
    ("GET", "/api/article/content"): handle_article_content,
    ("GET", "/api/location"): handle_location,
    ("GET", "/api/health"): handle_health,
    ("POST", "/api/news/humor"): handle_humor_score,
    ("POST", "/api/news/analyze"): handle_batch_analysis,
    ("POST", "/api/cartoon/concepts"): handle_cartoon_concepts,
    ("POST", "/api/cartoon/script"): handle_comic_script,
    ("POST", "/api/cartoon/image"): handle_cartoon_image,
}


def dispatch(
    services: Services, method: str, path: str, params: Mapping[str, Any]
) -> Response:
    """Run the handler for ``method``/``path``.

    Unknown routes answer 404. Errors that escape a handler become
    ``500 {error, details}``.
    """
    handler = ROUTES.get((method.upper(), path.rstrip("/") or "/"))
    if handler is None:
        return 404, {"error": f"Route not found: {method.upper()} {path}"}
    try:
        return handler(services, params)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        services.logger.error(
            f"Unhandled error in {method} {path}: {e}", error=str(e)
        )
        return 500, {"error": "Internal server error", "details": str(e)}
