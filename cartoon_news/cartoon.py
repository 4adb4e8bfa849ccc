"""Editorial cartoon generation: concepts, comic scripts, images and scoring."""

import math
import re
import time
from collections.abc import Callable, Sequence

from .errors import AppError, RateLimitExceededError, ValidationError
from .gemini import GeminiClient
from .logging_config import create_execution_logger
from .models import (
    ArticleAnalysis,
    ArticleRecord,
    CartoonConcept,
    CartoonData,
    CartoonImage,
    ComicScript,
)
from .parsers import (
    DEFAULT_HUMOR_SCORE,
    parse_batch_analysis,
    parse_comic_script,
    parse_concepts,
    parse_humor_score,
    parse_image,
)
from .prompts import (
    build_batch_analysis_prompt,
    build_comic_prompt,
    build_concept_prompt,
    build_humor_score_prompt,
    build_image_prompt,
)

MAX_CONCEPTS = 5
BATCH_SIZE = 3
BATCH_DELAY_SECONDS = 1.0


def image_cache_key(concept: CartoonConcept) -> str:
    """``image_<title>`` with whitespace runs as ``_``, lowercased."""
    return "image_" + re.sub(r"\s+", "_", concept.title).lower()


class CartoonService:
    """Drives the Gemini client through the cartoon workflow."""

    def __init__(
        self,
        gemini: GeminiClient,
        execution_id: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the service.

        Args:
            gemini: Gemini client; its ResilientClient owns the image cache
                and the image rate limiter
            execution_id: Execution ID for logging context
            clock: Wall clock used for ``generated_at`` stamps
        """
        self.gemini = gemini
        self.client = gemini.client
        self.clock = clock
        self.logger = create_execution_logger("cartoon_service", execution_id)

    def generate_concepts(
        self, articles: Sequence[ArticleRecord], location: str
    ) -> CartoonData:
        """Up to five ranked cartoon concepts for the articles.

        Raises:
            ValidationError: No articles given
            MalformedDataError: Model text holds no concept array
        """
        if not articles:
            raise ValidationError("No articles provided for concept generation")

        self.logger.info(
            "Generating cartoon concepts", articles_count=len(articles), location=location
        )
        response = self.gemini.generate_text(build_concept_prompt(articles, location))
        ideas = parse_concepts(response, location)[:MAX_CONCEPTS]

        self.logger.info("Cartoon concepts generated", ideas_count=len(ideas))
        return CartoonData(
            topic=articles[0].title or "News Topic",
            location=location,
            ideas=ideas,
            ranking=[idea.title for idea in ideas],
            winner=ideas[0].title if ideas else "",
            generated_at=self.clock(),
        )

    def generate_comic_script(
        self,
        concept: CartoonConcept,
        articles: Sequence[ArticleRecord],
        panel_count: int = 4,
    ) -> ComicScript:
        self.logger.info(
            "Generating comic script", concept_title=concept.title, panel_count=panel_count
        )
        response = self.gemini.generate_text(
            build_comic_prompt(concept, articles, panel_count)
        )
        panels = parse_comic_script(response, panel_count)
        return ComicScript(
            panels=panels,
            description=f"Comic prompt for: {concept.title}",
            generated_at=self.clock(),
            news_context="; ".join(article.title for article in articles),
        )

    def generate_image(
        self,
        concept: CartoonConcept,
        articles: Sequence[ArticleRecord],
        panel_count: int = 4,
    ) -> CartoonImage:
        """Render the concept as a cartoon image.

        A quota slot is reserved before anything else, so a denied request
        makes no network call and concurrent requests cannot overrun the
        window. The slot is kept only when a new image is rendered; a cache
        hit or a failed render gives it back. Images are cached under the
        concept title.

        Raises:
            RateLimitExceededError: Image quota for the window is used up
            MalformedDataError: Response carries no image data
        """
        reservation = self.client.reserve_rate_limit()
        if reservation is None:
            retry_after = math.ceil(self.client.time_until_next())
            raise RateLimitExceededError(
                retry_after, details={"concept_title": concept.title}
            )

        rendered = False

        def render() -> CartoonImage:
            nonlocal rendered
            script = self.generate_comic_script(concept, articles, panel_count)
            prompt = build_image_prompt(concept, script, panel_count)
            self.logger.info("Calling image model", prompt_length=len(prompt))
            data, mime_type = parse_image(self.gemini.generate_image(prompt))
            rendered = True
            self.logger.info("Cartoon image generated", image_size=len(data))
            return CartoonImage(
                base64_data=data, mime_type=mime_type, generated_at=self.clock()
            )

        try:
            return self.client.call_with_cache(image_cache_key(concept), render)
        finally:
            if not rendered:
                self.client.release_rate_limit(reservation)

    def clear_image_cache(self) -> None:
        self.client.cache.clear()

    def generate_humor_score(self, title: str, description: str | None = None) -> int:
        """Cartoon potential 1-100; 50 when the model call fails."""
        try:
            response = self.gemini.generate_text(
                build_humor_score_prompt(title, description)
            )
        except AppError as e:
            self.logger.warning(
                f"Humor scoring failed: {e.message}", error_kind=e.kind
            )
            return DEFAULT_HUMOR_SCORE
        return parse_humor_score(response)

    def batch_analyze(self, articles: Sequence[ArticleRecord]) -> list[ArticleAnalysis]:
        """Summary and humor score per article, in article order.

        Articles are sent three at a time. Missing entries and failed batches
        become ``ArticleAnalysis("", 50)``.
        """
        results: list[ArticleAnalysis] = []
        total_batches = math.ceil(len(articles) / BATCH_SIZE)

        for start in range(0, len(articles), BATCH_SIZE):
            batch = articles[start : start + BATCH_SIZE]
            batch_number = start // BATCH_SIZE + 1
            self.logger.info(
                f"Analyzing batch {batch_number}/{total_batches}",
                batch_size=len(batch),
            )

            try:
                response = self.gemini.generate_text(build_batch_analysis_prompt(batch))
            except AppError as e:
                self.logger.warning(
                    f"Batch {batch_number} failed: {e.message}", error_kind=e.kind
                )
                results.extend(
                    ArticleAnalysis("", DEFAULT_HUMOR_SCORE) for _ in batch
                )
                continue

            analyses = parse_batch_analysis(response)[: len(batch)]
            if len(analyses) < len(batch):
                self.logger.warning(
                    f"Batch {batch_number}: expected {len(batch)} results, got {len(analyses)}"
                )
                analyses.extend(
                    ArticleAnalysis("", DEFAULT_HUMOR_SCORE)
                    for _ in range(len(batch) - len(analyses))
                )
            results.extend(analyses)

            if start + BATCH_SIZE < len(articles):
                time.sleep(BATCH_DELAY_SECONDS)

        summarized = sum(1 for analysis in results if analysis.summary)
        self.logger.info(
            f"Batch analysis complete: {summarized}/{len(articles)} summarized"
        )
        return results
