"""Unit tests for the cartoon generation service."""

import json
import threading
import time
from unittest.mock import Mock, patch

import pytest

from cartoon_news.api_client import ResilientClient
from cartoon_news.cache import TTLCache
from cartoon_news.cartoon import CartoonService, image_cache_key
from cartoon_news.errors import (
    MalformedDataError,
    RateLimitExceededError,
    UpstreamHTTPError,
    ValidationError,
)
from cartoon_news.models import ArticleRecord, ArticleSource, CartoonConcept
from cartoon_news.rate_limit import SlidingWindowRateLimiter

SCRIPT_TEXT = json.dumps(
    [
        {
            "panelNumber": 1,
            "visualDescription": "A politician at a podium",
            "visibleText": [{"type": "sign", "content": "TRUST ME"}],
            "characters": ["politician"],
            "setting": "stage",
        }
    ]
)
IMAGE_RESPONSE = {
    "candidates": [
        {"content": {"parts": [{"inlineData": {"mimeType": "image/png", "data": "aW1hZ2U="}}]}}
    ]
}


def text_response(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def article(title, description="Something happened"):
    return ArticleRecord(
        title=title,
        description=description,
        content=description,
        url="https://news.example.com/story",
        published_at="2024-06-10T12:00:00.000Z",
        source=ArticleSource("Herald"),
    )


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def build_service(limit=2, window=60.0):
    clock = FakeClock()
    client = ResilientClient(
        session=Mock(),
        cache=TTLCache(3600.0, clock=clock),
        rate_limiter=SlidingWindowRateLimiter(limit, window, clock=clock),
    )
    gemini = Mock()
    gemini.client = client
    service = CartoonService(gemini, clock=lambda: 1718020800.0)
    return service, gemini, clock


CONCEPT = CartoonConcept("Red Tape  Mummy", "Politician wrapped in tape", "Irony", "Canberra")


class TestConceptsUnit:
    def test_concepts_ranked_in_model_order(self):
        service, gemini, _ = build_service()
        ideas = [{"title": f"Idea {i}", "premise": "p", "why_funny": "w"} for i in range(7)]
        gemini.generate_text.return_value = text_response(json.dumps(ideas))

        data = service.generate_concepts([article("Budget vote")], "Canberra")

        assert len(data.ideas) == 5
        assert data.ranking == [f"Idea {i}" for i in range(5)]
        assert data.winner == "Idea 0"
        assert data.topic == "Budget vote"
        assert data.location == "Canberra"
        assert data.ideas[0].location == "Canberra"

    def test_no_articles_rejected_without_model_call(self):
        service, gemini, _ = build_service()

        with pytest.raises(ValidationError):
            service.generate_concepts([], "Canberra")

        gemini.generate_text.assert_not_called()

    def test_unparsable_concepts_raise(self):
        service, gemini, _ = build_service()
        gemini.generate_text.return_value = text_response("no ideas today")

        with pytest.raises(MalformedDataError):
            service.generate_concepts([article("Budget vote")], "Canberra")


class TestComicScriptUnit:
    def test_script_carries_news_context(self):
        service, gemini, _ = build_service()
        gemini.generate_text.return_value = text_response(SCRIPT_TEXT)

        script = service.generate_comic_script(
            CONCEPT, [article("Budget vote"), article("Tax cut")], panel_count=1
        )

        assert len(script.panels) == 1
        assert script.panels[0].setting == "stage"
        assert script.description == "Comic prompt for: Red Tape  Mummy"
        assert script.news_context == "Budget vote; Tax cut"


class TestImageGenerationUnit:
    def test_cache_key_normalizes_whitespace(self):
        assert image_cache_key(CONCEPT) == "image_red_tape_mummy"

    def test_image_generated_recorded_and_cached(self):
        service, gemini, _ = build_service()
        gemini.generate_text.return_value = text_response(SCRIPT_TEXT)
        gemini.generate_image.return_value = IMAGE_RESPONSE

        first = service.generate_image(CONCEPT, [article("Budget vote")], panel_count=1)
        second = service.generate_image(CONCEPT, [article("Budget vote")], panel_count=1)

        assert first.base64_data == "aW1hZ2U="
        assert first.mime_type == "image/png"
        assert second is first
        gemini.generate_image.assert_called_once()
        assert service.client.rate_limiter.remaining() == 1

    def test_rate_limit_denial_makes_no_calls(self):
        service, gemini, clock = build_service(limit=2, window=60.0)
        service.client.rate_limiter.record()
        service.client.rate_limiter.record()
        clock.now = 12.5

        with pytest.raises(RateLimitExceededError) as exc_info:
            service.generate_image(CONCEPT, [article("Budget vote")])

        assert exc_info.value.retry_after == 48
        assert exc_info.value.message == "Rate limit exceeded. Try again in 48 seconds."
        assert exc_info.value.to_dict()["retryAfter"] == 48
        gemini.generate_text.assert_not_called()
        gemini.generate_image.assert_not_called()

    def test_limit_recovers_after_window(self):
        service, gemini, clock = build_service(limit=1, window=60.0)
        gemini.generate_text.return_value = text_response(SCRIPT_TEXT)
        gemini.generate_image.return_value = IMAGE_RESPONSE

        service.generate_image(CONCEPT, [article("Budget vote")])
        with pytest.raises(RateLimitExceededError):
            service.generate_image(CartoonConcept("Other", "p", "w"), [])

        clock.now = 60.0
        image = service.generate_image(CartoonConcept("Other", "p", "w"), [])

        assert image.base64_data == "aW1hZ2U="

    def test_text_instead_of_image_not_recorded(self):
        service, gemini, _ = build_service()
        gemini.generate_text.return_value = text_response(SCRIPT_TEXT)
        gemini.generate_image.return_value = text_response("I drew nothing")

        with pytest.raises(MalformedDataError):
            service.generate_image(CONCEPT, [article("Budget vote")])

        assert service.client.rate_limiter.remaining() == 2
        assert len(service.client.cache) == 0

    def test_concurrent_requests_cannot_overrun_quota(self):
        service, gemini, _ = build_service(limit=1, window=60.0)
        gemini.generate_text.return_value = text_response(SCRIPT_TEXT)
        image_call_may_finish = threading.Event()

        def slow_image(prompt):
            image_call_may_finish.wait(timeout=2)
            return IMAGE_RESPONSE

        gemini.generate_image.side_effect = slow_image
        results = []
        results_lock = threading.Lock()

        def request(title):
            try:
                service.generate_image(CartoonConcept(title, "p", "w"), [])
                outcome = "ok"
            except RateLimitExceededError:
                outcome = "denied"
            with results_lock:
                results.append(outcome)

        threads = [
            threading.Thread(target=request, args=(f"Concept {i}",)) for i in range(3)
        ]
        for thread in threads:
            thread.start()
        for _ in range(200):
            with results_lock:
                if len(results) >= 2:
                    break
            time.sleep(0.01)
        image_call_may_finish.set()
        for thread in threads:
            thread.join(timeout=5)

        assert sorted(results) == ["denied", "denied", "ok"]
        assert gemini.generate_image.call_count == 1
        assert service.client.rate_limiter.remaining() == 0

    def test_cache_hit_gives_reserved_slot_back(self):
        service, gemini, _ = build_service(limit=1, window=60.0)
        gemini.generate_text.return_value = text_response(SCRIPT_TEXT)
        gemini.generate_image.return_value = IMAGE_RESPONSE
        service.generate_image(CONCEPT, [])
        service.client.rate_limiter.reset()

        service.generate_image(CONCEPT, [])

        assert service.client.rate_limiter.remaining() == 1


class TestScoringUnit:
    def test_humor_score_parsed(self):
        service, gemini, _ = build_service()
        gemini.generate_text.return_value = text_response("87")

        assert service.generate_humor_score("Mayor loses keys to city") == 87

    def test_humor_score_defaults_on_failure(self):
        service, gemini, _ = build_service()
        gemini.generate_text.side_effect = UpstreamHTTPError("HTTP 500", upstream_status=500)

        assert service.generate_humor_score("Mayor loses keys to city") == 50

    def test_batch_analysis_pads_and_degrades(self):
        service, gemini, _ = build_service()
        gemini.generate_text.side_effect = [
            text_response('[{"summary": "First", "humorScore": 70}, {"summary": "Second", "humorScore": 60}]'),
            UpstreamHTTPError("HTTP 503", upstream_status=503),
        ]
        articles = [article(f"Story {i}") for i in range(4)]

        with patch("cartoon_news.cartoon.time.sleep") as mock_sleep:
            analyses = service.batch_analyze(articles)

        assert [(a.summary, a.humor_score) for a in analyses] == [
            ("First", 70),
            ("Second", 60),
            ("", 50),
            ("", 50),
        ]
        assert gemini.generate_text.call_count == 2
        mock_sleep.assert_called_once_with(1.0)

    def test_batch_analysis_of_nothing(self):
        service, gemini, _ = build_service()

        assert service.batch_analyze([]) == []
        gemini.generate_text.assert_not_called()
