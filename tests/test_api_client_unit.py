"""Unit tests for the resilient API client."""

from unittest.mock import Mock, call, patch

import pytest
import requests

from cartoon_news.api_client import ResilientClient
from cartoon_news.cache import TTLCache
from cartoon_news.config import GeminiConfig, RetryConfig
from cartoon_news.errors import (
    ConfigurationError,
    MalformedDataError,
    TransportError,
    UpstreamHTTPError,
)
from cartoon_news.gemini import GeminiClient
from cartoon_news.rate_limit import SlidingWindowRateLimiter


def response(status_code=200, payload=None, reason="OK"):
    mock_response = Mock(status_code=status_code, reason=reason)
    mock_response.json.return_value = payload if payload is not None else {}
    return mock_response


class TestRetryUnit:
    """Retry policy: 429/5xx/transport retried with exponential backoff."""

    def test_success_first_try_makes_one_request(self):
        session = Mock()
        session.request.return_value = response(200)
        client = ResilientClient(session=session)

        with patch("cartoon_news.api_client.time.sleep") as mock_sleep:
            result = client.call("GET", "https://api.example.com/data")

        assert result.status_code == 200
        assert session.request.call_count == 1
        mock_sleep.assert_not_called()

    def test_two_rate_limits_then_success_waits_one_then_two_seconds(self):
        session = Mock()
        session.request.side_effect = [
            response(429, reason="Too Many Requests"),
            response(429, reason="Too Many Requests"),
            response(200),
        ]
        client = ResilientClient(session=session)

        with patch("cartoon_news.api_client.time.sleep") as mock_sleep:
            result = client.call("GET", "https://api.example.com/data")

        assert result.status_code == 200
        assert session.request.call_count == 3
        assert mock_sleep.call_args_list == [call(1.0), call(2.0)]

    def test_client_error_is_not_retried(self):
        session = Mock()
        session.request.return_value = response(404, reason="Not Found")
        client = ResilientClient(session=session)

        with patch("cartoon_news.api_client.time.sleep") as mock_sleep:
            with pytest.raises(UpstreamHTTPError) as exc_info:
                client.call("GET", "https://api.example.com/missing")

        assert exc_info.value.upstream_status == 404
        assert not exc_info.value.retryable
        assert session.request.call_count == 1
        mock_sleep.assert_not_called()

    def test_server_errors_exhaust_retries(self):
        session = Mock()
        session.request.return_value = response(503, reason="Service Unavailable")
        client = ResilientClient(session=session)

        with patch("cartoon_news.api_client.time.sleep") as mock_sleep:
            with pytest.raises(UpstreamHTTPError) as exc_info:
                client.call("GET", "https://api.example.com/data")

        assert exc_info.value.upstream_status == 503
        assert exc_info.value.status_code == 502
        assert session.request.call_count == 4
        assert mock_sleep.call_args_list == [call(1.0), call(2.0), call(4.0)]

    def test_transport_failures_exhaust_retries(self):
        session = Mock()
        session.request.side_effect = requests.ConnectionError("connection refused")
        client = ResilientClient(RetryConfig(max_retries=2), session=session)

        with patch("cartoon_news.api_client.time.sleep"):
            with pytest.raises(TransportError) as exc_info:
                client.call("GET", "https://api.example.com/data")

        assert session.request.call_count == 3
        assert exc_info.value.details["attempts"] == 3

    def test_transport_failure_then_success(self):
        session = Mock()
        session.request.side_effect = [requests.Timeout("slow"), response(200)]
        client = ResilientClient(session=session)

        with patch("cartoon_news.api_client.time.sleep") as mock_sleep:
            assert client.call("GET", "https://api.example.com/data").status_code == 200

        mock_sleep.assert_called_once_with(1.0)

    def test_default_timeout_passed_to_session(self):
        session = Mock()
        session.request.return_value = response(200)
        client = ResilientClient(RetryConfig(timeout=7.5), session=session)

        client.call("GET", "https://api.example.com/data")

        assert session.request.call_args.kwargs["timeout"] == 7.5

    def test_call_json_rejects_invalid_body(self):
        session = Mock()
        bad = response(200)
        bad.json.side_effect = ValueError("Expecting value")
        session.request.return_value = bad
        client = ResilientClient(session=session)

        with pytest.raises(MalformedDataError):
            client.call_json("GET", "https://api.example.com/data")


class TestCredentialUnit:
    def test_missing_api_key_fails_without_network_call(self):
        session = Mock()
        client = ResilientClient(session=session)
        gemini = GeminiClient(GeminiConfig(api_key=""), client)

        with pytest.raises(ConfigurationError) as exc_info:
            gemini.generate_text("Say something funny")

        assert "not configured" in exc_info.value.message
        session.request.assert_not_called()

    def test_blank_credential_rejected(self):
        client = ResilientClient(session=Mock())

        with pytest.raises(ConfigurationError):
            client.require_credential("   ", "Gemini API key")


class TestCachingUnit:
    def test_second_call_within_ttl_served_from_cache(self):
        clock = Mock(return_value=100.0)
        client = ResilientClient(session=Mock(), cache=TTLCache(300.0, clock=clock))
        producer = Mock(return_value={"articles": [1, 2]})

        first = client.call_with_cache("search?q=budget", producer)
        clock.return_value = 350.0
        second = client.call_with_cache("search?q=budget", producer)

        assert first == second == {"articles": [1, 2]}
        producer.assert_called_once()

    def test_expired_entry_produced_again(self):
        clock = Mock(return_value=100.0)
        client = ResilientClient(session=Mock(), cache=TTLCache(300.0, clock=clock))
        producer = Mock(side_effect=["old", "new"])

        client.call_with_cache("key", producer)
        clock.return_value = 400.1

        assert client.call_with_cache("key", producer) == "new"
        assert producer.call_count == 2

    def test_failed_producer_caches_nothing(self):
        client = ResilientClient(session=Mock())
        producer = Mock(side_effect=[TransportError("down"), "ok"])

        with pytest.raises(TransportError):
            client.call_with_cache("key", producer)

        assert client.call_with_cache("key", producer) == "ok"

    def test_cached_none_is_served_without_producing_again(self):
        client = ResilientClient(session=Mock())
        producer = Mock(return_value=None)

        assert client.call_with_cache("empty", producer) is None
        assert client.call_with_cache("empty", producer) is None

        producer.assert_called_once()


class TestRateLimitUnit:
    def test_without_limiter_always_allowed(self):
        client = ResilientClient(session=Mock())

        assert client.check_rate_limit()
        client.record_usage()
        assert client.time_until_next() == 0.0

    def test_limiter_consulted(self):
        clock = Mock(return_value=0.0)
        limiter = SlidingWindowRateLimiter(1, 60.0, clock=clock)
        client = ResilientClient(session=Mock(), rate_limiter=limiter)

        client.record_usage()
        clock.return_value = 15.0

        assert not client.check_rate_limit()
        assert client.time_until_next() == 45.0

    def test_reservation_fills_window_until_released(self):
        clock = Mock(return_value=0.0)
        limiter = SlidingWindowRateLimiter(1, 60.0, clock=clock)
        client = ResilientClient(session=Mock(), rate_limiter=limiter)

        reservation = client.reserve_rate_limit()

        assert reservation is not None
        assert client.reserve_rate_limit() is None
        client.release_rate_limit(reservation)
        assert client.reserve_rate_limit() is not None

    def test_reservation_without_limiter(self):
        client = ResilientClient(session=Mock())

        reservation = client.reserve_rate_limit()

        assert reservation is not None
        client.release_rate_limit(reservation)


class TestSlidingWindowUnit:
    def test_try_acquire_respects_count(self):
        limiter = SlidingWindowRateLimiter(3, 60.0, clock=Mock(return_value=0.0))

        assert limiter.try_acquire(2) == (0.0, 2)
        assert limiter.try_acquire(2) is None
        assert limiter.remaining() == 1

    def test_release_of_unknown_sample_is_ignored(self):
        limiter = SlidingWindowRateLimiter(1, 60.0, clock=Mock(return_value=0.0))
        limiter.record()

        limiter.release((5.0, 1))

        assert limiter.remaining() == 0
