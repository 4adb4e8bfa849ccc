"""Resilient HTTP client: bounded retry, TTL caching and rate limiting."""

import time
from collections.abc import Callable
from typing import Any, TypeVar

import requests

from .cache import TTLCache
from .config import RetryConfig
from .errors import (
    ConfigurationError,
    MalformedDataError,
    TransportError,
    UpstreamHTTPError,
)
from .logging_config import create_execution_logger
from .rate_limit import SlidingWindowRateLimiter

T = TypeVar("T")

# Cache miss marker; a producer may legitimately return None
_MISSING = object()

USER_AGENT = "NewsCartoonProxy/1.0"


class ResilientClient:
    """Wraps outbound HTTP calls with retry, caching and admission control.

    The cache and the rate limiter are owned by the instance; pass fresh
    ones to isolate tests or separate quotas.
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        session: requests.Session | None = None,
        cache: TTLCache | None = None,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        execution_id: str | None = None,
        component: str = "api_client",
    ):
        """Initialize the client.

        Args:
            retry_config: Retry bound, base backoff delay and request timeout
            session: HTTP session used for every call
            cache: Cache consulted by call_with_cache
            rate_limiter: Sliding window consulted by check_rate_limit
            execution_id: Execution ID for logging context
            component: Logger component name
        """
        self.retry_config = retry_config or RetryConfig()
        self.cache = cache or TTLCache(default_ttl=300.0)
        self.rate_limiter = rate_limiter
        self.logger = create_execution_logger(component, execution_id)
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": USER_AGENT})
        self.session = session

    @property
    def max_retries(self) -> int:
        return self.retry_config.max_retries

    def require_credential(self, credential: str | None, name: str) -> None:
        """Fail fast, without any network call, when a credential is missing."""
        if not credential or not credential.strip():
            self.logger.error(f"Missing credential: {name}", credential_name=name)
            raise ConfigurationError(
                f"{name} not configured.", details={"credential": name}
            )

    def handle_backoff(self, attempt: int, reason: str) -> float:
        """Sleep for the exponential backoff that follows ``attempt``.

        Args:
            attempt: Zero-based number of the attempt that just failed
            reason: Short description of the failure for the log

        Returns:
            The delay slept, in seconds
        """
        delay = self.retry_config.delay_seconds(attempt)
        self.logger.log_retry(attempt, delay, reason)
        time.sleep(delay)
        return delay

    def call(
        self, method: str, url: str, attempt: int = 0, **kwargs: Any
    ) -> requests.Response:
        """Send a request, retrying 429, 5xx and transport failures.

        Args:
            method: HTTP method
            url: Target URL
            attempt: Attempt number to start from
            **kwargs: Passed to ``requests.Session.request``

        Returns:
            The first 2xx response

        Raises:
            UpstreamHTTPError: Non-retryable status, or retries exhausted
            TransportError: Network failure after retries exhausted
        """
        kwargs.setdefault("timeout", self.retry_config.timeout)

        while True:
            self.logger.debug(
                f"Sending {method} request (attempt {attempt + 1})",
                attempt=attempt,
                http_method=method,
            )
            try:
                response = self.session.request(method, url, **kwargs)
            except requests.RequestException as e:
                if attempt < self.max_retries:
                    self.handle_backoff(attempt, f"transport error: {type(e).__name__}")
                    attempt += 1
                    continue
                self.logger.error(
                    f"Request failed after {attempt + 1} attempts: {e}",
                    attempt=attempt,
                    error=str(e),
                )
                raise TransportError(
                    f"Request failed: {e}",
                    details={"attempts": attempt + 1, "error": str(e)},
                ) from e

            status = response.status_code
            if 200 <= status < 300:
                return response

            error = UpstreamHTTPError(
                f"HTTP {status}: {response.reason or 'error'}",
                upstream_status=status,
                details={"attempts": attempt + 1},
            )
            if error.retryable and attempt < self.max_retries:
                reason = "rate limit (429)" if status == 429 else f"HTTP {status}"
                self.handle_backoff(attempt, reason)
                attempt += 1
                continue

            self.logger.error(
                f"Upstream returned HTTP {status}",
                status_code=status,
                attempt=attempt,
            )
            raise error

    def call_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """``call`` and decode the JSON body."""
        response = self.call(method, url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise MalformedDataError(
                "Response body is not valid JSON", details={"error": str(e)}
            ) from e

    def call_with_cache(
        self, key: str, producer: Callable[[], T], ttl: float | None = None
    ) -> T:
        """Return the cached result for ``key`` or produce and store it.

        Args:
            key: Deterministic identity of the logical request
            producer: Performs the (retrying) call on a cache miss
            ttl: Freshness bound in seconds; the cache default when None

        A stored None is a hit like any other value.
        """
        cached = self.cache.get(key, ttl, default=_MISSING)
        if cached is not _MISSING:
            self.logger.log_cache(key, hit=True)
            return cached

        self.logger.log_cache(key, hit=False)
        data = producer()
        self.cache.set(key, data)
        return data

    def check_rate_limit(self) -> bool:
        """True when the quota-limited operation may run now."""
        if self.rate_limiter is None:
            return True
        allowed = self.rate_limiter.check()
        if not allowed:
            self.logger.warning(
                "Rate limit reached",
                retry_after_seconds=self.rate_limiter.time_until_next(),
            )
        return allowed

    def reserve_rate_limit(self) -> tuple[float, int] | None:
        """Atomically claim one quota slot.

        Returns the reservation, or None when the window is full. Without a
        limiter every call is admitted with an empty reservation.
        """
        if self.rate_limiter is None:
            return (0.0, 0)
        reservation = self.rate_limiter.try_acquire()
        if reservation is None:
            self.logger.warning(
                "Rate limit reached",
                retry_after_seconds=self.rate_limiter.time_until_next(),
            )
        return reservation

    def release_rate_limit(self, reservation: tuple[float, int]) -> None:
        """Return a slot claimed by ``reserve_rate_limit`` that went unused."""
        if self.rate_limiter is not None:
            self.rate_limiter.release(reservation)

    def record_usage(self) -> None:
        """Record one successful quota-limited operation."""
        if self.rate_limiter is not None:
            self.rate_limiter.record()

    def time_until_next(self) -> float:
        if self.rate_limiter is None:
            return 0.0
        return self.rate_limiter.time_until_next()
