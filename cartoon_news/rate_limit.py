"""Sliding-window admission control for quota-limited operations."""

import threading
import time
from collections.abc import Callable


class SlidingWindowRateLimiter:
    """Allow at most ``limit`` operations in any trailing ``window`` seconds.

    Usage is kept as ordered ``(timestamp, count)`` samples; samples older
    than the window are dropped whenever the limiter is consulted.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError("Rate limit must allow at least one operation")
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._samples: list[tuple[float, int]] = []
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        self._samples = [
            (timestamp, count)
            for timestamp, count in self._samples
            if now - timestamp < self.window_seconds
        ]

    def _used(self) -> int:
        return sum(count for _, count in self._samples)

    def check(self) -> bool:
        """True when another operation fits inside the current window."""
        with self._lock:
            self._prune(self.clock())
            return self._used() < self.limit

    def record(self, count: int = 1) -> None:
        """Record ``count`` operations performed now."""
        with self._lock:
            now = self.clock()
            self._prune(now)
            self._samples.append((now, count))

    def try_acquire(self, count: int = 1) -> tuple[float, int] | None:
        """Reserve ``count`` operations now if they fit, else return None.

        Check and record happen under one lock, so concurrent callers can
        never overrun the window. Pass the returned sample to ``release``
        when the reserved operation does not happen after all.
        """
        with self._lock:
            now = self.clock()
            self._prune(now)
            if self._used() + count > self.limit:
                return None
            sample = (now, count)
            self._samples.append(sample)
            return sample

    def release(self, sample: tuple[float, int]) -> None:
        """Give back a reservation made by ``try_acquire``."""
        with self._lock:
            if sample in self._samples:
                self._samples.remove(sample)

    def remaining(self) -> int:
        with self._lock:
            self._prune(self.clock())
            return max(0, self.limit - self._used())

    def time_until_next(self) -> float:
        """Seconds until the oldest in-window sample expires (0 if allowed now)."""
        with self._lock:
            now = self.clock()
            self._prune(now)
            if self._used() < self.limit:
                return 0.0
            oldest = min(timestamp for timestamp, _ in self._samples)
            return max(0.0, self.window_seconds - (now - oldest))

    def reset(self) -> None:
        with self._lock:
            self._samples.clear()
