"""Error taxonomy for the news cartoon proxy.

Every failure surfaced to a caller is an ``AppError`` carrying a
machine-readable ``kind``, a human-readable message, an optional HTTP status
code and optional structured details.
"""

from typing import Any


class AppError(Exception):
    """Base error with a uniform, serializable shape."""

    kind = "APP_ERROR"
    default_status_code: int | None = 500

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = (
            status_code if status_code is not None else self.default_status_code
        )
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for API responses and logs."""
        data: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.status_code is not None:
            data["statusCode"] = self.status_code
        if self.details:
            data["details"] = self.details
        return data


class ConfigurationError(AppError):
    """A required credential or setting is missing. Never retried."""

    kind = "CONFIGURATION_ERROR"
    default_status_code = 500


class UpstreamHTTPError(AppError):
    """A dependency answered with a non-2xx status."""

    kind = "UPSTREAM_HTTP_ERROR"
    default_status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: int,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message, details={"upstream_status": upstream_status, **(details or {})}
        )
        self.upstream_status = upstream_status

    @property
    def retryable(self) -> bool:
        """Rate-limited (429) and server-side (5xx) failures may succeed later."""
        return self.upstream_status == 429 or self.upstream_status >= 500


class TransportError(AppError):
    """The request never produced an HTTP response (DNS, connect, timeout)."""

    kind = "TRANSPORT_ERROR"
    default_status_code = 502


class RateLimitExceededError(AppError):
    """The local admission check refused the operation."""

    kind = "RATE_LIMIT_ERROR"
    default_status_code = 429

    def __init__(self, retry_after: int, details: dict[str, Any] | None = None):
        super().__init__(
            f"Rate limit exceeded. Try again in {retry_after} seconds.",
            details=details,
        )
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["retryAfter"] = self.retry_after
        return data


class MalformedDataError(AppError):
    """A feed or API response did not have the expected structure."""

    kind = "MALFORMED_DATA_ERROR"
    default_status_code = 502


class LocationDetectionError(AppError):
    """Neither device coordinates nor the IP lookup produced a location."""

    kind = "LOCATION_ERROR"
    default_status_code = 400


class ValidationError(AppError):
    """Caller input was missing or invalid."""

    kind = "VALIDATION_ERROR"
    default_status_code = 400
