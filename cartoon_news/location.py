"""Caller location detection: device coordinates first, IP lookup second."""

import math
import time
from collections.abc import Callable
from typing import Any

from .api_client import ResilientClient
from .config import LocationConfig
from .errors import AppError, LocationDetectionError, MalformedDataError
from .logging_config import create_execution_logger
from .models import Coordinates, LocationData

UNKNOWN_LOCATION = "Unknown Location"

# Called with ``timeout=<seconds>``; returns the device position
CoordinateProvider = Callable[..., Coordinates]


def format_place_name(*parts: Any) -> str:
    """Join the non-empty parts with ``", "``, else ``"Unknown Location"``."""
    return ", ".join(str(part) for part in parts if part) or UNKNOWN_LOCATION


def format_coordinates(coordinates: Coordinates) -> str:
    return f"{coordinates.lat:.2f}, {coordinates.lng:.2f}"


def timezone_from_longitude(lng: float) -> str:
    """Approximate ``UTC±HH:00`` offset, one hour per 15 degrees."""
    offset = math.floor(lng / 15 + 0.5)
    sign = "+" if offset >= 0 else "-"
    return f"UTC{sign}{abs(offset):02d}:00"


class LocationService:
    """Resolves the caller's location and a human-readable place name."""

    def __init__(
        self,
        config: LocationConfig | None = None,
        client: ResilientClient | None = None,
        execution_id: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or LocationConfig()
        self.client = client or ResilientClient(execution_id=execution_id)
        self.clock = clock
        self.logger = create_execution_logger("location_service", execution_id)

    def resolve_location(
        self, coordinate_provider: CoordinateProvider | None = None
    ) -> LocationData:
        """Locate the caller.

        Args:
            coordinate_provider: Device position source; None means the
                device cannot report its position

        Raises:
            LocationDetectionError: Both the device and the IP lookup failed
        """
        try:
            return self.from_device(coordinate_provider)
        except Exception as gps_error:
            self.logger.warning(
                f"Device location failed, trying IP fallback: {gps_error}",
                gps_error=str(gps_error),
            )
            try:
                return self.from_ip()
            except AppError as ip_error:
                self.logger.error(
                    "Location detection failed", ip_error=ip_error.message
                )
                raise LocationDetectionError(
                    "Could not detect location. Please enter your location manually.",
                    details={"gps_error": str(gps_error), "ip_error": ip_error.message},
                ) from ip_error

    def from_device(
        self, coordinate_provider: CoordinateProvider | None
    ) -> LocationData:
        if coordinate_provider is None:
            raise LocationDetectionError("Geolocation not supported")

        coordinates = coordinate_provider(timeout=self.config.device_timeout_seconds)
        location = self.from_coordinates(coordinates)
        self.logger.info("Location resolved from device", place=location.name)
        return location

    def from_coordinates(self, coordinates: Coordinates) -> LocationData:
        """Build a LocationData from known coordinates."""
        return LocationData(
            name=self.reverse_geocode(coordinates),
            coordinates=coordinates,
            source="gps",
            timezone=timezone_from_longitude(coordinates.lng),
            timestamp=self.clock(),
        )

    def from_ip(self) -> LocationData:
        """Look up the caller's location by IP address, with retry.

        Raises:
            UpstreamHTTPError: Lookup service answered with an error status
            TransportError: Lookup service unreachable
            MalformedDataError: Response has no usable coordinates
        """
        data = self.client.call_json("GET", self.config.ip_lookup_url)
        if not isinstance(data, dict):
            raise MalformedDataError("IP lookup response is not an object")
        try:
            coordinates = Coordinates(
                lat=float(data["latitude"]), lng=float(data["longitude"])
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedDataError(
                "IP lookup response has no coordinates", details={"error": str(e)}
            ) from e

        location = LocationData(
            name=format_place_name(
                data.get("city"), data.get("region"), data.get("country_name")
            ),
            coordinates=coordinates,
            source="ip",
            timezone=data.get("timezone"),
            timestamp=self.clock(),
        )
        self.logger.info("Location resolved from IP", place=location.name)
        return location

    def reverse_geocode(self, coordinates: Coordinates) -> str:
        """``"city, state, country"`` for the coordinates.

        Degrades to ``"lat, lng"`` at two decimals when the geocoder keeps
        failing.
        """
        try:
            data = self.client.call_json(
                "GET",
                self.config.reverse_geocode_url,
                params={
                    "format": "json",
                    "lat": coordinates.lat,
                    "lon": coordinates.lng,
                },
                headers={"Accept-Language": "en"},
            )
        except AppError as e:
            self.logger.warning(
                f"Reverse geocoding failed: {e.message}", error_kind=e.kind
            )
            return format_coordinates(coordinates)

        address = data.get("address") if isinstance(data, dict) else None
        if not isinstance(address, dict):
            address = {}
        return format_place_name(
            address.get("city"), address.get("state"), address.get("country")
        )
