"""HTTP client for the Distance Matrix service."""

from __future__ import annotations

import logging
import math
import re
from typing import Protocol, Sequence

import httpx

from ...config import settings
from .models import LegMeasurement
from .units import (
    UNRESOLVED_DISTANCE_METERS,
    format_minutes,
    parse_distance_meters,
    parse_time_to_minutes,
)

logger = logging.getLogger(__name__)


class DistanceLookupError(RuntimeError):
    """The upstream service could not resolve an origin/destination pair."""

    def __init__(self, message: str, *, origin: str | None = None, destination: str | None = None) -> None:
        super().__init__(message)
        self.origin = origin
        self.destination = destination


class DistanceOracle(Protocol):
    def get_leg(self, origin: str, destination: str) -> LegMeasurement:
        ...


def normalize_address(address: str, country: str | None = None) -> str:
    """Clean up a free-form address before it is sent for geocoding.

    Parenthesised notes are dropped, "Sector-20" becomes "Sector 20" and the
    configured country is appended when the address does not mention it.
    """
    if not address:
        return ""
    country = settings.address_country if country is None else country

    normalized = re.sub(r"\([^)]*\)", " ", address)
    normalized = re.sub(r"[^\w\s,./-]", " ", normalized)
    normalized = re.sub(r"([A-Za-z]+)-(\d+)", r"\1 \2", normalized)
    normalized = re.sub(r"\bOppt-", "Opposite ", normalized, flags=re.IGNORECASE)
    normalized = re.sub(r"\s+", " ", normalized).strip(" ,")
    if country and country.lower() not in normalized.lower():
        normalized = f"{normalized}, {country}"
    return normalized


def measurement_from_element(element: dict) -> LegMeasurement:
    """Build a measurement from a Distance Matrix element.

    Numeric ``value`` fields win; the text is parsed only when they are missing
    or malformed.
    """
    distance = element.get("distance") or {}
    duration = element.get("duration") or {}
    distance_text = str(distance.get("text") or "")
    duration_text = str(duration.get("text") or "")

    distance_value = _as_number(distance.get("value"))
    if distance_value is None:
        distance_value = parse_distance_meters(distance_text)
    if distance_value is None:
        logger.warning(f"Unreadable distance {distance_text!r}, leg will sort last")
        distance_value = UNRESOLVED_DISTANCE_METERS

    duration_value = _as_number(duration.get("value"))
    if duration_value is None:
        duration_value = parse_time_to_minutes(duration_text) * 60
    if not duration_text:
        duration_text = format_minutes(math.ceil(duration_value / 60))

    return LegMeasurement(
        distance_text=distance_text or f"{distance_value / 1000:.1f} km",
        distance_value=int(distance_value),
        duration_text=duration_text,
        duration_value=int(duration_value),
    )


def _as_number(value: object) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or number < 0:
        return None
    return round(number)


class DistanceMatrixClient:
    """Distance oracle backed by the Google Distance Matrix API.

    A pure proxy: no retries and no caching. Destination lists longer than
    the per-request limit are split into sequential requests.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        region: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
        max_destinations_per_request: int | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_maps_api_key
        if not self.api_key:
            raise ValueError("Distance Matrix API key is not configured.")
        self.base_url = base_url or settings.distance_matrix_url
        self.region = region or settings.distance_region
        self.timeout = timeout if timeout is not None else settings.distance_timeout_seconds
        self.max_destinations_per_request = (
            max_destinations_per_request or settings.distance_max_destinations_per_request
        )
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout), transport=self._transport)

    def get_leg(self, origin: str, destination: str) -> LegMeasurement:
        return self.get_legs(origin, [destination])[0]

    def get_legs(self, origin: str, destinations: Sequence[str]) -> list[LegMeasurement]:
        """Measure one origin against several destinations, in input order."""
        if not origin or not origin.strip():
            raise ValueError("Origin address must not be empty.")
        if not destinations:
            raise ValueError("At least one destination address is required.")
        if any(not destination or not destination.strip() for destination in destinations):
            raise ValueError("Destination addresses must not be empty.")

        size = self.max_destinations_per_request
        chunks = [destinations[start:start + size] for start in range(0, len(destinations), size)]
        if len(chunks) > 1:
            logger.info(f"Measuring {len(destinations)} destinations from '{origin}' in {len(chunks)} requests")

        measurements: list[LegMeasurement] = []
        for chunk in chunks:
            measurements.extend(self._request_chunk(origin, chunk))
        return measurements

    def _request_chunk(self, origin: str, destinations: Sequence[str]) -> list[LegMeasurement]:
        params = {
            "origins": normalize_address(origin),
            "destinations": "|".join(normalize_address(destination) for destination in destinations),
            "key": self.api_key,
            "region": self.region,
            "units": "metric",
        }

        client = self._get_client()
        try:
            response = client.get(self.base_url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise DistanceLookupError(
                f"Distance lookup from '{origin}' failed: {exc}", origin=origin
            ) from exc
        except ValueError as exc:
            raise DistanceLookupError(
                f"Distance service returned an unreadable response for '{origin}'.", origin=origin
            ) from exc
        finally:
            client.close()

        status = data.get("status")
        if status != "OK":
            message = data.get("error_message") or "Unknown error"
            raise DistanceLookupError(f"Distance service error: {status} - {message}", origin=origin)

        rows = data.get("rows") or []
        elements = rows[0].get("elements", []) if rows else []
        if len(elements) != len(destinations):
            raise DistanceLookupError(
                f"Distance service returned {len(elements)} results for {len(destinations)} destinations.",
                origin=origin,
            )

        measurements: list[LegMeasurement] = []
        for destination, element in zip(destinations, elements):
            element_status = element.get("status")
            if element_status != "OK":
                raise DistanceLookupError(
                    f"Could not resolve route from '{origin}' to '{destination}' ({element_status}).",
                    origin=origin,
                    destination=destination,
                )
            measurements.append(measurement_from_element(element))
        return measurements


def check_health(api_key: str | None = None) -> bool:
    """Check the Distance Matrix service with a minimal lookup."""
    key = api_key or settings.google_maps_api_key
    if not key:
        return False
    try:
        client = DistanceMatrixClient(api_key=key, timeout=5.0)
        client.get_leg("Connaught Place, New Delhi", "India Gate, New Delhi")
        return True
    except (DistanceLookupError, ValueError):
        return False
