"""
Road-distance estimation for dispatch.

Talks to a Distance Matrix style HTTP endpoint (one batched request per
dispatch) and normalizes the reply. Whenever the service is not configured
or does not answer usefully, the straight-line haversine distance is used
instead, so callers always get one result per destination, in order.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import requests
from django.conf import settings

from common.utils import calculate_distance

logger = logging.getLogger(__name__)

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]

DEFAULT_DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"


@dataclass(frozen=True)
class DistanceResult:
    distance_km: float
    duration_min: float
    ok: bool


def _config():
    return getattr(settings, "JOB_DISPATCH", {})


def straight_line_results(origin: LatLon, destinations: Sequence[LatLon]) -> List[DistanceResult]:
    """Haversine result for every destination (duration unknown)."""
    return [
        DistanceResult(
            distance_km=calculate_distance(origin[0], origin[1], lat, lon),
            duration_min=0,
            ok=False,
        )
        for lat, lon in destinations
    ]


def _format_coordinates(coords: Sequence[LatLon]) -> str:
    return "|".join(f"{lat},{lon}" for lat, lon in coords)


def _request_matrix(origin: LatLon, destinations: Sequence[LatLon], api_key: str) -> list:
    """
    Call the distance-matrix endpoint and return the first row's elements.

    Raises requests.RequestException / ValueError on transport or payload errors.
    """
    config = _config()
    response = requests.get(
        config.get("DISTANCE_MATRIX_URL") or DEFAULT_DISTANCE_MATRIX_URL,
        params={
            "origins": _format_coordinates([origin]),
            "destinations": _format_coordinates(destinations),
            "units": "metric",
            "mode": "driving",
            "key": api_key,
        },
        timeout=config.get("HTTP_TIMEOUT_SECONDS", 5),
    )
    response.raise_for_status()
    data = response.json()

    if not isinstance(data, dict):
        raise ValueError("Distance Matrix returned a non-object payload")
    if data.get("status") != "OK":
        raise ValueError(f"Distance Matrix error: {data.get('status')}")

    rows = data.get("rows") or []
    if not isinstance(rows, list) or not rows:
        raise ValueError("Distance Matrix returned no rows")
    if not isinstance(rows[0], dict):
        raise ValueError("Distance Matrix row is not an object")

    elements = rows[0].get("elements") or []
    if not isinstance(elements, list):
        raise ValueError("Distance Matrix elements are not a list")
    return elements


def _element_to_result(element, origin: LatLon, destination: LatLon) -> DistanceResult:
    """Normalize one matrix element; anything unusable falls back to haversine."""
    if isinstance(element, dict) and element.get("status") == "OK":
        distance = element.get("distance") or {}
        duration = element.get("duration") or {}
        meters = distance.get("value") if isinstance(distance, dict) else None
        seconds = duration.get("value") if isinstance(duration, dict) else None
        if isinstance(meters, (int, float)):
            return DistanceResult(
                distance_km=meters / 1000.0,
                duration_min=(seconds / 60.0) if isinstance(seconds, (int, float)) else 0,
                ok=True,
            )

    return DistanceResult(
        distance_km=calculate_distance(origin[0], origin[1], destination[0], destination[1]),
        duration_min=0,
        ok=False,
    )


def estimate_distances(origin: LatLon, destinations: Sequence[LatLon]) -> List[DistanceResult]:
    """
    Estimate travel distance from `origin` to each destination.

    Never raises. The returned list always has the same length and order as
    `destinations`.
    """
    destinations = list(destinations)
    if not destinations:
        return []

    api_key = _config().get("DISTANCE_MATRIX_API_KEY")
    if not api_key:
        logger.debug("No distance-matrix key configured, using straight-line distances")
        return straight_line_results(origin, destinations)

    try:
        elements = _request_matrix(origin, destinations, api_key)
    except (requests.RequestException, ValueError):
        logger.warning("Distance Matrix request failed, falling back to haversine", exc_info=True)
        return straight_line_results(origin, destinations)

    if len(elements) != len(destinations):
        logger.warning(
            "Distance Matrix returned %d elements for %d destinations, falling back to haversine",
            len(elements), len(destinations)
        )
        return straight_line_results(origin, destinations)

    return [
        _element_to_result(element, origin, destination)
        for element, destination in zip(elements, destinations)
    ]
