"""
Find providers near a job location that offer the requested service.

The database query narrows providers by a latitude band; longitude, service
and the exact radius are checked in Python, closest first.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from providers.models import ProviderProfile
from common.utils import bounding_box, calculate_distance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    provider_id: int
    latitude: float
    longitude: float
    approximate_distance_km: float
    notification_token: Optional[str] = None
    full_name: str = ""


def offers_service(profile, service_name: str) -> bool:
    """Case-insensitive match against `services` or `primary_service`."""
    wanted = (service_name or "").strip().lower()
    if not wanted:
        return False

    services = profile.services
    if services is not None and not isinstance(services, list):
        raise ValueError("services must be a list")

    for service in services or []:
        if not isinstance(service, str):
            raise ValueError("service names must be strings")
        if service.strip().lower() == wanted:
            return True

    primary = profile.primary_service
    if primary is not None and not isinstance(primary, str):
        raise ValueError("primary_service must be a string")
    return (primary or "").strip().lower() == wanted


def _verified_providers(box):
    return (
        ProviderProfile.objects.select_related("user")
        .filter(
            verification_status="verified",
            current_latitude__isnull=False,
            current_longitude__isnull=False,
            current_latitude__gte=box.min_lat,
            current_latitude__lte=box.max_lat,
        )
    )


def find_candidates(
    latitude: float,
    longitude: float,
    service_name: str,
    radius_km: float,
    providers: Optional[Iterable[ProviderProfile]] = None,
) -> List[Candidate]:
    """
    Return verified providers offering `service_name` within `radius_km`.

    Args:
        latitude, longitude: job location
        service_name: requested service (matched case-insensitively)
        radius_km: straight-line search radius
        providers: optional pre-fetched profiles (skips the DB query)

    Returns:
        List of Candidate sorted by approximate distance (closest first).
        Providers with malformed location or service data are skipped.
    """
    latitude = float(latitude)
    longitude = float(longitude)
    box = bounding_box(latitude, longitude, radius_km)

    if providers is None:
        providers = _verified_providers(box)

    candidates: List[Candidate] = []
    for profile in providers:
        if profile.verification_status != "verified":
            continue

        try:
            if profile.current_latitude is None or profile.current_longitude is None:
                continue
            p_lat = float(profile.current_latitude)
            p_lon = float(profile.current_longitude)

            if not (box.min_lat <= p_lat <= box.max_lat) or not box.contains_longitude(p_lon):
                continue

            if not offers_service(profile, service_name):
                continue
        except (TypeError, ValueError):
            logger.debug("Skipping provider %s with malformed profile data", profile.user_id)
            continue

        distance = calculate_distance(latitude, longitude, p_lat, p_lon)
        if distance > radius_km:
            continue

        candidates.append(Candidate(
            provider_id=profile.user_id,
            latitude=p_lat,
            longitude=p_lon,
            approximate_distance_km=distance,
            notification_token=profile.notification_token or None,
            full_name=profile.full_name or "",
        ))

    candidates.sort(key=lambda c: c.approximate_distance_km)

    logger.info(
        "Found %d candidates for '%s' within %skm of (%s, %s)",
        len(candidates), service_name, radius_km, latitude, longitude
    )
    return candidates
