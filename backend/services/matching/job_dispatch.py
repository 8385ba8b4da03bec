"""
Job dispatch: fan a newly appended job out to qualified providers.

Steps:
    1. Resolve the job location (customer's last location, else fallback)
    2. Find candidates inside the geo query radius
    3. Refine with road distances and apply the final cutoff
    4. Record the notified providers on the job (once)
    5. Upsert one inbox entry per qualified provider
    6. After commit, wake providers up (push + WebSocket)
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Tuple

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from bookings.models import InboxEntry, Job, JobStatus
from customers.models import CustomerProfile

from .candidate_finder import Candidate, find_candidates
from .distance import DistanceResult, estimate_distances

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_COORDINATES = (19.8762, 75.3433)


@dataclass
class DispatchResult:
    """Outcome of one dispatch run."""
    status: str  # dispatched | no_candidates | no_qualified | skipped
    booking_id: str = ""
    candidate_count: int = 0
    notified_provider_ids: List[int] = field(default_factory=list)


def _config():
    return getattr(settings, "JOB_DISPATCH", {})


def resolve_job_coordinates(job: Job) -> Tuple[float, float]:
    """Customer's last known location, else the configured fallback point."""
    profile = CustomerProfile.objects.filter(user_id=job.customer_id).first()
    if profile and profile.has_location:
        return float(profile.latitude), float(profile.longitude)

    fallback = _config().get("FALLBACK_COORDINATES") or DEFAULT_FALLBACK_COORDINATES
    logger.warning(
        "[MONITORING] No location for customer %s (booking %s), using fallback %s",
        job.customer_id, job.booking_id, fallback
    )
    return float(fallback[0]), float(fallback[1])


def _qualify(
    candidates: List[Candidate],
    distances: List[DistanceResult],
    limit_km: float,
) -> List[Tuple[Candidate, DistanceResult]]:
    """Pair candidates with their distances and keep those within the cutoff."""
    return [
        (candidate, result)
        for candidate, result in zip(candidates, distances)
        if result.distance_km <= limit_km
    ]


def _upsert_inbox_entry(job: Job, candidate: Candidate, distance: DistanceResult, now, expires_at):
    InboxEntry.objects.update_or_create(
        provider_id=candidate.provider_id,
        booking_id=job.booking_id,
        defaults={
            "container_id": job.container_id,
            "booking_index": job.position,
            "customer_key": job.container.customer_key,
            "service_name": job.service_name,
            "price_snapshot": job.price,
            "distance_km": round(distance.distance_km, 2),
            "status": JobStatus.PENDING,
            "created_at": now,
            "expires_at": expires_at,
        },
    )


def send_new_job_alerts(job: Job, candidates: List[Candidate]):
    """
    Best-effort wake-up for every notified provider.

    Pushes are queued on Celery; the in-app event goes straight to the
    provider's channel group. Nothing here can fail the dispatch.
    """
    from bookings.tasks import send_push_task
    from realtime.notifications import notify_provider_event

    for candidate in candidates:
        if candidate.notification_token:
            try:
                send_push_task.delay(
                    candidate.notification_token,
                    "New Job Available!",
                    f"{job.service_name} service request nearby",
                    {"type": "new_job_alert", "booking_id": job.booking_id},
                )
            except Exception:
                logger.exception("Failed to queue push for provider %s", candidate.provider_id)
        else:
            logger.debug("No notification token for provider %s, skipping push", candidate.provider_id)

        notify_provider_event(
            "new_job_alert",
            candidate.provider_id,
            {"booking_id": job.booking_id, "service_name": job.service_name},
            message=f"{job.service_name} service request nearby",
        )


def dispatch_job(job_pk: int) -> DispatchResult:
    """
    Dispatch one job to nearby qualified providers.

    Re-running dispatch for a job is safe: the notified provider set recorded
    on the first run is kept and inbox entries are overwritten in place.
    """
    try:
        job = Job.objects.select_related("container").get(pk=job_pk)
    except Job.DoesNotExist:
        logger.warning("Dispatch requested for missing job %s", job_pk)
        return DispatchResult(status="skipped")

    if job.status != JobStatus.PENDING:
        logger.info("Job %s is %s, not dispatching", job.booking_id, job.status)
        return DispatchResult(status="skipped", booking_id=job.booking_id)

    config = _config()
    radius_km = config.get("GEO_QUERY_RADIUS_KM", 10)
    limit_km = config.get("FINAL_DISTANCE_LIMIT_KM", 8)

    if job.job_latitude is not None and job.job_longitude is not None:
        lat, lon = float(job.job_latitude), float(job.job_longitude)
    else:
        lat, lon = resolve_job_coordinates(job)

    candidates = find_candidates(lat, lon, job.service_name, radius_km)
    if not candidates:
        logger.warning(
            "[MONITORING] No providers found for booking %s (%s) within %skm",
            job.booking_id, job.service_name, radius_km
        )
        return DispatchResult(status="no_candidates", booking_id=job.booking_id)

    distances = estimate_distances((lat, lon), [(c.latitude, c.longitude) for c in candidates])
    qualified = _qualify(candidates, distances, limit_km)
    if not qualified:
        logger.warning(
            "[MONITORING] %d candidates for booking %s but none within %skm",
            len(candidates), job.booking_id, limit_km
        )
        return DispatchResult(
            status="no_qualified",
            booking_id=job.booking_id,
            candidate_count=len(candidates),
        )

    now = timezone.now()
    expires_at = now + timedelta(minutes=config.get("INBOX_ENTRY_TTL_MINUTES", 30))

    with transaction.atomic():
        locked = Job.objects.select_for_update().select_related("container").get(pk=job.pk)
        if locked.status != JobStatus.PENDING:
            logger.info("Job %s was %s before fan-out, not dispatching", locked.booking_id, locked.status)
            return DispatchResult(status="skipped", booking_id=locked.booking_id)

        if locked.notified_provider_ids is None:
            locked.notified_provider_ids = [c.provider_id for c, _ in qualified]
            locked.job_latitude = round(lat, 6)
            locked.job_longitude = round(lon, 6)
            locked.dispatched_at = now
            locked.save(update_fields=[
                "notified_provider_ids", "job_latitude", "job_longitude", "dispatched_at"
            ])
        else:
            # Already dispatched: the recorded set is final, only refresh its entries
            recorded = set(locked.notified_provider_ids)
            qualified = [(c, d) for c, d in qualified if c.provider_id in recorded]

        for candidate, distance in qualified:
            _upsert_inbox_entry(locked, candidate, distance, now, expires_at)

        alerted = [c for c, _ in qualified]
        transaction.on_commit(lambda: send_new_job_alerts(locked, alerted))

    logger.info(
        "Job dispatch completed for booking %s - %d providers notified",
        locked.booking_id, len(alerted)
    )
    return DispatchResult(
        status="dispatched",
        booking_id=locked.booking_id,
        candidate_count=len(candidates),
        notified_provider_ids=list(locked.notified_provider_ids),
    )
