"""
Accept-job transaction.

Many providers may try to claim the same job at once. All reads and the
claim happen in one database transaction; the claim is a conditional
update (``... WHERE status = 'pending'``) so exactly one provider wins no
matter how the transactions interleave.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from bookings.models import InboxEntry, Job, JobStatus
from providers.models import ProviderProfile
from .exceptions import (
    BookingMismatchError,
    InboxEntryNotFoundError,
    InternalError,
    JobAlreadyAcceptedError,
    JobNotFoundError,
    JobServiceError,
    ProviderNotFoundError,
    ProviderNotNotifiedError,
)
from .validators import validate_booking_id, validate_provider_id

logger = logging.getLogger(__name__)


@dataclass
class JobResult:
    """Result object for job operations."""
    success: bool
    job: Optional[Job] = None
    message: str = ""
    extra: Optional[Dict[str, Any]] = None


def _load_provider(provider_id: int) -> ProviderProfile:
    try:
        return ProviderProfile.objects.select_related("user").get(user_id=provider_id)
    except ProviderProfile.DoesNotExist:
        raise ProviderNotFoundError()


def _load_inbox_entry(provider_id: int, booking_id: str, now) -> InboxEntry:
    entry = (
        InboxEntry.objects.select_for_update()
        .filter(provider_id=provider_id, booking_id=booking_id)
        .first()
    )
    # An expired entry is treated exactly like a missing one
    if entry is None or entry.is_expired(now):
        raise InboxEntryNotFoundError()
    return entry


def _load_job(entry: InboxEntry) -> Job:
    if entry.container_id is None:
        raise JobNotFoundError("Booking container not found")

    job = (
        Job.objects.select_for_update()
        .filter(container_id=entry.container_id, position=entry.booking_index)
        .first()
    )
    if job is None:
        raise JobNotFoundError("Booking not found at the stored index")
    return job


@transaction.atomic
def _claim(booking_id: str, provider_id: int) -> Job:
    now = timezone.now()

    provider = _load_provider(provider_id)
    entry = _load_inbox_entry(provider_id, booking_id, now)
    job = _load_job(entry)

    if job.booking_id != booking_id:
        raise BookingMismatchError()

    if job.status != JobStatus.PENDING:
        raise JobAlreadyAcceptedError()

    if not job.was_notified(provider_id):
        raise ProviderNotNotifiedError()

    claimed = Job.objects.filter(pk=job.pk, status=JobStatus.PENDING).update(
        status=JobStatus.ACCEPTED,
        provider_id=provider_id,
        provider_name=provider.display_name,
        provider_mobile=provider.contact_number,
        accepted_at=now,
        updated_at=now,
    )
    if claimed != 1:
        # Someone else committed the claim between our read and the update
        raise JobAlreadyAcceptedError()

    entry.status = JobStatus.ACCEPTED
    entry.save(update_fields=["status"])

    job.refresh_from_db()
    job._loaded_status = job.status
    transaction.on_commit(lambda: _after_accept(job, provider_id))
    return job


def _after_accept(job: Job, provider_id: int):
    """Post-commit side effects. Failures are logged, never raised."""
    from bookings.signals import emit_status_changed
    from bookings.tasks import cleanup_inbox_task

    try:
        cleanup_inbox_task.delay(job.booking_id, provider_id)
    except Exception:
        logger.exception("Failed to queue inbox cleanup for booking %s", job.booking_id)

    emit_status_changed(job, previous_status=JobStatus.PENDING)


def accept_job(booking_id, provider_id) -> JobResult:
    """
    Claim a pending job for a provider.

    Checks, in order: provider exists, job is in the provider's (unexpired)
    inbox, job exists at the stored index, booking ids match, job is still
    pending, provider was notified. Then flips the job to accepted.

    Raises:
        InvalidArgumentError: malformed booking or provider id
        NotFoundError: provider, inbox entry or job missing
        FailedPreconditionError: mismatch, already accepted, not notified
        InternalError: database failure (retryable)
    """
    booking_id = validate_booking_id(booking_id)
    provider_id = validate_provider_id(provider_id)

    try:
        job = _claim(booking_id, provider_id)
    except JobServiceError as exc:
        logger.info("Provider %s could not accept booking %s: %s", provider_id, booking_id, exc.message)
        raise
    except DatabaseError as exc:
        logger.exception("Accept transaction failed for booking %s", booking_id)
        raise InternalError("Failed to accept job. Please try again.") from exc

    logger.info("Job %s accepted by provider %s", booking_id, provider_id)
    return JobResult(
        success=True,
        job=job,
        message="Job accepted successfully",
        extra={"booking_id": booking_id, "provider_id": provider_id},
    )
