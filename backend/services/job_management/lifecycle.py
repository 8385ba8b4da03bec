"""
Job lifecycle state machine.

    pending -> accepted -> arrived -> in_progress -> payment_pending -> completed

``pending -> accepted`` is performed only by the acceptance transaction
(see ``acceptance.accept_job``); the generic status path below refuses it.
"""

import logging
from typing import Dict, FrozenSet

from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from bookings.models import Job, JobStatus
from .exceptions import (
    InternalError,
    InvalidArgumentError,
    InvalidTransitionError,
    JobNotFoundError,
    NotAssignedProviderError,
)
from .validators import validate_booking_id, validate_booking_status, validate_provider_id

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    JobStatus.PENDING: frozenset({JobStatus.ACCEPTED}),
    JobStatus.ACCEPTED: frozenset({JobStatus.ARRIVED}),
    JobStatus.ARRIVED: frozenset({JobStatus.IN_PROGRESS}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.PAYMENT_PENDING}),
    JobStatus.PAYMENT_PENDING: frozenset({JobStatus.COMPLETED}),
    JobStatus.COMPLETED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, nxt in ALLOWED_TRANSITIONS.items() if not nxt)
OPEN_STATUSES = frozenset(s for s in ALLOWED_TRANSITIONS if s not in TERMINAL_STATUSES)


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def validate_transition(current: str, new: str) -> None:
    if not can_transition(current, new):
        raise InvalidTransitionError(f"Cannot move job from {current} to {new}")


@transaction.atomic
def _apply_status(booking_id: str, provider_id: int, new_status: str) -> Job:
    try:
        job = Job.objects.select_for_update().get(booking_id=booking_id)
    except Job.DoesNotExist:
        raise JobNotFoundError()

    if job.provider_id != provider_id:
        raise NotAssignedProviderError()

    validate_booking_status(job, OPEN_STATUSES)
    validate_transition(job.status, new_status)

    job.status = new_status
    job.updated_at = timezone.now()
    if new_status == JobStatus.COMPLETED:
        job.completed_at = job.updated_at
        get_user_model().objects.filter(pk=provider_id).update(completed_jobs=F("completed_jobs") + 1)
    # post_save fires job_status_changed for the inbox mirror and the customer
    job.save(update_fields=["status", "updated_at", "completed_at"])
    return job


def update_job_status(booking_id, provider_id, new_status: str) -> Job:
    """
    Move an accepted job forward one step on behalf of its assigned provider.

    Raises:
        InvalidArgumentError: malformed ids or unknown status
        InvalidTransitionError: skipped, backward or ``-> accepted`` move
        NotAssignedProviderError: caller is not the assigned provider
        JobNotFoundError: no such booking
        InternalError: database failure
    """
    booking_id = validate_booking_id(booking_id)
    provider_id = validate_provider_id(provider_id)

    if new_status not in JobStatus.values:
        raise InvalidArgumentError(f"Unknown status: {new_status}")

    if new_status == JobStatus.ACCEPTED:
        raise InvalidTransitionError("Jobs can only be accepted through the accept endpoint")

    try:
        job = _apply_status(booking_id, provider_id, new_status)
    except DatabaseError as exc:
        logger.exception("Failed to update status of booking %s", booking_id)
        raise InternalError() from exc

    logger.info("Booking %s moved to %s by provider %s", booking_id, new_status, provider_id)
    return job
