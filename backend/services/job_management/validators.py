"""Validation helpers for job operations."""

from typing import Iterable

from .exceptions import FailedPreconditionError, InvalidArgumentError


def validate_booking_id(booking_id) -> str:
    if not isinstance(booking_id, str) or not booking_id.strip():
        raise InvalidArgumentError("bookingId is required and must be a non-empty string")
    return booking_id.strip()


def validate_provider_id(provider_id) -> int:
    """Provider ids are user primary keys; accept ints and digit strings."""
    if isinstance(provider_id, bool):
        raise InvalidArgumentError("providerId must be a positive integer")
    if isinstance(provider_id, str):
        provider_id = provider_id.strip()
        if not (provider_id.isascii() and provider_id.isdigit()):
            raise InvalidArgumentError("providerId must be a positive integer")
        provider_id = int(provider_id)
    if not isinstance(provider_id, int) or provider_id <= 0:
        raise InvalidArgumentError("providerId must be a positive integer")
    return provider_id


def validate_booking_status(job, allowed_statuses: Iterable[str]) -> str:
    """Return the job's status if it is one of ``allowed_statuses``."""
    allowed = [s.lower() for s in allowed_statuses]
    current = (job.status or "pending").lower()
    if current not in allowed:
        raise FailedPreconditionError(
            f'Operation not allowed for booking status "{current}". Allowed: {", ".join(allowed)}'
        )
    return current
