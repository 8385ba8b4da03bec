"""
Job management service - acceptance and lifecycle operations.

This module handles:
    - Accepting jobs (the race-safe claim)
    - Cleaning up losing providers' inbox entries
    - Mirroring job status into inbox entries
    - Moving accepted jobs through their lifecycle
"""

from .acceptance import JobResult, accept_job
from .inbox_cleanup import cleanup_inbox_for_accepted_job
from .inbox_sync import sync_inbox_status
from .lifecycle import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    can_transition,
    update_job_status,
    validate_transition,
)

from .exceptions import (
    JobServiceError,
    InvalidArgumentError,
    NotFoundError,
    FailedPreconditionError,
    InternalError,
    ProviderNotFoundError,
    InboxEntryNotFoundError,
    JobNotFoundError,
    BookingMismatchError,
    JobAlreadyAcceptedError,
    ProviderNotNotifiedError,
    InvalidTransitionError,
    NotAssignedProviderError,
)

__all__ = [
    # Operations
    "JobResult",
    "accept_job",
    "cleanup_inbox_for_accepted_job",
    "sync_inbox_status",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "can_transition",
    "update_job_status",
    "validate_transition",
    # Exceptions
    "JobServiceError",
    "InvalidArgumentError",
    "NotFoundError",
    "FailedPreconditionError",
    "InternalError",
    "ProviderNotFoundError",
    "InboxEntryNotFoundError",
    "JobNotFoundError",
    "BookingMismatchError",
    "JobAlreadyAcceptedError",
    "ProviderNotNotifiedError",
    "InvalidTransitionError",
    "NotAssignedProviderError",
]
