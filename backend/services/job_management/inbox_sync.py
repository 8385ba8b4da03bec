"""Mirror a job's status into the assigned provider's inbox entry."""

import logging

from bookings.models import InboxEntry, Job

logger = logging.getLogger(__name__)


def sync_inbox_status(job: Job) -> bool:
    """
    Copy ``job.status`` onto the assigned provider's inbox entry.

    Returns False (and does nothing) when no provider is assigned or the
    entry has already been removed.
    """
    if job.provider_id is None:
        return False

    updated = InboxEntry.objects.filter(
        provider_id=job.provider_id,
        booking_id=job.booking_id,
    ).update(status=job.status)

    if not updated:
        logger.debug(
            "No inbox entry for provider %s / booking %s, nothing to sync",
            job.provider_id, job.booking_id
        )
        return False

    logger.debug("Inbox entry for booking %s synced to %s", job.booking_id, job.status)
    return True
