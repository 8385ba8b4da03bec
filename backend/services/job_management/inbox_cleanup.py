"""Remove stale inbox entries once a job has been accepted."""

import logging

from django.db import DatabaseError

from bookings.models import InboxEntry, JobStatus

logger = logging.getLogger(__name__)


def cleanup_inbox_for_accepted_job(booking_id: str, winning_provider_id: int) -> int:
    """
    Delete every other provider's pending entry for ``booking_id``.

    Best-effort: the job row already says who won, so a failed or partial
    cleanup only leaves harmless stale cards. Returns the number removed.
    """
    stale = (
        InboxEntry.objects.filter(booking_id=booking_id, status=JobStatus.PENDING)
        .exclude(provider_id=winning_provider_id)
    )

    try:
        provider_ids = list(stale.values_list("provider_id", flat=True))
        deleted, _ = stale.delete()
    except DatabaseError:
        logger.exception("Inbox cleanup failed for booking %s", booking_id)
        return 0

    logger.info("Removed %d stale inbox entries for booking %s", deleted, booking_id)

    from realtime.notifications import notify_provider_event
    for provider_id in provider_ids:
        notify_provider_event(
            "job_unavailable",
            provider_id,
            {"booking_id": booking_id},
            message="This job has been accepted by another provider.",
        )

    return deleted
