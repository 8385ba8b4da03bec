"""Celery tasks for job-related background processing."""

from celery import shared_task
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)


@shared_task(soft_time_limit=60)
def dispatch_job_task(job_pk: int):
    """
    Fan a newly appended job out to nearby qualified providers.

    Queued by the job_appended hook once the append has committed.
    """
    from services.matching import dispatch_job

    result = dispatch_job(job_pk)
    logger.info(
        "Dispatch for job %s finished: %s (%d candidates, %d notified)",
        job_pk, result.status, result.candidate_count, len(result.notified_provider_ids)
    )
    return result.status


@shared_task(soft_time_limit=30)
def cleanup_inbox_task(booking_id: str, winning_provider_id: int):
    """Remove losing providers' inbox entries after an accept."""
    from services.job_management import cleanup_inbox_for_accepted_job
    return cleanup_inbox_for_accepted_job(booking_id, winning_provider_id)


@shared_task(soft_time_limit=15, ignore_result=True)
def send_push_task(token: str, title: str, body: str, data=None):
    """Deliver one push notification (best-effort, never retried)."""
    from realtime.notifications import send_push
    return send_push(token, title, body, data)


@shared_task(soft_time_limit=120)
def purge_expired_inbox_entries_task():
    """Delete inbox entries past their expiry. Storage hygiene only."""
    from .models import InboxEntry

    deleted, _ = InboxEntry.objects.expired(timezone.now()).delete()
    if deleted:
        logger.info("Purged %d expired inbox entries", deleted)
    return deleted
