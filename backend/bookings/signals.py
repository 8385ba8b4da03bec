"""
Job event hooks.

    job_appended        a job was appended to a customer's container
    job_status_changed  a job's status moved (model save or accept transaction)

Both are sent after the surrounding transaction commits.
"""

import logging

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import Signal, receiver

from .models import Job

logger = logging.getLogger(__name__)

# Sent with: job
job_appended = Signal()

# Sent with: job, previous_status
job_status_changed = Signal()


def emit_status_changed(job, previous_status=None):
    """Send job_status_changed; receiver failures are logged, not raised."""
    responses = job_status_changed.send_robust(sender=Job, job=job, previous_status=previous_status)
    for handler, result in responses:
        if isinstance(result, Exception):
            logger.error(
                "Status hook %s failed for booking %s",
                getattr(handler, "__name__", handler), job.booking_id,
                exc_info=(type(result), result, result.__traceback__)
            )


@receiver(post_save, sender=Job, dispatch_uid="bookings_job_post_save")
def job_saved(sender, instance, created, **kwargs):
    if created:
        instance._loaded_status = instance.status
        transaction.on_commit(lambda: job_appended.send(sender=Job, job=instance))
        return

    if instance.status_changed:
        previous = instance._loaded_status
        instance._loaded_status = instance.status
        transaction.on_commit(lambda: emit_status_changed(instance, previous_status=previous))


@receiver(job_appended, dispatch_uid="bookings_queue_dispatch")
def queue_dispatch(sender, job, **kwargs):
    from .tasks import dispatch_job_task
    try:
        dispatch_job_task.delay(job.pk)
    except Exception:
        logger.exception("Failed to queue dispatch for booking %s", job.booking_id)


@receiver(job_status_changed, dispatch_uid="bookings_sync_inbox")
def sync_inbox(sender, job, **kwargs):
    from services.job_management import sync_inbox_status
    sync_inbox_status(job)


@receiver(job_status_changed, dispatch_uid="bookings_notify_customer")
def notify_customer(sender, job, **kwargs):
    from realtime.notifications import notify_customer_status
    notify_customer_status(job)
