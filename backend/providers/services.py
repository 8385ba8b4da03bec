import logging

from django.utils import timezone

from bookings.models import InboxEntry, Job, JobStatus
from providers.models import ProviderProfile
from services.job_management.lifecycle import TERMINAL_STATUSES

logger = logging.getLogger(__name__)


def update_provider_location(profile: ProviderProfile, lat, lon):
    """
    Update provider location. Dispatch reads it the next time a job
    is matched; nothing is pushed from here.
    """
    profile.current_latitude = lat
    profile.current_longitude = lon
    profile.last_location_update = timezone.now()
    profile.save(update_fields=["current_latitude", "current_longitude", "last_location_update"])
    return profile


def update_notification_token(profile: ProviderProfile, token):
    profile.notification_token = token or None
    profile.save(update_fields=["notification_token"])
    logger.debug("Notification token %s for provider %s", "set" if token else "cleared", profile.user_id)
    return profile


def get_inbox(provider_id, now=None):
    """
    Non-expired inbox entries of a provider, newest first.

    Entries are listing snapshots; the job row stays authoritative and the
    accept call re-checks everything.
    """
    return InboxEntry.objects.filter(provider_id=provider_id).active(now).order_by("-created_at")


def get_current_job(provider_id):
    """The provider's assigned job that is not finished yet, or None."""
    return (
        Job.objects.filter(provider_id=provider_id)
        .exclude(status__in=TERMINAL_STATUSES)
        .select_related("customer", "container")
        .order_by("-accepted_at")
        .first()
    )


def get_job_history(provider_id, limit=20):
    return (
        Job.objects.filter(provider_id=provider_id, status=JobStatus.COMPLETED)
        .select_related("customer", "container")
        .order_by("-completed_at")[:limit]
    )
