import logging
import uuid

from bookings.models import Job, JobContainer
from bookings.serializers import BookingCreateSerializer, JobSerializer
from services.job_management.lifecycle import TERMINAL_STATUSES

from . import info_services

logger = logging.getLogger(__name__)


def get_or_create_container(user):
    """
    Return the customer's job container, creating it on first booking.

    The container is keyed by the customer's phone number; customers
    without one (or sharing one) get a key derived from their user id.
    """
    container = JobContainer.objects.filter(customer=user).first()
    if container:
        return container

    key = user.phone_number or f"user-{user.pk}"
    if JobContainer.objects.filter(customer_key=key).exists():
        key = f"user-{user.pk}"

    container, _ = JobContainer.objects.get_or_create(
        customer=user, defaults={"customer_key": key}
    )
    return container


def create_booking(user, data, request=None):
    """
    Creates a booking for the customer.
    Handles:
    - validation
    - refreshing the customer's location (optional)
    - appending the job to the customer's container

    Dispatch is not started here: appending the job fires the
    `job_appended` hook which queues it after commit.
    """
    create_ser = BookingCreateSerializer(data=data)
    create_ser.is_valid(raise_exception=True)
    vd = create_ser.validated_data

    if "latitude" in vd:
        info_services.update_customer_location(user, vd["latitude"], vd["longitude"])

    container = get_or_create_container(user)
    job = container.append_job(
        booking_id=uuid.uuid4().hex,
        service_name=vd["service_name"],
        price=vd["price"],
        address=vd.get("address", ""),
    )

    logger.info(
        "Booking %s created for customer %s at position %s",
        job.booking_id, container.customer_key, job.position
    )
    return JobSerializer(job, context={"request": request}).data


def list_bookings(user, request=None):
    qs = (
        Job.objects.filter(customer=user)
        .select_related("customer", "container")
        .order_by("-position")
    )
    return JobSerializer(qs, many=True, context={"request": request}).data


def get_current_booking(user):
    """Latest booking that has not reached a terminal status, or None."""
    return (
        Job.objects.filter(customer=user)
        .exclude(status__in=TERMINAL_STATUSES)
        .select_related("customer", "container")
        .order_by("-position")
        .first()
    )
