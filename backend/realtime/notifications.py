"""
Notification helpers for providers and customers.

This module provides functions to:
- Send push notifications through the configured HTTP push gateway
- Send job-related events to providers and customers over WebSocket groups
- Build the customer-facing message for each job status

Everything here is best-effort: failures are logged and reported through
the return value, never raised to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

import requests
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULT_PUSH_ENDPOINT = "https://fcm.googleapis.com/fcm/send"


# ---------------------- Push Notifications ----------------------

def send_push(token: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> bool:
    """
    Deliver one push notification.

    Returns False when push is not configured, the token is empty or the
    gateway rejects the request.
    """
    if not token:
        return False

    config = getattr(settings, "PUSH_NOTIFICATIONS", {})
    server_key = config.get("SERVER_KEY")
    if not server_key:
        logger.debug("Push notifications not configured, skipping '%s'", title)
        return False

    payload = {
        "to": token,
        "notification": {"title": title, "body": body},
        "data": {k: str(v) for k, v in (data or {}).items()},
    }

    try:
        response = requests.post(
            config.get("ENDPOINT") or DEFAULT_PUSH_ENDPOINT,
            json=payload,
            headers={"Authorization": f"key={server_key}"},
            timeout=config.get("TIMEOUT_SECONDS", 5),
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning("Push '%s' failed: %s", title, e)
        return False

    logger.debug("Push '%s' delivered", title)
    return True


# ---------------------- WebSocket Events ----------------------

def _group_send(group: str, payload: Dict[str, Any]) -> bool:
    try:
        channel_layer = get_channel_layer()
        if channel_layer is None:
            return False
        async_to_sync(channel_layer.group_send)(group, payload)
    except Exception:
        logger.exception("WS send to %s failed", group)
        return False
    return True


def notify_provider_event(
    event_type: str,
    provider_id: int | None,
    data: Dict[str, Any] = None,
    message: str = "",
) -> bool:
    """
    Send an event to a specific provider using their personal group: provider_<provider_id>

    Args:
        event_type: Handler name in consumer (new_job_alert, job_unavailable)
        provider_id: Target provider's user ID
        data: Event payload (booking_id, service_name, ...)
        message: Optional message to include

    Returns:
        True if sent successfully, False otherwise
    """
    if not provider_id:
        return False

    payload = {"type": event_type, "provider_id": provider_id, **(data or {})}
    if message:
        payload["message"] = message

    logger.debug("WS -> provider_%s: %s", provider_id, payload)
    return _group_send(f"provider_{provider_id}", payload)


def notify_customer_event(
    event_type: str,
    customer_id: int | None,
    data: Dict[str, Any] = None,
    message: str = "",
) -> bool:
    """Send a job event to the customer through: customer_<customer_id>"""
    if not customer_id:
        return False

    payload = {"type": event_type, **(data or {})}
    if message:
        payload["message"] = message

    logger.debug("WS -> customer_%s: %s", customer_id, payload)
    return _group_send(f"customer_{customer_id}", payload)


# ---------------------- Customer Status Updates ----------------------

def build_status_message(status: str, provider_name: str, service_name: str) -> Optional[Tuple[str, str]]:
    """(title, body) shown to the customer for a status, or None for statuses we stay quiet about."""
    provider_name = provider_name or "Your provider"
    service_name = service_name or "service"

    messages = {
        "accepted": (
            "Order Accepted!",
            f"{provider_name} has accepted your {service_name} request. They will arrive soon!",
        ),
        "arrived": (
            "Provider Arrived",
            f"{provider_name} has arrived at your location for {service_name}",
        ),
        "in_progress": (
            "Service Started",
            f"{provider_name} has started working on your {service_name}",
        ),
        "payment_pending": (
            "Payment Due",
            f"{service_name} completed! Please make payment to {provider_name}",
        ),
        "completed": (
            "Order Completed!",
            f"Your {service_name} has been completed successfully. Thank you for using our service!",
        ),
    }
    return messages.get(status)


def notify_customer_status(job) -> bool:
    """
    Tell the customer their job moved to a new status (push + WebSocket).

    Returns False when the status has no customer-facing message.
    """
    built = build_status_message(job.status, job.provider_name, job.service_name)
    if built is None:
        logger.debug("No customer message for status %s of booking %s", job.status, job.booking_id)
        return False

    title, body = built
    data = {
        "type": "order_status_update",
        "booking_id": job.booking_id,
        "status": job.status,
    }

    from customers.models import CustomerProfile
    token = (
        CustomerProfile.objects.filter(user_id=job.customer_id)
        .values_list("notification_token", flat=True)
        .first()
    )
    if token:
        from bookings.tasks import send_push_task
        try:
            send_push_task.delay(token, title, body, data)
        except Exception:
            logger.exception("Failed to queue status push for booking %s", job.booking_id)

    notify_customer_event(
        "job_status_update",
        job.customer_id,
        {
            "booking_id": job.booking_id,
            "status": job.status,
            "title": title,
            "provider_name": job.provider_name,
        },
        message=body,
    )
    return True
