# customers/services/info_services.py

from django.utils import timezone

from ..models import CustomerProfile


def get_or_create_profile(user):
    profile, _ = CustomerProfile.objects.get_or_create(user=user)
    return profile


def get_customer_profile(user):
    """Return serialized customer profile data."""
    from ..serializers import CustomerProfileSerializer
    return CustomerProfileSerializer(get_or_create_profile(user)).data


def update_customer_location(user, latitude, longitude):
    """Store the customer's last known location (used as the job location)."""
    profile = get_or_create_profile(user)
    profile.latitude = latitude
    profile.longitude = longitude
    profile.last_location_update = timezone.now()
    profile.save(update_fields=["latitude", "longitude", "last_location_update"])
    return profile


def update_notification_token(user, token):
    profile = get_or_create_profile(user)
    profile.notification_token = token or None
    profile.save(update_fields=["notification_token"])
    return profile
