from rest_framework import serializers
from django.contrib.auth import get_user_model

from .models import CustomerProfile

User = get_user_model()


class CustomerProfileSerializer(serializers.ModelSerializer):
    """
    Customer profile with basic user info.
    Used for `/customer/profile/`.
    """
    username = serializers.CharField(source='user.username', read_only=True)
    phone_number = serializers.CharField(source='user.phone_number', read_only=True)

    class Meta:
        model = CustomerProfile
        fields = [
            'id', 'username', 'phone_number', 'latitude', 'longitude',
            'last_location_update', 'notification_token'
        ]
        read_only_fields = ['id', 'latitude', 'longitude', 'last_location_update']
        extra_kwargs = {
            'notification_token': {'write_only': True, 'required': False}
        }


class CustomerBasicSerializer(serializers.ModelSerializer):
    """
    Basic customer representation used inside booking responses.
    """
    class Meta:
        model = User
        fields = ['id', 'username', 'phone_number']


class RequestLocationSerializer(serializers.Serializer):
    """
    Validates latitude/longitude sent by customer or provider.

    Expected body:
    {
        "latitude": <float>,
        "longitude": <float>
    }

    Notes:
    - Uses DecimalField for higher precision.
    - Restricts values to valid Earth coordinate ranges.
    - Reused for both customer and provider location inputs.
    """

    latitude = serializers.DecimalField(
        max_digits=9,
        decimal_places=6,
        required=True,
        min_value=-90,
        max_value=90,
        help_text="Latitude between -90 and 90 degrees."
    )

    longitude = serializers.DecimalField(
        max_digits=9,
        decimal_places=6,
        required=True,
        min_value=-180,
        max_value=180,
        help_text="Longitude between -180 and 180 degrees."
    )


class NotificationTokenSerializer(serializers.Serializer):
    notification_token = serializers.CharField(max_length=255, allow_blank=True)
