from rest_framework import serializers
from providers.models import ProviderProfile
from accounts.serializers import UserSerializer


class ProviderProfileSerializer(serializers.ModelSerializer):
    """
    Full provider profile serializer
    """
    user = UserSerializer(read_only=True)

    class Meta:
        model = ProviderProfile
        fields = [
            "id",
            "user",
            "full_name",
            "mobile_no",
            "verification_status",
            "services",
            "primary_service",
            "current_latitude",
            "current_longitude",
            "last_location_update",
        ]
        read_only_fields = [
            "id", "verification_status", "current_latitude",
            "current_longitude", "last_location_update",
        ]

    def validate_services(self, value):
        cleaned = [s.strip() for s in value if isinstance(s, str) and s.strip()]
        if not cleaned:
            raise serializers.ValidationError("At least one service is required")
        return cleaned


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for updating provider GPS location.
    """
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-180, max_value=180)


class NotificationTokenSerializer(serializers.Serializer):
    notification_token = serializers.CharField(max_length=255, allow_blank=True)
