from rest_framework import serializers
from django.contrib.auth import get_user_model
from .models import Job, InboxEntry, JobStatus

from customers.serializers import CustomerBasicSerializer

User = get_user_model()


class JobSerializer(serializers.ModelSerializer):
    """Serializer for Jobs (bookings)"""
    customer = CustomerBasicSerializer(read_only=True)
    customer_key = serializers.CharField(source='container.customer_key', read_only=True)
    provider_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Job
        fields = ['booking_id', 'customer', 'customer_key', 'position', 'service_name',
                  'price', 'address', 'status', 'job_latitude', 'job_longitude',
                  'provider_id', 'provider_name', 'provider_mobile', 'created_at',
                  'dispatched_at', 'accepted_at', 'updated_at', 'completed_at']
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    """Serializer for creating bookings"""
    service_name = serializers.CharField(max_length=100)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    address = serializers.CharField(required=False, allow_blank=True)

    # Optional fresh customer location; stored on the profile before dispatch
    latitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=-90, max_value=90, required=False
    )
    longitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=-180, max_value=180, required=False
    )

    def validate_service_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Service name cannot be blank")
        return value

    def validate(self, data):
        if ('latitude' in data) != ('longitude' in data):
            raise serializers.ValidationError("Latitude and longitude must be sent together")
        return data


class InboxEntrySerializer(serializers.ModelSerializer):
    """Provider-facing listing card"""

    class Meta:
        model = InboxEntry
        fields = ['booking_id', 'booking_index', 'customer_key', 'service_name',
                  'price_snapshot', 'distance_km', 'status', 'created_at', 'expires_at']
        read_only_fields = fields


class JobStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=JobStatus.choices)
