from rest_framework import serializers
from django.contrib.auth import authenticate

from .models import User
from customers.models import CustomerProfile
from providers.models import ProviderProfile


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "role",
            "phone_number",
            "completed_jobs",
        ]
        read_only_fields = ["id", "role", "completed_jobs"]


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        user = authenticate(username=data["username"], password=data["password"])
        if not user:
            raise serializers.ValidationError("Invalid username or password")
        return user


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True)
    full_name = serializers.CharField(required=False, allow_blank=True)
    services = serializers.ListField(
        child=serializers.CharField(max_length=100),
        required=False,
        allow_empty=True,
    )

    class Meta:
        model = User
        fields = ['username', 'password', 'email', 'role', 'phone_number', 'full_name', 'services']

    def validate_email(self, value):
        if value and User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email already exists")
        return value

    def validate(self, data):
        # Providers must say what they offer, otherwise they never match a job
        if data['role'] == 'provider' and not data.get('services'):
            raise serializers.ValidationError({
                'services': 'At least one service is required for providers'
            })
        return data

    def create(self, validated_data):
        full_name = validated_data.pop('full_name', '')
        services = validated_data.pop('services', [])

        user = User.objects.create_user(
            username=validated_data['username'],
            email=validated_data.get('email', ''),
            password=validated_data['password'],
            role=validated_data['role'],
            phone_number=validated_data.get('phone_number', '')
        )

        if user.role == 'provider':
            ProviderProfile.objects.create(
                user=user,
                full_name=full_name,
                mobile_no=user.phone_number,
                services=services,
                primary_service=services[0] if services else '',
            )
        else:
            CustomerProfile.objects.create(user=user)

        return user
