from django.db import models
from django.utils import timezone
from django.conf import settings

User = settings.AUTH_USER_MODEL

class ProviderProfile(models.Model):
    """Service provider details, offered services and last known location"""
    VERIFICATION_CHOICES = [
        ('pending', 'Pending Review'),
        ('verified', 'Verified'),
        ('rejected', 'Rejected'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='provider_profile')

    full_name = models.CharField(max_length=150, blank=True, default='')
    mobile_no = models.CharField(max_length=20, blank=True, default='')

    # Only verified providers are matched to jobs
    verification_status = models.CharField(max_length=20, choices=VERIFICATION_CHOICES, default='pending')

    # Offered services, e.g. ["AC Repair", "Plumbing"]
    services = models.JSONField(default=list, blank=True)
    primary_service = models.CharField(max_length=100, blank=True, default='')

    # Location & push token (reported by the partner app)
    current_latitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    current_longitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    last_location_update = models.DateTimeField(default=timezone.now)
    notification_token = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        db_table = 'provider_profiles'

    def __str__(self):
        return f"{self.user.username} - {self.primary_service or 'no service'}"

    @property
    def display_name(self) -> str:
        return self.full_name or self.user.get_full_name() or self.user.username or "Unknown Provider"

    @property
    def contact_number(self) -> str:
        return self.mobile_no or getattr(self.user, 'phone_number', '') or ''
