from django.db import models
from django.utils import timezone
from django.conf import settings


class CustomerProfile(models.Model):
    """Customer's last known location and push token"""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='customer_profile'
    )

    # Used as the job location when a booking is dispatched
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    last_location_update = models.DateTimeField(default=timezone.now)

    notification_token = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        db_table = 'customer_profiles'

    def __str__(self):
        return f"{self.user.username} (customer)"

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None
