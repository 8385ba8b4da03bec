from django.contrib import admin
from providers.models import ProviderProfile


@admin.register(ProviderProfile)
class ProviderProfileAdmin(admin.ModelAdmin):
    """Admin panel for managing Provider Profiles"""

    list_display = [
        "user",
        "full_name",
        "primary_service",
        "verification_status",
        "current_latitude",
        "current_longitude",
        "last_location_update",
    ]

    list_filter = [
        "verification_status",
        "primary_service",
    ]

    search_fields = [
        "user__username",
        "full_name",
        "mobile_no",
    ]

    readonly_fields = [
        "last_location_update",
    ]

    ordering = ("user__username",)
