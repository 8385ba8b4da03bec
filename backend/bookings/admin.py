"""Tells what to show in the Django admin interface for bookings app"""

from django.contrib import admin
from .models import JobContainer, Job, InboxEntry


@admin.register(JobContainer)
class JobContainerAdmin(admin.ModelAdmin):
    list_display = ['customer_key', 'customer', 'created_at', 'updated_at']
    search_fields = ['customer_key', 'customer__username']


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    """Job admin"""
    list_display = ['booking_id', 'customer', 'service_name', 'status', 'provider', 'created_at', 'accepted_at']
    list_filter = ['status', 'service_name', 'created_at']
    search_fields = ['booking_id', 'customer__username', 'provider__username', 'address']
    readonly_fields = ['booking_id', 'container', 'position', 'notified_provider_ids',
                       'dispatched_at', 'accepted_at', 'completed_at']
    date_hierarchy = 'created_at'


@admin.register(InboxEntry)
class InboxEntryAdmin(admin.ModelAdmin):
    list_display = ("booking_id", "provider", "service_name", "distance_km", "status", "expires_at")
    list_filter = ("status",)
    search_fields = ("booking_id", "provider__username", "customer_key")
