from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check),  # Health check endpoint

    # Authentication endpoints (at /api/auth/)
    path('api/auth/', include('accounts.urls')),  # register, login, refresh, me

    # Provider APIs (profile, location, inbox, current job)
    path('api/provider/', include('providers.urls')),

    # Customer APIs (profile, location, current booking)
    path('api/customer/', include('customers.urls')),

    # Bookings (create/list, accept, status updates)
    path('api/bookings/', include('bookings.urls')),
]
