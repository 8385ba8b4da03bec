# customers/urls.py

from django.urls import path

from .views.info import (
    CustomerProfileView,
    CustomerLocationView,
    CustomerNotificationTokenView,
    CustomerCurrentBookingView,
)

app_name = "customers"

urlpatterns = [
    path("profile/", CustomerProfileView.as_view(), name="profile"),
    path("location/", CustomerLocationView.as_view(), name="location"),
    path("notification-token/", CustomerNotificationTokenView.as_view(), name="notification-token"),
    path("current-booking/", CustomerCurrentBookingView.as_view(), name="current-booking"),
]
