from django.urls import path
from .views import (
    ProviderProfileView,
    ProviderLocationUpdateView,
    ProviderNotificationTokenView,
    ProviderInboxView,
    ProviderCurrentJobView,
    ProviderJobHistoryView,
)

urlpatterns = [
    path("profile/", ProviderProfileView.as_view(), name="provider-profile"),
    path("location/", ProviderLocationUpdateView.as_view(), name="provider-location"),
    path("notification-token/", ProviderNotificationTokenView.as_view(), name="provider-notification-token"),
    path("inbox/", ProviderInboxView.as_view(), name="provider-inbox"),
    path("current-job/", ProviderCurrentJobView.as_view(), name="provider-current-job"),
    path("history/", ProviderJobHistoryView.as_view(), name="provider-history"),
]
