from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.serializers import InboxEntrySerializer, JobSerializer
from customers.permissions import IsProvider
from providers import services
from providers.models import ProviderProfile
from providers.serializers import (
    LocationUpdateSerializer,
    NotificationTokenSerializer,
    ProviderProfileSerializer,
)


class ProviderAPIView(APIView):
    """Authenticated provider endpoints; `self.profile` is the caller's profile."""
    permission_classes = [IsAuthenticated, IsProvider]

    @property
    def profile(self) -> ProviderProfile:
        try:
            return self.request.user.provider_profile
        except ProviderProfile.DoesNotExist:
            raise NotFound("Provider profile not found")


class ProviderProfileView(ProviderAPIView):

    def get(self, request):
        return Response(ProviderProfileSerializer(self.profile, context={"request": request}).data)

    def post(self, request):
        serializer = ProviderProfileSerializer(
            self.profile, data=request.data, partial=True, context={"request": request}
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class ProviderLocationUpdateView(ProviderAPIView):
    """
    GET: last reported location.
    POST: report a new one; the next dispatch matches against it.
    """

    def get(self, request):
        profile = self.profile
        return Response({
            "latitude": float(profile.current_latitude) if profile.current_latitude is not None else None,
            "longitude": float(profile.current_longitude) if profile.current_longitude is not None else None,
            "last_updated": profile.last_location_update,
        })

    def post(self, request):
        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        services.update_provider_location(self.profile, lat, lon)
        return Response({"message": "Location updated", "latitude": float(lat), "longitude": float(lon)})


class ProviderNotificationTokenView(ProviderAPIView):

    def post(self, request):
        serializer = NotificationTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.update_notification_token(self.profile, serializer.validated_data["notification_token"])
        return Response({"message": "Notification token updated"})


class ProviderInboxView(ProviderAPIView):
    """Open jobs this provider was notified about. Expired entries are hidden."""

    def get(self, request):
        entries = InboxEntrySerializer(services.get_inbox(request.user.id), many=True).data
        return Response({"count": len(entries), "jobs": entries})


class ProviderCurrentJobView(ProviderAPIView):

    def get(self, request):
        job = services.get_current_job(request.user.id)
        if job is None:
            return Response({"message": "No active job"}, status=404)
        return Response(JobSerializer(job, context={"request": request}).data)


class ProviderJobHistoryView(ProviderAPIView):

    def get(self, request):
        jobs = JobSerializer(services.get_job_history(request.user.id), many=True, context={"request": request}).data
        return Response({"count": len(jobs), "jobs": jobs})
