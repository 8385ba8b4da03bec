from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from bookings.serializers import JobSerializer

from ..permissions import IsCustomer
from ..serializers import NotificationTokenSerializer, RequestLocationSerializer
from ..services import booking_services, info_services


class CustomerProfileView(APIView):
    """
    GET -> Retrieve authenticated customer profile
    """
    permission_classes = [IsAuthenticated, IsCustomer]

    def get(self, request):
        return Response(info_services.get_customer_profile(request.user))


class CustomerLocationView(APIView):
    """
    POST: Update the customer's last known location.
    New bookings are dispatched around this point.
    """
    permission_classes = [IsAuthenticated, IsCustomer]

    def post(self, request):
        loc_ser = RequestLocationSerializer(data=request.data)
        loc_ser.is_valid(raise_exception=True)

        profile = info_services.update_customer_location(
            request.user,
            loc_ser.validated_data["latitude"],
            loc_ser.validated_data["longitude"],
        )

        return Response({
            "success": True,
            "latitude": str(profile.latitude),
            "longitude": str(profile.longitude),
            "last_location_update": profile.last_location_update,
        })


class CustomerNotificationTokenView(APIView):
    permission_classes = [IsAuthenticated, IsCustomer]

    def post(self, request):
        ser = NotificationTokenSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        info_services.update_notification_token(request.user, ser.validated_data["notification_token"])
        return Response({"success": True})


class CustomerCurrentBookingView(APIView):
    """
    GET: Customer polling endpoint to get the current booking.
    """
    permission_classes = [IsAuthenticated, IsCustomer]

    def get(self, request):
        job = booking_services.get_current_booking(request.user)

        if not job:
            return Response({
                "has_active_booking": False,
                "message": "No active booking found"
            })

        resp = {
            "has_active_booking": True,
            "booking": JobSerializer(job, context={"request": request}).data,
            "status": job.status,
            "provider_assigned": job.provider_id is not None,
        }

        if job.status == "pending":
            resp["message"] = "Searching for nearby providers..."
        else:
            resp["message"] = f"Your booking is {job.get_status_display().lower()}."

        return Response(resp)
