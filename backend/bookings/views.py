from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from customers.services import booking_services
from services.job_management import JobServiceError, accept_job, update_job_status

from .serializers import JobSerializer, JobStatusUpdateSerializer


def _error_response(exc: JobServiceError, **extra):
    return Response(
        {
            'success': False,
            'error': exc.code,
            'message': exc.message,
            **extra,
        },
        status=exc.http_status
    )


# ==================== Customer Booking APIs ====================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def bookings(request):
    """
    GET:  customer's bookings, newest first
    POST: create a booking (appended to the customer's job list and
          dispatched to nearby providers in the background)
    """
    if request.user.role != 'customer':
        return Response(
            {'error': 'Only customers can access bookings'},
            status=status.HTTP_403_FORBIDDEN
        )

    if request.method == 'GET':
        data = booking_services.list_bookings(request.user, request)
        return Response({'count': len(data), 'bookings': data})

    data = booking_services.create_booking(request.user, request.data, request)
    return Response({
        **data,
        'message': 'Searching for nearby providers...',
    }, status=status.HTTP_201_CREATED)


# ==================== Provider Job Actions ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def accept_booking(request, booking_id):
    """
    Accept a job from the provider's inbox.

    Exactly one provider can win a job; everyone else gets a
    `failed_precondition` error (409).
    """
    if request.user.role != 'provider':
        return Response(
            {'error': 'Only service providers can accept jobs'},
            status=status.HTTP_403_FORBIDDEN
        )

    try:
        result = accept_job(booking_id, request.user.id)
    except JobServiceError as exc:
        return _error_response(exc, booking_id=booking_id)

    return Response({
        'success': True,
        'booking_id': booking_id,
        'job': JobSerializer(result.job).data,
        'message': result.message,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def update_booking_status(request, booking_id):
    """Move an accepted job forward (arrived, in_progress, payment_pending, completed)."""
    if request.user.role != 'provider':
        return Response(
            {'error': 'Only service providers can update job status'},
            status=status.HTTP_403_FORBIDDEN
        )

    serializer = JobStatusUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        job = update_job_status(booking_id, request.user.id, serializer.validated_data['status'])
    except JobServiceError as exc:
        return _error_response(exc, booking_id=booking_id)

    return Response({
        'success': True,
        'job': JobSerializer(job).data,
        'message': f"Job marked as {job.get_status_display().lower()}",
    })
