import os

import redis
from channels.layers import get_channel_layer
from django.db import DatabaseError, connection
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from bookings.tasks import dispatch_job_task


def _check_database():
    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")


def _check_redis():
    redis.Redis.from_url(os.environ["REDIS_URL"], socket_timeout=3).ping()


def _check_channel_layer():
    if get_channel_layer() is None:
        raise RuntimeError("no channel layer configured")


def _check_celery():
    if not dispatch_job_task.name:
        raise RuntimeError("dispatch task not registered")


def _checks():
    checks = {
        "database": (_check_database, DatabaseError),
        "channels": (_check_channel_layer, RuntimeError),
        "celery": (_check_celery, RuntimeError),
    }
    # Broker / channel layer host; local runs work without it
    if os.getenv("REDIS_URL"):
        checks["redis"] = (_check_redis, redis.RedisError)
    return checks


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """Liveness of the database, Redis, the channel layer and Celery."""
    services = {}
    for name, (check, expected_errors) in _checks().items():
        try:
            check()
            services[name] = "healthy"
        except expected_errors as e:
            services[name] = f"unhealthy: {e}"

    healthy = all(state == "healthy" for state in services.values())
    return Response(
        {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
