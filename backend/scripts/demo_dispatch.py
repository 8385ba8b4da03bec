"""
Walk one booking through dispatch and a contested accept against the
local database.

    cd backend && python scripts/demo_dispatch.py
"""

import os
import sys
from pathlib import Path

import django

BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "app_backend.settings")
django.setup()

from django.utils import timezone  # noqa: E402
from accounts.models import User  # noqa: E402
from customers.models import CustomerProfile  # noqa: E402
from customers.services.booking_services import get_or_create_container  # noqa: E402
from providers.models import ProviderProfile  # noqa: E402
from services.job_management import JobServiceError, accept_job  # noqa: E402
from services.matching import dispatch_job  # noqa: E402

JOB_LOCATION = (19.8700, 75.3400)


def ensure_customer(username: str, phone: str) -> User:
    user, created = User.objects.get_or_create(
        username=username,
        defaults={"role": "customer", "phone_number": phone, "email": f"{username}@example.com"},
    )
    if created:
        user.set_password("demo1234")
        user.save()

    CustomerProfile.objects.update_or_create(
        user=user,
        defaults={"latitude": JOB_LOCATION[0], "longitude": JOB_LOCATION[1]},
    )
    return user


def ensure_provider(username: str, lat: float, lon: float, services) -> User:
    user, created = User.objects.get_or_create(
        username=username,
        defaults={"role": "provider", "phone_number": "9000011111", "email": f"{username}@example.com"},
    )
    if created:
        user.set_password("demo1234")
        user.save()

    ProviderProfile.objects.update_or_create(
        user=user,
        defaults={
            "full_name": username.replace("_", " ").title(),
            "verification_status": "verified",
            "services": services,
            "primary_service": services[0],
            "current_latitude": lat,
            "current_longitude": lon,
            "last_location_update": timezone.now(),
        },
    )
    return user


def main():
    customer = ensure_customer("demo_customer", "9000000000")
    near = ensure_provider("demo_provider_near", 19.8720, 75.3450, ["AC Repair"])
    close = ensure_provider("demo_provider_close", 19.8900, 75.3600, ["ac repair", "Plumbing"])
    ensure_provider("demo_provider_far", 19.9600, 75.4000, ["AC Repair"])

    container = get_or_create_container(customer)
    job = container.append_job(
        booking_id=f"demo-{timezone.now():%H%M%S}",
        service_name="AC Repair",
        price=499,
        address="Demo street",
    )
    print(f"Appended booking {job.booking_id} at position {job.position}")

    result = dispatch_job(job.pk)
    print(f"Dispatch: {result.status}, {result.candidate_count} candidates, notified={result.notified_provider_ids}")

    for provider in (close, near):
        try:
            outcome = accept_job(job.booking_id, provider.id)
            print(f"{provider.username}: {outcome.message}")
        except JobServiceError as exc:
            print(f"{provider.username}: {exc.code} - {exc.message}")


if __name__ == "__main__":
    main()
