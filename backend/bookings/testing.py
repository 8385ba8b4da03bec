"""Shared fixtures for the job dispatch test suites."""

from datetime import timedelta

from django.utils import timezone

from accounts.models import User
from customers.models import CustomerProfile
from providers.models import ProviderProfile

from .models import InboxEntry, JobContainer, JobStatus

# Aurangabad; 0.009 degrees of latitude is roughly one kilometre
JOB_LAT = 19.87
JOB_LON = 75.34
KM_IN_LAT_DEGREES = 1 / 111.19


def make_customer(username='customer', phone='9000000000', lat=JOB_LAT, lon=JOB_LON, token=None):
	user = User.objects.create_user(
		username=username,
		password='pass1234',
		role='customer',
		phone_number=phone
	)
	CustomerProfile.objects.create(
		user=user,
		latitude=lat,
		longitude=lon,
		notification_token=token
	)
	return user


def make_provider(
	username,
	km_north=1.0,
	services=('AC Repair',),
	verification_status='verified',
	token=None,
	lat=None,
	lon=JOB_LON,
):
	user = User.objects.create_user(
		username=username,
		password='pass1234',
		role='provider',
		phone_number='9100000000'
	)
	if lat is None and km_north is not None:
		lat = round(JOB_LAT + km_north * KM_IN_LAT_DEGREES, 6)
	ProviderProfile.objects.create(
		user=user,
		full_name=username.replace('_', ' ').title(),
		mobile_no='9100000000',
		verification_status=verification_status,
		services=list(services),
		primary_service=services[0] if services else '',
		current_latitude=lat,
		current_longitude=lon if lat is not None else None,
		notification_token=token
	)
	return user


def make_job(customer, booking_id='booking-1', service_name='AC Repair', price=499):
	container, _ = JobContainer.objects.get_or_create(
		customer=customer,
		defaults={'customer_key': customer.phone_number or f'user-{customer.pk}'}
	)
	return container.append_job(
		booking_id=booking_id,
		service_name=service_name,
		price=price,
		address='Test address'
	)


def fan_out(job, providers, expires_in=timedelta(minutes=30)):
	"""Mark `job` as dispatched to `providers` and give each an inbox entry."""
	job.notified_provider_ids = [p.id for p in providers]
	job.save(update_fields=['notified_provider_ids'])
	now = timezone.now()
	return [
		InboxEntry.objects.create(
			provider=provider,
			booking_id=job.booking_id,
			container=job.container,
			booking_index=job.position,
			customer_key=job.container.customer_key,
			service_name=job.service_name,
			price_snapshot=job.price,
			distance_km=1.5,
			status=JobStatus.PENDING,
			created_at=now,
			expires_at=now + expires_in
		)
		for provider in providers
	]
