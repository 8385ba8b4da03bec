from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from bookings.models import InboxEntry, Job, JobStatus
from bookings.testing import fan_out, make_customer, make_job, make_provider
from services.job_management import accept_job
from .models import ProviderProfile
from . import services


class ProviderInboxTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.customer = make_customer()
		self.provider = make_provider('provider', km_north=1)
		self.client.force_authenticate(user=self.provider)

		self.fresh_job = make_job(self.customer, booking_id='fresh')
		self.old_job = make_job(self.customer, booking_id='old')
		fan_out(self.fresh_job, [self.provider])
		fan_out(self.old_job, [self.provider])
		InboxEntry.objects.filter(booking_id='old').update(
			expires_at=timezone.now() - timedelta(minutes=1)
		)

	def test_inbox_hides_expired_entries(self):
		response = self.client.get('/api/provider/inbox/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['count'], 1)
		job = response.data['jobs'][0]
		self.assertEqual(job['booking_id'], 'fresh')
		self.assertEqual(job['booking_index'], self.fresh_job.position)
		self.assertEqual(job['customer_key'], '9000000000')
		self.assertEqual(job['service_name'], 'AC Repair')

	def test_get_inbox_at_a_given_time(self):
		later = timezone.now() + timedelta(hours=1)
		self.assertEqual(services.get_inbox(self.provider.id, later).count(), 0)

	def test_customers_have_no_inbox(self):
		self.client.force_authenticate(user=self.customer)
		response = self.client.get('/api/provider/inbox/')
		self.assertEqual(response.status_code, 403)


class ProviderLocationTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.provider = make_provider('provider', km_north=None)
		self.client.force_authenticate(user=self.provider)

	def test_location_update_is_stored(self):
		response = self.client.post(
			'/api/provider/location/',
			{'latitude': '19.880000', 'longitude': '75.350000'},
			format='json'
		)

		self.assertEqual(response.status_code, 200)
		profile = ProviderProfile.objects.get(user=self.provider)
		self.assertEqual(float(profile.current_latitude), 19.88)
		self.assertEqual(float(profile.current_longitude), 75.35)

	def test_out_of_range_location_is_rejected(self):
		response = self.client.post(
			'/api/provider/location/',
			{'latitude': '95', 'longitude': '75.35'},
			format='json'
		)
		self.assertEqual(response.status_code, 400)

	def test_notification_token(self):
		response = self.client.post(
			'/api/provider/notification-token/', {'notification_token': 'abc'}, format='json'
		)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(ProviderProfile.objects.get(user=self.provider).notification_token, 'abc')

	def test_profile_update_requires_a_service(self):
		response = self.client.post('/api/provider/profile/', {'services': ['  ']}, format='json')
		self.assertEqual(response.status_code, 400)

		response = self.client.post('/api/provider/profile/', {'services': [' Plumbing ']}, format='json')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['services'], ['Plumbing'])


class ProviderCurrentJobTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.customer = make_customer()
		self.provider = make_provider('provider', km_north=1)
		self.client.force_authenticate(user=self.provider)
		self.job = make_job(self.customer)
		fan_out(self.job, [self.provider])

	def test_no_active_job(self):
		response = self.client.get('/api/provider/current-job/')
		self.assertEqual(response.status_code, 404)

	def test_accepted_job_is_current(self):
		accept_job(self.job.booking_id, self.provider.id)

		response = self.client.get('/api/provider/current-job/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['booking_id'], self.job.booking_id)
		self.assertEqual(response.data['status'], 'accepted')

	def test_completed_job_moves_to_history(self):
		accept_job(self.job.booking_id, self.provider.id)
		Job.objects.filter(pk=self.job.pk).update(status=JobStatus.COMPLETED, completed_at=timezone.now())

		self.assertEqual(self.client.get('/api/provider/current-job/').status_code, 404)
		response = self.client.get('/api/provider/history/')
		self.assertEqual(response.data['count'], 1)
