from django.test import TestCase
from rest_framework.test import APIClient

from accounts.models import User
from bookings.models import Job, JobContainer, JobStatus
from bookings.testing import make_customer, make_job
from providers.models import ProviderProfile
from .models import CustomerProfile
from .services.booking_services import get_or_create_container


class RegistrationTests(TestCase):
	def setUp(self):
		self.client = APIClient()

	def test_customer_registration_creates_profile(self):
		response = self.client.post('/api/auth/register/', {
			'username': 'asha',
			'password': 'pass1234',
			'role': 'customer',
			'phone_number': '9000000001'
		}, format='json')

		self.assertEqual(response.status_code, 201)
		self.assertIn('access', response.data['tokens'])
		user = User.objects.get(username='asha')
		self.assertTrue(CustomerProfile.objects.filter(user=user).exists())
		self.assertFalse(ProviderProfile.objects.filter(user=user).exists())

	def test_provider_registration_needs_services(self):
		response = self.client.post('/api/auth/register/', {
			'username': 'ravi',
			'password': 'pass1234',
			'role': 'provider'
		}, format='json')

		self.assertEqual(response.status_code, 400)
		self.assertIn('services', response.data)

	def test_provider_registration_creates_unverified_profile(self):
		response = self.client.post('/api/auth/register/', {
			'username': 'ravi',
			'password': 'pass1234',
			'role': 'provider',
			'full_name': 'Ravi Kumar',
			'phone_number': '9100000001',
			'services': ['AC Repair', 'Plumbing']
		}, format='json')

		self.assertEqual(response.status_code, 201)
		profile = ProviderProfile.objects.get(user__username='ravi')
		self.assertEqual(profile.verification_status, 'pending')
		self.assertEqual(profile.primary_service, 'AC Repair')
		self.assertEqual(profile.mobile_no, '9100000001')

	def test_login_and_refresh(self):
		make_customer(username='asha')

		response = self.client.post('/api/auth/login/', {'username': 'asha', 'password': 'pass1234'}, format='json')
		self.assertEqual(response.status_code, 200)

		refresh = response.data['tokens']['refresh']
		response = self.client.post('/api/auth/refresh/', {'refresh': refresh}, format='json')
		self.assertEqual(response.status_code, 200)
		self.assertIn('access', response.data)

		response = self.client.post('/api/auth/refresh/', {'refresh': 'garbage'}, format='json')
		self.assertEqual(response.status_code, 401)

	def test_me_returns_authenticated_user(self):
		self.assertEqual(self.client.get('/api/auth/me/').status_code, 401)

		user = make_customer(username='asha')
		self.client.force_authenticate(user=user)
		response = self.client.get('/api/auth/me/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['username'], 'asha')
		self.assertEqual(response.data['role'], 'customer')


class CustomerApiTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.customer = make_customer(lat=None, lon=None)
		self.client.force_authenticate(user=self.customer)

	def test_location_update(self):
		response = self.client.post(
			'/api/customer/location/', {'latitude': '19.87', 'longitude': '75.34'}, format='json'
		)

		self.assertEqual(response.status_code, 200)
		profile = CustomerProfile.objects.get(user=self.customer)
		self.assertTrue(profile.has_location)
		self.assertEqual(response.data['latitude'], '19.870000')

	def test_profile(self):
		response = self.client.get('/api/customer/profile/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['phone_number'], '9000000000')
		self.assertNotIn('notification_token', response.data)

	def test_no_current_booking(self):
		response = self.client.get('/api/customer/current-booking/')

		self.assertEqual(response.status_code, 200)
		self.assertFalse(response.data['has_active_booking'])

	def test_current_booking_is_latest_open_job(self):
		make_job(self.customer, booking_id='older')
		newer = make_job(self.customer, booking_id='newer')

		response = self.client.get('/api/customer/current-booking/')

		self.assertTrue(response.data['has_active_booking'])
		self.assertEqual(response.data['booking']['booking_id'], 'newer')
		self.assertFalse(response.data['provider_assigned'])
		self.assertEqual(response.data['message'], 'Searching for nearby providers...')

		Job.objects.filter(pk=newer.pk).update(status=JobStatus.COMPLETED)
		response = self.client.get('/api/customer/current-booking/')
		self.assertEqual(response.data['booking']['booking_id'], 'older')

	def test_providers_are_refused(self):
		provider = User.objects.create_user(username='p', password='x', role='provider')
		self.client.force_authenticate(user=provider)

		self.assertEqual(self.client.get('/api/customer/profile/').status_code, 403)


class JobContainerTests(TestCase):
	def test_container_is_keyed_by_phone_number(self):
		customer = make_customer()
		self.assertEqual(get_or_create_container(customer).customer_key, '9000000000')
		self.assertEqual(JobContainer.objects.count(), 1)
		self.assertEqual(get_or_create_container(customer).customer_key, '9000000000')

	def test_missing_or_shared_phone_falls_back_to_user_id(self):
		first = make_customer(username='first', phone='9000000000')
		second = make_customer(username='second', phone='9000000000')
		third = make_customer(username='third', phone='')

		get_or_create_container(first)
		self.assertEqual(get_or_create_container(second).customer_key, f'user-{second.pk}')
		self.assertEqual(get_or_create_container(third).customer_key, f'user-{third.pk}')

	def test_append_assigns_consecutive_positions(self):
		customer = make_customer()
		jobs = [make_job(customer, booking_id=f'b{i}') for i in range(3)]

		self.assertEqual([job.position for job in jobs], [0, 1, 2])
		self.assertEqual(
			list(Job.objects.filter(container__customer=customer).values_list('booking_id', flat=True)),
			['b0', 'b1', 'b2']
		)

	def test_append_after_deleting_a_job_takes_the_next_free_position(self):
		customer = make_customer()
		make_job(customer, booking_id='b0')
		middle = make_job(customer, booking_id='b1')
		make_job(customer, booking_id='b2')
		middle.delete()

		job = make_job(customer, booking_id='b3')

		self.assertEqual(job.position, 3)
		self.assertEqual(
			list(Job.objects.filter(container__customer=customer).values_list('position', flat=True)),
			[0, 2, 3]
		)
