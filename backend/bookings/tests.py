from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate
from unittest.mock import MagicMock, patch

from customers.models import CustomerProfile
from .models import InboxEntry, Job, JobStatus
from .signals import job_appended, job_status_changed
from .tasks import purge_expired_inbox_entries_task
from .testing import fan_out, make_customer, make_job, make_provider
from .views import accept_booking, bookings, update_booking_status


class BookingCreateApiTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.customer = make_customer()
		self.near = make_provider('near', km_north=3)
		self.mid = make_provider('mid', km_north=6)
		self.edge = make_provider('edge', km_north=9)

	def _post(self, user, data):
		request = self.factory.post('/api/bookings/', data, format='json')
		force_authenticate(request, user=user)
		return bookings(request)

	@patch('realtime.notifications.notify_provider_event')
	def test_create_booking_appends_and_dispatches(self, mocked_event):
		with self.captureOnCommitCallbacks(execute=True):
			response = self._post(self.customer, {
				'service_name': 'AC Repair',
				'price': '499',
				'address': 'Flat 4, MG Road'
			})

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['position'], 0)
		self.assertEqual(response.data['status'], 'pending')
		self.assertEqual(response.data['customer_key'], '9000000000')
		self.assertEqual(response.data['message'], 'Searching for nearby providers...')

		job = Job.objects.get(booking_id=response.data['booking_id'])
		self.assertEqual(job.notified_provider_ids, [self.near.id, self.mid.id])
		self.assertEqual(
			set(InboxEntry.objects.filter(booking_id=job.booking_id).values_list('provider_id', flat=True)),
			{self.near.id, self.mid.id}
		)
		self.assertEqual(mocked_event.call_count, 2)

	def test_bookings_are_appended_in_order(self):
		first = self._post(self.customer, {'service_name': 'AC Repair', 'price': 499})
		second = self._post(self.customer, {'service_name': 'Plumbing', 'price': 199})

		self.assertEqual(first.data['position'], 0)
		self.assertEqual(second.data['position'], 1)
		self.assertNotEqual(first.data['booking_id'], second.data['booking_id'])
		self.assertEqual(Job.objects.filter(customer=self.customer).count(), 2)

	def test_booking_location_updates_customer_profile(self):
		self._post(self.customer, {
			'service_name': 'AC Repair',
			'price': 499,
			'latitude': '19.900000',
			'longitude': '75.300000'
		})

		profile = CustomerProfile.objects.get(user=self.customer)
		self.assertEqual(float(profile.latitude), 19.9)
		self.assertEqual(float(profile.longitude), 75.3)

	def test_invalid_booking_is_rejected(self):
		response = self._post(self.customer, {'service_name': '  ', 'price': -1})

		self.assertEqual(response.status_code, 400)
		self.assertFalse(Job.objects.exists())

	def test_latitude_without_longitude_is_rejected(self):
		response = self._post(self.customer, {'service_name': 'AC Repair', 'price': 1, 'latitude': '19.9'})
		self.assertEqual(response.status_code, 400)

	def test_providers_cannot_create_bookings(self):
		response = self._post(self.near, {'service_name': 'AC Repair', 'price': 499})
		self.assertEqual(response.status_code, 403)

	def test_list_bookings_newest_first(self):
		make_job(self.customer, booking_id='first')
		make_job(self.customer, booking_id='second')

		request = self.factory.get('/api/bookings/')
		force_authenticate(request, user=self.customer)
		response = bookings(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['count'], 2)
		self.assertEqual([b['booking_id'] for b in response.data['bookings']], ['second', 'first'])


class AcceptBookingApiTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.customer = make_customer()
		self.provider_one = make_provider('provider_one', km_north=1)
		self.provider_two = make_provider('provider_two', km_north=2)
		self.job = make_job(self.customer)
		fan_out(self.job, [self.provider_one, self.provider_two])

	def _accept(self, user, booking_id=None):
		booking_id = booking_id or self.job.booking_id
		request = self.factory.post('/api/bookings/%s/accept/' % booking_id)
		force_authenticate(request, user=user)
		return accept_booking(request, booking_id=booking_id)

	def _status(self, user, new_status):
		request = self.factory.post(
			'/api/bookings/%s/status/' % self.job.booking_id, {'status': new_status}, format='json'
		)
		force_authenticate(request, user=user)
		return update_booking_status(request, booking_id=self.job.booking_id)

	def test_accept_assigns_provider(self):
		response = self._accept(self.provider_one)

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['success'])
		self.assertEqual(response.data['job']['provider_id'], self.provider_one.id)
		self.assertEqual(response.data['job']['status'], 'accepted')

	def test_second_provider_gets_conflict(self):
		self._accept(self.provider_one)
		response = self._accept(self.provider_two)

		self.assertEqual(response.status_code, 409)
		self.assertFalse(response.data['success'])
		self.assertEqual(response.data['error'], 'failed_precondition')
		self.assertEqual(response.data['booking_id'], self.job.booking_id)

	def test_unknown_booking_is_not_found(self):
		response = self._accept(self.provider_one, booking_id='nope')

		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.data['error'], 'not_found')

	def test_customers_cannot_accept(self):
		response = self._accept(self.customer)
		self.assertEqual(response.status_code, 403)

	def test_status_updates_follow_the_lifecycle(self):
		self._accept(self.provider_one)

		response = self._status(self.provider_one, 'arrived')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['job']['status'], 'arrived')
		self.assertEqual(response.data['message'], 'Job marked as provider arrived')

		response = self._status(self.provider_one, 'completed')
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error'], 'failed_precondition')

	def test_status_update_by_other_provider_is_refused(self):
		self._accept(self.provider_one)
		response = self._status(self.provider_two, 'arrived')
		self.assertEqual(response.status_code, 409)

	def test_unknown_status_is_a_bad_request(self):
		self._accept(self.provider_one)
		response = self._status(self.provider_one, 'teleported')
		self.assertEqual(response.status_code, 400)


class JobHookTests(TestCase):
	def setUp(self):
		self.customer = make_customer()
		self.appended = MagicMock()
		self.status_changed = MagicMock()
		job_appended.connect(self.appended, weak=False, dispatch_uid='test_appended')
		job_status_changed.connect(self.status_changed, weak=False, dispatch_uid='test_status_changed')
		self.addCleanup(job_appended.disconnect, dispatch_uid='test_appended')
		self.addCleanup(job_status_changed.disconnect, dispatch_uid='test_status_changed')

	@patch('bookings.tasks.dispatch_job_task')
	def test_append_fires_once_after_commit(self, mocked_dispatch):
		with self.captureOnCommitCallbacks(execute=False) as callbacks:
			job = make_job(self.customer)
		self.appended.assert_not_called()

		for callback in callbacks:
			callback()

		self.appended.assert_called_once()
		self.assertEqual(self.appended.call_args.kwargs['job'], job)
		mocked_dispatch.delay.assert_called_once_with(job.pk)
		self.status_changed.assert_not_called()

	@patch('bookings.tasks.dispatch_job_task')
	def test_dispatch_enqueue_failure_is_logged(self, mocked_dispatch):
		mocked_dispatch.delay.side_effect = RuntimeError('broker down')

		with self.assertLogs('bookings.signals', level='ERROR'):
			with self.captureOnCommitCallbacks(execute=True):
				make_job(self.customer)

		self.assertEqual(Job.objects.count(), 1)

	@patch('realtime.notifications.notify_customer_status')
	def test_status_change_fires_with_previous_status(self, mocked_notify):
		job = make_job(self.customer)
		job = Job.objects.get(pk=job.pk)

		with self.captureOnCommitCallbacks(execute=True):
			job.status = JobStatus.ACCEPTED
			job.save()

		self.status_changed.assert_called_once()
		self.assertEqual(self.status_changed.call_args.kwargs['previous_status'], JobStatus.PENDING)
		mocked_notify.assert_called_once_with(job)

	def test_save_without_status_change_is_silent(self):
		job = make_job(self.customer)

		with self.captureOnCommitCallbacks(execute=False) as callbacks:
			job.price = 10
			job.save()

		self.assertEqual(callbacks, [])

	@patch('realtime.notifications.notify_customer_status')
	@patch('services.job_management.sync_inbox_status', side_effect=RuntimeError('boom'))
	def test_failing_hook_does_not_stop_the_others(self, mocked_sync, mocked_notify):
		job = make_job(self.customer)
		job = Job.objects.get(pk=job.pk)

		with self.assertLogs('bookings.signals', level='ERROR'):
			with self.captureOnCommitCallbacks(execute=True):
				job.status = JobStatus.ACCEPTED
				job.save()

		mocked_sync.assert_called_once()
		mocked_notify.assert_called_once()


class PurgeExpiredInboxTests(TestCase):
	def setUp(self):
		customer = make_customer()
		self.fresh_provider = make_provider('fresh', km_north=1)
		self.stale_provider = make_provider('stale', km_north=2)
		job = make_job(customer)
		fan_out(job, [self.fresh_provider, self.stale_provider])
		InboxEntry.objects.filter(provider=self.stale_provider).update(
			expires_at=timezone.now() - timedelta(minutes=10)
		)

	def test_deletes_only_expired_entries(self):
		out = StringIO()
		call_command('purge_expired_inbox', stdout=out)

		self.assertIn('Deleted 1 expired inbox entries.', out.getvalue())
		self.assertEqual(list(InboxEntry.objects.values_list('provider_id', flat=True)), [self.fresh_provider.id])

	def test_dry_run_keeps_entries(self):
		out = StringIO()
		call_command('purge_expired_inbox', dry_run=True, stdout=out)

		self.assertIn('DRY RUN: Would delete 1 expired inbox entries.', out.getvalue())
		self.assertEqual(InboxEntry.objects.count(), 2)

	def test_grace_period(self):
		out = StringIO()
		call_command('purge_expired_inbox', grace_minutes=30, stdout=out)

		self.assertIn('Deleted 0 expired inbox entries.', out.getvalue())
		self.assertEqual(InboxEntry.objects.count(), 2)

	def test_periodic_task(self):
		self.assertEqual(purge_expired_inbox_entries_task(), 1)
		self.assertEqual(InboxEntry.objects.count(), 1)
