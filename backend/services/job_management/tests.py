import threading
from datetime import timedelta
from unittest import skipUnless
from unittest.mock import patch

from channels.exceptions import InvalidChannelLayerError
from django.db import DatabaseError, connection
from django.test import SimpleTestCase, TestCase, TransactionTestCase

from bookings.models import InboxEntry, Job, JobStatus
from bookings.testing import fan_out, make_customer, make_job, make_provider
from providers.models import ProviderProfile

from . import acceptance
from .acceptance import accept_job
from .exceptions import (
	BookingMismatchError,
	FailedPreconditionError,
	InboxEntryNotFoundError,
	InternalError,
	InvalidArgumentError,
	InvalidTransitionError,
	JobAlreadyAcceptedError,
	JobNotFoundError,
	NotAssignedProviderError,
	NotFoundError,
	ProviderNotFoundError,
	ProviderNotNotifiedError,
)
from .inbox_cleanup import cleanup_inbox_for_accepted_job
from .inbox_sync import sync_inbox_status
from .lifecycle import can_transition, update_job_status
from .validators import validate_booking_id, validate_booking_status, validate_provider_id


class ValidatorTests(SimpleTestCase):
	def test_booking_id_is_stripped(self):
		self.assertEqual(validate_booking_id('  abc '), 'abc')

	def test_blank_or_non_string_booking_id_is_rejected(self):
		for value in ('', '   ', None, 42):
			with self.assertRaises(InvalidArgumentError):
				validate_booking_id(value)

	def test_provider_id_accepts_ints_and_digit_strings(self):
		self.assertEqual(validate_provider_id(7), 7)
		self.assertEqual(validate_provider_id(' 12 '), 12)

	def test_bad_provider_ids_are_rejected(self):
		for value in (0, -3, 'abc', '', None, True, 1.5, '²', '١٢'):
			with self.assertRaises(InvalidArgumentError):
				validate_provider_id(value)

	def test_booking_status_must_be_allowed(self):
		job = Job(status=JobStatus.COMPLETED)
		with self.assertRaises(FailedPreconditionError):
			validate_booking_status(job, [JobStatus.PENDING, JobStatus.ACCEPTED])
		self.assertEqual(validate_booking_status(job, ['COMPLETED']), 'completed')


class LifecycleTransitionTests(SimpleTestCase):
	def test_forward_steps_only(self):
		self.assertTrue(can_transition('accepted', 'arrived'))
		self.assertTrue(can_transition('payment_pending', 'completed'))
		self.assertFalse(can_transition('accepted', 'in_progress'))
		self.assertFalse(can_transition('arrived', 'accepted'))
		self.assertFalse(can_transition('completed', 'pending'))
		self.assertFalse(can_transition('unknown', 'accepted'))


class AcceptJobTests(TestCase):
	def setUp(self):
		self.customer = make_customer()
		self.p1 = make_provider('p1', km_north=2)
		self.p2 = make_provider('p2', km_north=3)
		self.p3 = make_provider('p3', km_north=4)
		self.job = make_job(self.customer)
		fan_out(self.job, [self.p1, self.p2, self.p3])

	def test_first_accept_wins(self):
		result = accept_job(self.job.booking_id, self.p2.id)

		self.assertTrue(result.success)
		self.assertEqual(result.extra, {'booking_id': self.job.booking_id, 'provider_id': self.p2.id})

		self.job.refresh_from_db()
		self.assertEqual(self.job.status, JobStatus.ACCEPTED)
		self.assertEqual(self.job.provider_id, self.p2.id)
		self.assertEqual(self.job.provider_name, 'P2')
		self.assertEqual(self.job.provider_mobile, '9100000000')
		self.assertIsNotNone(self.job.accepted_at)

		entry = InboxEntry.objects.get(provider=self.p2, booking_id=self.job.booking_id)
		self.assertEqual(entry.status, JobStatus.ACCEPTED)

	def test_accepts_digit_string_provider_id(self):
		result = accept_job(self.job.booking_id, str(self.p1.id))
		self.assertEqual(result.job.provider_id, self.p1.id)

	def test_second_accept_fails_and_keeps_first_winner(self):
		accept_job(self.job.booking_id, self.p2.id)

		with self.assertRaises(JobAlreadyAcceptedError) as ctx:
			accept_job(self.job.booking_id, self.p1.id)

		self.assertEqual(ctx.exception.code, 'failed_precondition')
		self.assertEqual(ctx.exception.http_status, 409)
		self.job.refresh_from_db()
		self.assertEqual(self.job.provider_id, self.p2.id)

	def test_same_provider_cannot_accept_twice(self):
		accept_job(self.job.booking_id, self.p2.id)
		with self.assertRaises(JobAlreadyAcceptedError):
			accept_job(self.job.booking_id, self.p2.id)

	def test_invalid_arguments(self):
		with self.assertRaises(InvalidArgumentError):
			accept_job('', self.p1.id)
		with self.assertRaises(InvalidArgumentError):
			accept_job(self.job.booking_id, 'p1')

	def test_unknown_provider(self):
		with self.assertRaises(ProviderNotFoundError):
			accept_job(self.job.booking_id, 999999)

	def test_provider_without_inbox_entry(self):
		outsider = make_provider('outsider', km_north=1)
		with self.assertRaises(InboxEntryNotFoundError) as ctx:
			accept_job(self.job.booking_id, outsider.id)
		self.assertIsInstance(ctx.exception, NotFoundError)

	def test_expired_entry_counts_as_missing(self):
		InboxEntry.objects.filter(provider=self.p1).update(
			expires_at=self.job.created_at - timedelta(minutes=1)
		)
		with self.assertRaises(InboxEntryNotFoundError):
			accept_job(self.job.booking_id, self.p1.id)

		self.job.refresh_from_db()
		self.assertEqual(self.job.status, JobStatus.PENDING)

	def test_entry_pointing_past_the_container(self):
		InboxEntry.objects.filter(provider=self.p1).update(booking_index=5)
		with self.assertRaises(JobNotFoundError):
			accept_job(self.job.booking_id, self.p1.id)

	def test_entry_without_container(self):
		InboxEntry.objects.filter(provider=self.p1).update(container=None)
		with self.assertRaises(JobNotFoundError):
			accept_job(self.job.booking_id, self.p1.id)

	def test_booking_id_mismatch_at_stored_index(self):
		other = make_job(self.customer, booking_id='booking-2')
		InboxEntry.objects.filter(provider=self.p1).update(booking_index=other.position)

		with self.assertRaises(BookingMismatchError):
			accept_job(self.job.booking_id, self.p1.id)

	def test_provider_not_in_notified_set(self):
		Job.objects.filter(pk=self.job.pk).update(notified_provider_ids=[self.p2.id, self.p3.id])

		with self.assertRaises(ProviderNotNotifiedError):
			accept_job(self.job.booking_id, self.p1.id)

	def test_job_never_dispatched(self):
		Job.objects.filter(pk=self.job.pk).update(notified_provider_ids=None)

		with self.assertRaises(ProviderNotNotifiedError):
			accept_job(self.job.booking_id, self.p1.id)

	def test_deleted_inbox_entries_only_affect_their_own_claims(self):
		other = make_job(self.customer, booking_id='booking-2')
		fan_out(other, [self.p1, self.p2])

		InboxEntry.objects.filter(provider=self.p1, booking_id=self.job.booking_id).delete()

		result = accept_job(other.booking_id, self.p2.id)
		self.assertEqual(result.job.provider_id, self.p2.id)

		with self.assertRaises(InboxEntryNotFoundError):
			accept_job(self.job.booking_id, self.p1.id)

		self.job.refresh_from_db()
		self.assertEqual(self.job.status, JobStatus.PENDING)
		self.assertIsNone(self.job.provider_id)
		self.assertEqual(accept_job(self.job.booking_id, self.p3.id).job.provider_id, self.p3.id)

	def test_concurrent_claim_between_read_and_update(self):
		original_load_job = acceptance._load_job

		def load_then_lose_race(entry):
			job = original_load_job(entry)
			# Another provider commits its claim after our read
			Job.objects.filter(pk=job.pk).update(status=JobStatus.ACCEPTED, provider=self.p3)
			return job

		with patch('services.job_management.acceptance._load_job', side_effect=load_then_lose_race):
			with self.assertRaises(JobAlreadyAcceptedError):
				accept_job(self.job.booking_id, self.p1.id)

		entry = InboxEntry.objects.get(provider=self.p1, booking_id=self.job.booking_id)
		self.assertEqual(entry.status, JobStatus.PENDING)

	def test_database_failure_is_reported_as_internal(self):
		with patch('services.job_management.acceptance._load_provider', side_effect=DatabaseError('gone')):
			with self.assertRaises(InternalError) as ctx:
				accept_job(self.job.booking_id, self.p1.id)

		self.assertEqual(ctx.exception.message, 'Failed to accept job. Please try again.')
		self.assertEqual(ctx.exception.http_status, 503)

	@patch('realtime.notifications.notify_provider_event')
	def test_losers_entries_are_cleaned_up_after_commit(self, mocked_event):
		with self.captureOnCommitCallbacks(execute=True):
			accept_job(self.job.booking_id, self.p2.id)

		remaining = InboxEntry.objects.filter(booking_id=self.job.booking_id)
		self.assertEqual([e.provider_id for e in remaining], [self.p2.id])
		self.assertEqual(remaining[0].status, JobStatus.ACCEPTED)

		notified = sorted(c.args[1] for c in mocked_event.call_args_list)
		self.assertEqual(notified, sorted([self.p1.id, self.p3.id]))
		self.assertTrue(all(c.args[0] == 'job_unavailable' for c in mocked_event.call_args_list))

	@patch('realtime.notifications.notify_customer_status')
	def test_customer_is_told_once_after_commit(self, mocked_notify):
		with self.captureOnCommitCallbacks(execute=False) as callbacks:
			accept_job(self.job.booking_id, self.p2.id)
		mocked_notify.assert_not_called()

		for callback in callbacks:
			callback()

		mocked_notify.assert_called_once()
		self.assertEqual(mocked_notify.call_args.args[0].status, JobStatus.ACCEPTED)

	@patch('bookings.tasks.cleanup_inbox_task')
	def test_cleanup_enqueue_failure_does_not_undo_accept(self, mocked_cleanup):
		mocked_cleanup.delay.side_effect = RuntimeError('broker down')

		with self.captureOnCommitCallbacks(execute=True):
			result = accept_job(self.job.booking_id, self.p2.id)

		self.assertTrue(result.success)
		self.job.refresh_from_db()
		self.assertEqual(self.job.provider_id, self.p2.id)
		# Stale cards stay until purged or hidden; harmless
		self.assertEqual(InboxEntry.objects.filter(booking_id=self.job.booking_id).count(), 3)


class UpdateJobStatusTests(TestCase):
	def setUp(self):
		self.customer = make_customer()
		self.provider = make_provider('worker', km_north=1)
		self.other = make_provider('other', km_north=2)
		self.job = make_job(self.customer)
		fan_out(self.job, [self.provider, self.other])
		accept_job(self.job.booking_id, self.provider.id)

	def test_walks_the_lifecycle_in_order(self):
		for status in ('arrived', 'in_progress', 'payment_pending', 'completed'):
			job = update_job_status(self.job.booking_id, self.provider.id, status)
			self.assertEqual(job.status, status)

		self.job.refresh_from_db()
		self.assertEqual(self.job.status, JobStatus.COMPLETED)
		self.assertIsNotNone(self.job.completed_at)
		self.provider.refresh_from_db()
		self.assertEqual(self.provider.completed_jobs, 1)

	def test_skipping_a_step_is_refused(self):
		with self.assertRaises(InvalidTransitionError):
			update_job_status(self.job.booking_id, self.provider.id, 'in_progress')

	def test_accepted_cannot_be_set_directly(self):
		with self.assertRaises(InvalidTransitionError):
			update_job_status(self.job.booking_id, self.provider.id, 'accepted')

	def test_unknown_status(self):
		with self.assertRaises(InvalidArgumentError):
			update_job_status(self.job.booking_id, self.provider.id, 'teleported')

	def test_only_assigned_provider_may_update(self):
		with self.assertRaises(NotAssignedProviderError):
			update_job_status(self.job.booking_id, self.other.id, 'arrived')

	def test_unknown_booking(self):
		with self.assertRaises(JobNotFoundError):
			update_job_status('missing', self.provider.id, 'arrived')

	def test_completed_job_is_closed(self):
		Job.objects.filter(pk=self.job.pk).update(status=JobStatus.COMPLETED)
		with self.assertRaises(FailedPreconditionError):
			update_job_status(self.job.booking_id, self.provider.id, 'arrived')

	@patch('realtime.notifications.notify_customer_status')
	def test_status_change_is_mirrored_into_the_inbox(self, mocked_notify):
		with self.captureOnCommitCallbacks(execute=True):
			update_job_status(self.job.booking_id, self.provider.id, 'arrived')

		entry = InboxEntry.objects.get(provider=self.provider, booking_id=self.job.booking_id)
		self.assertEqual(entry.status, JobStatus.ARRIVED)
		mocked_notify.assert_called_once()


class InboxCleanupTests(TestCase):
	def setUp(self):
		self.customer = make_customer()
		self.winner = make_provider('winner', km_north=1)
		self.loser = make_provider('loser', km_north=2)
		self.job = make_job(self.customer)
		fan_out(self.job, [self.winner, self.loser])

	@patch('realtime.notifications.notify_provider_event')
	def test_removes_only_other_pending_entries(self, mocked_event):
		other_job = make_job(self.customer, booking_id='booking-2')
		fan_out(other_job, [self.loser])

		removed = cleanup_inbox_for_accepted_job(self.job.booking_id, self.winner.id)

		self.assertEqual(removed, 1)
		self.assertTrue(InboxEntry.objects.filter(provider=self.winner, booking_id=self.job.booking_id).exists())
		self.assertTrue(InboxEntry.objects.filter(provider=self.loser, booking_id='booking-2').exists())
		mocked_event.assert_called_once_with(
			'job_unavailable',
			self.loser.id,
			{'booking_id': self.job.booking_id},
			message='This job has been accepted by another provider.',
		)

	def test_running_twice_is_harmless(self):
		cleanup_inbox_for_accepted_job(self.job.booking_id, self.winner.id)
		self.assertEqual(cleanup_inbox_for_accepted_job(self.job.booking_id, self.winner.id), 0)

	def test_database_failure_returns_zero(self):
		with patch('django.db.models.query.QuerySet.delete', side_effect=DatabaseError('down')):
			self.assertEqual(cleanup_inbox_for_accepted_job(self.job.booking_id, self.winner.id), 0)

	@patch('realtime.notifications.get_channel_layer', side_effect=InvalidChannelLayerError('bad backend'))
	def test_broken_channel_layer_does_not_fail_cleanup(self, mocked_layer):
		with self.assertLogs('realtime.notifications', level='ERROR'):
			removed = cleanup_inbox_for_accepted_job(self.job.booking_id, self.winner.id)

		self.assertEqual(removed, 1)
		mocked_layer.assert_called_once()
		self.assertFalse(InboxEntry.objects.filter(provider=self.loser).exists())


class InboxSyncTests(TestCase):
	def setUp(self):
		self.customer = make_customer()
		self.provider = make_provider('worker', km_north=1)
		self.job = make_job(self.customer)
		fan_out(self.job, [self.provider])

	def test_copies_status_to_assigned_providers_entry(self):
		self.job.provider = self.provider
		self.job.status = JobStatus.IN_PROGRESS

		self.assertTrue(sync_inbox_status(self.job))
		entry = InboxEntry.objects.get(provider=self.provider)
		self.assertEqual(entry.status, JobStatus.IN_PROGRESS)

	def test_noop_without_provider(self):
		self.assertFalse(sync_inbox_status(self.job))

	def test_noop_when_entry_is_gone(self):
		InboxEntry.objects.all().delete()
		self.job.provider = self.provider
		self.assertFalse(sync_inbox_status(self.job))


@skipUnless(connection.vendor == 'postgresql', 'Row locks need PostgreSQL')
class ConcurrentAcceptTests(TransactionTestCase):
	"""Real threads racing for the same job on separate connections."""

	def test_exactly_one_provider_wins(self):
		customer = make_customer()
		providers = [make_provider(f'racer_{i}', km_north=i + 1) for i in range(5)]
		# Committed append: the dispatch hook fans the job out to every racer
		job = make_job(customer)
		job.refresh_from_db()
		self.assertEqual(sorted(job.notified_provider_ids), sorted(p.id for p in providers))

		barrier = threading.Barrier(len(providers))
		outcomes = {}

		def attempt(provider):
			try:
				barrier.wait()
				outcomes[provider.id] = accept_job(job.booking_id, provider.id)
			except Exception as exc:
				outcomes[provider.id] = exc
			finally:
				connection.close()

		threads = [threading.Thread(target=attempt, args=(p,)) for p in providers]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join()

		winners = [pid for pid, outcome in outcomes.items() if not isinstance(outcome, Exception)]
		losers = [outcome for outcome in outcomes.values() if isinstance(outcome, Exception)]

		self.assertEqual(len(winners), 1)
		self.assertTrue(all(isinstance(exc, JobAlreadyAcceptedError) for exc in losers))

		job.refresh_from_db()
		self.assertEqual(job.status, JobStatus.ACCEPTED)
		self.assertEqual(job.provider_id, winners[0])
		self.assertTrue(ProviderProfile.objects.filter(user_id=winners[0]).exists())
