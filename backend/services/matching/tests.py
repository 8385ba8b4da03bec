from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import requests
from django.test import SimpleTestCase, TestCase, override_settings
from django.conf import settings

from bookings.models import InboxEntry, Job, JobStatus
from bookings.testing import JOB_LAT, JOB_LON, make_customer, make_job, make_provider
from common.utils import bounding_box, calculate_distance
from customers.models import CustomerProfile
from providers.models import ProviderProfile

from .candidate_finder import find_candidates
from .distance import estimate_distances
from .job_dispatch import dispatch_job


def dispatch_settings(**overrides):
	return override_settings(JOB_DISPATCH={**settings.JOB_DISPATCH, **overrides})


class GeoHelperTests(SimpleTestCase):
	def test_distance_between_same_point_is_zero(self):
		self.assertEqual(calculate_distance(JOB_LAT, JOB_LON, JOB_LAT, JOB_LON), 0)

	def test_one_hundredth_degree_of_latitude_is_about_1_1_km(self):
		self.assertAlmostEqual(calculate_distance(19.87, 75.34, 19.88, 75.34), 1.112, places=2)

	def test_accepts_decimal_like_strings(self):
		self.assertAlmostEqual(
			calculate_distance('19.87', '75.34', '19.88', '75.34'),
			calculate_distance(19.87, 75.34, 19.88, 75.34)
		)

	def test_bounding_box_offsets_radius_over_111(self):
		box = bounding_box(10.0, 20.0, 11.1)
		self.assertAlmostEqual(box.min_lat, 9.9)
		self.assertAlmostEqual(box.max_lat, 10.1)
		self.assertTrue(box.contains_longitude(20.09))
		self.assertFalse(box.contains_longitude(20.2))


class CandidateFinderTests(TestCase):
	def setUp(self):
		self.near = make_provider('near', km_north=3)
		self.mid = make_provider('mid', km_north=6, services=('Plumbing', 'ac repair'))
		self.edge = make_provider('edge', km_north=9)
		make_provider('too_far', km_north=12)
		make_provider('wrong_service', km_north=1, services=('Plumbing',))
		make_provider('unverified', km_north=1, verification_status='pending')
		make_provider('no_location', km_north=None)

	def test_finds_verified_matching_providers_within_radius_closest_first(self):
		candidates = find_candidates(JOB_LAT, JOB_LON, 'AC Repair', 10)

		self.assertEqual([c.provider_id for c in candidates], [self.near.id, self.mid.id, self.edge.id])
		self.assertAlmostEqual(candidates[0].approximate_distance_km, 3.0, places=1)
		self.assertEqual(candidates[0].full_name, 'Near')

	def test_service_match_is_case_insensitive(self):
		candidates = find_candidates(JOB_LAT, JOB_LON, '  ac REPAIR ', 10)
		self.assertEqual(len(candidates), 3)

	def test_primary_service_alone_is_enough(self):
		profile = ProviderProfile.objects.get(user=self.near)
		profile.services = []
		profile.primary_service = 'AC Repair'
		profile.save()

		ids = [c.provider_id for c in find_candidates(JOB_LAT, JOB_LON, 'AC Repair', 10)]
		self.assertIn(self.near.id, ids)

	def test_no_match_returns_empty_list(self):
		self.assertEqual(find_candidates(JOB_LAT, JOB_LON, 'Carpentry', 10), [])

	def test_malformed_profiles_are_skipped(self):
		good = SimpleNamespace(
			user_id=1, verification_status='verified', current_latitude=JOB_LAT,
			current_longitude=JOB_LON, services=['AC Repair'], primary_service='',
			notification_token=None, full_name=''
		)
		bad_services = SimpleNamespace(**{**vars(good), 'user_id': 2, 'services': 'AC Repair'})
		bad_item = SimpleNamespace(**{**vars(good), 'user_id': 3, 'services': [42]})
		bad_coords = SimpleNamespace(**{**vars(good), 'user_id': 4, 'current_latitude': 'north'})

		candidates = find_candidates(
			JOB_LAT, JOB_LON, 'AC Repair', 10,
			providers=[bad_services, bad_item, bad_coords, good]
		)

		self.assertEqual([c.provider_id for c in candidates], [1])


class DistanceEstimatorTests(SimpleTestCase):
	origin = (JOB_LAT, JOB_LON)
	destinations = [(19.90, 75.34), (19.88, 75.34), (19.95, 75.34)]

	def _response(self, payload):
		response = MagicMock()
		response.json.return_value = payload
		response.raise_for_status.return_value = None
		return response

	def _element(self, meters, seconds=600):
		return {'status': 'OK', 'distance': {'value': meters}, 'duration': {'value': seconds}}

	@dispatch_settings(DISTANCE_MATRIX_API_KEY='')
	def test_without_api_key_uses_haversine_in_order(self):
		with patch('services.matching.distance.requests.get') as mocked_get:
			results = estimate_distances(self.origin, self.destinations)

		mocked_get.assert_not_called()
		self.assertEqual(len(results), 3)
		for (lat, lon), result in zip(self.destinations, results):
			self.assertAlmostEqual(result.distance_km, calculate_distance(JOB_LAT, JOB_LON, lat, lon))
			self.assertEqual(result.duration_min, 0)
			self.assertFalse(result.ok)

	@dispatch_settings(DISTANCE_MATRIX_API_KEY='key')
	def test_road_distances_are_used_when_service_answers(self):
		payload = {
			'status': 'OK',
			'rows': [{'elements': [self._element(4200, 900), self._element(1500), self._element(9100)]}],
		}
		with patch('services.matching.distance.requests.get', return_value=self._response(payload)) as mocked_get:
			results = estimate_distances(self.origin, self.destinations)

		self.assertEqual(mocked_get.call_count, 1)
		self.assertIn('timeout', mocked_get.call_args.kwargs)
		self.assertEqual([r.distance_km for r in results], [4.2, 1.5, 9.1])
		self.assertEqual(results[0].duration_min, 15)
		self.assertTrue(all(r.ok for r in results))

	@dispatch_settings(DISTANCE_MATRIX_API_KEY='key')
	def test_transport_failure_falls_back_for_every_destination(self):
		with patch('services.matching.distance.requests.get', side_effect=requests.ConnectionError('down')):
			results = estimate_distances(self.origin, self.destinations)

		self.assertEqual(len(results), 3)
		self.assertFalse(any(r.ok for r in results))
		self.assertAlmostEqual(results[2].distance_km, calculate_distance(JOB_LAT, JOB_LON, 19.95, 75.34))

	@dispatch_settings(DISTANCE_MATRIX_API_KEY='key')
	def test_non_ok_payload_falls_back(self):
		payload = {'status': 'REQUEST_DENIED', 'rows': []}
		with patch('services.matching.distance.requests.get', return_value=self._response(payload)):
			results = estimate_distances(self.origin, self.destinations)

		self.assertEqual(len(results), 3)
		self.assertFalse(any(r.ok for r in results))

	@dispatch_settings(DISTANCE_MATRIX_API_KEY='key')
	def test_short_row_falls_back(self):
		payload = {'status': 'OK', 'rows': [{'elements': [self._element(1000)]}]}
		with patch('services.matching.distance.requests.get', return_value=self._response(payload)):
			results = estimate_distances(self.origin, self.destinations)

		self.assertEqual(len(results), 3)
		self.assertFalse(any(r.ok for r in results))

	@dispatch_settings(DISTANCE_MATRIX_API_KEY='key')
	def test_malformed_payload_shapes_fall_back(self):
		payloads = [
			[],
			{'status': 'OK', 'rows': ['x']},
			{'status': 'OK', 'rows': 'x'},
			{'status': 'OK', 'rows': [{'elements': 'x'}]},
			{'status': 'OK', 'rows': [{'elements': {'a': 1}}]},
		]
		for payload in payloads:
			with self.subTest(payload=payload):
				with patch('services.matching.distance.requests.get', return_value=self._response(payload)):
					results = estimate_distances(self.origin, self.destinations[:1])

				self.assertEqual(len(results), 1)
				self.assertFalse(results[0].ok)
				self.assertAlmostEqual(results[0].distance_km, calculate_distance(JOB_LAT, JOB_LON, 19.90, 75.34))

	@dispatch_settings(DISTANCE_MATRIX_API_KEY='key')
	def test_single_bad_element_falls_back_alone(self):
		payload = {
			'status': 'OK',
			'rows': [{'elements': [self._element(4200), {'status': 'ZERO_RESULTS'}, self._element(9100)]}],
		}
		with patch('services.matching.distance.requests.get', return_value=self._response(payload)):
			results = estimate_distances(self.origin, self.destinations)

		self.assertEqual([r.ok for r in results], [True, False, True])
		self.assertAlmostEqual(results[1].distance_km, calculate_distance(JOB_LAT, JOB_LON, 19.88, 75.34))

	def test_no_destinations(self):
		self.assertEqual(estimate_distances(self.origin, []), [])


class DispatchJobTests(TestCase):
	def setUp(self):
		self.customer = make_customer()
		self.near = make_provider('near', km_north=3, token='token-near')
		self.mid = make_provider('mid', km_north=6)
		self.edge = make_provider('edge', km_north=9)
		self.job = make_job(self.customer)

	def test_notifies_only_providers_inside_the_final_cutoff(self):
		result = dispatch_job(self.job.pk)

		self.assertEqual(result.status, 'dispatched')
		self.assertEqual(result.candidate_count, 3)
		self.assertEqual(result.notified_provider_ids, [self.near.id, self.mid.id])

		self.job.refresh_from_db()
		self.assertEqual(self.job.notified_provider_ids, [self.near.id, self.mid.id])
		self.assertAlmostEqual(float(self.job.job_latitude), JOB_LAT)
		self.assertIsNotNone(self.job.dispatched_at)

		entries = InboxEntry.objects.filter(booking_id=self.job.booking_id)
		self.assertEqual({e.provider_id for e in entries}, {self.near.id, self.mid.id})
		for entry in entries:
			self.assertEqual(entry.status, JobStatus.PENDING)
			self.assertEqual(entry.booking_index, self.job.position)
			self.assertEqual(entry.customer_key, '9000000000')
			self.assertEqual(entry.service_name, 'AC Repair')
			minutes = (entry.expires_at - entry.created_at).total_seconds() / 60
			self.assertAlmostEqual(minutes, 30, places=3)

	def test_redispatch_keeps_the_recorded_notified_set(self):
		dispatch_job(self.job.pk)

		# The edge provider moves inside the cutoff after the first dispatch
		ProviderProfile.objects.filter(user=self.edge).update(current_latitude=JOB_LAT)
		result = dispatch_job(self.job.pk)

		self.job.refresh_from_db()
		self.assertEqual(self.job.notified_provider_ids, [self.near.id, self.mid.id])
		self.assertEqual(result.notified_provider_ids, [self.near.id, self.mid.id])
		self.assertFalse(InboxEntry.objects.filter(provider=self.edge).exists())
		self.assertEqual(InboxEntry.objects.filter(booking_id=self.job.booking_id).count(), 2)

	def test_no_candidates_leaves_job_untouched(self):
		job = make_job(self.customer, booking_id='booking-2', service_name='Carpentry')

		with self.assertLogs('services.matching.job_dispatch', level='WARNING') as logs:
			result = dispatch_job(job.pk)

		self.assertEqual(result.status, 'no_candidates')
		self.assertIn('[MONITORING]', logs.output[0])
		job.refresh_from_db()
		self.assertIsNone(job.notified_provider_ids)
		self.assertFalse(InboxEntry.objects.filter(booking_id=job.booking_id).exists())

	def test_candidates_but_none_qualified(self):
		ProviderProfile.objects.filter(user__in=[self.near, self.mid]).update(verification_status='rejected')

		result = dispatch_job(self.job.pk)

		self.assertEqual(result.status, 'no_qualified')
		self.assertEqual(result.candidate_count, 1)
		self.assertFalse(InboxEntry.objects.exists())

	def test_missing_customer_location_uses_fallback_coordinates(self):
		CustomerProfile.objects.filter(user=self.customer).update(latitude=None, longitude=None)
		fallback_provider = make_provider('fallback', lat=19.8762, lon=75.3433)
		ProviderProfile.objects.exclude(user=fallback_provider).update(verification_status='pending')

		with dispatch_settings(FALLBACK_COORDINATES=(19.8762, 75.3433)):
			result = dispatch_job(self.job.pk)

		self.assertEqual(result.notified_provider_ids, [fallback_provider.id])
		self.job.refresh_from_db()
		self.assertAlmostEqual(float(self.job.job_longitude), 75.3433)

	def test_accepted_job_is_not_dispatched(self):
		Job.objects.filter(pk=self.job.pk).update(status=JobStatus.ACCEPTED)

		result = dispatch_job(self.job.pk)

		self.assertEqual(result.status, 'skipped')
		self.assertFalse(InboxEntry.objects.exists())

	def test_missing_job_is_skipped(self):
		self.assertEqual(dispatch_job(999999).status, 'skipped')

	@patch('realtime.notifications.notify_provider_event')
	@patch('bookings.tasks.send_push_task')
	def test_alerts_are_sent_after_commit(self, mocked_push, mocked_event):
		with self.captureOnCommitCallbacks(execute=False) as callbacks:
			dispatch_job(self.job.pk)
			mocked_push.delay.assert_not_called()

		for callback in callbacks:
			callback()

		# Only the provider with a token gets a push; both get the in-app event
		mocked_push.delay.assert_called_once_with(
			'token-near',
			'New Job Available!',
			'AC Repair service request nearby',
			{'type': 'new_job_alert', 'booking_id': self.job.booking_id},
		)
		self.assertEqual(
			[c.args[1] for c in mocked_event.call_args_list],
			[self.near.id, self.mid.id]
		)

	@patch('realtime.notifications.notify_provider_event')
	@patch('bookings.tasks.send_push_task')
	def test_push_failure_does_not_break_dispatch(self, mocked_push, mocked_event):
		mocked_push.delay.side_effect = RuntimeError('broker down')

		with self.captureOnCommitCallbacks(execute=True):
			result = dispatch_job(self.job.pk)

		self.assertEqual(result.status, 'dispatched')
		self.assertEqual(mocked_event.call_count, 2)
