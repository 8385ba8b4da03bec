from unittest.mock import MagicMock, patch

import requests
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.test import SimpleTestCase, TestCase, override_settings

from accounts.models import User
from bookings.models import JobStatus
from bookings.testing import make_customer, make_job
from .consumers import CustomerConsumer, ProviderConsumer
from .middleware import JWTAuthMiddleware
from .notifications import build_status_message, notify_customer_status, send_push

PUSH_ON = {'SERVER_KEY': 'server-key', 'ENDPOINT': 'https://push.example.com/send', 'TIMEOUT_SECONDS': 2}


def as_user(consumer, user):
	"""Wrap a consumer app so every connection carries `user` in its scope."""
	app = consumer.as_asgi()

	async def application(scope, receive, send):
		return await app({**scope, 'user': user}, receive, send)

	return application


class StatusMessageTests(SimpleTestCase):
	def test_every_post_accept_status_has_a_message(self):
		for status in ('accepted', 'arrived', 'in_progress', 'payment_pending', 'completed'):
			title, body = build_status_message(status, 'Ravi', 'AC Repair')
			self.assertTrue(title)
			self.assertTrue(body)

	def test_accepted_message(self):
		title, body = build_status_message('accepted', 'Ravi', 'AC Repair')
		self.assertEqual(title, 'Order Accepted!')
		self.assertEqual(body, 'Ravi has accepted your AC Repair request. They will arrive soon!')

	def test_defaults_for_missing_names(self):
		_, body = build_status_message('arrived', '', '')
		self.assertEqual(body, 'Your provider has arrived at your location for service')

	def test_pending_is_silent(self):
		self.assertIsNone(build_status_message('pending', 'Ravi', 'AC Repair'))


class SendPushTests(SimpleTestCase):
	def test_disabled_without_server_key(self):
		with patch('realtime.notifications.requests.post') as mocked_post:
			self.assertFalse(send_push('token', 'Title', 'Body'))
		mocked_post.assert_not_called()

	@override_settings(PUSH_NOTIFICATIONS=PUSH_ON)
	def test_empty_token_is_skipped(self):
		self.assertFalse(send_push('', 'Title', 'Body'))

	@override_settings(PUSH_NOTIFICATIONS=PUSH_ON)
	def test_posts_to_gateway(self):
		with patch('realtime.notifications.requests.post', return_value=MagicMock()) as mocked_post:
			self.assertTrue(send_push('token', 'Title', 'Body', {'booking_id': 'b1', 'n': 3}))

		args, kwargs = mocked_post.call_args
		self.assertEqual(args[0], 'https://push.example.com/send')
		self.assertEqual(kwargs['headers'], {'Authorization': 'key=server-key'})
		self.assertEqual(kwargs['json']['to'], 'token')
		self.assertEqual(kwargs['json']['data'], {'booking_id': 'b1', 'n': '3'})
		self.assertEqual(kwargs['timeout'], 2)

	@override_settings(PUSH_NOTIFICATIONS=PUSH_ON)
	def test_gateway_failure_returns_false(self):
		with patch('realtime.notifications.requests.post', side_effect=requests.Timeout('slow')):
			self.assertFalse(send_push('token', 'Title', 'Body'))


class CustomerStatusNotificationTests(TestCase):
	def setUp(self):
		self.customer = make_customer(token='customer-token')
		self.job = make_job(self.customer)
		self.job.status = JobStatus.ACCEPTED
		self.job.provider_name = 'Ravi'

	@patch('realtime.notifications._group_send', return_value=True)
	@patch('bookings.tasks.send_push_task')
	def test_push_and_socket_event(self, mocked_push, mocked_group_send):
		self.assertTrue(notify_customer_status(self.job))

		mocked_push.delay.assert_called_once_with(
			'customer-token',
			'Order Accepted!',
			'Ravi has accepted your AC Repair request. They will arrive soon!',
			{'type': 'order_status_update', 'booking_id': self.job.booking_id, 'status': 'accepted'},
		)
		group, payload = mocked_group_send.call_args.args
		self.assertEqual(group, f'customer_{self.customer.id}')
		self.assertEqual(payload['type'], 'job_status_update')
		self.assertEqual(payload['status'], 'accepted')

	@patch('realtime.notifications._group_send', return_value=True)
	@patch('bookings.tasks.send_push_task')
	def test_pending_sends_nothing(self, mocked_push, mocked_group_send):
		self.job.status = JobStatus.PENDING

		self.assertFalse(notify_customer_status(self.job))
		mocked_push.delay.assert_not_called()
		mocked_group_send.assert_not_called()


class ConsumerTests(SimpleTestCase):
	# Channels' consumer dispatch closes stale DB connections, so the DB must be reachable
	databases = {'default'}

	def setUp(self):
		self.provider = User(id=101, username='provider', role='provider')
		self.customer = User(id=202, username='customer', role='customer')

	async def test_anonymous_connection_is_rejected(self):
		communicator = WebsocketCommunicator(
			JWTAuthMiddleware(ProviderConsumer.as_asgi()), '/ws/provider/?token=garbage'
		)
		connected, _ = await communicator.connect()
		self.assertFalse(connected)

	async def test_wrong_role_is_closed_with_4003(self):
		communicator = WebsocketCommunicator(as_user(ProviderConsumer, self.customer), '/ws/provider/')
		connected, code = await communicator.connect()

		self.assertFalse(connected)
		self.assertEqual(code, 4003)

	async def test_provider_receives_job_alerts(self):
		communicator = WebsocketCommunicator(as_user(ProviderConsumer, self.provider), '/ws/provider/')
		connected, _ = await communicator.connect()
		self.assertTrue(connected)

		hello = await communicator.receive_json_from()
		self.assertEqual(hello, {'type': 'connection_established', 'user_id': 101, 'role': 'provider'})

		await get_channel_layer().group_send('provider_101', {
			'type': 'new_job_alert',
			'booking_id': 'b1',
			'service_name': 'AC Repair',
			'message': 'AC Repair service request nearby',
		})
		alert = await communicator.receive_json_from()
		self.assertEqual(alert['type'], 'new_job_alert')
		self.assertEqual(alert['booking_id'], 'b1')

		await get_channel_layer().group_send('provider_101', {'type': 'job_unavailable', 'booking_id': 'b1'})
		gone = await communicator.receive_json_from()
		self.assertEqual(gone['type'], 'job_unavailable')

		await communicator.disconnect()

	async def test_ping_and_bad_messages(self):
		communicator = WebsocketCommunicator(as_user(ProviderConsumer, self.provider), '/ws/provider/')
		await communicator.connect()
		await communicator.receive_json_from()

		await communicator.send_json_to({'type': 'ping'})
		self.assertEqual(await communicator.receive_json_from(), {'type': 'pong'})

		await communicator.send_json_to({'type': 'location_update', 'latitude': 'north'})
		error = await communicator.receive_json_from()
		self.assertEqual(error['type'], 'error')

		await communicator.send_json_to({'type': 'teleport'})
		error = await communicator.receive_json_from()
		self.assertEqual(error['message'], 'Unknown message type: teleport')

		await communicator.disconnect()

	async def test_customer_receives_status_updates(self):
		communicator = WebsocketCommunicator(as_user(CustomerConsumer, self.customer), '/ws/customer/')
		connected, _ = await communicator.connect()
		self.assertTrue(connected)
		await communicator.receive_json_from()

		await get_channel_layer().group_send('customer_202', {
			'type': 'job_status_update',
			'booking_id': 'b1',
			'status': 'arrived',
			'title': 'Provider Arrived',
			'message': 'Ravi has arrived at your location for AC Repair',
			'provider_name': 'Ravi',
		})
		update = await communicator.receive_json_from()
		self.assertEqual(update['status'], 'arrived')
		self.assertEqual(update['provider_name'], 'Ravi')

		await communicator.disconnect()

	def test_parse_coordinates(self):
		self.assertEqual(ProviderConsumer.parse_coordinates({'latitude': '19.8', 'longitude': 75}), (19.8, 75.0))
		self.assertIsNone(ProviderConsumer.parse_coordinates({'latitude': 91, 'longitude': 75}))
		self.assertIsNone(ProviderConsumer.parse_coordinates({}))
