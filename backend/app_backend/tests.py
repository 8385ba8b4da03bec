from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from rest_framework.test import APIClient


class HealthCheckTests(TestCase):
	def test_health_check_is_public(self):
		response = APIClient().get('/health/')

		self.assertIn(response.status_code, (200, 503))
		self.assertEqual(response.data['services']['database'], 'healthy')
		self.assertEqual(response.data['services']['channels'], 'healthy')
		self.assertEqual(response.data['services']['celery'], 'healthy')

	@patch('app_backend.views._check_database', side_effect=DatabaseError('down'))
	def test_database_failure_is_unhealthy(self, mocked_check):
		response = APIClient().get('/health/')

		self.assertEqual(response.status_code, 503)
		self.assertEqual(response.data['status'], 'unhealthy')
		self.assertEqual(response.data['services']['database'], 'unhealthy: down')
