from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase


class HealthCheckTests(TestCase):
    def test_healthy(self):
        response = self.client.get('/health/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['services'], {'database': 'healthy', 'channels': 'healthy'})

    def test_database_down(self):
        with patch('app_backend.views.Ride.objects.exists', side_effect=DatabaseError("gone")):
            response = self.client.get('/health/')

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()['status'], 'unhealthy')

    def test_channel_layer_missing(self):
        with patch('app_backend.views.get_channel_layer', return_value=None):
            response = self.client.get('/health/')

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()['services']['channels'], 'unhealthy: no channel layer')
