from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIClient

from services.ride_management import RouteLookupError, UpstreamError
from .models import Ride, RideStatus, RideStatusChange
from accounts.models import User

ROUTE = {"type": "LineString", "coordinates": [[77.2090, 28.6139], [77.2295, 28.6129]]}

RIDE_BODY = {
    'origin_latitude': '28.613900',
    'origin_longitude': '77.209000',
    'destination_latitude': '28.612900',
    'destination_longitude': '77.229500',
}


@patch('services.ride_management.ride_lifecycle.fetch_route', return_value=ROUTE)
class RideApiTests(TestCase):
    def setUp(self):
        self.rider = User.objects.create_user(
            username='rider',
            password='pass1234',
            role='rider',
        )
        self.other_rider = User.objects.create_user(
            username='other_rider',
            password='pass1234',
            role='rider',
        )
        self.driver_one = User.objects.create_user(
            username='driver_one',
            password='driver1234',
            role='driver',
        )
        self.driver_two = User.objects.create_user(
            username='driver_two',
            password='driver1234',
            role='driver',
        )

    def client_for(self, user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def create_ride(self):
        response = self.client_for(self.rider).post('/api/rides/', RIDE_BODY, format='json')
        self.assertEqual(response.status_code, 201, response.data)
        return response.data['id']

    def test_rider_creates_ride(self, mock_route):
        response = self.client_for(self.rider).post('/api/rides/', RIDE_BODY, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['status'], 'SEARCHING')
        self.assertEqual(response.data['route'], ROUTE)

        ride = Ride.objects.get(id=response.data['id'])
        self.assertEqual(ride.rider, self.rider)
        self.assertIsNone(ride.driver)

    def test_create_rejects_out_of_range_coordinates(self, mock_route):
        body = dict(RIDE_BODY, origin_latitude='123.0')
        response = self.client_for(self.rider).post('/api/rides/', body, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('origin_latitude', response.data)
        mock_route.assert_not_called()

    def test_route_failure_is_bad_gateway(self, mock_route):
        mock_route.side_effect = RouteLookupError("No routes found")
        response = self.client_for(self.rider).post('/api/rides/', RIDE_BODY, format='json')

        self.assertEqual(response.status_code, 502)
        self.assertFalse(Ride.objects.exists())

    def test_driver_cannot_create_ride(self, mock_route):
        response = self.client_for(self.driver_one).post('/api/rides/', RIDE_BODY, format='json')
        self.assertEqual(response.status_code, 403)

    def test_unauthenticated_requests_are_rejected(self, mock_route):
        response = APIClient().get('/api/rides/searching/')
        self.assertEqual(response.status_code, 401)

    def test_claim_then_second_claim_conflicts(self, mock_route):
        ride_id = self.create_ride()

        first = self.client_for(self.driver_one).post(f'/api/rides/{ride_id}/claim/')
        second = self.client_for(self.driver_two).post(f'/api/rides/{ride_id}/claim/')

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.data, {'id': ride_id, 'status': 'IN_PROGRESS'})
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.data['status'], 'IN_PROGRESS')

        status_response = self.client_for(self.rider).get(f'/api/rides/{ride_id}/status/')
        self.assertEqual(status_response.data, {'ride_id': ride_id, 'status': 'IN_PROGRESS'})

        detail = self.client_for(self.rider).get(f'/api/rides/{ride_id}/')
        self.assertEqual(detail.data['driver_id'], self.driver_one.id)

    def test_rider_cannot_claim(self, mock_route):
        ride_id = self.create_ride()
        response = self.client_for(self.rider).post(f'/api/rides/{ride_id}/claim/')
        self.assertEqual(response.status_code, 403)

    def test_cancel_then_claim_conflicts(self, mock_route):
        ride_id = self.create_ride()

        cancel = self.client_for(self.rider).post(f'/api/rides/{ride_id}/cancel/')
        self.assertEqual(cancel.status_code, 200)
        self.assertEqual(cancel.data['status'], 'CANCELED')

        claim = self.client_for(self.driver_one).post(f'/api/rides/{ride_id}/claim/')
        self.assertEqual(claim.status_code, 409)

    def test_wrong_driver_cannot_complete(self, mock_route):
        ride_id = self.create_ride()
        self.client_for(self.driver_one).post(f'/api/rides/{ride_id}/claim/')

        forbidden = self.client_for(self.driver_two).post(f'/api/rides/{ride_id}/complete/')
        self.assertEqual(forbidden.status_code, 403)

        done = self.client_for(self.driver_one).post(f'/api/rides/{ride_id}/complete/')
        self.assertEqual(done.status_code, 200)
        self.assertEqual(done.data['status'], 'COMPLETED')

        again = self.client_for(self.driver_one).post(f'/api/rides/{ride_id}/complete/')
        self.assertEqual(again.status_code, 409)

    def test_other_rider_is_forbidden(self, mock_route):
        ride_id = self.create_ride()
        client = self.client_for(self.other_rider)

        self.assertEqual(client.get(f'/api/rides/{ride_id}/').status_code, 403)
        self.assertEqual(client.get(f'/api/rides/{ride_id}/status/').status_code, 403)
        self.assertEqual(client.post(f'/api/rides/{ride_id}/cancel/').status_code, 403)
        self.assertEqual(Ride.objects.get(id=ride_id).status, RideStatus.SEARCHING)

    def test_unknown_ride_is_not_found(self, mock_route):
        response = self.client_for(self.rider).get('/api/rides/999999/status/')
        self.assertEqual(response.status_code, 404)

    def test_searching_pool_lists_open_rides_only(self, mock_route):
        open_ride = self.create_ride()
        taken = self.create_ride()
        self.client_for(self.driver_one).post(f'/api/rides/{taken}/claim/')

        response = self.client_for(self.driver_two).get('/api/rides/searching/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['rides'][0]['id'], open_ride)

    def test_history_lists_transitions(self, mock_route):
        ride_id = self.create_ride()
        self.client_for(self.driver_one).post(f'/api/rides/{ride_id}/claim/')

        response = self.client_for(self.driver_one).get(f'/api/rides/{ride_id}/history/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [(h['from_status'], h['to_status']) for h in response.data['history']],
            [(None, 'SEARCHING'), ('SEARCHING', 'IN_PROGRESS')],
        )
        self.assertEqual(response.data['history'][1]['actor_id'], self.driver_one.id)

    def test_storage_failure_is_service_unavailable(self, mock_route):
        ride_id = self.create_ride()

        with patch(
            'services.ride_management.ride_store.claim_ride',
            side_effect=UpstreamError("Failed to claim ride"),
        ):
            response = self.client_for(self.driver_one).post(f'/api/rides/{ride_id}/claim/')

        self.assertEqual(response.status_code, 503)
        self.assertEqual(
            RideStatusChange.objects.filter(ride_id=ride_id).count(),
            1,
        )
