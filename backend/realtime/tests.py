from unittest.mock import patch

from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.test import SimpleTestCase, TransactionTestCase
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import User
from services import ride_management
from services.ride_management import Caller
from realtime.middleware import JWTAuthMiddleware
from realtime.notifications import notify_ride_group, ride_group_name
from realtime.routing import websocket_urlpatterns

ORIGIN = (28.6139, 77.2090)
DESTINATION = (28.6129, 77.2295)
ROUTE = {"type": "LineString", "coordinates": [[77.2090, 28.6139], [77.2295, 28.6129]]}

application = JWTAuthMiddleware(URLRouter(websocket_urlpatterns))


@patch('services.ride_management.ride_lifecycle.fetch_route', return_value=ROUTE)
class RideConsumerTests(TransactionTestCase):
    def setUp(self):
        self.rider = User.objects.create_user(username='rider', password='pass1234', role='rider')
        self.stranger = User.objects.create_user(username='stranger', password='pass1234', role='rider')
        self.driver = User.objects.create_user(username='driver', password='pass1234', role='driver')

    async def connect(self, user=None):
        path = '/ws/ride/'
        if user is not None:
            path += f'?token={AccessToken.for_user(user)}'
        communicator = WebsocketCommunicator(application, path)
        connected, _ = await communicator.connect()
        return communicator, connected

    async def test_anonymous_connection_is_rejected(self, mock_route):
        communicator = WebsocketCommunicator(application, '/ws/ride/')
        connected, code = await communicator.connect()
        self.assertFalse(connected)
        self.assertEqual(code, 4001)

    async def test_invalid_token_is_rejected(self, mock_route):
        communicator = WebsocketCommunicator(application, '/ws/ride/?token=garbage')
        connected, _ = await communicator.connect()
        self.assertFalse(connected)

    async def test_driver_sees_new_rides_in_pool(self, mock_route):
        communicator, connected = await self.connect(self.driver)
        self.assertTrue(connected)
        greeting = await communicator.receive_json_from()
        self.assertEqual(greeting['type'], 'connection_established')
        self.assertEqual(greeting['role'], 'driver')

        result = await database_sync_to_async(ride_management.create_ride)(
            Caller.from_user(self.rider), ORIGIN, DESTINATION
        )

        event = await communicator.receive_json_from()
        self.assertEqual(event['type'], 'ride_created')
        self.assertEqual(event['ride_id'], result.ride.id)
        self.assertEqual(event['status'], 'SEARCHING')

        await communicator.disconnect()

    async def test_rider_tracking_receives_claim(self, mock_route):
        result = await database_sync_to_async(ride_management.create_ride)(
            Caller.from_user(self.rider), ORIGIN, DESTINATION
        )
        ride_id = result.ride.id

        communicator, connected = await self.connect(self.rider)
        self.assertTrue(connected)
        await communicator.receive_json_from()

        await communicator.send_json_to({'type': 'start_tracking', 'ride_id': ride_id})
        started = await communicator.receive_json_from()
        self.assertEqual(started, {'type': 'tracking_started', 'ride_id': ride_id})

        await database_sync_to_async(ride_management.claim_ride)(Caller.from_user(self.driver), ride_id)

        event = await communicator.receive_json_from()
        self.assertEqual(event['type'], 'ride_claimed')
        self.assertEqual(event['status'], 'IN_PROGRESS')
        self.assertEqual(event['driver_id'], self.driver.id)

        await communicator.disconnect()

    async def test_stranger_cannot_track_ride(self, mock_route):
        result = await database_sync_to_async(ride_management.create_ride)(
            Caller.from_user(self.rider), ORIGIN, DESTINATION
        )

        communicator, connected = await self.connect(self.stranger)
        self.assertTrue(connected)
        await communicator.receive_json_from()

        await communicator.send_json_to({'type': 'start_tracking', 'ride_id': result.ride.id})
        response = await communicator.receive_json_from()
        self.assertEqual(response['type'], 'error')

        await communicator.disconnect()

    async def test_ping_pong(self, mock_route):
        communicator, _ = await self.connect(self.driver)
        await communicator.receive_json_from()

        await communicator.send_json_to({'type': 'ping'})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'pong'})

        await communicator.disconnect()

    async def test_unknown_message_type(self, mock_route):
        communicator, _ = await self.connect(self.rider)
        await communicator.receive_json_from()

        await communicator.send_json_to({'type': 'dance'})
        response = await communicator.receive_json_from()
        self.assertEqual(response, {'type': 'error', 'message': 'Unknown message type: dance'})

        await communicator.disconnect()


class NotificationTests(SimpleTestCase):
    def test_channel_layer_failure_is_swallowed(self):
        class FakeRide:
            id = 7
            status = 'IN_PROGRESS'
            driver_id = 3

        with patch('realtime.notifications.get_channel_layer', side_effect=RuntimeError("redis down")):
            self.assertFalse(notify_ride_group('ride_claimed', FakeRide()))

    def test_group_name(self):
        self.assertEqual(ride_group_name(12), 'ride_12')
