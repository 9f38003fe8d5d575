"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.ride_consumer import RideConsumer

websocket_urlpatterns = [
    # Ride tracking WebSocket endpoint (shared by both roles)
    # URL: ws://localhost:8000/ws/ride/?token=<access>
    re_path(
        r"ws/ride/$",
        RideConsumer.as_asgi(),
        name="ride-ws"
    ),
]
