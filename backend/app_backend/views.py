import asyncio

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import DatabaseError
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from rides.models import Ride

CHANNEL_PING_TIMEOUT_SECONDS = 2


def _check_database():
    try:
        Ride.objects.exists()
    except DatabaseError as e:
        return f"unhealthy: {e}"
    return "healthy"


async def _ping_channel_layer(channel_layer):
    channel = await channel_layer.new_channel()
    await channel_layer.send(channel, {"type": "health.ping"})
    await asyncio.wait_for(channel_layer.receive(channel), CHANNEL_PING_TIMEOUT_SECONDS)


def _check_channel_layer():
    """Send one message through the channel layer and read it back."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return "unhealthy: no channel layer"
    try:
        async_to_sync(_ping_channel_layer)(channel_layer)
    except Exception as e:
        return f"unhealthy: {e!r}"
    return "healthy"


@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def health_check(request):
    """Health check endpoint for monitoring system status"""

    services = {
        "database": _check_database(),
        "channels": _check_channel_layer(),
    }
    healthy = all(state == "healthy" for state in services.values())

    return Response(
        {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
