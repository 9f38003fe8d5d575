"""
Notification helpers for sending ride events to connected WebSocket clients.

Two groups are used:
    - ride_<id>: participants of a single ride (rider and assigned driver)
    - searching_rides: drivers watching the pool of open rides

Notifications are best-effort: a failing channel layer is logged and never
propagated to the caller, since the ride transition has already committed.
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

SEARCHING_POOL_GROUP = "searching_rides"


def ride_group_name(ride_id: int) -> str:
    return f"ride_{ride_id}"


def _ride_payload(event_type: str, ride, message: str = "") -> Dict[str, Any]:
    return {
        "type": event_type,
        "ride_id": ride.id,
        "status": ride.status,
        "driver_id": ride.driver_id,
        "message": message,
    }


def _group_send(group: str, payload: Dict[str, Any]) -> bool:
    try:
        channel_layer = get_channel_layer()
        if channel_layer is None:
            return False
        async_to_sync(channel_layer.group_send)(group, payload)
        return True
    except Exception:
        logger.exception("Failed to send %s to group %s", payload.get("type"), group)
        return False


def notify_ride_group(event_type: str, ride, message: str = "") -> bool:
    """Send a ride event to everyone tracking ``ride``."""
    return _group_send(ride_group_name(ride.id), _ride_payload(event_type, ride, message))


def notify_searching_pool(event_type: str, ride, message: str = "") -> bool:
    """Tell watching drivers that a ride entered or left the searching pool."""
    return _group_send(SEARCHING_POOL_GROUP, _ride_payload(event_type, ride, message))
