"""Ride tracking WebSocket consumer for real-time ride updates."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from realtime.notifications import SEARCHING_POOL_GROUP, ride_group_name
from .base import BaseConsumer

logger = logging.getLogger(__name__)


class RideConsumer(BaseConsumer):
    """
    WebSocket consumer for ride tracking.

    Used by both drivers and riders to:
        - Receive status updates (claimed, completed, canceled) for rides
          they take part in
        - (drivers) Watch rides enter and leave the searching pool
    """

    async def on_connect(self):
        """Set up ride tracking connection."""
        if self.role == "driver":
            await self._join_group(SEARCHING_POOL_GROUP)

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Ride tracking connection established",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle ride tracking messages."""

        if msg_type == "start_tracking":
            await self._handle_start_tracking(data)
        elif msg_type == "stop_tracking":
            await self._handle_stop_tracking(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Message Handlers ----------------------

    async def _handle_start_tracking(self, data: Dict[str, Any]):
        """
        Join a ride tracking group.
        Only the ride's rider and its assigned driver may join ride_<ride_id>.
        """
        ride_id = data.get("ride_id")

        if ride_id is None:
            await self.send_error("start_tracking requires ride_id")
            return

        is_valid = await self._validate_ride_participant(ride_id)
        if not is_valid:
            await self.send_error("You are not authorized to track this ride")
            return

        await self._join_group(ride_group_name(ride_id))
        await self.send_success("tracking_started", ride_id=ride_id)

    async def _handle_stop_tracking(self, data: Dict[str, Any]):
        """Leave a ride tracking group."""
        ride_id = data.get("ride_id")

        if ride_id is None:
            return

        await self._leave_group(ride_group_name(ride_id))
        await self.send_success("tracking_stopped", ride_id=ride_id)

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def _forward(self, event):
        await self.send_json({
            "type": event["type"],
            "ride_id": event.get("ride_id"),
            "status": event.get("status"),
            "driver_id": event.get("driver_id"),
            "message": event.get("message", ""),
        })

    async def ride_created(self, event):
        await self._forward(event)

    async def ride_claimed(self, event):
        await self._forward(event)

    async def ride_completed(self, event):
        await self._forward(event)

    async def ride_canceled(self, event):
        await self._forward(event)

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _validate_ride_participant(self, ride_id) -> bool:
        """Check if user is authorized to track this ride."""
        from services.ride_management import Caller, RideError, get_ride

        try:
            get_ride(Caller.from_user(self.user), int(ride_id))
        except (RideError, TypeError, ValueError):
            return False
        return True
