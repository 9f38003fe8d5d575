"""Base WebSocket consumer with shared functionality for all consumers."""

import logging
from typing import Dict, Any, Set

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from accounts.models import User

logger = logging.getLogger(__name__)

# Application close codes (4000-4999 are free for private use)
CLOSE_UNAUTHENTICATED = 4001
CLOSE_UNKNOWN_ROLE = 4003


class BaseConsumer(AsyncJsonWebsocketConsumer):
    """
    Base consumer: authenticated connections, group bookkeeping and a
    ping/pong heartbeat.

    Subclasses should override:
        - on_connect(): join extra groups, greet the client
        - handle_message(msg_type, data): handle incoming messages
    """

    async def connect(self):
        self.user = self.scope["user"]
        self.joined_groups: Set[str] = set()

        if self.user.is_anonymous:
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return

        self.user_id = self.user.id
        self.role = getattr(self.user, "role", None)
        if self.role not in User.Role.values:
            logger.warning("Rejecting websocket for user %s with role %r", self.user_id, self.role)
            await self.close(code=CLOSE_UNKNOWN_ROLE)
            return

        await self.accept()
        logger.debug("Websocket opened for %s %s", self.role, self.user_id)
        await self.on_connect()

    async def on_connect(self):
        """Override in subclass for custom connect logic."""
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
        })

    async def disconnect(self, close_code):
        """Leave all joined groups on disconnect."""
        for group in list(self.joined_groups):
            try:
                await self._leave_group(group)
            except Exception:
                logger.exception("Failed to leave %s for user %s", group, getattr(self, "user_id", None))

    async def receive_json(self, data: Dict[str, Any]):
        """Route incoming messages to appropriate handlers."""
        msg_type = data.get("type") if isinstance(data, dict) else None
        if not msg_type:
            await self.send_error("Message type is required")
            return

        if msg_type == "ping":
            await self.send_json({"type": "pong"})
            return

        try:
            await self.handle_message(msg_type, data)
        except Exception:
            logger.exception("Error handling message type %s from user %s", msg_type, self.user_id)
            await self.send_error(f"Error processing {msg_type}")

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Override in subclass to handle specific message types."""
        await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Group Management Helpers ----------------------

    async def _join_group(self, group_name: str):
        await self.channel_layer.group_add(group_name, self.channel_name)
        self.joined_groups.add(group_name)

    async def _leave_group(self, group_name: str):
        await self.channel_layer.group_discard(group_name, self.channel_name)
        self.joined_groups.discard(group_name)

    # ---------------------- Response Helpers ----------------------

    async def send_error(self, message: str):
        await self.send_json({
            "type": "error",
            "message": message,
        })

    async def send_success(self, event_type: str, **kwargs):
        await self.send_json({
            "type": event_type,
            **kwargs,
        })
