"""Base WebSocket consumer with shared functionality for all consumers."""

import logging
from typing import Dict, Any, Set

from channels.generic.websocket import AsyncJsonWebsocketConsumer

logger = logging.getLogger(__name__)


class BaseConsumer(AsyncJsonWebsocketConsumer):
    """
    Base consumer with shared connection management and helper methods.

    Subclasses set ``role`` and ``group_prefix``; the consumer joins
    ``<group_prefix>_<user_id>``, the group realtime.notifications publishes to.
    Subclasses may override handle_message(msg_type, data) for inbound messages.
    """

    role = None
    group_prefix = None

    async def connect(self):
        self.user = self.scope["user"]

        if self.user.is_anonymous or getattr(self.user, "role", None) != self.role:
            await self.close()
            return

        self.user_id = self.user.id

        # Track joined groups for cleanup
        self.joined_groups: Set[str] = set()

        self.personal_group = f"{self.group_prefix}_{self.user_id}"
        await self._join_group(self.personal_group)

        await self.accept()
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
        })

    async def disconnect(self, close_code):
        """Leave all joined groups on disconnect."""
        try:
            for group in list(getattr(self, "joined_groups", ())):
                await self._leave_group(group)
        except Exception:
            logger.exception("Error during disconnect for user %s", getattr(self, 'user_id', 'unknown'))

    async def receive_json(self, data: Dict[str, Any]):
        """Route incoming messages to appropriate handlers."""
        msg_type = data.get("type")
        if not msg_type:
            await self.send_error("Message type is required")
            return

        try:
            await self.handle_message(msg_type, data)
        except Exception:
            logger.exception("Error handling message type %s", msg_type)
            await self.send_error(f"Error processing {msg_type}")

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Override in subclass to handle specific message types."""
        await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Group Management Helpers ----------------------

    async def _join_group(self, group_name: str):
        """Join a channel group and track it."""
        await self.channel_layer.group_add(group_name, self.channel_name)
        self.joined_groups.add(group_name)

    async def _leave_group(self, group_name: str):
        """Leave a channel group and untrack it."""
        await self.channel_layer.group_discard(group_name, self.channel_name)
        self.joined_groups.discard(group_name)

    # ---------------------- Response Helpers ----------------------

    async def send_error(self, message: str):
        """Send an error message to the client."""
        await self.send_json({
            "type": "error",
            "message": message,
        })

    # ---------------------- Event Handlers ----------------------
    # group_send messages with type "job.event" land here

    async def job_event(self, event):
        """Forward a coordinator event (bid_accepted, job_request, ...) to the client."""
        await self.send_json({
            "type": event.get("event"),
            **(event.get("payload") or {}),
        })
