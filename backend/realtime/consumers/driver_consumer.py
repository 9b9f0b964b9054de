"""Driver WebSocket consumer: job events in, GPS updates out."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class DriverConsumer(BaseConsumer):
    """
    WebSocket consumer for drivers.

    Handles:
        - Job requests, bid results, strikes (via job_event)
        - Driver location updates
    """

    role = "driver"
    group_prefix = "driver"

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle driver-specific messages."""
        if msg_type == "driver_location_update":
            await self._handle_location_update(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    async def _handle_location_update(self, data: Dict[str, Any]):
        lat = data.get("latitude")
        lon = data.get("longitude")

        if lat is None or lon is None:
            await self.send_error("driver_location_update requires latitude and longitude")
            return

        try:
            lat, lon = float(lat), float(lon)
        except (TypeError, ValueError):
            await self.send_error("latitude and longitude must be numbers")
            return

        if not await self._update_location(lat, lon):
            await self.send_error("Driver profile not found")
            return

        logger.debug("Driver %s location update: lat=%s, lon=%s", self.user_id, lat, lon)
        await self.send_json({"type": "location_updated", "latitude": lat, "longitude": lon})

    @database_sync_to_async
    def _update_location(self, lat: float, lon: float) -> bool:
        from drivers.models import DriverProfile
        from drivers.services import update_driver_location

        profile = DriverProfile.objects.filter(user_id=self.user_id).first()
        if profile is None:
            return False
        update_driver_location(profile, round(lat, 6), round(lon, 6))
        return True
