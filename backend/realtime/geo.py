"""
Redis GEO-based driver location index.

This module provides:
- The set of drivers currently available for dispatch, indexed by position
- Radius queries returning driver ids nearest-first
- Position refresh for drivers already in the available set

Architecture:
- Available drivers live in one Redis GEO set (GEOADD / GEORADIUS / ZREM)
- Membership is the dispatch-side view of availability; the database flag on
  DriverProfile stays authoritative and is re-checked on every dispatch step
- Redis failures never propagate: queries degrade to an empty result and
  writes are logged and dropped
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import redis
from django.conf import settings

logger = logging.getLogger(__name__)


# ---------------------- Configuration ----------------------

REDIS_GEO_CONFIG = {
    # GEOADD key for available driver positions
    "AVAILABLE_DRIVERS_KEY": "drivers:available",
    # Upper bound on members returned by one radius query
    "MAX_RESULTS": 200,
}


# ---------------------- Redis Connection ----------------------

def get_redis_client() -> redis.Redis:
    """Get Redis client for GEO operations."""
    return redis.Redis.from_url(
        getattr(settings, 'REDIS_GEO_URL', settings.CELERY_BROKER_URL),
        decode_responses=True
    )


# ---------------------- Driver Location Service ----------------------

@dataclass
class NearbyDriver:
    """One hit of a radius query."""
    driver_id: int
    distance_km: float


@dataclass
class DriverLocation:
    """Driver position as stored in the index."""
    driver_id: int
    latitude: float
    longitude: float


class DriverLocationService:
    """
    Redis GEO-backed index of available drivers.

    Provides:
    - within_radius(): drivers inside a radius, sorted nearest-first
    - add_driver() / remove_driver(): availability membership
    - refresh_position(): move a driver that is already indexed
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self._redis = redis_client or get_redis_client()
        self._config = REDIS_GEO_CONFIG

    @property
    def key(self) -> str:
        return self._config["AVAILABLE_DRIVERS_KEY"]

    # ---------------------- Membership ----------------------

    def add_driver(self, driver_id: int, lat: float, lon: float) -> bool:
        """Add (or move) a driver in the available set."""
        try:
            self._redis.geoadd(self.key, (float(lon), float(lat), str(driver_id)))
            return True
        except redis.RedisError:
            logger.exception("Failed to add driver %s to geo index", driver_id)
            return False

    def remove_driver(self, driver_id: int) -> bool:
        """Remove driver from the available set."""
        try:
            self._redis.zrem(self.key, str(driver_id))
            return True
        except redis.RedisError:
            logger.exception("Failed to remove driver %s from geo index", driver_id)
            return False

    def refresh_position(self, driver_id: int, lat: float, lon: float) -> bool:
        """Update the position of a driver only if it is already indexed (GEOADD XX)."""
        try:
            self._redis.geoadd(self.key, (float(lon), float(lat), str(driver_id)), xx=True)
            return True
        except redis.RedisError:
            logger.exception("Failed to refresh position for driver %s", driver_id)
            return False

    # ---------------------- Queries ----------------------

    def within_radius(self, lat: float, lon: float, radius_km: float) -> List[NearbyDriver]:
        """
        Query available drivers using GEORADIUS.

        Args:
            lat: Center latitude
            lon: Center longitude
            radius_km: Search radius in kilometres

        Returns:
            List of NearbyDriver sorted by distance (closest first). Empty when
            Redis is unreachable.
        """
        try:
            results = self._redis.georadius(
                self.key,
                float(lon), float(lat),
                float(radius_km),
                unit="km",
                withdist=True,
                count=self._config["MAX_RESULTS"],
                sort="ASC",
            )
        except redis.RedisError:
            logger.exception("Geo index query failed (radius=%skm), treating as empty", radius_km)
            return []

        return [
            NearbyDriver(driver_id=int(member), distance_km=float(distance))
            for member, distance in results
        ]

    def get_driver_location(self, driver_id: int) -> Optional[DriverLocation]:
        """Get a specific driver's indexed position."""
        try:
            pos = self._redis.geopos(self.key, str(driver_id))
        except redis.RedisError:
            logger.exception("Failed to read position for driver %s", driver_id)
            return None

        if not pos or not pos[0]:
            return None
        lon, lat = pos[0]
        return DriverLocation(driver_id=driver_id, latitude=lat, longitude=lon)

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except redis.RedisError:
            return False


# ---------------------- Singleton Instance ----------------------

_driver_location_service: Optional[DriverLocationService] = None


def get_driver_location_service() -> DriverLocationService:
    """Get singleton DriverLocationService instance."""
    global _driver_location_service
    if _driver_location_service is None:
        _driver_location_service = DriverLocationService()
    return _driver_location_service
