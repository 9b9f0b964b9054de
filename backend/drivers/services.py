"""
Driver-owned state: GPS position and going on/off shift.

Going online or offline is the driver's own choice and is refused while the
driver is assigned to an unfinished job; while on a job, availability belongs to
bid acceptance and delivery finalization.
"""

import logging

from django.db import transaction
from django.utils import timezone

from drivers.models import DriverProfile
from jobs.models import Job, TERMINAL_STATUSES
from realtime import geo
from services.exceptions import ForbiddenError, InvalidStateError

logger = logging.getLogger(__name__)


def has_open_job(profile: DriverProfile) -> bool:
    return Job.objects.filter(driver_id=profile.user_id).exclude(status__in=TERMINAL_STATUSES).exists()


def update_driver_location(profile: DriverProfile, lat, lon):
    """
    Update driver location. Used by:
    - HTTP fallback
    - WebSocket driver location events

    The geo index position is only refreshed for drivers already in it;
    membership itself is never changed here.
    """
    profile.current_latitude = lat
    profile.current_longitude = lon
    profile.last_location_update = timezone.now()
    profile.save(update_fields=["current_latitude", "current_longitude", "last_location_update"])

    geo.get_driver_location_service().refresh_position(profile.user_id, lat, lon)
    return profile


@transaction.atomic
def set_availability(profile: DriverProfile, available: bool, lat=None, lon=None):
    """Driver goes online (joins the geo index) or offline (leaves it)."""
    profile = DriverProfile.objects.select_for_update().get(pk=profile.pk)

    if has_open_job(profile):
        raise InvalidStateError("Finish or cancel your current job first")

    if available:
        if profile.is_deactivated:
            raise ForbiddenError("Your account is deactivated")
        if profile.verification_status != 'APPROVED':
            raise ForbiddenError("Your account has not been approved yet")
        if lat is not None and lon is not None:
            profile.current_latitude = lat
            profile.current_longitude = lon
            profile.last_location_update = timezone.now()
        if not profile.has_location:
            raise InvalidStateError("Share your location before going online")

    profile.is_available = available
    profile.save(update_fields=["is_available", "current_latitude", "current_longitude", "last_location_update"])

    service = geo.get_driver_location_service()
    if available:
        latitude, longitude = profile.current_latitude, profile.current_longitude
        transaction.on_commit(lambda: service.add_driver(profile.user_id, latitude, longitude))
    else:
        transaction.on_commit(lambda: service.remove_driver(profile.user_id))

    logger.info("Driver %s is now %s", profile.user_id, "online" if available else "offline")
    return profile
