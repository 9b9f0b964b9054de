"""
Notification fan-out over the Channels layer.

Every driver listens on ``driver_<user_id>`` and every customer on
``customer_<user_id>``. Delivery is fire-and-forget: a failure to publish is
logged and never raised back into the coordinator.
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

# Consumers handle every coordinator event through one method (job_event)
EVENT_MESSAGE_TYPE = "job.event"


def driver_channel(driver_id: int) -> str:
    return f"driver_{driver_id}"


def customer_channel(customer_id: int) -> str:
    return f"customer_{customer_id}"


def send_event(channel: str, event_type: str, payload: Dict[str, Any]) -> bool:
    """
    Publish one event to a role-scoped channel group.

    Args:
        channel: Group name (see driver_channel / customer_channel)
        event_type: Client-facing event name (job_request, bid_accepted, ...)
        payload: JSON-serializable body

    Returns:
        True if handed to the channel layer, False otherwise
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning("No channel layer available, dropping %s for %s", event_type, channel)
        return False

    message = {
        "type": EVENT_MESSAGE_TYPE,
        "event": event_type,
        "payload": payload,
    }
    try:
        logger.debug("WS -> %s: %s", channel, event_type)
        async_to_sync(channel_layer.group_send)(channel, message)
    except Exception:
        logger.exception("Failed to publish %s to %s", event_type, channel)
        return False
    return True


# ---------------------- Job Event Notifications ----------------------

def _job_payload(job, message: str, extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    from jobs.serializers import JobSerializer

    payload = {
        "job_id": job.id,
        "status": job.status,
        "job_data": JobSerializer(job).data,
        **(extra or {}),
    }
    if message:
        payload["message"] = message
    return payload


def notify_driver_event(
    event_type: str,
    job,
    driver_id: int | None,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send an event to a specific driver using their personal group: driver_<driver_id>

    Args:
        event_type: job_request, bid_accepted, bid_rejected, job_cancelled, ...
        job: Job model instance
        driver_id: Target driver's user ID
        message: Optional message to include
        extra: Additional payload data
    """
    if not driver_id:
        return False
    return send_event(driver_channel(driver_id), event_type, _job_payload(job, message, extra))


def notify_customer_event(
    event_type: str,
    job,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """Send a job event to the customer who owns it: customer_<customer_id>"""
    if not job.customer_id:
        return False
    return send_event(customer_channel(job.customer_id), event_type, _job_payload(job, message, extra))


def notify_both_parties(event_type: str, job, message: str = "", extra: Dict[str, Any] = None) -> None:
    """Send the same event to the job's customer and its assigned driver."""
    notify_customer_event(event_type, job, message, extra)
    notify_driver_event(event_type, job, job.driver_id, message, extra)
