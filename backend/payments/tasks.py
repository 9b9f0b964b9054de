"""Celery tasks for escrow background processing."""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task(acks_late=True)
def auto_confirm_sweep_task():
    """
    Periodic: release payments held past the auto-confirm timeout.

    Scheduled by Celery beat every two minutes. Returns the sweep summary.
    """
    from services.escrow import auto_confirm_sweep

    result = auto_confirm_sweep()
    if result.failed:
        logger.warning("Auto-confirm sweep: %s of %s held payment(s) failed", result.failed, result.checked)
    return result.as_dict()
