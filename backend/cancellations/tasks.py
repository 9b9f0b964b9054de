"""Celery tasks for cancellation policy maintenance."""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def reset_monthly_strikes_task():
    """Periodic: forgive cancellation strikes older than the reset period."""
    from services.cancellation import reset_monthly_strikes

    reset = reset_monthly_strikes()
    logger.debug("Strike reset run: %s driver(s) reset", reset)
    return reset
