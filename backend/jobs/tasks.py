"""Celery tasks for job dispatch and bid maintenance."""

from celery import shared_task
import logging

from services.config import get_dispatch_config

logger = logging.getLogger(__name__)


def _retry_or_give_up(task, exc, job_id: int, step: int, label: str):
    """Retry with exponential backoff; once retries are spent escalate as an empty step."""
    from services.dispatch import scheduler

    config = get_dispatch_config()
    retries = task.request.retries
    if retries < config.max_retries:
        countdown = config.retry_backoff_seconds * (2 ** retries)
        logger.warning(
            "%s for job %s (tier %s) failed: %s. Retrying in %ss",
            label, job_id, step, exc, countdown,
        )
        raise task.retry(exc=exc, countdown=countdown, max_retries=config.max_retries)

    logger.error(
        "%s for job %s (tier %s) failed after %s retries, treating as empty",
        label, job_id, step, retries,
    )
    return scheduler.treat_step_as_empty(job_id, step).as_dict()


@shared_task(bind=True, acks_late=True)
def run_dispatch_step_task(self, job_id: int, step: int):
    """
    Run one radius tier of dispatch for a job.

    Scheduled by initiate_dispatch and by escalation. A job that already left
    PENDING_BIDS makes this a no-op.
    """
    from services.dispatch import scheduler

    try:
        return scheduler.run_dispatch_step(job_id, step).as_dict()
    except Exception as exc:
        return _retry_or_give_up(self, exc, job_id, step, "Dispatch step")


@shared_task(bind=True, acks_late=True)
def check_bids_task(self, job_id: int, step: int):
    """Look for bids once a tier's wait time is up; widen the search if none."""
    from services.dispatch import scheduler

    try:
        return scheduler.check_bids_and_continue(job_id, step).as_dict()
    except Exception as exc:
        return _retry_or_give_up(self, exc, job_id, step, "Bid check")


@shared_task
def expire_stale_bids_task():
    """Periodic: mark lapsed ACTIVE bids as EXPIRED."""
    from services.auction import expire_stale_bids

    expired = expire_stale_bids()
    logger.info("Bid expiry sweep done: %s expired", expired)
    return expired
