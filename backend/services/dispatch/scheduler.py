"""
Dispatch scheduler: progressive radius search for a newly created job.

Each step looks for eligible drivers inside one radius tier. If it finds some
it notifies them and schedules a bid check after the tier's wait time;
otherwise it schedules the next tier after a short fixed delay. When the
ladder runs out the job becomes NO_DRIVERS_AVAILABLE.

Steps are chained: the next step is only scheduled from the current step's
result. Every step re-reads the job and is a no-op once it has left
PENDING_BIDS, so late or duplicated deliveries are harmless.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import List, Tuple

from django.utils import timezone

from drivers.models import DriverProfile
from jobs.models import Bid, BidStatus, Job, JobStatus
from realtime import geo
from realtime.notifications import notify_customer_event, notify_driver_event
from services.auction.state_machine import Effect, JobEvent, JobStateMachine
from services.config import DispatchConfig, get_dispatch_config
from services.exceptions import InvalidStateError

logger = logging.getLogger(__name__)


# Step outcomes
JOB_NOT_PENDING = "job_not_pending"
DRIVERS_NOTIFIED = "drivers_notified"
ESCALATED = "escalated"
BIDS_RECEIVED = "bids_received"
NO_DRIVERS = "no_drivers"


@dataclass
class DispatchOutcome:
    """What a single dispatch or bid-check step did."""
    job_id: int
    step: int
    outcome: str
    notified_driver_ids: List[int] = field(default_factory=list)
    bid_count: int = 0

    def as_dict(self):
        return asdict(self)


def initiate_dispatch(job_id: int, pickup: Tuple[float, float], vehicle_class: str) -> None:
    """Enqueue the first dispatch step. Nothing else happens here."""
    from jobs.tasks import run_dispatch_step_task

    config = get_dispatch_config()
    run_dispatch_step_task.apply_async(args=[job_id, 0], countdown=config.initial_delay_seconds)
    logger.info(
        "Dispatch queued for job %s (%s at %s,%s)",
        job_id, vehicle_class, pickup[0], pickup[1],
    )


def _pending_job(job_id: int):
    job = Job.objects.filter(pk=job_id).first()
    if job is None or job.status != JobStatus.PENDING_BIDS:
        return None
    return job


def _eligible_drivers(nearby, vehicle_class: str):
    """Keep geo hits that can take the job, preserving nearest-first order."""
    if not nearby:
        return []

    eligible_ids = set(
        DriverProfile.objects.filter(
            user_id__in=[hit.driver_id for hit in nearby],
            vehicle_class=vehicle_class,
            is_available=True,
            verification_status='APPROVED',
            is_deactivated=False,
        ).values_list('user_id', flat=True)
    )
    return [hit for hit in nearby if hit.driver_id in eligible_ids]


def _mark_no_drivers(job: Job, step: int, config: DispatchConfig) -> DispatchOutcome:
    try:
        transition = JobStateMachine.apply(job, JobEvent.EXHAUST_DISPATCH)
    except InvalidStateError:
        logger.info("Job %s left PENDING_BIDS before dispatch gave up", job.id)
        return DispatchOutcome(job.id, step, JOB_NOT_PENDING)

    if Effect.NOTIFY_CUSTOMER in transition.effects:
        widest = config.tiers[-1].radius_km if config.tiers else 0
        notify_customer_event(
            'job_no_drivers',
            job,
            'No drivers are available for this job right now. Please try again later.',
            extra={'radius_km': widest},
        )
    logger.info("Job %s: no drivers found after %s tier(s)", job.id, len(config.tiers))
    return DispatchOutcome(job.id, step, NO_DRIVERS)


def escalate(job: Job, step: int, config: DispatchConfig = None) -> DispatchOutcome:
    """Schedule the next tier, or end dispatch if there is none."""
    from jobs.tasks import run_dispatch_step_task

    config = config or get_dispatch_config()
    next_step = step + 1
    if config.tier(next_step) is None:
        return _mark_no_drivers(job, step, config)

    run_dispatch_step_task.apply_async(
        args=[job.id, next_step],
        countdown=config.escalation_delay_seconds,
    )
    logger.info(
        "Job %s: escalating dispatch to tier %s (%skm)",
        job.id, next_step, config.tier(next_step).radius_km,
    )
    return DispatchOutcome(job.id, step, ESCALATED)


def run_dispatch_step(job_id: int, step: int) -> DispatchOutcome:
    """
    Search one radius tier and notify whoever qualifies.

    Args:
        job_id: Job being dispatched
        step: Index into the configured radius tiers

    Returns:
        DispatchOutcome describing what the step did
    """
    from jobs.tasks import check_bids_task

    job = _pending_job(job_id)
    if job is None:
        logger.info("Dispatch step %s for job %s skipped: job no longer pending", step, job_id)
        return DispatchOutcome(job_id, step, JOB_NOT_PENDING)

    config = get_dispatch_config()
    tier = config.tier(step)
    if tier is None:
        return _mark_no_drivers(job, step, config)

    nearby = geo.get_driver_location_service().within_radius(
        float(job.pickup_latitude), float(job.pickup_longitude), tier.radius_km
    )
    candidates = _eligible_drivers(nearby, job.vehicle_class)

    logger.info(
        "Job %s tier %s (%skm): %s in range, %s eligible",
        job.id, step, tier.radius_km, len(nearby), len(candidates),
    )

    if not candidates:
        return escalate(job, step, config)

    # Last look before paging anyone: an accept may have landed meanwhile
    if not Job.objects.filter(pk=job.pk, status=JobStatus.PENDING_BIDS).update(dispatch_step=step):
        logger.info("Job %s accepted or cancelled during tier %s, not notifying", job.id, step)
        return DispatchOutcome(job.id, step, JOB_NOT_PENDING)
    job.dispatch_step = step

    for candidate in candidates:
        notify_driver_event(
            'job_request',
            job,
            candidate.driver_id,
            'New job near you',
            extra={
                'distance_km': round(candidate.distance_km, 2),
                'radius_km': tier.radius_km,
                'expires_in': tier.wait_seconds,
            },
        )

    check_bids_task.apply_async(args=[job.id, step], countdown=tier.wait_seconds)

    return DispatchOutcome(
        job.id,
        step,
        DRIVERS_NOTIFIED,
        notified_driver_ids=[candidate.driver_id for candidate in candidates],
    )


def check_bids_and_continue(job_id: int, step: int) -> DispatchOutcome:
    """Stop escalating once live bids exist, otherwise widen the search."""
    job = _pending_job(job_id)
    if job is None:
        return DispatchOutcome(job_id, step, JOB_NOT_PENDING)

    live_bids = Bid.objects.filter(
        job=job,
        status=BidStatus.ACTIVE,
        expires_at__gt=timezone.now(),
    ).count()

    if live_bids:
        notify_customer_event(
            'job_bids_received',
            job,
            f'{live_bids} driver(s) have bid on your job',
            extra={'bid_count': live_bids},
        )
        logger.info("Job %s: %s live bid(s), dispatch stops at tier %s", job.id, live_bids, step)
        return DispatchOutcome(job.id, step, BIDS_RECEIVED, bid_count=live_bids)

    return escalate(job, step)


def treat_step_as_empty(job_id: int, step: int) -> DispatchOutcome:
    """Fallback once a step has exhausted its retries: escalate as if nobody was found."""
    job = _pending_job(job_id)
    if job is None:
        return DispatchOutcome(job_id, step, JOB_NOT_PENDING)
    return escalate(job, step)
