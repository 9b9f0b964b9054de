"""
Cancellation policy: fees, refunds and the driver strike ladder.

Customers cancel for free inside the grace window after acceptance and pay a
flat fee after it. Drivers have no grace window: every cancellation is a
strike, and reaching the threshold deactivates the account. Neither path
touches driver availability.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from cancellations.models import Cancellation, CancellationInitiator, RefundStatus
from drivers.models import DriverProfile
from jobs.models import BidStatus, Job
from payments.models import Payment, PaymentStatus
from realtime.notifications import notify_customer_event, notify_driver_event
from services.auction.bidding import get_driver_profile, get_job
from services.auction.state_machine import Effect, JobEvent, JobStateMachine
from services.config import CancellationConfig, get_cancellation_config
from services.exceptions import ForbiddenError, InvalidStateError, UnauthorizedError
from services.results import JobResult

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
DEACTIVATION_REASON = "Automatic deactivation after {threshold} cancellations"


def is_within_grace(accepted_at: Optional[datetime], now: datetime, config: CancellationConfig) -> bool:
    """No acceptance yet counts as inside the window; the boundary is inclusive."""
    if accepted_at is None:
        return True
    return now - accepted_at <= config.grace_period


def _void_escrow(job: Job, now: datetime) -> Decimal:
    """Move the job's live escrow record to REFUNDED and return its platform fee.

    Once refunded the record can no longer be released, so a
    late gateway callback for it is ignored.
    """
    payment = Payment.objects.filter(
        job=job,
        status__in=[PaymentStatus.PENDING, PaymentStatus.ON_HOLD],
    ).first()
    if payment is None:
        return ZERO

    Payment.objects.filter(pk=payment.pk, status=payment.status).update(
        status=PaymentStatus.REFUNDED,
        refunded_at=now,
    )
    logger.info("Payment %s for job %s refunded on cancellation", payment.id, job.id)
    return payment.platform_fee


def _refund_status(amount: Decimal) -> str:
    return RefundStatus.PROCESSING if amount > ZERO else RefundStatus.COMPLETED


def _close_open_bids(job: Job, now: datetime):
    """Reject the bids still open on a job that is being cancelled; return their drivers."""
    open_bids = job.bids.filter(status=BidStatus.ACTIVE)
    driver_ids = list(open_bids.values_list("driver_id", flat=True))
    open_bids.update(status=BidStatus.REJECTED, responded_at=now)
    return driver_ids


def _guard_cancellable(job: Job):
    if JobStateMachine.is_terminal(job.status):
        raise InvalidStateError(f"Job is already {job.status}")


# ===================== Customer =====================

@transaction.atomic
def cancel_by_customer(job_id: int, customer, reason: str = "", now: Optional[datetime] = None) -> JobResult:
    """
    Cancel a job on the customer's behalf.

    Args:
        job_id: Job to cancel
        customer: User model instance (must own the job)
        reason: Free-text reason
        now: Evaluation time (defaults to timezone.now())

    Returns:
        JobResult whose extra holds the Cancellation record
    """
    now = now or timezone.now()
    config = get_cancellation_config()
    job = get_job(job_id, lock=True)

    if job.customer_id != customer.id:
        raise UnauthorizedError("Only the customer who posted this job can cancel it")
    _guard_cancellable(job)

    within_grace = is_within_grace(job.accepted_at, now, config)
    fee = ZERO if within_grace else config.late_cancellation_fee
    accepted_at = job.accepted_at
    transition = JobStateMachine.apply(job, JobEvent.CANCEL, now=now)
    refund = max(_void_escrow(job, now) - fee, ZERO)
    bidder_ids = _close_open_bids(job, now)

    cancellation = Cancellation.objects.create(
        job=job,
        initiator=CancellationInitiator.CUSTOMER,
        customer=customer,
        driver_id=job.driver_id,
        reason=reason or "",
        accepted_at=accepted_at,
        within_grace_period=within_grace,
        cancellation_fee=fee,
        refund_amount=refund,
        refund_status=_refund_status(refund),
        cancelled_at=now,
    )

    def after_commit():
        if job.driver_id:
            notify_driver_event(
                "job_cancelled", job, job.driver_id,
                "The customer cancelled this job.",
                extra={"reason": cancellation.reason},
            )
        for driver_id in bidder_ids:
            notify_driver_event("job_cancelled", job, driver_id, "Job cancelled by the customer.")
        notify_customer_event(
            "cancellation_confirmed", job,
            "Cancelled free of charge." if within_grace else f"Cancelled. A late cancellation fee of {fee} applies.",
            extra={
                "within_grace_period": within_grace,
                "cancellation_fee": str(fee),
                "refund_amount": str(refund),
            },
        )

    if Effect.NOTIFY_BOTH in transition.effects:
        transaction.on_commit(after_commit)

    logger.info(
        "Job %s cancelled by customer %s (grace=%s fee=%s refund=%s)",
        job.id, customer.id, within_grace, fee, refund,
    )
    return JobResult(success=True, job=job, message="Job cancelled", extra={"cancellation": cancellation})


# ===================== Driver =====================

@transaction.atomic
def cancel_by_driver(job_id: int, driver, reason: str = "", now: Optional[datetime] = None) -> JobResult:
    """
    Cancel a job on the assigned driver's behalf.

    Always issues a strike; the strike that reaches the threshold deactivates
    the driver. The customer gets the whole platform fee back.

    Raises:
        ForbiddenError: driver already deactivated
        UnauthorizedError: caller is not the assigned driver
        InvalidStateError: job already terminal
    """
    now = now or timezone.now()
    config = get_cancellation_config()

    job = get_job(job_id, lock=True)
    profile = get_driver_profile(driver, lock=True)
    if profile.is_deactivated:
        raise ForbiddenError("Your account is deactivated")

    if job.driver_id != driver.id:
        raise UnauthorizedError("Only the assigned driver can cancel this job")
    _guard_cancellable(job)

    # The reset window opens at the first strike; stale strikes are forgiven first
    stale = profile.last_strike_reset_at < now - config.strike_reset_after
    if stale or not profile.cancellation_strikes:
        DriverProfile.objects.filter(pk=profile.pk).update(cancellation_strikes=1, last_strike_reset_at=now)
    else:
        DriverProfile.objects.filter(pk=profile.pk).update(cancellation_strikes=F("cancellation_strikes") + 1)
    profile.refresh_from_db(fields=["cancellation_strikes"])
    strikes = profile.cancellation_strikes

    deactivated = strikes >= config.strike_threshold
    if deactivated:
        DriverProfile.objects.filter(pk=profile.pk).update(
            is_deactivated=True,
            deactivated_at=now,
            deactivation_reason=DEACTIVATION_REASON.format(threshold=config.strike_threshold),
        )

    accepted_at = job.accepted_at
    transition = JobStateMachine.apply(job, JobEvent.CANCEL, now=now)
    refund = _void_escrow(job, now)

    cancellation = Cancellation.objects.create(
        job=job,
        initiator=CancellationInitiator.DRIVER,
        customer_id=job.customer_id,
        driver=driver,
        reason=reason or "",
        accepted_at=accepted_at,
        within_grace_period=False,
        cancellation_fee=ZERO,
        refund_amount=refund,
        refund_status=_refund_status(refund),
        strike_given=True,
        strike_count=strikes,
        account_deactivated=deactivated,
        cancelled_at=now,
    )

    def after_commit():
        notify_customer_event(
            "job_cancelled", job,
            "Your driver cancelled this job. You will be fully refunded.",
            extra={"refund_amount": str(refund), "reason": cancellation.reason},
        )
        notify_driver_event(
            "strike_given", job, driver.id,
            f"Cancellation recorded. You now have {strikes} strike(s).",
            extra={"strike_count": strikes, "threshold": config.strike_threshold},
        )
        if deactivated:
            notify_driver_event(
                "account_deactivated", job, driver.id,
                f"Your account has been deactivated after {strikes} cancellations.",
                extra={"strike_count": strikes},
            )
        elif strikes == config.strike_threshold - 1:
            notify_driver_event(
                "strike_warning", job, driver.id,
                "One more cancellation will deactivate your account.",
                extra={"strike_count": strikes},
            )

    if Effect.NOTIFY_BOTH in transition.effects:
        transaction.on_commit(after_commit)

    logger.info(
        "Job %s cancelled by driver %s (strike %s/%s%s)",
        job.id, driver.id, strikes, config.strike_threshold, ", deactivated" if deactivated else "",
    )
    return JobResult(
        success=True,
        job=job,
        message="Job cancelled",
        extra={"cancellation": cancellation, "strike_count": strikes, "account_deactivated": deactivated},
    )


# ===================== Maintenance =====================

def reset_monthly_strikes(now: Optional[datetime] = None) -> int:
    """Zero strike counters whose last reset is older than the reset period."""
    now = now or timezone.now()
    cutoff = now - get_cancellation_config().strike_reset_after

    reset = DriverProfile.objects.filter(
        cancellation_strikes__gt=0,
        last_strike_reset_at__lt=cutoff,
    ).update(cancellation_strikes=0, last_strike_reset_at=now)

    if reset:
        logger.info("Reset cancellation strikes for %s driver(s)", reset)
    return reset
