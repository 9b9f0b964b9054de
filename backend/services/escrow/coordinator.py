"""
Escrow coordinator: payment hold, dual confirmation and release.

Lifecycle per job:
    PENDING → ON_HOLD → COMPLETED   (or → FAILED on a gateway failure)
    PENDING / ON_HOLD → REFUNDED    when the job is cancelled

Release ("finalize") is shared by three paths: customer confirmation after the
driver's, the auto-confirm sweep and a successful gateway callback. Whichever
wins the ON_HOLD → COMPLETED compare-and-set does the work; the payout row is a
single get_or_create on a unique job key, so a driver is credited once no
matter how many paths race.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from common.utils.geo import is_within_geofence
from drivers.models import DriverProfile
from jobs.models import Job, JobStatus
from payments.models import DriverEarning, Payment, PaymentMethod, PaymentStatus
from realtime import geo
from realtime.notifications import notify_both_parties, notify_customer_event, notify_driver_event
from services.auction.bidding import get_job
from services.auction.state_machine import Effect, JobEvent, JobStateMachine
from services.config import get_escrow_config
from services.exceptions import (
    InvalidStateError,
    NotFoundError,
    OutOfOrderError,
    UnauthorizedError,
)
from services.results import JobResult

from . import gateways

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

# Who released the hold
SOURCE_CUSTOMER = "customer"
SOURCE_SWEEP = "sweep"
SOURCE_GATEWAY = "gateway"

_SOURCE_FLAGS = {
    SOURCE_CUSTOMER: "confirmed_by_customer",
    SOURCE_SWEEP: "confirmed_by_sweep",
    SOURCE_GATEWAY: "confirmed_by_gateway",
}

PAYABLE_STATUSES = frozenset({
    JobStatus.BID_ACCEPTED,
    JobStatus.DRIVER_ARRIVING,
    JobStatus.PICKUP_ARRIVED,
    JobStatus.LOADING,
    JobStatus.IN_TRANSIT,
    JobStatus.DROPOFF_ARRIVED,
    JobStatus.COMPLETED,
})


def split_amount(total: Decimal, fee_rate: Decimal):
    """Return (platform_fee, driver_amount) for ``total``."""
    total = Decimal(total).quantize(CENTS, ROUND_HALF_UP)
    platform_fee = (total * Decimal(fee_rate)).quantize(CENTS, ROUND_HALF_UP)
    return platform_fee, total - platform_fee


def _get_payment(job_id: int) -> Payment:
    try:
        return Payment.objects.get(job_id=job_id)
    except Payment.DoesNotExist:
        raise NotFoundError("No payment has been started for this job")


def _fee_rate(job: Job) -> Decimal:
    profile = DriverProfile.objects.filter(user_id=job.driver_id).only("platform_fee_rate").first()
    if profile is None:
        return get_escrow_config().default_platform_fee_rate
    return profile.platform_fee_rate


# ===================== Payment Setup =====================

def initiate_payment(job_id: int, method: str, customer=None) -> Payment:
    """
    Create (or reset) the escrow record once a bid has been accepted.

    Cash goes straight to PENDING. Card and wallet open a charge at the gateway
    first; if that fails nothing is written.

    Raises:
        UnauthorizedError: ``customer`` given and not the job's owner
        InvalidStateError: job not yet accepted, cancelled, no price, or escrow
            already past PENDING
        GatewayFailureError: provider unreachable
    """
    job = get_job(job_id)

    if customer is not None and job.customer_id != customer.id:
        raise UnauthorizedError("Only the customer who posted this job can pay for it")
    if job.status not in PAYABLE_STATUSES:
        raise InvalidStateError(f"Payment is not possible for a job in status {job.status}")
    if job.final_price is None:
        raise InvalidStateError("Job has no agreed price yet")

    existing = Payment.objects.filter(job=job).first()
    if existing is not None and existing.status not in (PaymentStatus.PENDING, PaymentStatus.FAILED):
        raise InvalidStateError(f"Payment is already {existing.status}")

    platform_fee, driver_amount = split_amount(job.final_price, _fee_rate(job))

    provider_ref, payment_url = "", ""
    if method != PaymentMethod.CASH:
        provider_charge = gateways.charge(job, method, job.final_price)
        provider_ref, payment_url = provider_charge.reference, provider_charge.payment_url

    with transaction.atomic():
        current = Payment.objects.select_for_update().filter(job=job).first()
        if current is not None and current.status not in (PaymentStatus.PENDING, PaymentStatus.FAILED):
            raise InvalidStateError(f"Payment is already {current.status}")

        payment, created = Payment.objects.update_or_create(
            job=job,
            defaults={
                "method": method,
                "status": PaymentStatus.PENDING,
                "total_amount": job.final_price,
                "platform_fee": platform_fee,
                "driver_amount": driver_amount,
                "provider_ref": provider_ref,
                "payment_url": payment_url,
                "gateway_captured": False,
                "failed_at": None,
            },
        )
        transaction.on_commit(lambda: notify_driver_event(
            "payment_initiated", job, job.driver_id,
            f"Customer chose {method} payment",
            extra={"method": method, "driver_amount": str(driver_amount)},
        ))

    logger.info(
        "Payment %s for job %s (%s): total=%s fee=%s driver=%s",
        "created" if created else "reset", job.id, method, job.final_price, platform_fee, driver_amount,
    )
    return payment


def hold_payment(job_id: int, driver) -> Payment:
    """Driver at the dropoff puts the payment on hold (PENDING → ON_HOLD)."""
    job = get_job(job_id)

    if job.driver_id != driver.id:
        raise UnauthorizedError("Only the assigned driver can hold this payment")
    if job.status != JobStatus.DROPOFF_ARRIVED:
        raise InvalidStateError("Payment can only be held once you have arrived at the dropoff")

    payment = _get_payment(job.id)
    now = timezone.now()
    updated = Payment.objects.filter(pk=payment.pk, status=PaymentStatus.PENDING).update(
        status=PaymentStatus.ON_HOLD,
        on_hold_at=now,
    )
    if not updated:
        payment.refresh_from_db(fields=["status"])
        raise InvalidStateError(f"Payment is {payment.status}, expected PENDING")

    payment.refresh_from_db()
    transaction.on_commit(lambda: notify_customer_event(
        "payment_on_hold", job,
        "Your driver has arrived. Please confirm delivery once you have checked the goods.",
        extra={"payment_id": payment.id},
    ))
    logger.info("Payment %s for job %s on hold", payment.id, job.id)
    return payment


# ===================== Confirmation =====================

def confirm_delivery(job_id: int, confirmer) -> JobResult:
    """
    Record one half of the dual confirmation.

    The driver confirms first (escrow must be ON_HOLD); the customer's
    confirmation after that finalizes. A customer confirming first gets
    OutOfOrderError.
    """
    job = get_job(job_id)

    if confirmer.id == job.driver_id:
        if not JobStateMachine.can_apply(job.status, JobEvent.CONFIRM_DELIVERY):
            raise InvalidStateError(f"Job is {job.status}, delivery cannot be confirmed")
        payment = _get_payment(job.id)
        if payment.status != PaymentStatus.ON_HOLD:
            raise InvalidStateError(f"Payment is {payment.status}, hold it before confirming")

        now = timezone.now()
        stamped = Job.objects.filter(pk=job.pk, driver_confirmed_at__isnull=True).update(driver_confirmed_at=now)
        if stamped:
            job.driver_confirmed_at = now
            transaction.on_commit(lambda: notify_customer_event(
                "delivery_confirmed_by_driver", job,
                "The driver marked the delivery as done. Please confirm to release payment.",
            ))
            logger.info("Driver %s confirmed delivery of job %s", confirmer.id, job.id)
        return JobResult(success=True, job=job, message="Waiting for the customer to confirm",
                         extra={"finalized": False})

    if confirmer.id == job.customer_id:
        if job.driver_confirmed_at is None:
            raise OutOfOrderError()
        finalized = finalize(job.id, SOURCE_CUSTOMER)
        job.refresh_from_db()
        message = "Delivery confirmed, payment released" if finalized else "Delivery was already confirmed"
        return JobResult(success=True, job=job, message=message, extra={"finalized": finalized})

    raise UnauthorizedError("Only the job's customer or driver can confirm delivery")


def finalize(job_id: int, source: str, now: Optional[datetime] = None) -> bool:
    """
    Release the hold: escrow COMPLETED, job COMPLETED, payout once, driver free.

    Returns:
        True if this call did the release, False if another path already had
    """
    now = now or timezone.now()

    with transaction.atomic():
        # Job row first, the same lock order as cancellation
        job = get_job(job_id, lock=True)
        if job.status == JobStatus.CANCELLED:
            logger.info("Job %s is cancelled, %s path does not release", job_id, source)
            return False

        payment = _get_payment(job_id)
        values = {
            "status": PaymentStatus.COMPLETED,
            "completed_at": now,
            _SOURCE_FLAGS[source]: True,
        }
        if source == SOURCE_SWEEP:
            values["auto_confirmed_at"] = now

        if not Payment.objects.filter(pk=payment.pk, status=PaymentStatus.ON_HOLD).update(**values):
            logger.info("Payment %s for job %s already released, %s path is a no-op", payment.id, job_id, source)
            return False

        transition = JobStateMachine.apply(job, JobEvent.CONFIRM_DELIVERY, now=now)

        earning, credited = DriverEarning.objects.get_or_create(
            job=job,
            defaults={
                "driver_id": job.driver_id,
                "gross": payment.total_amount,
                "platform_fee": payment.platform_fee,
                "net": payment.driver_amount,
            },
        )
        profile_updates = {}
        if Effect.RELEASE_DRIVER in transition.effects:
            profile_updates["is_available"] = True
        if credited:
            profile_updates.update(
                total_earnings=F("total_earnings") + earning.net,
                total_rides=F("total_rides") + 1,
            )
        if profile_updates:
            DriverProfile.objects.filter(user_id=job.driver_id).update(**profile_updates)

        transaction.on_commit(lambda: _after_release(job, payment, source, transition.effects))

    logger.info(
        "Job %s finalized via %s (payout %s)",
        job_id, source, "credited" if credited else "already recorded",
    )
    return True


def _return_driver_to_index(job: Job) -> None:
    """Re-add the driver to the geo index at their last known position."""
    profile = DriverProfile.objects.filter(user_id=job.driver_id).first()
    if profile is not None and profile.has_location:
        lat, lon = profile.current_latitude, profile.current_longitude
    else:
        lat, lon = job.dropoff_latitude, job.dropoff_longitude
    geo.get_driver_location_service().add_driver(job.driver_id, lat, lon)


def _after_release(job: Job, payment: Payment, source: str, effects) -> None:
    if Effect.RELEASE_DRIVER in effects:
        _return_driver_to_index(job)
    if Effect.NOTIFY_BOTH not in effects:
        return

    event = "payment_auto_confirmed" if source == SOURCE_SWEEP else "job_completed"
    notify_both_parties(
        event, job,
        "Delivery complete. Payment has been released to the driver.",
        extra={
            "payment_id": payment.id,
            "driver_amount": str(payment.driver_amount),
            "confirmed_by": source,
        },
    )


# ===================== Auto-confirm sweep =====================

@dataclass
class SweepResult:
    checked: int = 0
    confirmed: int = 0
    failed: int = 0
    details: List[Dict[str, Any]] = field(default_factory=list)

    def as_dict(self):
        return {
            "checked": self.checked,
            "confirmed": self.confirmed,
            "failed": self.failed,
            "details": self.details,
        }


def _verify_arrival(payment: Payment, geofence_meters: float) -> Optional[str]:
    """Return None when the driver is confirmed at the dropoff, else a skip reason."""
    job = payment.job
    if job.status not in (JobStatus.DROPOFF_ARRIVED, JobStatus.COMPLETED):
        return f"job status {job.status}"

    profile = DriverProfile.objects.filter(user_id=job.driver_id).first()
    if profile is None or not profile.has_location:
        # No GPS to check against; the status alone vouches for the arrival
        return None

    if not is_within_geofence(
        profile.current_latitude, profile.current_longitude,
        job.dropoff_latitude, job.dropoff_longitude,
        geofence_meters,
    ):
        return "driver outside dropoff geofence"
    return None


def auto_confirm_sweep(now: Optional[datetime] = None) -> SweepResult:
    """
    Release holds the customer never confirmed.

    Looks at ON_HOLD records older than the configured timeout. Each record is
    handled on its own: one failure is logged and counted, never fatal.
    """
    now = now or timezone.now()
    config = get_escrow_config()
    cutoff = now - config.auto_confirm_after

    stalled = Payment.objects.filter(
        status=PaymentStatus.ON_HOLD,
        on_hold_at__lte=cutoff,
    ).exclude(job__status=JobStatus.CANCELLED).select_related("job")

    result = SweepResult()
    for payment in stalled:
        result.checked += 1
        detail = {"payment_id": payment.id, "job_id": payment.job_id}
        try:
            reason = _verify_arrival(payment, config.geofence_meters)
            if reason:
                detail.update(outcome="skipped", reason=reason)
            elif finalize(payment.job_id, SOURCE_SWEEP, now=now):
                result.confirmed += 1
                detail["outcome"] = "confirmed"
            else:
                detail["outcome"] = "already_completed"
        except Exception as exc:
            logger.exception("Auto-confirm failed for payment %s (job %s)", payment.id, payment.job_id)
            result.failed += 1
            detail.update(outcome="error", error=str(exc))
        result.details.append(detail)

    if result.checked:
        logger.info(
            "Auto-confirm sweep: checked=%s confirmed=%s failed=%s",
            result.checked, result.confirmed, result.failed,
        )
    return result


# ===================== Gateway callbacks =====================

def handle_gateway_callback(provider_ref: str, succeeded: bool, now: Optional[datetime] = None) -> str:
    """
    Apply an asynchronous result from the payment provider.

    Success on an ON_HOLD record releases it like a customer confirmation; success
    before the hold only records that the charge went through. Failure moves any
    live record to FAILED. Callbacks for a cancelled job are ignored; its record
    was refunded on cancellation.

    Returns:
        Short outcome string (finalized / captured / failed / ignored)
    """
    now = now or timezone.now()
    payment = Payment.objects.select_related("job").filter(provider_ref=provider_ref).first()
    if payment is None or not provider_ref:
        raise NotFoundError("Unknown payment reference")

    if payment.job.status == JobStatus.CANCELLED:
        logger.info("Gateway %s for payment %s ignored, job %s is cancelled",
                    "success" if succeeded else "failure", payment.id, payment.job_id)
        return "ignored"

    if succeeded:
        if payment.status == PaymentStatus.ON_HOLD:
            return "finalized" if finalize(payment.job_id, SOURCE_GATEWAY, now=now) else "ignored"
        if Payment.objects.filter(pk=payment.pk, status=PaymentStatus.PENDING).update(gateway_captured=True):
            logger.info("Gateway captured payment %s before hold", payment.id)
            return "captured"
        return "ignored"

    failed = Payment.objects.filter(
        pk=payment.pk,
        status__in=[PaymentStatus.PENDING, PaymentStatus.ON_HOLD],
    ).update(status=PaymentStatus.FAILED, failed_at=now)
    if not failed:
        return "ignored"

    job = payment.job
    transaction.on_commit(lambda: notify_customer_event(
        "payment_failed", job,
        "Your payment could not be processed. Please try another method.",
        extra={"payment_id": payment.id},
    ))
    logger.warning("Gateway reported failure for payment %s (job %s)", payment.id, payment.job_id)
    return "failed"
