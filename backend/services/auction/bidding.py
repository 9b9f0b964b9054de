"""
Auction operations: job creation, bids, acceptance and driver-driven status changes.

Acceptance and bid submission both lock the job row, so a bid can never slip
in between the "reject every other ACTIVE bid" step and the status change.
Notifications and geo-index changes run on commit only.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from common.utils.geo import calculate_distance
from drivers.models import DriverProfile
from jobs.models import Bid, BidStatus, Job, JobStatus
from realtime import geo
from realtime.notifications import (
    notify_both_parties,
    notify_customer_event,
    notify_driver_event,
)
from services.config import get_auction_config
from services.exceptions import (
    DuplicateBidError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from services.results import JobResult

from .pricing import estimate_price_range
from .state_machine import Effect, JobEvent, JobStateMachine

logger = logging.getLogger(__name__)


def get_job(job_id: int, lock: bool = False) -> Job:
    qs = Job.objects.select_for_update() if lock else Job.objects.all()
    try:
        return qs.get(pk=job_id)
    except Job.DoesNotExist:
        raise NotFoundError("Job not found")


def get_driver_profile(driver, lock: bool = False) -> DriverProfile:
    qs = DriverProfile.objects.select_for_update() if lock else DriverProfile.objects.all()
    try:
        return qs.get(user_id=driver.id)
    except DriverProfile.DoesNotExist:
        raise NotFoundError("Driver profile not found")


# ===================== Customer Operations =====================

def create_job(
    customer,
    pickup_latitude,
    pickup_longitude,
    dropoff_latitude,
    dropoff_longitude,
    vehicle_class: str,
    pickup_address: str = "",
    dropoff_address: str = "",
    description: str = "",
    distance_km=None,
) -> JobResult:
    """
    Create a job in PENDING_BIDS and start dispatch once it is committed.

    Args:
        customer: User model instance (customer)
        pickup_latitude / pickup_longitude: Pickup coordinates
        dropoff_latitude / dropoff_longitude: Dropoff coordinates
        vehicle_class: Required VehicleClass value
        distance_km: Route distance; straight-line distance when omitted

    Returns:
        JobResult with the created job
    """
    from services.dispatch import initiate_dispatch

    if not customer.is_customer:
        raise ForbiddenError("Only customers can post jobs")

    if distance_km is None:
        meters = calculate_distance(pickup_latitude, pickup_longitude, dropoff_latitude, dropoff_longitude)
        distance_km = Decimal(str(round(meters / 1000, 2)))

    min_price, max_price = estimate_price_range(distance_km, vehicle_class)

    with transaction.atomic():
        job = Job.objects.create(
            customer=customer,
            pickup_latitude=pickup_latitude,
            pickup_longitude=pickup_longitude,
            pickup_address=pickup_address,
            dropoff_latitude=dropoff_latitude,
            dropoff_longitude=dropoff_longitude,
            dropoff_address=dropoff_address,
            vehicle_class=vehicle_class,
            description=description,
            distance_km=distance_km,
            estimated_min_price=min_price,
            estimated_max_price=max_price,
            status=JobStatus.PENDING_BIDS,
        )
        pickup = (float(pickup_latitude), float(pickup_longitude))
        transaction.on_commit(lambda: initiate_dispatch(job.id, pickup, vehicle_class))

    logger.info("Job %s created by customer %s (%s, %s km)", job.id, customer.id, vehicle_class, distance_km)
    return JobResult(success=True, job=job, message="Looking for drivers near your pickup...")


@transaction.atomic
def accept_bid(job_id: int, bid_id: int, customer) -> JobResult:
    """
    Accept one bid and assign its driver to the job.

    Everything happens in one transaction under a row lock on the job plus a
    compare-and-set on its status: the chosen bid becomes ACCEPTED, every
    other ACTIVE bid REJECTED, the job BID_ACCEPTED and the driver unavailable.

    Raises:
        NotFoundError: job or bid does not exist
        UnauthorizedError: caller does not own the job
        InvalidStateError: job not PENDING_BIDS, or bid no longer live
        ForbiddenError: the bidding driver has been deactivated
    """
    now = timezone.now()
    job = get_job(job_id, lock=True)

    if job.customer_id != customer.id:
        raise UnauthorizedError("Only the customer who posted this job can accept bids")
    if job.status != JobStatus.PENDING_BIDS:
        raise InvalidStateError(f"Job is no longer accepting bids (status: {job.status})")

    try:
        bid = job.bids.select_for_update().get(pk=bid_id)
    except Bid.DoesNotExist:
        raise NotFoundError("Bid not found")

    if bid.status != BidStatus.ACTIVE:
        raise InvalidStateError(f"Bid is no longer active (status: {bid.status})")
    if bid.expires_at <= now:
        raise InvalidStateError("This bid has expired")

    profile = get_driver_profile(bid.driver, lock=True)
    if profile.is_deactivated:
        raise ForbiddenError("This driver's account is deactivated")
    if not profile.is_available:
        raise InvalidStateError("This driver is no longer available")

    others = job.bids.filter(status=BidStatus.ACTIVE).exclude(pk=bid.pk)
    rejected_driver_ids = list(others.values_list("driver_id", flat=True))
    others.update(status=BidStatus.REJECTED, responded_at=now)

    bid.status = BidStatus.ACCEPTED
    bid.responded_at = now
    bid.save(update_fields=["status", "responded_at"])

    transition = JobStateMachine.apply(
        job,
        JobEvent.ACCEPT_BID,
        now=now,
        driver=bid.driver,
        final_price=bid.proposed_price,
        winning_bid=bid,
    )

    if Effect.RESERVE_DRIVER in transition.effects:
        DriverProfile.objects.filter(pk=profile.pk).update(is_available=False)

    def after_commit():
        geo.get_driver_location_service().remove_driver(bid.driver_id)
        notify_driver_event(
            "bid_accepted", job, bid.driver_id,
            "Your bid was accepted! Head to the pickup location.",
            extra={"bid_id": bid.id, "final_price": str(bid.proposed_price)},
        )
        for driver_id in rejected_driver_ids:
            notify_driver_event("bid_rejected", job, driver_id, "The customer chose another driver.")
        notify_customer_event(
            "job_status_changed", job,
            "Driver assigned. They are on their way.",
            extra={"previous_status": JobStatus.PENDING_BIDS},
        )

    transaction.on_commit(after_commit)

    logger.info(
        "Job %s: bid %s accepted (driver %s), %s other bid(s) rejected",
        job.id, bid.id, bid.driver_id, len(rejected_driver_ids),
    )
    return JobResult(
        success=True,
        job=job,
        message="Bid accepted",
        extra={"bid_id": bid.id, "rejected_bids": len(rejected_driver_ids)},
    )


# ===================== Driver Operations =====================

@transaction.atomic
def submit_bid(job_id: int, driver, price, eta_minutes: int, note: str = "") -> Bid:
    """
    Place a bid on an open job.

    Raises:
        ForbiddenError: driver is deactivated
        InvalidStateError: job is not PENDING_BIDS
        DuplicateBidError: driver already holds a live bid on this job
    """
    now = timezone.now()
    profile = get_driver_profile(driver)
    if profile.is_deactivated:
        raise ForbiddenError("Your account is deactivated and cannot bid on jobs")

    job = get_job(job_id, lock=True)
    if job.status != JobStatus.PENDING_BIDS:
        raise InvalidStateError(f"Job is no longer accepting bids (status: {job.status})")

    existing = job.bids.filter(driver=driver, status=BidStatus.ACTIVE).first()
    if existing is not None:
        if existing.expires_at > now:
            raise DuplicateBidError()
        # A lapsed bid the periodic sweep has not reached yet
        existing.status = BidStatus.EXPIRED
        existing.responded_at = now
        existing.save(update_fields=["status", "responded_at"])

    try:
        with transaction.atomic():
            bid = Bid.objects.create(
                job=job,
                driver=driver,
                proposed_price=price,
                eta_minutes=eta_minutes,
                note=note or "",
                status=BidStatus.ACTIVE,
                expires_at=now + get_auction_config().bid_ttl,
            )
    except IntegrityError:
        raise DuplicateBidError()

    def after_commit():
        from jobs.serializers import BidSerializer
        notify_customer_event(
            "new_bid", job,
            f"New bid from {driver.username}: {price}",
            extra={"bid": BidSerializer(bid).data},
        )

    transaction.on_commit(after_commit)

    logger.info("Driver %s bid %s on job %s (bid %s)", driver.id, price, job.id, bid.id)
    return bid


@transaction.atomic
def advance_status(job_id: int, driver, new_status: str) -> JobResult:
    """
    Move an assigned job one step forward along the delivery route.

    COMPLETED is never reachable here; it goes through delivery confirmation.
    """
    job = get_job(job_id, lock=True)

    if job.driver_id != driver.id:
        raise UnauthorizedError("Only the assigned driver can update this job")

    previous = job.status
    event = JobStateMachine.event_for_status(previous, new_status)
    transition = JobStateMachine.apply(job, event)

    if Effect.NOTIFY_BOTH in transition.effects:
        transaction.on_commit(lambda: notify_both_parties(
            "job_status_changed", job,
            f"Job status changed to {job.status}",
            extra={"previous_status": previous},
        ))

    logger.info("Job %s: %s -> %s by driver %s", job.id, previous, job.status, driver.id)
    return JobResult(success=True, job=job, message=f"Status updated to {job.status}")


# ===================== Maintenance =====================

def expire_stale_bids(now: Optional[datetime] = None) -> int:
    """
    Mark ACTIVE bids past their expiry as EXPIRED and tell each bidder.

    Returns:
        Number of bids expired
    """
    now = now or timezone.now()
    stale = Bid.objects.filter(status=BidStatus.ACTIVE, expires_at__lte=now).select_related("job")

    expired = 0
    for bid in stale:
        updated = Bid.objects.filter(pk=bid.pk, status=BidStatus.ACTIVE).update(
            status=BidStatus.EXPIRED,
            responded_at=now,
        )
        if not updated:
            continue
        expired += 1
        notify_driver_event(
            "bid_expired", bid.job, bid.driver_id,
            "Your bid expired without a response.",
            extra={"bid_id": bid.id},
        )

    if expired:
        logger.info("Expired %s stale bid(s)", expired)
    return expired
