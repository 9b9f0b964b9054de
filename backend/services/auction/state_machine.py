"""Job state machine: enforces valid lifecycle transitions.

Job lifecycle:
    PENDING_BIDS → BID_ACCEPTED → DRIVER_ARRIVING → PICKUP_ARRIVED → LOADING
        → IN_TRANSIT → DROPOFF_ARRIVED → COMPLETED
    Any pre-completion state → CANCELLED
    PENDING_BIDS → NO_DRIVERS_AVAILABLE

Transitions are keyed by (current status, event). A pair that is not in the
table is rejected; there are no implicit transitions. Applying a transition is
a compare-and-set on the job row, so a caller holding a stale instance loses
instead of overwriting a concurrent change.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from django.utils import timezone

from jobs.models import Job, JobStatus, TERMINAL_STATUSES
from services.exceptions import InvalidStateError, InvalidTransitionError


class JobEvent(str, enum.Enum):
    ACCEPT_BID = "ACCEPT_BID"
    START_ROUTE = "START_ROUTE"
    ARRIVE_PICKUP = "ARRIVE_PICKUP"
    START_LOADING = "START_LOADING"
    DEPART = "DEPART"
    ARRIVE_DROPOFF = "ARRIVE_DROPOFF"
    CONFIRM_DELIVERY = "CONFIRM_DELIVERY"
    CANCEL = "CANCEL"
    EXHAUST_DISPATCH = "EXHAUST_DISPATCH"


class Effect(str, enum.Enum):
    """Side effects the service layer runs after a transition commits."""
    RESERVE_DRIVER = "reserve_driver"
    RELEASE_DRIVER = "release_driver"
    NOTIFY_CUSTOMER = "notify_customer"
    NOTIFY_BOTH = "notify_both"


@dataclass(frozen=True)
class Transition:
    target: str
    # Milestone timestamp set the first time the transition is applied
    stamp: Optional[str] = None
    effects: Tuple[Effect, ...] = ()


# Events a driver may trigger directly through advance_status
DRIVER_EVENTS = frozenset({
    JobEvent.START_ROUTE,
    JobEvent.ARRIVE_PICKUP,
    JobEvent.START_LOADING,
    JobEvent.DEPART,
    JobEvent.ARRIVE_DROPOFF,
})

_CANCEL = Transition(JobStatus.CANCELLED, stamp="cancelled_at", effects=(Effect.NOTIFY_BOTH,))

_TRANSITIONS: Dict[Tuple[str, JobEvent], Transition] = {
    (JobStatus.PENDING_BIDS, JobEvent.ACCEPT_BID): Transition(
        JobStatus.BID_ACCEPTED, stamp="accepted_at",
        effects=(Effect.RESERVE_DRIVER, Effect.NOTIFY_BOTH),
    ),
    (JobStatus.PENDING_BIDS, JobEvent.EXHAUST_DISPATCH): Transition(
        JobStatus.NO_DRIVERS_AVAILABLE, effects=(Effect.NOTIFY_CUSTOMER,),
    ),
    (JobStatus.BID_ACCEPTED, JobEvent.START_ROUTE): Transition(
        JobStatus.DRIVER_ARRIVING, effects=(Effect.NOTIFY_BOTH,),
    ),
    (JobStatus.DRIVER_ARRIVING, JobEvent.ARRIVE_PICKUP): Transition(
        JobStatus.PICKUP_ARRIVED, stamp="pickup_arrived_at", effects=(Effect.NOTIFY_BOTH,),
    ),
    (JobStatus.PICKUP_ARRIVED, JobEvent.START_LOADING): Transition(
        JobStatus.LOADING, effects=(Effect.NOTIFY_BOTH,),
    ),
    (JobStatus.LOADING, JobEvent.DEPART): Transition(
        JobStatus.IN_TRANSIT, effects=(Effect.NOTIFY_BOTH,),
    ),
    (JobStatus.IN_TRANSIT, JobEvent.ARRIVE_DROPOFF): Transition(
        JobStatus.DROPOFF_ARRIVED, stamp="dropoff_arrived_at", effects=(Effect.NOTIFY_BOTH,),
    ),
    (JobStatus.DROPOFF_ARRIVED, JobEvent.CONFIRM_DELIVERY): Transition(
        JobStatus.COMPLETED, stamp="completed_at",
        effects=(Effect.RELEASE_DRIVER, Effect.NOTIFY_BOTH),
    ),
}

for _status in (
    JobStatus.PENDING_BIDS,
    JobStatus.BID_ACCEPTED,
    JobStatus.DRIVER_ARRIVING,
    JobStatus.PICKUP_ARRIVED,
    JobStatus.LOADING,
    JobStatus.IN_TRANSIT,
    JobStatus.DROPOFF_ARRIVED,
):
    _TRANSITIONS[(_status, JobEvent.CANCEL)] = _CANCEL


class JobStateMachine:
    """Validates and applies job status transitions."""

    @staticmethod
    def transition_for(current: str, event: JobEvent) -> Transition:
        transition = _TRANSITIONS.get((current, event))
        if transition is None:
            raise InvalidTransitionError(
                f"Cannot apply {event.value} to a job in status {current}"
            )
        return transition

    @staticmethod
    def can_apply(current: str, event: JobEvent) -> bool:
        return (current, event) in _TRANSITIONS

    @staticmethod
    def event_for_status(current: str, target: str) -> JobEvent:
        """Find the driver event that moves ``current`` to ``target``.

        Only the immediate successor is reachable and COMPLETED never is;
        anything else raises InvalidTransitionError.
        """
        for event in DRIVER_EVENTS:
            transition = _TRANSITIONS.get((current, event))
            if transition is not None and transition.target == target:
                return event
        raise InvalidTransitionError(f"Cannot move job from {current} to {target}")

    @staticmethod
    def is_terminal(status: str) -> bool:
        return status in TERMINAL_STATUSES

    @staticmethod
    def apply(job: Job, event: JobEvent, now=None, **fields) -> Transition:
        """Compare-and-set ``job`` from its current status to the event's target.

        Extra ``fields`` are written in the same UPDATE. The in-memory instance
        is updated on success. Raises InvalidStateError if another writer moved
        the job first.
        """
        transition = JobStateMachine.transition_for(job.status, event)
        now = now or timezone.now()

        values = {"status": transition.target, **fields}
        if transition.stamp and getattr(job, transition.stamp) is None:
            values[transition.stamp] = now

        updated = Job.objects.filter(pk=job.pk, status=job.status).update(**values)
        if not updated:
            raise InvalidStateError("Job status changed, please refresh and try again")

        for name, value in values.items():
            setattr(job, name, value)
        return transition
