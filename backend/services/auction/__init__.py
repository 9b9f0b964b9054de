"""
Auction manager - bidding and the job lifecycle state machine.

This module handles:
    - Creating jobs and starting dispatch
    - Submitting and accepting bids
    - Driver-driven status changes along the route
    - Expiring stale bids
"""

from .state_machine import JobEvent, JobStateMachine, Transition
from .pricing import estimate_price_range
from .bidding import (
    create_job,
    submit_bid,
    accept_bid,
    advance_status,
    expire_stale_bids,
    get_job,
    get_driver_profile,
)

__all__ = [
    "JobEvent",
    "JobStateMachine",
    "Transition",
    "estimate_price_range",
    "create_job",
    "submit_bid",
    "accept_bid",
    "advance_status",
    "expire_stale_bids",
    "get_job",
    "get_driver_profile",
]
