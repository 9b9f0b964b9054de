"""
Dispatch scheduler - expanding radius search for new jobs.

This module handles:
    - Queueing the first dispatch step
    - Running a radius tier and notifying eligible drivers
    - Checking for bids and escalating to wider tiers
"""

from .scheduler import (
    DispatchOutcome,
    initiate_dispatch,
    run_dispatch_step,
    check_bids_and_continue,
    escalate,
    treat_step_as_empty,
)

__all__ = [
    "DispatchOutcome",
    "initiate_dispatch",
    "run_dispatch_step",
    "check_bids_and_continue",
    "escalate",
    "treat_step_as_empty",
]
