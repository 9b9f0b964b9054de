"""
Cancellation policy engine.

This module handles:
    - Customer cancellations (grace window, late fee, refund)
    - Driver cancellations (strikes, deactivation, full refund)
    - Periodic strike forgiveness
"""

from .policy import (
    cancel_by_customer,
    cancel_by_driver,
    reset_monthly_strikes,
    is_within_grace,
)

__all__ = [
    "cancel_by_customer",
    "cancel_by_driver",
    "reset_monthly_strikes",
    "is_within_grace",
]
