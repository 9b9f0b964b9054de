"""
Escrow coordinator - payment hold, dual confirmation and release.

This module handles:
    - Starting a cash, card or wallet payment
    - Holding the payment at the dropoff
    - Driver-then-customer confirmation
    - The auto-confirm sweep for stalled holds
    - Asynchronous gateway callbacks
"""

from .coordinator import (
    SweepResult,
    initiate_payment,
    hold_payment,
    confirm_delivery,
    finalize,
    auto_confirm_sweep,
    handle_gateway_callback,
    split_amount,
)

__all__ = [
    "SweepResult",
    "initiate_payment",
    "hold_payment",
    "confirm_delivery",
    "finalize",
    "auto_confirm_sweep",
    "handle_gateway_callback",
    "split_amount",
]
