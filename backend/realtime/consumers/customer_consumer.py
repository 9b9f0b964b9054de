"""Customer WebSocket consumer: receives bids and job progress."""

from .base import BaseConsumer


class CustomerConsumer(BaseConsumer):
    """
    WebSocket consumer for customers.

    Everything a customer needs (new_bid, job_status_changed,
    payment_on_hold, ...) arrives through job_event; nothing is sent upstream.
    """

    role = "customer"
    group_prefix = "customer"
