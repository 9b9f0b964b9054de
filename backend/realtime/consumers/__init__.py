"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .driver_consumer import DriverConsumer
from .customer_consumer import CustomerConsumer

__all__ = [
    "BaseConsumer",
    "DriverConsumer",
    "CustomerConsumer",
]
