"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.driver_consumer import DriverConsumer
from .consumers.customer_consumer import CustomerConsumer

websocket_urlpatterns = [
    # Driver-specific WebSocket endpoint
    # URL: ws://localhost:8000/ws/driver/?token=<jwt>
    re_path(
        r"ws/driver/$",
        DriverConsumer.as_asgi(),
        name="driver-ws"
    ),

    # Customer-specific WebSocket endpoint
    # URL: ws://localhost:8000/ws/customer/?token=<jwt>
    re_path(
        r"ws/customer/$",
        CustomerConsumer.as_asgi(),
        name="customer-ws"
    ),
]
