"""
Realtime app: Redis GEO driver index and Channels notification fan-out.

Key Components:
    - geo.py: Redis GEO index of available drivers
    - notifications.py: role-scoped event fan-out (driver_<id>, customer_<id>)
    - consumers.py: WebSocket consumers joining those groups
    - middleware.py: JWT authentication for WebSocket connections

Usage:
    from realtime.geo import get_driver_location_service
    from realtime.notifications import notify_driver_event, notify_customer_event
"""
