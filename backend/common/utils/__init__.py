from .geo import calculate_distance, is_within_geofence
from .api import error_response, role_required

__all__ = [
    "calculate_distance",
    "is_within_geofence",
    "error_response",
    "role_required",
]
