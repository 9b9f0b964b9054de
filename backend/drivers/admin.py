from django.contrib import admin
from drivers.models import DriverProfile


@admin.register(DriverProfile)
class DriverProfileAdmin(admin.ModelAdmin):
    """Admin panel for managing Driver Profiles"""

    list_display = [
        "user",
        "vehicle_plate",
        "vehicle_class",
        "verification_status",
        "is_available",
        "cancellation_strikes",
        "is_deactivated",
        "last_location_update",
    ]

    list_filter = [
        "vehicle_class",
        "verification_status",
        "is_available",
        "is_deactivated",
    ]

    search_fields = [
        "user__username",
        "vehicle_plate",
    ]

    readonly_fields = [
        "last_location_update",
        "deactivated_at",
        "total_earnings",
        "total_rides",
    ]

    ordering = ("user__username",)
