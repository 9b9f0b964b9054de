from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from accounts.models import User
from drivers.models import DriverProfile


class DriverProfileInline(admin.StackedInline):
    model = DriverProfile
    can_delete = False
    extra = 0
    fields = (
        ("vehicle_class", "vehicle_plate", "verification_status"),
        ("is_available", "cancellation_strikes", "is_deactivated"),
        "deactivation_reason",
        ("tier", "platform_fee_rate"),
    )


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Customers and drivers; a driver's profile is edited inline."""

    inlines = [DriverProfileInline]
    list_display = ["username", "role", "phone_number", "driver_standing", "is_active"]
    list_filter = ["role", "is_active", "driver_profile__is_deactivated"]
    search_fields = ["username", "email", "phone_number", "driver_profile__vehicle_plate"]
    ordering = ("role", "username")

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Marketplace role", {"fields": ("role", "phone_number")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Marketplace role", {"fields": ("role", "phone_number")}),
    )

    @admin.display(description="Standing")
    def driver_standing(self, obj):
        profile = getattr(obj, "driver_profile", None) if obj.is_driver else None
        if profile is None:
            return "-"
        if profile.is_deactivated:
            return "deactivated"
        return f"{profile.cancellation_strikes} strike(s)"

    def get_inlines(self, request, obj):
        if obj is None or not obj.is_driver:
            return []
        return self.inlines
