"""Tells what to show in the Django admin interface for payments app"""

from django.contrib import admin
from .models import Payment, DriverEarning


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Escrow record admin"""
    list_display = ['id', 'job', 'method', 'status', 'total_amount', 'platform_fee', 'driver_amount',
                    'on_hold_at', 'completed_at', 'confirmed_by_sweep']
    list_filter = ['status', 'method', 'confirmed_by_sweep', 'confirmed_by_gateway']
    search_fields = ['job__id', 'provider_ref']
    readonly_fields = ['created_at', 'on_hold_at', 'completed_at', 'auto_confirmed_at', 'failed_at', 'refunded_at']


@admin.register(DriverEarning)
class DriverEarningAdmin(admin.ModelAdmin):
    list_display = ("job", "driver", "gross", "platform_fee", "net", "created_at")
    search_fields = ("job__id", "driver__username")
