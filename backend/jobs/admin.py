"""Tells what to show in the Django admin interface for jobs app"""

from django.contrib import admin
from .models import Job, Bid


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    """Freight job admin"""
    list_display = ['id', 'customer', 'driver', 'status', 'vehicle_class', 'final_price', 'created_at', 'accepted_at', 'completed_at']
    list_filter = ['status', 'vehicle_class', 'created_at']
    search_fields = ['customer__username', 'driver__username', 'pickup_address', 'dropoff_address']
    readonly_fields = ['created_at', 'accepted_at', 'pickup_arrived_at', 'dropoff_arrived_at', 'completed_at', 'cancelled_at']
    date_hierarchy = 'created_at'


@admin.register(Bid)
class BidAdmin(admin.ModelAdmin):
    list_display = ("job", "driver", "proposed_price", "eta_minutes", "status", "created_at", "expires_at")
    list_filter = ("status",)
    search_fields = ("job__id", "driver__username")
