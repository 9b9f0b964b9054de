from django.contrib import admin
from .models import Cancellation


@admin.register(Cancellation)
class CancellationAdmin(admin.ModelAdmin):
    list_display = ['job', 'initiator', 'within_grace_period', 'cancellation_fee', 'refund_amount',
                    'refund_status', 'strike_given', 'strike_count', 'account_deactivated', 'cancelled_at']
    list_filter = ['initiator', 'refund_status', 'strike_given', 'account_deactivated']
    search_fields = ['job__id', 'customer__username', 'driver__username']
