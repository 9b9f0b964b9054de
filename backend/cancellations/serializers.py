from rest_framework import serializers
from .models import Cancellation


class CancellationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Cancellation
        fields = ['id', 'job', 'initiator', 'reason', 'accepted_at', 'within_grace_period',
                  'cancellation_fee', 'refund_amount', 'refund_status', 'strike_given',
                  'strike_count', 'account_deactivated', 'cancelled_at']
        read_only_fields = fields


class CancelJobSerializer(serializers.Serializer):
    """Serializer for job cancellation"""
    reason = serializers.CharField(required=False, allow_blank=True, default='')
