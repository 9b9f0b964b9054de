from rest_framework import serializers
from .models import Payment, PaymentMethod, DriverEarning


class PaymentSerializer(serializers.ModelSerializer):
    """Escrow record as seen by the customer and the driver"""

    class Meta:
        model = Payment
        fields = ['id', 'job', 'method', 'status', 'total_amount', 'platform_fee',
                  'driver_amount', 'payment_url', 'gateway_captured',
                  'confirmed_by_customer', 'confirmed_by_sweep', 'confirmed_by_gateway',
                  'created_at', 'on_hold_at', 'completed_at', 'auto_confirmed_at', 'refunded_at']
        read_only_fields = fields


class DriverEarningSerializer(serializers.ModelSerializer):
    class Meta:
        model = DriverEarning
        fields = ['id', 'job', 'gross', 'platform_fee', 'net', 'created_at']
        read_only_fields = fields


class PaymentInitiateSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=PaymentMethod.choices)


class GatewayCallbackSerializer(serializers.Serializer):
    """Body posted by the payment provider"""
    reference = serializers.CharField(max_length=100)
    status = serializers.ChoiceField(choices=['SUCCESS', 'FAILED'])
