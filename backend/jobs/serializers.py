from rest_framework import serializers

from drivers.models import VehicleClass
from drivers.serializers import DriverBasicSerializer
from .models import Job, Bid, JobStatus


class BidSerializer(serializers.ModelSerializer):
    """Serializer for bids (customer sees all bids on their job)"""
    driver_name = serializers.CharField(source='driver.username', read_only=True)

    class Meta:
        model = Bid
        fields = ['id', 'job', 'driver', 'driver_name', 'proposed_price', 'eta_minutes',
                  'note', 'status', 'created_at', 'expires_at', 'responded_at']
        read_only_fields = fields


class JobSerializer(serializers.ModelSerializer):
    """Serializer for freight jobs"""
    customer_name = serializers.CharField(source='customer.username', read_only=True)
    driver = serializers.SerializerMethodField()

    class Meta:
        model = Job
        fields = ['id', 'customer', 'customer_name', 'driver', 'status',
                  'pickup_latitude', 'pickup_longitude', 'pickup_address',
                  'dropoff_latitude', 'dropoff_longitude', 'dropoff_address',
                  'vehicle_class', 'description', 'distance_km',
                  'estimated_min_price', 'estimated_max_price', 'final_price',
                  'winning_bid', 'dispatch_step', 'created_at', 'accepted_at',
                  'pickup_arrived_at', 'dropoff_arrived_at', 'driver_confirmed_at',
                  'completed_at', 'cancelled_at']
        read_only_fields = fields

    def get_driver(self, obj):
        if not obj.driver_id:
            return None
        profile = getattr(obj.driver, 'driver_profile', None)
        if profile is None:
            return {'driver_id': obj.driver_id}
        return DriverBasicSerializer(profile).data


class JobCreateSerializer(serializers.Serializer):
    """Serializer for posting a new job"""
    pickup_latitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    pickup_longitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    pickup_address = serializers.CharField(required=False, allow_blank=True, default='')
    dropoff_latitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    dropoff_longitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    dropoff_address = serializers.CharField(required=False, allow_blank=True, default='')
    vehicle_class = serializers.ChoiceField(choices=VehicleClass.choices)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    distance_km = serializers.DecimalField(max_digits=8, decimal_places=2, required=False, min_value=0)


class BidCreateSerializer(serializers.Serializer):
    """Serializer for a driver's bid"""
    proposed_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    eta_minutes = serializers.IntegerField(min_value=1)
    note = serializers.CharField(required=False, allow_blank=True, max_length=200, default='')


class AcceptBidSerializer(serializers.Serializer):
    bid_id = serializers.IntegerField()


class StatusUpdateSerializer(serializers.Serializer):
    """Serializer for driver status updates along the route"""
    status = serializers.ChoiceField(choices=[
        JobStatus.DRIVER_ARRIVING,
        JobStatus.PICKUP_ARRIVED,
        JobStatus.LOADING,
        JobStatus.IN_TRANSIT,
        JobStatus.DROPOFF_ARRIVED,
        JobStatus.COMPLETED,
    ])
