from rest_framework import serializers
from drivers.models import DriverProfile


class DriverProfileSerializer(serializers.ModelSerializer):
    """
    Full driver profile serializer (own profile view)
    """
    username = serializers.CharField(source="user.username", read_only=True)
    phone_number = serializers.CharField(source="user.phone_number", read_only=True)

    class Meta:
        model = DriverProfile
        fields = [
            "id",
            "username",
            "phone_number",
            "vehicle_class",
            "vehicle_plate",
            "verification_status",
            "is_available",
            "current_latitude",
            "current_longitude",
            "last_location_update",
            "cancellation_strikes",
            "is_deactivated",
            "deactivation_reason",
            "tier",
            "platform_fee_rate",
            "total_earnings",
            "total_rides",
        ]
        read_only_fields = fields


class DriverBasicSerializer(serializers.ModelSerializer):
    """
    Lite version of driver info for job details
    (sent to customers once a bid is accepted).
    """
    driver_id = serializers.IntegerField(source="user_id", read_only=True)
    username = serializers.CharField(source="user.username", read_only=True)
    phone_number = serializers.CharField(source="user.phone_number", read_only=True)

    class Meta:
        model = DriverProfile
        fields = [
            "driver_id",
            "username",
            "phone_number",
            "vehicle_class",
            "vehicle_plate",
            "current_latitude",
            "current_longitude",
        ]


class DriverAvailabilitySerializer(serializers.Serializer):
    """
    Serializer for a driver going online/offline.
    """
    is_available = serializers.BooleanField()
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False)


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for updating driver GPS location.
    """
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6)
