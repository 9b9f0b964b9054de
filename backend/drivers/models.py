from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.conf import settings

User = settings.AUTH_USER_MODEL


class VehicleClass(models.TextChoices):
    PICKUP_VAN = 'PICKUP_VAN', 'Pickup van'
    BOX_VAN = 'BOX_VAN', 'Box van'
    TRUCK_3_5T = 'TRUCK_3_5T', 'Truck 3.5t'
    HEAVY_TRUCK = 'HEAVY_TRUCK', 'Heavy truck'


class DriverProfile(models.Model):
    """Driver-specific details, availability and standing.

    Availability (``is_available`` plus geo-index membership) is flipped only by
    bid acceptance and delivery finalization. Strikes and deactivation belong to
    the cancellation policy.
    """
    VERIFICATION_CHOICES = [
        ('PENDING', 'Pending'),
        ('APPROVED', 'Approved'),
        ('REJECTED', 'Rejected'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='driver_profile')

    # Vehicle details
    vehicle_class = models.CharField(max_length=20, choices=VehicleClass.choices)
    vehicle_plate = models.CharField(max_length=20, unique=True)
    verification_status = models.CharField(max_length=10, choices=VERIFICATION_CHOICES, default='PENDING')

    # Availability & location
    is_available = models.BooleanField(default=False)
    current_latitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    current_longitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    last_location_update = models.DateTimeField(default=timezone.now)

    # Standing
    cancellation_strikes = models.PositiveIntegerField(default=0)
    last_strike_reset_at = models.DateTimeField(default=timezone.now)
    is_deactivated = models.BooleanField(default=False)
    deactivated_at = models.DateTimeField(null=True, blank=True)
    deactivation_reason = models.TextField(blank=True, default='')

    # Commercial terms
    tier = models.CharField(max_length=20, default='STANDARD')
    platform_fee_rate = models.DecimalField(max_digits=4, decimal_places=3, default=Decimal('0.150'))
    total_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_rides = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'driver_profiles'

    def __str__(self):
        return f"{self.user.username} - {self.vehicle_plate}"

    @property
    def has_location(self) -> bool:
        return self.current_latitude is not None and self.current_longitude is not None
