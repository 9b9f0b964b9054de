from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.conf import settings

from drivers.models import VehicleClass


class JobStatus(models.TextChoices):
    PENDING_BIDS = 'PENDING_BIDS', 'Pending bids'
    BID_ACCEPTED = 'BID_ACCEPTED', 'Bid accepted'
    DRIVER_ARRIVING = 'DRIVER_ARRIVING', 'Driver arriving'
    PICKUP_ARRIVED = 'PICKUP_ARRIVED', 'Arrived at pickup'
    LOADING = 'LOADING', 'Loading'
    IN_TRANSIT = 'IN_TRANSIT', 'In transit'
    DROPOFF_ARRIVED = 'DROPOFF_ARRIVED', 'Arrived at dropoff'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'
    NO_DRIVERS_AVAILABLE = 'NO_DRIVERS_AVAILABLE', 'No drivers available'


TERMINAL_STATUSES = frozenset({
    JobStatus.COMPLETED,
    JobStatus.CANCELLED,
    JobStatus.NO_DRIVERS_AVAILABLE,
})


class Job(models.Model):
    """A single pickup -> dropoff transport request posted by a customer."""

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='jobs'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_jobs'
    )

    winning_bid = models.ForeignKey(
        'jobs.Bid',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    status = models.CharField(max_length=24, choices=JobStatus.choices, default=JobStatus.PENDING_BIDS)

    # Pickup / dropoff
    pickup_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_address = models.TextField(blank=True, default='')
    dropoff_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    dropoff_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    dropoff_address = models.TextField(blank=True, default='')

    # Load & pricing
    vehicle_class = models.CharField(max_length=20, choices=VehicleClass.choices)
    description = models.TextField(blank=True, default='')
    distance_km = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal('0.00'))
    estimated_min_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    estimated_max_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    final_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    # Last radius tier processed by the dispatcher
    dispatch_step = models.PositiveSmallIntegerField(default=0)

    # Lifecycle milestones
    created_at = models.DateTimeField(auto_now_add=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    pickup_arrived_at = models.DateTimeField(null=True, blank=True)
    dropoff_arrived_at = models.DateTimeField(null=True, blank=True)
    driver_confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'jobs'
        ordering = ['-created_at']

    def __str__(self):
        return f"Job #{self.id} - {self.customer} - {self.status}"


class BidStatus(models.TextChoices):
    ACTIVE = 'ACTIVE', 'Active'
    ACCEPTED = 'ACCEPTED', 'Accepted'
    REJECTED = 'REJECTED', 'Rejected'
    EXPIRED = 'EXPIRED', 'Expired'


class Bid(models.Model):
    """A driver's priced, timed offer to carry a job."""

    job = models.ForeignKey(
        Job,
        on_delete=models.CASCADE,
        related_name='bids'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='bids',
        limit_choices_to={'role': 'driver'}
    )

    proposed_price = models.DecimalField(max_digits=10, decimal_places=2)
    eta_minutes = models.PositiveIntegerField()
    note = models.CharField(max_length=200, blank=True, default='')

    status = models.CharField(max_length=10, choices=BidStatus.choices, default=BidStatus.ACTIVE)

    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField()
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'bids'
        ordering = ['proposed_price', 'created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['job', 'driver'],
                condition=Q(status='ACTIVE'),
                name='unique_active_bid_per_driver'
            ),
            models.UniqueConstraint(
                fields=['job'],
                condition=Q(status='ACCEPTED'),
                name='unique_accepted_bid_per_job'
            ),
        ]

    def __str__(self):
        return f"Bid #{self.id} - Job {self.job_id} <- Driver {self.driver_id} ({self.status})"
