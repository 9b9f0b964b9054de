from decimal import Decimal

from django.db import models
from django.conf import settings


class CancellationInitiator(models.TextChoices):
    CUSTOMER = 'CUSTOMER', 'Customer'
    DRIVER = 'DRIVER', 'Driver'


class RefundStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    PROCESSING = 'PROCESSING', 'Processing'
    COMPLETED = 'COMPLETED', 'Completed'


class Cancellation(models.Model):
    """Outcome of cancelling a job: fee, refund and any strike issued. At most one per job."""

    job = models.OneToOneField('jobs.Job', on_delete=models.CASCADE, related_name='cancellation')
    initiator = models.CharField(max_length=10, choices=CancellationInitiator.choices)

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='customer_cancellations'
    )
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='driver_cancellations'
    )

    reason = models.TextField(blank=True, default='')
    accepted_at = models.DateTimeField(null=True, blank=True)
    within_grace_period = models.BooleanField(default=True)

    # Money
    cancellation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    refund_status = models.CharField(max_length=10, choices=RefundStatus.choices, default=RefundStatus.PENDING)

    # Driver standing
    strike_given = models.BooleanField(default=False)
    strike_count = models.PositiveIntegerField(default=0)
    account_deactivated = models.BooleanField(default=False)

    cancelled_at = models.DateTimeField()

    class Meta:
        db_table = 'cancellations'
        ordering = ['-cancelled_at']

    def __str__(self):
        return f"Cancellation job {self.job_id} by {self.initiator}"
