from decimal import Decimal

from django.db import models
from django.conf import settings


class PaymentMethod(models.TextChoices):
    CASH = 'CASH', 'Cash'
    CARD = 'CARD', 'Card'
    WALLET = 'WALLET', 'Wallet'


class PaymentStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    ON_HOLD = 'ON_HOLD', 'On hold'
    COMPLETED = 'COMPLETED', 'Completed'
    FAILED = 'FAILED', 'Failed'
    REFUNDED = 'REFUNDED', 'Refunded'


class Payment(models.Model):
    """Escrow record for a job: held at dropoff, released on confirmation."""

    job = models.OneToOneField('jobs.Job', on_delete=models.CASCADE, related_name='payment')

    method = models.CharField(max_length=10, choices=PaymentMethod.choices)
    status = models.CharField(max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)

    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    platform_fee = models.DecimalField(max_digits=10, decimal_places=2)
    driver_amount = models.DecimalField(max_digits=10, decimal_places=2)

    # Gateway side (card / wallet only)
    provider_ref = models.CharField(max_length=100, blank=True, default='', db_index=True)
    payment_url = models.URLField(max_length=500, blank=True, default='')
    gateway_captured = models.BooleanField(default=False)

    # Who released the hold
    confirmed_by_customer = models.BooleanField(default=False)
    confirmed_by_sweep = models.BooleanField(default=False)
    confirmed_by_gateway = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    on_hold_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    auto_confirmed_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'payments'
        ordering = ['-created_at']

    def __str__(self):
        return f"Payment #{self.id} - Job {self.job_id} - {self.method} {self.total_amount} ({self.status})"


class DriverEarning(models.Model):
    """Payout credited to the driver. One row per job, ever."""

    job = models.OneToOneField('jobs.Job', on_delete=models.CASCADE, related_name='earning')
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='earnings'
    )

    gross = models.DecimalField(max_digits=10, decimal_places=2)
    platform_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    net = models.DecimalField(max_digits=10, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'driver_earnings'
        ordering = ['-created_at']

    def __str__(self):
        return f"Earning job {self.job_id} -> driver {self.driver_id}: {self.net}"
