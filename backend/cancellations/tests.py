from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.test import override_settings
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from drivers.models import DriverProfile
from jobs.models import BidStatus, JobStatus
from jobs.tests import CoordinatorTestCase
from payments.models import Payment, PaymentMethod, PaymentStatus
from services import auction, cancellation
from services.exceptions import ForbiddenError, InvalidStateError, UnauthorizedError
from .models import Cancellation, CancellationInitiator, RefundStatus
from .views import cancel_by_driver as cancel_by_driver_view


class CancellationTestCase(CoordinatorTestCase):
	def setUp(self):
		super().setUp()
		self.now = timezone.now()
		self.driver = self.make_driver('driver_one', is_available=False, indexed=False)

	def assigned_job(self, accepted_at=None, **fields):
		return self.make_job(
			status=fields.pop('status', JobStatus.BID_ACCEPTED),
			driver=self.driver,
			final_price=Decimal('100.00'),
			accepted_at=accepted_at or self.now - timedelta(minutes=1),
			**fields
		)

	def add_payment(self, job, status=PaymentStatus.PENDING):
		return Payment.objects.create(
			job=job,
			method=PaymentMethod.CASH,
			status=status,
			total_amount=Decimal('100.00'),
			platform_fee=Decimal('15.00'),
			driver_amount=Decimal('85.00'),
		)

	def profile(self):
		return DriverProfile.objects.get(user=self.driver)


@patch('services.cancellation.policy.notify_customer_event')
@patch('services.cancellation.policy.notify_driver_event')
class CustomerCancellationTests(CancellationTestCase):
	def test_free_at_exactly_the_end_of_grace(self, mock_notify_driver, mock_notify_customer):
		accepted_at = self.now - timedelta(seconds=300)
		job = self.assigned_job(accepted_at=accepted_at)
		self.add_payment(job)

		result = cancellation.cancel_by_customer(job.id, self.customer, 'Changed plans', now=self.now)

		record = result.extra['cancellation']
		self.assertTrue(record.within_grace_period)
		self.assertEqual(record.cancellation_fee, Decimal('0.00'))
		self.assertEqual(record.refund_amount, Decimal('15.00'))
		self.assertEqual(record.refund_status, RefundStatus.PROCESSING)
		self.assertEqual(record.initiator, CancellationInitiator.CUSTOMER)
		self.assertEqual(result.job.status, JobStatus.CANCELLED)

	def test_late_cancellation_costs_flat_fee(self, mock_notify_driver, mock_notify_customer):
		job = self.assigned_job(accepted_at=self.now - timedelta(seconds=301))
		self.add_payment(job)

		with self.captureOnCommitCallbacks(execute=True):
			result = cancellation.cancel_by_customer(job.id, self.customer, now=self.now)

		record = result.extra['cancellation']
		self.assertFalse(record.within_grace_period)
		self.assertEqual(record.cancellation_fee, Decimal('5.00'))
		self.assertEqual(record.refund_amount, Decimal('10.00'))
		self.assertEqual(record.accepted_at, self.now - timedelta(seconds=301))

		mock_notify_driver.assert_called_once()
		self.assertEqual(mock_notify_driver.call_args.args[0], 'job_cancelled')
		self.assertEqual(mock_notify_customer.call_args.args[0], 'cancellation_confirmed')

	@override_settings(FREIGHT_CANCELLATION={'GRACE_PERIOD_SECONDS': 60, 'LATE_CANCELLATION_FEE': '7.50'})
	def test_grace_and_fee_follow_settings(self, mock_notify_driver, mock_notify_customer):
		job = self.assigned_job(accepted_at=self.now - timedelta(seconds=90))

		result = cancellation.cancel_by_customer(job.id, self.customer, now=self.now)

		record = result.extra['cancellation']
		self.assertEqual(record.cancellation_fee, Decimal('7.50'))
		self.assertEqual(record.refund_amount, Decimal('0.00'))
		self.assertEqual(record.refund_status, RefundStatus.COMPLETED)

	def test_cancelling_open_job_rejects_its_bids(self, mock_notify_driver, mock_notify_customer):
		bidder = self.make_driver('bidder')
		job = self.make_job()
		bid = self.make_bid(job, bidder)

		with self.captureOnCommitCallbacks(execute=True):
			result = cancellation.cancel_by_customer(job.id, self.customer, now=self.now)

		bid.refresh_from_db()
		self.assertEqual(bid.status, BidStatus.REJECTED)
		self.assertTrue(result.extra['cancellation'].within_grace_period)
		self.assertEqual(
			[(c.args[0], c.args[2]) for c in mock_notify_driver.call_args_list],
			[('job_cancelled', bidder.id)]
		)

	def test_customer_cancel_leaves_driver_standing_alone(self, mock_notify_driver, mock_notify_customer):
		job = self.assigned_job()
		cancellation.cancel_by_customer(job.id, self.customer, now=self.now)

		profile = self.profile()
		self.assertEqual(profile.cancellation_strikes, 0)
		self.assertFalse(profile.is_available)

	def test_cancelling_refunds_held_escrow(self, mock_notify_driver, mock_notify_customer):
		job = self.assigned_job(status=JobStatus.DROPOFF_ARRIVED)
		payment = self.add_payment(job, status=PaymentStatus.ON_HOLD)

		result = cancellation.cancel_by_customer(job.id, self.customer, now=self.now)

		payment.refresh_from_db()
		self.assertEqual(payment.status, PaymentStatus.REFUNDED)
		self.assertEqual(payment.refunded_at, self.now)
		self.assertEqual(result.extra['cancellation'].refund_amount, Decimal('15.00'))

	def test_only_owner_can_cancel(self, mock_notify_driver, mock_notify_customer):
		job = self.assigned_job()
		with self.assertRaises(UnauthorizedError):
			cancellation.cancel_by_customer(job.id, self.other_customer, now=self.now)
		self.assertFalse(Cancellation.objects.exists())

	def test_finished_job_cannot_be_cancelled(self, mock_notify_driver, mock_notify_customer):
		job = self.assigned_job(status=JobStatus.COMPLETED)
		with self.assertRaises(InvalidStateError):
			cancellation.cancel_by_customer(job.id, self.customer, now=self.now)


@patch('services.cancellation.policy.notify_customer_event')
@patch('services.cancellation.policy.notify_driver_event')
class DriverCancellationTests(CancellationTestCase):
	def test_strikes_deactivate_at_threshold(self, mock_notify_driver, mock_notify_customer):
		outcomes = []
		for _ in range(3):
			job = self.assigned_job()
			result = cancellation.cancel_by_driver(job.id, self.driver, 'Truck broke down', now=self.now)
			profile = self.profile()
			outcomes.append((result.extra['strike_count'], profile.cancellation_strikes, profile.is_deactivated))

		self.assertEqual(outcomes, [(1, 1, False), (2, 2, False), (3, 3, True)])
		profile = self.profile()
		self.assertEqual(profile.deactivated_at, self.now)
		self.assertIn('3 cancellations', profile.deactivation_reason)

	def test_warning_before_the_last_strike(self, mock_notify_driver, mock_notify_customer):
		DriverProfile.objects.filter(user=self.driver).update(cancellation_strikes=1)
		job = self.assigned_job()

		with self.captureOnCommitCallbacks(execute=True):
			cancellation.cancel_by_driver(job.id, self.driver, now=self.now)

		events = [c.args[0] for c in mock_notify_driver.call_args_list]
		self.assertEqual(events, ['strike_given', 'strike_warning'])
		self.assertEqual(mock_notify_customer.call_args.args[0], 'job_cancelled')

	def test_third_cancellation_locks_driver_out(self, mock_notify_driver, mock_notify_customer):
		DriverProfile.objects.filter(user=self.driver).update(cancellation_strikes=2)
		job = self.assigned_job(status=JobStatus.IN_TRANSIT)
		self.add_payment(job)

		with self.captureOnCommitCallbacks(execute=True):
			result = cancellation.cancel_by_driver(job.id, self.driver, now=self.now)

		record = result.extra['cancellation']
		self.assertTrue(result.extra['account_deactivated'])
		self.assertTrue(record.account_deactivated)
		self.assertEqual(record.initiator, CancellationInitiator.DRIVER)
		self.assertEqual(record.cancellation_fee, Decimal('0.00'))
		self.assertEqual(record.refund_amount, Decimal('15.00'))
		self.assertIn('account_deactivated', [c.args[0] for c in mock_notify_driver.call_args_list])

		with self.assertRaises(ForbiddenError):
			cancellation.cancel_by_driver(self.assigned_job().id, self.driver, now=self.now)

		open_job = self.make_job()
		with self.assertRaises(ForbiddenError):
			auction.submit_bid(open_job.id, self.driver, Decimal('90.00'), 20)

		bid = self.make_bid(open_job, self.driver)
		with patch('services.auction.bidding.notify_driver_event'):
			with self.assertRaises(ForbiddenError):
				auction.accept_bid(open_job.id, bid.id, self.customer)
		open_job.refresh_from_db()
		self.assertEqual(open_job.status, JobStatus.PENDING_BIDS)

	def test_driver_cancel_does_not_free_driver(self, mock_notify_driver, mock_notify_customer):
		job = self.assigned_job()
		cancellation.cancel_by_driver(job.id, self.driver, now=self.now)
		self.assertFalse(self.profile().is_available)

	def test_stale_strikes_are_forgiven_before_counting(self, mock_notify_driver, mock_notify_customer):
		DriverProfile.objects.filter(user=self.driver).update(
			cancellation_strikes=2,
			last_strike_reset_at=self.now - timedelta(days=40),
		)
		job = self.assigned_job()

		result = cancellation.cancel_by_driver(job.id, self.driver, now=self.now)

		self.assertEqual(result.extra['strike_count'], 1)
		self.assertFalse(self.profile().is_deactivated)

	def test_quiet_month_does_not_swallow_new_strikes(self, mock_notify_driver, mock_notify_customer):
		DriverProfile.objects.filter(user=self.driver).update(
			cancellation_strikes=0,
			last_strike_reset_at=self.now - timedelta(days=40),
		)

		outcomes = []
		for minutes in range(3):
			job = self.assigned_job()
			result = cancellation.cancel_by_driver(job.id, self.driver, now=self.now + timedelta(minutes=minutes))
			outcomes.append((result.extra['strike_count'], result.extra['account_deactivated']))

		self.assertEqual(outcomes, [(1, False), (2, False), (3, True)])
		self.assertEqual(self.profile().last_strike_reset_at, self.now)

	def test_only_assigned_driver_can_cancel(self, mock_notify_driver, mock_notify_customer):
		intruder = self.make_driver('driver_two')
		job = self.assigned_job()
		with self.assertRaises(UnauthorizedError):
			cancellation.cancel_by_driver(job.id, intruder, now=self.now)
		self.assertEqual(DriverProfile.objects.get(user=intruder).cancellation_strikes, 0)

	def test_cancel_over_http(self, mock_notify_driver, mock_notify_customer):
		job = self.assigned_job()
		factory = APIRequestFactory()
		request = factory.post('/api/cancellations/%d/driver/' % job.id, {'reason': 'Flat tyre'}, format='json')
		force_authenticate(request, user=self.driver)

		response = cancel_by_driver_view(request, job_id=job.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['strike_count'], 1)
		self.assertFalse(response.data['account_deactivated'])
		self.assertEqual(response.data['cancellation']['reason'], 'Flat tyre')


class StrikeResetTests(CancellationTestCase):
	def test_monthly_reset_clears_old_strikes_only(self):
		fresh = self.make_driver('driver_two')
		DriverProfile.objects.filter(user=self.driver).update(
			cancellation_strikes=2,
			last_strike_reset_at=self.now - timedelta(days=31),
		)
		DriverProfile.objects.filter(user=fresh).update(cancellation_strikes=1, last_strike_reset_at=self.now)

		self.assertEqual(cancellation.reset_monthly_strikes(now=self.now), 1)

		self.assertEqual(self.profile().cancellation_strikes, 0)
		self.assertEqual(self.profile().last_strike_reset_at, self.now)
		self.assertEqual(DriverProfile.objects.get(user=fresh).cancellation_strikes, 1)

	@patch('services.cancellation.policy.notify_customer_event')
	@patch('services.cancellation.policy.notify_driver_event')
	def test_first_strike_after_quiet_month_survives_the_sweep(self, mock_notify_driver, mock_notify_customer):
		DriverProfile.objects.filter(user=self.driver).update(last_strike_reset_at=self.now - timedelta(days=40))
		cancellation.cancel_by_driver(self.assigned_job().id, self.driver, now=self.now)

		self.assertEqual(cancellation.reset_monthly_strikes(now=self.now + timedelta(minutes=5)), 0)
		self.assertEqual(self.profile().cancellation_strikes, 1)
