import json
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import requests
from django.utils import timezone
from rest_framework.test import APIRequestFactory

from drivers.models import DriverProfile
from jobs.models import Job, JobStatus
from jobs.tests import CoordinatorTestCase, DROPOFF
from services import cancellation, escrow
from services.escrow import coordinator, gateways
from services.exceptions import (
	GatewayFailureError,
	InvalidStateError,
	NotFoundError,
	OutOfOrderError,
	UnauthorizedError,
)
from .models import DriverEarning, Payment, PaymentMethod, PaymentStatus
from .views import gateway_webhook


class EscrowTestCase(CoordinatorTestCase):
	def setUp(self):
		super().setUp()
		self.driver = self.make_driver('driver_one', is_available=False, indexed=False)
		DriverProfile.objects.filter(user=self.driver).update(
			current_latitude=DROPOFF[0],
			current_longitude=DROPOFF[1],
		)
		self.job = self.make_job(
			status=JobStatus.BID_ACCEPTED,
			driver=self.driver,
			final_price=Decimal('100.00'),
			accepted_at=timezone.now(),
		)

	def start_cash_payment(self, job=None):
		job = job or self.job
		with patch('services.escrow.coordinator.notify_driver_event'):
			return escrow.initiate_payment(job.id, PaymentMethod.CASH, customer=self.customer)

	def arrive_and_hold(self, job=None):
		job = job or self.job
		Job.objects.filter(pk=job.pk).update(status=JobStatus.DROPOFF_ARRIVED, dropoff_arrived_at=timezone.now())
		with patch('services.escrow.coordinator.notify_customer_event'):
			return escrow.hold_payment(job.id, self.driver)

	def profile(self):
		return DriverProfile.objects.get(user=self.driver)


class InitiatePaymentTests(EscrowTestCase):
	@patch('services.escrow.coordinator.notify_driver_event')
	def test_cash_payment_splits_platform_fee(self, mock_notify_driver):
		with self.captureOnCommitCallbacks(execute=True):
			payment = escrow.initiate_payment(self.job.id, PaymentMethod.CASH, customer=self.customer)

		self.assertEqual(payment.status, PaymentStatus.PENDING)
		self.assertEqual(payment.total_amount, Decimal('100.00'))
		self.assertEqual(payment.platform_fee, Decimal('15.00'))
		self.assertEqual(payment.driver_amount, Decimal('85.00'))
		self.assertEqual(payment.provider_ref, '')
		mock_notify_driver.assert_called_once()
		self.assertEqual(mock_notify_driver.call_args.args[0], 'payment_initiated')

	@patch('services.escrow.gateways.requests.post')
	def test_card_payment_opens_gateway_charge(self, mock_post):
		response = MagicMock()
		response.json.return_value = {'reference': 'pay_123', 'payment_url': 'https://gateway.test/pay/123'}
		mock_post.return_value = response

		with patch('services.escrow.coordinator.notify_driver_event'):
			payment = escrow.initiate_payment(self.job.id, PaymentMethod.CARD, customer=self.customer)

		self.assertEqual(payment.provider_ref, 'pay_123')
		self.assertEqual(payment.payment_url, 'https://gateway.test/pay/123')
		self.assertEqual(mock_post.call_args.args[0], 'https://gateway.test/api/payments')
		self.assertEqual(mock_post.call_args.kwargs['json']['amount'], '100.00')

	@patch('services.escrow.gateways.requests.post', side_effect=requests.ConnectionError('boom'))
	def test_gateway_failure_writes_nothing(self, mock_post):
		with self.assertRaises(GatewayFailureError):
			escrow.initiate_payment(self.job.id, PaymentMethod.WALLET, customer=self.customer)

		self.assertFalse(Payment.objects.filter(job=self.job).exists())
		self.job.refresh_from_db()
		self.assertEqual(self.job.status, JobStatus.BID_ACCEPTED)

	def test_payment_needs_an_accepted_bid(self):
		job = self.make_job()
		with self.assertRaises(InvalidStateError):
			escrow.initiate_payment(job.id, PaymentMethod.CASH, customer=self.customer)

	def test_only_owner_can_pay(self):
		with self.assertRaises(UnauthorizedError):
			escrow.initiate_payment(self.job.id, PaymentMethod.CASH, customer=self.other_customer)

	def test_payment_on_hold_cannot_be_restarted(self):
		self.start_cash_payment()
		self.arrive_and_hold()
		with self.assertRaises(InvalidStateError):
			self.start_cash_payment()


class HoldPaymentTests(EscrowTestCase):
	def test_hold_requires_dropoff_arrival(self):
		self.start_cash_payment()
		Job.objects.filter(pk=self.job.pk).update(status=JobStatus.IN_TRANSIT)
		with self.assertRaises(InvalidStateError):
			escrow.hold_payment(self.job.id, self.driver)

	def test_hold_moves_payment_on_hold(self):
		self.start_cash_payment()
		payment = self.arrive_and_hold()
		self.assertEqual(payment.status, PaymentStatus.ON_HOLD)
		self.assertIsNotNone(payment.on_hold_at)

	def test_hold_without_payment(self):
		Job.objects.filter(pk=self.job.pk).update(status=JobStatus.DROPOFF_ARRIVED)
		with self.assertRaises(NotFoundError):
			escrow.hold_payment(self.job.id, self.driver)


@patch('services.escrow.coordinator.notify_both_parties')
@patch('services.escrow.coordinator.notify_customer_event')
class DualConfirmationTests(EscrowTestCase):
	def setUp(self):
		super().setUp()
		self.start_cash_payment()
		self.arrive_and_hold()

	def test_customer_cannot_confirm_first(self, mock_notify_customer, mock_notify_both):
		with self.assertRaises(OutOfOrderError):
			escrow.confirm_delivery(self.job.id, self.customer)
		self.assertEqual(Payment.objects.get(job=self.job).status, PaymentStatus.ON_HOLD)

	def test_driver_then_customer_releases_payment(self, mock_notify_customer, mock_notify_both):
		result = escrow.confirm_delivery(self.job.id, self.driver)
		self.assertFalse(result.extra['finalized'])
		self.job.refresh_from_db()
		self.assertIsNotNone(self.job.driver_confirmed_at)
		self.assertEqual(self.job.status, JobStatus.DROPOFF_ARRIVED)

		with self.captureOnCommitCallbacks(execute=True):
			result = escrow.confirm_delivery(self.job.id, self.customer)

		self.assertTrue(result.extra['finalized'])
		self.assertEqual(result.job.status, JobStatus.COMPLETED)
		payment = Payment.objects.get(job=self.job)
		self.assertEqual(payment.status, PaymentStatus.COMPLETED)
		self.assertTrue(payment.confirmed_by_customer)
		self.assertFalse(payment.confirmed_by_sweep)

		earning = DriverEarning.objects.get(job=self.job)
		self.assertEqual(earning.net, Decimal('85.00'))
		profile = self.profile()
		self.assertEqual(profile.total_earnings, Decimal('85.00'))
		self.assertEqual(profile.total_rides, 1)
		self.assertTrue(profile.is_available)
		self.assertIn(self.driver.id, self.geo_index.positions)

		mock_notify_both.assert_called_once()
		self.assertEqual(mock_notify_both.call_args.args[0], 'job_completed')

	def test_driver_cannot_confirm_before_dropoff(self, mock_notify_customer, mock_notify_both):
		Job.objects.filter(pk=self.job.pk).update(status=JobStatus.IN_TRANSIT)
		with self.assertRaises(InvalidStateError):
			escrow.confirm_delivery(self.job.id, self.driver)
		self.assertIsNone(Job.objects.get(pk=self.job.pk).driver_confirmed_at)

	def test_outsider_cannot_confirm(self, mock_notify_customer, mock_notify_both):
		with self.assertRaises(UnauthorizedError):
			escrow.confirm_delivery(self.job.id, self.other_customer)

	def test_payout_is_credited_once_across_release_paths(self, mock_notify_customer, mock_notify_both):
		escrow.confirm_delivery(self.job.id, self.driver)
		escrow.confirm_delivery(self.job.id, self.customer)

		self.assertFalse(escrow.finalize(self.job.id, coordinator.SOURCE_SWEEP))
		self.assertFalse(escrow.finalize(self.job.id, coordinator.SOURCE_GATEWAY))
		result = escrow.auto_confirm_sweep(now=timezone.now() + timedelta(hours=1))

		self.assertEqual(result.checked, 0)
		self.assertEqual(DriverEarning.objects.filter(job=self.job).count(), 1)
		self.assertEqual(self.profile().total_earnings, Decimal('85.00'))
		self.assertEqual(self.profile().total_rides, 1)

	def test_existing_payout_row_is_not_credited_again(self, mock_notify_customer, mock_notify_both):
		DriverEarning.objects.create(
			job=self.job,
			driver=self.driver,
			gross=Decimal('100.00'),
			platform_fee=Decimal('15.00'),
			net=Decimal('85.00'),
		)

		self.assertTrue(escrow.finalize(self.job.id, coordinator.SOURCE_CUSTOMER))

		self.assertEqual(DriverEarning.objects.filter(job=self.job).count(), 1)
		self.assertEqual(self.profile().total_earnings, Decimal('0.00'))
		self.assertTrue(self.profile().is_available)


@patch('services.escrow.coordinator.notify_both_parties')
class AutoConfirmSweepTests(EscrowTestCase):
	def setUp(self):
		super().setUp()
		self.start_cash_payment()
		self.arrive_and_hold()

	def test_sweep_releases_stalled_hold_after_sixteen_minutes(self, mock_notify_both):
		later = timezone.now() + timedelta(minutes=16)

		with self.captureOnCommitCallbacks(execute=True):
			result = escrow.auto_confirm_sweep(now=later)

		self.assertEqual((result.checked, result.confirmed, result.failed), (1, 1, 0))
		self.job.refresh_from_db()
		self.assertEqual(self.job.status, JobStatus.COMPLETED)
		payment = Payment.objects.get(job=self.job)
		self.assertEqual(payment.status, PaymentStatus.COMPLETED)
		self.assertTrue(payment.confirmed_by_sweep)
		self.assertEqual(payment.auto_confirmed_at, later)
		self.assertEqual(DriverEarning.objects.filter(job=self.job).count(), 1)
		self.assertEqual(self.profile().total_earnings, Decimal('85.00'))

		mock_notify_both.assert_called_once()
		self.assertEqual(mock_notify_both.call_args.args[0], 'payment_auto_confirmed')

		result = escrow.auto_confirm_sweep(now=later + timedelta(minutes=2))
		self.assertEqual(result.checked, 0)
		self.assertEqual(DriverEarning.objects.filter(job=self.job).count(), 1)

	def test_recent_holds_are_left_alone(self, mock_notify_both):
		result = escrow.auto_confirm_sweep(now=timezone.now() + timedelta(minutes=10))
		self.assertEqual(result.checked, 0)
		self.assertEqual(Payment.objects.get(job=self.job).status, PaymentStatus.ON_HOLD)

	def test_driver_outside_geofence_is_skipped(self, mock_notify_both):
		# ~1.1 km north of the dropoff
		DriverProfile.objects.filter(user=self.driver).update(current_latitude=DROPOFF[0] + Decimal('0.010'))

		result = escrow.auto_confirm_sweep(now=timezone.now() + timedelta(minutes=16))

		self.assertEqual((result.checked, result.confirmed), (1, 0))
		self.assertEqual(result.details[0]['outcome'], 'skipped')
		self.assertEqual(Payment.objects.get(job=self.job).status, PaymentStatus.ON_HOLD)
		self.assertFalse(DriverEarning.objects.exists())

	def test_one_failing_record_does_not_stop_the_sweep(self, mock_notify_both):
		other_job = self.make_job(
			status=JobStatus.BID_ACCEPTED,
			driver=self.driver,
			final_price=Decimal('60.00'),
			accepted_at=timezone.now(),
		)
		self.start_cash_payment(other_job)
		self.arrive_and_hold(other_job)
		real_finalize = coordinator.finalize

		def flaky_finalize(job_id, source, now=None):
			if job_id == self.job.id:
				raise RuntimeError('database hiccup')
			return real_finalize(job_id, source, now=now)

		with patch('services.escrow.coordinator.finalize', side_effect=flaky_finalize):
			result = escrow.auto_confirm_sweep(now=timezone.now() + timedelta(minutes=16))

		self.assertEqual((result.checked, result.confirmed, result.failed), (2, 1, 1))
		self.assertEqual(Payment.objects.get(job=self.job).status, PaymentStatus.ON_HOLD)
		self.assertEqual(Payment.objects.get(job=other_job).status, PaymentStatus.COMPLETED)


@patch('services.escrow.coordinator.notify_both_parties')
@patch('services.escrow.coordinator.notify_customer_event')
class GatewayCallbackTests(EscrowTestCase):
	def setUp(self):
		super().setUp()
		self.factory = APIRequestFactory()
		self.start_cash_payment()
		Payment.objects.filter(job=self.job).update(method=PaymentMethod.CARD, provider_ref='pay_789')

	def post_webhook(self, body, signature=None):
		raw = json.dumps(body).encode()
		request = self.factory.post(
			'/api/payments/webhook/',
			raw,
			content_type='application/json',
			HTTP_X_PAYMENT_SIGNATURE=signature if signature is not None else gateways.sign_payload(raw),
		)
		return gateway_webhook(request)

	def test_capture_before_hold_only_records_it(self, mock_notify_customer, mock_notify_both):
		self.assertEqual(escrow.handle_gateway_callback('pay_789', True), 'captured')
		payment = Payment.objects.get(job=self.job)
		self.assertEqual(payment.status, PaymentStatus.PENDING)
		self.assertTrue(payment.gateway_captured)

	def test_success_on_hold_releases_payment(self, mock_notify_customer, mock_notify_both):
		self.arrive_and_hold()

		self.assertEqual(escrow.handle_gateway_callback('pay_789', True), 'finalized')
		payment = Payment.objects.get(job=self.job)
		self.assertTrue(payment.confirmed_by_gateway)
		self.assertEqual(DriverEarning.objects.filter(job=self.job).count(), 1)
		self.assertEqual(escrow.handle_gateway_callback('pay_789', True), 'ignored')

	def test_failure_marks_payment_failed(self, mock_notify_customer, mock_notify_both):
		with self.captureOnCommitCallbacks(execute=True):
			self.assertEqual(escrow.handle_gateway_callback('pay_789', False), 'failed')

		self.assertEqual(Payment.objects.get(job=self.job).status, PaymentStatus.FAILED)
		self.assertEqual(mock_notify_customer.call_args.args[0], 'payment_failed')

	def test_unknown_reference(self, mock_notify_customer, mock_notify_both):
		with self.assertRaises(NotFoundError):
			escrow.handle_gateway_callback('nope', True)

	def test_webhook_rejects_bad_signature(self, mock_notify_customer, mock_notify_both):
		response = self.post_webhook({'reference': 'pay_789', 'status': 'SUCCESS'}, signature='deadbeef')
		self.assertEqual(response.status_code, 401)
		self.assertFalse(Payment.objects.get(job=self.job).gateway_captured)

	def test_webhook_applies_signed_result(self, mock_notify_customer, mock_notify_both):
		response = self.post_webhook({'reference': 'pay_789', 'status': 'SUCCESS'})
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['outcome'], 'captured')

	def test_callbacks_after_cancellation_are_ignored(self, mock_notify_customer, mock_notify_both):
		self.arrive_and_hold()
		with patch('services.cancellation.policy.notify_customer_event'), \
				patch('services.cancellation.policy.notify_driver_event'):
			cancellation.cancel_by_customer(self.job.id, self.customer, 'Changed plans')

		payment = Payment.objects.get(job=self.job)
		self.assertEqual(payment.status, PaymentStatus.REFUNDED)
		self.assertIsNotNone(payment.refunded_at)

		self.assertEqual(escrow.handle_gateway_callback('pay_789', True), 'ignored')
		self.assertEqual(escrow.handle_gateway_callback('pay_789', False), 'ignored')
		self.assertFalse(coordinator.finalize(self.job.id, coordinator.SOURCE_GATEWAY))

		response = self.post_webhook({'reference': 'pay_789', 'status': 'SUCCESS'})
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['outcome'], 'ignored')

		self.assertEqual(Payment.objects.get(job=self.job).status, PaymentStatus.REFUNDED)
		self.assertEqual(Job.objects.get(pk=self.job.pk).status, JobStatus.CANCELLED)
		self.assertFalse(DriverEarning.objects.exists())
		mock_notify_both.assert_not_called()
