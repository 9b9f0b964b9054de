from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

from celery.exceptions import Retry
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from common.utils.geo import calculate_distance
from drivers.models import DriverProfile, VehicleClass
from realtime import geo
from realtime.geo import NearbyDriver
from services import auction
from services.auction.state_machine import Effect, JobEvent, JobStateMachine
from services.dispatch import scheduler
from services.exceptions import (
	DuplicateBidError,
	ForbiddenError,
	InvalidStateError,
	InvalidTransitionError,
	UnauthorizedError,
)
from .models import Bid, BidStatus, Job, JobStatus
from .tasks import _retry_or_give_up, check_bids_task, run_dispatch_step_task
from .views import accept_bid as accept_bid_view, job_bids

PICKUP = (Decimal('28.613900'), Decimal('77.209000'))
DROPOFF = (Decimal('28.704100'), Decimal('77.102500'))


class FakeGeoIndex:
	"""In-memory stand-in for the Redis GEO set."""

	def __init__(self):
		self.positions = {}
		self.removed = []

	def add_driver(self, driver_id, lat, lon):
		self.positions[driver_id] = (float(lat), float(lon))
		return True

	def remove_driver(self, driver_id):
		self.positions.pop(driver_id, None)
		self.removed.append(driver_id)
		return True

	def refresh_position(self, driver_id, lat, lon):
		if driver_id in self.positions:
			self.positions[driver_id] = (float(lat), float(lon))
		return True

	def within_radius(self, lat, lon, radius_km):
		hits = []
		for driver_id, (d_lat, d_lon) in self.positions.items():
			distance_km = calculate_distance(lat, lon, d_lat, d_lon) / 1000
			if distance_km <= radius_km:
				hits.append(NearbyDriver(driver_id=driver_id, distance_km=distance_km))
		return sorted(hits, key=lambda hit: hit.distance_km)

	def ping(self):
		return True


class CoordinatorTestCase(TestCase):
	"""Users, a fake geo index and a job factory shared by the coordinator tests."""

	def setUp(self):
		self.geo_index = FakeGeoIndex()
		patcher = patch.object(geo, '_driver_location_service', self.geo_index)
		patcher.start()
		self.addCleanup(patcher.stop)

		self.customer = User.objects.create_user(
			username='customer',
			password='pass1234',
			role='customer',
			phone_number='9000000000'
		)
		self.other_customer = User.objects.create_user(
			username='other_customer',
			password='pass1234',
			role='customer',
			phone_number='9000000009'
		)

	def make_driver(self, username, lat_offset='0', vehicle_class=VehicleClass.BOX_VAN, indexed=True, **profile):
		user = User.objects.create_user(
			username=username,
			password='driver1234',
			role='driver',
			phone_number='9100000000'
		)
		lat = PICKUP[0] + Decimal(lat_offset)
		DriverProfile.objects.create(
			user=user,
			vehicle_class=vehicle_class,
			vehicle_plate='PLATE-%s' % username,
			verification_status=profile.pop('verification_status', 'APPROVED'),
			is_available=profile.pop('is_available', True),
			current_latitude=lat,
			current_longitude=PICKUP[1],
			**profile
		)
		if indexed:
			self.geo_index.add_driver(user.id, lat, PICKUP[1])
		return user

	def make_job(self, **fields):
		defaults = dict(
			customer=self.customer,
			pickup_latitude=PICKUP[0],
			pickup_longitude=PICKUP[1],
			dropoff_latitude=DROPOFF[0],
			dropoff_longitude=DROPOFF[1],
			vehicle_class=VehicleClass.BOX_VAN,
			distance_km=Decimal('14.20'),
			status=JobStatus.PENDING_BIDS,
		)
		defaults.update(fields)
		return Job.objects.create(**defaults)

	def make_bid(self, job, driver, price='80.00', expires_in=600, **fields):
		return Bid.objects.create(
			job=job,
			driver=driver,
			proposed_price=Decimal(price),
			eta_minutes=20,
			expires_at=timezone.now() + timedelta(seconds=expires_in),
			**fields
		)


class JobStateMachineTests(TestCase):
	def test_route_events_only_reach_the_next_status(self):
		self.assertEqual(
			JobStateMachine.event_for_status(JobStatus.BID_ACCEPTED, JobStatus.DRIVER_ARRIVING),
			JobEvent.START_ROUTE
		)
		self.assertEqual(
			JobStateMachine.event_for_status(JobStatus.IN_TRANSIT, JobStatus.DROPOFF_ARRIVED),
			JobEvent.ARRIVE_DROPOFF
		)
		with self.assertRaises(InvalidTransitionError):
			JobStateMachine.event_for_status(JobStatus.BID_ACCEPTED, JobStatus.LOADING)
		with self.assertRaises(InvalidTransitionError):
			JobStateMachine.event_for_status(JobStatus.DROPOFF_ARRIVED, JobStatus.COMPLETED)

	def test_pairs_missing_from_the_table_are_rejected(self):
		self.assertFalse(JobStateMachine.can_apply(JobStatus.COMPLETED, JobEvent.CANCEL))
		self.assertFalse(JobStateMachine.can_apply(JobStatus.BID_ACCEPTED, JobEvent.ACCEPT_BID))
		self.assertTrue(JobStateMachine.can_apply(JobStatus.DROPOFF_ARRIVED, JobEvent.CANCEL))
		with self.assertRaises(InvalidTransitionError):
			JobStateMachine.transition_for(JobStatus.CANCELLED, JobEvent.START_ROUTE)

	def test_completion_and_exhaustion_effects(self):
		completion = JobStateMachine.transition_for(JobStatus.DROPOFF_ARRIVED, JobEvent.CONFIRM_DELIVERY)
		self.assertEqual(completion.effects, (Effect.RELEASE_DRIVER, Effect.NOTIFY_BOTH))
		exhausted = JobStateMachine.transition_for(JobStatus.PENDING_BIDS, JobEvent.EXHAUST_DISPATCH)
		self.assertEqual(exhausted.effects, (Effect.NOTIFY_CUSTOMER,))

	def test_terminal_statuses(self):
		for status in (JobStatus.COMPLETED, JobStatus.CANCELLED, JobStatus.NO_DRIVERS_AVAILABLE):
			self.assertTrue(JobStateMachine.is_terminal(status))
		self.assertFalse(JobStateMachine.is_terminal(JobStatus.IN_TRANSIT))


class JobStateMachineApplyTests(CoordinatorTestCase):
	def test_apply_loses_against_a_concurrent_writer(self):
		driver = self.make_driver('driver_one')
		job = self.make_job(status=JobStatus.BID_ACCEPTED, driver=driver)
		stale = Job.objects.get(pk=job.pk)

		JobStateMachine.apply(job, JobEvent.START_ROUTE)
		self.assertEqual(job.status, JobStatus.DRIVER_ARRIVING)

		with self.assertRaises(InvalidStateError):
			JobStateMachine.apply(stale, JobEvent.CANCEL)

		job.refresh_from_db()
		self.assertEqual(job.status, JobStatus.DRIVER_ARRIVING)
		self.assertIsNone(job.cancelled_at)

	def test_apply_stamps_milestone_once(self):
		driver = self.make_driver('driver_one')
		job = self.make_job(status=JobStatus.DRIVER_ARRIVING, driver=driver)
		now = timezone.now()

		JobStateMachine.apply(job, JobEvent.ARRIVE_PICKUP, now=now)

		job.refresh_from_db()
		self.assertEqual(job.status, JobStatus.PICKUP_ARRIVED)
		self.assertEqual(job.pickup_arrived_at, now)


class CreateJobTests(CoordinatorTestCase):
	def test_create_job_prices_and_queues_dispatch(self):
		with patch.object(run_dispatch_step_task, 'apply_async') as mock_step:
			with self.captureOnCommitCallbacks(execute=True):
				result = auction.create_job(
					self.customer,
					PICKUP[0], PICKUP[1],
					DROPOFF[0], DROPOFF[1],
					VehicleClass.BOX_VAN,
					pickup_address='Connaught Place',
				)

		job = result.job
		self.assertTrue(result.success)
		self.assertEqual(job.status, JobStatus.PENDING_BIDS)
		self.assertGreater(job.distance_km, Decimal('0'))
		self.assertLess(job.estimated_min_price, job.estimated_max_price)
		mock_step.assert_called_once_with(args=[job.id, 0], countdown=0.1)

	def test_drivers_cannot_post_jobs(self):
		driver = self.make_driver('driver_one')
		with self.assertRaises(ForbiddenError):
			auction.create_job(driver, PICKUP[0], PICKUP[1], DROPOFF[0], DROPOFF[1], VehicleClass.BOX_VAN)
		self.assertFalse(Job.objects.exists())


class SubmitBidTests(CoordinatorTestCase):
	def setUp(self):
		super().setUp()
		self.driver = self.make_driver('driver_one')
		self.job = self.make_job()

	@patch('services.auction.bidding.notify_customer_event')
	def test_bid_is_active_and_customer_notified(self, mock_notify_customer):
		with self.captureOnCommitCallbacks(execute=True):
			bid = auction.submit_bid(self.job.id, self.driver, Decimal('75.00'), 25, note='Two helpers')

		self.assertEqual(bid.status, BidStatus.ACTIVE)
		self.assertGreater(bid.expires_at, timezone.now() + timedelta(seconds=590))
		mock_notify_customer.assert_called_once()
		self.assertEqual(mock_notify_customer.call_args.args[0], 'new_bid')

	def test_second_live_bid_is_a_duplicate(self):
		auction.submit_bid(self.job.id, self.driver, Decimal('75.00'), 25)
		with self.assertRaises(DuplicateBidError):
			auction.submit_bid(self.job.id, self.driver, Decimal('70.00'), 25)
		self.assertEqual(self.job.bids.count(), 1)

	def test_lapsed_bid_can_be_replaced(self):
		old = self.make_bid(self.job, self.driver, expires_in=-5)

		bid = auction.submit_bid(self.job.id, self.driver, Decimal('70.00'), 25)

		old.refresh_from_db()
		self.assertEqual(old.status, BidStatus.EXPIRED)
		self.assertEqual(bid.status, BidStatus.ACTIVE)

	def test_deactivated_driver_cannot_bid(self):
		DriverProfile.objects.filter(user=self.driver).update(is_deactivated=True)
		with self.assertRaises(ForbiddenError):
			auction.submit_bid(self.job.id, self.driver, Decimal('75.00'), 25)

	def test_closed_job_rejects_bids(self):
		Job.objects.filter(pk=self.job.pk).update(status=JobStatus.CANCELLED)
		with self.assertRaises(InvalidStateError):
			auction.submit_bid(self.job.id, self.driver, Decimal('75.00'), 25)


@patch('services.auction.bidding.notify_customer_event')
@patch('services.auction.bidding.notify_driver_event')
class AcceptBidTests(CoordinatorTestCase):
	def setUp(self):
		super().setUp()
		self.driver_one = self.make_driver('driver_one')
		self.driver_two = self.make_driver('driver_two')
		self.driver_three = self.make_driver('driver_three')
		self.job = self.make_job()
		self.bid_one = self.make_bid(self.job, self.driver_one, price='80.00')
		self.bid_two = self.make_bid(self.job, self.driver_two, price='72.50')
		self.bid_three = self.make_bid(self.job, self.driver_three, price='90.00')

	def test_accept_assigns_driver_and_rejects_other_bids(self, mock_notify_driver, mock_notify_customer):
		with self.captureOnCommitCallbacks(execute=True):
			result = auction.accept_bid(self.job.id, self.bid_two.id, self.customer)

		self.assertTrue(result.success)
		self.job.refresh_from_db()
		self.assertEqual(self.job.status, JobStatus.BID_ACCEPTED)
		self.assertEqual(self.job.driver, self.driver_two)
		self.assertEqual(self.job.final_price, Decimal('72.50'))
		self.assertEqual(self.job.winning_bid_id, self.bid_two.id)
		self.assertIsNotNone(self.job.accepted_at)

		statuses = dict(self.job.bids.values_list('id', 'status'))
		self.assertEqual(statuses[self.bid_two.id], BidStatus.ACCEPTED)
		self.assertEqual(statuses[self.bid_one.id], BidStatus.REJECTED)
		self.assertEqual(statuses[self.bid_three.id], BidStatus.REJECTED)
		self.assertFalse(self.job.bids.filter(status=BidStatus.ACTIVE).exists())

		self.assertFalse(DriverProfile.objects.get(user=self.driver_two).is_available)
		self.assertNotIn(self.driver_two.id, self.geo_index.positions)

		events = [(c.args[0], c.args[2]) for c in mock_notify_driver.call_args_list]
		self.assertIn(('bid_accepted', self.driver_two.id), events)
		self.assertIn(('bid_rejected', self.driver_one.id), events)
		self.assertIn(('bid_rejected', self.driver_three.id), events)
		mock_notify_customer.assert_called_once()

	def test_only_one_bid_is_ever_accepted(self, mock_notify_driver, mock_notify_customer):
		auction.accept_bid(self.job.id, self.bid_one.id, self.customer)

		with self.assertRaises(InvalidStateError):
			auction.accept_bid(self.job.id, self.bid_two.id, self.customer)

		self.assertEqual(self.job.bids.filter(status=BidStatus.ACCEPTED).count(), 1)
		self.job.refresh_from_db()
		self.assertEqual(self.job.driver, self.driver_one)

	def test_only_job_owner_can_accept(self, mock_notify_driver, mock_notify_customer):
		with self.assertRaises(UnauthorizedError):
			auction.accept_bid(self.job.id, self.bid_one.id, self.other_customer)
		self.bid_one.refresh_from_db()
		self.assertEqual(self.bid_one.status, BidStatus.ACTIVE)

	def test_expired_bid_cannot_be_accepted(self, mock_notify_driver, mock_notify_customer):
		Bid.objects.filter(pk=self.bid_one.pk).update(expires_at=timezone.now() - timedelta(seconds=1))
		with self.assertRaises(InvalidStateError):
			auction.accept_bid(self.job.id, self.bid_one.id, self.customer)
		self.job.refresh_from_db()
		self.assertEqual(self.job.status, JobStatus.PENDING_BIDS)

	def test_busy_driver_cannot_be_booked_twice(self, mock_notify_driver, mock_notify_customer):
		DriverProfile.objects.filter(user=self.driver_one).update(is_available=False)
		with self.assertRaises(InvalidStateError):
			auction.accept_bid(self.job.id, self.bid_one.id, self.customer)


class AdvanceStatusTests(CoordinatorTestCase):
	def setUp(self):
		super().setUp()
		self.driver = self.make_driver('driver_one', is_available=False, indexed=False)
		self.job = self.make_job(status=JobStatus.BID_ACCEPTED, driver=self.driver, final_price=Decimal('80.00'))

	@patch('services.auction.bidding.notify_both_parties')
	def test_driver_walks_the_route_in_order(self, mock_notify_both):
		route = [
			JobStatus.DRIVER_ARRIVING,
			JobStatus.PICKUP_ARRIVED,
			JobStatus.LOADING,
			JobStatus.IN_TRANSIT,
			JobStatus.DROPOFF_ARRIVED,
		]
		with self.captureOnCommitCallbacks(execute=True):
			for status in route:
				auction.advance_status(self.job.id, self.driver, status)

		self.job.refresh_from_db()
		self.assertEqual(self.job.status, JobStatus.DROPOFF_ARRIVED)
		self.assertIsNotNone(self.job.pickup_arrived_at)
		self.assertIsNotNone(self.job.dropoff_arrived_at)
		self.assertEqual(mock_notify_both.call_count, len(route))

	def test_skipping_ahead_is_rejected(self):
		with self.assertRaises(InvalidTransitionError):
			auction.advance_status(self.job.id, self.driver, JobStatus.IN_TRANSIT)

	def test_completion_is_not_a_driver_status(self):
		Job.objects.filter(pk=self.job.pk).update(status=JobStatus.DROPOFF_ARRIVED)
		with self.assertRaises(InvalidTransitionError):
			auction.advance_status(self.job.id, self.driver, JobStatus.COMPLETED)

	def test_other_driver_cannot_update(self):
		intruder = self.make_driver('driver_two')
		with self.assertRaises(UnauthorizedError):
			auction.advance_status(self.job.id, intruder, JobStatus.DRIVER_ARRIVING)


class ExpireStaleBidsTests(CoordinatorTestCase):
	@patch('services.auction.bidding.notify_driver_event')
	def test_only_lapsed_active_bids_expire(self, mock_notify_driver):
		driver_one = self.make_driver('driver_one')
		driver_two = self.make_driver('driver_two')
		job = self.make_job()
		lapsed = self.make_bid(job, driver_one, expires_in=-60)
		live = self.make_bid(job, driver_two, expires_in=300)

		self.assertEqual(auction.expire_stale_bids(), 1)

		lapsed.refresh_from_db()
		live.refresh_from_db()
		self.assertEqual(lapsed.status, BidStatus.EXPIRED)
		self.assertEqual(live.status, BidStatus.ACTIVE)
		mock_notify_driver.assert_called_once()
		self.assertEqual(mock_notify_driver.call_args.args[0], 'bid_expired')
		self.assertEqual(auction.expire_stale_bids(), 0)


@patch('services.dispatch.scheduler.notify_customer_event')
@patch('services.dispatch.scheduler.notify_driver_event')
class DispatchEscalationTests(CoordinatorTestCase):
	def setUp(self):
		super().setUp()
		self.job = self.make_job()
		# ~14.5 to 15.6 km north of the pickup: outside the 5 and 10 km tiers, inside 20 km
		self.far_drivers = [
			self.make_driver('far_one', lat_offset='0.130'),
			self.make_driver('far_two', lat_offset='0.135'),
			self.make_driver('far_three', lat_offset='0.140'),
		]
		# Same distance but the wrong vehicle, offline or unverified
		self.make_driver('far_truck', lat_offset='0.132', vehicle_class=VehicleClass.HEAVY_TRUCK)
		self.make_driver('far_unverified', lat_offset='0.133', verification_status='PENDING')
		self.make_driver('far_deactivated', lat_offset='0.134', is_deactivated=True)

		step_patcher = patch.object(run_dispatch_step_task, 'apply_async')
		check_patcher = patch.object(check_bids_task, 'apply_async')
		self.mock_step = step_patcher.start()
		self.mock_check = check_patcher.start()
		self.addCleanup(step_patcher.stop)
		self.addCleanup(check_patcher.stop)

	def test_third_tier_drivers_notified_and_escalation_halts_on_first_bid(self, mock_notify_driver, mock_notify_customer):
		outcome = scheduler.run_dispatch_step(self.job.id, 0)
		self.assertEqual(outcome.outcome, scheduler.ESCALATED)
		self.mock_step.assert_called_with(args=[self.job.id, 1], countdown=1)

		outcome = scheduler.run_dispatch_step(self.job.id, 1)
		self.assertEqual(outcome.outcome, scheduler.ESCALATED)
		self.mock_step.assert_called_with(args=[self.job.id, 2], countdown=1)
		mock_notify_driver.assert_not_called()

		outcome = scheduler.run_dispatch_step(self.job.id, 2)
		self.assertEqual(outcome.outcome, scheduler.DRIVERS_NOTIFIED)
		self.assertEqual(outcome.notified_driver_ids, [driver.id for driver in self.far_drivers])
		self.assertEqual(
			sorted(c.args[2] for c in mock_notify_driver.call_args_list),
			sorted(driver.id for driver in self.far_drivers)
		)
		self.assertTrue(all(c.args[0] == 'job_request' for c in mock_notify_driver.call_args_list))
		self.mock_check.assert_called_once_with(args=[self.job.id, 2], countdown=120)

		self.job.refresh_from_db()
		self.assertEqual(self.job.status, JobStatus.PENDING_BIDS)
		self.assertEqual(self.job.dispatch_step, 2)

		auction.submit_bid(self.job.id, self.far_drivers[1], Decimal('95.00'), 30)
		self.mock_step.reset_mock()

		outcome = scheduler.check_bids_and_continue(self.job.id, 2)
		self.assertEqual(outcome.outcome, scheduler.BIDS_RECEIVED)
		self.assertEqual(outcome.bid_count, 1)
		self.mock_step.assert_not_called()
		self.assertEqual(mock_notify_customer.call_args.args[0], 'job_bids_received')

	def test_no_notifications_after_acceptance_mid_escalation(self, mock_notify_driver, mock_notify_customer):
		scheduler.run_dispatch_step(self.job.id, 0)

		bid = self.make_bid(self.job, self.far_drivers[0])
		with patch('services.auction.bidding.notify_driver_event'), \
				patch('services.auction.bidding.notify_customer_event'):
			auction.accept_bid(self.job.id, bid.id, self.customer)
		self.mock_step.reset_mock()

		for step in (1, 2, 3):
			outcome = scheduler.run_dispatch_step(self.job.id, step)
			self.assertEqual(outcome.outcome, scheduler.JOB_NOT_PENDING)
		outcome = scheduler.check_bids_and_continue(self.job.id, 2)
		self.assertEqual(outcome.outcome, scheduler.JOB_NOT_PENDING)

		mock_notify_driver.assert_not_called()
		self.mock_step.assert_not_called()
		self.mock_check.assert_not_called()

	def test_acceptance_during_a_step_suppresses_its_notifications(self, mock_notify_driver, mock_notify_customer):
		original = self.geo_index.within_radius

		def accept_meanwhile(lat, lon, radius_km):
			Job.objects.filter(pk=self.job.pk).update(status=JobStatus.BID_ACCEPTED)
			return original(lat, lon, radius_km)

		with patch.object(self.geo_index, 'within_radius', side_effect=accept_meanwhile):
			outcome = scheduler.run_dispatch_step(self.job.id, 2)

		self.assertEqual(outcome.outcome, scheduler.JOB_NOT_PENDING)
		mock_notify_driver.assert_not_called()
		self.mock_check.assert_not_called()

	def test_exhausted_ladder_marks_no_drivers(self, mock_notify_driver, mock_notify_customer):
		self.geo_index.positions.clear()

		outcome = scheduler.run_dispatch_step(self.job.id, 3)

		self.assertEqual(outcome.outcome, scheduler.NO_DRIVERS)
		self.job.refresh_from_db()
		self.assertEqual(self.job.status, JobStatus.NO_DRIVERS_AVAILABLE)
		mock_notify_customer.assert_called_once()
		self.assertEqual(mock_notify_customer.call_args.args[0], 'job_no_drivers')
		self.mock_step.assert_not_called()

	def test_no_bids_widens_the_search(self, mock_notify_driver, mock_notify_customer):
		outcome = scheduler.check_bids_and_continue(self.job.id, 2)

		self.assertEqual(outcome.outcome, scheduler.ESCALATED)
		self.mock_step.assert_called_once_with(args=[self.job.id, 3], countdown=1)

	def test_failed_step_escalates_once_retries_are_spent(self, mock_notify_driver, mock_notify_customer):
		task = MagicMock()
		task.request.retries = 3

		result = _retry_or_give_up(task, RuntimeError('redis down'), self.job.id, 0, 'Dispatch step')

		self.assertEqual(result['outcome'], scheduler.ESCALATED)
		task.retry.assert_not_called()
		self.mock_step.assert_called_once_with(args=[self.job.id, 1], countdown=1)

	def test_failed_step_retries_with_backoff(self, mock_notify_driver, mock_notify_customer):
		task = MagicMock()
		task.request.retries = 1
		task.retry.return_value = Retry()

		with self.assertRaises(Retry):
			_retry_or_give_up(task, RuntimeError('redis down'), self.job.id, 0, 'Dispatch step')

		self.assertEqual(task.retry.call_args.kwargs['countdown'], 10)
		self.mock_step.assert_not_called()


class JobApiTests(CoordinatorTestCase):
	def setUp(self):
		super().setUp()
		self.factory = APIRequestFactory()
		self.driver = self.make_driver('driver_one')
		self.job = self.make_job()

	def test_bid_then_accept_over_http(self):
		request = self.factory.post(
			'/api/jobs/%d/bids/' % self.job.id,
			{'proposed_price': '82.00', 'eta_minutes': 15},
			format='json'
		)
		force_authenticate(request, user=self.driver)
		response = job_bids(request, job_id=self.job.id)
		self.assertEqual(response.status_code, 201)
		bid_id = response.data['id']

		request = self.factory.post(
			'/api/jobs/%d/bids/' % self.job.id,
			{'proposed_price': '80.00', 'eta_minutes': 15},
			format='json'
		)
		force_authenticate(request, user=self.driver)
		response = job_bids(request, job_id=self.job.id)
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['code'], 'duplicate_bid')

		request = self.factory.post('/api/jobs/%d/accept-bid/' % self.job.id, {'bid_id': bid_id}, format='json')
		force_authenticate(request, user=self.customer)
		response = accept_bid_view(request, job_id=self.job.id)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['job']['status'], JobStatus.BID_ACCEPTED)

	def test_customer_cannot_bid(self):
		request = self.factory.post(
			'/api/jobs/%d/bids/' % self.job.id,
			{'proposed_price': '82.00', 'eta_minutes': 15},
			format='json'
		)
		force_authenticate(request, user=self.customer)
		response = job_bids(request, job_id=self.job.id)
		self.assertEqual(response.status_code, 403)
