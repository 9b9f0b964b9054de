from decimal import Decimal

from rest_framework.test import APIRequestFactory, force_authenticate

from jobs.models import JobStatus
from jobs.tests import CoordinatorTestCase, PICKUP
from services.exceptions import ForbiddenError, InvalidStateError
from .models import DriverProfile
from .services import set_availability, update_driver_location
from .views import DriverAvailabilityView


class DriverAvailabilityTests(CoordinatorTestCase):
	def setUp(self):
		super().setUp()
		self.driver = self.make_driver('driver_one', is_available=False, indexed=False)
		self.profile = DriverProfile.objects.get(user=self.driver)

	def test_going_online_joins_geo_index(self):
		with self.captureOnCommitCallbacks(execute=True):
			set_availability(self.profile, True)

		self.assertTrue(DriverProfile.objects.get(pk=self.profile.pk).is_available)
		self.assertIn(self.driver.id, self.geo_index.positions)

		with self.captureOnCommitCallbacks(execute=True):
			set_availability(self.profile, False)
		self.assertNotIn(self.driver.id, self.geo_index.positions)

	def test_cannot_toggle_during_a_job(self):
		self.make_job(status=JobStatus.IN_TRANSIT, driver=self.driver)
		with self.assertRaises(InvalidStateError):
			set_availability(self.profile, True)

	def test_deactivated_driver_stays_offline(self):
		DriverProfile.objects.filter(pk=self.profile.pk).update(is_deactivated=True)
		with self.assertRaises(ForbiddenError):
			set_availability(self.profile, True)
		self.assertNotIn(self.driver.id, self.geo_index.positions)

	def test_location_update_only_moves_indexed_drivers(self):
		update_driver_location(self.profile, Decimal('28.620000'), PICKUP[1])
		self.assertNotIn(self.driver.id, self.geo_index.positions)
		self.assertEqual(DriverProfile.objects.get(pk=self.profile.pk).current_latitude, Decimal('28.620000'))

		self.geo_index.add_driver(self.driver.id, PICKUP[0], PICKUP[1])
		update_driver_location(self.profile, Decimal('28.630000'), PICKUP[1])
		self.assertEqual(self.geo_index.positions[self.driver.id], (28.63, float(PICKUP[1])))

	def test_customers_cannot_use_driver_endpoints(self):
		request = APIRequestFactory().put('/api/driver/availability/', {'is_available': True}, format='json')
		force_authenticate(request, user=self.customer)
		response = DriverAvailabilityView.as_view()(request)
		self.assertEqual(response.status_code, 403)
