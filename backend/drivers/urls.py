from django.urls import path
from .views import (
    DriverProfileView,
    DriverAvailabilityView,
    DriverLocationUpdateView,
    DriverCurrentJobView,
    DriverEarningsView,
)

urlpatterns = [
    path("profile/", DriverProfileView.as_view(), name="driver-profile"),
    path("availability/", DriverAvailabilityView.as_view(), name="driver-availability"),
    path("location/", DriverLocationUpdateView.as_view(), name="driver-location"),
    path("current-job/", DriverCurrentJobView.as_view(), name="driver-current-job"),
    path("earnings/", DriverEarningsView.as_view(), name="driver-earnings"),
]
