from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from common.utils.api import error_response
from drivers.models import DriverProfile
from drivers.serializers import (
    DriverProfileSerializer,
    DriverAvailabilitySerializer,
    LocationUpdateSerializer,
)
from jobs.models import Job, TERMINAL_STATUSES
from jobs.serializers import JobSerializer
from payments.serializers import DriverEarningSerializer
from services.exceptions import CoordinatorError

from drivers import services

# Utility: Ensure request.user is a driver
def require_driver(user):
    if user.role != "driver":
        return False, Response({"error": "Only drivers allowed", "code": "forbidden"}, status=403)
    try:
        profile = user.driver_profile
        return True, profile
    except DriverProfile.DoesNotExist:
        return False, Response({"error": "Driver profile not found", "code": "not_found"}, status=404)


class DriverProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile  # Response object

        serializer = DriverProfileSerializer(profile)
        return Response(serializer.data)


class DriverAvailabilityView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        return Response({"is_available": profile.is_available, "is_deactivated": profile.is_deactivated})

    def put(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = DriverAvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            profile = services.set_availability(
                profile, data["is_available"], data.get("latitude"), data.get("longitude")
            )
        except CoordinatorError as exc:
            return error_response(exc)

        return Response({
            "message": "You are online" if profile.is_available else "You are offline",
            "is_available": profile.is_available,
        })


#    A candidate to move fully to WS. Keep HTTP fallback.
class DriverLocationUpdateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        return Response({
            "latitude": float(profile.current_latitude) if profile.current_latitude is not None else None,
            "longitude": float(profile.current_longitude) if profile.current_longitude is not None else None,
            "last_updated": profile.last_location_update,
            "is_available": profile.is_available,
        })

    def post(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        services.update_driver_location(profile, lat, lon)

        return Response({
            "message": "Location updated",
            "latitude": float(lat),
            "longitude": float(lon),
        })


class DriverCurrentJobView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        job = Job.objects.filter(driver=request.user).exclude(status__in=TERMINAL_STATUSES).first()
        if not job:
            return Response({"message": "No active job"}, status=404)

        return Response(JobSerializer(job).data)


class DriverEarningsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        earnings = request.user.earnings.all()
        return Response({
            "total_earnings": str(profile.total_earnings),
            "total_rides": profile.total_rides,
            "earnings": DriverEarningSerializer(earnings, many=True).data,
        })
