from django.contrib import admin
from django.urls import path, include
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # JWT tokens for the REST API and the websocket ?token= parameter
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token-obtain'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),

    # Job, bid and lifecycle endpoints (at /api/jobs/)
    path('api/jobs/', include('jobs.urls')),

    # Escrow endpoints and gateway webhook (at /api/payments/)
    path('api/payments/', include('payments.urls')),

    # Cancellation endpoints (at /api/cancellations/)
    path('api/cancellations/', include('cancellations.urls')),

    # Driver shift, location and earnings (at /api/driver/)
    path('api/driver/', include('drivers.urls')),
]
