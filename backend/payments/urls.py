from django.urls import path
from . import views

urlpatterns = [
    path('webhook/', views.gateway_webhook, name='payment-webhook'),
    path('<int:job_id>/initiate/', views.initiate_payment, name='payment-initiate'),
    path('<int:job_id>/hold/', views.hold_payment, name='payment-hold'),
    path('<int:job_id>/confirm/', views.confirm_delivery, name='payment-confirm'),
]
