from django.urls import path
from . import views

urlpatterns = [
    path('<int:job_id>/customer/', views.cancel_by_customer, name='cancel-by-customer'),
    path('<int:job_id>/driver/', views.cancel_by_driver, name='cancel-by-driver'),
]
