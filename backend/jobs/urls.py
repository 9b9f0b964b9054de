from django.urls import path
from . import views

urlpatterns = [
    path('', views.create_job, name='job-create'),
    path('<int:job_id>/', views.job_detail, name='job-detail'),
    path('<int:job_id>/bids/', views.job_bids, name='job-bids'),
    path('<int:job_id>/accept-bid/', views.accept_bid, name='job-accept-bid'),
    path('<int:job_id>/status/', views.update_status, name='job-status'),
]
