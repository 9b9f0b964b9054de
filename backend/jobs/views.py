from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.models import User
from common.utils.api import error_response, role_required
from services import auction
from services.exceptions import CoordinatorError
from .models import Job
from .serializers import (
    JobSerializer,
    JobCreateSerializer,
    BidSerializer,
    BidCreateSerializer,
    AcceptBidSerializer,
    StatusUpdateSerializer,
)


# ==================== Customer Job APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_job(request):
    """Post a new freight job; dispatch starts once it is saved"""
    denied = role_required(request.user, User.ROLE_CUSTOMER)
    if denied:
        return denied

    serializer = JobCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = auction.create_job(request.user, **serializer.validated_data)
    except CoordinatorError as exc:
        return error_response(exc)

    return Response({
        **JobSerializer(result.job).data,
        'message': result.message,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def job_detail(request, job_id):
    """Job details for its customer or its assigned driver"""
    job = Job.objects.filter(pk=job_id).select_related('customer', 'driver').first()
    if job is None or request.user.id not in (job.customer_id, job.driver_id):
        return Response({'error': 'Job not found', 'code': 'not_found'}, status=status.HTTP_404_NOT_FOUND)

    return Response(JobSerializer(job).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def job_bids(request, job_id):
    """
    GET: the customer lists bids on their job
    POST: a driver places a bid
    """
    if request.method == 'GET':
        job = Job.objects.filter(pk=job_id, customer=request.user).first()
        if job is None:
            return Response({'error': 'Job not found', 'code': 'not_found'}, status=status.HTTP_404_NOT_FOUND)
        bids = job.bids.select_related('driver')
        return Response({'count': bids.count(), 'bids': BidSerializer(bids, many=True).data})

    denied = role_required(request.user, User.ROLE_DRIVER)
    if denied:
        return denied

    serializer = BidCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        bid = auction.submit_bid(
            job_id,
            request.user,
            price=data['proposed_price'],
            eta_minutes=data['eta_minutes'],
            note=data.get('note', ''),
        )
    except CoordinatorError as exc:
        return error_response(exc)

    return Response(BidSerializer(bid).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def accept_bid(request, job_id):
    """Customer picks the winning bid"""
    serializer = AcceptBidSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = auction.accept_bid(job_id, serializer.validated_data['bid_id'], request.user)
    except CoordinatorError as exc:
        return error_response(exc)

    return Response({
        'message': result.message,
        'job': JobSerializer(result.job).data,
        **(result.extra or {}),
    })


# ==================== Driver Job APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def update_status(request, job_id):
    """Assigned driver moves the job to the next status on the route"""
    serializer = StatusUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = auction.advance_status(job_id, request.user, serializer.validated_data['status'])
    except CoordinatorError as exc:
        return error_response(exc)

    return Response({'message': result.message, 'job': JobSerializer(result.job).data})
