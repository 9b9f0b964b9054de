from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from common.utils.api import error_response
from services import cancellation
from services.exceptions import CoordinatorError
from .serializers import CancellationSerializer, CancelJobSerializer


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_by_customer(request, job_id):
    """Customer cancels; free inside the grace window, flat fee after it"""
    serializer = CancelJobSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = cancellation.cancel_by_customer(job_id, request.user, serializer.validated_data['reason'])
    except CoordinatorError as exc:
        return error_response(exc)

    return Response({
        'message': result.message,
        'cancellation': CancellationSerializer(result.extra['cancellation']).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_by_driver(request, job_id):
    """Assigned driver cancels; always a strike"""
    serializer = CancelJobSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = cancellation.cancel_by_driver(job_id, request.user, serializer.validated_data['reason'])
    except CoordinatorError as exc:
        return error_response(exc)

    return Response({
        'message': result.message,
        'cancellation': CancellationSerializer(result.extra['cancellation']).data,
        'strike_count': result.extra['strike_count'],
        'account_deactivated': result.extra['account_deactivated'],
    })
