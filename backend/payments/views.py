import logging

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated

from common.utils.api import error_response
from services import escrow
from services.escrow import gateways
from services.exceptions import CoordinatorError
from .serializers import PaymentSerializer, PaymentInitiateSerializer, GatewayCallbackSerializer

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def initiate_payment(request, job_id):
    """Customer picks a payment method once a bid is accepted"""
    serializer = PaymentInitiateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        payment = escrow.initiate_payment(job_id, serializer.validated_data['method'], customer=request.user)
    except CoordinatorError as exc:
        return error_response(exc)

    return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def hold_payment(request, job_id):
    """Driver at the dropoff puts the payment on hold"""
    try:
        payment = escrow.hold_payment(job_id, request.user)
    except CoordinatorError as exc:
        return error_response(exc)

    return Response(PaymentSerializer(payment).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def confirm_delivery(request, job_id):
    """
    Dual confirmation: the driver confirms first, then the customer.
    The customer's confirmation releases the payment.
    """
    try:
        result = escrow.confirm_delivery(job_id, request.user)
    except CoordinatorError as exc:
        return error_response(exc)

    return Response({
        'message': result.message,
        'job_status': result.job.status,
        **(result.extra or {}),
    })


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def gateway_webhook(request):
    """Asynchronous payment result from the provider (HMAC-SHA256 signed)"""
    signature = request.META.get(gateways.SIGNATURE_HEADER, '')
    if not gateways.verify_signature(request.body, signature):
        logger.warning("Rejected payment webhook with invalid signature")
        return Response({'error': 'Invalid signature', 'code': 'invalid_signature'},
                        status=status.HTTP_401_UNAUTHORIZED)

    serializer = GatewayCallbackSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        outcome = escrow.handle_gateway_callback(data['reference'], data['status'] == 'SUCCESS')
    except CoordinatorError as exc:
        return error_response(exc)

    return Response({'received': True, 'outcome': outcome})
