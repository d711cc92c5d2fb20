"""
Payment API Views & Webhook Handler

Security:
- Webhooks are authenticated with HMAC-SHA256 of the raw body (X-Razorpay-Signature)
- Browser callbacks are authenticated with HMAC-SHA256 of "order_id|payment_id"
- Missing secrets fail closed unless ENVIRONMENT is development or test
"""

import logging
import time

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
from drf_spectacular.utils import extend_schema, OpenApiResponse
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from campaigns.models import Campaign, RewardTier
from payments import gateway
from payments.exceptions import ReconciliationError
from payments.models import Subscription
from payments.serializers import (
    CreateOrderSerializer, CreateSubscriptionSerializer, PaymentSummarySerializer,
    SubscriptionActionSerializer, SubscriptionSerializer, UpdateSubscriptionSerializer, VerifyPaymentSerializer,
)
from payments.services import (
    Outcome, initiate_order, initiate_subscription, reconcile_request, transition_subscription,
    verify_client_payment,
)

logger = logging.getLogger(__name__)


class CheckoutThrottle(UserRateThrottle):
    rate = '20/min'


class VerificationThrottle(UserRateThrottle):
    rate = '30/min'


class SubscriptionThrottle(UserRateThrottle):
    rate = '10/min'


def _error_detail(error):
    return str(error) if settings.DEBUG else 'Internal server error'


# ==================== Webhook ====================

@csrf_exempt
@require_POST
def razorpay_webhook(request):
    """
    Handle Razorpay webhooks (JSON) and checkout callbacks (form data).
    Recognised requests are acknowledged with 200 even when they change
    nothing, so the gateway does not retry them.
    """
    started = time.monotonic()
    body = request.body
    content_type = request.headers.get('Content-Type', '')
    signature = request.headers.get('X-Razorpay-Signature') or request.headers.get('X-Signature', '')
    event_id = request.headers.get('X-Razorpay-Event-Id', '')

    try:
        event, outcome = reconcile_request(content_type, body, signature, event_id)
    except ReconciliationError as e:
        log = logger.error if e.http_status >= 500 else logger.warning
        log(f'Razorpay webhook rejected ({e.http_status}): {e.message}')
        return JsonResponse({'success': False, 'received': False, 'message': e.message}, status=e.http_status)
    except Exception as e:
        logger.exception(f'Razorpay webhook error: {e}')
        return JsonResponse(
            {'success': False, 'received': False, 'message': 'Webhook processing failed', 'error': _error_detail(e)},
            status=500,
        )

    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info(f'Razorpay webhook {event.name}: {outcome} ({duration_ms}ms)')
    return JsonResponse({'success': True, 'received': True})


# ==================== Checkout ====================

@extend_schema(
    tags=['Payments'],
    summary='Create Order',
    description='Create a Razorpay order for a one-time contribution and a pending payment record.',
    request=CreateOrderSerializer,
    responses={200: OpenApiResponse(description='Order created'), 404: OpenApiResponse(description='Campaign not found')},
)
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([CheckoutThrottle])
def create_payment_order(request):
    """Create a Razorpay order for a one-time contribution."""
    serializer = CreateOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    campaign = Campaign.objects.select_related('creator').filter(pk=data['campaign_id']).first()
    if not campaign:
        return Response({'success': False, 'message': 'Campaign not found'}, status=status.HTTP_404_NOT_FOUND)

    reward_tier = None
    if data.get('reward_tier_id'):
        reward_tier = RewardTier.objects.filter(pk=data['reward_tier_id'], campaign=campaign).first()
        if not reward_tier:
            return Response({'success': False, 'message': 'Reward tier not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        payment, order = initiate_order(
            campaign,
            data['amount'],
            supporter_name=data['name'],
            supporter_email=data.get('email', ''),
            supporter=request.user if request.user.is_authenticated else None,
            message=data.get('message', ''),
            reward_tier=reward_tier,
            anonymous=data.get('anonymous', False),
        )
    except ReconciliationError as e:
        return Response({'success': False, 'message': e.message}, status=e.http_status)

    return Response({
        'success': True,
        'order': {
            'id': order['id'],
            'amount': order.get('amount', payment.amount),
            'currency': order.get('currency', payment.currency),
        },
        'payment': {
            'id': str(payment.id),
            'campaign_id': campaign.pk,
            'creator_username': payment.recipient_username,
        },
        'key_id': settings.RAZORPAY_KEY_ID,
    })


@extend_schema(
    tags=['Payments'],
    summary='Verify Payment',
    description='Confirm a completed checkout with the order/payment/signature triple returned by Razorpay.',
    request=VerifyPaymentSerializer,
    responses={
        200: OpenApiResponse(description='Payment verified'),
        400: OpenApiResponse(description='Invalid payment signature'),
        404: OpenApiResponse(description='Payment record not found'),
    },
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([VerificationThrottle])
def verify_payment(request):
    """Browser-side confirmation of a Razorpay checkout."""
    serializer = VerifyPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        outcome, payment = verify_client_payment(
            data['razorpay_order_id'], data['razorpay_payment_id'], data['razorpay_signature'],
        )
    except ReconciliationError as e:
        return Response({'success': False, 'message': e.message}, status=e.http_status)

    if outcome == Outcome.NOT_FOUND:
        return Response({'success': False, 'message': 'Payment record not found'}, status=status.HTTP_404_NOT_FOUND)

    return Response({
        'success': True,
        'message': 'Payment verified successfully' if outcome == Outcome.SETTLED else 'Payment already verified',
        'payment': PaymentSummarySerializer(payment).data,
    })


# ==================== Subscriptions ====================

@extend_schema(
    tags=['Subscriptions'],
    summary='Create Subscription',
    description='Create a Razorpay plan and subscription for recurring support of a campaign.',
    request=CreateSubscriptionSerializer,
    responses={200: SubscriptionSerializer, 404: OpenApiResponse(description='Campaign not found')},
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([SubscriptionThrottle])
def create_subscription(request):
    serializer = CreateSubscriptionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    campaign = Campaign.objects.select_related('creator').filter(pk=data['campaign_id']).first()
    if not campaign:
        return Response({'success': False, 'message': 'Campaign not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        subscription, gateway_subscription = initiate_subscription(
            request.user, campaign, data['amount'], data['frequency'],
        )
    except ReconciliationError as e:
        return Response({'success': False, 'message': e.message}, status=e.http_status)

    return Response({
        'success': True,
        'subscription': SubscriptionSerializer(subscription).data,
        'short_url': gateway_subscription.get('short_url', ''),
    })


@extend_schema(tags=['Subscriptions'], summary='List Subscriptions', responses={200: SubscriptionSerializer(many=True)})
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_subscriptions(request):
    subscriptions = Subscription.objects.filter(subscriber=request.user).select_related('creator', 'campaign')
    return Response({
        'success': True,
        'subscriptions': SubscriptionSerializer(subscriptions, many=True).data,
    })


def _owned_subscription(request, serializer_class):
    """Validate the body and load the caller's subscription. Returns (subscription, data, error_response)."""
    serializer = serializer_class(data=request.data)
    if not serializer.is_valid():
        return None, None, Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    subscription = Subscription.objects.filter(pk=serializer.validated_data['subscription_id']).first()
    if not subscription:
        return None, None, Response({'success': False, 'message': 'Subscription not found'}, status=status.HTTP_404_NOT_FOUND)
    if subscription.subscriber_id != request.user.pk:
        return None, None, Response({'success': False, 'message': 'Unauthorized'}, status=status.HTTP_403_FORBIDDEN)
    return subscription, serializer.validated_data, None


@extend_schema(tags=['Subscriptions'], summary='Cancel Subscription', request=SubscriptionActionSerializer)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([SubscriptionThrottle])
def cancel_subscription(request):
    subscription, _, error = _owned_subscription(request, SubscriptionActionSerializer)
    if error:
        return error

    if subscription.status in ('cancelled', 'expired'):
        return Response(
            {'success': False, 'message': f'Subscription is already {subscription.status}'},
            status=status.HTTP_409_CONFLICT,
        )

    try:
        gateway.cancel_subscription(subscription.gateway_subscription_id)
        transition_subscription(subscription.gateway_subscription_id, 'cancel')
    except ReconciliationError as e:
        return Response({'success': False, 'message': e.message}, status=e.http_status)

    return Response({'success': True, 'message': 'Subscription cancelled successfully'})


@extend_schema(tags=['Subscriptions'], summary='Pause Subscription', request=SubscriptionActionSerializer)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([SubscriptionThrottle])
def pause_subscription(request):
    subscription, _, error = _owned_subscription(request, SubscriptionActionSerializer)
    if error:
        return error

    if subscription.status != 'active':
        return Response(
            {'success': False, 'message': f'Only active subscriptions can be paused (status: {subscription.status})'},
            status=status.HTTP_409_CONFLICT,
        )

    try:
        gateway.pause_subscription(subscription.gateway_subscription_id)
        transition_subscription(subscription.gateway_subscription_id, 'pause')
    except ReconciliationError as e:
        return Response({'success': False, 'message': e.message}, status=e.http_status)

    return Response({'success': True, 'message': 'Subscription paused successfully'})


@extend_schema(tags=['Subscriptions'], summary='Update Subscription Amount', request=UpdateSubscriptionSerializer)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([SubscriptionThrottle])
def update_subscription(request):
    """
    Change the amount recorded for future charges.
    Razorpay plans are immutable, so only the local record changes here.
    """
    subscription, data, error = _owned_subscription(request, UpdateSubscriptionSerializer)
    if error:
        return error

    subscription.amount = data['amount'] * 100
    subscription.save(update_fields=['amount', 'updated_at'])
    logger.info(f'Subscription {subscription.gateway_subscription_id} amount -> {subscription.amount}')

    return Response({
        'success': True,
        'message': 'Subscription amount updated successfully',
        'subscription': SubscriptionSerializer(subscription).data,
    })
