"""
Get Me a Chai Payment Services
Razorpay checkout helpers and the reconciler that applies webhook and
client-verification events to payments, subscriptions and funding totals.

Idempotency rests on compare-and-set updates executed in the same
transaction as the aggregate increments:
  - a payment settles only through UPDATE ... WHERE settled = false
  - a subscription charge is keyed by the gateway payment id (unique order_id)
  - a subscription status moves only from its allowed source states
"""

import calendar
import json
import logging
import uuid

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from payments import gateway
from payments.aggregates import (
    increment_campaign_funding, increment_creator_stats, increment_reward_claims, store_operation,
)
from payments.events import (
    ClientVerification, PaymentCaptured, PaymentFailed, SubscriptionActivated, SubscriptionCancelled,
    SubscriptionCharged, SubscriptionCompleted, SubscriptionPaused, SubscriptionResumed, classify,
)
from payments.exceptions import StoreError
from payments.signatures import VERIFICATION, WEBHOOK, require_valid_signature, verification_payload
from notifications.services import notify

logger = logging.getLogger(__name__)


class Outcome:
    SETTLED = 'settled'
    ALREADY_PROCESSED = 'already_processed'
    NOT_FOUND = 'not_found'
    APPLIED = 'applied'
    SKIPPED = 'skipped'
    UNHANDLED = 'unhandled'
    DUPLICATE_EVENT = 'duplicate_event'


BILLING_PERIOD_MONTHS = {
    'monthly': 1,
    'quarterly': 3,
    'yearly': 12,
}

# action -> (allowed source statuses, target status)
SUBSCRIPTION_TRANSITIONS = {
    'activate': (('pending',), 'active'),
    'pause': (('active',), 'paused'),
    'resume': (('paused',), 'active'),
    'cancel': (('pending', 'active', 'paused'), 'cancelled'),
    'complete': (('active', 'paused'), 'expired'),
}


# ==================== Billing Dates ====================

def add_months(value, months):
    """Calendar-month addition; the day is clamped to the end of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_billing_date(frequency, from_date=None):
    """One billing period after `from_date` (now by default)."""
    if frequency not in BILLING_PERIOD_MONTHS:
        raise ValueError(f'Unknown billing frequency: {frequency}')
    return add_months(from_date or timezone.now(), BILLING_PERIOD_MONTHS[frequency])


def format_inr(amount):
    """Render paise as a rupee string for notifications."""
    if amount % 100 == 0:
        return f'₹{amount // 100:,}'
    return f'₹{amount / 100:,.2f}'


# ==================== Checkout ====================

def initiate_order(campaign, amount, supporter_name, supporter_email='', supporter=None,
                   message='', reward_tier=None, anonymous=False):
    """
    Create a Razorpay order and the matching pending payment.
    `amount` is in rupees; the payment stores paise.
    Returns: (payment, order_dict)
    """
    from payments.models import Payment

    amount_paise = int(amount) * 100
    creator_username = campaign.creator.username

    order = gateway.create_order(
        amount=amount_paise,
        currency=settings.PAYMENT_CURRENCY,
        receipt=f'receipt_{uuid.uuid4().hex[:12]}',
        notes={
            'campaign': str(campaign.pk),
            'creator': creator_username,
            'payment_type': 'one-time',
        },
    )

    payment = Payment.objects.create(
        supporter_name=supporter_name,
        supporter_email=supporter_email or '',
        supporter=supporter,
        message=message or '',
        anonymous=anonymous,
        recipient_username=creator_username,
        campaign=campaign,
        reward_tier=reward_tier,
        order_id=order['id'],
        amount=amount_paise,
        currency=settings.PAYMENT_CURRENCY,
        kind='one-time',
        status='pending',
        settled=False,
    )
    logger.info(f'Order created: {payment.order_id} {amount_paise} paise for campaign {campaign.pk}')
    return payment, order


def initiate_subscription(subscriber, campaign, amount, frequency='monthly'):
    """
    Create a Razorpay plan + subscription and the matching pending record.
    `amount` is in rupees; the subscription stores paise.
    """
    from payments.models import Subscription

    amount_paise = int(amount) * 100
    creator = campaign.creator
    notes = {
        'campaign': str(campaign.pk),
        'creator': str(creator.pk),
        'subscriber': str(subscriber.pk),
    }

    plan = gateway.create_plan(
        frequency=frequency,
        amount=amount_paise,
        currency=settings.PAYMENT_CURRENCY,
        name=f'Support for {campaign.title}'[:100],
        description=f'{frequency.capitalize()} support for {campaign.title}'[:200],
        notes={**notes, 'frequency': frequency},
    )
    gateway_subscription = gateway.create_subscription(
        plan_id=plan['id'],
        total_count=settings.RAZORPAY_SUBSCRIPTION_TOTAL_COUNT,
        notes=notes,
    )

    subscription = Subscription.objects.create(
        subscriber=subscriber,
        creator=creator,
        campaign=campaign,
        gateway_subscription_id=gateway_subscription['id'],
        gateway_plan_id=plan['id'],
        amount=amount_paise,
        frequency=frequency,
        status='pending',
        next_billing_date=next_billing_date(frequency),
    )
    logger.info(f'Subscription created: {subscription.gateway_subscription_id} {frequency} {amount_paise} paise')
    return subscription, gateway_subscription


# ==================== Reconciliation Entry Point ====================

def reconcile_request(content_type, raw_body, signature='', event_id=''):
    """
    Classify, authenticate and apply one inbound Razorpay request.
    Classification and signature errors are raised before any mutation.
    Returns: (logical_event, outcome)
    """
    event = classify(content_type, raw_body)

    if isinstance(event, ClientVerification):
        require_valid_signature(
            verification_payload(event.order_id, event.payment_id),
            event.signature,
            settings.RAZORPAY_KEY_SECRET,
            VERIFICATION,
        )
        outcome, _ = settle_payment(event.order_id, event.payment_id)
        return event, outcome

    require_valid_signature(raw_body, signature, settings.RAZORPAY_WEBHOOK_SECRET, WEBHOOK)
    return event, process_webhook_event(event, event_id=event_id, raw_body=raw_body)


def verify_client_payment(order_id, payment_id, signature):
    """Browser-side confirmation of a completed checkout (JSON API)."""
    require_valid_signature(
        verification_payload(order_id, payment_id), signature, settings.RAZORPAY_KEY_SECRET, VERIFICATION,
    )
    return settle_payment(order_id, payment_id)


def process_webhook_event(event, event_id='', raw_body=b''):
    """Apply a classified webhook event, skipping event ids already processed."""
    webhook_event = None
    if event_id:
        webhook_event = _claim_webhook_event(event_id, event.name, raw_body)
        if webhook_event is None:
            logger.info(f'Webhook event {event_id} ({event.name}) already processed')
            return Outcome.DUPLICATE_EVENT

    try:
        outcome = apply_event(event)
    except StoreError as e:
        _finish_webhook_event(webhook_event, 'failed', error=str(e))
        raise

    _finish_webhook_event(webhook_event, 'processed', outcome=outcome)
    return outcome


def apply_event(event):
    handler = EVENT_HANDLERS.get(type(event))
    if handler is None:
        logger.warning(f'Unhandled webhook event: {getattr(event, "event", event.name)}')
        return Outcome.UNHANDLED
    return handler(event)


def _claim_webhook_event(event_id, event_name, raw_body):
    from payments.models import WebhookEvent

    try:
        payload = json.loads(raw_body) if raw_body else {}
    except ValueError:
        payload = {}

    with store_operation(f'claim webhook {event_id}'):
        webhook_event, created = WebhookEvent.objects.get_or_create(
            event_id=event_id,
            defaults={'event': event_name, 'payload': payload},
        )
        if not created and webhook_event.status == 'processed':
            return None
        webhook_event.attempts += 1
        webhook_event.save(update_fields=['attempts'])
    return webhook_event


def _finish_webhook_event(webhook_event, status, outcome='', error=''):
    if webhook_event is None:
        return
    from payments.models import WebhookEvent

    try:
        WebhookEvent.objects.filter(pk=webhook_event.pk).update(
            status=status,
            outcome=outcome,
            error_message=error[:1000],
            processed_at=timezone.now() if status == 'processed' else None,
        )
    except DatabaseError as e:
        # The settled / status guards still make a redelivery safe
        logger.error(f'Could not record webhook event {webhook_event.event_id} as {status}: {e}')


# ==================== Payment Transitions ====================

def settle_payment(order_id, payment_id, captured_amount=None):
    """
    Settle a pending payment exactly once and credit campaign + creator totals.
    The stored amount is what gets credited; a differing captured amount is logged.
    Returns: (outcome, payment_or_None)
    """
    from payments.models import Payment

    now = timezone.now()
    with store_operation(f'settle {order_id}'):
        updated = Payment.objects.filter(order_id=order_id, settled=False).update(
            payment_id=payment_id,
            status='success',
            settled=True,
            settled_at=now,
            failure_reason='',
            updated_at=now,
        )
        payment = Payment.objects.select_related('campaign').filter(order_id=order_id).first()

        if payment is None:
            logger.warning(f'Payment not found for order {order_id}')
            return Outcome.NOT_FOUND, None

        if not updated:
            logger.info(f'Payment {order_id} already processed (status={payment.status})')
            return Outcome.ALREADY_PROCESSED, payment

        if captured_amount is not None and captured_amount != payment.amount:
            logger.warning(
                f'Captured amount {captured_amount} for order {order_id} differs from payment amount {payment.amount}'
            )

        increment_campaign_funding(payment.campaign_id, payment.amount)
        increment_creator_stats(payment.recipient_username, payment.amount)
        if payment.reward_tier_id:
            increment_reward_claims(payment.reward_tier_id)

    logger.info(f'Payment settled: order={order_id} payment={payment_id} amount={payment.amount}')
    _notify_new_support(payment)
    return Outcome.SETTLED, payment


def fail_payment(order_id, reason=''):
    """Mark an unsettled payment failed. Settled payments are never reverted."""
    from payments.models import Payment

    with store_operation(f'fail {order_id}'):
        updated = Payment.objects.filter(order_id=order_id, settled=False).update(
            status='failed',
            failure_reason=reason or 'Payment failed',
            updated_at=timezone.now(),
        )
        if updated:
            logger.info(f'Payment {order_id} marked failed: {reason}')
            return Outcome.APPLIED

        if Payment.objects.filter(order_id=order_id).exists():
            logger.warning(f'Ignoring payment.failed for settled order {order_id}')
            return Outcome.SKIPPED

    logger.warning(f'Payment not found for failed order {order_id}')
    return Outcome.NOT_FOUND


def mark_payment_refunded(order_id):
    """
    Flag a settled payment as refunded. Funding totals are left as they are;
    refund accounting happens outside the reconciler.
    """
    from payments.models import Payment

    with store_operation(f'refund {order_id}'):
        updated = Payment.objects.filter(order_id=order_id, status='success').update(
            status='refunded', updated_at=timezone.now(),
        )
    if updated:
        logger.info(f'Payment {order_id} marked refunded')
        return Outcome.APPLIED
    return Outcome.SKIPPED


# ==================== Subscription Transitions ====================

def transition_subscription(gateway_subscription_id, action, started_at=None):
    """
    Move a subscription along its lifecycle:
        pending -> active -> (paused <-> active) -> cancelled | expired
    Returns: (outcome, subscription_or_None)
    """
    from payments.models import Subscription

    allowed_from, target = SUBSCRIPTION_TRANSITIONS[action]
    now = timezone.now()
    changes = {'status': target, 'updated_at': now}
    if action == 'activate':
        changes['start_date'] = started_at or now
    if action in ('cancel', 'complete'):
        changes['end_date'] = now

    with store_operation(f'{action} subscription {gateway_subscription_id}'):
        updated = Subscription.objects.filter(
            gateway_subscription_id=gateway_subscription_id, status__in=allowed_from,
        ).update(**changes)
        subscription = Subscription.objects.filter(gateway_subscription_id=gateway_subscription_id).first()

    if subscription is None:
        logger.warning(f'Subscription not found: {gateway_subscription_id}')
        return Outcome.NOT_FOUND, None

    if not updated:
        logger.info(
            f'Subscription {gateway_subscription_id}: {action} not allowed from {subscription.status}'
        )
        return Outcome.SKIPPED, subscription

    logger.info(f'Subscription {gateway_subscription_id} -> {target}')
    if action == 'activate':
        _notify_creator(
            subscription.creator_id, 'new_subscription', 'New Subscription!',
            f'Someone started a {subscription.frequency} subscription of {format_inr(subscription.amount)}',
        )
    elif action == 'cancel':
        _notify_creator(
            subscription.creator_id, 'subscription_cancelled', 'Subscription Cancelled',
            f'A {subscription.frequency} subscription of {format_inr(subscription.amount)} was cancelled',
        )
    return Outcome.APPLIED, subscription


def record_subscription_charge(gateway_subscription_id, payment_id, charged_amount=None):
    """
    Record one recurring charge as a new settled payment and credit the totals.
    The gateway payment id doubles as the order id, so a redelivered charge
    finds its existing payment and changes nothing.
    Returns: (outcome, payment_or_None)
    """
    from payments.models import Payment, Subscription

    now = timezone.now()
    with store_operation(f'charge {gateway_subscription_id}/{payment_id}'):
        subscription = Subscription.objects.select_related('creator', 'subscriber').filter(
            gateway_subscription_id=gateway_subscription_id,
        ).first()
        if subscription is None:
            logger.warning(f'Subscription not found for charge {payment_id}: {gateway_subscription_id}')
            return Outcome.NOT_FOUND, None

        if charged_amount is not None and charged_amount != subscription.amount:
            logger.warning(
                f'Charge {payment_id} amount {charged_amount} differs from subscription amount {subscription.amount}'
            )

        payment, created = Payment.objects.get_or_create(
            order_id=payment_id,
            defaults={
                'payment_id': payment_id,
                'supporter_name': str(subscription.subscriber),
                'supporter_email': subscription.subscriber.email or '',
                'supporter': subscription.subscriber,
                'recipient_username': subscription.creator.username,
                'campaign_id': subscription.campaign_id,
                'amount': subscription.amount,
                'currency': settings.PAYMENT_CURRENCY,
                'kind': 'subscription',
                'subscription': subscription,
                'status': 'success',
                'settled': True,
                'settled_at': now,
            },
        )
        if not created:
            logger.info(f'Subscription charge {payment_id} already recorded')
            return Outcome.ALREADY_PROCESSED, payment

        # A recurring charge adds funds but not a new supporter
        increment_campaign_funding(subscription.campaign_id, subscription.amount, supporters=0)
        increment_creator_stats(subscription.creator.username, subscription.amount, supporters=0)

        billing_date = next_billing_date(subscription.frequency, now)
        Subscription.objects.filter(pk=subscription.pk).update(next_billing_date=billing_date, updated_at=now)

    logger.info(
        f'Subscription charge recorded: {gateway_subscription_id} payment={payment_id} '
        f'amount={subscription.amount} next_billing={billing_date.isoformat()}'
    )
    return Outcome.SETTLED, payment


# ==================== Event Dispatch ====================

def _on_payment_captured(event):
    return settle_payment(event.order_id, event.payment_id, event.amount)[0]


def _on_payment_failed(event):
    return fail_payment(event.order_id, event.reason)


def _on_subscription_activated(event):
    return transition_subscription(event.subscription_id, 'activate', started_at=event.started_at)[0]


def _on_subscription_charged(event):
    return record_subscription_charge(event.subscription_id, event.payment_id, event.amount)[0]


def _on_subscription_cancelled(event):
    return transition_subscription(event.subscription_id, 'cancel')[0]


def _on_subscription_paused(event):
    return transition_subscription(event.subscription_id, 'pause')[0]


def _on_subscription_resumed(event):
    return transition_subscription(event.subscription_id, 'resume')[0]


def _on_subscription_completed(event):
    return transition_subscription(event.subscription_id, 'complete')[0]


EVENT_HANDLERS = {
    PaymentCaptured: _on_payment_captured,
    PaymentFailed: _on_payment_failed,
    SubscriptionActivated: _on_subscription_activated,
    SubscriptionCharged: _on_subscription_charged,
    SubscriptionCancelled: _on_subscription_cancelled,
    SubscriptionPaused: _on_subscription_paused,
    SubscriptionResumed: _on_subscription_resumed,
    SubscriptionCompleted: _on_subscription_completed,
}


# ==================== Notifications ====================

def _notify_new_support(payment):
    from accounts.models import User

    try:
        creator_id = User.objects.filter(username=payment.recipient_username).values_list('id', flat=True).first()
        if not creator_id:
            return
        campaign_title = payment.campaign.title if payment.campaign else 'your page'
        _notify_creator(
            creator_id, 'new_support', 'New Support Received!',
            f'{payment.display_name} supported "{campaign_title}" with {format_inr(payment.amount)}',
            link=f'/{payment.recipient_username}',
        )
    except Exception as e:
        logger.error(f'New support notification failed for order {payment.order_id}: {e}')


def _notify_creator(creator_id, notification_type, title, message, link='/dashboard/subscriptions'):
    notify(creator_id, notification_type, title, message, link)
