"""
Razorpay REST client.

Thin wrappers over https://api.razorpay.com/v1 using basic auth with the
key id / key secret pair. Every call is bounded by RAZORPAY_TIMEOUT and
raises GatewayError on transport or HTTP failure.
"""

import logging

import requests
from django.conf import settings

from payments.exceptions import ConfigurationError, GatewayError

logger = logging.getLogger(__name__)

# frequency -> (Razorpay plan period, interval)
PLAN_PERIODS = {
    'monthly': ('monthly', 1),
    'quarterly': ('monthly', 3),
    'yearly': ('yearly', 1),
}


def _call(method, path, payload=None):
    if not settings.RAZORPAY_KEY_ID or not settings.RAZORPAY_KEY_SECRET:
        logger.error('Razorpay API keys are not configured')
        raise ConfigurationError('Razorpay API keys are not configured')

    url = f'{settings.RAZORPAY_API_URL.rstrip("/")}/{path.lstrip("/")}'
    try:
        response = requests.request(
            method,
            url,
            json=payload,
            auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET),
            headers={'Content-Type': 'application/json'},
            timeout=settings.RAZORPAY_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f'Razorpay {method} {path} failed: {e}')
        raise GatewayError('Payment service temporarily unavailable.') from e

    logger.info(f'Razorpay {method} {path}: {data.get("id", "")} {data.get("status", "")}')
    return data


def create_order(amount, currency, receipt, notes=None):
    """Create a checkout order. `amount` is in paise."""
    return _call('POST', '/orders', {
        'amount': amount,
        'currency': currency,
        'receipt': receipt,
        'notes': notes or {},
    })


def create_plan(frequency, amount, currency, name, description='', notes=None):
    period, interval = PLAN_PERIODS[frequency]
    return _call('POST', '/plans', {
        'period': period,
        'interval': interval,
        'item': {
            'name': name,
            'amount': amount,
            'currency': currency,
            'description': description,
        },
        'notes': notes or {},
    })


def create_subscription(plan_id, total_count, notes=None):
    return _call('POST', '/subscriptions', {
        'plan_id': plan_id,
        'customer_notify': 1,
        'quantity': 1,
        'total_count': total_count,
        'notes': notes or {},
    })


def cancel_subscription(subscription_id):
    return _call('POST', f'/subscriptions/{subscription_id}/cancel', {'cancel_at_cycle_end': 0})


def pause_subscription(subscription_id):
    return _call('POST', f'/subscriptions/{subscription_id}/pause', {'pause_at': 'now'})
