"""
Razorpay signature verification.

Two signing schemes:
  - webhook:      hex HMAC-SHA256(webhook_secret, raw_body), sent as X-Razorpay-Signature
  - verification: hex HMAC-SHA256(key_secret, "{order_id}|{payment_id}"), posted by the browser
"""

import hashlib
import hmac
import logging

from django.conf import settings

from payments.exceptions import ConfigurationError, SignatureMismatchError

logger = logging.getLogger(__name__)

WEBHOOK = 'webhook'
VERIFICATION = 'verification'

# Only these environments may process requests without a configured secret
UNVERIFIED_ENVIRONMENTS = ('development', 'test')


def verification_payload(order_id, payment_id):
    return f'{order_id}|{payment_id}'.encode('utf-8')


def compute_signature(payload, secret):
    if isinstance(payload, str):
        payload = payload.encode('utf-8')
    return hmac.new(secret.encode('utf-8'), payload, hashlib.sha256).hexdigest()


def verify_signature(payload, signature, secret, mode=WEBHOOK):
    """Constant-time check of a hex signature. `mode` only affects logging."""
    if not signature or not secret:
        return False
    expected = compute_signature(payload, secret)
    valid = hmac.compare_digest(expected.encode('utf-8'), signature.strip().lower().encode('utf-8'))
    if not valid:
        logger.warning(
            f'Razorpay {mode} signature mismatch: received={_truncate(signature)} expected={_truncate(expected)}'
        )
    return valid


def require_valid_signature(payload, signature, secret, mode=WEBHOOK):
    """
    Enforce the signature policy for one request.

    A missing secret is skipped with a warning only in the environments listed
    in UNVERIFIED_ENVIRONMENTS; everywhere else it fails closed
    (ConfigurationError), for both webhook and verification modes.
    Returns True when the signature was checked, False when it was skipped.
    """
    if not secret:
        if not may_skip_verification():
            logger.error(f'Razorpay {mode} secret is not configured (environment={settings.ENVIRONMENT})')
            raise ConfigurationError(f'Razorpay {mode} secret is not configured')
        logger.warning(
            f'Razorpay {mode} secret missing in {settings.ENVIRONMENT}: processing without signature verification'
        )
        return False

    if not verify_signature(payload, signature, secret, mode):
        raise SignatureMismatchError('Invalid payment signature' if mode == VERIFICATION else 'Invalid signature')
    return True


def may_skip_verification():
    return getattr(settings, 'ENVIRONMENT', 'production') in UNVERIFIED_ENVIRONMENTS


def _truncate(value, length=10):
    if not value:
        return '<empty>'
    return f'{value[:length]}...'
