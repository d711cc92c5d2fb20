"""
Classification of inbound Razorpay requests into logical events.

Pure functions only: no database access and no side effects. A JSON body is a
gateway webhook envelope ({"event": ..., "payload": {...}}); a form body is
the browser's checkout callback carrying the order/payment/signature triple.
Each logical event carries only the fields that event guarantees; a missing
required field fails classification instead of flowing on as None.
Form bodies go through Django's own QueryDict and MultiPartParser, so the
DATA_UPLOAD_MAX_* limits apply to callbacks as they do to any request.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from io import BytesIO
from typing import ClassVar, Optional

from django.core.exceptions import SuspiciousOperation
from django.core.files.uploadhandler import MemoryFileUploadHandler
from django.http import QueryDict
from django.http.multipartparser import MultiPartParser, MultiPartParserError

from payments.exceptions import ClassificationError

VERIFICATION_FIELDS = ('razorpay_order_id', 'razorpay_payment_id', 'razorpay_signature')


@dataclass(frozen=True)
class PaymentCaptured:
    name: ClassVar[str] = 'payment.captured'
    payment_id: str
    order_id: str
    amount: Optional[int] = None


@dataclass(frozen=True)
class PaymentFailed:
    name: ClassVar[str] = 'payment.failed'
    order_id: str
    payment_id: Optional[str] = None
    reason: str = ''


@dataclass(frozen=True)
class SubscriptionActivated:
    name: ClassVar[str] = 'subscription.activated'
    subscription_id: str
    started_at: Optional[datetime] = None


@dataclass(frozen=True)
class SubscriptionCharged:
    name: ClassVar[str] = 'subscription.charged'
    subscription_id: str
    payment_id: str
    amount: Optional[int] = None


@dataclass(frozen=True)
class SubscriptionCancelled:
    name: ClassVar[str] = 'subscription.cancelled'
    subscription_id: str


@dataclass(frozen=True)
class SubscriptionPaused:
    name: ClassVar[str] = 'subscription.paused'
    subscription_id: str


@dataclass(frozen=True)
class SubscriptionResumed:
    name: ClassVar[str] = 'subscription.resumed'
    subscription_id: str


@dataclass(frozen=True)
class SubscriptionCompleted:
    name: ClassVar[str] = 'subscription.completed'
    subscription_id: str


@dataclass(frozen=True)
class Unhandled:
    name: ClassVar[str] = 'unhandled'
    event: str


@dataclass(frozen=True)
class ClientVerification:
    name: ClassVar[str] = 'client.verification'
    order_id: str
    payment_id: str
    signature: str


SUBSCRIPTION_STATUS_EVENTS = {
    SubscriptionCancelled.name: SubscriptionCancelled,
    SubscriptionPaused.name: SubscriptionPaused,
    SubscriptionResumed.name: SubscriptionResumed,
    SubscriptionCompleted.name: SubscriptionCompleted,
}


def classify(content_type, raw_body):
    """Map an untrusted request to a logical event or raise ClassificationError."""
    content_type = content_type or ''
    # Media types are case-insensitive; the multipart boundary is not
    media_type = content_type.split(';', 1)[0].strip().lower()

    if media_type == 'application/json':
        return parse_webhook_envelope(raw_body)
    if media_type == 'application/x-www-form-urlencoded':
        return _client_verification(_parse_urlencoded(raw_body))
    if media_type == 'multipart/form-data':
        return _client_verification(_parse_multipart(content_type, raw_body))

    raise ClassificationError('Unsupported content type')


def parse_webhook_envelope(raw_body):
    try:
        envelope = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        raise ClassificationError('Invalid JSON body')

    if not isinstance(envelope, dict):
        raise ClassificationError('Webhook body must be a JSON object')

    event = envelope.get('event')
    if not isinstance(event, str) or not event:
        raise ClassificationError('Webhook event name is missing')

    payload = envelope.get('payload')
    if not isinstance(payload, dict):
        payload = {}

    if event == PaymentCaptured.name:
        payment = _entity(payload, 'payment')
        return PaymentCaptured(
            payment_id=_require(payment, 'id', event),
            order_id=_require(payment, 'order_id', event),
            amount=_optional_int(payment.get('amount')),
        )

    if event == PaymentFailed.name:
        payment = _entity(payload, 'payment')
        return PaymentFailed(
            order_id=_require(payment, 'order_id', event),
            payment_id=payment.get('id') or None,
            reason=payment.get('error_description') or '',
        )

    if event == SubscriptionActivated.name:
        subscription = _entity(payload, 'subscription')
        return SubscriptionActivated(
            subscription_id=_require(subscription, 'id', event),
            started_at=_from_timestamp(subscription.get('start_at')),
        )

    if event == SubscriptionCharged.name:
        payment = _entity(payload, 'payment')
        subscription = _entity(payload, 'subscription')
        subscription_id = payment.get('subscription_id') or subscription.get('id')
        if not subscription_id:
            raise ClassificationError(f'{event}: missing subscription id')
        return SubscriptionCharged(
            subscription_id=str(subscription_id),
            payment_id=_require(payment, 'id', event),
            amount=_optional_int(payment.get('amount')),
        )

    if event in SUBSCRIPTION_STATUS_EVENTS:
        subscription = _entity(payload, 'subscription')
        return SUBSCRIPTION_STATUS_EVENTS[event](subscription_id=_require(subscription, 'id', event))

    return Unhandled(event=event)


def _client_verification(fields):
    missing = [f for f in VERIFICATION_FIELDS if not fields.get(f)]
    if missing:
        raise ClassificationError('Missing required fields')
    return ClientVerification(
        order_id=fields['razorpay_order_id'],
        payment_id=fields['razorpay_payment_id'],
        signature=fields['razorpay_signature'],
    )


def _parse_urlencoded(raw_body):
    try:
        query = QueryDict(raw_body, encoding='utf-8')
    except SuspiciousOperation:
        raise ClassificationError('Invalid form body')
    return _form_fields(query)


def _parse_multipart(content_type, raw_body):
    # Canonical media type for the parser; the boundary keeps its original case
    _media_type, _, params = content_type.partition(';')
    meta = {'CONTENT_TYPE': f'multipart/form-data;{params}', 'CONTENT_LENGTH': str(len(raw_body))}
    try:
        parser = MultiPartParser(meta, BytesIO(raw_body), [MemoryFileUploadHandler()], encoding='utf-8')
        query, _files = parser.parse()
    except (MultiPartParserError, SuspiciousOperation):
        raise ClassificationError('Invalid multipart body')
    return _form_fields(query)


def _form_fields(query):
    return {key: value.strip() for key, value in query.items()}


def _entity(payload, key):
    block = payload.get(key)
    if isinstance(block, dict) and isinstance(block.get('entity'), dict):
        return block['entity']
    return {}


def _require(entity, field, event):
    value = entity.get(field)
    if value is None or value == '':
        raise ClassificationError(f'{event}: missing {field}')
    return str(value)


def _optional_int(value):
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _from_timestamp(value):
    try:
        return datetime.fromtimestamp(int(value), tz=dt_timezone.utc) if value else None
    except (TypeError, ValueError, OverflowError, OSError):
        return None
