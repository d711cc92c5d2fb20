import json

from payments.signatures import compute_signature, verification_payload

WEBHOOK_SECRET = 'test_webhook_secret'
KEY_SECRET = 'test_key_secret'


def sign_webhook(body, secret=WEBHOOK_SECRET):
    return compute_signature(body, secret)


def sign_verification(order_id, payment_id, secret=KEY_SECRET):
    return compute_signature(verification_payload(order_id, payment_id), secret)


def webhook_body(event, **entities):
    """JSON envelope with each keyword as a payload entity: payment={...} -> payload.payment.entity."""
    payload = {key: {'entity': entity} for key, entity in entities.items()}
    return json.dumps({'event': event, 'payload': payload}).encode('utf-8')


def multipart_body(fields, boundary='----WebKitFormBoundary7MA4YWxkTrZu0gW'):
    lines = []
    for name, value in fields.items():
        lines += [f'--{boundary}', f'Content-Disposition: form-data; name="{name}"', '', value]
    lines += [f'--{boundary}--', '']
    return '\r\n'.join(lines).encode('utf-8'), f'multipart/form-data; boundary={boundary}'
