"""
Error taxonomy for payment reconciliation.
Each error carries the HTTP status the webhook receiver answers with.
"""


class ReconciliationError(Exception):
    http_status = 500
    default_message = 'Webhook processing failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(ReconciliationError):
    """A required gateway secret is missing outside development and test."""
    http_status = 500
    default_message = 'Webhook secret not configured'


class ClassificationError(ReconciliationError):
    """Malformed or unsupported request shape."""
    http_status = 400
    default_message = 'Malformed request'


class SignatureMismatchError(ReconciliationError):
    http_status = 400
    default_message = 'Invalid signature'


class StoreError(ReconciliationError):
    """Database operation failed or timed out; the gateway is expected to retry."""
    http_status = 500
    default_message = 'Store operation failed'


class GatewayError(ReconciliationError):
    """Razorpay API call failed."""
    http_status = 502
    default_message = 'Payment gateway unavailable'
