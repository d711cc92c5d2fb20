import hashlib
import hmac

import pytest

from payments.exceptions import ConfigurationError, SignatureMismatchError
from payments.signatures import (
    VERIFICATION, WEBHOOK, compute_signature, require_valid_signature, verification_payload, verify_signature,
)


class TestComputeSignature:
    def test_matches_hmac_sha256_hex(self):
        body = b'{"event":"payment.captured"}'
        expected = hmac.new(b'secret', body, hashlib.sha256).hexdigest()
        assert compute_signature(body, 'secret') == expected

    def test_accepts_str_payload(self):
        assert compute_signature('abc', 'secret') == compute_signature(b'abc', 'secret')

    def test_verification_payload_joins_with_pipe(self):
        assert verification_payload('order_A', 'pay_1') == b'order_A|pay_1'


class TestVerifySignature:
    def test_valid(self):
        body = b'{"x":1}'
        assert verify_signature(body, compute_signature(body, 's3'), 's3')

    def test_uppercase_hex_accepted(self):
        body = b'{"x":1}'
        assert verify_signature(body, compute_signature(body, 's3').upper(), 's3')

    def test_wrong_secret(self):
        body = b'{"x":1}'
        assert not verify_signature(body, compute_signature(body, 'other'), 's3')

    def test_tampered_body(self):
        signature = compute_signature(b'{"x":1}', 's3')
        assert not verify_signature(b'{"x":2}', signature, 's3')

    def test_empty_signature(self):
        assert not verify_signature(b'{}', '', 's3')

    def test_non_ascii_signature_is_rejected_not_raised(self):
        assert not verify_signature(b'{}', 'é' * 64, 's3')


class TestRequireValidSignature:
    def test_returns_true_when_checked(self):
        body = b'{}'
        assert require_valid_signature(body, compute_signature(body, 's3'), 's3', WEBHOOK) is True

    def test_mismatch_webhook_message(self):
        with pytest.raises(SignatureMismatchError) as exc:
            require_valid_signature(b'{}', 'deadbeef', 's3', WEBHOOK)
        assert exc.value.message == 'Invalid signature'
        assert exc.value.http_status == 400

    def test_mismatch_verification_message(self):
        with pytest.raises(SignatureMismatchError) as exc:
            require_valid_signature(verification_payload('o', 'p'), 'deadbeef', 's3', VERIFICATION)
        assert exc.value.message == 'Invalid payment signature'

    def test_missing_secret_in_production_fails_closed(self, settings):
        settings.ENVIRONMENT = 'production'
        with pytest.raises(ConfigurationError) as exc:
            require_valid_signature(b'{}', 'anything', '', WEBHOOK)
        assert exc.value.http_status == 500

    def test_missing_verification_secret_in_production_fails_closed(self, settings):
        settings.ENVIRONMENT = 'production'
        with pytest.raises(ConfigurationError):
            require_valid_signature(verification_payload('o', 'p'), 'anything', '', VERIFICATION)

    @pytest.mark.parametrize('environment', ['development', 'test'])
    def test_missing_secret_in_development_is_skipped(self, settings, environment):
        settings.ENVIRONMENT = environment
        assert require_valid_signature(b'{}', '', '', WEBHOOK) is False

    @pytest.mark.parametrize('environment', ['staging', 'prod', 'qa', 'develop', ''])
    def test_missing_secret_in_any_other_environment_fails_closed(self, settings, environment):
        settings.ENVIRONMENT = environment
        with pytest.raises(ConfigurationError):
            require_valid_signature(b'{}', 'forged', '', WEBHOOK)
        with pytest.raises(ConfigurationError):
            require_valid_signature(verification_payload('o', 'p'), 'forged', '', VERIFICATION)
