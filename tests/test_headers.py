# tests/test_headers.py
"""
Unit tests for x402 header encoding.
"""
import base64
import json

import pytest

from x402_gate.core.errors import InvalidPaymentRequired
from x402_gate.core.headers import (
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_SIGNATURE_HEADER,
    X_PAYMENT_HEADER,
    decode_json_header,
    decode_payment_required,
    decode_settlement_header,
    encode_json_header,
    encode_payment_header,
)
from x402_gate.core.models import PaymentPayload


class TestJsonHeaders:
    def test_encoding_is_base64_compact_json(self):
        value = encode_json_header({"a": 1, "b": "ü"})
        assert base64.b64decode(value).decode("utf-8") == '{"a":1,"b":"ü"}'

    @pytest.mark.parametrize("value", ["not base64!", base64.b64encode(b"[1, 2]").decode(), ""])
    def test_rejects_malformed_values(self, value):
        with pytest.raises(InvalidPaymentRequired):
            decode_json_header(value)


class TestPaymentHeader:
    def test_header_name_follows_version(self, offer):
        v2 = PaymentPayload(x402_version=2, payload={}, accepted=offer)
        v1 = PaymentPayload(x402_version=1, payload={}, accepted=offer)

        assert list(encode_payment_header(v2)) == [PAYMENT_SIGNATURE_HEADER]
        assert list(encode_payment_header(v1)) == [X_PAYMENT_HEADER]


class TestPaymentRequired:
    def test_header_takes_precedence_over_body(self, offer):
        header = encode_json_header({"accepts": [offer]})
        body = json.dumps({"x402Version": 1, "accepts": []}).encode()

        required = decode_payment_required({PAYMENT_REQUIRED_HEADER: header}, body)

        assert required.x402_version == 2
        assert len(required.accepts) == 1

    def test_v1_body(self, offer):
        body = json.dumps({"x402Version": 1, "accepts": [offer], "error": "X-PAYMENT header is required"})
        required = decode_payment_required({}, body.encode())
        assert required.x402_version == 1
        assert required.error == "X-PAYMENT header is required"

    def test_nothing_to_parse(self):
        with pytest.raises(InvalidPaymentRequired):
            decode_payment_required({}, b"")


class TestSettlementHeader:
    def test_v1_name_is_accepted(self):
        headers = {"X-PAYMENT-RESPONSE": encode_json_header({"success": True, "transaction": "0x1"})}
        assert decode_settlement_header(headers).transaction == "0x1"

    def test_absent(self):
        assert decode_settlement_header({}) is None
