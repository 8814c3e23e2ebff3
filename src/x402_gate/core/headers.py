"""
Encoding of the x402 HTTP headers (base64-encoded JSON).
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Dict, Mapping, Optional

from .errors import InvalidPaymentRequired
from .models import PaymentPayload, PaymentRequired, SettleResult

__all__ = [
    "PAYMENT_REQUIRED_HEADER",
    "PAYMENT_RESPONSE_HEADER",
    "PAYMENT_SIGNATURE_HEADER",
    "X_PAYMENT_HEADER",
    "X_PAYMENT_RESPONSE_HEADER",
    "decode_json_header",
    "decode_payment_header",
    "decode_payment_required",
    "decode_settlement_header",
    "encode_json_header",
    "encode_payment_header",
    "encode_payment_required_header",
    "encode_settlement_header",
    "payment_header_name",
]

# Version 2 headers
PAYMENT_REQUIRED_HEADER = "PAYMENT-REQUIRED"
PAYMENT_SIGNATURE_HEADER = "PAYMENT-SIGNATURE"
PAYMENT_RESPONSE_HEADER = "PAYMENT-RESPONSE"

# Version 1 headers
X_PAYMENT_HEADER = "X-PAYMENT"
X_PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"


def encode_json_header(value: Mapping[str, Any]) -> str:
    raw = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_json_header(value: str) -> Dict[str, Any]:
    try:
        decoded = base64.b64decode(value.encode("ascii"), validate=True).decode("utf-8")
        data = json.loads(decoded)
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise InvalidPaymentRequired(f"Header is not base64-encoded JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidPaymentRequired("Header must encode a JSON object")
    return data


def payment_header_name(x402_version: int) -> str:
    return X_PAYMENT_HEADER if x402_version == 1 else PAYMENT_SIGNATURE_HEADER


def encode_payment_header(payload: PaymentPayload) -> Dict[str, str]:
    """Header name and value carrying ``payload`` on the retried request."""
    return {payment_header_name(payload.x402_version): encode_json_header(payload.to_dict())}


def decode_payment_header(value: str) -> Dict[str, Any]:
    return decode_json_header(value)


def encode_payment_required_header(payment_required: PaymentRequired) -> str:
    return encode_json_header(payment_required.to_dict())


def decode_payment_required(
    headers: Mapping[str, str],
    body: Optional[bytes] = None,
) -> PaymentRequired:
    """
    Parse a 402 response: the ``PAYMENT-REQUIRED`` header first, then a
    version 1 JSON body.
    """
    header = headers.get(PAYMENT_REQUIRED_HEADER)
    if header:
        data = decode_json_header(header)
        data.setdefault("x402Version", 2)
        return PaymentRequired.from_mapping(data)
    if not body:
        raise InvalidPaymentRequired("402 response carries no payment requirements")
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeError, ValueError) as exc:
        raise InvalidPaymentRequired(f"402 response body is not JSON: {exc}") from exc
    return PaymentRequired.from_mapping(data)


def encode_settlement_header(result: SettleResult) -> str:
    return encode_json_header(result.raw)


def decode_settlement_header(headers: Mapping[str, str]) -> Optional[SettleResult]:
    value = headers.get(PAYMENT_RESPONSE_HEADER) or headers.get(X_PAYMENT_RESPONSE_HEADER)
    if not value:
        return None
    return SettleResult.from_response(decode_json_header(value))
