# tests/conftest.py
"""
Shared fixtures for the x402-gate test suite.
"""
import json
from typing import Any, Dict, Optional

import pytest
import requests
from eth_account import Account
from requests.structures import CaseInsensitiveDict

from x402_gate.core.models import PaymentRequirements
from x402_gate.core.networks import NETWORK_CONFIGS
from x402_gate.core.signer import LocalAccountSigner

PAYER_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
PAYEE_ADDRESS = Account.from_key("0x" + "22" * 32).address
GATELAYER_USDC = NETWORK_CONFIGS["gatelayer_testnet"].default_asset.address
GATELAYER_SEPARATOR = "0x2c2d6b621e73a4a094449d1894717413742130fb20149ec48340ca0354d1a707"
BASE_USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
FIXED_NOW = 1_700_000_000
FIXED_NONCE = "0x" + "ab" * 32


def build_response(
    status_code: int = 200,
    *,
    json_body: Optional[Any] = None,
    content: Optional[bytes] = None,
    headers: Optional[Dict[str, str]] = None,
) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    if json_body is not None:
        content = json.dumps(json_body).encode("utf-8")
    response._content = content or b""
    response.headers = CaseInsensitiveDict(headers or {})
    response.encoding = "utf-8"
    response.url = "http://resource.test/paid"
    return response


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def signer():
    return LocalAccountSigner(PAYER_KEY)


@pytest.fixture
def offer() -> Dict[str, Any]:
    return {
        "scheme": "exact",
        "network": "eip155:10087",
        "payTo": PAYEE_ADDRESS,
        "amount": "1000",
        "asset": GATELAYER_USDC,
        "maxTimeoutSeconds": 300,
        "extra": {"name": "USDC", "version": "2"},
    }


@pytest.fixture
def requirements(offer) -> PaymentRequirements:
    return PaymentRequirements.from_mapping(offer)
