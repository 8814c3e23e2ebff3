"""
EIP-712 hashing and signing of EIP-3009 ``TransferWithAuthorization`` messages.

The digest is built by hand from the domain separator so that a separator read
from the token contract (or pinned) can be used as-is, without needing the
token's name and version:

    structHash = keccak(TYPEHASH || from || to || value || validAfter || validBefore || nonce)
    digest     = keccak(0x19 || 0x01 || domainSeparator || structHash)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from eth_utils import is_hex_address, keccak, to_checksum_address
from hexbytes import HexBytes

from .deadline import Deadline
from .errors import AssetMetadataMissing, FailedToSignAuthorization, InvalidAuthorization
from .models import Authorization
from .signer import EvmSigner, TypedDataSigner

__all__ = [
    "EIP712_DOMAIN_TYPEHASH",
    "TRANSFER_WITH_AUTHORIZATION_TYPE",
    "TRANSFER_WITH_AUTHORIZATION_TYPEHASH",
    "TYPED_DATA_TYPES",
    "authorization_digest",
    "compute_domain_separator",
    "hash_authorization",
    "sign_authorization",
    "sign_authorization_for_domain",
    "sign_authorization_typed_data",
    "validate_window",
]

logger = logging.getLogger(__name__)

TRANSFER_WITH_AUTHORIZATION_TYPE = (
    "TransferWithAuthorization(address from,address to,uint256 value,"
    "uint256 validAfter,uint256 validBefore,bytes32 nonce)"
)
TRANSFER_WITH_AUTHORIZATION_TYPEHASH = keccak(text=TRANSFER_WITH_AUTHORIZATION_TYPE)

EIP712_DOMAIN_TYPEHASH = keccak(
    text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)

TYPED_DATA_TYPES: Dict[str, List[Dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}


def _pad_uint(value: int) -> bytes:
    return value.to_bytes(32, "big")


def _pad_address(address: str, field_name: str) -> bytes:
    if not isinstance(address, str) or not is_hex_address(address):
        raise InvalidAuthorization(f"{field_name} is not a valid EVM address: {address!r}")
    return bytes(12) + bytes.fromhex(address[2:])


def compute_domain_separator(
    name: str,
    version: str,
    chain_id: int,
    verifying_contract: str,
) -> HexBytes:
    """
    Standard EIP-712 domain hash over ``{name, version, chainId, verifyingContract}``.
    """
    if not name or not version:
        raise AssetMetadataMissing(
            f"Token name and version are required to build the EIP-712 domain for {verifying_contract}"
        )
    encoded = b"".join(
        (
            EIP712_DOMAIN_TYPEHASH,
            keccak(text=name),
            keccak(text=version),
            _pad_uint(chain_id),
            _pad_address(verifying_contract, "verifyingContract"),
        )
    )
    return HexBytes(keccak(encoded))


def hash_authorization(authorization: Authorization) -> HexBytes:
    encoded = b"".join(
        (
            TRANSFER_WITH_AUTHORIZATION_TYPEHASH,
            _pad_address(authorization.from_address, "from"),
            _pad_address(authorization.to, "to"),
            _pad_uint(authorization.value_int()),
            _pad_uint(authorization.valid_after_int()),
            _pad_uint(authorization.valid_before_int()),
            authorization.nonce_bytes(),
        )
    )
    return HexBytes(keccak(encoded))


def authorization_digest(authorization: Authorization, domain_separator: bytes) -> HexBytes:
    if len(domain_separator) != 32:
        raise InvalidAuthorization(
            f"Domain separator must be 32 bytes, got {len(domain_separator)}"
        )
    struct_hash = hash_authorization(authorization)
    return HexBytes(keccak(b"\x19\x01" + bytes(domain_separator) + bytes(struct_hash)))


def _checked_signature(signature: Any) -> bytes:
    if not signature:
        raise FailedToSignAuthorization("Signer returned an empty signature")
    return bytes(signature)


def sign_authorization(
    authorization: Authorization,
    domain_separator: bytes,
    signer: EvmSigner,
    *,
    deadline: Optional[Deadline] = None,
) -> bytes:
    """
    Sign ``authorization`` for the domain identified by ``domain_separator``.
    """
    digest = authorization_digest(authorization, domain_separator)
    if deadline is not None:
        deadline.check("signing authorization")
    try:
        signature = signer.sign_digest(bytes(digest))
    except Exception as exc:  # noqa: BLE001 - any signer failure aborts this attempt
        raise FailedToSignAuthorization(f"Signer failed to sign authorization: {exc}") from exc
    logger.debug("Signed authorization digest %s", digest.hex())
    return _checked_signature(signature)


def sign_authorization_for_domain(
    authorization: Authorization,
    chain_id: int,
    verifying_contract: str,
    name: str,
    version: str,
    signer: EvmSigner,
    *,
    deadline: Optional[Deadline] = None,
) -> bytes:
    separator = compute_domain_separator(name, version, chain_id, verifying_contract)
    return sign_authorization(authorization, separator, signer, deadline=deadline)


def sign_authorization_typed_data(
    authorization: Authorization,
    chain_id: int,
    verifying_contract: str,
    name: str,
    version: str,
    signer: TypedDataSigner,
    *,
    deadline: Optional[Deadline] = None,
) -> bytes:
    """
    Sign through the signer's EIP-712 entry point instead of a raw digest.

    Wallets that refuse to sign bare hashes can still sign this way; the
    resulting signature is identical to the digest path for the same domain.
    """
    # Validates the domain and every message field before anything reaches the signer.
    compute_domain_separator(name, version, chain_id, verifying_contract)
    hash_authorization(authorization)
    domain = {
        "name": name,
        "version": version,
        "chainId": chain_id,
        "verifyingContract": to_checksum_address(verifying_contract),
    }
    message = {
        "from": to_checksum_address(authorization.from_address),
        "to": to_checksum_address(authorization.to),
        "value": authorization.value_int(),
        "validAfter": authorization.valid_after_int(),
        "validBefore": authorization.valid_before_int(),
        "nonce": HexBytes(authorization.nonce_bytes()),
    }
    if deadline is not None:
        deadline.check("signing authorization")
    try:
        signature = signer.sign_typed_data(
            domain, TYPED_DATA_TYPES, "TransferWithAuthorization", message
        )
    except Exception as exc:  # noqa: BLE001 - any signer failure aborts this attempt
        raise FailedToSignAuthorization(f"Signer failed to sign typed data: {exc}") from exc
    return _checked_signature(signature)


def validate_window(authorization: Authorization, now: int) -> bool:
    """``validAfter <= now < validBefore``."""
    return authorization.valid_after_int() <= now < authorization.valid_before_int()
