"""
Signing capabilities consumed by the payment core.

The core never handles private keys directly: it only asks a signer for its
address and for signatures over a 32-byte digest or an EIP-712 structure.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Mapping, Protocol, runtime_checkable

from eth_account import Account
from eth_account.messages import encode_typed_data
from hexbytes import HexBytes

__all__ = [
    "EvmSigner",
    "LocalAccountSigner",
    "TypedDataSigner",
]


@runtime_checkable
class EvmSigner(Protocol):
    """
    Anything that can sign a raw digest on behalf of an address.

    Implementations that cannot be used concurrently (hardware wallets,
    remote bridges) must serialize access themselves.
    """

    @property
    def address(self) -> str:
        ...

    def sign_digest(self, digest: bytes) -> bytes:
        ...


@runtime_checkable
class TypedDataSigner(EvmSigner, Protocol):
    def sign_typed_data(
        self,
        domain: Mapping[str, Any],
        types: Mapping[str, List[Dict[str, str]]],
        primary_type: str,
        message: Mapping[str, Any],
    ) -> bytes:
        ...


class LocalAccountSigner:
    """
    Signer backed by an in-process ``eth_account`` key.
    """

    def __init__(self, private_key: str) -> None:
        self._account = Account.from_key(private_key)
        self._lock = threading.Lock()

    @property
    def address(self) -> str:
        return self._account.address

    def sign_digest(self, digest: bytes) -> bytes:
        if len(digest) != 32:
            raise ValueError(f"Digest must be 32 bytes, got {len(digest)}")
        with self._lock:
            signed = self._account.unsafe_sign_hash(HexBytes(digest))
        return bytes(signed.signature)

    def sign_typed_data(
        self,
        domain: Mapping[str, Any],
        types: Mapping[str, List[Dict[str, str]]],
        primary_type: str,
        message: Mapping[str, Any],
    ) -> bytes:
        typed_data = {
            "types": dict(types),
            "primaryType": primary_type,
            "domain": dict(domain),
            "message": dict(message),
        }
        signable = encode_typed_data(full_message=typed_data)
        with self._lock:
            signed = self._account.sign_message(signable)
        return bytes(signed.signature)

    def __repr__(self) -> str:
        return f"LocalAccountSigner(address={self.address!r})"
