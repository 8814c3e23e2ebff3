"""
Client side of the ``exact`` scheme on EVM networks.

Turns one :class:`PaymentRequirements` offer into a signed EIP-3009
authorization wrapped in a :class:`PaymentPayload`.
"""

from __future__ import annotations

import logging
import secrets
import time
from typing import Callable, Optional, Tuple

from eth_utils import is_hex_address, to_checksum_address

from .authorization import sign_authorization, sign_authorization_typed_data
from .deadline import Deadline
from .domain import DomainSeparatorResolver
from .errors import FailedToSignAuthorization, InvalidPaymentRequired
from .models import (
    Authorization,
    ExactEvmPayload,
    PaymentPayload,
    PaymentRequirements,
    ResourceInfo,
    parse_amount,
)
from .networks import DEFAULT_VALIDITY_SECONDS, SCHEME_EXACT, get_asset_info, get_evm_chain_id
from .signer import EvmSigner

__all__ = [
    "ExactEvmScheme",
    "create_nonce",
    "create_validity_window",
]

logger = logging.getLogger(__name__)


def create_nonce() -> str:
    """Fresh 32-byte random nonce as ``0x`` hex."""
    return "0x" + secrets.token_bytes(32).hex()


def create_validity_window(seconds: int, now: Optional[int] = None) -> Tuple[int, int]:
    """
    ``(validAfter, validBefore)`` for a window starting now.

    There is no backdating: the authorization is usable immediately.
    """
    now = int(time.time()) if now is None else now
    return now, now + seconds


class ExactEvmScheme:
    """
    Builds ``exact`` payloads for any EIP-155 network.

    ``typed_data_signing`` makes the scheme sign through the signer's
    EIP-712 entry point whenever the separator was computed locally, for
    wallets that refuse raw digests. Pinned and on-chain separators always
    use the digest path since name and version may be unknown.
    """

    scheme = SCHEME_EXACT

    def __init__(
        self,
        signer: EvmSigner,
        *,
        resolver: Optional[DomainSeparatorResolver] = None,
        validity_seconds: int = DEFAULT_VALIDITY_SECONDS,
        typed_data_signing: bool = False,
        clock: Callable[[], float] = time.time,
        nonce_factory: Callable[[], str] = create_nonce,
    ) -> None:
        if validity_seconds <= 0:
            raise ValueError("validity_seconds must be positive")
        self.signer = signer
        self.resolver = resolver or DomainSeparatorResolver.default()
        self.validity_seconds = validity_seconds
        self.typed_data_signing = typed_data_signing
        self._clock = clock
        self._nonce_factory = nonce_factory

    def _payer_address(self) -> str:
        try:
            return self.signer.address
        except Exception as exc:  # noqa: BLE001 - capability unavailable
            raise FailedToSignAuthorization(f"Signer address unavailable: {exc}") from exc

    def create_payment_payload(
        self,
        requirements: PaymentRequirements,
        *,
        resource: Optional[ResourceInfo] = None,
        deadline: Optional[Deadline] = None,
    ) -> PaymentPayload:
        network = requirements.network
        chain_id = get_evm_chain_id(network)
        asset = get_asset_info(network, requirements.asset)

        # Amount is already in the asset's smallest unit.
        value = parse_amount(requirements.amount)

        if not is_hex_address(requirements.pay_to):
            raise InvalidPaymentRequired(f"payTo is not a valid EVM address: {requirements.pay_to!r}")

        valid_after, valid_before = create_validity_window(
            self.validity_seconds, int(self._clock())
        )

        token_name = asset.name
        token_version = asset.version
        extra_name = requirements.extra.get("name")
        extra_version = requirements.extra.get("version")
        if isinstance(extra_name, str) and extra_name:
            token_name = extra_name
        if isinstance(extra_version, str) and extra_version:
            token_version = extra_version

        authorization = Authorization(
            from_address=self._payer_address(),
            to=to_checksum_address(requirements.pay_to),
            value=str(value),
            valid_after=str(valid_after),
            valid_before=str(valid_before),
            nonce=self._nonce_factory(),
        )

        logger.info(
            "Creating %s payment of %s base units on %s to %s",
            self.scheme,
            authorization.value,
            network,
            authorization.to,
        )

        resolution = self.resolver.resolve(
            network,
            asset.address,
            chain_id=chain_id,
            name=token_name,
            version=token_version,
            deadline=deadline,
        )
        if self.typed_data_signing and resolution.provenance == "computed":
            signature = sign_authorization_typed_data(
                authorization,
                chain_id,
                asset.address,
                token_name or "",
                token_version or "",
                self.signer,
                deadline=deadline,
            )
        else:
            signature = sign_authorization(
                authorization,
                resolution.separator,
                self.signer,
                deadline=deadline,
            )

        evm_payload = ExactEvmPayload(
            signature="0x" + signature.hex(),
            authorization=authorization,
        )
        return PaymentPayload(
            x402_version=requirements.x402_version,
            payload=evm_payload.to_dict(),
            accepted=requirements.to_dict(),
            resource=resource if requirements.x402_version != 1 else None,
        )
