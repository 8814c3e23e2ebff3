"""
Resolution of the EIP-712 domain separator used to sign authorizations.

The separator is resolved by an ordered list of strategies, first hit wins:

1. pinned values for (network, asset) pairs known not to rotate;
2. ``DOMAIN_SEPARATOR()`` read from the token contract, when a chain reader
   is configured;
3. local computation from token name, version, chain id and address.

The same value must be used by the signer and trusted by the verifying
contract, otherwise the signature is valid but the payment never settles.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import requests
from eth_utils import is_hex_address, to_checksum_address
from hexbytes import HexBytes

from .authorization import compute_domain_separator
from .deadline import Deadline, call_timeout
from .errors import AssetMetadataMissing, ChainQueryError, DeadlineExceeded
from .networks import NETWORK_CONFIGS

__all__ = [
    "DOMAIN_SEPARATOR_SELECTOR",
    "ChainReader",
    "ComputedDomainSeparator",
    "DomainRequest",
    "DomainResolution",
    "DomainSeparatorResolver",
    "DomainSeparatorStrategy",
    "JsonRpcChainReader",
    "OnChainDomainSeparator",
    "PinnedDomainSeparators",
]

logger = logging.getLogger(__name__)

# keccak("DOMAIN_SEPARATOR()")[:4]
DOMAIN_SEPARATOR_SELECTOR = "0x3644e515"

# Read from the Gate Layer testnet USDC contract.
_GATELAYER_TESTNET_USDC_SEPARATOR = (
    "0x2c2d6b621e73a4a094449d1894717413742130fb20149ec48340ca0354d1a707"
)
_GATELAYER_TESTNET_USDC = NETWORK_CONFIGS["gatelayer_testnet"].default_asset.address
DEFAULT_PINNED_SEPARATORS: Dict[Tuple[str, str], str] = {
    ("gatelayer_testnet", _GATELAYER_TESTNET_USDC): _GATELAYER_TESTNET_USDC_SEPARATOR,
    ("eip155:10087", _GATELAYER_TESTNET_USDC): _GATELAYER_TESTNET_USDC_SEPARATOR,
}


@dataclass(frozen=True)
class DomainRequest:
    network: str
    asset: str
    chain_id: int
    name: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class DomainResolution:
    separator: HexBytes
    provenance: str


class DomainSeparatorStrategy(Protocol):
    provenance: str

    def lookup(self, request: DomainRequest, deadline: Optional[Deadline] = None) -> Optional[HexBytes]:
        ...


class ChainReader(Protocol):
    """Read-only contract call capability."""

    def call(self, to: str, data: str, *, timeout: Optional[float] = None) -> bytes:
        ...


def _asset_key(network: str, asset: str) -> Tuple[str, str]:
    if is_hex_address(asset):
        asset = to_checksum_address(asset)
    return network, asset


def _as_separator(value: bytes | str) -> HexBytes:
    separator = HexBytes(value)
    if len(separator) != 32:
        raise ValueError(f"Domain separator must be 32 bytes, got {len(separator)}")
    return separator


class PinnedDomainSeparators:
    """
    Known-good separators keyed by (network, asset).

    Pins are a cache, not constants: if a token contract is redeployed or
    upgraded, call :meth:`invalidate` so the next resolution falls through to
    the chain or to local computation.
    """

    provenance = "pinned"

    def __init__(
        self,
        pins: Optional[Dict[Tuple[str, str], bytes | str]] = None,
        *,
        include_defaults: bool = True,
    ) -> None:
        self._lock = threading.Lock()
        self._pins: Dict[Tuple[str, str], HexBytes] = {}
        initial: Dict[Tuple[str, str], bytes | str] = {}
        if include_defaults:
            initial.update(DEFAULT_PINNED_SEPARATORS)
        initial.update(pins or {})
        for (network, asset), value in initial.items():
            self._pins[_asset_key(network, asset)] = _as_separator(value)

    def pin(self, network: str, asset: str, separator: bytes | str) -> None:
        with self._lock:
            self._pins[_asset_key(network, asset)] = _as_separator(separator)

    def invalidate(self, network: str, asset: str) -> bool:
        with self._lock:
            return self._pins.pop(_asset_key(network, asset), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._pins.clear()

    def get(self, network: str, asset: str) -> Optional[HexBytes]:
        with self._lock:
            return self._pins.get(_asset_key(network, asset))

    def __len__(self) -> int:
        return len(self._pins)

    def lookup(self, request: DomainRequest, deadline: Optional[Deadline] = None) -> Optional[HexBytes]:
        return self.get(request.network, request.asset)


class JsonRpcChainReader:
    """
    ``eth_call`` over JSON-RPC using :mod:`requests`.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self.rpc_url = rpc_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def call(self, to: str, data: str, *, timeout: Optional[float] = None) -> bytes:
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "eth_call",
            "params": [{"to": to, "data": data}, "latest"],
        }
        try:
            response = self.session.post(
                self.rpc_url,
                json=body,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.RequestException as exc:
            raise ChainQueryError(f"eth_call to {self.rpc_url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise ChainQueryError(
                f"RPC endpoint responded with {response.status_code}: {response.text}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ChainQueryError(f"Failed to parse JSON-RPC response: {response.text}") from exc

        if not isinstance(payload, dict):
            raise ChainQueryError(f"Unexpected JSON-RPC response: {payload!r}")
        if payload.get("error"):
            raise ChainQueryError(f"eth_call returned an error: {payload['error']}")
        result = payload.get("result")
        if not isinstance(result, str):
            raise ChainQueryError(f"eth_call returned no result: {payload!r}")
        try:
            return bytes(HexBytes(result))
        except ValueError as exc:
            raise ChainQueryError(f"eth_call returned non-hex data: {result!r}") from exc


class OnChainDomainSeparator:
    provenance = "chain"

    def __init__(self, reader: ChainReader, *, timeout: float = 10.0) -> None:
        self.reader = reader
        self.timeout = timeout

    def lookup(self, request: DomainRequest, deadline: Optional[Deadline] = None) -> Optional[HexBytes]:
        timeout = call_timeout(deadline, self.timeout, "querying DOMAIN_SEPARATOR")
        try:
            result = self.reader.call(request.asset, DOMAIN_SEPARATOR_SELECTOR, timeout=timeout)
        except ChainQueryError as exc:
            if deadline is not None and deadline.expired():
                raise DeadlineExceeded("querying DOMAIN_SEPARATOR") from exc
            logger.warning(
                "DOMAIN_SEPARATOR query for %s on %s failed, falling back: %s",
                request.asset,
                request.network,
                exc,
            )
            return None
        if len(result) < 32:
            logger.warning(
                "DOMAIN_SEPARATOR query for %s returned %d bytes, falling back",
                request.asset,
                len(result),
            )
            return None
        return HexBytes(result[:32])


class ComputedDomainSeparator:
    provenance = "computed"

    def lookup(self, request: DomainRequest, deadline: Optional[Deadline] = None) -> Optional[HexBytes]:
        return compute_domain_separator(
            request.name or "",
            request.version or "",
            request.chain_id,
            request.asset,
        )


class DomainSeparatorResolver:
    """
    Evaluate strategies top-down and return the first separator found.
    """

    def __init__(self, strategies: Sequence[DomainSeparatorStrategy]) -> None:
        if not strategies:
            raise ValueError("At least one domain separator strategy is required")
        self.strategies: List[DomainSeparatorStrategy] = list(strategies)

    @classmethod
    def default(
        cls,
        *,
        chain_reader: Optional[ChainReader] = None,
        pinned: Optional[PinnedDomainSeparators] = None,
    ) -> "DomainSeparatorResolver":
        strategies: List[DomainSeparatorStrategy] = [pinned if pinned is not None else PinnedDomainSeparators()]
        if chain_reader is not None:
            strategies.append(OnChainDomainSeparator(chain_reader))
        strategies.append(ComputedDomainSeparator())
        return cls(strategies)

    @property
    def pinned(self) -> Optional[PinnedDomainSeparators]:
        for strategy in self.strategies:
            if isinstance(strategy, PinnedDomainSeparators):
                return strategy
        return None

    def resolve(
        self,
        network: str,
        asset: str,
        *,
        chain_id: int,
        name: Optional[str] = None,
        version: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> DomainResolution:
        request = DomainRequest(
            network=network,
            asset=asset,
            chain_id=chain_id,
            name=name,
            version=version,
        )
        for strategy in self.strategies:
            if deadline is not None:
                deadline.check("resolving domain separator")
            separator = strategy.lookup(request, deadline)
            if separator is not None:
                logger.debug(
                    "Resolved domain separator for %s on %s from %s",
                    asset,
                    network,
                    strategy.provenance,
                )
                return DomainResolution(separator=HexBytes(separator), provenance=strategy.provenance)
        raise AssetMetadataMissing(f"No strategy produced a domain separator for {asset} on {network}")

