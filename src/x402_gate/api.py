"""
Public, high-level helpers for paying for x402 resources.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

import requests

from .core.config import (
    ClientConfig,
    ConfigError,
    FacilitatorConfig,
    load_client_config,
    load_facilitator_config,
)
from .core.domain import DomainSeparatorResolver, JsonRpcChainReader, PinnedDomainSeparators
from .core.facilitator import AuthProvider, FacilitatorClient
from .core.http_client import PaymentRetryClient
from .core.networks import NETWORK_CONFIGS
from .core.registry import SchemeRegistry
from .core.scheme import ExactEvmScheme
from .core.signer import EvmSigner, LocalAccountSigner

__all__ = [
    "build_exact_registry",
    "create_facilitator_client",
    "create_payment_client",
]

# Any EIP-155 chain can be paid on once name/version are known.
DEFAULT_NETWORKS = ("eip155:*",) + tuple(NETWORK_CONFIGS)


def build_exact_registry(
    scheme: ExactEvmScheme,
    networks: Iterable[str] = DEFAULT_NETWORKS,
) -> SchemeRegistry:
    registry = SchemeRegistry()
    for network in networks:
        registry = registry.register(network, scheme)
    return registry


def create_facilitator_client(
    *,
    config: Optional[FacilitatorConfig] = None,
    session: Optional[requests.Session] = None,
    auth_provider: Optional[AuthProvider] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
) -> FacilitatorClient:
    """
    Construct a :class:`FacilitatorClient`.

    Callers can either supply a ready-made :class:`FacilitatorConfig` or let
    the helper assemble one from environment data.
    """
    if config is not None and (overrides or base):
        raise ValueError(
            "Provide either a pre-built FacilitatorConfig or environment overrides, not both."
        )
    cfg = config or load_facilitator_config(env_file=env_file, overrides=overrides, base=base)
    return FacilitatorClient(cfg, session=session, auth_provider=auth_provider)


def create_payment_client(
    *,
    config: Optional[ClientConfig] = None,
    signer: Optional[EvmSigner] = None,
    session: Optional[requests.Session] = None,
    pinned: Optional[PinnedDomainSeparators] = None,
    networks: Iterable[str] = DEFAULT_NETWORKS,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
) -> PaymentRetryClient:
    """
    Construct a :class:`PaymentRetryClient` paying with the ``exact`` scheme.

    The signer defaults to a local key from ``X402_PAYER_PRIVATE_KEY``. When
    ``X402_RPC_URL`` is set, domain separators not pinned are read from the
    token contract before falling back to local computation.
    """
    if config is not None and (overrides or base):
        raise ValueError(
            "Provide either a pre-built ClientConfig or environment overrides, not both."
        )
    cfg = config or load_client_config(env_file=env_file, overrides=overrides, base=base)

    if signer is None:
        if not cfg.private_key:
            raise ConfigError("X402_PAYER_PRIVATE_KEY must be provided when no signer is given")
        signer = LocalAccountSigner(cfg.private_key)

    session = session or requests.Session()
    reader = JsonRpcChainReader(cfg.rpc_url, session=session) if cfg.rpc_url else None
    resolver = DomainSeparatorResolver.default(chain_reader=reader, pinned=pinned)
    scheme = ExactEvmScheme(signer, resolver=resolver, validity_seconds=cfg.validity_seconds)
    return PaymentRetryClient(
        build_exact_registry(scheme, networks),
        session=session,
        timeout=cfg.request_timeout_seconds,
    )
