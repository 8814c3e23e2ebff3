"""
Public facade for the x402-gate package.

The module re-exports the most useful pieces for integrators so they can
``from x402_gate import ...`` without navigating the package.
"""

from .api import build_exact_registry, create_facilitator_client, create_payment_client
from .core import (
    AssetMetadataMissing,
    AuthHeaders,
    Authorization,
    ClientConfig,
    ConfigError,
    Deadline,
    DeadlineExceeded,
    DomainSeparatorResolver,
    EvmSigner,
    ExactEvmScheme,
    FacilitatorClient,
    FacilitatorConfig,
    FacilitatorError,
    FacilitatorTransportError,
    FailedToSignAuthorization,
    InvalidAmount,
    InvalidAuthorization,
    JsonRpcChainReader,
    LocalAccountSigner,
    NoSchemeRegistered,
    PaidResponse,
    PaymentPayload,
    PaymentRequirements,
    PaymentRetryClient,
    PaymentVerificationFailed,
    PinnedDomainSeparators,
    SchemeRegistry,
    SettleError,
    SettleResult,
    SettlementOutcomeUnknown,
    SupportedKinds,
    UnsupportedNetwork,
    VerifyError,
    VerifyResult,
    X402Error,
    load_client_config,
    load_facilitator_config,
)

__all__ = (
    "AssetMetadataMissing",
    "AuthHeaders",
    "Authorization",
    "ClientConfig",
    "ConfigError",
    "Deadline",
    "DeadlineExceeded",
    "DomainSeparatorResolver",
    "EvmSigner",
    "ExactEvmScheme",
    "FacilitatorClient",
    "FacilitatorConfig",
    "FacilitatorError",
    "FacilitatorTransportError",
    "FailedToSignAuthorization",
    "InvalidAmount",
    "InvalidAuthorization",
    "JsonRpcChainReader",
    "LocalAccountSigner",
    "NoSchemeRegistered",
    "PaidResponse",
    "PaymentPayload",
    "PaymentRequirements",
    "PaymentRetryClient",
    "PaymentVerificationFailed",
    "PinnedDomainSeparators",
    "SchemeRegistry",
    "SettleError",
    "SettleResult",
    "SettlementOutcomeUnknown",
    "SupportedKinds",
    "UnsupportedNetwork",
    "VerifyError",
    "VerifyResult",
    "X402Error",
    "build_exact_registry",
    "create_facilitator_client",
    "create_payment_client",
    "load_client_config",
    "load_facilitator_config",
)
