"""
Core primitives that implement the x402 pay-per-request protocol.
"""

from .authorization import (
    authorization_digest,
    compute_domain_separator,
    hash_authorization,
    sign_authorization,
    sign_authorization_for_domain,
    sign_authorization_typed_data,
)
from .config import (
    ClientConfig,
    ConfigError,
    FacilitatorConfig,
    load_client_config,
    load_facilitator_config,
)
from .deadline import Deadline
from .domain import (
    ComputedDomainSeparator,
    DomainResolution,
    DomainSeparatorResolver,
    JsonRpcChainReader,
    OnChainDomainSeparator,
    PinnedDomainSeparators,
)
from .environment import SettingsEnvironment, build_environment, load_env_file
from .errors import (
    AssetMetadataMissing,
    ChainQueryError,
    DeadlineExceeded,
    FacilitatorError,
    FacilitatorTransportError,
    FailedToSignAuthorization,
    InvalidAmount,
    InvalidAuthorization,
    InvalidPaymentRequired,
    NoSchemeRegistered,
    PaymentVerificationFailed,
    SettleError,
    SettlementOutcomeUnknown,
    UnsupportedNetwork,
    VerifyError,
    X402Error,
)
from .facilitator import AuthHeaders, AuthProvider, FacilitatorClient, sign_request
from .http_client import PaidResponse, PaymentRetryClient
from .models import (
    Authorization,
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    ResourceInfo,
    SettleResult,
    SupportedKinds,
    VerifyResult,
)
from .registry import SchemeRegistry
from .scheme import ExactEvmScheme
from .signer import EvmSigner, LocalAccountSigner, TypedDataSigner

__all__ = [
    "AssetMetadataMissing",
    "AuthHeaders",
    "AuthProvider",
    "Authorization",
    "ChainQueryError",
    "ClientConfig",
    "ComputedDomainSeparator",
    "ConfigError",
    "Deadline",
    "DeadlineExceeded",
    "DomainResolution",
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
    "InvalidPaymentRequired",
    "JsonRpcChainReader",
    "LocalAccountSigner",
    "NoSchemeRegistered",
    "OnChainDomainSeparator",
    "PaidResponse",
    "PaymentPayload",
    "PaymentRequired",
    "PaymentRequirements",
    "PaymentRetryClient",
    "PaymentVerificationFailed",
    "PinnedDomainSeparators",
    "ResourceInfo",
    "SchemeRegistry",
    "SettingsEnvironment",
    "SettleError",
    "SettleResult",
    "SettlementOutcomeUnknown",
    "SupportedKinds",
    "TypedDataSigner",
    "UnsupportedNetwork",
    "VerifyError",
    "VerifyResult",
    "X402Error",
    "authorization_digest",
    "build_environment",
    "compute_domain_separator",
    "hash_authorization",
    "load_client_config",
    "load_env_file",
    "load_facilitator_config",
    "sign_authorization",
    "sign_authorization_for_domain",
    "sign_authorization_typed_data",
    "sign_request",
]
