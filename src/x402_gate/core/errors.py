"""
Typed errors raised by the x402 payment core.

Every error carries a stable ``reason`` code so callers can branch on the
failure kind without parsing messages.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "AssetMetadataMissing",
    "ChainQueryError",
    "ConfigError",
    "DeadlineExceeded",
    "FacilitatorError",
    "FacilitatorTransportError",
    "FailedToSignAuthorization",
    "InvalidAmount",
    "InvalidAuthorization",
    "InvalidPaymentRequired",
    "NoSchemeRegistered",
    "PaymentVerificationFailed",
    "SettleError",
    "SettlementOutcomeUnknown",
    "UnsupportedNetwork",
    "VerifyError",
    "X402Error",
]


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


class X402Error(Exception):
    reason = "x402_error"

    def __init__(self, message: str, *, reason: Optional[str] = None) -> None:
        super().__init__(message)
        if reason is not None:
            self.reason = reason


# Input errors


class InvalidAmount(X402Error):
    reason = "invalid_amount"


class InvalidAuthorization(X402Error):
    reason = "invalid_authorization"


class UnsupportedNetwork(X402Error):
    reason = "unsupported_network"

    def __init__(self, network: str) -> None:
        super().__init__(f"Unsupported network: {network}")
        self.network = network


class AssetMetadataMissing(X402Error):
    """Token name/version needed for the EIP-712 domain could not be resolved."""

    reason = "asset_metadata_missing"


class NoSchemeRegistered(X402Error):
    reason = "no_scheme_registered"

    def __init__(self, offered: Optional[list] = None) -> None:
        offered = list(offered or [])
        pairs = ", ".join(f"{scheme}/{network}" for scheme, network in offered) or "none"
        super().__init__(f"No registered scheme matches the offered requirements ({pairs})")
        self.offered = offered


class InvalidPaymentRequired(X402Error):
    reason = "invalid_payment_required"


# Signing errors


class FailedToSignAuthorization(X402Error):
    reason = "failed_to_sign_authorization"


# Transport errors


class DeadlineExceeded(X402Error):
    reason = "deadline_exceeded"

    def __init__(self, stage: str) -> None:
        super().__init__(f"Deadline exceeded before {stage}")
        self.stage = stage


class ChainQueryError(X402Error):
    reason = "chain_query_failed"


class FacilitatorTransportError(X402Error):
    reason = "facilitator_unreachable"


# Business errors


class FacilitatorError(X402Error):
    """
    The facilitator answered, but rejected the call without a structured reason.
    """

    reason = "facilitator_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[int] = None,
        msg: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.msg = msg


class VerifyError(FacilitatorError):
    """
    The facilitator rejected a payment during verification.
    """

    def __init__(
        self,
        reason: str,
        *,
        payer: Optional[str] = None,
        network: Optional[str] = None,
        status_code: Optional[int] = None,
        code: Optional[int] = None,
        msg: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"Payment verification failed: {reason} (payer={payer}, network={network})",
            status_code=status_code,
            code=code,
            msg=msg,
        )
        self.reason = reason
        self.payer = payer
        self.network = network


class SettleError(FacilitatorError):
    """
    The facilitator rejected a payment during settlement.

    ``transaction`` is set when the facilitator reports a submitted but
    failed transaction.
    """

    def __init__(
        self,
        reason: str,
        *,
        payer: Optional[str] = None,
        network: Optional[str] = None,
        transaction: Optional[str] = None,
        status_code: Optional[int] = None,
        code: Optional[int] = None,
        msg: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"Payment settlement failed: {reason} (payer={payer}, network={network})",
            status_code=status_code,
            code=code,
            msg=msg,
        )
        self.reason = reason
        self.payer = payer
        self.network = network
        self.transaction = transaction


# Ambiguous outcome


class SettlementOutcomeUnknown(X402Error):
    """
    A settle request may have reached the facilitator but no answer came back.

    The payment may or may not have been submitted on-chain. Retrying blindly
    can attempt a second transfer; callers should reconcile (for example by
    checking the authorization nonce on-chain) before trying again.
    """

    reason = "settlement_outcome_unknown"

    def __init__(
        self,
        message: str,
        *,
        payer: Optional[str] = None,
        network: Optional[str] = None,
        nonce: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.payer = payer
        self.network = network
        self.nonce = nonce


# Orchestration


class PaymentVerificationFailed(X402Error):
    """The resource server answered 402 again after a payment was attached."""

    reason = "payment_verification_failed"

    def __init__(
        self,
        message: str,
        *,
        payer: Optional[str] = None,
        network: Optional[str] = None,
        server_error: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.payer = payer
        self.network = network
        self.server_error = server_error
