"""
Value objects exchanged between the client, resource server and facilitator.

All models are frozen dataclasses. Wire mappings keep the camelCase names
used on the wire; ``raw`` holds the mapping a model was parsed from so that
unknown and extension fields survive a round trip untouched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from .errors import FacilitatorError, InvalidAmount, InvalidAuthorization, InvalidPaymentRequired

__all__ = [
    "Authorization",
    "ExactEvmPayload",
    "PaymentPayload",
    "PaymentRequired",
    "PaymentRequirements",
    "ResourceInfo",
    "SettleResult",
    "SupportedKind",
    "SupportedKinds",
    "VerifyResult",
    "parse_amount",
    "parse_uint256",
    "thaw",
]

UINT256_MAX = 2**256 - 1

_UINT_PATTERN = re.compile(r"[0-9]+")
_NONCE_PATTERN = re.compile(r"0x[0-9a-fA-F]{64}")


def parse_uint256(text: Any, field_name: str, *, error: type = InvalidAuthorization) -> int:
    """
    Parse a decimal-string unsigned integer losslessly.

    Only plain ASCII digits are accepted: signs, decimal points, exponents,
    whitespace and empty strings are all rejected rather than coerced.
    """
    if isinstance(text, bool) or not isinstance(text, (str, int)):
        raise error(f"{field_name} must be a decimal string, got {type(text).__name__}")
    if isinstance(text, int):
        value = text
        if value < 0:
            raise error(f"{field_name} must not be negative, got {text}")
    else:
        if not _UINT_PATTERN.fullmatch(text):
            raise error(f"{field_name} is not an unsigned decimal integer: {text!r}")
        value = int(text, 10)
    if value > UINT256_MAX:
        raise error(f"{field_name} does not fit in uint256: {text}")
    return value


def parse_amount(text: Any, field_name: str = "amount") -> int:
    """Parse an amount expressed in the asset's smallest unit."""
    return parse_uint256(text, field_name, error=InvalidAmount)


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Return a plain ``dict``/``list`` copy of a frozen value, ready for JSON."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


def _frozen(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return _freeze(dict(mapping or {}))


def _wire_int(value: Any, field_name: str, *, error: type = InvalidPaymentRequired) -> int:
    if isinstance(value, bool):
        raise error(f"{field_name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise error(f"{field_name} must be an integer, got {value!r}") from exc


@dataclass(frozen=True)
class ResourceInfo:
    url: str
    description: str = ""
    mime_type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "description": self.description,
            "mimeType": self.mime_type,
        }

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ResourceInfo":
        return cls(
            url=str(values.get("url", "")),
            description=str(values.get("description") or ""),
            mime_type=str(values.get("mimeType") or ""),
        )


@dataclass(frozen=True)
class PaymentRequirements:
    """
    One payment offer made by a resource server.

    ``amount`` is kept as the decimal string received; it is parsed with
    :func:`parse_amount` only when a payload is built.
    """

    scheme: str
    network: str
    pay_to: str
    amount: str
    asset: Optional[str] = None
    max_timeout_seconds: Optional[int] = None
    extra: Mapping[str, Any] = field(default_factory=dict)
    resource: Optional[str] = None
    description: Optional[str] = None
    mime_type: Optional[str] = None
    x402_version: int = 2
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", _frozen(self.extra))
        object.__setattr__(self, "raw", _frozen(self.raw))

    def to_dict(self) -> Dict[str, Any]:
        if self.raw:
            return thaw(self.raw)
        amount_key = "maxAmountRequired" if self.x402_version == 1 else "amount"
        out: Dict[str, Any] = {
            "scheme": self.scheme,
            "network": self.network,
            "payTo": self.pay_to,
            amount_key: self.amount,
        }
        if self.asset is not None:
            out["asset"] = self.asset
        if self.max_timeout_seconds is not None:
            out["maxTimeoutSeconds"] = self.max_timeout_seconds
        if self.extra:
            out["extra"] = thaw(self.extra)
        if self.resource is not None:
            out["resource"] = self.resource
        if self.description is not None:
            out["description"] = self.description
        if self.mime_type is not None:
            out["mimeType"] = self.mime_type
        return out

    @classmethod
    def from_mapping(
        cls,
        values: Mapping[str, Any],
        *,
        x402_version: Optional[int] = None,
    ) -> "PaymentRequirements":
        if not isinstance(values, Mapping):
            raise InvalidPaymentRequired("Payment requirements must be an object")
        scheme = values.get("scheme")
        network = values.get("network")
        if not scheme or not network:
            raise InvalidPaymentRequired("Payment requirements must name a scheme and network")
        if x402_version is None:
            x402_version = 1 if "maxAmountRequired" in values and "amount" not in values else 2
        amount = values.get("amount", values.get("maxAmountRequired"))
        timeout = values.get("maxTimeoutSeconds")
        extra = values.get("extra")
        return cls(
            scheme=str(scheme),
            network=str(network),
            pay_to=str(values.get("payTo") or ""),
            amount="" if amount is None else str(amount),
            asset=values.get("asset") or None,
            max_timeout_seconds=(
                _wire_int(timeout, "maxTimeoutSeconds") if timeout is not None else None
            ),
            extra=extra if isinstance(extra, Mapping) else {},
            resource=values.get("resource"),
            description=values.get("description"),
            mime_type=values.get("mimeType"),
            x402_version=x402_version,
            raw=values,
        )


@dataclass(frozen=True)
class Authorization:
    """
    EIP-3009 ``TransferWithAuthorization`` message.

    Numeric fields are decimal strings; ``nonce`` is ``0x`` + 64 hex chars.
    """

    from_address: str
    to: str
    value: str
    valid_after: str
    valid_before: str
    nonce: str

    def value_int(self) -> int:
        return parse_uint256(self.value, "value")

    def valid_after_int(self) -> int:
        return parse_uint256(self.valid_after, "validAfter")

    def valid_before_int(self) -> int:
        return parse_uint256(self.valid_before, "validBefore")

    def nonce_bytes(self) -> bytes:
        if not isinstance(self.nonce, str) or not _NONCE_PATTERN.fullmatch(self.nonce):
            raise InvalidAuthorization(f"nonce must be 0x-prefixed 32 bytes, got {self.nonce!r}")
        return bytes.fromhex(self.nonce[2:])

    def to_dict(self) -> Dict[str, str]:
        return {
            "from": self.from_address,
            "to": self.to,
            "value": self.value,
            "validAfter": self.valid_after,
            "validBefore": self.valid_before,
            "nonce": self.nonce,
        }

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "Authorization":
        try:
            return cls(
                from_address=str(values["from"]),
                to=str(values["to"]),
                value=str(values["value"]),
                valid_after=str(values["validAfter"]),
                valid_before=str(values["validBefore"]),
                nonce=str(values["nonce"]),
            )
        except KeyError as exc:
            raise InvalidAuthorization(f"Authorization is missing field {exc.args[0]!r}") from exc


@dataclass(frozen=True)
class ExactEvmPayload:
    signature: str
    authorization: Authorization

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "authorization": self.authorization.to_dict(),
        }


@dataclass(frozen=True)
class PaymentPayload:
    """
    Signed payment attached to the retried resource request.

    Version 2 payloads reference the accepted requirements; version 1
    payloads carry ``scheme`` and ``network`` at the top level instead.
    """

    x402_version: int
    payload: Mapping[str, Any]
    accepted: Mapping[str, Any] = field(default_factory=dict)
    resource: Optional[ResourceInfo] = None
    extensions: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", _frozen(self.payload))
        object.__setattr__(self, "accepted", _frozen(self.accepted))
        object.__setattr__(self, "extensions", _frozen(self.extensions))

    @property
    def scheme(self) -> Optional[str]:
        return self.accepted.get("scheme")

    @property
    def network(self) -> Optional[str]:
        return self.accepted.get("network")

    @property
    def payer(self) -> Optional[str]:
        authorization = self.payload.get("authorization") or {}
        return authorization.get("from")

    def to_dict(self) -> Dict[str, Any]:
        payload = thaw(self.payload)
        if self.x402_version == 1:
            return {
                "x402Version": 1,
                "scheme": self.scheme,
                "network": self.network,
                "payload": payload,
            }
        out: Dict[str, Any] = {
            "x402Version": self.x402_version,
            "payload": payload,
            "accepted": thaw(self.accepted),
        }
        if self.resource is not None:
            out["resource"] = self.resource.to_dict()
        if self.extensions:
            out["extensions"] = thaw(self.extensions)
        return out


@dataclass(frozen=True)
class PaymentRequired:
    x402_version: int
    accepts: List[PaymentRequirements]
    resource: Optional[ResourceInfo] = None
    error: Optional[str] = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "PaymentRequired":
        if not isinstance(values, Mapping):
            raise InvalidPaymentRequired("402 response body must be an object")
        version = values.get("x402Version", 1)
        if isinstance(version, bool) or version not in (1, 2):
            raise InvalidPaymentRequired(f"Unsupported x402Version: {version!r}")
        accepts = values.get("accepts")
        if not isinstance(accepts, list):
            raise InvalidPaymentRequired("402 response is missing 'accepts'")
        resource = values.get("resource")
        return cls(
            x402_version=version,
            accepts=[
                PaymentRequirements.from_mapping(item, x402_version=version)
                for item in accepts
            ],
            resource=ResourceInfo.from_mapping(resource) if isinstance(resource, Mapping) else None,
            error=values.get("error"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "x402Version": self.x402_version,
            "accepts": [item.to_dict() for item in self.accepts],
        }
        if self.resource is not None:
            out["resource"] = self.resource.to_dict()
        if self.error:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class VerifyResult:
    is_valid: bool
    payer: Optional[str]
    invalid_reason: Optional[str]
    raw: Dict[str, Any]

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "VerifyResult":
        return cls(
            is_valid=bool(payload.get("isValid")),
            payer=payload.get("payer"),
            invalid_reason=payload.get("invalidReason") or payload.get("invalid_reason"),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class SettleResult:
    success: bool
    network: Optional[str]
    transaction: Optional[str]
    payer: Optional[str]
    error_reason: Optional[str]
    raw: Dict[str, Any]

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "SettleResult":
        return cls(
            success=bool(payload.get("success")),
            network=payload.get("network"),
            transaction=payload.get("transaction"),
            payer=payload.get("payer"),
            error_reason=payload.get("errorReason") or payload.get("error_reason"),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class SupportedKind:
    x402_version: int
    scheme: str
    network: str
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SupportedKinds:
    kinds: List[SupportedKind]
    extensions: List[str]
    signers: Dict[str, List[str]]
    raw: Dict[str, Any]

    def supports(self, scheme: str, network: str) -> bool:
        return any(k.scheme == scheme and k.network == network for k in self.kinds)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "SupportedKinds":
        kinds = [
            SupportedKind(
                x402_version=_wire_int(
                    item.get("x402Version", 1), "x402Version", error=FacilitatorError
                ),
                scheme=str(item.get("scheme", "")),
                network=str(item.get("network", "")),
                extra=item.get("extra") or {},
            )
            for item in payload.get("kinds") or []
            if isinstance(item, Mapping)
        ]
        return cls(
            kinds=kinds,
            extensions=list(payload.get("extensions") or []),
            signers=dict(payload.get("signers") or {}),
            raw=dict(payload),
        )
