"""
HTTP client for an x402 facilitator behind the Gate Web3 OpenAPI gateway.

Every operation is a POST to one endpoint; the operation is chosen by the
``action`` field of the body::

    {"action": "x402.verify", "params": {"x402Version": 2,
                                          "paymentPayload": {...},
                                          "paymentRequirements": {...}}}

Requests are authenticated with an HMAC over the exact body bytes sent::

    X-Signature = base64(HMAC_SHA256(secret, timestamp + signing_path + body))

Responses use the envelope ``{"code": 0, "msg": "", "data": {...}}``; only
HTTP 200 together with ``code == 0`` is a success.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple

import requests
from urllib3.exceptions import NewConnectionError

from .config import FacilitatorConfig
from .deadline import Deadline, call_timeout
from .errors import (
    FacilitatorError,
    FacilitatorTransportError,
    SettleError,
    SettlementOutcomeUnknown,
    VerifyError,
    X402Error,
)
from .models import SettleResult, SupportedKinds, VerifyResult, thaw

__all__ = [
    "ACTION_SETTLE",
    "ACTION_SUPPORTED",
    "ACTION_VERIFY",
    "AuthHeaders",
    "AuthProvider",
    "FacilitatorClient",
    "detect_version",
    "serialize_body",
    "sign_request",
]

logger = logging.getLogger(__name__)

ACTION_VERIFY = "x402.verify"
ACTION_SETTLE = "x402.settle"
ACTION_SUPPORTED = "x402.supported"

# Logical target URIs forwarded to the gateway as ``x-target-uri``.
_TARGET_URIS = {
    ACTION_VERIFY: "/v1/x402/verify",
    ACTION_SETTLE: "/v1/x402/settle",
    ACTION_SUPPORTED: "/v1/x402/supported",
}


@dataclass(frozen=True)
class AuthHeaders:
    """Extra headers per endpoint; they override the default signed headers."""

    verify: Mapping[str, str] = field(default_factory=dict)
    settle: Mapping[str, str] = field(default_factory=dict)
    supported: Mapping[str, str] = field(default_factory=dict)

    def for_action(self, action: str) -> Mapping[str, str]:
        return {
            ACTION_VERIFY: self.verify,
            ACTION_SETTLE: self.settle,
            ACTION_SUPPORTED: self.supported,
        }[action]


class AuthProvider(Protocol):
    def get_auth_headers(self) -> AuthHeaders:
        ...


def sign_request(secret: str, timestamp: int | str, signing_path: str, body: bytes) -> str:
    prehash = f"{timestamp}{signing_path}".encode("utf-8") + body
    digest = hmac.new(secret.encode("utf-8"), prehash, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def serialize_body(body: Mapping[str, Any]) -> bytes:
    """The one serialization used both for signing and as the HTTP body."""
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def detect_version(payload: Mapping[str, Any]) -> int:
    """
    Protocol version of a payment payload.

    An explicit ``x402Version`` wins. Otherwise the shape decides: version 2
    payloads reference the ``accepted`` requirements, version 1 payloads carry
    ``scheme`` and ``network`` at the top level.
    """
    version = payload.get("x402Version")
    if version is not None:
        if isinstance(version, bool) or version not in (1, 2):
            raise FacilitatorError(f"Invalid x402Version: {version!r}")
        return int(version)
    if isinstance(payload.get("accepted"), Mapping):
        return 2
    if payload.get("scheme") and payload.get("network"):
        return 1
    raise FacilitatorError("Cannot detect x402 version from payment payload shape")


def _never_connected(exc: requests.ConnectionError) -> bool:
    """
    True when the connection was never established (DNS failure, refused).

    ``requests`` wraps urllib3's ``MaxRetryError``, whose ``reason`` holds the
    underlying ``NewConnectionError`` (``NameResolutionError`` subclasses it).
    """
    cause = exc.args[0] if exc.args else None
    cause = getattr(cause, "reason", cause)
    return isinstance(cause, NewConnectionError)


def _as_mapping(value: Any, what: str) -> Dict[str, Any]:
    if isinstance(value, (bytes, bytearray, str)):
        try:
            if not isinstance(value, str):
                value = bytes(value).decode("utf-8")
            value = json.loads(value)
        except (UnicodeDecodeError, ValueError) as exc:
            raise FacilitatorError(f"Failed to decode {what}: {exc}") from exc
    elif hasattr(value, "to_dict"):
        value = value.to_dict()
    if not isinstance(value, Mapping):
        raise FacilitatorError(f"{what} must be a JSON object")
    return thaw(value)


class FacilitatorClient:
    """
    Thin client around the facilitator's action-dispatch endpoint.

    ``verify`` is safe to retry. ``settle`` is not: when a settle request may
    have been delivered but no answer was received, it raises
    :class:`SettlementOutcomeUnknown` instead of a transport error.
    """

    def __init__(
        self,
        config: Optional[FacilitatorConfig] = None,
        *,
        session: Optional[requests.Session] = None,
        auth_provider: Optional[AuthProvider] = None,
        clock: Callable[[], float] = time.time,
        request_id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.config = config or FacilitatorConfig()
        self.session = session or requests.Session()
        self.auth_provider = auth_provider
        self._clock = clock
        self._request_id_factory = request_id_factory

    @property
    def url(self) -> str:
        return self.config.url

    def build_headers(self, action: str, body: bytes) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        config = self.config
        if config.signing_enabled:
            timestamp = int(self._clock() * 1000)
            headers.update(
                {
                    "X-Api-Key": config.api_key,
                    "X-Timestamp": str(timestamp),
                    "X-Signature": sign_request(
                        config.api_secret, timestamp, config.signing_path, body
                    ),
                    "X-Request-Id": self._request_id_factory(),
                    "x-target-uri": _TARGET_URIS[action].lstrip("/"),
                }
            )
            if config.passphrase:
                headers["X-Passphrase"] = config.passphrase
            if config.real_ip:
                headers["X-Forwarded-For"] = config.real_ip
        else:
            logger.debug("Facilitator credentials not configured, sending %s unsigned", action)

        if self.auth_provider is not None:
            try:
                extra = self.auth_provider.get_auth_headers()
            except Exception as exc:  # noqa: BLE001 - provider failures abort the call
                raise X402Error(
                    f"Failed to get auth headers for {action}: {exc}",
                    reason="auth_headers_unavailable",
                ) from exc
            headers.update(extra.for_action(action))
        return headers

    def _post(
        self,
        action: str,
        params: Mapping[str, Any],
        *,
        deadline: Optional[Deadline],
        settle_context: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[int, Dict[str, Any]]:
        body = serialize_body({"action": action, "params": params})
        headers = self.build_headers(action, body)
        timeout = call_timeout(deadline, self.config.timeout_seconds, action)

        logger.info("Submitting %s to %s", action, self.url)
        try:
            response = self.session.post(self.url, data=body, headers=headers, timeout=timeout)
        except requests.ConnectTimeout as exc:
            # Nothing reached the facilitator.
            raise FacilitatorTransportError(f"{action} request failed: {exc}") from exc
        except requests.ConnectionError as exc:
            if settle_context is not None and not _never_connected(exc):
                raise SettlementOutcomeUnknown(
                    f"Settlement outcome unknown, request may have been delivered: {exc}",
                    **settle_context,
                ) from exc
            raise FacilitatorTransportError(f"{action} request failed: {exc}") from exc
        except requests.RequestException as exc:
            if settle_context is not None:
                raise SettlementOutcomeUnknown(
                    f"Settlement outcome unknown, request may have been delivered: {exc}",
                    **settle_context,
                ) from exc
            raise FacilitatorTransportError(f"{action} request failed: {exc}") from exc

        try:
            envelope = response.json()
        except ValueError as exc:
            if settle_context is not None and response.status_code >= 500:
                raise SettlementOutcomeUnknown(
                    f"Facilitator answered settle with HTTP {response.status_code} "
                    f"and an undecodable body: {response.text}",
                    **settle_context,
                ) from exc
            raise FacilitatorError(
                f"Failed to decode {action} response ({response.status_code}): {response.text}",
                status_code=response.status_code,
            ) from exc
        if not isinstance(envelope, dict):
            raise FacilitatorError(
                f"Unexpected {action} response ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )
        return response.status_code, envelope

    @staticmethod
    def _succeeded(status_code: int, envelope: Mapping[str, Any]) -> bool:
        return status_code == 200 and envelope.get("code") == 0

    @staticmethod
    def _data(envelope: Mapping[str, Any]) -> Dict[str, Any]:
        data = envelope.get("data")
        return data if isinstance(data, dict) else {}

    def _params(self, payload: Any, requirements: Any) -> Dict[str, Any]:
        payload_map = _as_mapping(payload, "payment payload")
        requirements_map = _as_mapping(requirements, "payment requirements")
        return {
            "x402Version": detect_version(payload_map),
            "paymentPayload": payload_map,
            "paymentRequirements": requirements_map,
        }

    def verify(
        self,
        payload: Any,
        requirements: Any,
        *,
        deadline: Optional[Deadline] = None,
    ) -> VerifyResult:
        params = self._params(payload, requirements)
        status_code, envelope = self._post(ACTION_VERIFY, params, deadline=deadline)
        data = self._data(envelope)

        if not self._succeeded(status_code, envelope):
            reason = data.get("invalidReason") or data.get("invalid_reason")
            if reason:
                raise VerifyError(
                    reason,
                    payer=data.get("payer"),
                    network=data.get("network") or params["paymentRequirements"].get("network"),
                    status_code=status_code,
                    code=envelope.get("code"),
                    msg=envelope.get("msg"),
                )
            raise FacilitatorError(
                f"Facilitator verify failed (http={status_code}, code={envelope.get('code')}, "
                f"msg={envelope.get('msg')})",
                status_code=status_code,
                code=envelope.get("code"),
                msg=envelope.get("msg"),
            )

        result = VerifyResult.from_response(data)
        logger.info("Facilitator verify for payer %s: valid=%s", result.payer, result.is_valid)
        return result

    def settle(
        self,
        payload: Any,
        requirements: Any,
        *,
        deadline: Optional[Deadline] = None,
    ) -> SettleResult:
        params = self._params(payload, requirements)
        authorization = (params["paymentPayload"].get("payload") or {}).get("authorization") or {}
        network = params["paymentRequirements"].get("network")
        settle_context = {
            "payer": authorization.get("from"),
            "network": network,
            "nonce": authorization.get("nonce"),
        }
        status_code, envelope = self._post(
            ACTION_SETTLE, params, deadline=deadline, settle_context=settle_context
        )
        data = self._data(envelope)

        if not self._succeeded(status_code, envelope):
            reason = data.get("errorReason") or data.get("error_reason")
            if reason:
                raise SettleError(
                    reason,
                    payer=data.get("payer") or settle_context["payer"],
                    network=data.get("network") or network,
                    transaction=data.get("transaction") or None,
                    status_code=status_code,
                    code=envelope.get("code"),
                    msg=envelope.get("msg"),
                )
            raise FacilitatorError(
                f"Facilitator settle failed (http={status_code}, code={envelope.get('code')}, "
                f"msg={envelope.get('msg')})",
                status_code=status_code,
                code=envelope.get("code"),
                msg=envelope.get("msg"),
            )

        result = SettleResult.from_response(data)
        logger.info(
            "Payment settled on %s. Transaction hash: %s",
            result.network,
            result.transaction,
        )
        return result

    def verify_and_settle(
        self,
        payload: Any,
        requirements: Any,
        *,
        deadline: Optional[Deadline] = None,
    ) -> SettleResult:
        """
        Verify, then settle only if the facilitator judged the payment valid.
        """
        verification = self.verify(payload, requirements, deadline=deadline)
        if not verification.is_valid:
            requirements_map = _as_mapping(requirements, "payment requirements")
            raise VerifyError(
                verification.invalid_reason or "invalid_payment",
                payer=verification.payer,
                network=requirements_map.get("network"),
            )
        return self.settle(payload, requirements, deadline=deadline)

    def get_supported(self, *, deadline: Optional[Deadline] = None) -> SupportedKinds:
        status_code, envelope = self._post(ACTION_SUPPORTED, {}, deadline=deadline)
        if not self._succeeded(status_code, envelope):
            raise FacilitatorError(
                f"Facilitator supported failed (http={status_code}, code={envelope.get('code')}, "
                f"msg={envelope.get('msg')})",
                status_code=status_code,
                code=envelope.get("code"),
                msg=envelope.get("msg"),
            )
        return SupportedKinds.from_response(self._data(envelope))
