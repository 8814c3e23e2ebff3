"""
Client-side handling of ``402 Payment Required`` responses.

Per request::

    send -> not 402                                       -> done
    send -> 402 -> select scheme -> sign -> resend -> not 402 -> done
    send -> 402 -> select scheme -> sign -> resend -> 402     -> PaymentVerificationFailed

The request is resent exactly once; a second 402 is terminal.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from .deadline import Deadline
from .errors import InvalidPaymentRequired, PaymentVerificationFailed
from .headers import (
    PAYMENT_RESPONSE_HEADER,
    X_PAYMENT_RESPONSE_HEADER,
    decode_payment_required,
    decode_settlement_header,
    encode_payment_header,
)
from .models import PaymentPayload, ResourceInfo, SettleResult
from .registry import SchemeRegistry

__all__ = ["PaidResponse", "PaymentRetryClient"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaidResponse:
    """
    Final response of a request, plus the payment made for it, if any.
    """

    response: requests.Response
    payment: Optional[PaymentPayload] = None
    settlement: Optional[SettleResult] = None

    @property
    def paid(self) -> bool:
        return self.payment is not None

    @property
    def status_code(self) -> int:
        return self.response.status_code


class PaymentRetryClient:
    """
    Wraps a :class:`requests.Session` and pays for 402 responses.

    Request bodies must be replayable (bytes, str, dict or ``json=``), since
    a paid request is sent twice.
    """

    def __init__(
        self,
        registry: SchemeRegistry,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.registry = registry
        self.session = session or requests.Session()
        self.timeout = timeout
        self._clock = clock

    def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        deadline: Deadline,
        per_call_timeout: Optional[float],
        stage: str,
        kwargs: Dict[str, Any],
    ) -> requests.Response:
        timeout = deadline.timeout(per_call_timeout, stage)
        return self.session.request(method, url, headers=headers, timeout=timeout, **kwargs)

    def request(
        self,
        method: str,
        url: str,
        *,
        deadline: Optional[Deadline] = None,
        **kwargs: Any,
    ) -> PaidResponse:
        if deadline is None:
            deadline = Deadline.after(self.timeout, clock=self._clock)
        headers: Dict[str, str] = dict(kwargs.pop("headers", None) or {})
        per_call_timeout = kwargs.pop("timeout", None)

        response = self._send(
            method, url, headers, deadline, per_call_timeout, "sending request", kwargs
        )
        if response.status_code != 402:
            return PaidResponse(response=response)

        payment_required = decode_payment_required(response.headers, response.content)
        requirements, scheme_client = self.registry.select(payment_required.accepts)
        logger.info(
            "Paying for %s with %s on %s",
            url,
            requirements.scheme,
            requirements.network,
        )

        resource = payment_required.resource or ResourceInfo(url=url)
        payload = scheme_client.create_payment_payload(
            requirements, resource=resource, deadline=deadline
        )

        retry_headers = dict(headers)
        retry_headers.update(encode_payment_header(payload))
        retry_headers["Access-Control-Expose-Headers"] = (
            f"{PAYMENT_RESPONSE_HEADER},{X_PAYMENT_RESPONSE_HEADER}"
        )
        retried = self._send(
            method, url, retry_headers, deadline, per_call_timeout, "sending paid request", kwargs
        )

        if retried.status_code == 402:
            server_error = None
            try:
                server_error = decode_payment_required(retried.headers, retried.content).error
            except InvalidPaymentRequired:
                logger.debug("Second 402 from %s carried no readable requirements", url)
            raise PaymentVerificationFailed(
                f"Server rejected the payment for {url}: {server_error or 'payment required again'}",
                payer=payload.payer,
                network=requirements.network,
                server_error=server_error,
            )

        settlement = None
        try:
            settlement = decode_settlement_header(retried.headers)
        except InvalidPaymentRequired as exc:
            logger.warning("Ignoring unreadable settlement header from %s: %s", url, exc)
        if settlement is not None:
            logger.info(
                "Payment for %s settled on %s. Transaction hash: %s",
                url,
                settlement.network,
                settlement.transaction,
            )
        return PaidResponse(response=retried, payment=payload, settlement=settlement)

    def get(self, url: str, **kwargs: Any) -> PaidResponse:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> PaidResponse:
        return self.request("POST", url, **kwargs)
