"""
Configuration objects and helpers for the facilitator and paying clients.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from eth_account import Account

from .environment import build_environment
from .errors import ConfigError

__all__ = [
    "DEFAULT_FACILITATOR_URL",
    "DEFAULT_SIGNING_PATH",
    "ClientConfig",
    "ConfigError",
    "FacilitatorConfig",
    "load_client_config",
    "load_facilitator_config",
]

# Gate Web3 OpenAPI testnet
DEFAULT_FACILITATOR_URL = "https://openapi-test.gateweb3.cc/api/v1/x402"
DEFAULT_SIGNING_PATH = "/api/v1/dex"
DEFAULT_FORWARDED_FOR = "127.0.0.1"

_FACILITATOR_ENV_KEYS = {
    "url": "X402_FACILITATOR_URL",
    "api_key": "GATE_WEB3_API_KEY",
    "api_secret": "GATE_WEB3_API_SECRET",
    "passphrase": "GATE_WEB3_PASSPHRASE",
    "real_ip": "GATE_WEB3_REAL_IP",
    "timeout_seconds": "X402_FACILITATOR_TIMEOUT_SECONDS",
}

_CLIENT_ENV_KEYS = {
    "private_key": "X402_PAYER_PRIVATE_KEY",
    "rpc_url": "X402_RPC_URL",
    "validity_seconds": "X402_VALIDITY_SECONDS",
    "request_timeout_seconds": "X402_REQUEST_TIMEOUT_SECONDS",
}


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _collect_overrides(keys: Mapping[str, str], explicit: Mapping[str, Any]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for name, value in explicit.items():
        if value is None:
            continue
        overrides[keys[name]] = _stringify(value)
    return overrides


def _positive_number(raw: str, env_key: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{env_key} must be a number, got '{raw}'") from exc
    if value <= 0:
        raise ConfigError(f"{env_key} must be greater than zero")
    return value


def _positive_int(raw: str, env_key: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{env_key} must be an integer, got '{raw}'") from exc
    if value <= 0:
        raise ConfigError(f"{env_key} must be greater than zero")
    return value


def _normalize_private_key(raw_key: str) -> str:
    key = raw_key.strip()
    if not key:
        raise ConfigError("X402_PAYER_PRIVATE_KEY must not be empty")
    if not key.startswith("0x"):
        key = "0x" + key
    if len(key) != 66:
        raise ConfigError("X402_PAYER_PRIVATE_KEY must be 32 bytes (64 hex chars)")
    try:
        Account.from_key(key)
    except Exception as exc:  # noqa: BLE001 - eth-keys raises its own validation errors
        raise ConfigError("X402_PAYER_PRIVATE_KEY is not a valid secp256k1 key") from exc
    return key


@dataclass(frozen=True)
class FacilitatorConfig:
    """
    Where the facilitator lives and how to authenticate to it.

    Requests are HMAC-signed only when both ``api_key`` and ``api_secret``
    are set.
    """

    url: str = DEFAULT_FACILITATOR_URL
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    passphrase: str = ""
    real_ip: str = DEFAULT_FORWARDED_FOR
    timeout_seconds: float = 30.0
    signing_path: str = DEFAULT_SIGNING_PATH

    @property
    def signing_enabled(self) -> bool:
        return bool(self.api_key and self.api_secret)

    def __repr__(self) -> str:
        return (
            f"FacilitatorConfig(url={self.url!r}, api_key={self.api_key!r}, "
            f"signing_enabled={self.signing_enabled})"
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "FacilitatorConfig":
        url = (values.get("X402_FACILITATOR_URL") or DEFAULT_FACILITATOR_URL).strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise ConfigError(f"X402_FACILITATOR_URL must be an http(s) URL, got '{url}'")

        api_key = (values.get("GATE_WEB3_API_KEY") or "").strip() or None
        api_secret = (values.get("GATE_WEB3_API_SECRET") or "").strip() or None
        timeout = _positive_number(
            values.get("X402_FACILITATOR_TIMEOUT_SECONDS", "30"),
            "X402_FACILITATOR_TIMEOUT_SECONDS",
        )
        return cls(
            url=url,
            api_key=api_key,
            api_secret=api_secret,
            passphrase=values.get("GATE_WEB3_PASSPHRASE") or "",
            real_ip=values.get("GATE_WEB3_REAL_IP") or DEFAULT_FORWARDED_FOR,
            timeout_seconds=timeout,
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        passphrase: Optional[str] = None,
        real_ip: Optional[str] = None,
        timeout_seconds: Optional[float | str] = None,
    ) -> "FacilitatorConfig":
        merged = dict(overrides or {})
        merged.update(
            _collect_overrides(
                _FACILITATOR_ENV_KEYS,
                {
                    "url": url,
                    "api_key": api_key,
                    "api_secret": api_secret,
                    "passphrase": passphrase,
                    "real_ip": real_ip,
                    "timeout_seconds": timeout_seconds,
                },
            )
        )
        environment = build_environment(env_file=env_file, base=base, overrides=merged)
        return cls.from_mapping(environment.variables)


@dataclass(frozen=True)
class ClientConfig:
    """
    Settings for a paying client.

    ``private_key`` may be left unset when an external signer is supplied.
    """

    private_key: Optional[str] = None
    rpc_url: Optional[str] = None
    validity_seconds: int = 3600
    request_timeout_seconds: float = 30.0

    def __repr__(self) -> str:
        return (
            f"ClientConfig(rpc_url={self.rpc_url!r}, validity_seconds={self.validity_seconds}, "
            f"request_timeout_seconds={self.request_timeout_seconds})"
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "ClientConfig":
        raw_key = values.get("X402_PAYER_PRIVATE_KEY")
        rpc_url = (values.get("X402_RPC_URL") or "").strip() or None
        return cls(
            private_key=_normalize_private_key(raw_key) if raw_key is not None else None,
            rpc_url=rpc_url,
            validity_seconds=_positive_int(
                values.get("X402_VALIDITY_SECONDS", "3600"), "X402_VALIDITY_SECONDS"
            ),
            request_timeout_seconds=_positive_number(
                values.get("X402_REQUEST_TIMEOUT_SECONDS", "30"),
                "X402_REQUEST_TIMEOUT_SECONDS",
            ),
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        private_key: Optional[str] = None,
        rpc_url: Optional[str] = None,
        validity_seconds: Optional[int | str] = None,
        request_timeout_seconds: Optional[float | str] = None,
    ) -> "ClientConfig":
        merged = dict(overrides or {})
        merged.update(
            _collect_overrides(
                _CLIENT_ENV_KEYS,
                {
                    "private_key": private_key,
                    "rpc_url": rpc_url,
                    "validity_seconds": validity_seconds,
                    "request_timeout_seconds": request_timeout_seconds,
                },
            )
        )
        environment = build_environment(env_file=env_file, base=base, overrides=merged)
        return cls.from_mapping(environment.variables)


def load_facilitator_config(**kwargs: Any) -> FacilitatorConfig:
    """
    Convenience wrapper that mirrors :meth:`FacilitatorConfig.from_env`.
    """
    return FacilitatorConfig.from_env(**kwargs)


def load_client_config(**kwargs: Any) -> ClientConfig:
    """
    Convenience wrapper that mirrors :meth:`ClientConfig.from_env`.

    The configuration can be provided through environment variables, a
    ``.env`` file, direct keyword arguments, or any combination of the three.
    """
    return ClientConfig.from_env(**kwargs)
