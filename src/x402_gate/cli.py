"""
Command-line interface for paying for x402 resources and probing facilitators.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Iterable, Sequence, Tuple

import requests

from .api import create_facilitator_client, create_payment_client
from .core.config import ConfigError, load_client_config, load_facilitator_config
from .core.errors import SettlementOutcomeUnknown, X402Error


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _env_override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    return key, val


def _collect_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, value in pairs:
        overrides[key] = value
    return overrides


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing X402_* / GATE_WEB3_* settings (default: .env)",
    )
    common.add_argument(
        "--set",
        action="append",
        type=_env_override,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    common.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )

    parser = argparse.ArgumentParser(
        prog="x402-gate",
        description="Pay for x402-protected resources",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    fetch = commands.add_parser(
        "fetch",
        parents=[common],
        help="GET a resource, paying for it if the server answers 402",
    )
    fetch.add_argument("url", help="Resource URL")

    commands.add_parser(
        "supported",
        parents=[common],
        help="List the payment kinds supported by the facilitator",
    )
    return parser


def _run_fetch(url: str, env_file: str, overrides: dict[str, str]) -> int:
    try:
        config = load_client_config(env_file=env_file, overrides=overrides)
        client = create_payment_client(config=config, session=requests.Session())
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    try:
        result = client.get(url)
    except SettlementOutcomeUnknown as exc:
        logging.error("Settlement outcome unknown, do not retry blindly: %s", exc)
        return 2
    except X402Error as exc:
        logging.error("Payment failed (%s): %s", exc.reason, exc)
        return 1
    except requests.RequestException as exc:
        logging.error("Request failed: %s", exc)
        return 1

    if result.settlement is not None:
        logging.info(
            "Paid on %s. Transaction hash: %s",
            result.settlement.network,
            result.settlement.transaction,
        )
    sys.stdout.write(result.response.text)
    sys.stdout.write("\n")
    return 0 if result.response.ok else 1


def _run_supported(env_file: str, overrides: dict[str, str]) -> int:
    try:
        config = load_facilitator_config(env_file=env_file, overrides=overrides)
    except ConfigError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    client = create_facilitator_client(config=config, session=requests.Session())
    try:
        supported = client.get_supported()
    except X402Error as exc:
        logging.error("Supported request failed (%s): %s", exc.reason, exc)
        return 1

    sys.stdout.write(json.dumps(supported.raw, indent=2))
    sys.stdout.write("\n")
    return 0


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)
    overrides = _collect_overrides(args.set or ())

    if args.command == "fetch":
        return _run_fetch(args.url, args.env_file, overrides)
    return _run_supported(args.env_file, overrides)


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
