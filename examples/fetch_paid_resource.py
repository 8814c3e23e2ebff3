"""
Minimal script that uses the public API to pay for an x402-protected resource.
"""

from __future__ import annotations

import argparse
import logging
import sys

from x402_gate import ConfigError, X402Error, create_payment_client


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch a paid resource using the SDK API")
    parser.add_argument("url", help="URL of the x402-protected resource")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing X402_* settings",
    )
    parser.add_argument(
        "--rpc-url",
        help="JSON-RPC endpoint used to read DOMAIN_SEPARATOR from the token contract",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    overrides = {"X402_RPC_URL": args.rpc_url} if args.rpc_url else None
    try:
        client = create_payment_client(env_file=args.env_file, overrides=overrides)
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    try:
        result = client.get(args.url)
    except X402Error as exc:
        logging.error("Payment failed (%s): %s", exc.reason, exc)
        return 1

    if result.paid:
        logging.info("Paid %s from %s", result.payment.accepted.get("amount"), result.payment.payer)
    if result.settlement is not None:
        logging.info("Settlement transaction: %s", result.settlement.transaction)
    print(result.response.text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
