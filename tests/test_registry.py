# tests/test_registry.py
"""
Unit tests for scheme registration and offer selection.
"""
from unittest.mock import MagicMock

import pytest

from x402_gate.core.errors import NoSchemeRegistered
from x402_gate.core.models import PaymentRequirements
from x402_gate.core.registry import SchemeRegistry


def _client(name):
    client = MagicMock(name=name)
    client.scheme = "exact"
    return client


def _offer(network, scheme="exact"):
    return PaymentRequirements(scheme=scheme, network=network, pay_to="0x0", amount="1")


class TestSchemeRegistry:
    def test_exact_match_beats_wildcard(self):
        wildcard, specific = _client("wildcard"), _client("specific")
        registry = SchemeRegistry().register("eip155:*", wildcard).register("eip155:10087", specific)

        assert registry.find("exact", "eip155:10087") is specific
        assert registry.find("exact", "eip155:8453") is wildcard

    def test_wildcard_only_covers_its_namespace(self):
        registry = SchemeRegistry().register("eip155:*", _client("evm"))
        assert registry.find("exact", "solana:mainnet") is None
        assert registry.find("upto", "eip155:1") is None

    def test_register_returns_new_registry(self):
        empty = SchemeRegistry()
        registry = empty.register("eip155:10087", _client("a"))

        assert len(empty) == 0
        assert len(registry) == 1

    def test_reregistering_replaces(self):
        first, second = _client("first"), _client("second")
        registry = SchemeRegistry().register("eip155:1", first).register("eip155:1", second)

        assert len(registry) == 1
        assert registry.find("exact", "eip155:1") is second

    def test_entries_are_read_only(self):
        registry = SchemeRegistry().register("eip155:1", _client("a"))
        with pytest.raises(TypeError):
            registry.entries[("exact", "eip155:2")] = _client("b")

    def test_select_follows_server_order(self):
        evm = _client("evm")
        registry = SchemeRegistry().register("eip155:*", evm)
        offers = [_offer("solana:mainnet"), _offer("eip155:8453"), _offer("eip155:10087")]

        requirements, client = registry.select(offers)

        assert requirements.network == "eip155:8453"
        assert client is evm

    def test_select_without_match(self):
        registry = SchemeRegistry().register("eip155:*", _client("evm"))

        with pytest.raises(NoSchemeRegistered) as excinfo:
            registry.select([_offer("solana:mainnet"), _offer("eip155:1", scheme="upto")])

        assert excinfo.value.offered == [("exact", "solana:mainnet"), ("upto", "eip155:1")]
        assert excinfo.value.reason == "no_scheme_registered"
