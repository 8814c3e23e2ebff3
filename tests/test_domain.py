# tests/test_domain.py
"""
Unit tests for domain separator resolution.
"""
from unittest.mock import MagicMock

import pytest
import requests
from hexbytes import HexBytes

from x402_gate.core.authorization import compute_domain_separator
from x402_gate.core.deadline import Deadline
from x402_gate.core.domain import (
    DOMAIN_SEPARATOR_SELECTOR,
    ComputedDomainSeparator,
    DomainSeparatorResolver,
    JsonRpcChainReader,
    OnChainDomainSeparator,
    PinnedDomainSeparators,
)
from x402_gate.core.errors import AssetMetadataMissing, ChainQueryError, DeadlineExceeded

from conftest import BASE_USDC, GATELAYER_SEPARATOR, GATELAYER_USDC, build_response

CHAIN_SEPARATOR = bytes.fromhex("11" * 32)


@pytest.fixture
def reader():
    chain_reader = MagicMock()
    chain_reader.call.return_value = CHAIN_SEPARATOR
    return chain_reader


class TestPinned:
    def test_pinned_gatelayer_usdc_skips_chain(self, reader):
        resolver = DomainSeparatorResolver.default(chain_reader=reader)

        first = resolver.resolve("eip155:10087", GATELAYER_USDC, chain_id=10087)
        second = resolver.resolve("eip155:10087", GATELAYER_USDC.lower(), chain_id=10087)

        assert first == second
        assert first.provenance == "pinned"
        assert first.separator == HexBytes(GATELAYER_SEPARATOR)
        reader.call.assert_not_called()

    def test_legacy_network_name_is_pinned_too(self):
        pinned = PinnedDomainSeparators()
        assert pinned.get("gatelayer_testnet", GATELAYER_USDC) == HexBytes(GATELAYER_SEPARATOR)

    def test_invalidate_falls_through_to_chain(self, reader):
        resolver = DomainSeparatorResolver.default(chain_reader=reader)

        assert resolver.pinned.invalidate("eip155:10087", GATELAYER_USDC) is True
        resolution = resolver.resolve("eip155:10087", GATELAYER_USDC, chain_id=10087)

        assert resolution.provenance == "chain"
        assert resolution.separator == HexBytes(CHAIN_SEPARATOR)
        reader.call.assert_called_once()

    def test_pin_and_clear(self):
        pinned = PinnedDomainSeparators(include_defaults=False)
        assert len(pinned) == 0

        pinned.pin("eip155:8453", BASE_USDC.lower(), "0x" + "22" * 32)
        assert pinned.get("eip155:8453", BASE_USDC) == HexBytes("0x" + "22" * 32)

        pinned.clear()
        assert pinned.get("eip155:8453", BASE_USDC) is None

    def test_pins_must_be_32_bytes(self):
        with pytest.raises(ValueError):
            PinnedDomainSeparators({("eip155:1", BASE_USDC): "0x1234"})


class TestFallbacks:
    def test_chain_value_is_used_for_unpinned_asset(self, reader):
        resolver = DomainSeparatorResolver.default(chain_reader=reader)

        resolution = resolver.resolve("eip155:8453", BASE_USDC, chain_id=8453)

        assert resolution.provenance == "chain"
        reader.call.assert_called_once_with(BASE_USDC, DOMAIN_SEPARATOR_SELECTOR, timeout=10.0)

    def test_chain_failure_falls_back_to_computed(self, reader):
        reader.call.side_effect = ChainQueryError("connection refused")
        resolver = DomainSeparatorResolver.default(chain_reader=reader)

        resolution = resolver.resolve(
            "eip155:8453", BASE_USDC, chain_id=8453, name="USD Coin", version="2"
        )

        assert resolution.provenance == "computed"
        assert resolution.separator == compute_domain_separator("USD Coin", "2", 8453, BASE_USDC)

    def test_short_chain_result_falls_back(self, reader):
        reader.call.return_value = b""
        resolver = DomainSeparatorResolver.default(chain_reader=reader)

        resolution = resolver.resolve(
            "eip155:8453", BASE_USDC, chain_id=8453, name="USD Coin", version="2"
        )
        assert resolution.provenance == "computed"

    def test_computed_without_reader(self):
        resolver = DomainSeparatorResolver.default()
        resolution = resolver.resolve(
            "eip155:8453", BASE_USDC, chain_id=8453, name="USD Coin", version="2"
        )
        assert resolution.provenance == "computed"

    def test_no_metadata_anywhere(self, reader):
        reader.call.side_effect = ChainQueryError("execution reverted")
        resolver = DomainSeparatorResolver.default(chain_reader=reader)

        with pytest.raises(AssetMetadataMissing):
            resolver.resolve("eip155:8453", BASE_USDC, chain_id=8453)

    def test_resolver_needs_a_strategy(self):
        with pytest.raises(ValueError):
            DomainSeparatorResolver([])


class TestDeadline:
    def test_expired_deadline_stops_before_chain_query(self, reader):
        resolver = DomainSeparatorResolver([OnChainDomainSeparator(reader), ComputedDomainSeparator()])
        deadline = Deadline(expires_at=0.0, clock=lambda: 5.0)

        with pytest.raises(DeadlineExceeded):
            resolver.resolve("eip155:8453", BASE_USDC, chain_id=8453, deadline=deadline)
        reader.call.assert_not_called()

    def test_chain_timeout_is_capped_by_deadline(self, reader):
        strategy = OnChainDomainSeparator(reader, timeout=10.0)
        deadline = Deadline(expires_at=3.0, clock=lambda: 1.0)
        resolver = DomainSeparatorResolver([strategy])

        resolver.resolve("eip155:8453", BASE_USDC, chain_id=8453, deadline=deadline)

        assert reader.call.call_args.kwargs["timeout"] == 2.0


class TestJsonRpcChainReader:
    def test_eth_call_result_is_decoded(self, make_response):
        session = MagicMock()
        session.post.return_value = make_response(
            200, json_body={"jsonrpc": "2.0", "id": 1, "result": "0x" + "33" * 32}
        )
        reader = JsonRpcChainReader("http://rpc.test", session=session)

        assert reader.call(BASE_USDC, DOMAIN_SEPARATOR_SELECTOR) == bytes.fromhex("33" * 32)
        body = session.post.call_args.kwargs["json"]
        assert body["method"] == "eth_call"
        assert body["params"] == [{"to": BASE_USDC, "data": DOMAIN_SEPARATOR_SELECTOR}, "latest"]

    def test_rpc_error_raises(self, make_response):
        session = MagicMock()
        session.post.return_value = make_response(
            200, json_body={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "reverted"}}
        )
        reader = JsonRpcChainReader("http://rpc.test", session=session)

        with pytest.raises(ChainQueryError):
            reader.call(BASE_USDC, DOMAIN_SEPARATOR_SELECTOR)

    def test_transport_error_raises(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        reader = JsonRpcChainReader("http://rpc.test", session=session)

        with pytest.raises(ChainQueryError):
            reader.call(BASE_USDC, DOMAIN_SEPARATOR_SELECTOR)

    def test_http_error_raises(self):
        session = MagicMock()
        session.post.return_value = build_response(503, content=b"unavailable")
        reader = JsonRpcChainReader("http://rpc.test", session=session)

        with pytest.raises(ChainQueryError):
            reader.call(BASE_USDC, DOMAIN_SEPARATOR_SELECTOR)
