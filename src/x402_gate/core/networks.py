"""
EVM network and default-asset tables for the ``exact`` scheme.

Only EIP-3009 stablecoins can be used as payment assets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from eth_utils import is_hex_address, to_checksum_address

from .errors import AssetMetadataMissing, InvalidPaymentRequired, UnsupportedNetwork

__all__ = [
    "DEFAULT_DECIMALS",
    "DEFAULT_VALIDITY_SECONDS",
    "NETWORK_CONFIGS",
    "SCHEME_EXACT",
    "AssetInfo",
    "NetworkConfig",
    "get_asset_info",
    "get_evm_chain_id",
    "get_network_config",
]

SCHEME_EXACT = "exact"

# USDC-style tokens use 6 decimals
DEFAULT_DECIMALS = 6

DEFAULT_VALIDITY_SECONDS = 3600

CHAIN_ID_GATELAYER_TESTNET = 10087


@dataclass(frozen=True)
class AssetInfo:
    address: str
    name: Optional[str]
    version: Optional[str]
    decimals: int = DEFAULT_DECIMALS


@dataclass(frozen=True)
class NetworkConfig:
    chain_id: int
    default_asset: AssetInfo


_GATELAYER_TESTNET_USDC = AssetInfo(
    address=to_checksum_address("0x9be8df37c788b244cfc28e46654ad5ec28a880af"),
    name="USDC",
    version="2",
    decimals=DEFAULT_DECIMALS,
)

# Each chain picks its own default stablecoin. Legacy names and CAIP-2 ids
# are both accepted.
NETWORK_CONFIGS: Dict[str, NetworkConfig] = {
    "gatelayer_testnet": NetworkConfig(
        chain_id=CHAIN_ID_GATELAYER_TESTNET,
        default_asset=_GATELAYER_TESTNET_USDC,
    ),
    "eip155:10087": NetworkConfig(
        chain_id=CHAIN_ID_GATELAYER_TESTNET,
        default_asset=_GATELAYER_TESTNET_USDC,
    ),
}


def get_evm_chain_id(network: str) -> int:
    """
    Return the numeric chain id for ``network``.

    Any CAIP-2 ``eip155:<id>`` identifier is accepted, configured or not.
    """
    if network in NETWORK_CONFIGS:
        return NETWORK_CONFIGS[network].chain_id
    if network.startswith("eip155:"):
        reference = network.split(":", 1)[1]
        if reference.isascii() and reference.isdigit() and int(reference) > 0:
            return int(reference)
    raise UnsupportedNetwork(network)


def get_network_config(network: str) -> Optional[NetworkConfig]:
    return NETWORK_CONFIGS.get(network)


def get_asset_info(network: str, asset: Optional[str] = None) -> AssetInfo:
    """
    Resolve the asset to pay with.

    An explicit address wins; if it is the network's default asset, the
    default's name, version and decimals are attached. Otherwise name and
    version stay unknown and must come from the requirements' ``extra``.
    """
    config = get_network_config(network)

    if asset:
        if not is_hex_address(asset):
            raise InvalidPaymentRequired(f"Asset {asset!r} is not a valid EVM address")
        address = to_checksum_address(asset)
        if config is not None and address == config.default_asset.address:
            return config.default_asset
        return AssetInfo(address=address, name=None, version=None)

    if config is None:
        # A bare CAIP-2 id is a valid network, it just has no default asset.
        get_evm_chain_id(network)
        raise AssetMetadataMissing(f"No asset given and no default asset configured for {network}")
    return config.default_asset
