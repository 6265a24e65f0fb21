import re
from typing import Dict, List, NamedTuple

from bridge_ops.constants import LOCALHOST, MAINNET, SUPPORTED_NETWORK_TYPES, TESTNET


class BridgeNetwork(NamedTuple):
    name: str
    chain_id: int
    chain_selector: int
    type: str
    confirmations: int
    ape_choice: str


def _network(name, chain_id, type_, confirmations, ape_choice) -> BridgeNetwork:
    # v2 routers use the chain id as the chain selector
    return BridgeNetwork(
        name=name,
        chain_id=chain_id,
        chain_selector=chain_id,
        type=type_,
        confirmations=confirmations,
        ape_choice=ape_choice,
    )


BRIDGE_NETWORKS: Dict[str, BridgeNetwork] = {
    n.name: n
    for n in [
        # mainnet
        _network("ethereum", 1, MAINNET, 3, "ethereum:mainnet:infura"),
        _network("arbitrum", 42161, MAINNET, 3, "arbitrum:mainnet:infura"),
        _network("base", 8453, MAINNET, 3, "base:mainnet:infura"),
        _network("optimism", 10, MAINNET, 3, "optimism:mainnet:infura"),
        _network("polygon", 137, MAINNET, 5, "polygon:mainnet:infura"),
        _network("avalanche", 43114, MAINNET, 3, "avalanche:mainnet:infura"),
        # testnet
        _network("ethereumSepolia", 11155111, TESTNET, 2, "ethereum:sepolia:infura"),
        _network("arbitrumSepolia", 421614, TESTNET, 2, "arbitrum:sepolia:infura"),
        _network("baseSepolia", 84532, TESTNET, 2, "base:sepolia:infura"),
        _network("optimismSepolia", 11155420, TESTNET, 2, "optimism:sepolia:infura"),
        _network("polygonAmoy", 80002, TESTNET, 2, "polygon:amoy:infura"),
        _network("avalancheFuji", 43113, TESTNET, 2, "avalanche:fuji:infura"),
        _network("inkSepolia", 763373, TESTNET, 2, "ink:sepolia:node"),
        # local
        _network("localhost", 1337, LOCALHOST, 1, "ethereum:local:test"),
    ]
}

HUB_NETWORKS = {
    MAINNET: "ethereum",
    TESTNET: "ethereumSepolia",
    LOCALHOST: "localhost",
}


def get_network(name: str) -> BridgeNetwork:
    try:
        return BRIDGE_NETWORKS[name]
    except KeyError:
        raise ValueError(f"Network '{name}' not found")


def network_from_chain_id(chain_id: int) -> BridgeNetwork:
    for network in BRIDGE_NETWORKS.values():
        if network.chain_id == chain_id:
            return network
    raise ValueError(f"No bridge network with chain ID {chain_id}")


def networks_of_type(network_type: str) -> List[BridgeNetwork]:
    if network_type not in SUPPORTED_NETWORK_TYPES:
        raise ValueError(f"Unsupported network type '{network_type}'")
    return [n for n in BRIDGE_NETWORKS.values() if n.type == network_type]


def hub_for(network: BridgeNetwork) -> BridgeNetwork:
    """The L1 network anchoring the hub-and-spoke topology of this network's type."""
    return BRIDGE_NETWORKS[HUB_NETWORKS[network.type]]


def is_hub(network: BridgeNetwork) -> bool:
    return hub_for(network).name == network.name


def network_env_key(name: str) -> str:
    """arbitrumSepolia -> ARBITRUM_SEPOLIA"""
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name).upper()


def is_local_network() -> bool:
    from ape import networks

    return networks.provider.network.name in ("local", LOCALHOST)
