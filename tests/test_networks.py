import pytest

from bridge_ops.constants import LOCALHOST, MAINNET, TESTNET
from bridge_ops.networks import (
    get_network,
    hub_for,
    is_hub,
    network_env_key,
    network_from_chain_id,
    networks_of_type,
)


def test_lookup():
    network = get_network("arbitrumSepolia")
    assert network.chain_id == 421614
    assert network.chain_selector == network.chain_id
    assert network.type == TESTNET
    assert network_from_chain_id(421614) == network

    with pytest.raises(ValueError):
        get_network("ropsten")
    with pytest.raises(ValueError):
        network_from_chain_id(3)


def test_hubs():
    assert hub_for(get_network("base")).name == "ethereum"
    assert hub_for(get_network("polygonAmoy")).name == "ethereumSepolia"
    assert is_hub(get_network("ethereum"))
    assert not is_hub(get_network("optimism"))
    assert is_hub(get_network("localhost"))


def test_networks_of_type():
    testnets = networks_of_type(TESTNET)
    assert get_network("ethereumSepolia") in testnets
    assert all(n.type == TESTNET for n in testnets)
    assert [n.name for n in networks_of_type(LOCALHOST)] == ["localhost"]
    assert len(networks_of_type(MAINNET)) > 1

    with pytest.raises(ValueError):
        networks_of_type("devnet")


@pytest.mark.parametrize(
    "name, key",
    [
        ("arbitrumSepolia", "ARBITRUM_SEPOLIA"),
        ("ethereum", "ETHEREUM"),
        ("polygonAmoy", "POLYGON_AMOY"),
        ("rateLimitAdmin", "RATE_LIMIT_ADMIN"),
    ],
)
def test_network_env_key(name, key):
    assert network_env_key(name) == key
