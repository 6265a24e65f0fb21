import pytest

from bridge_ops.amounts import to_units
from bridge_ops.networks import get_network
from bridge_ops.registry import AddressBook
from bridge_ops.simulation import (
    SimulatedBridge,
    SimulatedBridgeL1,
    SimulatedChain,
    SimulatedFiatToken,
    SimulatedRelayer,
    SimulatedTransactor,
    make_account,
    make_address,
)
from bridge_ops.tasks import ChainContext

# Common constants
ONE_HOUR = 60 * 60
INITIAL_BALANCE = to_units("100000")
POOL_LIQUIDITY = to_units("50000")


# Fixtures
@pytest.fixture
def hub_network():
    return get_network("ethereumSepolia")


@pytest.fixture
def spoke_network():
    return get_network("arbitrumSepolia")


@pytest.fixture
def deployer():
    return make_account("deployer")


@pytest.fixture
def rate_limit_admin():
    return make_account("rateLimitAdmin")


@pytest.fixture
def user():
    return make_account("user")


@pytest.fixture
def relayer():
    return SimulatedRelayer()


@pytest.fixture
def hub_chain(hub_network):
    return SimulatedChain(hub_network)


@pytest.fixture
def spoke_chain(spoke_network):
    return SimulatedChain(spoke_network)


@pytest.fixture
def hub_usdc(hub_chain, deployer, user):
    token = SimulatedFiatToken(hub_chain, deployer.address, deployer.address, label="USDC")
    hub_chain.execute(token.configureMinter, deployer.address, 10**18, sender=deployer.address)
    hub_chain.execute(token.mint, user.address, INITIAL_BALANCE, sender=deployer.address)
    return token


@pytest.fixture
def spoke_token(spoke_chain, deployer):
    return SimulatedFiatToken(spoke_chain, deployer.address, deployer.address)


@pytest.fixture
def hub_bridge(hub_chain, hub_usdc, deployer, rate_limit_admin, relayer):
    return SimulatedBridgeL1(
        hub_chain,
        hub_usdc,
        admin=deployer.address,
        rate_limit_admin=rate_limit_admin.address,
        relayer=relayer,
    )


@pytest.fixture
def spoke_bridge(spoke_chain, spoke_token, deployer, rate_limit_admin, relayer):
    return SimulatedBridge(
        spoke_chain,
        spoke_token,
        admin=deployer.address,
        rate_limit_admin=rate_limit_admin.address,
        relayer=relayer,
    )


@pytest.fixture
def pool(hub_chain, hub_usdc, deployer, spoke_network):
    """Hub pool serving the spoke, holding liquidity locked by earlier transfers."""
    address = make_address(f"{hub_chain.name}:pool:{spoke_network.name}")
    hub_chain.execute(hub_usdc.mint, address, POOL_LIQUIDITY, sender=deployer.address)
    return address


@pytest.fixture
def hub_ctx(hub_network, hub_chain, deployer):
    return ChainContext(hub_network, hub_chain, SimulatedTransactor(deployer))


@pytest.fixture
def spoke_ctx(spoke_network, spoke_chain, deployer):
    return ChainContext(spoke_network, spoke_chain, SimulatedTransactor(deployer))


@pytest.fixture
def hub_rate_ctx(hub_network, hub_chain, rate_limit_admin):
    return ChainContext(hub_network, hub_chain, SimulatedTransactor(rate_limit_admin))


@pytest.fixture
def spoke_rate_ctx(spoke_network, spoke_chain, rate_limit_admin):
    return ChainContext(spoke_network, spoke_chain, SimulatedTransactor(rate_limit_admin))


@pytest.fixture
def user_spoke_ctx(spoke_network, spoke_chain, user):
    return ChainContext(spoke_network, spoke_chain, SimulatedTransactor(user))


@pytest.fixture
def user_hub_ctx(hub_network, hub_chain, user):
    return ChainContext(hub_network, hub_chain, SimulatedTransactor(user))


@pytest.fixture
def book(tmp_path):
    return AddressBook(tmp_path / "testnet.json")


@pytest.fixture
def connected(
    hub_chain, spoke_chain, hub_bridge, spoke_bridge, spoke_token, pool, deployer, spoke_network,
    hub_network,
):
    """Hub and spoke wired to each other: lanes, hub pool and the spoke bridge as minter."""
    hub_chain.execute(
        hub_bridge.addLanes, [spoke_network.chain_selector], [spoke_bridge.address],
        sender=deployer.address,
    )
    hub_chain.execute(
        hub_bridge.addPools, [spoke_network.chain_selector], [pool], sender=deployer.address
    )
    spoke_chain.execute(
        spoke_bridge.addLanes, [hub_network.chain_selector], [hub_bridge.address],
        sender=deployer.address,
    )
    spoke_chain.execute(
        spoke_token.configureMinter, spoke_bridge.address, to_units("1000000"),
        sender=deployer.address,
    )
    return hub_bridge, spoke_bridge
