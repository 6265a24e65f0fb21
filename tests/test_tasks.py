import pytest

from bridge_ops.amounts import to_units
from bridge_ops.constants import DEFAULT_RATE_LIMITS, ZERO_ADDRESS
from bridge_ops.errors import ConfigurationMissing, Unauthorized
from bridge_ops.lanes import LaneRegistry
from bridge_ops.limits import Direction
from bridge_ops.networks import get_network
from bridge_ops.simulation import (
    SimulatedChain,
    SimulatedFiatToken,
    SimulatedProxy,
    SimulatedProxyAdmin,
    SimulatedTransactor,
    make_address,
)
from bridge_ops.tasks import (
    ChainContext,
    Outcome,
    add_dst_bridge,
    add_lane,
    add_pool,
    apply_rate_limit,
    change_proxy_admin,
    change_proxy_admin_owner,
    configure_minter,
    get_rate_info,
    mint_test_usdc,
    monitor_delivery,
    remove_lane,
    remove_pool,
    send_token,
    set_flow_limits,
    set_rate_limits,
    transfer_token_ownership,
    upgrade_proxy,
)

RECEIVER = make_address("receiver")


class RacingTransactor:
    """Lands another operator's transaction right before (or after) the first one it sends."""

    def __init__(self, transactor, competing, after=False):
        self.transactor = transactor
        self.competing = competing
        self.after = after

    def get_account(self):
        return self.transactor.get_account()

    def transact(self, method, *args, **kwargs):
        competing, self.competing = self.competing, None
        if competing and not self.after:
            competing()
        receipt = self.transactor.transact(method, *args, **kwargs)
        if competing and self.after:
            competing()
        return receipt


#
# Rate limits
#


def test_set_rate_limits_is_idempotent(spoke_rate_ctx, spoke_chain, spoke_bridge, hub_network):
    results = set_rate_limits(spoke_rate_ctx, spoke_bridge, hub_network, out_max="500")
    assert [r.outcome for r in results.values()] == [Outcome.CONFIRMED, Outcome.CONFIRMED]
    transactions = len(spoke_chain.transactions)

    info = get_rate_info(spoke_bridge, spoke_rate_ctx.network)
    assert info.dst_chain == hub_network.name
    assert info.outbound.max_amount == "500"
    assert info.outbound.refill_speed == DEFAULT_RATE_LIMITS["out_refill"]
    assert info.inbound.max_amount == DEFAULT_RATE_LIMITS["in_max"]
    assert info.outbound.is_active and info.inbound.is_active

    results = set_rate_limits(spoke_rate_ctx, spoke_bridge, hub_network, out_max="500")
    assert [r.outcome for r in results.values()] == [Outcome.SKIPPED, Outcome.SKIPPED]
    assert len(spoke_chain.transactions) == transactions


def test_rate_limits_need_the_rate_limit_admin(spoke_ctx, spoke_bridge, hub_network):
    with pytest.raises(Unauthorized):
        set_rate_limits(spoke_ctx, spoke_bridge, hub_network)


def test_set_flow_limits_only_touches_given_directions(spoke_rate_ctx, spoke_bridge):
    results = set_flow_limits(spoke_rate_ctx, spoke_bridge, in_max="20", in_refill="0.5")
    assert list(results) == [Direction.INBOUND]
    assert results[Direction.INBOUND].outcome is Outcome.CONFIRMED

    info = get_rate_info(spoke_bridge, spoke_rate_ctx.network)
    assert info.inbound.max_amount == "20"
    assert info.inbound.refill_speed == "0.5"
    assert not info.outbound.is_active


def test_set_flow_limits_requires_complete_pairs(spoke_rate_ctx, spoke_chain, spoke_bridge):
    with pytest.raises(ValueError, match="outbound"):
        set_flow_limits(spoke_rate_ctx, spoke_bridge, out_max="20")
    assert spoke_chain.transactions == []

    assert set_flow_limits(spoke_rate_ctx, spoke_bridge) == {}


def test_counterpart_must_differ_and_share_network_type(spoke_rate_ctx, spoke_bridge, spoke_network):
    with pytest.raises(ValueError, match="same"):
        set_rate_limits(spoke_rate_ctx, spoke_bridge, spoke_network)
    with pytest.raises(ValueError):
        set_rate_limits(spoke_rate_ctx, spoke_bridge, get_network("ethereum"))


def test_rate_limit_overwritten_concurrently_is_reapplied(
    spoke_rate_ctx, spoke_chain, spoke_bridge, hub_network, rate_limit_admin
):
    def other_operator():
        spoke_chain.execute(
            spoke_bridge.setRateLimit,
            hub_network.chain_selector,
            to_units("1"),
            to_units("1"),
            True,
            sender=rate_limit_admin.address,
        )

    ctx = spoke_rate_ctx._replace(
        transactor=RacingTransactor(spoke_rate_ctx.transactor, other_operator, after=True)
    )
    result = apply_rate_limit(ctx, spoke_bridge, hub_network, Direction.OUTBOUND, "300", "2")
    assert result.outcome is Outcome.CONFIRMED
    info = get_rate_info(spoke_bridge, spoke_rate_ctx.network)
    assert info.outbound.max_amount == "300"
    assert info.outbound.refill_speed == "2"
    # ours, theirs, ours again
    assert len(spoke_chain.transactions) == 3


def test_rate_limit_already_set_concurrently(
    spoke_rate_ctx, spoke_chain, spoke_bridge, hub_network, rate_limit_admin
):
    def other_operator():
        spoke_chain.execute(
            spoke_bridge.setRateLimit,
            hub_network.chain_selector,
            to_units("300"),
            to_units("2"),
            True,
            sender=rate_limit_admin.address,
        )

    ctx = spoke_rate_ctx._replace(
        transactor=RacingTransactor(spoke_rate_ctx.transactor, other_operator)
    )
    result = apply_rate_limit(ctx, spoke_bridge, hub_network, Direction.OUTBOUND, "300", "2")
    assert result.outcome is Outcome.CONFIRMED
    assert len(spoke_chain.transactions) == 2


#
# Lanes and pools
#


def test_add_lane(spoke_ctx, spoke_chain, spoke_bridge, hub_network, hub_bridge):
    result = add_lane(spoke_ctx, spoke_bridge, hub_network, hub_bridge.address)
    assert result.outcome is Outcome.CONFIRMED
    assert result.txn_hash == spoke_chain.transactions[-1].txn_hash
    assert spoke_bridge.getLane(hub_network.chain_selector) == hub_bridge.address

    again = add_lane(spoke_ctx, spoke_bridge, hub_network, hub_bridge.address.lower())
    assert again.outcome is Outcome.SKIPPED
    assert len(spoke_chain.transactions) == 1


def test_conflicting_lane_is_not_overwritten(spoke_ctx, spoke_chain, spoke_bridge, hub_network):
    first, second = make_address("first"), make_address("second")
    add_lane(spoke_ctx, spoke_bridge, hub_network, first)
    with pytest.raises(LaneRegistry.AlreadyRegistered):
        add_lane(spoke_ctx, spoke_bridge, hub_network, second)
    assert spoke_bridge.getLane(hub_network.chain_selector) == first
    assert len(spoke_chain.transactions) == 1


def test_zero_address_is_refused(spoke_ctx, spoke_chain, spoke_bridge, hub_network):
    with pytest.raises(ValueError):
        add_lane(spoke_ctx, spoke_bridge, hub_network, ZERO_ADDRESS)
    assert spoke_chain.transactions == []


def test_remove_lane(spoke_ctx, spoke_bridge, hub_network, hub_bridge):
    with pytest.raises(LaneRegistry.NotRegistered):
        remove_lane(spoke_ctx, spoke_bridge, hub_network)

    add_lane(spoke_ctx, spoke_bridge, hub_network, hub_bridge.address)
    assert remove_lane(spoke_ctx, spoke_bridge, hub_network).outcome is Outcome.CONFIRMED
    assert spoke_bridge.getLane(hub_network.chain_selector) == ZERO_ADDRESS


def test_lane_registered_concurrently_is_skipped(
    spoke_ctx, spoke_chain, spoke_bridge, hub_network, hub_bridge, deployer
):
    def other_operator():
        spoke_chain.execute(
            spoke_bridge.addLanes,
            [hub_network.chain_selector],
            [hub_bridge.address],
            sender=deployer.address,
        )

    ctx = spoke_ctx._replace(transactor=RacingTransactor(spoke_ctx.transactor, other_operator))
    result = add_lane(ctx, spoke_bridge, hub_network, hub_bridge.address)
    assert result.outcome is Outcome.SKIPPED
    assert result.txn_hash is None
    assert spoke_bridge.getLane(hub_network.chain_selector) == hub_bridge.address
    assert len(spoke_chain.transactions) == 1


def test_conflicting_concurrent_lane_is_reported(
    spoke_ctx, spoke_chain, spoke_bridge, hub_network, hub_bridge, deployer
):
    other = make_address("other-bridge")

    def other_operator():
        spoke_chain.execute(
            spoke_bridge.addLanes, [hub_network.chain_selector], [other], sender=deployer.address
        )

    ctx = spoke_ctx._replace(transactor=RacingTransactor(spoke_ctx.transactor, other_operator))
    with pytest.raises(LaneRegistry.AlreadyRegistered):
        add_lane(ctx, spoke_bridge, hub_network, hub_bridge.address)
    assert spoke_bridge.getLane(hub_network.chain_selector) == other


def test_pool_removed_concurrently_is_skipped(
    hub_ctx, hub_chain, hub_bridge, spoke_network, deployer
):
    add_pool(hub_ctx, hub_bridge, spoke_network, make_address("pool"))

    def other_operator():
        hub_chain.execute(
            hub_bridge.removePools, [spoke_network.chain_selector], sender=deployer.address
        )

    ctx = hub_ctx._replace(transactor=RacingTransactor(hub_ctx.transactor, other_operator))
    assert remove_pool(ctx, hub_bridge, spoke_network).outcome is Outcome.SKIPPED
    assert hub_bridge.getPool(spoke_network.chain_selector) == ZERO_ADDRESS


def test_pools_live_on_the_hub(hub_ctx, spoke_ctx, hub_bridge, spoke_bridge, spoke_network, hub_network):
    pool = make_address("pool")
    assert add_pool(hub_ctx, hub_bridge, spoke_network, pool).outcome is Outcome.CONFIRMED
    assert add_pool(hub_ctx, hub_bridge, spoke_network, pool).outcome is Outcome.SKIPPED
    assert remove_pool(hub_ctx, hub_bridge, spoke_network).outcome is Outcome.CONFIRMED

    with pytest.raises(ValueError, match="hub"):
        add_pool(spoke_ctx, spoke_bridge, hub_network, pool)
    with pytest.raises(ValueError, match="hub"):
        add_dst_bridge(spoke_ctx, spoke_bridge, hub_network, pool)


def test_add_dst_bridge(hub_ctx, hub_bridge, spoke_bridge, spoke_network):
    result = add_dst_bridge(hub_ctx, hub_bridge, spoke_network, spoke_bridge.address)
    assert result.outcome is Outcome.CONFIRMED
    assert hub_bridge.getLane(spoke_network.chain_selector) == spoke_bridge.address


#
# Token, ownership and upgrades
#


def test_configure_minter(spoke_ctx, spoke_chain, spoke_token, spoke_bridge):
    result = configure_minter(spoke_ctx, spoke_token, spoke_bridge.address, "1000")
    assert result.outcome is Outcome.CONFIRMED
    assert spoke_token.isMinter(spoke_bridge.address)
    assert spoke_token.minterAllowance(spoke_bridge.address) == to_units("1000")

    again = configure_minter(spoke_ctx, spoke_token, spoke_bridge.address, "1000")
    assert again.outcome is Outcome.SKIPPED

    # a different allowance is a delta
    more = configure_minter(spoke_ctx, spoke_token, spoke_bridge.address, "2000")
    assert more.outcome is Outcome.CONFIRMED
    assert len(spoke_chain.transactions) == 2


def test_change_proxy_admin_owner(spoke_chain, spoke_ctx, deployer, user):
    proxy_admin = SimulatedProxyAdmin(spoke_chain, owner=deployer.address)
    result = change_proxy_admin_owner(spoke_ctx, proxy_admin, user.address)
    assert result.outcome is Outcome.CONFIRMED
    assert proxy_admin.owner() == user.address

    user_ctx = spoke_ctx._replace(transactor=SimulatedTransactor(user))
    again = change_proxy_admin_owner(user_ctx, proxy_admin, user.address)
    assert again.outcome is Outcome.SKIPPED

    with pytest.raises(Unauthorized):
        change_proxy_admin_owner(spoke_ctx, proxy_admin, deployer.address)


def test_upgrade_proxy(spoke_chain, spoke_ctx, deployer):
    v1, v2 = make_address("bridge:v1"), make_address("bridge:v2")
    proxy_admin = SimulatedProxyAdmin(spoke_chain, owner=deployer.address)
    proxy = SimulatedProxy(spoke_chain, implementation=v1, admin=proxy_admin.address, label="proxy")

    assert upgrade_proxy(spoke_ctx, proxy_admin, proxy.address, v1).outcome is Outcome.SKIPPED
    assert spoke_chain.transactions == []

    result = upgrade_proxy(spoke_ctx, proxy_admin, proxy.address, v2)
    assert result.outcome is Outcome.CONFIRMED
    assert spoke_chain.implementation_of(proxy.address) == v2
    assert upgrade_proxy(spoke_ctx, proxy_admin, proxy.address, v2).outcome is Outcome.SKIPPED


def test_change_proxy_admin(spoke_chain, spoke_ctx, deployer, user):
    proxy_admin = SimulatedProxyAdmin(spoke_chain, owner=deployer.address)
    proxy = SimulatedProxy(
        spoke_chain,
        implementation=make_address("token:v1"),
        admin=proxy_admin.address,
        label="token-proxy",
    )
    new_admin = SimulatedProxyAdmin(spoke_chain, owner=user.address, label="new-admin")

    result = change_proxy_admin(spoke_ctx, proxy_admin, proxy.address, new_admin.address)
    assert result.outcome is Outcome.CONFIRMED
    assert spoke_chain.admin_of(proxy.address) == new_admin.address

    again = change_proxy_admin(spoke_ctx, proxy_admin, proxy.address, new_admin.address)
    assert again.outcome is Outcome.SKIPPED
    assert len(spoke_chain.transactions) == 1

    # the previous admin has let go of the proxy
    with pytest.raises(ValueError, match="administered by"):
        change_proxy_admin(spoke_ctx, proxy_admin, proxy.address, make_address("elsewhere"))
    with pytest.raises(ValueError, match="zero address"):
        change_proxy_admin(spoke_ctx, new_admin, proxy.address, ZERO_ADDRESS)


def test_transfer_token_ownership(spoke_ctx, spoke_token, deployer, user):
    result = transfer_token_ownership(spoke_ctx, spoke_token, user.address)
    assert result.outcome is Outcome.CONFIRMED
    assert spoke_token.owner() == user.address

    user_ctx = spoke_ctx._replace(transactor=SimulatedTransactor(user))
    assert transfer_token_ownership(user_ctx, spoke_token, user.address).outcome is Outcome.SKIPPED
    with pytest.raises(Unauthorized):
        transfer_token_ownership(spoke_ctx, spoke_token, deployer.address)


def test_mint_test_usdc(spoke_ctx, spoke_chain, spoke_token, deployer):
    with pytest.raises(Unauthorized):
        mint_test_usdc(spoke_ctx, spoke_token, RECEIVER, "40")

    configure_minter(spoke_ctx, spoke_token, deployer.address, "100")
    result = mint_test_usdc(spoke_ctx, spoke_token, RECEIVER, "40")
    assert result.outcome is Outcome.CONFIRMED
    assert spoke_token.balanceOf(RECEIVER) == to_units("40")
    assert spoke_token.minterAllowance(deployer.address) == to_units("60")

    transactions = len(spoke_chain.transactions)
    with pytest.raises(ValueError, match="allowance"):
        mint_test_usdc(spoke_ctx, spoke_token, RECEIVER, "100")
    assert len(spoke_chain.transactions) == transactions


def test_no_test_usdc_on_mainnet(spoke_ctx, spoke_token):
    mainnet_ctx = spoke_ctx._replace(network=get_network("arbitrum"))
    with pytest.raises(ValueError, match="arbitrum"):
        mint_test_usdc(mainnet_ctx, spoke_token, RECEIVER, "1")


def test_unfinalized_transaction_is_pending(spoke_network, deployer):
    chain = SimulatedChain(spoke_network, auto_mine=False)
    token = SimulatedFiatToken(chain, deployer.address, deployer.address)
    ctx = ChainContext(spoke_network, chain, SimulatedTransactor(deployer), finality_timeout=10)

    result = configure_minter(ctx, token, make_address("minter"), "5")
    assert result.outcome is Outcome.PENDING
    assert result.txn_hash == chain.transactions[-1].txn_hash
    assert "not confirmed" in result.detail
    # submitted all the same
    assert token.isMinter(make_address("minter"))


#
# Transfers
#


def test_spoke_to_hub_transfer(
    connected, relayer, user_hub_ctx, user_spoke_ctx, spoke_token, hub_usdc, hub_bridge, pool,
    hub_chain, hub_network, spoke_network, spoke_bridge, user,
):
    # fund the user on the spoke with a hub -> spoke transfer first
    inbound = send_token(user_hub_ctx, hub_bridge, hub_usdc, spoke_network, "100", user.address)
    assert inbound.outcome is Outcome.CONFIRMED
    assert relayer.relay() == [inbound.value]
    assert spoke_token.balanceOf(user.address) == to_units("100")

    pool_before = hub_usdc.balanceOf(pool)
    result = send_token(user_spoke_ctx, spoke_bridge, spoke_token, hub_network, "40", RECEIVER)
    assert result.outcome is Outcome.CONFIRMED
    assert result.value is not None
    assert spoke_token.balanceOf(user.address) == to_units("60")

    pending = monitor_delivery(hub_chain, hub_bridge, hub_network, result.value, timeout=20)
    assert pending.outcome is Outcome.PENDING

    relayer.relay()
    delivered = monitor_delivery(hub_chain, hub_bridge, hub_network, result.value)
    assert delivered.outcome is Outcome.CONFIRMED
    assert delivered.value["tokenAmount"] == to_units("40")
    assert delivered.value["srcBridge"] == spoke_bridge.address
    assert hub_usdc.balanceOf(RECEIVER) == to_units("40")
    assert hub_usdc.balanceOf(pool) == pool_before - to_units("40")


def test_hub_to_spoke_transfer(
    connected, relayer, user_hub_ctx, hub_usdc, hub_bridge, pool, spoke_chain, spoke_network,
    spoke_bridge, spoke_token, user,
):
    result = send_token(user_hub_ctx, hub_bridge, hub_usdc, spoke_network, "12.5", RECEIVER)
    assert result.outcome is Outcome.CONFIRMED
    assert hub_usdc.balanceOf(pool) == to_units("50012.5")

    relayer.relay()
    delivered = monitor_delivery(spoke_chain, spoke_bridge, spoke_network, result.value)
    assert delivered.outcome is Outcome.CONFIRMED
    assert delivered.value["tokenReceiver"] == RECEIVER
    assert spoke_token.balanceOf(RECEIVER) == to_units("12.5")


def test_transfer_over_the_limit_is_rejected_without_transacting(
    connected, hub_rate_ctx, user_hub_ctx, hub_chain, hub_bridge, hub_usdc, spoke_network, user,
):
    set_flow_limits(hub_rate_ctx, hub_bridge, spoke_network, out_max="10", out_refill="1")
    transactions = len(hub_chain.transactions)
    balance = hub_usdc.balanceOf(user.address)

    result = send_token(user_hub_ctx, hub_bridge, hub_usdc, spoke_network, "50", RECEIVER)
    assert result.outcome is Outcome.REJECTED
    assert result.txn_hash is None
    assert len(hub_chain.transactions) == transactions
    assert hub_usdc.balanceOf(user.address) == balance


def test_rejected_delivery_stays_pending(
    connected, relayer, spoke_rate_ctx, user_hub_ctx, hub_bridge, hub_usdc, spoke_chain,
    spoke_bridge, spoke_network, hub_network,
):
    set_flow_limits(spoke_rate_ctx, spoke_bridge, hub_network, in_max="5", in_refill="0")
    result = send_token(user_hub_ctx, hub_bridge, hub_usdc, spoke_network, "10", RECEIVER)
    assert result.outcome is Outcome.CONFIRMED

    assert relayer.relay() == []
    assert len(relayer.pending) == 1
    delivered = monitor_delivery(spoke_chain, spoke_bridge, spoke_network, result.value, timeout=20)
    assert delivered.outcome is Outcome.PENDING


def test_transfer_needs_a_lane(user_spoke_ctx, spoke_bridge, spoke_token, hub_network):
    with pytest.raises(ConfigurationMissing) as e:
        send_token(user_spoke_ctx, spoke_bridge, spoke_token, hub_network, "1", RECEIVER)
    assert e.value.key == f"lane for {hub_network.name} on arbitrumSepolia"


def test_hub_transfer_needs_a_pool(
    user_hub_ctx, hub_ctx, hub_bridge, hub_usdc, spoke_bridge, spoke_network
):
    add_dst_bridge(hub_ctx, hub_bridge, spoke_network, spoke_bridge.address)
    with pytest.raises(ConfigurationMissing, match="pool"):
        send_token(user_hub_ctx, hub_bridge, hub_usdc, spoke_network, "1", RECEIVER)


def test_spokes_only_send_to_the_hub(user_spoke_ctx, spoke_bridge, spoke_token):
    with pytest.raises(ValueError, match="hub"):
        send_token(
            user_spoke_ctx, spoke_bridge, spoke_token, get_network("baseSepolia"), "1", RECEIVER
        )
