"""
Orchestration steps for the bridge contracts.

Every step reads the current on-chain state first and only transacts when a
delta exists, then waits for the network's finality depth before returning.
Steps work with any contract objects exposing the bridge ABI (ape contract
instances or the simulated doubles) and any transactor exposing
``transact(method, *args)``.
"""
from enum import Enum
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from bridge_ops.amounts import from_units, to_units
from bridge_ops.constants import (
    BRIDGE,
    BRIDGE_DELIVERED,
    DEFAULT_GAS_LIMIT,
    DEFAULT_RATE_LIMITS,
    EVENT_POLL_INTERVAL,
    EVENT_TIMEOUT,
    FINALITY_TIMEOUT,
    MAINNET,
    PROXIES,
    RECONCILE_ATTEMPTS,
    TOKEN_RECEIVED,
    TOKEN_SENT,
    ZERO_ADDRESS,
)
from bridge_ops.errors import (
    AdmissionRejected,
    ConfigurationMissing,
    FinalityTimeout,
    NotYetObserved,
    Unauthorized,
)
from bridge_ops.finality import wait_for_event, wait_for_finality
from bridge_ops.lanes import LANE, POOL, LaneRegistry, is_configured, same_address
from bridge_ops.ledger import Ledger
from bridge_ops.limits import Direction, RateInfo
from bridge_ops.networks import BridgeNetwork, hub_for, is_hub, networks_of_type
from bridge_ops.registry import AddressBook


class Outcome(Enum):
    CONFIRMED = "confirmed"
    SKIPPED = "skipped"  # already satisfied
    REJECTED = "rejected"  # admission control said no
    PENDING = "pending"  # submitted, not yet final or not yet observed


class StepResult(NamedTuple):
    outcome: Outcome
    txn_hash: Optional[str] = None
    detail: str = ""
    value: Any = None


class ChainContext(NamedTuple):
    """Everything a step needs to act on one chain."""

    network: BridgeNetwork
    ledger: Ledger
    transactor: Any
    finality_timeout: float = FINALITY_TIMEOUT

    def echo(self, message: str) -> None:
        print(f"({self.network.name}) {message}")


def _await(ctx: ChainContext, receipt) -> StepResult:
    """Waits for finality of a submitted transaction. A timed out wait is PENDING."""
    txn_hash = str(receipt.txn_hash)
    try:
        wait_for_finality(
            ctx.ledger,
            receipt,
            confirmations=ctx.network.confirmations,
            timeout=ctx.finality_timeout,
        )
    except FinalityTimeout as e:
        ctx.echo(f"(!) {e} Do not resubmit; check the transaction later.")
        return StepResult(Outcome.PENDING, txn_hash=txn_hash, detail=str(e))
    return StepResult(Outcome.CONFIRMED, txn_hash=txn_hash)


def _submit(ctx: ChainContext, method, *args, **kwargs):
    """Transacts and waits for finality. Returns the step result and the receipt."""
    receipt = ctx.transactor.transact(method, *args, **kwargs)
    return _await(ctx, receipt), receipt


def _skip(ctx: ChainContext, detail: str) -> StepResult:
    ctx.echo(f"(i) {detail}; skipping.")
    return StepResult(Outcome.SKIPPED, detail=detail)


def _counterpart(network: BridgeNetwork, dst: Optional[BridgeNetwork]) -> BridgeNetwork:
    dst = dst or hub_for(network)
    if dst.name == network.name:
        raise ValueError("Source and destination chains cannot be the same")
    if dst.type != network.type:
        raise ValueError(f"Cannot pair {network.type} {network.name} with {dst.type} {dst.name}")
    return dst


#
# Rate limits
#


class FormattedRate(NamedTuple):
    available_volume: str
    max_amount: str
    refill_speed: str
    last_update: int
    is_active: bool

    @classmethod
    def from_rate_info(cls, info: RateInfo) -> "FormattedRate":
        return cls(
            available_volume=from_units(info.available_volume),
            max_amount=from_units(info.max_amount),
            refill_speed=from_units(info.refill_speed),
            last_update=info.last_update,
            is_active=info.is_active,
        )


class RateLimitInfo(NamedTuple):
    src_chain: str
    dst_chain: str
    src_chain_selector: int
    dst_chain_selector: int
    outbound: FormattedRate
    inbound: FormattedRate


def read_rate_info(bridge, dst_selector: int, direction: Direction) -> RateInfo:
    return RateInfo(*bridge.getRateInfo(dst_selector, direction.is_outbound))


def get_rate_info(
    bridge, network: BridgeNetwork, dst: Optional[BridgeNetwork] = None
) -> RateLimitInfo:
    """Both directions of the bucket pair between ``network`` and ``dst`` (default: hub)."""
    dst = _counterpart(network, dst)
    print(f"({network.name}) Getting rate info for {network.name} -> {dst.name}")
    outbound = read_rate_info(bridge, dst.chain_selector, Direction.OUTBOUND)
    inbound = read_rate_info(bridge, dst.chain_selector, Direction.INBOUND)
    return RateLimitInfo(
        src_chain=network.name,
        dst_chain=dst.name,
        src_chain_selector=network.chain_selector,
        dst_chain_selector=dst.chain_selector,
        outbound=FormattedRate.from_rate_info(outbound),
        inbound=FormattedRate.from_rate_info(inbound),
    )


def apply_rate_limit(
    ctx: ChainContext,
    bridge,
    dst: BridgeNetwork,
    direction: Direction,
    max_amount: str,
    refill_speed: str,
    attempts: int = RECONCILE_ATTEMPTS,
) -> StepResult:
    """
    Configures one bucket unless it already holds the desired parameters.
    The bucket is read again after each confirmed write; when a concurrent
    update replaced the values, the delta is recomputed and applied again,
    at most ``attempts`` writes in total.
    """
    desired_max, desired_refill = to_units(max_amount), to_units(refill_speed)
    label = f"{direction.name.lower()} rate limit {ctx.network.name} -> {dst.name}"
    result = None
    for _ in range(attempts):
        current = read_rate_info(bridge, dst.chain_selector, direction)
        if (
            current.is_active
            and current.max_amount == desired_max
            and current.refill_speed == desired_refill
        ):
            if result is None:
                return _skip(ctx, f"{label} already {max_amount} USDC / {refill_speed} USDC/sec")
            return result
        if result is not None:
            ctx.echo(
                f"(!) {label} changed concurrently to maxAmount={from_units(current.max_amount)} "
                f"USDC, refillSpeed={from_units(current.refill_speed)} USDC/sec"
            )

        ctx.echo(
            f"Setting {label}: maxAmount={max_amount} USDC, refillSpeed={refill_speed} USDC/sec"
        )
        result, _ = _submit(
            ctx,
            bridge.setRateLimit,
            dst.chain_selector,
            desired_max,
            desired_refill,
            direction.is_outbound,
        )
        if result.outcome is not Outcome.CONFIRMED:
            return result
        ctx.echo(f"{label} set. Transaction: {result.txn_hash}")
    return result


def set_rate_limits(
    ctx: ChainContext,
    bridge,
    dst: Optional[BridgeNetwork] = None,
    out_max: Optional[str] = None,
    out_refill: Optional[str] = None,
    in_max: Optional[str] = None,
    in_refill: Optional[str] = None,
) -> Dict[Direction, StepResult]:
    """Sets both directions, filling unspecified values from the defaults."""
    dst = _counterpart(ctx.network, dst)
    limits = {
        Direction.OUTBOUND: (
            out_max or DEFAULT_RATE_LIMITS["out_max"],
            out_refill or DEFAULT_RATE_LIMITS["out_refill"],
        ),
        Direction.INBOUND: (
            in_max or DEFAULT_RATE_LIMITS["in_max"],
            in_refill or DEFAULT_RATE_LIMITS["in_refill"],
        ),
    }
    results = dict()
    for direction, (max_amount, refill_speed) in limits.items():
        results[direction] = apply_rate_limit(
            ctx, bridge, dst, direction, max_amount, refill_speed
        )
    return results


def set_flow_limits(
    ctx: ChainContext,
    bridge,
    dst: Optional[BridgeNetwork] = None,
    out_max: Optional[str] = None,
    out_refill: Optional[str] = None,
    in_max: Optional[str] = None,
    in_refill: Optional[str] = None,
) -> Dict[Direction, StepResult]:
    """Sets only the directions whose max amount and refill speed are both given."""
    dst = _counterpart(ctx.network, dst)
    requested = {
        Direction.OUTBOUND: (out_max, out_refill),
        Direction.INBOUND: (in_max, in_refill),
    }
    results = dict()
    for direction, (max_amount, refill_speed) in requested.items():
        if max_amount is None and refill_speed is None:
            continue
        if max_amount is None or refill_speed is None:
            raise ValueError(
                f"Both max amount and refill speed are required for the "
                f"{direction.name.lower()} flow limit"
            )
        results[direction] = apply_rate_limit(
            ctx, bridge, dst, direction, max_amount, refill_speed
        )

    if not results:
        ctx.echo("No rate limits to set. Please provide at least one set of parameters.")
    return results


#
# Lanes and pools
#

_GETTERS = {LANE: "getLane", POOL: "getPool"}
_ADDERS = {LANE: "addLanes", POOL: "addPools"}
_REMOVERS = {LANE: "removeLanes", POOL: "removePools"}


def resolve(bridge, namespace: str, dst: BridgeNetwork) -> Optional[str]:
    """Registered address for ``dst``, or None when unregistered."""
    address = getattr(bridge, _GETTERS[namespace])(dst.chain_selector)
    if not is_configured(address):
        return None
    return address


def register(
    ctx: ChainContext, bridge, namespace: str, dst: BridgeNetwork, address: str
) -> StepResult:
    if not is_configured(address):
        raise ValueError(f"Refusing to register the zero address as {namespace} for {dst.name}")
    current = resolve(bridge, namespace, dst)
    if current and same_address(current, address):
        return _skip(ctx, f"{namespace} for {dst.name} already registered at {current}")
    if current:
        raise LaneRegistry.AlreadyRegistered(
            f"{namespace} for {dst.name} is already registered at {current}; "
            f"remove it before registering {address}"
        )

    ctx.echo(f"Adding {namespace} {address} for chain {dst.name} ({dst.chain_selector})")
    adder = getattr(bridge, _ADDERS[namespace])
    try:
        result, _ = _submit(ctx, adder, [dst.chain_selector], [address])
    except Exception as e:
        # a registration included first makes this one revert
        current = resolve(bridge, namespace, dst)
        if current and same_address(current, address):
            ctx.echo(f"(i) {namespace} for {dst.name} was registered concurrently ({e})")
            return StepResult(Outcome.SKIPPED, detail=f"registered concurrently at {current}")
        raise
    if result.outcome is Outcome.CONFIRMED:
        ctx.echo(f"{namespace.capitalize()} added. Transaction: {result.txn_hash}")
    return result


def unregister(ctx: ChainContext, bridge, namespace: str, dst: BridgeNetwork) -> StepResult:
    current = resolve(bridge, namespace, dst)
    if current is None:
        raise LaneRegistry.NotRegistered(f"No {namespace} registered for chain {dst.name}")

    ctx.echo(f"Removing {namespace} {current} for chain {dst.name} ({dst.chain_selector})")
    remover = getattr(bridge, _REMOVERS[namespace])
    try:
        result, _ = _submit(ctx, remover, [dst.chain_selector])
    except Exception as e:
        if resolve(bridge, namespace, dst) is None:
            ctx.echo(f"(i) {namespace} for {dst.name} was removed concurrently ({e})")
            return StepResult(Outcome.SKIPPED, detail="removed concurrently")
        raise
    if result.outcome is Outcome.CONFIRMED:
        ctx.echo(f"{namespace.capitalize()} removed. Transaction: {result.txn_hash}")
    return result


def add_lane(ctx: ChainContext, bridge, dst: BridgeNetwork, lane: str) -> StepResult:
    return register(ctx, bridge, LANE, dst, lane)


def add_dst_bridge(ctx: ChainContext, bridge, dst: BridgeNetwork, dst_bridge: str) -> StepResult:
    """On the hub, the lane towards a spoke is that spoke's bridge."""
    if not is_hub(ctx.network):
        raise ValueError(f"Destination bridges are registered on the hub, not {ctx.network.name}")
    return register(ctx, bridge, LANE, dst, dst_bridge)


def remove_lane(ctx: ChainContext, bridge, dst: BridgeNetwork) -> StepResult:
    return unregister(ctx, bridge, LANE, dst)


def add_pool(ctx: ChainContext, bridge, dst: BridgeNetwork, pool: str) -> StepResult:
    if not is_hub(ctx.network):
        raise ValueError(f"Pools are only registered on the hub bridge, not {ctx.network.name}")
    return register(ctx, bridge, POOL, dst, pool)


def remove_pool(ctx: ChainContext, bridge, dst: BridgeNetwork) -> StepResult:
    if not is_hub(ctx.network):
        raise ValueError(f"Pools are only registered on the hub bridge, not {ctx.network.name}")
    return unregister(ctx, bridge, POOL, dst)


#
# Token, ownership and upgrades
#


def configure_minter(ctx: ChainContext, token, minter: str, allowance: str) -> StepResult:
    desired = to_units(allowance)
    if token.isMinter(minter) and token.minterAllowance(minter) == desired:
        return _skip(ctx, f"{minter} is already a minter with allowance {allowance}")

    ctx.echo(f"Setting {minter} as minter with minterAllowedAmount: {allowance}")
    result, _ = _submit(ctx, token.configureMinter, minter, desired)
    if result.outcome is Outcome.CONFIRMED:
        ctx.echo(f"Minter configured. Transaction: {result.txn_hash}")
    return result


def transfer_ownership(ctx: ChainContext, ownable, new_owner: str) -> StepResult:
    owner = ownable.owner()
    ctx.echo(f"Changing owner of {ownable.address}\n Old owner: {owner}\n New owner: {new_owner}")
    if same_address(owner, new_owner):
        return _skip(ctx, "Owner is already set to the same address")

    result, _ = _submit(ctx, ownable.transferOwnership, new_owner)
    if result.outcome is Outcome.CONFIRMED:
        ctx.echo(f"Owner changed. Transaction: {result.txn_hash}")
    return result


def change_proxy_admin_owner(ctx: ChainContext, proxy_admin, new_owner: str) -> StepResult:
    return transfer_ownership(ctx, proxy_admin, new_owner)


def transfer_token_ownership(ctx: ChainContext, token, new_owner: str) -> StepResult:
    """Hands the fiat token's owner role (pauser, blacklister and rescuer admin) over."""
    return transfer_ownership(ctx, token, new_owner)


def change_proxy_admin(
    ctx: ChainContext, proxy_admin, proxy_address: str, new_admin: str
) -> StepResult:
    """Moves a proxy under ``new_admin``; afterwards ``proxy_admin`` can no longer upgrade it."""
    if not is_configured(new_admin):
        raise ValueError(f"Refusing to make the zero address admin of {proxy_address}")
    current = ctx.ledger.admin_of(proxy_address)
    if same_address(current, new_admin):
        return _skip(ctx, f"{proxy_address} is already administered by {new_admin}")
    if not same_address(current, proxy_admin.address):
        raise ValueError(
            f"{proxy_address} is administered by {current}, not by {proxy_admin.address}"
        )

    ctx.echo(f"Changing admin of {proxy_address}: {current} -> {new_admin}")
    result, _ = _submit(ctx, proxy_admin.changeProxyAdmin, proxy_address, new_admin)
    if result.outcome is Outcome.CONFIRMED:
        ctx.echo(f"Admin changed. Transaction: {result.txn_hash}")
    return result


def mint_test_usdc(ctx: ChainContext, token, to: str, amount: str) -> StepResult:
    """Mints bridged test USDC with the signer's minter allowance. Testnets only."""
    if ctx.network.type == MAINNET:
        raise ValueError(f"Refusing to mint test USDC on {ctx.network.name}")
    minter = ctx.transactor.get_account().address
    units = to_units(amount)
    if not token.isMinter(minter):
        raise Unauthorized(account=minter, role="minter")
    allowance = token.minterAllowance(minter)
    if units > allowance:
        raise ValueError(
            f"Minting {amount} USDC exceeds the minter allowance of {from_units(allowance)} USDC"
        )

    ctx.echo(f"Minting {amount} USDC to {to}")
    result, _ = _submit(ctx, token.mint, to, units)
    if result.outcome is Outcome.CONFIRMED:
        ctx.echo(f"Minted {amount} USDC to {to}. Transaction: {result.txn_hash}")
    return result


def upgrade_proxy(
    ctx: ChainContext, proxy_admin, proxy_address: str, implementation: str
) -> StepResult:
    current = ctx.ledger.implementation_of(proxy_address)
    if same_address(current, implementation):
        return _skip(ctx, f"{proxy_address} already points to {implementation}")

    ctx.echo(f"Upgrading {proxy_address}: {current} -> {implementation}")
    result, _ = _submit(ctx, proxy_admin.upgradeAndCall, proxy_address, implementation, b"")
    if result.outcome is Outcome.CONFIRMED:
        ctx.echo(f"Upgraded via {proxy_admin.address}. Transaction: {result.txn_hash}")
    return result


#
# Transfers
#


def send_token(
    ctx: ChainContext,
    bridge,
    token,
    dst: BridgeNetwork,
    amount: str,
    receiver: str,
    gas_limit: int = DEFAULT_GAS_LIMIT,
) -> StepResult:
    """
    Approves and sends ``amount`` USDC to ``receiver`` on ``dst``.
    Returns REJECTED, without transacting, when the outbound bucket cannot admit it.
    The message id of a confirmed send is the result's ``value``.
    """
    hub = is_hub(ctx.network)
    dst = _counterpart(ctx.network, dst)
    if not hub and not is_hub(dst):
        raise ValueError(f"{ctx.network.name} can only send to the hub {hub_for(dst).name}")

    if resolve(bridge, LANE, dst) is None:
        raise ConfigurationMissing(key=f"lane for {dst.name} on {ctx.network.name}")

    units = to_units(amount)
    rate = read_rate_info(bridge, dst.chain_selector, Direction.OUTBOUND)
    if rate.is_active and units > rate.available_volume:
        rejection = AdmissionRejected(amount=units, available=rate.available_volume)
        ctx.echo(f"(!) Transfer of {amount} USDC not admitted: {rejection}")
        return StepResult(Outcome.REJECTED, detail=str(rejection))

    if hub:
        spender = resolve(bridge, POOL, dst)
        if spender is None:
            raise ConfigurationMissing(key=f"pool for {dst.name} on {ctx.network.name}")
    else:
        spender = bridge.address

    dst_chain_data = {"receiver": receiver, "gasLimit": gas_limit}
    fee = bridge.getMessageFee(dst.chain_selector, ZERO_ADDRESS, dst_chain_data)
    ctx.echo(f"Message fee: {fee} wei")

    ctx.echo(f"Approving {amount} USDC to {'pool' if hub else 'bridge'} {spender}...")
    approval, _ = _submit(ctx, token.approve, spender, units)
    if approval.outcome is not Outcome.CONFIRMED:
        return approval

    ctx.echo(f"Sending {amount} USDC to {receiver} on {dst.name}...")
    if hub:
        args = (units, dst.chain_selector, ZERO_ADDRESS, dst_chain_data)
    else:
        args = (units, ZERO_ADDRESS, dst_chain_data)
    try:
        result, receipt = _submit(ctx, bridge.sendToken, *args, value=fee)
    except AdmissionRejected as e:
        # volume was consumed between the read and the send
        ctx.echo(f"(!) Transfer of {amount} USDC not admitted: {e}")
        return StepResult(Outcome.REJECTED, detail=str(e))

    message_id = None
    for log in ctx.ledger.logs(bridge, TOKEN_SENT, receipt.block_number):
        if log.transaction_hash == str(receipt.txn_hash):
            message_id = log.args["messageId"]
            break
    ctx.echo(f"Token transfer submitted. Transaction: {result.txn_hash}, messageId: {message_id}")
    return result._replace(value=message_id)


def monitor_delivery(
    ledger: Ledger,
    bridge,
    network: BridgeNetwork,
    message_id: str,
    timeout: float = EVENT_TIMEOUT,
    poll_interval: float = EVENT_POLL_INTERVAL,
) -> StepResult:
    """Waits for the destination bridge to report delivery of ``message_id``."""
    event_name = BRIDGE_DELIVERED if is_hub(network) else TOKEN_RECEIVED
    print(f"({network.name}) Monitoring {event_name} for messageId: {message_id}")
    try:
        log = wait_for_event(
            ledger,
            bridge,
            event_name,
            match=lambda e: str(e.args.get("messageId")) == str(message_id),
            timeout=timeout,
            poll_interval=poll_interval,
        )
    except NotYetObserved as e:
        print(f"({network.name}) (!) {e} The transfer may still settle.")
        return StepResult(Outcome.PENDING, detail=str(e))

    amount = log.args.get("amount", log.args.get("tokenAmount"))
    print(
        f"({network.name}) {event_name} found in block {log.block_number}",
        f"   Receiver: {log.args.get('tokenReceiver')}",
        f"   Amount: {amount} units ({from_units(amount)} USDC)",
        f"   Transaction Hash: {log.transaction_hash}",
        sep="\n",
    )
    return StepResult(Outcome.CONFIRMED, txn_hash=log.transaction_hash, value=log.args)


#
# Deployment sequencing
#


class DeploymentStep(Enum):
    IMPLEMENTATION = "implementation"
    PROXY_ADMIN = "proxy_admin"
    PROXY = "proxy"
    INITIALIZE = "initialize"
    UPGRADE = "upgrade"


def initializer_key(proxy_name: str, method_name: str) -> str:
    """Address book name marking an initializer call made through ``proxy_name``."""
    return f"{proxy_name}.{method_name}"


def plan_proxy_deployment(
    book: AddressBook,
    network: BridgeNetwork,
    proxy_name: str,
    counterpart: Optional[str] = None,
    new_implementation: bool = False,
    initializers: Sequence[str] = (),
) -> List[DeploymentStep]:
    """
    Ordered steps still missing for a proxied contract:
    implementation -> proxy admin -> proxy -> initialize, then an upgrade
    of an existing proxy when a new implementation is requested.
    Initialization is planned while any of ``initializers`` has not been
    called through the proxy, including after an interrupted run.
    """
    implementation_name, admin_name = PROXIES[proxy_name]
    has_implementation = book.find(implementation_name, network, counterpart) is not None
    has_admin = book.find(admin_name, network, counterpart) is not None
    has_proxy = book.find(proxy_name, network, counterpart) is not None
    uninitialized = [
        method_name
        for method_name in initializers
        if book.find(initializer_key(proxy_name, method_name), network, counterpart) is None
    ]

    steps = list()
    if new_implementation or not has_implementation:
        steps.append(DeploymentStep.IMPLEMENTATION)
    if not has_proxy:
        if not has_admin:
            steps.append(DeploymentStep.PROXY_ADMIN)
        steps.append(DeploymentStep.PROXY)
    if uninitialized:
        steps.append(DeploymentStep.INITIALIZE)
    if has_proxy and new_implementation:
        steps.append(DeploymentStep.UPGRADE)
    return steps


def record_deployment(
    ctx: ChainContext,
    book: AddressBook,
    name: str,
    instance,
    counterpart: Optional[str] = None,
) -> StepResult:
    """
    Records a contract as soon as its deployment is submitted, then waits for
    finality. A timed out wait is PENDING and the entry stays, so a later run
    does not deploy the contract a second time.
    """
    receipt = instance.receipt
    book.record(
        name,
        ctx.network,
        instance.address,
        tx_hash=str(receipt.txn_hash),
        block_number=receipt.block_number,
        deployer=str(receipt.sender),
        counterpart=counterpart,
    )
    result = _await(ctx, receipt)
    if result.outcome is Outcome.CONFIRMED:
        ctx.echo(f"Deployed {name} at {instance.address}")
    return result._replace(value=instance)


def initialize_proxy(
    ctx: ChainContext,
    book: AddressBook,
    proxy_name: str,
    proxied,
    calls: Sequence[Tuple[str, Sequence[Any]]],
    counterpart: Optional[str] = None,
) -> StepResult:
    """
    Makes the initializer ``calls`` through the proxy, in order, skipping those
    already recorded. Each call is recorded when submitted and must be final
    before the next one is made.
    """
    result = None
    for method_name, args in calls:
        key = initializer_key(proxy_name, method_name)
        if book.find(key, ctx.network, counterpart) is not None:
            ctx.echo(f"(i) {method_name} already called through {proxy_name}; skipping.")
            continue

        ctx.echo(f"Calling {method_name} through {proxy_name} at {proxied.address}")
        receipt = ctx.transactor.transact(getattr(proxied, method_name), *args)
        book.record(
            key,
            ctx.network,
            proxied.address,
            tx_hash=str(receipt.txn_hash),
            block_number=receipt.block_number,
            deployer=str(receipt.sender),
            counterpart=counterpart,
        )
        result = _await(ctx, receipt)
        if result.outcome is not Outcome.CONFIRMED:
            return result
    if result is None:
        return StepResult(Outcome.SKIPPED, detail=f"{proxy_name} already initialized")
    return result


def execute_steps(
    ctx: ChainContext,
    steps: Sequence[DeploymentStep],
    actions: Dict[DeploymentStep, Callable[[], StepResult]],
) -> StepResult:
    """Runs deployment steps in order and stops at the first one that is not final."""
    result = StepResult(Outcome.SKIPPED, detail="nothing to deploy")
    for step in steps:
        result = actions[step]()
        if result.outcome is Outcome.PENDING:
            ctx.echo(f"(!) Stopping after the {step.value} step; rerun once it is final.")
            return result
    return result


def networks_with_bridge(book: AddressBook, network_type: str) -> List[BridgeNetwork]:
    """Non-hub networks of ``network_type`` that have a bridge implementation recorded."""
    recorded = set(book.networks_with(BRIDGE))
    result = list()
    for network in networks_of_type(network_type):
        if network.chain_id in recorded and not is_hub(network):
            result.append(network)
    return result


def networks_missing(book: AddressBook, name: str, network_type: str) -> List[BridgeNetwork]:
    """Networks of ``network_type`` with no ``name`` recorded yet."""
    recorded = set(book.networks_with(name))
    return [n for n in networks_of_type(network_type) if n.chain_id not in recorded]
