"""
Helpers for scripts connected to a live network through ape: contract
lookup from the address book and the composite configuration flows.
"""
from typing import Dict, Optional

from ape import networks

from bridge_ops.constants import (
    BRIDGE_PROXY,
    DEPLOYER,
    FIAT_TOKEN_PROXY,
    POOL_PROXY,
    PROXY_DEPLOYER,
    RATE_LIMIT_ADMIN,
    USDC,
)
from bridge_ops.credentials import get_account
from bridge_ops.deployer import PROXY_ADMIN_CONTRACT, Transactor, get_contract_container
from bridge_ops.ledger import ApeLedger
from bridge_ops.networks import BridgeNetwork, hub_for, is_hub, network_from_chain_id
from bridge_ops.registry import AddressBook
from bridge_ops.tasks import (
    ChainContext,
    Outcome,
    StepResult,
    add_dst_bridge,
    add_lane,
    add_pool,
    configure_minter,
    set_rate_limits,
)

BRIDGE_CONTRACT = "LancaCanonicalBridge"
BRIDGE_L1_CONTRACT = "LancaCanonicalBridgeL1"
TOKEN_CONTRACT = "FiatTokenV2_2"


def connected_network() -> BridgeNetwork:
    return network_from_chain_id(networks.provider.network.chain_id)


def chain_context(
    network: BridgeNetwork, role: str = DEPLOYER, autosign: bool = False
) -> ChainContext:
    account = get_account(role, network.type)
    return ChainContext(
        network=network,
        ledger=ApeLedger(network.name),
        transactor=Transactor(account=account, autosign=autosign),
    )


def bridge_contract(book: AddressBook, network: BridgeNetwork):
    """The bridge ABI at the network's bridge proxy."""
    contract_type = BRIDGE_L1_CONTRACT if is_hub(network) else BRIDGE_CONTRACT
    return get_contract_container(contract_type).at(book.get(BRIDGE_PROXY, network))


def token_contract(book: AddressBook, network: BridgeNetwork):
    """Native USDC on the hub, the bridged fiat token proxy elsewhere."""
    name = USDC if is_hub(network) else FIAT_TOKEN_PROXY
    return get_contract_container(TOKEN_CONTRACT).at(book.get(name, network))


def proxy_admin_contract(
    book: AddressBook, network: BridgeNetwork, admin_name: str, counterpart: Optional[str] = None
):
    return get_contract_container(PROXY_ADMIN_CONTRACT).at(
        book.get(admin_name, network, counterpart)
    )


def configure_spoke(
    book: AddressBook,
    network: BridgeNetwork,
    allowance: str,
    autosign: bool = False,
    **rate_limits,
) -> Dict[str, StepResult]:
    """Minter -> lane to the hub -> rate limits towards the hub, on a spoke network."""
    hub = hub_for(network)
    bridge = bridge_contract(book, network)
    ctx = chain_context(network, DEPLOYER, autosign)
    results = dict()
    results["minter"] = configure_minter(
        ctx, token_contract(book, network), bridge.address, allowance
    )
    results["lane"] = add_lane(ctx, bridge, hub, book.get(BRIDGE_PROXY, hub))
    rate_ctx = chain_context(network, RATE_LIMIT_ADMIN, autosign)
    for direction, result in set_rate_limits(rate_ctx, bridge, hub, **rate_limits).items():
        results[f"rate_limit:{direction.name.lower()}"] = result
    return results


def configure_hub_for(
    book: AddressBook,
    spoke: BridgeNetwork,
    autosign: bool = False,
    **rate_limits,
) -> Dict[str, StepResult]:
    """Lane and pool for ``spoke`` on the hub, then the hub's rate limits towards it."""
    hub = hub_for(spoke)
    bridge = bridge_contract(book, hub)
    ctx = chain_context(hub, DEPLOYER, autosign)
    results = dict()
    results["lane"] = add_dst_bridge(ctx, bridge, spoke, book.get(BRIDGE_PROXY, spoke))
    pool = book.find(POOL_PROXY, hub, counterpart=spoke.name)
    if pool:
        results["pool"] = add_pool(ctx, bridge, spoke, pool)
    else:
        print(f"({hub.name}) (!) No pool recorded for {spoke.name}; deploy it with deploy_pool.")
    rate_ctx = chain_context(hub, RATE_LIMIT_ADMIN, autosign)
    for direction, result in set_rate_limits(rate_ctx, bridge, spoke, **rate_limits).items():
        results[f"rate_limit:{direction.name.lower()}"] = result
    return results


def proxy_owner_context(network: BridgeNetwork, autosign: bool = False) -> ChainContext:
    return chain_context(network, PROXY_DEPLOYER, autosign)


def summarize(results: Dict[str, StepResult]) -> str:
    lines = list()
    for step, result in results.items():
        line = f"  {step}: {result.outcome.value}"
        if result.txn_hash:
            line = f"{line} ({result.txn_hash})"
        lines.append(line)
    return "\n".join(lines)


def report_deployment(network: BridgeNetwork, label: str, result: StepResult) -> bool:
    """Prints where a deployed contract lives; False while its deployment is not final."""
    if result.outcome is Outcome.PENDING:
        print(
            f"({network.name}) (!) {label} submitted in {result.txn_hash} but not final yet. "
            f"Rerun once it is; nothing will be deployed twice."
        )
        return False
    print(f"({network.name}) {label}: {result.value.address}")
    return True
