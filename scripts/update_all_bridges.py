#!/usr/bin/python3

import click
from ape import networks

from bridge_ops.constants import (
    BRIDGE,
    DEPLOYER,
    MAINNET,
    POOL,
    POOL_PROXY,
    PROXY_DEPLOYER,
    TESTNET,
)
from bridge_ops.credentials import get_account, role_addresses
from bridge_ops.deployer import Deployer
from bridge_ops.networks import hub_for
from bridge_ops.options import autosign_option, verify_option
from bridge_ops.params import DeploymentPlan
from bridge_ops.registry import AddressBook
from bridge_ops.session import report_deployment
from bridge_ops.tasks import networks_with_bridge


def _upgrade(network, plan_name, contract_name, verify, autosign, counterpart=None):
    book = AddressBook.for_network_type(network.type)
    with networks.parse_network_choice(network.ape_choice):
        plan = DeploymentPlan.for_network(
            plan_name,
            network,
            book,
            roles=role_addresses(network.type),
            counterpart=counterpart,
        )
        deployer = Deployer(
            plan,
            verify=verify,
            account=get_account(DEPLOYER, network.type),
            proxy_account=get_account(PROXY_DEPLOYER, network.type),
            autosign=autosign,
        )
        result = deployer.deploy(contract_name, new_implementation=True)
        if report_deployment(network, contract_name, result):
            deployer.finalize()


@click.command()
@click.option(
    "--network-type",
    "-t",
    help="Upgrade every spoke bridge of this network type.",
    type=click.Choice([MAINNET, TESTNET]),
    required=True,
)
@click.option("--pools", help="Also upgrade every pool on the hub.", is_flag=True)
@verify_option
@autosign_option
def cli(network_type, pools, verify, autosign):
    """Deploy a new bridge implementation on every spoke and upgrade its proxy."""
    book = AddressBook.for_network_type(network_type)
    spokes = networks_with_bridge(book, network_type)
    if not spokes:
        click.echo(f"No {network_type} bridges recorded in {book.filepath}.")
        return

    for spoke in spokes:
        click.echo(f"Updating bridge implementation for {spoke.name}")
        _upgrade(spoke, "bridge", BRIDGE, verify, autosign)

    if not pools:
        return
    hub = hub_for(spokes[0])
    for spoke in spokes:
        if not book.find(POOL_PROXY, hub, counterpart=spoke.name):
            continue
        click.echo(f"Updating pool implementation for {spoke.name} on {hub.name}")
        _upgrade(hub, "pool", POOL, verify, autosign, counterpart=spoke)


if __name__ == "__main__":
    cli()
