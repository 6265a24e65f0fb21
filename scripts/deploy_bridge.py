#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import BRIDGE, DEPLOYER, PAUSE, PROXY_DEPLOYER
from bridge_ops.credentials import get_account, role_addresses
from bridge_ops.deployer import Deployer
from bridge_ops.networks import is_hub
from bridge_ops.options import (
    allowance_option,
    autosign_option,
    implementation_option,
    rate_limit_options,
    verify_option,
)
from bridge_ops.params import DeploymentPlan
from bridge_ops.registry import AddressBook
from bridge_ops.session import configure_spoke, connected_network, report_deployment, summarize


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@implementation_option
@click.option("--pause", help="Point the bridge proxy at the pause contract.", is_flag=True)
@click.option(
    "--configure",
    help="On a spoke: configure the minter, the lane to the hub and the rate limits.",
    is_flag=True,
)
@allowance_option
@rate_limit_options
@verify_option
@autosign_option
def cli(network, implementation, pause, configure, allowance, verify, autosign, **rate_limits):
    """Deploy (or upgrade) the bridge behind its proxy on the connected network."""
    bridge_network = connected_network()
    if configure and is_hub(bridge_network):
        raise click.UsageError("Configure hub lanes and pools with manage_lanes.")
    book = AddressBook.for_network_type(bridge_network.type)
    plan = DeploymentPlan.for_network(
        "bridge-l1" if is_hub(bridge_network) else "bridge",
        bridge_network,
        book,
        roles=role_addresses(bridge_network.type),
    )
    deployer = Deployer(
        plan,
        verify=verify,
        account=get_account(DEPLOYER, bridge_network.type),
        proxy_account=get_account(PROXY_DEPLOYER, bridge_network.type),
        autosign=autosign,
    )
    result = deployer.deploy(BRIDGE, new_implementation=implementation)
    if not report_deployment(bridge_network, "Bridge proxy", result):
        return

    if pause:
        result = deployer.upgrade(BRIDGE, book.get(PAUSE, bridge_network))
        click.echo(f"({bridge_network.name}) Pause: {result.outcome.value}")

    deployer.finalize()

    if configure:
        results = configure_spoke(
            book, bridge_network, allowance=allowance, autosign=autosign, **rate_limits
        )
        click.echo(summarize(results))


if __name__ == "__main__":
    cli()
