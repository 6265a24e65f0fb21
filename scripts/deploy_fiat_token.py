#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import DEPLOYER, FIAT_TOKEN, PROXY_DEPLOYER
from bridge_ops.credentials import get_account, role_addresses
from bridge_ops.deployer import Deployer
from bridge_ops.networks import is_hub
from bridge_ops.options import autosign_option, implementation_option, verify_option
from bridge_ops.params import DeploymentPlan
from bridge_ops.registry import AddressBook
from bridge_ops.session import connected_network, report_deployment


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@implementation_option
@verify_option
@autosign_option
def cli(network, implementation, verify, autosign):
    """Deploy the bridged USDC (FiatToken) behind a proxy and initialize it."""
    bridge_network = connected_network()
    if is_hub(bridge_network):
        raise click.UsageError(f"{bridge_network.name} uses native USDC.")
    book = AddressBook.for_network_type(bridge_network.type)
    plan = DeploymentPlan.for_network(
        "fiat-token", bridge_network, book, roles=role_addresses(bridge_network.type)
    )
    deployer = Deployer(
        plan,
        verify=verify,
        account=get_account(DEPLOYER, bridge_network.type),
        proxy_account=get_account(PROXY_DEPLOYER, bridge_network.type),
        autosign=autosign,
    )
    result = deployer.deploy(FIAT_TOKEN, new_implementation=implementation)
    if report_deployment(bridge_network, "FiatToken proxy", result):
        deployer.finalize()


if __name__ == "__main__":
    cli()
