#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import DEPLOYER, PAUSE
from bridge_ops.credentials import get_account, role_addresses
from bridge_ops.deployer import Deployer
from bridge_ops.options import autosign_option, verify_option
from bridge_ops.params import DeploymentPlan
from bridge_ops.registry import AddressBook
from bridge_ops.session import connected_network, report_deployment


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@click.option("--redeploy", help="Deploy even if one is already recorded.", is_flag=True)
@verify_option
@autosign_option
def cli(network, redeploy, verify, autosign):
    """Deploy the pause implementation that bridge proxies can be pointed at."""
    bridge_network = connected_network()
    book = AddressBook.for_network_type(bridge_network.type)
    plan = DeploymentPlan.for_network(
        "pause", bridge_network, book, roles=role_addresses(bridge_network.type)
    )
    deployer = Deployer(
        plan,
        verify=verify,
        account=get_account(DEPLOYER, bridge_network.type),
        autosign=autosign,
    )
    result = deployer.deploy(PAUSE, new_implementation=redeploy)
    if report_deployment(bridge_network, PAUSE, result):
        deployer.finalize()


if __name__ == "__main__":
    cli()
