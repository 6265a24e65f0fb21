#!/usr/bin/python3

import click
from ape import networks

from bridge_ops.constants import DEPLOYER, MAINNET, PAUSE, TESTNET
from bridge_ops.credentials import get_account, role_addresses
from bridge_ops.deployer import Deployer
from bridge_ops.options import autosign_option, verify_option
from bridge_ops.params import DeploymentPlan
from bridge_ops.registry import AddressBook
from bridge_ops.session import report_deployment
from bridge_ops.tasks import networks_missing


@click.command()
@click.option(
    "--network-type",
    "-t",
    help="Deploy to every network of this type.",
    type=click.Choice([MAINNET, TESTNET]),
    required=True,
)
@verify_option
@autosign_option
def cli(network_type, verify, autosign):
    """Deploy the pause contract to every network that has none recorded."""
    book = AddressBook.for_network_type(network_type)
    missing = networks_missing(book, PAUSE, network_type)
    if not missing:
        click.echo(f"Every {network_type} network has a {PAUSE} recorded in {book.filepath}.")
        return

    for network in missing:
        click.echo(f"Deploying {PAUSE} to {network.name}")
        with networks.parse_network_choice(network.ape_choice):
            plan = DeploymentPlan.for_network(
                "pause", network, book, roles=role_addresses(network.type)
            )
            deployer = Deployer(
                plan,
                verify=verify,
                account=get_account(DEPLOYER, network.type),
                autosign=autosign,
            )
            result = deployer.deploy(PAUSE)
            if report_deployment(network, PAUSE, result):
                deployer.finalize()


if __name__ == "__main__":
    cli()
