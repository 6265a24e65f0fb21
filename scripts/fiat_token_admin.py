#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import FIAT_TOKEN_PROXY, FIAT_TOKEN_PROXY_ADMIN
from bridge_ops.networks import is_hub
from bridge_ops.options import autosign_option
from bridge_ops.registry import AddressBook
from bridge_ops.session import connected_network, proxy_admin_contract, proxy_owner_context
from bridge_ops.tasks import change_proxy_admin
from bridge_ops.types import ChecksumAddress


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@click.option(
    "--admin",
    help="Address of the new proxy admin.",
    type=ChecksumAddress(),
    required=True,
)
@autosign_option
def cli(network, admin, autosign):
    """Move the bridged USDC proxy under a new admin, which then controls its upgrades."""
    bridge_network = connected_network()
    if is_hub(bridge_network):
        raise click.UsageError(f"{bridge_network.name} uses native USDC.")
    book = AddressBook.for_network_type(bridge_network.type)
    proxy_admin = proxy_admin_contract(book, bridge_network, FIAT_TOKEN_PROXY_ADMIN)
    ctx = proxy_owner_context(bridge_network, autosign)
    result = change_proxy_admin(
        ctx, proxy_admin, book.get(FIAT_TOKEN_PROXY, bridge_network), admin
    )
    click.echo(f"({bridge_network.name}) change admin: {result.outcome.value}")


if __name__ == "__main__":
    cli()
