#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import DEPLOYER
from bridge_ops.networks import is_hub
from bridge_ops.options import autosign_option, owner_option
from bridge_ops.registry import AddressBook
from bridge_ops.session import chain_context, connected_network, token_contract
from bridge_ops.tasks import transfer_token_ownership


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@owner_option
@autosign_option
def cli(network, owner, autosign):
    """Transfer ownership of the bridged USDC to OWNER."""
    bridge_network = connected_network()
    if is_hub(bridge_network):
        raise click.UsageError(f"{bridge_network.name} uses native USDC.")
    book = AddressBook.for_network_type(bridge_network.type)
    ctx = chain_context(bridge_network, DEPLOYER, autosign)
    result = transfer_token_ownership(ctx, token_contract(book, bridge_network), owner)
    click.echo(f"({bridge_network.name}) transfer ownership: {result.outcome.value}")


if __name__ == "__main__":
    cli()
