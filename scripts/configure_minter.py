#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import DEPLOYER
from bridge_ops.options import allowance_option, autosign_option
from bridge_ops.registry import AddressBook
from bridge_ops.session import bridge_contract, chain_context, connected_network, token_contract
from bridge_ops.tasks import configure_minter
from bridge_ops.types import ChecksumAddress


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@click.option(
    "--minter",
    help="Minter address (defaults to the bridge proxy).",
    type=ChecksumAddress(),
    required=False,
)
@allowance_option
@autosign_option
def cli(network, minter, allowance, autosign):
    """Let the bridge (or MINTER) mint bridged USDC up to ALLOWANCE."""
    bridge_network = connected_network()
    book = AddressBook.for_network_type(bridge_network.type)
    token = token_contract(book, bridge_network)
    minter = minter or bridge_contract(book, bridge_network).address
    ctx = chain_context(bridge_network, DEPLOYER, autosign)
    result = configure_minter(ctx, token, minter, allowance)
    click.echo(f"({bridge_network.name}) configure minter: {result.outcome.value}")


if __name__ == "__main__":
    cli()
