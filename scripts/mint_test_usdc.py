#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import DEPLOYER
from bridge_ops.options import amount_option, autosign_option
from bridge_ops.registry import AddressBook
from bridge_ops.session import chain_context, connected_network, token_contract
from bridge_ops.tasks import mint_test_usdc
from bridge_ops.types import ChecksumAddress


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@click.option(
    "--to",
    help="Recipient address (defaults to the deployer).",
    type=ChecksumAddress(),
    required=False,
)
@amount_option
@autosign_option
def cli(network, to, amount, autosign):
    """Mint AMOUNT test USDC to an address using the deployer's minter allowance."""
    bridge_network = connected_network()
    book = AddressBook.for_network_type(bridge_network.type)
    ctx = chain_context(bridge_network, DEPLOYER, autosign)
    to = to or ctx.transactor.get_account().address
    result = mint_test_usdc(ctx, token_contract(book, bridge_network), to, amount)
    click.echo(f"({bridge_network.name}) mint: {result.outcome.value}")


if __name__ == "__main__":
    cli()
