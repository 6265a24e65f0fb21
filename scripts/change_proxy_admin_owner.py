#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import PROXIES
from bridge_ops.options import autosign_option, dst_chain_option, owner_option
from bridge_ops.registry import AddressBook
from bridge_ops.session import connected_network, proxy_admin_contract, proxy_owner_context
from bridge_ops.tasks import change_proxy_admin_owner


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@click.option(
    "--proxy",
    "proxy_name",
    help="Proxy whose admin changes hands.",
    type=click.Choice(list(PROXIES)),
    required=True,
)
@dst_chain_option
@owner_option
@autosign_option
def cli(network, proxy_name, dst_chain, owner, autosign):
    """Transfer ownership of a proxy admin (DST_CHAIN selects a pool's admin)."""
    bridge_network = connected_network()
    book = AddressBook.for_network_type(bridge_network.type)
    _, admin_name = PROXIES[proxy_name]
    counterpart = dst_chain.name if dst_chain else None
    proxy_admin = proxy_admin_contract(book, bridge_network, admin_name, counterpart)
    ctx = proxy_owner_context(bridge_network, autosign)
    result = change_proxy_admin_owner(ctx, proxy_admin, owner)
    click.echo(f"({bridge_network.name}) change owner: {result.outcome.value}")


if __name__ == "__main__":
    cli()
