#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import BRIDGE_PROXY, DEPLOYER, POOL_PROXY
from bridge_ops.networks import is_hub
from bridge_ops.options import autosign_option, required_dst_chain_option
from bridge_ops.registry import AddressBook
from bridge_ops.session import bridge_contract, chain_context, connected_network
from bridge_ops.tasks import add_dst_bridge, add_lane, add_pool, remove_lane, remove_pool
from bridge_ops.types import ChecksumAddress

address_option = click.option(
    "--address",
    help="Address to register (defaults to the one recorded in the address book).",
    type=ChecksumAddress(),
    required=False,
)


def _setup(autosign):
    bridge_network = connected_network()
    book = AddressBook.for_network_type(bridge_network.type)
    bridge = bridge_contract(book, bridge_network)
    ctx = chain_context(bridge_network, DEPLOYER, autosign)
    return book, bridge, ctx


@click.group()
def cli():
    """Lanes (counterpart bridges) and pools of the bridge on the connected network."""


@cli.command(name="add-lane", cls=ConnectedProviderCommand)
@network_option(required=True)
@required_dst_chain_option
@address_option
@autosign_option
def add_lane_cmd(network, dst_chain, address, autosign):
    """Register the bridge of DST_CHAIN as a lane."""
    book, bridge, ctx = _setup(autosign)
    address = address or book.get(BRIDGE_PROXY, dst_chain)
    if is_hub(ctx.network):
        result = add_dst_bridge(ctx, bridge, dst_chain, address)
    else:
        result = add_lane(ctx, bridge, dst_chain, address)
    click.echo(f"({ctx.network.name}) add lane {dst_chain.name}: {result.outcome.value}")


@cli.command(name="remove-lane", cls=ConnectedProviderCommand)
@network_option(required=True)
@required_dst_chain_option
@autosign_option
def remove_lane_cmd(network, dst_chain, autosign):
    """Remove the lane registered for DST_CHAIN."""
    _, bridge, ctx = _setup(autosign)
    result = remove_lane(ctx, bridge, dst_chain)
    click.echo(f"({ctx.network.name}) remove lane {dst_chain.name}: {result.outcome.value}")


@cli.command(name="add-pool", cls=ConnectedProviderCommand)
@network_option(required=True)
@required_dst_chain_option
@address_option
@autosign_option
def add_pool_cmd(network, dst_chain, address, autosign):
    """Register the hub pool serving DST_CHAIN."""
    book, bridge, ctx = _setup(autosign)
    address = address or book.get(POOL_PROXY, ctx.network, counterpart=dst_chain.name)
    result = add_pool(ctx, bridge, dst_chain, address)
    click.echo(f"({ctx.network.name}) add pool {dst_chain.name}: {result.outcome.value}")


@cli.command(name="remove-pool", cls=ConnectedProviderCommand)
@network_option(required=True)
@required_dst_chain_option
@autosign_option
def remove_pool_cmd(network, dst_chain, autosign):
    """Remove the hub pool registered for DST_CHAIN."""
    _, bridge, ctx = _setup(autosign)
    result = remove_pool(ctx, bridge, dst_chain)
    click.echo(f"({ctx.network.name}) remove pool {dst_chain.name}: {result.outcome.value}")


if __name__ == "__main__":
    cli()
