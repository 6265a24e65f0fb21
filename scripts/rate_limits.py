#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import RATE_LIMIT_ADMIN
from bridge_ops.options import autosign_option, dst_chain_option, rate_limit_options
from bridge_ops.registry import AddressBook
from bridge_ops.session import bridge_contract, chain_context, connected_network
from bridge_ops.tasks import get_rate_info, set_flow_limits, set_rate_limits


def _echo_rate(label, rate):
    click.echo(
        f"  {label}:\n"
        f"    available: {rate.available_volume} USDC\n"
        f"    max amount: {rate.max_amount} USDC\n"
        f"    refill speed: {rate.refill_speed} USDC/sec\n"
        f"    last update: {rate.last_update}\n"
        f"    active: {rate.is_active}"
    )


def _echo_results(network, results):
    for direction, result in results.items():
        click.echo(f"({network.name}) {direction.name.lower()}: {result.outcome.value}")


@click.group()
def cli():
    """Rate limits of the bridge on the connected network."""


@cli.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@dst_chain_option
def info(network, dst_chain):
    """Show both directions of the bucket pair towards DST_CHAIN (default: hub)."""
    bridge_network = connected_network()
    book = AddressBook.for_network_type(bridge_network.type)
    bridge = bridge_contract(book, bridge_network)
    rate_info = get_rate_info(bridge, bridge_network, dst_chain)
    click.echo(
        f"Rate limits {rate_info.src_chain} ({rate_info.src_chain_selector}) -> "
        f"{rate_info.dst_chain} ({rate_info.dst_chain_selector})"
    )
    _echo_rate("outbound", rate_info.outbound)
    _echo_rate("inbound", rate_info.inbound)


@cli.command(name="set-rate-limits", cls=ConnectedProviderCommand)
@network_option(required=True)
@dst_chain_option
@rate_limit_options
@autosign_option
def set_rate_limits_cmd(network, dst_chain, autosign, **rate_limits):
    """Set both directions; unspecified values fall back to the defaults."""
    bridge_network = connected_network()
    book = AddressBook.for_network_type(bridge_network.type)
    bridge = bridge_contract(book, bridge_network)
    ctx = chain_context(bridge_network, RATE_LIMIT_ADMIN, autosign)
    _echo_results(bridge_network, set_rate_limits(ctx, bridge, dst_chain, **rate_limits))


@cli.command(name="set-flow-limits", cls=ConnectedProviderCommand)
@network_option(required=True)
@dst_chain_option
@rate_limit_options
@autosign_option
def set_flow_limits_cmd(network, dst_chain, autosign, **rate_limits):
    """Set only the directions whose max amount and refill speed are both given."""
    bridge_network = connected_network()
    book = AddressBook.for_network_type(bridge_network.type)
    bridge = bridge_contract(book, bridge_network)
    ctx = chain_context(bridge_network, RATE_LIMIT_ADMIN, autosign)
    _echo_results(bridge_network, set_flow_limits(ctx, bridge, dst_chain, **rate_limits))


if __name__ == "__main__":
    cli()
