#!/usr/bin/python3

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import DEPLOYER, EVENT_TIMEOUT
from bridge_ops.ledger import ApeLedger
from bridge_ops.networks import hub_for
from bridge_ops.options import amount_option, autosign_option, dst_chain_option, gas_limit_option
from bridge_ops.registry import AddressBook
from bridge_ops.session import bridge_contract, chain_context, connected_network, token_contract
from bridge_ops.tasks import Outcome, monitor_delivery, send_token
from bridge_ops.types import ChecksumAddress, MinInt


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@dst_chain_option
@amount_option
@click.option(
    "--receiver",
    help="Receiver on the destination chain (defaults to the sender).",
    type=ChecksumAddress(),
    required=False,
)
@gas_limit_option
@click.option("--monitor", help="Wait for delivery on the destination chain.", is_flag=True)
@click.option(
    "--timeout",
    help="Seconds to wait for delivery.",
    type=MinInt(1),
    default=EVENT_TIMEOUT,
    show_default=True,
)
@autosign_option
def cli(network, dst_chain, amount, receiver, gas_limit, monitor, timeout, autosign):
    """Bridge AMOUNT USDC to DST_CHAIN (default: hub)."""
    src = connected_network()
    book = AddressBook.for_network_type(src.type)
    ctx = chain_context(src, DEPLOYER, autosign)
    receiver = receiver or ctx.transactor.get_account().address

    result = send_token(
        ctx,
        bridge_contract(book, src),
        token_contract(book, src),
        dst_chain,
        amount,
        receiver,
        gas_limit=gas_limit,
    )
    click.echo(f"({src.name}) send: {result.outcome.value}")
    if result.outcome is not Outcome.CONFIRMED:
        if result.detail:
            click.echo(result.detail)
        return

    click.echo(f"Message id: {result.value}")
    if not monitor:
        return

    dst = dst_chain or hub_for(src)
    with networks.parse_network_choice(dst.ape_choice):
        delivery = monitor_delivery(
            ApeLedger(dst.name), bridge_contract(book, dst), dst, result.value, timeout=timeout
        )
    click.echo(f"({dst.name}) delivery: {delivery.outcome.value}")


if __name__ == "__main__":
    cli()
