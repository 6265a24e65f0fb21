import click

from bridge_ops.constants import DEFAULT_GAS_LIMIT, DEFAULT_MINTER_ALLOWANCE
from bridge_ops.types import ChecksumAddress, MinInt, NetworkName, TokenAmount

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation.",
    is_flag=True,
    default=False,
)

verify_option = click.option(
    "--verify",
    help="Publish deployed contracts to the block explorer.",
    is_flag=True,
    default=False,
)

dst_chain_option = click.option(
    "--dst-chain",
    "-c",
    help="Counterpart network name (defaults to the hub where one applies).",
    type=NetworkName(),
    required=False,
)

required_dst_chain_option = click.option(
    "--dst-chain",
    "-c",
    help="Counterpart network name.",
    type=NetworkName(),
    required=True,
)

implementation_option = click.option(
    "--implementation",
    help="Deploy a new implementation (upgrades an existing proxy).",
    is_flag=True,
    default=False,
)

owner_option = click.option(
    "--owner",
    help="Address of the new owner.",
    type=ChecksumAddress(),
    required=True,
)

amount_option = click.option(
    "--amount",
    "-a",
    help="USDC amount as a decimal string, e.g. 10.5",
    type=TokenAmount(),
    required=True,
)

allowance_option = click.option(
    "--allowance",
    help="Minter allowance in USDC.",
    type=TokenAmount(),
    default=DEFAULT_MINTER_ALLOWANCE,
    show_default=True,
)

gas_limit_option = click.option(
    "--gas-limit",
    help="Gas limit for delivery on the destination chain.",
    type=MinInt(21_000),
    default=DEFAULT_GAS_LIMIT,
    show_default=True,
)


def rate_limit_options(func):
    """Max amount and refill speed (USDC, USDC/sec) per direction."""
    options = [
        click.option("--out-max", help="Outbound max amount.", type=TokenAmount()),
        click.option("--out-refill", help="Outbound refill speed.", type=TokenAmount()),
        click.option("--in-max", help="Inbound max amount.", type=TokenAmount()),
        click.option("--in-refill", help="Inbound refill speed.", type=TokenAmount()),
    ]
    for option in reversed(options):
        func = option(func)
    return func
