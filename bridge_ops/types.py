import click
from eth_utils import to_checksum_address

from bridge_ops.amounts import to_units
from bridge_ops.networks import BRIDGE_NETWORKS, BridgeNetwork, get_network


class MinInt(click.ParamType):
    name = "minint"

    def __init__(self, min_value):
        self.min_value = min_value

    def convert(self, value, param, ctx):
        try:
            ivalue = int(value)
        except ValueError:
            self.fail(f"{value} is not a valid integer", param, ctx)
        if ivalue < self.min_value:
            self.fail(
                f"{value} is less than the minimum allowed value of {self.min_value}", param, ctx
            )
        return ivalue


class ChecksumAddress(click.ParamType):
    name = "checksum_address"

    def convert(self, value, param, ctx):
        try:
            value = to_checksum_address(value=value)
        except ValueError:
            self.fail(f"{value} is not a valid ethereum address", param, ctx)
        else:
            return value


class TokenAmount(click.ParamType):
    """A USDC amount as a decimal string, e.g. ``10.5``."""

    name = "token_amount"

    def convert(self, value, param, ctx):
        try:
            to_units(str(value))
        except ValueError as e:
            self.fail(str(e), param, ctx)
        return str(value)


class NetworkName(click.ParamType):
    name = "network_name"

    def convert(self, value, param, ctx):
        if isinstance(value, BridgeNetwork):
            return value
        try:
            return get_network(value)
        except ValueError:
            self.fail(
                f"{value} is not one of: {', '.join(BRIDGE_NETWORKS)}", param, ctx
            )
