"""Operator checkpoints before anything is signed."""
from collections import OrderedDict
from typing import List

import click
from eth_utils import is_address

from bridge_ops.lanes import is_configured


def confirm_or_abort(question: str) -> None:
    """Stops the script unless the operator answers yes."""
    click.confirm(question, default=False, abort=True)


def confirm_network(network) -> None:
    confirm_or_abort(f"Sign on {network.name} (chain {network.chain_id}, {network.type})?")


def confirm_transaction() -> None:
    confirm_or_abort("Sign and send this transaction?")


def zero_address_parameters(params: OrderedDict) -> List[str]:
    """Names of the parameters that resolved to the zero address."""
    return [
        name
        for name, value in params.items()
        if isinstance(value, str) and is_address(value) and not is_configured(value)
    ]


def confirm_constructor(contract_name: str, params: OrderedDict, network) -> None:
    if params:
        print(f"\nConstructor parameters for {contract_name} on {network.name}")
        for name, value in params.items():
            print(f"\t{name}={value}")
    else:
        print(f"\n(i) {contract_name} takes no constructor parameters")
    confirm_or_abort(f"Deploy {contract_name} on {network.name}?")

    unset = zero_address_parameters(params)
    if unset:
        confirm_or_abort(f"{', '.join(unset)} resolved to the zero address. Deploy anyway?")
