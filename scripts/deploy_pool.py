#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from bridge_ops.constants import DEPLOYER, POOL, PROXY_DEPLOYER
from bridge_ops.credentials import get_account, role_addresses
from bridge_ops.deployer import Deployer
from bridge_ops.networks import is_hub
from bridge_ops.options import (
    autosign_option,
    implementation_option,
    rate_limit_options,
    required_dst_chain_option,
    verify_option,
)
from bridge_ops.params import DeploymentPlan
from bridge_ops.registry import AddressBook
from bridge_ops.session import configure_hub_for, connected_network, report_deployment, summarize


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@required_dst_chain_option
@implementation_option
@click.option(
    "--configure",
    help="Register the spoke's bridge and this pool on the hub bridge and set rate limits.",
    is_flag=True,
)
@rate_limit_options
@verify_option
@autosign_option
def cli(network, dst_chain, implementation, configure, verify, autosign, **rate_limits):
    """Deploy (or upgrade) the hub pool that serves DST_CHAIN."""
    hub = connected_network()
    if not is_hub(hub):
        raise click.UsageError(f"Pools live on the hub; {hub.name} is a spoke.")
    book = AddressBook.for_network_type(hub.type)
    plan = DeploymentPlan.for_network(
        "pool", hub, book, roles=role_addresses(hub.type), counterpart=dst_chain
    )
    deployer = Deployer(
        plan,
        verify=verify,
        account=get_account(DEPLOYER, hub.type),
        proxy_account=get_account(PROXY_DEPLOYER, hub.type),
        autosign=autosign,
    )
    result = deployer.deploy(POOL, new_implementation=implementation)
    if not report_deployment(hub, f"Pool proxy for {dst_chain.name}", result):
        return
    deployer.finalize()

    if configure:
        results = configure_hub_for(book, dst_chain, autosign=autosign, **rate_limits)
        click.echo(summarize(results))


if __name__ == "__main__":
    cli()
