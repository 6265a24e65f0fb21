"""
Signing accounts per role and network type.

Each role maps to an ape account alias read from ``<TYPE>_<ROLE>_ACCOUNT``,
e.g. ``TESTNET_RATE_LIMIT_ADMIN_ACCOUNT=lanca-flow-admin``. Local networks
sign with ape's test accounts.
"""
import os
from typing import Dict, Iterable, Mapping, Optional

from bridge_ops.constants import LOCALHOST, SIGNING_ROLES
from bridge_ops.errors import ConfigurationMissing
from bridge_ops.networks import network_env_key


def _check_role(role: str) -> None:
    if role not in SIGNING_ROLES:
        raise ValueError(f"Unknown signing role '{role}'; expected one of {SIGNING_ROLES}")


def account_env_var(role: str, network_type: str) -> str:
    _check_role(role)
    # roles are camelCase like network names
    return f"{network_type.upper()}_{network_env_key(role)}_ACCOUNT"


def resolve_account_alias(
    role: str, network_type: str, environ: Optional[Mapping[str, str]] = None
) -> str:
    environ = os.environ if environ is None else environ
    envvar = account_env_var(role, network_type)
    alias = environ.get(envvar, "").strip()
    if not alias:
        raise ConfigurationMissing(
            key=envvar, hint=f"Set it to the ape account alias of the {role}."
        )
    return alias


def get_account(role: str, network_type: str, environ: Optional[Mapping[str, str]] = None):
    """Loads the ape account signing for ``role`` on ``network_type`` networks."""
    _check_role(role)
    from ape import accounts

    if network_type == LOCALHOST:
        return accounts.test_accounts[SIGNING_ROLES.index(role)]
    alias = resolve_account_alias(role, network_type, environ)
    return accounts.load(alias)


def role_addresses(
    network_type: str,
    roles: Iterable[str] = SIGNING_ROLES,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Addresses of the configured roles. Unconfigured roles are left out;
    referencing one from a deployment plan fails when it is resolved.
    """
    addresses = dict()
    for role in roles:
        try:
            account = get_account(role, network_type, environ)
        except ConfigurationMissing as e:
            print(f"(i) {e}")
            continue
        addresses[role] = account.address
    return addresses
