"""
Directory of counterpart bridge endpoints.

Lanes map a destination chain selector to the bridge contract authorized to
exchange messages with this one. Pools (hub-and-spoke topologies only) map a
destination chain selector to the liquidity pool holding its locked tokens.
Unregistered selectors resolve to the zero address.
"""
from typing import Dict, Iterable, List, Optional, Sequence

from eth_utils import is_address, to_checksum_address

from bridge_ops.constants import ZERO_ADDRESS
from bridge_ops.errors import Unauthorized

LANE = "lane"
POOL = "pool"

REGISTRY_ADMIN_ROLE = "DEFAULT_ADMIN"


def is_configured(address: Optional[str]) -> bool:
    """False for anything that means 'not yet configured': None, empty or zero address."""
    if not address:
        return False
    return address.lower() != ZERO_ADDRESS


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    return (a or ZERO_ADDRESS).lower() == (b or ZERO_ADDRESS).lower()


class LaneRegistry:
    class AlreadyRegistered(ValueError):
        """Raised when a selector already has an entry in the namespace"""

    class NotRegistered(ValueError):
        """Raised when removing a selector that has no entry in the namespace"""

    def __init__(self, admins: Optional[Iterable[str]] = None):
        self._admins = set(admins or [])
        self._entries: Dict[str, Dict[int, str]] = {LANE: dict(), POOL: dict()}

    def _check_admin(self, sender: str) -> None:
        if sender not in self._admins:
            raise Unauthorized(account=sender, role=REGISTRY_ADMIN_ROLE)

    def grant_admin(self, account: str) -> None:
        self._admins.add(account)

    def resolve(self, namespace: str, selector: int) -> str:
        return self._entries[namespace].get(selector, ZERO_ADDRESS)

    def selectors(self, namespace: str) -> List[int]:
        return sorted(self._entries[namespace])

    def add(
        self, namespace: str, selectors: Sequence[int], addresses: Sequence[str], sender: str
    ) -> None:
        """Registers all entries or none of them."""
        self._check_admin(sender)
        if len(selectors) != len(addresses):
            raise ValueError(
                f"Length mismatch: {len(selectors)} selectors, {len(addresses)} addresses"
            )
        entries = self._entries[namespace]
        pending = dict()
        for selector, address in zip(selectors, addresses):
            if not is_address(address) or not is_configured(address):
                raise ValueError(f"Invalid {namespace} address '{address}' for {selector}")
            if selector in entries or selector in pending:
                raise self.AlreadyRegistered(
                    f"{namespace} for chain {selector} is already registered "
                    f"at {entries.get(selector, pending.get(selector))}"
                )
            pending[selector] = to_checksum_address(address)
        entries.update(pending)

    def remove(self, namespace: str, selectors: Sequence[int], sender: str) -> None:
        """Removes all entries or none of them."""
        self._check_admin(sender)
        entries = self._entries[namespace]
        missing = [selector for selector in selectors if selector not in entries]
        if missing:
            raise self.NotRegistered(f"No {namespace} registered for chain(s) {missing}")
        for selector in selectors:
            del entries[selector]

    # single entry helpers

    def add_lane(self, selector: int, address: str, sender: str) -> None:
        self.add(LANE, [selector], [address], sender=sender)

    def remove_lane(self, selector: int, sender: str) -> None:
        self.remove(LANE, [selector], sender=sender)

    def get_lane(self, selector: int) -> str:
        return self.resolve(LANE, selector)

    def add_pool(self, selector: int, address: str, sender: str) -> None:
        self.add(POOL, [selector], [address], sender=sender)

    def remove_pool(self, selector: int, sender: str) -> None:
        self.remove(POOL, [selector], sender=sender)

    def get_pool(self, selector: int) -> str:
        return self.resolve(POOL, selector)
