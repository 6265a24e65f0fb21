import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, NamedTuple

from eth_utils import to_checksum_address

from bridge_ops.constants import EIP1967_ADMIN_SLOT, EIP1967_IMPLEMENTATION_SLOT


class EventLog(NamedTuple):
    event_name: str
    args: Dict[str, Any]
    transaction_hash: str
    block_number: int


class Ledger(ABC):
    """
    A single chain as seen by the tooling: block height, block time and
    recent events. Submitting transactions is the transactor's job.
    """

    name: str = "unknown"

    @abstractmethod
    def height(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def timestamp(self) -> int:
        """Timestamp of the latest block, in unix seconds."""
        raise NotImplementedError

    @abstractmethod
    def logs(self, contract: Any, event_name: str, start_block: int) -> Iterator[EventLog]:
        """Events named ``event_name`` emitted by ``contract`` from ``start_block`` on."""
        raise NotImplementedError

    def implementation_of(self, proxy_address: str) -> str:
        """Implementation address behind an EIP1967 proxy."""
        raise NotImplementedError

    def admin_of(self, proxy_address: str) -> str:
        """Admin address of an EIP1967 proxy."""
        raise NotImplementedError

    def clock(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


class ApeLedger(Ledger):
    """Ledger backed by the connected ape provider."""

    def __init__(self, name: str):
        from ape import chain

        self.name = name
        self._chain = chain

    def height(self) -> int:
        return self._chain.blocks.height

    def timestamp(self) -> int:
        return self._chain.blocks.head.timestamp

    def logs(self, contract: Any, event_name: str, start_block: int) -> Iterator[EventLog]:
        event = getattr(contract, event_name)
        stop_block = self.height() + 1  # exclusive
        for log in event.range(start_block, stop_block):
            yield EventLog(
                event_name=event_name,
                args=dict(log.event_arguments),
                transaction_hash=str(log.transaction_hash),
                block_number=log.block_number,
            )

    def implementation_of(self, proxy_address: str) -> str:
        slot = self._chain.provider.get_storage(proxy_address, EIP1967_IMPLEMENTATION_SLOT)
        return to_checksum_address(slot[-20:])

    def admin_of(self, proxy_address: str) -> str:
        slot = self._chain.provider.get_storage(proxy_address, EIP1967_ADMIN_SLOT)
        return to_checksum_address(slot[-20:])
