from typing import Any, Callable

from bridge_ops.constants import (
    EVENT_LOOKBACK_BLOCKS,
    EVENT_POLL_INTERVAL,
    EVENT_TIMEOUT,
    FINALITY_POLL_INTERVAL,
    FINALITY_TIMEOUT,
)
from bridge_ops.errors import FinalityTimeout, NotYetObserved
from bridge_ops.ledger import EventLog, Ledger


def wait_for_finality(
    ledger: Ledger,
    receipt: Any,
    confirmations: int,
    timeout: float = FINALITY_TIMEOUT,
    poll_interval: float = FINALITY_POLL_INTERVAL,
) -> int:
    """
    Blocks until the receipt's block is ``confirmations`` deep and returns the depth.
    Raises FinalityTimeout when the bound elapses; the transaction may still land.
    """
    start = ledger.clock()
    while True:
        depth = ledger.height() - receipt.block_number + 1
        if depth >= confirmations:
            return depth

        elapsed = ledger.clock() - start
        if elapsed >= timeout:
            raise FinalityTimeout(
                txn_hash=str(receipt.txn_hash), confirmations=confirmations, timeout=timeout
            )
        ledger.sleep(min(poll_interval, timeout - elapsed))


def wait_for_event(
    ledger: Ledger,
    contract: Any,
    event_name: str,
    match: Callable[[EventLog], bool],
    timeout: float = EVENT_TIMEOUT,
    poll_interval: float = EVENT_POLL_INTERVAL,
    lookback: int = EVENT_LOOKBACK_BLOCKS,
) -> EventLog:
    """
    Polls the last ``lookback`` blocks for a matching event.
    Raises NotYetObserved when the bound elapses.
    """
    start = ledger.clock()
    while True:
        start_block = max(0, ledger.height() - lookback)
        for log in ledger.logs(contract, event_name, start_block):
            if match(log):
                return log

        elapsed = ledger.clock() - start
        if elapsed >= timeout:
            raise NotYetObserved(event_name=event_name, timeout=timeout)
        print(f"({ledger.name}) Waiting for {event_name}... ({int(elapsed)}s elapsed)")
        ledger.sleep(min(poll_interval, timeout - elapsed))
