"""
Transaction receipts and confirmation polling.

A receipt only exists once the transaction is mined. ``wait_for_receipt``
polls with exponential backoff under both an attempt budget and a
wall-clock deadline instead of sleeping once and hoping.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .errors import ConfirmationTimeoutError, ReceiptNotFoundError
from .rpc import ChainClient


def _int_field(receipt: dict[str, Any], key: str) -> Optional[int]:
    value = receipt.get(key)
    if value is None:
        return None
    return int(value, 16) if isinstance(value, str) else int(value)


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    status: int
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_rpc(cls, receipt: dict[str, Any]) -> "Receipt":
        return cls(
            tx_hash=receipt.get("transactionHash", ""),
            status=_int_field(receipt, "status") or 0,
            block_number=_int_field(receipt, "blockNumber"),
            gas_used=_int_field(receipt, "gasUsed"),
            raw=receipt,
        )

    @property
    def succeeded(self) -> bool:
        return self.status == 1


def fetch_receipt(client: ChainClient, tx_hash: str) -> Receipt:
    """
    Look the receipt up once.

    Raises:
        ReceiptNotFoundError: The transaction is not mined (yet)
    """
    receipt = client.get_transaction_receipt(tx_hash)
    if receipt is None:
        raise ReceiptNotFoundError(f"No receipt for {tx_hash}")
    return Receipt.from_rpc(receipt)


def wait_for_receipt(
    client: ChainClient,
    tx_hash: str,
    initial_delay: float = 0.0,
    poll_interval: float = 2.0,
    backoff: float = 2.0,
    max_interval: float = 15.0,
    max_attempts: int = 10,
    timeout: float = 120.0,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Receipt:
    """
    Wait for a transaction receipt.

    Args:
        client: Connected chain client
        tx_hash: Transaction hash
        initial_delay: Seconds to wait before the first lookup
        poll_interval: Wait after the first miss, multiplied by ``backoff``
            after every further miss and capped at ``max_interval``
        max_attempts: Maximum number of lookups
        timeout: Maximum total wait in seconds
        sleep, clock: Injectable for tests

    Returns:
        Receipt of the mined transaction

    Raises:
        ConfirmationTimeoutError: Attempts or time exhausted before the
            receipt appeared
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    deadline = clock() + timeout
    if initial_delay > 0:
        sleep(initial_delay)

    interval = poll_interval
    for attempt in range(1, max_attempts + 1):
        try:
            return fetch_receipt(client, tx_hash)
        except ReceiptNotFoundError:
            pass

        remaining = deadline - clock()
        if attempt == max_attempts or remaining <= 0:
            break
        sleep(min(interval, remaining))
        interval = min(interval * backoff, max_interval)

    raise ConfirmationTimeoutError(
        f"Transaction {tx_hash} not confirmed after {attempt} attempt(s)"
    )
