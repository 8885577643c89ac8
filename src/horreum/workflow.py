"""
Store/retrieve workflow against the storage contract.

    dial -> bind -> store(value) -> wait for receipt -> retrieve (raw)
         -> retrieve (bound)

Each step hands its outputs to the next; the first failure aborts the
run. The connection is released on every exit path.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import click
import httpx

from .config import Settings
from .pneuma.abi import STORAGE_ABI, ContractAbi, parse_abi
from .pneuma.contract import BoundContract, TransactOpts, bind, call_message
from .pneuma.errors import ChainError, DecodeError
from .pneuma.receipt import Receipt, fetch_receipt, wait_for_receipt
from .pneuma.rpc import ChainClient, dial
from .sigil.eth import Signer

DEFAULT_STORE_VALUE = 666
RAW_CALL_TIMEOUT = 5.0


class WorkflowAborted(ChainError):
    """A workflow step failed; ``cause`` is the original error."""

    def __init__(self, step: str, cause: ChainError) -> None:
        super().__init__(f"{step} failed: {cause}", rpc_error=cause.rpc_error)
        self.step = step
        self.cause = cause


def _uint_to_str(values: tuple, function_name: str) -> str:
    if not values or not isinstance(values[0], int):
        raise DecodeError(f"{function_name} did not return a uint256")
    return str(values[0])


def read_raw(
    client: ChainClient,
    contract_address: str,
    abi: Optional[ContractAbi] = None,
    timeout: float = RAW_CALL_TIMEOUT,
) -> str:
    """
    Read ``retrieve()`` with a hand-built call message.

    No bound handle is involved: the call message is assembled here and
    sent with a hard per-request timeout.

    Returns:
        Stored value as a decimal string

    Raises:
        CallError: Node rejected the call
        DecodeError: Empty or malformed return data
        CallTimeoutError: No answer within ``timeout`` seconds
    """
    abi = abi or parse_abi(STORAGE_ABI)
    func = abi.function("retrieve")
    msg = {"to": contract_address, "data": "0x" + func.encode_call().hex()}
    result = call_message(client, msg, "latest", timeout, func.name)
    return _uint_to_str(func.decode_output(result or "0x"), func.name)


def read_bound(contract: BoundContract) -> str:
    """Read ``retrieve()`` through the bound handle with default options."""
    return _uint_to_str(contract.call("retrieve"), "retrieve")


def write_value(
    contract: BoundContract,
    address: str,
    signer: Signer,
    value: int = DEFAULT_STORE_VALUE,
) -> str:
    """Submit ``store(value)``; returns the transaction hash."""
    return contract.transact(TransactOpts(from_address=address, signer=signer), "store", value)


@dataclass(frozen=True)
class WorkflowResult:
    address: str
    tx_hash: str
    receipt: Receipt
    raw_value: str
    bound_value: str


def run_workflow(
    settings: Settings,
    value: int = DEFAULT_STORE_VALUE,
    echo: Callable[[str], Any] = click.echo,
    fixed_delay: Optional[float] = None,
    transport: Optional[httpx.BaseTransport] = None,
    on_request: Optional[Callable[[str], None]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> WorkflowResult:
    """
    Run the full store/retrieve sequence and report each step.

    Args:
        settings: Endpoint, contract and key
        value: Value passed to ``store``
        echo: Status line sink
        fixed_delay: When set, sleep this long and look the receipt up
            exactly once instead of polling
        transport, on_request, sleep: Injectable for tests and --verbose

    Raises:
        WorkflowAborted: First failing step; nothing after it runs
    """
    step = "dial"
    try:
        client = dial(settings.rpc_url, transport=transport, on_request=on_request)
    except ChainError as exc:
        raise WorkflowAborted(step, exc) from exc

    try:
        echo("dial success")

        step = "bind"
        binding = bind(client, settings.contract_address, STORAGE_ABI, settings.private_key)
        echo(f"bind success, account: {binding.address}")

        step = "store"
        tx_hash = write_value(binding.contract, binding.address, binding.signer, value)
        echo(f"store ok, txHash: {tx_hash}")

        step = "receipt"
        sleep = sleep or time.sleep
        if fixed_delay is not None:
            sleep(fixed_delay)
            receipt = fetch_receipt(client, tx_hash)
        else:
            receipt = wait_for_receipt(
                client,
                tx_hash,
                poll_interval=settings.poll_interval,
                max_attempts=settings.max_attempts,
                timeout=settings.confirm_timeout,
                sleep=sleep,
            )
        echo(f"receipt status: {receipt.status}")

        step = "retrieve (raw)"
        raw_value = read_raw(
            client, settings.contract_address, binding.contract.abi, timeout=settings.call_timeout
        )
        echo(f"1st way retrieve: {raw_value}")

        step = "retrieve (bound)"
        bound_value = read_bound(binding.contract)
        echo(f"2nd way retrieve: {bound_value}")
    except ChainError as exc:
        raise WorkflowAborted(step, exc) from exc
    finally:
        client.close()

    return WorkflowResult(
        address=binding.address,
        tx_hash=tx_hash,
        receipt=receipt,
        raw_value=raw_value,
        bound_value=bound_value,
    )
