"""
Bound contract - address + ABI + client in one handle.

Reads go through ``eth_call``; writes are built, signed locally with
eth-account and sent with ``eth_sendRawTransaction``. Whatever the caller
leaves out of ``TransactOpts`` is filled from the node:

- nonce:     eth_getTransactionCount at "pending"
- gas price: eth_gasPrice (legacy type-0 transaction, EIP-155)
- gas limit: eth_estimateGas with a 20% buffer
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from eth_utils import to_checksum_address

from ..sigil.eth import Signer, new_signer
from .abi import ContractAbi, parse_abi
from .errors import CallError, CallTimeoutError, ChainError, ChainQueryError, TransactionSubmitError
from .rpc import ChainClient

GAS_BUFFER = 1.2


@dataclass(frozen=True)
class CallOpts:
    """Options for read-only calls. ``timeout=None`` uses the client default."""

    block: str = "latest"
    timeout: Optional[float] = None
    from_address: Optional[str] = None


@dataclass(frozen=True)
class TransactOpts:
    from_address: str
    signer: Signer
    nonce: Optional[int] = None
    gas_limit: Optional[int] = None
    gas_price: Optional[int] = None
    value: int = 0


class BoundContract:
    """A deployed contract reachable through one client."""

    def __init__(self, address: str, abi: ContractAbi, client: ChainClient) -> None:
        self.address = to_checksum_address(address)
        self.abi = abi
        self.client = client

    def __repr__(self) -> str:
        return f"BoundContract({self.address})"

    def calldata(self, function_name: str, *args: Any) -> str:
        """0x-hex calldata for ``function_name(*args)``."""
        return "0x" + self.abi.function(function_name).encode_call(*args).hex()

    def call(self, function_name: str, *args: Any, opts: Optional[CallOpts] = None) -> tuple:
        """
        Read from the contract (eth_call).

        Returns:
            Decoded return values as a tuple

        Raises:
            CallError: Unknown function, bad arguments or node error
            DecodeError: Empty or malformed return data
            CallTimeoutError: ``opts.timeout`` elapsed
        """
        opts = opts or CallOpts()
        func = self.abi.function(function_name)
        msg: dict[str, Any] = {"to": self.address, "data": "0x" + func.encode_call(*args).hex()}
        if opts.from_address:
            msg["from"] = opts.from_address

        result = call_message(self.client, msg, opts.block, opts.timeout, function_name)
        return func.decode_output(result or "0x")

    def transact(self, opts: TransactOpts, function_name: str, *args: Any) -> str:
        """
        Build, sign and send a state-changing call.

        Returns:
            Transaction hash (0x-prefixed hex). Submission only, the
            transaction may still fail or never be mined.

        Raises:
            TransactionSubmitError: The node rejected the transaction or
                one of the defaults could not be fetched
        """
        if to_checksum_address(opts.from_address) != opts.signer.address:
            raise TransactionSubmitError(
                f"Sender {opts.from_address} does not match signer {opts.signer.address}"
            )

        data = self.calldata(function_name, *args)
        sender = opts.signer.address

        try:
            nonce = opts.nonce if opts.nonce is not None else self.client.get_nonce(sender)
            gas_price = opts.gas_price if opts.gas_price is not None else self.client.gas_price()
            gas_limit = opts.gas_limit
            if gas_limit is None:
                estimate = self.client.estimate_gas(
                    {"from": sender, "to": self.address, "data": data, "value": hex(opts.value)}
                )
                gas_limit = int(estimate * GAS_BUFFER)
        except ChainError as exc:
            raise TransactionSubmitError(f"Cannot prepare {function_name} transaction: {exc}") from exc

        tx = {
            "to": self.address,
            "data": data,
            "value": opts.value,
            "nonce": nonce,
            "gas": gas_limit,
            "gasPrice": gas_price,
            "chainId": opts.signer.chain_id,
        }
        signed = opts.signer.sign_transaction(tx)

        try:
            tx_hash = self.client.send_raw_transaction(signed.raw_hex)
        except ChainError as exc:
            raise TransactionSubmitError(f"{function_name} rejected: {exc}") from exc

        return tx_hash or signed.hash_hex


def call_message(
    client: ChainClient,
    msg: dict[str, Any],
    block: str,
    timeout: Optional[float],
    function_name: str,
) -> str:
    try:
        return client.call(msg, block=block, timeout=timeout)
    except CallTimeoutError:
        raise
    except ChainQueryError as exc:
        raise CallError(f"{function_name} call failed: {exc}", rpc_error=exc.rpc_error) from exc
    except ChainError as exc:
        raise CallError(f"{function_name} call failed: {exc}") from exc


@dataclass(frozen=True)
class Binding:
    contract: BoundContract
    address: str
    signer: Signer


def bind(client: ChainClient, contract_address: str, abi_text: str, private_key: str) -> Binding:
    """
    Build everything needed to read and write the contract.

    Steps run in order and the first failure aborts the whole build:
    parse ABI, fetch chain ID, decode key, derive address, create signer.
    The ABI is parsed before any network access.

    Raises:
        AbiParseError, ChainQueryError, InvalidKeyError, SignerCreationError
    """
    abi = parse_abi(abi_text)
    contract = BoundContract(contract_address, abi, client)

    try:
        chain_id = client.chain_id()
    except ChainQueryError:
        raise
    except ChainError as exc:
        raise ChainQueryError(f"Cannot fetch chain ID: {exc}") from exc

    signer = new_signer(private_key, chain_id)
    return Binding(contract=contract, address=signer.address, signer=signer)
