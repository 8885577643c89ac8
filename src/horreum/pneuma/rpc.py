"""
JSON-RPC client for Ethereum-compatible nodes.

Lightweight alternative to web3.py: uses httpx for HTTP + eth-abi for
encoding. One ``ChainClient`` holds one pooled HTTP connection for the
lifetime of a run and must be closed (or used as a context manager).
"""

from __future__ import annotations

import itertools
import json
import time
from typing import Any, Callable, Optional
from urllib.parse import urlparse

import httpx

from .errors import CallTimeoutError, ChainConnectionError, ChainQueryError

DEFAULT_TIMEOUT = 30.0


def _from_hex(value: Optional[str]) -> int:
    if value is None:
        raise ChainQueryError("RPC returned no result")
    return int(value, 16)


def validate_rpc_url(rpc_url: str) -> str:
    """Reject URLs httpx cannot dial (no scheme, no host, non-HTTP)."""
    parsed = urlparse(rpc_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ChainConnectionError(f"Malformed RPC URL: {rpc_url!r}")
    return rpc_url


class ChainClient:
    """
    Synchronous JSON-RPC client.

    Args:
        rpc_url: HTTP(S) endpoint of the node
        timeout: Default per-request timeout in seconds
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        on_request: Optional callback invoked with each RPC method name
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
        on_request: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.rpc_url = validate_rpc_url(rpc_url)
        self.timeout = timeout
        self._on_request = on_request
        self._ids = itertools.count(1)
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def __enter__(self) -> "ChainClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._http.is_closed

    def close(self) -> None:
        self._http.close()

    def request(self, method: str, params: list, timeout: Optional[float] = None) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "eth_call")
            params: RPC parameters
            timeout: Total time budget for this call in seconds. Also
                used as the httpx per-phase timeout. The response is
                streamed and the call is aborted once the budget is spent,
                even while the node is still sending.

        Returns:
            Result field from the RPC response

        Raises:
            CallTimeoutError: If the request does not complete in time
            ChainConnectionError: If the node cannot be reached
            ChainQueryError: If the node answers with a JSON-RPC error
        """
        if self._on_request is not None:
            self._on_request(method)

        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        kwargs: dict[str, Any] = {"json": payload}
        deadline = None
        if timeout is not None:
            kwargs["timeout"] = timeout
            deadline = time.monotonic() + timeout

        try:
            with self._http.stream("POST", self.rpc_url, **kwargs) as response:
                response.raise_for_status()
                body = bytearray()
                for chunk in response.iter_bytes():
                    body += chunk
                    if deadline is not None and time.monotonic() > deadline:
                        # Leaving the block closes the stream and drops the connection.
                        raise CallTimeoutError(f"{method} exceeded its {timeout}s budget")
            data = json.loads(body)
        except httpx.TimeoutException as exc:
            raise CallTimeoutError(f"{method} timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise ChainConnectionError(
                f"{method}: HTTP {exc.response.status_code} from {self.rpc_url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ChainConnectionError(f"{method}: cannot reach {self.rpc_url}: {exc}") from exc
        except ValueError as exc:
            raise ChainQueryError(f"{method}: invalid JSON-RPC response") from exc

        if not isinstance(data, dict):
            raise ChainQueryError(f"{method}: invalid JSON-RPC response")
        if data.get("error") is not None:
            error = data["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise ChainQueryError(
                f"RPC error: {message}",
                rpc_error=error if isinstance(error, dict) else {"message": str(error)},
            )

        return data.get("result")

    # ---------------------------------------------------------------
    # Typed helpers
    # ---------------------------------------------------------------

    def chain_id(self) -> int:
        return _from_hex(self.request("eth_chainId", []))

    def block_number(self) -> int:
        return _from_hex(self.request("eth_blockNumber", []))

    def get_balance(self, address: str, block: str = "latest") -> int:
        """Balance in wei."""
        return _from_hex(self.request("eth_getBalance", [address, block]))

    def get_nonce(self, address: str, block: str = "pending") -> int:
        return _from_hex(self.request("eth_getTransactionCount", [address, block]))

    def gas_price(self) -> int:
        return _from_hex(self.request("eth_gasPrice", []))

    def estimate_gas(self, tx: dict[str, Any]) -> int:
        return _from_hex(self.request("eth_estimateGas", [tx]))

    def call(
        self,
        msg: dict[str, Any],
        block: str = "latest",
        timeout: Optional[float] = None,
    ) -> str:
        """
        Execute a read-only message call (eth_call).

        Args:
            msg: Call message with at least ``to`` and ``data`` (0x-hex)
            block: Block tag to execute against
            timeout: Per-call timeout in seconds

        Returns:
            0x-prefixed hex return data (may be "0x")
        """
        return self.request("eth_call", [msg, block], timeout=timeout)

    def send_raw_transaction(self, raw_tx: str) -> str:
        """Send a signed raw transaction; returns its 0x-prefixed hash."""
        return self.request("eth_sendRawTransaction", [raw_tx])

    def get_transaction_receipt(self, tx_hash: str) -> Optional[dict[str, Any]]:
        """Receipt dict, or None while the transaction is not mined."""
        return self.request("eth_getTransactionReceipt", [tx_hash])


def dial(
    rpc_url: str,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
    on_request: Optional[Callable[[str], None]] = None,
) -> ChainClient:
    """
    Connect to a node and check that it answers.

    Raises:
        ChainConnectionError: Malformed URL, unreachable node or a node
            that does not speak JSON-RPC
    """
    client = ChainClient(rpc_url, timeout=timeout, transport=transport, on_request=on_request)
    try:
        client.block_number()
    except ChainConnectionError:
        client.close()
        raise
    except (ChainQueryError, CallTimeoutError) as exc:
        client.close()
        raise ChainConnectionError(f"Node at {rpc_url} did not answer: {exc}") from exc
    return client
