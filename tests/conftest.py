"""
Shared fixtures: an in-memory JSON-RPC node behind httpx.MockTransport.

The fake node understands just enough of the storage contract to run
the full store/retrieve sequence offline: it recovers the sender of raw
transactions, checks chain ID and nonce, applies ``store(uint256)`` when
the transaction is mined and answers ``retrieve()`` from its state.
"""

from __future__ import annotations

import json
import os
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Optional
from unittest.mock import patch

import httpx
import pytest
import rlp
from eth_abi import decode, encode
from eth_account import Account
from eth_hash.auto import keccak

from horreum.config import Settings
from horreum.pneuma.abi import function_selector
from horreum.pneuma.rpc import ChainClient

RPC_URL = "http://fake-node.test:8545"
CHAIN_ID = 1337
CONTRACT = "0xd9145CCE52D386f254917e481eB44e9943F39138"

# eth-account documentation vector.
PRIVATE_KEY = "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"

RETRIEVE = function_selector("retrieve()")
STORE = function_selector("store(uint256)")


class FakeNode:
    """Minimal Ethereum node holding one storage contract."""

    def __init__(self, chain_id: int = CHAIN_ID, contract: str = CONTRACT, mine_after: int = 0) -> None:
        self.chain_id = chain_id
        self.contract = contract.lower()
        self.mine_after = mine_after
        self.stored = 0
        self.block = 100
        self.nonces: dict[str, int] = {}
        self.pending: dict[str, list[Any]] = {}
        self.receipts: dict[str, dict[str, Any]] = {}
        self.calls: list[str] = []
        self.timeouts: dict[str, Any] = {}
        self.errors: dict[str, dict[str, Any]] = {}
        self.hang: set[str] = set()
        self.revert = False

    # -- transport -------------------------------------------------------

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        self.calls.append(method)
        self.timeouts[method] = request.extensions.get("timeout")

        if method in self.hang:
            raise httpx.ReadTimeout("timed out", request=request)
        if method in self.errors:
            return httpx.Response(
                200, json={"jsonrpc": "2.0", "id": body["id"], "error": self.errors[method]}
            )

        handler = getattr(self, "rpc_" + method, None)
        if handler is None:
            error = {"code": -32601, "message": f"method {method} not found"}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": error})
        try:
            result = handler(*body["params"])
        except ValueError as exc:
            error = {"code": -32000, "message": str(exc)}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": error})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    # -- JSON-RPC methods ------------------------------------------------

    def rpc_eth_chainId(self) -> str:
        return hex(self.chain_id)

    def rpc_eth_blockNumber(self) -> str:
        return hex(self.block)

    def rpc_eth_getBalance(self, address: str, block: str) -> str:
        return hex(10**18)

    def rpc_eth_gasPrice(self) -> str:
        return hex(1_000_000_000)

    def rpc_eth_getTransactionCount(self, address: str, block: str) -> str:
        return hex(self.nonces.get(address.lower(), 0))

    def rpc_eth_estimateGas(self, tx: dict[str, Any]) -> str:
        return hex(43_724)

    def rpc_eth_call(self, msg: dict[str, Any], block: str) -> str:
        if msg.get("to", "").lower() != self.contract:
            return "0x"
        data = bytes.fromhex(msg["data"][2:])
        if data[:4] == RETRIEVE:
            return "0x" + encode(["uint256"], [self.stored]).hex()
        raise ValueError("execution reverted")

    def rpc_eth_sendRawTransaction(self, raw_hex: str) -> str:
        raw = bytes.fromhex(raw_hex[2:])
        nonce, _gas_price, _gas, to, _value, data, v, _r, _s = rlp.decode(raw)
        tx_chain_id = (int.from_bytes(v, "big") - 35) // 2
        if tx_chain_id != self.chain_id:
            raise ValueError("invalid chain id for signer")

        sender = Account.recover_transaction(raw_hex).lower()
        expected = self.nonces.get(sender, 0)
        if int.from_bytes(nonce, "big") != expected:
            raise ValueError(f"nonce too low: next nonce {expected}")
        self.nonces[sender] = expected + 1

        tx_hash = "0x" + keccak(raw).hex()
        self.pending[tx_hash] = [self.mine_after, "0x" + to.hex(), data]
        if self.mine_after == 0:
            self._mine(tx_hash)
        return tx_hash

    def rpc_eth_getTransactionReceipt(self, tx_hash: str) -> Optional[dict[str, Any]]:
        if tx_hash in self.pending:
            self.pending[tx_hash][0] -= 1
            if self.pending[tx_hash][0] <= 0:
                self._mine(tx_hash)
        return self.receipts.get(tx_hash)

    # -- helpers ---------------------------------------------------------

    def _mine(self, tx_hash: str) -> None:
        _, to, data = self.pending.pop(tx_hash)
        status = 0
        if to.lower() == self.contract and data[:4] == STORE and not self.revert:
            (self.stored,) = decode(["uint256"], data[4:])
            status = 1
        self.block += 1
        self.receipts[tx_hash] = {
            "transactionHash": tx_hash,
            "status": hex(status),
            "blockNumber": hex(self.block),
            "gasUsed": hex(43_724),
        }


@pytest.fixture()
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture()
def client(node: FakeNode):
    with ChainClient(RPC_URL, transport=node.transport()) as chain_client:
        yield chain_client


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        rpc_url=RPC_URL,
        contract_address=CONTRACT,
        private_key=PRIVATE_KEY,
        poll_interval=0.0,
        max_attempts=5,
    )


@pytest.fixture()
def horreum_env(tmp_path: Path):
    """Isolate the process environment and the ~/.horreum/.env location."""
    env_path = tmp_path / ".horreum" / ".env"
    clean = {k: v for k, v in os.environ.items() if not k.startswith("HORREUM_") and k != "PRIVATE_KEY"}
    with patch.dict(os.environ, clean, clear=True), \
            patch("horreum.config.HORREUM_ENV", env_path), \
            patch("horreum.sigil.eth.HORREUM_ENV", env_path):
        yield env_path


class _TrickleHandler(BaseHTTPRequestHandler):
    """Answers every JSON-RPC request with ``retrieve() == 666``, a few bytes at a time."""

    def do_POST(self) -> None:
        length = int(self.headers.get("Content-Length", 0))
        request = json.loads(self.rfile.read(length))
        body = json.dumps(
            {"jsonrpc": "2.0", "id": request["id"], "result": "0x" + encode(["uint256"], [666]).hex()}
        ).encode()

        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        try:
            for start in range(0, len(body), self.server.chunk_size):
                self.wfile.write(body[start:start + self.server.chunk_size])
                self.wfile.flush()
                time.sleep(self.server.chunk_delay)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format: str, *args: Any) -> None:
        pass


@pytest.fixture()
def trickle_server():
    """Local HTTP node that keeps sending its answer slowly; tune ``chunk_delay`` per test."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _TrickleHandler)
    server.daemon_threads = True
    server.chunk_size = 8
    server.chunk_delay = 0.5
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()


def server_url(server: ThreadingHTTPServer) -> str:
    host, port = server.server_address[:2]
    return f"http://{host}:{port}"
