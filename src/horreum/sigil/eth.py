"""
ECDSA / secp256k1 key management for Horreum.

This module handles the Ethereum-compatible key that signs ``store``
transactions:
- loading the key from ~/.horreum/.env or the environment
- validating it as a secp256k1 scalar
- deriving the account address
- building a transaction signer bound to one chain ID

The key is never echoed back; only the derived address is shown.

Dependencies: eth-account (lightweight, no full web3.py needed)
"""

from __future__ import annotations

import os
import re
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv, set_key
from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..pneuma.errors import InvalidKeyError, SignerCreationError, TransactionSubmitError


# Default config directory
HORREUM_DIR = Path.home() / ".horreum"
HORREUM_ENV = HORREUM_DIR / ".env"

# Order of the secp256k1 group; valid private keys are 1 .. N-1.
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


def generate_eoa() -> tuple[str, str]:
    """
    Generate a new ECDSA/secp256k1 keypair (EOA).

    Returns:
        Tuple of (private_key_hex, address)
        - private_key_hex: 0x-prefixed hex private key (66 chars)
        - address: 0x-prefixed checksummed Ethereum address (42 chars)
    """
    private_key = "0x" + secrets.token_hex(32)
    account = Account.from_key(private_key)
    return private_key, account.address


def save_env_values(values: dict[str, str], env_path: Optional[Path] = None) -> Path:
    """
    Write KEY=VALUE pairs into the .env file, keeping other entries.

    Args:
        values: Entries to set (e.g. PRIVATE_KEY, HORREUM_RPC_URL)
        env_path: Path to .env file (default: ~/.horreum/.env)

    Returns:
        Path to the saved .env file
    """
    env_path = env_path or HORREUM_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.touch(exist_ok=True)

    for key, value in values.items():
        set_key(env_path, key, value, quote_mode="never")

    # Owner-only on Unix; the file holds the signing key
    if os.name != "nt":
        env_path.chmod(0o600)

    return env_path


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Load private key from .env file or environment.

    Args:
        env_path: Path to .env file (default: ~/.horreum/.env)

    Returns:
        Hex private key as stored (with or without 0x prefix)

    Raises:
        InvalidKeyError: If PRIVATE_KEY is not set
    """
    env_path = env_path or HORREUM_ENV

    if env_path.exists():
        load_dotenv(env_path, override=False)

    private_key = os.environ.get("PRIVATE_KEY")
    if not private_key:
        raise InvalidKeyError(
            f"PRIVATE_KEY not found. Set PRIVATE_KEY in the environment or in {env_path}"
        )
    return private_key.strip()


def decode_private_key(private_key: str) -> bytes:
    """
    Decode a hex private key into its 32-byte scalar.

    Accepts 64 hex characters with or without a 0x prefix.

    Raises:
        InvalidKeyError: Not 64 hex characters, zero, or not below the
            secp256k1 group order
    """
    text = private_key.strip() if isinstance(private_key, str) else ""
    if text[:2] in ("0x", "0X"):
        text = text[2:]
    if not _HEX_KEY.match(text):
        raise InvalidKeyError("Private key must be 64 hex characters")

    scalar = int(text, 16)
    if not 0 < scalar < SECP256K1_N:
        raise InvalidKeyError("Private key is not a valid secp256k1 scalar")
    return bytes.fromhex(text)


def get_account(private_key: Optional[str] = None) -> LocalAccount:
    """
    Get an eth-account LocalAccount from a private key.

    Args:
        private_key: Hex private key. If None, loads from .env.

    Returns:
        LocalAccount instance for signing transactions
    """
    if private_key is None:
        private_key = load_private_key()
    return Account.from_key(decode_private_key(private_key))


def derive_address(private_key: Optional[str] = None) -> str:
    """
    Get the Ethereum address for a private key.

    Returns:
        0x-prefixed EIP-55 checksummed address
    """
    return get_account(private_key).address


@dataclass(frozen=True)
class SignedTx:
    raw: bytes
    hash: bytes

    @property
    def raw_hex(self) -> str:
        return "0x" + self.raw.hex()

    @property
    def hash_hex(self) -> str:
        return "0x" + self.hash.hex()


class Signer:
    """Signs transactions for a single chain ID with a local key."""

    def __init__(self, account: LocalAccount, chain_id: int) -> None:
        self._account = account
        self.chain_id = chain_id

    @property
    def address(self) -> str:
        return self._account.address

    def __repr__(self) -> str:
        return f"Signer(address={self.address}, chain_id={self.chain_id})"

    def sign_transaction(self, tx: dict[str, Any]) -> SignedTx:
        """
        Sign a transaction dict (EIP-155, chain ID taken from the signer).

        Raises:
            TransactionSubmitError: The transaction targets another chain
                or cannot be signed
        """
        tx = dict(tx)
        chain_id = tx.setdefault("chainId", self.chain_id)
        if chain_id != self.chain_id:
            raise TransactionSubmitError(
                f"Signer is bound to chain {self.chain_id}, transaction targets {chain_id}"
            )
        try:
            signed = self._account.sign_transaction(tx)
        except (TypeError, ValueError) as exc:
            raise TransactionSubmitError(f"Cannot sign transaction: {exc}") from exc
        return SignedTx(raw=bytes(signed.raw_transaction), hash=bytes(signed.hash))


def new_signer(private_key: str, chain_id: int) -> Signer:
    """
    Build a signer bound to ``chain_id``.

    Raises:
        InvalidKeyError: The key is not a valid secp256k1 scalar
        SignerCreationError: The chain ID is unusable or eth-account
            rejects the key
    """
    key = decode_private_key(private_key)
    if not isinstance(chain_id, int) or chain_id <= 0:
        raise SignerCreationError(f"Invalid chain ID: {chain_id!r}")
    try:
        account = Account.from_key(key)
    except (TypeError, ValueError) as exc:
        raise SignerCreationError(f"Cannot create signer: {exc}") from exc
    return Signer(account, chain_id)
