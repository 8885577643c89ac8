"""Unit tests for key decoding, address derivation and the signer."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from eth_account import Account

from horreum.pneuma.errors import InvalidKeyError, SignerCreationError, TransactionSubmitError
from horreum.sigil.eth import (
    SECP256K1_N,
    decode_private_key,
    derive_address,
    generate_eoa,
    load_private_key,
    new_signer,
    save_env_values,
)

from .conftest import ADDRESS, CHAIN_ID, CONTRACT, PRIVATE_KEY


class TestDecodePrivateKey:
    def test_plain_hex(self) -> None:
        assert decode_private_key(PRIVATE_KEY) == bytes.fromhex(PRIVATE_KEY)

    def test_prefixed_hex(self) -> None:
        assert decode_private_key("0x" + PRIVATE_KEY) == bytes.fromhex(PRIVATE_KEY)

    @pytest.mark.parametrize(
        "key",
        [
            "",
            "abc",
            PRIVATE_KEY[:-2],
            PRIVATE_KEY + "00",
            "zz" + PRIVATE_KEY[2:],
        ],
    )
    def test_rejects_malformed(self, key: str) -> None:
        with pytest.raises(InvalidKeyError):
            decode_private_key(key)

    def test_rejects_zero(self) -> None:
        with pytest.raises(InvalidKeyError, match="secp256k1"):
            decode_private_key("0" * 64)

    def test_rejects_curve_order(self) -> None:
        with pytest.raises(InvalidKeyError):
            decode_private_key(f"{SECP256K1_N:064x}")

    def test_accepts_largest_scalar(self) -> None:
        assert decode_private_key(f"{SECP256K1_N - 1:064x}")


class TestDeriveAddress:
    """Address derivation matches known reference vectors."""

    def test_reference_vector(self) -> None:
        assert derive_address(PRIVATE_KEY) == ADDRESS

    def test_key_one(self) -> None:
        assert derive_address("0" * 63 + "1") == "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"

    def test_deterministic(self) -> None:
        assert derive_address(PRIVATE_KEY) == derive_address("0x" + PRIVATE_KEY)

    def test_generated_pair(self) -> None:
        private_key, address = generate_eoa()
        assert derive_address(private_key) == address


class TestLoadPrivateKey:
    def test_from_environment(self, horreum_env: Path) -> None:
        with patch.dict(os.environ, {"PRIVATE_KEY": PRIVATE_KEY}):
            assert load_private_key() == PRIVATE_KEY

    def test_from_env_file(self, horreum_env: Path) -> None:
        horreum_env.parent.mkdir(parents=True)
        horreum_env.write_text(f"PRIVATE_KEY={PRIVATE_KEY}\n", encoding="utf-8")
        assert load_private_key() == PRIVATE_KEY

    def test_missing(self, horreum_env: Path) -> None:
        with pytest.raises(InvalidKeyError, match="PRIVATE_KEY not found"):
            load_private_key()


class TestSaveEnvValues:
    def test_round_trip(self, horreum_env: Path) -> None:
        save_env_values({"PRIVATE_KEY": PRIVATE_KEY})
        assert load_private_key() == PRIVATE_KEY

    def test_keeps_other_entries(self, horreum_env: Path) -> None:
        horreum_env.parent.mkdir(parents=True)
        horreum_env.write_text("HORREUM_RPC_URL=http://a.test\nPRIVATE_KEY=old\n", encoding="utf-8")
        save_env_values({"PRIVATE_KEY": PRIVATE_KEY})
        content = horreum_env.read_text(encoding="utf-8")
        assert "HORREUM_RPC_URL=http://a.test" in content
        assert f"PRIVATE_KEY={PRIVATE_KEY}" in content
        assert "PRIVATE_KEY=old" not in content

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_owner_only(self, horreum_env: Path) -> None:
        path = save_env_values({"PRIVATE_KEY": PRIVATE_KEY})
        assert path.stat().st_mode & 0o777 == 0o600


class TestSigner:
    def test_bound_to_chain(self) -> None:
        signer = new_signer(PRIVATE_KEY, CHAIN_ID)
        assert signer.address == ADDRESS
        assert signer.chain_id == CHAIN_ID

    def test_repr_hides_key(self) -> None:
        signer = new_signer(PRIVATE_KEY, CHAIN_ID)
        assert PRIVATE_KEY not in repr(signer)

    def test_invalid_key(self) -> None:
        with pytest.raises(InvalidKeyError):
            new_signer("00" * 32, CHAIN_ID)

    @pytest.mark.parametrize("chain_id", [0, -1, None])
    def test_invalid_chain_id(self, chain_id) -> None:
        with pytest.raises(SignerCreationError):
            new_signer(PRIVATE_KEY, chain_id)

    def test_signature_recovers_sender(self) -> None:
        signer = new_signer(PRIVATE_KEY, CHAIN_ID)
        tx = {
            "to": CONTRACT,
            "data": "0x",
            "value": 0,
            "nonce": 0,
            "gas": 21_000,
            "gasPrice": 1,
        }
        signed = signer.sign_transaction(tx)
        assert Account.recover_transaction(signed.raw_hex) == ADDRESS
        assert signed.hash_hex.startswith("0x") and len(signed.hash_hex) == 66

    def test_rejects_other_chain(self) -> None:
        signer = new_signer(PRIVATE_KEY, CHAIN_ID)
        tx = {
            "to": CONTRACT,
            "data": "0x",
            "value": 0,
            "nonce": 0,
            "gas": 21_000,
            "gasPrice": 1,
            "chainId": CHAIN_ID + 1,
        }
        with pytest.raises(TransactionSubmitError, match="bound to chain"):
            signer.sign_transaction(tx)
