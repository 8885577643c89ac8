"""
Runtime settings.

Endpoint, contract address and signing key are supplied through the
environment (optionally via ~/.horreum/.env); nothing is compiled in.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from eth_utils import is_hex_address, to_checksum_address

from .sigil.eth import HORREUM_ENV

ENV_RPC_URL = "HORREUM_RPC_URL"
ENV_CONTRACT = "HORREUM_CONTRACT"
ENV_PRIVATE_KEY = "PRIVATE_KEY"

DEFAULT_CALL_TIMEOUT = 5.0
DEFAULT_CONFIRM_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_ATTEMPTS = 10


class ConfigError(ValueError):
    pass


def normalize_address(address: str) -> str:
    """
    Checksum a contract address given as 40 hex chars, 0x optional.

    Raises:
        ConfigError: Not a 20-byte hex address
    """
    text = (address or "").strip()
    if not text.startswith(("0x", "0X")):
        text = "0x" + text
    if not is_hex_address(text):
        raise ConfigError(f"Invalid contract address: {address!r}")
    return to_checksum_address(text)


def _env_number(
    name: str,
    default: float,
    cast: type = float,
    minimum: float = 0.0,
    allow_minimum: bool = False,
):
    """
    Read a numeric tuning variable.

    Values must be finite and above ``minimum`` (or equal to it when
    ``allow_minimum``), so a bad setting fails before anything is sent.
    """
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return cast(default)
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None

    in_range = value >= minimum if allow_minimum else value > minimum
    if not math.isfinite(value) or not in_range:
        bound = f">= {minimum:g}" if allow_minimum else f"> {minimum:g}"
        raise ConfigError(f"{name} must be {bound}, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    contract_address: str
    private_key: str = field(repr=False)
    call_timeout: float = DEFAULT_CALL_TIMEOUT
    confirm_timeout: float = DEFAULT_CONFIRM_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    @classmethod
    def from_env(
        cls,
        env_path: Optional[Path] = None,
        rpc_url: Optional[str] = None,
        contract_address: Optional[str] = None,
        require_key: bool = True,
    ) -> "Settings":
        """
        Build settings from the environment.

        Explicit arguments (CLI options) win over environment values.

        Raises:
            ConfigError: A required variable is missing or malformed
        """
        env_path = env_path or HORREUM_ENV
        if env_path.exists():
            load_dotenv(env_path, override=False)

        rpc_url = rpc_url or os.environ.get(ENV_RPC_URL)
        contract_address = contract_address or os.environ.get(ENV_CONTRACT)
        private_key = os.environ.get(ENV_PRIVATE_KEY, "")

        if not rpc_url:
            raise ConfigError(f"{ENV_RPC_URL} is not set")
        if not contract_address:
            raise ConfigError(f"{ENV_CONTRACT} is not set")
        if require_key and not private_key:
            raise ConfigError(f"{ENV_PRIVATE_KEY} is not set")

        return cls(
            rpc_url=rpc_url,
            contract_address=normalize_address(contract_address),
            private_key=private_key.strip(),
            call_timeout=_env_number("HORREUM_CALL_TIMEOUT", DEFAULT_CALL_TIMEOUT),
            confirm_timeout=_env_number("HORREUM_CONFIRM_TIMEOUT", DEFAULT_CONFIRM_TIMEOUT),
            poll_interval=_env_number("HORREUM_POLL_INTERVAL", DEFAULT_POLL_INTERVAL, allow_minimum=True),
            max_attempts=_env_number(
                "HORREUM_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS, int, minimum=1, allow_minimum=True
            ),
        )
