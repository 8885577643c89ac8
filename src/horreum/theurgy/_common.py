"""Shared option handling for Horreum commands."""

from __future__ import annotations

import sys
from typing import Any, Callable, NoReturn, Optional

import click

from ..config import ENV_CONTRACT, ENV_RPC_URL, ConfigError, Settings
from ..pneuma.errors import ChainError
from ..pneuma.rpc import ChainClient, dial


def chain_options(func: Callable) -> Callable:
    """Add --rpc-url / --contract with environment fallbacks."""
    func = click.option(
        "--contract",
        "contract_address",
        envvar=ENV_CONTRACT,
        default=None,
        help="Storage contract address (0x optional)",
    )(func)
    func = click.option(
        "--rpc-url",
        envvar=ENV_RPC_URL,
        default=None,
        help="JSON-RPC endpoint URL",
    )(func)
    return func


def fail(step: str, exc: BaseException) -> NoReturn:
    click.secho(f"ERROR: {step} failed: {exc}", fg="red")
    sys.exit(1)


def load_settings(
    rpc_url: Optional[str],
    contract_address: Optional[str],
    require_key: bool = True,
) -> Settings:
    try:
        return Settings.from_env(
            rpc_url=rpc_url,
            contract_address=contract_address,
            require_key=require_key,
        )
    except ConfigError as exc:
        fail("config", exc)


def context_hooks(ctx: click.Context) -> dict[str, Any]:
    """
    Transport and request hook for this invocation.

    ``--verbose`` echoes each JSON-RPC method name (never its params).
    Tests pass ``obj={"transport": ...}`` to route requests to a fake node.
    """
    obj = ctx.find_root().obj or {}
    on_request = None
    if obj.get("verbose"):
        on_request = lambda method: click.secho(f"  -> {method}", dim=True)  # noqa: E731
    return {"transport": obj.get("transport"), "on_request": on_request}


def connect(ctx: click.Context, settings: Settings) -> ChainClient:
    try:
        return dial(settings.rpc_url, **context_hooks(ctx))
    except ChainError as exc:
        fail("dial", exc)
