"""
Theurgy Retrieve - Read the stored value without sending anything.

No private key is needed.
"""

from __future__ import annotations

from typing import Optional

import click

from ..pneuma.abi import STORAGE_ABI, parse_abi
from ..pneuma.contract import BoundContract
from ..pneuma.errors import ChainError
from ..workflow import read_bound, read_raw
from ._common import chain_options, connect, fail, load_settings


@click.command()
@chain_options
@click.option(
    "--via",
    type=click.Choice(["bound", "raw", "both"]),
    default="bound",
    show_default=True,
    help="Call path: bound contract handle, raw call message, or both",
)
@click.pass_context
def retrieve(
    ctx: click.Context,
    rpc_url: Optional[str],
    contract_address: Optional[str],
    via: str,
) -> None:
    """Read the value held by the storage contract."""
    settings = load_settings(rpc_url, contract_address, require_key=False)
    abi = parse_abi(STORAGE_ABI)

    with connect(ctx, settings) as client:
        if via in ("raw", "both"):
            try:
                value = read_raw(client, settings.contract_address, abi, timeout=settings.call_timeout)
            except ChainError as exc:
                fail("retrieve (raw)", exc)
            click.echo(f"raw retrieve: {value}")

        if via in ("bound", "both"):
            contract = BoundContract(settings.contract_address, abi, client)
            try:
                value = read_bound(contract)
            except ChainError as exc:
                fail("retrieve (bound)", exc)
            click.echo(f"bound retrieve: {value}")
