"""
Theurgy Store - Write a value, and look up receipts.

``store`` submits ``store(VALUE)`` from your EOA and, unless told not
to, polls for the receipt. ``receipt`` looks a transaction up once.
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..pneuma.abi import STORAGE_ABI
from ..pneuma.contract import bind
from ..pneuma.errors import ChainError
from ..pneuma.receipt import fetch_receipt, wait_for_receipt
from ..workflow import write_value
from ._common import chain_options, connect, fail, load_settings


@click.command()
@click.argument("value", type=click.IntRange(0, 2**256 - 1))
@chain_options
@click.option("--no-wait", is_flag=True, help="Return right after submission")
@click.pass_context
def store(
    ctx: click.Context,
    value: int,
    rpc_url: Optional[str],
    contract_address: Optional[str],
    no_wait: bool,
) -> None:
    """Store VALUE in the contract. Client pays gas."""
    settings = load_settings(rpc_url, contract_address)

    with connect(ctx, settings) as client:
        try:
            binding = bind(client, settings.contract_address, STORAGE_ABI, settings.private_key)
        except ChainError as exc:
            fail("bind", exc)

        click.echo(f"  Sender: {binding.address}")
        click.echo(f"  Target: {binding.contract.address}")
        click.echo(f"  Value:  {value}")
        click.echo("")

        try:
            tx_hash = write_value(binding.contract, binding.address, binding.signer, value)
        except ChainError as exc:
            fail("store", exc)
        click.echo(f"store ok, txHash: {tx_hash}")

        if no_wait:
            return

        try:
            receipt = wait_for_receipt(
                client,
                tx_hash,
                poll_interval=settings.poll_interval,
                max_attempts=settings.max_attempts,
                timeout=settings.confirm_timeout,
            )
        except ChainError as exc:
            fail("receipt", exc)

    if receipt.succeeded:
        click.secho("SUCCESS: Transaction confirmed!", fg="green")
        click.echo(f"  Block: {receipt.block_number}")
    else:
        click.secho("FAILED: Transaction reverted", fg="red")
        sys.exit(1)


@click.command()
@click.argument("tx_hash")
@chain_options
@click.pass_context
def receipt(
    ctx: click.Context,
    tx_hash: str,
    rpc_url: Optional[str],
    contract_address: Optional[str],
) -> None:
    """Look up the receipt of TX_HASH once."""
    settings = load_settings(rpc_url, contract_address, require_key=False)

    with connect(ctx, settings) as client:
        try:
            found = fetch_receipt(client, tx_hash)
        except ChainError as exc:
            fail("receipt", exc)

    click.echo(f"receipt status: {found.status}")
    click.echo(f"  Block:    {found.block_number}")
    click.echo(f"  Gas used: {found.gas_used}")
