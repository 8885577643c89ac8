"""
Theurgy Run - Store a value and read it back.

Runs the whole sequence against the storage contract:
dial, bind, store, wait for the receipt, retrieve twice (raw call
message and bound handle). Any failing step aborts the run.
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..workflow import DEFAULT_STORE_VALUE, WorkflowAborted, run_workflow
from ._common import chain_options, context_hooks, fail, load_settings


@click.command()
@chain_options
@click.option(
    "--value",
    default=DEFAULT_STORE_VALUE,
    show_default=True,
    type=click.IntRange(0, 2**256 - 1),
    help="Value to store",
)
@click.option(
    "--fixed-delay",
    default=None,
    type=click.FloatRange(min=0),
    help="Sleep this many seconds, then look the receipt up once (no polling)",
)
@click.pass_context
def run(
    ctx: click.Context,
    rpc_url: Optional[str],
    contract_address: Optional[str],
    value: int,
    fixed_delay: Optional[float],
) -> None:
    """
    Store VALUE in the contract and read it back.

    Sends a store transaction from your EOA (you pay gas), waits for
    it to be mined, then reads the value through both call paths.
    """
    click.echo("=== Horreum Run ===")
    click.echo("")

    settings = load_settings(rpc_url, contract_address)

    try:
        result = run_workflow(
            settings,
            value=value,
            echo=click.echo,
            fixed_delay=fixed_delay,
            **context_hooks(ctx),
        )
    except WorkflowAborted as exc:
        fail(exc.step, exc.cause)

    click.echo("")
    if not result.receipt.succeeded:
        click.secho("FAILED: Transaction reverted", fg="red")
        click.echo(f"  TX: {result.tx_hash}")
        sys.exit(1)
    if result.raw_value != result.bound_value:
        click.secho(
            f"WARNING: call paths disagree ({result.raw_value} != {result.bound_value})",
            fg="yellow",
        )

    click.secho("=== Run Complete ===", fg="green")
