"""
Horreum CLI

Command-line interface for the Horreum storage-contract client.

The endpoint, contract and signing key come from the environment
(HORREUM_RPC_URL, HORREUM_CONTRACT, PRIVATE_KEY) or ~/.horreum/.env.

Commands:
  init      - Create a key and record endpoint settings
  run       - Store a value and read it back through both call paths
  retrieve  - Read the stored value
  store     - Store a value
  receipt   - Look up a transaction receipt
  whoami    - Show the address derived from the configured key
  info      - Show endpoint, contract and chain ID
"""

from __future__ import annotations

import click

from .pneuma.errors import ChainError
from .sigil.eth import derive_address, load_private_key


# ============ Constants ============

VERSION = "1.0.0"


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="horreum")
@click.option("--verbose", "-v", is_flag=True, help="Echo each JSON-RPC method sent")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Horreum: read and write a storage contract over JSON-RPC."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .theurgy.init import init
from .theurgy.run import run
from .theurgy.retrieve import retrieve
from .theurgy.store import receipt, store
from .theurgy._common import chain_options, connect, fail, load_settings

cli.add_command(init)
cli.add_command(run)
cli.add_command(retrieve)
cli.add_command(store)
cli.add_command(receipt)


# ============ Identity ============


@cli.command()
def whoami() -> None:
    """Show the address of the configured key."""
    try:
        address = derive_address(load_private_key())
    except ChainError as exc:
        fail("whoami", exc)
    click.echo(f"Address: {address}")


# ============ Info ============


@cli.command()
@chain_options
@click.pass_context
def info(ctx: click.Context, rpc_url: str, contract_address: str) -> None:
    """Show endpoint, contract and chain information."""
    settings = load_settings(rpc_url, contract_address, require_key=False)

    click.secho("  Status ─────────────────────────────────", fg="cyan")
    click.echo()
    click.echo(click.style("  Endpoint:    ", dim=True) + settings.rpc_url)
    click.echo(click.style("  Contract:    ", dim=True) + settings.contract_address)

    address = None
    if settings.private_key:
        try:
            address = derive_address(settings.private_key)
        except ChainError:
            address = None

    with connect(ctx, settings) as client:
        try:
            chain_id = client.chain_id()
            block = client.block_number()
            balance = client.get_balance(address) if address else None
        except ChainError as exc:
            fail("chain query", exc)
    click.echo(click.style("  Chain ID:    ", dim=True) + str(chain_id))
    click.echo(click.style("  Block:       ", dim=True) + str(block))

    if address:
        click.echo(click.style("  Address:     ", dim=True) + address)
        click.echo(click.style("  Balance:     ", dim=True) + f"{balance / 10**18:.6f} ETH")
    elif settings.private_key:
        click.echo(
            click.style("  Address:     ", dim=True)
            + click.style("invalid PRIVATE_KEY", fg="yellow")
        )
    click.echo()


# ============ Entry Points ============


def main() -> None:
    """Horreum CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
