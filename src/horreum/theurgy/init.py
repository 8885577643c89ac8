"""
Init - Prepare ~/.horreum/.env.

Creates a signing key if none is configured and records the endpoint
and contract address so later commands need no flags. Only the
derived address is shown.
"""

from __future__ import annotations

from typing import Optional

import click

from ..config import ENV_CONTRACT, ENV_PRIVATE_KEY, ENV_RPC_URL, ConfigError, normalize_address
from ..pneuma.errors import ChainError
from ..pneuma.rpc import validate_rpc_url
from ..sigil.eth import derive_address, generate_eoa, load_private_key, save_env_values
from ._common import fail


@click.command()
@click.option("--rpc-url", default=None, help="JSON-RPC endpoint URL to record")
@click.option("--contract", "contract_address", default=None, help="Storage contract address to record")
@click.option("--force-new-key", is_flag=True, help="Replace an existing key with a fresh one")
def init(rpc_url: Optional[str], contract_address: Optional[str], force_new_key: bool) -> None:
    """Create a key and record endpoint settings in ~/.horreum/.env."""
    values: dict[str, str] = {}
    try:
        if rpc_url:
            values[ENV_RPC_URL] = validate_rpc_url(rpc_url)
        if contract_address:
            values[ENV_CONTRACT] = normalize_address(contract_address)
    except (ChainError, ConfigError) as exc:
        fail("config", exc)

    address = None
    if not force_new_key:
        try:
            address = derive_address(load_private_key())
        except ChainError:
            address = None

    created = address is None
    if created:
        private_key, address = generate_eoa()
        values[ENV_PRIVATE_KEY] = private_key

    env_path = save_env_values(values)

    if created:
        click.secho("New key created.", fg="green")
    else:
        click.echo("Using existing key.")
    click.echo(f"Address: {address}")
    click.echo(f"Config:  {env_path}")
