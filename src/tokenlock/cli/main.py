"""
Main CLI entry point for tokenlock.

Token and deployment commands live here; vesting ledger commands are in
``ledger_commands``.
"""

from __future__ import annotations

import json
import logging
import os
import sys

import click

from tokenlock.config_manager import ConfigurationError, get_config_manager
from tokenlock.core.contracts.erc20 import ERC20Token
from tokenlock.core.exceptions import TokenlockError
from tokenlock.core.logging_config import setup_logging
from tokenlock.core.state import Deployment, save_deployment

from .common import emit, handle_cli_error, load, save, time_provider
from .ledger_commands import ledger_group

logger = logging.getLogger(__name__)


@click.group()
@click.option("--state-file", default=None, help="Deployment state file (default from config)")
@click.option("--now", type=int, default=None, help="Use this unix timestamp as the current time")
@click.option("--json-output", is_flag=True, help="Output raw JSON")
@click.option("--environment", default=None, help="Config environment (development/staging/production)")
@click.option("--config-dir", default=None, type=click.Path(file_okay=False), help="Directory with config files")
@click.pass_context
def cli(ctx, state_file, now, json_output, environment, config_dir):
    """tokenlock - linear token vesting ledgers"""
    try:
        config = get_config_manager(
            environment=environment, config_dir=config_dir, force_reload=True
        )
    except ConfigurationError as exc:
        handle_cli_error(exc)

    setup_logging(config.logging, environment=config.environment.value)

    ctx.ensure_object(dict)
    ctx.obj.update(
        {
            "config": config,
            "state_file": state_file or config.storage.state_file,
            "now": now,
            "json_output": json_output,
        }
    )


@cli.command()
@click.option("--owner", required=True, help="Token owner (may mint)")
@click.option("--name", default=None, help="Token name")
@click.option("--symbol", default=None, help="Token symbol")
@click.option("--decimals", type=click.IntRange(0, 18), default=None, help="Token decimals")
@click.option("--max-supply", type=click.IntRange(min=0), default=0, help="Supply cap (0 = unlimited)")
@click.option("--force", is_flag=True, help="Overwrite an existing state file")
@click.pass_context
def init(ctx, owner, name, symbol, decimals, max_supply, force):
    """Create a new token and delegate registry."""
    config = ctx.obj["config"]
    state_file = ctx.obj["state_file"]
    if os.path.exists(state_file) and not force:
        handle_cli_error(click.ClickException(f"{state_file} already exists; use --force to overwrite"))

    token = ERC20Token(
        name=name or config.token.name,
        symbol=symbol or config.token.symbol,
        decimals=config.token.decimals if decimals is None else decimals,
        owner=owner,
        max_supply=max_supply,
    )
    deployment = Deployment.create(
        token,
        namespace_key=config.ledger.delegation_namespace,
        time_provider=time_provider(ctx),
    )
    try:
        save_deployment(state_file, deployment)
    except TokenlockError as exc:
        handle_cli_error(exc)

    emit(
        ctx,
        {
            "state_file": state_file,
            "token": token.address,
            "symbol": token.symbol,
            "owner": token.owner,
            "registry": deployment.registry.address,
            "namespace_key": config.ledger.delegation_namespace,
        },
        "Deployment Initialized",
    )


@cli.command()
@click.option("--caller", required=True, help="Token owner")
@click.option("--to", "recipient", required=True, help="Recipient")
@click.option("--amount", required=True, type=click.IntRange(min=0), help="Amount in base units")
@click.pass_context
def mint(ctx, caller, recipient, amount):
    """Mint tokens (owner only)."""
    try:
        deployment = load(ctx)
        deployment.token.mint(caller, recipient, amount)
        save(ctx, deployment)
    except TokenlockError as exc:
        handle_cli_error(exc)
    emit(
        ctx,
        {
            "account": recipient.lower(),
            "minted": amount,
            "balance": deployment.token.balance_of(recipient),
            "total_supply": deployment.token.total_supply,
        },
        "Mint",
    )


@cli.command()
@click.option("--owner", required=True, help="Token holder granting the allowance")
@click.option("--spender", required=True, help="Account allowed to spend (e.g. a ledger address)")
@click.option("--amount", required=True, type=click.IntRange(min=0), help="Allowance in base units")
@click.pass_context
def approve(ctx, owner, spender, amount):
    """Approve a spender, typically a vesting ledger before a deposit."""
    try:
        deployment = load(ctx)
        deployment.token.approve(owner, spender, amount)
        save(ctx, deployment)
    except TokenlockError as exc:
        handle_cli_error(exc)
    emit(
        ctx,
        {
            "owner": owner.lower(),
            "spender": spender.lower(),
            "allowance": deployment.token.allowance(owner, spender),
        },
        "Approval",
    )


@cli.command()
@click.argument("account")
@click.pass_context
def balance(ctx, account):
    """Show the token balance of an account."""
    try:
        deployment = load(ctx)
    except TokenlockError as exc:
        handle_cli_error(exc)
    emit(
        ctx,
        {
            "account": account.lower(),
            "balance": deployment.token.balance_of(account),
            "symbol": deployment.token.symbol,
        },
        "Balance",
    )


@cli.command("config")
@click.option("--key", default=None, help="Return a single value via dot-notation (e.g. ledger.delegation_namespace)")
@click.pass_context
def show_config(ctx, key):
    """Show the effective configuration."""
    config = ctx.obj["config"]
    if key:
        value = config.get(key)
        if value is None:
            handle_cli_error(click.ClickException(f"Unknown config key: {key}"))
        click.echo(json.dumps({"key": key, "value": value}, indent=2))
        return
    click.echo(json.dumps(config.to_dict(), indent=2))


cli.add_command(ledger_group)


def main():
    """Console script entry point"""
    return cli(obj={})


if __name__ == "__main__":
    sys.exit(main() or 0)
