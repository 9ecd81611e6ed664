"""
Vesting ledger CLI commands.

- Create a ledger for a beneficiary
- Deposit (and extend the schedule) as the authorized depositor
- Claim matured tokens for the beneficiary
- Inspect claimable amounts, schedules and deployed ledgers
"""

from __future__ import annotations

import logging
from typing import Any

import click

from tokenlock.core.contracts.vesting_ledger import VestingLedger
from tokenlock.core.exceptions import TokenlockError

from .common import emit, emit_rows, handle_cli_error, load, save

logger = logging.getLogger(__name__)


def _ledger_summary(ledger: VestingLedger) -> dict[str, Any]:
    return {
        "address": ledger.address,
        "beneficiary": ledger.beneficiary,
        "authorized_depositor": ledger.authorized_depositor,
        "namespace_key": ledger.namespace_key,
        "vesting_start": ledger.vesting_start,
        "vesting_end": ledger.vesting_end,
        "held_balance": ledger.held_balance,
        "claimable": ledger.currently_claimable(),
        "status": ledger.status().value,
    }


def _require_ledger(deployment, address: str) -> VestingLedger:
    ledger = deployment.factory.get_ledger(address)
    if ledger is None:
        handle_cli_error(click.ClickException(f"No vesting ledger at {address}"))
    return ledger


@click.group("ledger")
def ledger_group():
    """Vesting ledger operations"""


@ledger_group.command("create")
@click.option("--creator", required=True, help="Account deploying the ledger")
@click.option("--beneficiary", required=True, help="Account receiving vested tokens")
@click.option("--depositor", required=True, help="Only account allowed to deposit")
@click.pass_context
def create_ledger(ctx: click.Context, creator: str, beneficiary: str, depositor: str):
    """Deploy a vesting ledger and delegate its voting rights to the beneficiary."""
    try:
        deployment = load(ctx)
        ledger = deployment.factory.create_ledger(creator, beneficiary, depositor)
        save(ctx, deployment)
    except (TokenlockError, ValueError) as exc:
        handle_cli_error(exc)
    emit(ctx, _ledger_summary(ledger), "Vesting Ledger Created")


@ledger_group.command("deposit")
@click.argument("address")
@click.option("--caller", required=True, help="Depositing account (must be the authorized depositor)")
@click.option("--amount", required=True, type=click.IntRange(min=0), help="Amount in base units")
@click.option("--end", "new_end", required=True, type=int, help="New vesting end (unix timestamp)")
@click.option("--beneficiary", required=True, help="Beneficiary this ledger is expected to pay")
@click.pass_context
def deposit(ctx: click.Context, address: str, caller: str, amount: int, new_end: int, beneficiary: str):
    """Deposit tokens into a ledger; the caller must have approved the ledger first."""
    try:
        deployment = load(ctx)
        ledger = _require_ledger(deployment, address)
        ledger.deposit(caller, amount, new_end, beneficiary)
        save(ctx, deployment)
    except (TokenlockError, ValueError) as exc:
        handle_cli_error(exc)
    emit(ctx, {"deposited": amount, **_ledger_summary(ledger)}, "Deposit")


@ledger_group.command("claim")
@click.argument("address")
@click.option("--caller", default=None, help="Account submitting the claim (defaults to the beneficiary)")
@click.pass_context
def claim(ctx: click.Context, address: str, caller: str | None):
    """Pay the currently vested amount to the beneficiary."""
    try:
        deployment = load(ctx)
        ledger = _require_ledger(deployment, address)
        claimed = ledger.claim(caller)
        save(ctx, deployment)
    except TokenlockError as exc:
        handle_cli_error(exc)
    emit(ctx, {"claimed": claimed, **_ledger_summary(ledger)}, "Claim")


@ledger_group.command("claimable")
@click.argument("address")
@click.pass_context
def claimable(ctx: click.Context, address: str):
    """Show what a claim would pay right now."""
    try:
        ledger = _require_ledger(load(ctx), address)
    except TokenlockError as exc:
        handle_cli_error(exc)
    emit(
        ctx,
        {
            "address": ledger.address,
            "claimable": ledger.currently_claimable(),
            "held_balance": ledger.held_balance,
        },
        "Claimable",
    )


@ledger_group.command("show")
@click.argument("address")
@click.pass_context
def show(ctx: click.Context, address: str):
    """Show a ledger's schedule and balances."""
    try:
        ledger = _require_ledger(load(ctx), address)
    except TokenlockError as exc:
        handle_cli_error(exc)
    emit(ctx, _ledger_summary(ledger), "Vesting Ledger")


@ledger_group.command("list")
@click.option("--beneficiary", default=None, help="Only ledgers paying this account")
@click.pass_context
def list_ledgers(ctx: click.Context, beneficiary: str | None):
    """List deployed ledgers."""
    try:
        deployment = load(ctx)
    except TokenlockError as exc:
        handle_cli_error(exc)

    if beneficiary:
        ledgers = deployment.factory.ledgers_for_beneficiary(beneficiary)
    else:
        ledgers = list(deployment.factory.deployed_ledgers.values())
    emit_rows(ctx, [_ledger_summary(ledger) for ledger in ledgers], "Vesting Ledgers")
