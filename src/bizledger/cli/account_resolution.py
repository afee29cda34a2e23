"""CLI helpers for account resolution."""

from __future__ import annotations

import click
from bizledger.domain.entities import Account
from bizledger.domain.errors import DomainError
from bizledger.domain.ledger import LedgerService
from bizledger.utils.account_resolver import resolve_account


def resolve_account_or_exit(ctx: click.Context, service: LedgerService, account: str) -> Account:
    """Resolve account name or ID, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolve_account(service.store, account)
    except DomainError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
