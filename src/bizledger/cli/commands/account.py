"""Account management commands."""

import click
from datetime import date
from bizledger.cli.account_resolution import resolve_account_or_exit
from bizledger.cli.error_handling import handle_domain_error
from bizledger.domain.entities import AccountKind, Collection
from bizledger.domain.errors import DomainError
from bizledger.domain.ledger import LedgerService
from bizledger.domain.reducer import Delete
from bizledger.domain.statement import compute_current_balance
from bizledger.utils.amount_parser import parse_amount


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in AccountKind], case_sensitive=False),
    default=AccountKind.BANK.value,
    show_default=True,
    help="Account kind",
)
@click.option("--opening-balance", default="0", help="Opening balance (e.g., 1000.00)")
@click.option("--closing-day", type=click.IntRange(1, 31), help="Card closing day")
@click.option("--due-day", type=click.IntRange(1, 31), help="Card due day")
@click.option("--limit", "credit_limit", help="Card credit limit")
@click.pass_context
def create_account(
    ctx,
    name: str,
    kind: str,
    opening_balance: str,
    closing_day: int | None,
    due_day: int | None,
    credit_limit: str | None,
):
    """Create a new account.

    Examples:
        bizledger account create "Main bank" --opening-balance 1000
        bizledger account create "Visa" --kind card --closing-day 10 --due-day 5 --limit 5000
    """
    service = LedgerService(ctx.obj["db"])

    try:
        account = service.create_account(
            name=name,
            kind=AccountKind(kind.lower()),
            opening_balance=parse_amount(opening_balance),
            closing_day=closing_day,
            due_day=due_day,
            credit_limit=parse_amount(credit_limit) if credit_limit else None,
        )
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created account '{account.name}' (ID: {account.id})")


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts with their current balance."""
    service = LedgerService(ctx.obj["db"])
    store = service.store

    if not store.accounts:
        click.echo("No accounts found.")
        return

    today = date.today()
    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for acc in sorted(store.accounts, key=lambda a: a.name.casefold()):
        balance = compute_current_balance(store, acc.id, today)
        click.echo(f"ID: {acc.id:16s} | {acc.name:20s} | {acc.kind.value:10s} | {balance:>14,.2f}")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account name or ID. Accounts that still have ledger
    entries cannot be deleted.
    """
    service = LedgerService(ctx.obj["db"])
    account_obj = resolve_account_or_exit(ctx, service, account)

    if not yes and not click.confirm(f"Are you sure you want to delete account '{account_obj.name}'?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.dispatch(Delete(Collection.ACCOUNTS, account_obj.id))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted account '{account_obj.name}'")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
