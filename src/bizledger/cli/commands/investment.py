"""Partner investment commands."""

import click
from bizledger.cli.account_resolution import resolve_account_or_exit
from bizledger.cli.error_handling import handle_domain_error
from bizledger.domain.entities import InvestmentType
from bizledger.domain.errors import DomainError
from bizledger.domain.ledger import LedgerService
from bizledger.utils.amount_parser import parse_amount
from bizledger.utils.date_parser import parse_date


@click.group()
def investment_group():
    """Manage partner investments."""
    pass


@investment_group.command("add-partner")
@click.argument("name", metavar="PARTNER_ACCOUNT_NAME")
@click.pass_context
def add_partner(ctx, name: str) -> None:
    """Open a partner account."""
    service = LedgerService(ctx.obj["db"])
    try:
        partner = service.create_partner_account(name)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created partner account '{partner.name}' (ID: {partner.id})")


@investment_group.command("record")
@click.argument("partner_account_id")
@click.argument("type", type=click.Choice([t.value for t in InvestmentType], case_sensitive=False))
@click.argument("amount")
@click.option("--date", "day", default="today", show_default=True, help="Transaction date")
@click.option("--account", help="Company account mirrored by a ledger entry")
@click.option("--note", help="Note")
@click.pass_context
def record_transaction(
    ctx,
    partner_account_id: str,
    type: str,
    amount: str,
    day: str,
    account: str | None,
    note: str | None,
) -> None:
    """Record a partner investment transaction.

    With --account, the company side is booked as a settled ledger entry
    linked to the transaction.

    Examples:
        bizledger investment record PARTNER_ID contribution 1000 --account "Main bank"
        bizledger investment record PARTNER_ID withdrawal 250 --account "Main bank"
    """
    service = LedgerService(ctx.obj["db"])
    contra_id = resolve_account_or_exit(ctx, service, account).id if account else None

    try:
        inv = service.record_partner_transaction(
            partner_account_id,
            InvestmentType(type.upper()),
            parse_amount(amount),
            parse_date(day),
            contra_account_id=contra_id,
            note=note,
        )
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)

    message = f"Recorded {inv.type.value.lower()} {inv.id} of {inv.amount:,.2f}"
    if inv.linked_movement_id:
        message += f" (ledger entry {inv.linked_movement_id})"
    click.echo(message)


@investment_group.command("balances")
@click.pass_context
def show_balances(ctx) -> None:
    """Show the balance of every partner account."""
    service = LedgerService(ctx.obj["db"])
    balances = service.partner_balances()
    if not balances:
        click.echo("No partner accounts found.")
        return

    click.echo("\nPartner balances:")
    click.echo("-" * 60)
    for balance in balances:
        click.echo(f"ID: {balance.partner_account_id:16s} | {balance.name:20s} | {balance.balance:>14,.2f}")


def register_commands(cli):
    """Register investment commands with main CLI."""
    cli.add_command(investment_group, name="investment")
