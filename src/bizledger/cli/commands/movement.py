"""Ledger entry commands."""

import click
from datetime import date
from bizledger.cli.account_resolution import resolve_account_or_exit
from bizledger.cli.error_handling import handle_domain_error
from bizledger.domain.entities import EntryKind, EntryOrigin, EntryStatus
from bizledger.domain.errors import DomainError
from bizledger.domain.ledger import LedgerService
from bizledger.utils.amount_parser import parse_amount
from bizledger.utils.date_parser import parse_date

_ORIGIN_FOR_KIND = {
    EntryKind.INCOME: EntryOrigin.MANUAL_INCOME,
    EntryKind.EXPENSE: EntryOrigin.EXPENSE,
    EntryKind.TRANSFER: EntryOrigin.TRANSFER,
}


@click.group()
def movement_group():
    """Manage ledger entries."""
    pass


@movement_group.command("add")
@click.argument(
    "kind", type=click.Choice([k.value for k in EntryKind], case_sensitive=False)
)
@click.option("--account", required=True, help="Account name or ID (source for transfers)")
@click.option("--amount", required=True, help="Gross amount (e.g., 123.45)")
@click.option("--due", "due_date", default="today", show_default=True, help="Due date")
@click.option("--description", default="", help="Entry description")
@click.option("--fees", default="0", help="Fees deducted from the gross amount")
@click.option("--interest", help="Interest added to the gross amount")
@click.option("--to", "destination", help="Destination account for transfers")
@click.option("--purchase-date", help="Purchase date for card expenses (defaults to due date)")
@click.option("--paid", "paid_date", help="Settle the entry on this date")
@click.option(
    "--installments",
    type=click.IntRange(min=2),
    help="Split the amount into this many monthly installments",
)
@click.pass_context
def add_movement(
    ctx,
    kind: str,
    account: str,
    amount: str,
    due_date: str,
    description: str,
    fees: str,
    interest: str | None,
    destination: str | None,
    purchase_date: str | None,
    paid_date: str | None,
    installments: int | None,
):
    """Add a ledger entry.

    Examples:
        bizledger movement add income --account "Main bank" --amount 500 --paid today
        bizledger movement add expense --account Visa --amount 80 --purchase-date 2026-03-02
        bizledger movement add transfer --account "Main bank" --to Cash --amount 200
        bizledger movement add expense --account Visa --amount 300 --installments 3
    """
    service = LedgerService(ctx.obj["db"])
    entry_kind = EntryKind(kind.upper())
    if installments and paid_date:
        click.echo("Error: --installments cannot be combined with --paid.", err=True)
        ctx.exit(1)

    source = resolve_account_or_exit(ctx, service, account)
    destination_id = None
    if destination:
        destination_id = resolve_account_or_exit(ctx, service, destination).id

    try:
        fields = dict(
            kind=entry_kind,
            account_id=source.id,
            destination_account_id=destination_id,
            amount_gross=parse_amount(amount),
            fees=parse_amount(fees),
            interest=parse_amount(interest) if interest else None,
            due_date=parse_date(due_date),
            transaction_date=parse_date(purchase_date) if purchase_date else None,
            description=description,
            origin=_ORIGIN_FOR_KIND[entry_kind],
        )
        if installments:
            first_due = fields.pop("due_date")
            created = service.add_installments(
                installments,
                first_due,
                fields.pop("amount_gross"),
                fields.pop("fees"),
                fields.pop("description"),
                fields.pop("transaction_date"),
                **fields,
            )
        else:
            if paid_date:
                fields.update(status=EntryStatus.SETTLED, paid_date=parse_date(paid_date))
            created = [service.add_entry(**fields)]
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)

    for entry in created:
        click.echo(
            f"Added {entry.kind.value.lower()} {entry.id}: net {entry.amount_net:,.2f} "
            f"due {entry.due_date.isoformat()} ({entry.status.value})"
        )


@movement_group.command("settle")
@click.argument("entry_id")
@click.option("--paid", "paid_date", default="today", show_default=True, help="Payment date")
@click.pass_context
def settle_movement(ctx, entry_id: str, paid_date: str) -> None:
    """Mark an entry as settled."""
    service = LedgerService(ctx.obj["db"])
    try:
        entry = service.settle_entry(entry_id, parse_date(paid_date))
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Settled {entry.id} on {entry.paid_date.isoformat()}")


@movement_group.command("delete")
@click.argument("entry_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_movement(ctx, entry_id: str, yes: bool) -> None:
    """Delete an entry.

    Entries in a group are deleted together with the whole group, and
    investment transactions mirrored by the entry are deleted with it.
    """
    service = LedgerService(ctx.obj["db"])
    try:
        entry = service.get_entry(entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(f"Delete entry '{entry.description or entry.id}'?"):
        click.echo("Deletion cancelled.")
        return

    before = len(service.store.movements)
    try:
        service.delete_entry(entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    removed = before - len(service.store.movements)
    click.echo(f"Deleted {removed} entr{'y' if removed == 1 else 'ies'}")


def register_commands(cli):
    """Register ledger entry commands with main CLI."""
    cli.add_command(movement_group, name="movement")
