"""Account statement command."""

import click
from bizledger.cli.account_resolution import resolve_account_or_exit
from bizledger.cli.date_filters import date_range_options, resolve_cli_date_range
from bizledger.cli.error_handling import handle_domain_error
from bizledger.cli.formatting import format_delta
from bizledger.domain.entities import DisplayStatus, EntryKind, StatementFilters
from bizledger.domain.errors import DomainError
from bizledger.domain.ledger import LedgerService


@click.command("statement")
@click.argument("account", metavar="ACCOUNT")
@date_range_options
@click.option(
    "--status",
    type=click.Choice([s.value for s in DisplayStatus], case_sensitive=False),
    help="Only rows with this status",
)
@click.option(
    "--kind",
    type=click.Choice([k.value for k in EntryKind], case_sensitive=False),
    help="Only rows of this kind",
)
@click.option("--category", "category_id", help="Only rows in this category ID")
@click.option("--query", help="Only rows whose description contains this text")
@click.pass_context
def statement(
    ctx,
    account: str,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    status: str | None,
    kind: str | None,
    category_id: str | None,
    query: str | None,
):
    """Show an account statement with running balance.

    Open rows show the balance as it stood before them; only settled rows
    move the running balance. Totals ignore the row filters.

    Examples:
        bizledger statement "Main bank"
        bizledger statement "Main bank" --period last-30-days --status OVERDUE
    """
    service = LedgerService(ctx.obj["db"])
    account_obj = resolve_account_or_exit(ctx, service, account)
    date_range = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    filters = StatementFilters(
        status=DisplayStatus(status.upper()) if status else None,
        kind=EntryKind(kind.upper()) if kind else None,
        category_id=category_id,
        query=query,
    )

    try:
        result = service.statement(account_obj.id, date_range, filters)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"\nStatement for {account_obj.name}: "
        f"{date_range.start.isoformat()} to {date_range.end.isoformat()}"
    )
    click.echo("-" * 96)
    click.echo(f"{'Opening balance':<66}{result.opening_balance:>14,.2f}")
    if not result.rows:
        click.echo("No entries in this period.")
    for row in result.rows:
        click.echo(
            f"{row.effective_date.isoformat()}  {row.description[:28]:28s} {row.status.value:8s} "
            f"{row.category_name[:12]:12s} {row.value:>14,.2f} {row.running_balance:>14,.2f}"
        )

    totals = result.totals
    click.echo("-" * 96)
    click.echo(f"Inflow:            {totals.inflow:>14,.2f}  ({format_delta(totals.deltas['inflow'])})")
    click.echo(f"Outflow:           {totals.outflow:>14,.2f}  ({format_delta(totals.deltas['outflow'])})")
    click.echo(f"Net:               {totals.net:>14,.2f}  ({format_delta(totals.deltas['net'])})")
    click.echo(f"Current balance:   {totals.current_balance:>14,.2f}")
    click.echo(f"Projected balance: {totals.projected_balance:>14,.2f}")

    click.echo("\nAging          0-7          8-15         16-30        >30")
    for label, buckets in (("Receivable", result.aging.receivables), ("Payable", result.aging.payables)):
        amounts = " ".join(f"{value:>12,.2f}" for value in buckets.as_dict().values())
        click.echo(f"{label:<11}{amounts}")


def register_commands(cli):
    """Register statement command with main CLI."""
    cli.add_command(statement)
