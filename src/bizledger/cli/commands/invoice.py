"""Card invoice commands."""

import click
from bizledger.cli.account_resolution import resolve_account_or_exit
from bizledger.cli.error_handling import handle_domain_error
from bizledger.domain.errors import DomainError
from bizledger.domain.ledger import LedgerService
from bizledger.utils.date_parser import parse_date, parse_month


@click.group()
def invoice_group():
    """Show and pay card invoices."""
    pass


@invoice_group.command("show")
@click.argument("card", metavar="CARD_ACCOUNT")
@click.option("--month", default="this-month", show_default=True, help="Reference month (e.g., 2026-03)")
@click.pass_context
def show_invoice(ctx, card: str, month: str) -> None:
    """Show the invoice closing in a given month."""
    service = LedgerService(ctx.obj["db"])
    card_account = resolve_account_or_exit(ctx, service, card)

    try:
        reference_month = parse_month(month)
        invoice = service.invoice(card_account.id, reference_month)
        summary = service.card_summary(card_account.id, reference_month)
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)

    if invoice is None:
        click.echo(f"Card '{card_account.name}' has no closing day configured.")
        return

    click.echo(f"\n{invoice.period_label} - {card_account.name}")
    click.echo(
        f"Window {invoice.window_start.isoformat()} to {invoice.closing_date.isoformat()}, "
        f"due {invoice.due_date.isoformat()}"
    )
    click.echo("-" * 72)
    if not invoice.entries:
        click.echo("No purchases in this cycle.")
    for entry in sorted(invoice.entries, key=lambda e: e.card_date):
        click.echo(
            f"{entry.card_date.isoformat()}  {entry.description[:36]:36s} "
            f"{entry.status.value:8s} {entry.amount_gross:>12,.2f}"
        )
    click.echo("-" * 72)
    click.echo(f"Total:     {invoice.total:>14,.2f}")
    click.echo(f"Open:      {invoice.open_total:>14,.2f}")
    click.echo(f"Limit:     {summary.limit:>14,.2f}")
    click.echo(f"Available: {summary.available:>14,.2f}")


@invoice_group.command("pay")
@click.argument("card", metavar="CARD_ACCOUNT")
@click.option("--from", "source", required=True, help="Bank or cash account paying the invoice")
@click.option("--month", default="this-month", show_default=True, help="Reference month (e.g., 2026-03)")
@click.option("--paid", "paid_date", default="today", show_default=True, help="Payment date")
@click.pass_context
def pay_invoice(ctx, card: str, source: str, month: str, paid_date: str) -> None:
    """Pay the open part of an invoice and settle its purchases."""
    service = LedgerService(ctx.obj["db"])
    card_account = resolve_account_or_exit(ctx, service, card)
    source_account = resolve_account_or_exit(ctx, service, source)

    try:
        payment = service.pay_invoice(
            card_account.id,
            parse_month(month),
            source_account.id,
            paid_date=parse_date(paid_date),
        )
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Paid {payment.amount_gross:,.2f} from '{source_account.name}' (entry {payment.id})")


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")
