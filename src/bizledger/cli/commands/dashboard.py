"""Dashboard command."""

import click
from bizledger.cli.date_filters import date_range_options, resolve_cli_date_range
from bizledger.cli.formatting import format_delta
from bizledger.domain.ledger import LedgerService


@click.command("dashboard")
@date_range_options
@click.pass_context
def dashboard(ctx, start_date: str | None, end_date: str | None, period: str | None):
    """Show period KPIs, aging and top products.

    Examples:
        bizledger dashboard
        bizledger dashboard --period last-month
    """
    service = LedgerService(ctx.obj["db"])
    date_range = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    metrics = service.dashboard(date_range)

    click.echo(f"\nDashboard: {date_range.start.isoformat()} to {date_range.end.isoformat()}")
    click.echo("-" * 60)
    for label, name in (
        ("Cash flow", "cash_flow"),
        ("Receivables", "receivables"),
        ("Payables", "payables"),
        ("Average ticket", "average_ticket"),
    ):
        value = getattr(metrics, name)
        click.echo(f"{label:<16}{value:>14,.2f}  ({format_delta(metrics.deltas[name])})")

    click.echo("\nTop products by quantity:")
    if not metrics.top_sold:
        click.echo("  No sales in this period.")
    for product in metrics.top_sold:
        click.echo(f"  {product.name:30s} {product.quantity:>6d} {product.revenue:>14,.2f}")

    click.echo("\nTop products by margin:")
    for product in metrics.top_margin:
        click.echo(f"  {product.name:30s} {product.margin:>6.1f}% {product.profit:>14,.2f}")


def register_commands(cli):
    """Register dashboard command with main CLI."""
    cli.add_command(dashboard)
