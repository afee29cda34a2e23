"""CLI helpers for date range resolution."""

from datetime import date

import click

from bizledger.domain.entities import DateRange
from bizledger.utils.date_parser import get_date_range, parse_date


def date_range_options(func):
    """Attach --from/--to/--period options to a command."""
    func = click.option(
        "--period",
        help="Named period: today, last-7-days, last-30-days, this-month, last-month, next-month, this-year",
    )(func)
    func = click.option("--to", "end_date", help="End date (YYYY-MM-DD, 'today', '+7d', ...)")(func)
    func = click.option("--from", "start_date", help="Start date (YYYY-MM-DD, 'today', '-30d', ...)")(func)
    return func


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    default_period: str = "this-month",
    today: date | None = None,
) -> DateRange:
    """Resolve a CLI date range from a named period or explicit dates.

    Missing explicit bounds are filled from the default period.
    """
    if period and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --from or --to.", err=True)
        ctx.exit(1)

    try:
        if period:
            start, end = get_date_range(period, today)
            return DateRange(start, end)
        default_start, default_end = get_date_range(default_period, today)
        start = parse_date(start_date, today) if start_date else default_start
        end = parse_date(end_date, today) if end_date else default_end
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if start > end:
        click.echo("Error: Start date must not be after end date.", err=True)
        ctx.exit(1)
    return DateRange(start, end)
