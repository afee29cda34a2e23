"""Credit card billing cycles."""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta

from bizledger.domain.entities import (
    ZERO,
    Account,
    CardSummary,
    EntryKind,
    EntryStatus,
    Invoice,
    LedgerStore,
)


def day_of_month(month_start: date, day: int) -> date:
    """The ``day``-th day of a month, clamped to the month's last day."""
    return month_start + relativedelta(day=day)


def billing_window(card_account: Account, reference_month: date) -> Optional[tuple[date, date, date]]:
    """Return ``(window_start, closing_date, due_date)`` for a reference month.

    Closing and due days beyond the end of a short month are clamped to its
    last day, so a card closing on the 31st closes on Feb 28 (or 29). A due
    day numerically before the closing day falls in the following month.
    Cards without a closing day have no billing cycle and yield ``None``.
    """
    if not card_account.closing_day:
        return None

    month_start = reference_month.replace(day=1)
    closing_date = day_of_month(month_start, card_account.closing_day)
    previous_closing = day_of_month(month_start - relativedelta(months=1), card_account.closing_day)
    window_start = previous_closing + timedelta(days=1)

    if card_account.due_day is None:
        due_date = closing_date
    elif card_account.due_day < card_account.closing_day:
        due_date = day_of_month(month_start + relativedelta(months=1), card_account.due_day)
    else:
        due_date = day_of_month(month_start, card_account.due_day)

    return window_start, closing_date, due_date


def compute_invoice(store: LedgerStore, card_account: Account, reference_month: date) -> Optional[Invoice]:
    """Aggregate the card expenses of one billing cycle.

    Args:
        store: Ledger snapshot
        card_account: Card account with closing/due day configuration
        reference_month: Any day in the month whose closing date ends the cycle

    Returns:
        Invoice for the cycle, or None if the card has no closing day
    """
    window = billing_window(card_account, reference_month)
    if window is None:
        return None
    window_start, closing_date, due_date = window

    entries = tuple(
        entry
        for entry in store.movements
        if entry.account_id == card_account.id
        and entry.kind == EntryKind.EXPENSE
        and window_start <= entry.card_date <= closing_date
    )
    total = sum((entry.amount_gross for entry in entries), ZERO)
    open_total = sum(
        (entry.amount_gross for entry in entries if entry.status == EntryStatus.OPEN), ZERO
    )

    return Invoice(
        account_id=card_account.id,
        window_start=window_start,
        closing_date=closing_date,
        due_date=due_date,
        entries=entries,
        total=total,
        open_total=open_total,
        period_label=f"Invoice {reference_month.strftime('%B %Y')}",
    )


def compute_card_summary(card_account: Account, invoice: Invoice, current_open_balance: Decimal) -> CardSummary:
    limit = card_account.credit_limit or ZERO
    return CardSummary(
        limit=limit,
        used_in_period=invoice.total,
        available=limit - current_open_balance,
        next_invoice_total=invoice.total,
        next_due_date=invoice.due_date,
    )
