"""Balance and statement calculations.

Every function here is a pure read over a ``LedgerStore`` snapshot. Empty
ledgers and empty periods produce zeroed aggregates, never errors.
"""

import math
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from bizledger.domain.entities import (
    ZERO,
    Aging,
    AgingBuckets,
    BalancePoint,
    Collection,
    DateRange,
    EntryKind,
    EntryStatus,
    LedgerEntry,
    LedgerStore,
    Statement,
    StatementFilters,
    StatementRow,
    StatementTotals,
)
from bizledger.domain.errors import NotFoundError, account_not_found

TRANSFER_LABEL = "Transfer"
MISSING_LABEL = "N/A"


def value_for_account(entry: LedgerEntry, account_id: str) -> Decimal:
    """Signed effect of an entry on one account's balance.

    Income credits its account, expense debits it. A transfer debits the
    source account and credits the destination. Entries that do not touch
    the account are worth zero.
    """
    if entry.kind == EntryKind.TRANSFER:
        if entry.account_id == account_id:
            return -entry.amount_net
        if entry.destination_account_id == account_id:
            return entry.amount_net
        return ZERO
    if entry.account_id != account_id:
        return ZERO
    if entry.kind == EntryKind.EXPENSE:
        return -entry.amount_net
    return entry.amount_net


def account_entries(store: LedgerStore, account_id: str) -> list[LedgerEntry]:
    return [entry for entry in store.movements if entry.touches(account_id)]


def _settled_total(entries: Iterable[LedgerEntry], account_id: str, before: date, inclusive: bool) -> Decimal:
    total = ZERO
    for entry in entries:
        if not entry.is_settled:
            continue
        day = entry.effective_date
        if day < before or (inclusive and day == before):
            total += value_for_account(entry, account_id)
    return total


def _require_account(store: LedgerStore, account_id: str):
    account = store.get_account(account_id)
    if account is None:
        raise NotFoundError(account_not_found(account_id))
    return account


def compute_opening_balance(store: LedgerStore, account_id: str, start: date) -> Decimal:
    """Opening balance plus every settled entry effective strictly before ``start``."""
    account = _require_account(store, account_id)
    entries = account_entries(store, account_id)
    return account.opening_balance + _settled_total(entries, account_id, start, inclusive=False)


def compute_current_balance(store: LedgerStore, account_id: str, today: Optional[date] = None) -> Decimal:
    """Balance through today, counting settled entries only."""
    today = today or date.today()
    account = _require_account(store, account_id)
    entries = account_entries(store, account_id)
    return account.opening_balance + _settled_total(entries, account_id, today, inclusive=True)


def compute_open_balance(store: LedgerStore, account_id: str) -> Decimal:
    """Sum of open expenses booked on an account, as used for card limits."""
    return sum(
        (
            entry.amount_net
            for entry in store.movements
            if entry.account_id == account_id
            and entry.kind == EntryKind.EXPENSE
            and entry.status == EntryStatus.OPEN
        ),
        ZERO,
    )


def previous_period(date_range: DateRange) -> DateRange:
    """Period of the same length ending the day before ``date_range`` starts."""
    end = date_range.start - timedelta(days=1)
    start = end - timedelta(days=date_range.days - 1)
    return DateRange(start=start, end=end)


def pct_delta(current: Decimal, previous: Decimal) -> float:
    """Percentage change from ``previous`` to ``current``.

    Returns ``inf`` when there is no previous value to compare against and
    ``0.0`` when both values are zero.
    """
    if previous == 0:
        return math.inf if current != 0 else 0.0
    return float((current - previous) / abs(previous) * 100)


def _bucket_for(days: int) -> Optional[str]:
    if 0 <= days <= 7:
        return "days_0_7"
    if 8 <= days <= 15:
        return "days_8_15"
    if 16 <= days <= 30:
        return "days_16_30"
    if days > 30:
        return "over_30"
    return None


def compute_aging(entries: Iterable[LedgerEntry], today: Optional[date] = None) -> Aging:
    """Bucket open income (receivables) and open expenses (payables).

    Buckets are keyed by whole days from ``today`` to the due date. Entries
    already past due have a negative distance and land in no bucket.
    Transfers are neither receivable nor payable.
    """
    today = today or date.today()
    totals = {
        EntryKind.INCOME: dict.fromkeys(("days_0_7", "days_8_15", "days_16_30", "over_30"), ZERO),
        EntryKind.EXPENSE: dict.fromkeys(("days_0_7", "days_8_15", "days_16_30", "over_30"), ZERO),
    }
    for entry in entries:
        if entry.status != EntryStatus.OPEN or entry.kind not in totals:
            continue
        bucket = _bucket_for((entry.due_date - today).days)
        if bucket is not None:
            totals[entry.kind][bucket] += entry.amount_net
    return Aging(
        receivables=AgingBuckets(**totals[EntryKind.INCOME]),
        payables=AgingBuckets(**totals[EntryKind.EXPENSE]),
    )


def _in_range(entries: Iterable[LedgerEntry], date_range: DateRange) -> list[LedgerEntry]:
    return [entry for entry in entries if date_range.contains(entry.effective_date)]


def _flows(entries: Iterable[LedgerEntry], account_id: str) -> tuple[Decimal, Decimal]:
    inflow = outflow = ZERO
    for entry in entries:
        if not entry.is_settled:
            continue
        value = value_for_account(entry, account_id)
        if value > 0:
            inflow += value
        else:
            outflow -= value
    return inflow, outflow


def _matches(entry: LedgerEntry, filters: StatementFilters, today: date) -> bool:
    if filters.status is not None and entry.display_status(today) != filters.status:
        return False
    if filters.kind is not None and entry.kind != filters.kind:
        return False
    if filters.category_id is not None and entry.category_id != filters.category_id:
        return False
    if filters.query and filters.query.lower() not in entry.description.lower():
        return False
    return True


def _labels(store: LedgerStore, entry: LedgerEntry) -> tuple[str, str]:
    if entry.kind == EntryKind.TRANSFER:
        category_name = TRANSFER_LABEL
    else:
        category = store.find(Collection.CATEGORIES, entry.category_id) if entry.category_id else None
        category_name = category.name if category else MISSING_LABEL
    contact = store.find(Collection.CONTACTS, entry.contact_id) if entry.contact_id else None
    return category_name, contact.name if contact else MISSING_LABEL


def compute_statement(
    store: LedgerStore,
    account_id: str,
    date_range: DateRange,
    filters: Optional[StatementFilters] = None,
    today: Optional[date] = None,
) -> Statement:
    """Build the statement of one account over a date range.

    Args:
        store: Ledger snapshot
        account_id: Account to report on
        date_range: Inclusive range matched against each entry's effective date
        filters: Optional table filters (do not affect totals or aging)
        today: Reference date for overdue labels and the current balance

    Returns:
        Statement with rows sorted by effective date then description

    Raises:
        NotFoundError: If the account does not exist
    """
    today = today or date.today()
    filters = filters or StatementFilters()
    account = _require_account(store, account_id)

    entries = account_entries(store, account_id)
    opening = compute_opening_balance(store, account_id, date_range.start)
    in_range = _in_range(entries, date_range)

    visible = sorted(
        (entry for entry in in_range if _matches(entry, filters, today)),
        key=lambda entry: (entry.effective_date, entry.description),
    )

    rows = []
    running = opening
    for entry in visible:
        value = value_for_account(entry, account_id)
        before = running
        if entry.is_settled:
            running += value
        category_name, contact_name = _labels(store, entry)
        rows.append(
            StatementRow(
                entry_id=entry.id,
                effective_date=entry.effective_date,
                description=entry.description,
                kind=entry.kind,
                status=entry.display_status(today),
                category_name=category_name,
                contact_name=contact_name,
                value=value,
                running_balance=running if entry.is_settled else before,
            )
        )

    inflow, outflow = _flows(in_range, account_id)
    previous = previous_period(date_range)
    prev_inflow, prev_outflow = _flows(_in_range(entries, previous), account_id)

    totals = StatementTotals(
        opening_balance=opening,
        inflow=inflow,
        outflow=outflow,
        net=inflow - outflow,
        current_balance=compute_current_balance(store, account_id, today),
        projected_balance=opening + sum((value_for_account(e, account_id) for e in in_range), ZERO),
        deltas={
            "inflow": pct_delta(inflow, prev_inflow),
            "outflow": pct_delta(outflow, prev_outflow),
            "net": pct_delta(inflow - outflow, prev_inflow - prev_outflow),
        },
    )

    return Statement(
        account=account,
        date_range=date_range,
        opening_balance=opening,
        rows=tuple(rows),
        totals=totals,
        aging=compute_aging(in_range, today),
    )


def build_balance_series(store: LedgerStore, account_id: str, date_range: DateRange) -> list[BalancePoint]:
    """Daily settled inflow, outflow and closing balance across a range."""
    entries = account_entries(store, account_id)
    balance = compute_opening_balance(store, account_id, date_range.start)

    by_day: dict[date, list[LedgerEntry]] = {}
    for entry in _in_range(entries, date_range):
        if entry.is_settled:
            by_day.setdefault(entry.effective_date, []).append(entry)

    points = []
    for offset in range(date_range.days):
        day = date_range.start + timedelta(days=offset)
        inflow, outflow = _flows(by_day.get(day, ()), account_id)
        balance += inflow - outflow
        points.append(
            BalancePoint(day=day, inflow=inflow, outflow=outflow, net=inflow - outflow, balance=balance)
        )
    return points
