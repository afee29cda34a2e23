"""Tests for credit card billing cycles."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from bizledger.domain.billing import billing_window, compute_card_summary, compute_invoice
from bizledger.domain.entities import EntryKind, EntryStatus, LedgerStore

MARCH = date(2026, 3, 1)


def test_window_and_due_date_roll_to_next_month(accounts):
    card = accounts[2]

    window_start, closing_date, due_date = billing_window(card, MARCH)

    assert window_start == date(2026, 2, 11)
    assert closing_date == date(2026, 3, 10)
    assert due_date == date(2026, 4, 5)


def test_due_day_after_closing_day_stays_in_month(accounts):
    card = replace(accounts[2], closing_day=3, due_day=10)

    _, closing_date, due_date = billing_window(card, date(2026, 3, 17))

    assert closing_date == date(2026, 3, 3)
    assert due_date == date(2026, 3, 10)


def test_short_months_clamp_to_last_day(accounts):
    card = replace(accounts[2], closing_day=31, due_day=31)

    february = billing_window(card, date(2026, 2, 1))
    march = billing_window(card, MARCH)

    assert february == (date(2026, 2, 1), date(2026, 2, 28), date(2026, 2, 28))
    # March's window starts right after February's clamped closing date
    assert march[0] == date(2026, 3, 1)
    assert march[1] == date(2026, 3, 31)


def test_leap_year_february(accounts):
    card = replace(accounts[2], closing_day=30, due_day=5)

    _, closing_date, due_date = billing_window(card, date(2028, 2, 1))

    assert closing_date == date(2028, 2, 29)
    assert due_date == date(2028, 3, 5)


def test_missing_due_day_uses_closing_date(accounts):
    card = replace(accounts[2], due_day=None)
    assert billing_window(card, MARCH)[2] == date(2026, 3, 10)


def test_card_without_closing_day_has_no_invoice(empty_store, accounts):
    card = replace(accounts[2], closing_day=None)
    assert compute_invoice(empty_store, card, MARCH) is None


def test_invoice_totals(accounts, make_entry):
    card = accounts[2]
    store = LedgerStore(
        accounts=accounts,
        movements=(
            make_entry("first", "100", account_id="card", due=date(2026, 4, 5), transaction_date=date(2026, 2, 11)),
            make_entry("last", "50", account_id="card", due=date(2026, 4, 5), transaction_date=date(2026, 3, 10)),
            make_entry(
                "paid", "30", account_id="card", due=date(2026, 2, 20),
                status=EntryStatus.SETTLED, paid_date=date(2026, 3, 1),
            ),
            make_entry("before", "999", account_id="card", transaction_date=date(2026, 2, 10)),
            make_entry("after", "999", account_id="card", transaction_date=date(2026, 3, 11)),
            make_entry("refund", "20", EntryKind.INCOME, account_id="card", due=date(2026, 3, 1)),
            make_entry("bank", "999", due=date(2026, 3, 1)),
        ),
    )

    invoice = compute_invoice(store, card, MARCH)

    assert sorted(entry.id for entry in invoice.entries) == ["first", "last", "paid"]
    assert invoice.total == Decimal("180")
    assert invoice.open_total == Decimal("150")
    assert invoice.due_date == date(2026, 4, 5)
    assert invoice.period_label == "Invoice March 2026"


def test_empty_cycle_is_zeroed(empty_store, accounts):
    invoice = compute_invoice(empty_store, accounts[2], MARCH)

    assert invoice.entries == ()
    assert invoice.total == Decimal("0")
    assert invoice.open_total == Decimal("0")


def test_card_summary(empty_store, accounts):
    card = accounts[2]
    invoice = replace(compute_invoice(empty_store, card, MARCH), total=Decimal("180"))

    summary = compute_card_summary(card, invoice, Decimal("1200"))

    assert summary.limit == Decimal("5000")
    assert summary.available == Decimal("3800")
    assert summary.used_in_period == Decimal("180")
    assert summary.next_invoice_total == Decimal("180")
    assert summary.next_due_date == date(2026, 4, 5)
