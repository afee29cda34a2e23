"""Tests for dashboard KPIs."""

import math
import pytest
from datetime import date
from decimal import Decimal

from bizledger.domain.dashboard import compute_dashboard, sale_profit, sale_unit_cost
from bizledger.domain.entities import (
    DateRange,
    EntryKind,
    EntryStatus,
    LedgerStore,
    Product,
    SaleRecord,
)

MARCH = DateRange(date(2026, 3, 1), date(2026, 3, 31))


@pytest.fixture
def dashboard_store(accounts, make_entry):
    settled = dict(status=EntryStatus.SETTLED)
    return LedgerStore(
        accounts=accounts,
        products=(
            Product(id="p1", name="Widget", cost=Decimal("20")),
            Product(id="p2", name="Gadget", cost=Decimal("5")),
        ),
        sales=(
            SaleRecord(
                id="s1", product_id="p1", customer_id="c1", quantity=3, unit_price=Decimal("50"),
                discount=Decimal("10"), freight=Decimal("5"), tax=Decimal("4"), sale_date=date(2026, 3, 2),
            ),
            SaleRecord(
                id="s2", product_id="p2", customer_id="c2", quantity=10, unit_price=Decimal("8"),
                sale_date=date(2026, 3, 9), purchase_movement_id="buy",
            ),
            SaleRecord(
                id="old", product_id="p1", customer_id="c1", quantity=99, unit_price=Decimal("1"),
                sale_date=date(2026, 2, 2),
            ),
        ),
        movements=(
            make_entry("in", "500", EntryKind.INCOME, due=date(2026, 3, 5), paid_date=date(2026, 3, 5), **settled),
            make_entry("out", "200", due=date(2026, 3, 6), paid_date=date(2026, 3, 6), **settled),
            make_entry("buy", "30", due=date(2026, 2, 20), paid_date=date(2026, 2, 20), **settled),
            make_entry(
                "move", "75", EntryKind.TRANSFER, due=date(2026, 3, 7), paid_date=date(2026, 3, 7),
                destination_account_id="cash", **settled,
            ),
            make_entry("receivable", "400", EntryKind.INCOME, due=date(2026, 3, 20)),
            make_entry("payable", "70", due=date(2026, 3, 25)),
        ),
    )


def test_period_figures(dashboard_store, today):
    metrics = compute_dashboard(dashboard_store, MARCH, today)

    assert metrics.cash_flow == Decimal("300")
    assert metrics.receivables == Decimal("400")
    assert metrics.payables == Decimal("70")
    assert metrics.average_ticket == Decimal("115")


def test_deltas_against_previous_period(dashboard_store, today):
    deltas = compute_dashboard(dashboard_store, MARCH, today).deltas

    assert deltas["cash_flow"] == pytest.approx(1100.0)
    assert deltas["receivables"] == math.inf
    assert deltas["average_ticket"] == pytest.approx((115 - 99) / 99 * 100)


def test_global_aging(dashboard_store, today):
    aging = compute_dashboard(dashboard_store, MARCH, today).aging

    assert aging.receivables.days_0_7 == Decimal("400")
    assert aging.payables.days_8_15 == Decimal("70")


def test_unit_cost_prefers_purchase_entry(dashboard_store):
    widget_sale, gadget_sale, _ = dashboard_store.sales

    assert sale_unit_cost(dashboard_store, widget_sale) == Decimal("20")
    assert sale_unit_cost(dashboard_store, gadget_sale) == Decimal("3")
    assert sale_profit(dashboard_store, widget_sale) == Decimal("81")
    assert sale_profit(dashboard_store, gadget_sale) == Decimal("50")


def test_top_products(dashboard_store, today):
    metrics = compute_dashboard(dashboard_store, MARCH, today)

    assert [p.name for p in metrics.top_sold] == ["Gadget", "Widget"]
    assert [p.name for p in metrics.top_margin] == ["Gadget", "Widget"]
    widget = metrics.top_sold[1]
    assert (widget.quantity, widget.revenue, widget.profit) == (3, Decimal("145"), Decimal("81"))


def test_empty_ledger(empty_store, today):
    metrics = compute_dashboard(empty_store, MARCH, today)

    assert metrics.cash_flow == Decimal("0")
    assert metrics.average_ticket == Decimal("0")
    assert metrics.top_sold == ()
    assert metrics.deltas["cash_flow"] == 0.0
