"""Dashboard KPIs over a period."""

from datetime import date
from decimal import Decimal
from typing import Optional

from bizledger.domain.entities import (
    ZERO,
    Collection,
    DashboardMetrics,
    DateRange,
    EntryKind,
    LedgerStore,
    ProductPerformance,
    SaleRecord,
)
from bizledger.domain.statement import compute_aging, pct_delta, previous_period

TOP_PRODUCTS = 5


def _period_figures(store: LedgerStore, period: DateRange) -> dict[str, Decimal]:
    cash_flow = receivables = payables = ZERO
    for entry in store.movements:
        if entry.is_settled and entry.paid_date and period.contains(entry.paid_date):
            if entry.kind == EntryKind.INCOME:
                cash_flow += entry.amount_net
            elif entry.kind == EntryKind.EXPENSE:
                cash_flow -= entry.amount_net
        if not entry.is_settled and period.contains(entry.due_date):
            if entry.kind == EntryKind.INCOME:
                receivables += entry.amount_net
            elif entry.kind == EntryKind.EXPENSE:
                payables += entry.amount_net

    sales = _sales_in(store, period)
    sales_total = sum((sale.quantity * sale.unit_price for sale in sales), ZERO)
    average_ticket = sales_total / len(sales) if sales else ZERO

    return {
        "cash_flow": cash_flow,
        "receivables": receivables,
        "payables": payables,
        "average_ticket": average_ticket,
    }


def _sales_in(store: LedgerStore, period: DateRange) -> list[SaleRecord]:
    return [sale for sale in store.sales if sale.sale_date and period.contains(sale.sale_date)]


def sale_unit_cost(store: LedgerStore, sale: SaleRecord) -> Decimal:
    """Unit cost from the purchase entry when linked, else the product's cost."""
    if sale.purchase_movement_id and sale.quantity > 0:
        purchase = store.find(Collection.MOVEMENTS, sale.purchase_movement_id)
        if purchase is not None:
            return purchase.amount_gross / sale.quantity
    product = store.find(Collection.PRODUCTS, sale.product_id)
    return product.cost if product else ZERO


def sale_revenue(sale: SaleRecord) -> Decimal:
    return sale.quantity * sale.unit_price - sale.discount + sale.freight


def sale_profit(store: LedgerStore, sale: SaleRecord) -> Decimal:
    cost = sale.quantity * sale_unit_cost(store, sale) + sale.tax + sale.additional_cost
    return sale_revenue(sale) - cost


def product_performance(store: LedgerStore, period: DateRange) -> list[ProductPerformance]:
    """Quantity, revenue and profit per product sold in the period."""
    totals: dict[str, tuple[int, Decimal, Decimal]] = {}
    for sale in _sales_in(store, period):
        quantity, revenue, profit = totals.get(sale.product_id, (0, ZERO, ZERO))
        totals[sale.product_id] = (
            quantity + sale.quantity,
            revenue + sale_revenue(sale),
            profit + sale_profit(store, sale),
        )

    performances = []
    for product_id, (quantity, revenue, profit) in totals.items():
        product = store.find(Collection.PRODUCTS, product_id)
        performances.append(
            ProductPerformance(
                product_id=product_id,
                name=product.name if product else "N/A",
                quantity=quantity,
                revenue=revenue,
                profit=profit,
            )
        )
    return performances


def compute_dashboard(
    store: LedgerStore, period: DateRange, today: Optional[date] = None
) -> DashboardMetrics:
    """Compute period KPIs with deltas against the previous period.

    Args:
        store: Ledger snapshot
        period: Inclusive reporting period
        today: Reference date for aging (defaults to today)

    Returns:
        Dashboard metrics with global aging and top products
    """
    today = today or date.today()
    current = _period_figures(store, period)
    previous = _period_figures(store, previous_period(period))
    performances = product_performance(store, period)

    return DashboardMetrics(
        period=period,
        cash_flow=current["cash_flow"],
        receivables=current["receivables"],
        payables=current["payables"],
        average_ticket=current["average_ticket"],
        deltas={name: pct_delta(value, previous[name]) for name, value in current.items()},
        aging=compute_aging(store.movements, today),
        top_sold=tuple(sorted(performances, key=lambda p: p.quantity, reverse=True)[:TOP_PRODUCTS]),
        top_margin=tuple(sorted(performances, key=lambda p: p.margin, reverse=True)[:TOP_PRODUCTS]),
    )
