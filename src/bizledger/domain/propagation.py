"""Normalization and propagation rules applied by the reducer.

Each rule receives a mutable draft of the linked collections, the link index
of the snapshot being built and the record that was just written, and pushes
the record's values into the records linked to it. Rules run in the fixed
order of ``PROPAGATION_RULES``.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Optional

from bizledger.domain.entities import (
    ZERO,
    Collection,
    EntryStatus,
    InvestmentTransaction,
    LedgerEntry,
    LedgerStore,
    SaleAdjustment,
    SaleRecord,
    SaleTrackingStatus,
)
from bizledger.domain.errors import ConsistencyViolation
from bizledger.domain.links import Link, LinkIndex, LinkKind

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
NET_TOLERANCE = Decimal("0.005")
SALE_GROSS_TOLERANCE = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def expected_net(entry: LedgerEntry) -> Decimal:
    return entry.amount_gross - entry.fees + (entry.interest or ZERO)


def normalize_entry(entry: LedgerEntry, today: date) -> LedgerEntry:
    """Recompute the net amount and stamp missing paid dates."""
    changes: dict[str, Any] = {"amount_net": expected_net(entry)}
    if entry.status == EntryStatus.SETTLED and entry.paid_date is None:
        changes["paid_date"] = today
    return replace(entry, **changes)


def member_values(record: Any) -> tuple[date, Decimal]:
    """Date and amount a group member contributes, in its own field names."""
    if isinstance(record, LedgerEntry):
        return record.due_date, record.amount_gross
    return record.date, record.amount


@dataclass
class Draft:
    """Mutable working copy of the linked collections."""

    movements: dict[str, LedgerEntry]
    investments: dict[str, InvestmentTransaction]
    sales: dict[str, SaleRecord]
    today: date

    @classmethod
    def from_store(cls, store: LedgerStore, today: date) -> "Draft":
        return cls(
            movements={m.id: m for m in store.movements},
            investments={inv.id: inv for inv in store.partner_investments},
            sales={s.id: s for s in store.sales},
            today=today,
        )

    def to_store(self, store: LedgerStore) -> LedgerStore:
        return (
            store.with_collection(Collection.MOVEMENTS, self.movements.values())
            .with_collection(Collection.PARTNER_INVESTMENTS, self.investments.values())
            .with_collection(Collection.SALES, self.sales.values())
        )

    def push_into_entry(self, movement_id: str, day: date, amount: Decimal) -> None:
        entry = self.movements.get(movement_id)
        if entry is None:
            return
        updated = replace(
            entry,
            due_date=day,
            amount_gross=amount,
            paid_date=day if entry.is_settled else entry.paid_date,
        )
        self.movements[movement_id] = normalize_entry(updated, self.today)

    def push_into_investment(self, investment_id: str, day: date, amount: Decimal) -> None:
        inv = self.investments.get(investment_id)
        if inv is None:
            return
        self.investments[investment_id] = replace(inv, date=day, amount=amount)


PropagationRule = Callable[[Draft, LinkIndex, Any, Optional[SaleAdjustment]], None]


def sync_sale_fields(
    draft: Draft,
    index: LinkIndex,
    record: Any,
    adjustment: Optional[SaleAdjustment],
) -> None:
    """Feed a sale-settlement entry's values back into its sale."""
    link = index.link_of(record, LinkKind.SALE_SETTLEMENT)
    if link is None:
        return
    sale = draft.sales.get(link.key)
    if sale is None:
        return

    changes: dict[str, Any] = {}
    if sale.tax != record.fees:
        changes["tax"] = record.fees

    if adjustment is not None:
        if sale.freight != adjustment.freight:
            changes["freight"] = adjustment.freight
        if sale.quantity > 0:
            unit_price = round_money(adjustment.product_value / sale.quantity)
            if unit_price != sale.unit_price:
                changes["unit_price"] = unit_price
    elif abs(sale.implied_gross - record.amount_gross) > SALE_GROSS_TOLERANCE:
        # Without explicit values the whole gross delta is attributed to price,
        # even when freight is what changed.
        if sale.quantity > 0:
            changes["unit_price"] = round_money(
                (record.amount_gross - sale.freight) / sale.quantity
            )

    received = SaleTrackingStatus.PAYMENT_RECEIVED
    if record.is_settled and sale.status.rank < received.rank:
        stamp = record.paid_date or draft.today
        changes["status"] = received
        changes["status_timestamps"] = {
            **sale.status_timestamps,
            received.value: stamp.isoformat(),
        }

    if changes:
        logger.debug("Sale %s updated from entry %s: %s", sale.id, record.id, sorted(changes))
        draft.sales[sale.id] = replace(sale, **changes)


def _sync_group_members(draft: Draft, link: Link, source_id: str, day: date, amount: Decimal) -> None:
    for movement_id in link.movement_ids:
        if movement_id != source_id:
            draft.push_into_entry(movement_id, day, amount)
    for investment_id in link.investment_ids:
        if investment_id != source_id:
            draft.push_into_investment(investment_id, day, amount)
    logger.debug(
        "Group %s synced from %s (%d entries, %d investments)",
        link.key,
        source_id,
        len(link.movement_ids),
        len(link.investment_ids),
    )


def sync_group(
    draft: Draft,
    index: LinkIndex,
    record: Any,
    adjustment: Optional[SaleAdjustment],
) -> None:
    """Give every member of the record's group the record's date and amount."""
    link = index.link_of(record, LinkKind.GROUP)
    if link is None:
        return
    day, amount = member_values(record)
    _sync_group_members(draft, link, record.id, day, amount)


def sync_mirror(
    draft: Draft,
    index: LinkIndex,
    record: Any,
    adjustment: Optional[SaleAdjustment],
) -> None:
    """Keep an investment transaction and its linked entry in step.

    An entry pushes its net amount into the investments mirroring it and an
    investment pushes its amount into its entry. Only ungrouped records are
    mirrored; grouped ones are handled by ``sync_group``.
    """
    if index.link_of(record, LinkKind.GROUP) is not None:
        return
    link = index.link_of(record, LinkKind.MIRROR)
    if link is None:
        return
    if isinstance(record, LedgerEntry):
        for investment_id in link.investment_ids:
            draft.push_into_investment(investment_id, record.due_date, record.amount_net)
    else:
        for movement_id in link.movement_ids:
            draft.push_into_entry(movement_id, record.date, record.amount)


PROPAGATION_RULES: tuple[tuple[str, PropagationRule], ...] = (
    ("derived-field-sync", sync_sale_fields),
    ("group-sync", sync_group),
    ("mirror-sync", sync_mirror),
)


def propagate(
    store: LedgerStore,
    record: Any,
    today: date,
    adjustment: Optional[SaleAdjustment] = None,
) -> LedgerStore:
    """Apply every propagation rule for a record already written to ``store``."""
    index = LinkIndex(store)
    draft = Draft.from_store(store, today)
    for name, rule in PROPAGATION_RULES:
        logger.debug("Applying %s for %s", name, record.id)
        rule(draft, index, record, adjustment)
    return draft.to_store(store)


def check_invariants(store: LedgerStore, group_ids: Optional[set[str]] = None) -> None:
    """Verify net amounts and group agreement.

    Args:
        store: Snapshot to check
        group_ids: Optional subset of groups to check; when given, only
            entries belonging to those groups have their net amount checked

    Raises:
        ConsistencyViolation: If any entry's net amount or any group disagrees
    """
    for entry in store.movements:
        if group_ids is not None and entry.group_id not in group_ids:
            continue
        if abs(entry.amount_net - expected_net(entry)) > NET_TOLERANCE:
            raise ConsistencyViolation(
                f"Entry {entry.id} has net {entry.amount_net}, expected {expected_net(entry)}"
            )

    groups: dict[str, set[tuple[date, Decimal]]] = {}
    for record in (*store.movements, *store.partner_investments):
        if not record.group_id:
            continue
        if group_ids is not None and record.group_id not in group_ids:
            continue
        groups.setdefault(record.group_id, set()).add(member_values(record))
    for group_id, values in groups.items():
        if len(values) > 1:
            raise ConsistencyViolation(f"Group {group_id} members disagree: {sorted(values)}")
