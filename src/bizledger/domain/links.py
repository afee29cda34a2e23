"""Cross-record linkage index.

Ledger entries, investment transactions and sales reference each other
through loose string ids. ``LinkIndex`` scans a snapshot once and exposes
those references as tagged relations so cascades never rescan collections.
"""

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from bizledger.domain.entities import (
    EntryOrigin,
    InvestmentTransaction,
    LedgerEntry,
    LedgerStore,
    SaleRecord,
)


class LinkKind(str, Enum):
    # records sharing a group_id, across both collections
    GROUP = "group"
    # investment transaction -> ledger entry via linked_movement_id
    MIRROR = "mirror"
    # origin=SALE ledger entry -> sale via reference_id
    SALE_SETTLEMENT = "sale_settlement"


@dataclass(frozen=True)
class Link:
    kind: LinkKind
    key: str
    movement_ids: tuple[str, ...] = ()
    investment_ids: tuple[str, ...] = ()
    sale_ids: tuple[str, ...] = ()


class LinkIndex:
    """Id maps and reverse references for one snapshot."""

    def __init__(self, store: LedgerStore):
        self.movements: dict[str, LedgerEntry] = {m.id: m for m in store.movements}
        self.investments: dict[str, InvestmentTransaction] = {
            inv.id: inv for inv in store.partner_investments
        }
        self.sales: dict[str, SaleRecord] = {s.id: s for s in store.sales}

        self._group_movements: dict[str, list[str]] = defaultdict(list)
        self._group_investments: dict[str, list[str]] = defaultdict(list)
        self._mirrors: dict[str, list[str]] = defaultdict(list)
        self._purchase_refs: dict[str, list[str]] = defaultdict(list)

        for entry in store.movements:
            if entry.group_id:
                self._group_movements[entry.group_id].append(entry.id)
        for inv in store.partner_investments:
            if inv.group_id:
                self._group_investments[inv.group_id].append(inv.id)
            if inv.linked_movement_id:
                self._mirrors[inv.linked_movement_id].append(inv.id)
        for sale in store.sales:
            if sale.purchase_movement_id:
                self._purchase_refs[sale.purchase_movement_id].append(sale.id)

    def group(self, group_id: str) -> Link:
        return Link(
            kind=LinkKind.GROUP,
            key=group_id,
            movement_ids=tuple(self._group_movements.get(group_id, ())),
            investment_ids=tuple(self._group_investments.get(group_id, ())),
        )

    def mirrors_of(self, movement_id: str) -> Link:
        """Investment transactions whose ``linked_movement_id`` is this entry."""
        return Link(
            kind=LinkKind.MIRROR,
            key=movement_id,
            movement_ids=(movement_id,),
            investment_ids=tuple(self._mirrors.get(movement_id, ())),
        )

    def settled_sale(self, entry: LedgerEntry) -> Optional[SaleRecord]:
        """Sale fed by a sale-settlement entry, if it still exists."""
        if entry.origin != EntryOrigin.SALE or not entry.reference_id:
            return None
        return self.sales.get(entry.reference_id)

    def sales_costed_by(self, movement_id: str) -> tuple[str, ...]:
        """Sales whose ``purchase_movement_id`` points at this entry."""
        return tuple(self._purchase_refs.get(movement_id, ()))

    def links_for(self, record: Any) -> list[Link]:
        """Every tagged relation a ledger entry or investment takes part in."""
        if isinstance(record, LedgerEntry):
            return self._links_for_movement(record)
        if isinstance(record, InvestmentTransaction):
            return self._links_for_investment(record)
        return []

    def link_of(self, record: Any, kind: LinkKind) -> Optional[Link]:
        for link in self.links_for(record):
            if link.kind == kind:
                return link
        return None

    def _links_for_movement(self, entry: LedgerEntry) -> list[Link]:
        links = []
        sale = self.settled_sale(entry)
        if sale is not None:
            links.append(
                Link(
                    kind=LinkKind.SALE_SETTLEMENT,
                    key=sale.id,
                    movement_ids=(entry.id,),
                    sale_ids=(sale.id,),
                )
            )
        if entry.group_id:
            links.append(self.group(entry.group_id))
        mirror = self.mirrors_of(entry.id)
        if mirror.investment_ids:
            links.append(mirror)
        return links

    def _links_for_investment(self, inv: InvestmentTransaction) -> list[Link]:
        links = []
        if inv.group_id:
            links.append(self.group(inv.group_id))
        if inv.linked_movement_id:
            links.append(
                Link(
                    kind=LinkKind.MIRROR,
                    key=inv.linked_movement_id,
                    movement_ids=(inv.linked_movement_id,),
                    investment_ids=(inv.id,),
                )
            )
        return links
