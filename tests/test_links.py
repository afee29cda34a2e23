"""Tests for the cross-record link index."""

from datetime import date
from decimal import Decimal

from bizledger.domain.entities import (
    Collection,
    EntryKind,
    EntryOrigin,
    InvestmentTransaction,
    InvestmentType,
    LedgerStore,
    PartnerAccount,
    SaleRecord,
)
from bizledger.domain.links import LinkIndex, LinkKind

DAY = date(2026, 3, 1)


def _investment(inv_id, **fields):
    return InvestmentTransaction(
        id=inv_id,
        partner_account_id="pa1",
        date=DAY,
        type=InvestmentType.CONTRIBUTION,
        amount=Decimal("100"),
        **fields,
    )


def _store(accounts, make_entry):
    return LedgerStore(
        accounts=accounts,
        partner_accounts=(PartnerAccount(id="pa1", name="Ana"),),
        movements=(
            make_entry("g-entry", kind=EntryKind.INCOME, group_id="g1"),
            make_entry("mirrored", kind=EntryKind.INCOME),
            make_entry("settle", kind=EntryKind.INCOME, origin=EntryOrigin.SALE, reference_id="s1"),
        ),
        partner_investments=(
            _investment("g-inv", group_id="g1"),
            _investment("mirror-a", linked_movement_id="mirrored"),
            _investment("mirror-b", linked_movement_id="mirrored"),
        ),
        sales=(
            SaleRecord(
                id="s1", product_id="p1", customer_id="c1", quantity=1,
                unit_price=Decimal("100"), sale_date=DAY,
            ),
        ),
    )


def test_group_link_spans_both_collections(accounts, make_entry):
    store = _store(accounts, make_entry)
    index = LinkIndex(store)

    link = index.link_of(store.find(Collection.MOVEMENTS, "g-entry"), LinkKind.GROUP)

    assert link.key == "g1"
    assert link.movement_ids == ("g-entry",)
    assert link.investment_ids == ("g-inv",)


def test_entry_mirror_link_lists_every_mirroring_investment(accounts, make_entry):
    store = _store(accounts, make_entry)
    index = LinkIndex(store)

    links = index.links_for(store.find(Collection.MOVEMENTS, "mirrored"))

    assert [link.kind for link in links] == [LinkKind.MIRROR]
    assert links[0].investment_ids == ("mirror-a", "mirror-b")


def test_investment_mirror_link_points_at_its_entry(accounts, make_entry):
    store = _store(accounts, make_entry)
    index = LinkIndex(store)

    link = index.link_of(store.find(Collection.PARTNER_INVESTMENTS, "mirror-b"), LinkKind.MIRROR)

    assert link.movement_ids == ("mirrored",)
    assert link.investment_ids == ("mirror-b",)


def test_sale_settlement_link(accounts, make_entry):
    store = _store(accounts, make_entry)
    index = LinkIndex(store)

    link = index.link_of(store.find(Collection.MOVEMENTS, "settle"), LinkKind.SALE_SETTLEMENT)

    assert link.sale_ids == ("s1",)
    assert index.link_of(store.find(Collection.MOVEMENTS, "mirrored"), LinkKind.SALE_SETTLEMENT) is None


def test_records_outside_linked_collections_have_no_links(accounts, make_entry):
    index = LinkIndex(_store(accounts, make_entry))
    assert index.links_for(accounts[0]) == []
