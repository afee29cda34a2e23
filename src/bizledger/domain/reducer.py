"""Consistency reducer: the only way to mutate a ledger snapshot.

``apply(store, operation)`` returns a new ``LedgerStore`` or raises; the
input snapshot is never modified, so a failed operation leaves the caller's
store exactly as it was.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from bizledger.domain.entities import (
    COLLECTION_TYPES,
    Account,
    Collection,
    EntryKind,
    InvestmentTransaction,
    LedgerEntry,
    LedgerStore,
    SaleAdjustment,
    SaleRecord,
)
from bizledger.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    account_delete_blocked,
    account_not_found,
    duplicate_record,
    record_not_found,
)
from bizledger.domain.links import LinkIndex, LinkKind
from bizledger.domain.propagation import (
    check_invariants,
    member_values,
    normalize_entry,
    propagate,
)
from bizledger.domain.serialization import item_from_dict, resolve_collection

logger = logging.getLogger(__name__)

LINKED_COLLECTIONS = (Collection.MOVEMENTS, Collection.PARTNER_INVESTMENTS)


@dataclass(frozen=True)
class Add:
    collection: Union[Collection, str]
    item: Any


@dataclass(frozen=True)
class AddMany:
    collection: Union[Collection, str]
    items: Sequence[Any]


@dataclass(frozen=True)
class Update:
    """Replace one record by id.

    ``sale_adjustment`` carries explicit freight and product value for a
    sale-settlement entry; without it the sale's unit price is inferred from
    the entry's gross amount.
    """

    collection: Union[Collection, str]
    item: Any
    sale_adjustment: Optional[SaleAdjustment] = None


@dataclass(frozen=True)
class Delete:
    collection: Union[Collection, str]
    id: str


@dataclass(frozen=True)
class DeleteMany:
    collection: Union[Collection, str]
    ids: Sequence[str]


@dataclass(frozen=True)
class Replace:
    collection: Union[Collection, str]
    items: Sequence[Any]


Operation = Union[Add, AddMany, Update, Delete, DeleteMany, Replace]


def _coerce(collection: Collection, item: Any, today: date) -> Any:
    """Turn a mapping or entity into a normalized entity of the collection type."""
    if isinstance(item, Mapping):
        item = item_from_dict(collection, item)
    expected = COLLECTION_TYPES[collection]
    if not isinstance(item, expected):
        raise ValidationError(
            f"Expected {expected.__name__} for {collection.value}, got {type(item).__name__}"
        )
    if not item.id:
        raise ValidationError(f"Records in {collection.value} need an id")
    if isinstance(item, LedgerEntry):
        item = normalize_entry(item, today)
    return item


def _require_account(store: LedgerStore, account_id: Optional[str]) -> None:
    if account_id is not None and store.get_account(account_id) is None:
        raise NotFoundError(account_not_found(account_id))


def _validate_account(store: LedgerStore, account: Account) -> None:
    for label, day in (("closing day", account.closing_day), ("due day", account.due_day)):
        if day is not None and not 1 <= day <= 31:
            raise ValidationError(f"Account '{account.id}' {label} must be between 1 and 31, got {day}")
    if account.credit_limit is not None and account.credit_limit < 0:
        raise ValidationError(f"Account '{account.id}' credit limit cannot be negative")


def _validate_entry(store: LedgerStore, entry: LedgerEntry) -> None:
    if entry.amount_gross < 0:
        raise ValidationError(f"Entry '{entry.id}' gross amount cannot be negative")
    if entry.fees < 0:
        raise ValidationError(f"Entry '{entry.id}' fees cannot be negative")
    if entry.interest is not None and entry.interest < 0:
        raise ValidationError(f"Entry '{entry.id}' interest cannot be negative")
    _require_account(store, entry.account_id)
    if entry.kind == EntryKind.TRANSFER:
        if entry.destination_account_id is None:
            raise ValidationError(f"Transfer '{entry.id}' needs a destination account")
        if entry.destination_account_id == entry.account_id:
            raise ValidationError(f"Transfer '{entry.id}' cannot target its source account")
    _require_account(store, entry.destination_account_id)


def _validate_sale(store: LedgerStore, sale: SaleRecord) -> None:
    if sale.quantity < 0:
        raise ValidationError(f"Sale '{sale.id}' quantity cannot be negative")
    if sale.unit_price < 0:
        raise ValidationError(f"Sale '{sale.id}' unit price cannot be negative")
    if sale.purchase_movement_id and store.find(Collection.MOVEMENTS, sale.purchase_movement_id) is None:
        raise NotFoundError(record_not_found(Collection.MOVEMENTS.value, sale.purchase_movement_id))


def _validate_investment(store: LedgerStore, inv: InvestmentTransaction) -> None:
    if inv.amount <= 0:
        raise ValidationError(f"Investment '{inv.id}' amount must be positive")
    if store.find(Collection.PARTNER_ACCOUNTS, inv.partner_account_id) is None:
        raise NotFoundError(
            record_not_found(Collection.PARTNER_ACCOUNTS.value, inv.partner_account_id)
        )
    _require_account(store, inv.contra_account_id)
    if inv.linked_movement_id and store.find(Collection.MOVEMENTS, inv.linked_movement_id) is None:
        raise NotFoundError(record_not_found(Collection.MOVEMENTS.value, inv.linked_movement_id))


_VALIDATORS = {
    Account: _validate_account,
    LedgerEntry: _validate_entry,
    SaleRecord: _validate_sale,
    InvestmentTransaction: _validate_investment,
}


def _validate(store: LedgerStore, item: Any) -> None:
    validator = _VALIDATORS.get(type(item))
    if validator is not None:
        validator(store, item)


def _check_joins_group(store: LedgerStore, item: Any) -> None:
    """A record added to an existing group must agree with its members."""
    if not isinstance(item, (LedgerEntry, InvestmentTransaction)) or not item.group_id:
        return
    link = LinkIndex(store).group(item.group_id)
    members = [store.find(Collection.MOVEMENTS, mid) for mid in link.movement_ids]
    members += [store.find(Collection.PARTNER_INVESTMENTS, iid) for iid in link.investment_ids]
    for member in members:
        if member_values(member) != member_values(item):
            raise ValidationError(
                f"Record '{item.id}' disagrees with group '{item.group_id}' on date or amount"
            )


def _add(store: LedgerStore, collection: Collection, item: Any, today: date) -> LedgerStore:
    item = _coerce(collection, item, today)
    if store.find(collection, item.id) is not None:
        raise ConflictError(duplicate_record(collection.value, item.id))
    _validate(store, item)
    _check_joins_group(store, item)
    return store.with_collection(collection, (*store.collection(collection), item))


def _apply_add(store: LedgerStore, op: Add, today: date) -> LedgerStore:
    return _add(store, resolve_collection(op.collection), op.item, today)


def _apply_add_many(store: LedgerStore, op: AddMany, today: date) -> LedgerStore:
    collection = resolve_collection(op.collection)
    for item in op.items:
        store = _add(store, collection, item, today)
    return store


def _apply_update(store: LedgerStore, op: Update, today: date) -> LedgerStore:
    collection = resolve_collection(op.collection)
    item = _coerce(collection, op.item, today)
    records = list(store.collection(collection))
    for position, existing in enumerate(records):
        if existing.id == item.id:
            break
    else:
        raise NotFoundError(record_not_found(collection.value, item.id))

    _validate(store, item)
    records[position] = item
    store = store.with_collection(collection, records)

    if collection not in LINKED_COLLECTIONS:
        return store

    store = propagate(store, item, today, op.sale_adjustment)
    if item.group_id:
        check_invariants(store, group_ids={item.group_id})
    return store


def _delete_cascade(index: LinkIndex, collection: Collection, record_id: str) -> tuple[set[str], set[str]]:
    """Return the (movement ids, investment ids) removed by deleting one record."""
    if collection == Collection.MOVEMENTS:
        record = index.movements.get(record_id)
    else:
        record = index.investments.get(record_id)
    if record is None:
        raise NotFoundError(record_not_found(collection.value, record_id))

    group = index.link_of(record, LinkKind.GROUP)
    if group is not None:
        return set(group.movement_ids), set(group.investment_ids)

    movement_ids: set[str] = set()
    investment_ids: set[str] = set()
    if isinstance(record, InvestmentTransaction):
        investment_ids.add(record.id)
    else:
        movement_ids.add(record.id)
    for link in index.links_for(record):
        if link.kind == LinkKind.MIRROR:
            movement_ids.update(link.movement_ids)
            investment_ids.update(link.investment_ids)
    return movement_ids, investment_ids


def _remove_linked(store: LedgerStore, movement_ids: set[str], investment_ids: set[str]) -> LedgerStore:
    logger.debug(
        "Removing %d entries and %d investments", len(movement_ids), len(investment_ids)
    )
    index = LinkIndex(store)
    orphaned_sales = {
        sale_id for mid in movement_ids for sale_id in index.sales_costed_by(mid)
    }
    sales = [
        _clear_purchase_link(sale) if sale.id in orphaned_sales else sale
        for sale in store.sales
    ]
    return (
        store.with_collection(
            Collection.MOVEMENTS, (m for m in store.movements if m.id not in movement_ids)
        )
        .with_collection(
            Collection.PARTNER_INVESTMENTS,
            (inv for inv in store.partner_investments if inv.id not in investment_ids),
        )
        .with_collection(Collection.SALES, sales)
    )


def _clear_purchase_link(sale: SaleRecord) -> SaleRecord:
    return replace(sale, purchase_movement_id=None)


def _remove_plain(store: LedgerStore, collection: Collection, ids: Iterable[str]) -> LedgerStore:
    ids = set(ids)
    present = {item.id for item in store.collection(collection)}
    missing = sorted(ids - present)
    if missing:
        raise NotFoundError(record_not_found(collection.value, missing[0]))

    if collection == Collection.ACCOUNTS:
        for account_id in sorted(ids):
            count = sum(1 for m in store.movements if m.touches(account_id))
            if count:
                raise DependencyError(account_delete_blocked(account_id, count))

    return store.with_collection(
        collection, (item for item in store.collection(collection) if item.id not in ids)
    )


def _apply_delete(store: LedgerStore, op: Delete, today: date) -> LedgerStore:
    return _apply_delete_many(store, DeleteMany(op.collection, (op.id,)), today)


def _apply_delete_many(store: LedgerStore, op: DeleteMany, today: date) -> LedgerStore:
    collection = resolve_collection(op.collection)
    if collection not in LINKED_COLLECTIONS:
        return _remove_plain(store, collection, op.ids)

    index = LinkIndex(store)
    movement_ids: set[str] = set()
    investment_ids: set[str] = set()
    for record_id in op.ids:
        cascaded_movements, cascaded_investments = _delete_cascade(index, collection, record_id)
        movement_ids |= cascaded_movements
        investment_ids |= cascaded_investments
    return _remove_linked(store, movement_ids, investment_ids)


def _apply_replace(store: LedgerStore, op: Replace, today: date) -> LedgerStore:
    collection = resolve_collection(op.collection)
    items = [_coerce(collection, item, today) for item in op.items]
    seen: set[str] = set()
    for item in items:
        if item.id in seen:
            raise ConflictError(duplicate_record(collection.value, item.id))
        seen.add(item.id)
    replaced = store.with_collection(collection, items)
    for item in items:
        _validate(replaced, item)
    return replaced


_HANDLERS = {
    Add: _apply_add,
    AddMany: _apply_add_many,
    Update: _apply_update,
    Delete: _apply_delete,
    DeleteMany: _apply_delete_many,
    Replace: _apply_replace,
}


def apply(store: LedgerStore, operation: Operation, today: Optional[date] = None) -> LedgerStore:
    """Apply one operation and return the next snapshot.

    Args:
        store: Current snapshot (left untouched)
        operation: Add, AddMany, Update, Delete, DeleteMany or Replace
        today: Date used to stamp settlements missing a paid date

    Returns:
        New snapshot with the mutation and all cascades applied

    Raises:
        ValidationError: If the collection, item or a referenced id is invalid
        NotFoundError: If an updated or deleted id does not exist
        DependencyError: If an account still has ledger entries
    """
    handler = _HANDLERS.get(type(operation))
    if handler is None:
        raise ValidationError(f"Unsupported operation {operation!r}")
    result = handler(store, operation, today or date.today())
    logger.debug("Applied %s to %s", type(operation).__name__, operation.collection)
    return result


def apply_all(
    store: LedgerStore, operations: Iterable[Operation], today: Optional[date] = None
) -> LedgerStore:
    """Apply operations in order; either all of them take effect or none."""
    for operation in operations:
        store = apply(store, operation, today)
    return store
