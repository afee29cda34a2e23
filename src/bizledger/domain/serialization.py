"""Conversion between domain entities and the persisted JSON document.

The persisted document is a single JSON object with one array per
collection, keyed by the collection name (``accounts``, ``movements``,
``sales``, ``partnerInvestments`` ...). Field names inside records are
camelCase. Older documents written by previous versions of the application
used different field names and Portuguese enum values; decoding migrates
those transparently.
"""

import copy
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from bizledger.domain.entities import (
    COLLECTION_TYPES,
    ZERO,
    AccountKind,
    CategoryType,
    Collection,
    EntryKind,
    EntryOrigin,
    EntryStatus,
    InvestmentType,
    LedgerStore,
    SaleTrackingStatus,
)
from bizledger.domain.errors import ValidationError, unknown_collection


def _to_str(value: Any) -> str:
    return str(value)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount {value!r}")
    try:
        # str() first so floats keep their shortest decimal representation
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid amount {value!r}") from e


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid integer {value!r}")
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid integer {value!r}") from e
    if number != number.to_integral_value():
        raise ValidationError(f"Invalid integer {value!r}")
    return int(number)


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise ValidationError(f"Invalid date {value!r}") from e


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "ativo", "active")
    return bool(value)


def _to_timestamps(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise ValidationError(f"Invalid status timestamps {value!r}")
    result = {}
    for key, stamp in value.items():
        status = _enum(SaleTrackingStatus, _LEGACY_SALE_STATUS)(key)
        result[status.value] = str(stamp)
    return result


def _enum(enum_cls: type[Enum], legacy: Optional[Mapping[str, Enum]] = None) -> Callable[[Any], Enum]:
    def decode(value: Any) -> Enum:
        if isinstance(value, enum_cls):
            return value
        if legacy and value in legacy:
            return legacy[value]
        try:
            return enum_cls(value)
        except ValueError as e:
            raise ValidationError(
                f"Invalid {enum_cls.__name__} value {value!r}"
            ) from e

    return decode


_LEGACY_ENTRY_KIND = {
    "RECEITA": EntryKind.INCOME,
    "DESPESA": EntryKind.EXPENSE,
    "TRANSFERENCIA": EntryKind.TRANSFER,
}

# Oldest documents stored the direction in a ``type`` field instead of ``kind``
_LEGACY_ENTRY_TYPE = {
    "Receber": EntryKind.INCOME,
    "Pagar": EntryKind.EXPENSE,
    "Transferência": EntryKind.TRANSFER,
}

_LEGACY_ENTRY_STATUS = {
    "Pendente": EntryStatus.OPEN,
    "PENDENTE": EntryStatus.OPEN,
    "Vencido": EntryStatus.OPEN,
    "OVERDUE": EntryStatus.OPEN,
    "Baixado": EntryStatus.SETTLED,
    "BAIXADO": EntryStatus.SETTLED,
}

_LEGACY_ORIGIN = {
    "Venda": EntryOrigin.SALE,
    "Investimento": EntryOrigin.INVESTMENT,
    "Receita avulsa": EntryOrigin.MANUAL_INCOME,
    "Despesa": EntryOrigin.EXPENSE,
    "Transferência": EntryOrigin.TRANSFER,
    "Resgate (Retirada)": EntryOrigin.WITHDRAWAL,
    "Compra de Produto": EntryOrigin.PRODUCT_PURCHASE,
    "Outro": EntryOrigin.OTHER,
}

_LEGACY_ACCOUNT_KIND = {
    "Banco": AccountKind.BANK,
    "Caixa": AccountKind.CASH,
    "Cartão de Crédito": AccountKind.CARD,
    "Investimento": AccountKind.INVESTMENT,
}

_LEGACY_SALE_STATUS = {
    "Venda Realizada": SaleTrackingStatus.SALE_MADE,
    "Comprar o Item": SaleTrackingStatus.BUY_ITEM,
    "Aguardando Envio": SaleTrackingStatus.AWAITING_SHIPMENT,
    "Aguardando Entrega": SaleTrackingStatus.AWAITING_DELIVERY,
    "Entregue": SaleTrackingStatus.DELIVERED,
    "Pag. Recebido": SaleTrackingStatus.PAYMENT_RECEIVED,
}

_LEGACY_INVESTMENT_TYPE = {
    "APORTE": InvestmentType.CONTRIBUTION,
    "RENDIMENTO": InvestmentType.YIELD,
    "RESGATE": InvestmentType.WITHDRAWAL,
    "TRANSFERENCIA": InvestmentType.TRANSFER,
}

# "Investimento" categories were folded into expenses
_LEGACY_CATEGORY_TYPE = {
    "Receita": CategoryType.INCOME,
    "Despesa": CategoryType.EXPENSE,
    "Investimento": CategoryType.EXPENSE,
}


@dataclass(frozen=True)
class _Field:
    attribute: str
    key: str
    decode: Callable[[Any], Any]
    required: bool = False
    legacy: tuple[str, ...] = ()


_SCHEMAS: dict[Collection, tuple[_Field, ...]] = {
    Collection.ACCOUNTS: (
        _Field("id", "id", _to_str, required=True),
        _Field("name", "name", _to_str, required=True),
        _Field("kind", "kind", _enum(AccountKind, _LEGACY_ACCOUNT_KIND), required=True, legacy=("type",)),
        _Field("opening_balance", "openingBalance", _to_decimal, legacy=("initialBalance",)),
        _Field("closing_day", "closingDay", _to_int, legacy=("cardClosingDay",)),
        _Field("due_day", "dueDay", _to_int, legacy=("cardDueDate",)),
        _Field("credit_limit", "limit", _to_decimal, legacy=("cardLimit",)),
    ),
    Collection.CATEGORIES: (
        _Field("id", "id", _to_str, required=True),
        _Field("name", "name", _to_str, required=True),
        _Field("type", "type", _enum(CategoryType, _LEGACY_CATEGORY_TYPE)),
    ),
    Collection.CONTACTS: (
        _Field("id", "id", _to_str, required=True),
        _Field("name", "name", _to_str, required=True),
        _Field("type", "type", _to_str),
    ),
    Collection.PRODUCTS: (
        _Field("id", "id", _to_str, required=True),
        _Field("name", "name", _to_str, required=True),
        _Field("cost", "cost", _to_decimal),
    ),
    Collection.PARTNER_ACCOUNTS: (
        _Field("id", "id", _to_str, required=True),
        _Field("name", "name", _to_str, required=True),
        _Field("contact_id", "contactId", _to_str),
        _Field("active", "active", _to_bool, legacy=("status",)),
    ),
    Collection.SALES: (
        _Field("id", "id", _to_str, required=True),
        _Field("product_id", "productId", _to_str, required=True),
        _Field("customer_id", "customerId", _to_str, required=True),
        _Field("quantity", "quantity", _to_int, required=True),
        _Field("unit_price", "unitPrice", _to_decimal, required=True),
        _Field("discount", "discount", _to_decimal),
        _Field("freight", "freight", _to_decimal),
        _Field("tax", "tax", _to_decimal),
        _Field("sale_date", "saleDate", _to_date),
        _Field("status", "status", _enum(SaleTrackingStatus, _LEGACY_SALE_STATUS)),
        _Field("purchase_movement_id", "purchaseMovementId", _to_str),
        _Field("status_timestamps", "statusTimestamps", _to_timestamps),
        _Field("additional_cost", "additionalCost", _to_decimal),
    ),
    Collection.PARTNER_INVESTMENTS: (
        _Field("id", "id", _to_str, required=True),
        _Field("partner_account_id", "partnerAccountId", _to_str, required=True),
        _Field("date", "date", _to_date, required=True),
        _Field("type", "type", _enum(InvestmentType, _LEGACY_INVESTMENT_TYPE), required=True),
        _Field("amount", "amount", _to_decimal, required=True),
        _Field("contra_account_id", "contraAccountId", _to_str),
        _Field("linked_movement_id", "linkedMovementId", _to_str),
        _Field("group_id", "groupId", _to_str),
        _Field("note", "note", _to_str),
    ),
    Collection.MOVEMENTS: (
        _Field("id", "id", _to_str, required=True),
        _Field("kind", "kind", _enum(EntryKind, _LEGACY_ENTRY_KIND), required=True),
        _Field("account_id", "accountId", _to_str, required=True),
        _Field("due_date", "dueDate", _to_date, required=True),
        _Field("amount_gross", "amountGross", _to_decimal, required=True, legacy=("grossValue",)),
        _Field("description", "description", _to_str),
        _Field("origin", "origin", _enum(EntryOrigin, _LEGACY_ORIGIN)),
        _Field("status", "status", _enum(EntryStatus, _LEGACY_ENTRY_STATUS)),
        _Field("fees", "fees", _to_decimal),
        _Field("interest", "interest", _to_decimal),
        _Field("amount_net", "amountNet", _to_decimal),
        _Field("destination_account_id", "destinationAccountId", _to_str),
        _Field("category_id", "categoryId", _to_str),
        _Field("contact_id", "contactId", _to_str),
        _Field("transaction_date", "transactionDate", _to_date),
        _Field("paid_date", "paidDate", _to_date),
        _Field("reference_id", "referenceId", _to_str),
        _Field("group_id", "groupId", _to_str),
        _Field("parent_movement_id", "parentMovementId", _to_str),
        _Field("installment_number", "installmentNumber", _to_int),
        _Field("total_installments", "totalInstallments", _to_int),
    ),
}


def _known_keys(collection: Collection) -> set[str]:
    keys = set()
    for field_def in _SCHEMAS[collection]:
        keys.add(field_def.key)
        keys.update(field_def.legacy)
    return keys


def resolve_collection(collection: Collection | str) -> Collection:
    try:
        return Collection(collection)
    except ValueError as e:
        raise ValidationError(unknown_collection(collection)) from e


def _prepare_movement(data: dict[str, Any]) -> dict[str, Any]:
    """Migrate the legacy ``type`` direction field and fill ``amountNet``."""
    data = dict(data)
    legacy_type = data.pop("type", None)
    if "kind" not in data and legacy_type in _LEGACY_ENTRY_TYPE:
        data["kind"] = _LEGACY_ENTRY_TYPE[legacy_type]
    return data


def item_from_dict(collection: Collection | str, data: Mapping[str, Any]) -> Any:
    """Decode one persisted record into its domain entity.

    Keys the record type does not model are kept in the entity's ``extra``.

    Raises:
        ValidationError: If the record is malformed or misses a required field
    """
    collection = resolve_collection(collection)
    if not isinstance(data, Mapping):
        raise ValidationError(f"Records in {collection.value} must be objects, got {data!r}")
    if collection == Collection.MOVEMENTS:
        data = _prepare_movement(data)

    kwargs: dict[str, Any] = {}
    for field_def in _SCHEMAS[collection]:
        value = data.get(field_def.key)
        if value is None:
            for legacy_key in field_def.legacy:
                if data.get(legacy_key) is not None:
                    value = data[legacy_key]
                    break
        if value is None:
            if field_def.required:
                raise ValidationError(
                    f"Missing required field '{field_def.key}' in {collection.value}"
                )
            continue
        kwargs[field_def.attribute] = field_def.decode(value)

    known = _known_keys(collection)
    kwargs["extra"] = {
        key: copy.deepcopy(value) for key, value in data.items() if key not in known
    }

    if collection == Collection.MOVEMENTS and "amount_net" not in kwargs:
        kwargs["amount_net"] = (
            kwargs["amount_gross"]
            - kwargs.get("fees", ZERO)
            + (kwargs.get("interest") or ZERO)
        )
    return COLLECTION_TYPES[collection](**kwargs)


def _encode_decimal(value: Decimal) -> int | float:
    """Amounts are stored as plain JSON numbers."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _encode_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return _encode_decimal(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return dict(value)
    return value


def item_to_dict(collection: Collection | str, item: Any) -> dict[str, Any]:
    """Encode one entity into its persisted camelCase shape.

    Fields holding ``None`` are omitted. Unmodelled keys carried in
    ``extra`` are written back alongside the modelled ones.
    """
    collection = resolve_collection(collection)
    result: dict[str, Any] = copy.deepcopy(item.extra)
    for field_def in _SCHEMAS[collection]:
        value = getattr(item, field_def.attribute)
        if value is None:
            continue
        result[field_def.key] = _encode_value(value)
    return result


def default_document() -> dict[str, Any]:
    """Return the empty document every stored document is merged onto."""
    return {collection.value: [] for collection in Collection}


def deep_merge(initial: Any, stored: Any) -> Any:
    """Merge a stored document onto a default one.

    Objects merge key by key recursively; arrays and primitives are replaced
    wholesale by the stored value when present.
    """
    if not isinstance(initial, dict) or not isinstance(stored, dict):
        return stored

    merged = dict(initial)
    for key, stored_value in stored.items():
        initial_value = merged.get(key)
        if isinstance(initial_value, dict) and isinstance(stored_value, dict):
            merged[key] = deep_merge(initial_value, stored_value)
        else:
            merged[key] = stored_value
    return merged


def document_from_store(store: LedgerStore) -> dict[str, Any]:
    """Encode a snapshot into a JSON-serializable document."""
    document: dict[str, Any] = copy.deepcopy(store.extras)
    for collection in Collection:
        document[collection.value] = [
            item_to_dict(collection, item) for item in store.collection(collection)
        ]
    return document


def store_from_document(document: Mapping[str, Any]) -> LedgerStore:
    """Decode a persisted document, merged onto the default document.

    Raises:
        ValidationError: If a collection is not a list or a record is malformed
    """
    if not isinstance(document, Mapping):
        raise ValidationError("Persisted document must be an object")
    merged = deep_merge(default_document(), dict(document))

    collections: dict[str, tuple] = {}
    for collection in Collection:
        records = merged[collection.value]
        if not isinstance(records, list):
            raise ValidationError(f"Collection {collection.value} must be a list")
        collections[collection.attribute] = tuple(
            item_from_dict(collection, record) for record in records
        )

    known = {collection.value for collection in Collection}
    extras = {
        key: copy.deepcopy(value) for key, value in merged.items() if key not in known
    }
    return LedgerStore(extras=extras, **collections)
