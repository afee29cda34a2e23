"""Domain model entities for bizledger.

These are pure data classes representing business concepts, independent of
how the snapshot is persisted. Every entity is frozen: the reducer builds new
instances with ``dataclasses.replace`` instead of mutating records in place.
Persisted keys a record type does not model travel in its ``extra`` mapping
and are written back unchanged.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


ZERO = Decimal("0")


class Collection(str, Enum):
    """Store collections, valued by their persisted document key."""

    ACCOUNTS = "accounts"
    CATEGORIES = "categories"
    CONTACTS = "contacts"
    PRODUCTS = "products"
    SALES = "sales"
    PARTNER_ACCOUNTS = "partnerAccounts"
    PARTNER_INVESTMENTS = "partnerInvestments"
    MOVEMENTS = "movements"

    @property
    def attribute(self) -> str:
        """Name of the LedgerStore attribute holding this collection."""
        return _COLLECTION_ATTRIBUTES[self]


_COLLECTION_ATTRIBUTES = {
    Collection.ACCOUNTS: "accounts",
    Collection.CATEGORIES: "categories",
    Collection.CONTACTS: "contacts",
    Collection.PRODUCTS: "products",
    Collection.SALES: "sales",
    Collection.PARTNER_ACCOUNTS: "partner_accounts",
    Collection.PARTNER_INVESTMENTS: "partner_investments",
    Collection.MOVEMENTS: "movements",
}


class AccountKind(str, Enum):
    BANK = "bank"
    CASH = "cash"
    CARD = "card"
    INVESTMENT = "investment"


class EntryKind(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"


class EntryStatus(str, Enum):
    """Stored settlement status of a ledger entry."""

    OPEN = "OPEN"
    SETTLED = "SETTLED"


class DisplayStatus(str, Enum):
    """Read-time status label; OVERDUE is never stored."""

    OPEN = "OPEN"
    OVERDUE = "OVERDUE"
    SETTLED = "SETTLED"


class EntryOrigin(str, Enum):
    SALE = "sale"
    INVESTMENT = "investment"
    MANUAL_INCOME = "manual"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    WITHDRAWAL = "withdrawal"
    PRODUCT_PURCHASE = "product_purchase"
    OTHER = "other"


class SaleTrackingStatus(str, Enum):
    """Sale fulfilment steps, declared in lifecycle order."""

    SALE_MADE = "sale_made"
    BUY_ITEM = "buy_item"
    AWAITING_SHIPMENT = "awaiting_shipment"
    AWAITING_DELIVERY = "awaiting_delivery"
    DELIVERED = "delivered"
    PAYMENT_RECEIVED = "payment_received"

    @property
    def rank(self) -> int:
        return list(SaleTrackingStatus).index(self)


class InvestmentType(str, Enum):
    CONTRIBUTION = "CONTRIBUTION"
    YIELD = "YIELD"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER = "TRANSFER"


class CategoryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


@dataclass(frozen=True)
class Account:
    """Bank, cash, card or investment account.

    The balance is never stored; it is always derived from the ledger.
    """

    id: str
    name: str
    kind: AccountKind
    opening_balance: Decimal = ZERO
    closing_day: Optional[int] = None
    due_day: Optional[int] = None
    credit_limit: Optional[Decimal] = None
    extra: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    type: CategoryType = CategoryType.EXPENSE
    extra: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class Contact:
    id: str
    name: str
    type: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    cost: Decimal = ZERO
    extra: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class PartnerAccount:
    id: str
    name: str
    contact_id: Optional[str] = None
    active: bool = True
    extra: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class LedgerEntry:
    """Ledger entry ("movement").

    For TRANSFER entries ``account_id`` is the source account and
    ``destination_account_id`` the destination.
    """

    id: str
    kind: EntryKind
    account_id: str
    due_date: date
    amount_gross: Decimal
    description: str = ""
    origin: EntryOrigin = EntryOrigin.OTHER
    status: EntryStatus = EntryStatus.OPEN
    fees: Decimal = ZERO
    interest: Optional[Decimal] = None
    amount_net: Decimal = ZERO
    destination_account_id: Optional[str] = None
    category_id: Optional[str] = None
    contact_id: Optional[str] = None
    transaction_date: Optional[date] = None
    paid_date: Optional[date] = None
    reference_id: Optional[str] = None
    group_id: Optional[str] = None
    parent_movement_id: Optional[str] = None
    installment_number: Optional[int] = None
    total_installments: Optional[int] = None
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_settled(self) -> bool:
        return self.status == EntryStatus.SETTLED

    @property
    def effective_date(self) -> date:
        """Paid date for settled entries, due date otherwise."""
        if self.is_settled and self.paid_date is not None:
            return self.paid_date
        return self.due_date

    @property
    def card_date(self) -> date:
        """Purchase date used for card billing windows."""
        return self.transaction_date or self.due_date

    def touches(self, account_id: str) -> bool:
        return self.account_id == account_id or self.destination_account_id == account_id

    def display_status(self, today: date) -> DisplayStatus:
        if self.is_settled:
            return DisplayStatus.SETTLED
        if self.effective_date < today:
            return DisplayStatus.OVERDUE
        return DisplayStatus.OPEN


@dataclass(frozen=True)
class SaleRecord:
    """Order side of a commercial transaction.

    Its settlement is the ledger entry with ``origin=SALE`` whose
    ``reference_id`` equals this sale's id.
    """

    id: str
    product_id: str
    customer_id: str
    quantity: int
    unit_price: Decimal
    discount: Decimal = ZERO
    freight: Decimal = ZERO
    tax: Decimal = ZERO
    sale_date: Optional[date] = None
    status: SaleTrackingStatus = SaleTrackingStatus.SALE_MADE
    purchase_movement_id: Optional[str] = None
    status_timestamps: dict[str, str] = field(default_factory=dict)
    additional_cost: Decimal = ZERO
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def implied_gross(self) -> Decimal:
        return self.quantity * self.unit_price + self.freight


@dataclass(frozen=True)
class InvestmentTransaction:
    """Partner investment transaction; ``amount`` is always positive."""

    id: str
    partner_account_id: str
    date: date
    type: InvestmentType
    amount: Decimal
    contra_account_id: Optional[str] = None
    linked_movement_id: Optional[str] = None
    group_id: Optional[str] = None
    note: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict, repr=False)


COLLECTION_TYPES: dict[Collection, type] = {
    Collection.ACCOUNTS: Account,
    Collection.CATEGORIES: Category,
    Collection.CONTACTS: Contact,
    Collection.PRODUCTS: Product,
    Collection.SALES: SaleRecord,
    Collection.PARTNER_ACCOUNTS: PartnerAccount,
    Collection.PARTNER_INVESTMENTS: InvestmentTransaction,
    Collection.MOVEMENTS: LedgerEntry,
}


@dataclass(frozen=True)
class LedgerStore:
    """Immutable snapshot of every collection.

    ``extras`` carries persisted collections this package does not model so
    that saving a loaded snapshot never drops them.
    """

    accounts: tuple[Account, ...] = ()
    categories: tuple[Category, ...] = ()
    contacts: tuple[Contact, ...] = ()
    products: tuple[Product, ...] = ()
    sales: tuple[SaleRecord, ...] = ()
    partner_accounts: tuple[PartnerAccount, ...] = ()
    partner_investments: tuple[InvestmentTransaction, ...] = ()
    movements: tuple[LedgerEntry, ...] = ()
    extras: dict[str, Any] = field(default_factory=dict)

    def collection(self, collection: Collection) -> tuple:
        return getattr(self, collection.attribute)

    def with_collection(self, collection: Collection, items) -> "LedgerStore":
        return replace(self, **{collection.attribute: tuple(items)})

    def find(self, collection: Collection, record_id: str) -> Optional[Any]:
        for item in self.collection(collection):
            if item.id == record_id:
                return item
        return None

    def get_account(self, account_id: str) -> Optional[Account]:
        return self.find(Collection.ACCOUNTS, account_id)


@dataclass(frozen=True)
class SaleAdjustment:
    """Explicit sale values supplied alongside a settlement entry update."""

    freight: Decimal
    product_value: Decimal


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class StatementFilters:
    """Table filters; ``None`` means no filtering on that field."""

    status: Optional[DisplayStatus] = None
    kind: Optional[EntryKind] = None
    category_id: Optional[str] = None
    query: Optional[str] = None


@dataclass(frozen=True)
class StatementRow:
    entry_id: str
    effective_date: date
    description: str
    kind: EntryKind
    status: DisplayStatus
    category_name: str
    contact_name: str
    value: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class AgingBuckets:
    """Open amounts keyed by whole days until the due date."""

    days_0_7: Decimal = ZERO
    days_8_15: Decimal = ZERO
    days_16_30: Decimal = ZERO
    over_30: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.days_0_7 + self.days_8_15 + self.days_16_30 + self.over_30

    def as_dict(self) -> dict[str, Decimal]:
        return {
            "0-7": self.days_0_7,
            "8-15": self.days_8_15,
            "16-30": self.days_16_30,
            ">30": self.over_30,
        }


@dataclass(frozen=True)
class Aging:
    receivables: AgingBuckets = field(default_factory=AgingBuckets)
    payables: AgingBuckets = field(default_factory=AgingBuckets)


@dataclass(frozen=True)
class StatementTotals:
    opening_balance: Decimal
    inflow: Decimal
    outflow: Decimal
    net: Decimal
    current_balance: Decimal
    projected_balance: Decimal
    deltas: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Statement:
    account: Account
    date_range: DateRange
    opening_balance: Decimal
    rows: tuple[StatementRow, ...]
    totals: StatementTotals
    aging: Aging


@dataclass(frozen=True)
class BalancePoint:
    day: date
    inflow: Decimal
    outflow: Decimal
    net: Decimal
    balance: Decimal


@dataclass(frozen=True)
class Invoice:
    account_id: str
    window_start: date
    closing_date: date
    due_date: date
    entries: tuple[LedgerEntry, ...]
    total: Decimal
    open_total: Decimal
    period_label: str


@dataclass(frozen=True)
class CardSummary:
    limit: Decimal
    used_in_period: Decimal
    available: Decimal
    next_invoice_total: Decimal
    next_due_date: date


@dataclass(frozen=True)
class ProductPerformance:
    product_id: str
    name: str
    quantity: int
    revenue: Decimal
    profit: Decimal

    @property
    def margin(self) -> float:
        if self.revenue <= 0:
            return 0.0
        return float(self.profit / self.revenue * 100)


@dataclass(frozen=True)
class DashboardMetrics:
    period: DateRange
    cash_flow: Decimal
    receivables: Decimal
    payables: Decimal
    average_ticket: Decimal
    deltas: dict[str, float]
    aging: Aging
    top_sold: tuple[ProductPerformance, ...]
    top_margin: tuple[ProductPerformance, ...]


@dataclass(frozen=True)
class PartnerBalance:
    partner_account_id: str
    name: str
    balance: Decimal
