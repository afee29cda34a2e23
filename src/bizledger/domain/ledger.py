"""Ledger domain service."""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional

from dateutil.relativedelta import relativedelta

from bizledger.database.base import Database
from bizledger.domain.billing import compute_card_summary, compute_invoice
from bizledger.domain.dashboard import compute_dashboard
from bizledger.domain.entities import (
    Account,
    AccountKind,
    CardSummary,
    Category,
    Collection,
    DashboardMetrics,
    DateRange,
    EntryKind,
    EntryOrigin,
    EntryStatus,
    InvestmentTransaction,
    InvestmentType,
    Invoice,
    LedgerEntry,
    LedgerStore,
    PartnerAccount,
    PartnerBalance,
    Statement,
    StatementFilters,
)
from bizledger.domain.errors import NotFoundError, ValidationError, account_not_found, record_not_found
from bizledger.domain.ids import IdGenerator
from bizledger.domain.investments import MIRROR_RULES, find_category, mirror_entry, partner_balances
from bizledger.domain.propagation import round_money
from bizledger.domain.reducer import Add, AddMany, Delete, Operation, Update, apply_all
from bizledger.domain.serialization import default_document, document_from_store, store_from_document
from bizledger.domain.statement import compute_open_balance, compute_statement

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT = "default"


def split_amount(total: Decimal, count: int) -> list[Decimal]:
    """Split an amount into ``count`` cent-exact parts, earliest parts largest."""
    cents = int(round_money(total) * 100)
    base, remainder = divmod(cents, count)
    return [Decimal(base + (1 if i < remainder else 0)) / 100 for i in range(count)]


class LedgerService:
    """Owns the current ledger snapshot and persists it after every mutation."""

    def __init__(
        self,
        db: Database,
        id_generator: Optional[Callable[[], str]] = None,
        document_name: str = DEFAULT_DOCUMENT,
    ):
        """Initialize ledger service.

        Args:
            db: Database instance
            id_generator: Optional id source (defaults to IdGenerator)
            document_name: Name of the persisted snapshot
        """
        self.db = db
        self.new_id = id_generator or IdGenerator()
        self.document_name = document_name
        self._store: Optional[LedgerStore] = None

    @property
    def store(self) -> LedgerStore:
        if self._store is None:
            self._store = self.load()
        return self._store

    def load(self) -> LedgerStore:
        """Load the persisted snapshot.

        Missing documents load as an empty ledger. A document that cannot be
        decoded falls back to the default document instead of failing.

        Returns:
            Loaded snapshot
        """
        try:
            document = self.db.load_document(self.document_name)
            store = store_from_document(document if document is not None else default_document())
        except (ValueError, TypeError) as e:
            logger.warning(
                "Snapshot '%s' is unreadable, starting from defaults: %s", self.document_name, e
            )
            store = store_from_document(default_document())
        self._store = store
        return store

    def save(self) -> None:
        self.db.save_document(self.document_name, document_from_store(self.store))

    def dispatch(self, operation: Operation, today: Optional[date] = None) -> LedgerStore:
        """Apply one operation and persist the result.

        Raises:
            DomainError: If the operation is rejected; the snapshot is unchanged
        """
        return self.dispatch_all([operation], today)

    def dispatch_all(self, operations: Iterable[Operation], today: Optional[date] = None) -> LedgerStore:
        """Apply operations atomically and persist the result once."""
        self._store = apply_all(self.store, operations, today)
        self.save()
        return self._store

    # Accounts and entries

    def get_account(self, account_id: str) -> Account:
        account = self.store.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def get_entry(self, entry_id: str) -> LedgerEntry:
        entry = self.store.find(Collection.MOVEMENTS, entry_id)
        if entry is None:
            raise NotFoundError(record_not_found(Collection.MOVEMENTS.value, entry_id))
        return entry

    def create_account(
        self,
        name: str,
        kind: AccountKind,
        opening_balance: Decimal = Decimal("0"),
        closing_day: Optional[int] = None,
        due_day: Optional[int] = None,
        credit_limit: Optional[Decimal] = None,
    ) -> Account:
        """Create an account.

        Raises:
            ValidationError: If card days are out of range
        """
        account = Account(
            id=self.new_id(),
            name=name,
            kind=kind,
            opening_balance=opening_balance,
            closing_day=closing_day,
            due_day=due_day,
            credit_limit=credit_limit,
        )
        self.dispatch(Add(Collection.ACCOUNTS, account))
        return account

    def add_entry(self, **fields) -> LedgerEntry:
        """Create a ledger entry from keyword fields and return it normalized."""
        entry = LedgerEntry(id=self.new_id(), **fields)
        self.dispatch(Add(Collection.MOVEMENTS, entry))
        return self.get_entry(entry.id)

    def settle_entry(self, entry_id: str, paid_date: Optional[date] = None) -> LedgerEntry:
        """Mark an entry as settled.

        Args:
            entry_id: Entry to settle
            paid_date: Payment date (defaults to today)

        Returns:
            Settled entry

        Raises:
            NotFoundError: If the entry does not exist
            ValidationError: If the entry is already settled
        """
        entry = self.get_entry(entry_id)
        if entry.is_settled:
            raise ValidationError(f"Entry '{entry_id}' is already settled")
        paid_date = paid_date or date.today()
        settled = replace(entry, status=EntryStatus.SETTLED, paid_date=paid_date)
        self.dispatch(Update(Collection.MOVEMENTS, settled), today=paid_date)
        return self.get_entry(entry_id)

    def delete_entry(self, entry_id: str) -> None:
        self.dispatch(Delete(Collection.MOVEMENTS, entry_id))

    def add_installments(
        self,
        count: int,
        first_due_date: date,
        total_gross: Decimal,
        total_fees: Decimal = Decimal("0"),
        description: str = "",
        transaction_date: Optional[date] = None,
        **fields,
    ) -> list[LedgerEntry]:
        """Split one purchase or sale into monthly open installments.

        The total and the fees are split into cents; any remainder goes one
        cent at a time to the earliest installments. Installment ``i`` falls
        due ``i`` months after the first and its description is suffixed
        ``(i/N)``. Every installment after the first points at the first
        through ``parent_movement_id``.

        Args:
            count: Number of installments, at least 2
            first_due_date: Due date of the first installment
            total_gross: Total gross amount
            total_fees: Total fees
            description: Description shared by every installment
            transaction_date: Optional purchase date, advanced monthly like the due date
            **fields: Remaining entry fields (kind, account_id, category_id, ...)

        Returns:
            Created installments, first one first

        Raises:
            ValidationError: If count is below 2 or the entry is rejected
        """
        if count < 2:
            raise ValidationError("Installment plans need at least 2 installments")
        if fields.get("status", EntryStatus.OPEN) != EntryStatus.OPEN:
            raise ValidationError("Installments are created open")

        gross_parts = split_amount(total_gross, count)
        fee_parts = split_amount(total_fees, count)
        first_id = self.new_id()
        entries = []
        for number in range(1, count + 1):
            offset = relativedelta(months=number - 1)
            entries.append(
                LedgerEntry(
                    id=first_id if number == 1 else self.new_id(),
                    due_date=first_due_date + offset,
                    transaction_date=transaction_date + offset if transaction_date else None,
                    amount_gross=gross_parts[number - 1],
                    fees=fee_parts[number - 1],
                    description=f"{description} ({number}/{count})".strip(),
                    parent_movement_id=None if number == 1 else first_id,
                    installment_number=number,
                    total_installments=count,
                    **fields,
                )
            )

        self.dispatch(AddMany(Collection.MOVEMENTS, entries))
        logger.info("Added %d installments of %s", count, total_gross)
        return [self.get_entry(entry.id) for entry in entries]

    # Read models

    def statement(
        self,
        account_id: str,
        date_range: DateRange,
        filters: Optional[StatementFilters] = None,
        today: Optional[date] = None,
    ) -> Statement:
        return compute_statement(self.store, account_id, date_range, filters, today)

    def invoice(self, card_account_id: str, reference_month: date) -> Optional[Invoice]:
        return compute_invoice(self.store, self._card_account(card_account_id), reference_month)

    def card_summary(self, card_account_id: str, reference_month: date) -> Optional[CardSummary]:
        card = self._card_account(card_account_id)
        invoice = compute_invoice(self.store, card, reference_month)
        if invoice is None:
            return None
        return compute_card_summary(card, invoice, compute_open_balance(self.store, card.id))

    def dashboard(self, period: DateRange, today: Optional[date] = None) -> DashboardMetrics:
        return compute_dashboard(self.store, period, today)

    def partner_balances(self) -> list[PartnerBalance]:
        return partner_balances(self.store)

    def _card_account(self, account_id: str) -> Account:
        account = self.get_account(account_id)
        if account.kind != AccountKind.CARD:
            raise ValidationError(f"Account '{account.name}' is not a card account")
        return account

    # Composite operations

    def pay_invoice(
        self,
        card_account_id: str,
        reference_month: date,
        source_account_id: str,
        paid_date: Optional[date] = None,
    ) -> LedgerEntry:
        """Pay the open part of a card invoice from a bank or cash account.

        The payment is booked as a settled expense on the source account and
        every open expense of the invoice is settled referencing the payment,
        in one atomic step. The payment references the card account.

        Args:
            card_account_id: Card account
            reference_month: Month of the invoice to pay
            source_account_id: Account the payment leaves from
            paid_date: Payment date (defaults to today)

        Returns:
            Payment entry

        Raises:
            ValidationError: If the card has no billing cycle or nothing is open
            NotFoundError: If either account does not exist
        """
        paid_date = paid_date or date.today()
        card = self._card_account(card_account_id)
        source = self.get_account(source_account_id)
        if source.kind == AccountKind.CARD:
            raise ValidationError("Invoices must be paid from a bank or cash account")

        invoice = compute_invoice(self.store, card, reference_month)
        if invoice is None:
            raise ValidationError(f"Card '{card.name}' has no closing day configured")
        open_entries = [entry for entry in invoice.entries if entry.status == EntryStatus.OPEN]
        if not open_entries:
            raise ValidationError(f"{invoice.period_label} has nothing left to pay")

        payment = LedgerEntry(
            id=self.new_id(),
            kind=EntryKind.EXPENSE,
            account_id=source.id,
            due_date=invoice.due_date,
            paid_date=paid_date,
            amount_gross=invoice.open_total,
            status=EntryStatus.SETTLED,
            origin=EntryOrigin.EXPENSE,
            description=f"Card payment: {card.name} - {invoice.period_label}",
            reference_id=card.id,
        )
        operations: list[Operation] = [Add(Collection.MOVEMENTS, payment)]
        for entry in open_entries:
            settled = replace(
                entry,
                status=EntryStatus.SETTLED,
                paid_date=paid_date,
                reference_id=payment.id,
            )
            operations.append(Update(Collection.MOVEMENTS, settled))

        self.dispatch_all(operations, today=paid_date)
        logger.info(
            "Paid %s for card %s (%d entries)", invoice.open_total, card.id, len(open_entries)
        )
        return self.get_entry(payment.id)

    def create_partner_account(self, name: str, contact_id: Optional[str] = None) -> PartnerAccount:
        account = PartnerAccount(id=self.new_id(), name=name, contact_id=contact_id)
        self.dispatch(Add(Collection.PARTNER_ACCOUNTS, account))
        return account

    def record_partner_transaction(
        self,
        partner_account_id: str,
        type: InvestmentType,
        amount: Decimal,
        day: date,
        contra_account_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> InvestmentTransaction:
        """Record a partner investment transaction.

        With a company account, contributions, withdrawals and yields also
        book a settled company-side entry linked to the transaction.
        Contributions share a group id with their entry so edits to either
        side keep both in step.

        Args:
            partner_account_id: Partner account
            type: Transaction type
            amount: Positive amount
            day: Transaction date
            contra_account_id: Optional company account mirrored by an entry
            note: Optional note

        Returns:
            Created investment transaction

        Raises:
            ValidationError: If the amount is not positive or an id is unknown
        """
        partner = self.store.find(Collection.PARTNER_ACCOUNTS, partner_account_id)
        if partner is None:
            raise NotFoundError(
                record_not_found(Collection.PARTNER_ACCOUNTS.value, partner_account_id)
            )

        rule = MIRROR_RULES.get(type) if contra_account_id else None
        inv = InvestmentTransaction(
            id=self.new_id(),
            partner_account_id=partner_account_id,
            date=day,
            type=type,
            amount=amount,
            contra_account_id=contra_account_id,
            note=note,
        )
        if rule is None:
            self.dispatch(Add(Collection.PARTNER_INVESTMENTS, inv))
            return inv

        operations: list[Operation] = []
        category = find_category(self.store, rule.category_name, rule.category_type)
        if category is None:
            category = Category(id=self.new_id(), name=rule.category_name, type=rule.category_type)
            operations.append(Add(Collection.CATEGORIES, category))

        entry_id = self.new_id()
        inv = replace(
            inv,
            linked_movement_id=entry_id,
            group_id=self.new_id() if rule.grouped else None,
        )
        contact = self.store.find(Collection.CONTACTS, partner.contact_id) if partner.contact_id else None
        entry = mirror_entry(inv, rule, entry_id, category.id, contact.name if contact else partner.name)
        operations += [
            Add(Collection.MOVEMENTS, entry),
            Add(Collection.PARTNER_INVESTMENTS, inv),
        ]
        self.dispatch_all(operations, today=day)
        return inv
