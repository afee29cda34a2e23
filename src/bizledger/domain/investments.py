"""Partner investment balances and company-side mirrors."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from bizledger.domain.entities import (
    ZERO,
    Category,
    CategoryType,
    Collection,
    EntryKind,
    EntryOrigin,
    EntryStatus,
    InvestmentTransaction,
    InvestmentType,
    LedgerEntry,
    LedgerStore,
    PartnerBalance,
)


@dataclass(frozen=True)
class MirrorRule:
    """How an investment transaction shows up in the company ledger."""

    kind: EntryKind
    origin: EntryOrigin
    category_name: str
    category_type: CategoryType
    description: str
    grouped: bool


MIRROR_RULES: dict[InvestmentType, MirrorRule] = {
    InvestmentType.CONTRIBUTION: MirrorRule(
        kind=EntryKind.INCOME,
        origin=EntryOrigin.INVESTMENT,
        category_name="Partner contribution",
        category_type=CategoryType.INCOME,
        description="Partner contribution",
        grouped=True,
    ),
    InvestmentType.WITHDRAWAL: MirrorRule(
        kind=EntryKind.EXPENSE,
        origin=EntryOrigin.WITHDRAWAL,
        category_name="Partner withdrawal",
        category_type=CategoryType.EXPENSE,
        description="Partner withdrawal",
        grouped=False,
    ),
    InvestmentType.YIELD: MirrorRule(
        kind=EntryKind.EXPENSE,
        origin=EntryOrigin.INVESTMENT,
        category_name="Partner yield",
        category_type=CategoryType.EXPENSE,
        description="Partner yield",
        grouped=False,
    ),
}


def signed_amount(inv: InvestmentTransaction) -> Decimal:
    """Withdrawals reduce a partner's balance; every other type adds to it."""
    if inv.type == InvestmentType.WITHDRAWAL:
        return -inv.amount
    return inv.amount


def partner_balances(store: LedgerStore) -> list[PartnerBalance]:
    """Balance of every partner account, highest first."""
    totals = {account.id: ZERO for account in store.partner_accounts}
    for inv in store.partner_investments:
        if inv.partner_account_id in totals:
            totals[inv.partner_account_id] += signed_amount(inv)

    balances = []
    for account in store.partner_accounts:
        contact = store.find(Collection.CONTACTS, account.contact_id) if account.contact_id else None
        balances.append(
            PartnerBalance(
                partner_account_id=account.id,
                name=contact.name if contact else account.name,
                balance=totals[account.id],
            )
        )
    return sorted(balances, key=lambda balance: balance.balance, reverse=True)


def find_category(store: LedgerStore, name: str, category_type: CategoryType) -> Optional[Category]:
    for category in store.categories:
        if category.name == name and category.type == category_type:
            return category
    return None


def mirror_entry(
    inv: InvestmentTransaction,
    rule: MirrorRule,
    entry_id: str,
    category_id: str,
    partner_name: str,
) -> LedgerEntry:
    """Settled company-side entry for an investment transaction."""
    description = f"{rule.description}: {partner_name}"
    if inv.note:
        description = f"{description} - {inv.note}"
    return LedgerEntry(
        id=entry_id,
        kind=rule.kind,
        account_id=inv.contra_account_id,
        due_date=inv.date,
        paid_date=inv.date,
        amount_gross=inv.amount,
        amount_net=inv.amount,
        status=EntryStatus.SETTLED,
        origin=rule.origin,
        description=description,
        category_id=category_id,
        group_id=inv.group_id,
    )
