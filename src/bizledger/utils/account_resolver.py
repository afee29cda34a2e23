"""Utility for resolving account references to accounts."""

from bizledger.domain.entities import Account, LedgerStore
from bizledger.domain.errors import NotFoundError, ValidationError, account_not_found


def resolve_account(store: LedgerStore, reference: str) -> Account:
    """Resolve an account id or name to an account.

    Ids win over names. Names match case-insensitively and must be unique.

    Args:
        store: Ledger snapshot
        reference: Account id or display name

    Returns:
        Matching account

    Raises:
        NotFoundError: If nothing matches
        ValidationError: If the name matches more than one account
    """
    account = store.get_account(reference)
    if account is not None:
        return account

    wanted = reference.strip().casefold()
    matches = [acc for acc in store.accounts if acc.name.casefold() == wanted]
    if len(matches) > 1:
        raise ValidationError(
            f"Account name '{reference}' is ambiguous; use one of the ids: "
            + ", ".join(acc.id for acc in matches)
        )
    if not matches:
        raise NotFoundError(account_not_found(reference))
    return matches[0]
