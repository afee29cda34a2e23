"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(ValidationError):
    """Requested record or collection does not exist."""


class ConflictError(ValidationError):
    """Domain conflict, such as a duplicate record id."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class ConsistencyViolation(RuntimeError):
    """Linked records disagree after a mutation.

    Raised only for reducer defects; callers are not expected to recover.
    """


def unknown_collection(name: object) -> str:
    """Return message for a collection name the store does not hold."""
    return f"Unknown collection '{name}'"


def record_not_found(collection: str, record_id: str) -> str:
    """Return message for a missing record."""
    return f"Record '{record_id}' not found in {collection}"


def duplicate_record(collection: str, record_id: str) -> str:
    """Return message for an id that already exists."""
    return f"Record '{record_id}' already exists in {collection}"


def account_not_found(account_id: str) -> str:
    """Return message for missing account."""
    return f"Account '{account_id}' not found"


def account_delete_blocked(account_id: str, entry_count: int) -> str:
    """Return message when an account still has ledger entries."""
    return (
        f"Cannot delete account '{account_id}': it has {entry_count} "
        f"ledger entr{'ies' if entry_count != 1 else 'y'}. "
        "Please reassign or delete them first."
    )
