"""Domain layer for bizledger application."""

from bizledger.domain.ledger import LedgerService
from bizledger.domain.reducer import Add, AddMany, Delete, DeleteMany, Replace, Update, apply, apply_all

__all__ = [
    "LedgerService",
    "Add",
    "AddMany",
    "Update",
    "Delete",
    "DeleteMany",
    "Replace",
    "apply",
    "apply_all",
]
