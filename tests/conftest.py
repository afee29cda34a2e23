"""Shared pytest fixtures for bizledger tests."""

import itertools
import tempfile
import os
from datetime import date
from decimal import Decimal
import pytest

from bizledger.database.factories import create_sqlite_database
from bizledger.domain.entities import (
    Account,
    AccountKind,
    EntryKind,
    LedgerEntry,
    LedgerStore,
)
from bizledger.domain.ledger import LedgerService

TODAY = date(2026, 3, 15)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def id_generator():
    """Deterministic id source: id1, id2, ..."""
    counter = itertools.count(1)
    return lambda: f"id{next(counter)}"


@pytest.fixture
def ledger_service(temp_db, id_generator):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db, id_generator=id_generator)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def accounts():
    """A bank account, a cash account and a card account."""
    return (
        Account(id="bank", name="Main bank", kind=AccountKind.BANK, opening_balance=Decimal("1000")),
        Account(id="cash", name="Cash", kind=AccountKind.CASH),
        Account(
            id="card",
            name="Visa",
            kind=AccountKind.CARD,
            closing_day=10,
            due_day=5,
            credit_limit=Decimal("5000"),
        ),
    )


@pytest.fixture
def empty_store(accounts):
    """Store holding only the sample accounts."""
    return LedgerStore(accounts=accounts)


@pytest.fixture
def make_entry():
    """Build a ledger entry with sensible defaults."""

    def _make(entry_id, amount="100", kind=EntryKind.EXPENSE, account_id="bank", due=TODAY, **fields):
        gross = Decimal(amount)
        net = gross - fields.get("fees", Decimal("0")) + (fields.get("interest") or Decimal("0"))
        return LedgerEntry(
            id=entry_id,
            kind=kind,
            account_id=account_id,
            due_date=due,
            amount_gross=gross,
            amount_net=net,
            **fields,
        )

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
