"""Integration tests for end-to-end CLI workflows."""

import re

import pytest
from bizledger.cli.main import cli


def _created_id(output: str) -> str:
    match = re.search(r"ID: ([0-9a-z]+)\)", output)
    assert match is not None, output
    return match.group(1)


@pytest.fixture
def invoke(cli_runner, temp_db):
    def _invoke(*args):
        return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])

    return _invoke


def test_card_invoice_workflow(invoke):
    """account → card purchase → invoice → payment → statement."""
    result = invoke("account", "create", "Main bank", "--opening-balance", "1.000,00")
    assert result.exit_code == 0, result.output
    assert "Created account 'Main bank'" in result.output

    result = invoke(
        "account", "create", "Visa", "--kind", "card",
        "--closing-day", "10", "--due-day", "5", "--limit", "2000",
    )
    assert result.exit_code == 0, result.output

    result = invoke(
        "movement", "add", "expense", "--account", "visa", "--amount", "100",
        "--due", "2026-04-05", "--purchase-date", "2026-03-02", "--description", "Supplies",
    )
    assert result.exit_code == 0, result.output
    assert "(OPEN)" in result.output

    result = invoke("invoice", "show", "Visa", "--month", "2026-03")
    assert result.exit_code == 0, result.output
    assert "Invoice March 2026 - Visa" in result.output
    assert "Supplies" in result.output
    assert "1,900.00" in result.output

    result = invoke(
        "invoice", "pay", "Visa", "--from", "Main bank", "--month", "2026-03", "--paid", "2026-04-01"
    )
    assert result.exit_code == 0, result.output
    assert "Paid 100.00 from 'Main bank'" in result.output

    result = invoke("invoice", "pay", "Visa", "--from", "Main bank", "--month", "2026-03")
    assert result.exit_code == 1
    assert "nothing left to pay" in result.output

    result = invoke("statement", "Main bank", "--from", "2026-04-01", "--to", "2026-04-30")
    assert result.exit_code == 0, result.output
    assert "Card payment: Visa" in result.output
    assert "1,000.00" in result.output


def test_account_with_entries_cannot_be_deleted(invoke):
    invoke("account", "create", "Cash", "--kind", "cash")
    invoke("movement", "add", "income", "--account", "Cash", "--amount", "50", "--paid", "2026-03-01")

    result = invoke("account", "delete", "Cash", "--yes")

    assert result.exit_code == 1
    assert "Cannot delete account" in result.output


def test_settle_and_delete_entry(invoke):
    invoke("account", "create", "Main bank")
    result = invoke("movement", "add", "expense", "--account", "Main bank", "--amount", "80", "--due", "2026-03-10")
    entry_id = re.search(r"expense (\S+):", result.output).group(1)

    result = invoke("movement", "settle", entry_id, "--paid", "2026-03-11")
    assert result.exit_code == 0, result.output
    assert "Settled" in result.output and "2026-03-11" in result.output

    result = invoke("movement", "settle", entry_id)
    assert result.exit_code == 1
    assert "already settled" in result.output

    result = invoke("movement", "delete", entry_id, "--yes")
    assert result.exit_code == 0, result.output
    assert "Deleted 1 entry" in result.output


def test_transfer_requires_known_destination(invoke):
    invoke("account", "create", "Main bank")

    result = invoke("movement", "add", "transfer", "--account", "Main bank", "--to", "Nowhere", "--amount", "10")

    assert result.exit_code == 1
    assert "not found" in result.output


def test_partner_investment_workflow(invoke):
    invoke("account", "create", "Main bank")
    result = invoke("investment", "add-partner", "Ana")
    assert result.exit_code == 0, result.output
    partner_id = _created_id(result.output)

    result = invoke(
        "investment", "record", partner_id, "contribution", "500",
        "--account", "Main bank", "--date", "2026-03-01",
    )
    assert result.exit_code == 0, result.output
    assert "ledger entry" in result.output

    result = invoke("investment", "record", partner_id, "withdrawal", "120", "--date", "2026-03-05")
    assert result.exit_code == 0, result.output
    assert "ledger entry" not in result.output

    result = invoke("investment", "balances")
    assert result.exit_code == 0, result.output
    assert "Ana" in result.output
    assert "380.00" in result.output


def test_dashboard_and_listing(invoke):
    invoke("account", "create", "Main bank", "--opening-balance", "250")

    result = invoke("account", "list")
    assert result.exit_code == 0, result.output
    assert "Main bank" in result.output
    assert "250.00" in result.output

    result = invoke("dashboard", "--period", "last-month")
    assert result.exit_code == 0, result.output
    assert "Cash flow" in result.output
    assert "No sales in this period." in result.output


def test_period_and_explicit_dates_conflict(invoke):
    invoke("account", "create", "Main bank")

    result = invoke("statement", "Main bank", "--period", "this-month", "--from", "2026-03-01")

    assert result.exit_code == 1
    assert "cannot be combined" in result.output


def test_invoice_show_for_month(invoke):
    invoke("account", "create", "Visa", "--kind", "card", "--closing-day", "10", "--due-day", "5")
    invoke(
        "movement", "add", "expense", "--account", "Visa", "--amount", "42",
        "--due", "2026-04-05", "--purchase-date", "2026-03-02", "--description", "Paper",
    )

    result = invoke("invoice", "show", "Visa", "--month", "2026-03")

    assert result.exit_code == 0, result.output
    assert "Window 2026-02-11 to 2026-03-10, due 2026-04-05" in result.output
    assert "Paper" in result.output
    assert "42.00" in result.output


def test_installment_purchase_spreads_over_invoices(invoke):
    invoke("account", "create", "Visa", "--kind", "card", "--closing-day", "10", "--due-day", "5")

    result = invoke(
        "movement", "add", "expense", "--account", "Visa", "--amount", "300",
        "--due", "2026-04-05", "--purchase-date", "2026-03-02",
        "--description", "Laptop", "--installments", "3",
    )
    assert result.exit_code == 0, result.output
    assert result.output.count("Added expense") == 3
    assert "due 2026-06-05" in result.output

    for month, label in (("2026-03", "(1/3)"), ("2026-04", "(2/3)"), ("2026-05", "(3/3)")):
        result = invoke("invoice", "show", "Visa", "--month", month)
        assert result.exit_code == 0, result.output
        assert f"Laptop {label}" in result.output
        assert "100.00" in result.output


def test_installments_cannot_be_paid_upfront(invoke):
    invoke("account", "create", "Main bank")

    result = invoke(
        "movement", "add", "expense", "--account", "Main bank", "--amount", "90",
        "--installments", "3", "--paid", "today",
    )

    assert result.exit_code == 1
    assert "cannot be combined" in result.output
