"""Utility functions for bizledger."""

from bizledger.utils.date_parser import parse_date, parse_month, get_date_range
from bizledger.utils.amount_parser import parse_amount
from bizledger.utils.account_resolver import resolve_account

__all__ = ["parse_date", "parse_month", "get_date_range", "parse_amount", "resolve_account"]
