"""Listing filters package."""

from bill_ledger.queries.filters import BillFilter

__all__ = ["BillFilter"]
