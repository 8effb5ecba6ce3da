"""Validation package."""

from bill_ledger.validation.validator import build_bill_record, parse_identifier

__all__ = ["build_bill_record", "parse_identifier"]
