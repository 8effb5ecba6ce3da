"""Bill repository package."""

from bill_ledger.repository.bill_repository import BillRepository

__all__ = ["BillRepository"]
