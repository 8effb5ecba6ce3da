"""
Storage Services Package

Provides the abstract persistence port and its implementations:
an in-memory backend (default, used by tests) and Google Sheets.
"""

from bill_ledger.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    ConcurrencyError,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)
from bill_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBillStorage,
)
from bill_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BillStorageInterface",
    # Exceptions
    "ConcurrencyError",
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBillStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillStorage",
    "GoogleSheetsClient",
]
