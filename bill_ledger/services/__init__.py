"""Services package."""

from bill_ledger.services.storage import (
    AuditStorageInterface,
    BillStorageInterface,
    ConcurrencyError,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBillStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "BillStorageInterface",
    "ConcurrencyError",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillStorage",
    "GoogleSheetsClient",
    "InMemoryAuditStorage",
    "InMemoryBillStorage",
    "NotFoundError",
    "StorageError",
]
