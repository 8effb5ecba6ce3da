"""
Component Wiring for Bill Ledger

Builds the repository and its collaborators from settings:

    settings → storage backend → audit logger → BillRepository

The repository never looks up its storage on its own; whatever is
built here is passed in explicitly, which is also how tests substitute
the in-memory backend.
"""

from typing import Optional

import structlog

from bill_ledger.audit import AuditLogger
from bill_ledger.config import StorageBackend, get_settings
from bill_ledger.repository import BillRepository
from bill_ledger.services.storage import (
    AuditStorageInterface,
    BillStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBillStorage,
)


logger = structlog.get_logger(__name__)


def create_storage(
    backend: StorageBackend,
) -> tuple[BillStorageInterface, AuditStorageInterface]:
    """
    Build the bill and audit storage for a backend.

    Both Google Sheets storages share one client, so one connection.

    Returns:
        (bill_storage, audit_storage)
    """
    if backend == StorageBackend.GOOGLE_SHEETS:
        sheets_client = GoogleSheetsClient()
        return (
            GoogleSheetsBillStorage(sheets_client),
            GoogleSheetsAuditStorage(sheets_client),
        )

    return InMemoryBillStorage(), InMemoryAuditStorage()


def create_app_components(
    bill_storage: Optional[BillStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> BillRepository:
    """
    Factory function to create all application components.

    Args:
        bill_storage: Use this storage instead of the configured backend.
        audit_storage: Use this audit storage instead of the configured backend.

    Returns:
        The wired BillRepository
    """
    app_settings = get_settings().app

    if bill_storage is None:
        bill_storage, default_audit_storage = create_storage(
            app_settings.storage_backend
        )
        audit_storage = audit_storage or default_audit_storage

    logger.info(
        "components_created",
        storage_backend=type(bill_storage).__name__,
        enforce_referential_integrity=app_settings.enforce_referential_integrity,
        optimistic_concurrency=app_settings.optimistic_concurrency,
    )

    repository = BillRepository(
        storage=bill_storage,
        audit_logger=AuditLogger(audit_storage),
        enforce_referential_integrity=app_settings.enforce_referential_integrity,
        optimistic_concurrency=app_settings.optimistic_concurrency,
    )

    return repository
