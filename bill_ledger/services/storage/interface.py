"""
Abstract Storage Interface

We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the repository decoupled from storage implementation

The interface is intentionally small - we're not building an ORM.
Just the lookups, filtered scans and foreign-key fetches the bill
repository needs.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional
from uuid import UUID

from bill_ledger.models.audit import AuditEvent
from bill_ledger.models.bill import BillRecord, TransactionRef, UserRef
from bill_ledger.queries.filters import BillFilter


class BillStorageInterface(ABC):
    """
    Abstract interface for bill storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_bill(self, bill: BillRecord) -> bool:
        """
        Insert a new bill.

        Raises:
            DuplicateError: If a bill with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_bill_by_id(self, bill_id: UUID) -> Optional[BillRecord]:
        """
        Retrieve a bill by its ID.

        Returns:
            The bill if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_bill(
        self,
        bill: BillRecord,
        expected_version: Optional[int] = None,
    ) -> BillRecord:
        """
        Overwrite an existing bill.

        Args:
            bill: The bill with updated fields
            expected_version: If given, the write only happens when the
                stored version still equals it

        Returns:
            The stored bill, with its version incremented

        Raises:
            NotFoundError: If bill doesn't exist
            ConcurrencyError: If the stored version differs from expected_version
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_bill(self, bill_id: UUID) -> bool:
        """
        Delete a bill by ID.

        Returns:
            True if deleted, False if there was nothing to delete
        """
        pass

    @abstractmethod
    async def query_bills(self, bill_filter: BillFilter) -> list[BillRecord]:
        """
        Return every bill matching the filter.

        Transaction type predicates are evaluated against the bill's
        joined transaction.
        """
        pass

    @abstractmethod
    async def get_users(self, user_ids: Iterable[UUID]) -> dict[UUID, UserRef]:
        """Fetch users by id. Unknown ids are absent from the result."""
        pass

    @abstractmethod
    async def get_transactions(
        self,
        transaction_ids: Iterable[UUID],
    ) -> dict[UUID, TransactionRef]:
        """Fetch transactions by id. Unknown ids are absent from the result."""
        pass

    async def user_exists(self, user_id: UUID) -> bool:
        return user_id in await self.get_users([user_id])

    async def transaction_exists(self, transaction_id: UUID) -> bool:
        return transaction_id in await self.get_transactions([transaction_id])


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    Reading them back is done in the spreadsheet itself.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConcurrencyError(StorageError):
    """Conditional write rejected because the stored version changed."""

    def __init__(self, message: str, expected_version: int, actual_version: int):
        super().__init__(message)
        self.expected_version = expected_version
        self.actual_version = actual_version


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
