"""
In-Memory Storage Implementation

Dict-backed storage used by the test suite and the default
"memory" backend. Nothing survives a restart.

Each method runs without awaiting, so inside one event loop every
read-check-write below happens atomically.
"""

from typing import Iterable, Optional
from uuid import UUID

from bill_ledger.models.audit import AuditEvent
from bill_ledger.models.bill import (
    BillRecord,
    TransactionRef,
    TransactionType,
    UserRef,
    utc_now,
)
from bill_ledger.queries.filters import BillFilter
from bill_ledger.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    ConcurrencyError,
    DuplicateError,
    NotFoundError,
)


class InMemoryBillStorage(BillStorageInterface):
    """In-memory bill storage, plus the users and transactions bills refer to."""

    def __init__(self) -> None:
        # dicts keep insertion order, which is the listing order
        self._bills: dict[UUID, BillRecord] = {}
        self._users: dict[UUID, UserRef] = {}
        self._transactions: dict[UUID, TransactionRef] = {}

    # -- referenced entities (seeding) ------------------------------------

    def add_user(self, user_id: UUID, name: Optional[str] = None) -> UserRef:
        user = UserRef(id=user_id, name=name)
        self._users[user_id] = user
        return user

    def add_transaction(
        self,
        transaction_id: UUID,
        type: TransactionType,
        name: Optional[str] = None,
    ) -> TransactionRef:
        transaction = TransactionRef(id=transaction_id, name=name, type=type)
        self._transactions[transaction_id] = transaction
        return transaction

    # -- bills --------------------------------------------------------------

    async def save_bill(self, bill: BillRecord) -> bool:
        if bill.id in self._bills:
            raise DuplicateError(f"Bill already exists: {bill.id}")
        self._bills[bill.id] = bill.model_copy()
        return True

    async def get_bill_by_id(self, bill_id: UUID) -> Optional[BillRecord]:
        bill = self._bills.get(bill_id)
        return bill.model_copy() if bill else None

    async def update_bill(
        self,
        bill: BillRecord,
        expected_version: Optional[int] = None,
    ) -> BillRecord:
        stored = self._bills.get(bill.id)
        if stored is None:
            raise NotFoundError(f"Bill not found: {bill.id}")

        if expected_version is not None and stored.version != expected_version:
            raise ConcurrencyError(
                f"Bill {bill.id} is at version {stored.version}, expected {expected_version}",
                expected_version=expected_version,
                actual_version=stored.version,
            )

        # Relations are write-once, whatever the caller passed in
        updated = bill.model_copy(
            update={
                "user_id": stored.user_id,
                "transaction_id": stored.transaction_id,
                "created_at": stored.created_at,
                "updated_at": utc_now(),
                "version": stored.version + 1,
            }
        )
        self._bills[bill.id] = updated
        return updated.model_copy()

    async def delete_bill(self, bill_id: UUID) -> bool:
        return self._bills.pop(bill_id, None) is not None

    async def query_bills(self, bill_filter: BillFilter) -> list[BillRecord]:
        return [
            bill.model_copy()
            for bill in self._bills.values()
            if bill_filter.matches(bill, self._transactions.get(bill.transaction_id))
        ]

    async def get_users(self, user_ids: Iterable[UUID]) -> dict[UUID, UserRef]:
        return {
            user_id: self._users[user_id]
            for user_id in set(user_ids)
            if user_id in self._users
        }

    async def get_transactions(
        self,
        transaction_ids: Iterable[UUID],
    ) -> dict[UUID, TransactionRef]:
        return {
            transaction_id: self._transactions[transaction_id]
            for transaction_id in set(transaction_ids)
            if transaction_id in self._transactions
        }


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only in-memory audit log."""

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True
