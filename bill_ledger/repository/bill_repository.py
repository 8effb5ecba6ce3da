"""
Bill Repository

The only component that reads or writes bills. It sits between the
transport layer and the persistence port and guarantees:

- Every read returns BillView objects with user and transaction attached.
  Relations are fetched in one batch per call, never one lookup per bill.
- Listings combine their predicates with AND; income/expense is decided
  by the joined transaction at query time.
- Updates are partial merges of amount, date and description. user_id
  and transaction_id never change after creation.
- Identifiers are validated before storage is touched.

A bill whose user or transaction cannot be resolved is still returned,
with a placeholder reference carrying only the id. Its classification
is unknown, so it appears in neither the income nor the expense view.
"""

from typing import Iterable, Optional, Union
from uuid import UUID

import structlog

from bill_ledger.audit import AuditLogger
from bill_ledger.errors import (
    BillNotFoundError,
    ConcurrentModificationError,
    InvalidArgumentError,
    ReferenceNotFoundError,
)
from bill_ledger.models.bill import BillDTO, BillRecord, BillView, TransactionRef, UserRef
from bill_ledger.queries.filters import BillFilter
from bill_ledger.services.storage import (
    BillStorageInterface,
    ConcurrencyError,
    NotFoundError,
)
from bill_ledger.validation import build_bill_record, parse_identifier


Identifier = Union[str, UUID, None]


class BillRepository:
    """
    Bill CRUD operations and listing views over a persistence port.

    Holds no state between calls; everything lives in storage.
    """

    def __init__(
        self,
        storage: BillStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        enforce_referential_integrity: bool = True,
        optimistic_concurrency: bool = True,
    ):
        """
        Args:
            storage: Persistence port holding bills, users and transactions
            audit_logger: Where audit events go. Defaults to local-only logging.
            enforce_referential_integrity: Reject creation against a user or
                transaction that does not exist
            optimistic_concurrency: Make update writes conditional on the
                version that was read
        """
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._enforce_references = enforce_referential_integrity
        self._optimistic_concurrency = optimistic_concurrency
        self._logger = structlog.get_logger(__name__)

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    # =========================================================================
    # LISTINGS
    # =========================================================================

    async def list_all(self, correlation_id: Optional[UUID] = None) -> list[BillView]:
        """Every bill, each with its user and transaction attached."""
        return await self._list(BillFilter.everything(), correlation_id)

    async def list_by_user(
        self,
        user_id: Identifier,
        correlation_id: Optional[UUID] = None,
    ) -> list[BillView]:
        """Bills owned by one user."""
        user_uuid = await self._parse(user_id, "user_id", correlation_id)
        return await self._list(BillFilter.for_user(user_uuid), correlation_id)

    async def list_by_user_and_transaction(
        self,
        user_id: Identifier,
        transaction_id: Identifier,
        correlation_id: Optional[UUID] = None,
    ) -> list[BillView]:
        """Bills owned by one user and linked to one transaction."""
        user_uuid = await self._parse(user_id, "user_id", correlation_id)
        transaction_uuid = await self._parse(transaction_id, "transaction_id", correlation_id)
        return await self._list(
            BillFilter.for_user_and_transaction(user_uuid, transaction_uuid),
            correlation_id,
        )

    async def list_income_by_user(
        self,
        user_id: Identifier,
        correlation_id: Optional[UUID] = None,
    ) -> list[BillView]:
        """A user's bills whose transaction is income."""
        user_uuid = await self._parse(user_id, "user_id", correlation_id)
        return await self._list(BillFilter.income_for_user(user_uuid), correlation_id)

    async def list_expense_by_user(
        self,
        user_id: Identifier,
        correlation_id: Optional[UUID] = None,
    ) -> list[BillView]:
        """A user's bills whose transaction is expense."""
        user_uuid = await self._parse(user_id, "user_id", correlation_id)
        return await self._list(BillFilter.expense_for_user(user_uuid), correlation_id)

    # =========================================================================
    # SINGLE BILL OPERATIONS
    # =========================================================================

    async def create(
        self,
        user_id: Identifier,
        transaction_id: Identifier,
        payload: BillDTO,
        correlation_id: Optional[UUID] = None,
    ) -> UUID:
        """
        Create a bill bound to the given user and transaction.

        Returns:
            The id of the new bill

        Raises:
            InvalidArgumentError: malformed id, or no amount in the payload
            ReferenceNotFoundError: user or transaction missing (when enforced)
        """
        user_uuid = await self._parse(user_id, "user_id", correlation_id)
        transaction_uuid = await self._parse(transaction_id, "transaction_id", correlation_id)

        try:
            record = build_bill_record(payload, user_uuid, transaction_uuid)
        except InvalidArgumentError as e:
            await self._audit_logger.log_invalid_argument(
                field=e.field,
                value=e.value,
                message=e.message,
                correlation_id=correlation_id,
            )
            raise

        if self._enforce_references:
            if not await self._storage.user_exists(user_uuid):
                await self._reject_reference("user", user_uuid, correlation_id)
            if not await self._storage.transaction_exists(transaction_uuid):
                await self._reject_reference("transaction", transaction_uuid, correlation_id)

        await self._storage.save_bill(record)

        await self._audit_logger.log_bill_created(
            bill_id=record.id,
            user_id=user_uuid,
            transaction_id=transaction_uuid,
            amount=str(record.amount),
            correlation_id=correlation_id,
        )

        return record.id

    async def get_by_id(
        self,
        bill_id: Identifier,
        correlation_id: Optional[UUID] = None,
    ) -> BillView:
        """
        Fetch one bill with its relations.

        Raises:
            InvalidArgumentError: malformed id
            BillNotFoundError: no such bill
        """
        bill_uuid = await self._parse(bill_id, "bill_id", correlation_id)
        record = await self._fetch(bill_uuid, "get", correlation_id)
        (view,) = await self._resolve([record])
        return view

    async def update(
        self,
        bill_id: Identifier,
        payload: BillDTO,
        correlation_id: Optional[UUID] = None,
    ) -> BillView:
        """
        Merge the non-null fields of the payload into a stored bill.

        Fields left as None keep their stored value. Ids in the payload
        are ignored.

        Raises:
            InvalidArgumentError: malformed id
            BillNotFoundError: no such bill, or deleted before the write
            ConcurrentModificationError: changed by another request since it was read
        """
        bill_uuid = await self._parse(bill_id, "bill_id", correlation_id)
        record = await self._fetch(bill_uuid, "update", correlation_id)

        changes = payload.changed_fields()
        merged = record.model_copy(update=changes)
        expected_version = record.version if self._optimistic_concurrency else None

        try:
            stored = await self._storage.update_bill(merged, expected_version=expected_version)
        except NotFoundError:
            await self._audit_logger.log_bill_not_found(
                bill_id=bill_uuid,
                operation="update",
                correlation_id=correlation_id,
            )
            raise BillNotFoundError(bill_uuid)
        except ConcurrencyError as e:
            await self._audit_logger.log_concurrent_modification(
                bill_id=bill_uuid,
                expected_version=e.expected_version,
                correlation_id=correlation_id,
            )
            raise ConcurrentModificationError(bill_uuid, e.expected_version)

        await self._audit_logger.log_bill_updated(
            bill_id=bill_uuid,
            changed_fields=sorted(changes),
            version=stored.version,
            correlation_id=correlation_id,
        )
        (view,) = await self._resolve([stored])
        return view

    async def delete(
        self,
        bill_id: Identifier,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Remove a bill.

        Raises:
            InvalidArgumentError: malformed id
            BillNotFoundError: no such bill
        """
        bill_uuid = await self._parse(bill_id, "bill_id", correlation_id)
        await self._fetch(bill_uuid, "delete", correlation_id)

        if not await self._storage.delete_bill(bill_uuid):
            # Removed by another request between the fetch and the delete
            await self._audit_logger.log_bill_not_found(
                bill_id=bill_uuid,
                operation="delete",
                correlation_id=correlation_id,
            )
            raise BillNotFoundError(bill_uuid)

        await self._audit_logger.log_bill_deleted(
            bill_id=bill_uuid,
            correlation_id=correlation_id,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _parse(
        self,
        value: Identifier,
        field: str,
        correlation_id: Optional[UUID],
    ) -> UUID:
        try:
            return parse_identifier(value, field)
        except InvalidArgumentError as e:
            await self._audit_logger.log_invalid_argument(
                field=field,
                value=value,
                message=e.message,
                correlation_id=correlation_id,
            )
            raise

    async def _fetch(
        self,
        bill_id: UUID,
        operation: str,
        correlation_id: Optional[UUID],
    ) -> BillRecord:
        record = await self._storage.get_bill_by_id(bill_id)
        if record is None:
            await self._audit_logger.log_bill_not_found(
                bill_id=bill_id,
                operation=operation,
                correlation_id=correlation_id,
            )
            raise BillNotFoundError(bill_id)
        return record

    async def _reject_reference(
        self,
        entity_type: str,
        entity_id: UUID,
        correlation_id: Optional[UUID],
    ) -> None:
        await self._audit_logger.log_reference_not_found(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        raise ReferenceNotFoundError(entity_type, entity_id)

    async def _resolve(self, records: Iterable[BillRecord]) -> list[BillView]:
        """Attach users and transactions to records with one batched fetch each."""
        records = list(records)
        if not records:
            return []

        users = await self._storage.get_users({r.user_id for r in records})
        transactions = await self._storage.get_transactions({r.transaction_id for r in records})

        views = []
        for record in records:
            user = users.get(record.user_id)
            transaction = transactions.get(record.transaction_id)
            if user is None or transaction is None:
                self._logger.warning(
                    "bill_dangling_reference",
                    bill_id=str(record.id),
                    user_missing=user is None,
                    transaction_missing=transaction is None,
                )
                user = user or UserRef(id=record.user_id)
                transaction = transaction or TransactionRef(id=record.transaction_id)
            views.append(BillView.from_record(record, user, transaction))
        return views

    async def _list(
        self,
        bill_filter: BillFilter,
        correlation_id: Optional[UUID],
    ) -> list[BillView]:
        records = await self._storage.query_bills(bill_filter)
        views = await self._resolve(records)
        await self._audit_logger.log_listing(
            view=bill_filter.view,
            filters=bill_filter.describe(),
            result_count=len(views),
            correlation_id=correlation_id,
        )
        return views
