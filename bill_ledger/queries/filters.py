"""
Bill Listing Filters

Every listing view is a BillFilter: a set of optional predicates that
are combined with logical AND. There is no OR, no negation and no
ordering or pagination.

The transaction type predicate is evaluated against the JOINED
transaction at query time. It is never read from the bill itself, so a
transaction whose type changes reclassifies its bills immediately.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from bill_ledger.models.bill import BillRecord, TransactionRef, TransactionType


class BillFilter(BaseModel):
    """
    Predicates for a bill listing.

    A predicate left as None does not constrain the result.
    """
    model_config = ConfigDict(frozen=True)

    view: str = "all"
    user_id: Optional[UUID] = None
    transaction_id: Optional[UUID] = None
    transaction_type: Optional[TransactionType] = None

    @classmethod
    def everything(cls) -> "BillFilter":
        return cls(view="all")

    @classmethod
    def for_user(cls, user_id: UUID) -> "BillFilter":
        return cls(view="user", user_id=user_id)

    @classmethod
    def for_user_and_transaction(
        cls,
        user_id: UUID,
        transaction_id: UUID,
    ) -> "BillFilter":
        return cls(
            view="user_transaction",
            user_id=user_id,
            transaction_id=transaction_id,
        )

    @classmethod
    def income_for_user(cls, user_id: UUID) -> "BillFilter":
        return cls(
            view="user_income",
            user_id=user_id,
            transaction_type=TransactionType.INCOME,
        )

    @classmethod
    def expense_for_user(cls, user_id: UUID) -> "BillFilter":
        return cls(
            view="user_expense",
            user_id=user_id,
            transaction_type=TransactionType.EXPENSE,
        )

    @property
    def needs_transaction_join(self) -> bool:
        return self.transaction_type is not None

    def matches(
        self,
        bill: BillRecord,
        transaction: Optional[TransactionRef] = None,
    ) -> bool:
        """
        Check a bill (joined with its transaction) against every predicate.

        When a type predicate is set and the bill's transaction cannot be
        resolved, the bill does not match.
        """
        if self.user_id is not None and bill.user_id != self.user_id:
            return False
        if self.transaction_id is not None and bill.transaction_id != self.transaction_id:
            return False
        if self.transaction_type is not None:
            if transaction is None or transaction.id != bill.transaction_id:
                return False
            if transaction.type != self.transaction_type:
                return False
        return True

    def describe(self) -> dict:
        """Filter values as plain strings, for logging."""
        return {
            key: str(value.value if isinstance(value, TransactionType) else value)
            for key, value in (
                ("user_id", self.user_id),
                ("transaction_id", self.transaction_id),
                ("transaction_type", self.transaction_type),
            )
            if value is not None
        }
