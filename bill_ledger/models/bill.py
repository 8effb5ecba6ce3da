"""
Core Data Models for Bill Ledger

These models define the schemas for all data flowing through the system.
There are three shapes of a bill:

1. BillRecord - what the persistence layer stores (foreign keys only)
2. BillDTO    - what callers send in (every field optional)
3. BillView   - what callers get back (relations resolved)

A record is never handed to a caller directly. Reads always go through
BillView so the user and transaction are already attached.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def utc_now() -> datetime:
    """Timezone-aware current time used for all generated timestamps."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Classification of a transaction.

    A bill has no type of its own. Its classification is always
    read through the transaction it is linked to.
    """
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# REFERENCED ENTITIES (read-only shapes used for joins)
# =============================================================================

class UserRef(BaseModel):
    """The slice of a user needed to render a bill."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID
    name: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Display name of the user"
    )


class TransactionRef(BaseModel):
    """
    The slice of a transaction needed to render and filter a bill.

    type is None only for a placeholder built from a bill whose
    transaction no longer resolves. Such a bill is neither income
    nor expense.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID
    name: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Display name of the transaction"
    )
    type: Optional[TransactionType] = Field(
        default=None,
        description="Income or expense"
    )


# =============================================================================
# CORE BILL MODELS
# =============================================================================

class BillRecord(BaseModel):
    """
    A bill as persisted.

    user_id and transaction_id are write-once: they are set when the
    record is created and no update path touches them.
    """

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique bill ID, generated on creation"
    )

    # Relations (write-once)
    user_id: UUID = Field(
        ...,
        description="Owning user"
    )
    transaction_id: UUID = Field(
        ...,
        description="Associated transaction"
    )

    # Mutable fields
    amount: Annotated[
        Decimal,
        Field(decimal_places=2, description="Signed monetary amount")
    ]
    date: datetime = Field(
        ...,
        description="When the bill happened"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Free-text description"
    )

    # Bookkeeping
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = Field(
        default=1,
        ge=1,
        description="Incremented on every successful update"
    )

    @field_validator('description', mode='before')
    @classmethod
    def blank_description_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Google Sheets cannot tell an empty cell from a missing one."""
        return None if v == "" else v


class BillDTO(BaseModel):
    """
    Incoming bill payload.

    Used for both creation and partial update, so every field is optional.
    On update, a field left as None means "keep the stored value".
    """

    id: Optional[UUID] = None
    amount: Optional[Decimal] = Field(
        default=None,
        decimal_places=2,
    )
    date: Optional[datetime] = None
    description: Optional[str] = Field(
        default=None,
        max_length=1000,
    )

    def changed_fields(self) -> dict:
        """
        Return the updatable fields that carry a value.

        An empty description is a value: it clears the stored one.
        """
        changes = {
            name: value
            for name, value in (
                ("amount", self.amount),
                ("date", self.date),
                ("description", self.description),
            )
            if value is not None
        }
        if changes.get("description") == "":
            changes["description"] = None
        return changes


class BillView(BaseModel):
    """
    A relation-resolved bill, as returned by every read path.

    Carries enough of the user and the transaction to render the bill
    without a second lookup.
    """

    id: UUID
    amount: Decimal
    date: datetime
    description: Optional[str] = None
    user: UserRef
    transaction: TransactionRef

    @property
    def transaction_type(self) -> Optional[TransactionType]:
        return self.transaction.type

    @classmethod
    def from_record(
        cls,
        record: BillRecord,
        user: UserRef,
        transaction: TransactionRef,
    ) -> "BillView":
        return cls(
            id=record.id,
            amount=record.amount,
            date=record.date,
            description=record.description,
            user=user,
            transaction=transaction,
        )
