"""
Request Validation

Two checks happen before the repository touches storage:

1. IDENTIFIER PARSING
   Route identifiers arrive as text. Anything that is not a UUID is
   rejected as an invalid argument.

2. CREATION PAYLOAD
   A new bill needs an amount. The date falls back to "now" and the
   description may stay empty.

Validation never fixes values silently beyond the documented defaults.
"""

from typing import Optional, Union
from uuid import UUID

from bill_ledger.errors import InvalidArgumentError
from bill_ledger.models.bill import BillDTO, BillRecord, utc_now


def parse_identifier(value: Optional[Union[str, UUID]], field: str) -> UUID:
    """
    Parse a route identifier into a UUID.

    Raises:
        InvalidArgumentError: if the value is missing or not a UUID
    """
    if isinstance(value, UUID):
        return value

    if value is None or not str(value).strip():
        raise InvalidArgumentError(field, f"Missing {field}", value)

    try:
        return UUID(str(value).strip())
    except (ValueError, AttributeError, TypeError):
        raise InvalidArgumentError(field, f"Invalid {field}: {value!r}", value)


def build_bill_record(
    payload: BillDTO,
    user_id: UUID,
    transaction_id: UUID,
) -> BillRecord:
    """
    Turn a creation payload into a new record bound to its user and transaction.

    Any id in the payload is ignored; a fresh one is generated.

    Raises:
        InvalidArgumentError: if the amount is missing
    """
    if payload.amount is None:
        raise InvalidArgumentError("amount", "Amount is required to create a bill")

    return BillRecord(
        user_id=user_id,
        transaction_id=transaction_id,
        amount=payload.amount,
        date=payload.date or utc_now(),
        description=payload.description,
    )
