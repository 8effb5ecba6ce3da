"""
Domain errors raised by the bill repository.

The transport layer maps each class to its own client-error response.
Storage failures are not wrapped here; they propagate as StorageError.
"""

from typing import Any, Optional
from uuid import UUID


class BillRepositoryError(Exception):
    """Base exception for bill repository operations."""
    pass


class InvalidArgumentError(BillRepositoryError):
    """A required identifier or payload field is missing or malformed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value
        self.message = message


class BillNotFoundError(BillRepositoryError):
    """No bill exists with the requested id."""

    def __init__(self, bill_id: UUID):
        super().__init__(f"Bill not found: {bill_id}")
        self.bill_id = bill_id


class ReferenceNotFoundError(BillRepositoryError):
    """A user or transaction referenced at creation does not exist."""

    def __init__(self, entity_type: str, entity_id: UUID):
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConcurrentModificationError(BillRepositoryError):
    """The bill changed between the read and the write of an update."""

    def __init__(self, bill_id: UUID, expected_version: Optional[int] = None):
        super().__init__(f"Bill was modified concurrently: {bill_id}")
        self.bill_id = bill_id
        self.expected_version = expected_version
