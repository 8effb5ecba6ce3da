"""
Data Models Package

This package contains all Pydantic models used in the Bill Ledger system.
All data flowing through the system must conform to these schemas.
"""

from bill_ledger.models.bill import (
    BillDTO,
    BillRecord,
    BillView,
    TransactionRef,
    TransactionType,
    UserRef,
    utc_now,
)
from bill_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Bill models
    "BillDTO",
    "BillRecord",
    "BillView",
    "TransactionRef",
    "TransactionType",
    "UserRef",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
