"""
Audit Models for Bill Ledger

Every write to a bill, and every rejected request, produces an audit event.
The trail gives us:
1. Traceability of every change to the ledger
2. The reason behind every 400, 404 and 409 the API returned
3. The ability to reconstruct a bill's history

Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from bill_ledger.models.bill import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Writes
    BILL_CREATED = "bill_created"
    BILL_UPDATED = "bill_updated"
    BILL_DELETED = "bill_deleted"

    # Reads
    LISTING_EXECUTED = "listing_executed"

    # Rejections
    BILL_NOT_FOUND = "bill_not_found"
    REFERENCE_NOT_FOUND = "reference_not_found"
    INVALID_ARGUMENT = "invalid_argument"
    CONCURRENT_MODIFICATION = "concurrent_modification"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """One entry of the audit trail."""

    # Who and when
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Event id"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="UTC time the event was recorded"
    )

    # What kind
    event_type: AuditEventType = Field(
        ...,
        description="Kind of ledger event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Log level the event is written at"
    )

    # Subject
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'bill', 'user', 'listing')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Request
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one request"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="One-line summary for people reading the log"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Event-specific fields, stored as JSON in Sheets"
    )

    # Set on rejections and failures only
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Keyword arguments for the structlog call."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Flatten into one AuditLog worksheet row.

        Column order matches AUDIT_COLUMNS:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_code, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_code or "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    One constructor per repository outcome.

    Usage:
        event = AuditEventBuilder.bill_created(bill_id, user_id, transaction_id, amount)
        event = AuditEventBuilder.bill_not_found(bill_id, operation="update")
    """

    @staticmethod
    def bill_created(
        bill_id: UUID,
        user_id: UUID,
        transaction_id: UUID,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_CREATED,
            entity_type="bill",
            entity_id=bill_id,
            correlation_id=correlation_id,
            description=f"Bill created: {amount}",
            details={
                "user_id": str(user_id),
                "transaction_id": str(transaction_id),
                "amount": amount,
            },
        )

    @staticmethod
    def bill_updated(
        bill_id: UUID,
        changed_fields: list[str],
        version: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_UPDATED,
            entity_type="bill",
            entity_id=bill_id,
            correlation_id=correlation_id,
            description=f"Bill updated: {', '.join(changed_fields) or 'no fields'}",
            details={
                "changed_fields": changed_fields,
                "version": version,
            },
        )

    @staticmethod
    def bill_deleted(
        bill_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_DELETED,
            entity_type="bill",
            entity_id=bill_id,
            correlation_id=correlation_id,
            description="Bill deleted",
        )

    @staticmethod
    def listing_executed(
        view: str,
        filters: dict,
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LISTING_EXECUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="listing",
            correlation_id=correlation_id,
            description=f"Listing {view} returned {result_count} bills",
            details={
                "view": view,
                "filters": filters,
                "result_count": result_count,
            },
        )

    @staticmethod
    def bill_not_found(
        bill_id: UUID,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="bill",
            entity_id=bill_id,
            correlation_id=correlation_id,
            description=f"Bill not found during {operation}",
            details={"operation": operation},
            error_code="not_found",
        )

    @staticmethod
    def reference_not_found(
        entity_type: str,
        entity_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFERENCE_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Bill creation rejected: {entity_type} does not exist",
            error_code="reference_not_found",
        )

    @staticmethod
    def invalid_argument(
        field: str,
        value: Any,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVALID_ARGUMENT,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Invalid argument: {field}",
            details={
                "field": field,
                "value": "" if value is None else str(value),
            },
            error_code="invalid_argument",
            error_message=message,
        )

    @staticmethod
    def concurrent_modification(
        bill_id: UUID,
        expected_version: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONCURRENT_MODIFICATION,
            severity=AuditSeverity.WARNING,
            entity_type="bill",
            entity_id=bill_id,
            correlation_id=correlation_id,
            description="Bill changed by another request during update",
            details={"expected_version": expected_version},
            error_code="conflict",
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
