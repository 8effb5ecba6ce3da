"""
Audit Logger

Every write to the ledger and every rejected request is logged.
This provides:
1. Traceability of each bill's history
2. Debugging capability
3. A record of invalid and conflicting requests

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace the events of one request
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from bill_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from bill_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("bill_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available; DEBUG
        events (listings) are only logged locally.

        Returns True if storage write succeeded (or was not needed).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage and event.severity != AuditSeverity.DEBUG:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_bill_created(
        self,
        bill_id: UUID,
        user_id: UUID,
        transaction_id: UUID,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log bill creation."""
        await self.log(AuditEventBuilder.bill_created(
            bill_id=bill_id,
            user_id=user_id,
            transaction_id=transaction_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_bill_updated(
        self,
        bill_id: UUID,
        changed_fields: list[str],
        version: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log bill update."""
        await self.log(AuditEventBuilder.bill_updated(
            bill_id=bill_id,
            changed_fields=changed_fields,
            version=version,
            correlation_id=correlation_id,
        ))

    async def log_bill_deleted(
        self,
        bill_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log bill deletion."""
        await self.log(AuditEventBuilder.bill_deleted(
            bill_id=bill_id,
            correlation_id=correlation_id,
        ))

    async def log_listing(
        self,
        view: str,
        filters: dict,
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a listing view."""
        await self.log(AuditEventBuilder.listing_executed(
            view=view,
            filters=filters,
            result_count=result_count,
            correlation_id=correlation_id,
        ))

    async def log_bill_not_found(
        self,
        bill_id: UUID,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.bill_not_found(
            bill_id=bill_id,
            operation=operation,
            correlation_id=correlation_id,
        ))

    async def log_reference_not_found(
        self,
        entity_type: str,
        entity_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.reference_not_found(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_invalid_argument(
        self,
        field: str,
        value: Any,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.invalid_argument(
            field=field,
            value=value,
            message=message,
            correlation_id=correlation_id,
        ))

    async def log_concurrent_modification(
        self,
        bill_id: UUID,
        expected_version: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.concurrent_modification(
            bill_id=bill_id,
            expected_version=expected_version,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request and pass it through
    every repository call made on its behalf.
    """
    return uuid4()
