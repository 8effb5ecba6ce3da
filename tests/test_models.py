"""
Tests for Bill Ledger

Test strategy:
1. Unit tests for individual components (models, filters, validation)
2. Repository tests against the in-memory backend
3. Google Sheets adapter tests with mocked worksheets
4. No real API calls in tests (use mocks)
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from bill_ledger.models.bill import (
    BillDTO,
    BillRecord,
    BillView,
    TransactionRef,
    TransactionType,
    UserRef,
)
from bill_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestBillModels:
    """Tests for bill-related Pydantic models."""

    def test_bill_record_creation(self):
        """Test BillRecord model creation."""
        record = BillRecord(
            user_id=uuid4(),
            transaction_id=uuid4(),
            amount=Decimal("100.00"),
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            description="rent",
        )
        assert record.amount == Decimal("100.00")
        assert record.version == 1
        assert record.id is not None

    def test_bill_record_allows_negative_amount(self):
        """Amounts are signed."""
        record = BillRecord(
            user_id=uuid4(),
            transaction_id=uuid4(),
            amount=Decimal("-5.25"),
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        assert record.amount == Decimal("-5.25")

    def test_bill_record_rejects_fractional_cents(self):
        """Test that amounts carry at most two decimal places."""
        with pytest.raises(ValueError):
            BillRecord(
                user_id=uuid4(),
                transaction_id=uuid4(),
                amount=Decimal("1.005"),
                date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )

    def test_bill_dto_all_fields_optional(self):
        """Test BillDTO accepts an empty payload."""
        dto = BillDTO()
        assert dto.changed_fields() == {}

    def test_bill_dto_changed_fields(self):
        """Only non-null updatable fields are reported."""
        dto = BillDTO(id=uuid4(), description="updated")
        assert dto.changed_fields() == {"description": "updated"}

    def test_bill_dto_parses_json(self):
        dto = BillDTO.model_validate_json(
            '{"amount": "100.00", "date": "2024-01-01T00:00:00Z", "description": "rent"}'
        )
        assert dto.amount == Decimal("100.00")
        assert dto.date == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_bill_view_from_record(self):
        """Test BillView flattens the record with its relations."""
        user = UserRef(id=uuid4(), name="Alice")
        transaction = TransactionRef(id=uuid4(), name="Salary", type=TransactionType.INCOME)
        record = BillRecord(
            user_id=user.id,
            transaction_id=transaction.id,
            amount=Decimal("2500.00"),
            date=datetime(2024, 1, 31, tzinfo=timezone.utc),
        )

        view = BillView.from_record(record, user, transaction)

        assert view.id == record.id
        assert view.user.name == "Alice"
        assert view.transaction_type == TransactionType.INCOME

    def test_bill_view_json_shape(self):
        user = UserRef(id=uuid4())
        transaction = TransactionRef(id=uuid4(), type=TransactionType.EXPENSE)
        record = BillRecord(
            user_id=user.id,
            transaction_id=transaction.id,
            amount=Decimal("100.00"),
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

        data = BillView.from_record(record, user, transaction).model_dump(mode="json")

        assert set(data) == {"id", "amount", "date", "description", "user", "transaction"}
        assert data["transaction"]["type"] == "expense"
        assert "user_id" not in data

    def test_transaction_type_values(self):
        """Test transaction type string values."""
        assert TransactionType("income") == TransactionType.INCOME
        assert TransactionType("expense") == TransactionType.EXPENSE
        assert len(TransactionType) == 2

    def test_transaction_ref_placeholder_has_no_type(self):
        """A placeholder for an unresolvable transaction is unclassified."""
        assert TransactionRef(id=uuid4()).type is None

    def test_transaction_ref_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            TransactionRef(id=uuid4(), type="transfer")

    def test_empty_description_is_stored_as_none(self):
        """Both backends read an empty description back as None."""
        record = BillRecord(
            user_id=uuid4(),
            transaction_id=uuid4(),
            amount=Decimal("1.00"),
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            description="",
        )
        assert record.description is None

    def test_bill_dto_empty_description_clears(self):
        assert BillDTO(description="").changed_fields() == {"description": None}


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.BILL_CREATED,
            description="Test bill created",
        )
        assert event.event_type == AuditEventType.BILL_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.BILL_DELETED,
            description="Bill deleted",
            details={"reason": "duplicate"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "bill_deleted"
        assert log_dict["details"]["reason"] == "duplicate"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEventBuilder.bill_not_found(bill_id=uuid4(), operation="get")
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "bill_not_found"
        assert row[3] == "warning"
        assert row[9] == "not_found"

    def test_audit_event_builder_bill_created(self):
        """Test AuditEventBuilder.bill_created."""
        bill_id, user_id, transaction_id = uuid4(), uuid4(), uuid4()
        correlation_id = uuid4()

        event = AuditEventBuilder.bill_created(
            bill_id=bill_id,
            user_id=user_id,
            transaction_id=transaction_id,
            amount="100.00",
            correlation_id=correlation_id,
        )

        assert event.entity_type == "bill"
        assert event.entity_id == bill_id
        assert event.correlation_id == correlation_id
        assert event.details["user_id"] == str(user_id)

    def test_audit_event_builder_invalid_argument(self):
        event = AuditEventBuilder.invalid_argument(
            field="user_id",
            value=None,
            message="Missing user_id",
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details == {"field": "user_id", "value": ""}
        assert event.error_message == "Missing user_id"

    def test_listing_events_are_debug(self):
        event = AuditEventBuilder.listing_executed(
            view="user",
            filters={"user_id": "x"},
            result_count=3,
        )
        assert event.severity == AuditSeverity.DEBUG
        assert event.description == "Listing user returned 3 bills"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
