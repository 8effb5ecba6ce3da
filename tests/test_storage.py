"""
Tests for storage backends.

Covers:
- In-memory bill and audit storage
- Google Sheets bill storage (mocked worksheets)
- Google Sheets audit storage (mocked worksheets)
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from bill_ledger.models.audit import AuditEventBuilder
from bill_ledger.models.bill import BillRecord, TransactionType
from bill_ledger.queries import BillFilter
from bill_ledger.services.storage import (
    ConcurrencyError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    InMemoryAuditStorage,
    InMemoryBillStorage,
    NotFoundError,
    StorageError,
)
from bill_ledger.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    BILL_COLUMNS,
    TRANSACTION_COLUMNS,
    USER_COLUMNS,
)


USER_ID = uuid4()
INCOME_TX = uuid4()
EXPENSE_TX = uuid4()


def make_bill(**overrides) -> BillRecord:
    values = {
        "user_id": USER_ID,
        "transaction_id": EXPENSE_TX,
        "amount": Decimal("100.00"),
        "date": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "description": "rent",
    }
    values.update(overrides)
    return BillRecord(**values)


class TestInMemoryBillStorage:
    """Test the in-memory backend."""

    @pytest.fixture
    def storage(self):
        storage = InMemoryBillStorage()
        storage.add_user(USER_ID, name="Alice")
        storage.add_transaction(INCOME_TX, TransactionType.INCOME)
        storage.add_transaction(EXPENSE_TX, TransactionType.EXPENSE)
        return storage

    @pytest.mark.asyncio
    async def test_save_and_get(self, storage):
        bill = make_bill()
        assert await storage.save_bill(bill) is True
        assert await storage.get_bill_by_id(bill.id) == bill

    @pytest.mark.asyncio
    async def test_save_duplicate(self, storage):
        bill = make_bill()
        await storage.save_bill(bill)
        with pytest.raises(DuplicateError):
            await storage.save_bill(bill)

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, storage):
        """Mutating a returned record does not change what is stored."""
        bill = make_bill()
        await storage.save_bill(bill)

        fetched = await storage.get_bill_by_id(bill.id)
        fetched.description = "changed"

        assert (await storage.get_bill_by_id(bill.id)).description == "rent"

    @pytest.mark.asyncio
    async def test_update_increments_version(self, storage):
        bill = make_bill()
        await storage.save_bill(bill)

        updated = await storage.update_bill(
            bill.model_copy(update={"amount": Decimal("5.00")}),
            expected_version=1,
        )

        assert updated.version == 2
        assert updated.amount == Decimal("5.00")
        assert updated.updated_at >= bill.updated_at

    @pytest.mark.asyncio
    async def test_update_with_stale_version(self, storage):
        bill = make_bill()
        await storage.save_bill(bill)
        await storage.update_bill(bill)

        with pytest.raises(ConcurrencyError) as exc_info:
            await storage.update_bill(bill, expected_version=1)

        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2

    @pytest.mark.asyncio
    async def test_update_never_moves_relations(self, storage):
        bill = make_bill()
        await storage.save_bill(bill)

        updated = await storage.update_bill(
            bill.model_copy(update={"user_id": uuid4(), "transaction_id": INCOME_TX})
        )

        assert updated.user_id == USER_ID
        assert updated.transaction_id == EXPENSE_TX

    @pytest.mark.asyncio
    async def test_update_missing(self, storage):
        with pytest.raises(NotFoundError):
            await storage.update_bill(make_bill())

    @pytest.mark.asyncio
    async def test_delete(self, storage):
        bill = make_bill()
        await storage.save_bill(bill)
        assert await storage.delete_bill(bill.id) is True
        assert await storage.delete_bill(bill.id) is False
        assert await storage.get_bill_by_id(bill.id) is None

    @pytest.mark.asyncio
    async def test_query_joins_transaction_type(self, storage):
        expense = make_bill()
        income = make_bill(transaction_id=INCOME_TX)
        await storage.save_bill(expense)
        await storage.save_bill(income)

        result = await storage.query_bills(BillFilter.income_for_user(USER_ID))

        assert [bill.id for bill in result] == [income.id]

    @pytest.mark.asyncio
    async def test_query_keeps_insertion_order(self, storage):
        bills = [make_bill(description=str(i)) for i in range(3)]
        for bill in bills:
            await storage.save_bill(bill)

        result = await storage.query_bills(BillFilter.everything())

        assert [bill.id for bill in result] == [bill.id for bill in bills]

    @pytest.mark.asyncio
    async def test_get_users_and_transactions(self, storage):
        missing = uuid4()
        users = await storage.get_users([USER_ID, missing])
        transactions = await storage.get_transactions([INCOME_TX])

        assert set(users) == {USER_ID}
        assert transactions[INCOME_TX].type == TransactionType.INCOME
        assert await storage.user_exists(USER_ID)
        assert not await storage.transaction_exists(missing)


class TestInMemoryAuditStorage:
    """Test the in-memory audit log."""

    @pytest.mark.asyncio
    async def test_events_keep_append_order(self):
        storage = InMemoryAuditStorage()
        first, second = uuid4(), uuid4()

        assert await storage.append_event(AuditEventBuilder.bill_deleted(first)) is True
        await storage.append_event(AuditEventBuilder.bill_deleted(second))

        assert [e.entity_id for e in storage.events] == [first, second]

    @pytest.mark.asyncio
    async def test_events_property_is_a_copy(self):
        storage = InMemoryAuditStorage()
        await storage.append_event(AuditEventBuilder.bill_deleted(uuid4()))

        storage.events.clear()

        assert len(storage.events) == 1


def make_sheet(header: list, rows: list) -> MagicMock:
    sheet = MagicMock()
    sheet.get_all_values.return_value = [header] + rows
    return sheet


class TestGoogleSheetsBillStorage:
    """Test the Google Sheets backend with mocked worksheets."""

    @pytest.fixture
    def bill(self):
        return make_bill()

    @pytest.fixture
    def sheets(self, bill):
        storage = GoogleSheetsBillStorage(MagicMock())
        return {
            "bills": make_sheet(BILL_COLUMNS, [storage._bill_to_row(bill)]),
            "users": make_sheet(USER_COLUMNS, [[str(USER_ID), "Alice"]]),
            "transactions": make_sheet(TRANSACTION_COLUMNS, [
                [str(INCOME_TX), "Salary", "income"],
                [str(EXPENSE_TX), "Rent", "expense"],
                ["not-a-uuid", "Broken", "expense"],
            ]),
        }

    @pytest.fixture
    def client(self, sheets):
        client = MagicMock()
        client.get_bills_sheet.return_value = sheets["bills"]
        client.get_users_sheet.return_value = sheets["users"]
        client.get_transactions_sheet.return_value = sheets["transactions"]
        return client

    @pytest.fixture
    def storage(self, client):
        return GoogleSheetsBillStorage(client)

    def test_row_round_trip(self, storage, bill):
        """Test serialization/deserialization of a bill row."""
        row = storage._bill_to_row(bill)
        assert len(row) == len(BILL_COLUMNS)
        assert storage._row_to_bill(row) == bill

    def test_row_without_description(self, storage):
        bill = make_bill(description=None)
        row = storage._bill_to_row(bill)
        assert row[5] == ""
        assert storage._row_to_bill(row).description is None

    @pytest.mark.asyncio
    async def test_get_bill_by_id(self, storage, bill):
        assert await storage.get_bill_by_id(bill.id) == bill
        assert await storage.get_bill_by_id(uuid4()) is None

    @pytest.mark.asyncio
    async def test_get_bill_wraps_backend_errors(self, storage, sheets):
        sheets["bills"].get_all_values.side_effect = RuntimeError("quota exceeded")
        with pytest.raises(StorageError, match="quota exceeded"):
            await storage.get_bill_by_id(uuid4())

    @pytest.mark.asyncio
    async def test_save_bill_appends_row(self, storage, sheets):
        new_bill = make_bill(description="new")

        assert await storage.save_bill(new_bill) is True

        sheets["bills"].append_row.assert_called_once_with(
            storage._bill_to_row(new_bill),
            value_input_option="RAW",
        )

    @pytest.mark.asyncio
    async def test_save_bill_duplicate_is_not_retried(self, storage, sheets, bill):
        with pytest.raises(DuplicateError):
            await storage.save_bill(bill)
        assert sheets["bills"].get_all_values.call_count == 1
        sheets["bills"].append_row.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_bill_writes_whole_row(self, storage, sheets, bill):
        changed = bill.model_copy(update={"description": "updated"})

        updated = await storage.update_bill(changed, expected_version=1)

        assert updated.version == 2
        sheets["bills"].update.assert_called_once()
        kwargs = sheets["bills"].update.call_args.kwargs
        assert kwargs["range_name"] == "A2:I2"
        assert kwargs["values"][0][5] == "updated"
        assert kwargs["values"][0][8] == "2"

    @pytest.mark.asyncio
    async def test_update_bill_version_conflict(self, storage, sheets, bill):
        with pytest.raises(ConcurrencyError):
            await storage.update_bill(bill, expected_version=7)
        sheets["bills"].update.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_update_is_not_retried(self, storage, sheets, bill):
        """A repeated write would see its own version bump as a conflict."""
        sheets["bills"].update.side_effect = RuntimeError("connection reset")

        with pytest.raises(StorageError, match="connection reset"):
            await storage.update_bill(bill, expected_version=1)

        assert sheets["bills"].update.call_count == 1
        assert sheets["bills"].get_all_values.call_count == 1

    @pytest.mark.asyncio
    async def test_cleared_description_round_trip(self, storage, sheets, bill):
        """An empty cell reads back as None, as the in-memory backend stores it."""
        cleared = bill.model_copy(update={"description": None})

        await storage.update_bill(cleared)

        row = sheets["bills"].update.call_args.kwargs["values"][0]
        assert row[5] == ""
        assert storage._row_to_bill(row).description is None

    @pytest.mark.asyncio
    async def test_update_missing_bill(self, storage):
        with pytest.raises(NotFoundError):
            await storage.update_bill(make_bill())

    @pytest.mark.asyncio
    async def test_delete_bill(self, storage, sheets, bill):
        assert await storage.delete_bill(bill.id) is True
        sheets["bills"].delete_rows.assert_called_once_with(2)
        assert await storage.delete_bill(uuid4()) is False

    @pytest.mark.asyncio
    async def test_query_skips_malformed_rows(self, storage, sheets, bill):
        sheets["bills"].get_all_values.return_value.extend([
            [],
            ["garbage", "row"],
        ])

        result = await storage.query_bills(BillFilter.for_user(USER_ID))

        assert result == [bill]

    @pytest.mark.asyncio
    async def test_query_reads_transactions_only_for_type_filters(self, storage, sheets, bill):
        await storage.query_bills(BillFilter.for_user(USER_ID))
        sheets["transactions"].get_all_values.assert_not_called()

        expense = await storage.query_bills(BillFilter.expense_for_user(USER_ID))
        income = await storage.query_bills(BillFilter.income_for_user(USER_ID))

        assert expense == [bill]
        assert income == []

    @pytest.mark.asyncio
    async def test_get_transactions_skips_malformed_rows(self, storage):
        transactions = await storage.get_transactions([INCOME_TX, EXPENSE_TX])
        assert transactions[INCOME_TX].type == TransactionType.INCOME
        assert transactions[EXPENSE_TX].name == "Rent"

    @pytest.mark.asyncio
    async def test_get_users(self, storage, sheets):
        users = await storage.get_users([USER_ID, uuid4()])
        assert list(users) == [USER_ID]
        assert users[USER_ID].name == "Alice"

    @pytest.mark.asyncio
    async def test_empty_lookup_skips_sheet(self, storage, sheets):
        assert await storage.get_users([]) == {}
        sheets["users"].get_all_values.assert_not_called()


class TestGoogleSheetsAuditStorage:
    """Test the Google Sheets audit log with mocked worksheets."""

    @pytest.mark.asyncio
    async def test_append_writes_one_row(self):
        event = AuditEventBuilder.bill_updated(uuid4(), ["amount"], version=2)
        sheet = make_sheet(AUDIT_COLUMNS, [])
        client = MagicMock()
        client.get_audit_sheet.return_value = sheet
        storage = GoogleSheetsAuditStorage(client)

        assert await storage.append_event(event) is True

        sheet.append_row.assert_called_once_with(event.to_sheets_row(), value_input_option="RAW")
        row = sheet.append_row.call_args.args[0]
        assert len(row) == len(AUDIT_COLUMNS)
        assert json.loads(row[8]) == {"changed_fields": ["amount"], "version": 2}
