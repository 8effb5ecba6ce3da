"""
Google Sheets Storage Implementation

Google Sheets is available as a persistence backend because:
1. Non-technical users can view their ledger directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data
- No transactions; the version column gives us conditional updates
  on a best-effort basis (read then write, two API calls)
- Limited query capabilities (we filter and join in Python)

Users and transactions live in their own worksheets. They are only read
here; managing them happens outside this application.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional
from uuid import UUID

import gspread
from gspread.utils import rowcol_to_a1
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from bill_ledger.config import get_settings
from bill_ledger.models.audit import AuditEvent
from bill_ledger.models.bill import (
    BillRecord,
    TransactionRef,
    TransactionType,
    UserRef,
    utc_now,
)
from bill_ledger.queries.filters import BillFilter
from bill_ledger.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    ConcurrencyError,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)


# Column mappings for Bills sheet
BILL_COLUMNS = [
    "id",
    "user_id",
    "transaction_id",
    "amount",
    "date",
    "description",
    "created_at",
    "updated_at",
    "version",
]

USER_COLUMNS = ["id", "name"]

TRANSACTION_COLUMNS = ["id", "name", "type"]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_code",
    "error_message",
]

# Rows that fail to parse are skipped on scans
_ROW_ERRORS = (ValueError, IndexError, InvalidOperation)

# Outcomes that a second attempt cannot change are not retried
_sheets_write_retry = retry(
    retry=retry_if_not_exception_type((DuplicateError, NotFoundError, ConcurrencyError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_bills_sheet(self) -> gspread.Worksheet:
        """Get or create the Bills worksheet."""
        return self._get_or_create_sheet(self._settings.bills_sheet_name, BILL_COLUMNS)

    def get_users_sheet(self) -> gspread.Worksheet:
        """Get or create the Users worksheet."""
        return self._get_or_create_sheet(self._settings.users_sheet_name, USER_COLUMNS)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsBillStorage(BillStorageInterface):
    """
    Google Sheets implementation of bill storage.

    Bills are stored as rows in a worksheet with one bill per row.
    Joins against users and transactions are done in Python.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _bill_to_row(self, bill: BillRecord) -> list:
        """Convert a BillRecord to a spreadsheet row."""
        return [
            str(bill.id),
            str(bill.user_id),
            str(bill.transaction_id),
            str(bill.amount),
            bill.date.isoformat(),
            bill.description or "",
            bill.created_at.isoformat(),
            bill.updated_at.isoformat(),
            str(bill.version),
        ]

    def _row_to_bill(self, row: list) -> BillRecord:
        """Convert a spreadsheet row to a BillRecord."""
        return BillRecord(
            id=UUID(_safe_get(row, 0)),
            user_id=UUID(_safe_get(row, 1)),
            transaction_id=UUID(_safe_get(row, 2)),
            amount=Decimal(_safe_get(row, 3)),
            date=datetime.fromisoformat(_safe_get(row, 4)),
            description=_safe_get(row, 5) or None,
            created_at=datetime.fromisoformat(_safe_get(row, 6)),
            updated_at=datetime.fromisoformat(_safe_get(row, 7)),
            version=int(_safe_get(row, 8, "1")),
        )

    def _find_bill_row(self, all_rows: list, bill_id: UUID) -> Optional[int]:
        """Return the 1-based sheet row number of a bill (row 1 is the header)."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == str(bill_id):
                return idx
        return None

    def _read_transactions(self) -> dict[UUID, TransactionRef]:
        sheet = self._client.get_transactions_sheet()
        transactions = {}
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                transaction = TransactionRef(
                    id=UUID(_safe_get(row, 0)),
                    name=_safe_get(row, 1) or None,
                    type=TransactionType(_safe_get(row, 2).lower()),
                )
            except _ROW_ERRORS:
                continue
            transactions[transaction.id] = transaction
        return transactions

    def _read_users(self) -> dict[UUID, UserRef]:
        sheet = self._client.get_users_sheet()
        users = {}
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                user = UserRef(id=UUID(_safe_get(row, 0)), name=_safe_get(row, 1) or None)
            except _ROW_ERRORS:
                continue
            users[user.id] = user
        return users

    @_sheets_write_retry
    async def save_bill(self, bill: BillRecord) -> bool:
        """Append a new bill row."""
        try:
            sheet = self._client.get_bills_sheet()
            if self._find_bill_row(sheet.get_all_values(), bill.id) is not None:
                raise DuplicateError(f"Bill already exists: {bill.id}")
            sheet.append_row(self._bill_to_row(bill), value_input_option="RAW")
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save bill: {e}")

    async def get_bill_by_id(self, bill_id: UUID) -> Optional[BillRecord]:
        """Retrieve a bill by its ID."""
        try:
            sheet = self._client.get_bills_sheet()
            all_rows = sheet.get_all_values()
            idx = self._find_bill_row(all_rows, bill_id)
            if idx is None:
                return None
            return self._row_to_bill(all_rows[idx - 1])
        except Exception as e:
            raise StorageError(f"Failed to get bill: {e}")

    async def update_bill(
        self,
        bill: BillRecord,
        expected_version: Optional[int] = None,
    ) -> BillRecord:
        """
        Overwrite a bill row, optionally only if its version is unchanged.

        Not retried: a write that landed before failing would make the
        retry see its own version bump as a conflict.
        """
        try:
            sheet = self._client.get_bills_sheet()
            all_rows = sheet.get_all_values()

            idx = self._find_bill_row(all_rows, bill.id)
            if idx is None:
                raise NotFoundError(f"Bill not found: {bill.id}")

            stored = self._row_to_bill(all_rows[idx - 1])
            if expected_version is not None and stored.version != expected_version:
                raise ConcurrencyError(
                    f"Bill {bill.id} is at version {stored.version}, expected {expected_version}",
                    expected_version=expected_version,
                    actual_version=stored.version,
                )

            updated = bill.model_copy(
                update={
                    "user_id": stored.user_id,
                    "transaction_id": stored.transaction_id,
                    "created_at": stored.created_at,
                    "updated_at": utc_now(),
                    "version": stored.version + 1,
                }
            )
            sheet.update(
                range_name=f"A{idx}:{rowcol_to_a1(idx, len(BILL_COLUMNS))}",
                values=[self._bill_to_row(updated)],
                value_input_option="RAW",
            )
            return updated
        except (NotFoundError, ConcurrencyError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to update bill: {e}")

    async def delete_bill(self, bill_id: UUID) -> bool:
        """Delete a bill by ID."""
        try:
            sheet = self._client.get_bills_sheet()
            idx = self._find_bill_row(sheet.get_all_values(), bill_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete bill: {e}")

    async def query_bills(self, bill_filter: BillFilter) -> list[BillRecord]:
        """Scan the bills sheet and apply the filter in Python."""
        try:
            sheet = self._client.get_bills_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header

            transactions = (
                self._read_transactions() if bill_filter.needs_transaction_join else {}
            )

            bills = []
            for row in all_rows:
                if not row or not row[0]:  # Skip empty rows
                    continue

                try:
                    bill = self._row_to_bill(row)
                except _ROW_ERRORS:
                    continue  # Skip malformed rows

                if bill_filter.matches(bill, transactions.get(bill.transaction_id)):
                    bills.append(bill)

            return bills
        except Exception as e:
            raise StorageError(f"Failed to list bills: {e}")

    async def get_users(self, user_ids: Iterable[UUID]) -> dict[UUID, UserRef]:
        wanted = set(user_ids)
        if not wanted:
            return {}
        try:
            users = self._read_users()
        except Exception as e:
            raise StorageError(f"Failed to read users: {e}")
        return {user_id: user for user_id, user in users.items() if user_id in wanted}

    async def get_transactions(
        self,
        transaction_ids: Iterable[UUID],
    ) -> dict[UUID, TransactionRef]:
        wanted = set(transaction_ids)
        if not wanted:
            return {}
        try:
            transactions = self._read_transactions()
        except Exception as e:
            raise StorageError(f"Failed to read transactions: {e}")
        return {
            transaction_id: transaction
            for transaction_id, transaction in transactions.items()
            if transaction_id in wanted
        }


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @_sheets_write_retry
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")
