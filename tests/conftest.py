"""Shared fixtures: an in-memory ledger with two users and three transactions."""

from uuid import UUID

import pytest

from bill_ledger.audit import AuditLogger
from bill_ledger.config import get_settings
from bill_ledger.models.bill import TransactionType
from bill_ledger.repository import BillRepository
from bill_ledger.services.storage import InMemoryAuditStorage, InMemoryBillStorage


USER_ID = UUID("11111111-1111-1111-1111-111111111111")
OTHER_USER_ID = UUID("22222222-2222-2222-2222-222222222222")
EXPENSE_TX_ID = UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
OTHER_EXPENSE_TX_ID = UUID("cccccccc-cccc-cccc-cccc-cccccccccccc")
INCOME_TX_ID = UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached; make every test read the environment anew."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def storage():
    storage = InMemoryBillStorage()
    storage.add_user(USER_ID, name="Alice")
    storage.add_user(OTHER_USER_ID, name="Bob")
    storage.add_transaction(EXPENSE_TX_ID, TransactionType.EXPENSE, name="Rent")
    storage.add_transaction(OTHER_EXPENSE_TX_ID, TransactionType.EXPENSE, name="Groceries")
    storage.add_transaction(INCOME_TX_ID, TransactionType.INCOME, name="Salary")
    return storage


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def repository(storage, audit_storage):
    return BillRepository(storage, audit_logger=AuditLogger(audit_storage))
