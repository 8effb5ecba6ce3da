"""HTTP transport package."""

from bill_ledger.api.app import create_app
from bill_ledger.api.routes import get_bill_repository, router

__all__ = ["create_app", "get_bill_repository", "router"]
