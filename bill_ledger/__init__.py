"""
Bill Ledger - Source Package

Bill records linked to a user and an income/expense transaction,
with CRUD operations and filtered listing views.

DESIGN PRINCIPLES:
1. Storage is an explicit dependency, never ambient state
2. Fail early, fail visibly
3. Reads always return relation-resolved views
4. Classification is derived from the linked transaction, never stored
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Bill Ledger Team"
