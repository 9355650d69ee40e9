"""
Library Ledger models.

Pydantic models for the entities the ledger works with. They validate data
coming in from the request layer and serialize cleanly to JSON for MCP
responses.

- Book: catalog entries with cached availability
- Member: borrowers and their member type
- Transaction / ActiveLoan: loans and the active-loan projection
- FineRules / LendingPeriods: settings consumed by lend and return
"""

from .book import Book, BookStatus
from .member import Member, MemberType
from .settings import FineRule, FineRules, LendingPeriods
from .transaction import (
    ActiveLoan,
    AvailabilityDrift,
    LoanStatus,
    Transaction,
    TransactionType,
    days_overdue,
)

__all__ = [
    "ActiveLoan",
    "AvailabilityDrift",
    "Book",
    "BookStatus",
    "FineRule",
    "FineRules",
    "LendingPeriods",
    "LoanStatus",
    "Member",
    "MemberType",
    "Transaction",
    "TransactionType",
    "days_overdue",
]
