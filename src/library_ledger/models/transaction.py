"""
Transaction models for the Library Ledger.

A transaction is a single loan. It is created by the lend operation as an
open ``lend`` and closed in place by the return operation, which fills in
the return date and fine and flips its type to ``return``.

``ActiveLoan`` is the read-only projection used by the active/overdue loan
listings; it carries display fields from the book and member and an
on-time/overdue tag computed against the ledger's clock.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .member import MemberType


class TransactionType(str, Enum):
    """Loan state as stored on the transaction row."""

    LEND = "lend"
    RETURN = "return"


class LoanStatus(str, Enum):
    """Timeliness tag on an active loan."""

    ON_TIME = "on_time"
    OVERDUE = "overdue"


def days_overdue(due_date: date, today: date) -> int:
    """Whole days strictly after the due date; 0 when not late."""
    return max(0, (today - due_date).days)


class Transaction(BaseModel):
    """Represents a loan and, once returned, its outcome."""

    id: int = Field(..., ge=1)
    book_id: int = Field(..., ge=1)
    member_id: int = Field(..., ge=1)
    transaction_type: TransactionType = Field(default=TransactionType.LEND)
    transaction_date: date
    due_date: date
    return_date: date | None = None
    fine_amount: float = Field(default=0.0, ge=0.0)
    fine_paid: bool = False
    notes: str | None = None

    # Display fields joined from the book and member
    book_title: str | None = None
    member_name: str | None = None
    member_type: MemberType | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def validate_dates(self) -> "Transaction":
        """Due and return dates may not precede the transaction date."""
        if self.due_date < self.transaction_date:
            raise ValueError("Due date cannot be before transaction date")
        if self.return_date and self.return_date < self.transaction_date:
            raise ValueError("Return date cannot be before transaction date")
        return self

    @property
    def is_open(self) -> bool:
        """True while the book is still out."""
        return self.transaction_type == TransactionType.LEND and self.return_date is None

    @property
    def loan_period_days(self) -> int:
        return (self.due_date - self.transaction_date).days

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 12,
                "book_id": 1,
                "member_id": 3,
                "transaction_type": "lend",
                "transaction_date": "2024-03-01",
                "due_date": "2024-03-15",
                "return_date": None,
                "fine_amount": 0.0,
                "fine_paid": False,
                "book_title": "The Great Gatsby",
                "member_name": "John Smith",
                "member_type": "student",
            }
        },
    )


class ActiveLoan(BaseModel):
    """An open loan joined with book and member display fields."""

    id: int
    book_id: int
    member_id: int
    transaction_date: date
    due_date: date
    fine_amount: float = 0.0
    notes: str | None = None

    book_title: str
    book_authors: list[str] = Field(default_factory=list)
    member_name: str
    member_code: str
    member_type: MemberType

    status: LoanStatus
    days_overdue: int = Field(default=0, ge=0)


class AvailabilityDrift(BaseModel):
    """A book whose stored counter disagrees with its open loans."""

    book_id: int
    title: str
    total_copies: int
    stored_available: int
    expected_available: int
    open_loans: int
