"""
Circulation tools for the Library Ledger.

The two tools that move copies in and out of the library:

1. lend_book: claim a copy for a member and open a loan
2. return_book: close a loan, assess the fine and put the copy back

Both run as single atomic ledger operations; a failed call leaves no trace.
"""

import logging
from datetime import date
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.errors import RepositoryException
from ..ledger import LendingLedger
from ..models.transaction import Transaction
from .results import invalid_arguments, ledger_failure, success_result, unexpected_failure

logger = logging.getLogger(__name__)


def format_transaction(tx: Transaction) -> dict[str, Any]:
    data = tx.model_dump(mode="json", exclude={"created_at", "updated_at"})
    data["loan_period_days"] = tx.loan_period_days
    return data


# =============================================================================
# LEND TOOL
# =============================================================================


class LendBookInput(BaseModel):
    """Input schema for the lend_book tool."""

    book_id: int = Field(..., description="ID of the book to lend", ge=1, examples=[1])

    member_id: int = Field(..., description="ID of the borrowing member", ge=1, examples=[3])

    due_date: date | None = Field(
        default=None,
        description=(
            "Optional due date. Defaults to today plus the lending period for "
            "the member's type (student 14, faculty 30, public 7 days)."
        ),
        examples=["2024-03-15"],
    )

    notes: str | None = Field(
        default=None,
        description="Optional notes about this loan",
        max_length=500,
        examples=["Course reserve copy"],
    )


async def lend_book_handler(ledger: LendingLedger, arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the lend_book tool.

    Args:
        ledger: The lending ledger
        arguments: Raw arguments from the MCP tools/call request

    Returns:
        The new loan, or a typed error result
    """
    try:
        params = LendBookInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments("lend_book", e)

    try:
        tx = ledger.lend(
            params.book_id,
            params.member_id,
            due_date=params.due_date,
            notes=params.notes,
        )
    except RepositoryException as e:
        return ledger_failure("lend_book", e)
    except Exception as e:
        return unexpected_failure("lend_book", e)

    message = (
        f"Lent '{tx.book_title}' to {tx.member_name}. "
        f"Due date: {tx.due_date.strftime('%B %d, %Y')} ({tx.loan_period_days}-day loan)"
    )
    return success_result(message, {"transaction": format_transaction(tx)})


# =============================================================================
# RETURN TOOL
# =============================================================================


class ReturnBookInput(BaseModel):
    """Input schema for the return_book tool."""

    transaction_id: int = Field(
        ..., description="ID of the loan transaction to close", ge=1, examples=[12]
    )


async def return_book_handler(ledger: LendingLedger, arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the return_book tool.

    The fine is computed from the member type's fine rule: nothing within the
    grace period, otherwise every overdue day at the daily rate, capped at the
    maximum fine.
    """
    try:
        params = ReturnBookInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments("return_book", e)

    try:
        tx = ledger.return_book(params.transaction_id)
    except RepositoryException as e:
        return ledger_failure("return_book", e)
    except Exception as e:
        return unexpected_failure("return_book", e)

    message = f"Returned '{tx.book_title}' from {tx.member_name}."
    if tx.fine_amount > 0:
        message += f" Overdue fine: {tx.fine_amount:.2f}"
    else:
        message += " No fine due."
    return success_result(message, {"transaction": format_transaction(tx)})


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

lend_book = {
    "name": "lend_book",
    "description": (
        "Lend one copy of a book to a member. Fails if the book or member does "
        "not exist or no copy is available. The due date defaults to the lending "
        "period for the member's type."
    ),
    "handler": lend_book_handler,
}

return_book = {
    "name": "return_book",
    "description": (
        "Return a lent book by transaction ID. Restores the copy, records the "
        "return date and assesses any overdue fine. Fails if the loan was already returned."
    ),
    "handler": return_book_handler,
}
