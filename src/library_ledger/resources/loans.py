"""Loan Resources - Active, Overdue and Historical Loans

Read-only views over the transactions table. Loans are tagged on time or
overdue against the ledger's clock; reading them never changes a fine.

Resources:
- library://loans/active - Open loans, soonest due first
- library://loans/overdue - Open loans past their due date
- library://loans/history - Most recent transactions across the library
- library://members/{member_id}/loans - Every transaction of one member
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.errors import NotFoundError
from ..database.transaction_repository import DEFAULT_HISTORY_LIMIT
from ..ledger import LendingLedger
from ..models.transaction import ActiveLoan

logger = logging.getLogger(__name__)


def _summarize(loans: list[ActiveLoan]) -> dict[str, Any]:
    return {
        "total": len(loans),
        "overdue": sum(1 for loan in loans if loan.days_overdue > 0),
        "loans": [loan.model_dump(mode="json") for loan in loans],
    }


async def get_active_loans_handler(ledger: LendingLedger) -> dict[str, Any]:
    """Returns every open loan with book and member details."""
    try:
        logger.debug("MCP Resource Request - loans/active")
        loans = ledger.list_active_loans()
        return {"as_of": ledger.today().isoformat(), **_summarize(loans)}
    except Exception as e:
        logger.exception("Error in loans/active resource")
        raise ResourceError(f"Failed to retrieve active loans: {e!s}") from e


async def get_overdue_loans_handler(ledger: LendingLedger) -> dict[str, Any]:
    """Returns open loans whose due date has passed, with days overdue."""
    try:
        logger.debug("MCP Resource Request - loans/overdue")
        loans = ledger.list_overdue_loans()
        return {"as_of": ledger.today().isoformat(), **_summarize(loans)}
    except Exception as e:
        logger.exception("Error in loans/overdue resource")
        raise ResourceError(f"Failed to retrieve overdue loans: {e!s}") from e


async def get_loan_history_handler(
    ledger: LendingLedger, limit: int = DEFAULT_HISTORY_LIMIT
) -> dict[str, Any]:
    """Returns the most recent transactions, newest first."""
    try:
        logger.debug("MCP Resource Request - loans/history")
        history = ledger.transaction_history(limit)
        return {
            "limit": limit,
            "total": len(history),
            "transactions": [tx.model_dump(mode="json") for tx in history],
        }
    except Exception as e:
        logger.exception("Error in loans/history resource")
        raise ResourceError(f"Failed to retrieve loan history: {e!s}") from e


async def get_member_loans_handler(ledger: LendingLedger, member_id: str) -> dict[str, Any]:
    """Returns a member's full borrowing history, newest first.

    Client requests library://members/{member_id}/loans.
    """
    try:
        member_id_int = int(member_id)
    except ValueError as e:
        raise ResourceError(f"Invalid member id: {member_id}") from e

    try:
        logger.debug("MCP Resource Request - members/%d/loans", member_id_int)
        member = ledger.get_member(member_id_int)
        history = ledger.member_history(member_id_int)
    except NotFoundError as e:
        raise ResourceError(f"Member not found: {member_id}") from e
    except Exception as e:
        logger.exception("Error in members/{member_id}/loans resource")
        raise ResourceError(f"Failed to retrieve member loans: {e!s}") from e

    return {
        "member": member.model_dump(mode="json"),
        "total": len(history),
        "active": sum(1 for tx in history if tx.is_open),
        "transactions": [tx.model_dump(mode="json") for tx in history],
    }


def build_loan_resources(
    ledger: LendingLedger, history_limit: int = DEFAULT_HISTORY_LIMIT
) -> list[dict[str, Any]]:
    """Loan resource definitions bound to ``ledger``."""

    async def active_loans() -> dict[str, Any]:
        return await get_active_loans_handler(ledger)

    async def overdue_loans() -> dict[str, Any]:
        return await get_overdue_loans_handler(ledger)

    async def loan_history() -> dict[str, Any]:
        return await get_loan_history_handler(ledger, history_limit)

    async def member_loans(member_id: str) -> dict[str, Any]:
        return await get_member_loans_handler(ledger, member_id)

    return [
        {
            "uri": "library://loans/active",
            "name": "Active Loans",
            "description": (
                "All books currently on loan with borrower details, soonest due "
                "first. Each loan is tagged on_time or overdue."
            ),
            "mime_type": "application/json",
            "handler": active_loans,
        },
        {
            "uri": "library://loans/overdue",
            "name": "Overdue Loans",
            "description": "Loans past their due date with the number of days overdue",
            "mime_type": "application/json",
            "handler": overdue_loans,
        },
        {
            "uri": "library://loans/history",
            "name": "Loan History",
            "description": f"The {history_limit} most recent lend and return transactions",
            "mime_type": "application/json",
            "handler": loan_history,
        },
        {
            "uri_template": "library://members/{member_id}/loans",
            "name": "Member Loans",
            "description": "Complete borrowing history for one member, newest first",
            "mime_type": "application/json",
            "handler": member_loans,
        },
    ]
