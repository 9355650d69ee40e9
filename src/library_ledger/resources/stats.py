"""Statistics Resources - Library Analytics

Aggregated library metrics for dashboards and detail views.

Resources:
- library://stats/summary - Library-wide totals, loans and fines
- library://books/{book_id}/stats - Circulation summary for one book
- library://members/{member_id}/stats - Borrowing summary for one member
- library://stats/integrity - Books whose availability counter drifted
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.errors import NotFoundError
from ..ledger import LendingLedger

logger = logging.getLogger(__name__)


def _parse_id(value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ResourceError(f"Invalid {what} id: {value}") from e


async def get_library_summary_handler(ledger: LendingLedger) -> dict[str, Any]:
    """Returns library-wide totals.

    Client requests library://stats/summary for the dashboard view.
    """
    try:
        logger.debug("MCP Resource Request - stats/summary")
        stats = ledger.library_stats()
        return {"as_of": ledger.today().isoformat(), **stats.model_dump()}
    except Exception as e:
        logger.exception("Error in stats/summary resource")
        raise ResourceError(f"Failed to calculate library statistics: {e!s}") from e


async def get_book_stats_handler(ledger: LendingLedger, book_id: str) -> dict[str, Any]:
    """Returns loan counts and current utilization for one book."""
    book_id_int = _parse_id(book_id, "book")
    try:
        book = ledger.get_book(book_id_int)
        stats = ledger.book_stats(book_id_int)
    except NotFoundError as e:
        raise ResourceError(f"Book not found: {book_id}") from e
    except Exception as e:
        logger.exception("Error in books/{book_id}/stats resource")
        raise ResourceError(f"Failed to calculate book statistics: {e!s}") from e

    return {"title": book.title, **stats.model_dump()}


async def get_member_stats_handler(ledger: LendingLedger, member_id: str) -> dict[str, Any]:
    """Returns transaction, loan and fine totals for one member."""
    member_id_int = _parse_id(member_id, "member")
    try:
        member = ledger.get_member(member_id_int)
        stats = ledger.member_stats(member_id_int)
    except NotFoundError as e:
        raise ResourceError(f"Member not found: {member_id}") from e
    except Exception as e:
        logger.exception("Error in members/{member_id}/stats resource")
        raise ResourceError(f"Failed to calculate member statistics: {e!s}") from e

    return {"name": member.name, "member_code": member.member_code, **stats.model_dump()}


async def get_integrity_handler(ledger: LendingLedger) -> dict[str, Any]:
    """Returns books whose available copies disagree with their open loans."""
    try:
        drifts = ledger.check_integrity()
    except Exception as e:
        logger.exception("Error in stats/integrity resource")
        raise ResourceError(f"Failed to check availability integrity: {e!s}") from e

    return {
        "consistent": not drifts,
        "drifted_books": [drift.model_dump() for drift in drifts],
    }


def build_stats_resources(ledger: LendingLedger) -> list[dict[str, Any]]:
    """Statistics resource definitions bound to ``ledger``."""

    async def library_summary() -> dict[str, Any]:
        return await get_library_summary_handler(ledger)

    async def book_stats(book_id: str) -> dict[str, Any]:
        return await get_book_stats_handler(ledger, book_id)

    async def member_stats(member_id: str) -> dict[str, Any]:
        return await get_member_stats_handler(ledger, member_id)

    async def integrity() -> dict[str, Any]:
        return await get_integrity_handler(ledger)

    return [
        {
            "uri": "library://stats/summary",
            "name": "Library Summary",
            "description": (
                "Totals of books, copies, members, active and overdue loans, "
                "and assessed and unpaid fines"
            ),
            "mime_type": "application/json",
            "handler": library_summary,
        },
        {
            "uri_template": "library://books/{book_id}/stats",
            "name": "Book Statistics",
            "description": "Total loans, current loans and utilization for one book",
            "mime_type": "application/json",
            "handler": book_stats,
        },
        {
            "uri_template": "library://members/{member_id}/stats",
            "name": "Member Statistics",
            "description": "Transactions, active loans, returns and fines for one member",
            "mime_type": "application/json",
            "handler": member_stats,
        },
        {
            "uri": "library://stats/integrity",
            "name": "Availability Integrity",
            "description": "Books whose available copy count disagrees with their open loans",
            "mime_type": "application/json",
            "handler": integrity,
        },
    ]
