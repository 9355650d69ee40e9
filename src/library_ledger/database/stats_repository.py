"""
Statistics queries for the Library Ledger.

Read-only aggregates for the dashboard resource and per-entity detail views.
Nothing here mutates fines or counters.
"""

from datetime import date

from pydantic import BaseModel
from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from .errors import BookNotFoundError, MemberNotFoundError
from .schema import Book as BookDB
from .schema import Member as MemberDB
from .schema import Transaction as TransactionDB
from .session import mcp_safe_query


class LibraryStats(BaseModel):
    """Library-wide totals."""

    total_books: int
    total_copies: int
    available_copies: int
    total_members: int
    active_loans: int
    overdue_loans: int
    total_fines: float
    unpaid_fines: float


class MemberStats(BaseModel):
    """Borrowing summary for one member."""

    member_id: int
    total_transactions: int
    active_loans: int
    returned_books: int
    total_fines: float
    paid_fines: float


class BookStats(BaseModel):
    """Circulation summary for one book."""

    book_id: int
    total_loans: int
    current_loans: int
    utilization_rate: float  # Percent of copies currently on loan


_open = (TransactionDB.transaction_type == "lend") & TransactionDB.return_date.is_(None)


class StatsRepository:
    """Aggregate queries across books, members and transactions."""

    def __init__(self, session: Session):
        self.session = session

    def _scalar(self, query, error_msg: str):
        return mcp_safe_query(self.session, lambda s: s.execute(query).scalar(), error_msg)

    def library_stats(self, today: date) -> LibraryStats:
        """Totals for the whole library as of ``today``."""
        book_totals = mcp_safe_query(
            self.session,
            lambda s: s.execute(
                select(
                    func.count(BookDB.id),
                    func.coalesce(func.sum(BookDB.total_copies), 0),
                    func.coalesce(func.sum(BookDB.available_copies), 0),
                )
            ).one(),
            "Failed to count books",
        )
        loan_totals = mcp_safe_query(
            self.session,
            lambda s: s.execute(
                select(
                    func.coalesce(func.sum(case((_open, 1), else_=0)), 0),
                    func.coalesce(
                        func.sum(case((_open & (TransactionDB.due_date < today), 1), else_=0)), 0
                    ),
                    func.coalesce(func.sum(TransactionDB.fine_amount), 0.0),
                    func.coalesce(
                        func.sum(
                            case(
                                (TransactionDB.fine_paid.is_(False), TransactionDB.fine_amount),
                                else_=0.0,
                            )
                        ),
                        0.0,
                    ),
                )
            ).one(),
            "Failed to summarize loans",
        )
        total_members = self._scalar(
            select(func.count()).select_from(MemberDB), "Failed to count members"
        )

        total_books, total_copies, available_copies = book_totals
        active, overdue, total_fines, unpaid_fines = loan_totals
        return LibraryStats(
            total_books=total_books,
            total_copies=total_copies,
            available_copies=available_copies,
            total_members=total_members or 0,
            active_loans=active,
            overdue_loans=overdue,
            total_fines=float(total_fines),
            unpaid_fines=float(unpaid_fines),
        )

    def member_stats(self, member_id: int) -> MemberStats:
        """
        Borrowing summary for one member.

        Raises:
            MemberNotFoundError: If the member does not exist
        """
        if self.session.get(MemberDB, member_id) is None:
            raise MemberNotFoundError(f"Member {member_id} not found")

        total, active, returned, fines, paid = mcp_safe_query(
            self.session,
            lambda s: s.execute(
                select(
                    func.count(TransactionDB.id),
                    func.coalesce(func.sum(case((_open, 1), else_=0)), 0),
                    func.coalesce(
                        func.sum(case((TransactionDB.return_date.is_not(None), 1), else_=0)), 0
                    ),
                    func.coalesce(func.sum(TransactionDB.fine_amount), 0.0),
                    func.coalesce(
                        func.sum(
                            case(
                                (TransactionDB.fine_paid.is_(True), TransactionDB.fine_amount),
                                else_=0.0,
                            )
                        ),
                        0.0,
                    ),
                ).where(TransactionDB.member_id == member_id)
            ).one(),
            "Failed to summarize member",
        )
        return MemberStats(
            member_id=member_id,
            total_transactions=total,
            active_loans=active,
            returned_books=returned,
            total_fines=float(fines),
            paid_fines=float(paid),
        )

    def book_stats(self, book_id: int) -> BookStats:
        """
        Circulation summary for one book.

        Raises:
            BookNotFoundError: If the book does not exist
        """
        book = self.session.get(BookDB, book_id)
        if book is None:
            raise BookNotFoundError(f"Book {book_id} not found")

        total, current = mcp_safe_query(
            self.session,
            lambda s: s.execute(
                select(
                    func.count(TransactionDB.id),
                    func.coalesce(func.sum(case((_open, 1), else_=0)), 0),
                ).where(TransactionDB.book_id == book_id)
            ).one(),
            "Failed to summarize book",
        )
        return BookStats(
            book_id=book_id,
            total_loans=total,
            current_loans=current,
            utilization_rate=round(current / book.total_copies * 100, 2),
        )
