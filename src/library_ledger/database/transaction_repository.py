"""
Transaction repository implementation for the Library Ledger.

This is where loans are written. It covers:

1. **Lend**: a guarded decrement of the book's available copies plus the new
   loan row
2. **Return**: a guarded close of the loan row, the fine, and the matching
   increment of the book's counter
3. **Projections**: active and overdue loans, member and library history
4. **Integrity**: finding and repairing books whose counters drifted away
   from their open loans

Lend and return only flush. The caller runs them inside
``DatabaseManager.write_scope()`` which holds the writer lock and commits
both writes together or rolls both back.
"""

import json
import logging
from datetime import date, timedelta

from sqlalchemy import case, desc, func, select, update
from sqlalchemy.orm import Session, joinedload

from ..models.book import BookStatus
from ..models.member import MemberType
from ..models.transaction import (
    ActiveLoan,
    AvailabilityDrift,
    LoanStatus,
    TransactionType,
    days_overdue,
)
from ..models.transaction import Transaction as TransactionModel
from .errors import (
    AlreadyReturnedError,
    BookNotFoundError,
    DataValidationError,
    MemberNotFoundError,
    NotAvailableError,
    TransactionNotFoundError,
)
from .schema import Book as BookDB
from .schema import Member as MemberDB
from .schema import Transaction as TransactionDB
from .session import mcp_safe_execute, mcp_safe_flush, mcp_safe_query
from .settings_repository import SettingsRepository

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


def _is_open():
    return (TransactionDB.transaction_type == TransactionType.LEND.value) & (
        TransactionDB.return_date.is_(None)
    )


class TransactionRepository:
    """
    Repository for loans.

    Coordinates the books and transactions tables so that, for every book,
    ``available_copies + open loans == total_copies`` holds after each
    committed unit.
    """

    def __init__(self, session: Session):
        self.session = session
        self.settings = SettingsRepository(session)

    def _to_model(self, tx: TransactionDB) -> TransactionModel:
        return TransactionModel(
            id=tx.id,
            book_id=tx.book_id,
            member_id=tx.member_id,
            transaction_type=TransactionType(tx.transaction_type),
            transaction_date=tx.transaction_date,
            due_date=tx.due_date,
            return_date=tx.return_date,
            fine_amount=tx.fine_amount,
            fine_paid=tx.fine_paid,
            notes=tx.notes,
            book_title=tx.book.title if tx.book else None,
            member_name=tx.member.name if tx.member else None,
            member_type=MemberType(tx.member.member_type) if tx.member else None,
            created_at=tx.created_at,
            updated_at=tx.updated_at,
        )

    def _get_db_obj(self, transaction_id: int) -> TransactionDB | None:
        return mcp_safe_query(
            self.session,
            lambda s: s.execute(
                select(TransactionDB)
                .where(TransactionDB.id == transaction_id)
                .options(joinedload(TransactionDB.book), joinedload(TransactionDB.member))
            )
            .unique()
            .scalar_one_or_none(),
            "Failed to get transaction",
        )

    def get_by_id(self, transaction_id: int) -> TransactionModel | None:
        tx = self._get_db_obj(transaction_id)
        return self._to_model(tx) if tx is not None else None

    def lend(
        self,
        book_id: int,
        member_id: int,
        today: date,
        due_date: date | None = None,
        notes: str | None = None,
    ) -> TransactionModel:
        """
        Lend one copy of a book to a member.

        Checks run in order: the book exists, the member exists, a copy is
        available. The copy is then claimed with a conditional UPDATE, so two
        writers can never both take the last copy.

        Args:
            book_id: Book to lend
            member_id: Borrowing member
            today: Lend date, also the reference for the default due date
            due_date: Explicit due date; defaults to today plus the member
                type's lending period
            notes: Free text; defaults to "Book lent to {name} ({member_code})"

        Raises:
            BookNotFoundError, MemberNotFoundError: Missing book or member
            NotAvailableError: No copy left
            DataValidationError: Explicit due date before today
        """
        book = mcp_safe_query(
            self.session, lambda s: s.get(BookDB, book_id), "Failed to get book for lend"
        )
        if book is None:
            raise BookNotFoundError(f"Book {book_id} not found")

        member = mcp_safe_query(
            self.session, lambda s: s.get(MemberDB, member_id), "Failed to get member for lend"
        )
        if member is None:
            raise MemberNotFoundError(f"Member {member_id} not found")

        if book.available_copies <= 0:
            raise NotAvailableError(f"No copies of '{book.title}' are available")

        if due_date is None:
            period = self.settings.get_lending_periods().for_member_type(member.member_type)
            due_date = today + timedelta(days=period)
        elif due_date < today:
            raise DataValidationError("Due date cannot be in the past")

        claim = (
            update(BookDB)
            .where(BookDB.id == book_id, BookDB.available_copies > 0)
            .values(
                available_copies=BookDB.available_copies - 1,
                status=case(
                    (BookDB.available_copies - 1 == 0, BookStatus.LOANED.value),
                    else_=BookStatus.AVAILABLE.value,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        claimed = mcp_safe_execute(self.session, claim, "lend book")
        if claimed.rowcount == 0:
            raise NotAvailableError(f"No copies of '{book.title}' are available")
        self.session.expire(book)

        tx = TransactionDB(
            book_id=book_id,
            member_id=member_id,
            transaction_type=TransactionType.LEND.value,
            transaction_date=today,
            due_date=due_date,
            fine_amount=0.0,
            notes=notes or f"Book lent to {member.name} ({member.member_code})",
        )
        self.session.add(tx)
        mcp_safe_flush(self.session, "lend book")
        self.session.refresh(tx)
        return self._to_model(tx)

    def return_book(self, transaction_id: int, today: date) -> TransactionModel:
        """
        Close an open loan and assess its fine.

        The fine uses the borrowing member's current type and the fine rules
        in settings (see ``FineRule.assess``).

        Raises:
            TransactionNotFoundError: Unknown transaction
            AlreadyReturnedError: The loan was already closed
        """
        tx = self._get_db_obj(transaction_id)
        if tx is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
        if tx.return_date is not None:
            raise AlreadyReturnedError(f"Transaction {transaction_id} was already returned")

        rule = self.settings.get_fine_rules().for_member_type(tx.member.member_type)
        fine = rule.assess(days_overdue(tx.due_date, today))

        close = (
            update(TransactionDB)
            .where(TransactionDB.id == transaction_id, TransactionDB.return_date.is_(None))
            .values(
                return_date=today,
                fine_amount=fine,
                transaction_type=TransactionType.RETURN.value,
            )
            .execution_options(synchronize_session=False)
        )
        closed = mcp_safe_execute(self.session, close, "return book")
        if closed.rowcount == 0:
            raise AlreadyReturnedError(f"Transaction {transaction_id} was already returned")

        restore = (
            update(BookDB)
            .where(BookDB.id == tx.book_id)
            .values(
                available_copies=BookDB.available_copies + 1,
                status=BookStatus.AVAILABLE.value,
            )
            .execution_options(synchronize_session=False)
        )
        mcp_safe_execute(self.session, restore, "return book")
        mcp_safe_flush(self.session, "return book")
        self.session.refresh(tx)
        self.session.refresh(tx.book)
        return self._to_model(tx)

    def _active_loan_rows(self, today: date, overdue_only: bool = False):
        query = (
            select(TransactionDB, BookDB, MemberDB)
            .join(BookDB, TransactionDB.book_id == BookDB.id)
            .join(MemberDB, TransactionDB.member_id == MemberDB.id)
            .where(_is_open())
        )
        if overdue_only:
            query = query.where(TransactionDB.due_date < today)
        query = query.order_by(TransactionDB.due_date.asc(), TransactionDB.id.asc())
        return mcp_safe_query(
            self.session, lambda s: s.execute(query).all(), "Failed to list active loans"
        )

    def list_active_loans(self, today: date, overdue_only: bool = False) -> list[ActiveLoan]:
        """
        Open loans, soonest due first, tagged on time or overdue.

        A loan is overdue once ``today`` is strictly past its due date.
        """
        loans = []
        for tx, book, member in self._active_loan_rows(today, overdue_only):
            late = days_overdue(tx.due_date, today)
            loans.append(
                ActiveLoan(
                    id=tx.id,
                    book_id=tx.book_id,
                    member_id=tx.member_id,
                    transaction_date=tx.transaction_date,
                    due_date=tx.due_date,
                    fine_amount=tx.fine_amount,
                    notes=tx.notes,
                    book_title=book.title,
                    book_authors=json.loads(book.authors) if book.authors else [],
                    member_name=member.name,
                    member_code=member.member_code,
                    member_type=MemberType(member.member_type),
                    status=LoanStatus.OVERDUE if late > 0 else LoanStatus.ON_TIME,
                    days_overdue=late,
                )
            )
        return loans

    def list_overdue_loans(self, today: date) -> list[ActiveLoan]:
        """Open loans whose due date is before ``today``."""
        return self.list_active_loans(today, overdue_only=True)

    def member_history(self, member_id: int) -> list[TransactionModel]:
        """
        Every transaction of one member, newest first.

        Raises:
            MemberNotFoundError: If the member does not exist
        """
        member = mcp_safe_query(
            self.session, lambda s: s.get(MemberDB, member_id), "Failed to get member"
        )
        if member is None:
            raise MemberNotFoundError(f"Member {member_id} not found")

        query = (
            select(TransactionDB)
            .where(TransactionDB.member_id == member_id)
            .options(joinedload(TransactionDB.book), joinedload(TransactionDB.member))
            .order_by(desc(TransactionDB.transaction_date), desc(TransactionDB.id))
        )
        results = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalars().all(),
            "Failed to get member history",
        )
        return [self._to_model(tx) for tx in results]

    def transaction_history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[TransactionModel]:
        """Most recent transactions across the library."""
        if limit < 1:
            raise DataValidationError("Limit must be at least 1")

        query = (
            select(TransactionDB)
            .options(joinedload(TransactionDB.book), joinedload(TransactionDB.member))
            .order_by(desc(TransactionDB.transaction_date), desc(TransactionDB.id))
            .limit(limit)
        )
        results = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalars().all(),
            "Failed to get transaction history",
        )
        return [self._to_model(tx) for tx in results]

    def find_availability_drift(self) -> list[AvailabilityDrift]:
        """Books whose stored counter differs from ``total - open loans``."""
        open_loans = (
            select(TransactionDB.book_id, func.count().label("open_loans"))
            .where(_is_open())
            .group_by(TransactionDB.book_id)
            .subquery()
        )
        open_count = func.coalesce(open_loans.c.open_loans, 0)
        query = (
            select(BookDB, open_count)
            .outerjoin(open_loans, open_loans.c.book_id == BookDB.id)
            .where(BookDB.available_copies != BookDB.total_copies - open_count)
            .order_by(BookDB.id)
        )
        rows = mcp_safe_query(
            self.session, lambda s: s.execute(query).all(), "Failed to check availability"
        )
        return [
            AvailabilityDrift(
                book_id=book.id,
                title=book.title,
                total_copies=book.total_copies,
                stored_available=book.available_copies,
                expected_available=book.total_copies - count,
                open_loans=count,
            )
            for book, count in rows
        ]

    def repair_availability(self) -> list[AvailabilityDrift]:
        """
        Rewrite drifted counters and statuses from the open loans.

        A book with more open loans than copies cannot be repaired this way
        and is left alone with a warning.
        """
        repaired = []
        for drift in self.find_availability_drift():
            if drift.expected_available < 0:
                logger.warning(
                    "Book %s has %s open loans but only %s copies; not repaired",
                    drift.book_id,
                    drift.open_loans,
                    drift.total_copies,
                )
                continue
            book = self.session.get(BookDB, drift.book_id)
            book.available_copies = drift.expected_available
            if book.status != BookStatus.RESERVED.value:
                book.status = (
                    BookStatus.LOANED.value
                    if drift.expected_available == 0
                    else BookStatus.AVAILABLE.value
                )
            repaired.append(drift)
        mcp_safe_flush(self.session, "repair availability")
        return repaired
