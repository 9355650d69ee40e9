"""
The lending ledger.

``LendingLedger`` is the single entry point the request layer uses. Every
operation opens its own session; mutations additionally hold the database
manager's writer lock for the whole read-check-write sequence, so:

- lend and return are all-or-nothing (loan row and copy counter move together)
- concurrent lends of the last copy produce exactly one success
- deletes cannot race a lend of the same book or member

Today's date comes from an injectable ``Clock`` so due dates and fines can be
tested against a pinned calendar.
"""

import logging
from datetime import date
from typing import Any

from .clock import Clock, SystemClock
from .database.book_repository import (
    BookCreateSchema,
    BookRepository,
    BookSearchParams,
    BookUpdateSchema,
)
from .database.member_repository import (
    MemberCreateSchema,
    MemberRepository,
    MemberSearchParams,
    MemberUpdateSchema,
)
from .database.repository import (
    BookNotFoundError,
    MemberNotFoundError,
    PaginatedResponse,
    PaginationParams,
)
from .database.session import DatabaseManager
from .database.settings_repository import SettingsRepository
from .database.stats_repository import BookStats, LibraryStats, MemberStats, StatsRepository
from .database.transaction_repository import DEFAULT_HISTORY_LIMIT, TransactionRepository
from .models.book import Book
from .models.member import Member
from .models.settings import FineRules, LendingPeriods
from .models.transaction import ActiveLoan, AvailabilityDrift, Transaction

logger = logging.getLogger(__name__)


class LendingLedger:
    """
    Owns the lend/return lifecycle and the catalog around it.

    Args:
        db_manager: Database manager providing sessions and the writer lock
        clock: Source of today's date; the system date when omitted
    """

    def __init__(self, db_manager: DatabaseManager, clock: Clock | None = None):
        self.db = db_manager
        self.clock = clock or SystemClock()

    def today(self) -> date:
        return self.clock.today()

    # === Lending ===

    def lend(
        self,
        book_id: int,
        member_id: int,
        due_date: date | None = None,
        notes: str | None = None,
    ) -> Transaction:
        """
        Lend one copy of ``book_id`` to ``member_id``.

        Raises:
            BookNotFoundError: Unknown book
            MemberNotFoundError: Unknown member
            NotAvailableError: No copy available
            DataValidationError: Explicit due date in the past
        """
        today = self.today()
        with self.db.write_scope() as session:
            tx = TransactionRepository(session).lend(
                book_id, member_id, today, due_date=due_date, notes=notes
            )
        logger.info(
            "Lent book %s to member %s (transaction %s, due %s)",
            book_id,
            member_id,
            tx.id,
            tx.due_date,
        )
        return tx

    def return_book(self, transaction_id: int) -> Transaction:
        """
        Close a loan, assessing any overdue fine.

        Raises:
            TransactionNotFoundError: Unknown transaction
            AlreadyReturnedError: Loan already closed
        """
        today = self.today()
        with self.db.write_scope() as session:
            tx = TransactionRepository(session).return_book(transaction_id, today)
        logger.info(
            "Returned transaction %s (book %s), fine %.2f",
            tx.id,
            tx.book_id,
            tx.fine_amount,
        )
        return tx

    def get_transaction(self, transaction_id: int) -> Transaction | None:
        with self.db.session_scope() as session:
            return TransactionRepository(session).get_by_id(transaction_id)

    # === Loan projections ===

    def list_active_loans(self) -> list[ActiveLoan]:
        """Open loans, soonest due first, each tagged on time or overdue."""
        with self.db.session_scope() as session:
            return TransactionRepository(session).list_active_loans(self.today())

    def list_overdue_loans(self) -> list[ActiveLoan]:
        """Open loans already past their due date."""
        with self.db.session_scope() as session:
            return TransactionRepository(session).list_overdue_loans(self.today())

    def member_history(self, member_id: int) -> list[Transaction]:
        with self.db.session_scope() as session:
            return TransactionRepository(session).member_history(member_id)

    def transaction_history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[Transaction]:
        with self.db.session_scope() as session:
            return TransactionRepository(session).transaction_history(limit)

    # === Integrity ===

    def check_integrity(self) -> list[AvailabilityDrift]:
        """Books whose availability counter disagrees with their open loans."""
        with self.db.session_scope() as session:
            return TransactionRepository(session).find_availability_drift()

    def repair_integrity(self) -> list[AvailabilityDrift]:
        """Recompute drifted counters from the open loans; returns what was fixed."""
        with self.db.write_scope() as session:
            repaired = TransactionRepository(session).repair_availability()
        if repaired:
            logger.warning("Repaired availability of %d books", len(repaired))
        return repaired

    # === Catalog ===

    def create_book(self, data: BookCreateSchema) -> Book:
        with self.db.write_scope() as session:
            return BookRepository(session).create(data)

    def get_book(self, book_id: int) -> Book:
        with self.db.session_scope() as session:
            book = BookRepository(session).get_by_id(book_id)
        if book is None:
            raise BookNotFoundError(f"Book {book_id} not found")
        return book

    def update_book(self, book_id: int, data: BookUpdateSchema) -> Book:
        with self.db.write_scope() as session:
            return BookRepository(session).update(book_id, data)

    def delete_book(self, book_id: int) -> None:
        with self.db.write_scope() as session:
            BookRepository(session).delete(book_id)

    def search_books(
        self, params: BookSearchParams, pagination: PaginationParams | None = None
    ) -> PaginatedResponse[Book]:
        with self.db.session_scope() as session:
            return BookRepository(session).search(params, pagination)

    # === Members ===

    def create_member(self, data: MemberCreateSchema) -> Member:
        with self.db.write_scope() as session:
            return MemberRepository(session).create(data)

    def get_member(self, member_id: int) -> Member:
        with self.db.session_scope() as session:
            member = MemberRepository(session).get_by_id(member_id)
        if member is None:
            raise MemberNotFoundError(f"Member {member_id} not found")
        return member

    def get_member_by_code(self, member_code: str) -> Member:
        with self.db.session_scope() as session:
            member = MemberRepository(session).get_by_member_code(member_code)
        if member is None:
            raise MemberNotFoundError(f"Member with code {member_code} not found")
        return member

    def update_member(self, member_id: int, data: MemberUpdateSchema) -> Member:
        with self.db.write_scope() as session:
            return MemberRepository(session).update(member_id, data)

    def delete_member(self, member_id: int) -> None:
        with self.db.write_scope() as session:
            MemberRepository(session).delete(member_id)

    def search_members(
        self, params: MemberSearchParams, pagination: PaginationParams | None = None
    ) -> PaginatedResponse[Member]:
        with self.db.session_scope() as session:
            return MemberRepository(session).search(params, pagination)

    # === Settings ===

    def get_settings(self) -> dict[str, Any]:
        """
        All stored settings, with the effective fine rules and lending
        periods filled in when they are missing or malformed.
        """
        with self.db.session_scope() as session:
            repo = SettingsRepository(session)
            settings = repo.get_all()
            settings["fineRules"] = repo.get_fine_rules().to_storage()
            settings["lendingPeriods"] = repo.get_lending_periods().to_storage()
        return settings

    def get_setting(self, key: str) -> Any | None:
        with self.db.session_scope() as session:
            return SettingsRepository(session).get(key)

    def update_setting(self, key: str, value: Any) -> Any:
        with self.db.write_scope() as session:
            return SettingsRepository(session).set(key, value)

    def get_fine_rules(self) -> FineRules:
        with self.db.session_scope() as session:
            return SettingsRepository(session).get_fine_rules()

    def get_lending_periods(self) -> LendingPeriods:
        with self.db.session_scope() as session:
            return SettingsRepository(session).get_lending_periods()

    # === Statistics ===

    def library_stats(self) -> LibraryStats:
        with self.db.session_scope() as session:
            return StatsRepository(session).library_stats(self.today())

    def member_stats(self, member_id: int) -> MemberStats:
        with self.db.session_scope() as session:
            return StatsRepository(session).member_stats(member_id)

    def book_stats(self, book_id: int) -> BookStats:
        with self.db.session_scope() as session:
            return StatsRepository(session).book_stats(book_id)
