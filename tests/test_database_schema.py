"""
Tests for database schema and session management.

These tests verify:
1. Database tables are created correctly
2. Relationships work as expected
3. CHECK and UNIQUE constraints back up the ledger's own rules
4. Session scopes commit and roll back as promised
"""

from datetime import date, timedelta
from threading import Thread

import pytest
from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError

from library_ledger.database import Book, DatabaseManager, Member, Setting, Transaction
from library_ledger.database.errors import (
    DataValidationError,
    DuplicateError,
    NotFoundError,
    translate_integrity_error,
)
from library_ledger.database.session import mcp_safe_commit


def _book(**overrides) -> Book:
    values = {
        "title": "Schema Book",
        "authors": '["Schema Author"]',
        "total_copies": 2,
        "available_copies": 2,
    }
    values.update(overrides)
    return Book(**values)


def _member(**overrides) -> Member:
    values = {"name": "Schema Member", "member_code": "SCH-0001"}
    values.update(overrides)
    return Member(**values)


class TestDatabaseSchema:
    """Test database schema creation and basic operations."""

    def test_tables_created(self, session):
        tables = set(inspect(session.bind).get_table_names())
        assert tables == {"books", "members", "transactions", "settings"}

    def test_book_defaults(self, session):
        book = _book(total_copies=1, available_copies=1)
        session.add(book)
        session.flush()

        assert book.id is not None
        assert book.status == "available"
        assert book.language == "en"
        assert book.genres == "[]"
        assert book.created_at is not None

    def test_member_email_normalized(self, session):
        member = _member(email="  Mixed.Case@Example.COM ")
        session.add(member)
        session.flush()
        assert member.email == "mixed.case@example.com"
        assert member.member_type == "public"

    def test_transaction_relationships(self, session):
        book = _book()
        member = _member()
        session.add_all([book, member])
        session.flush()

        tx = Transaction(
            book_id=book.id,
            member_id=member.id,
            transaction_date=date(2024, 1, 1),
            due_date=date(2024, 1, 15),
        )
        session.add(tx)
        session.flush()

        assert tx.transaction_type == "lend"
        assert tx.is_open is True
        assert tx.book.title == "Schema Book"
        assert tx.member.member_code == "SCH-0001"
        assert book.transactions == [tx]

    def test_setting_round_trip(self, session):
        session.add(Setting(key="theme", value='"dark"'))
        session.flush()
        stored = session.execute(select(Setting.value).where(Setting.key == "theme")).scalar()
        assert stored == '"dark"'


class TestConstraints:
    """The store rejects rows that would break the counters or enums."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"total_copies": 0, "available_copies": 0},
            {"available_copies": -1},
            {"total_copies": 1, "available_copies": 2},
            {"status": "lost"},
            {"title": ""},
            {"language": "eng"},
            {"publication_year": 999},
        ],
    )
    def test_book_checks(self, db_manager: DatabaseManager, overrides):
        with pytest.raises(IntegrityError), db_manager.session_scope() as session:
            session.add(_book(**overrides))
            session.flush()

    def test_unique_isbn(self, db_manager: DatabaseManager):
        with db_manager.session_scope() as session:
            session.add(_book(isbn="9780743273565"))

        with pytest.raises(IntegrityError), db_manager.session_scope() as session:
            session.add(_book(title="Other", isbn="9780743273565"))
            session.flush()

    def test_unique_member_code(self, db_manager: DatabaseManager):
        with db_manager.session_scope() as session:
            session.add(_member())

        with pytest.raises(IntegrityError), db_manager.session_scope() as session:
            session.add(_member(name="Someone Else"))
            session.flush()

    def test_member_type_check(self, db_manager: DatabaseManager):
        with pytest.raises(IntegrityError), db_manager.session_scope() as session:
            session.add(_member(member_type="visitor"))
            session.flush()

    def test_transaction_checks(self, db_manager: DatabaseManager):
        with db_manager.session_scope() as session:
            book = _book()
            member = _member()
            session.add_all([book, member])
            session.flush()
            book_id, member_id = book.id, member.id

        lent = date(2024, 1, 10)
        bad_rows = [
            {"due_date": lent - timedelta(days=1)},
            {"due_date": lent, "return_date": lent - timedelta(days=1)},
            {"due_date": lent, "fine_amount": -5.0},
            {"due_date": lent, "transaction_type": "renew"},
        ]
        for overrides in bad_rows:
            with pytest.raises(IntegrityError), db_manager.session_scope() as session:
                session.add(
                    Transaction(
                        book_id=book_id,
                        member_id=member_id,
                        transaction_date=lent,
                        **overrides,
                    )
                )
                session.flush()

    def test_foreign_keys_enforced(self, db_manager: DatabaseManager):
        with pytest.raises(IntegrityError), db_manager.session_scope() as session:
            session.add(
                Transaction(
                    book_id=999,
                    member_id=999,
                    transaction_date=date(2024, 1, 1),
                    due_date=date(2024, 1, 2),
                )
            )
            session.flush()


class TestErrorTranslation:
    def test_duplicate_isbn_message(self, db_manager: DatabaseManager):
        with db_manager.session_scope() as session:
            session.add(_book(isbn="9780743273565"))

        session = db_manager.create_session()
        try:
            session.add(_book(title="Other", isbn="9780743273565"))
            with pytest.raises(DuplicateError, match="ISBN already exists"):
                mcp_safe_commit(session, "create book")
        finally:
            session.close()

    def test_check_failure_is_validation_error(self, db_manager: DatabaseManager):
        session = db_manager.create_session()
        try:
            session.add(_book(total_copies=1, available_copies=5))
            with pytest.raises(DataValidationError) as exc_info:
                mcp_safe_commit(session, "create book")
            assert exc_info.value.kind == "ValidationError"
        finally:
            session.close()

    def test_foreign_key_failure_is_not_found(self, db_manager: DatabaseManager):
        session = db_manager.create_session()
        try:
            session.add(
                Transaction(
                    book_id=42,
                    member_id=42,
                    transaction_date=date(2024, 1, 1),
                    due_date=date(2024, 1, 2),
                )
            )
            with pytest.raises(IntegrityError) as exc_info:
                session.flush()
            assert isinstance(translate_integrity_error(exc_info.value), NotFoundError)
        finally:
            session.rollback()
            session.close()


class TestSessionManagement:
    def test_session_scope_commits(self, db_manager: DatabaseManager):
        with db_manager.session_scope() as session:
            session.add(_member())

        with db_manager.session_scope() as session:
            assert session.execute(select(Member)).scalar_one().member_code == "SCH-0001"

    def test_session_scope_rolls_back(self, db_manager: DatabaseManager):
        with pytest.raises(RuntimeError), db_manager.session_scope() as session:
            session.add(_member())
            session.flush()
            raise RuntimeError("boom")

        with db_manager.session_scope() as session:
            assert session.execute(select(Member)).first() is None

    def test_write_scope_holds_lock(self, db_manager: DatabaseManager):
        with db_manager.write_scope():
            # Re-entrant for the owning thread
            assert db_manager.write_lock.acquire(blocking=False)
            db_manager.write_lock.release()

    def test_read_scope_excludes_other_threads(self, db_manager: DatabaseManager):
        acquired = []

        with db_manager.session_scope():
            other = Thread(
                target=lambda: acquired.append(db_manager.write_lock.acquire(blocking=False))
            )
            other.start()
            other.join()

        assert acquired == [False]

    def test_scope_commit_translates_constraint_errors(self, db_manager: DatabaseManager):
        with db_manager.session_scope() as session:
            session.add(_book(isbn="9780743273565"))

        with pytest.raises(DuplicateError), db_manager.session_scope() as session:
            session.add(_book(title="Other", isbn="9780743273565"))

        with db_manager.session_scope() as session:
            assert len(session.execute(select(Book)).all()) == 1

    def test_verify_connection(self, db_manager: DatabaseManager):
        assert db_manager.verify_connection() is True

    def test_init_database_drop_existing(self, db_manager: DatabaseManager):
        with db_manager.session_scope() as session:
            session.add(_member())

        db_manager.init_database(drop_existing=True)

        with db_manager.session_scope() as session:
            assert session.execute(select(Member)).first() is None

    def test_only_sqlite_supported(self):
        with pytest.raises(ValueError, match="Only SQLite"):
            DatabaseManager("postgresql://localhost/library")

    def test_close_and_reopen(self, tmp_path):
        manager = DatabaseManager(f"sqlite:///{tmp_path / 'ledger.db'}")
        manager.init_database()
        with manager.session_scope() as session:
            session.add(_member())
        manager.close()

        with manager.session_scope() as session:
            assert session.execute(select(Member)).scalar_one().member_code == "SCH-0001"
        manager.close()
