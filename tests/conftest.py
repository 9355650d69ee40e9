"""Test configuration and fixtures for the Library Ledger.

Every test gets its own private in-memory database and a ledger whose clock
is pinned, so due dates and fines are deterministic:

1. Isolated databases - a fresh ``sqlite:///:memory:`` per test
2. Pinned calendar - ``FixedClock`` starting on 2024-01-01
3. Configuration reset - the cached ``LedgerConfig`` is dropped after each test
"""

import os
from collections.abc import Generator
from datetime import date

import pytest

from library_ledger.clock import FixedClock
from library_ledger.config import reset_config
from library_ledger.database.book_repository import BookCreateSchema
from library_ledger.database.member_repository import MemberCreateSchema
from library_ledger.database.session import DatabaseManager
from library_ledger.ledger import LendingLedger
from library_ledger.models.member import MemberType

START_DATE = date(2024, 1, 1)


# === Pytest Configuration ===


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "concurrency: test exercises concurrent writers")
    config.addinivalue_line("markers", "scenario: end-to-end lending scenario")


# === Database Fixtures ===


@pytest.fixture
def db_manager() -> Generator[DatabaseManager, None, None]:
    """A database manager over a fresh in-memory database with the schema created."""
    manager = DatabaseManager("sqlite:///:memory:")
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def session(db_manager):
    """A session that commits when the test finishes."""
    with db_manager.session_scope() as session:
        yield session


# === Ledger Fixtures ===


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(START_DATE)


@pytest.fixture
def ledger(db_manager, clock) -> LendingLedger:
    return LendingLedger(db_manager, clock)


@pytest.fixture
def make_book(ledger):
    """Factory creating catalog entries with sensible defaults."""
    counter = {"n": 0}

    def _make(title: str | None = None, copies: int = 1, **fields):
        counter["n"] += 1
        data = {
            "title": title or f"Test Book {counter['n']}",
            "authors": ["Test Author"],
            "total_copies": copies,
            **fields,
        }
        return ledger.create_book(BookCreateSchema(**data))

    return _make


@pytest.fixture
def make_member(ledger):
    """Factory creating members with unique member codes."""
    counter = {"n": 0}

    def _make(member_type: MemberType | str = MemberType.STUDENT, **fields):
        counter["n"] += 1
        data = {
            "name": f"Test Member {counter['n']}",
            "member_code": f"TST-{counter['n']:04d}",
            "member_type": member_type,
            **fields,
        }
        return ledger.create_member(MemberCreateSchema(**data))

    return _make


@pytest.fixture
def sample_book(make_book):
    """A single-copy book."""
    return make_book("The Great Gatsby", copies=1, authors=["F. Scott Fitzgerald"])


@pytest.fixture
def sample_member(make_member):
    """A student member."""
    return make_member(MemberType.STUDENT, name="Emily Johnson", member_code="MEM-2024-0002")


# === Cleanup Fixtures ===


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Automatic cleanup after each test.

    Ensures tests don't interfere with each other through the cached config
    or environment variables.
    """
    yield

    reset_config()

    for key in list(os.environ.keys()):
        if key.startswith("LIBRARY_LEDGER_TEST_"):
            del os.environ[key]
