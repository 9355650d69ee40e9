"""Tests for the sample data loader."""

from datetime import date

import pytest

from library_ledger.clock import FixedClock
from library_ledger.database.seed import SAMPLE_BOOKS, SAMPLE_LOANS, seed_database
from library_ledger.database.session import DatabaseManager
from library_ledger.ledger import LendingLedger

TODAY = date(2024, 6, 1)


@pytest.fixture
def seeded(db_manager):
    summary = seed_database(db_manager, extra_members=5, today=TODAY)
    return summary, LendingLedger(db_manager, FixedClock(TODAY))


def test_summary_counts(seeded):
    summary, _ledger = seeded

    assert summary == {
        "books": len(SAMPLE_BOOKS),
        "members": 20,
        "transactions": len(SAMPLE_LOANS),
        "returned": 13,
        "active_loans": 7,
    }


def test_seeded_data_is_consistent(seeded):
    _summary, ledger = seeded

    assert ledger.check_integrity() == []
    stats = ledger.library_stats()
    assert stats.total_books == 20
    assert stats.active_loans == 7
    assert stats.overdue_loans == 2
    assert stats.total_copies - stats.available_copies == 7


def test_overdue_loans_are_tagged(seeded):
    _summary, ledger = seeded

    overdue = ledger.list_overdue_loans()

    assert len(overdue) == 2
    assert all(loan.days_overdue > 0 for loan in overdue)


def test_returned_late_loans_carry_fines(seeded):
    _summary, ledger = seeded

    stats = ledger.library_stats()

    assert stats.total_fines > 0
    assert stats.unpaid_fines == stats.total_fines


def test_settings_seeded(seeded):
    _summary, ledger = seeded

    assert ledger.get_setting("lendingPeriods") == {"student": 14, "faculty": 30, "public": 7}
    assert ledger.get_setting("ui")["itemsPerPage"] == 20


def test_reproducible_with_same_seed(db_manager, tmp_path):
    seed_database(db_manager, extra_members=3, today=TODAY, seed=7)
    other = DatabaseManager(f"sqlite:///{tmp_path / 'other.db'}")
    other.init_database()
    try:
        seed_database(other, extra_members=3, today=TODAY, seed=7)
        first = LendingLedger(db_manager, FixedClock(TODAY)).get_member_by_code("MEM-2024-0016")
        second = LendingLedger(other, FixedClock(TODAY)).get_member_by_code("MEM-2024-0016")
        assert first.name == second.name
        assert first.member_type == second.member_type
    finally:
        other.close()
