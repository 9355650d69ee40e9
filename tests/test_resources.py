"""
Tests for the read-only MCP resources.

Handlers are called directly with the ledger, and once through the
``build_*`` closures the server registers, to check URIs and binding.
"""

from datetime import date, timedelta

import pytest
from fastmcp.exceptions import ResourceError

from library_ledger.models.member import MemberType
from library_ledger.resources import build_resources
from library_ledger.resources.loans import (
    get_active_loans_handler,
    get_loan_history_handler,
    get_member_loans_handler,
    get_overdue_loans_handler,
)
from library_ledger.resources.settings import get_settings_handler
from library_ledger.resources.stats import (
    get_book_stats_handler,
    get_integrity_handler,
    get_library_summary_handler,
    get_member_stats_handler,
)

START_DATE = date(2024, 1, 1)


@pytest.fixture
def circulation(ledger, clock, make_book, make_member):
    """Two open loans (one of them overdue) and one returned late."""
    dune = make_book("Dune", copies=2)
    emma = make_book("Emma", copies=1)
    student = make_member(MemberType.STUDENT, name="Student Reader")
    public = make_member(MemberType.PUBLIC, name="Public Reader")

    late = ledger.lend(dune.id, public.id)  # due 2024-01-08
    returned = ledger.lend(emma.id, student.id, due_date=START_DATE + timedelta(days=3))
    clock.advance(5)
    ledger.return_book(returned.id)  # 2 days late at 5.00 a day
    on_time = ledger.lend(dune.id, student.id)  # due 2024-01-20
    clock.advance(5)  # 2024-01-11

    return {
        "dune": dune,
        "emma": emma,
        "student": student,
        "public": public,
        "late": late,
        "returned": returned,
        "on_time": on_time,
    }


class TestLoanResources:
    async def test_active_loans(self, ledger, circulation):
        result = await get_active_loans_handler(ledger)

        assert result["as_of"] == "2024-01-11"
        assert result["total"] == 2
        assert result["overdue"] == 1
        ids = [loan["id"] for loan in result["loans"]]
        # Soonest due first
        assert ids == [circulation["late"].id, circulation["on_time"].id]
        first = result["loans"][0]
        assert first["status"] == "overdue"
        assert first["days_overdue"] == 3
        assert first["book_title"] == "Dune"
        assert first["member_type"] == "public"
        assert result["loans"][1]["status"] == "on_time"

    async def test_overdue_loans(self, ledger, circulation):
        result = await get_overdue_loans_handler(ledger)

        assert result["total"] == 1
        assert result["loans"][0]["id"] == circulation["late"].id
        assert result["loans"][0]["member_name"] == "Public Reader"

    async def test_reading_loans_does_not_assess_fines(self, ledger, circulation):
        await get_overdue_loans_handler(ledger)

        tx = ledger.get_transaction(circulation["late"].id)
        assert tx.fine_amount == 0.0
        assert tx.return_date is None

    async def test_history_newest_first(self, ledger, circulation):
        result = await get_loan_history_handler(ledger)

        assert result["total"] == 3
        assert result["transactions"][0]["id"] == circulation["on_time"].id
        assert result["limit"] == 50

    async def test_member_loans(self, ledger, circulation):
        result = await get_member_loans_handler(ledger, str(circulation["student"].id))

        assert result["member"]["name"] == "Student Reader"
        assert result["total"] == 2
        assert result["active"] == 1
        types = {tx["transaction_type"] for tx in result["transactions"]}
        assert types == {"lend", "return"}

    async def test_member_loans_unknown_member(self, ledger):
        with pytest.raises(ResourceError, match="Member not found"):
            await get_member_loans_handler(ledger, "999")

    async def test_member_loans_bad_id(self, ledger):
        with pytest.raises(ResourceError, match="Invalid member id"):
            await get_member_loans_handler(ledger, "abc")

    async def test_empty_library(self, ledger):
        result = await get_active_loans_handler(ledger)

        assert result == {"as_of": "2024-01-01", "total": 0, "overdue": 0, "loans": []}


class TestStatsResources:
    async def test_library_summary(self, ledger, circulation):
        result = await get_library_summary_handler(ledger)

        assert result["total_books"] == 2
        assert result["total_copies"] == 3
        assert result["available_copies"] == 1
        assert result["total_members"] == 2
        assert result["active_loans"] == 2
        assert result["overdue_loans"] == 1
        assert result["total_fines"] == 10.0
        assert result["unpaid_fines"] == 10.0

    async def test_book_stats(self, ledger, circulation):
        result = await get_book_stats_handler(ledger, str(circulation["dune"].id))

        assert result["title"] == "Dune"
        assert result["total_loans"] == 2
        assert result["current_loans"] == 2
        assert result["utilization_rate"] == 100.0

    async def test_member_stats(self, ledger, circulation):
        result = await get_member_stats_handler(ledger, str(circulation["student"].id))

        assert result["name"] == "Student Reader"
        assert result["total_transactions"] == 2
        assert result["active_loans"] == 1
        assert result["returned_books"] == 1
        assert result["total_fines"] == 10.0
        assert result["paid_fines"] == 0.0

    @pytest.mark.parametrize(
        "handler,message",
        [
            (get_book_stats_handler, "Book not found"),
            (get_member_stats_handler, "Member not found"),
        ],
    )
    async def test_unknown_ids(self, ledger, handler, message):
        with pytest.raises(ResourceError, match=message):
            await handler(ledger, "12345")

    async def test_non_numeric_id(self, ledger):
        with pytest.raises(ResourceError, match="Invalid book id"):
            await get_book_stats_handler(ledger, "one")

    async def test_integrity_consistent(self, ledger, circulation):
        result = await get_integrity_handler(ledger)

        assert result == {"consistent": True, "drifted_books": []}

    async def test_library_summary_failure_is_resource_error(self, ledger, monkeypatch):
        def broken():
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(ledger, "library_stats", broken)

        with pytest.raises(ResourceError, match="store unavailable"):
            await get_library_summary_handler(ledger)


class TestSettingsResource:
    async def test_effective_settings(self, ledger):
        ledger.update_setting("libraryName", "Riverside Branch")

        result = await get_settings_handler(ledger)

        assert result["libraryName"] == "Riverside Branch"
        assert result["lendingPeriods"] == {"student": 14, "faculty": 30, "public": 7}
        assert set(result["fineRules"]) == {"student", "faculty", "public"}


class TestResourceRegistry:
    def test_uris(self, ledger):
        resources = build_resources(ledger)
        uris = {r.get("uri") or r.get("uri_template") for r in resources}

        assert uris == {
            "library://loans/active",
            "library://loans/overdue",
            "library://loans/history",
            "library://members/{member_id}/loans",
            "library://stats/summary",
            "library://books/{book_id}/stats",
            "library://members/{member_id}/stats",
            "library://stats/integrity",
            "library://settings",
        }
        assert all(r["mime_type"] == "application/json" for r in resources)

    async def test_bound_handlers_use_ledger(self, ledger, sample_book, sample_member):
        ledger.lend(sample_book.id, sample_member.id)
        resources = {r.get("uri") or r.get("uri_template"): r for r in build_resources(ledger)}

        active = await resources["library://loans/active"]["handler"]()
        stats = await resources["library://books/{book_id}/stats"]["handler"](str(sample_book.id))

        assert active["total"] == 1
        assert stats["current_loans"] == 1
