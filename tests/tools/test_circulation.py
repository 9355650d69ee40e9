"""
Tests for circulation tools (lend, return).

These tests exercise the MCP tool handlers the way a client would:
1. Input validation
2. Success responses and their structured data
3. Typed error results
4. State changes in the ledger
"""

from datetime import date, timedelta

from library_ledger.models.book import BookStatus
from library_ledger.tools.circulation import lend_book_handler, return_book_handler

START_DATE = date(2024, 1, 1)


def error_text(result) -> str:
    return result["content"][0]["text"]


class TestLendBookTool:
    """Test the lend_book MCP tool."""

    async def test_lend_success(self, ledger, sample_book, sample_member):
        result = await lend_book_handler(
            ledger, {"book_id": sample_book.id, "member_id": sample_member.id}
        )

        assert "isError" not in result
        assert result["content"][0]["type"] == "text"
        assert "Lent 'The Great Gatsby' to Emily Johnson" in result["content"][0]["text"]
        assert "14-day loan" in result["content"][0]["text"]

        tx = result["data"]["transaction"]
        assert tx["book_id"] == sample_book.id
        assert tx["member_id"] == sample_member.id
        assert tx["transaction_type"] == "lend"
        assert tx["transaction_date"] == "2024-01-01"
        assert tx["due_date"] == "2024-01-15"
        assert tx["return_date"] is None
        assert tx["loan_period_days"] == 14

        book = ledger.get_book(sample_book.id)
        assert book.available_copies == 0
        assert book.status == BookStatus.LOANED

    async def test_lend_with_due_date_and_notes(self, ledger, sample_book, sample_member):
        due = START_DATE + timedelta(days=21)
        result = await lend_book_handler(
            ledger,
            {
                "book_id": sample_book.id,
                "member_id": sample_member.id,
                "due_date": due.isoformat(),
                "notes": "Extended loan for research",
            },
        )

        assert result["data"]["transaction"]["due_date"] == due.isoformat()
        assert result["data"]["transaction"]["notes"] == "Extended loan for research"
        assert result["data"]["transaction"]["loan_period_days"] == 21

    async def test_lend_invalid_arguments(self, ledger):
        result = await lend_book_handler(ledger, {"book_id": "abc"})

        assert result["isError"] is True
        assert result["errorKind"] == "ValidationError"
        assert "Invalid lend_book parameters" in error_text(result)
        assert "book_id" in error_text(result)
        assert "member_id" in error_text(result)

    async def test_lend_book_not_found(self, ledger, sample_member):
        result = await lend_book_handler(ledger, {"book_id": 999, "member_id": sample_member.id})

        assert result["isError"] is True
        assert result["errorKind"] == "NotFound"
        assert "Book 999 not found" in error_text(result)

    async def test_lend_member_not_found(self, ledger, sample_book):
        result = await lend_book_handler(ledger, {"book_id": sample_book.id, "member_id": 999})

        assert result["errorKind"] == "NotFound"
        assert "Member 999 not found" in error_text(result)

    async def test_lend_not_available(self, ledger, sample_book, sample_member):
        args = {"book_id": sample_book.id, "member_id": sample_member.id}
        await lend_book_handler(ledger, args)

        result = await lend_book_handler(ledger, args)

        assert result["isError"] is True
        assert result["errorKind"] == "Conflict"
        assert "No copies" in error_text(result)
        assert len(ledger.list_active_loans()) == 1

    async def test_lend_past_due_date(self, ledger, sample_book, sample_member):
        result = await lend_book_handler(
            ledger,
            {
                "book_id": sample_book.id,
                "member_id": sample_member.id,
                "due_date": "2023-12-31",
            },
        )

        assert result["errorKind"] == "ValidationError"
        assert "past" in error_text(result)
        assert ledger.get_book(sample_book.id).available_copies == 1


class TestReturnBookTool:
    """Test the return_book MCP tool."""

    async def test_return_on_time(self, ledger, clock, sample_book, sample_member):
        tx = ledger.lend(sample_book.id, sample_member.id)
        clock.advance(10)

        result = await return_book_handler(ledger, {"transaction_id": tx.id})

        assert "isError" not in result
        assert "No fine due" in result["content"][0]["text"]
        data = result["data"]["transaction"]
        assert data["transaction_type"] == "return"
        assert data["return_date"] == "2024-01-11"
        assert data["fine_amount"] == 0.0
        assert ledger.get_book(sample_book.id).available_copies == 1

    async def test_return_overdue_assesses_fine(self, ledger, clock, sample_book, sample_member):
        tx = ledger.lend(
            sample_book.id, sample_member.id, due_date=START_DATE + timedelta(days=14)
        )
        clock.advance(20)

        result = await return_book_handler(ledger, {"transaction_id": tx.id})

        assert result["data"]["transaction"]["fine_amount"] == 30.0
        assert "Overdue fine: 30.00" in result["content"][0]["text"]

    async def test_return_twice(self, ledger, sample_book, sample_member):
        tx = ledger.lend(sample_book.id, sample_member.id)
        await return_book_handler(ledger, {"transaction_id": tx.id})

        result = await return_book_handler(ledger, {"transaction_id": tx.id})

        assert result["isError"] is True
        assert result["errorKind"] == "Conflict"
        assert "already returned" in error_text(result)
        assert ledger.get_book(sample_book.id).available_copies == 1

    async def test_return_unknown_transaction(self, ledger):
        result = await return_book_handler(ledger, {"transaction_id": 4242})

        assert result["errorKind"] == "NotFound"

    async def test_return_invalid_arguments(self, ledger):
        result = await return_book_handler(ledger, {"transaction_id": 0})

        assert result["errorKind"] == "ValidationError"
        assert "transaction_id" in error_text(result)

    async def test_unexpected_error_is_internal(self, ledger, monkeypatch):
        def explode(*_args, **_kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(ledger, "return_book", explode)

        result = await return_book_handler(ledger, {"transaction_id": 1})

        assert result["isError"] is True
        assert result["errorKind"] == "Internal"
        assert "disk on fire" in error_text(result)
