"""
Tests for the Book model and the book create/update schemas.

These tests verify that:
1. Create payloads are normalized (ISBN, names, language)
2. Invalid data is rejected with a validation error
3. The read model keeps available copies within the total
"""

from datetime import date

import pytest
from pydantic import ValidationError

from library_ledger.database.book_repository import BookCreateSchema, BookUpdateSchema
from library_ledger.models.book import MAX_COPIES, Book, BookStatus, normalize_isbn


class TestBookModel:
    """Test suite for the read model."""

    def test_valid_book(self):
        book = Book(
            id=1,
            title="The Great Gatsby",
            authors=["F. Scott Fitzgerald"],
            total_copies=3,
            available_copies=2,
        )

        assert book.status == BookStatus.AVAILABLE
        assert book.language == "en"
        assert book.is_available is True
        assert book.checked_out_copies == 1

    def test_available_cannot_exceed_total(self):
        with pytest.raises(ValidationError, match="cannot exceed total copies"):
            Book(id=1, title="Test", authors=["A"], total_copies=1, available_copies=2)

    def test_no_available_copies(self):
        book = Book(
            id=1,
            title="Test",
            authors=["A"],
            total_copies=2,
            available_copies=0,
            status=BookStatus.LOANED,
        )
        assert book.is_available is False
        assert book.checked_out_copies == 2

    def test_json_serialization(self):
        book = Book(
            id=7, title="Dune", authors=["Frank Herbert"], total_copies=1, available_copies=1
        )
        data = book.model_dump(mode="json")
        assert data["status"] == "available"
        assert data["authors"] == ["Frank Herbert"]


class TestIsbnNormalization:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("978-0-134-68547-9", "9780134685479"),
            ("978 0 134 68547 9", "9780134685479"),
            ("0-306-40615-2", "0306406152"),
            ("080442957x", "080442957X"),
            ("", None),
            (None, None),
        ],
    )
    def test_accepted_forms(self, raw, expected):
        assert normalize_isbn(raw) == expected

    @pytest.mark.parametrize("raw", ["123-456", "97801346854790", "ABCDEFGHIJ", "978013468547X"])
    def test_rejected_forms(self, raw):
        with pytest.raises(ValueError, match="ISBN"):
            normalize_isbn(raw)


class TestBookCreateSchema:
    def test_defaults(self):
        data = BookCreateSchema(title="Dune", authors=["Frank Herbert"])
        assert data.total_copies == 1
        assert data.language == "en"
        assert data.genres == []
        assert data.tags == []

    def test_normalizes_fields(self):
        data = BookCreateSchema(
            title="  Dune  ",
            authors=[" Frank Herbert ", ""],
            isbn="978-0-441-17271-9",
            genres=["Science Fiction", "  "],
            language=" EN ",
        )
        assert data.title == "Dune"
        assert data.authors == ["Frank Herbert"]
        assert data.isbn == "9780441172719"
        assert data.genres == ["Science Fiction"]
        assert data.language == "en"

    def test_requires_title_and_author(self):
        with pytest.raises(ValidationError):
            BookCreateSchema(title="   ", authors=["A"])
        with pytest.raises(ValidationError):
            BookCreateSchema(title="Dune", authors=[])
        with pytest.raises(ValidationError):
            BookCreateSchema(title="Dune", authors=["  "])

    @pytest.mark.parametrize("copies", [0, -1, MAX_COPIES + 1])
    def test_copy_count_bounds(self, copies):
        with pytest.raises(ValidationError):
            BookCreateSchema(title="Dune", authors=["A"], total_copies=copies)

    def test_copy_count_upper_limit_accepted(self):
        data = BookCreateSchema(title="Big", authors=["A"], total_copies=MAX_COPIES)
        assert data.total_copies == MAX_COPIES

    def test_publication_year_bounds(self):
        with pytest.raises(ValidationError):
            BookCreateSchema(title="Old", authors=["A"], publication_year=999)
        with pytest.raises(ValidationError):
            BookCreateSchema(title="Future", authors=["A"], publication_year=date.today().year + 1)
        data = BookCreateSchema(title="Old", authors=["A"], publication_year=1000)
        assert data.publication_year == 1000

    def test_invalid_language(self):
        with pytest.raises(ValidationError):
            BookCreateSchema(title="Dune", authors=["A"], language="eng")

    def test_availability_not_accepted_as_input(self):
        data = BookCreateSchema(title="Dune", authors=["A"], total_copies=2)
        assert "available_copies" not in data.model_dump()


class TestBookUpdateSchema:
    def test_only_set_fields_dumped(self):
        data = BookUpdateSchema(total_copies=4)
        assert data.model_dump(exclude_unset=True) == {"total_copies": 4}

    def test_validates_given_fields(self):
        with pytest.raises(ValidationError):
            BookUpdateSchema(total_copies=0)
        with pytest.raises(ValidationError):
            BookUpdateSchema(isbn="12")
