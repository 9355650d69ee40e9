"""Tests for the catalog tools (create, update, delete, search books)."""

import pytest

from library_ledger.tools.catalog import (
    create_book_handler,
    delete_book_handler,
    search_books_handler,
    update_book_handler,
)


@pytest.fixture
def catalog(make_book):
    make_book("1984", copies=3, authors=["George Orwell"], genres=["Dystopian"])
    make_book("Animal Farm", copies=1, authors=["George Orwell"], genres=["Satire"])
    make_book("Dune", copies=2, authors=["Frank Herbert"], genres=["Science Fiction"])
    make_book("Emma", copies=1, authors=["Jane Austen"], language="fr")


class TestCreateBookTool:
    async def test_create_book(self, ledger):
        result = await create_book_handler(
            ledger,
            {
                "title": "  The Hobbit  ",
                "authors": ["J.R.R. Tolkien"],
                "isbn": "978-0-547-92822-7",
                "total_copies": 3,
            },
        )

        assert "isError" not in result
        book = result["data"]["book"]
        assert book["title"] == "The Hobbit"
        assert book["isbn"] == "9780547928227"
        assert book["total_copies"] == 3
        assert book["available_copies"] == 3
        assert book["status"] == "available"
        assert book["is_available"] is True
        assert "Added 'The Hobbit' with 3 copies" in result["content"][0]["text"]

    async def test_create_book_missing_authors(self, ledger):
        result = await create_book_handler(ledger, {"title": "Orphan", "total_copies": 1})

        assert result["isError"] is True
        assert result["errorKind"] == "ValidationError"
        assert "authors" in result["content"][0]["text"]

    @pytest.mark.parametrize("copies", [0, -1, 1001])
    async def test_create_book_copies_out_of_range(self, ledger, copies):
        result = await create_book_handler(
            ledger, {"title": "Bad", "authors": ["Someone"], "total_copies": copies}
        )

        assert result["errorKind"] == "ValidationError"

    async def test_create_book_duplicate_isbn(self, ledger):
        args = {"title": "First", "authors": ["A"], "isbn": "9780547928227"}
        await create_book_handler(ledger, args)

        result = await create_book_handler(ledger, {**args, "title": "Second"})

        assert result["isError"] is True
        assert result["errorKind"] == "Conflict"
        assert "ISBN already exists" in result["content"][0]["text"]


class TestUpdateBookTool:
    async def test_update_fields(self, ledger, sample_book):
        result = await update_book_handler(
            ledger, {"book_id": sample_book.id, "location": "FIC-FIT-01", "genres": ["Classic"]}
        )

        book = result["data"]["book"]
        assert book["location"] == "FIC-FIT-01"
        assert book["genres"] == ["Classic"]
        assert book["title"] == "The Great Gatsby"

    async def test_update_total_copies_with_loan_out(self, ledger, sample_book, sample_member):
        ledger.lend(sample_book.id, sample_member.id)

        result = await update_book_handler(ledger, {"book_id": sample_book.id, "total_copies": 3})

        book = result["data"]["book"]
        assert book["total_copies"] == 3
        assert book["available_copies"] == 2
        assert book["status"] == "available"

    async def test_update_unknown_book(self, ledger):
        result = await update_book_handler(ledger, {"book_id": 404, "title": "Ghost"})

        assert result["errorKind"] == "NotFound"
        assert "Book 404 not found" in result["content"][0]["text"]

    async def test_update_requires_book_id(self, ledger):
        result = await update_book_handler(ledger, {"title": "No id"})

        assert result["errorKind"] == "ValidationError"
        assert "book_id" in result["content"][0]["text"]


class TestDeleteBookTool:
    async def test_delete_book(self, ledger, sample_book):
        result = await delete_book_handler(ledger, {"book_id": sample_book.id})

        assert result["data"] == {"book_id": sample_book.id}
        search = await search_books_handler(ledger, {})
        assert search["data"]["pagination"]["total"] == 0

    async def test_delete_book_on_loan(self, ledger, sample_book, sample_member):
        ledger.lend(sample_book.id, sample_member.id)

        result = await delete_book_handler(ledger, {"book_id": sample_book.id})

        assert result["errorKind"] == "Conflict"
        assert "currently on loan" in result["content"][0]["text"]
        assert ledger.get_book(sample_book.id).total_copies == 1

    async def test_delete_unknown_book(self, ledger):
        result = await delete_book_handler(ledger, {"book_id": 77})

        assert result["errorKind"] == "NotFound"


@pytest.mark.usefixtures("catalog")
class TestSearchBooksTool:
    async def test_list_all(self, ledger):
        result = await search_books_handler(ledger, {})

        assert result["data"]["pagination"]["total"] == 4
        assert "Found 4 book(s)" in result["content"][0]["text"]

    async def test_search_by_author(self, ledger):
        result = await search_books_handler(ledger, {"author": "Orwell"})

        titles = sorted(book["title"] for book in result["data"]["books"])
        assert titles == ["1984", "Animal Farm"]

    async def test_search_free_text(self, ledger):
        result = await search_books_handler(ledger, {"search": "dune"})

        assert [book["title"] for book in result["data"]["books"]] == ["Dune"]

    async def test_filter_by_genre_and_language(self, ledger):
        by_genre = await search_books_handler(ledger, {"genre": "Satire"})
        by_language = await search_books_handler(ledger, {"language": "fr"})

        assert [book["title"] for book in by_genre["data"]["books"]] == ["Animal Farm"]
        assert [book["title"] for book in by_language["data"]["books"]] == ["Emma"]

    async def test_filter_by_availability(self, ledger, make_member):
        member = make_member()
        page = await search_books_handler(ledger, {"search": "Animal Farm"})
        animal_farm = page["data"]["books"][0]
        ledger.lend(animal_farm["id"], member.id)

        loaned = await search_books_handler(ledger, {"availability": "loaned"})
        available = await search_books_handler(ledger, {"availability": "available"})

        assert [book["title"] for book in loaned["data"]["books"]] == ["Animal Farm"]
        assert available["data"]["pagination"]["total"] == 3

    async def test_pagination(self, ledger):
        result = await search_books_handler(ledger, {"page": 2, "page_size": 3})

        pagination = result["data"]["pagination"]
        assert len(result["data"]["books"]) == 1
        assert pagination["page"] == 2
        assert pagination["total_pages"] == 2
        assert pagination["has_next"] is False
        assert pagination["has_previous"] is True
        assert "showing page 2 of 2" in result["content"][0]["text"]

    async def test_no_matches(self, ledger):
        result = await search_books_handler(ledger, {"search": "nonexistent"})

        assert result["data"]["books"] == []
        assert result["content"][0]["text"] == "No books found matching your search criteria."

    async def test_invalid_page_size(self, ledger):
        result = await search_books_handler(ledger, {"page_size": 500})

        assert result["errorKind"] == "ValidationError"
