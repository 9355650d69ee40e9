"""
Catalog tools for the Library Ledger.

Book management for library staff:

1. create_book: add a catalog entry; all copies start available
2. update_book: edit fields; changing the copy count keeps loans intact
3. delete_book: remove a book that has no copies on loan
4. search_books: filtered, paginated catalog search
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.book_repository import (
    Availability,
    BookCreateSchema,
    BookSearchParams,
    BookUpdateSchema,
)
from ..database.errors import RepositoryException
from ..database.repository import PaginationParams
from ..ledger import LendingLedger
from ..models.book import Book, BookStatus
from .results import invalid_arguments, ledger_failure, success_result, unexpected_failure

logger = logging.getLogger(__name__)


def format_book(book: Book) -> dict[str, Any]:
    data = book.model_dump(mode="json", exclude={"created_at", "updated_at"})
    data["is_available"] = book.is_available
    return data


# =============================================================================
# INPUT SCHEMAS
# =============================================================================


class UpdateBookInput(BookUpdateSchema):
    """Input schema for the update_book tool: the book ID plus changed fields."""

    book_id: int = Field(..., description="ID of the book to update", ge=1)


class DeleteBookInput(BaseModel):
    """Input schema for the delete_book tool."""

    book_id: int = Field(..., description="ID of the book to delete", ge=1)


class SearchBooksInput(BaseModel):
    """Input schema for the search_books tool."""

    search: str | None = Field(
        default=None,
        description="Free text matched against title, authors, ISBN, description and tags",
        max_length=200,
        examples=["gatsby", "9780743273565"],
    )
    status: BookStatus | None = Field(default=None, description="Filter by book status")
    genre: str | None = Field(default=None, examples=["Fiction"])
    language: str | None = Field(default=None, pattern=r"^[a-zA-Z]{2}$", examples=["en"])
    availability: Availability | None = Field(
        default=None, description="'available' for books with free copies, 'loaned' for none"
    )
    author: str | None = Field(default=None, max_length=100, examples=["Orwell"])
    page: int = Field(default=1, ge=1, le=1000)
    page_size: int = Field(default=20, ge=1, le=100)

    def to_search_params(self) -> BookSearchParams:
        return BookSearchParams(
            search=self.search.strip() if self.search else None,
            status=self.status,
            genre=self.genre,
            language=self.language,
            availability=self.availability,
            author=self.author,
        )

    def to_pagination_params(self) -> PaginationParams:
        return PaginationParams(page=self.page, page_size=self.page_size)


# =============================================================================
# HANDLERS
# =============================================================================


async def create_book_handler(ledger: LendingLedger, arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the create_book tool."""
    try:
        data = BookCreateSchema.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments("create_book", e)

    try:
        book = ledger.create_book(data)
    except RepositoryException as e:
        return ledger_failure("create_book", e)
    except Exception as e:
        return unexpected_failure("create_book", e)

    return success_result(
        f"Added '{book.title}' with {book.total_copies} copies (ID {book.id})",
        {"book": format_book(book)},
    )


async def update_book_handler(ledger: LendingLedger, arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the update_book tool. Only the fields present are changed."""
    try:
        params = UpdateBookInput.model_validate(arguments)
        changes = BookUpdateSchema.model_validate(
            params.model_dump(exclude_unset=True, exclude={"book_id"})
        )
    except ValidationError as e:
        return invalid_arguments("update_book", e)

    try:
        book = ledger.update_book(params.book_id, changes)
    except RepositoryException as e:
        return ledger_failure("update_book", e)
    except Exception as e:
        return unexpected_failure("update_book", e)

    return success_result(f"Updated '{book.title}'", {"book": format_book(book)})


async def delete_book_handler(ledger: LendingLedger, arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the delete_book tool."""
    try:
        params = DeleteBookInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments("delete_book", e)

    try:
        ledger.delete_book(params.book_id)
    except RepositoryException as e:
        return ledger_failure("delete_book", e)
    except Exception as e:
        return unexpected_failure("delete_book", e)

    return success_result(f"Deleted book {params.book_id}", {"book_id": params.book_id})


async def search_books_handler(ledger: LendingLedger, arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the search_books tool. With no filters it lists the catalog."""
    try:
        params = SearchBooksInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments("search_books", e)

    try:
        result = ledger.search_books(params.to_search_params(), params.to_pagination_params())
    except RepositoryException as e:
        return ledger_failure("search_books", e)
    except Exception as e:
        return unexpected_failure("search_books", e)

    if not result.items:
        message = "No books found matching your search criteria."
    else:
        message = f"Found {result.total} book(s)"
        if result.total > len(result.items):
            message += f" (showing page {result.page} of {result.total_pages})"

    return success_result(
        message,
        {
            "books": [format_book(book) for book in result.items],
            "pagination": {
                "page": result.page,
                "page_size": result.page_size,
                "total": result.total,
                "total_pages": result.total_pages,
                "has_next": result.has_next,
                "has_previous": result.has_previous,
            },
        },
    )


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

create_book = {
    "name": "create_book",
    "description": (
        "Add a book to the catalog. Requires a title, at least one author and the "
        "number of copies (1-1000). ISBN, when given, must be unique."
    ),
    "handler": create_book_handler,
}

update_book = {
    "name": "update_book",
    "description": (
        "Update a book's details. Changing total_copies recomputes the available "
        "copies and fails if fewer copies than are currently on loan."
    ),
    "handler": update_book_handler,
}

delete_book = {
    "name": "delete_book",
    "description": "Delete a book and its loan history. Fails while any copy is on loan.",
    "handler": delete_book_handler,
}

search_books = {
    "name": "search_books",
    "description": (
        "Search the catalog by free text, status, genre, language, author or "
        "availability, with pagination."
    ),
    "handler": search_books_handler,
}
