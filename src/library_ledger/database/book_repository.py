"""
Book repository implementation for the Library Ledger.

Provides catalog data access for the MCP tools and resources:

1. **CRUD**: create, read, update and delete catalog entries
2. **Search**: free text plus status, genre, language, author and
   availability filters with pagination
3. **Availability bookkeeping**: copy counts are kept consistent with the
   open loans when the total is edited

List columns (authors, genres, tags) are JSON text in the store and plain
lists on the Pydantic side; the conversion happens here.
"""

import enum
import json
import logging
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import and_, func, or_, select

from ..models.book import MAX_COPIES, BookFields, BookStatus
from ..models.book import Book as BookModel
from .repository import (
    ActiveLoanError,
    BaseRepository,
    BookNotFoundError,
    DataValidationError,
    PaginatedResponse,
    PaginationParams,
)
from .schema import Book as BookDB
from .schema import Transaction as TransactionDB
from .session import mcp_safe_flush, mcp_safe_query

logger = logging.getLogger(__name__)


class BookCreateSchema(BookFields):
    """Schema for creating a new book. Availability is derived, not supplied."""

    title: str = Field(..., min_length=1, max_length=200)
    authors: list[str] = Field(..., min_length=1)
    isbn: str | None = None
    publisher: str | None = Field(None, max_length=100)
    publication_year: int | None = None
    genres: list[str] = Field(default_factory=list)
    language: str = Field(default="en", pattern=r"^[a-z]{2}$")
    total_copies: int = Field(default=1, ge=1, le=MAX_COPIES)
    location: str | None = Field(None, max_length=50)
    tags: list[str] = Field(default_factory=list)
    description: str | None = Field(None, max_length=1000)
    cover_image_path: str | None = None


class BookUpdateSchema(BookFields):
    """Schema for updating a book - all fields optional."""

    title: str | None = Field(None, min_length=1, max_length=200)
    authors: list[str] | None = None
    isbn: str | None = None
    publisher: str | None = Field(None, max_length=100)
    publication_year: int | None = None
    genres: list[str] | None = None
    language: str | None = Field(None, pattern=r"^[a-z]{2}$")
    total_copies: int | None = Field(None, ge=1, le=MAX_COPIES)
    location: str | None = Field(None, max_length=50)
    tags: list[str] | None = None
    description: str | None = Field(None, max_length=1000)
    cover_image_path: str | None = None


class Availability(str, enum.Enum):
    """Availability filter for book searches."""

    AVAILABLE = "available"
    LOANED = "loaned"


class BookSearchParams(BaseModel):
    """Search parameters for finding books."""

    search: str | None = None  # Title, authors, ISBN, description or tags
    status: BookStatus | None = None
    genre: str | None = None  # Genre contained in the genres list
    language: str | None = None
    availability: Availability | None = None
    author: str | None = None  # Author name contains


class BookSortOptions(str, enum.Enum):
    """Sorting options for book queries."""

    TITLE = "title"
    PUBLICATION_YEAR = "publication_year"
    AVAILABILITY = "availability"
    CREATED_AT = "created_at"


# JSON list columns and whether the column may be NULL
_LIST_COLUMNS = {"authors": False, "genres": False, "tags": True}


def _load_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return [str(v) for v in value] if isinstance(value, list) else []


def open_loans_query(book_id: int):
    """Count of open loans on one book."""
    return (
        select(func.count())
        .select_from(TransactionDB)
        .where(
            TransactionDB.book_id == book_id,
            TransactionDB.transaction_type == "lend",
            TransactionDB.return_date.is_(None),
        )
    )


def status_for(available_copies: int) -> BookStatus:
    """Cached status implied by an availability counter."""
    return BookStatus.LOANED if available_copies == 0 else BookStatus.AVAILABLE


class BookRepository(BaseRepository[BookDB, BookCreateSchema, BookUpdateSchema, BookModel]):
    """
    Repository for book data access.

    Lend and return do not go through this class; they adjust the counters
    with guarded statements in ``TransactionRepository``.
    """

    not_found_error = BookNotFoundError

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def _count_open_loans(self, book_id: int) -> int:
        return (
            mcp_safe_query(
                self.session,
                lambda s: s.execute(open_loans_query(book_id)).scalar(),
                "Failed to count open loans",
            )
            or 0
        )

    def _to_response_model(self, db_obj: BookDB) -> BookModel:
        """Convert database book to Pydantic model with JSON fields parsed."""
        return BookModel(
            id=db_obj.id,
            title=db_obj.title,
            authors=_load_list(db_obj.authors),
            isbn=db_obj.isbn,
            publisher=db_obj.publisher,
            publication_year=db_obj.publication_year,
            genres=_load_list(db_obj.genres),
            language=db_obj.language,
            total_copies=db_obj.total_copies,
            available_copies=db_obj.available_copies,
            location=db_obj.location,
            tags=_load_list(db_obj.tags),
            description=db_obj.description,
            cover_image_path=db_obj.cover_image_path,
            status=BookStatus(db_obj.status),
            active_loans=self._count_open_loans(db_obj.id),
            created_at=db_obj.created_at,
            updated_at=db_obj.updated_at,
        )

    def _to_db_values(self, data: BookCreateSchema) -> dict[str, Any]:
        values = data.model_dump()
        for column in _LIST_COLUMNS:
            values[column] = json.dumps(values[column])
        values["available_copies"] = data.total_copies
        values["status"] = BookStatus.AVAILABLE.value
        return values

    def _apply_update(self, db_obj: BookDB, changes: dict[str, Any]) -> None:
        """
        Apply edits, recomputing availability when the total changes.

        Raises:
            DataValidationError: If the new total is below the open loan count
        """
        for column, nullable in _LIST_COLUMNS.items():
            if column in changes:
                value = changes[column]
                if value is None and not nullable:
                    raise DataValidationError(f"{column} cannot be null")
                changes[column] = json.dumps(value) if value is not None else None

        for column in ("title", "language", "total_copies"):
            if column in changes and changes[column] is None:
                raise DataValidationError(f"{column} cannot be null")

        # Every check runs before the row is touched
        total = changes.pop("total_copies", None)
        if total is not None and total != db_obj.total_copies:
            open_loans = self._count_open_loans(db_obj.id)
            if total < open_loans:
                raise DataValidationError(
                    f"Total copies ({total}) cannot be less than copies on loan ({open_loans})"
                )
        else:
            total = None

        super()._apply_update(db_obj, changes)

        if total is not None:
            db_obj.total_copies = total
            db_obj.available_copies = total - open_loans
            if db_obj.status != BookStatus.RESERVED.value:
                db_obj.status = status_for(db_obj.available_copies).value

    def update(self, id: int, data: BookUpdateSchema) -> BookModel:
        """
        Update book information.

        Raises:
            BookNotFoundError: If the book does not exist
            DataValidationError: If the new total is below the open loan count
            DuplicateError: If the new ISBN belongs to another book
        """
        db_obj = self._require_db_obj(id)
        self._apply_update(db_obj, data.model_dump(exclude_unset=True))
        mcp_safe_flush(self.session, "update book")
        self.session.refresh(db_obj)
        logger.info("Updated book %s", id)
        return self._to_response_model(db_obj)

    def create(self, data: BookCreateSchema) -> BookModel:
        book = super().create(data)
        logger.info("Created book %s: %s", book.id, book.title)
        return book

    def _check_can_delete(self, db_obj: BookDB) -> None:
        open_loans = self._count_open_loans(db_obj.id)
        if open_loans:
            raise ActiveLoanError(
                f"Cannot delete '{db_obj.title}': {open_loans} copies are currently on loan"
            )

    def delete(self, id: int) -> None:
        super().delete(id)
        logger.info("Deleted book %s", id)

    def get_by_isbn(self, isbn: str) -> BookModel | None:
        """Get book by ISBN (hyphens ignored)."""
        normalized_isbn = isbn.replace("-", "").replace(" ", "").upper()
        query = select(BookDB).where(BookDB.isbn == normalized_isbn)
        result = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get book by ISBN",
        )
        return self._to_response_model(result) if result is not None else None

    def search(
        self,
        search_params: BookSearchParams,
        pagination: PaginationParams | None = None,
        sort_by: BookSortOptions = BookSortOptions.TITLE,
        sort_desc: bool = False,
    ) -> PaginatedResponse[BookModel]:
        """
        Search for books with various filters.

        Args:
            search_params: Search and filter criteria
            pagination: Pagination parameters
            sort_by: Field to sort by
            sort_desc: Sort in descending order

        Returns:
            Paginated response with matching books
        """
        query = select(BookDB)
        filters = []

        if search_params.search:
            search_term = f"%{search_params.search}%"
            filters.append(
                or_(
                    BookDB.title.ilike(search_term),
                    BookDB.authors.ilike(search_term),
                    BookDB.isbn.like(search_term),
                    BookDB.description.ilike(search_term),
                    BookDB.tags.ilike(search_term),
                )
            )

        if search_params.status:
            filters.append(BookDB.status == search_params.status.value)

        if search_params.genre:
            # Match the quoted JSON element so "Fiction" does not hit "Non-Fiction"
            filters.append(BookDB.genres.ilike(f'%"{search_params.genre}"%'))

        if search_params.language:
            filters.append(BookDB.language == search_params.language.lower())

        if search_params.availability == Availability.AVAILABLE:
            filters.append(BookDB.available_copies > 0)
        elif search_params.availability == Availability.LOANED:
            filters.append(BookDB.available_copies == 0)

        if search_params.author:
            filters.append(BookDB.authors.ilike(f"%{search_params.author}%"))

        if filters:
            query = query.where(and_(*filters))

        sort_field = {
            BookSortOptions.TITLE: BookDB.title,
            BookSortOptions.PUBLICATION_YEAR: BookDB.publication_year,
            BookSortOptions.AVAILABILITY: BookDB.available_copies,
            BookSortOptions.CREATED_AT: BookDB.created_at,
        }.get(sort_by, BookDB.title)

        query = query.order_by(sort_field.desc() if sort_desc else sort_field.asc(), BookDB.id)

        return self._paginate(query, pagination)
