"""
Book model for the Library Ledger.

A book is a catalog entry that may have several physical copies. The ledger
keeps ``available_copies`` and ``status`` in step with the open loans, so
this model is mostly a read view; creation and edits go through
``BookCreateSchema``/``BookUpdateSchema`` in the repository module.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_COPIES = 1000


class BookStatus(str, Enum):
    """Cached availability status of a book."""

    AVAILABLE = "available"
    LOANED = "loaned"
    # Accepted and stored, but nothing in the ledger moves a book into it
    RESERVED = "reserved"


def normalize_isbn(value: str | None) -> str | None:
    """Strip hyphens/spaces and check the result is a plausible ISBN-10 or ISBN-13."""
    if value is None:
        return None
    normalized = value.replace("-", "").replace(" ", "").upper()
    if not normalized:
        return None
    if len(normalized) == 13 and normalized.isdigit():
        return normalized
    if len(normalized) == 10 and normalized[:9].isdigit() and (
        normalized[9].isdigit() or normalized[9] == "X"
    ):
        return normalized
    raise ValueError("ISBN must be 10 or 13 digits")


def clean_names(values: list[str]) -> list[str]:
    """Trim entries and drop empty ones, keeping order."""
    return [v.strip() for v in values if v and v.strip()]


def check_publication_year(value: int | None) -> int | None:
    if value is None:
        return None
    current_year = date.today().year
    if value < 1000 or value > current_year:
        raise ValueError(f"Publication year must be between 1000 and {current_year}")
    return value


class Book(BaseModel):
    """
    Represents a book in the library catalog.

    ``active_loans`` is computed from the transactions table when the book is
    read and is not stored on the row.
    """

    id: int = Field(..., description="Surrogate identifier", ge=1)

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=200,
        examples=["The Great Gatsby", "To Kill a Mockingbird"],
    )

    authors: list[str] = Field(
        ...,
        description="Author names in display order",
        min_length=1,
        examples=[["F. Scott Fitzgerald"], ["Brian Kernighan", "Dennis Ritchie"]],
    )

    isbn: str | None = Field(
        None,
        description="ISBN-10 or ISBN-13 without hyphens",
        examples=["9780743273565"],
    )

    publisher: str | None = Field(None, max_length=100)

    publication_year: int | None = Field(None, description="Year the book was published")

    genres: list[str] = Field(default_factory=list, examples=[["Fiction", "Classic"]])

    language: str = Field(
        default="en",
        description="Two-letter language code",
        pattern=r"^[a-z]{2}$",
    )

    total_copies: int = Field(..., ge=1, le=MAX_COPIES)

    available_copies: int = Field(..., ge=0)

    location: str | None = Field(None, description="Shelf location code", max_length=50)

    tags: list[str] = Field(default_factory=list)

    description: str | None = Field(None, max_length=1000)

    cover_image_path: str | None = None

    status: BookStatus = Field(default=BookStatus.AVAILABLE)

    active_loans: int = Field(default=0, ge=0, description="Currently open loans")

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def validate_copies(self) -> "Book":
        """Ensure available copies doesn't exceed total copies."""
        if self.available_copies > self.total_copies:
            raise ValueError("Available copies cannot exceed total copies")
        return self

    @property
    def is_available(self) -> bool:
        """Check if the book has any available copies."""
        return self.available_copies > 0

    @property
    def checked_out_copies(self) -> int:
        """Number of copies currently out on loan."""
        return self.total_copies - self.available_copies

    model_config = ConfigDict(
        use_enum_values=False,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "The Great Gatsby",
                "authors": ["F. Scott Fitzgerald"],
                "isbn": "9780743273565",
                "publisher": "Scribner",
                "publication_year": 1925,
                "genres": ["Fiction", "Classic"],
                "language": "en",
                "total_copies": 3,
                "available_copies": 2,
                "location": "A1-F2",
                "status": "available",
                "active_loans": 1,
            }
        },
    )


class BookFields(BaseModel):
    """Validation shared by book create and update payloads."""

    @field_validator("isbn", mode="before", check_fields=False)
    @classmethod
    def validate_isbn(cls, v: str | None) -> str | None:
        return normalize_isbn(v)

    @field_validator("authors", mode="after", check_fields=False)
    @classmethod
    def validate_authors(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        cleaned = clean_names(v)
        if not cleaned:
            raise ValueError("At least one author is required")
        return cleaned

    @field_validator("genres", "tags", mode="after", check_fields=False)
    @classmethod
    def validate_labels(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        return clean_names(v)

    @field_validator("title", mode="after", check_fields=False)
    @classmethod
    def strip_title(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("publication_year", mode="after", check_fields=False)
    @classmethod
    def validate_year(cls, v: int | None) -> int | None:
        return check_publication_year(v)

    @field_validator("language", mode="before", check_fields=False)
    @classmethod
    def normalize_language(cls, v: str | None) -> str | None:
        return v.strip().lower() if isinstance(v, str) else v
