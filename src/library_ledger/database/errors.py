"""
Typed failures raised by the data access layer.

Every failure a ledger or CRUD operation can produce belongs to one of three
kinds, exposed on the ``kind`` attribute so the request layer can report it
without inspecting class names:

- ``NotFound``: a book, member or transaction does not exist
- ``Conflict``: duplicates, unavailable copies, closed loans, open loans
  blocking a delete
- ``ValidationError``: out-of-range values, bad dates, missing fields

Store-specific errors (``sqlite3``/SQLAlchemy ``IntegrityError``) never leave
the repositories; ``translate_integrity_error`` maps them onto this taxonomy.
"""

from sqlalchemy.exc import IntegrityError


class RepositoryException(Exception):
    """Base exception for repository operations."""

    kind = "Internal"


class NotFoundError(RepositoryException):
    """Raised when an entity is not found."""

    kind = "NotFound"


class BookNotFoundError(NotFoundError):
    """Raised when a book id does not exist."""


class MemberNotFoundError(NotFoundError):
    """Raised when a member id or member code does not exist."""


class TransactionNotFoundError(NotFoundError):
    """Raised when a transaction id does not exist."""


class ConflictError(RepositoryException):
    """Raised when an operation conflicts with the current state."""

    kind = "Conflict"


class DuplicateError(ConflictError):
    """Raised when attempting to create a duplicate entity."""


class NotAvailableError(ConflictError):
    """Raised when lending a book with no available copies."""


class AlreadyReturnedError(ConflictError):
    """Raised when returning a loan that is already closed."""


class ActiveLoanError(ConflictError):
    """Raised when deleting a book or member that still has an open loan."""


class DataValidationError(RepositoryException):
    """Raised when data breaks a range, date or required-field rule."""

    kind = "ValidationError"


# Unique indexes and the message shown when one of them collides
_UNIQUE_MESSAGES = {
    "books.isbn": "A book with this ISBN already exists",
    "members.member_code": "A member with this member code already exists",
    "members.email": "A member with this email already exists",
}


def translate_integrity_error(error: IntegrityError) -> RepositoryException:
    """Map a store constraint violation onto the typed failure taxonomy."""
    message = str(error.orig) if error.orig is not None else str(error)

    if "UNIQUE constraint failed" in message:
        for column, friendly in _UNIQUE_MESSAGES.items():
            if column in message:
                return DuplicateError(friendly)
        return DuplicateError(f"Entity already exists: {message}")

    if "CHECK constraint failed" in message or "NOT NULL constraint failed" in message:
        return DataValidationError(f"Constraint violated: {message}")

    if "FOREIGN KEY constraint failed" in message:
        return NotFoundError(f"Referenced record does not exist: {message}")

    return RepositoryException(f"Database integrity error: {message}")
