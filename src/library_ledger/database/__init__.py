"""
Database package for the Library Ledger.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management, the writer lock and error translation (session.py)
- The typed failure taxonomy (errors.py)
- Repositories for books, members, transactions, settings and statistics

The ledger and the MCP handlers only talk to the repositories; no SQL lives
above this package.
"""

from .book_repository import BookCreateSchema, BookRepository, BookSearchParams, BookUpdateSchema
from .member_repository import (
    MemberCreateSchema,
    MemberRepository,
    MemberSearchParams,
    MemberUpdateSchema,
)
from .repository import (
    ActiveLoanError,
    AlreadyReturnedError,
    BaseRepository,
    BookNotFoundError,
    ConflictError,
    DataValidationError,
    DuplicateError,
    MemberNotFoundError,
    NotAvailableError,
    NotFoundError,
    PaginatedResponse,
    PaginationParams,
    RepositoryException,
    TransactionNotFoundError,
)
from .schema import Base, Book, Member, Setting, Transaction
from .session import (
    DatabaseManager,
    mcp_safe_commit,
    mcp_safe_execute,
    mcp_safe_flush,
    mcp_safe_query,
)
from .settings_repository import SettingsRepository
from .stats_repository import BookStats, LibraryStats, MemberStats, StatsRepository
from .transaction_repository import TransactionRepository

__all__ = [
    "ActiveLoanError",
    "AlreadyReturnedError",
    "Base",
    "BaseRepository",
    "Book",
    "BookCreateSchema",
    "BookNotFoundError",
    "BookRepository",
    "BookSearchParams",
    "BookStats",
    "BookUpdateSchema",
    "ConflictError",
    "DataValidationError",
    "DatabaseManager",
    "DuplicateError",
    "LibraryStats",
    "Member",
    "MemberCreateSchema",
    "MemberNotFoundError",
    "MemberRepository",
    "MemberSearchParams",
    "MemberStats",
    "MemberUpdateSchema",
    "NotAvailableError",
    "NotFoundError",
    "PaginatedResponse",
    "PaginationParams",
    "RepositoryException",
    "Setting",
    "SettingsRepository",
    "StatsRepository",
    "Transaction",
    "TransactionNotFoundError",
    "TransactionRepository",
    "mcp_safe_commit",
    "mcp_safe_execute",
    "mcp_safe_flush",
    "mcp_safe_query",
]
