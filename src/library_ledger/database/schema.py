"""
SQLAlchemy database schema for the Library Ledger.

Four tables back the application:

- ``books``: catalog entries with a cached availability counter and status
- ``members``: borrowers, each with a business-unique member code
- ``transactions``: one row per loan; the row flips from ``lend`` to
  ``return`` in place when the loan is closed
- ``settings``: key/value configuration stored as JSON text

Availability bookkeeping is not done with triggers. The ledger applies the
copy-count deltas itself inside the same database transaction as the loan row
write, so the CHECK constraints below are the last line of defense rather
than the mechanism.
"""

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship, validates
from sqlalchemy.sql import func

Base = declarative_base()


class BookStatusEnum(str, enum.Enum):
    """Stored book status values."""

    AVAILABLE = "available"
    LOANED = "loaned"
    RESERVED = "reserved"


class MemberTypeEnum(str, enum.Enum):
    """Stored member type values."""

    STUDENT = "student"
    FACULTY = "faculty"
    PUBLIC = "public"


class TransactionTypeEnum(str, enum.Enum):
    """Stored transaction type values."""

    LEND = "lend"
    RETURN = "return"


def _in_values(column: str, enum_cls: type[enum.Enum]) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


class Book(Base):
    """
    Books table - the library catalog.

    ``authors``, ``genres`` and ``tags`` hold JSON arrays as text.
    ``available_copies`` and ``status`` are maintained by the ledger on every
    lend and return.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    authors = Column(Text, nullable=False)  # JSON array
    isbn = Column(String(13), nullable=True, unique=True)
    publisher = Column(String(100), nullable=True)
    publication_year = Column(Integer, nullable=True)
    genres = Column(Text, nullable=False, default="[]")  # JSON array
    language = Column(String(2), nullable=False, default="en")
    total_copies = Column(Integer, nullable=False, default=1)
    available_copies = Column(Integer, nullable=False, default=1)
    location = Column(String(50), nullable=True)
    tags = Column(Text, nullable=True)  # JSON array
    description = Column(Text, nullable=True)
    cover_image_path = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=BookStatusEnum.AVAILABLE.value)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    transactions = relationship(
        "Transaction", back_populates="book", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_books_title", "title"),
        Index("idx_books_status", "status"),
        Index("idx_books_language", "language"),
        Index("idx_books_created_at", "created_at"),
        CheckConstraint("length(title) >= 1", name="chk_title_not_empty"),
        CheckConstraint("total_copies > 0", name="chk_total_copies"),
        CheckConstraint("available_copies >= 0", name="chk_available_copies"),
        CheckConstraint(
            "available_copies <= total_copies", name="chk_available_not_more_than_total"
        ),
        CheckConstraint(_in_values("status", BookStatusEnum), name="chk_status"),
        CheckConstraint(
            "publication_year IS NULL OR publication_year >= 1000", name="chk_publication_year"
        ),
        CheckConstraint("length(language) = 2", name="chk_language_length"),
    )

    @property
    def is_available(self) -> bool:
        """True when at least one copy can be lent."""
        return self.available_copies > 0


class Member(Base):
    """
    Members table - people who can borrow books.

    ``member_code`` is the library card number shown to staff; ``id`` is the
    surrogate key used by transactions.
    """

    __tablename__ = "members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    member_code = Column(String(20), nullable=False, unique=True)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    member_type = Column(String(20), nullable=False, default=MemberTypeEnum.PUBLIC.value)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    transactions = relationship(
        "Transaction", back_populates="member", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_members_name", "name"),
        Index("idx_members_type", "member_type"),
        CheckConstraint("length(name) >= 2", name="chk_name_length"),
        CheckConstraint("length(member_code) >= 3", name="chk_member_code_length"),
        CheckConstraint(_in_values("member_type", MemberTypeEnum), name="chk_member_type"),
    )

    @validates("email")
    def normalize_email(self, key, value):  # noqa: ARG002
        """Store emails lower-cased so uniqueness is case-insensitive."""
        return value.strip().lower() if value else None


class Transaction(Base):
    """
    Transactions table - loans and their returns.

    A row is an open loan exactly when ``transaction_type = 'lend'`` and
    ``return_date IS NULL``. Returning flips the type and fills the return
    date and fine on the same row.
    """

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    transaction_type = Column(
        String(10), nullable=False, default=TransactionTypeEnum.LEND.value
    )
    transaction_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)
    fine_amount = Column(Float, nullable=False, default=0.0)
    fine_paid = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    book = relationship("Book", back_populates="transactions")
    member = relationship("Member", back_populates="transactions")

    __table_args__ = (
        Index("idx_transactions_book_id", "book_id"),
        Index("idx_transactions_member_id", "member_id"),
        Index("idx_transactions_type", "transaction_type"),
        Index("idx_transactions_due_date", "due_date"),
        Index(
            "idx_transactions_active",
            "book_id",
            sqlite_where=return_date.is_(None),
        ),
        CheckConstraint(
            _in_values("transaction_type", TransactionTypeEnum), name="chk_transaction_type"
        ),
        CheckConstraint("fine_amount >= 0", name="chk_fine_amount"),
        CheckConstraint("due_date >= transaction_date", name="chk_due_date_after_lend"),
        CheckConstraint(
            "return_date IS NULL OR return_date >= transaction_date",
            name="chk_return_date_after_lend",
        ),
    )

    @property
    def is_open(self) -> bool:
        """True while the loan has not been returned."""
        return self.transaction_type == TransactionTypeEnum.LEND.value and self.return_date is None


class Setting(Base):
    """Settings table - JSON values keyed by name (``fineRules``, ``lendingPeriods``...)."""

    __tablename__ = "settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())
