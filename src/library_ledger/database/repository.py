"""
Shared repository plumbing for the Library Ledger.

The ledger and the MCP handlers never see a SQLAlchemy row. Each repository
wraps one session and one table and hands back Pydantic models. Writes only
flush through ``mcp_safe_flush``: the ``DatabaseManager`` scope the caller
opened owns the commit, and a constraint violation reaches the caller as a
typed error from ``errors.py``.

``BaseRepository`` implements get/create/update/delete and paging. The book
and member repositories plug in their conversions and delete guards; the
transaction, settings and stats repositories stand alone.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import Select, asc, desc, func, select
from sqlalchemy.orm import Session

from .errors import (
    ActiveLoanError,
    AlreadyReturnedError,
    BookNotFoundError,
    ConflictError,
    DataValidationError,
    DuplicateError,
    MemberNotFoundError,
    NotAvailableError,
    NotFoundError,
    RepositoryException,
    TransactionNotFoundError,
)
from .schema import Base
from .session import mcp_safe_flush, mcp_safe_query

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)

MAX_PAGE_SIZE = 100

__all__ = [
    "ActiveLoanError",
    "AlreadyReturnedError",
    "BaseRepository",
    "BookNotFoundError",
    "ConflictError",
    "DataValidationError",
    "DuplicateError",
    "MemberNotFoundError",
    "NotAvailableError",
    "NotFoundError",
    "PaginatedResponse",
    "PaginationParams",
    "RepositoryException",
    "TransactionNotFoundError",
]


class PaginationParams(BaseModel):
    """1-based page number and page size for list queries."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def validate_params(self) -> None:
        if self.page < 1:
            raise DataValidationError("Page must be >= 1")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise DataValidationError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")


class PaginatedResponse(BaseModel, Generic[ResponseSchemaType]):
    """One page of results plus the counts a client needs to page on."""

    items: list[ResponseSchemaType]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(
        cls, items: list[ResponseSchemaType], total: int, pagination: PaginationParams
    ) -> "PaginatedResponse[ResponseSchemaType]":
        return cls(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=-(-total // pagination.page_size),
            has_next=pagination.offset + len(items) < total,
            has_previous=pagination.page > 1,
        )


class BaseRepository(
    ABC, Generic[ModelType, CreateSchemaType, UpdateSchemaType, ResponseSchemaType]
):
    """
    CRUD over one table.

    Subclasses name the table and response model, and may override the
    conversion hooks or veto deletes in ``_check_can_delete``.
    """

    not_found_error: type[NotFoundError] = NotFoundError

    def __init__(self, session: Session):
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """The SQLAlchemy table class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """The Pydantic model rows are returned as."""

    @property
    def entity_name(self) -> str:
        return self.model_class.__name__

    # === Conversion hooks ===

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _to_db_values(self, data: CreateSchemaType) -> dict[str, Any]:
        return data.model_dump()

    def _apply_update(self, db_obj: ModelType, changes: dict[str, Any]) -> None:
        for field, value in changes.items():
            setattr(db_obj, field, value)

    def _check_can_delete(self, db_obj: ModelType) -> None:  # noqa: B027
        """Raise a ``ConflictError`` to refuse the delete."""

    # === Reads ===

    def _get_db_obj(self, id: int) -> ModelType | None:
        return mcp_safe_query(
            self.session,
            lambda s: s.get(self.model_class, id),
            f"Failed to load {self.entity_name} {id}",
        )

    def _require_db_obj(self, id: int) -> ModelType:
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            raise self.not_found_error(f"{self.entity_name} {id} not found")
        return db_obj

    def get_by_id(self, id: int) -> ResponseSchemaType | None:
        db_obj = self._get_db_obj(id)
        return self._to_response_model(db_obj) if db_obj is not None else None

    def exists(self, id: int) -> bool:
        return self._get_db_obj(id) is not None

    def get_all(
        self,
        pagination: PaginationParams | None = None,
        order_by: str | None = None,
        order_desc: bool = False,
    ) -> PaginatedResponse[ResponseSchemaType]:
        """Every row, one page at a time, optionally ordered by a column name."""
        query = select(self.model_class)
        column = getattr(self.model_class, order_by, None) if order_by else None
        if column is not None:
            query = query.order_by(desc(column) if order_desc else asc(column))
        return self._paginate(query, pagination)

    # === Writes ===

    def create(self, data: CreateSchemaType) -> ResponseSchemaType:
        """
        Insert a row built from ``data``.

        Raises:
            DuplicateError: A unique column collides
            DataValidationError: A CHECK or NOT NULL constraint fails
        """
        db_obj = self.model_class(**self._to_db_values(data))
        self.session.add(db_obj)
        mcp_safe_flush(self.session, f"create {self.entity_name}")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def update(self, id: int, data: UpdateSchemaType) -> ResponseSchemaType:
        """
        Apply the fields explicitly set on ``data``.

        Raises:
            NotFoundError: No such row
            DuplicateError: A unique column collides
        """
        db_obj = self._require_db_obj(id)
        self._apply_update(db_obj, data.model_dump(exclude_unset=True))
        mcp_safe_flush(self.session, f"update {self.entity_name}")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def delete(self, id: int) -> None:
        """
        Raises:
            NotFoundError: No such row
            ConflictError: ``_check_can_delete`` refused
        """
        db_obj = self._require_db_obj(id)
        self._check_can_delete(db_obj)
        self.session.delete(db_obj)
        mcp_safe_flush(self.session, f"delete {self.entity_name}")

    def _paginate(
        self, query: Select, pagination: PaginationParams | None
    ) -> PaginatedResponse[ResponseSchemaType]:
        pagination = pagination or PaginationParams()
        pagination.validate_params()

        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = mcp_safe_query(
            self.session,
            lambda s: s.execute(count_query).scalar() or 0,
            f"Failed to count {self.entity_name} rows",
        )
        page_query = query.offset(pagination.offset).limit(pagination.page_size)
        rows = mcp_safe_query(
            self.session,
            lambda s: s.execute(page_query).scalars().all(),
            f"Failed to load a page of {self.entity_name} rows",
        )
        return PaginatedResponse.build(
            [self._to_response_model(row) for row in rows], total, pagination
        )
