"""
Member repository implementation for the Library Ledger.

Manages borrower records:

1. **CRUD**: create, read, update and delete members
2. **Lookup**: by surrogate id or by business member code
3. **Search**: free text plus member type and open-loan filters

Members with open loans cannot be deleted; their history would otherwise be
cascaded away while books are still out.
"""

import enum
import logging

from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import and_, exists, func, or_, select

from ..models.member import Member as MemberModel
from ..models.member import MemberFields, MemberType
from .repository import (
    ActiveLoanError,
    BaseRepository,
    DataValidationError,
    MemberNotFoundError,
    PaginatedResponse,
    PaginationParams,
)
from .schema import Member as MemberDB
from .schema import Transaction as TransactionDB
from .session import mcp_safe_query

logger = logging.getLogger(__name__)


class MemberCreateSchema(MemberFields):
    """Schema for creating a new member."""

    name: str = Field(..., min_length=2, max_length=100)
    member_code: str = Field(..., min_length=3, max_length=20)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    address: str | None = Field(None, max_length=500)
    member_type: MemberType = MemberType.PUBLIC
    notes: str | None = Field(None, max_length=500)


class MemberUpdateSchema(MemberFields):
    """Schema for updating a member - all fields optional."""

    name: str | None = Field(None, min_length=2, max_length=100)
    member_code: str | None = Field(None, min_length=3, max_length=20)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    address: str | None = Field(None, max_length=500)
    member_type: MemberType | None = None
    notes: str | None = Field(None, max_length=500)


class MemberSearchParams(BaseModel):
    """Search parameters for finding members."""

    search: str | None = None  # Name, member code, email or phone
    member_type: MemberType | None = None
    has_active_loans: bool | None = None


class MemberSortOptions(str, enum.Enum):
    """Sorting options for member queries."""

    NAME = "name"
    MEMBER_CODE = "member_code"
    CREATED_AT = "created_at"


def _open_loan_filter():
    return and_(
        TransactionDB.member_id == MemberDB.id,
        TransactionDB.transaction_type == "lend",
        TransactionDB.return_date.is_(None),
    )


class MemberRepository(
    BaseRepository[MemberDB, MemberCreateSchema, MemberUpdateSchema, MemberModel]
):
    """Repository for member data access."""

    not_found_error = MemberNotFoundError

    @property
    def model_class(self):
        return MemberDB

    @property
    def response_schema(self):
        return MemberModel

    def _count_open_loans(self, member_id: int) -> int:
        query = (
            select(func.count())
            .select_from(TransactionDB)
            .where(
                TransactionDB.member_id == member_id,
                TransactionDB.transaction_type == "lend",
                TransactionDB.return_date.is_(None),
            )
        )
        return (
            mcp_safe_query(
                self.session, lambda s: s.execute(query).scalar(), "Failed to count open loans"
            )
            or 0
        )

    def _to_response_model(self, db_obj: MemberDB) -> MemberModel:
        return MemberModel(
            id=db_obj.id,
            name=db_obj.name,
            member_code=db_obj.member_code,
            email=db_obj.email,
            phone=db_obj.phone,
            address=db_obj.address,
            member_type=MemberType(db_obj.member_type),
            notes=db_obj.notes,
            active_loans=self._count_open_loans(db_obj.id),
            created_at=db_obj.created_at,
            updated_at=db_obj.updated_at,
        )

    def _to_db_values(self, data: MemberCreateSchema) -> dict:
        values = data.model_dump()
        values["member_type"] = data.member_type.value
        return values

    def _apply_update(self, db_obj: MemberDB, changes: dict) -> None:
        for column in ("name", "member_code", "member_type"):
            if column in changes and changes[column] is None:
                raise DataValidationError(f"{column} cannot be null")
        if changes.get("member_type") is not None:
            changes["member_type"] = MemberType(changes["member_type"]).value
        super()._apply_update(db_obj, changes)

    def _check_can_delete(self, db_obj: MemberDB) -> None:
        open_loans = self._count_open_loans(db_obj.id)
        if open_loans:
            raise ActiveLoanError(
                f"Cannot delete {db_obj.name}: member has {open_loans} books on loan"
            )

    def create(self, data: MemberCreateSchema) -> MemberModel:
        member = super().create(data)
        logger.info("Created member %s (%s)", member.id, member.member_code)
        return member

    def update(self, id: int, data: MemberUpdateSchema) -> MemberModel:
        member = super().update(id, data)
        logger.info("Updated member %s", id)
        return member

    def delete(self, id: int) -> None:
        super().delete(id)
        logger.info("Deleted member %s", id)

    def get_by_member_code(self, member_code: str) -> MemberModel | None:
        """Get a member by their library card number."""
        query = select(MemberDB).where(MemberDB.member_code == member_code.strip())
        result = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get member by code",
        )
        return self._to_response_model(result) if result is not None else None

    def search(
        self,
        search_params: MemberSearchParams,
        pagination: PaginationParams | None = None,
        sort_by: MemberSortOptions = MemberSortOptions.NAME,
        sort_desc: bool = False,
    ) -> PaginatedResponse[MemberModel]:
        """
        Search for members with various filters.

        Args:
            search_params: Search and filter criteria
            pagination: Pagination parameters
            sort_by: Field to sort by
            sort_desc: Sort in descending order
        """
        query = select(MemberDB)
        filters = []

        if search_params.search:
            search_term = f"%{search_params.search}%"
            filters.append(
                or_(
                    MemberDB.name.ilike(search_term),
                    MemberDB.member_code.ilike(search_term),
                    MemberDB.email.ilike(search_term),
                    MemberDB.phone.like(search_term),
                )
            )

        if search_params.member_type:
            filters.append(MemberDB.member_type == search_params.member_type.value)

        if search_params.has_active_loans is not None:
            has_open = exists().where(_open_loan_filter())
            filters.append(has_open if search_params.has_active_loans else ~has_open)

        if filters:
            query = query.where(and_(*filters))

        sort_field = {
            MemberSortOptions.NAME: MemberDB.name,
            MemberSortOptions.MEMBER_CODE: MemberDB.member_code,
            MemberSortOptions.CREATED_AT: MemberDB.created_at,
        }.get(sort_by, MemberDB.name)

        query = query.order_by(sort_field.desc() if sort_desc else sort_field.asc(), MemberDB.id)

        return self._paginate(query, pagination)
