"""
Membership tools for the Library Ledger.

1. create_member: register a borrower with a unique member code
2. update_member: edit a member's details or type
3. delete_member: remove a member with no books on loan
4. search_members: filtered, paginated member search
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.errors import RepositoryException
from ..database.member_repository import (
    MemberCreateSchema,
    MemberSearchParams,
    MemberUpdateSchema,
)
from ..database.repository import PaginationParams
from ..ledger import LendingLedger
from ..models.member import Member, MemberType
from .results import invalid_arguments, ledger_failure, success_result, unexpected_failure

logger = logging.getLogger(__name__)


def format_member(member: Member) -> dict[str, Any]:
    return member.model_dump(mode="json", exclude={"created_at", "updated_at"})


class UpdateMemberInput(MemberUpdateSchema):
    """Input schema for the update_member tool: the member ID plus changed fields."""

    member_id: int = Field(..., description="ID of the member to update", ge=1)


class DeleteMemberInput(BaseModel):
    """Input schema for the delete_member tool."""

    member_id: int = Field(..., description="ID of the member to delete", ge=1)


class SearchMembersInput(BaseModel):
    """Input schema for the search_members tool."""

    search: str | None = Field(
        default=None,
        description="Free text matched against name, member code, email and phone",
        max_length=100,
        examples=["smith", "MEM-2024"],
    )
    member_type: MemberType | None = Field(default=None, description="Filter by member type")
    has_active_loans: bool | None = Field(
        default=None, description="True for members with books out, False for none"
    )
    page: int = Field(default=1, ge=1, le=1000)
    page_size: int = Field(default=20, ge=1, le=100)

    def to_search_params(self) -> MemberSearchParams:
        return MemberSearchParams(
            search=self.search.strip() if self.search else None,
            member_type=self.member_type,
            has_active_loans=self.has_active_loans,
        )


async def create_member_handler(
    ledger: LendingLedger, arguments: dict[str, Any]
) -> dict[str, Any]:
    """Handler for the create_member tool."""
    try:
        data = MemberCreateSchema.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments("create_member", e)

    try:
        member = ledger.create_member(data)
    except RepositoryException as e:
        return ledger_failure("create_member", e)
    except Exception as e:
        return unexpected_failure("create_member", e)

    return success_result(
        f"Registered {member.name} ({member.member_code}) as a {member.member_type.value} member",
        {"member": format_member(member)},
    )


async def update_member_handler(
    ledger: LendingLedger, arguments: dict[str, Any]
) -> dict[str, Any]:
    """Handler for the update_member tool. Only the fields present are changed."""
    try:
        params = UpdateMemberInput.model_validate(arguments)
        changes = MemberUpdateSchema.model_validate(
            params.model_dump(exclude_unset=True, exclude={"member_id"})
        )
    except ValidationError as e:
        return invalid_arguments("update_member", e)

    try:
        member = ledger.update_member(params.member_id, changes)
    except RepositoryException as e:
        return ledger_failure("update_member", e)
    except Exception as e:
        return unexpected_failure("update_member", e)

    return success_result(f"Updated {member.name}", {"member": format_member(member)})


async def delete_member_handler(
    ledger: LendingLedger, arguments: dict[str, Any]
) -> dict[str, Any]:
    """Handler for the delete_member tool."""
    try:
        params = DeleteMemberInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments("delete_member", e)

    try:
        ledger.delete_member(params.member_id)
    except RepositoryException as e:
        return ledger_failure("delete_member", e)
    except Exception as e:
        return unexpected_failure("delete_member", e)

    return success_result(f"Deleted member {params.member_id}", {"member_id": params.member_id})


async def search_members_handler(
    ledger: LendingLedger, arguments: dict[str, Any]
) -> dict[str, Any]:
    """Handler for the search_members tool."""
    try:
        params = SearchMembersInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments("search_members", e)

    try:
        result = ledger.search_members(
            params.to_search_params(),
            PaginationParams(page=params.page, page_size=params.page_size),
        )
    except RepositoryException as e:
        return ledger_failure("search_members", e)
    except Exception as e:
        return unexpected_failure("search_members", e)

    message = (
        f"Found {result.total} member(s)"
        if result.items
        else "No members found matching your search criteria."
    )
    return success_result(
        message,
        {
            "members": [format_member(member) for member in result.items],
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


create_member = {
    "name": "create_member",
    "description": (
        "Register a library member. Requires a name and a unique member code; "
        "email, when given, must be unique. Member type defaults to public."
    ),
    "handler": create_member_handler,
}

update_member = {
    "name": "update_member",
    "description": "Update a member's details. Changing the type affects future loans and fines.",
    "handler": update_member_handler,
}

delete_member = {
    "name": "delete_member",
    "description": "Delete a member and their loan history. Fails while they have books on loan.",
    "handler": delete_member_handler,
}

search_members = {
    "name": "search_members",
    "description": "Search members by free text, member type or whether they have books on loan.",
    "handler": search_members_handler,
}
