"""
Member model for the Library Ledger.

Members borrow books. Their ``member_type`` selects the lending period and
the fine rule applied when a loan comes back late.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class MemberType(str, Enum):
    """Borrower categories with their own lending periods and fine rules."""

    STUDENT = "student"
    FACULTY = "faculty"
    PUBLIC = "public"


class Member(BaseModel):
    """Represents a library member."""

    id: int = Field(..., description="Surrogate identifier", ge=1)

    name: str = Field(
        ...,
        description="Full name of the member",
        min_length=2,
        max_length=100,
        examples=["John Smith", "Emily Johnson"],
    )

    member_code: str = Field(
        ...,
        description="Library card number, unique per member",
        min_length=3,
        max_length=20,
        examples=["MEM-2024-0001"],
    )

    email: EmailStr | None = Field(None, examples=["john.smith@email.com"])

    phone: str | None = Field(None, max_length=20, examples=["555-0101"])

    address: str | None = Field(None, max_length=500)

    member_type: MemberType = Field(default=MemberType.PUBLIC)

    notes: str | None = Field(None, max_length=500)

    active_loans: int = Field(default=0, ge=0, description="Currently open loans")

    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 1,
                "name": "John Smith",
                "member_code": "MEM-2024-0001",
                "email": "john.smith@email.com",
                "phone": "555-0101",
                "member_type": "student",
                "active_loans": 0,
            }
        },
    )


class MemberFields(BaseModel):
    """Validation shared by member create and update payloads."""

    @field_validator("name", "member_code", mode="before", check_fields=False)
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def blank_email_is_none(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v
