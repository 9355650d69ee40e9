"""
Settings models for the Library Ledger.

Two settings drive the ledger, both keyed by member type and stored as JSON
in the ``settings`` table using the front end's camelCase keys:

- ``fineRules``: ``{"student": {"dailyRate": 5, "gracePeriod": 0, "maxFine": 500}, ...}``
- ``lendingPeriods``: ``{"student": 14, "faculty": 30, "public": 7}``

Both have baked-in defaults used when the key is missing or an entry cannot
be parsed.
"""

from pydantic import BaseModel, ConfigDict, Field

from .member import MemberType

FINE_RULES_KEY = "fineRules"
LENDING_PERIODS_KEY = "lendingPeriods"


class FineRule(BaseModel):
    """Overdue charges for one member type."""

    daily_rate: float = Field(..., alias="dailyRate", ge=0)
    grace_period: int = Field(default=0, alias="gracePeriod", ge=0)
    max_fine: float = Field(..., alias="maxFine", ge=0)

    model_config = ConfigDict(populate_by_name=True)

    def assess(self, days_overdue: int) -> float:
        """
        Fine for a loan returned ``days_overdue`` days after its due date.

        The grace period is a threshold: within it nothing is charged, past
        it every overdue day is billed. The result is capped at ``max_fine``.
        """
        if days_overdue <= 0 or days_overdue <= self.grace_period:
            return 0.0
        return float(min(days_overdue * self.daily_rate, self.max_fine))


DEFAULT_FINE_RULES: dict[MemberType, FineRule] = {
    MemberType.STUDENT: FineRule(daily_rate=5, grace_period=0, max_fine=500),
    MemberType.FACULTY: FineRule(daily_rate=3, grace_period=3, max_fine=300),
    MemberType.PUBLIC: FineRule(daily_rate=10, grace_period=0, max_fine=1000),
}

DEFAULT_LENDING_PERIODS: dict[MemberType, int] = {
    MemberType.STUDENT: 14,
    MemberType.FACULTY: 30,
    MemberType.PUBLIC: 7,
}


class FineRules(BaseModel):
    """Fine rules for every member type."""

    student: FineRule = DEFAULT_FINE_RULES[MemberType.STUDENT]
    faculty: FineRule = DEFAULT_FINE_RULES[MemberType.FACULTY]
    public: FineRule = DEFAULT_FINE_RULES[MemberType.PUBLIC]

    def for_member_type(self, member_type: MemberType | str) -> FineRule:
        return getattr(self, MemberType(member_type).value)

    @classmethod
    def from_raw(cls, raw: object) -> "FineRules":
        """
        Build rules from a stored value, falling back per member type.

        Anything that is not a mapping, or an entry that fails validation,
        yields the default for that member type.
        """
        rules = {}
        source = raw if isinstance(raw, dict) else {}
        for member_type in MemberType:
            entry = source.get(member_type.value)
            try:
                rules[member_type.value] = FineRule.model_validate(entry)
            except ValueError:
                rules[member_type.value] = DEFAULT_FINE_RULES[member_type]
        return cls(**rules)

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True)


class LendingPeriods(BaseModel):
    """Default loan length in days for every member type."""

    student: int = Field(default=DEFAULT_LENDING_PERIODS[MemberType.STUDENT], ge=1)
    faculty: int = Field(default=DEFAULT_LENDING_PERIODS[MemberType.FACULTY], ge=1)
    public: int = Field(default=DEFAULT_LENDING_PERIODS[MemberType.PUBLIC], ge=1)

    def for_member_type(self, member_type: MemberType | str) -> int:
        return getattr(self, MemberType(member_type).value)

    @classmethod
    def from_raw(cls, raw: object) -> "LendingPeriods":
        """Build periods from a stored value, falling back per member type."""
        periods = {}
        source = raw if isinstance(raw, dict) else {}
        for member_type in MemberType:
            entry = source.get(member_type.value)
            # bool is an int subclass; reject it explicitly
            if isinstance(entry, int) and not isinstance(entry, bool) and entry >= 1:
                periods[member_type.value] = entry
            else:
                periods[member_type.value] = DEFAULT_LENDING_PERIODS[member_type]
        return cls(**periods)

    def to_storage(self) -> dict:
        return self.model_dump()
