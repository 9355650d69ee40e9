"""Date sources for due-date and overdue calculations.

The ledger only ever asks "what day is it?". Keeping that behind a tiny
interface lets tests pin the calendar instead of depending on the wall clock.
"""

from datetime import date, timedelta
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current date."""

    def today(self) -> date: ...


class SystemClock:
    """Clock backed by the local system date."""

    def today(self) -> date:
        return date.today()


class FixedClock:
    """Clock frozen at a given date, advanced manually.

    Example:
        ```python
        clock = FixedClock(date(2024, 1, 1))
        clock.advance(20)
        assert clock.today() == date(2024, 1, 21)
        ```
    """

    def __init__(self, current: date):
        self.current = current

    def today(self) -> date:
        return self.current

    def advance(self, days: int) -> date:
        """Move the clock forward (or backward, for negative values)."""
        self.current = self.current + timedelta(days=days)
        return self.current

    def set(self, current: date) -> None:
        self.current = current
