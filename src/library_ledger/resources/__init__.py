"""Library Ledger MCP Resources Package

Resources are the read-only side of the server: loan listings, statistics
and settings. Writes go through tools.

Each module exposes ``build_*_resources(ledger)``, returning resource
definitions whose handlers are bound to one ledger instance.
"""

from typing import Any

from ..ledger import LendingLedger
from .loans import DEFAULT_HISTORY_LIMIT, build_loan_resources
from .settings import build_settings_resources
from .stats import build_stats_resources


def build_resources(
    ledger: LendingLedger, history_limit: int = DEFAULT_HISTORY_LIMIT
) -> list[dict[str, Any]]:
    """All resource definitions bound to ``ledger``."""
    return (
        build_loan_resources(ledger, history_limit)
        + build_stats_resources(ledger)
        + build_settings_resources(ledger)
    )


__all__ = [
    "build_loan_resources",
    "build_resources",
    "build_settings_resources",
    "build_stats_resources",
]
