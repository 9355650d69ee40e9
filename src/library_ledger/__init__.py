"""
Library Ledger MCP Server Package.

A local library-management service exposed over MCP. The lending ledger
owns books, members and loans and keeps copy counts consistent with the open
loans.

Key Components:
- models: Pydantic models for data validation and serialization
- database: SQLAlchemy schema, session management and repositories
- ledger: lend, return and loan projections as atomic units
- config: Configuration management with pydantic-settings
- resources: MCP resources (read-only endpoints)
- tools: MCP tools (operations with side effects)
"""

__version__ = "0.1.0"

from .clock import Clock, FixedClock, SystemClock
from .ledger import LendingLedger

__all__ = [
    "Clock",
    "FixedClock",
    "LendingLedger",
    "SystemClock",
    "__version__",
]
