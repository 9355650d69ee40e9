"""
MCP tools for the Library Ledger.

Handlers are module-level functions taking the ledger and the raw arguments
dict. ``build_tools`` binds them to one ledger instance so the server can
register them without any global state.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from ..ledger import LendingLedger
from .catalog import create_book, delete_book, search_books, update_book
from .circulation import lend_book, return_book
from .members import create_member, delete_member, search_members, update_member
from .settings import get_settings, update_setting

LedgerHandler = Callable[[LendingLedger, dict[str, Any]], Awaitable[dict[str, Any]]]

all_tools = [
    lend_book,
    return_book,
    create_book,
    update_book,
    delete_book,
    search_books,
    create_member,
    update_member,
    delete_member,
    search_members,
    get_settings,
    update_setting,
]


def bind_handler(handler: LedgerHandler, ledger: LendingLedger, name: str):
    """Close a ledger handler over ``ledger`` as an ``arguments``-only tool function."""

    async def tool(arguments: dict[str, Any]) -> dict[str, Any]:
        return await handler(ledger, arguments)

    tool.__name__ = name
    tool.__doc__ = handler.__doc__
    return tool


def build_tools(ledger: LendingLedger) -> list[dict[str, Any]]:
    """Tool definitions with handlers bound to ``ledger``."""
    return [
        {**tool, "handler": bind_handler(tool["handler"], ledger, tool["name"])}
        for tool in all_tools
    ]


__all__ = [
    "all_tools",
    "bind_handler",
    "build_tools",
]
