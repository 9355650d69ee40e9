"""
MCP tool result builders.

Every tool returns one of two shapes:

- success: ``{"content": [{"type": "text", "text": ...}], "data": {...}}``
- failure: ``{"isError": True, "errorKind": ..., "content": [...]}``

``errorKind`` is one of ``NotFound``, ``Conflict``, ``ValidationError`` or
``Internal`` so clients can branch on the failure without parsing text.
"""

import logging
from typing import Any

from pydantic import ValidationError

from ..database.errors import RepositoryException

logger = logging.getLogger(__name__)

VALIDATION_ERROR = "ValidationError"
INTERNAL_ERROR = "Internal"


def success_result(message: str, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "content": [{"type": "text", "text": message}],
        "data": data,
    }


def error_result(kind: str, message: str) -> dict[str, Any]:
    return {
        "isError": True,
        "errorKind": kind,
        "content": [{"type": "text", "text": message}],
    }


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "input"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def invalid_arguments(tool_name: str, error: ValidationError) -> dict[str, Any]:
    """Failure result for arguments that do not match the tool's input schema."""
    logger.warning("Invalid %s parameters: %s", tool_name, error)
    return error_result(
        VALIDATION_ERROR,
        f"Invalid {tool_name} parameters: {_describe_validation_error(error)}",
    )


def ledger_failure(tool_name: str, error: RepositoryException) -> dict[str, Any]:
    """Failure result for a rejected ledger operation."""
    logger.info("%s failed (%s): %s", tool_name, error.kind, error)
    return error_result(error.kind, str(error))


def unexpected_failure(tool_name: str, error: Exception) -> dict[str, Any]:
    """Failure result for anything the ledger did not anticipate."""
    logger.exception("Unexpected error in %s tool", tool_name)
    return error_result(INTERNAL_ERROR, f"An unexpected error occurred: {error!s}")
