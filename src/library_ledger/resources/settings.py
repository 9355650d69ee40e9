"""Settings Resource

- library://settings - Every stored setting, with the fine rules and lending
  periods in force (defaults filled in where the stored value is missing)
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..ledger import LendingLedger

logger = logging.getLogger(__name__)


async def get_settings_handler(ledger: LendingLedger) -> dict[str, Any]:
    """Returns the effective library settings."""
    try:
        logger.debug("MCP Resource Request - settings")
        return ledger.get_settings()
    except Exception as e:
        logger.exception("Error in settings resource")
        raise ResourceError(f"Failed to read settings: {e!s}") from e


def build_settings_resources(ledger: LendingLedger) -> list[dict[str, Any]]:
    async def settings() -> dict[str, Any]:
        return await get_settings_handler(ledger)

    return [
        {
            "uri": "library://settings",
            "name": "Library Settings",
            "description": "Fine rules, lending periods and other stored settings",
            "mime_type": "application/json",
            "handler": settings,
        },
    ]
