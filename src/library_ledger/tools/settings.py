"""
Settings tools for the Library Ledger.

``get_settings`` reports the effective configuration, including the fine
rules and lending periods actually in force. ``update_setting`` stores one
key; the two keys the ledger understands are validated before they are saved.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.errors import RepositoryException
from ..ledger import LendingLedger
from .results import invalid_arguments, ledger_failure, success_result, unexpected_failure

logger = logging.getLogger(__name__)


class GetSettingsInput(BaseModel):
    """Input schema for the get_settings tool."""

    key: str | None = Field(
        default=None,
        description="Return only this key; omit for all settings",
        examples=["fineRules", "lendingPeriods"],
    )


class UpdateSettingInput(BaseModel):
    """Input schema for the update_setting tool."""

    key: str = Field(..., min_length=1, max_length=100, examples=["lendingPeriods"])
    value: Any = Field(
        ...,
        description="JSON value to store",
        examples=[{"student": 21, "faculty": 30, "public": 7}],
    )


async def get_settings_handler(ledger: LendingLedger, arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the get_settings tool."""
    try:
        params = GetSettingsInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments("get_settings", e)

    try:
        settings = ledger.get_settings()
    except RepositoryException as e:
        return ledger_failure("get_settings", e)
    except Exception as e:
        return unexpected_failure("get_settings", e)

    if params.key is not None:
        value = settings.get(params.key)
        return success_result(f"Setting {params.key}", {"key": params.key, "value": value})
    return success_result(f"{len(settings)} settings", {"settings": settings})


async def update_setting_handler(
    ledger: LendingLedger, arguments: dict[str, Any]
) -> dict[str, Any]:
    """Handler for the update_setting tool."""
    try:
        params = UpdateSettingInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments("update_setting", e)

    try:
        stored = ledger.update_setting(params.key, params.value)
    except RepositoryException as e:
        return ledger_failure("update_setting", e)
    except Exception as e:
        return unexpected_failure("update_setting", e)

    return success_result(f"Saved setting {params.key}", {"key": params.key, "value": stored})


get_settings = {
    "name": "get_settings",
    "description": "Read library settings, including the fine rules and lending periods in force.",
    "handler": get_settings_handler,
}

update_setting = {
    "name": "update_setting",
    "description": (
        "Store a setting. fineRules and lendingPeriods are validated per member "
        "type; other keys are stored as given."
    ),
    "handler": update_setting_handler,
}
