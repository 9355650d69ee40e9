"""
Settings repository for the Library Ledger.

Settings are JSON values keyed by name. Two keys are understood by the
ledger, ``fineRules`` and ``lendingPeriods``; anything else (UI preferences
and the like) is stored and returned verbatim.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.settings import FINE_RULES_KEY, LENDING_PERIODS_KEY, FineRules, LendingPeriods
from .repository import DataValidationError
from .schema import Setting as SettingDB
from .session import mcp_safe_flush, mcp_safe_query

logger = logging.getLogger(__name__)

# Models that validate the known keys before they are written
_VALIDATED_KEYS = {
    FINE_RULES_KEY: FineRules,
    LENDING_PERIODS_KEY: LendingPeriods,
}


class SettingsRepository:
    """Key/value access to the settings table."""

    def __init__(self, session: Session):
        self.session = session

    def _get_raw(self, key: str) -> str | None:
        return mcp_safe_query(
            self.session,
            lambda s: s.execute(
                select(SettingDB.value).where(SettingDB.key == key)
            ).scalar_one_or_none(),
            f"Failed to read setting {key}",
        )

    def get(self, key: str) -> Any | None:
        """
        Get a setting's decoded JSON value.

        Returns None when the key is absent or its stored text is not JSON.
        """
        raw = self._get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Setting %s holds invalid JSON; ignoring it", key)
            return None

    def get_all(self) -> dict[str, Any]:
        """All settings as a key to decoded value mapping."""
        rows = mcp_safe_query(
            self.session,
            lambda s: s.execute(select(SettingDB.key, SettingDB.value)).all(),
            "Failed to read settings",
        )
        result: dict[str, Any] = {}
        for key, raw in rows:
            try:
                result[key] = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Setting %s holds invalid JSON; ignoring it", key)
        return result

    def set(self, key: str, value: Any) -> Any:
        """
        Store a setting, replacing any previous value.

        ``fineRules`` and ``lendingPeriods`` are validated first; member
        types missing from the payload are stored with their defaults.

        Raises:
            DataValidationError: If the key is blank or the value is invalid
        """
        if not key or not key.strip():
            raise DataValidationError("Setting key is required")

        model = _VALIDATED_KEYS.get(key)
        if model is not None:
            try:
                value = model.model_validate(value).to_storage()
            except ValidationError as e:
                raise DataValidationError(f"Invalid value for {key}: {e}") from e

        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise DataValidationError(f"Setting {key} is not JSON serializable") from e

        existing = mcp_safe_query(
            self.session,
            lambda s: s.get(SettingDB, key),
            f"Failed to read setting {key}",
        )
        if existing is None:
            self.session.add(SettingDB(key=key, value=encoded))
        else:
            existing.value = encoded
        mcp_safe_flush(self.session, f"set setting {key}")
        logger.info("Setting %s updated", key)
        return value

    def get_fine_rules(self) -> FineRules:
        """Fine rules with per-member-type fallback to the defaults."""
        return FineRules.from_raw(self.get(FINE_RULES_KEY))

    def get_lending_periods(self) -> LendingPeriods:
        """Lending periods with per-member-type fallback to the defaults."""
        return LendingPeriods.from_raw(self.get(LENDING_PERIODS_KEY))
