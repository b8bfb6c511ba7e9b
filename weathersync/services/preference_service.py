"""User preference management with get-or-create defaults."""

import logging

from weathersync.models.common import Units
from weathersync.storage import preference_repo
from weathersync.storage.database import Database

logger = logging.getLogger(__name__)

WIND_SPEED_UNITS = ("kmh", "mph", "ms", "kn")
PRECIPITATION_UNITS = ("mm", "inch")
THEMES = ("light", "dark")


class PreferenceService:
    def __init__(self, db: Database, default_units: Units = Units.METRIC):
        self.db = db
        self.default_units = Units(default_units)

    def get_preferences(self) -> dict:
        return self._get_or_create_defaults()

    def update_preferences(self, **changes) -> dict:
        """Update preferences. Fields passed as None are left unchanged."""
        self._get_or_create_defaults()
        changes = {k: v for k, v in changes.items() if v is not None}
        _validate(changes)
        if "units" in changes:
            changes["units"] = Units(changes["units"]).value
        updated = preference_repo.update_preferences(self.db, changes)
        assert updated is not None
        logger.info("Preferences updated: %s", sorted(changes))
        return updated

    def effective_units(self) -> Units:
        """Unit system applied to provider calls."""
        return Units(self._get_or_create_defaults()["units"])

    def _get_or_create_defaults(self) -> dict:
        prefs = preference_repo.get_preferences(self.db)
        if prefs is not None:
            return prefs
        logger.info("Creating default preferences for user: %s", preference_repo.DEFAULT_USER_ID)
        metric = self.default_units == Units.METRIC
        return preference_repo.create_preferences(
            self.db,
            {
                "units": self.default_units.value,
                "refresh_interval_minutes": 30,
                "wind_speed_unit": "kmh" if metric else "mph",
                "precipitation_unit": "mm" if metric else "inch",
                "theme": "dark",
            },
        )


def _validate(changes: dict) -> None:
    if "units" in changes:
        Units(changes["units"])
    if "wind_speed_unit" in changes and changes["wind_speed_unit"] not in WIND_SPEED_UNITS:
        raise ValueError(f"wind_speed_unit must be one of {WIND_SPEED_UNITS}")
    if "precipitation_unit" in changes and changes["precipitation_unit"] not in PRECIPITATION_UNITS:
        raise ValueError(f"precipitation_unit must be one of {PRECIPITATION_UNITS}")
    if "theme" in changes and changes["theme"] not in THEMES:
        raise ValueError(f"theme must be one of {THEMES}")
    if changes.get("refresh_interval_minutes", 0) < 0:
        raise ValueError("refresh_interval_minutes must be >= 0")
