"""Repository for user preferences (single default user)."""

from weathersync.models.common import to_iso, utc_now
from weathersync.storage.database import Database

DEFAULT_USER_ID = "default"

PREFERENCE_FIELDS = (
    "units",
    "refresh_interval_minutes",
    "wind_speed_unit",
    "precipitation_unit",
    "default_location_id",
    "theme",
)


def get_preferences(db: Database, user_id: str = DEFAULT_USER_ID) -> dict | None:
    with db.lock:
        row = db.conn.execute(
            "SELECT * FROM user_preferences WHERE user_id = ?", (user_id,)
        ).fetchone()
    return None if row is None else dict(row)


def create_preferences(db: Database, values: dict, user_id: str = DEFAULT_USER_ID) -> dict:
    now = to_iso(utc_now())
    with db.transaction() as conn:
        conn.execute(
            "INSERT OR IGNORE INTO user_preferences "
            "(user_id, units, refresh_interval_minutes, wind_speed_unit, "
            "precipitation_unit, default_location_id, theme, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                user_id,
                values["units"],
                values["refresh_interval_minutes"],
                values["wind_speed_unit"],
                values["precipitation_unit"],
                values.get("default_location_id"),
                values["theme"],
                now,
                now,
            ),
        )
    result = get_preferences(db, user_id)
    assert result is not None
    return result


def update_preferences(db: Database, changes: dict, user_id: str = DEFAULT_USER_ID) -> dict | None:
    """Apply the given field changes. Unknown fields are rejected."""
    unknown = set(changes) - set(PREFERENCE_FIELDS)
    if unknown:
        raise KeyError(f"Unknown preference fields: {sorted(unknown)}")
    if changes:
        sets = [f"{key} = ?" for key in changes] + ["updated_at = ?"]
        params: list = list(changes.values()) + [to_iso(utc_now()), user_id]
        with db.transaction() as conn:
            conn.execute(
                f"UPDATE user_preferences SET {', '.join(sets)} WHERE user_id = ?",
                params,
            )
    return get_preferences(db, user_id)
