"""Repository for tracked locations and their sync bookkeeping."""

import sqlite3

from weathersync.models.common import LocationId, parse_timestamp, to_iso, utc_now
from weathersync.models.location import SyncStatus, TrackedLocation
from weathersync.storage.database import Database

_COLUMNS = (
    "id, name, country, latitude, longitude, display_name, favorite, "
    "last_sync_at, sync_status, created_at, updated_at"
)


class LocationRegistry:
    def __init__(self, db: Database):
        self.db = db

    def find_by_id(self, location_id: LocationId) -> TrackedLocation | None:
        with self.db.lock:
            row = self.db.conn.execute(
                f"SELECT {_COLUMNS} FROM locations WHERE id = ?", (location_id,)
            ).fetchone()
        return None if row is None else _row_to_location(row)

    def find_all(self) -> list[TrackedLocation]:
        """All locations ordered by name."""
        return self._query(f"SELECT {_COLUMNS} FROM locations ORDER BY name COLLATE NOCASE, id")

    def find_favorites(self) -> list[TrackedLocation]:
        return self._query(
            f"SELECT {_COLUMNS} FROM locations WHERE favorite = 1 "
            "ORDER BY name COLLATE NOCASE, id"
        )

    def search_by_name(self, query: str) -> list[TrackedLocation]:
        """Case-insensitive substring match on name or display name."""
        pattern = f"%{_escape_like(query.strip())}%"
        return self._query(
            f"SELECT {_COLUMNS} FROM locations "
            "WHERE name LIKE ? ESCAPE '\\' OR display_name LIKE ? ESCAPE '\\' "
            "ORDER BY name COLLATE NOCASE, id",
            (pattern, pattern),
        )

    def find_by_status(self, status: SyncStatus) -> list[TrackedLocation]:
        return self._query(
            f"SELECT {_COLUMNS} FROM locations WHERE sync_status = ? "
            "ORDER BY name COLLATE NOCASE, id",
            (status.value,),
        )

    def exists_by_name_and_country(self, name: str, country: str) -> bool:
        with self.db.lock:
            row = self.db.conn.execute(
                "SELECT 1 FROM locations "
                "WHERE name = ? COLLATE NOCASE AND country = ? COLLATE NOCASE",
                (name.strip(), country.strip()),
            ).fetchone()
        return row is not None

    def save(self, location: TrackedLocation) -> TrackedLocation:
        """Insert or update a location. Bumps ``updated_at``."""
        location.updated_at = utc_now()
        with self.db.transaction() as conn:
            conn.execute(
                f"INSERT INTO locations ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET "
                "name = excluded.name, country = excluded.country, "
                "latitude = excluded.latitude, longitude = excluded.longitude, "
                "display_name = excluded.display_name, favorite = excluded.favorite, "
                "last_sync_at = excluded.last_sync_at, sync_status = excluded.sync_status, "
                "updated_at = excluded.updated_at",
                (
                    location.id,
                    location.name,
                    location.country,
                    location.latitude,
                    location.longitude,
                    location.display_name,
                    int(location.favorite),
                    to_iso(location.last_sync_at),
                    location.sync_status.value,
                    to_iso(location.created_at),
                    to_iso(location.updated_at),
                ),
            )
        return location

    def update_sync_status(self, location: TrackedLocation) -> bool:
        """Persist only the sync bookkeeping fields of a location.

        ``last_sync_at`` is written on SUCCESS only. Never inserts, so a
        location deleted mid-sync stays deleted. Returns False when the row
        no longer exists.
        """
        location.updated_at = utc_now()
        if location.sync_status == SyncStatus.SUCCESS:
            sql = (
                "UPDATE locations SET sync_status = ?, last_sync_at = ?, updated_at = ? "
                "WHERE id = ?"
            )
            params: tuple = (
                location.sync_status.value,
                to_iso(location.last_sync_at),
                to_iso(location.updated_at),
                location.id,
            )
        else:
            sql = "UPDATE locations SET sync_status = ?, updated_at = ? WHERE id = ?"
            params = (location.sync_status.value, to_iso(location.updated_at), location.id)
        with self.db.transaction() as conn:
            cursor = conn.execute(sql, params)
        return cursor.rowcount > 0

    def update_user_fields(
        self,
        location_id: LocationId,
        display_name: str | None = None,
        favorite: bool | None = None,
    ) -> bool:
        """Persist user edits without touching sync bookkeeping.

        A None argument leaves that column unchanged. Returns False when the
        row no longer exists.
        """
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE locations SET "
                "display_name = COALESCE(?, display_name), "
                "favorite = COALESCE(?, favorite), "
                "updated_at = ? "
                "WHERE id = ?",
                (
                    display_name,
                    None if favorite is None else int(favorite),
                    to_iso(utc_now()),
                    location_id,
                ),
            )
        return cursor.rowcount > 0

    def delete(self, location_id: LocationId) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute("DELETE FROM locations WHERE id = ?", (location_id,))
        return cursor.rowcount > 0

    def count(self) -> int:
        with self.db.lock:
            return self.db.conn.execute("SELECT COUNT(*) FROM locations").fetchone()[0]

    def _query(self, sql: str, params: tuple = ()) -> list[TrackedLocation]:
        with self.db.lock:
            rows = self.db.conn.execute(sql, params).fetchall()
        return [_row_to_location(r) for r in rows]


def _row_to_location(row: sqlite3.Row) -> TrackedLocation:
    return TrackedLocation(
        id=row["id"],
        name=row["name"],
        country=row["country"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        display_name=row["display_name"],
        favorite=bool(row["favorite"]),
        last_sync_at=parse_timestamp(row["last_sync_at"]),
        sync_status=SyncStatus(row["sync_status"]),
        created_at=parse_timestamp(row["created_at"]) or utc_now(),
        updated_at=parse_timestamp(row["updated_at"]) or utc_now(),
    )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
