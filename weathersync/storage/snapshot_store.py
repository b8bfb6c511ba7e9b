"""Repository for immutable weather snapshots."""

import dataclasses
import json
import sqlite3
from datetime import datetime

from weathersync.models.common import LocationId, Units, parse_timestamp, to_iso
from weathersync.models.snapshot import (
    CurrentWeather,
    DailyForecast,
    HourlyForecast,
    WeatherSnapshot,
)
from weathersync.storage.database import Database

_NEWEST_FIRST = "ORDER BY fetched_at DESC, id DESC"


class SnapshotStore:
    def __init__(self, db: Database):
        self.db = db

    def save(self, snapshot: WeatherSnapshot) -> WeatherSnapshot:
        """Insert a new snapshot. Returns a copy carrying its row id."""
        if snapshot.location_id is None or snapshot.fetched_at is None:
            raise ValueError("snapshot must be stamped with location_id and fetched_at")
        current = snapshot.current or CurrentWeather()
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO weather_snapshots "
                "(location_id, temperature, apparent_temperature, humidity, precipitation, "
                "weather_code, weather_description, wind_speed, has_current, "
                "hourly_json, daily_json, units, timezone, fetched_at, "
                "conflict_detected, conflict_description) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    snapshot.location_id,
                    current.temperature,
                    current.apparent_temperature,
                    current.humidity,
                    current.precipitation,
                    current.weather_code,
                    current.weather_description,
                    current.wind_speed,
                    int(snapshot.current is not None),
                    json.dumps([dataclasses.asdict(h) for h in snapshot.hourly]),
                    json.dumps([dataclasses.asdict(d) for d in snapshot.daily]),
                    Units(snapshot.units).value,
                    snapshot.timezone,
                    to_iso(snapshot.fetched_at),
                    int(snapshot.conflict_detected),
                    snapshot.conflict_description,
                ),
            )
        assert cursor.lastrowid is not None
        return dataclasses.replace(snapshot, id=cursor.lastrowid)

    def find_latest_by_location(self, location_id: LocationId) -> WeatherSnapshot | None:
        rows = self._query(
            f"SELECT * FROM weather_snapshots WHERE location_id = ? {_NEWEST_FIRST} LIMIT 1",
            (location_id,),
        )
        return rows[0] if rows else None

    def find_by_location(
        self, location_id: LocationId, page: int = 0, size: int = 10
    ) -> list[WeatherSnapshot]:
        """One page of a location's history, newest first."""
        return self._query(
            f"SELECT * FROM weather_snapshots WHERE location_id = ? {_NEWEST_FIRST} "
            "LIMIT ? OFFSET ?",
            (location_id, size, page * size),
        )

    def find_in_range(
        self, location_id: LocationId, start: datetime, end: datetime
    ) -> list[WeatherSnapshot]:
        return self._query(
            "SELECT * FROM weather_snapshots "
            f"WHERE location_id = ? AND fetched_at BETWEEN ? AND ? {_NEWEST_FIRST}",
            (location_id, to_iso(start), to_iso(end)),
        )

    def count_by_location(self, location_id: LocationId) -> int:
        with self.db.lock:
            return self.db.conn.execute(
                "SELECT COUNT(*) FROM weather_snapshots WHERE location_id = ?",
                (location_id,),
            ).fetchone()[0]

    def delete_by_location(self, location_id: LocationId) -> int:
        """Delete every snapshot of a location. Returns how many were removed."""
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM weather_snapshots WHERE location_id = ?", (location_id,)
            )
        return cursor.rowcount

    def _query(self, sql: str, params: tuple) -> list[WeatherSnapshot]:
        with self.db.lock:
            rows = self.db.conn.execute(sql, params).fetchall()
        return [_row_to_snapshot(r) for r in rows]


def _row_to_snapshot(row: sqlite3.Row) -> WeatherSnapshot:
    current = None
    if row["has_current"]:
        current = CurrentWeather(
            temperature=row["temperature"],
            apparent_temperature=row["apparent_temperature"],
            humidity=row["humidity"],
            precipitation=row["precipitation"],
            weather_code=row["weather_code"],
            weather_description=row["weather_description"] or "Unknown",
            wind_speed=row["wind_speed"],
        )
    return WeatherSnapshot(
        id=row["id"],
        location_id=row["location_id"],
        current=current,
        hourly=tuple(HourlyForecast(**h) for h in json.loads(row["hourly_json"])),
        daily=tuple(DailyForecast(**d) for d in json.loads(row["daily_json"])),
        units=Units(row["units"]),
        timezone=row["timezone"],
        fetched_at=parse_timestamp(row["fetched_at"]),
        conflict_detected=bool(row["conflict_detected"]),
        conflict_description=row["conflict_description"],
    )
