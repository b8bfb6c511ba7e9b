"""Initial schema: locations, weather snapshots, preferences and sync runs."""

import sqlite3

DDL = [
    """
    CREATE TABLE IF NOT EXISTS locations (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        country TEXT NOT NULL,
        latitude REAL NOT NULL CHECK (latitude BETWEEN -90 AND 90),
        longitude REAL NOT NULL CHECK (longitude BETWEEN -180 AND 180),
        display_name TEXT,
        favorite INTEGER NOT NULL DEFAULT 0,
        last_sync_at TEXT,
        sync_status TEXT NOT NULL DEFAULT 'NEVER_SYNCED',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_locations_name_country "
        "ON locations(name COLLATE NOCASE, country COLLATE NOCASE)"
    ),

    # Snapshots reference locations by id only; deletes cascade explicitly
    """
    CREATE TABLE IF NOT EXISTS weather_snapshots (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        location_id TEXT NOT NULL,
        temperature REAL,
        apparent_temperature REAL,
        humidity REAL,
        precipitation REAL,
        weather_code INTEGER,
        weather_description TEXT,
        wind_speed REAL,
        has_current INTEGER NOT NULL DEFAULT 1,
        hourly_json TEXT NOT NULL DEFAULT '[]',
        daily_json TEXT NOT NULL DEFAULT '[]',
        units TEXT NOT NULL,
        timezone TEXT NOT NULL,
        fetched_at TEXT NOT NULL,
        conflict_detected INTEGER NOT NULL DEFAULT 0,
        conflict_description TEXT
    )
    """,
    (
        "CREATE INDEX IF NOT EXISTS idx_snapshots_location_fetched "
        "ON weather_snapshots(location_id, fetched_at DESC)"
    ),

    """
    CREATE TABLE IF NOT EXISTS user_preferences (
        user_id TEXT PRIMARY KEY,
        units TEXT NOT NULL DEFAULT 'metric',
        refresh_interval_minutes INTEGER NOT NULL DEFAULT 30,
        wind_speed_unit TEXT NOT NULL DEFAULT 'kmh',
        precipitation_unit TEXT NOT NULL DEFAULT 'mm',
        default_location_id TEXT,
        theme TEXT NOT NULL DEFAULT 'dark',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,

    # One row per bulk / scheduled sync pass
    """
    CREATE TABLE IF NOT EXISTS sync_runs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        trigger TEXT NOT NULL,
        total INTEGER NOT NULL,
        succeeded INTEGER NOT NULL,
        failed INTEGER NOT NULL,
        conflicts INTEGER NOT NULL DEFAULT 0,
        duration_seconds REAL NOT NULL DEFAULT 0,
        completed_at TEXT NOT NULL
    )
    """,
]


def up(conn: sqlite3.Connection) -> None:
    for stmt in DDL:
        conn.execute(stmt)
    conn.commit()
