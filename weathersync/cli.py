"""CLI entry point for the weather sync backend."""

import argparse
import logging

from weathersync.config.loader import (
    get_config_value,
    load_config,
    seed_locations,
    set_config_value,
)
from weathersync.errors import DuplicateError, WeatherSyncError
from weathersync.models.sync import SyncResult
from weathersync.services.location_service import LocationService
from weathersync.storage.database import Database
from weathersync.sync.engine import build_engine

DEFAULT_CONFIG = "config/weathersync.yaml"
DEFAULT_DB = "data/weathersync.db"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="weathersync",
        description="Weather tracking and sync backend",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config YAML path")
    parser.add_argument("--db", default=DEFAULT_DB, help="SQLite DB path")

    sub = parser.add_subparsers(dest="command")

    # sync
    sync_p = sub.add_parser("sync", help="Sync all locations or one location")
    sync_p.add_argument("--location", help="Location id to sync")

    # scheduled
    sub.add_parser("scheduled", help="Sync only stale locations")

    # locations list / add / remove / seed
    loc_p = sub.add_parser("locations", help="Tracked location operations")
    loc_sub = loc_p.add_subparsers(dest="locations_command")
    loc_sub.add_parser("list", help="List tracked locations")
    add_p = loc_sub.add_parser("add", help="Track a new location")
    add_p.add_argument("name")
    add_p.add_argument("country")
    add_p.add_argument("latitude", type=float)
    add_p.add_argument("longitude", type=float)
    add_p.add_argument("--display-name", default=None)
    add_p.add_argument("--favorite", action="store_true")
    rm_p = loc_sub.add_parser("remove", help="Stop tracking a location")
    rm_p.add_argument("location_id")
    loc_sub.add_parser("seed", help="Add configured (or default) locations")

    # search / weather
    search_p = sub.add_parser("search", help="Search cities via geocoding")
    search_p.add_argument("query")
    weather_p = sub.add_parser("weather", help="Show latest weather for a location")
    weather_p.add_argument("location_id")

    # config show / config set
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")
    set_p = config_sub.add_parser("set", help="Set a config value")
    set_p.add_argument("keyvalue", help="key=value to set")

    # serve
    serve_p = sub.add_parser("serve", help="Run the JSON API")
    serve_p.add_argument("--host", default="127.0.0.1")
    serve_p.add_argument("--port", type=int, default=8080)

    # daemon
    daemon_p = sub.add_parser("daemon", help="Run scheduled sync in the foreground")
    daemon_p.add_argument("--interval", type=int, default=None, help="Seconds between ticks")
    daemon_p.add_argument("--stop", action="store_true", help="Stop a running daemon")
    daemon_p.add_argument("--status", action="store_true", help="Show daemon status")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    if args.command == "sync":
        return _cmd_sync(config, args)
    elif args.command == "scheduled":
        return _cmd_scheduled(config, args)
    elif args.command == "locations":
        return _cmd_locations(config, args)
    elif args.command == "search":
        return _cmd_search(config, args)
    elif args.command == "weather":
        return _cmd_weather(config, args)
    elif args.command == "config":
        return _cmd_config(config, args)
    elif args.command == "serve":
        return _cmd_serve(config, args)
    elif args.command == "daemon":
        return _cmd_daemon(config, args)
    else:
        parser.print_help()
        return 1


def _print_results(results: list[SyncResult]) -> None:
    for r in results:
        mark = "OK  " if r.success else "FAIL"
        print(f"  {mark} {r.location_name}: {r.message}")
        if r.conflict_detected:
            print(f"       conflict: {r.conflict_description}")


def _cmd_sync(config, args) -> int:
    db = Database(args.db)
    engine = build_engine(config, db)
    try:
        if args.location:
            results = [engine.sync_one(args.location)]
        else:
            results = engine.sync_all()
    except WeatherSyncError as e:
        print(f"Error: {e.message}")
        return 1
    finally:
        db.close()
    _print_results(results)
    print(f"{sum(1 for r in results if r.success)}/{len(results)} synced")
    return 0 if all(r.success for r in results) else 1


def _cmd_scheduled(config, args) -> int:
    db = Database(args.db)
    engine = build_engine(config, db)
    try:
        results = engine.scheduled_sync()
    finally:
        db.close()
    if not results:
        print("No stale locations")
        return 0
    _print_results(results)
    return 0 if all(r.success for r in results) else 1


def _cmd_locations(config, args) -> int:
    db = Database(args.db)
    engine = build_engine(config, db)
    service = LocationService(engine.registry, engine.snapshots)
    try:
        if args.locations_command == "list":
            locations = service.get_all()
            print(f"Tracked locations: {len(locations)}")
            for loc in locations:
                stale = " (stale)" if engine.is_stale(loc) else ""
                star = "*" if loc.favorite else " "
                print(f"  {star} {loc.id}  {loc.label}, {loc.country}  {loc.sync_status}{stale}")
            return 0
        elif args.locations_command == "add":
            loc = service.create_location(
                name=args.name,
                country=args.country,
                latitude=args.latitude,
                longitude=args.longitude,
                display_name=args.display_name,
                favorite=args.favorite,
            )
            print(f"Added {loc.name}, {loc.country} ({loc.id})")
            return 0
        elif args.locations_command == "remove":
            deleted = service.delete_location(args.location_id)
            print(f"Removed {args.location_id} ({deleted} snapshots deleted)")
            return 0
        elif args.locations_command == "seed":
            added = 0
            for seed in seed_locations(config):
                try:
                    service.create_location(**seed.model_dump())
                    added += 1
                except DuplicateError:
                    continue
            print(f"Seeded {added} locations")
            return 0
        else:
            print("Use: locations list | add | remove | seed")
            return 1
    except (WeatherSyncError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    finally:
        db.close()


def _cmd_search(config, args) -> int:
    db = Database(args.db)
    engine = build_engine(config, db)
    try:
        results = engine.search_cities(args.query)
    except WeatherSyncError as e:
        print(f"Error: {e.message}")
        return 1
    finally:
        db.close()
    for r in results:
        region = f", {r.admin1}" if r.admin1 else ""
        print(f"  {r.name}{region}, {r.country} ({r.latitude:.4f}, {r.longitude:.4f})")
    return 0


def _cmd_weather(config, args) -> int:
    db = Database(args.db)
    engine = build_engine(config, db)
    try:
        snapshot = engine.get_latest_weather(args.location_id)
    except WeatherSyncError as e:
        print(f"Error: {e.message}")
        return 1
    finally:
        db.close()

    unit = "°C" if snapshot.units == "metric" else "°F"
    print(f"Fetched: {snapshot.fetched_at} ({snapshot.timezone})")
    c = snapshot.current
    if c is None:
        print("No current conditions")
    else:
        temp = "n/a" if c.temperature is None else f"{c.temperature:.1f}{unit}"
        print(f"Now: {temp}, {c.weather_description}")
    for d in snapshot.daily:
        hi = "n/a" if d.temperature_max is None else f"{d.temperature_max:.0f}"
        lo = "n/a" if d.temperature_min is None else f"{d.temperature_min:.0f}"
        print(f"  {d.date}: {lo}/{hi}{unit} {d.weather_description}")
    if snapshot.conflict_detected:
        print(f"Conflict: {snapshot.conflict_description}")
    return 0


def _cmd_config(config, args) -> int:
    if args.config_command == "show":
        print(config.model_dump_json(indent=2))
        return 0
    elif args.config_command == "set":
        kv = args.keyvalue
        if "=" not in kv:
            print("Error: use key=value format")
            return 1
        key, value = kv.split("=", 1)
        try:
            new_config = set_config_value(config, key.strip(), value.strip())
            print(f"Set {key} = {get_config_value(new_config, key.strip())}")
            return 0
        except Exception as e:
            print(f"Error: {e}")
            return 1
    else:
        print("Use: config show | config set key=value")
        return 1


def _cmd_serve(config, args) -> int:
    import uvicorn

    from weathersync.api.app import create_app

    uvicorn.run(create_app(config, args.db), host=args.host, port=args.port)
    return 0


def _cmd_daemon(config, args) -> int:
    from weathersync.daemon import SyncDaemon, daemon_status, stop_daemon

    if args.stop:
        return stop_daemon()
    if args.status:
        return daemon_status()
    SyncDaemon(config, args.db, interval=args.interval).start()
    return 0
