"""JSON API over the sync engine, with the scheduler tied to the app lifespan."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

from fastapi import APIRouter, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from weathersync.api.schemas import (
    GeocodingResponse,
    LocationCreateRequest,
    LocationResponse,
    LocationUpdateRequest,
    PreferenceResponse,
    PreferenceUpdateRequest,
    SnapshotResponse,
    SyncResponse,
)
from weathersync.config.schema import AppConfig
from weathersync.errors import ErrorKind, WeatherSyncError
from weathersync.models.location import SyncStatus
from weathersync.services.location_service import LocationService
from weathersync.storage import sync_run_repo
from weathersync.storage.database import Database
from weathersync.sync.engine import WeatherSyncEngine, build_engine
from weathersync.sync.scheduler import SyncScheduler

logger = logging.getLogger(__name__)

DEFAULT_DB = Path("data") / "weathersync.db"
HEALTH_RECENT_RUNS = 5

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE: 409,
    ErrorKind.INVALID_CITY: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INVALID_RESPONSE: 502,
    ErrorKind.PROVIDER_UNAVAILABLE: 503,
}

REASONS = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    429: "Too Many Requests",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


def create_app(
    config: AppConfig | None = None,
    db_path: str | Path = DEFAULT_DB,
    start_scheduler: bool = True,
) -> FastAPI:
    config = config or AppConfig()
    db = Database(db_path)
    engine = build_engine(config, db)
    scheduler = SyncScheduler(engine, interval_seconds=config.sync.interval_minutes * 60)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if start_scheduler:
            scheduler.start()
        try:
            yield
        finally:
            scheduler.stop()
            db.close()

    app = FastAPI(title="Weather Sync API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.config = config
    app.state.db = db
    app.state.engine = engine
    app.state.scheduler = scheduler
    app.state.locations = LocationService(engine.registry, engine.snapshots)

    app.add_exception_handler(WeatherSyncError, _handle_domain_error)
    app.add_exception_handler(ValueError, _handle_value_error)

    app.include_router(locations_router)
    app.include_router(weather_router)
    app.include_router(sync_router)
    app.include_router(preferences_router)
    app.include_router(health_router)
    return app


# ── Error mapping ───────────────────────────────────────────────


def _error_body(status: int, code: str, message: str, path: str) -> dict:
    return {
        "timestamp": datetime.now(UTC).isoformat(),
        "status": status,
        "error": REASONS.get(status, "Error"),
        "errorCode": code,
        "message": message,
        "path": path,
    }


async def _handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, WeatherSyncError)
    status = STATUS_BY_KIND.get(exc.kind, 500)
    logger.warning("%s: %s [%s]", type(exc).__name__, exc.message, exc.kind.value)
    return JSONResponse(
        status_code=status,
        content=_error_body(status, exc.kind.value, exc.message, request.url.path),
    )


async def _handle_value_error(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_error_body(400, "VALIDATION_ERROR", str(exc), request.url.path),
    )


def _engine(request: Request) -> WeatherSyncEngine:
    return request.app.state.engine


def _locations(request: Request) -> LocationService:
    return request.app.state.locations


# ── Locations ───────────────────────────────────────────────────

locations_router = APIRouter(prefix="/api/locations", tags=["locations"])


@locations_router.post("", status_code=201)
def create_location(request: Request, body: LocationCreateRequest) -> LocationResponse:
    location = _locations(request).create_location(
        name=body.name,
        country=body.country,
        latitude=body.latitude,
        longitude=body.longitude,
        display_name=body.display_name,
        favorite=body.favorite,
    )
    return LocationResponse.from_location(location)


@locations_router.get("")
def list_locations(request: Request) -> list[LocationResponse]:
    return [LocationResponse.from_location(loc) for loc in _locations(request).get_all()]


@locations_router.get("/favorites")
def list_favorites(request: Request) -> list[LocationResponse]:
    return [LocationResponse.from_location(loc) for loc in _locations(request).get_favorites()]


@locations_router.get("/search")
def search_locations(request: Request, q: str = Query(min_length=1)) -> list[LocationResponse]:
    return [LocationResponse.from_location(loc) for loc in _locations(request).search(q)]


@locations_router.get("/{location_id}")
def get_location(request: Request, location_id: str) -> LocationResponse:
    return LocationResponse.from_location(_locations(request).get(location_id))


@locations_router.put("/{location_id}")
def update_location(
    request: Request, location_id: str, body: LocationUpdateRequest
) -> LocationResponse:
    location = _locations(request).update_location(
        location_id, display_name=body.display_name, favorite=body.favorite
    )
    return LocationResponse.from_location(location)


@locations_router.delete("/{location_id}", status_code=204)
def delete_location(request: Request, location_id: str) -> Response:
    _locations(request).delete_location(location_id)
    return Response(status_code=204)


# ── Weather ─────────────────────────────────────────────────────

weather_router = APIRouter(prefix="/api/weather", tags=["weather"])


@weather_router.get("/search/cities")
def search_cities(request: Request, q: str = Query(min_length=1)) -> list[GeocodingResponse]:
    return [GeocodingResponse.from_result(r) for r in _engine(request).search_cities(q)]


@weather_router.get("/{location_id}")
def get_latest_weather(request: Request, location_id: str) -> SnapshotResponse:
    return SnapshotResponse.from_snapshot(_engine(request).get_latest_weather(location_id))


@weather_router.get("/{location_id}/history")
def get_weather_history(
    request: Request,
    location_id: str,
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=100),
) -> list[SnapshotResponse]:
    history = _engine(request).get_history(location_id, page, size)
    return [SnapshotResponse.from_snapshot(s) for s in history]


@weather_router.get("/{location_id}/range")
def get_weather_in_range(
    request: Request, location_id: str, start: datetime, end: datetime
) -> list[SnapshotResponse]:
    """Snapshots fetched between start and end inclusive, newest first."""
    snapshots = _engine(request).get_weather_in_range(location_id, start, end)
    return [SnapshotResponse.from_snapshot(s) for s in snapshots]


# ── Sync ────────────────────────────────────────────────────────

sync_router = APIRouter(prefix="/api/sync", tags=["sync"])


@sync_router.post("/all")
def sync_all(request: Request) -> list[SyncResponse]:
    return [SyncResponse.from_result(r) for r in _engine(request).sync_all()]


@sync_router.post("/{location_id}")
def sync_location(request: Request, location_id: str) -> SyncResponse:
    return SyncResponse.from_result(_engine(request).sync_one(location_id))


# ── Preferences ─────────────────────────────────────────────────

preferences_router = APIRouter(prefix="/api/preferences", tags=["preferences"])


@preferences_router.get("")
def get_preferences(request: Request) -> PreferenceResponse:
    return PreferenceResponse(**_engine(request).preferences.get_preferences())


@preferences_router.put("")
def update_preferences(request: Request, body: PreferenceUpdateRequest) -> PreferenceResponse:
    updated = _engine(request).preferences.update_preferences(**body.model_dump())
    return PreferenceResponse(**updated)


# ── Health ──────────────────────────────────────────────────────

health_router = APIRouter(prefix="/api", tags=["health"])


@health_router.get("/health")
def get_health(request: Request, probe: bool = False) -> dict:
    """DB status, scheduler status, recent sync runs and optional provider probe."""
    engine = _engine(request)
    scheduler: SyncScheduler = request.app.state.scheduler
    db: Database = request.app.state.db
    try:
        locations = engine.registry.find_all()
        failed = engine.registry.find_by_status(SyncStatus.FAILED)
        last_run = sync_run_repo.get_latest_sync_run(db)
        recent_runs = sync_run_repo.get_recent_sync_runs(db, limit=HEALTH_RECENT_RUNS)
    except Exception as e:
        logger.exception("Health check failed")
        return {"db_ok": False, "error": str(e)}

    body = {
        "db_ok": True,
        "scheduler_running": scheduler.running,
        "locations": len(locations),
        "stale_locations": sum(1 for loc in locations if engine.is_stale(loc)),
        "failed_locations": [loc.id for loc in failed],
        "last_sync_run": last_run,
        "recent_sync_runs": recent_runs,
    }
    if probe:
        body["provider_reachable"] = engine.provider.ping()
    return body
