"""Sync outcome models."""

from dataclasses import dataclass, field
from datetime import datetime

from weathersync.errors import ErrorKind
from weathersync.models.common import LocationId


@dataclass(frozen=True)
class SyncResult:
    location_id: LocationId
    location_name: str
    success: bool
    message: str
    synced_at: datetime
    conflict_detected: bool = False
    conflict_description: str | None = None
    error_kind: ErrorKind | None = None


@dataclass
class SyncRunSummary:
    trigger: str  # "manual", "all" or "scheduled"
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    conflicts: int = 0
    rate_limited: int = 0
    duration_seconds: float = 0.0
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_results(
        cls, trigger: str, results: list[SyncResult], duration_seconds: float = 0.0
    ) -> "SyncRunSummary":
        summary = cls(trigger=trigger, total=len(results), duration_seconds=duration_seconds)
        for r in results:
            if r.success:
                summary.succeeded += 1
                if r.conflict_detected:
                    summary.conflicts += 1
            else:
                summary.failed += 1
                summary.errors.append(f"{r.location_name}: {r.message}")
                if r.error_kind == ErrorKind.RATE_LIMITED:
                    summary.rate_limited += 1
        return summary
