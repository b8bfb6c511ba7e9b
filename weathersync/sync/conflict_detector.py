"""Heuristic detection of implausible temperature swings between snapshots.

A conflict is flagged when the current temperature moved by more than
``threshold_degrees`` (in the snapshot's own unit system) within less than
``window_hours`` of the previous fetch. This is a plausibility signal, not a
meteorological rule; both parameters come from config. Snapshots in different
unit systems are never compared.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from weathersync.models.snapshot import WeatherSnapshot

DEFAULT_THRESHOLD_DEGREES = 10.0
DEFAULT_WINDOW_HOURS = 6.0


@dataclass(frozen=True)
class ConflictResult:
    conflict_detected: bool
    description: str | None = None


NO_CONFLICT = ConflictResult(conflict_detected=False)


class ConflictDetector:
    def __init__(
        self,
        threshold_degrees: float = DEFAULT_THRESHOLD_DEGREES,
        window_hours: float = DEFAULT_WINDOW_HOURS,
    ):
        self.threshold_degrees = threshold_degrees
        self.window_hours = window_hours

    def detect(
        self,
        previous: WeatherSnapshot | None,
        candidate: WeatherSnapshot,
        now: datetime | None = None,
    ) -> ConflictResult:
        if previous is None:
            return NO_CONFLICT

        prev_temp = previous.temperature
        new_temp = candidate.temperature
        if prev_temp is None or new_temp is None:
            return NO_CONFLICT
        # Readings in different unit systems are not comparable
        if previous.units != candidate.units:
            return NO_CONFLICT

        if now is None:
            now = datetime.now(UTC)
        prev_fetched = previous.fetched_at or now
        if prev_fetched.tzinfo is None:
            prev_fetched = prev_fetched.replace(tzinfo=UTC)
        elapsed_hours = max((now - prev_fetched).total_seconds() / 3600, 0.0)

        diff = abs(new_temp - prev_temp)
        if diff <= self.threshold_degrees or elapsed_hours >= self.window_hours:
            return NO_CONFLICT

        description = (
            f"Temperature changed by {diff:.1f} degrees "
            f"(from {prev_temp:.1f} to {new_temp:.1f}) within {int(elapsed_hours)} hours. "
            f"Previous data from {prev_fetched.isoformat()}. "
            "This may indicate API inconsistency or rapid weather change."
        )
        return ConflictResult(conflict_detected=True, description=description)
