"""Background ticker that runs scheduled sync on a fixed interval."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from weathersync.models.sync import SyncResult
from weathersync.sync.engine import WeatherSyncEngine

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 3600


@dataclass(frozen=True)
class TickOutcome:
    tick: int
    ok: bool
    synced: int = 0
    succeeded: int = 0
    error: str | None = None


class SyncScheduler:
    """Runs ``engine.scheduled_sync()`` every ``interval_seconds``.

    One background thread, started and stopped explicitly. Ticks never
    overlap: ``tick()`` returns None if another tick is still running.
    """

    def __init__(
        self,
        engine: WeatherSyncEngine,
        interval_seconds: float,
        on_tick: Callable[[TickOutcome], object] | None = None,
        max_backoff_seconds: float = MAX_BACKOFF_SECONDS,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self._on_tick = on_tick
        self._stop = threading.Event()
        self._tick_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self.total_ticks = 0
        self.failed_ticks = 0
        self.consecutive_failures = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="sync-scheduler", daemon=True
        )
        self._thread.start()
        logger.info("Sync scheduler started (every %.0fs)", self.interval_seconds)

    def stop(self, timeout: float | None = 30.0) -> None:
        """Signal the loop to exit and wait for the current tick to finish."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Sync scheduler did not stop within %ss", timeout)
        self._thread = None
        logger.info(
            "Sync scheduler stopped: %d ticks (%d failed)", self.total_ticks, self.failed_ticks
        )

    def request_stop(self) -> None:
        """Ask the loop to exit without waiting. Safe from signal handlers."""
        self._stop.set()

    def run_forever(self) -> None:
        """Blocking loop: tick, then wait for the interval or a stop request."""
        while not self._stop.is_set():
            outcome = self.tick()
            wait = self._next_wait(outcome)
            if self._stop.wait(wait):
                break

    def tick(self) -> TickOutcome | None:
        """Run one scheduled sync. Returns None if a tick is already running."""
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Previous scheduled sync still running, skipping tick")
            return None
        try:
            self.total_ticks += 1
            try:
                results = self.engine.scheduled_sync()
            except Exception as e:
                self.failed_ticks += 1
                self.consecutive_failures += 1
                logger.exception("Scheduled sync tick #%d crashed", self.total_ticks)
                outcome = TickOutcome(tick=self.total_ticks, ok=False, error=str(e))
            else:
                self.consecutive_failures = 0
                outcome = _outcome(self.total_ticks, results)
        finally:
            self._tick_lock.release()

        if self._on_tick is not None:
            try:
                self._on_tick(outcome)
            except Exception:
                logger.exception("on_tick callback failed")
        return outcome

    def _next_wait(self, outcome: TickOutcome | None) -> float:
        if outcome is None or outcome.ok or self.consecutive_failures == 0:
            return self.interval_seconds
        backoff = min(
            self.interval_seconds * (2 ** self.consecutive_failures),
            max(self.max_backoff_seconds, self.interval_seconds),
        )
        logger.warning(
            "Scheduled sync failed (%d consecutive), backing off %.0fs",
            self.consecutive_failures, backoff,
        )
        return backoff


def _outcome(tick: int, results: list[SyncResult]) -> TickOutcome:
    return TickOutcome(
        tick=tick,
        ok=True,
        synced=len(results),
        succeeded=sum(1 for r in results if r.success),
    )
