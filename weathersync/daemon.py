"""Foreground sync daemon: runs scheduled sync on a fixed interval.

Usage:
    python -m weathersync daemon                 # interval from config
    python -m weathersync daemon --interval 300  # every 5 minutes
    python -m weathersync daemon --status
    python -m weathersync daemon --stop
"""

import json
import logging
import os
import signal
import sys
import time
from datetime import UTC, datetime
from pathlib import Path

from weathersync.config.schema import AppConfig
from weathersync.storage.database import Database
from weathersync.sync.engine import build_engine
from weathersync.sync.scheduler import SyncScheduler, TickOutcome

logger = logging.getLogger(__name__)

PID_DIR = Path("data")
PID_FILE = PID_DIR / "daemon.pid"
STATE_FILE = PID_DIR / "daemon_state.json"
LOG_DIR = Path("logs")
MAX_LOG_FILES = 100


class SyncDaemon:
    """Owns a SyncScheduler in the foreground with signal handling and a PID file."""

    def __init__(
        self,
        config: AppConfig,
        db_path: str = "data/weathersync.db",
        interval: int | None = None,
    ):
        self.config = config
        self.db_path = db_path
        self.interval = interval or config.sync.interval_minutes * 60
        self.scheduler: SyncScheduler | None = None
        self._started_at: str | None = None
        self._last_outcome: TickOutcome | None = None
        self._tick_handler: logging.Handler | None = None

    def start(self) -> None:
        self._check_not_already_running()
        self._write_pid()
        db = Database(self.db_path)
        self.scheduler = SyncScheduler(
            build_engine(self.config, db),
            interval_seconds=self.interval,
            on_tick=self._on_tick,
        )
        self._setup_signals()
        self._open_tick_log()
        self._started_at = datetime.now(UTC).isoformat()

        logger.info("Daemon started, interval=%ds pid=%d", self.interval, os.getpid())
        print(f"Sync daemon started (pid {os.getpid()}, every {self.interval}s)")
        print("   Stop: python -m weathersync daemon --stop")

        try:
            self.scheduler.run_forever()
        except KeyboardInterrupt:
            logger.info("Daemon interrupted by keyboard")
        finally:
            self._cleanup()
            db.close()
            self._close_tick_log()

    def _on_tick(self, outcome: TickOutcome) -> None:
        self._last_outcome = outcome
        self._save_state()
        # Next tick logs to a fresh file
        self._close_tick_log()
        self._open_tick_log()

    def _open_tick_log(self) -> None:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        next_tick = self.scheduler.total_ticks + 1 if self.scheduler else 1
        handler = logging.FileHandler(LOG_DIR / f"tick_{timestamp}_{next_tick:06d}.log")
        handler.setLevel(logging.INFO)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logging.getLogger().addHandler(handler)
        self._tick_handler = handler
        self._rotate_logs()

    def _close_tick_log(self) -> None:
        handler = self._tick_handler
        if handler is None:
            return
        logging.getLogger().removeHandler(handler)
        handler.close()
        self._tick_handler = None

    def _rotate_logs(self) -> None:
        """Keep only the most recent log files."""
        if not LOG_DIR.exists():
            return
        logs = sorted(LOG_DIR.glob("tick_*.log"))
        if len(logs) > MAX_LOG_FILES:
            for old in logs[: len(logs) - MAX_LOG_FILES]:
                old.unlink(missing_ok=True)

    def _setup_signals(self) -> None:
        def _stop(signum: int, frame: object) -> None:
            logger.info("Received %s, shutting down", signal.Signals(signum).name)
            if self.scheduler is not None:
                self.scheduler.request_stop()

        signal.signal(signal.SIGTERM, _stop)
        signal.signal(signal.SIGINT, _stop)

    def _check_not_already_running(self) -> None:
        if not PID_FILE.exists():
            return
        try:
            pid = int(PID_FILE.read_text().strip())
            os.kill(pid, 0)
        except (ProcessLookupError, ValueError):
            # Stale PID file
            PID_FILE.unlink(missing_ok=True)
            return
        except PermissionError:
            print("Daemon may be running, can't verify its PID.")
            sys.exit(1)
        print(f"Daemon already running (pid {pid}). Stop it first:")
        print("   python -m weathersync daemon --stop")
        sys.exit(1)

    def _write_pid(self) -> None:
        PID_DIR.mkdir(parents=True, exist_ok=True)
        PID_FILE.write_text(str(os.getpid()))

    def _save_state(self) -> None:
        s = self.scheduler
        last = self._last_outcome
        state = {
            "pid": os.getpid(),
            "started_at": self._started_at,
            "interval": self.interval,
            "total_ticks": s.total_ticks if s else 0,
            "failed_ticks": s.failed_ticks if s else 0,
            "consecutive_failures": s.consecutive_failures if s else 0,
            "last_synced": last.synced if last else 0,
            "last_succeeded": last.succeeded if last else 0,
            "last_update": datetime.now(UTC).isoformat(),
        }
        PID_DIR.mkdir(parents=True, exist_ok=True)
        STATE_FILE.write_text(json.dumps(state, indent=2))

    def _cleanup(self) -> None:
        PID_FILE.unlink(missing_ok=True)
        self._save_state()
        s = self.scheduler
        ticks = s.total_ticks if s else 0
        failed = s.failed_ticks if s else 0
        logger.info("Daemon stopped: %d ticks (%d failed)", ticks, failed)
        print(f"Daemon stopped: {ticks} ticks ({failed} failed)")


def stop_daemon(wait_seconds: int = 60) -> int:
    """Stop a running daemon by sending SIGTERM."""
    if not PID_FILE.exists():
        print("No daemon running (no PID file found)")
        return 1
    try:
        pid = int(PID_FILE.read_text().strip())
    except ValueError:
        print("Corrupt PID file, removing")
        PID_FILE.unlink(missing_ok=True)
        return 1

    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        print(f"Daemon not running (stale pid {pid}), cleaning up")
        PID_FILE.unlink(missing_ok=True)
        return 0

    print(f"Stopping daemon (pid {pid})...")
    os.kill(pid, signal.SIGTERM)
    for _ in range(wait_seconds):
        time.sleep(1)
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            print("Daemon stopped")
            PID_FILE.unlink(missing_ok=True)
            return 0

    print(f"Daemon didn't stop in {wait_seconds}s, sending SIGKILL")
    os.kill(pid, signal.SIGKILL)
    PID_FILE.unlink(missing_ok=True)
    return 0


def daemon_status() -> int:
    """Print daemon status from the state file."""
    if not STATE_FILE.exists():
        print("No daemon state found")
        return 1

    state = json.loads(STATE_FILE.read_text())
    pid = state.get("pid", "?")
    running = False
    try:
        os.kill(int(pid), 0)
        running = True
    except (ProcessLookupError, ValueError, TypeError):
        pass

    print(f"Daemon {'running' if running else 'stopped'}")
    print(f"  PID: {pid}")
    print(f"  Interval: {state.get('interval', '?')}s")
    print(f"  Started: {state.get('started_at', '?')}")
    print(f"  Ticks: {state.get('total_ticks', 0)} ({state.get('failed_ticks', 0)} failed)")
    print(
        f"  Last tick: {state.get('last_succeeded', 0)}/{state.get('last_synced', 0)} synced"
    )
    print(f"  Last update: {state.get('last_update', '?')}")
    return 0
