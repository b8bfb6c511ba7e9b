"""Tests for the sync daemon."""

import json
import logging
import os
from unittest.mock import patch

import pytest

from weathersync.config.schema import AppConfig
from weathersync.daemon import SyncDaemon, daemon_status, stop_daemon
from weathersync.sync.scheduler import SyncScheduler, TickOutcome


@pytest.fixture
def tmp_data(tmp_path, monkeypatch):
    """Redirect PID/state/log files to temp directory."""
    pid_file = tmp_path / "daemon.pid"
    state_file = tmp_path / "daemon_state.json"
    monkeypatch.setattr("weathersync.daemon.PID_FILE", pid_file)
    monkeypatch.setattr("weathersync.daemon.PID_DIR", tmp_path)
    monkeypatch.setattr("weathersync.daemon.STATE_FILE", state_file)
    monkeypatch.setattr("weathersync.daemon.LOG_DIR", tmp_path / "logs")
    return {"pid": pid_file, "state": state_file, "dir": tmp_path}


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "daemon.db")


class TestSyncDaemon:
    """Tests for SyncDaemon lifecycle."""

    def test_interval_from_config(self, tmp_data, db_path):
        config = AppConfig(sync={"interval_minutes": 5})
        assert SyncDaemon(config, db_path).interval == 300
        assert SyncDaemon(config, db_path, interval=42).interval == 42

    def test_start_writes_state_and_cleans_pid(self, tmp_data, db_path):
        daemon = SyncDaemon(AppConfig(), db_path, interval=1)
        pids = []

        def loop(scheduler):
            pids.append(tmp_data["pid"].read_text())

        with patch.object(SyncScheduler, "run_forever", autospec=True, side_effect=loop), \
                patch.object(daemon, "_setup_signals"):
            daemon.start()

        assert pids == [str(os.getpid())]
        assert not tmp_data["pid"].exists()
        state = json.loads(tmp_data["state"].read_text())
        assert state["interval"] == 1
        assert state["total_ticks"] == 0

    def test_ticks_are_recorded_with_fresh_logs(self, tmp_data, db_path):
        daemon = SyncDaemon(AppConfig(), db_path, interval=1)

        def loop(scheduler):
            scheduler.tick()
            scheduler.tick()

        with patch.object(SyncScheduler, "run_forever", autospec=True, side_effect=loop), \
                patch.object(daemon, "_setup_signals"):
            daemon.start()

        state = json.loads(tmp_data["state"].read_text())
        assert state["total_ticks"] == 2
        assert state["failed_ticks"] == 0
        assert state["last_synced"] == 0
        # One file at start plus one per completed tick
        assert len(list((tmp_data["dir"] / "logs").glob("tick_*.log"))) == 3
        assert daemon._tick_handler is None
        assert not any(
            isinstance(h, logging.FileHandler) and "tick_" in h.baseFilename
            for h in logging.getLogger().handlers
        )

    def test_prevents_duplicate_start(self, tmp_data, db_path):
        """Cannot start daemon if one is already running."""
        tmp_data["pid"].write_text(str(os.getpid()))

        daemon = SyncDaemon(AppConfig(), db_path)
        with pytest.raises(SystemExit):
            daemon._check_not_already_running()

    def test_cleans_stale_pid(self, tmp_data, db_path):
        """Stale PID file from dead process is cleaned up."""
        tmp_data["pid"].write_text("999999999")

        daemon = SyncDaemon(AppConfig(), db_path)
        daemon._check_not_already_running()
        assert not tmp_data["pid"].exists()

    def test_on_tick_saves_state(self, tmp_data, db_path):
        daemon = SyncDaemon(AppConfig(), db_path, interval=60)
        daemon._started_at = "2024-11-05T12:00:00+00:00"

        daemon._on_tick(TickOutcome(tick=3, ok=True, synced=4, succeeded=3))
        daemon._close_tick_log()

        state = json.loads(tmp_data["state"].read_text())
        assert state["last_synced"] == 4
        assert state["last_succeeded"] == 3
        assert state["interval"] == 60

    def test_log_rotation(self, tmp_data, db_path):
        """Old log files are cleaned up."""
        daemon = SyncDaemon(AppConfig(), db_path)
        log_dir = tmp_data["dir"] / "logs"
        log_dir.mkdir()

        for i in range(110):
            (log_dir / f"tick_{i:04d}.log").write_text(f"log {i}")

        daemon._rotate_logs()

        remaining = sorted(p.name for p in log_dir.glob("tick_*.log"))
        assert len(remaining) == 100
        assert remaining[0] == "tick_0010.log"


class TestDaemonControl:
    """Tests for stop/status commands."""

    def test_stop_no_daemon(self, tmp_data):
        assert stop_daemon() == 1

    def test_stop_stale_pid(self, tmp_data):
        tmp_data["pid"].write_text("999999999")
        assert stop_daemon() == 0
        assert not tmp_data["pid"].exists()

    def test_stop_corrupt_pid(self, tmp_data):
        tmp_data["pid"].write_text("not-a-pid")
        assert stop_daemon() == 1
        assert not tmp_data["pid"].exists()

    def test_status_no_state(self, tmp_data):
        assert daemon_status() == 1

    def test_status_with_state(self, tmp_data, capsys):
        state = {
            "pid": 999999999,
            "started_at": "2024-11-05T12:00:00+00:00",
            "interval": 1800,
            "total_ticks": 12,
            "failed_ticks": 1,
            "last_synced": 5,
            "last_succeeded": 4,
            "last_update": "2024-11-05T18:00:00+00:00",
        }
        tmp_data["state"].write_text(json.dumps(state))

        assert daemon_status() == 0
        out = capsys.readouterr().out
        assert "Daemon stopped" in out
        assert "Interval: 1800s" in out
        assert "Ticks: 12 (1 failed)" in out
        assert "Last tick: 4/5 synced" in out
