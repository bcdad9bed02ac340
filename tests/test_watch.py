"""Tests for watch mode (debounced CSV polling)."""

from __future__ import annotations

import threading
from unittest.mock import Mock

import pytest

from csv_issue_sync.sync.errors import PassInProgressError, SyncError
from csv_issue_sync.sync.models import SyncResult
from csv_issue_sync.watch import CsvWatcher, file_signature


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine():
    engine = Mock(spec=["run"])
    engine.run.return_value = SyncResult(started_at="2026-01-01T00:00:00Z")
    return engine


@pytest.fixture
def watched(csv_path):
    csv_path.write_text("key,title\n")
    return csv_path


def _touch(path, text):
    with open(path, "a") as fh:
        fh.write(text)


class TestFileSignature:
    def test_missing_file(self, tmp_path):
        assert file_signature(tmp_path / "missing.csv") is None

    def test_size_change_changes_signature(self, watched):
        before = file_signature(watched)
        _touch(watched, ",A\n")
        assert file_signature(watched) != before


class TestPollOnce:
    def test_no_change_no_pass(self, engine, watched, clock):
        watcher = CsvWatcher(engine, watched, clock=clock)

        clock.now = 5.0
        assert watcher.poll_once() is None
        engine.run.assert_not_called()

    def test_pass_runs_after_debounce(self, engine, watched, clock):
        results = []
        watcher = CsvWatcher(
            engine, watched, debounce=1.0, clock=clock, on_result=results.append
        )

        _touch(watched, ",A\n")
        assert watcher.poll_once() is None
        assert watcher.pending

        clock.now = 0.5
        assert watcher.poll_once() is None
        engine.run.assert_not_called()

        clock.now = 1.0
        result = watcher.poll_once()

        assert result is engine.run.return_value
        assert results == [result]
        assert watcher.passes == 1
        assert not watcher.pending

    def test_burst_of_changes_runs_one_pass(self, engine, watched, clock):
        watcher = CsvWatcher(engine, watched, debounce=1.0, clock=clock)

        for step in range(5):
            clock.now = step * 0.4
            _touch(watched, ",B\n")
            watcher.poll_once()
        engine.run.assert_not_called()

        clock.now += 1.5
        watcher.poll_once()
        clock.now += 5.0
        watcher.poll_once()

        assert engine.run.call_count == 1

    def test_own_write_does_not_retrigger(self, engine, watched, clock):
        def _write_back():
            _touch(watched, "1,Synced row\n")
            return SyncResult(started_at="2026-01-01T00:00:00Z")

        engine.run.side_effect = _write_back
        watcher = CsvWatcher(engine, watched, debounce=1.0, clock=clock)

        _touch(watched, ",A\n")
        watcher.poll_once()
        clock.now = 1.0
        watcher.poll_once()

        clock.now = 10.0
        assert watcher.poll_once() is None
        assert not watcher.pending
        assert engine.run.call_count == 1

    def test_pass_in_progress_is_ignored(self, engine, watched, clock):
        engine.run.side_effect = PassInProgressError("busy")
        watcher = CsvWatcher(engine, watched, debounce=0, clock=clock)

        _touch(watched, ",A\n")
        watcher.poll_once()

        assert watcher.poll_once() is None
        assert watcher.passes == 0
        assert not watcher.pending

    def test_failed_pass_keeps_watching(self, engine, watched, clock):
        engine.run.side_effect = [
            SyncError("fetch failed"),
            SyncResult(started_at="2026-01-01T00:00:00Z"),
        ]
        watcher = CsvWatcher(engine, watched, debounce=0, clock=clock)

        _touch(watched, ",A\n")
        watcher.poll_once()
        assert watcher.poll_once() is None

        _touch(watched, ",B\n")
        watcher.poll_once()
        assert watcher.poll_once() is not None
        assert watcher.passes == 1


class TestRun:
    def test_stops_when_event_set(self, engine, watched):
        stop = threading.Event()
        stop.set()

        CsvWatcher(engine, watched).run(stop)

        engine.run.assert_not_called()
