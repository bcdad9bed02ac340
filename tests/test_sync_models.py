"""Tests for the sync data contracts."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from csv_issue_sync.sync.models import (
    IssueState,
    LocalRecord,
    RemoteRecord,
    SyncAction,
    SyncOutcome,
    SyncResult,
)


class TestLocalRecord:
    def test_unlinked(self):
        record = LocalRecord(title="A")
        assert not record.is_linked
        assert record.key_number is None

    def test_tombstoned_is_idempotent(self):
        record = LocalRecord(key="12", title="Old task")
        once = record.tombstoned()
        assert once.title == "[DELETED] Old task"
        assert once.tombstoned() is once
        assert record.title == "Old task"

    def test_frozen(self):
        record = LocalRecord(title="A")
        with pytest.raises(ValidationError):
            record.title = "B"

    def test_fields(self):
        record = LocalRecord(
            key="1", title="A", body="b", state=IssueState.CLOSED, labels=("x",)
        )
        fields = record.fields()
        assert (fields.title, fields.body, fields.state, fields.labels) == (
            "A",
            "b",
            IssueState.CLOSED,
            ("x",),
        )


class TestRemoteRecord:
    def test_to_local(self):
        issue = RemoteRecord(
            key=9,
            title="T",
            labels=("bug",),
            updated_at="2025-01-01T00:00:00Z",
            aux_status="Done",
        )
        row = issue.to_local()
        assert (row.key, row.title, row.labels, row.aux_status) == (
            "9",
            "T",
            ("bug",),
            "Done",
        )

    def test_to_local_status_override(self):
        issue = RemoteRecord(key=9, title="T", aux_status="Done")
        assert issue.to_local(aux_status="Todo").aux_status == "Todo"


class TestSyncResult:
    def _result(self, *outcomes: SyncOutcome) -> SyncResult:
        return SyncResult(started_at="2026-01-01T00:00:00Z", outcomes=list(outcomes))

    def test_counts(self):
        result = self._result(
            SyncOutcome(action=SyncAction.CREATE_REMOTE),
            SyncOutcome(action=SyncAction.UPDATE_REMOTE),
            SyncOutcome(action=SyncAction.UPDATE_STATUS_LOCAL),
            SyncOutcome(action=SyncAction.APPEND_LOCAL),
            SyncOutcome(action=SyncAction.TOMBSTONE),
            SyncOutcome(action=SyncAction.DEDUPE_LOCAL),
            SyncOutcome(action=SyncAction.CLOSE_DUPLICATE),
            SyncOutcome(action=SyncAction.DEDUPE_REMOTE),
            SyncOutcome(action=SyncAction.SKIP),
            SyncOutcome(action=SyncAction.CREATE_REMOTE, success=False, error="x"),
        )
        assert result.counts() == {
            "created": 1,
            "updated": 2,
            "skipped": 1,
            "appended": 1,
            "tombstoned": 1,
            "deduped": 2,
            "errors": 1,
        }

    def test_failed_outcomes_do_not_count_as_done(self):
        result = self._result(
            SyncOutcome(action=SyncAction.UPDATE_REMOTE, success=False)
        )
        assert result.updated == []
        assert result.errors == ["update_remote failed"]
        assert not result.has_mutations

    def test_skips_are_not_mutations(self):
        result = self._result(SyncOutcome(action=SyncAction.SKIP))
        assert not result.has_mutations

    def test_summary(self):
        result = self._result(SyncOutcome(action=SyncAction.APPEND_LOCAL))
        summary = result.summary()
        assert summary.splitlines()[0] == "Sync summary"
        assert "Appended local: 1" in summary
