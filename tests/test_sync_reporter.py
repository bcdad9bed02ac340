"""Tests for sync reporter formatting functions.

Covers:
- format_sync_report with various outcome combinations
- format_dry_run_preview grouping
- result_to_json structure and completeness
- Empty result produces concise output
"""

from __future__ import annotations

from csv_issue_sync.sync.models import SyncAction, SyncOutcome, SyncResult
from csv_issue_sync.sync.reporter import (
    format_dry_run_preview,
    format_sync_report,
    result_to_json,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_result(
    outcomes: list[SyncOutcome] | None = None, dry_run: bool = False, **kw
) -> SyncResult:
    return SyncResult(
        dry_run=dry_run,
        outcomes=outcomes or [],
        started_at="2026-02-07T10:00:00Z",
        completed_at="2026-02-07T10:01:00Z",
        **kw,
    )


def _o(action: SyncAction, key: str = "1", title: str = "Task", **kw) -> SyncOutcome:
    return SyncOutcome(action=action, key=key, title=title, **kw)


# ---------------------------------------------------------------------------
# format_sync_report
# ---------------------------------------------------------------------------


class TestFormatSyncReport:
    def test_header_and_counts(self):
        result = _make_result(
            [
                _o(SyncAction.CREATE_REMOTE, key="10", title="New"),
                _o(SyncAction.UPDATE_LOCAL, key="3"),
                _o(SyncAction.SKIP, key="9"),
            ]
        )

        text = format_sync_report(result, store="issues.csv")

        assert text.startswith("Sync report for 'issues.csv'")
        assert "Started: 2026-02-07T10:00:00Z" in text
        assert "1 created, 1 updated, 0 appended" in text
        assert "Created remotely:\n  #10 New" in text
        assert "Pulled into CSV:\n  #3 Task" in text
        assert "Skipped: 1 records" in text

    def test_dry_run_header(self):
        text = format_sync_report(_make_result(dry_run=True))
        assert text.splitlines()[0] == "Sync report (DRY RUN)"

    def test_errors_section(self):
        result = _make_result(
            [
                _o(
                    SyncAction.CREATE_REMOTE,
                    key="",
                    title="Broken",
                    success=False,
                    error="HTTP 422",
                )
            ]
        )

        text = format_sync_report(result)

        assert "Errors:\n  (new) Broken: HTTP 422" in text
        assert "Created remotely:" not in text

    def test_backup_path_mentioned(self):
        text = format_sync_report(_make_result(backup_path="issues.duplicates.csv"))
        assert text.endswith("Removed duplicates saved to issues.duplicates.csv")

    def test_empty_result_is_concise(self):
        lines = format_sync_report(_make_result()).splitlines()
        assert len(lines) == 5
        assert lines[-1].startswith("0 created")


# ---------------------------------------------------------------------------
# format_dry_run_preview
# ---------------------------------------------------------------------------


class TestFormatDryRunPreview:
    def test_grouped_by_action(self):
        result = _make_result(
            [
                _o(SyncAction.APPEND_LOCAL, key="9", title="Remote"),
                _o(SyncAction.CREATE_REMOTE, key="", title="Local"),
                _o(SyncAction.SKIP, key="4"),
            ],
            dry_run=True,
            preview_path="issues.preview.json",
        )

        text = format_dry_run_preview(result)

        assert text.startswith("DRY RUN -- No changes will be made")
        assert "Preview: issues.preview.json" in text
        assert text.index("[CREATE REMOTE]") < text.index("[APPEND LOCAL]")
        assert "  (new) Local" in text
        assert "Skipped: 1 records" in text
        assert "No changes needed." not in text

    def test_nothing_to_do(self):
        text = format_dry_run_preview(
            _make_result([_o(SyncAction.SKIP)], dry_run=True)
        )
        assert text.endswith("No changes needed.")


# ---------------------------------------------------------------------------
# result_to_json
# ---------------------------------------------------------------------------


class TestResultToJson:
    def test_structure(self):
        result = _make_result(
            [
                _o(SyncAction.TOMBSTONE, key="12", title="Old task"),
                _o(
                    SyncAction.UPDATE_REMOTE,
                    key="5",
                    success=False,
                    error="HTTP 500",
                ),
            ]
        )

        data = result_to_json(result)

        assert data["dry_run"] is False
        assert data["counts"] == {
            "created": 0,
            "updated": 0,
            "skipped": 0,
            "appended": 0,
            "tombstoned": 1,
            "deduped": 0,
            "errors": 1,
        }
        assert data["errors"] == ["HTTP 500"]
        assert data["outcomes"][0] == {
            "action": "tombstone",
            "key": "12",
            "title": "Old task",
            "success": True,
        }
        assert data["outcomes"][1]["error"] == "HTTP 500"
