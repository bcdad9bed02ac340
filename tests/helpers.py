"""In-memory fakes and CSV helpers shared by the test modules."""

from __future__ import annotations

import csv
from pathlib import Path

from csv_issue_sync.sync.models import (
    IssueFields,
    IssueState,
    RemoteRecord,
)
from csv_issue_sync.sync.store import COLUMNS

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeTracker:
    """In-memory issue tracker.

    Keys are assigned sequentially from ``next_key``.  Every mutation
    stamps the issue with a fresh server timestamp from ``clock()``, which
    moves one second forward per call starting at 2025-06-01.
    """

    def __init__(self, issues: list[RemoteRecord] | None = None, next_key: int = 100):
        self.issues: dict[int, RemoteRecord] = {i.key: i for i in issues or []}
        self.next_key = next_key
        self.ticks = 0
        self.list_calls: list[int] = []
        self.created: list[IssueFields] = []
        self.updates: list[tuple[int, IssueFields]] = []
        self.closed: list[tuple[int, tuple[str, ...], str | None]] = []
        self.fail_list = False
        self.fail_create_titles: set[str] = set()
        self.fail_update_keys: set[int] = set()
        self.fail_close_keys: set[int] = set()
        self.update_returns_none = False

    @property
    def mutation_count(self) -> int:
        return len(self.created) + len(self.updates) + len(self.closed)

    def clock(self) -> str:
        self.ticks += 1
        minutes, seconds = divmod(self.ticks, 60)
        return f"2025-06-01T00:{minutes:02d}:{seconds:02d}Z"

    def list_all(self, page_size: int = 100) -> list[RemoteRecord]:
        self.list_calls.append(page_size)
        if self.fail_list:
            raise RuntimeError("page 2 returned HTTP 502")
        return sorted(self.issues.values(), key=lambda i: i.key)

    def create(self, fields: IssueFields) -> RemoteRecord:
        self.created.append(fields)
        if fields.title in self.fail_create_titles:
            raise RuntimeError("HTTP 422: validation failed")
        now = self.clock()
        record = RemoteRecord(
            key=self.next_key,
            title=fields.title,
            body=fields.body,
            state=fields.state,
            labels=fields.labels,
            updated_at=now,
            created_at=now,
        )
        self.issues[record.key] = record
        self.next_key += 1
        return record

    def update(self, key: int, fields: IssueFields) -> RemoteRecord | None:
        self.updates.append((key, fields))
        if key in self.fail_update_keys:
            raise RuntimeError("HTTP 500")
        record = self.issues[key].model_copy(
            update={
                "title": fields.title,
                "body": fields.body,
                "state": fields.state,
                "labels": fields.labels,
                "updated_at": self.clock(),
            }
        )
        self.issues[key] = record
        if self.update_returns_none:
            return None
        return record

    def close_as_duplicate(
        self, key: int, labels: tuple[str, ...], comment: str | None = None
    ) -> RemoteRecord | None:
        self.closed.append((key, labels, comment))
        if key in self.fail_close_keys:
            raise RuntimeError("HTTP 403")
        record = self.issues[key].model_copy(
            update={
                "state": IssueState.CLOSED,
                "labels": labels,
                "updated_at": self.clock(),
            }
        )
        self.issues[key] = record
        return record


class FakeStatusBoard:
    """In-memory project board."""

    def __init__(self, statuses: dict[int, str] | None = None):
        self.statuses: dict[int, str] = dict(statuses or {})
        self.moves: list[tuple[int, str]] = []
        self.reject: set[int] = set()
        self.cache_clears = 0

    def get_status(self, key: int) -> str | None:
        return self.statuses.get(key)

    def set_status(self, key: int, status: str) -> bool:
        self.moves.append((key, status))
        if key in self.reject:
            return False
        self.statuses[key] = status
        return True

    def clear_cache(self) -> None:
        self.cache_clears += 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def remote(key: int, title: str, updated_at: str = "2025-01-01T00:00:00Z", **kw) -> RemoteRecord:
    """Shorthand for a ``RemoteRecord``."""
    return RemoteRecord(key=key, title=title, updated_at=updated_at, **kw)


def write_csv(path: Path, rows: list[dict[str, str]], columns=COLUMNS) -> Path:
    """Write *rows* to *path* as a store file with the given columns."""
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=list(columns))
        writer.writeheader()
        for row in rows:
            writer.writerow({c: row.get(c, "") for c in columns})
    return path


def read_csv(path: Path) -> list[dict[str, str]]:
    with open(path, newline="", encoding="utf-8") as fh:
        return list(csv.DictReader(fh))


