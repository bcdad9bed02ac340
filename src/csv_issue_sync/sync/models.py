"""Pydantic models for the reconciliation engine.

Defines the core data contracts used across all sync modules:

- ``IssueState``: ``open`` / ``closed``.
- ``LocalRecord``: one row of the local CSV store.
- ``RemoteRecord``: one issue as returned by the tracker.
- ``IssueFields``: the mutable field set sent on create / update.
- ``SyncAction``: Enum of possible per-record operations.
- ``SyncOutcome``: Outcome of one operation on one record.
- ``SyncResult``: Aggregate results for a full pass.

All models are frozen (immutable).  Changing a record means building a
new instance with ``model_copy(update=...)`` and replacing the stored
entry.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

TOMBSTONE_PREFIX = "[DELETED]"


class IssueState(str, Enum):
    """Lifecycle state shared by both stores."""

    OPEN = "open"
    CLOSED = "closed"


class IssueFields(BaseModel):
    """The whole mutable field set of a work item.

    There is no partial update: create and update always carry every
    field.
    """

    title: str
    body: str = ""
    state: IssueState = IssueState.OPEN
    labels: tuple[str, ...] = ()

    model_config = {"frozen": True}


class LocalRecord(BaseModel):
    """One row of the local store.

    Attributes:
        key: Correlation key as written in the CSV.  Empty means the row
            has not been linked to a remote issue yet.
        title: Issue title.
        body: Issue body.
        state: ``open`` or ``closed``.
        labels: Label names, without any status marker label.
        updated_at: ISO 8601 timestamp of the last edit.
        aux_status: Optional board column / status.
    """

    key: str = ""
    title: str
    body: str = ""
    state: IssueState = IssueState.OPEN
    labels: tuple[str, ...] = ()
    updated_at: str = ""
    aux_status: str | None = None

    model_config = {"frozen": True}

    @property
    def is_linked(self) -> bool:
        return bool(self.key.strip())

    @property
    def key_number(self) -> int | None:
        """The key as an integer, or ``None`` for unlinked rows."""
        if not self.is_linked:
            return None
        return int(self.key)

    @property
    def is_tombstoned(self) -> bool:
        return self.title.startswith(TOMBSTONE_PREFIX)

    def fields(self) -> IssueFields:
        return IssueFields(
            title=self.title,
            body=self.body,
            state=self.state,
            labels=self.labels,
        )

    def tombstoned(self) -> LocalRecord:
        """Return a copy whose title carries the tombstone marker once."""
        if self.is_tombstoned:
            return self
        return self.model_copy(
            update={"title": f"{TOMBSTONE_PREFIX} {self.title}"}
        )


class RemoteRecord(BaseModel):
    """One issue on the remote tracker.

    Attributes:
        key: Issue number, unique and positive.
        title: Issue title.
        body: Issue body (``""`` when the tracker returns none).
        state: ``open`` or ``closed``.
        labels: Label names, without any status marker label.
        updated_at: Server-assigned ISO 8601 timestamp.
        created_at: Server-assigned ISO 8601 timestamp.
        url: Browser URL of the issue.
        aux_status: Status decoded from the labels, if any.
    """

    key: int
    title: str
    body: str = ""
    state: IssueState = IssueState.OPEN
    labels: tuple[str, ...] = ()
    updated_at: str = ""
    created_at: str = ""
    url: str = ""
    aux_status: str | None = None

    model_config = {"frozen": True}

    def to_local(self, aux_status: str | None = None) -> LocalRecord:
        """Derive the local row that mirrors this issue.

        Args:
            aux_status: Status to store in the row.  Defaults to the
                status decoded from the issue's labels.
        """
        return LocalRecord(
            key=str(self.key),
            title=self.title,
            body=self.body,
            state=self.state,
            labels=self.labels,
            updated_at=self.updated_at,
            aux_status=aux_status if aux_status is not None else self.aux_status,
        )


class SyncAction(str, Enum):
    """Possible per-record operations of a pass."""

    SKIP = "skip"
    CREATE_REMOTE = "create_remote"
    UPDATE_REMOTE = "update_remote"
    UPDATE_STATUS_REMOTE = "update_status_remote"
    CLOSE_DUPLICATE = "close_duplicate"
    APPEND_LOCAL = "append_local"
    UPDATE_LOCAL = "update_local"
    UPDATE_STATUS_LOCAL = "update_status_local"
    TOMBSTONE = "tombstone"
    DEDUPE_LOCAL = "dedupe_local"
    DEDUPE_REMOTE = "dedupe_remote"


class SyncOutcome(BaseModel):
    """Result of one operation on one record.

    Attributes:
        action: The operation performed (or planned, in a dry run).
        key: Correlation key involved, empty for unlinked rows.
        title: Title of the record, for reporting.
        success: Whether the operation succeeded.
        error: Error message if the operation failed.
        detail: Free-form note (e.g. why something was skipped).
    """

    action: SyncAction
    key: str = ""
    title: str = ""
    success: bool = True
    error: str | None = None
    detail: str | None = None

    model_config = {"frozen": True}


class SyncResult(BaseModel):
    """Aggregate result of a full pass.

    Attributes:
        dry_run: Whether this was a dry run (no changes applied).
        outcomes: Individual outcomes, in processing order.
        started_at: ISO 8601 timestamp when the pass started.
        completed_at: ISO 8601 timestamp when the pass completed.
        backup_path: Path of the removed-duplicates backup, if written.
        preview_path: Path of the dry-run preview, if written.
    """

    dry_run: bool = False
    outcomes: list[SyncOutcome] = []
    started_at: str
    completed_at: str | None = None
    backup_path: str | None = None
    preview_path: str | None = None

    model_config = {"frozen": True}

    def _succeeded(self, *actions: SyncAction) -> list[SyncOutcome]:
        return [
            o for o in self.outcomes if o.success and o.action in actions
        ]

    @property
    def created(self) -> list[SyncOutcome]:
        """Remote issues created from unlinked rows."""
        return self._succeeded(SyncAction.CREATE_REMOTE)

    @property
    def updated_remote(self) -> list[SyncOutcome]:
        """Remote issues (or their board status) updated from local rows."""
        return self._succeeded(
            SyncAction.UPDATE_REMOTE, SyncAction.UPDATE_STATUS_REMOTE
        )

    @property
    def updated_local(self) -> list[SyncOutcome]:
        """Local rows overwritten (or status-synced) from remote issues."""
        return self._succeeded(
            SyncAction.UPDATE_LOCAL, SyncAction.UPDATE_STATUS_LOCAL
        )

    @property
    def updated(self) -> list[SyncOutcome]:
        return self.updated_remote + self.updated_local

    @property
    def appended(self) -> list[SyncOutcome]:
        """Local rows appended for remote-only issues."""
        return self._succeeded(SyncAction.APPEND_LOCAL)

    @property
    def skipped(self) -> list[SyncOutcome]:
        return self._succeeded(SyncAction.SKIP)

    @property
    def tombstoned(self) -> list[SyncOutcome]:
        return self._succeeded(SyncAction.TOMBSTONE)

    @property
    def deduped(self) -> list[SyncOutcome]:
        """Local duplicates removed and remote duplicates closed."""
        return self._succeeded(
            SyncAction.DEDUPE_LOCAL, SyncAction.CLOSE_DUPLICATE
        )

    @property
    def failures(self) -> list[SyncOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def errors(self) -> list[str]:
        """Error messages of every failed outcome."""
        return [
            o.error or f"{o.action.value} failed" for o in self.failures
        ]

    def counts(self) -> dict[str, int]:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "skipped": len(self.skipped),
            "appended": len(self.appended),
            "tombstoned": len(self.tombstoned),
            "deduped": len(self.deduped),
            "errors": len(self.failures),
        }

    @property
    def has_mutations(self) -> bool:
        counts = self.counts()
        return any(
            counts[name]
            for name in (
                "created",
                "updated",
                "appended",
                "tombstoned",
                "deduped",
            )
        )

    def summary(self) -> str:
        """Format a human-readable summary of the pass.

        Returns:
            Multi-line summary string with counts by category.
        """
        counts = self.counts()
        lines = [
            "Sync summary" + (" (dry run)" if self.dry_run else ""),
            f"  Created remote: {counts['created']}",
            f"  Updated remote: {len(self.updated_remote)}",
            f"  Updated local:  {len(self.updated_local)}",
            f"  Appended local: {counts['appended']}",
            f"  Tombstoned:     {counts['tombstoned']}",
            f"  Deduplicated:   {counts['deduped']}",
            f"  Skipped:        {counts['skipped']}",
            f"  Errors:         {counts['errors']}",
        ]
        return "\n".join(lines)
