"""Core sync engine that orchestrates one reconciliation pass.

The ``SyncEngine`` ties together the store, loader, deduplicator,
reconcilers and divergence handler into a complete pass.  It:

1. Loads the local CSV (structural errors abort here).
2. Fetches every remote issue (a failed page aborts here).
3. Deduplicates each side by normalised title.
4. Closes removed remote duplicates, when configured.
5. Pushes local changes (unless ``direction == "pull"``).
6. Pulls remote changes (unless ``direction == "push"``).
7. Tombstones rows whose issue vanished, reports remote-only issues.
8. Writes the duplicate backup and commits the CSV atomically.
9. Builds and returns a ``SyncResult``.

Per-record tracker failures are recorded and the pass continues.  Fatal
errors propagate before anything is written, leaving the CSV untouched.
Passes never overlap: a second ``run`` while one is in flight raises
``PassInProgressError``.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from csv_issue_sync.sync.dedup import Deduplicator
from csv_issue_sync.sync.divergence import DivergenceHandler
from csv_issue_sync.sync.errors import PassInProgressError
from csv_issue_sync.sync.loader import (
    LocalTable,
    PassState,
    RemoteIndex,
    decode_remote,
    load_remote,
)
from csv_issue_sync.sync.models import (
    IssueState,
    LocalRecord,
    RemoteRecord,
    SyncAction,
    SyncOutcome,
    SyncResult,
)
from csv_issue_sync.sync.pull import PullReconciler
from csv_issue_sync.sync.push import PushReconciler
from csv_issue_sync.sync.status import StatusCodec
from csv_issue_sync.sync.store import CsvStore
from csv_issue_sync.sync.timestamps import utc_now_iso
from csv_issue_sync.sync.tracker import IssueTracker, StatusBoard

if TYPE_CHECKING:
    from csv_issue_sync.config_schema import SyncOptions

logger = logging.getLogger(__name__)


class SyncEngine:
    """Run reconciliation passes between a CSV file and an issue tracker.

    Args:
        tracker: Remote issue API.
        options: Engine options; ``options.csv_path`` names the store.
        status_board: Optional board for auxiliary status sync.
        sleep: Sleep function used for the inter-call delay.
    """

    def __init__(
        self,
        tracker: IssueTracker,
        options: SyncOptions,
        status_board: StatusBoard | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.tracker = tracker
        self.options = options
        self.status_board = status_board
        self._sleep = sleep
        self._lock = threading.Lock()

        self.csv_path = Path(options.csv_path)
        self.store = CsvStore(self.csv_path)
        self.codec = StatusCodec(
            prefix=options.status_label_prefix, enabled=options.status_sync
        )
        self.deduplicator = Deduplicator(
            case_sensitive=options.case_sensitive_titles,
            local_tie_breaker=options.local_tie_breaker,
            remote_tie_breaker=options.remote_tie_breaker,
            duplicate_label=options.duplicate_label,
        )
        self.pusher = PushReconciler(
            tracker,
            self.codec,
            status_board=status_board if options.status_sync else None,
            case_sensitive=options.case_sensitive_titles,
            request_delay=options.request_delay,
            sleep=sleep,
        )
        self.puller = PullReconciler(
            self.codec,
            status_board=status_board if options.status_sync else None,
        )
        self.divergence = DivergenceHandler()

    @property
    def backup_path(self) -> Path:
        if self.options.backup_path:
            return Path(self.options.backup_path)
        return self.csv_path.with_name(f"{self.csv_path.stem}.duplicates.csv")

    @property
    def preview_path(self) -> Path:
        if self.options.preview_path:
            return Path(self.options.preview_path)
        return self.csv_path.with_name(f"{self.csv_path.stem}.preview.json")

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self, dry_run: bool = False) -> SyncResult:
        """Execute one full pass.

        Args:
            dry_run: If ``True``, compute the pass but do not mutate the
                tracker or the CSV; write a preview artifact instead.

        Returns:
            A ``SyncResult`` summarising what was (or would be) done.

        Raises:
            StructuralError: The CSV header or a cell is invalid.
            RemoteFetchError: The remote issues could not be listed.
            PersistenceError: The CSV or an artifact could not be written.
            PassInProgressError: Another pass is running.
        """
        if not self._lock.acquire(blocking=False):
            raise PassInProgressError(
                f"A sync pass for {self.csv_path} is already running"
            )
        try:
            return self._run(dry_run)
        finally:
            self._lock.release()

    def _run(self, dry_run: bool) -> SyncResult:
        started_at = utc_now_iso()
        logger.info(
            "Starting %s pass on %s",
            "dry-run" if dry_run else "sync",
            self.csv_path,
        )

        if self.status_board is not None:
            self.status_board.clear_cache()

        # Step 1-2: Load both sides
        local_records = self.store.load()
        remote_records = load_remote(
            self.tracker, self.options.page_size, self.codec
        )
        logger.info(
            "Loaded %d local row(s) and %d remote issue(s)",
            len(local_records),
            len(remote_records),
        )

        state = PassState(
            table=LocalTable(),
            remote=RemoteIndex(remote_records),
            dry_run=dry_run,
        )

        # Step 3: Deduplicate
        local_removed: list[LocalRecord] = []
        remote_removed: list[RemoteRecord] = []
        if self.options.dedupe:
            local_result = self.deduplicator.dedupe_local(local_records)
            local_records = local_result.kept
            local_removed = local_result.removed
            for record in local_removed:
                state.record(
                    SyncOutcome(
                        action=SyncAction.DEDUPE_LOCAL,
                        key=record.key,
                        title=record.title,
                    )
                )
                if record.key_number is not None:
                    state.suppressed_keys.add(record.key_number)

            remote_result = self.deduplicator.dedupe_remote(remote_records)
            remote_removed = remote_result.removed
            state.closed_duplicates |= remote_result.closed_duplicates
            state.suppressed_keys |= {r.key for r in remote_removed}

        state.table = LocalTable(local_records)

        # Step 4: Remote duplicates
        self._handle_remote_duplicates(state, remote_removed)

        # Step 5-6: Reconcile
        if self.options.direction != "pull":
            logger.info("Pushing local changes")
            self.pusher.run(state)
        if self.options.direction != "push":
            logger.info("Pulling remote changes")
            self.puller.run(state)

        # Step 7: Divergence
        self.divergence.run(state)

        # Step 8: Persist
        backup_path: str | None = None
        preview_path: str | None = None
        if dry_run:
            self.store.write_preview(self.preview_path, state.outcomes)
            preview_path = str(self.preview_path)
            logger.info("Dry run: preview written to %s", preview_path)
        else:
            if local_removed or remote_removed:
                self.store.write_backup(
                    self.backup_path, local_removed, remote_removed
                )
                backup_path = str(self.backup_path)
                logger.info("Removed duplicates backed up to %s", backup_path)
            self.store.save(state.table.rows)
            logger.info(
                "Wrote %d row(s) to %s", len(state.table), self.csv_path
            )

        result = SyncResult(
            dry_run=dry_run,
            outcomes=state.outcomes,
            started_at=started_at,
            completed_at=utc_now_iso(),
            backup_path=backup_path,
            preview_path=preview_path,
        )
        logger.info("Pass complete: %s", result.counts())
        return result

    # ------------------------------------------------------------------
    # Remote duplicates
    # ------------------------------------------------------------------

    def _handle_remote_duplicates(
        self, state: PassState, removed: list[RemoteRecord]
    ) -> None:
        """Close removed remote duplicates, or just report them."""
        for remote in removed:
            if not self.options.close_remote_duplicates:
                logger.info(
                    "Duplicate issue #%s '%s' left open",
                    remote.key,
                    remote.title,
                )
                state.record(
                    SyncOutcome(
                        action=SyncAction.DEDUPE_REMOTE,
                        key=str(remote.key),
                        title=remote.title,
                        detail="left open",
                    )
                )
                continue

            if state.dry_run:
                state.record(
                    SyncOutcome(
                        action=SyncAction.CLOSE_DUPLICATE,
                        key=str(remote.key),
                        title=remote.title,
                        detail="planned",
                    )
                )
                continue

            labels = self._duplicate_labels(remote)
            try:
                closed = self.tracker.close_as_duplicate(
                    remote.key,
                    self.codec.encode(labels, remote.aux_status),
                    self.options.duplicate_comment,
                )
            except Exception as exc:
                logger.error(
                    "Failed to close duplicate issue #%s: %s", remote.key, exc
                )
                state.record(
                    SyncOutcome(
                        action=SyncAction.CLOSE_DUPLICATE,
                        key=str(remote.key),
                        title=remote.title,
                        success=False,
                        error=f"Failed to close duplicate issue #{remote.key}: {exc}",
                    )
                )
                continue
            finally:
                if self.options.request_delay > 0:
                    self._sleep(self.options.request_delay)

            if closed is None:
                closed = remote.model_copy(
                    update={"state": IssueState.CLOSED, "labels": labels}
                )
            state.remote.put(decode_remote(closed, self.codec))
            state.closed_duplicates.add(remote.key)
            logger.info("Closed duplicate issue #%s", remote.key)
            state.record(
                SyncOutcome(
                    action=SyncAction.CLOSE_DUPLICATE,
                    key=str(remote.key),
                    title=remote.title,
                )
            )

    def _duplicate_labels(self, remote: RemoteRecord) -> tuple[str, ...]:
        label = self.options.duplicate_label
        if any(lbl.casefold() == label.casefold() for lbl in remote.labels):
            return remote.labels
        return remote.labels + (label,)
