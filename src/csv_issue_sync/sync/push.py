"""Push Reconciler: project local rows onto the remote tracker.

Two loops, strictly sequential, one remote call at a time:

1. **Unlinked rows** are created remotely.  The returned key and
   server ``updated_at`` are bound back into the row.  A normalised
   title created once in this pass is never created again.
2. **Linked rows** whose ``updated_at`` is strictly newer than their
   issue's are pushed with the whole field set.  Ties and older rows are
   left alone (the remote side wins ties by omission).

Rows that carry an auxiliary status are queued during both loops; the
queue is drained afterwards against the status board, best effort.

A fixed delay follows every remote mutation.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from csv_issue_sync.sync.dedup import dedupe_key
from csv_issue_sync.sync.loader import PassState, decode_remote
from csv_issue_sync.sync.models import (
    IssueFields,
    LocalRecord,
    SyncAction,
    SyncOutcome,
)
from csv_issue_sync.sync.status import StatusCodec, statuses_equal
from csv_issue_sync.sync.timestamps import is_newer
from csv_issue_sync.sync.tracker import IssueTracker, StatusBoard

logger = logging.getLogger(__name__)


class PushReconciler:
    """Create and update remote issues from local rows.

    Args:
        tracker: Remote issue API.
        codec: Status codec used to fold the status into labels.
        status_board: Optional board for the secondary status update.
        case_sensitive: Whether the double-creation guard compares
            titles case-sensitively.
        request_delay: Seconds to wait after every remote mutation.
        sleep: Sleep function (injectable for tests).
    """

    def __init__(
        self,
        tracker: IssueTracker,
        codec: StatusCodec,
        status_board: StatusBoard | None = None,
        case_sensitive: bool = False,
        request_delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.tracker = tracker
        self.codec = codec
        self.status_board = status_board
        self.case_sensitive = case_sensitive
        self.request_delay = request_delay
        self._sleep = sleep

    def run(self, state: PassState) -> None:
        status_queue: list[tuple[int, str, str]] = []
        created_keys = self._create_new(state, status_queue)
        self._update_linked(state, created_keys, status_queue)
        self._push_statuses(state, status_queue)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _create_new(
        self, state: PassState, status_queue: list[tuple[int, str, str]]
    ) -> set[int]:
        created_titles: set[str] = set()
        created_keys: set[int] = set()

        for pos in state.table.unlinked_positions():
            record = state.table.get(pos)
            title_key = dedupe_key(record.title, self.case_sensitive)

            if not title_key:
                logger.warning("Skipping unlinked row without a title")
                state.record(
                    SyncOutcome(
                        action=SyncAction.SKIP,
                        detail="row has no title",
                    )
                )
                continue

            if title_key in created_titles:
                logger.info(
                    "Skipping '%s': an issue with this title was already "
                    "created in this pass",
                    record.title,
                )
                state.record(
                    SyncOutcome(
                        action=SyncAction.SKIP,
                        title=record.title,
                        detail="already created in this pass",
                    )
                )
                continue

            if state.dry_run:
                created_titles.add(title_key)
                state.record(
                    SyncOutcome(
                        action=SyncAction.CREATE_REMOTE,
                        title=record.title,
                        detail="planned",
                    )
                )
                continue

            logger.debug("Creating remote issue for '%s'", record.title)
            try:
                created = self.tracker.create(self._fields(record))
            except Exception as exc:
                logger.error(
                    "Failed to create issue '%s': %s", record.title, exc
                )
                state.record(
                    SyncOutcome(
                        action=SyncAction.CREATE_REMOTE,
                        title=record.title,
                        success=False,
                        error=f"Failed to create issue '{record.title}': {exc}",
                    )
                )
                continue
            finally:
                self._pause()

            created = decode_remote(created, self.codec)
            bound = record.model_copy(
                update={
                    "key": str(created.key),
                    "updated_at": created.updated_at,
                }
            )
            state.table.replace(pos, bound)
            state.remote.put(created)
            created_titles.add(title_key)
            created_keys.add(created.key)
            self._queue_status(status_queue, created.key, bound)

            logger.info("Created issue #%s '%s'", created.key, record.title)
            state.record(
                SyncOutcome(
                    action=SyncAction.CREATE_REMOTE,
                    key=str(created.key),
                    title=record.title,
                )
            )

        return created_keys

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def _update_linked(
        self,
        state: PassState,
        created_keys: set[int],
        status_queue: list[tuple[int, str, str]],
    ) -> None:
        for pos in state.table.linked_positions():
            record = state.table.get(pos)
            key = record.key_number
            if key is None or key in created_keys or record.is_tombstoned:
                continue

            remote = state.remote.get(key)
            if remote is None:
                # Handled by the divergence step.
                continue

            if not is_newer(record.updated_at, remote.updated_at):
                continue

            if state.dry_run:
                state.record(
                    SyncOutcome(
                        action=SyncAction.UPDATE_REMOTE,
                        key=record.key,
                        title=record.title,
                        detail="planned",
                    )
                )
                self._queue_status(status_queue, key, record)
                continue

            fields = self._fields(record)
            logger.debug("Updating issue #%s from local row", key)
            try:
                updated = self.tracker.update(key, fields)
            except Exception as exc:
                logger.error("Failed to update issue #%s: %s", key, exc)
                state.record(
                    SyncOutcome(
                        action=SyncAction.UPDATE_REMOTE,
                        key=record.key,
                        title=record.title,
                        success=False,
                        error=f"Failed to update issue #{key}: {exc}",
                    )
                )
                continue
            finally:
                self._pause()

            if updated is not None:
                updated = decode_remote(updated, self.codec)
                state.remote.put(updated)
                state.table.replace(
                    pos, record.model_copy(update={"updated_at": updated.updated_at})
                )
            else:
                state.remote.put(
                    remote.model_copy(
                        update={
                            "title": record.title,
                            "body": record.body,
                            "state": record.state,
                            "labels": record.labels,
                            "aux_status": record.aux_status,
                            "updated_at": record.updated_at,
                        }
                    )
                )
            self._queue_status(status_queue, key, record)

            logger.info("Updated issue #%s", key)
            state.record(
                SyncOutcome(
                    action=SyncAction.UPDATE_REMOTE,
                    key=record.key,
                    title=record.title,
                )
            )

    # ------------------------------------------------------------------
    # Secondary status update
    # ------------------------------------------------------------------

    def _queue_status(
        self,
        status_queue: list[tuple[int, str, str]],
        key: int,
        record: LocalRecord,
    ) -> None:
        if self.codec.enabled and record.aux_status:
            status_queue.append((key, record.aux_status, record.title))

    def _push_statuses(
        self, state: PassState, status_queue: list[tuple[int, str, str]]
    ) -> None:
        if self.status_board is None or not status_queue:
            return

        for key, status, title in status_queue:
            state.status_pushed.add(key)
            if state.dry_run:
                state.record(
                    SyncOutcome(
                        action=SyncAction.UPDATE_STATUS_REMOTE,
                        key=str(key),
                        title=title,
                        detail=f"planned: {status}",
                    )
                )
                continue

            try:
                current = self.status_board.get_status(key)
            except Exception as exc:
                logger.warning(
                    "Could not read status of issue #%s: %s", key, exc
                )
                current = None
            if statuses_equal(current, status):
                continue

            try:
                moved = self.status_board.set_status(key, status)
            except Exception as exc:
                moved = False
                logger.error(
                    "Status update for issue #%s failed: %s", key, exc
                )
            finally:
                self._pause()

            if moved:
                logger.info("Moved issue #%s to '%s'", key, status)
                state.record(
                    SyncOutcome(
                        action=SyncAction.UPDATE_STATUS_REMOTE,
                        key=str(key),
                        title=title,
                        detail=status,
                    )
                )
            else:
                state.record(
                    SyncOutcome(
                        action=SyncAction.UPDATE_STATUS_REMOTE,
                        key=str(key),
                        title=title,
                        success=False,
                        error=f"Failed to set status '{status}' on issue #{key}",
                    )
                )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fields(self, record: LocalRecord) -> IssueFields:
        fields = record.fields()
        return fields.model_copy(
            update={"labels": self.codec.encode(fields.labels, record.aux_status)}
        )

    def _pause(self) -> None:
        if self.request_delay > 0:
            self._sleep(self.request_delay)
