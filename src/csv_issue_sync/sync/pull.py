"""Pull Reconciler: project remote issues onto the local rows.

For every remote issue, in listing order:

* no local row with its key -> append a row derived from it, unless the
  issue is a closed duplicate or its key is suppressed for this pass;
* remote ``updated_at`` strictly newer -> overwrite the whole row;
* timestamps equal but the remote status differs -> pull the status
  only.  Board moves do not always bump the issue timestamp, so this is
  a deliberate exception to plain LWW.  It never runs in the same
  iteration as a full overwrite.

With a status board configured, the remote status is the issue's board
column, falling back to its ``status:`` label when the issue is not on
the board.  Statuses the push phase sent this pass are not read back.

Tombstoned rows are left alone.  The pull phase only touches the
in-memory table; nothing is written until the Persistence Writer runs.
"""

from __future__ import annotations

import logging

from csv_issue_sync.sync.loader import PassState
from csv_issue_sync.sync.models import RemoteRecord, SyncAction, SyncOutcome
from csv_issue_sync.sync.status import StatusCodec, statuses_equal
from csv_issue_sync.sync.timestamps import is_newer
from csv_issue_sync.sync.tracker import StatusBoard

logger = logging.getLogger(__name__)


class PullReconciler:
    """Append and overwrite local rows from remote issues.

    Args:
        codec: Status codec; when disabled the local status column is
            local-only data and survives overwrites.
        status_board: Optional board consulted for the remote status.
    """

    def __init__(
        self, codec: StatusCodec, status_board: StatusBoard | None = None
    ) -> None:
        self.codec = codec
        self.status_board = status_board

    def run(self, state: PassState) -> None:
        for remote in state.remote:
            pos = state.table.position_of(remote.key)

            if pos is None:
                if remote.key in state.closed_duplicates:
                    logger.debug(
                        "Not pulling closed duplicate #%s", remote.key
                    )
                    continue
                if remote.key in state.suppressed_keys:
                    logger.debug(
                        "Not pulling #%s: removed as a duplicate", remote.key
                    )
                    continue
                state.table.append(
                    remote.to_local(aux_status=self._remote_status(remote, state))
                )
                logger.info("Added issue #%s to local store", remote.key)
                state.record(
                    SyncOutcome(
                        action=SyncAction.APPEND_LOCAL,
                        key=str(remote.key),
                        title=remote.title,
                    )
                )
                continue

            local = state.table.get(pos)
            if local.is_tombstoned:
                continue

            if is_newer(remote.updated_at, local.updated_at):
                if self.codec.enabled:
                    status = self._remote_status(remote, state)
                else:
                    status = local.aux_status
                state.table.replace(pos, remote.to_local(aux_status=status))
                logger.info("Updated local row from issue #%s", remote.key)
                state.record(
                    SyncOutcome(
                        action=SyncAction.UPDATE_LOCAL,
                        key=str(remote.key),
                        title=remote.title,
                    )
                )
                continue

            if is_newer(local.updated_at, remote.updated_at):
                continue

            status = self._remote_status(remote, state)
            if status and not statuses_equal(status, local.aux_status):
                state.table.replace(
                    pos, local.model_copy(update={"aux_status": status})
                )
                logger.info(
                    "Pulled status '%s' for issue #%s", status, remote.key
                )
                state.record(
                    SyncOutcome(
                        action=SyncAction.UPDATE_STATUS_LOCAL,
                        key=str(remote.key),
                        title=local.title,
                        detail=status,
                    )
                )

    def _remote_status(
        self, remote: RemoteRecord, state: PassState
    ) -> str | None:
        if self.status_board is None or remote.key in state.status_pushed:
            return remote.aux_status
        try:
            status = self.status_board.get_status(remote.key)
        except Exception as exc:
            logger.warning(
                "Could not read board status of issue #%s: %s", remote.key, exc
            )
            status = None
        return status or remote.aux_status
