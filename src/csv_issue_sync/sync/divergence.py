"""Divergence Handler: records present on only one side after projection.

Nothing is ever deleted:

* a remote issue without a local row is reported and skipped;
* a linked local row whose issue is gone is tombstoned by prefixing its
  title with ``[DELETED]``.  The marker is applied once; a row that
  already carries it is left as is and not counted again.
"""

from __future__ import annotations

import logging

from csv_issue_sync.sync.loader import PassState
from csv_issue_sync.sync.models import SyncAction, SyncOutcome

logger = logging.getLogger(__name__)


class DivergenceHandler:
    def run(self, state: PassState) -> None:
        for remote in state.remote:
            if state.table.position_of(remote.key) is not None:
                continue
            logger.warning(
                "Skipping issue #%s (missing from local store). "
                "To close it, set its state to 'closed' instead of "
                "deleting the row.",
                remote.key,
            )
            state.record(
                SyncOutcome(
                    action=SyncAction.SKIP,
                    key=str(remote.key),
                    title=remote.title,
                    detail="missing from local store",
                )
            )

        for pos in state.table.linked_positions():
            record = state.table.get(pos)
            if record.key_number in state.remote:
                continue
            if record.is_tombstoned:
                continue
            logger.warning(
                "Issue #%s no longer exists remotely, marking row as [DELETED]",
                record.key,
            )
            state.table.replace(pos, record.tombstoned())
            state.record(
                SyncOutcome(
                    action=SyncAction.TOMBSTONE,
                    key=record.key,
                    title=record.title,
                )
            )
