"""Index tables over the two collections, and the remote side of the loader.

``LocalTable`` keeps the ordered local rows plus a ``key -> position``
index; ``RemoteIndex`` keeps ``key -> RemoteRecord``.  Both are mutated
only by replacing entries, so a record touched by the push phase and
then by the pull phase is always read back from its single slot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from csv_issue_sync.sync.errors import RemoteFetchError
from csv_issue_sync.sync.models import LocalRecord, RemoteRecord, SyncOutcome
from csv_issue_sync.sync.status import StatusCodec
from csv_issue_sync.sync.tracker import IssueTracker

logger = logging.getLogger(__name__)


class LocalTable:
    """Ordered local rows with a correlation-key index.

    Args:
        records: Rows in file order.
    """

    def __init__(self, records: Iterable[LocalRecord] = ()) -> None:
        self._rows: list[LocalRecord] = list(records)
        self._index: dict[int, int] = {}
        self._reindex()

    def _reindex(self) -> None:
        self._index.clear()
        for pos, record in enumerate(self._rows):
            key = record.key_number
            if key is None:
                continue
            if key in self._index:
                logger.warning(
                    "Local store lists issue #%s more than once; "
                    "only the first row is reconciled",
                    key,
                )
                continue
            self._index[key] = pos

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[LocalRecord]:
        return iter(list(self._rows))

    @property
    def rows(self) -> list[LocalRecord]:
        return list(self._rows)

    def get(self, pos: int) -> LocalRecord:
        return self._rows[pos]

    def position_of(self, key: int) -> int | None:
        return self._index.get(key)

    def keys(self) -> set[int]:
        return set(self._index)

    def linked_positions(self) -> list[int]:
        """Positions of indexed (linked) rows, in file order."""
        return sorted(self._index.values())

    def unlinked_positions(self) -> list[int]:
        return [
            pos for pos, record in enumerate(self._rows) if not record.is_linked
        ]

    def replace(self, pos: int, record: LocalRecord) -> None:
        """Store *record* at *pos*, re-indexing if its key changed."""
        previous = self._rows[pos]
        self._rows[pos] = record
        if previous.key != record.key:
            self._reindex()

    def append(self, record: LocalRecord) -> int:
        self._rows.append(record)
        pos = len(self._rows) - 1
        key = record.key_number
        if key is not None and key not in self._index:
            self._index[key] = pos
        return pos


class RemoteIndex:
    """``key -> RemoteRecord`` for one pass."""

    def __init__(self, records: Iterable[RemoteRecord] = ()) -> None:
        self._records: dict[int, RemoteRecord] = {}
        for record in records:
            if record.key in self._records:
                logger.warning(
                    "Remote issue #%s listed twice; keeping the first copy",
                    record.key,
                )
                continue
            self._records[record.key] = record

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[RemoteRecord]:
        return iter(list(self._records.values()))

    def get(self, key: int) -> RemoteRecord | None:
        return self._records.get(key)

    def put(self, record: RemoteRecord) -> None:
        self._records[record.key] = record

    def keys(self) -> set[int]:
        return set(self._records)


@dataclass
class PassState:
    """Everything the reconcilers share during one pass.

    Attributes:
        table: The local rows being reconciled.
        remote: The remote issues, including ones created this pass.
        outcomes: Outcomes recorded so far, in processing order.
        dry_run: When ``True`` no tracker mutation is issued.
        closed_duplicates: Closed remote duplicates; never pulled back.
        suppressed_keys: Keys whose remote issue must not be appended
            locally this pass (removed duplicates on either side).
        status_pushed: Keys whose local status the push phase sent this
            pass; the pull phase does not read their board status back.
    """

    table: LocalTable
    remote: RemoteIndex
    outcomes: list[SyncOutcome] = field(default_factory=list)
    dry_run: bool = False
    closed_duplicates: set[int] = field(default_factory=set)
    suppressed_keys: set[int] = field(default_factory=set)
    status_pushed: set[int] = field(default_factory=set)

    def record(self, outcome: SyncOutcome) -> None:
        self.outcomes.append(outcome)


def decode_remote(record: RemoteRecord, codec: StatusCodec) -> RemoteRecord:
    """Move a status marker label out of ``labels`` into ``aux_status``."""
    status, labels = codec.decode(record.labels)
    if status is None and labels == record.labels:
        return record
    return record.model_copy(
        update={"labels": labels, "aux_status": status}
    )


def load_remote(
    tracker: IssueTracker, page_size: int, codec: StatusCodec
) -> list[RemoteRecord]:
    """Fetch every remote issue, decoding status labels.

    Raises:
        RemoteFetchError: If listing fails at any page.
    """
    try:
        records = tracker.list_all(page_size=page_size)
    except Exception as exc:
        raise RemoteFetchError(f"Failed to fetch remote issues: {exc}") from exc
    return [decode_remote(r, codec) for r in records]
