"""Deduplicator: collapse same-titled records on each side.

Records are grouped by normalised title (the *dedup key*).  Within a
group the record with the strictly newer ``updated_at`` survives; exact
ties go to the configured tie-break policy:

- ``first-seen``: keep the record met first in iteration order.
- ``prefer-linked``: (local only) keep the row that already has a key.
- ``prefer-higher-key``: (remote only) keep the larger issue number.
- ``highest-numeric-id``: keep the larger key, on either side.

Both sides only group open records.  Closed records pass through
untouched, so a resolved copy never evicts the open one.  Closed remote
issues carrying the duplicate label are reported as
*closed duplicates* so the pull phase never brings them back.

Correlation keys play no part in grouping; two rows with different keys
but the same title are still duplicates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Literal, Sequence, TypeVar

from csv_issue_sync.sync.models import IssueState, LocalRecord, RemoteRecord
from csv_issue_sync.sync.timestamps import is_newer

logger = logging.getLogger(__name__)

TieBreaker = Literal[
    "first-seen", "prefer-linked", "prefer-higher-key", "highest-numeric-id"
]

LOCAL_TIE_BREAKERS: tuple[str, ...] = (
    "first-seen",
    "prefer-linked",
    "highest-numeric-id",
)
REMOTE_TIE_BREAKERS: tuple[str, ...] = (
    "first-seen",
    "prefer-higher-key",
    "highest-numeric-id",
)

R = TypeVar("R", LocalRecord, RemoteRecord)


def dedupe_key(title: str, case_sensitive: bool = False) -> str:
    """Normalise a title for grouping: trimmed, inner whitespace collapsed."""
    normalized = " ".join(title.split())
    return normalized if case_sensitive else normalized.casefold()


@dataclass
class LocalDedupResult:
    kept: list[LocalRecord] = field(default_factory=list)
    removed: list[LocalRecord] = field(default_factory=list)


@dataclass
class RemoteDedupResult:
    kept: list[RemoteRecord] = field(default_factory=list)
    removed: list[RemoteRecord] = field(default_factory=list)
    closed_duplicates: set[int] = field(default_factory=set)


def _numeric_key(record: LocalRecord | RemoteRecord) -> int:
    if isinstance(record, RemoteRecord):
        return record.key
    return record.key_number or 0


def _challenger_wins_tie(current: R, challenger: R, policy: str) -> bool:
    if policy == "prefer-linked":
        return (
            isinstance(challenger, LocalRecord)
            and challenger.is_linked
            and not current.is_linked
        )
    if policy in ("prefer-higher-key", "highest-numeric-id"):
        return _numeric_key(challenger) > _numeric_key(current)
    return False


class Deduplicator:
    """Collapse duplicates by dedup key, newest first.

    Args:
        case_sensitive: Compare titles case-sensitively.
        local_tie_breaker: Policy for equal timestamps on local rows.
        remote_tie_breaker: Policy for equal timestamps on remote issues.
        duplicate_label: Label identifying closed remote duplicates.

    Raises:
        ValueError: If a policy is not valid for its side.
    """

    def __init__(
        self,
        case_sensitive: bool = False,
        local_tie_breaker: str = "first-seen",
        remote_tie_breaker: str = "first-seen",
        duplicate_label: str = "duplicate",
    ) -> None:
        if local_tie_breaker not in LOCAL_TIE_BREAKERS:
            raise ValueError(
                f"Invalid local tie-breaker '{local_tie_breaker}': "
                f"must be one of {', '.join(LOCAL_TIE_BREAKERS)}"
            )
        if remote_tie_breaker not in REMOTE_TIE_BREAKERS:
            raise ValueError(
                f"Invalid remote tie-breaker '{remote_tie_breaker}': "
                f"must be one of {', '.join(REMOTE_TIE_BREAKERS)}"
            )
        self.case_sensitive = case_sensitive
        self.local_tie_breaker = local_tie_breaker
        self.remote_tie_breaker = remote_tie_breaker
        self.duplicate_label = duplicate_label

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def dedupe_local(self, records: Sequence[LocalRecord]) -> LocalDedupResult:
        """Collapse duplicate open local rows; file order of survivors is kept."""
        winners, removed = self._collapse(
            records,
            self.local_tie_breaker,
            lambda r: r.state == IssueState.OPEN,
        )
        result = LocalDedupResult(
            kept=[r for i, r in enumerate(records) if i in winners],
            removed=removed,
        )
        if result.removed:
            logger.info(
                "Removed %d duplicate local row(s)", len(result.removed)
            )
        return result

    def dedupe_remote(
        self, records: Sequence[RemoteRecord]
    ) -> RemoteDedupResult:
        """Collapse duplicate open remote issues."""
        winners, removed = self._collapse(
            records,
            self.remote_tie_breaker,
            lambda r: r.state == IssueState.OPEN,
        )
        label = self.duplicate_label.casefold()
        closed_duplicates = {
            r.key
            for r in records
            if r.state == IssueState.CLOSED
            and any(lbl.casefold() == label for lbl in r.labels)
        }
        result = RemoteDedupResult(
            kept=[r for i, r in enumerate(records) if i in winners],
            removed=removed,
            closed_duplicates=closed_duplicates,
        )
        if result.removed:
            logger.info(
                "Found %d duplicate open remote issue(s)", len(result.removed)
            )
        return result

    # ------------------------------------------------------------------
    # Grouping
    # ------------------------------------------------------------------

    def _collapse(
        self,
        records: Sequence[R],
        policy: str,
        eligible: Callable[[R], bool],
    ) -> tuple[set[int], list[R]]:
        """Return ``(indices of survivors, removed records)``.

        Ineligible records and records with a blank title always survive.
        """
        best: dict[str, int] = {}
        survivors: set[int] = set()
        removed: list[R] = []

        for idx, record in enumerate(records):
            key = dedupe_key(record.title, self.case_sensitive)
            if not key or not eligible(record):
                survivors.add(idx)
                continue

            if key not in best:
                best[key] = idx
                survivors.add(idx)
                continue

            current_idx = best[key]
            current = records[current_idx]
            if self._challenger_wins(current, record, policy):
                best[key] = idx
                survivors.discard(current_idx)
                survivors.add(idx)
                removed.append(current)
                logger.debug(
                    "Duplicate '%s': keeping newer copy, dropping %s",
                    record.title,
                    _describe(current),
                )
            else:
                removed.append(record)
                logger.debug(
                    "Duplicate '%s': dropping %s",
                    record.title,
                    _describe(record),
                )

        return survivors, removed

    @staticmethod
    def _challenger_wins(current: R, challenger: R, policy: str) -> bool:
        if is_newer(challenger.updated_at, current.updated_at):
            return True
        if is_newer(current.updated_at, challenger.updated_at):
            return False
        return _challenger_wins_tie(current, challenger, policy)


def _describe(record: LocalRecord | RemoteRecord) -> str:
    if isinstance(record, RemoteRecord):
        return f"issue #{record.key}"
    if record.is_linked:
        return f"row for #{record.key}"
    return "unlinked row"
