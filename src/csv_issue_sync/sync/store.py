"""CSV store: the local side of the Record Loader and the Persistence Writer.

The local store is a CSV file with a fixed header.  Loading is strict
about structure (a missing required column aborts the pass before any
remote call) and lenient about absence (no file, or a blank file, is
zero records).

Key design choices:

* **Atomic writes** -- every write goes through
  ``file_handler.write_file_atomic`` (staging file + ``os.replace()``),
  for the store itself and for the audit artifacts.
* **Fixed column order** -- output always uses ``COLUMNS`` regardless of
  the column order found on input.
* **Audit artifacts** -- removed duplicates are written to a backup CSV
  with an extra ``origin`` column; dry runs write a JSON preview.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path
from typing import Iterable

from csv_issue_sync.file_handler import (
    read_file_with_encoding,
    write_file_atomic,
)
from csv_issue_sync.sync.errors import PersistenceError, StructuralError
from csv_issue_sync.sync.models import (
    IssueState,
    LocalRecord,
    RemoteRecord,
    SyncOutcome,
)
from csv_issue_sync.validators import (
    parse_labels,
    validate_key,
    validate_state,
)

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("id", "title", "body", "state", "labels", "updated_at")
STATUS_COLUMN = "status_column"
COLUMNS = REQUIRED_COLUMNS + (STATUS_COLUMN,)
BACKUP_COLUMNS = ("origin",) + COLUMNS


class CsvStore:
    """Load and save the local collection.

    Args:
        path: Path of the CSV file.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self) -> list[LocalRecord]:
        """Parse the store into records, in file order.

        Returns:
            The records; empty when the file is missing or blank.

        Raises:
            StructuralError: If the header lacks a required column or a
                cell fails validation.
        """
        if not self.path.exists():
            logger.info("Local store %s not found, starting empty", self.path)
            return []

        try:
            content, encoding = read_file_with_encoding(self.path)
        except OSError as exc:
            raise StructuralError(
                f"Cannot read local store {self.path}: {exc}"
            ) from exc

        if not content.strip():
            return []

        logger.debug("Read %s (%s)", self.path, encoding)
        return parse_records(content, source=str(self.path))

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self, records: Iterable[LocalRecord]) -> None:
        """Commit *records* atomically.

        Raises:
            PersistenceError: If the staging write or the rename fails.
                The previous file is left byte-identical in that case.
        """
        _write_atomic(self.path, render_records(records))

    def write_backup(
        self,
        path: Path,
        local_removed: Iterable[LocalRecord],
        remote_removed: Iterable[RemoteRecord],
    ) -> None:
        """Write removed duplicates from both sides to *path*."""
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(BACKUP_COLUMNS)
        for record in local_removed:
            writer.writerow(("local",) + _to_row(record))
        for remote in remote_removed:
            writer.writerow(("remote",) + _to_row(remote.to_local()))
        _write_atomic(path, buf.getvalue())

    def write_preview(
        self, path: Path, outcomes: Iterable[SyncOutcome]
    ) -> None:
        """Write the planned outcomes of a dry run to *path* as JSON."""
        payload = {
            "store": str(self.path),
            "planned": [
                o.model_dump(mode="json", exclude_none=True)
                for o in outcomes
            ],
        }
        _write_atomic(path, json.dumps(payload, indent=2) + "\n")


# ---------------------------------------------------------------------------
# Parsing / rendering helpers
# ---------------------------------------------------------------------------


def parse_records(content: str, source: str = "<csv>") -> list[LocalRecord]:
    """Parse CSV text with a header row into ``LocalRecord``s.

    Raises:
        StructuralError: On a missing required column or an invalid cell.
    """
    reader = csv.reader(io.StringIO(content))
    try:
        header = next(reader)
    except StopIteration:
        return []
    except csv.Error as exc:
        raise StructuralError(f"Failed to parse CSV at {source}: {exc}") from exc

    columns = [name.strip() for name in header]
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise StructuralError(
            f"CSV at {source} missing required headers: {', '.join(missing)}"
        )
    positions = {name: idx for idx, name in enumerate(columns)}

    records: list[LocalRecord] = []
    try:
        for line_no, row in enumerate(reader, start=2):
            if not any(cell.strip() for cell in row):
                continue
            records.append(_from_row(row, positions, source, line_no))
    except csv.Error as exc:
        raise StructuralError(f"Failed to parse CSV at {source}: {exc}") from exc
    return records


def render_records(records: Iterable[LocalRecord]) -> str:
    """Serialise records with the fixed ``COLUMNS`` header."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(COLUMNS)
    for record in records:
        writer.writerow(_to_row(record))
    return buf.getvalue()


def _cell(row: list[str], positions: dict[str, int], name: str) -> str:
    idx = positions.get(name)
    if idx is None or idx >= len(row):
        return ""
    return row[idx].strip()


def _from_row(
    row: list[str], positions: dict[str, int], source: str, line_no: int
) -> LocalRecord:
    key = _cell(row, positions, "id")
    ok, msg = validate_key(key)
    if not ok:
        raise StructuralError(f"{source} line {line_no}: {msg}")

    state = _cell(row, positions, "state")
    ok, msg = validate_state(state)
    if not ok:
        raise StructuralError(f"{source} line {line_no}: {msg}")

    status = _cell(row, positions, STATUS_COLUMN)
    return LocalRecord(
        key=key,
        title=_cell(row, positions, "title"),
        body=_cell(row, positions, "body"),
        state=IssueState(state.lower()) if state else IssueState.OPEN,
        labels=parse_labels(_cell(row, positions, "labels")),
        updated_at=_cell(row, positions, "updated_at"),
        aux_status=status or None,
    )


def _to_row(record: LocalRecord) -> tuple[str, ...]:
    return (
        record.key,
        record.title,
        record.body,
        record.state.value,
        ",".join(record.labels),
        record.updated_at,
        record.aux_status or "",
    )


def _write_atomic(path: Path, content: str) -> None:
    try:
        write_file_atomic(path, content)
    except OSError as exc:
        raise PersistenceError(f"Failed to write {path}: {exc}") from exc
