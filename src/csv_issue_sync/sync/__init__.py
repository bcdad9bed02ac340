"""Bidirectional CSV / issue tracker reconciliation engine.

Public API for keeping a local CSV of work items and a remote issue
tracker consistent with each other.

Architecture
------------
Each pass is a **last-writer-wins** reconciliation keyed on the issue
number.  Records are compared by their ``updated_at`` timestamps only;
nothing is merged field by field and nothing is deleted.

Modules:

- ``engine``     -- ``SyncEngine``: orchestrates a full pass.
- ``store``      -- ``CsvStore``: strict CSV load, atomic save, artifacts.
- ``loader``     -- ``LocalTable`` / ``RemoteIndex`` / ``PassState`` and
  the remote fetch.
- ``dedup``      -- ``Deduplicator``: title-based duplicate collapsing.
- ``push``       -- ``PushReconciler``: create / update remote issues.
- ``pull``       -- ``PullReconciler``: append / overwrite local rows.
- ``divergence`` -- ``DivergenceHandler``: tombstones and remote-only skips.
- ``status``     -- ``StatusCodec``: status <-> prefixed label.
- ``tracker``    -- ``IssueTracker`` / ``StatusBoard`` protocols.
- ``models``     -- ``LocalRecord``, ``RemoteRecord``, ``SyncOutcome``,
  ``SyncResult``: core data contracts.
- ``reporter``   -- Human-readable and JSON result formatting.
- ``errors``     -- Fatal pass errors.

Usage example
-------------
::

    from csv_issue_sync.config_schema import SyncOptions
    from csv_issue_sync.core.client import GitHubClient
    from csv_issue_sync.sync import (
        SyncEngine,
        format_dry_run_preview,
        format_sync_report,
    )

    engine = SyncEngine(
        tracker=client,                  # GitHubClient instance
        options=SyncOptions(csv_path="issues.csv"),
    )

    # Dry-run first to preview changes
    preview = engine.run(dry_run=True)
    print(format_dry_run_preview(preview))

    result = engine.run()
    print(format_sync_report(result))
"""

from .engine import SyncEngine
from .errors import (
    PassInProgressError,
    PersistenceError,
    RemoteFetchError,
    StructuralError,
    SyncError,
)
from .models import (
    IssueFields,
    IssueState,
    LocalRecord,
    RemoteRecord,
    SyncAction,
    SyncOutcome,
    SyncResult,
)
from .reporter import (
    format_dry_run_preview,
    format_sync_report,
    result_to_json,
)
from .store import CsvStore

__all__ = [
    "CsvStore",
    "IssueFields",
    "IssueState",
    "LocalRecord",
    "PassInProgressError",
    "PersistenceError",
    "RemoteFetchError",
    "RemoteRecord",
    "StructuralError",
    "SyncAction",
    "SyncEngine",
    "SyncError",
    "SyncOutcome",
    "SyncResult",
    "format_dry_run_preview",
    "format_sync_report",
    "result_to_json",
]
