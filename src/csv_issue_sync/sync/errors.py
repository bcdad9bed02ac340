"""Exception hierarchy for a sync pass.

Fatal errors abort the pass before anything is persisted:

- ``StructuralError``: the local CSV is unusable (bad header, bad cell).
- ``RemoteFetchError``: listing the remote issues failed at some page.
- ``PersistenceError``: the staging write or the rename failed.

``PassInProgressError`` is raised when a pass is requested while another
pass on the same engine is still running.

Per-record failures are not exceptions at this level: the reconcilers
catch the tracker's exceptions and record a failed ``SyncOutcome``
instead.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for errors that abort a sync pass."""


class StructuralError(SyncError):
    """The local store cannot be parsed into records."""


class RemoteFetchError(SyncError):
    """The remote collection could not be listed completely."""


class PersistenceError(SyncError):
    """The final local collection could not be committed."""


class PassInProgressError(SyncError):
    """Another pass is already running against the same store."""
