"""Protocols for the remote collaborators of the engine.

``IssueTracker`` is the issue API proper; ``StatusBoard`` is the optional
board whose status column is synced as the auxiliary status.
``GitHubClient`` and ``GitHubProjectsClient`` in ``csv_issue_sync.core``
implement them; tests use in-memory fakes.
"""

from __future__ import annotations

from typing import Protocol

from csv_issue_sync.sync.models import IssueFields, RemoteRecord


class IssueTracker(Protocol):
    """Paginated create / update / list API over remote issues."""

    def list_all(self, page_size: int = 100) -> list[RemoteRecord]:
        """Return every issue, paging until a short page is returned.

        Raises:
            TrackerError: If any page request fails.
        """
        ...  # pragma: no cover

    def create(self, fields: IssueFields) -> RemoteRecord:
        """Create an issue; the server assigns key and timestamps."""
        ...  # pragma: no cover

    def update(self, key: int, fields: IssueFields) -> RemoteRecord | None:
        """Replace the mutable fields of issue *key*.

        Returns:
            The updated issue when the server returns it, else ``None``.
        """
        ...  # pragma: no cover

    def close_as_duplicate(
        self, key: int, labels: tuple[str, ...], comment: str | None = None
    ) -> RemoteRecord | None:
        """Close issue *key* with *labels*, optionally commenting first."""
        ...  # pragma: no cover


class StatusBoard(Protocol):
    """Board holding the auxiliary status of issues."""

    def get_status(self, key: int) -> str | None:
        ...  # pragma: no cover

    def set_status(self, key: int, status: str) -> bool:
        """Move issue *key* to *status*; ``False`` if it could not."""
        ...  # pragma: no cover

    def clear_cache(self) -> None:
        """Forget cached statuses so the next pass reads the board afresh."""
        ...  # pragma: no cover
