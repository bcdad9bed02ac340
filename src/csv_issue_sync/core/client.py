import logging
import threading
from typing import Any

import requests

from ..config import Config
from ..sync.models import IssueFields, IssueState, RemoteRecord

logger = logging.getLogger(__name__)


class TrackerError(Exception):
    """A request to the issue tracker failed.

    Attributes:
        status: HTTP status code, when the server answered at all.
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class GitHubClient:
    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.repo_url = self._get_repo_url()

    @property
    def session(self) -> requests.Session:
        """The current thread's session."""
        return self._get_session()

    def _get_repo_url(self) -> str:
        return (
            f"{self.config.api_url.rstrip('/')}"
            f"/repos/{self.config.github_owner}/{self.config.github_repo}"
        )

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Bearer {self.config.github_token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )
        return session

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make a REST request below the repository URL and return the JSON body.

        Raises:
            TrackerError: On a network failure or a non-2xx response.
        """
        url = f"{self.repo_url}{path}"
        session = self._get_session()
        try:
            response = session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=(10, 60),
            )
        except requests.RequestException as exc:
            raise TrackerError(f"{method} {path} failed: {exc}") from exc

        if not response.ok:
            message = _error_message(response)
            raise TrackerError(
                f"{method} {path} failed with HTTP {response.status_code}: {message}",
                status=response.status_code,
            )
        if not response.content:
            return None
        return response.json()

    # ------------------------------------------------------------------
    # IssueTracker protocol
    # ------------------------------------------------------------------

    def list_all(self, page_size: int = 100) -> list[RemoteRecord]:
        """
        Fetch every issue of the repository, open and closed.

        Pages are requested until one comes back with fewer than
        ``page_size`` items.  Pull requests are dropped.

        Raises:
            TrackerError: If any page fails.
        """
        records: list[RemoteRecord] = []
        page = 1
        while True:
            items = self._request(
                "GET",
                "/issues",
                params={"state": "all", "per_page": page_size, "page": page},
            )
            if not isinstance(items, list):
                raise TrackerError(
                    f"Unexpected response listing issues (page {page})"
                )
            logger.debug("Fetched page %d: %d item(s)", page, len(items))
            records.extend(
                issue_to_record(item)
                for item in items
                if "pull_request" not in item
            )
            if len(items) < page_size:
                break
            page += 1
        return records

    def create(self, fields: IssueFields) -> RemoteRecord:
        """
        Create a new issue.

        GitHub always opens new issues; a ``closed`` state is applied with
        a follow-up PATCH.

        Raises:
            ValueError: If the title is empty.
            TrackerError: If the server rejects the request.
        """
        if not fields.title or not fields.title.strip():
            raise ValueError("Title is required and cannot be empty")

        data = self._request(
            "POST",
            "/issues",
            json={
                "title": fields.title,
                "body": fields.body,
                "labels": list(fields.labels),
            },
        )
        record = issue_to_record(data)
        if fields.state == IssueState.CLOSED:
            closed = self._request(
                "PATCH", f"/issues/{record.key}", json={"state": "closed"}
            )
            record = issue_to_record(closed)
        return record

    def update(self, key: int, fields: IssueFields) -> RemoteRecord:
        """
        Replace the whole mutable field set of issue *key*.

        Raises:
            TrackerError: If the issue is missing or the update is rejected.
        """
        data = self._request(
            "PATCH",
            f"/issues/{key}",
            json={
                "title": fields.title,
                "body": fields.body,
                "state": fields.state.value,
                "labels": list(fields.labels),
            },
        )
        return issue_to_record(data)

    def close_as_duplicate(
        self,
        key: int,
        labels: tuple[str, ...],
        comment: str | None = None,
    ) -> RemoteRecord:
        """
        Close issue *key* as not planned, replacing its labels.

        Args:
            key: Issue number.
            labels: Full label list to set (including the duplicate label).
            comment: Optional comment posted before closing.

        Raises:
            TrackerError: If the comment or the close is rejected.
        """
        if comment:
            self._request(
                "POST", f"/issues/{key}/comments", json={"body": comment}
            )
        data = self._request(
            "PATCH",
            f"/issues/{key}",
            json={
                "state": "closed",
                "state_reason": "not_planned",
                "labels": list(labels),
            },
        )
        return issue_to_record(data)

    def validate_connection(self) -> str:
        """
        Check credentials by reading the repository.
        Returns the repository's full name if successful.
        """
        data = self._request("GET", "")
        return str(data.get("full_name", "")) if data else ""


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def issue_to_record(data: dict[str, Any]) -> RemoteRecord:
    """Build a ``RemoteRecord`` from a REST issue payload."""
    labels = []
    for label in data.get("labels") or []:
        name = label if isinstance(label, str) else label.get("name")
        if name:
            labels.append(name)
    return RemoteRecord(
        key=int(data["number"]),
        title=data.get("title") or "",
        body=data.get("body") or "",
        state=IssueState(data.get("state", "open")),
        labels=tuple(labels),
        updated_at=data.get("updated_at") or "",
        created_at=data.get("created_at") or "",
        url=data.get("html_url") or "",
    )


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason or ""
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason or ""
