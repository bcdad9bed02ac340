"""GitHub Projects (v2) client for the board ``Status`` column.

Implements the ``StatusBoard`` protocol over the GraphQL API.  Every
lookup failure (project, item, field or option missing, request
rejected) is logged and reported as "no status" / ``False``; nothing
here raises into the reconcilers.
"""

import logging
import threading
from typing import Any

import requests

from ..config import Config
from ..sync.status import normalize_status

logger = logging.getLogger(__name__)

_FIELDS_FRAGMENT = """
                fields(first: 20) {
                  nodes {
                    ... on ProjectV2Field { id name dataType }
                    ... on ProjectV2SingleSelectField {
                      id name dataType options { id name }
                    }
                  }
                }
"""

_PROJECTS_QUERY = """
query($owner: String!) {
  %s(login: $owner) {
    projectsV2(first: 20) {
      nodes {
        id
        title
        number
%s
      }
    }
  }
}
"""

_ITEMS_QUERY = """
query($owner: String!, $repo: String!, $issueNumber: Int!) {
  repository(owner: $owner, name: $repo) {
    issue(number: $issueNumber) {
      projectItems(first: 10) {
        nodes {
          id
          project { id }
          fieldValueByName(name: "Status") {
            ... on ProjectV2ItemFieldSingleSelectValue { name }
          }
        }
      }
    }
  }
}
"""

_UPDATE_MUTATION = """
mutation($projectId: ID!, $itemId: ID!, $fieldId: ID!, $optionId: String!) {
  updateProjectV2ItemFieldValue(
    input: {
      projectId: $projectId
      itemId: $itemId
      fieldId: $fieldId
      value: { singleSelectOptionId: $optionId }
    }
  ) {
    projectV2Item { id }
  }
}
"""


class GraphQLError(Exception):
    pass


class GitHubProjectsClient:
    def __init__(self, config: Config):
        self.config = config
        self.project_number = config.project_number
        self._thread_local = threading.local()
        self._project: dict[str, Any] | None = None
        self._items: dict[int, dict[str, Any]] = {}

    @property
    def graphql_url(self) -> str:
        base = self.config.api_url.rstrip("/")
        # GitHub Enterprise serves REST below /api/v3 and GraphQL at /api/graphql.
        if base.endswith("/api/v3"):
            return base[: -len("/v3")] + "/graphql"
        return f"{base}/graphql"

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            session = requests.Session()
            session.headers.update(
                {"Authorization": f"Bearer {self.config.github_token}"}
            )
            self._thread_local.session = session
        return self._thread_local.session

    def _graphql(self, query: str, variables: dict[str, Any]) -> dict:
        """
        Run a GraphQL query and return its ``data`` object.

        Raises:
            GraphQLError: On transport failure or a response with errors.
        """
        try:
            response = self._get_session().post(
                self.graphql_url,
                json={"query": query, "variables": variables},
                timeout=(10, 60),
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise GraphQLError(str(exc)) from exc

        if payload.get("errors"):
            messages = "; ".join(
                str(e.get("message", e)) for e in payload["errors"]
            )
            raise GraphQLError(messages)
        return payload.get("data") or {}

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _list_projects(self, owner_type: str) -> list[dict[str, Any]]:
        query = _PROJECTS_QUERY % (owner_type, _FIELDS_FRAGMENT)
        data = self._graphql(query, {"owner": self.config.github_owner})
        owner = data.get(owner_type) or {}
        nodes = (owner.get("projectsV2") or {}).get("nodes") or []
        return [n for n in nodes if n]

    def get_project(self) -> dict[str, Any] | None:
        """Return the configured project (cached), or ``None``."""
        if self._project is not None:
            return self._project

        try:
            projects = self._list_projects("user")
            if not projects:
                projects = self._list_projects("organization")
        except GraphQLError as exc:
            if "Resource not accessible" in str(exc):
                logger.warning(
                    "Cannot access GitHub Projects. The token needs the "
                    "'project' scope."
                )
            else:
                logger.error("Failed to fetch project info: %s", exc)
            return None

        if not projects:
            logger.warning(
                "No projects found for %s. Make sure the token has the "
                "'project' scope.",
                self.config.github_owner,
            )
            return None

        if self.project_number:
            found = [p for p in projects if p.get("number") == self.project_number]
            if not found:
                available = ", ".join(
                    f"#{p.get('number')} \"{p.get('title')}\"" for p in projects
                )
                logger.warning(
                    "Project #%s not found. Available: %s",
                    self.project_number,
                    available,
                )
                return None
            project = found[0]
        else:
            project = projects[0]
            logger.info(
                "Using first project found: #%s \"%s\"",
                project.get("number"),
                project.get("title"),
            )

        self._project = project
        return project

    def _status_field(self, project: dict[str, Any]) -> dict[str, Any] | None:
        for node in (project.get("fields") or {}).get("nodes") or []:
            if not node:
                continue
            if node.get("name", "").lower() == "status" and node.get("options"):
                return node
        return None

    def _get_item(self, key: int) -> dict[str, Any] | None:
        """Return ``{"id", "status"}`` for the issue's item in the project."""
        if key in self._items:
            return self._items[key]

        project = self.get_project()
        if project is None:
            return None

        try:
            data = self._graphql(
                _ITEMS_QUERY,
                {
                    "owner": self.config.github_owner,
                    "repo": self.config.github_repo,
                    "issueNumber": key,
                },
            )
        except GraphQLError as exc:
            logger.error(
                "Failed to get project item for issue #%s: %s", key, exc
            )
            return None

        issue = (data.get("repository") or {}).get("issue") or {}
        for node in (issue.get("projectItems") or {}).get("nodes") or []:
            if not node or (node.get("project") or {}).get("id") != project["id"]:
                continue
            value = node.get("fieldValueByName") or {}
            item = {"id": node["id"], "status": value.get("name")}
            self._items[key] = item
            return item

        logger.debug(
            "Issue #%s is not in project #%s", key, project.get("number")
        )
        return None

    # ------------------------------------------------------------------
    # StatusBoard protocol
    # ------------------------------------------------------------------

    def get_status(self, key: int) -> str | None:
        item = self._get_item(key)
        if item is None:
            return None
        return item["status"]

    def set_status(self, key: int, status: str) -> bool:
        """Move issue *key* to the ``Status`` option matching *status*.

        Options are matched after normalisation, so ``"in progress"``
        selects ``"In-Progress"``.

        Returns:
            ``True`` if the board was updated.
        """
        project = self.get_project()
        if project is None:
            return False

        item = self._get_item(key)
        if item is None:
            logger.debug(
                "Issue #%s not in project, skipping status update", key
            )
            return False

        field = self._status_field(project)
        if field is None:
            logger.warning("Status field not found in project")
            return False

        wanted = normalize_status(status)
        option = next(
            (
                o
                for o in field["options"]
                if normalize_status(o.get("name")) == wanted
            ),
            None,
        )
        if option is None:
            logger.warning(
                "Status option '%s' not found in project. Available: %s",
                status,
                ", ".join(o.get("name", "") for o in field["options"]),
            )
            return False

        try:
            self._graphql(
                _UPDATE_MUTATION,
                {
                    "projectId": project["id"],
                    "itemId": item["id"],
                    "fieldId": field["id"],
                    "optionId": option["id"],
                },
            )
        except GraphQLError as exc:
            logger.error(
                "Failed to update project status for issue #%s: %s", key, exc
            )
            return False

        self._items[key] = {"id": item["id"], "status": option["name"]}
        logger.debug(
            "Updated project status for issue #%s to '%s'", key, option["name"]
        )
        return True

    def clear_cache(self) -> None:
        self._project = None
        self._items.clear()
