"""GitHub transport shared by the CLI and the watcher."""

from .client import GitHubClient, TrackerError
from .projects import GitHubProjectsClient

__all__ = ["GitHubClient", "GitHubProjectsClient", "TrackerError"]
