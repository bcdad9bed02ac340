"""Unified configuration schema for csv_issue_sync.

Defines Pydantic models for the unified config structure with dedicated
sections for the GitHub connection, the sync engine, and logging.

Usage:
    from csv_issue_sync.config_schema import UnifiedConfig, build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from .sync.dedup import LOCAL_TIE_BREAKERS, REMOTE_TIE_BREAKERS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class GitHubConfig(BaseModel):
    """GitHub connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    token: str | None = Field(default=None, description="GitHub token")
    owner: str | None = Field(
        default=None, description="Repository owner (user or org)"
    )
    repo: str | None = Field(default=None, description="Repository name")
    api_url: str = Field(
        default="https://api.github.com",
        description="REST API base URL (GitHub Enterprise: https://host/api/v3)",
    )
    project_number: int | None = Field(
        default=None,
        ge=1,
        description="Projects v2 board whose Status column is synced",
    )

    model_config = {"frozen": True}


class SyncOptions(BaseModel):
    """Options of the reconciliation engine.

    Constructed once and handed to ``SyncEngine``; nothing in the engine
    reads configuration from the environment.
    """

    csv_path: str = Field(
        default="./issues.csv", description="Path of the local CSV store"
    )
    direction: Literal["bidirectional", "push", "pull"] = Field(
        default="bidirectional",
        description="Which reconciliation phases run",
    )
    page_size: int = Field(
        default=100, ge=1, le=100, description="Issues per list request"
    )
    request_delay: float = Field(
        default=0.1,
        ge=0,
        description="Seconds to wait after every remote mutation",
    )
    dedupe: bool = Field(
        default=True, description="Collapse same-titled records first"
    )
    case_sensitive_titles: bool = Field(
        default=False, description="Compare titles case-sensitively"
    )
    local_tie_breaker: str = Field(
        default="first-seen",
        description="Tie-break policy for duplicate local rows",
    )
    remote_tie_breaker: str = Field(
        default="first-seen",
        description="Tie-break policy for duplicate remote issues",
    )
    close_remote_duplicates: bool = Field(
        default=False,
        description="Close removed remote duplicates instead of leaving them open",
    )
    duplicate_label: str = Field(
        default="duplicate", description="Label attached when closing"
    )
    duplicate_comment: str | None = Field(
        default=None, description="Comment posted before closing"
    )
    backup_path: str | None = Field(
        default=None,
        description="Removed-duplicate backup (default: <csv>.duplicates.csv)",
    )
    preview_path: str | None = Field(
        default=None,
        description="Dry-run preview (default: <csv>.preview.json)",
    )
    status_sync: bool = Field(
        default=False, description="Sync the status column"
    )
    status_label_prefix: str = Field(
        default="status:", description="Label prefix carrying the status"
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_tie_breakers(self) -> SyncOptions:
        if self.local_tie_breaker not in LOCAL_TIE_BREAKERS:
            raise ValueError(
                f"local_tie_breaker must be one of {', '.join(LOCAL_TIE_BREAKERS)}"
            )
        if self.remote_tie_breaker not in REMOTE_TIE_BREAKERS:
            raise ValueError(
                f"remote_tie_breaker must be one of {', '.join(REMOTE_TIE_BREAKERS)}"
            )
        return self


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    sync: SyncOptions = Field(default_factory=SyncOptions)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get their defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    unknown = set(raw_data) - set(UnifiedConfig.model_fields)
    if unknown:
        logger.warning(
            "Ignoring unknown config section(s): %s",
            ", ".join(sorted(unknown)),
        )
    known = {k: v for k, v in raw_data.items() if k not in unknown}
    return UnifiedConfig(**known)

