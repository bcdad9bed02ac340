"""Runtime configuration for the sync CLI.

Reads GitHub connection settings and the CSV path from CLI args,
environment variables, .env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    GITHUB_TOKEN: Personal access token (required)
    GITHUB_OWNER: Repository owner (required)
    GITHUB_REPO: Repository name (required)
    CSV_FILE_PATH: Local CSV store (optional, default: ./issues.csv)
    GITHUB_PROJECT_NUMBER: Projects v2 board for status sync (optional)
    CSV_SYNC_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from .config_schema import SyncOptions, UnifiedConfig

logger = logging.getLogger(__name__)


@dataclass
class Config:
    github_token: str
    github_owner: str
    github_repo: str
    csv_file_path: str = "./issues.csv"
    api_url: str = "https://api.github.com"
    project_number: int | None = None
    debug: bool = False
    sync: SyncOptions = field(default_factory=SyncOptions)


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the API URL is malformed or owner/repo look wrong.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid API URL '{config.api_url}': URL must include a hostname"
        )

    config.api_url = config.api_url.removesuffix("/")

    for name, value in (
        ("GITHUB_OWNER", config.github_owner),
        ("GITHUB_REPO", config.github_repo),
    ):
        if "/" in value:
            raise ValueError(
                f"Invalid {name} '{value}': expected a bare name without '/'"
            )

    if config.api_url.startswith("http://"):
        logger.warning(
            "WARNING: API URL uses plain http; the token is sent unencrypted."
        )


def load_config(
    token: str | None = None,
    owner: str | None = None,
    repo: str | None = None,
    csv_path: str | None = None,
    debug: bool = False,
    unified: UnifiedConfig | None = None,
    sync_overrides: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > YAML (``unified``) > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        token: Override GitHub token.
        owner: Override repository owner.
        repo: Override repository name.
        csv_path: Override CSV store path.
        debug: Enable debug logging (CLI flag).
        unified: Config built from YAML files, used as fallback.
        sync_overrides: Extra ``SyncOptions`` fields set from the CLI
            (e.g. ``direction``, ``close_remote_duplicates``).

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If token, owner or repo are missing after checking
            all sources (every missing item is listed), or a value is
            malformed.
    """
    fb = unified or UnifiedConfig()

    # --- String fields: CLI > env > YAML > error ---

    final_token = token or os.getenv("GITHUB_TOKEN") or fb.github.token
    final_owner = owner or os.getenv("GITHUB_OWNER") or fb.github.owner
    final_repo = repo or os.getenv("GITHUB_REPO") or fb.github.repo

    errors: list[str] = []
    if not final_token:
        errors.append("GITHUB_TOKEN not set (env, .env, or github.token)")
    if not final_owner:
        errors.append("GITHUB_OWNER not set (env, .env, or github.owner)")
    if not final_repo:
        errors.append("GITHUB_REPO not set (env, .env, or github.repo)")
    if errors:
        raise ValueError("Configuration errors:\n" + "\n".join(errors))

    final_csv = csv_path or os.getenv("CSV_FILE_PATH") or fb.sync.csv_path

    # --- Boolean fields: CLI > env > default ---

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    if debug:
        final_debug = True
    else:
        final_debug = bool(get_bool_env("CSV_SYNC_DEBUG"))

    # --- Numeric fields: env > YAML > default ---

    project_raw = os.getenv("GITHUB_PROJECT_NUMBER")
    if project_raw is not None and project_raw.strip():
        try:
            final_project = int(project_raw)
        except ValueError:
            raise ValueError(
                f"Invalid GITHUB_PROJECT_NUMBER '{project_raw}': must be a positive number"
            ) from None
        if final_project < 1:
            raise ValueError(
                f"Invalid GITHUB_PROJECT_NUMBER '{project_raw}': must be a positive number"
            )
    else:
        final_project = fb.github.project_number

    sync_update = {"csv_path": final_csv}
    sync_update.update(sync_overrides or {})
    sync_options = SyncOptions(**{**fb.sync.model_dump(), **sync_update})

    config = Config(
        github_token=final_token.strip(),
        github_owner=final_owner.strip(),
        github_repo=final_repo.strip(),
        csv_file_path=final_csv,
        api_url=fb.github.api_url,
        project_number=final_project,
        debug=final_debug,
        sync=sync_options,
    )

    validate_config(config)

    return config
