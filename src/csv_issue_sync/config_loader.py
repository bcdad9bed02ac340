"""
Hierarchical configuration loader for csv_issue_sync.

Discovers YAML config files by convention, expands ``${VAR}``
references, and merges the files so that the project-level file wins
over the global one.

Usage:
    from csv_issue_sync.config_loader import load_hierarchical_config

    config = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CSV_SYNC_CONFIG"
CONFIG_DIR = ".csv_sync"

# ---------------------------------------------------------------------------
# 1. Reading and ${VAR} expansion
# ---------------------------------------------------------------------------

# ${VAR} or ${VAR:-default}
_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def expand_env(node: Any) -> Any:
    """Expand ``${VAR}`` and ``${VAR:-default}`` in every string of *node*.

    An unset or empty VAR yields *default*, or ``""`` without one.  An
    unterminated ``${`` is kept as written.  Non-string leaves are
    returned unchanged.
    """
    if isinstance(node, dict):
        return {key: expand_env(val) for key, val in node.items()}
    if isinstance(node, list):
        return [expand_env(item) for item in node]
    if not isinstance(node, str):
        return node
    return _ENV_REF.sub(
        lambda m: os.environ.get(m.group(1)) or (m.group(2) or ""), node
    )


def _read_yaml(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh)


# ---------------------------------------------------------------------------
# 2. Convention-based file discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config file paths in precedence order (highest first).

    Search order:
        1. ``CSV_SYNC_CONFIG`` env var (explicit single path)
        2. ``.csv_sync/config.yml`` in CWD (project-level)
        3. ``.csv_sync/config.yaml`` in CWD (alternate extension)
        4. ``~/.config/csv_sync/config.yml`` (XDG global)

    Only paths that exist on disk are returned.
    """
    candidates: list[Path] = []

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        explicit = Path(env_path).expanduser().resolve()
        if not explicit.exists():
            logger.warning(
                "%s points to missing file %s", CONFIG_ENV_VAR, explicit
            )
        candidates.append(explicit)

    cwd = Path.cwd()
    candidates.append(cwd / CONFIG_DIR / "config.yml")
    candidates.append(cwd / CONFIG_DIR / "config.yaml")
    candidates.append(Path.home() / ".config" / "csv_sync" / "config.yml")

    return [p for p in candidates if p.exists()]


# ---------------------------------------------------------------------------
# 3. Config bootstrapping
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# csv-issue-sync configuration
#
# Connection settings can also be set via environment variables
# (or a .env file): GITHUB_TOKEN, GITHUB_OWNER, GITHUB_REPO,
# CSV_FILE_PATH, GITHUB_PROJECT_NUMBER
#
# github:
#   token: ${GITHUB_TOKEN}
#   owner: my-org
#   repo: my-repo
#   project_number: 1
#
# sync:
#   csv_path: ./issues.csv
#   direction: bidirectional
#   dedupe: true
#   close_remote_duplicates: false
#   duplicate_label: duplicate
#   status_sync: false
#   status_label_prefix: "status:"
#   request_delay: 0.1
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(target: Path | None = None) -> Path:
    """Ensure a config file exists, creating a commented starter if needed.

    Args:
        target: Explicit path to create.  Defaults to
            ``CWD / .csv_sync / config.yml``.

    Returns:
        Path to the config file (existing or newly created).
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or Path.cwd() / CONFIG_DIR / "config.yml"
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path


# ---------------------------------------------------------------------------
# 4. Hierarchical merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    Merge strategy ("project wins"):
        Files are loaded from lowest precedence to highest.  Each file's
        top-level keys **replace** (not deep-merge) those from earlier files.

    After merging, env var interpolation is applied to all string values.

    Returns an empty dict when no config files exist (zero-config).
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using built-in defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _read_yaml(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return expand_env(merged)
