"""Command-line entry point: ``csv-issue-sync``.

Subcommands:
    sync   Bidirectional pass (default behaviour of the tool).
    push   Local -> GitHub only.
    pull   GitHub -> local only.
    watch  Re-run a bidirectional pass whenever the CSV changes.
    init   Write a commented starter config file.
"""

import argparse
import json
import logging
import sys
import threading
from pathlib import Path

import yaml
from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config
from .config_loader import (
    discover_config_files,
    ensure_config,
    load_hierarchical_config,
)
from .config_schema import UnifiedConfig, build_config
from .core.client import GitHubClient, TrackerError
from .core.projects import GitHubProjectsClient
from .logger import setup_logging
from .sync.engine import SyncEngine
from .sync.errors import SyncError
from .sync.reporter import (
    format_dry_run_preview,
    format_sync_report,
    result_to_json,
)
from .watch import CsvWatcher

logger = logging.getLogger(__name__)

_DIRECTIONS = {"sync": "bidirectional", "push": "push", "pull": "pull"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="csv-issue-sync",
        description="Two-way sync between a local CSV file and GitHub issues",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Bidirectional sync using .env / .csv_sync/config.yml
  csv-issue-sync sync

  # Preview what a sync would do
  csv-issue-sync sync --dry-run

  # Push local edits only, closing duplicate issues
  csv-issue-sync push --close-duplicates

  # Sync on every save of the CSV file
  csv-issue-sync watch --csv tasks.csv
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"csv-issue-sync version {__version__}",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--csv",
        dest="csv_path",
        help="CSV file to sync (overrides CSV_FILE_PATH and sync.csv_path)",
    )
    common.add_argument(
        "--token",
        help="GitHub token (visible in process list -- prefer GITHUB_TOKEN)",
    )
    common.add_argument("--owner", help="Repository owner (overrides GITHUB_OWNER)")
    common.add_argument("--repo", help="Repository name (overrides GITHUB_REPO)")
    common.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    common.add_argument(
        "--debug-format",
        choices=("text", "json"),
        default="text",
        help="Log line format (default: text)",
    )
    common.add_argument("--log-file", help="Also append logs to this file")
    common.add_argument(
        "--no-dedupe",
        action="store_true",
        help="Do not collapse records with the same title",
    )
    common.add_argument(
        "--close-duplicates",
        action="store_true",
        help="Close duplicate GitHub issues instead of leaving them open",
    )
    common.add_argument(
        "--status-sync",
        action="store_true",
        help="Sync the status_column with 'status:' labels and the project board",
    )

    one_shot = argparse.ArgumentParser(add_help=False)
    one_shot.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without touching GitHub or the CSV",
    )
    one_shot.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON on stdout",
    )

    sub = parser.add_subparsers(dest="command")
    sub.add_parser(
        "sync",
        parents=[common, one_shot],
        help="Bidirectional sync between the CSV and GitHub",
    )
    sub.add_parser(
        "push",
        parents=[common, one_shot],
        help="Push CSV changes to GitHub (CSV -> GitHub)",
    )
    sub.add_parser(
        "pull",
        parents=[common, one_shot],
        help="Pull GitHub changes into the CSV (GitHub -> CSV)",
    )
    watch = sub.add_parser(
        "watch",
        parents=[common],
        help="Watch the CSV for changes and sync automatically",
    )
    watch.add_argument(
        "--debounce",
        type=float,
        default=1.0,
        help="Seconds the file must stay unchanged before syncing (default: 1.0)",
    )
    sub.add_parser("init", help="Create a starter .csv_sync/config.yml")
    return parser


def _sync_overrides(args: argparse.Namespace) -> dict:
    overrides: dict = {"direction": _DIRECTIONS.get(args.command, "bidirectional")}
    if args.no_dedupe:
        overrides["dedupe"] = False
    if args.close_duplicates:
        overrides["close_remote_duplicates"] = True
    if args.status_sync:
        overrides["status_sync"] = True
    return overrides


def _load(args: argparse.Namespace) -> tuple[Config, UnifiedConfig]:
    """Resolve configuration from CLI args, env, .env and YAML files."""
    # .env first, so ${VAR} references in YAML can use its values
    load_dotenv()
    unified = build_config(load_hierarchical_config())
    config = load_config(
        token=args.token,
        owner=args.owner,
        repo=args.repo,
        csv_path=args.csv_path,
        debug=args.debug,
        unified=unified,
        sync_overrides=_sync_overrides(args),
    )
    return config, unified


def _build_engine(config: Config) -> SyncEngine:
    client = GitHubClient(config)
    board = None
    if config.sync.status_sync:
        board = GitHubProjectsClient(config)
    return SyncEngine(client, config.sync, status_board=board)


def _run_once(engine: SyncEngine, args: argparse.Namespace) -> None:
    result = engine.run(dry_run=args.dry_run)
    if args.json:
        print(json.dumps(result_to_json(result), indent=2))
    elif result.dry_run:
        print(format_dry_run_preview(result))
    else:
        print(format_sync_report(result, store=str(engine.csv_path)))


def _run_watch(engine: SyncEngine, args: argparse.Namespace) -> None:
    repo = engine.tracker.validate_connection()
    logger.info("Connected to %s", repo)
    watcher = CsvWatcher(engine, engine.csv_path, debounce=args.debounce)
    stop = threading.Event()
    print(
        f"Watching {engine.csv_path} for changes (Ctrl+C to stop)...",
        file=sys.stderr,
    )
    try:
        watcher.run(stop)
    except KeyboardInterrupt:
        stop.set()


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the requested command and return the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "init":
        path = ensure_config()
        print(f"Config file: {path}")
        return 0

    try:
        config, unified = _load(args)
    except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        debug=config.debug,
        log_file=args.log_file or unified.logging.file,
        debug_format=args.debug_format,
        level=unified.logging.level,
    )
    config_files = discover_config_files()
    if config_files:
        logger.info("Configuration loaded from: %s", config_files[0])
    logger.info(
        "Syncing %s with %s/%s",
        Path(config.csv_file_path),
        config.github_owner,
        config.github_repo,
    )

    engine = _build_engine(config)
    try:
        if args.command == "watch":
            _run_watch(engine, args)
        else:
            _run_once(engine, args)
    except (SyncError, TrackerError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
