"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync passes:

- ``format_sync_report`` -- full post-sync summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by action.
- ``result_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SyncOutcome, SyncResult

from .models import SyncAction

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _describe(outcome: SyncOutcome) -> str:
    ref = f"#{outcome.key}" if outcome.key else "(new)"
    if outcome.title:
        return f"{ref} {outcome.title}"
    return ref


def format_sync_report(result: SyncResult, store: str | None = None) -> str:
    """Format a complete sync result as human-readable text.

    Sections are only included when they contain at least one outcome.
    Skipped records are summarised by count only.

    Args:
        result: The completed sync result.
        store: Optional CSV path shown in the header.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = "Sync report"
    if store:
        header += f" for '{store}'"
    if result.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {result.started_at}")
    if result.completed_at:
        lines.append(f"Completed: {result.completed_at}")
    lines.append("")

    counts = result.counts()
    lines.append(
        f"{counts['created']} created, {counts['updated']} updated, "
        f"{counts['appended']} appended, {counts['tombstoned']} tombstoned, "
        f"{counts['deduped']} deduplicated, {counts['skipped']} skipped, "
        f"{counts['errors']} errors"
    )
    lines.append("")

    sections = [
        ("Created remotely:", result.created),
        ("Pushed to tracker:", result.updated_remote),
        ("Pulled into CSV:", result.updated_local),
        ("Appended to CSV:", result.appended),
        ("Marked [DELETED]:", result.tombstoned),
        ("Deduplicated:", result.deduped),
    ]
    for title, outcomes in sections:
        if not outcomes:
            continue
        lines.append(title)
        for o in outcomes:
            lines.append(f"  {_describe(o)}")
        lines.append("")

    if result.failures:
        lines.append("Errors:")
        for o in result.failures:
            lines.append(f"  {_describe(o)}: {o.error}")
        lines.append("")

    if counts["skipped"] > 0:
        lines.append(f"Skipped: {counts['skipped']} records")
        lines.append("")

    if result.backup_path:
        lines.append(f"Removed duplicates saved to {result.backup_path}")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(result: SyncResult) -> str:
    """Format a dry-run preview grouped by action type.

    Each planned action is shown as ``[ACTION]`` followed by the records
    it applies to.

    Args:
        result: A dry-run sync result (``dry_run=True``).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    lines.append("DRY RUN -- No changes will be made")
    if result.preview_path:
        lines.append(f"Preview: {result.preview_path}")
    lines.append("")

    groups: dict[SyncAction, list[SyncOutcome]] = defaultdict(list)
    for o in result.outcomes:
        groups[o.action].append(o)

    display_order = [
        SyncAction.DEDUPE_LOCAL,
        SyncAction.DEDUPE_REMOTE,
        SyncAction.CLOSE_DUPLICATE,
        SyncAction.CREATE_REMOTE,
        SyncAction.UPDATE_REMOTE,
        SyncAction.UPDATE_STATUS_REMOTE,
        SyncAction.APPEND_LOCAL,
        SyncAction.UPDATE_LOCAL,
        SyncAction.UPDATE_STATUS_LOCAL,
        SyncAction.TOMBSTONE,
    ]

    for action in display_order:
        if action not in groups:
            continue
        label = action.value.upper().replace("_", " ")
        lines.append(f"[{label}]")
        for o in groups[action]:
            lines.append(f"  {_describe(o)}")
        lines.append("")

    skip_count = len(groups.get(SyncAction.SKIP, []))
    if skip_count > 0:
        lines.append(f"Skipped: {skip_count} records")
        lines.append("")

    if not any(a != SyncAction.SKIP for a in groups):
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def result_to_json(result: SyncResult) -> dict:
    """Convert a sync result to a structured dict for JSON serialisation.

    Args:
        result: The sync result.

    Returns:
        Dict with pass info, counts, and per-outcome details.
    """
    outcomes = []
    for o in result.outcomes:
        entry: dict = {
            "action": o.action.value,
            "key": o.key,
            "title": o.title,
            "success": o.success,
        }
        if o.error:
            entry["error"] = o.error
        if o.detail:
            entry["detail"] = o.detail
        outcomes.append(entry)

    return {
        "dry_run": result.dry_run,
        "started_at": result.started_at,
        "completed_at": result.completed_at,
        "backup_path": result.backup_path,
        "preview_path": result.preview_path,
        "counts": result.counts(),
        "errors": result.errors,
        "outcomes": outcomes,
    }
