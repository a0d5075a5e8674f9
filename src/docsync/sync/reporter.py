"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync operations:

- ``format_sync_report`` -- full post-sync summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by action.
- ``format_conflict_diff`` -- unified diff between both sides of a
  conflict.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

import difflib
from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SyncAction, SyncReport

from .models import ActionKind, Outcome

_SECTION_TITLES = {
    ActionKind.WRITE_TO_STORE: "Written to store:",
    ActionKind.WRITE_TO_DISK: "Written to disk:",
    ActionKind.DELETE_IN_STORE: "Deleted in store:",
    ActionKind.DELETE_ON_DISK: "Deleted on disk:",
    ActionKind.CONFLICT: "Conflicts resolved:",
}

# Display order for grouped output (NO_OP is only counted)
_DISPLAY_ORDER = [
    ActionKind.WRITE_TO_STORE,
    ActionKind.WRITE_TO_DISK,
    ActionKind.DELETE_IN_STORE,
    ActionKind.DELETE_ON_DISK,
    ActionKind.CONFLICT,
]


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Sections are only included when they contain at least one result.
    Unchanged paths are summarised by count only to avoid excessive output.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    # Header
    header = f"Sync report for {report.directory} <-> {report.store}"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    lines.append(f"Summary: {report.summary()}")
    lines.append("")

    # Per-action sections (only if non-empty)
    for kind in _DISPLAY_ORDER:
        applied = [r for r in report.applied if r.action == kind]
        if not applied:
            continue
        lines.append(_SECTION_TITLES[kind])
        for r in applied:
            if r.resolution is not None:
                lines.append(f"  {r.path} ({r.resolution.value})")
            else:
                lines.append(f"  {r.path}")
        lines.append("")

    skipped_changes = [
        r for r in report.skipped if r.action != ActionKind.NO_OP
    ]
    if skipped_changes:
        lines.append("Skipped:")
        for r in skipped_changes:
            lines.append(f"  {r.path}: {r.reason}")
        lines.append("")

    if report.failed:
        lines.append("Failed:")
        for r in report.failed:
            lines.append(f"  {r.path or '.'}: {r.reason}")
        lines.append("")

    unchanged = sum(
        1
        for r in report.results
        if r.action == ActionKind.NO_OP and r.outcome == Outcome.SKIPPED
    )
    if unchanged > 0:
        lines.append(f"Unchanged: {unchanged} paths")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(report: SyncReport) -> str:
    """Format a dry-run preview grouped by action type.

    Each proposed action is shown as ``[ACTION]`` followed by its paths.

    Args:
        report: A dry-run sync report (``dry_run=True``).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    lines.append("DRY RUN -- No changes will be made")
    lines.append(f"Directory: {report.directory}")
    lines.append(f"Store: {report.store}")
    lines.append("")

    # Group by action
    groups: dict[ActionKind, list[str]] = defaultdict(list)
    for r in report.results:
        if r.outcome != Outcome.FAILED:
            groups[r.action].append(r.path)

    for kind in _DISPLAY_ORDER:
        if kind not in groups:
            continue
        label = kind.value.upper().replace("_", " ")
        lines.append(f"[{label}]")
        for path in groups[kind]:
            lines.append(f"  {path}")
        lines.append("")

    # Mention unchanged count if any
    noop_count = len(groups.get(ActionKind.NO_OP, []))
    if noop_count > 0:
        lines.append(f"Unchanged: {noop_count} paths")
        lines.append("")

    if report.failed:
        lines.append("Failed:")
        for r in report.failed:
            lines.append(f"  {r.path or '.'}: {r.reason}")
        lines.append("")

    if not any(k != ActionKind.NO_OP for k in groups):
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Conflict diff
# ------------------------------------------------------------------


def format_conflict_diff(action: SyncAction) -> str:
    """Format a single conflict for review.

    Shows a unified diff from the store version to the disk version.  A
    side that was deleted is shown as empty.

    Args:
        action: A ``CONFLICT`` action.

    Returns:
        Multi-line formatted string with the diff.
    """
    lines: list[str] = []
    disk_version = action.disk_version
    disk_text = disk_version.content if disk_version else None
    store_text = (
        action.store.content
        if action.store is not None and not action.store.deleted
        else None
    )

    lines.append(f"Conflict: {action.path}")
    if disk_version is not None:
        lines.append(f"  disk:  timestamp {disk_version.timestamp}")
    if action.store is not None:
        lines.append(
            f"  store: timestamp {action.store.timestamp} "
            f"by {action.store.author}"
        )
    lines.append("")

    if disk_text is None:
        lines.append("(deleted on disk)")
    if store_text is None:
        lines.append("(deleted in store)")

    diff = difflib.unified_diff(
        (store_text or "").splitlines(keepends=True),
        (disk_text or "").splitlines(keepends=True),
        fromfile=f"store: {action.path}",
        tofile=f"disk: {action.path}",
    )
    diff_text = "".join(diff)
    if diff_text:
        lines.append(diff_text.rstrip())
    else:
        lines.append("(no textual differences)")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with endpoint info, counts, and per-result details.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "path": r.path,
            "action": r.action.value,
            "outcome": r.outcome.value,
        }
        if r.resolution is not None:
            entry["resolution"] = r.resolution.value
        if r.reason:
            entry["reason"] = r.reason
        results_list.append(entry)

    return {
        "directory": report.directory,
        "store": report.store,
        "dry_run": report.dry_run,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "totals": {
            "applied": len(report.applied),
            "skipped": len(report.skipped),
            "failed": len(report.failed),
        },
        "counts": report.counts(),
        "results": results_list,
    }
