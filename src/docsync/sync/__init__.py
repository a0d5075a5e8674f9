"""Bidirectional directory <-> document store sync.

Architecture
------------
Sync is **manifest-based reconciliation**: each side is compared against
the state both sides agreed on at the end of the previous run, so a path
that changed on one side only is copied and a path that changed on both
is a conflict.

Modules:

- ``engine``    -- ``SyncEngine``: orchestrates a full sync run.
- ``indexer``   -- ``PathIndexer``: scans the directory.
- ``snapshot``  -- ``take_snapshot``: reads the latest store state.
- ``planner``   -- ``ReconciliationPlanner``: decides one action per path.
- ``resolver``  -- Conflict resolution strategies (last-writer-wins,
  store-wins, disk-wins, manual).
- ``executor``  -- ``SyncExecutor``: applies a plan.
- ``manifest``  -- ``SyncManifest``: load/save the per-pair JSON manifest.
- ``models``    -- ``FileEntry``, ``SyncAction``, ``SyncResult``,
  ``SyncReport`` and friends: core data contracts.
- ``reporter``  -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from pathlib import Path
    from docsync.store import DocumentStore
    from docsync.sync import (
        SyncEngine,
        SyncManifest,
        format_dry_run_preview,
        format_sync_report,
    )

    with DocumentStore.open("notes.sqlite") as store:
        engine = SyncEngine(
            directory=Path("notes"),
            store=store,
            author="@suzy",
            manifest=SyncManifest(Path("~/.docsync/manifests").expanduser()),
        )

        # Dry-run first to preview changes
        preview = engine.run(dry_run=True)
        print(format_dry_run_preview(preview))

        report = engine.run()
        print(format_sync_report(report))
"""

from .engine import SyncEngine
from .executor import SyncExecutor
from .indexer import PathIndexer
from .manifest import SyncManifest, content_hash
from .models import (
    ActionKind,
    DiskVersion,
    FileEntry,
    ManifestEntry,
    Outcome,
    Resolution,
    SyncAction,
    SyncReport,
    SyncResult,
)
from .planner import ReconciliationPlanner
from .reporter import (
    format_conflict_diff,
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from .resolver import (
    ConflictResolver,
    DiskWinsResolver,
    LastWriterWinsResolver,
    ManualResolver,
    StoreWinsResolver,
    create_resolver,
)
from .snapshot import DocumentSnapshot, take_snapshot

__all__ = [
    "ActionKind",
    "ConflictResolver",
    "DiskVersion",
    "DiskWinsResolver",
    "DocumentSnapshot",
    "FileEntry",
    "LastWriterWinsResolver",
    "ManifestEntry",
    "ManualResolver",
    "Outcome",
    "PathIndexer",
    "ReconciliationPlanner",
    "Resolution",
    "StoreWinsResolver",
    "SyncAction",
    "SyncEngine",
    "SyncExecutor",
    "SyncManifest",
    "SyncReport",
    "SyncResult",
    "content_hash",
    "create_resolver",
    "format_conflict_diff",
    "format_dry_run_preview",
    "format_sync_report",
    "report_to_json",
    "take_snapshot",
]
