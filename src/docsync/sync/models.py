"""Pydantic models for the directory <-> store sync engine.

Defines the core data contracts used across all sync modules:

- ``FileEntry``: One file found under the sync root.
- ``ManifestEntry``: Agreed state of one path at the last sync.
- ``DiskVersion``: The disk side of a conflict, placed on the store clock.
- ``ActionKind`` / ``SyncAction``: One planned operation for one path.
- ``Resolution``: Winner picked by a conflict resolver.
- ``Outcome`` / ``SyncResult``: What happened to one planned action.
- ``SyncReport``: Aggregate results for a full sync run.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from collections import Counter
from enum import Enum

from pydantic import BaseModel

from docsync.store.models import DocumentEntry


class FileEntry(BaseModel):
    """A regular file found under the sync root.

    Attributes:
        path: Path relative to the root, ``/``-separated.
        content: Decoded file text.
        content_hash: Normalised SHA-256 of ``content``.
        size: File size in bytes.
        mtime: Modification time (informational only; never used for
            ordering).
    """

    path: str
    content: str
    content_hash: str
    size: int
    mtime: float

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        """Empty files are indistinguishable from a store tombstone."""
        return self.content.lstrip("\ufeff") == ""


class ManifestEntry(BaseModel):
    """State both sides agreed on for one path at the last sync.

    Attributes:
        content_hash: Normalised SHA-256 of the agreed content.
        store_timestamp: Logical timestamp of the store version agreed on.
    """

    content_hash: str
    store_timestamp: int

    model_config = {"frozen": True}


class DiskVersion(BaseModel):
    """Disk side of a conflict.

    Attributes:
        content: Current file text, or ``None`` if the file was deleted.
        timestamp: Logical timestamp assigned to the disk edit: one step
            past the last agreed store version, or 0 without history.
    """

    content: str | None
    timestamp: int

    model_config = {"frozen": True}

    @property
    def deleted(self) -> bool:
        return self.content is None


class ActionKind(str, Enum):
    """Possible sync operations for one path."""

    NO_OP = "no_op"
    WRITE_TO_STORE = "write_to_store"
    WRITE_TO_DISK = "write_to_disk"
    DELETE_ON_DISK = "delete_on_disk"
    DELETE_IN_STORE = "delete_in_store"
    CONFLICT = "conflict"


class SyncAction(BaseModel):
    """One planned operation.

    Attributes:
        kind: The operation.
        path: Path the operation applies to.
        disk: File found on disk when planning (``None`` if absent).
        store: Latest store version when planning, tombstones included
            (``None`` if the store never held the path).
        base: Manifest entry from the last sync, if any.
        disk_version: Disk side placed on the store clock (conflicts only).
    """

    kind: ActionKind
    path: str
    disk: FileEntry | None = None
    store: DocumentEntry | None = None
    base: ManifestEntry | None = None
    disk_version: DiskVersion | None = None

    model_config = {"frozen": True}


class Resolution(str, Enum):
    """Side chosen by a conflict resolver."""

    KEEP_DISK = "keep_disk"
    KEEP_STORE = "keep_store"


class Outcome(str, Enum):
    """What happened to one planned action."""

    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


class SyncResult(BaseModel):
    """Result of applying one action.

    Attributes:
        path: Path the action applied to.
        action: The planned operation.
        outcome: Applied, skipped or failed.
        resolution: Winner of a conflict, when one was picked.
        reason: Why the action was skipped, or the error if it failed.
    """

    path: str
    action: ActionKind
    outcome: Outcome
    resolution: Resolution | None = None
    reason: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for a full sync run.

    Attributes:
        directory: Absolute path of the synced directory.
        store: Absolute path of the store file.
        dry_run: Whether this was a dry-run (no changes applied).
        results: One result per planned action, sorted by path.
        started_at: ISO 8601 timestamp when sync started.
        completed_at: ISO 8601 timestamp when sync completed.
    """

    directory: str
    store: str
    dry_run: bool = False
    results: list[SyncResult] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def applied(self) -> list[SyncResult]:
        return [r for r in self.results if r.outcome == Outcome.APPLIED]

    @property
    def skipped(self) -> list[SyncResult]:
        return [r for r in self.results if r.outcome == Outcome.SKIPPED]

    @property
    def failed(self) -> list[SyncResult]:
        return [r for r in self.results if r.outcome == Outcome.FAILED]

    @property
    def conflicts(self) -> list[SyncResult]:
        return [
            r for r in self.results if r.action == ActionKind.CONFLICT
        ]

    @property
    def changes(self) -> list[SyncResult]:
        """Results for every action other than NO_OP."""
        return [r for r in self.results if r.action != ActionKind.NO_OP]

    def counts(self) -> dict[str, dict[str, int]]:
        """Count outcomes per action kind.

        Returns:
            ``{action: {"applied": n, "skipped": n, "failed": n}}`` for
            every action kind, zeros included.
        """
        tally = Counter((r.action, r.outcome) for r in self.results)
        return {
            action.value: {
                outcome.value: tally[(action, outcome)]
                for outcome in Outcome
            }
            for action in ActionKind
        }

    def summary(self) -> str:
        """Format a one-line Applied/Skipped/Failed summary."""
        return (
            f"{len(self.applied)} applied, {len(self.skipped)} skipped, "
            f"{len(self.failed)} failed"
        )
