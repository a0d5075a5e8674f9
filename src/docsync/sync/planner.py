"""Reconciliation of a directory scan against a store snapshot.

``ReconciliationPlanner.plan`` compares each side against the manifest
entry recorded at the last sync and emits one ``SyncAction`` per path.
It never touches disk or store.

Decision table (``base`` is the manifest entry):

=========  ==========  ==========================  =====================
base       disk        store (latest live)         action
=========  ==========  ==========================  =====================
none       present     present                     NO_OP if equal, else
                                                   CONFLICT
none       present     absent                      WRITE_TO_STORE
none       absent      present                     WRITE_TO_DISK
yes        absent      absent                      NO_OP (forget entry)
yes        absent      unchanged / changed         DELETE_IN_STORE /
                                                   CONFLICT
yes        unchanged   absent                      DELETE_ON_DISK
yes        changed     absent                      CONFLICT
yes        either      either                      by which sides changed
=========  ==========  ==========================  =====================

An empty file counts as absent because empty content is the store's
tombstone.  A manifest entry for a path the store has no version of at all
is treated as stale and ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from docsync.store.models import DocumentEntry
from docsync.sync.manifest import content_hash
from docsync.sync.models import (
    ActionKind,
    DiskVersion,
    FileEntry,
    ManifestEntry,
    SyncAction,
)
from docsync.sync.snapshot import DocumentSnapshot

logger = logging.getLogger(__name__)


def path_sort_key(path: str) -> bytes:
    """Order paths by their UTF-8 bytes, independent of locale."""
    return path.encode("utf-8", "surrogateescape")


class ReconciliationPlanner:
    """Turn two views of a path set plus the last agreed state into a plan."""

    def plan(
        self,
        files: Iterable[FileEntry],
        snapshot: DocumentSnapshot,
        manifest: Mapping[str, ManifestEntry],
    ) -> list[SyncAction]:
        """Return the actions needed to bring both sides into agreement.

        Args:
            files: Entries produced by the directory scan.
            snapshot: Latest store state.
            manifest: Agreed state per path from the previous sync.

        Returns:
            Actions sorted by path.  Paths that need no action and have no
            manifest entry are left out.
        """
        disk_files = {f.path: f for f in files}
        paths = (
            set(disk_files)
            | set(snapshot.documents)
            | set(snapshot.tombstones)
            | set(manifest)
        )

        actions: list[SyncAction] = []
        for path in sorted(paths, key=path_sort_key):
            action = self._plan_path(
                path,
                disk_files.get(path),
                snapshot.latest(path),
                manifest.get(path),
            )
            if action is not None:
                actions.append(action)

        logger.debug(
            "Planned %d actions (%d changes)",
            len(actions),
            sum(1 for a in actions if a.kind != ActionKind.NO_OP),
        )
        return actions

    # ------------------------------------------------------------------
    # Per-path decision
    # ------------------------------------------------------------------

    def _plan_path(
        self,
        path: str,
        disk: FileEntry | None,
        store: DocumentEntry | None,
        base: ManifestEntry | None,
    ) -> SyncAction | None:
        if disk is not None and disk.is_empty:
            disk = None
        live = store if store is not None and not store.deleted else None
        if store is None and base is not None:
            logger.debug("Ignoring stale manifest entry for %s", path)
            base = None

        def action(kind: ActionKind) -> SyncAction:
            disk_version = None
            if kind == ActionKind.CONFLICT:
                disk_version = DiskVersion(
                    content=disk.content if disk else None,
                    timestamp=base.store_timestamp + 1 if base else 0,
                )
            return SyncAction(
                kind=kind,
                path=path,
                disk=disk,
                store=store,
                base=base,
                disk_version=disk_version,
            )

        # First sync of this path
        if base is None:
            if disk is not None and live is not None:
                if disk.content_hash == content_hash(live.content):
                    return action(ActionKind.NO_OP)
                return action(ActionKind.CONFLICT)
            if disk is not None:
                return action(ActionKind.WRITE_TO_STORE)
            if live is not None:
                return action(ActionKind.WRITE_TO_DISK)
            return None

        disk_changed = (
            disk is not None and disk.content_hash != base.content_hash
        )
        store_changed = (
            live is not None and live.timestamp != base.store_timestamp
        )

        # Deletions
        if disk is None and live is None:
            return action(ActionKind.NO_OP)
        if disk is None:
            if store_changed:
                return action(ActionKind.CONFLICT)
            return action(ActionKind.DELETE_IN_STORE)
        if live is None:
            if disk_changed:
                return action(ActionKind.CONFLICT)
            return action(ActionKind.DELETE_ON_DISK)

        # Both present
        if not disk_changed and not store_changed:
            return action(ActionKind.NO_OP)
        if disk_changed and not store_changed:
            return action(ActionKind.WRITE_TO_STORE)
        if disk.content_hash == content_hash(live.content):
            # Store moved to what is already on disk, or both sides made
            # the same edit.
            return action(ActionKind.NO_OP)
        if store_changed and not disk_changed:
            return action(ActionKind.WRITE_TO_DISK)
        return action(ActionKind.CONFLICT)
