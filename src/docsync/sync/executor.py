"""Apply a sync plan to a directory and a document store.

``SyncExecutor.execute`` performs one filesystem or store operation per
action and records exactly one ``SyncResult`` per path.  Failures are
per-path: an exception while applying one action is logged, recorded as
``FAILED`` and the run continues.

Manifest handling:

* Applied actions and ``NO_OP`` paths update the in-memory manifest.
* Failed or skipped actions leave the previous entry untouched, so the
  next run plans them again.
* The manifest is written once, after the last action.  If that write
  fails the run gets one extra ``FAILED`` result with an empty path.

Before overwriting or deleting anything the executor re-reads the side it
is about to change; if that side no longer matches what was planned, the
action is skipped instead of clobbering a concurrent edit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from docsync.exceptions import DocsyncError
from docsync.file_handler import (
    read_file_with_encoding,
    remove_file,
    write_file,
)
from docsync.store.models import DocumentEntry, WriteStatus
from docsync.store.storage import DocumentStore
from docsync.sync.manifest import SyncManifest, content_hash
from docsync.sync.models import (
    ActionKind,
    ManifestEntry,
    Outcome,
    Resolution,
    SyncAction,
    SyncResult,
)
from docsync.sync.resolver import ConflictResolver

logger = logging.getLogger(__name__)


def _log_context(action: SyncAction) -> dict[str, str]:
    """Record attributes picked up by ``JsonFormatter``."""
    return {"doc_path": action.path, "action": action.kind.value}


class SyncExecutor:
    """Apply planned actions between *root* and *store*.

    Args:
        root: Directory being synced.
        store: Open document store.
        author: Author identity used for store writes.
        resolver: Picks the winner of each conflict.
        manifest: Manifest persistence for this directory/store pair.
    """

    def __init__(
        self,
        root: Path,
        store: DocumentStore,
        author: str,
        resolver: ConflictResolver,
        manifest: SyncManifest,
    ) -> None:
        self.root = root
        self.store = store
        self.author = author
        self.resolver = resolver
        self.manifest = manifest

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def execute(
        self, actions: Iterable[SyncAction], state: dict
    ) -> list[SyncResult]:
        """Apply *actions* in order and persist the updated manifest.

        Args:
            actions: Planned actions, one per path.
            state: Manifest loaded for this pair; mutated in place.

        Returns:
            One result per action, in the order given, plus a trailing
            run-level failure (empty path) if the manifest cannot be saved.
        """
        results: list[SyncResult] = []
        for action in actions:
            try:
                result = self._apply(action, state)
            except Exception as exc:
                logger.error(
                    "Failed to apply %s to %s: %s",
                    action.kind.value,
                    action.path,
                    exc,
                    extra=_log_context(action),
                )
                result = SyncResult(
                    path=action.path,
                    action=action.kind,
                    outcome=Outcome.FAILED,
                    reason=str(exc),
                )
            results.append(result)

        try:
            self.manifest.save(self.root, self.store.path, state)
        except OSError as exc:
            # Applied changes stay applied; the next run re-plans them.
            logger.error("Cannot save sync manifest: %s", exc)
            results.append(
                SyncResult(
                    path="",
                    action=ActionKind.NO_OP,
                    outcome=Outcome.FAILED,
                    reason=f"manifest not saved: {exc}",
                )
            )
        return results

    # ------------------------------------------------------------------
    # Action dispatch
    # ------------------------------------------------------------------

    def _apply(self, action: SyncAction, state: dict) -> SyncResult:
        if action.kind == ActionKind.NO_OP:
            return self._do_noop(action, state)
        if action.kind == ActionKind.WRITE_TO_STORE:
            return self._do_write_to_store(action, state)
        if action.kind == ActionKind.WRITE_TO_DISK:
            return self._do_write_to_disk(action, state)
        if action.kind == ActionKind.DELETE_ON_DISK:
            return self._do_delete_on_disk(action, state)
        if action.kind == ActionKind.DELETE_IN_STORE:
            return self._do_delete_in_store(action, state)
        if action.kind == ActionKind.CONFLICT:
            return self._do_conflict(action, state)
        raise DocsyncError(f"Unhandled action: {action.kind}")

    def _do_noop(self, action: SyncAction, state: dict) -> SyncResult:
        store = action.store
        if action.disk is not None and store is not None and not store.deleted:
            self._agree(state, action.path, action.disk.content_hash, store)
        else:
            SyncManifest.remove_entry(state, action.path)
        return self._skipped(action, "unchanged")

    def _do_write_to_store(
        self, action: SyncAction, state: dict
    ) -> SyncResult:
        if not self._store_matches(action):
            return self._skipped(action, "changed in store during sync")
        doc = self._store_write(action.path, action.disk.content)
        self._agree(state, action.path, action.disk.content_hash, doc)
        return self._applied(action)

    def _do_write_to_disk(
        self, action: SyncAction, state: dict
    ) -> SyncResult:
        if not self._disk_matches(action):
            return self._skipped(action, "changed on disk during sync")
        self._disk_write(action.path, action.store)
        self._agree(
            state,
            action.path,
            content_hash(action.store.content),
            action.store,
        )
        return self._applied(action)

    def _do_delete_on_disk(
        self, action: SyncAction, state: dict
    ) -> SyncResult:
        if not self._disk_matches(action):
            return self._skipped(action, "changed on disk during sync")
        remove_file(self._abs(action.path), self.root)
        SyncManifest.remove_entry(state, action.path)
        return self._applied(action)

    def _do_delete_in_store(
        self, action: SyncAction, state: dict
    ) -> SyncResult:
        if not self._store_matches(action):
            return self._skipped(action, "changed in store during sync")
        self._store_write(action.path, "")
        SyncManifest.remove_entry(state, action.path)
        return self._applied(action)

    def _do_conflict(self, action: SyncAction, state: dict) -> SyncResult:
        resolution = self.resolver.resolve(
            action.path, action.disk_version, action.store
        )
        logger.info(
            "Conflict at %s resolved: %s",
            action.path,
            resolution.value,
            extra=_log_context(action),
        )

        if resolution == Resolution.KEEP_DISK:
            if not self._store_matches(action):
                return self._skipped(
                    action, "changed in store during sync", resolution
                )
            if action.disk is None:
                self._store_write(action.path, "")
                SyncManifest.remove_entry(state, action.path)
            else:
                doc = self._store_write(action.path, action.disk.content)
                self._agree(
                    state, action.path, action.disk.content_hash, doc
                )
            return self._applied(action, resolution)

        if not self._disk_matches(action):
            return self._skipped(
                action, "changed on disk during sync", resolution
            )
        store = action.store
        if store is None or store.deleted:
            if action.disk is not None:
                remove_file(self._abs(action.path), self.root)
            SyncManifest.remove_entry(state, action.path)
        else:
            self._disk_write(action.path, store)
            self._agree(state, action.path, content_hash(store.content), store)
        return self._applied(action, resolution)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _abs(self, path: str) -> Path:
        return self.root.joinpath(*path.split("/"))

    def _current_disk_hash(self, path: str) -> str | None:
        """Hash of the file at *path* now, ``None`` if absent or empty."""
        abs_path = self._abs(path)
        if not abs_path.is_file():
            return None
        content, _ = read_file_with_encoding(abs_path)
        if content.lstrip("\ufeff") == "":
            return None
        return content_hash(content)

    def _disk_matches(self, action: SyncAction) -> bool:
        expected = action.disk.content_hash if action.disk else None
        return self._current_disk_hash(action.path) == expected

    def _store_matches(self, action: SyncAction) -> bool:
        current = self.store.get(action.path)
        expected = action.store
        if current is None or expected is None:
            return current is None and expected is None
        return current.signature == expected.signature

    def _store_write(self, path: str, content: str) -> DocumentEntry:
        result = self.store.set(self.author, path, content)
        if result.status != WriteStatus.ACCEPTED or result.document is None:
            raise DocsyncError(
                f"store did not accept {path}: "
                f"{result.reason or result.status.value}"
            )
        return result.document

    def _disk_write(self, path: str, doc: DocumentEntry) -> None:
        written = write_file(self._abs(path), doc.content)
        logger.debug("Wrote %d bytes to %s", written, path)

    @staticmethod
    def _agree(
        state: dict, path: str, digest: str, doc: DocumentEntry
    ) -> None:
        SyncManifest.update_entry(
            state,
            path,
            ManifestEntry(content_hash=digest, store_timestamp=doc.timestamp),
        )

    @staticmethod
    def _applied(
        action: SyncAction, resolution: Resolution | None = None
    ) -> SyncResult:
        logger.info(
            "%s %s",
            action.kind.value,
            action.path,
            extra=_log_context(action),
        )
        return SyncResult(
            path=action.path,
            action=action.kind,
            outcome=Outcome.APPLIED,
            resolution=resolution,
        )

    @staticmethod
    def _skipped(
        action: SyncAction,
        reason: str,
        resolution: Resolution | None = None,
    ) -> SyncResult:
        if action.kind != ActionKind.NO_OP:
            logger.warning(
                "Skipping %s: %s",
                action.path,
                reason,
                extra=_log_context(action),
            )
        return SyncResult(
            path=action.path,
            action=action.kind,
            outcome=Outcome.SKIPPED,
            resolution=resolution,
            reason=reason,
        )
