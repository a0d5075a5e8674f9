"""Core sync engine that orchestrates a full directory <-> store sync.

The ``SyncEngine`` ties together manifest, indexer, snapshot, planner,
resolver and executor into a complete sync run.  It:

1. Loads the manifest for the (directory, store) pair.
2. Scans the directory and snapshots the store concurrently.
3. Keeps excluded paths and paths below unreadable directories out
   of planning.
4. Plans one action per path.
5. Executes the plan (or, in dry-run mode, only reports it).
6. Builds and returns a ``SyncReport``.

Error handling is per-path: a single failure does not abort the run.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path

from docsync.exceptions import StoreUnavailableError, TraversalError
from docsync.store.storage import DocumentStore
from docsync.sync.executor import SyncExecutor
from docsync.sync.indexer import DEFAULT_EXCLUDE, PathIndexer
from docsync.sync.manifest import SyncManifest
from docsync.sync.models import (
    ActionKind,
    FileEntry,
    Outcome,
    SyncAction,
    SyncReport,
    SyncResult,
)
from docsync.sync.planner import ReconciliationPlanner, path_sort_key
from docsync.sync.resolver import ConflictResolver, create_resolver
from docsync.sync.snapshot import DocumentSnapshot, take_snapshot

logger = logging.getLogger(__name__)


def _under(path: str, prefix: str) -> bool:
    return prefix == "" or path == prefix or path.startswith(prefix + "/")


class SyncEngine:
    """Orchestrate one sync run between a directory and a store.

    Args:
        directory: Directory to sync.
        store: Open document store.
        author: Author identity used for store writes.
        manifest: Manifest persistence (its state directory).
        resolver: Conflict resolver; last-writer-wins when omitted.
        exclude: Glob patterns for paths the indexer skips.

    Attributes:
        actions: The plan of the most recent run.
    """

    def __init__(
        self,
        directory: Path,
        store: DocumentStore,
        author: str,
        manifest: SyncManifest,
        resolver: ConflictResolver | None = None,
        exclude: Sequence[str] = DEFAULT_EXCLUDE,
    ) -> None:
        self.directory = Path(directory)
        self.store = store
        self.author = author
        self.manifest = manifest
        self.resolver = resolver or create_resolver("last-writer-wins")
        self.actions: list[SyncAction] = []

        self.indexer = PathIndexer(self.directory, exclude)
        self.planner = ReconciliationPlanner()
        self.executor = SyncExecutor(
            self.directory, store, author, self.resolver, manifest
        )

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self, dry_run: bool = False) -> SyncReport:
        """Execute a full sync cycle.

        Args:
            dry_run: If ``True``, plan but do not touch disk, store or
                manifest.

        Returns:
            A ``SyncReport`` summarising what was (or would be) done.

        Raises:
            NotFoundError: If the directory does not exist.
            NotADirectoryError: If the directory is a file.
        """
        started_at = datetime.now(timezone.utc).isoformat()
        self.actions = []
        state = self.manifest.load(self.directory, self.store.path)

        with ThreadPoolExecutor(max_workers=2) as pool:
            files_future = pool.submit(self.indexer.scan)
            snapshot_future = pool.submit(take_snapshot, self.store)
            files = files_future.result()
            try:
                snapshot = snapshot_future.result()
            except StoreUnavailableError as exc:
                logger.error(
                    "Cannot read store %s: %s", self.store.path, exc
                )
                return self._report(
                    dry_run,
                    started_at,
                    [
                        SyncResult(
                            path="",
                            action=ActionKind.NO_OP,
                            outcome=Outcome.FAILED,
                            reason=str(exc),
                        )
                    ],
                )

        errors = list(self.indexer.errors)
        actions = self._plan(files, snapshot, state, errors)
        self.actions = actions
        logger.info(
            "Planned %d changes for %s <-> %s",
            sum(1 for a in actions if a.kind != ActionKind.NO_OP),
            self.directory,
            self.store.path,
        )

        if dry_run:
            results = [
                SyncResult(
                    path=a.path,
                    action=a.kind,
                    outcome=Outcome.SKIPPED,
                    reason="dry run",
                )
                for a in actions
            ]
        else:
            results = self.executor.execute(actions, state)

        results.extend(self._traversal_results(errors))
        results.sort(key=lambda r: path_sort_key(r.path))
        return self._report(dry_run, started_at, results)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _plan(
        self,
        files: list[FileEntry],
        snapshot: DocumentSnapshot,
        state: dict,
        errors: list[TraversalError],
    ) -> list[SyncAction]:
        """Plan every path in scope and not hidden behind a traversal error.

        Excluded paths are dropped on the store and manifest side too, so
        a document at an excluded path is neither copied to disk nor
        deleted because the indexer never reports it.
        """
        actions = self.planner.plan(
            files, snapshot, SyncManifest.entries(state)
        )
        kept: list[SyncAction] = []
        for action in actions:
            if self.indexer.hides(action.path):
                logger.debug("Not planning %s: excluded", action.path)
                continue
            if any(_under(action.path, e.path) for e in errors):
                logger.debug(
                    "Not planning %s: unreadable on disk", action.path
                )
                continue
            kept.append(action)
        return kept

    @staticmethod
    def _traversal_results(
        errors: list[TraversalError],
    ) -> list[SyncResult]:
        return [
            SyncResult(
                path=error.path,
                action=ActionKind.NO_OP,
                outcome=Outcome.FAILED,
                reason=str(error),
            )
            for error in errors
        ]

    def _report(
        self, dry_run: bool, started_at: str, results: list[SyncResult]
    ) -> SyncReport:
        return SyncReport(
            directory=str(self.directory.resolve()),
            store=str(self.store.path.resolve()),
            dry_run=dry_run,
            results=results,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )
