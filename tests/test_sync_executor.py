"""Tests for the sync executor.

Covers:
- Each action kind applied to disk or store
- Conflict resolutions in both directions
- Manifest updates for applied, skipped and failed actions
- Per-path failures do not stop the run
- Actions are skipped when the target side changed after planning
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from conftest import AUTHOR, OTHER_AUTHOR, read_file, write_file

from docsync.sync import executor as executor_module
from docsync.sync.executor import SyncExecutor
from docsync.sync.indexer import PathIndexer
from docsync.sync.manifest import SyncManifest, content_hash
from docsync.sync.models import ActionKind, Outcome, Resolution
from docsync.sync.planner import ReconciliationPlanner
from docsync.sync.resolver import create_resolver
from docsync.sync.snapshot import take_snapshot

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _plan(sync_dir: Path, store, state: dict):
    return ReconciliationPlanner().plan(
        PathIndexer(sync_dir).scan(),
        take_snapshot(store),
        SyncManifest.entries(state),
    )


def _executor(sync_dir, store, state_dir, strategy="last-writer-wins"):
    manifest = SyncManifest(state_dir)
    executor = SyncExecutor(
        sync_dir, store, AUTHOR, create_resolver(strategy), manifest
    )
    return executor, manifest.load(sync_dir, store.path)


def _run(sync_dir, store, state_dir, strategy="last-writer-wins"):
    executor, state = _executor(sync_dir, store, state_dir, strategy)
    results = executor.execute(_plan(sync_dir, store, state), state)
    return results, state


# ---------------------------------------------------------------------------
# Simple actions
# ---------------------------------------------------------------------------


class TestApplyActions:
    """Tests for non-conflict actions."""

    def test_write_to_store(self, sync_dir, store, state_dir):
        write_file(sync_dir, "a.txt", "hello")

        (result,), state = _run(sync_dir, store, state_dir)

        assert result.action == ActionKind.WRITE_TO_STORE
        assert result.outcome == Outcome.APPLIED
        doc = store.get("a.txt")
        assert (doc.content, doc.author) == ("hello", AUTHOR)
        assert state["entries"]["a.txt"] == {
            "content_hash": content_hash("hello"),
            "store_timestamp": doc.timestamp,
        }

    def test_write_to_disk(self, sync_dir, store, state_dir):
        store.set(OTHER_AUTHOR, "dir/b.txt", "from store")

        (result,), _ = _run(sync_dir, store, state_dir)

        assert result.action == ActionKind.WRITE_TO_DISK
        assert result.outcome == Outcome.APPLIED
        assert read_file(sync_dir, "dir/b.txt") == "from store"

    def test_delete_on_disk(self, sync_dir, store, state_dir):
        write_file(sync_dir, "sub/a.txt", "x")
        _run(sync_dir, store, state_dir)
        store.set(OTHER_AUTHOR, "sub/a.txt", "")

        (result,), state = _run(sync_dir, store, state_dir)

        assert result.action == ActionKind.DELETE_ON_DISK
        assert result.outcome == Outcome.APPLIED
        assert not (sync_dir / "sub").exists()
        assert "sub/a.txt" not in state["entries"]

    def test_delete_in_store(self, sync_dir, store, state_dir):
        path = write_file(sync_dir, "a.txt", "x")
        _run(sync_dir, store, state_dir)
        path.unlink()

        (result,), state = _run(sync_dir, store, state_dir)

        assert result.action == ActionKind.DELETE_IN_STORE
        assert result.outcome == Outcome.APPLIED
        assert store.get("a.txt").deleted
        assert state["entries"] == {}

    def test_noop_is_skipped_and_recorded(self, sync_dir, store, state_dir):
        write_file(sync_dir, "a.txt", "same")
        doc = store.set(OTHER_AUTHOR, "a.txt", "same").document

        (result,), state = _run(sync_dir, store, state_dir)

        assert result.action == ActionKind.NO_OP
        assert result.outcome == Outcome.SKIPPED
        assert result.reason == "unchanged"
        assert state["entries"]["a.txt"]["store_timestamp"] == doc.timestamp

    def test_manifest_is_saved(self, sync_dir, store, state_dir):
        write_file(sync_dir, "a.txt", "hello")
        _run(sync_dir, store, state_dir)

        reloaded = SyncManifest(state_dir).load(sync_dir, store.path)
        assert set(reloaded["entries"]) == {"a.txt"}

    def test_log_records_carry_path(self, sync_dir, store, state_dir, caplog):
        write_file(sync_dir, "a.txt", "hello")

        with caplog.at_level("INFO", logger="docsync.sync.executor"):
            _run(sync_dir, store, state_dir)

        (record,) = [r for r in caplog.records if hasattr(r, "doc_path")]
        assert record.doc_path == "a.txt"
        assert record.action == "write_to_store"


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


class TestApplyConflicts:
    """Tests for CONFLICT actions."""

    def test_keep_disk_writes_store(self, sync_dir, store, state_dir):
        write_file(sync_dir, "a.txt", "disk")
        store.set(OTHER_AUTHOR, "a.txt", "store")

        (result,), _ = _run(sync_dir, store, state_dir, "disk-wins")

        assert result.action == ActionKind.CONFLICT
        assert result.outcome == Outcome.APPLIED
        assert result.resolution == Resolution.KEEP_DISK
        assert store.get("a.txt").content == "disk"
        assert read_file(sync_dir, "a.txt") == "disk"

    def test_keep_store_writes_disk(self, sync_dir, store, state_dir):
        write_file(sync_dir, "a.txt", "disk")
        store.set(OTHER_AUTHOR, "a.txt", "store")

        (result,), state = _run(sync_dir, store, state_dir, "store-wins")

        assert result.resolution == Resolution.KEEP_STORE
        assert read_file(sync_dir, "a.txt") == "store"
        assert state["entries"]["a.txt"]["content_hash"] == content_hash(
            "store"
        )

    def test_keep_disk_deletion_tombstones_store(
        self, sync_dir, store, state_dir
    ):
        path = write_file(sync_dir, "a.txt", "v1")
        _run(sync_dir, store, state_dir)
        path.unlink()
        store.set(OTHER_AUTHOR, "a.txt", "v2")

        (result,), state = _run(sync_dir, store, state_dir, "disk-wins")

        assert result.action == ActionKind.CONFLICT
        assert store.get("a.txt").deleted
        assert "a.txt" not in state["entries"]

    def test_keep_store_tombstone_removes_file(
        self, sync_dir, store, state_dir
    ):
        write_file(sync_dir, "a.txt", "v1")
        _run(sync_dir, store, state_dir)
        write_file(sync_dir, "a.txt", "v2")
        store.set(OTHER_AUTHOR, "a.txt", "")

        (result,), _ = _run(sync_dir, store, state_dir, "store-wins")

        assert result.action == ActionKind.CONFLICT
        assert result.resolution == Resolution.KEEP_STORE
        assert not (sync_dir / "a.txt").exists()

    def test_manual_conflict_fails_and_keeps_manifest(
        self, sync_dir, store, state_dir
    ):
        write_file(sync_dir, "a.txt", "v1")
        _run(sync_dir, store, state_dir)
        write_file(sync_dir, "a.txt", "disk edit")
        store.set(OTHER_AUTHOR, "a.txt", "store edit")
        before = SyncManifest(state_dir).load(sync_dir, store.path)

        (result,), state = _run(sync_dir, store, state_dir, "manual")

        assert result.outcome == Outcome.FAILED
        assert "manual resolution" in result.reason
        assert state["entries"] == before["entries"]
        assert read_file(sync_dir, "a.txt") == "disk edit"
        assert store.get("a.txt").content == "store edit"


# ---------------------------------------------------------------------------
# Failures and concurrent changes
# ---------------------------------------------------------------------------


class TestPartialFailure:
    """Tests for per-path error isolation."""

    def test_one_failure_does_not_stop_the_run(
        self, sync_dir, store, state_dir
    ):
        store.set(OTHER_AUTHOR, "a.txt", "first")
        store.set(OTHER_AUTHOR, "b.txt", "second")
        store.set(OTHER_AUTHOR, "c.txt", "third")

        real_write = executor_module.write_file

        def flaky_write(path, content, *args, **kwargs):
            if path.name == "b.txt":
                raise PermissionError("read-only file system")
            return real_write(path, content, *args, **kwargs)

        with patch.object(executor_module, "write_file", flaky_write):
            results, state = _run(sync_dir, store, state_dir)

        assert [(r.path, r.outcome) for r in results] == [
            ("a.txt", Outcome.APPLIED),
            ("b.txt", Outcome.FAILED),
            ("c.txt", Outcome.APPLIED),
        ]
        assert "read-only" in results[1].reason
        assert set(state["entries"]) == {"a.txt", "c.txt"}
        assert not (sync_dir / "b.txt").exists()

    def test_failed_path_is_retried_next_run(
        self, sync_dir, store, state_dir
    ):
        store.set(OTHER_AUTHOR, "a.txt", "content")
        with patch(
            "docsync.sync.executor.write_file",
            side_effect=OSError("disk full"),
        ):
            (failed,), _ = _run(sync_dir, store, state_dir)
        assert failed.outcome == Outcome.FAILED

        (retried,), _ = _run(sync_dir, store, state_dir)
        assert retried.action == ActionKind.WRITE_TO_DISK
        assert retried.outcome == Outcome.APPLIED


class TestConcurrentChanges:
    """Tests for sides that change between planning and execution."""

    def test_file_created_after_planning_is_not_overwritten(
        self, sync_dir, store, state_dir
    ):
        store.set(OTHER_AUTHOR, "a.txt", "from store")
        executor, state = _executor(sync_dir, store, state_dir)
        actions = _plan(sync_dir, store, state)
        write_file(sync_dir, "a.txt", "typed meanwhile")

        (result,) = executor.execute(actions, state)

        assert result.outcome == Outcome.SKIPPED
        assert result.reason == "changed on disk during sync"
        assert read_file(sync_dir, "a.txt") == "typed meanwhile"
        assert state["entries"] == {}

    def test_store_written_after_planning_is_not_overwritten(
        self, sync_dir, store, state_dir
    ):
        write_file(sync_dir, "a.txt", "from disk")
        executor, state = _executor(sync_dir, store, state_dir)
        actions = _plan(sync_dir, store, state)
        store.set(OTHER_AUTHOR, "a.txt", "written meanwhile")

        (result,) = executor.execute(actions, state)

        assert result.outcome == Outcome.SKIPPED
        assert result.reason == "changed in store during sync"
        assert store.get("a.txt").content == "written meanwhile"
