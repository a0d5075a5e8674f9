"""Tests for store-to-store replication."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import AUTHOR, OTHER_AUTHOR, WORKSPACE

from docsync.exceptions import ExitCode, PreconditionError
from docsync.store import DocumentStore, sync_stores


@pytest.fixture
def other_store(tmp_path: Path):
    handle = DocumentStore.create(tmp_path / "other.sqlite", WORKSPACE)
    yield handle
    handle.close()


class TestSyncStores:
    """Tests for sync_stores()."""

    def test_exchanges_missing_versions(self, store, other_store):
        store.set(AUTHOR, "a.txt", "from first")
        other_store.set(OTHER_AUTHOR, "b.txt", "from second")

        result = sync_stores(store, other_store)

        assert result.workspace == WORKSPACE
        assert result.pushed == 1
        assert result.pulled == 1
        assert result.rejected == 0
        assert store.list() == other_store.list()

    def test_history_is_copied(self, store, other_store):
        store.set(AUTHOR, "a.txt", "v1")
        store.set(AUTHOR, "a.txt", "v2")

        result = sync_stores(store, other_store)

        assert result.pushed == 2
        assert len(other_store.documents(history=True)) == 2
        assert other_store.get("a.txt").content == "v2"

    def test_both_sides_agree_on_latest(self, store, other_store):
        """Concurrent edits of one path converge on the same winner."""
        store.set(AUTHOR, "a.txt", "mine")
        other_store.set(OTHER_AUTHOR, "a.txt", "theirs")
        other_store.set(OTHER_AUTHOR, "a.txt", "theirs again")

        sync_stores(store, other_store)

        assert store.get("a.txt") == other_store.get("a.txt")
        assert store.get("a.txt").content == "theirs again"

    def test_second_run_moves_nothing(self, store, other_store):
        store.set(AUTHOR, "a.txt", "x")
        sync_stores(store, other_store)

        again = sync_stores(store, other_store)

        assert (again.pushed, again.pulled, again.rejected) == (0, 0, 0)

    def test_workspace_mismatch(self, store, tmp_path: Path):
        with DocumentStore.create(
            tmp_path / "elsewhere.sqlite", "+other.space"
        ) as elsewhere:
            with pytest.raises(
                PreconditionError, match="workspaces don't match"
            ) as excinfo:
                sync_stores(store, elsewhere)
        assert excinfo.value.exit_code == ExitCode.WORKSPACE_MISMATCH
