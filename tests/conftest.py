"""Shared pytest fixtures for docsync tests."""

from pathlib import Path

import pytest

from docsync.store import DocumentStore
from docsync.sync import SyncEngine, SyncManifest

AUTHOR = "@suzy"
OTHER_AUTHOR = "@bobo"
WORKSPACE = "+garden.friends"


def write_file(root: Path, rel: str, content: str) -> Path:
    """Create ``root/rel`` (and parents) holding *content* as UTF-8."""
    path = root.joinpath(*rel.split("/"))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content.encode("utf-8"))
    return path


def read_file(root: Path, rel: str) -> str:
    return root.joinpath(*rel.split("/")).read_bytes().decode("utf-8")


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep the developer's own docsync settings out of tests."""
    for key in (
        "DOCSYNC_AUTHOR",
        "DOCSYNC_STATE_DIR",
        "DOCSYNC_CONFLICT_STRATEGY",
        "DOCSYNC_MAX_CONTENT_SIZE",
        "DOCSYNC_DEBUG",
        "DOCSYNC_CONFIG",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def sync_dir(tmp_path: Path) -> Path:
    """An empty directory to sync."""
    path = tmp_path / "notes"
    path.mkdir()
    return path


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    """Where manifests are kept (created on first save)."""
    return tmp_path / "state"


@pytest.fixture
def store(tmp_path: Path):
    """A fresh, empty store outside ``sync_dir``."""
    handle = DocumentStore.create(tmp_path / "notes.sqlite", WORKSPACE)
    yield handle
    handle.close()


@pytest.fixture
def make_engine(sync_dir: Path, store: DocumentStore, state_dir: Path):
    """Factory for engines over ``sync_dir`` and ``store``."""

    def _make(**kwargs) -> SyncEngine:
        kwargs.setdefault("author", AUTHOR)
        return SyncEngine(
            directory=sync_dir,
            store=store,
            manifest=SyncManifest(state_dir),
            **kwargs,
        )

    return _make
