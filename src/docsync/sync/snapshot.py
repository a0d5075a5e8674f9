"""Point-in-time view of a document store.

``take_snapshot`` reads the latest version of every path once so that
planning works from a consistent store state.  Live documents and
tombstones are kept apart so a path that was deleted can be told from one
that never existed.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from docsync.exceptions import StoreUnavailableError
from docsync.store.models import DocumentEntry
from docsync.store.storage import DocumentStore

logger = logging.getLogger(__name__)


class DocumentSnapshot(BaseModel):
    """Latest store state per path.

    Attributes:
        workspace: Workspace the snapshot was taken from.
        documents: Latest version per path whose latest is not a tombstone.
        tombstones: Latest version per path whose latest is a tombstone.
    """

    workspace: str
    documents: dict[str, DocumentEntry] = {}
    tombstones: dict[str, DocumentEntry] = {}

    model_config = {"frozen": True}

    @property
    def tombstoned_paths(self) -> frozenset[str]:
        return frozenset(self.tombstones)

    def latest(self, path: str) -> DocumentEntry | None:
        """Latest version at *path*, tombstone or not."""
        return self.documents.get(path) or self.tombstones.get(path)


def take_snapshot(store: DocumentStore) -> DocumentSnapshot:
    """Read the latest version of every path in *store*.

    Raises:
        StoreUnavailableError: If the store is closed or cannot be queried.
    """
    if store.closed:
        raise StoreUnavailableError(f"store is closed: {store.path}")

    documents: dict[str, DocumentEntry] = {}
    tombstones: dict[str, DocumentEntry] = {}
    for doc in store.list():
        if doc.deleted:
            tombstones[doc.path] = doc
        else:
            documents[doc.path] = doc

    logger.debug(
        "Snapshot of %s: %d documents, %d tombstones",
        store.path,
        len(documents),
        len(tombstones),
    )
    return DocumentSnapshot(
        workspace=store.workspace,
        documents=documents,
        tombstones=tombstones,
    )
