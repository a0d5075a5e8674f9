"""Pydantic models for documents held in the store.

- ``DocumentEntry``: one immutable document version.
- ``WriteStatus`` / ``WriteResult``: outcome of ``set`` and ``ingest``.

``sign_document`` computes the integrity signature every version carries.
"""

from __future__ import annotations

import hashlib
import json
from enum import Enum

from pydantic import BaseModel


def sign_document(
    document_format: str,
    workspace: str,
    path: str,
    author: str,
    timestamp: int,
    content: str,
) -> str:
    """Return the SHA-256 signature over a document's canonical fields."""
    canonical = json.dumps(
        {
            "format": document_format,
            "workspace": workspace,
            "path": path,
            "author": author,
            "timestamp": timestamp,
            "content": hashlib.sha256(content.encode("utf-8")).hexdigest(),
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class DocumentEntry(BaseModel):
    """One version of a document.

    Attributes:
        format: Document format identifier (e.g. ``"es.4"``).
        workspace: Workspace address the document belongs to.
        path: Slash-separated relative path.
        author: Author identity that wrote this version.
        content: Document text; empty content marks a tombstone.
        timestamp: Logical timestamp, monotonically increasing per author.
        signature: Digest over the canonical fields (see ``sign_document``).
    """

    format: str
    workspace: str
    path: str
    author: str
    content: str
    timestamp: int
    signature: str

    model_config = {"frozen": True}

    @property
    def deleted(self) -> bool:
        """``True`` if this version is a tombstone."""
        return self.content == ""

    def verify(self) -> bool:
        """Return ``True`` if the signature matches the document fields."""
        return self.signature == sign_document(
            self.format,
            self.workspace,
            self.path,
            self.author,
            self.timestamp,
            self.content,
        )


class WriteStatus(str, Enum):
    """Outcome of a store write."""

    ACCEPTED = "accepted"
    IGNORED = "ignored"
    INVALID = "invalid"


class WriteResult(BaseModel):
    """Result of ``DocumentStore.set`` or ``DocumentStore.ingest``.

    Attributes:
        status: Whether the write was accepted, ignored or rejected.
        document: The stored version when accepted.
        reason: Why the write was ignored or rejected.
    """

    status: WriteStatus
    document: DocumentEntry | None = None
    reason: str | None = None

    model_config = {"frozen": True}
