"""Conflict resolution strategies for the sync engine.

A resolver is consulted for every ``CONFLICT`` action and answers which
side survives:

- ``LastWriterWinsResolver``: Higher logical timestamp wins (default).
- ``StoreWinsResolver``: Always keeps the store version.
- ``DiskWinsResolver``: Always keeps the disk version.
- ``ManualResolver``: Never picks; every conflict fails and is retried on
  the next run.

Resolvers are deterministic and side-effect free.  The
``create_resolver()`` factory maps config strategy strings to resolver
instances.
"""

from __future__ import annotations

import logging
from typing import Protocol

from docsync.exceptions import ConflictUnresolved
from docsync.store.models import DocumentEntry
from docsync.sync.models import DiskVersion, Resolution

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ConflictResolver(Protocol):
    """Protocol that all conflict resolvers must satisfy."""

    def resolve(
        self,
        path: str,
        disk: DiskVersion,
        store: DocumentEntry | None,
    ) -> Resolution:
        """Pick the side that wins a conflict at *path*.

        Args:
            path: Path in conflict.
            disk: Disk side (content is ``None`` if the file was deleted).
            store: Latest store version (a tombstone if deleted there).

        Returns:
            ``Resolution.KEEP_DISK`` or ``Resolution.KEEP_STORE``.

        Raises:
            ConflictUnresolved: If the resolver declines to choose.
        """
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Last writer wins
# ---------------------------------------------------------------------------


class LastWriterWinsResolver:
    """Keep the side with the higher logical timestamp.

    Ties are broken by comparing content bytes (greater wins, a deletion
    counts as empty content).  Identical content keeps the store version,
    which leaves the store untouched.
    """

    def resolve(
        self,
        path: str,
        disk: DiskVersion,
        store: DocumentEntry | None,
    ) -> Resolution:
        if store is None:
            return Resolution.KEEP_DISK
        if disk.timestamp != store.timestamp:
            winner = (
                Resolution.KEEP_DISK
                if disk.timestamp > store.timestamp
                else Resolution.KEEP_STORE
            )
        else:
            disk_bytes = (disk.content or "").encode("utf-8")
            store_bytes = store.content.encode("utf-8")
            winner = (
                Resolution.KEEP_DISK
                if disk_bytes > store_bytes
                else Resolution.KEEP_STORE
            )
        logger.debug(
            "Conflict at %s: disk@%d vs store@%d -> %s",
            path,
            disk.timestamp,
            store.timestamp,
            winner.value,
        )
        return winner


# ---------------------------------------------------------------------------
# Simple resolvers
# ---------------------------------------------------------------------------


class StoreWinsResolver:
    """Always resolve conflicts in favour of the store."""

    def resolve(
        self,
        path: str,
        disk: DiskVersion,
        store: DocumentEntry | None,
    ) -> Resolution:
        if store is None:
            return Resolution.KEEP_DISK
        return Resolution.KEEP_STORE


class DiskWinsResolver:
    """Always resolve conflicts in favour of the directory."""

    def resolve(
        self,
        path: str,
        disk: DiskVersion,
        store: DocumentEntry | None,
    ) -> Resolution:
        return Resolution.KEEP_DISK


class ManualResolver:
    """Leave every conflict for a human to settle."""

    def resolve(
        self,
        path: str,
        disk: DiskVersion,
        store: DocumentEntry | None,
    ) -> Resolution:
        raise ConflictUnresolved(
            f"conflict at '{path}' needs manual resolution"
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_STRATEGY_MAP: dict[str, type] = {
    "last-writer-wins": LastWriterWinsResolver,
    "store-wins": StoreWinsResolver,
    "disk-wins": DiskWinsResolver,
    "manual": ManualResolver,
}

STRATEGIES: tuple[str, ...] = tuple(_STRATEGY_MAP)


def create_resolver(strategy: str) -> ConflictResolver:
    """Create a conflict resolver for the given strategy string.

    Args:
        strategy: One of ``"last-writer-wins"``, ``"store-wins"``,
            ``"disk-wins"``, ``"manual"``.

    Returns:
        A ``ConflictResolver`` implementation instance.

    Raises:
        ValueError: If the strategy string is not recognised.
    """
    cls = _STRATEGY_MAP.get(strategy)
    if cls is None:
        raise ValueError(
            f"Unknown conflict strategy: '{strategy}'. Valid strategies: {sorted(_STRATEGY_MAP.keys())}"
        )
    return cls()  # type: ignore[return-value]
