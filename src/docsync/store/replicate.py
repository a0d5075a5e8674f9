"""Store-to-store replication.

``sync_stores`` makes two local store files hold the same set of
document versions.  Each side ingests every version it is missing from the
other; versions keep their original author, timestamp and signature, so
both stores afterwards agree on the latest version of every path.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from docsync.exceptions import ExitCode, PreconditionError
from docsync.store.models import WriteStatus
from docsync.store.storage import DocumentStore

logger = logging.getLogger(__name__)


class ReplicationResult(BaseModel):
    """Counts of versions moved in each direction.

    Attributes:
        workspace: The shared workspace address.
        pulled: Versions copied from the second store into the first.
        pushed: Versions copied from the first store into the second.
        rejected: Versions refused by the receiving store (bad signature,
            format mismatch).
    """

    workspace: str
    pulled: int = 0
    pushed: int = 0
    rejected: int = 0

    model_config = {"frozen": True}


def _copy_missing(source: DocumentStore, target: DocumentStore) -> tuple[int, int]:
    """Ingest into *target* every version of *source* it lacks."""
    copied = 0
    rejected = 0
    for document in source.documents(history=True):
        result = target.ingest(document)
        if result.status == WriteStatus.ACCEPTED:
            copied += 1
        elif result.status == WriteStatus.INVALID:
            rejected += 1
            logger.warning(
                "Rejected %s by %s from %s: %s",
                document.path,
                document.author,
                source.path,
                result.reason,
            )
    return copied, rejected


def sync_stores(first: DocumentStore, second: DocumentStore) -> ReplicationResult:
    """Exchange missing document versions between two stores.

    Raises:
        PreconditionError: If the stores hold different workspaces.
    """
    if first.workspace != second.workspace:
        raise PreconditionError(
            "Can't sync because workspaces don't match: "
            f"{first.workspace} and {second.workspace}",
            exit_code=ExitCode.WORKSPACE_MISMATCH,
        )

    pushed, rejected_push = _copy_missing(first, second)
    pulled, rejected_pull = _copy_missing(second, first)
    logger.info(
        "Replicated %s: %d pushed, %d pulled", first.workspace, pushed, pulled
    )
    return ReplicationResult(
        workspace=first.workspace,
        pulled=pulled,
        pushed=pushed,
        rejected=rejected_push + rejected_pull,
    )
